from sqlalchemy import Table, create_engine, exists, literal, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """Creates the engine for `database_url`.

    SQLite connections are shared across threads because FastAPI runs sync
    work in a threadpool; an in-memory SQLite URL is pinned to one
    connection so every session sees the same database.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def add_to_set(db: Session, table: Table, **values) -> bool:
    """Inserts a row into an association table unless it is already there.

    The existence check and the insert are one statement, so two requests
    adding the same member cannot both write. Returns True when a row was
    added.
    """
    columns = list(values)
    already_there = exists().where(*[table.c[name] == value for name, value in values.items()])
    row = select(*[literal(value, table.c[name].type).label(name) for name, value in values.items()])
    stmt = table.insert().from_select(columns, row.where(~already_there))
    result = db.execute(stmt)
    return result.rowcount == 1
