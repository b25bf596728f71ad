from typing import Callable

from fastapi import BackgroundTasks, Request
from sqlalchemy.orm import Session

from huddle.core.config import Settings
from huddle.services import outbox_service


def get_db(request: Request):
    db: Session = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_outbox_dispatch(background_tasks: BackgroundTasks, request: Request) -> Callable[[], None]:
    """Returns a callable that delivers queued messages once the response is sent."""
    def dispatch() -> None:
        background_tasks.add_task(
            outbox_service.deliver_pending,
            request.app.state.session_factory,
            request.app.state.settings,
        )
    return dispatch
