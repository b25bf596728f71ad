import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from huddle.api.endpoints import admin as admin_endpoints
from huddle.api.endpoints import auth as auth_endpoints
from huddle.api.endpoints import events as event_endpoints
from huddle.api.endpoints import invites as invite_endpoints
from huddle.api.endpoints import notifications as notification_endpoints
from huddle.api.endpoints import otp as otp_endpoints
from huddle.api.endpoints import payments as payment_endpoints
from huddle.api.endpoints import teams as team_endpoints
from huddle.api.endpoints import users as user_endpoints
from huddle.core.config import Settings
from huddle.core.database import Base, build_engine, build_session_factory
from huddle.services import admin_service
import huddle.models  # registers every table on Base.metadata

logger = logging.getLogger(__name__)

SERVICE_NAME = "huddle-api"


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings)

    engine = build_engine(settings.DATABASE_URL)
    Base.metadata.create_all(bind=engine)
    session_factory = build_session_factory(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = session_factory()
        try:
            admin_service.purge_expired(db)
        finally:
            db.close()
        yield

    app = FastAPI(title="Huddle API", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.get("/health")
    @app.get("/api/health")
    async def health():
        return {"status": "ok", "service": SERVICE_NAME}

    # Include routers
    app.include_router(auth_endpoints.router, prefix="/api/auth", tags=["Authentication"])
    app.include_router(user_endpoints.router, prefix="/api/users", tags=["Users"])
    app.include_router(team_endpoints.router, prefix="/api/teams", tags=["Teams"])
    app.include_router(invite_endpoints.router, prefix="/api/invites", tags=["Invites"])
    app.include_router(event_endpoints.router, prefix="/api/events", tags=["Events"])
    app.include_router(notification_endpoints.router, prefix="/api/notifications", tags=["Notifications"])
    app.include_router(otp_endpoints.router, prefix="/api/otp", tags=["OTP"])
    app.include_router(payment_endpoints.router, prefix="/api/payments", tags=["Payments"])
    app.include_router(admin_endpoints.router, prefix="/api/admin", tags=["Admin"])

    logger.info("Huddle API configured for %s", settings.ENVIRONMENT)
    return app


if __name__ == "__main__":
    uvicorn.run("huddle.main:create_app", factory=True, host="0.0.0.0", port=8000)
