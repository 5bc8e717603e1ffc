#!/usr/bin/env python3
import logging

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from schedule_arranger.api import router
from schedule_arranger.config import Settings
from schedule_arranger.errors import (
    NOT_FOUND_OR_FORBIDDEN,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    SchedulingError,
)
from schedule_arranger.persistence.database import PersistentDatabase
from schedule_arranger.security.http import OIDCProvider

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings):
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file))

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


async def handle_scheduling_error(request: Request, exc: Exception) -> JSONResponse:
    match exc:
        case NotFoundError() | ForbiddenError():
            # Both look the same from the outside.
            status_code, detail = status.HTTP_404_NOT_FOUND, NOT_FOUND_OR_FORBIDDEN
        case InvalidInputError():
            status_code, detail = 422, str(exc)
        case _:
            # BadRequestError
            status_code, detail = status.HTTP_400_BAD_REQUEST, str(exc)

    logger.warning(f"{request.method} {request.url.path} -> {status_code}: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": detail})


def create_app(
    settings: Settings | None = None, db: PersistentDatabase | None = None
) -> FastAPI:
    if settings is None:
        settings = Settings()  # pyright: ignore[reportCallIssue] (env vars)

    if db is None:
        db = PersistentDatabase.from_url(settings.database_url)

    app = FastAPI(
        title="Schedule Arranger",
        description="Propose candidate dates and collect everyone's availability",
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.db = db
    app.state.oidc_provider = OIDCProvider(settings)

    app.add_middleware(
        # pyrefly: ignore[bad-argument-type]
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(SchedulingError, handle_scheduling_error)
    app.include_router(router)

    return app


if __name__ == "__main__":
    settings = Settings()  # pyright: ignore[reportCallIssue] (env vars)
    configure_logging(settings)

    try:
        uvicorn.run(
            create_app(settings),
            host=settings.server_host,
            port=settings.server_port,
            log_level="info",
        )
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception as e:
        logger.error(f"Server error: {e}")
        exit(1)
