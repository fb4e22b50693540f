import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError

from facility_api.config import settings
from facility_api.database import check_db_connection
from facility_api.utils.exceptions import AppException
from facility_api.middleware.error_handler import (
    app_exception_handler,
    validation_exception_handler,
    integrity_error_handler,
    generic_exception_handler,
)
from facility_api.api.v1 import maintenance, users

logging.basicConfig(
    level=logging.DEBUG if settings.APP_DEBUG and settings.is_development else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"
API_PREFIX = "/api/v1"

EXCEPTION_HANDLERS = (
    (AppException,           app_exception_handler),
    (RequestValidationError, validation_exception_handler),
    (IntegrityError,         integrity_error_handler),
    (Exception,              generic_exception_handler),
)

ROUTERS = (
    (maintenance.router, "Maintenance"),
    (users.router,       "Users"),
)


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=VERSION,
        # interactive docs stay off in production
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
        openapi_url=None if settings.is_production else "/openapi.json",
        description="Maintenance requests for facility assets: drafts, submission, "
                    "technician assignment and work status.",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for exc_class, handler in EXCEPTION_HANDLERS:
        app.add_exception_handler(exc_class, handler)

    for router, tag in ROUTERS:
        app.include_router(router, prefix=API_PREFIX, tags=[tag])

    @app.on_event("startup")
    def on_startup():
        if check_db_connection():
            logger.info(f"{settings.APP_NAME} {VERSION} ready ({settings.APP_ENV})")
        else:
            logger.error("Database unreachable at startup; requests will fail until it is back")

    @app.get("/health", tags=["Health"])
    def health():
        return {"status": "ok", "app": settings.APP_NAME, "version": VERSION}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("facility_api.main:app", host=settings.APP_HOST, port=settings.APP_PORT,
                reload=settings.is_development)
