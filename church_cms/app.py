"""
FastAPI application entry point for the church CMS backend.
"""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from church_cms.config import get_settings
from church_cms.errors import (
    CmsError,
    cms_error_handler,
    request_validation_handler,
    unhandled_error_handler,
)
from church_cms.routes import router


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Church CMS Backend", version="0.1.0")
    app.add_exception_handler(CmsError, cms_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.include_router(router, prefix=settings.api_prefix)

    @app.get("/", include_in_schema=False)
    def root():
        return {"status": "Success", "message": "API is running..."}

    return app


app = create_app()


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "church_cms.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
