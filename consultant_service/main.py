from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from consultant_service.config import AppConfig, load_config
from consultant_service.http.envelope import (
    handle_consultant_error,
    handle_http_exception,
    handle_request_validation_error,
    handle_unexpected_error,
    presenter_for,
)
from consultant_service.http.request_id import RequestIdMiddleware
from consultant_service.logging_setup import configure_logging
from consultant_service.logic.appointment_directory import directory_for_variant
from consultant_service.logic.document_store import DocumentStore
from consultant_service.logic.errors import ConsultantError
from consultant_service.logic.store_factory import build_store
from consultant_service.logic.submission_service import SubmissionService
from consultant_service.middleware.cors import apply_cors
from consultant_service.routes import build_api_router

logger = logging.getLogger(__name__)


def _health_check(config: AppConfig, store: DocumentStore) -> Callable[[], dict]:
    def check() -> dict:
        try:
            store.count("appointments")
        except Exception as e:  # report, never raise, from the health probe
            logger.error("Health store check failed", exc_info=True)
            return {"status": "degraded", "store": store.backend, "variant": config.api.variant, "reason": str(e)}
        return {"status": "ok", "store": store.backend, "variant": config.api.variant}

    return check


def create_app(config: Optional[AppConfig] = None, store: Optional[DocumentStore] = None) -> FastAPI:
    """Build the consultant service application.

    `config` defaults to `load_config()`; `store` defaults to the backend the
    config names. Tests pass both to run against seeded in-memory data.
    """
    config = config or load_config()
    configure_logging(config.logging.level)
    store = store if store is not None else build_store(config)

    app = FastAPI(title="Consultant Service Mock")
    app.state.config = config
    app.state.store = store
    app.state.presenter = presenter_for(config.api.variant)
    app.state.directory = directory_for_variant(config.api.variant, store)
    app.state.submissions = SubmissionService(store, app.state.directory)

    app.add_exception_handler(ConsultantError, handle_consultant_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected_error)

    apply_cors(app, origins=config.api.cors_origins)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(build_api_router(config.api.variant), prefix=config.api.prefix)

    health_check = _health_check(config, store)

    @app.get("/health")
    def health():
        return health_check()

    logger.info(
        "app.created variant=%s prefix=%s store=%s",
        config.api.variant,
        config.api.prefix,
        store.backend,
    )
    return app


def run() -> None:
    import uvicorn

    config = load_config()
    uvicorn.run(create_app(config), host="0.0.0.0", port=config.api.port)


# Intentionally do not instantiate the app at import time to prevent side effects.
