"""Response envelopes and global exception handlers.

Two wire formats exist and one is chosen per deployment (`api.variant`):

- snake: bare bodies; errors are ``{error_code, message, details, timestamp}``
- envelope: every body is ``{success, message, data}``; keys are camelCase and
  errors carry ``{errorCode, details, timestamp}`` inside ``data``

Handlers read the active presenter from ``request.app.state.presenter``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from consultant_service.logic import error_mapping as codes
from consultant_service.logic.errors import ConsultantError
from consultant_service.logic.result_writer import utc_timestamp
from consultant_service.models.submission import CAMEL_SHAPE, SNAKE_SHAPE, SubmissionShape

logger = logging.getLogger(__name__)


class SnakePresenter:
    variant = "snake"
    shape: SubmissionShape = SNAKE_SHAPE

    def error(self, code: str, message: str, details: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "error_code": code,
            "message": message,
            "details": dict(details),
            "timestamp": utc_timestamp(),
        }

    def created(self, record: Mapping[str, Any], message: str) -> Dict[str, Any]:
        body = {k: v for k, v in record.items() if k != "id"}
        body["message"] = message
        return body

    def item(self, record: Mapping[str, Any], message: str) -> Dict[str, Any]:
        return dict(record)

    def collection(self, records: List[Mapping[str, Any]], message: str) -> Dict[str, Any]:
        return {"total": len(records), "data": [dict(r) for r in records]}


class EnvelopePresenter:
    variant = "envelope"
    shape: SubmissionShape = CAMEL_SHAPE

    def error(self, code: str, message: str, details: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "success": False,
            "message": message,
            "data": {
                "errorCode": code,
                "details": self.shape.encode(details),
                "timestamp": utc_timestamp(),
            },
        }

    def created(self, record: Mapping[str, Any], message: str) -> Dict[str, Any]:
        return {"success": True, "message": message, "data": self.shape.encode(record)}

    def item(self, record: Mapping[str, Any], message: str) -> Dict[str, Any]:
        return {"success": True, "message": message, "data": self.shape.encode(record)}

    def collection(self, records: List[Mapping[str, Any]], message: str) -> Dict[str, Any]:
        return {"success": True, "message": message, "data": [self.shape.encode(r) for r in records]}


Presenter = Union[SnakePresenter, EnvelopePresenter]

PRESENTERS = {"snake": SnakePresenter, "envelope": EnvelopePresenter}


def presenter_for(variant: str) -> Presenter:
    return PRESENTERS[variant]()


def get_presenter(request: Request) -> Presenter:
    presenter: Optional[Presenter] = getattr(request.app.state, "presenter", None)
    return presenter or SnakePresenter()


def error_response(request: Request, code: str, message: str, details: Mapping[str, Any] | None = None) -> JSONResponse:
    presenter = get_presenter(request)
    status = codes.status_for(code, presenter.variant)
    return JSONResponse(presenter.error(code, message, details or {}), status_code=status)


async def handle_consultant_error(request: Request, exc: ConsultantError) -> JSONResponse:  # noqa: D401
    logger.info(
        "error_handler.handle code=%s path=%s request_id=%s",
        exc.code,
        request.url.path,
        getattr(request.state, "request_id", None),
    )
    return error_response(request, exc.code, exc.message, exc.details)


def _validation_errors(exc: RequestValidationError) -> List[Dict[str, Any]]:
    return [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": str(err.get("msg", "")), "type": str(err.get("type", ""))}
        for err in exc.errors()
    ]


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    return error_response(
        request,
        codes.VALIDATION_ERROR,
        "La solicitud no es válida",
        {"errors": _validation_errors(exc)},
    )


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:  # noqa: D401
    # Routing-level errors (unknown path, wrong method) keep their status
    presenter = get_presenter(request)
    code = codes.NOT_FOUND if exc.status_code == 404 else codes.HTTP_ERROR
    body = presenter.error(code, str(exc.detail), {"path": request.url.path})
    return JSONResponse(body, status_code=exc.status_code, headers=getattr(exc, "headers", None))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return error_response(request, codes.INTERNAL_ERROR, "Error interno del servidor", {})


__all__ = [
    "SnakePresenter",
    "EnvelopePresenter",
    "Presenter",
    "presenter_for",
    "get_presenter",
    "error_response",
    "handle_consultant_error",
    "handle_request_validation_error",
    "handle_http_exception",
    "handle_unexpected_error",
]
