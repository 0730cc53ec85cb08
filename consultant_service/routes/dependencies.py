"""Request-scoped accessors for the services wired by the app factory."""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from consultant_service.config import AppConfig
from consultant_service.logic.appointment_directory import AppointmentDirectory
from consultant_service.logic.document_store import DocumentStore
from consultant_service.logic.submission_service import SubmissionService


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_directory(request: Request) -> AppointmentDirectory:
    return request.app.state.directory


def get_submission_service(request: Request) -> SubmissionService:
    return request.app.state.submissions


def get_request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


__all__ = [
    "get_config",
    "get_store",
    "get_directory",
    "get_submission_service",
    "get_request_id",
]
