"""Envelope-variant routes: stub login, testing centers and sync status.

Every route except the stub login is mounted behind `require_bearer`.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends

from consultant_service.config import AppConfig
from consultant_service.http.envelope import Presenter, get_presenter
from consultant_service.logic import error_mapping as codes
from consultant_service.logic.appointment_directory import OwnerAppointmentDirectory
from consultant_service.logic.document_store import SYNC_STATUS, DocumentStore
from consultant_service.logic.errors import ConsultantError
from consultant_service.routes.dependencies import get_config, get_directory, get_store

public_router = APIRouter()
router = APIRouter()
logger = logging.getLogger(__name__)

STUB_TOKEN_TTL_SECONDS = 3600


@public_router.post("/auth/login", summary="Stub login returning a fixed token")
def login(
    payload: Any = Body(default=None),
    presenter: Presenter = Depends(get_presenter),
    config: AppConfig = Depends(get_config),
):
    username = payload.get("username") if isinstance(payload, dict) else None
    logger.info("auth.stub_login username=%s", username)
    return presenter.item(
        {
            "access_token": config.auth.stub_token,
            "token_type": "Bearer",
            "expires_in": STUB_TOKEN_TTL_SECONDS,
        },
        "Inicio de sesión exitoso",
    )


@router.get("/cales", summary="List testing centers")
def list_centers(
    presenter: Presenter = Depends(get_presenter),
    directory: OwnerAppointmentDirectory = Depends(get_directory),
):
    centers = [center.model_dump() for center in directory.centers()]
    return presenter.collection(centers, f"{len(centers)} centros encontrados")


@router.get("/appointment/{cale_id}", summary="Appointments scheduled at a testing center")
def get_center_appointments(
    cale_id: str,
    presenter: Presenter = Depends(get_presenter),
    directory: OwnerAppointmentDirectory = Depends(get_directory),
):
    center = directory.center(cale_id)
    appointments = [a.model_dump() for a in directory.by_center(cale_id)]
    if center is None and not appointments:
        raise ConsultantError(
            codes.CENTER_NOT_FOUND,
            f"No se encontró el centro de examen: {cale_id}",
            {"cale_id": cale_id},
        )
    logger.info("appointments.by_center cale_id=%s total=%d", cale_id, len(appointments))
    return presenter.item(
        {
            "cale_id": cale_id,
            "cale_name": center.name if center else None,
            "total_appointments": len(appointments),
            "appointments": appointments,
        },
        "Citas encontradas",
    )


@router.get("/sync-status", summary="Synchronisation status passthrough")
def get_sync_status(
    presenter: Presenter = Depends(get_presenter),
    store: DocumentStore = Depends(get_store),
):
    records = store.find_many(SYNC_STATUS)
    return presenter.collection(records, "Estado de sincronización")


__all__ = ["public_router", "router", "login", "list_centers", "get_center_appointments", "get_sync_status"]
