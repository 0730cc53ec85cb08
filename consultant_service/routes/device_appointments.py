"""Appointment lookup by device key (snake variant)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from consultant_service.logic import error_mapping as codes
from consultant_service.logic.appointment_directory import DeviceAppointmentDirectory
from consultant_service.logic.errors import ConsultantError
from consultant_service.models.appointment import DEVICE_KEY_PATTERN, is_device_key
from consultant_service.routes.dependencies import get_directory

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/appointment/{resource_mac}", summary="Users scheduled on a testing device")
def get_device_appointment(
    resource_mac: str,
    directory: DeviceAppointmentDirectory = Depends(get_directory),
):
    if not is_device_key(resource_mac):
        raise ConsultantError(
            codes.INVALID_FORMAT,
            "El formato de resource_mac es inválido. Se esperan 12 caracteres hexadecimales.",
            {
                "field": "resource_mac",
                "provided_value": resource_mac,
                "expected_format": DEVICE_KEY_PATTERN,
                "examples": ["A1B2C3D4E5F6", "001122334455"],
            },
        )

    appointment = directory.by_device(resource_mac)
    if appointment is None:
        raise ConsultantError(
            codes.APPOINTMENT_NOT_FOUND,
            f"No se encontró ninguna cita para el resource_mac: {resource_mac}",
            {
                "resource_mac": resource_mac,
                "suggestion": "Verifique que el resource_mac sea correcto",
            },
        )

    users = [user.model_dump() for user in appointment.users]
    logger.info("appointments.by_device resource_mac=%s users=%d", resource_mac, len(users))
    return {
        "resource_mac": appointment.resource_mac,
        "appointment_date": appointment.appointment_date,
        "total_users": len(users),
        "users": users,
    }


__all__ = ["router", "get_device_appointment"]
