"""Read models for appointments, user references and testing centers.

Records in the store carry more fields than these models declare; extra
fields are kept so read endpoints can return the stored document verbatim.
"""

from __future__ import annotations

import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

DEVICE_KEY_PATTERN = r"^[A-Fa-f0-9]{12}$"
_DEVICE_KEY_RE = re.compile(DEVICE_KEY_PATTERN)


def is_device_key(value: str) -> bool:
    return bool(_DEVICE_KEY_RE.fullmatch(value or ""))


class UserReference(BaseModel):
    model_config = ConfigDict(extra="allow")

    user_id: str
    appointment_id: str


class DeviceAppointment(BaseModel):
    """Appointment scheduled on one testing device (per-device data model)."""

    model_config = ConfigDict(extra="allow")

    resource_mac: str
    appointment_date: str
    users: List[UserReference] = Field(default_factory=list)


class OwnedAppointment(BaseModel):
    """Appointment keyed by its own identifier with a single owning user."""

    model_config = ConfigDict(extra="allow")

    appointment_id: str
    user_id: str
    cale_id: Optional[str] = None
    appointment_date: Optional[str] = None


class TestingCenter(BaseModel):
    model_config = ConfigDict(extra="allow")

    cale_id: str
    name: Optional[str] = None


__all__ = [
    "DEVICE_KEY_PATTERN",
    "is_device_key",
    "UserReference",
    "DeviceAppointment",
    "OwnedAppointment",
    "TestingCenter",
]
