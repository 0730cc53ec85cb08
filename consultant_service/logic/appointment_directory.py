"""Read-only appointment resolution over the document store.

Two data models exist:
- per-device: each appointment document is a device schedule
  (`resource_mac`, `appointment_date`) with nested user references, and an
  appointment identifier only exists as `users[].appointment_id`;
- per-owner: each appointment document is keyed by `appointment_id` and
  records a single owning `user_id` plus its testing center (`cale_id`).

Both answer the same questions for the validation pipeline, so the pipeline
never needs to know which model backs the store.
"""

from __future__ import annotations

from typing import Iterator, List, Optional, Protocol

from consultant_service.logic.document_store import APPOINTMENTS, CALES, DocumentStore
from consultant_service.models.appointment import (
    DeviceAppointment,
    OwnedAppointment,
    TestingCenter,
    UserReference,
)


class AppointmentDirectory(Protocol):
    def appointment_exists(self, appointment_id: str) -> bool: ...

    def user_references(self, user_id: str) -> List[UserReference]: ...

    def owner_of(self, appointment_id: str) -> Optional[str]: ...


class DeviceAppointmentDirectory:
    """Directory over per-device appointment documents."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def _references(self) -> Iterator[UserReference]:
        for record in self.store.find_many(APPOINTMENTS):
            for user in record.get("users") or []:
                if isinstance(user, dict) and "user_id" in user and "appointment_id" in user:
                    yield UserReference.model_validate(user)

    def appointment_exists(self, appointment_id: str) -> bool:
        return any(ref.appointment_id == appointment_id for ref in self._references())

    def user_references(self, user_id: str) -> List[UserReference]:
        return [ref for ref in self._references() if ref.user_id == user_id]

    def owner_of(self, appointment_id: str) -> Optional[str]:
        for ref in self._references():
            if ref.appointment_id == appointment_id:
                return ref.user_id
        return None

    def by_device(self, resource_mac: str) -> Optional[DeviceAppointment]:
        record = self.store.find_one(APPOINTMENTS, {"resource_mac": resource_mac})
        if record is None:
            return None
        return DeviceAppointment.model_validate(record)


class OwnerAppointmentDirectory:
    """Directory over appointments keyed by id with one recorded owner."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def _find(self, appointment_id: str) -> Optional[OwnedAppointment]:
        record = self.store.find_one(APPOINTMENTS, {"appointment_id": appointment_id})
        return OwnedAppointment.model_validate(record) if record else None

    def appointment_exists(self, appointment_id: str) -> bool:
        return self._find(appointment_id) is not None

    def user_references(self, user_id: str) -> List[UserReference]:
        return [
            UserReference(user_id=record["user_id"], appointment_id=record["appointment_id"])
            for record in self.store.find_many(APPOINTMENTS, {"user_id": user_id})
            if "appointment_id" in record
        ]

    def owner_of(self, appointment_id: str) -> Optional[str]:
        appointment = self._find(appointment_id)
        return appointment.user_id if appointment else None

    def center(self, cale_id: str) -> Optional[TestingCenter]:
        record = self.store.find_one(CALES, {"cale_id": cale_id})
        return TestingCenter.model_validate(record) if record else None

    def centers(self) -> List[TestingCenter]:
        return [TestingCenter.model_validate(r) for r in self.store.find_many(CALES)]

    def by_center(self, cale_id: str) -> List[OwnedAppointment]:
        return [OwnedAppointment.model_validate(r) for r in self.store.find_many(APPOINTMENTS, {"cale_id": cale_id})]


def directory_for_variant(variant: str, store: DocumentStore) -> AppointmentDirectory:
    if variant == "envelope":
        return OwnerAppointmentDirectory(store)
    return DeviceAppointmentDirectory(store)


__all__ = [
    "AppointmentDirectory",
    "DeviceAppointmentDirectory",
    "OwnerAppointmentDirectory",
    "directory_for_variant",
]
