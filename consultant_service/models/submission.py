"""Canonical test-result submission and the two wire shapes that carry it.

The submission endpoint accepts exactly one shape per deployment:
- snake: ``{user_id, test_type, result, appointment_id, notes?, performed_at?}``
- camel: ``{userId, testType, result, appointmentId, notes?, performedAt?,
  startPcMac?, endPcMac?}``

A shape only reads its own keys; a camel payload sent to a snake deployment
is reported as missing every required field rather than translated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

REQUIRED_FIELDS: Tuple[str, ...] = ("user_id", "test_type", "result", "appointment_id")
OPTIONAL_FIELDS: Tuple[str, ...] = ("notes", "performed_at")

# Keys whose values are opaque client payloads and must never be re-keyed
OPAQUE_KEYS = frozenset({"result"})


def snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _identity(name: str) -> str:
    return name


@dataclass(frozen=True)
class Submission:
    """Submission decoded into canonical field names; values are unvalidated."""

    user_id: Any = None
    test_type: Any = None
    result: Any = None
    appointment_id: Any = None
    notes: Any = None
    performed_at: Any = None
    extras: Dict[str, Any] = field(default_factory=dict)

    def value_of(self, name: str) -> Any:
        return getattr(self, name)


@dataclass(frozen=True)
class SubmissionShape:
    name: str
    key_style: Callable[[str], str]
    extra_fields: Tuple[str, ...] = ()

    def wire_name(self, canonical: str) -> str:
        return self.key_style(canonical)

    def wire_names(self, canonical: Iterable[str]) -> List[str]:
        return [self.wire_name(name) for name in canonical]

    def decode(self, payload: Mapping[str, Any]) -> Submission:
        values = {name: payload.get(self.wire_name(name)) for name in REQUIRED_FIELDS + OPTIONAL_FIELDS}
        extras = {
            name: payload.get(self.wire_name(name))
            for name in self.extra_fields
            if payload.get(self.wire_name(name)) is not None
        }
        return Submission(extras=extras, **values)

    def encode(self, document: Mapping[str, Any]) -> Dict[str, Any]:
        """Re-key a record or details mapping into this shape's key style.

        Field-name lists (``missing_fields``/``required_fields``) are renamed
        too, so clients can match them against the keys they sent.
        """
        out: Dict[str, Any] = {}
        for key, value in document.items():
            if key in ("missing_fields", "required_fields") and isinstance(value, list):
                value = self.wire_names(value)
            elif key in OPAQUE_KEYS:
                pass
            elif isinstance(value, Mapping):
                value = self.encode(value)
            elif isinstance(value, list):
                value = [self.encode(item) if isinstance(item, Mapping) else item for item in value]
            out[self.wire_name(key)] = value
        return out


SNAKE_SHAPE = SubmissionShape(name="snake", key_style=_identity)
CAMEL_SHAPE = SubmissionShape(
    name="camel",
    key_style=snake_to_camel,
    extra_fields=("start_pc_mac", "end_pc_mac"),
)


def shape_for_variant(variant: str) -> SubmissionShape:
    return CAMEL_SHAPE if variant == "envelope" else SNAKE_SHAPE


def present(value: Optional[Any]) -> bool:
    return value is not None and value != ""


__all__ = [
    "REQUIRED_FIELDS",
    "OPTIONAL_FIELDS",
    "Submission",
    "SubmissionShape",
    "SNAKE_SHAPE",
    "CAMEL_SHAPE",
    "shape_for_variant",
    "snake_to_camel",
    "present",
]
