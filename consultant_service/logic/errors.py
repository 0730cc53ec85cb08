"""Typed rejections and the exception used to surface them over HTTP.

Validation outcomes are plain values (`Rejection`); route handlers raise
`ConsultantError` so the global exception handler renders the envelope.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class Rejection:
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)


class ConsultantError(Exception):
    def __init__(self, code: str, message: str, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = dict(details or {})

    @classmethod
    def from_rejection(cls, rejection: Rejection) -> "ConsultantError":
        return cls(rejection.code, rejection.message, rejection.details)

    def __repr__(self) -> str:
        return f"ConsultantError(code={self.code!r}, message={self.message!r})"


class DuplicateKeyError(Exception):
    """Raised by a store that enforces a unique key on append.

    `fields` names the unique index that collided, so callers can tell a
    second result for a pair from a reused identifier.
    """

    def __init__(self, collection: str, key: str, fields: Tuple[str, ...] = ()) -> None:
        super().__init__(f"duplicate key {key!r} in {collection!r}")
        self.collection = collection
        self.key = key
        self.fields = tuple(fields)


__all__ = ["Rejection", "ConsultantError", "DuplicateKeyError"]
