"""Stub bearer-credential check for the envelope API.

This is a capability check only: any non-empty bearer credential passes and
nothing is verified against the token handed out by the stub login. It is
not a security boundary.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from consultant_service.logic import error_mapping as codes
from consultant_service.logic.errors import ConsultantError

bearer_scheme = HTTPBearer(auto_error=False)


def require_bearer(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> str:
    if credentials is None or not (credentials.credentials or "").strip():
        raise ConsultantError(
            codes.UNAUTHORIZED,
            "Se requiere un token de acceso",
            {"header": "Authorization", "expected_format": "Bearer <token>"},
        )
    return credentials.credentials


__all__ = ["require_bearer", "bearer_scheme"]
