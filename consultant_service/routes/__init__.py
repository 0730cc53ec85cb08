"""APIRouter registration for the consultant service.

Which routers are mounted depends on the configured API variant; the
test-result routes are shared by both.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from consultant_service.http.auth import require_bearer
from consultant_service.routes.center_api import public_router as center_public_router
from consultant_service.routes.center_api import router as center_router
from consultant_service.routes.device_appointments import router as device_router
from consultant_service.routes.test_results import router as test_results_router


def build_api_router(variant: str) -> APIRouter:
    api_router = APIRouter()
    if variant == "envelope":
        protected = [Depends(require_bearer)]
        api_router.include_router(center_public_router, tags=["Auth"])
        api_router.include_router(center_router, tags=["Centers"], dependencies=protected)
        api_router.include_router(test_results_router, tags=["TestResults"], dependencies=protected)
    else:
        api_router.include_router(device_router, tags=["Appointments"])
        api_router.include_router(test_results_router, tags=["TestResults"])
    return api_router


__all__ = ["build_api_router"]
