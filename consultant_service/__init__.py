"""FastAPI application package for the driving-test consultant service mock.

Exposes the application factory. It wires cross-cutting middleware (request
id, CORS) and mounts the routers of the configured API variant. Business
logic lives in `consultant_service/logic/` and route handlers in
`consultant_service/routes/`.
"""

from __future__ import annotations

from consultant_service.main import create_app

__all__ = ["create_app"]
