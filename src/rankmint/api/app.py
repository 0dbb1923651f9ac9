from __future__ import annotations

import os

from fastapi import FastAPI

from rankmint.api.errors import ApiError, api_error_handler
from rankmint.api.routes_public import public_router
from rankmint.api.security import RequestSizeLimitMiddleware
from rankmint.api.structured_logging import RequestLogMiddleware
from rankmint.issuance.errors import IssuanceError
from rankmint.runtime.service import build_service as _build_service


def build_service():
    """Build the IssuanceService for the API runtime.

    This wrapper exists so tests can monkeypatch `rankmint.api.app.build_service`
    without reaching into runtime modules.
    """
    return _build_service()


def create_app(*, boot_runtime: bool = True) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): load config and attach app.state.service
      - False: no service attached; routes that need it answer 500 not_ready
    """
    mode = os.environ.get("RANKMINT_MODE", "prod").strip().lower()

    # Disable docs in production.
    if mode == "prod":
        app = FastAPI(title="rankmint issuance API", docs_url=None, redoc_url=None, openapi_url=None)
    else:
        app = FastAPI(title="rankmint issuance API")

    app.state.service = build_service() if boot_runtime else None

    # --- Errors ---
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(IssuanceError, api_error_handler)

    # --- Middleware ---
    app.add_middleware(RequestSizeLimitMiddleware)
    app.add_middleware(RequestLogMiddleware)

    # --- Routers ---
    app.include_router(public_router)

    return app
