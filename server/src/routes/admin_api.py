"""
Admin REST API consumed by the settings single-page app.

Routes are mounted under ``/rybbit/v1``.  When an admin token is
configured every route requires it in the ``X-Rybbit-Admin-Token``
header.
"""

from __future__ import annotations

import re
import secrets
from typing import Any

import fastapi
import pydantic
from fastapi import responses

from src.config import ServerConfig
from src.services.settings_store import SettingsStore
from src.tracking import patterns
from src.utils import errors, logger

log = logger.create_logger("AdminAPI")

_SITE_ID_RE = re.compile(r"^[a-zA-Z0-9\-_]+$")


# ============================================================================
# Request Bodies
# ============================================================================


class ConnectionTestRequest(pydantic.BaseModel):
    """Body of ``POST /test-connection``."""

    site_id: str = ""


class PatternValidationRequest(pydantic.BaseModel):
    """Body of ``POST /validate-pattern``."""

    pattern: str = ""


class PatternTestRequest(pydantic.BaseModel):
    """Body of ``POST /test-pattern``."""

    pattern: str = ""
    url: str = ""


# ============================================================================
# Dependencies
# ============================================================================


def get_config(request: fastapi.Request) -> ServerConfig:
    """Return the config attached to the running app."""
    return request.app.state.config


def get_store(request: fastapi.Request) -> SettingsStore:
    """Return the settings store attached to the running app."""
    return request.app.state.settings_store


def require_admin(
    config: ServerConfig = fastapi.Depends(get_config),
    token: str | None = fastapi.Header(default=None, alias="X-Rybbit-Admin-Token"),
) -> None:
    """Reject the request unless it carries the configured admin token."""
    if not config.auth_enabled:
        return
    if token is None or not secrets.compare_digest(token, config.admin_token):
        log.warn("Rejected admin request with missing or invalid token")
        raise fastapi.HTTPException(status_code=403, detail="Sorry, you are not allowed to do that.")


router = fastapi.APIRouter(prefix="/rybbit/v1", dependencies=[fastapi.Depends(require_admin)])


def _json(body: dict[str, Any], status_code: int = 200) -> responses.JSONResponse:
    return responses.JSONResponse(content=body, status_code=status_code)


# ============================================================================
# Settings
# ============================================================================


@router.get("/settings")
async def read_settings(store: SettingsStore = fastapi.Depends(get_store)) -> dict[str, Any]:
    """Return the current settings document."""
    return store.get_settings().model_dump()


@router.post("/settings")
async def update_settings(
    new_settings: dict[str, Any] = fastapi.Body(...),
    store: SettingsStore = fastapi.Depends(get_store),
) -> responses.JSONResponse:
    """Validate and persist a (partial) settings update."""
    try:
        settings = store.update_settings(new_settings)
    except errors.SettingsValidationError as exc:
        return _json(
            {"success": False, "message": str(exc), "errors": exc.errors},
            status_code=400,
        )
    except errors.SettingsPersistenceError:
        return _json(
            {"success": False, "message": "Failed to update settings."},
            status_code=500,
        )

    return _json(
        {
            "success": True,
            "message": "Settings updated successfully.",
            "settings": settings.model_dump(),
        }
    )


@router.post("/test-connection")
async def test_connection(body: ConnectionTestRequest) -> responses.JSONResponse:
    """Check that a site ID is present and well formed."""
    site_id = body.site_id.strip()
    if not site_id:
        return _json({"success": False, "message": "Site ID is required."}, status_code=400)
    if not _SITE_ID_RE.match(site_id):
        return _json({"success": False, "message": "Invalid Site ID format."}, status_code=400)
    return _json({"success": True, "message": "Connection test successful!"})


# ============================================================================
# Patterns
# ============================================================================


@router.post("/validate-pattern")
async def validate_pattern(body: PatternValidationRequest) -> responses.JSONResponse:
    """Validate a single exclusion/masking pattern for inline feedback."""
    if not body.pattern:
        return _json({"valid": False, "message": "Pattern is required."}, status_code=400)

    result = patterns.validate(body.pattern)
    return _json(result.model_dump(), status_code=200 if result.valid else 400)


@router.post("/test-pattern")
async def test_pattern(body: PatternTestRequest) -> responses.JSONResponse:
    """Test whether a URL matches a candidate pattern."""
    if not body.pattern or not body.url:
        return _json(
            {"success": False, "message": "Both pattern and URL are required."},
            status_code=400,
        )

    result = patterns.evaluate_pattern(body.pattern, body.url)
    payload = {"success": result.valid, **result.model_dump()}
    return _json(payload, status_code=200 if result.valid else 400)
