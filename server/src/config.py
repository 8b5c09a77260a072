"""
Server configuration.

Uses ``pydantic_settings.BaseSettings`` for environment variable
binding, type coercion, and validation.
"""

from __future__ import annotations

import pathlib

import pydantic
import pydantic_settings

# Default settings document location, next to the server source.
_DEFAULT_SETTINGS_FILE = pathlib.Path(__file__).resolve().parent.parent / ".data" / "settings.json"


class ServerConfig(pydantic_settings.BaseSettings):
    """Runtime configuration for the settings server.

    Attributes:
        settings_file: Path of the JSON settings document.
        admin_token: Shared secret required on admin routes.
            Authentication is disabled when empty.
        host: Interface uvicorn binds to.
        port: Port uvicorn listens on.
        environment: ``development`` or ``production``.
    """

    settings_file: pathlib.Path = pydantic.Field(
        default=_DEFAULT_SETTINGS_FILE, validation_alias="RYBBIT_SETTINGS_FILE"
    )
    admin_token: str = pydantic.Field(
        default="", validation_alias="RYBBIT_ADMIN_TOKEN"
    )
    host: str = pydantic.Field(
        default="0.0.0.0", validation_alias="UVICORN_HOST"
    )
    port: int = pydantic.Field(
        default=3001, validation_alias="UVICORN_PORT"
    )
    environment: str = pydantic.Field(
        default="development", validation_alias="ENVIRONMENT"
    )

    @property
    def is_production(self) -> bool:
        """True when running with ``ENVIRONMENT=production``."""
        return self.environment == "production"

    @property
    def auth_enabled(self) -> bool:
        """True when admin routes require a token."""
        return bool(self.admin_token)
