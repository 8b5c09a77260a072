"""Shared fixtures for the test suite."""

from __future__ import annotations

import pathlib

import pytest
from fastapi import testclient

from src.config import ServerConfig
from src.main import create_app
from src.models.request import RequestContext
from src.models.settings import TrackingSettings
from src.services.settings_store import SettingsStore

# ── Settings Fixtures ───────────────────────────────────────────


@pytest.fixture()
def settings_path(tmp_path: pathlib.Path) -> pathlib.Path:
    """Location of a settings document inside a temp directory."""
    return tmp_path / "data" / "settings.json"


@pytest.fixture()
def store(settings_path: pathlib.Path) -> SettingsStore:
    """A settings store backed by a temp file."""
    return SettingsStore(settings_path)


@pytest.fixture()
def connected_settings() -> TrackingSettings:
    """Settings for a connected site with the default exclusions."""
    return TrackingSettings(
        site_id="site-123",
        connected=True,
    )


# ── Request Fixtures ────────────────────────────────────────────


@pytest.fixture()
def anonymous_request() -> RequestContext:
    """An anonymous visitor reading a blog post."""
    return RequestContext(url="https://example.com/blog/hello-world")


@pytest.fixture()
def editor_request() -> RequestContext:
    """A logged-in editor viewing the front end."""
    return RequestContext(
        url="https://example.com/blog/hello-world",
        is_logged_in=True,
        user_roles=["editor"],
    )


# ── API Fixtures ────────────────────────────────────────────────


@pytest.fixture()
def client(settings_path: pathlib.Path) -> testclient.TestClient:
    """Test client for an app without admin authentication."""
    config = ServerConfig(RYBBIT_SETTINGS_FILE=settings_path, RYBBIT_ADMIN_TOKEN="")
    return testclient.TestClient(create_app(config))


@pytest.fixture()
def secured_client(settings_path: pathlib.Path) -> testclient.TestClient:
    """Test client for an app that requires the admin token."""
    config = ServerConfig(RYBBIT_SETTINGS_FILE=settings_path, RYBBIT_ADMIN_TOKEN="s3cret")
    return testclient.TestClient(create_app(config))
