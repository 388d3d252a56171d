"""Shared fixtures."""

import pytest

from snagnotify.client import environment
from snagnotify.config import Settings


@pytest.fixture(autouse=True)
def clean_api_key(monkeypatch):
    """Start every test without any API key source configured."""
    monkeypatch.delenv("BUGSNAG_KEY", raising=False)
    monkeypatch.delenv("SNAGNOTIFY_BUGSNAG_KEY", raising=False)
    # Same as Settings(_env_file=None) for lookups made inside the library
    monkeypatch.setitem(Settings.model_config, "env_file", None)
    environment.set_process_property(environment.API_KEY_PROPERTY, None)
    yield
    environment.set_process_property(environment.API_KEY_PROPERTY, None)
