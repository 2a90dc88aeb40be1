"""Pytest configuration and fixtures for mergeflow tests."""

from __future__ import annotations

import os

import pytest

ENV_PREFIX = "MERGEFLOW_"


@pytest.fixture(autouse=True)
def clean_mergeflow_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove MERGEFLOW_* variables so host configuration never leaks into tests."""
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def base_env(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Minimal valid environment: HubSpot token plus an AbstractAPI key."""
    values = {
        "MERGEFLOW_HUBSPOT_ACCESS_TOKEN": "pat-test-token",
        "MERGEFLOW_ABSTRACTAPI_KEY": "abs-key",
    }
    for name, value in values.items():
        monkeypatch.setenv(name, value)
    return values
