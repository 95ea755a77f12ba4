"""Pytest configuration and shared fixtures."""

import logging
import os
from collections.abc import Iterator
from typing import Any

import pytest
from pydantic import AliasChoices

from nuve_deprovision.config.settings import Settings, get_settings

_SETTINGS_ENV_PREFIXES = ("INPUT_", "NUVE_")
_SETTINGS_ENV_NAMES = {"GITHUB_ACTIONS", "RUNNER_DEBUG"}


def make_settings(**fields: Any) -> Settings:
    """Build Settings through the environment names the runner uses.

    Field names are mapped to their first environment alias, so the values
    travel the same path as real action inputs.
    """
    values = {"email": "ci@example.com", "password": "pw", "instance_name": "qa", **fields}
    kwargs: dict[str, Any] = {}
    for name, value in values.items():
        alias = Settings.model_fields[name].validation_alias
        key = alias.choices[0] if isinstance(alias, AliasChoices) else alias
        kwargs[str(key)] = value
    return Settings(**kwargs)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Hide runner and action environment variables from Settings.

    Tests may themselves run inside GitHub Actions, where GITHUB_ACTIONS and
    INPUT_* variables are set.
    """
    for name in list(os.environ):
        upper = name.upper()
        if upper.startswith(_SETTINGS_ENV_PREFIXES) or upper in _SETTINGS_ENV_NAMES:
            monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def restore_root_logging() -> Iterator[None]:
    """Undo logging.basicConfig(force=True) calls made by the code under test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def action_env(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set the four action inputs the way the runner exposes them.

    Returns:
        The environment variables that were set.
    """
    env = {
        "INPUT_EMAIL": "ci@example.com",
        "INPUT_PASSWORD": "hunter2-secret",
        "INPUT_INSTANCENAME": "qa-s4h",
        "INPUT_TIMEOUT": "120",
    }
    for name, value in env.items():
        monkeypatch.setenv(name, value)
    return env


@pytest.fixture
def instance_payload() -> dict[str, Any]:
    """Provide an instance as returned by the platform listing.

    Returns:
        Raw instance JSON object.
    """
    return {
        "id": 42,
        "name": "qa-s4h",
        "status": "running",
        "external_ip": "203.0.113.10",
        "created_at": "2024-05-01T08:00:00Z",
        "backup": {
            "unique_name": "s4h-2023-fps01",
            "version": {
                "package": {
                    "config": {"sap_system_id": "S4H", "sap_system_no": "00"},
                },
            },
        },
    }


class FakeClock:
    """Monotonic clock advanced only by its own sleep coroutine."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    """Provide a simulated clock for the poll loop.

    Returns:
        A FakeClock starting at zero.
    """
    return FakeClock()
