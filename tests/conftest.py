"""Pytest configuration and fixtures for scenarist tests."""

import logging
import os
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from scenarist.config import ConfigLoader, Settings
from scenarist.logging.handlers import SCENARIO_LOGGER_PREFIX
from scenarist.provisioner import EnvironmentProvisioner
from scenarist.tags import ScenarioRef
from tests.fakes import FakePlaywrightFactory

SCENARIST_ENV_VARS = (
    "BASE_URL",
    "BROWSER",
    "HEAD",
    "API_TOKEN",
    "TRACE",
    "PARALLEL",
    "RESULTS_DIR",
    "SCENARIST_CONFIG",
)


@pytest.fixture(autouse=True)
def clean_scenarist_env() -> Generator[None, None, None]:
    """Remove scenarist environment overrides for the duration of a test.

    Yields
    ------
    None
        Control back to test after clearing the variables
    """
    saved = {name: os.environ.pop(name) for name in SCENARIST_ENV_VARS if name in os.environ}

    yield

    for name in SCENARIST_ENV_VARS:
        os.environ.pop(name, None)
    os.environ.update(saved)


@pytest.fixture(autouse=True)
def close_scenario_loggers() -> Generator[None, None, None]:
    """Close file handlers left on scenario loggers by a test."""
    yield

    for name, candidate in list(logging.Logger.manager.loggerDict.items()):
        if not name.startswith(SCENARIO_LOGGER_PREFIX) or not isinstance(
            candidate, logging.Logger
        ):
            continue
        for handler in list(candidate.handlers):
            candidate.removeHandler(handler)
            handler.close()


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., Settings]:
    """Build validated Settings rooted in a temporary project directory.

    Parameters
    ----------
    tmp_path : Path
        Pytest temporary directory path

    Returns
    -------
    Callable[..., Settings]
        Factory accepting configuration overrides and an optional ``environ``
    """

    def _make(environ: dict[str, str] | None = None, **overrides: object) -> Settings:
        loader = ConfigLoader()
        merged = loader.merge({"project_root": str(tmp_path), **overrides}, environ=environ or {})
        loader.validate_config(merged)
        return loader.build_settings(merged)

    return _make


@pytest.fixture
def settings(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings()


@pytest.fixture
def fake_playwright() -> FakePlaywrightFactory:
    """Fake Playwright factory with a Pixel 5 device preset."""
    return FakePlaywrightFactory(
        devices={
            "Pixel 5": {
                "user_agent": "Mozilla/5.0 (Linux; Android 11; Pixel 5)",
                "viewport": {"width": 393, "height": 727},
                "device_scale_factor": 2.75,
                "is_mobile": True,
                "has_touch": True,
            }
        }
    )


@pytest.fixture
def provisioner(
    settings: Settings, fake_playwright: FakePlaywrightFactory
) -> EnvironmentProvisioner:
    return EnvironmentProvisioner(settings, playwright_factory=fake_playwright)


@pytest.fixture
def make_ref() -> Callable[..., ScenarioRef]:
    """Build ScenarioRefs from a name and raw tag tokens."""

    def _make(name: str = "Login works", *tags: str, scenario_id: str = "login.feature:3") -> ScenarioRef:
        return ScenarioRef(name=name, scenario_id=scenario_id, tags=tuple(tags))

    return _make
