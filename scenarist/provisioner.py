"""Turns scenario directives into a live, isolated scenario world."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from scenarist.api import ApiSession
from scenarist.artifacts import video_dir_for
from scenarist.config import Settings
from scenarist.constants import (
    BROWSER_ALIASES,
    DEFAULT_JSON_HEADERS,
    SUPPORTED_BROWSERS,
    ContextState,
)
from scenarist.exceptions import ConfigurationError, ResourceAcquisitionError
from scenarist.logging import create_scenario_logger
from scenarist.tags import ApiDirectives, BrowserDirectives, Directives, ScenarioRef
from scenarist.world import AttachFn, ScenarioContext

logger = logging.getLogger(__name__)


def start_playwright() -> Any:
    """Start a Playwright sync driver owned by the calling thread."""
    from playwright.sync_api import sync_playwright

    return sync_playwright().start()


def resolve_engine(name: str) -> str:
    """Validate a browser engine name, accepting legacy aliases.

    Raises
    ------
    ConfigurationError
        If no supported engine matches ``name``
    """
    engine = BROWSER_ALIASES.get(name.strip().lower(), name.strip().lower())
    if engine not in SUPPORTED_BROWSERS:
        raise ConfigurationError(
            f"Unknown browser engine '{name}'. "
            f"Supported browsers: {sorted(SUPPORTED_BROWSERS)}"
        )
    return engine


def build_api_headers(api_token: str | None) -> dict[str, str]:
    headers = dict(DEFAULT_JSON_HEADERS)
    if api_token:
        headers["Authorization"] = f"Bearer {api_token}"
    return headers


class EnvironmentProvisioner:
    """Creates scenario worlds backed by an API session or a browser session.

    Parameters
    ----------
    settings : Settings
        Process-wide settings
    playwright_factory : Callable[[], Any] | None
        Starts a Playwright driver (default: ``sync_playwright().start()``)
    api_session_factory : Callable[..., ApiSession] | None
        Builds API sessions (default: ApiSession)
    logger_factory : Callable[[str, Path, str], logging.Logger] | None
        Builds scenario loggers (default: create_scenario_logger)
    """

    def __init__(
        self,
        settings: Settings,
        playwright_factory: Callable[[], Any] | None = None,
        api_session_factory: Callable[..., ApiSession] | None = None,
        logger_factory: Callable[[str, Path, str], logging.Logger] | None = None,
    ) -> None:
        self.settings = settings
        self._playwright_factory = playwright_factory or start_playwright
        self._api_session_factory = api_session_factory or ApiSession
        self._logger_factory = logger_factory or create_scenario_logger

    def provision(
        self,
        ref: ScenarioRef,
        directives: Directives,
        attach_fn: AttachFn | None = None,
    ) -> ScenarioContext:
        """Produce a READY world for a scenario.

        Parameters
        ----------
        ref : ScenarioRef
            Scenario being provisioned
        directives : Directives
            Directives resolved from the scenario tags
        attach_fn : AttachFn | None
            External reporter callback invoked by ``world.attach``

        Returns
        -------
        ScenarioContext
            World in READY state

        Raises
        ------
        ConfigurationError
            If the browser engine cannot be resolved; nothing is created
        ResourceAcquisitionError
            If the scenario logger or any handle fails to start; acquired
            handles are released first
        """
        engine = None
        if isinstance(directives, BrowserDirectives):
            engine = resolve_engine(directives.engine)

        try:
            scenario_logger = self._logger_factory(
                ref.artifact_key, self.settings.logs_dir, self.settings.log_level
            )
        except Exception as e:
            raise ResourceAcquisitionError(
                f"Failed to acquire logger: {e}", handle="logger"
            ) from e

        world = ScenarioContext(
            ref=ref, directives=directives, logger=scenario_logger, attach_fn=attach_fn
        )
        world.transition(ContextState.PROVISIONING)
        scenario_logger.info("Provisioning %s for scenario '%s'", directives.mode.value, ref.name)

        try:
            if isinstance(directives, ApiDirectives):
                self._provision_api(world, directives)
            else:
                self._provision_browser(world, directives, engine)
        except Exception as e:
            world.transition(ContextState.FAILED_PROVISIONING)
            scenario_logger.error("Provisioning failed for scenario '%s': %s", ref.name, e)
            world.dispose()
            if isinstance(e, ResourceAcquisitionError):
                raise
            raise ResourceAcquisitionError(
                f"Failed to provision scenario '{ref.name}': {e}"
            ) from e

        world.transition(ContextState.READY)
        scenario_logger.info("Scenario '%s' ready (timeout=%dms)", ref.name, directives.timeout_ms)
        return world

    def _provision_api(self, world: ScenarioContext, directives: ApiDirectives) -> None:
        headers = build_api_headers(self.settings.api_token)
        world.api = self._acquire(
            world,
            "api",
            lambda: self._api_session_factory(
                base_url=directives.base_url,
                headers=headers,
                timeout_ms=directives.timeout_ms,
            ),
            lambda session: session.dispose(),
        )
        world.logger.debug(
            "API session bound to %s with headers %s",
            directives.base_url or "<unset>",
            sorted(headers),
        )

    def _provision_browser(
        self, world: ScenarioContext, directives: BrowserDirectives, engine: str
    ) -> None:
        playwright = self._acquire(
            world, "playwright", self._playwright_factory, lambda p: p.stop()
        )
        world.playwright = playwright

        launcher = getattr(playwright, engine)
        world.logger.info("Launching %s (headless=%s)", engine, directives.headless)
        world.browser = self._acquire(
            world,
            "browser",
            lambda: launcher.launch(headless=directives.headless),
            lambda browser: browser.close(),
        )

        context_options = self._context_options(world, playwright, directives)
        world.context = self._acquire(
            world,
            "context",
            lambda: world.browser.new_context(**context_options),
            lambda context: context.close(),
        )

        if directives.trace:
            self._start_tracing(world)

        world.page = self._acquire(
            world, "page", lambda: world.context.new_page(), lambda page: page.close()
        )
        world.page.set_default_timeout(directives.timeout_ms)
        world.page.set_default_navigation_timeout(directives.timeout_ms)

    def _context_options(
        self, world: ScenarioContext, playwright: Any, directives: BrowserDirectives
    ) -> dict[str, Any]:
        options: dict[str, Any] = {}

        preset = self._device_preset(world, playwright, directives.device)
        if preset:
            options.update(preset)

        if directives.storage_state:
            options["storage_state"] = str(
                self.settings.resolve_path(directives.storage_state)
            )

        options["ignore_https_errors"] = True

        video_dir = video_dir_for(self.settings, world.artifact_key)
        options["record_video_dir"] = str(video_dir)
        if preset and preset.get("viewport"):
            options["record_video_size"] = preset["viewport"]

        return options

    def _device_preset(
        self, world: ScenarioContext, playwright: Any, device: str | None
    ) -> Mapping[str, Any] | None:
        if device is None:
            return None
        preset = playwright.devices.get(device) if playwright.devices else None
        if preset is None:
            world.logger.warning("Device preset '%s' unknown to Playwright, not emulating", device)
            return None
        world.logger.debug("Emulating device '%s'", device)
        return dict(preset)

    def _start_tracing(self, world: ScenarioContext) -> None:
        try:
            world.context.tracing.start(screenshots=True, snapshots=True, sources=True)
        except Exception as e:
            raise ResourceAcquisitionError(f"Failed to start tracing: {e}", handle="trace") from e
        world.trace_active = True

    def _acquire(
        self,
        world: ScenarioContext,
        kind: str,
        create: Callable[[], Any],
        dispose_fn: Callable[[Any], None],
    ) -> Any:
        try:
            handle = create()
        except Exception as e:
            raise ResourceAcquisitionError(f"Failed to acquire {kind}: {e}", handle=kind) from e
        return world.registry.register(kind, handle, dispose_fn, label=f"{kind}:{world.artifact_key}")
