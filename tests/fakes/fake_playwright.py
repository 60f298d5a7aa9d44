"""Fake Playwright driver for testing with dependency injection."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"
"""Payload returned by FakePage.screenshot."""


class FakeEvents:
    """Shared ordered log of driver calls with optional failure injection.

    Parameters
    ----------
    fail_on : Iterable[str]
        Event names (e.g. ``"context.close"``) that raise RuntimeError
    """

    def __init__(self, fail_on: Iterable[str] = ()) -> None:
        self.calls: list[str] = []
        self.fail_on = set(fail_on)

    def record(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise RuntimeError(f"{name} exploded")

    def count(self, name: str) -> int:
        return self.calls.count(name)


class FakeVideo:
    """Video handle whose file is written when its context closes."""

    def __init__(self, events: FakeEvents, path: Path) -> None:
        self.events = events
        self._path = path

    def path(self) -> str:
        self.events.record("video.path")
        return str(self._path)


class FakeTracing:
    def __init__(self, events: FakeEvents) -> None:
        self.events = events
        self.start_options: dict[str, Any] | None = None
        self.stopped_path: str | None = None

    def start(self, **kwargs: Any) -> None:
        self.events.record("tracing.start")
        self.start_options = kwargs

    def stop(self, path: str | None = None) -> None:
        self.events.record("tracing.stop")
        self.stopped_path = path
        if path is not None:
            Path(path).write_bytes(b"PK\x03\x04trace")


class FakePage:
    """Page that records timeouts, screenshots and close calls."""

    def __init__(self, events: FakeEvents, video: FakeVideo | None) -> None:
        self.events = events
        self.video = video
        self.default_timeout: int | None = None
        self.navigation_timeout: int | None = None
        self.screenshot_options: dict[str, Any] | None = None
        self.closed = False

    def set_default_timeout(self, timeout: int) -> None:
        self.default_timeout = timeout

    def set_default_navigation_timeout(self, timeout: int) -> None:
        self.navigation_timeout = timeout

    def screenshot(self, **kwargs: Any) -> bytes:
        self.events.record("page.screenshot")
        self.screenshot_options = kwargs
        if kwargs.get("path"):
            Path(kwargs["path"]).write_bytes(PNG_BYTES)
        return PNG_BYTES

    def close(self) -> None:
        self.events.record("page.close")
        self.closed = True


class FakeBrowserContext:
    """Browser context that finalizes its page video on close."""

    def __init__(self, events: FakeEvents, options: dict[str, Any]) -> None:
        self.events = events
        self.options = options
        self.tracing = FakeTracing(events)
        self.pages: list[FakePage] = []
        self.closed = False

    def new_page(self) -> FakePage:
        self.events.record("context.new_page")
        video = None
        if self.options.get("record_video_dir"):
            video_file = Path(self.options["record_video_dir"]) / f"page-{len(self.pages)}.webm"
            video = FakeVideo(self.events, video_file)
        page = FakePage(self.events, video)
        self.pages.append(page)
        return page

    def close(self) -> None:
        self.events.record("context.close")
        self.closed = True
        for page in self.pages:
            if page.video is not None:
                page.video._path.parent.mkdir(parents=True, exist_ok=True)
                page.video._path.write_bytes(b"webm")


class FakeBrowser:
    def __init__(self, events: FakeEvents, engine: str, headless: bool) -> None:
        self.events = events
        self.engine = engine
        self.headless = headless
        self.contexts: list[FakeBrowserContext] = []
        self.closed = False

    def new_context(self, **options: Any) -> FakeBrowserContext:
        self.events.record("browser.new_context")
        context = FakeBrowserContext(self.events, options)
        self.contexts.append(context)
        return context

    def close(self) -> None:
        self.events.record("browser.close")
        self.closed = True


class FakeBrowserType:
    def __init__(self, events: FakeEvents, name: str) -> None:
        self.events = events
        self.name = name
        self.launched: list[FakeBrowser] = []

    def launch(self, headless: bool = True) -> FakeBrowser:
        self.events.record(f"{self.name}.launch")
        browser = FakeBrowser(self.events, self.name, headless)
        self.launched.append(browser)
        return browser


class FakePlaywright:
    """Fake Playwright driver exposing the three engines and device presets.

    Parameters
    ----------
    events : FakeEvents
        Shared call log
    devices : dict[str, dict[str, Any]] | None
        Device presets keyed by descriptor name
    """

    def __init__(
        self, events: FakeEvents, devices: dict[str, dict[str, Any]] | None = None
    ) -> None:
        self.events = events
        self.devices = devices if devices is not None else {}
        self.chromium = FakeBrowserType(events, "chromium")
        self.firefox = FakeBrowserType(events, "firefox")
        self.webkit = FakeBrowserType(events, "webkit")
        self.stopped = False

    def stop(self) -> None:
        self.events.record("playwright.stop")
        self.stopped = True

    @property
    def browser(self) -> FakeBrowser:
        """The single browser launched by this driver, whichever engine."""
        for engine in (self.chromium, self.firefox, self.webkit):
            if engine.launched:
                return engine.launched[-1]
        raise AssertionError("no browser launched")


class FakePlaywrightFactory:
    """Callable standing in for ``sync_playwright().start()``.

    Parameters
    ----------
    devices : dict[str, dict[str, Any]] | None
        Device presets handed to every driver
    fail_on : Iterable[str]
        Event names that raise RuntimeError
    """

    def __init__(
        self,
        devices: dict[str, dict[str, Any]] | None = None,
        fail_on: Iterable[str] = (),
    ) -> None:
        self.events = FakeEvents(fail_on)
        self.devices = devices
        self.instances: list[FakePlaywright] = []

    def __call__(self) -> FakePlaywright:
        self.events.record("playwright.start")
        logger.debug("Starting fake Playwright driver")
        playwright = FakePlaywright(self.events, self.devices)
        self.instances.append(playwright)
        return playwright

    @property
    def last(self) -> FakePlaywright:
        return self.instances[-1]
