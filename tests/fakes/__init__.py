"""Test fake implementations for dependency injection testing."""

from tests.fakes.fake_playwright import (
    PNG_BYTES,
    FakeEvents,
    FakePlaywright,
    FakePlaywrightFactory,
)

__all__ = ["PNG_BYTES", "FakeEvents", "FakePlaywright", "FakePlaywrightFactory"]
