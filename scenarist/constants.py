"""Global constants for the scenarist lifecycle manager.

This module contains defaults and closed value sets shared by the tag
resolver, provisioner, artifact collector and orchestrator.
"""

from enum import Enum

DEFAULT_TIMEOUT_MS = 30_000
"""Default bound in milliseconds for UI actions, navigation and API calls.

Applied when a scenario carries neither an explicit timeout tag nor @slow.
"""

SLOW_TIMEOUT_MS = 120_000
"""Bound in milliseconds applied to scenarios tagged @slow."""

DEFAULT_BROWSER = "chromium"
"""Browser engine used when neither a tag nor the BROWSER variable selects one."""

SUPPORTED_BROWSERS = frozenset({"chromium", "firefox", "webkit"})
"""Browser engines Playwright can launch."""

BROWSER_ALIASES = {"chrome": "chromium"}
"""Legacy engine names accepted from the BROWSER environment variable."""

AUTH_STORAGE_STATE_PATH = "storage/authState.json"
"""Storage-state file loaded for @auth scenarios, relative to the project root."""

DEFAULT_RESULTS_DIR = "test-results"
"""Root directory for every artifact written during a run."""

DEFAULT_CONFIG_FILE = "scenarist.yaml"
"""Configuration file read when SCENARIST_CONFIG is not set."""

LOG_MAX_BYTES = 5 * 1024 * 1024
"""Size in bytes at which a scenario log file is rotated."""

LOG_BACKUP_COUNT = 5
"""Number of rotated scenario log files kept."""

LOG_DATE_FORMAT = "%b-%d-%Y %H:%M:%S"
"""Timestamp format used in scenario log lines."""

DEFAULT_JSON_HEADERS = {"Content-Type": "application/json"}
"""Headers every API-only session sends."""

KNOWN_DEVICES = frozenset(
    {
        "Blackberry PlayBook",
        "BlackBerry Z30",
        "Desktop Chrome",
        "Desktop Edge",
        "Desktop Firefox",
        "Desktop Safari",
        "Galaxy Note 3",
        "Galaxy S III",
        "Galaxy S5",
        "Galaxy S8",
        "Galaxy S9+",
        "Galaxy Tab S4",
        "iPad (gen 7)",
        "iPad Mini",
        "iPad Pro 11",
        "iPhone 6",
        "iPhone 8",
        "iPhone 11",
        "iPhone 11 Pro",
        "iPhone 12",
        "iPhone 12 Pro",
        "iPhone 12 Mini",
        "iPhone 13",
        "iPhone 13 Pro",
        "iPhone 13 Pro Max",
        "iPhone 13 Mini",
        "iPhone 14",
        "iPhone 14 Plus",
        "iPhone 14 Pro",
        "iPhone 14 Pro Max",
        "iPhone 15",
        "iPhone 15 Plus",
        "iPhone 15 Pro",
        "iPhone 15 Pro Max",
        "iPhone SE",
        "Kindle Fire HDX",
        "LG Optimus L70",
        "Moto G4",
        "Nexus 5",
        "Nexus 5X",
        "Nexus 6P",
        "Nexus 7",
        "Nexus 10",
        "Pixel 2",
        "Pixel 2 XL",
        "Pixel 3",
        "Pixel 4",
        "Pixel 4a (5G)",
        "Pixel 5",
        "Pixel 7",
    }
)
"""Playwright device descriptor names accepted by the @mobile tag.

Parsing happens before any driver is started, so device names are checked
against this static set rather than the live ``playwright.devices`` registry.
"""


class ExecutionMode(str, Enum):
    """How a scenario talks to the system under test."""

    API_ONLY = "api_only"
    BROWSER_UI = "browser_ui"


class ScenarioOutcome(str, Enum):
    """Final result of a scenario as reported by the step runner."""

    PASSED = "passed"
    FAILED = "failed"
    AMBIGUOUS = "ambiguous"
    PENDING = "pending"
    UNDEFINED = "undefined"
    SKIPPED = "skipped"


class ContextState(str, Enum):
    """Lifecycle states of a scenario world."""

    UNINITIALIZED = "uninitialized"
    PROVISIONING = "provisioning"
    READY = "ready"
    FAILED_PROVISIONING = "failed_provisioning"
    FINALIZING = "finalizing"
    DISPOSED = "disposed"


ALLOWED_TRANSITIONS = {
    ContextState.UNINITIALIZED: frozenset({ContextState.PROVISIONING}),
    ContextState.PROVISIONING: frozenset(
        {ContextState.READY, ContextState.FAILED_PROVISIONING}
    ),
    ContextState.READY: frozenset({ContextState.FINALIZING}),
    ContextState.FAILED_PROVISIONING: frozenset({ContextState.DISPOSED}),
    ContextState.FINALIZING: frozenset({ContextState.DISPOSED}),
    ContextState.DISPOSED: frozenset(),
}
"""Legal world state transitions; anything else raises LifecycleStateError."""

BEHAVE_STATUS_OUTCOMES = {
    "passed": ScenarioOutcome.PASSED,
    "failed": ScenarioOutcome.FAILED,
    "error": ScenarioOutcome.FAILED,
    "hook_error": ScenarioOutcome.FAILED,
    "skipped": ScenarioOutcome.SKIPPED,
    "untested": ScenarioOutcome.SKIPPED,
    "undefined": ScenarioOutcome.UNDEFINED,
    "pending": ScenarioOutcome.PENDING,
    "pending_warn": ScenarioOutcome.PENDING,
    "ambiguous": ScenarioOutcome.AMBIGUOUS,
}
"""Mapping from behave status names to scenario outcomes."""
