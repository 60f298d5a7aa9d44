"""Typed parsing of scenario tags into execution directives.

Everything in this module is pure: tags and settings go in, frozen
directive objects come out. No driver, file or environment variable is
touched, so an unknown value is never an error here. Values that can only
be judged at launch time (the BROWSER fallback) are carried through as-is.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from scenarist.artifacts import sanitize
from scenarist.config import Settings
from scenarist.constants import KNOWN_DEVICES, SUPPORTED_BROWSERS, ExecutionMode

DURATION_PATTERN = re.compile(r"^(\d+)(ms|s|m)?$", re.IGNORECASE)

UNIT_MULTIPLIERS = {"ms": 1, "s": 1000, "m": 60_000}

TagSet = dict[str, str | bool]


@dataclass(frozen=True)
class ScenarioRef:
    """Runner-independent description of one scenario.

    Attributes
    ----------
    name : str
        Scenario title
    scenario_id : str
        Identifier unique within the run, supplied by the step runner
    tags : tuple[str, ...]
        Raw tag tokens in declaration order
    """

    name: str
    scenario_id: str
    tags: tuple[str, ...] = ()

    @property
    def artifact_key(self) -> str:
        """Filesystem-safe key namespacing every artifact of this scenario."""
        return sanitize(f"{self.name}_{self.scenario_id}")


@dataclass(frozen=True)
class ApiDirectives:
    """Directives for a scenario that only talks HTTP."""

    base_url: str | None
    timeout_ms: int
    tags: TagSet = field(default_factory=dict)

    @property
    def mode(self) -> ExecutionMode:
        return ExecutionMode.API_ONLY


@dataclass(frozen=True)
class BrowserDirectives:
    """Directives for a scenario driving a real browser.

    Attributes
    ----------
    engine : str
        Requested engine; only tag values are pre-validated, env fallbacks
        are checked by the provisioner
    device : str | None
        Playwright device preset name
    storage_state : str | None
        Storage-state path relative to the project root
    timeout_ms : int
        Default action and navigation timeout
    trace : bool
        Record a Playwright trace
    headless : bool
        Launch without a window
    """

    engine: str
    device: str | None
    storage_state: str | None
    timeout_ms: int
    trace: bool = False
    headless: bool = True
    tags: TagSet = field(default_factory=dict)

    @property
    def mode(self) -> ExecutionMode:
        return ExecutionMode.BROWSER_UI


Directives = ApiDirectives | BrowserDirectives


def parse_tags(tokens: Iterable[str]) -> TagSet:
    """Build a TagSet from raw tag tokens.

    A token containing ``=`` is split at the first ``=`` into key and value,
    any other token becomes a key with value True. Keys and values are
    trimmed and a leading ``@`` is dropped from keys. Later tokens win.

    Parameters
    ----------
    tokens : Iterable[str]
        Raw tags such as ``"@browser=firefox"`` or ``"slow"``

    Returns
    -------
    TagSet
        Mapping of directive name to value
    """
    tags: TagSet = {}
    for token in tokens:
        if "=" in token:
            key, value = token.split("=", 1)
            tags[key.strip().lstrip("@")] = value.strip()
        else:
            tags[token.strip().lstrip("@")] = True
    return tags


def parse_duration_ms(text: str | bool | None) -> int | None:
    """Convert a duration such as ``90s``, ``500`` or ``2m`` to milliseconds.

    Returns None for anything that does not match ``^\\d+(ms|s|m)?$``.
    """
    if not isinstance(text, str):
        return None

    match = DURATION_PATTERN.match(text.strip())
    if match is None:
        return None

    unit = (match.group(2) or "ms").lower()
    return int(match.group(1)) * UNIT_MULTIPLIERS[unit]


def resolve_timeout_ms(tags: Mapping[str, str | bool], default_ms: int, slow_ms: int) -> int:
    """Resolve the TimeoutPolicy: explicit timeout tag, then @slow, then default."""
    explicit = parse_duration_ms(tags.get("timeout"))
    if explicit is not None:
        return explicit
    if tags.get("slow"):
        return slow_ms
    return default_ms


def resolve_browser_tag(value: str | bool | None) -> str | None:
    if isinstance(value, str) and value in SUPPORTED_BROWSERS:
        return value
    return None


def resolve_device(value: str | bool | None) -> str | None:
    """Return the Playwright device name for a @mobile value, or None.

    Underscores stand in for spaces since tags cannot contain whitespace.
    """
    if not isinstance(value, str):
        return None
    if value in KNOWN_DEVICES:
        return value
    spaced = value.replace("_", " ")
    if spaced in KNOWN_DEVICES:
        return spaced
    return None


def resolve_directives(
    tags: ScenarioRef | Iterable[str] | Mapping[str, str | bool],
    settings: Settings,
) -> Directives:
    """Turn a scenario's tags into typed directives.

    Parameters
    ----------
    tags : ScenarioRef | Iterable[str] | Mapping[str, str | bool]
        Scenario reference, raw tag tokens or an already parsed TagSet
    settings : Settings
        Process-wide settings providing env fallbacks and defaults

    Returns
    -------
    Directives
        ApiDirectives when @api is present, BrowserDirectives otherwise
    """
    if isinstance(tags, ScenarioRef):
        tag_set = parse_tags(tags.tags)
    elif isinstance(tags, Mapping):
        tag_set = dict(tags)
    else:
        tag_set = parse_tags(tags)

    timeout_ms = resolve_timeout_ms(
        tag_set, settings.default_timeout_ms, settings.slow_timeout_ms
    )

    if tag_set.get("api"):
        return ApiDirectives(base_url=settings.base_url, timeout_ms=timeout_ms, tags=tag_set)

    engine = (
        resolve_browser_tag(tag_set.get("browser"))
        or settings.browser
        or settings.default_browser
    )

    return BrowserDirectives(
        engine=engine,
        device=resolve_device(tag_set.get("mobile")),
        storage_state=settings.storage_state_path if tag_set.get("auth") else None,
        timeout_ms=timeout_ms,
        trace=settings.tracing or bool(tag_set.get("trace")),
        headless=settings.headless,
        tags=tag_set,
    )
