"""Scenario lifecycle manager for behave and Playwright test suites."""

from scenarist.api import ApiSession
from scenarist.artifacts import ArtifactCollector, CollectedArtifacts, sanitize
from scenarist.config import ConfigLoader, Settings
from scenarist.constants import ContextState, ExecutionMode, ScenarioOutcome
from scenarist.exceptions import (
    ConfigurationError,
    DisposalError,
    LifecycleStateError,
    ResourceAcquisitionError,
    ScenarioTimeoutError,
    ScenaristError,
)
from scenarist.orchestrator import LifecycleOrchestrator, ScenarioDriver, ScenarioResult
from scenarist.provisioner import EnvironmentProvisioner
from scenarist.tags import (
    ApiDirectives,
    BrowserDirectives,
    ScenarioRef,
    parse_duration_ms,
    parse_tags,
    resolve_directives,
)
from scenarist.world import Attachment, ScenarioContext

__all__ = [
    "ApiDirectives",
    "ApiSession",
    "ArtifactCollector",
    "Attachment",
    "BrowserDirectives",
    "CollectedArtifacts",
    "ConfigLoader",
    "ConfigurationError",
    "ContextState",
    "DisposalError",
    "EnvironmentProvisioner",
    "ExecutionMode",
    "LifecycleOrchestrator",
    "LifecycleStateError",
    "ResourceAcquisitionError",
    "ScenarioContext",
    "ScenarioDriver",
    "ScenarioOutcome",
    "ScenarioRef",
    "ScenarioResult",
    "ScenarioTimeoutError",
    "ScenaristError",
    "Settings",
    "parse_duration_ms",
    "parse_tags",
    "resolve_directives",
    "sanitize",
]
