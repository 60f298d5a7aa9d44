"""Exceptions raised by the scenario lifecycle manager."""


class ScenaristError(Exception):
    """Base exception for lifecycle manager failures."""

    pass


class ConfigurationError(ScenaristError):
    """Raised when configuration or a directive combination cannot be satisfied.

    Fatal for the scenario: no resource is created and the world never
    reaches READY.
    """

    pass


class ResourceAcquisitionError(ScenaristError):
    """Raised when launching a browser, context, page or API client fails.

    Parameters
    ----------
    message : str
        Human-readable error description
    handle : str
        Label of the handle that was being acquired
    """

    def __init__(self, message: str, handle: str = "") -> None:
        super().__init__(message)
        self.handle = handle


class ScenarioTimeoutError(ScenaristError, TimeoutError):
    """Raised when a bounded operation exceeds the scenario timeout policy."""

    pass


class DisposalError(ScenaristError):
    """Describes a release call that raised during teardown.

    Disposal errors are collected and logged, never raised out of
    ``ScenarioContext.dispose``.

    Parameters
    ----------
    kind : str
        Resource kind (e.g., "page", "browser")
    label : str
        Descriptive label of the resource
    cause : BaseException
        Exception raised by the release call
    """

    def __init__(self, kind: str, label: str, cause: BaseException) -> None:
        super().__init__(f"Failed to release {kind} '{label}': {cause}")
        self.kind = kind
        self.label = label
        self.cause = cause


class LifecycleStateError(ScenaristError):
    """Raised on an illegal scenario world state transition."""

    pass
