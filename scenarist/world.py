"""Per-scenario world exposed to step definitions."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from scenarist.constants import ALLOWED_TRANSITIONS, ContextState, ExecutionMode
from scenarist.exceptions import DisposalError, LifecycleStateError
from scenarist.logging import flush_scenario_logger
from scenarist.resources import ResourceRegistry

if TYPE_CHECKING:
    from playwright.sync_api import Browser, BrowserContext, Page, Playwright

    from scenarist.api import ApiSession
    from scenarist.artifacts import CollectedArtifacts
    from scenarist.tags import Directives, ScenarioRef

module_logger = logging.getLogger(__name__)

AttachFn = Callable[[bytes | str, str], None]


@dataclass
class Attachment:
    """Payload embedded into external reporting."""

    payload: bytes | str
    mime_type: str
    name: str | None = None


@dataclass
class ScenarioContext:
    """Container of live resource handles for one scenario.

    Holds either an API session or a browser session, never both, plus a
    scenario logger and an attachment sink. Handles are registered with a
    ResourceRegistry as they are acquired so ``dispose`` can release them in
    reverse order (page, context, browser, driver or API client), flushing
    the logger last.

    Attributes
    ----------
    ref : ScenarioRef
        Scenario this world belongs to
    directives : Directives
        Typed directives resolved from the scenario tags
    logger : logging.Logger
        Scenario logger writing to the scenario log file
    state : ContextState
        Current lifecycle state
    attachments : list[Attachment]
        Everything passed to ``attach``
    disposal_errors : list[DisposalError]
        Release failures recorded during teardown
    """

    ref: ScenarioRef
    directives: Directives
    logger: logging.Logger
    attach_fn: AttachFn | None = None
    state: ContextState = ContextState.UNINITIALIZED
    api: ApiSession | None = None
    playwright: Playwright | None = None
    browser: Browser | None = None
    context: BrowserContext | None = None
    page: Page | None = None
    trace_active: bool = False
    artifacts: CollectedArtifacts | None = None
    attachments: list[Attachment] = field(default_factory=list)
    disposal_errors: list[DisposalError] = field(default_factory=list)
    registry: ResourceRegistry = field(default_factory=ResourceRegistry)
    _logger_flushed: bool = field(default=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def mode(self) -> ExecutionMode:
        return self.directives.mode

    @property
    def timeout_ms(self) -> int:
        return self.directives.timeout_ms

    @property
    def artifact_key(self) -> str:
        return self.ref.artifact_key

    def transition(self, target: ContextState) -> None:
        """Move to ``target``, enforcing the lifecycle state machine.

        Raises
        ------
        LifecycleStateError
            If the transition is not allowed from the current state
        """
        if target not in ALLOWED_TRANSITIONS[self.state]:
            raise LifecycleStateError(
                f"Illegal transition {self.state.value} -> {target.value} "
                f"for scenario '{self.ref.name}'"
            )
        module_logger.debug(
            "World %s: %s -> %s", self.artifact_key, self.state.value, target.value
        )
        self.state = target

    def attach(self, payload: bytes | str, mime_type: str, name: str | None = None) -> None:
        """Embed a payload into the scenario's report.

        Parameters
        ----------
        payload : bytes | str
            Attachment content
        mime_type : str
            MIME type, e.g. ``image/png`` or ``text/plain``
        name : str | None
            Optional display name
        """
        self.attachments.append(Attachment(payload=payload, mime_type=mime_type, name=name))
        self.logger.debug("Attached %s (%d bytes)", mime_type, len(payload))
        if self.attach_fn is not None:
            self.attach_fn(payload, mime_type)

    def close_browser_context(self) -> list[DisposalError]:
        """Close the page and then the browser context, once each.

        Video files are only finalized after the context closes, so artifact
        collection calls this before reading video paths. Later ``dispose``
        calls skip the handles released here.

        Returns
        -------
        list[DisposalError]
            Release failures (also appended to ``disposal_errors``)
        """
        errors = []
        for kind in ("page", "context"):
            error = self.registry.release(kind)
            if error is not None:
                errors.append(error)
        self.disposal_errors.extend(errors)
        return errors

    def dispose(self) -> list[DisposalError]:
        """Release every held handle, then flush the logger.

        Idempotent: a second call returns immediately and never touches a
        handle twice. Release failures are logged and returned, never raised.

        Returns
        -------
        list[DisposalError]
            Failures recorded by this call
        """
        with self._lock:
            if self.state == ContextState.DISPOSED:
                return []

            if self.state in (ContextState.UNINITIALIZED, ContextState.PROVISIONING):
                self.state = ContextState.FAILED_PROVISIONING
            elif self.state == ContextState.READY:
                self.transition(ContextState.FINALIZING)

            errors = self.registry.release_all()
            self.disposal_errors.extend(errors)

            for error in errors:
                self.logger.warning("%s", error)

            if errors:
                self.logger.warning(
                    "Disposal completed with %d errors for scenario '%s'",
                    len(errors),
                    self.ref.name,
                )
            else:
                self.logger.debug("Disposed all resources for scenario '%s'", self.ref.name)

            logger_error = self._flush_logger()
            if logger_error is not None:
                errors.append(logger_error)
                self.disposal_errors.append(logger_error)

            self.transition(ContextState.DISPOSED)
            return errors

    def _flush_logger(self) -> DisposalError | None:
        if self._logger_flushed:
            return None
        self._logger_flushed = True
        try:
            flush_scenario_logger(self.logger)
        except Exception as e:
            module_logger.warning("Failed to flush logger for %s: %s", self.artifact_key, e)
            return DisposalError("logger", self.logger.name, e)
        return None
