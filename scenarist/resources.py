"""Registry for managing resource lifecycle with cleanup ordering."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from scenarist.exceptions import DisposalError

logger = logging.getLogger(__name__)


@dataclass
class ResourceEntry:
    """One acquired handle and the function that releases it.

    Attributes
    ----------
    kind : str
        Type of resource (e.g., "page", "browser")
    handle : Any
        Resource handle passed to dispose_fn
    dispose_fn : Callable[[Any], None]
        Release function called as dispose_fn(handle)
    label : str
        Descriptive label for diagnostics
    released : bool
        Whether release has been attempted
    """

    kind: str
    handle: Any
    dispose_fn: Callable[[Any], None]
    label: str = ""
    released: bool = False


class ResourceRegistry:
    """Manages resource lifecycle with deterministic cleanup ordering.

    Tracks handles in acquisition order and releases them in reverse. Each
    handle is released at most once: it is marked released before its
    dispose function runs, so a release that raises is never retried.
    A failing release never stops the remaining ones.

    Attributes
    ----------
    resources : list[ResourceEntry]
        Registered resources in acquisition order
    """

    def __init__(self) -> None:
        self.resources: list[ResourceEntry] = []

    def register(
        self,
        kind: str,
        handle: Any,
        dispose_fn: Callable[[Any], None],
        label: str = "",
    ) -> Any:
        """Register a resource for lifecycle management.

        Parameters
        ----------
        kind : str
            Type of resource
        handle : Any
            Resource handle to pass to dispose_fn
        dispose_fn : Callable
            Function to call during cleanup: dispose_fn(handle)
        label : str, optional
            Descriptive label for diagnostics (defaults to kind)

        Returns
        -------
        Any
            The registered handle, for inline use
        """
        entry = ResourceEntry(kind=kind, handle=handle, dispose_fn=dispose_fn, label=label or kind)
        self.resources.append(entry)
        logger.debug("Registered %s: %s", kind, entry.label)
        return handle

    def release(self, kind: str) -> DisposalError | None:
        """Release every unreleased resource of one kind, newest first.

        Parameters
        ----------
        kind : str
            Resource kind to release

        Returns
        -------
        DisposalError | None
            First failure encountered, or None
        """
        first_error = None
        for entry in reversed(self.resources):
            if entry.kind != kind or entry.released:
                continue
            error = self._release_entry(entry)
            if error is not None and first_error is None:
                first_error = error
        return first_error

    def release_all(self) -> list[DisposalError]:
        """Release all unreleased resources in reverse acquisition order.

        Returns
        -------
        list[DisposalError]
            Failures encountered, in release order
        """
        errors = []
        for entry in reversed(self.resources):
            if entry.released:
                continue
            error = self._release_entry(entry)
            if error is not None:
                errors.append(error)
        return errors

    def _release_entry(self, entry: ResourceEntry) -> DisposalError | None:
        entry.released = True
        try:
            entry.dispose_fn(entry.handle)
        except Exception as e:
            logger.warning("Cleanup failed for %s '%s': %s", entry.kind, entry.label, e)
            return DisposalError(entry.kind, entry.label, e)
        logger.debug("Cleaned up %s: %s", entry.kind, entry.label)
        return None
