"""Unit tests for ScenarioContext."""

import logging
from unittest.mock import MagicMock, patch

import pytest

from scenarist.constants import ContextState, ExecutionMode
from scenarist.exceptions import LifecycleStateError
from scenarist.tags import ApiDirectives, BrowserDirectives, ScenarioRef
from scenarist.world import ScenarioContext


def make_world(directives=None, attach_fn=None) -> ScenarioContext:
    return ScenarioContext(
        ref=ScenarioRef("Search", "search.feature:4"),
        directives=directives or BrowserDirectives("chromium", None, None, 30_000),
        logger=logging.getLogger("scenarist.scenario.test_world"),
        attach_fn=attach_fn,
    )


def register_browser_session(world: ScenarioContext, order: list[str]) -> None:
    for kind in ("playwright", "browser", "context", "page"):
        world.registry.register(kind, kind, order.append)


class TestScenarioContextState:
    """Test the lifecycle state machine."""

    def test_starts_uninitialized(self) -> None:
        world = make_world()

        assert world.state == ContextState.UNINITIALIZED
        assert world.mode == ExecutionMode.BROWSER_UI
        assert world.timeout_ms == 30_000
        assert world.artifact_key == "Search_search_feature_4"

    def test_legal_path(self) -> None:
        world = make_world()

        world.transition(ContextState.PROVISIONING)
        world.transition(ContextState.READY)
        world.transition(ContextState.FINALIZING)
        world.transition(ContextState.DISPOSED)

        assert world.state == ContextState.DISPOSED

    @pytest.mark.parametrize(
        ("path", "target"),
        [
            ((), ContextState.READY),
            ((ContextState.PROVISIONING,), ContextState.DISPOSED),
            ((ContextState.PROVISIONING, ContextState.READY), ContextState.DISPOSED),
            ((ContextState.PROVISIONING, ContextState.READY), ContextState.PROVISIONING),
        ],
    )
    def test_illegal_transitions_raise(
        self, path: tuple[ContextState, ...], target: ContextState
    ) -> None:
        world = make_world()
        for state in path:
            world.transition(state)

        with pytest.raises(LifecycleStateError, match="Illegal transition"):
            world.transition(target)


class TestScenarioContextDispose:
    """Test resource disposal."""

    def test_disposes_in_reverse_order_and_flushes_logger_last(self) -> None:
        """Test page, context, browser, driver order, then the logger."""
        world = make_world()
        order: list[str] = []
        register_browser_session(world, order)
        world.transition(ContextState.PROVISIONING)
        world.transition(ContextState.READY)

        with patch(
            "scenarist.world.flush_scenario_logger",
            side_effect=lambda _: order.append("logger"),
        ):
            errors = world.dispose()

        assert order == ["page", "context", "browser", "playwright", "logger"]
        assert errors == []
        assert world.state == ContextState.DISPOSED

    def test_dispose_is_idempotent(self) -> None:
        world = make_world()
        order: list[str] = []
        register_browser_session(world, order)

        world.dispose()
        world.dispose()

        assert order == ["page", "context", "browser", "playwright"]
        assert world.state == ContextState.DISPOSED

    def test_failing_release_does_not_stop_others(self) -> None:
        """Test a raising close is recorded and the rest still run."""
        world = make_world()
        order: list[str] = []
        world.registry.register("browser", "browser", order.append)

        def failing_context_close(handle: str) -> None:
            order.append(handle)
            raise RuntimeError("context close failed")

        world.registry.register("context", "context", failing_context_close)
        world.registry.register("page", "page", order.append)

        errors = world.dispose()

        assert order == ["page", "context", "browser"]
        assert [error.kind for error in errors] == ["context"]
        assert world.disposal_errors == errors

    def test_logger_flush_failure_is_recorded(self) -> None:
        world = make_world()

        with patch("scenarist.world.flush_scenario_logger", side_effect=OSError("disk full")):
            errors = world.dispose()

        assert [error.kind for error in errors] == ["logger"]
        assert world.state == ContextState.DISPOSED

    def test_dispose_from_provisioning_marks_failed(self) -> None:
        """Test disposing a half-built world goes through FAILED_PROVISIONING."""
        world = make_world()
        world.transition(ContextState.PROVISIONING)
        states = []

        original = world.registry.release_all

        def capture_state() -> list:
            states.append(world.state)
            return original()

        world.registry.release_all = capture_state

        world.dispose()

        assert states == [ContextState.FAILED_PROVISIONING]
        assert world.state == ContextState.DISPOSED

    def test_close_browser_context_releases_page_and_context_once(self) -> None:
        world = make_world()
        order: list[str] = []
        register_browser_session(world, order)

        world.close_browser_context()
        world.dispose()

        assert order == ["page", "context", "browser", "playwright"]


class TestScenarioContextAttach:
    """Test attachments."""

    def test_attach_records_and_forwards(self) -> None:
        attach_fn = MagicMock()
        world = make_world(attach_fn=attach_fn)

        world.attach(b"png", "image/png", name="shot.png")

        assert world.attachments[0].payload == b"png"
        assert world.attachments[0].mime_type == "image/png"
        assert world.attachments[0].name == "shot.png"
        attach_fn.assert_called_once_with(b"png", "image/png")

    def test_attach_without_reporter(self) -> None:
        world = make_world(directives=ApiDirectives(None, 30_000))

        world.attach("note", "text/plain")

        assert world.mode == ExecutionMode.API_ONLY
        assert len(world.attachments) == 1
