"""Behave hook adapter for the lifecycle orchestrator.

``features/environment.py`` delegates its hooks here. The orchestrator
lives on the behave context for the whole run; each scenario's world is
stored on the scenario layer of the context, so behave drops it when the
scenario ends.
"""

from __future__ import annotations

import logging
from typing import Any

from behave.model import Scenario
from behave.runner import Context

from scenarist.constants import BEHAVE_STATUS_OUTCOMES, ScenarioOutcome
from scenarist.orchestrator import LifecycleOrchestrator
from scenarist.tags import ScenarioRef
from scenarist.world import AttachFn

logger = logging.getLogger(__name__)


def outcome_from_status(status: Any) -> ScenarioOutcome:
    """Map a behave status (enum or string) to a ScenarioOutcome.

    Unknown statuses count as failures so artifacts are kept.
    """
    name = getattr(status, "name", None) or str(status)
    outcome = BEHAVE_STATUS_OUTCOMES.get(name.lower())
    if outcome is None:
        logger.warning("Unknown behave status '%s', treating as failed", name)
        return ScenarioOutcome.FAILED
    return outcome


def scenario_ref(scenario: Scenario) -> ScenarioRef:
    """Describe a behave scenario; its file location serves as identifier."""
    tags = getattr(scenario, "effective_tags", None) or scenario.tags
    return ScenarioRef(
        name=scenario.name,
        scenario_id=str(scenario.location),
        tags=tuple(str(tag) for tag in tags),
    )


def reporter_attach(context: Context) -> AttachFn | None:
    """Adapt behave's ``context.attach(mime_type, data)`` to ``attach(payload, mime_type)``."""
    behave_attach = getattr(context, "attach", None)
    if not callable(behave_attach):
        return None

    def attach(payload: bytes | str, mime_type: str) -> None:
        data = payload.encode("utf-8") if isinstance(payload, str) else payload
        behave_attach(mime_type, data)

    return attach


def before_all(context: Context, orchestrator: LifecycleOrchestrator | None = None) -> None:
    """Create the run's orchestrator and run global setup."""
    context.lifecycle = orchestrator or LifecycleOrchestrator()
    context.lifecycle.before_all()


def before_scenario(context: Context, scenario: Scenario) -> None:
    """Provision the scenario world and expose its handles on the context."""
    ref = scenario_ref(scenario)
    context.scenario_ref = ref
    context.world = None

    world = context.lifecycle.before_each(ref, attach_fn=reporter_attach(context))

    context.world = world
    context.logger = world.logger
    context.api = world.api
    context.page = world.page
    logger.info("Scenario '%s' ready in %s mode", scenario.name, world.mode.value)


def after_scenario(context: Context, scenario: Scenario) -> None:
    """Finalize artifacts and dispose the scenario world."""
    outcome = outcome_from_status(scenario.status)
    world = getattr(context, "world", None)
    ref = getattr(context, "scenario_ref", None)
    context.lifecycle.after_each(world, outcome, ref=ref)


def after_all(context: Context) -> None:
    """Release global state created by before_all."""
    lifecycle = getattr(context, "lifecycle", None)
    if lifecycle is not None:
        lifecycle.after_all()
