"""Behave environment configuration for scenarist suites."""

import logging

from behave.model import Scenario
from behave.runner import Context

from scenarist import hooks

logger = logging.getLogger(__name__)


def before_all(context: Context) -> None:
    """Setup executed before all tests."""
    logging.basicConfig(level=logging.INFO)
    hooks.before_all(context)


def before_scenario(context: Context, scenario: Scenario) -> None:
    """Setup executed before each scenario."""
    hooks.before_scenario(context, scenario)


def after_scenario(context: Context, scenario: Scenario) -> None:
    """Cleanup executed after each scenario."""
    hooks.after_scenario(context, scenario)


def after_all(context: Context) -> None:
    """Cleanup executed after all tests."""
    hooks.after_all(context)
