"""Logging helpers for scenario worlds."""

from scenarist.logging.formatters import ScenarioFormatter
from scenarist.logging.handlers import create_scenario_logger, flush_scenario_logger

__all__ = ["ScenarioFormatter", "create_scenario_logger", "flush_scenario_logger"]
