"""Per-scenario logger creation and teardown."""

import logging
import logging.handlers
from pathlib import Path

from scenarist.constants import LOG_BACKUP_COUNT, LOG_MAX_BYTES
from scenarist.logging.formatters import ScenarioFormatter

logger = logging.getLogger(__name__)

SCENARIO_LOGGER_PREFIX = "scenarist.scenario"


def create_scenario_logger(
    artifact_key: str, logs_dir: Path, level: str = "DEBUG"
) -> logging.Logger:
    """Create a logger writing to ``<logs_dir>/<artifact_key>.log``.

    The file rotates at 5 MB and keeps five backups. Records still propagate
    to the root logger so the runner's console output sees them.

    Parameters
    ----------
    artifact_key : str
        Sanitized scenario key used as logger suffix and file name
    logs_dir : Path
        Directory holding scenario log files
    level : str
        Logging level name

    Returns
    -------
    logging.Logger
        Configured scenario logger
    """
    logs_dir.mkdir(parents=True, exist_ok=True)

    scenario_logger = logging.getLogger(f"{SCENARIO_LOGGER_PREFIX}.{artifact_key}")
    scenario_logger.setLevel(level)

    for existing in list(scenario_logger.handlers):
        scenario_logger.removeHandler(existing)
        existing.close()

    handler = logging.handlers.RotatingFileHandler(
        logs_dir / f"{artifact_key}.log",
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(ScenarioFormatter(artifact_key))
    scenario_logger.addHandler(handler)

    return scenario_logger


def flush_scenario_logger(scenario_logger: logging.Logger) -> None:
    """Flush, close and detach every handler of a scenario logger.

    Scenario loggers are also dropped from the logging manager so a long run
    does not keep one logger per finished scenario.
    """
    try:
        for handler in list(scenario_logger.handlers):
            try:
                handler.flush()
            finally:
                scenario_logger.removeHandler(handler)
                handler.close()
    finally:
        if scenario_logger.name.startswith(f"{SCENARIO_LOGGER_PREFIX}."):
            logging.Logger.manager.loggerDict.pop(scenario_logger.name, None)
