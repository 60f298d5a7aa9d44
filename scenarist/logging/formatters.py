"""Logging formatters for per-scenario log files."""

import logging

from scenarist.constants import LOG_DATE_FORMAT


class ScenarioFormatter(logging.Formatter):
    """Formatter that prefixes each line with level, timestamp and scenario label.

    Parameters
    ----------
    label : str
        Scenario label shown in every line
    """

    def __init__(self, label: str) -> None:
        super().__init__(
            fmt="%(levelname)s: %(asctime)s: [%(scenario)s] %(message)s",
            datefmt=LOG_DATE_FORMAT,
        )
        self.label = label

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with the scenario label.

        Parameters
        ----------
        record : logging.LogRecord
            Log record to format

        Returns
        -------
        str
            Formatted log line
        """
        record.scenario = getattr(record, "scenario", None) or self.label
        return super().format(record)
