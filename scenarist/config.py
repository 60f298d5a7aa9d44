"""Configuration loading for the scenario lifecycle manager."""

from __future__ import annotations

import copy
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from omegaconf import OmegaConf
from omegaconf.errors import InterpolationResolutionError

from scenarist.constants import (
    AUTH_STORAGE_STATE_PATH,
    DEFAULT_BROWSER,
    DEFAULT_CONFIG_FILE,
    DEFAULT_RESULTS_DIR,
    DEFAULT_TIMEOUT_MS,
    SLOW_TIMEOUT_MS,
    SUPPORTED_BROWSERS,
)
from scenarist.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

TRUTHY_VALUES = frozenset({"1", "true", "yes", "on"})


def _is_truthy(value: str | None) -> bool:
    return value is not None and value.strip().lower() in TRUTHY_VALUES


@dataclass(frozen=True)
class Settings:
    """Read-only process-wide settings shared by every scenario.

    Attributes
    ----------
    project_root : Path
        Directory relative paths (storage state, results) are resolved against
    results_dir : Path
        Root of all artifacts
    screenshots_dir : Path
        Failure screenshots
    videos_dir : Path
        Per-scenario video directories
    trace_dir : Path
        Trace archives
    logs_dir : Path
        Per-scenario log files
    default_timeout_ms : int
        TimeoutPolicy when no tag overrides it
    slow_timeout_ms : int
        TimeoutPolicy for @slow scenarios
    default_browser : str
        Engine used when neither tag nor BROWSER selects one
    browser : str | None
        Raw BROWSER value; validated only at launch time
    headless : bool
        Launch browsers without a window
    base_url : str | None
        Base URL for API-only sessions
    api_token : str | None
        Bearer token injected into API-only sessions
    storage_state_path : str
        Storage-state file loaded for @auth scenarios
    tracing : bool
        Record a Playwright trace for every browser scenario
    workers : int
        Number of scenarios executed in parallel by ScenarioDriver.run_all
    log_level : str
        Level of per-scenario loggers
    clean_results_on_start : bool
        Empty the results directory during before_all
    """

    project_root: Path = field(default_factory=Path.cwd)
    results_dir: Path = Path(DEFAULT_RESULTS_DIR)
    screenshots_dir: Path = Path(DEFAULT_RESULTS_DIR) / "screenshots"
    videos_dir: Path = Path(DEFAULT_RESULTS_DIR) / "videos"
    trace_dir: Path = Path(DEFAULT_RESULTS_DIR) / "trace"
    logs_dir: Path = Path(DEFAULT_RESULTS_DIR) / "logs"
    default_timeout_ms: int = DEFAULT_TIMEOUT_MS
    slow_timeout_ms: int = SLOW_TIMEOUT_MS
    default_browser: str = DEFAULT_BROWSER
    browser: str | None = None
    headless: bool = True
    base_url: str | None = None
    api_token: str | None = None
    storage_state_path: str = AUTH_STORAGE_STATE_PATH
    tracing: bool = False
    workers: int = 1
    log_level: str = "DEBUG"
    clean_results_on_start: bool = False

    def resolve_path(self, path: str | Path) -> Path:
        """Resolve a possibly relative path against the project root."""
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return (self.project_root / candidate).resolve()


class ConfigLoader:
    """Load YAML configuration, merge it over defaults and apply env overrides."""

    def __init__(self) -> None:
        """Initialize ConfigLoader with built-in defaults."""
        self.BUILT_IN_DEFAULTS: dict[str, Any] = {
            "project_root": None,
            "results_dir": DEFAULT_RESULTS_DIR,
            "screenshots_dir": None,
            "videos_dir": None,
            "trace_dir": None,
            "logs_dir": None,
            "default_timeout_ms": DEFAULT_TIMEOUT_MS,
            "slow_timeout_ms": SLOW_TIMEOUT_MS,
            "default_browser": DEFAULT_BROWSER,
            "headless": True,
            "base_url": None,
            "api_token": None,
            "storage_state_path": AUTH_STORAGE_STATE_PATH,
            "tracing": False,
            "workers": 1,
            "log_level": "DEBUG",
            "clean_results_on_start": False,
        }

    def load_config(self, config_path: str | None = None) -> dict[str, Any]:
        """Load configuration from a YAML file.

        Parameters
        ----------
        config_path : str | None
            Path to YAML config file. If None, checks SCENARIST_CONFIG env var,
            then falls back to scenarist.yaml

        Returns
        -------
        dict[str, Any]
            Parsed configuration with interpolations resolved. Empty when the
            file does not exist.

        Raises
        ------
        ConfigurationError
            If the file is not valid YAML or variables cannot be resolved
        """
        if config_path is None:
            config_path = os.environ.get("SCENARIST_CONFIG", DEFAULT_CONFIG_FILE)

        config_file = Path(config_path)

        if not config_file.exists():
            logger.debug("No config file at %s, using defaults", config_file)
            return {}

        try:
            cfg = OmegaConf.load(config_file)
        except yaml.YAMLError as e:
            logger.error("Failed to parse YAML config file %s: %s", config_file, e)
            raise ConfigurationError(f"Invalid YAML in {config_file}: {e}") from e
        except OSError as e:
            logger.error("Failed to read config file %s: %s", config_file, e)
            raise ConfigurationError(
                f"Failed to read config file {config_file}: {e}"
            ) from e

        if cfg is None:
            return {}

        try:
            config = OmegaConf.to_container(cfg, resolve=True, throw_on_missing=True)
        except InterpolationResolutionError as e:
            logger.error("Failed to resolve configuration variables: %s", e)
            raise ConfigurationError(f"Configuration variable resolution error: {e}") from e

        if not isinstance(config, dict):
            raise ConfigurationError(f"Config file {config_file} must contain a mapping")

        return config

    def merge(
        self, config: Mapping[str, Any], environ: Mapping[str, str] | None = None
    ) -> dict[str, Any]:
        """Merge file configuration over defaults, then apply env overrides.

        Parameters
        ----------
        config : Mapping[str, Any]
            Configuration loaded from YAML
        environ : Mapping[str, str] | None
            Environment to read overrides from (default: os.environ)

        Returns
        -------
        dict[str, Any]
            Merged configuration
        """
        if environ is None:
            environ = os.environ

        merged = copy.deepcopy(self.BUILT_IN_DEFAULTS)
        for key, value in config.items():
            merged[key] = value

        merged["browser"] = environ.get("BROWSER") or None

        if environ.get("BASE_URL"):
            merged["base_url"] = environ["BASE_URL"]

        if environ.get("API_TOKEN"):
            merged["api_token"] = environ["API_TOKEN"]

        if "HEAD" in environ:
            merged["headless"] = not _is_truthy(environ["HEAD"])

        if "TRACE" in environ:
            merged["tracing"] = _is_truthy(environ["TRACE"])

        if environ.get("RESULTS_DIR"):
            merged["results_dir"] = environ["RESULTS_DIR"]

        if environ.get("PARALLEL"):
            try:
                merged["workers"] = int(environ["PARALLEL"])
            except ValueError as e:
                raise ConfigurationError(
                    f"PARALLEL must be an integer, got '{environ['PARALLEL']}'"
                ) from e

        return merged

    def validate_config(self, config: Mapping[str, Any]) -> None:
        """Validate merged configuration.

        Parameters
        ----------
        config : Mapping[str, Any]
            Merged configuration

        Raises
        ------
        ConfigurationError
            If configuration is invalid
        """
        typed_fields = {
            "default_timeout_ms": (int, "default_timeout_ms must be an integer"),
            "slow_timeout_ms": (int, "slow_timeout_ms must be an integer"),
            "workers": (int, "workers must be an integer"),
            "headless": (bool, "headless must be a boolean"),
            "tracing": (bool, "tracing must be a boolean"),
            "clean_results_on_start": (bool, "clean_results_on_start must be a boolean"),
            "default_browser": (str, "default_browser must be a string"),
            "storage_state_path": (str, "storage_state_path must be a string"),
            "log_level": (str, "log_level must be a string"),
        }

        for name, (expected_type, type_msg) in typed_fields.items():
            value = config.get(name)
            if expected_type is int and isinstance(value, bool):
                raise ConfigurationError(type_msg)
            if not isinstance(value, expected_type):
                raise ConfigurationError(type_msg)

        for name in ("default_timeout_ms", "slow_timeout_ms", "workers"):
            if config[name] < 1:
                raise ConfigurationError(f"{name} must be a positive integer")

        if config["default_browser"] not in SUPPORTED_BROWSERS:
            raise ConfigurationError(
                f"Unknown default_browser '{config['default_browser']}'. "
                f"Supported browsers: {sorted(SUPPORTED_BROWSERS)}"
            )

        if not isinstance(logging.getLevelName(config["log_level"].upper()), int):
            raise ConfigurationError(f"Unknown log_level '{config['log_level']}'")

        for name in ("results_dir", "screenshots_dir", "videos_dir", "trace_dir", "logs_dir"):
            value = config.get(name)
            if value is not None and not isinstance(value, str | Path):
                raise ConfigurationError(f"{name} must be a path string")

    def build_settings(self, config: Mapping[str, Any]) -> Settings:
        """Convert validated configuration into a Settings instance."""
        project_root = Path(config.get("project_root") or Path.cwd()).resolve()

        def under_root(value: str | Path) -> Path:
            path = Path(value)
            return path if path.is_absolute() else project_root / path

        results_dir = under_root(config["results_dir"])

        def artifact_dir(name: str, default: str) -> Path:
            value = config.get(name)
            return under_root(value) if value else results_dir / default

        return Settings(
            project_root=project_root,
            results_dir=results_dir,
            screenshots_dir=artifact_dir("screenshots_dir", "screenshots"),
            videos_dir=artifact_dir("videos_dir", "videos"),
            trace_dir=artifact_dir("trace_dir", "trace"),
            logs_dir=artifact_dir("logs_dir", "logs"),
            default_timeout_ms=config["default_timeout_ms"],
            slow_timeout_ms=config["slow_timeout_ms"],
            default_browser=config["default_browser"],
            browser=config.get("browser"),
            headless=config["headless"],
            base_url=config.get("base_url"),
            api_token=config.get("api_token"),
            storage_state_path=config["storage_state_path"],
            tracing=config["tracing"],
            workers=config["workers"],
            log_level=config["log_level"].upper(),
            clean_results_on_start=config["clean_results_on_start"],
        )

    def load_settings(
        self,
        config_path: str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> Settings:
        """Load, merge, validate and build settings in one call."""
        merged = self.merge(self.load_config(config_path), environ)
        self.validate_config(merged)
        return self.build_settings(merged)
