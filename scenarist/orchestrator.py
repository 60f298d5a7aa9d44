"""Scenario lifecycle orchestration: before-all, before-each, after-each, after-all."""

from __future__ import annotations

import logging
import threading
from collections import Counter
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from scenarist.artifacts import ArtifactCollector, CollectedArtifacts, prepare_output_dirs
from scenarist.config import ConfigLoader, Settings
from scenarist.constants import ContextState, ScenarioOutcome
from scenarist.exceptions import DisposalError
from scenarist.provisioner import EnvironmentProvisioner
from scenarist.tags import ScenarioRef, resolve_directives
from scenarist.world import AttachFn, ScenarioContext

logger = logging.getLogger(__name__)

ScenarioBody = Callable[[ScenarioContext], "ScenarioOutcome | None"]


class LifecycleOrchestrator:
    """Sequences scenario phases and guarantees resource disposal.

    One orchestrator serves a whole run. ``before_all`` and ``after_all``
    run once per process; ``before_each`` and ``after_each`` run once per
    scenario and may be called from several worker threads at once, since
    every scenario gets its own world.

    Parameters
    ----------
    settings : Settings | None
        Settings to use; loaded by ``before_all`` when omitted
    config_loader : ConfigLoader | None
        Loader used when settings are not given
    provisioner : EnvironmentProvisioner | None
        Provisioner to use (default: built from settings)
    collector : ArtifactCollector | None
        Collector to use (default: built from settings)
    config_path : str | None
        Configuration file passed to the loader
    env_file : str | Path | None
        Dotenv file loaded during ``before_all`` if it exists
    """

    def __init__(
        self,
        settings: Settings | None = None,
        config_loader: ConfigLoader | None = None,
        provisioner: EnvironmentProvisioner | None = None,
        collector: ArtifactCollector | None = None,
        config_path: str | None = None,
        env_file: str | Path | None = ".env",
    ) -> None:
        self._given_settings = settings
        self.settings = settings
        self.config_loader = config_loader or ConfigLoader()
        self._given_provisioner = provisioner
        self._given_collector = collector
        self.provisioner = provisioner
        self.collector = collector
        self.config_path = config_path
        self.env_file = env_file
        self.outcomes: Counter[ScenarioOutcome] = Counter()
        self._started = False
        self._lock = threading.Lock()
        self._active_keys: set[str] = set()

    @property
    def started(self) -> bool:
        return self._started

    def before_all(self) -> Settings:
        """Run global one-time setup. Further calls are no-ops.

        Loads the dotenv file, loads and validates configuration, and
        prepares output directories.

        Returns
        -------
        Settings
            Active settings

        Raises
        ------
        ConfigurationError
            If configuration is invalid
        """
        with self._lock:
            if self._started:
                return self.settings

            if self.env_file is not None and Path(self.env_file).exists():
                load_dotenv(self.env_file, override=False)
                logger.info("Loaded environment from %s", self.env_file)

            if self.settings is None:
                self.settings = self.config_loader.load_settings(self.config_path)

            prepare_output_dirs(self.settings, clean=self.settings.clean_results_on_start)

            if self.provisioner is None:
                self.provisioner = EnvironmentProvisioner(self.settings)
            if self.collector is None:
                self.collector = ArtifactCollector(self.settings)

            self.outcomes.clear()
            self._started = True
            logger.info(
                "Lifecycle started: results=%s workers=%d tracing=%s",
                self.settings.results_dir,
                self.settings.workers,
                self.settings.tracing,
            )
            return self.settings

    def before_each(self, ref: ScenarioRef, attach_fn: AttachFn | None = None) -> ScenarioContext:
        """Resolve directives and provision a READY world for a scenario.

        Parameters
        ----------
        ref : ScenarioRef
            Scenario about to run
        attach_fn : AttachFn | None
            External reporter callback for ``world.attach``

        Returns
        -------
        ScenarioContext
            READY world

        Raises
        ------
        ConfigurationError
            If the directives cannot be satisfied
        ResourceAcquisitionError
            If provisioning fails
        """
        settings = self.before_all()
        directives = resolve_directives(ref, settings)
        self._claim_key(ref)

        try:
            return self.provisioner.provision(ref, directives, attach_fn=attach_fn)
        except Exception:
            self._release_key(ref)
            raise

    def after_each(
        self,
        world: ScenarioContext | None,
        outcome: ScenarioOutcome,
        ref: ScenarioRef | None = None,
    ) -> ScenarioOutcome:
        """Capture artifacts, then dispose every handle of the world.

        Disposal runs even when artifact capture raises. Neither capture nor
        disposal failures change the outcome.

        Parameters
        ----------
        world : ScenarioContext | None
            World returned by ``before_each``, or None if provisioning failed
        outcome : ScenarioOutcome
            Outcome reported by the step runner
        ref : ScenarioRef | None
            Scenario reference, used when no world exists

        Returns
        -------
        ScenarioOutcome
            The outcome, unchanged
        """
        with self._lock:
            self.outcomes[outcome] += 1

        if world is None:
            if ref is not None:
                self._release_key(ref)
                logger.info("Scenario '%s' ended without a world: %s", ref.name, outcome.value)
            return outcome

        try:
            if world.state == ContextState.READY:
                world.transition(ContextState.FINALIZING)
            if world.state == ContextState.FINALIZING:
                world.artifacts = self.collector.collect(world, outcome)
        except Exception as e:
            logger.error(
                "Artifact capture failed for scenario '%s': %s", world.ref.name, e, exc_info=True
            )
        finally:
            errors = world.dispose()
            self._release_key(world.ref)

        if errors:
            logger.warning(
                "Scenario '%s' disposed with %d errors; outcome stays %s",
                world.ref.name,
                len(errors),
                outcome.value,
            )
        return outcome

    def after_all(self) -> None:
        """Release global state created by ``before_all``."""
        with self._lock:
            if not self._started:
                return

            summary = ", ".join(
                f"{outcome.value}={count}" for outcome, count in sorted(self.outcomes.items())
            )
            logger.info("Lifecycle finished: %s", summary or "no scenarios")

            if self._active_keys:
                logger.warning("Scenarios still active at shutdown: %s", sorted(self._active_keys))

            self._active_keys.clear()
            self.settings = self._given_settings
            self.provisioner = self._given_provisioner
            self.collector = self._given_collector
            self._started = False

    def _claim_key(self, ref: ScenarioRef) -> None:
        with self._lock:
            if ref.artifact_key in self._active_keys:
                logger.warning(
                    "Artifact key '%s' is already in use by a running scenario; "
                    "artifacts of '%s' may overwrite each other",
                    ref.artifact_key,
                    ref.name,
                )
            self._active_keys.add(ref.artifact_key)

    def _release_key(self, ref: ScenarioRef) -> None:
        with self._lock:
            self._active_keys.discard(ref.artifact_key)


@dataclass
class ScenarioResult:
    """Result of one scenario run through ScenarioDriver.

    Attributes
    ----------
    ref : ScenarioRef
        Scenario that ran
    outcome : ScenarioOutcome
        Final outcome
    error : BaseException | None
        Provisioning or step error that failed the scenario
    artifacts : CollectedArtifacts | None
        Artifacts captured during finalization
    disposal_errors : list[DisposalError]
        Release failures, for diagnostics only
    """

    ref: ScenarioRef
    outcome: ScenarioOutcome
    error: BaseException | None = None
    artifacts: CollectedArtifacts | None = None
    disposal_errors: list[DisposalError] = field(default_factory=list)


class ScenarioDriver:
    """Runs scenarios through the explicit phase list, independent of any runner.

    Phases per scenario: setup (provision), execute (scenario body),
    capture (artifacts) and teardown (disposal). A body returning None
    passed; it may return an explicit ScenarioOutcome. Any exception from
    setup or the body, timeouts included, fails the scenario.

    Parameters
    ----------
    orchestrator : LifecycleOrchestrator
        Orchestrator providing the lifecycle phases
    """

    def __init__(self, orchestrator: LifecycleOrchestrator) -> None:
        self.orchestrator = orchestrator

    def run(self, ref: ScenarioRef, body: ScenarioBody) -> ScenarioResult:
        """Run one scenario to completion and always tear it down."""
        world = None
        error = None

        try:
            world = self.orchestrator.before_each(ref)
        except Exception as e:
            logger.error("Setup failed for scenario '%s': %s", ref.name, e)
            error = e

        outcome = ScenarioOutcome.FAILED
        if world is not None:
            try:
                returned = body(world)
                outcome = returned if isinstance(returned, ScenarioOutcome) else ScenarioOutcome.PASSED
            except Exception as e:
                world.logger.error("Scenario '%s' failed: %s", ref.name, e)
                error = e

        self.orchestrator.after_each(world, outcome, ref=ref)

        return ScenarioResult(
            ref=ref,
            outcome=outcome,
            error=error,
            artifacts=world.artifacts if world is not None else None,
            disposal_errors=list(world.disposal_errors) if world is not None else [],
        )

    def run_all(
        self,
        scenarios: Iterable[tuple[ScenarioRef, ScenarioBody]],
        workers: int | None = None,
    ) -> list[ScenarioResult]:
        """Run scenarios on ``workers`` threads, returning results in input order.

        Parameters
        ----------
        scenarios : Iterable[tuple[ScenarioRef, ScenarioBody]]
            Scenario references with their bodies
        workers : int | None
            Parallel workers (default: settings.workers); 1 runs sequentially
            on the calling thread
        """
        settings = self.orchestrator.before_all()
        items = list(scenarios)
        workers = workers or settings.workers

        if workers <= 1:
            return [self.run(ref, body) for ref, body in items]

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="scenario") as pool:
            futures = [pool.submit(self.run, ref, body) for ref, body in items]
            return [future.result() for future in futures]
