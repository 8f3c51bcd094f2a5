# engine/mission/runner.py

"""
Mission engine.

Runs the steps of one mission instance in declared order against a
Progress checkpoint:

- steps already in ``progress.completed`` are skipped without side effects
- a step that raises is NOT marked complete and re-runs on the next attempt
- every exception propagates unchanged; retrying is the queue's job
- ``progress.failures`` grows by one per failed ``execute`` call

The engine is synchronous and never runs two steps at once.
"""

from typing import Optional, Sequence

from config.settings import settings
from engine.log import get_logger

from .metrics import MissionMetrics, stats_key
from .progress import Progress
from .types import BoundStatus, MissionCallbacks, Step

logger = get_logger("engine")

ALL_DONE = "all-done"


class MissionEngine:
    """
    Stateless between calls apart from metrics.
    Safe to share across missions on one worker.
    """

    def __init__(
        self,
        metrics: Optional[MissionMetrics] = None,
        stale_step_policy: Optional[str] = None,
    ):
        self.metrics = metrics or MissionMetrics()
        self.stale_step_policy = stale_step_policy or settings.MISSION_STALE_STEP_POLICY

    # -------------------------
    # PUBLIC ENTRYPOINT
    # -------------------------

    def execute(
        self,
        task,
        progress: Optional[Progress] = None,
        callbacks: Optional[MissionCallbacks] = None,
    ) -> Progress:
        """
        Run every step of ``task`` not yet completed in ``progress``.

        Mutates ``progress`` in place and returns it.
        """
        if progress is None:
            progress = Progress()
        callbacks = callbacks or MissionCallbacks()
        key = stats_key(type(task))
        run_key = f"{key}:{id(task)}"
        self.metrics.start_timer(run_key)

        try:
            steps = self.resolve_steps(task)
            total = len(steps)
            self._recover_stale_step(progress)
            status = BoundStatus(callbacks.get_status, callbacks.set_status)

            for index, step in enumerate(steps):
                if progress.is_completed(step.name):
                    self.metrics.inc(f"{key}.steps_skipped_total")
                    continue

                progress.start(step.name)
                label = step.label
                step_key = f"{run_key}:{step.name}"

                try:
                    logger.info(f"start step {index}: {label}" + (f" ({step.message})" if step.message else ""))
                    self._report(callbacks, index, total, label, progress)
                    self.metrics.inc(f"{key}.steps_started_total")
                    self.metrics.start_timer(step_key)

                    task.status = status
                    step.handler(task, status)
                except BaseException as e:
                    self.metrics.stop_timer(step_key)
                    progress.stop_working()
                    self.metrics.inc(f"{key}.steps_failed_total")
                    logger.warning(f"step {index}: {label} failed: {type(e).__name__}: {e}")
                    self._report_failure(callbacks, index, total, label, progress)
                    raise

                elapsed = self.metrics.stop_timer(step_key)
                self.metrics.observe(f"{key}.step_duration_seconds", elapsed)
                self.metrics.inc(f"{key}.steps_completed_total")
                progress.complete_working()
                logger.info(f"end step {index}: {label} in {elapsed:.2f}s")

                if callbacks.checkpoint is not None:
                    callbacks.checkpoint(progress)

            progress.finish()
            self.metrics.inc(f"{key}.missions_finished_total")
            logger.info(f"mission {key} finished in {self.metrics.stop_timer(run_key):.2f}s")
            self._report(callbacks, total, total, ALL_DONE, progress)
        except BaseException:
            progress.stop_working()
            progress.record_failure()
            self.metrics.inc(f"{key}.missions_failed_total")
            raise
        finally:
            self.metrics.stop_timer(run_key)

        return progress

    # -------------------------
    # INTERNAL HELPERS
    # -------------------------

    def resolve_steps(self, task) -> Sequence[Step]:
        override = getattr(task, "steps_override", None)
        if override:
            return list(override)
        return type(task).steps()

    def _recover_stale_step(self, progress: Progress) -> None:
        """
        Handle a ``working`` step left behind by an attempt that died
        without finishing or raising (killed worker, lost node).
        """
        stale = progress.working
        if stale is None:
            return

        if self.stale_step_policy == "promote":
            logger.warning(f"Stale working step '{stale}' counted as completed")
            progress.complete_working()
        else:
            logger.warning(f"Stale working step '{stale}' will run again")
            progress.stop_working()

    @staticmethod
    def _report(callbacks: MissionCallbacks, index: int, total: int, label: str, progress: Progress) -> None:
        if callbacks.at is not None:
            callbacks.at(index, total, label, progress)

    @classmethod
    def _report_failure(cls, callbacks: MissionCallbacks, index: int, total: int, label: str, progress: Progress) -> None:
        """Report the failure point; a broken reporter never replaces the step's error."""
        try:
            cls._report(callbacks, index, total, label, progress)
        except Exception:
            logger.exception(f"failed to report failure of step {index}: {label}")
