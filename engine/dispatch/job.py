# engine/dispatch/job.py

"""
One queue-dispatched execution attempt of a mission.

Responsibilities:
- Rebuild the mission instance from its enqueued arguments
- Load the last Progress checkpoint from the status store
- Run the engine with callbacks wired to the store and the queue
- Record the outcome, then re-raise failures to the queue

Never retries. Never decides whether a retry happens.
"""

from typing import Any, Dict, Optional

from engine.log import get_logger
from engine.mission.progress import Progress
from engine.mission.registry import MissionDefinition
from engine.mission.runner import MissionEngine

from .callbacks import Reporter, build_callbacks
from .status import JobStatus, StatusStore

logger = get_logger("job")


def strip_progress_argument(kwargs: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Retry-argument hook.

    Removes any ``progress`` injected into a job's arguments so the retried
    job keeps the same argument signature. Progress is resumed from the
    status store only, never from replayed arguments.
    """
    cleaned = dict(kwargs or {})
    cleaned.pop("progress", None)
    options = cleaned.get("options")
    if isinstance(options, dict) and "progress" in options:
        options = dict(options)
        options.pop("progress")
        cleaned["options"] = options
    return cleaned


class MissionJob:
    """
    Bridges one attempt of a queued mission to the engine.
    """

    def __init__(
        self,
        job_id: str,
        definition: MissionDefinition,
        options: Optional[Dict[str, Any]],
        store: StatusStore,
        report: Optional[Reporter] = None,
        engine: Optional[MissionEngine] = None,
    ):
        self.job_id = job_id
        self.definition = definition
        self.options: Dict[str, Any] = dict(options or {})
        self.store = store
        self.report = report
        self.engine = engine or MissionEngine()
        self.progress: Optional[Progress] = None

    @property
    def args(self) -> Dict[str, Any]:
        return self.options.get("args") or {}

    def load_progress(self) -> Progress:
        return Progress.from_status(self.store.get(self.job_id, "progress"))

    def perform(self) -> Progress:
        self.progress = self.load_progress()
        logger.info(
            f"start perform job {self.job_id}: {self.definition.name} "
            f"args={self.args} progress={self.progress.to_status()}"
        )
        self.store.merge(self.job_id, {
            "status": JobStatus.WORKING.value,
            "mission": self.definition.name,
        })

        try:
            task = self.definition.create(self.args)
            callbacks = build_callbacks(self.store, self.job_id, self.report)
            self.engine.execute(task, self.progress, callbacks)
        except BaseException as e:
            logger.exception(f"perform error in job {self.job_id}: {type(e).__name__}: {e}")
            self._record_error(e)
            raise

        self.completed()
        logger.info(f"end perform job {self.job_id}")
        return self.progress

    def _record_error(self, exc: BaseException) -> None:
        # the queue must see the step's own error, not a store outage
        try:
            self.store.merge(self.job_id, {
                "status": JobStatus.FAILED.value,
                "message": f"{type(exc).__name__}: {exc}",
                "progress": self.progress.to_status(),
            })
        except Exception:
            logger.exception(f"could not record failure of job {self.job_id} in the status store")

    def completed(self) -> None:
        total = len(self.definition.steps)
        self.store.merge(self.job_id, {
            "status": JobStatus.COMPLETED.value,
            "num": total,
            "total": total,
            "message": f"Completed at {total}/{total}",
            "progress": self.progress.to_status(),
        })

    def on_failure(self, exc: BaseException) -> None:
        """
        Failure hook.

        Extension point for attaching the Progress snapshot to the queue's
        failure record; today it only logs and re-raises.
        """
        snapshot = self.progress.to_status() if self.progress is not None else self.store.get(self.job_id, "progress")
        logger.error(f"job {self.job_id} failed permanently: {exc!r} progress={snapshot}")
        raise exc
