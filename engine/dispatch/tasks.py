from celery import Task

from config.settings import settings
from engine.log import get_logger
from engine.mission.exceptions import UnknownMissionError
from engine.mission.metrics import MissionMetrics, stats_key
from engine.mission.registry import get_mission
from engine.mission.runner import MissionEngine

from .celery_app import celery_app
from .job import MissionJob, strip_progress_argument
from .status import JobStatus, get_status_store

logger = get_logger("worker")

# One engine per worker process so metrics accumulate across job attempts
metrics = MissionMetrics()
engine = MissionEngine(metrics=metrics)


class MissionTask(Task):
    """
    Celery task base for mission jobs.

    Retries any step failure with exponential backoff. The retry keeps the
    task id, so the re-dispatched attempt resumes from the checkpoint the
    status store holds for that id.
    """

    autoretry_for = (Exception,)
    dont_autoretry_for = (UnknownMissionError,)
    max_retries = settings.MISSION_MAX_RETRIES
    retry_backoff = settings.MISSION_RETRY_BACKOFF
    retry_backoff_max = settings.MISSION_RETRY_BACKOFF_MAX

    def retry(self, args=None, kwargs=None, *rest, **options):
        if kwargs is None:
            kwargs = self.request.kwargs
        logger.info(f"retrying job {self.request.id} (attempt {self.request.retries + 1})")
        return super().retry(args, strip_progress_argument(kwargs), *rest, **options)

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        store = get_status_store()
        logger.error(
            f"job {task_id} failed after {self.request.retries} retries: {exc!r} "
            f"progress={store.get(task_id, 'progress')}"
        )
        store.merge(task_id, {
            "status": JobStatus.FAILED.value,
            "message": f"{type(exc).__name__}: {exc}",
        })


@celery_app.task(bind=True, base=MissionTask, name="mission.perform")
def perform_mission(self, mission: str, options: dict = None) -> dict:
    """
    Worker entrypoint for one attempt of a queued mission.
    """
    definition = get_mission(mission)

    def report(index, total, label, progress):
        self.update_state(state="PROGRESS", meta={
            "num": index,
            "total": total,
            "message": label,
            "progress": progress.to_status(),
        })

    job = MissionJob(
        job_id=self.request.id,
        definition=definition,
        options=options,
        store=get_status_store(),
        report=report,
        engine=engine,
    )
    progress = job.perform()
    logger.debug(f"metrics for {mission}: {metrics.snapshot(stats_key(definition.mission_class))}")
    return progress.to_status()
