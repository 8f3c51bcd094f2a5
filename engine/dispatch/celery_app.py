from celery import Celery

from config.settings import settings

# --- Celery Application Setup ---
celery_app = Celery(
    "mission",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["engine.dispatch.tasks", *settings.MISSION_MODULES],
)

celery_app.conf.update(
    task_track_started=True,
    broker_connection_retry_on_startup=True,
    task_serializer='json',
    result_serializer='json',
    accept_content=['json'],
    # a mission attempt is only acknowledged once it ends, so a lost
    # worker leaves the job on the queue to be re-entered from its checkpoint
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    task_default_queue=settings.MISSION_DEFAULT_QUEUE,
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
)
