# engine/dispatch/celery_dispatch.py

"""
Celery enqueue adapter for missions.

Responsibilities:
- Turn "run this mission with these args" into ONE Celery message
- Route it to the mission's queue
- Seed the job's status blob

This file is intentionally thin.
"""

from typing import Any, Dict, Optional, Union
from uuid import uuid4

from engine.log import get_logger
from engine.mission.registry import MissionDefinition, get_mission

from .status import JobStatus, get_status_store
from .tasks import perform_mission

logger = get_logger("dispatch")


def enqueue_mission(
    mission: Union[str, MissionDefinition],
    args: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Queue a mission job. ``{"args": args}`` is the job's only payload.

    Returns:
        job id (the Celery task id, also the status store key)
    """
    definition = mission if isinstance(mission, MissionDefinition) else get_mission(mission)
    job_id = uuid4().hex

    get_status_store().merge(job_id, {
        "status": JobStatus.QUEUED.value,
        "mission": definition.name,
    })
    perform_mission.apply_async(
        kwargs={"mission": definition.name, "options": {"args": args or {}}},
        queue=definition.queue,
        task_id=job_id,
    )
    logger.info(f"queued {definition.name} on '{definition.queue}' as job {job_id}")
    return job_id


def scheduled(queue_name: str, mission_type: str, *args) -> str:
    """
    Entry point for an external scheduler re-submitting a job as
    ``(queue, mission, *args)``. Forwards unchanged.
    """
    logger.info(f"scheduled job: {mission_type}, {args[0] if args else None}")
    result = perform_mission.apply_async(args=(mission_type, *args), queue=queue_name)
    return result.id
