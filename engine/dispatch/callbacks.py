from typing import Any, Callable, Optional

from engine.mission.progress import Progress
from engine.mission.types import MissionCallbacks

from .status import StatusStore

# (index, total, label, progress) -> None, the queue's native progress report
Reporter = Callable[[int, int, str, Progress], None]


def build_callbacks(
    store: StatusStore,
    job_id: str,
    report: Optional[Reporter] = None,
) -> MissionCallbacks:
    """
    Wire one job attempt's engine callbacks to the status store.

    Every ``at`` report also checkpoints the Progress, so the store always
    holds the resumption point of the last step boundary.
    """

    def at(index: int, total: int, label: str, progress: Progress) -> None:
        store.merge(job_id, {
            "num": index,
            "total": total,
            "message": label,
            "progress": progress.to_status(),
        })
        if report is not None:
            report(index, total, label, progress)

    def checkpoint(progress: Progress) -> None:
        store.merge(job_id, {"progress": progress.to_status()})

    def set_status(key: str, value: Any) -> None:
        store.merge(job_id, {key: value})

    def get_status(key: str) -> Any:
        return store.get(job_id, key)

    return MissionCallbacks(
        at=at,
        get_status=get_status,
        set_status=set_status,
        checkpoint=checkpoint,
    )
