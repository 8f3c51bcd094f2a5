from typing import Any, List, Optional

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from engine.log import get_logger

logger = get_logger("progress")


class Progress(BaseModel):
    """
    Durable checkpoint of one mission.

    The only state that survives across job attempts. Persisted as::

        {"working": "step"?, "completed": [...], "finished": true?, "failures": 0}
    """

    model_config = ConfigDict(populate_by_name=True)

    working_step: Optional[str] = Field(default=None, alias="working")
    completed_steps: List[str] = Field(default_factory=list, alias="completed")
    finished: bool = False
    failure_count: int = Field(default=0, ge=0, alias="failures")

    @pydantic.field_validator("finished", "failure_count", "completed_steps", mode="before")
    @classmethod
    def _absent_as_default(cls, value: Any, info: pydantic.ValidationInfo) -> Any:
        if value is None:
            return {"finished": False, "failure_count": 0, "completed_steps": []}[info.field_name]
        return value

    # ---- persistence ----

    @classmethod
    def from_status(cls, value: Any) -> "Progress":
        """
        Build a Progress from a persisted mapping.

        Missing or malformed values yield an empty Progress.
        """
        if value is None:
            return cls()
        if isinstance(value, Progress):
            return value
        if not isinstance(value, dict):
            logger.warning(f"Ignoring malformed progress of type {type(value).__name__}")
            return cls()
        try:
            progress = cls.model_validate(value)
        except pydantic.ValidationError as e:
            logger.warning(f"Ignoring malformed progress: {e.error_count()} validation error(s)")
            return cls()
        progress._dedupe()
        return progress

    def to_status(self) -> dict:
        data: dict = {}
        if self.working_step is not None:
            data["working"] = self.working_step
        data["completed"] = list(self.completed_steps)
        if self.finished:
            data["finished"] = True
        data["failures"] = self.failure_count
        return data

    def _dedupe(self) -> None:
        seen = set()
        ordered = []
        for name in self.completed_steps:
            if name not in seen:
                seen.add(name)
                ordered.append(name)
        self.completed_steps = ordered
        if self.working_step in seen:
            self.working_step = None

    # ---- accessors ----

    @property
    def working(self) -> Optional[str]:
        return self.working_step

    @property
    def completed(self) -> List[str]:
        return self.completed_steps

    @property
    def failures(self) -> int:
        return self.failure_count

    def is_completed(self, step: str) -> bool:
        return step in self.completed_steps

    # ---- transitions ----

    def start(self, step: str) -> None:
        """
        Mark ``step`` as in flight.

        A working step left over from an earlier attempt is first counted
        as completed.
        """
        self.complete_working()
        self.working_step = step

    def complete_working(self) -> None:
        working = self.working_step
        if working is None:
            return
        self.working_step = None
        if working not in self.completed_steps:
            self.completed_steps.append(working)

    def stop_working(self) -> None:
        """Drop the working step without completing it; it will run again."""
        self.working_step = None

    def finish(self) -> None:
        self.complete_working()
        self.finished = True

    def record_failure(self) -> None:
        self.failure_count += 1
