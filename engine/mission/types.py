import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from .progress import Progress


_WORD = re.compile(r"\w+")


def titleize(name: str) -> str:
    """``"publish_report"`` -> ``"Publish_report"``, ``"fetch data"`` -> ``"Fetch Data"``."""
    return _WORD.sub(lambda m: m.group(0).capitalize(), name)


class StatusAccessor(Protocol):
    """Read/write access to the job's status blob, handed to every step."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


# (task, status) -> None
StepHandler = Callable[[Any, StatusAccessor], None]

# (index, total, label, progress) -> None
ProgressReporter = Callable[[int, int, str, Progress], None]


@dataclass(frozen=True, slots=True)
class Step:
    """
    One declared unit of work of a mission type.

    Immutable. Order of declaration is the execution order.
    """

    name: str
    handler: StepHandler
    message: Optional[str] = None

    @property
    def label(self) -> str:
        return titleize(self.name)


@dataclass(slots=True)
class MissionCallbacks:
    """
    Observer hooks for one mission execution. Every hook is optional.

    at:         progress report before each step, after a failure, and "all-done"
    get_status: read a key from the status blob
    set_status: merge a key into the status blob
    checkpoint: persist the Progress after a step completed
    """

    at: Optional[ProgressReporter] = None
    get_status: Optional[Callable[[str], Any]] = None
    set_status: Optional[Callable[[str, Any], None]] = None
    checkpoint: Optional[Callable[[Progress], None]] = None


class BoundStatus:
    """StatusAccessor over a pair of get/set callbacks."""

    __slots__ = ("_getter", "_setter", "_local")

    def __init__(
        self,
        getter: Optional[Callable[[str], Any]] = None,
        setter: Optional[Callable[[str, Any], None]] = None,
    ):
        self._getter = getter
        self._setter = setter
        # without a status store, values live for this execution only
        self._local: dict = {}

    def get(self, key: str, default: Any = None) -> Any:
        if self._getter is None:
            return self._local.get(key, default)
        value = self._getter(key)
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        if self._setter is None:
            self._local[key] = value
            return
        self._setter(key, value)
