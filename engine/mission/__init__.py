from .exceptions import (
    MissionError,
    MissionRegistrationError,
    StepDeclarationError,
    UnknownMissionError,
)
from .progress import Progress
from .registry import (
    Mission,
    MissionDefinition,
    get_mission,
    has_mission,
    list_missions,
    register_mission,
    step,
)
from .runner import MissionEngine
from .types import MissionCallbacks, Step

__all__ = [
    "MissionError",
    "MissionRegistrationError",
    "StepDeclarationError",
    "UnknownMissionError",
    "Progress",
    "Mission",
    "MissionDefinition",
    "get_mission",
    "has_mission",
    "list_missions",
    "register_mission",
    "step",
    "MissionEngine",
    "MissionCallbacks",
    "Step",
]
