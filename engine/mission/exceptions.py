# engine/mission/exceptions.py

class MissionError(Exception):
    """Base class for mission engine errors"""


class StepDeclarationError(MissionError):
    pass


class MissionRegistrationError(MissionError):
    pass


class UnknownMissionError(MissionError, KeyError):
    """Raised when a mission type is looked up but was never registered."""

    def __str__(self) -> str:
        return Exception.__str__(self)
