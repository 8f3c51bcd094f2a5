# engine/mission/registry.py

"""
Mission types and their step registry.

A mission type is a ``Mission`` subclass that declares an ordered list of
steps. Registration freezes that list into an immutable
``MissionDefinition`` that the job bridge looks up by name.

    @register_mission(queue="reports")
    class BuildReport(Mission):

        @step(message="Checking input")
        def validate(self, status):
            ...

        @step()
        def publish(self, status):
            ...

Subclasses start with an empty step list; they never inherit the steps of
their parent type.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from config.settings import settings

from .exceptions import MissionRegistrationError, StepDeclarationError, UnknownMissionError
from .types import Step, StepHandler

_STEP_MARKER = "__mission_step__"


def step(message: Optional[str] = None, name: Optional[str] = None) -> Callable:
    """
    Declare the decorated method as the next step of its mission type.
    Works bare (``@step``) or called (``@step(message="...")``).
    """
    if callable(message):
        func = message
        setattr(func, _STEP_MARKER, {"name": name or func.__name__, "message": None})
        return func

    def decorator(func: Callable) -> Callable:
        setattr(func, _STEP_MARKER, {"name": name or func.__name__, "message": message})
        return func

    return decorator


class Mission:
    """
    Base class for mission types.

    Instances are cheap and hold no checkpointed state: everything that must
    survive a crash lives in the Progress handed to the engine.
    """

    queue: Optional[str] = None

    # populated per subclass by __init_subclass__
    _declared_steps: List[Step] = []
    _frozen: bool = False

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        cls._declared_steps = []
        cls._frozen = False
        for attr in list(vars(cls).values()):
            marker = getattr(attr, _STEP_MARKER, None)
            if marker is not None:
                cls.declare_step(marker["name"], attr, message=marker["message"])

    def __init__(self, options: Optional[Dict[str, Any]] = None):
        self.options: Dict[str, Any] = dict(options or {})
        self.steps_override: Optional[List[Step]] = None
        self.status = None

    # ---- step declaration ----

    @classmethod
    def declare_step(
        cls,
        name: str,
        handler: Optional[StepHandler] = None,
        message: Optional[str] = None,
    ) -> Step:
        """
        Append a step. Steps run in the order they are declared.

        Without a handler, the method called ``name`` on this class is used.
        """
        if cls._frozen:
            raise StepDeclarationError(
                f"{cls.__name__} is already registered; its steps are frozen"
            )
        if any(s.name == name for s in cls._declared_steps):
            raise StepDeclarationError(f"Duplicate step '{name}' on {cls.__name__}")

        if handler is None:
            handler = getattr(cls, name, None)
        if not callable(handler):
            raise StepDeclarationError(f"Step '{name}' on {cls.__name__} has no callable handler")

        declared = Step(name=name, handler=handler, message=message)
        cls._declared_steps.append(declared)
        return declared

    @classmethod
    def steps(cls) -> Tuple[Step, ...]:
        return tuple(cls._declared_steps)

    # ---- queue integration ----

    @classmethod
    def create_from_options(cls, args: Optional[Dict[str, Any]] = None) -> "Mission":
        """
        Build an instance from the arguments given to ``enqueue``.
        Override to customise construction on the worker.
        """
        return cls(args)

    @classmethod
    def queue_name(cls) -> str:
        return cls.queue or settings.MISSION_DEFAULT_QUEUE

    @classmethod
    def enqueue(cls, args: Optional[Dict[str, Any]] = None) -> str:
        # late import: the dispatch layer depends on this module
        from engine.dispatch.celery_dispatch import enqueue_mission

        return enqueue_mission(definition_for(cls), args or {})


@dataclass(frozen=True, slots=True)
class MissionDefinition:
    """
    Immutable registration record of a mission type.
    """

    name: str
    mission_class: Type[Mission]
    queue: str
    steps: Tuple[Step, ...]

    def create(self, args: Optional[Dict[str, Any]] = None) -> Mission:
        return self.mission_class.create_from_options(args or {})


_MISSION_REGISTRY: Dict[str, MissionDefinition] = {}


def register_mission(
    cls: Optional[Type[Mission]] = None,
    *,
    name: Optional[str] = None,
    queue: Optional[str] = None,
):
    """
    Register a mission type. Usable as ``register_mission(Cls)`` or as a
    class decorator with or without arguments.
    """
    def _register(mission_class: Type[Mission]) -> Type[Mission]:
        if not (isinstance(mission_class, type) and issubclass(mission_class, Mission)):
            raise MissionRegistrationError(f"{mission_class!r} is not a Mission subclass")

        mission_name = name or f"{mission_class.__module__}.{mission_class.__qualname__}"
        if mission_name in _MISSION_REGISTRY:
            raise MissionRegistrationError(f"Mission already registered: {mission_name}")

        steps = mission_class.steps()
        if not steps:
            raise MissionRegistrationError(f"Mission {mission_name} declares no steps")

        if queue is not None:
            mission_class.queue = queue

        _MISSION_REGISTRY[mission_name] = MissionDefinition(
            name=mission_name,
            mission_class=mission_class,
            queue=mission_class.queue_name(),
            steps=steps,
        )
        mission_class._frozen = True
        return mission_class

    if cls is not None:
        return _register(cls)
    return _register


def get_mission(name: str) -> MissionDefinition:
    if name not in _MISSION_REGISTRY:
        raise UnknownMissionError(f"No mission registered under name: {name}")
    return _MISSION_REGISTRY[name]


def has_mission(name: str) -> bool:
    return name in _MISSION_REGISTRY


def list_missions() -> List[MissionDefinition]:
    return list(_MISSION_REGISTRY.values())


def definition_for(mission_class: Type[Mission]) -> MissionDefinition:
    for definition in _MISSION_REGISTRY.values():
        if definition.mission_class is mission_class:
            return definition
    raise UnknownMissionError(f"{mission_class.__name__} is not registered")


def unregister_mission(name: str) -> None:
    """Drop a registration. Used by tests and by reloading workers."""
    definition = _MISSION_REGISTRY.pop(name, None)
    if definition is not None:
        definition.mission_class._frozen = False
