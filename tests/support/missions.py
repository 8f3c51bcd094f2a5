from typing import Dict, List

from engine.mission.registry import Mission, register_mission, step

PIPELINE = "tests.pipeline"


@register_mission(name=PIPELINE)
class Pipeline(Mission):
    """
    validate -> transform -> publish

    ``journal`` records every step invocation in order.
    ``fail_plan`` maps a step name to how many times it should raise.
    """

    journal: List[str] = []
    fail_plan: Dict[str, int] = {}

    def _run(self, name, status):
        Pipeline.journal.append(name)
        remaining = Pipeline.fail_plan.get(name, 0)
        if remaining:
            Pipeline.fail_plan[name] = remaining - 1
            raise RuntimeError(f"{name} exploded")
        status.set(f"{name}_done", True)

    @step()
    def validate(self, status):
        self._run("validate", status)

    @step()
    def transform(self, status):
        self._run("transform", status)

    @step(message="Publishing results")
    def publish(self, status):
        self._run("publish", status)
