import time
from collections import defaultdict
from typing import Dict, List


class MissionMetrics:
    """
    Worker-lifetime metrics for mission runs.

    Keys are prefixed with the mission's stats key, e.g.
    ``reports.buildreport.steps_completed_total``. Timers are per run and
    per step; each one is dropped when it is stopped.
    """

    def __init__(self):
        self.counters: Dict[str, int] = defaultdict(int)
        self.histograms: Dict[str, List[float]] = defaultdict(list)
        self.timers: Dict[str, float] = {}

    # ---- counters ----
    def inc(self, name: str, value: int = 1) -> None:
        self.counters[name] += value

    # ---- histograms ----
    def observe(self, name: str, value: float) -> None:
        self.histograms[name].append(value)

    # ---- timers ----
    def start_timer(self, key: str) -> None:
        self.timers[key] = time.monotonic()

    def stop_timer(self, key: str) -> float:
        """Seconds since ``start_timer(key)``; 0.0 if never started."""
        start = self.timers.pop(key, None)
        if start is None:
            return 0.0
        return time.monotonic() - start

    # ---- export ----
    def snapshot(self, prefix: str = "") -> dict:
        """
        Plain-dict view for logging or shipping to a collector.
        Histograms are reduced to count/sum/max.
        """
        return {
            "counters": {k: v for k, v in self.counters.items() if k.startswith(prefix)},
            "histograms": {
                k: {"count": len(v), "sum": sum(v), "max": max(v) if v else 0.0}
                for k, v in self.histograms.items()
                if k.startswith(prefix)
            },
            "running": len(self.timers),
        }


def stats_key(task_type: type, key: str = None) -> str:
    base = f"{task_type.__module__}.{task_type.__qualname__}".lower().replace(" ", "_")
    return f"{base}.{key}" if key else base
