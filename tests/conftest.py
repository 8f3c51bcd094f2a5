import os
import sys

import pytest

# Ensure project root is on sys.path so top-level packages (e.g., engine, config) are importable
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# Must be set before config.settings is first imported
os.environ.setdefault("STATUS_BACKEND", "memory")
os.environ.setdefault("MISSION_STALE_STEP_POLICY", "rerun")


@pytest.fixture(autouse=True)
def status_store():
    from engine.dispatch.status import MemoryStatusStore, set_status_store

    store = MemoryStatusStore()
    set_status_store(store)
    yield store
    set_status_store(None)


@pytest.fixture(autouse=True)
def reset_pipeline():
    from tests.support.missions import Pipeline

    Pipeline.journal = []
    Pipeline.fail_plan = {}
    yield
    Pipeline.journal = []
    Pipeline.fail_plan = {}
