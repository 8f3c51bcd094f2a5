import pytest

from engine.mission.progress import Progress


def test_empty_progress_layout():
    assert Progress().to_status() == {"completed": [], "failures": 0}


def test_from_status_reads_persisted_layout():
    progress = Progress.from_status({
        "working": "transform",
        "completed": ["validate"],
        "failures": 2,
    })

    assert progress.working == "transform"
    assert progress.completed == ["validate"]
    assert progress.failures == 2
    assert progress.finished is False


@pytest.mark.parametrize("raw", [
    None,
    "garbage",
    ["validate"],
    {"completed": "validate"},
    {"failures": -1},
])
def test_from_status_malformed_is_empty(raw):
    assert Progress.from_status(raw).to_status() == {"completed": [], "failures": 0}


def test_from_status_tolerates_null_fields():
    progress = Progress.from_status({"completed": None, "finished": None, "failures": None})
    assert progress.to_status() == {"completed": [], "failures": 0}


def test_from_status_restores_invariants():
    progress = Progress.from_status({
        "working": "validate",
        "completed": ["validate", "transform", "validate"],
    })

    assert progress.completed == ["validate", "transform"]
    assert progress.working is None


def test_start_promotes_stale_working_step():
    progress = Progress()
    progress.start("validate")
    progress.start("transform")

    assert progress.completed == ["validate"]
    assert progress.working == "transform"


def test_start_never_duplicates_completed_step():
    progress = Progress.from_status({"completed": ["validate"]})
    progress.working_step = "validate"

    progress.start("transform")

    assert progress.completed == ["validate"]


def test_stop_working_does_not_complete():
    progress = Progress()
    progress.start("validate")
    progress.stop_working()

    assert progress.working is None
    assert not progress.is_completed("validate")


def test_finish_flushes_working_step():
    progress = Progress()
    progress.start("validate")
    progress.finish()

    assert progress.to_status() == {"completed": ["validate"], "finished": True, "failures": 0}


def test_record_failure_counts():
    progress = Progress()
    progress.record_failure()
    progress.record_failure()
    assert progress.failures == 2
