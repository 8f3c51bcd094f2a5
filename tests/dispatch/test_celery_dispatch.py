from unittest.mock import Mock, patch

from celery import Task

from engine.dispatch import tasks
from engine.dispatch.celery_dispatch import enqueue_mission, scheduled
from engine.dispatch.tasks import MissionTask, perform_mission
from engine.mission.metrics import stats_key
from engine.mission.registry import get_mission
from tests.support.missions import PIPELINE, Pipeline

STEPS = ["validate", "transform", "publish"]


def test_enqueue_sends_args_as_only_payload(status_store):
    with patch.object(perform_mission, "apply_async") as apply_async:
        job_id = enqueue_mission(PIPELINE, {"dataset": "sales"})

    apply_async.assert_called_once_with(
        kwargs={"mission": PIPELINE, "options": {"args": {"dataset": "sales"}}},
        queue="statused",
        task_id=job_id,
    )
    assert status_store.read(job_id) == {"status": "queued", "mission": PIPELINE}


def test_enqueue_from_mission_class():
    with patch.object(perform_mission, "apply_async") as apply_async:
        job_id = Pipeline.enqueue({"dataset": "sales"})

    assert apply_async.call_args.kwargs["task_id"] == job_id
    assert apply_async.call_args.kwargs["kwargs"]["mission"] == PIPELINE


def test_enqueue_accepts_definition():
    with patch.object(perform_mission, "apply_async") as apply_async:
        enqueue_mission(get_mission(PIPELINE))

    assert apply_async.call_args.kwargs["kwargs"]["options"] == {"args": {}}


def test_scheduled_forwards_unchanged():
    options = {"args": {"dataset": "sales"}}
    with patch.object(perform_mission, "apply_async", return_value=Mock(id="sched-1")) as apply_async:
        job_id = scheduled("nightly", PIPELINE, options)

    apply_async.assert_called_once_with(args=(PIPELINE, options), queue="nightly")
    assert job_id == "sched-1"


def test_perform_mission_runs_job(status_store):
    perform_mission.push_request(id="job-42", retries=0)
    try:
        with patch.object(perform_mission, "update_state") as update_state:
            result = perform_mission.run(PIPELINE, {"args": {}})
    finally:
        perform_mission.pop_request()

    assert result == {"completed": STEPS, "finished": True, "failures": 0}
    assert Pipeline.journal == STEPS
    assert update_state.call_count == 4
    last = update_state.call_args.kwargs
    assert last["state"] == "PROGRESS"
    assert last["meta"]["message"] == "all-done"
    assert status_store.get("job-42", "status") == "completed"


def test_retry_strips_progress_from_arguments():
    kwargs = {
        "mission": PIPELINE,
        "options": {"args": {"dataset": "sales"}, "progress": {"completed": ["validate"]}},
    }
    with patch.object(Task, "retry", return_value="retried") as base_retry:
        assert perform_mission.retry(kwargs=kwargs) == "retried"

    args, cleaned = base_retry.call_args.args[:2]
    assert args is None
    assert cleaned == {"mission": PIPELINE, "options": {"args": {"dataset": "sales"}}}


def test_on_failure_marks_job_failed(status_store):
    status_store.merge("job-9", {"progress": {"completed": ["validate"], "failures": 3}})

    perform_mission.on_failure(RuntimeError("gave up"), "job-9", (), {}, None)

    status = status_store.read("job-9")
    assert status["status"] == "failed"
    assert status["message"] == "RuntimeError: gave up"
    assert status["progress"] == {"completed": ["validate"], "failures": 3}


def test_task_retry_policy():
    assert isinstance(perform_mission, MissionTask)
    assert perform_mission.max_retries == 3
    assert Exception in perform_mission.autoretry_for


def test_autoretry_resumes_failed_step_under_same_id(status_store):
    Pipeline.fail_plan = {"transform": 1}

    with patch.object(perform_mission, "update_state"):
        result = perform_mission.apply(kwargs={"mission": PIPELINE, "options": {"args": {}}}, task_id="j")

    assert result.state == "SUCCESS"
    assert result.id == "j"
    assert Pipeline.journal == ["validate", "transform", "transform", "publish"]
    assert status_store.get("j", "progress") == {"completed": STEPS, "finished": True, "failures": 1}
    assert status_store.get("j", "status") == "completed"


def test_worker_shares_one_engine_across_jobs():
    assert tasks.engine.metrics is tasks.metrics
    finished = f"{stats_key(Pipeline)}.missions_finished_total"
    before = tasks.metrics.counters[finished]

    with patch.object(perform_mission, "update_state"):
        for job_id in ("job-a", "job-b"):
            perform_mission.apply(kwargs={"mission": PIPELINE, "options": {"args": {}}}, task_id=job_id)

    assert tasks.metrics.counters[finished] == before + 2
    assert tasks.metrics.timers == {}
