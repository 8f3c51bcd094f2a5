from unittest.mock import patch

from cli.cli import main
from tests.support.missions import PIPELINE


def test_missions_lists_registered(capsys):
    assert main(["missions"]) == 0

    out = capsys.readouterr().out
    assert PIPELINE in out
    assert "statused" in out


def test_module_option_imports(capsys):
    with patch("cli.cli.importlib.import_module") as import_module:
        assert main(["-m", "my.missions", "missions"]) == 0

    import_module.assert_called_once_with("my.missions")


def test_bad_module_fails(capsys):
    assert main(["-m", "does.not.exist", "missions"]) == 1
    assert "Failed to import" in capsys.readouterr().out


def test_enqueue(capsys):
    with patch("engine.dispatch.celery_dispatch.enqueue_mission", return_value="job-7") as enqueue:
        assert main(["enqueue", PIPELINE, "--args", '{"dataset": "sales"}']) == 0

    definition, args = enqueue.call_args.args
    assert definition.name == PIPELINE
    assert args == {"dataset": "sales"}
    assert "job-7" in capsys.readouterr().out


def test_enqueue_rejects_bad_args(capsys):
    assert main(["enqueue", PIPELINE, "--args", "[1, 2]"]) == 2
    assert main(["enqueue", PIPELINE, "--args", "{oops"]) == 2


def test_enqueue_unknown_mission(capsys):
    assert main(["enqueue", "tests.nope"]) == 1


def test_status(status_store, capsys):
    status_store.merge("job-3", {
        "mission": PIPELINE,
        "status": "failed",
        "num": 1,
        "total": 3,
        "message": "Transform",
        "progress": {"completed": ["validate"], "failures": 1},
        "rows": 12,
    })

    assert main(["status", "job-3"]) == 0

    out = capsys.readouterr().out
    assert "failed" in out
    assert "validate" in out
    assert "rows" in out


def test_status_unknown_job(capsys):
    assert main(["status", "job-404"]) == 1
