"""
Tests for concurrent task dispatch and the gifspin-batch CLI.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest
from PIL import Image

from gifspin.cli.batch_cli import load_jobs, main as batch_main
from gifspin.config import DispatchConfig, ServiceLimits
from gifspin.dispatch import SpinDispatch, SpinTask
from gifspin.exceptions import TaskError, TaskTimeoutError, ValidationError

from helpers import make_options


def _python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


def _task(tmp_dir: Path, name: str = "a", **overrides) -> SpinTask:
    return SpinTask(make_options(**overrides), tmp_dir / f"{name}.png", tmp_dir / f"{name}.gif")


class TestSpinTask:
    def test_arguments(self, tmp_dir):
        task = _task(tmp_dir, flag_crop=True, background=-1)
        args = task.arguments()
        assert args[:8] == ["100", "100", "4", "100", "1", "0", "0", "-1"]
        assert args[8:] == [str(tmp_dir / "a.png"), str(tmp_dir / "a.gif")]

    def test_success(self, tmp_dir):
        result = _task(tmp_dir).execute(_python("pass"), timeout_s=30)
        assert result == tmp_dir / "a.gif"

    def test_failure_carries_output(self, tmp_dir):
        cmd = _python("import sys; sys.stderr.write('load source: nope'); sys.exit(1)")
        with pytest.raises(TaskError) as info:
            _task(tmp_dir).execute(cmd, timeout_s=30)
        assert info.value.output == "load source: nope"
        assert "exit status 1" in str(info.value)

    def test_timeout(self, tmp_dir):
        with pytest.raises(TaskTimeoutError):
            _task(tmp_dir).execute(_python("import time; time.sleep(10)"), timeout_s=0.2)

    def test_missing_binary(self, tmp_dir):
        with pytest.raises(TaskError, match="failed to start"):
            _task(tmp_dir).execute([str(tmp_dir / "no-such-binary")], timeout_s=5)


class TestSpinDispatch:
    def test_outcomes_in_order(self, tmp_dir):
        # Fails only for inputs whose name starts with "bad".
        code = (
            "import sys, os; "
            "sys.exit(1 if os.path.basename(sys.argv[-2]).startswith('bad') else 0)"
        )
        config = DispatchConfig(size=2, timeout_s=30, command=_python(code))
        tasks = [_task(tmp_dir, "ok1"), _task(tmp_dir, "bad"), _task(tmp_dir, "ok2")]
        seen = []
        outcomes = SpinDispatch(config).run(tasks, on_done=seen.append)
        assert [o.success for o in outcomes] == [True, False, True]
        assert [o.task for o in outcomes] == tasks
        assert isinstance(outcomes[1].error, TaskError)
        assert outcomes[0].output_path == tmp_dir / "ok1.gif"
        assert seen == outcomes

    def test_runs_real_core(self, tmp_dir, marker_png):
        task = SpinTask(make_options(flag_crop=True), marker_png, tmp_dir / "real.gif")
        outcomes = SpinDispatch(DispatchConfig(size=1, timeout_s=60)).run([task])
        assert outcomes[0].success, outcomes[0].error
        with Image.open(tmp_dir / "real.gif") as gif:
            assert gif.n_frames == 4


# ---------------------------------------------------------------------------
# Batch CLI
# ---------------------------------------------------------------------------

def _job(src: Path, out: Path, **overrides) -> dict:
    job = {
        "input": str(src), "output": str(out), "width": 100, "height": 100,
        "frameCount": 4, "frameDelay": 100, "flagCrop": True,
        "flagReverse": False, "flagFlatten": False, "background": 0,
    }
    job.update(overrides)
    return job


def _write_jobs(tmp_dir: Path, jobs) -> Path:
    path = tmp_dir / "jobs.json"
    path.write_text(json.dumps(jobs), encoding="utf-8")
    return path


class TestLoadJobs:
    def test_valid(self, tmp_dir, marker_png):
        path = _write_jobs(tmp_dir, [_job(marker_png, tmp_dir / "o.gif")])
        tasks = load_jobs(path, ServiceLimits())
        assert len(tasks) == 1
        assert tasks[0].options.flag_crop is True
        assert tasks[0].output_path == tmp_dir / "o.gif"

    def test_limit_violation(self, tmp_dir, marker_png):
        path = _write_jobs(tmp_dir, [_job(marker_png, tmp_dir / "o.gif", frameCount=500)])
        with pytest.raises(ValidationError, match="job 0: invalid settings: frameCount 500"):
            load_jobs(path, ServiceLimits())

    def test_input_too_large(self, tmp_dir, marker_png):
        path = _write_jobs(tmp_dir, [_job(marker_png, tmp_dir / "o.gif")])
        with pytest.raises(ValidationError, match="input size"):
            load_jobs(path, ServiceLimits(size_max=10))

    def test_missing_input(self, tmp_dir):
        path = _write_jobs(tmp_dir, [_job(tmp_dir / "gone.png", tmp_dir / "o.gif")])
        with pytest.raises(ValidationError, match="input not found"):
            load_jobs(path, ServiceLimits())

    @pytest.mark.parametrize("content", ["{not json", '{"input": "x"}', "[1]"])
    def test_malformed(self, tmp_dir, content):
        path = tmp_dir / "jobs.json"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ValidationError):
            load_jobs(path, ServiceLimits())


class TestBatchCli:
    def test_runs_all_jobs(self, tmp_dir, marker_png, capsys):
        jobs = [_job(marker_png, tmp_dir / f"o{i}.gif") for i in range(2)]
        path = _write_jobs(tmp_dir, jobs)
        assert batch_main([str(path), "--workers", "2", "--timeout", "60", "--quiet"]) == 0
        assert (tmp_dir / "o0.gif").exists()
        assert (tmp_dir / "o1.gif").exists()

    def test_env_limits_reject(self, tmp_dir, marker_png, monkeypatch, capsys):
        monkeypatch.setenv("LIMIT_MAX_WIDTH", "50")
        path = _write_jobs(tmp_dir, [_job(marker_png, tmp_dir / "o.gif")])
        assert batch_main([str(path), "--quiet"]) == 1
        err = capsys.readouterr().err
        assert "width 100 is larger than maximum 50" in err
        assert not (tmp_dir / "o.gif").exists()
