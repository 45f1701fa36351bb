"""
Bounded concurrent execution of spin jobs.

Each job runs the core CLI in its own child process, so a crash or a
runaway job cannot take the caller down and a timeout can kill it cleanly.
A thread pool caps how many children run at once.
"""

from __future__ import annotations

import logging
import subprocess
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable

from gifspin.config import DispatchConfig
from gifspin.exceptions import GifSpinError, TaskError, TaskTimeoutError
from gifspin.types import Options

logger = logging.getLogger(__name__)


def _arg_flag(value: bool) -> str:
    return "1" if value else "0"


@dataclass(frozen=True)
class SpinTask:
    """One input image to spin into one output GIF."""
    options: Options
    input_path: Path
    output_path: Path

    def arguments(self) -> list[str]:
        """Positional arguments for ``gifspin-core``."""
        o = self.options
        return [
            str(o.width),
            str(o.height),
            str(o.frame_count),
            str(o.frame_delay),
            _arg_flag(o.flag_crop),
            _arg_flag(o.flag_reverse),
            _arg_flag(o.flag_flatten),
            str(o.background),
            str(self.input_path),
            str(self.output_path),
        ]

    def execute(self, command: list[str], timeout_s: float) -> Path:
        """Run the task to completion; raise ``TaskError`` on failure."""
        cmd = [*command, *self.arguments()]
        logger.debug("Task command: %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout_s,
            )
        except subprocess.TimeoutExpired as exc:
            raise TaskTimeoutError(
                f"{self.input_path} exceeded {timeout_s:.1f}s"
            ) from exc
        except OSError as exc:
            raise TaskError(f"task failed to start: {exc}") from exc

        output = (result.stdout + result.stderr).strip()
        if result.returncode != 0:
            raise TaskError(
                f"{output!r} (exit status {result.returncode})", output=output,
            )
        return self.output_path


@dataclass
class TaskOutcome:
    """Result of one dispatched task."""
    task: SpinTask
    output_path: Path | None = None
    error: GifSpinError | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class SpinDispatch:
    """Run spin tasks with at most ``config.size`` in flight."""
    config: DispatchConfig = field(default_factory=DispatchConfig)

    def submit(self, pool: ThreadPoolExecutor, task: SpinTask) -> Future:
        return pool.submit(task.execute, self.config.command, self.config.timeout_s)

    def run(
        self,
        tasks: Iterable[SpinTask],
        on_done: Callable[[TaskOutcome], None] | None = None,
    ) -> list[TaskOutcome]:
        """Execute *tasks*; outcomes come back in submission order."""
        tasks = list(tasks)
        outcomes: list[TaskOutcome] = []
        with ThreadPoolExecutor(max_workers=self.config.size) as pool:
            futures = [self.submit(pool, t) for t in tasks]
            for task, future in zip(tasks, futures):
                try:
                    outcome = TaskOutcome(task=task, output_path=future.result())
                except GifSpinError as exc:
                    logger.warning("Task %s failed: %s", task.input_path, exc)
                    outcome = TaskOutcome(task=task, error=exc)
                outcomes.append(outcome)
                if on_done is not None:
                    on_done(outcome)
        return outcomes
