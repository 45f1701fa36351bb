"""
CLI for spinning many images at once.

Usage:
    gifspin-batch jobs.json --workers 4 --timeout 15

``jobs.json`` holds a list of objects::

    [{"input": "a.png", "output": "a.gif", "width": 256, "height": 256,
      "frameCount": 36, "frameDelay": 40, "flagCrop": true,
      "flagReverse": false, "flagFlatten": false, "background": 0}]

Every job is checked against the service limits (``LIMIT_*`` environment
variables) before anything runs.
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any

from tqdm import tqdm

from ..config import DispatchConfig, ServiceLimits, options_from_mapping
from ..dispatch import SpinDispatch, SpinTask
from ..exceptions import GifSpinError, ValidationError
from .main import configure_logging


def load_jobs(path: Path, limits: ServiceLimits) -> list[SpinTask]:
    """Parse and validate the job file; raise on the first bad job."""
    try:
        raw: Any = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ValidationError(f"cannot read {path}: {exc}") from exc
    if not isinstance(raw, list):
        raise ValidationError(f"{path}: expected a JSON list of jobs")

    tasks = []
    for i, job in enumerate(raw):
        if not isinstance(job, dict) or "input" not in job or "output" not in job:
            raise ValidationError(f"job {i}: needs \"input\" and \"output\"")
        options = options_from_mapping(job)
        input_path = Path(job["input"])
        if not input_path.is_file():
            raise ValidationError(f"job {i}: input not found: {input_path}")
        try:
            limits.validate(options, input_size=input_path.stat().st_size)
        except ValidationError as exc:
            raise ValidationError(f"job {i}: invalid settings: {exc}") from None
        tasks.append(SpinTask(options, input_path, Path(job["output"])))
    return tasks


def cmd_batch(args: argparse.Namespace) -> int:
    configure_logging(args.verbose)
    dispatch_config = DispatchConfig.from_env()
    if args.workers:
        dispatch_config = replace(dispatch_config, size=args.workers)
    if args.timeout:
        dispatch_config = replace(dispatch_config, timeout_s=args.timeout)

    try:
        tasks = load_jobs(Path(args.jobs), ServiceLimits.from_env())
    except GifSpinError as exc:
        print(exc.diagnostic(), file=sys.stderr)
        return 1

    with tqdm(total=len(tasks), unit="job", disable=args.quiet) as bar:
        outcomes = SpinDispatch(dispatch_config).run(
            tasks, on_done=lambda _: bar.update(1),
        )

    failed = [o for o in outcomes if not o.success]
    for o in failed:
        print(f"{o.task.input_path}: {o.error.diagnostic()}", file=sys.stderr)
    if not args.quiet:
        print(f"Done! {len(outcomes) - len(failed)}/{len(outcomes)} jobs succeeded.")
    return 1 if failed else 0


def build_batch_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="gifspin-batch",
        description="Spin every job in a JSON job file, several at a time.",
    )
    p.add_argument("jobs", help="Path to the JSON job list")
    p.add_argument(
        "--workers", type=int, default=0,
        help="Jobs run at once; 0 = OPT_DISPATCH_SIZE or 4 (default: 0)",
    )
    p.add_argument(
        "--timeout", type=float, default=0.0,
        help="Seconds per job; 0 = OPT_TIMEOUT_MS or 15 (default: 0)",
    )
    p.add_argument("-q", "--quiet", action="store_true", help="No progress output")
    p.add_argument("-v", "--verbose", action="count", default=0)
    p.set_defaults(func=cmd_batch)
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_batch_parser().parse_args(argv)
    return args.func(args)


def cli_entry() -> None:
    sys.exit(main())
