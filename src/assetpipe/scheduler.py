# scheduler.py
from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Optional

from .context import BuildContext
from .dsl import Registry
from .errors import PipelineFailed, TransformError
from .model import Parallel, Ref, Series, Step, Transform, iter_transforms


class Scheduler:
    """
    Interprets step trees.

      - Series: step N+1 starts only after step N settled; a failure stops the series.
      - Parallel: every member is dispatched at once (one worker per member);
        the group waits for all members to settle and then reports the first
        failure, if any. Siblings are never cancelled.
      - Ref: runs the referenced pipeline as a nested run.

    Re-invoking a pipeline that is already running is serialized: the second
    caller blocks until the first run finished, then runs.
    """

    def __init__(self, registry: Registry, ctx: BuildContext):
        registry.validate()
        self.registry = registry
        self.ctx = ctx
        ctx.scheduler = self
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, name: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(name, threading.Lock())

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, name: str) -> Dict[str, str]:
        """
        Run a registered pipeline to completion.

        Returns:
          {"<pipeline>/<transform>": "ok" | "skipped", ...} in completion order.
        Raises:
          PipelineFailed wrapping the first TransformError.
        """
        pipeline = self.registry.get(name)
        results: Dict[str, str] = {}

        with self._lock_for(name):
            transforms = list(iter_transforms(pipeline.root))
            self.ctx.console.print_pipeline_started(name, len(transforms))
            try:
                self._run_step(pipeline.root, name, results)
            except TransformError as e:
                for t in transforms:
                    results.setdefault(f"{name}/{t.name}", "skipped")
                raise PipelineFailed(pipeline=name, error=e, results=dict(results)) from e

        return results

    # ------------------------------------------------------------------
    # Step tree interpretation
    # ------------------------------------------------------------------

    def _run_step(self, step: Step, pipeline: str, results: Dict[str, str]) -> None:
        if isinstance(step, Transform):
            self._run_transform(step, pipeline, results)
        elif isinstance(step, Series):
            for s in step.steps:
                self._run_step(s, pipeline, results)
        elif isinstance(step, Parallel):
            self._run_parallel(step, pipeline, results)
        elif isinstance(step, Ref):
            try:
                results.update(self.run(step.name))
            except PipelineFailed as e:
                results.update(e.results)
                raise e.error
        else:
            raise TypeError(f"Unknown step type: {type(step).__name__}")

    def _run_parallel(self, step: Parallel, pipeline: str, results: Dict[str, str]) -> None:
        first_error: Optional[TransformError] = None

        with ThreadPoolExecutor(max_workers=len(step.steps), thread_name_prefix=pipeline) as pool:
            futures = [pool.submit(self._run_step, s, pipeline, results) for s in step.steps]

            for fut in as_completed(futures):
                try:
                    fut.result()
                except TransformError as e:
                    if first_error is None:
                        first_error = e

        if first_error is not None:
            raise first_error

    def _run_transform(self, step: Transform, pipeline: str, results: Dict[str, str]) -> None:
        console = self.ctx.console
        path = f"{pipeline}/{step.name}"
        console.print_transform_start(path)
        started = time.monotonic()

        try:
            step.fn(self.ctx)
        except TransformError:
            results[path] = "failed"
            raise
        except Exception as e:  # noqa: BLE001
            results[path] = "failed"
            message = str(e) or type(e).__name__
            console.print_failure(path, message, hint=getattr(e, "hint", None))
            raise TransformError(
                pipeline=pipeline,
                transform=step.name,
                message=message,
                details={"error_type": type(e).__name__},
            ) from e

        results[path] = "ok"
        console.print_transform_done(path, time.monotonic() - started)
