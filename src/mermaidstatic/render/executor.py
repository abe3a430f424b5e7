"""Run render tasks on a bounded thread pool.

Each task, in order:

1. returns *skipped* when its output file already exists (the cache);
2. writes the diagram body to ``temp_<filename>.mmd`` in the temp dir;
3. asks the renderer to turn that file into the output image;
4. removes the temporary file whatever happened.

A failing task is logged with the renderer's output and counted; it never
stops the rest of the batch. Outcomes are collected on the calling thread
as tasks complete, so the counters have a single writer.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from ..core.models import RenderTask, RunResult, TaskOutcome, TaskStatus
from .mermaid_renderer import Renderer, RenderError
from .reporter import summarize

logger = logging.getLogger(__name__)


def temp_input_path(temp_dir: Path, task: RenderTask) -> Path:
    """Per-task input file; unique because output filenames are unique."""
    return temp_dir / f"temp_{task.filename}.mmd"


class RenderExecutor:
    """Execute ``RenderTask`` objects with at most *concurrency* in flight.

    Parameters
    ----------
    renderer
        Backend used for every task of the batch.
    temp_dir
        Directory for the temporary ``.mmd`` input files.
    concurrency
        Maximum simultaneous renders (minimum 1, defaults to CPU count).
    """

    def __init__(
        self,
        renderer: Renderer,
        temp_dir: Path,
        concurrency: int | None = None,
    ) -> None:
        self.renderer = renderer
        self.temp_dir = Path(temp_dir)
        self.concurrency = (
            max(1, concurrency) if concurrency is not None else (os.cpu_count() or 1)
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def execute(self, tasks: list[RenderTask], *, variant: str = "") -> RunResult:
        """Render every task and return the pass counts."""
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        for directory in {t.output_path.parent for t in tasks}:
            directory.mkdir(parents=True, exist_ok=True)

        logger.info("Starting %d render tasks with concurrency: %d", len(tasks), self.concurrency)
        outcomes: list[TaskOutcome] = []
        with ThreadPoolExecutor(max_workers=self.concurrency) as pool:
            futures = {pool.submit(self.run_task, task): task for task in tasks}
            for future in as_completed(futures):
                outcomes.append(future.result())

        return summarize(outcomes, variant=variant)

    def run_task(self, task: RenderTask) -> TaskOutcome:
        """Process a single task; never raises for per-diagram problems."""
        if task.output_path.exists():
            logger.info("Skipping cached: %s", task.filename)
            return TaskOutcome(filename=task.filename, status=TaskStatus.SKIPPED)

        temp_input = temp_input_path(self.temp_dir, task)
        try:
            temp_input.write_text(task.body, encoding="utf-8")
            logger.info("Rendering new: %s", task.filename)
            self.renderer.render(temp_input, task.output_path)
        except RenderError as exc:
            logger.error("Failed to render %s (from %s): %s", task.filename, task.source_file, exc)
            if exc.diagnostics:
                logger.error("%s", exc.diagnostics)
            return TaskOutcome(filename=task.filename, status=TaskStatus.FAILED, error=str(exc))
        except Exception as exc:
            logger.exception("Failed to render %s (from %s)", task.filename, task.source_file)
            return TaskOutcome(filename=task.filename, status=TaskStatus.FAILED, error=str(exc))
        finally:
            self._cleanup(temp_input)

        logger.info("Finished rendering: %s", task.filename)
        return TaskOutcome(filename=task.filename, status=TaskStatus.RENDERED)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _cleanup(temp_input: Path) -> None:
        try:
            temp_input.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Failed to delete temp file %s: %s", temp_input, exc)
