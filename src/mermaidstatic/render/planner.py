"""Turn scanned diagram blocks into render tasks for one theme pass."""

from __future__ import annotations

import logging
from pathlib import Path

from ..core.identity import derive_identity
from ..core.metadata import extract_metadata
from ..core.models import (
    DiagramBlock,
    OutputFormat,
    RenderTask,
    ThemeVariant,
    output_filename,
)

logger = logging.getLogger(__name__)


class DuplicateOutputError(ValueError):
    """Two different diagram bodies would be written to the same file."""

    def __init__(self, filename: str, first: RenderTask, second: RenderTask) -> None:
        super().__init__(
            f"Diagrams in {first.source_file or '?'} and {second.source_file or '?'} "
            f"both render to {filename} with different content; give one of them "
            f"a distinct 'id:'"
        )
        self.filename = filename
        self.first = first
        self.second = second


def plan_tasks(
    blocks: list[DiagramBlock],
    variant: ThemeVariant,
    output_dir: Path,
    output_format: OutputFormat = OutputFormat.SVG,
    *,
    allow_collisions: bool = False,
) -> list[RenderTask]:
    """Build one task per (identity, locale, variant), keyed by filename.

    Blocks marked ``prerender: false`` produce no task. Blocks that resolve
    to an existing filename with the same body are merged. With a
    different body ``DuplicateOutputError`` is raised, unless
    *allow_collisions* is set, in which case the later body wins.

    The result keeps the order in which each filename was first seen.
    """
    output_dir = Path(output_dir)
    tasks: dict[str, RenderTask] = {}
    candidates = 0

    for block in blocks:
        metadata, body = extract_metadata(block.source)
        if metadata.skip_prerender:
            logger.debug("Skipping block with 'prerender: false' in %s", block.file)
            continue

        identity = derive_identity(body, metadata.id)
        filename = output_filename(identity, block.locale, variant.suffix, output_format)
        task = RenderTask(
            identity=identity,
            locale=block.locale,
            variant=variant.name,
            suffix=variant.suffix,
            output_format=output_format,
            body=body,
            output_path=output_dir / filename,
            source_file=block.file,
        )
        candidates += 1
        logger.debug(
            "Queuing task for ID %s (locale: %s, theme: %s)",
            identity, block.locale, variant.theme,
        )

        existing = tasks.get(filename)
        if existing is not None and existing.body != body:
            if not allow_collisions:
                raise DuplicateOutputError(filename, existing, task)
            logger.warning(
                "%s: diagram from %s replaces a different one from %s",
                filename, task.source_file, existing.source_file,
            )
        tasks[filename] = task

    logger.info(
        "Found %d diagram tasks, %d unique for theme '%s'.",
        candidates, len(tasks), variant.theme,
    )
    return list(tasks.values())
