"""Pydantic models shared by the scanner, planner, executor and pipeline.

The flow through these types is::

    DiagramBlock  →  (Metadata, body)  →  RenderTask  →  TaskOutcome  →  RunResult

Every instance belongs to the theme pass that created it; nothing here is
shared between concurrent render tasks.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class OutputFormat(str, Enum):
    """Image formats the renderer can produce."""
    SVG = "svg"
    PNG = "png"


class TaskStatus(str, Enum):
    """Terminal state of a single render task."""
    RENDERED = "rendered"
    SKIPPED = "skipped"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Scanning & planning
# ---------------------------------------------------------------------------

class DiagramBlock(BaseModel, frozen=True):
    """Raw content of one ```` ```mermaid ```` fence found in a content file."""
    source: str
    file: str  # relative to the site directory, POSIX separators
    locale: str


class Metadata(BaseModel):
    """Fields parsed from the optional ``---`` header of a diagram block.

    Absent keys stay ``None``; defaults are applied by whoever consumes them.
    """
    id: Optional[str] = None
    alt: Optional[str] = None
    caption: Optional[str] = None
    width: Optional[str] = None
    description_id: Optional[str] = None
    skip_prerender: bool = False

    @property
    def is_empty(self) -> bool:
        return self == Metadata()


class ThemeVariant(BaseModel, frozen=True):
    """One rendering pass: a renderer theme plus the filename suffix it writes."""
    name: str  # e.g. "light"
    theme: str  # mermaid theme passed to the renderer, e.g. "neutral"
    suffix: str = ""


class RenderTask(BaseModel):
    """A single diagram/locale/variant image to produce."""
    identity: str
    locale: str
    variant: str
    suffix: str = ""
    output_format: OutputFormat = OutputFormat.SVG
    body: str
    output_path: Path
    source_file: str = ""

    @property
    def filename(self) -> str:
        return self.output_path.name


def output_filename(
    identity: str, locale: str, suffix: str, output_format: OutputFormat
) -> str:
    """``{identity}-{locale}{suffix}.{format}``: the task dedup key."""
    return f"{identity}-{locale}{suffix}.{OutputFormat(output_format).value}"


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class TaskOutcome(BaseModel):
    """What happened to one task during execution."""
    filename: str
    status: TaskStatus
    error: Optional[str] = None


class RunResult(BaseModel):
    """Counts for one theme pass."""
    variant: str = ""
    rendered: int = 0
    skipped: int = 0
    failed: int = 0
    failures: list[TaskOutcome] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.rendered + self.skipped + self.failed

    @property
    def success(self) -> bool:
        return self.failed == 0


class RenderContext(BaseModel):
    """Resolved settings a markup transformer needs to reference the images.

    This is handed to the transformer explicitly (return value or JSON file)
    instead of living in process-wide state.
    """
    public_dir: str = "/img/diagrams"
    default_locale: str = "en"
    output_format: OutputFormat = OutputFormat.SVG
    output_suffixes: dict[str, str] = Field(
        default_factory=lambda: {"light": "-light", "dark": "-dark"}
    )
    render_dual_themes: bool = True
    default_theme_suffix: Optional[str] = None


class PipelineResult(BaseModel):
    """Aggregate result of every theme pass of a build."""
    context: RenderContext = Field(default_factory=RenderContext)
    runs: list[RunResult] = Field(default_factory=list)
    skipped_run: bool = False

    @property
    def rendered(self) -> int:
        return sum(r.rendered for r in self.runs)

    @property
    def skipped(self) -> int:
        return sum(r.skipped for r in self.runs)

    @property
    def failed(self) -> int:
        return sum(r.failed for r in self.runs)

    @property
    def success(self) -> bool:
        return all(r.success for r in self.runs)
