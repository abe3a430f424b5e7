"""Task planning and concurrent rendering of diagram images."""

from .executor import RenderExecutor
from .mermaid_renderer import InkRenderer, MmdcRenderer, Renderer, RenderError, build_renderer
from .planner import DuplicateOutputError, plan_tasks
from .reporter import print_summary, summarize

__all__ = [
    "RenderExecutor",
    "InkRenderer",
    "MmdcRenderer",
    "Renderer",
    "RenderError",
    "build_renderer",
    "DuplicateOutputError",
    "plan_tasks",
    "print_summary",
    "summarize",
]
