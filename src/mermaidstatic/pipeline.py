"""Orchestration pipeline — ties scanner, planner, renderer and executor together."""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from rich.console import Console

from .core.config import RenderConfig, build_render_context, resolve_theme_variants
from .core.models import DiagramBlock, PipelineResult, RenderContext, ThemeVariant
from .core.scanner import ContentScanner
from .render.executor import RenderExecutor
from .render.mermaid_renderer import Renderer, build_renderer
from .render.planner import plan_tasks
from .render.reporter import print_summary

logger = logging.getLogger(__name__)
console = Console()

RendererFactory = Callable[[RenderConfig, ThemeVariant, Optional[Path]], Renderer]


@dataclass
class RunGuard:
    """Run-once flag owned by the build driver.

    A multi-phase build (one phase per locale, say) shares one guard so the
    diagrams are rendered by the first phase only.
    """

    done: bool = False

    def mark_done(self) -> None:
        self.done = True


@dataclass
class BaseConfig:
    """Resolved ``-c`` file for the renderer and whether we created it."""

    path: Optional[Path] = None
    temporary: bool = False


def materialize_base_config(config: RenderConfig) -> BaseConfig:
    """Locate the renderer's base configuration.

    Uses ``config_file`` when it exists; otherwise writes the inline
    ``mermaid_config`` mapping to a content-addressed temp file. Failure
    to write it only means rendering without a base config.
    """
    config_file = config.base_config_path
    if config_file.is_file():
        logger.info("Using base config from %s", config_file)
        return BaseConfig(path=config_file)

    if not config.mermaid_config:
        return BaseConfig()

    try:
        config_json = json.dumps(config.mermaid_config)
        digest = hashlib.md5(config_json.encode("utf-8")).hexdigest()
        config.temp_dir.mkdir(parents=True, exist_ok=True)
        temp_path = config.temp_dir / f"mermaid-temp-config-{digest}.json"
        temp_path.write_text(config_json, encoding="utf-8")
    except (OSError, TypeError, ValueError) as exc:
        logger.warning("Failed to write temporary mermaid config: %s", exc)
        return BaseConfig()

    logger.info("Using inline mermaid config via %s", temp_path)
    return BaseConfig(path=temp_path, temporary=True)


def _release_base_config(base: BaseConfig) -> None:
    if not (base.temporary and base.path):
        return
    try:
        base.path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Failed to delete temp config file %s: %s", base.path, exc)


class Pipeline:
    """End-to-end content tree → pre-rendered diagram images.

    Usage::

        pipeline = Pipeline(load_config("mermaid-static.yaml"))
        result = pipeline.run()
        print(result.rendered, result.failed)
    """

    def __init__(
        self,
        config: RenderConfig,
        *,
        renderer_factory: RendererFactory | None = None,
        scanner: ContentScanner | None = None,
    ) -> None:
        self.config = config
        self.renderer_factory = renderer_factory or build_renderer
        self.scanner = scanner or ContentScanner(
            default_locale=config.default_locale,
            i18n_dir=config.i18n_dir,
            exclude=config.exclude,
        )

    @property
    def context(self) -> RenderContext:
        return build_render_context(self.config)

    def scan(self) -> list[DiagramBlock]:
        return self.scanner.scan(self.config.content_paths, self.config.site_dir)

    def run(self, *, guard: RunGuard | None = None) -> PipelineResult:
        """Scan once, then plan and render every theme pass.

        Raises ``ScanError`` for unreadable content and
        ``DuplicateOutputError`` for conflicting diagram ids; individual
        render failures are only counted.
        """
        config = self.config
        result = PipelineResult(context=self.context)

        if guard is not None and guard.done:
            console.print("[dim]Diagrams already rendered for this build, skipping.[/]")
            result.skipped_run = True
            return result

        variants = resolve_theme_variants(config)
        output_dir = config.output_path
        output_dir.mkdir(parents=True, exist_ok=True)
        config.temp_dir.mkdir(parents=True, exist_ok=True)

        console.print(f"[bold blue]🔍 Scanning content in:[/] {config.site_dir}")
        blocks = self.scan()
        console.print(f"[green]✓[/] Found {len(blocks)} mermaid block(s)")

        base = materialize_base_config(config)
        try:
            for variant in variants:
                console.print(
                    f"\n[bold blue]📐 Rendering theme[/] '{variant.theme}' "
                    f"[dim](suffix '{variant.suffix}', concurrency {config.concurrency})[/]"
                )
                tasks = plan_tasks(
                    blocks,
                    variant,
                    output_dir,
                    config.output_format,
                    allow_collisions=config.allow_collisions,
                )
                renderer = self.renderer_factory(config, variant, base.path)
                executor = RenderExecutor(renderer, config.temp_dir, config.concurrency)
                run = executor.execute(tasks, variant=variant.name)
                print_summary(run, theme=variant.theme, out=console)
                result.runs.append(run)
        finally:
            _release_base_config(base)

        if guard is not None:
            guard.mark_done()
        return result
