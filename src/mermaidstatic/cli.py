"""mermaid-static CLI — pre-render Mermaid diagrams of a docs site."""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from . import __version__
from .core.config import ConfigError, load_config
from .core.identity import derive_identity
from .core.metadata import extract_metadata
from .core.scanner import ScanError
from .pipeline import Pipeline
from .render.planner import DuplicateOutputError

console = Console()


def _configure_logging(verbose: bool) -> None:
    logger = logging.getLogger("mermaidstatic")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.addHandler(RichHandler(console=console, show_path=False, markup=False))


def _load(config_path: str | None, site_dir: str | None, **overrides):
    try:
        return load_config(config_path, site_dir=Path(site_dir) if site_dir else None, **overrides)
    except ConfigError as exc:
        console.print(f"[bold red]❌ Invalid configuration:[/] {escape(str(exc))}")
        raise SystemExit(1)


@click.group()
@click.version_option(version=__version__, prog_name="mermaid-static")
def main():
    """mermaid-static — render Mermaid diagrams to static images at build time."""
    pass


@main.command()
@click.argument("site_dir", required=False, type=click.Path(file_okay=False))
@click.option(
    "-c", "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="YAML, JSON or TOML configuration file.",
)
@click.option(
    "--content-path",
    "content_paths",
    multiple=True,
    help="Content root to scan, relative to SITE_DIR (repeatable; default: docs, blog).",
)
@click.option(
    "-o", "--output-dir",
    default=None,
    help="Image directory under the static dir (default: img/diagrams).",
)
@click.option(
    "-f", "--format",
    "fmt",
    type=click.Choice(["svg", "png"], case_sensitive=False),
    default=None,
    help="Output image format (default: svg).",
)
@click.option(
    "-j", "--concurrency",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum simultaneous renders (default: CPU count).",
)
@click.option("--locale", "default_locale", default=None, help="Default locale (default: en).")
@click.option(
    "--backend",
    type=click.Choice(["mmdc", "ink"], case_sensitive=False),
    default=None,
    help="Renderer: mmdc (Mermaid CLI) or ink (mermaid.ink HTTP API).",
)
@click.option("--timeout", type=float, default=None, help="Per-diagram render timeout in seconds.")
@click.option(
    "--allow-collisions",
    is_flag=True,
    default=False,
    help="Let a later diagram replace an earlier one with the same output file.",
)
@click.option(
    "--context-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write the resolved render context (JSON) for the markup transformer.",
)
@click.option("--strict", is_flag=True, default=False, help="Exit non-zero if any diagram failed.")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Show per-diagram logging.")
def render(
    site_dir: str | None,
    config_path: str | None,
    content_paths: tuple[str, ...],
    output_dir: str | None,
    fmt: str | None,
    concurrency: int | None,
    default_locale: str | None,
    backend: str | None,
    timeout: float | None,
    allow_collisions: bool,
    context_file: str | None,
    strict: bool,
    verbose: bool,
):
    """Scan SITE_DIR for mermaid blocks and render them to images."""
    _configure_logging(verbose)
    config = _load(
        config_path,
        site_dir,
        content_paths=list(content_paths) or None,
        output_dir=output_dir,
        output_format=fmt.lower() if fmt else None,
        concurrency=concurrency,
        default_locale=default_locale,
        backend=backend.lower() if backend else None,
        timeout=timeout,
        allow_collisions=allow_collisions or None,
    )

    pipeline = Pipeline(config)
    try:
        result = pipeline.run()
    except ScanError as exc:
        console.print(f"[bold red]❌ Scan failed:[/] {escape(str(exc))}")
        raise SystemExit(1)
    except DuplicateOutputError as exc:
        console.print(f"[bold red]❌ Conflicting diagrams:[/] {escape(str(exc))}")
        raise SystemExit(1)

    if context_file:
        path = Path(context_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(result.context.model_dump_json(indent=2), encoding="utf-8")
        console.print(f"[green]✓[/] Render context written to {path}")

    console.print(
        f"\n[bold green]🎉 Done![/] {result.rendered} rendered, "
        f"{result.skipped} cached, {result.failed} failed "
        f"→ {config.output_path}\n"
    )

    if strict and not result.success:
        raise SystemExit(1)


@main.command()
@click.argument("site_dir", required=False, type=click.Path(file_okay=False))
@click.option("-c", "--config", "config_path", type=click.Path(dir_okay=False), default=None)
def scan(site_dir: str | None, config_path: str | None):
    """List the mermaid diagrams found in SITE_DIR without rendering."""
    from rich.table import Table as RichTable

    config = _load(config_path, site_dir)
    try:
        blocks = Pipeline(config).scan()
    except ScanError as exc:
        console.print(f"[bold red]❌ Scan failed:[/] {escape(str(exc))}")
        raise SystemExit(1)

    table = RichTable(title=f"Mermaid diagrams ({len(blocks)})", show_lines=False)
    table.add_column("File", style="cyan")
    table.add_column("Locale")
    table.add_column("Identity", style="bold")
    table.add_column("Prerender")

    for block in blocks:
        metadata, body = extract_metadata(block.source)
        table.add_row(
            block.file,
            block.locale,
            derive_identity(body, metadata.id),
            "[dim]no[/]" if metadata.skip_prerender else "yes",
        )

    console.print(table)


if __name__ == "__main__":
    main()
