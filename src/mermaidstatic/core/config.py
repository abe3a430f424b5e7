"""Render configuration: defaults, config-file loading and theme resolution.

Settings can come from a YAML/JSON/TOML file and from explicit overrides
(CLI arguments), the latter taking precedence::

    # mermaid-static.yaml
    content_paths: [docs, blog]
    output_dir: img/diagrams
    output_format: svg
    concurrency: 4
    mmdc_args: ["-b", "transparent"]
    themes:
      light: neutral
      dark: dark
    color_mode:
      disable_switch: false
      default_mode: light
"""

from __future__ import annotations

import json
import os
import posixpath
import tempfile
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from .models import OutputFormat, RenderContext, ThemeVariant

TEMP_DIR_NAME = "mermaid-static"


class ConfigError(ValueError):
    """Raised when the configuration file or values are invalid."""


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class ThemeNames(BaseModel):
    """Mermaid theme used for each colour mode."""
    light: str = "neutral"
    dark: str = "dark"


class ColorModeConfig(BaseModel):
    """Site colour-mode settings that decide how many passes are rendered."""
    disable_switch: bool = False
    default_mode: Literal["light", "dark"] = "light"


def _default_concurrency() -> int:
    return os.cpu_count() or 4


def _default_temp_dir() -> Path:
    return Path(tempfile.gettempdir()) / TEMP_DIR_NAME


class RenderConfig(BaseModel):
    """Everything a build needs to pre-render a site's diagrams."""

    site_dir: Path = Path(".")
    content_paths: list[str] = Field(default_factory=lambda: ["docs", "blog"])
    i18n_dir: str = "i18n"
    default_locale: str = "en"
    exclude: list[str] = Field(default_factory=list)

    static_dir: str = "static"
    output_dir: str = "img/diagrams"
    base_url: str = "/"
    output_format: OutputFormat = OutputFormat.SVG
    output_suffixes: dict[str, str] = Field(
        default_factory=lambda: {"light": "-light", "dark": "-dark"}
    )

    config_file: str = "mermaid.config.json"
    mermaid_config: Optional[dict[str, Any]] = None
    themes: ThemeNames = Field(default_factory=ThemeNames)
    color_mode: ColorModeConfig = Field(default_factory=ColorModeConfig)

    backend: Literal["mmdc", "ink"] = "mmdc"
    mmdc_command: Optional[list[str]] = None
    mmdc_args: list[str] = Field(default_factory=lambda: ["-b", "transparent"])
    concurrency: int = Field(default_factory=_default_concurrency, ge=1)
    timeout: Optional[float] = Field(default=None, gt=0)
    temp_dir: Path = Field(default_factory=_default_temp_dir)

    allow_collisions: bool = False

    @property
    def output_path(self) -> Path:
        """Absolute directory the images are written to."""
        return (self.site_dir / self.static_dir / self.output_dir).resolve()

    @property
    def base_config_path(self) -> Path:
        return (self.site_dir / self.config_file).resolve()


# ---------------------------------------------------------------------------
# Loader — config file + overrides
# ---------------------------------------------------------------------------

def _read_config_file(path: Path) -> dict[str, Any]:
    raw = path.read_text(encoding="utf-8")
    if not raw.strip():
        return {}

    try:
        if path.suffix in (".yaml", ".yml"):
            import yaml

            data = yaml.safe_load(raw) or {}
        elif path.suffix == ".toml":
            import tomllib

            data = tomllib.loads(raw)
        else:
            data = json.loads(raw)
    except Exception as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")
    return data


def load_config(config_path: str | Path | None = None, **overrides: Any) -> RenderConfig:
    """Build a ``RenderConfig`` from an optional file plus overrides.

    Overrides whose value is ``None`` are ignored so unset CLI options do
    not mask file values. A relative ``site_dir`` in the file is resolved
    against the file's directory.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path).expanduser().resolve()
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        data = _read_config_file(path)
        site_dir = Path(data.get("site_dir", "."))
        if not site_dir.is_absolute():
            data["site_dir"] = path.parent / site_dir

    for key, value in overrides.items():
        if value is not None:
            data[key] = value

    try:
        return RenderConfig(**data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc


# ---------------------------------------------------------------------------
# Theme passes & collaborator context
# ---------------------------------------------------------------------------

def resolve_theme_variants(config: RenderConfig) -> list[ThemeVariant]:
    """Theme passes to render, in order.

    With the colour-mode switch enabled both light and dark images are
    produced; otherwise only the default mode is rendered.
    """
    suffixes = config.output_suffixes
    light = ThemeVariant(
        name="light", theme=config.themes.light, suffix=suffixes.get("light", "")
    )
    dark = ThemeVariant(
        name="dark", theme=config.themes.dark, suffix=suffixes.get("dark", "")
    )

    if config.color_mode.disable_switch:
        return [dark if config.color_mode.default_mode == "dark" else light]
    return [light, dark]


def build_render_context(config: RenderConfig) -> RenderContext:
    """Settings the markup transformer reads to point at the rendered files."""
    variants = resolve_theme_variants(config)
    dual = len(variants) > 1
    return RenderContext(
        public_dir=posixpath.join(config.base_url or "/", config.output_dir.strip("/")),
        default_locale=config.default_locale,
        output_format=config.output_format,
        output_suffixes=dict(config.output_suffixes),
        render_dual_themes=dual,
        default_theme_suffix=None if dual else variants[0].suffix,
    )
