"""Tests for the end-to-end pipeline (stub renderer, no external process)."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from mermaidstatic.core.config import RenderConfig
from mermaidstatic.core.identity import derive_identity
from mermaidstatic.core.scanner import ScanError
from mermaidstatic.pipeline import Pipeline, RunGuard, materialize_base_config
from mermaidstatic.render.planner import DuplicateOutputError

BODY = "graph TD\n    A-->B"


class RecordingRenderer:
    def __init__(self, variant, base_config, fail_on=()):
        self.variant = variant
        self.base_config = base_config
        self.fail_on = set(fail_on)
        self.outputs: list[str] = []

    def render(self, input_path: Path, output_path: Path) -> None:
        from mermaidstatic.render.mermaid_renderer import RenderError

        self.outputs.append(output_path.name)
        if output_path.name in self.fail_on:
            raise RenderError("boom")
        output_path.write_text(f"<svg>{self.variant.theme}</svg>", encoding="utf-8")


class RendererFactory:
    def __init__(self, fail_on=()):
        self.fail_on = fail_on
        self.created: list[RecordingRenderer] = []

    def __call__(self, config, variant, base_config):
        renderer = RecordingRenderer(variant, base_config, self.fail_on)
        self.created.append(renderer)
        return renderer


def _write(root: Path, relative: str, content: str) -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


@pytest.fixture
def site(tmp_path):
    site_dir = tmp_path / "site"
    _write(site_dir, "docs/intro.md", f"# Intro\n\n```mermaid\n{BODY}\n```\n")
    _write(site_dir, "i18n/de/docs/intro.md", f"# Einführung\n\n```mermaid\n{BODY}\n```\n")
    _write(
        site_dir,
        "blog/post.mdx",
        "```mermaid\n---\nid: checkout\n---\nsequenceDiagram\n  A->>B: hi\n```\n\n"
        "```mermaid\n---\nprerender: false\n---\npie\n  \"a\": 1\n```\n",
    )
    return site_dir


def _config(site_dir: Path, tmp_path: Path, **kwargs) -> RenderConfig:
    return RenderConfig(site_dir=site_dir, temp_dir=tmp_path / "tmp", concurrency=2, **kwargs)


class TestPipelineRun:
    def test_dual_theme_build(self, site, tmp_path):
        factory = RendererFactory()
        result = Pipeline(_config(site, tmp_path), renderer_factory=factory).run()

        ident = derive_identity(BODY)
        out_dir = site / "static" / "img" / "diagrams"
        expected = {
            f"{ident}-en-light.svg", f"{ident}-de-light.svg", "checkout-en-light.svg",
            f"{ident}-en-dark.svg", f"{ident}-de-dark.svg", "checkout-en-dark.svg",
        }
        assert {p.name for p in out_dir.iterdir()} == expected
        assert [r.variant for r in result.runs] == ["light", "dark"]
        assert (result.rendered, result.skipped, result.failed) == (6, 0, 0)
        assert [r.variant.theme for r in factory.created] == ["neutral", "dark"]
        assert result.context.render_dual_themes is True

    def test_second_build_hits_cache(self, site, tmp_path):
        Pipeline(_config(site, tmp_path), renderer_factory=RendererFactory()).run()
        factory = RendererFactory()
        result = Pipeline(_config(site, tmp_path), renderer_factory=factory).run()

        assert result.rendered == 0
        assert result.skipped == 6
        assert all(r.outputs == [] for r in factory.created)

    def test_single_theme(self, site, tmp_path):
        config = _config(site, tmp_path, color_mode={"disable_switch": True, "default_mode": "dark"})
        result = Pipeline(config, renderer_factory=RendererFactory()).run()

        assert [r.variant for r in result.runs] == ["dark"]
        assert result.context.default_theme_suffix == "-dark"
        names = {p.name for p in config.output_path.iterdir()}
        assert all(n.endswith("-dark.svg") for n in names)

    def test_failures_are_counted_not_raised(self, site, tmp_path):
        factory = RendererFactory(fail_on={"checkout-en-light.svg"})
        result = Pipeline(_config(site, tmp_path), renderer_factory=factory).run()

        assert result.failed == 1
        assert result.rendered == 5
        assert not result.success
        assert list((tmp_path / "tmp").glob("temp_*.mmd")) == []

    def test_run_guard(self, site, tmp_path):
        guard = RunGuard()
        factory = RendererFactory()
        pipeline = Pipeline(_config(site, tmp_path), renderer_factory=factory)

        first = pipeline.run(guard=guard)
        assert guard.done
        second = pipeline.run(guard=guard)

        assert first.rendered == 6
        assert second.skipped_run is True
        assert second.runs == []
        assert len(factory.created) == 2

    def test_conflicting_ids_raise(self, site, tmp_path):
        _write(site, "docs/other.md", "```mermaid\n---\nid: checkout\n---\ngraph LR\n```\n")
        with pytest.raises(DuplicateOutputError):
            Pipeline(_config(site, tmp_path), renderer_factory=RendererFactory()).run()

    def test_conflicting_ids_allowed(self, site, tmp_path):
        _write(site, "docs/other.md", "```mermaid\n---\nid: checkout\n---\ngraph LR\n```\n")
        config = _config(site, tmp_path, allow_collisions=True)
        result = Pipeline(config, renderer_factory=RendererFactory()).run()
        assert result.failed == 0

    def test_scan_error_propagates(self, site, tmp_path):
        (site / "docs" / "broken.md").write_bytes(b"\xff\xfe\xfa")
        with pytest.raises(ScanError):
            Pipeline(_config(site, tmp_path), renderer_factory=RendererFactory()).run()


class TestBaseConfig:
    def test_existing_config_file_used(self, site, tmp_path):
        (site / "mermaid.config.json").write_text("{}", encoding="utf-8")
        factory = RendererFactory()
        Pipeline(_config(site, tmp_path), renderer_factory=factory).run()

        assert factory.created[0].base_config == (site / "mermaid.config.json").resolve()
        assert (site / "mermaid.config.json").exists()

    def test_inline_config_materialized_then_removed(self, site, tmp_path):
        inline = {"theme": "base", "themeVariables": {"primaryColor": "#ff0000"}}
        factory = RendererFactory()
        Pipeline(_config(site, tmp_path, mermaid_config=inline), renderer_factory=factory).run()

        paths = {r.base_config for r in factory.created}
        assert len(paths) == 1
        path = paths.pop()
        assert path.name.startswith("mermaid-temp-config-")
        assert path.parent == tmp_path / "tmp"
        assert not path.exists()

    def test_materialize_writes_json(self, site, tmp_path):
        inline = {"flowchart": {"curve": "basis"}}
        base = materialize_base_config(_config(site, tmp_path, mermaid_config=inline))
        assert base.temporary
        assert json.loads(base.path.read_text(encoding="utf-8")) == inline

    def test_no_config(self, site, tmp_path):
        base = materialize_base_config(_config(site, tmp_path))
        assert base.path is None
        assert not base.temporary

    def test_unwritable_temp_dir_degrades(self, site, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a dir", encoding="utf-8")
        config = RenderConfig(site_dir=site, temp_dir=blocker / "tmp", mermaid_config={"a": 1})
        base = materialize_base_config(config)
        assert base.path is None
