"""Find Mermaid diagram blocks in a site's Markdown/MDX content.

For every content root (``docs``, ``blog`` …) both the root itself and its
translated mirrors under ``<i18n>/<locale>/**/<root>/`` are searched. Files
carrying a ``draft: true`` marker are skipped entirely.

Uses *mistune 3.x* to build a Markdown AST and collects every fenced code
block whose info string starts with ``mermaid``, however deeply it is
nested (lists, block quotes …). Fences that CommonMark swallows into raw
HTML blocks (``<details>``) or indented code (MDX ``<TabItem>`` nesting)
are matched line by line.
"""

from __future__ import annotations

import fnmatch
import logging
import re
from pathlib import Path
from typing import Any, Iterable

import mistune

from .models import DiagramBlock

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS = ("md", "mdx")
DIAGRAM_LANGUAGE = "mermaid"

_DRAFT_RE = re.compile(r"draft:\s*true")
_FENCE_OPEN_RE = re.compile(
    r"^(?P<indent>[ \t]*)(?P<fence>`{3,}|~{3,})[ \t]*mermaid\b[^`]*$", re.IGNORECASE
)


class ScanError(RuntimeError):
    """Raised when a content file cannot be read; aborts the whole scan."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Cannot read content file {path}: {reason}")
        self.path = path


def _dedent(line: str, width: int) -> str:
    index = 0
    while index < width and index < len(line) and line[index] in " \t":
        index += 1
    return line[index:]


def _iter_embedded_fences(text: str) -> Iterable[str]:
    """Yield mermaid fences found line by line in *text*.

    Used for raw HTML/JSX blocks and indented code, where CommonMark does
    not parse the fence. Bodies are dedented by the opening fence's indent.
    """
    lines = text.splitlines()
    index = 0
    while index < len(lines):
        match = _FENCE_OPEN_RE.match(lines[index])
        index += 1
        if match is None:
            continue
        fence = match.group("fence")
        width = len(match.group("indent"))
        body = []
        while index < len(lines):
            closing = lines[index].strip()
            index += 1
            if len(closing) >= len(fence) and set(closing) == {fence[0]}:
                break
            body.append(_dedent(lines[index - 1], width))
        yield "\n".join(body) + "\n"


def _iter_diagram_sources(nodes: Iterable[Any]) -> Iterable[str]:
    """Yield the raw text of every mermaid fence in a mistune AST."""
    for node in nodes:
        if not isinstance(node, dict):
            continue
        node_type = node.get("type")
        if node_type in ("block_code", "code_block"):
            info = (node.get("attrs") or {}).get("info", "") or ""
            lang = info.split()[0] if info.strip() else ""
            if lang.lower() == DIAGRAM_LANGUAGE:
                yield node.get("raw", "") or node.get("text", "")
            elif node.get("style") == "indent":
                # indented code, e.g. a fence nested inside JSX
                yield from _iter_embedded_fences(node.get("raw", "") or "")
            continue
        if node_type == "block_html":
            yield from _iter_embedded_fences(node.get("raw", "") or "")
            continue
        children = node.get("children")
        if isinstance(children, list):
            yield from _iter_diagram_sources(children)


class ContentScanner:
    """Collect ``DiagramBlock`` objects from the content roots of a site.

    Parameters
    ----------
    default_locale
        Locale assigned to files outside the i18n tree.
    i18n_dir
        Name of the translations directory under the site root.
    exclude
        Glob patterns (relative to the site root, POSIX style) of files
        to ignore.
    """

    def __init__(
        self,
        *,
        default_locale: str = "en",
        i18n_dir: str = "i18n",
        exclude: list[str] | None = None,
    ) -> None:
        self.default_locale = default_locale
        self.i18n_dir = i18n_dir
        self.exclude = list(exclude or [])
        self._md = mistune.create_markdown(renderer="ast")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def scan(self, content_roots: list[str], site_dir: Path) -> list[DiagramBlock]:
        """Return every diagram block under *content_roots* in *site_dir*.

        Raises ``ScanError`` on the first unreadable file.
        """
        site_dir = Path(site_dir)
        files = self.discover_files(content_roots, site_dir)
        logger.info("Found %d content files to scan.", len(files))

        blocks: list[DiagramBlock] = []
        for path in files:
            blocks.extend(self.scan_file(path, site_dir))
        return blocks

    def discover_files(self, content_roots: list[str], site_dir: Path) -> list[Path]:
        """List candidate Markdown files, sorted and de-duplicated."""
        found: set[Path] = set()
        for pattern in self.glob_patterns(content_roots):
            logger.debug("Globbing %s", pattern)
            found.update(p for p in site_dir.glob(pattern) if p.is_file())

        return sorted(
            p for p in found if not self._is_excluded(p.relative_to(site_dir).as_posix())
        )

    def glob_patterns(self, content_roots: list[str]) -> list[str]:
        patterns: list[str] = []
        for root in content_roots:
            root = root.strip("/")
            for ext in MARKDOWN_EXTENSIONS:
                patterns.append(f"{root}/**/*.{ext}")
            for ext in MARKDOWN_EXTENSIONS:
                patterns.append(f"{self.i18n_dir}/*/**/{root}/**/*.{ext}")
        return patterns

    def scan_file(self, path: Path, site_dir: Path) -> list[DiagramBlock]:
        """Extract the diagram blocks of a single file."""
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ScanError(path, str(exc)) from exc

        relative = path.relative_to(site_dir).as_posix()
        if _DRAFT_RE.search(content):
            logger.warning("Skipping draft file: %s", relative)
            return []

        locale = self.locale_for(relative)
        ast_nodes: list[dict[str, Any]] = self._md(content)  # type: ignore[assignment]
        blocks = [
            DiagramBlock(source=source, file=relative, locale=locale)
            for source in _iter_diagram_sources(ast_nodes)
        ]
        if blocks:
            logger.info("Found %d mermaid blocks in: %s", len(blocks), relative)
        return blocks

    def locale_for(self, relative_path: str) -> str:
        """Locale segment of an i18n path, else the default locale."""
        parts = relative_path.split("/")
        if len(parts) > 2 and parts[0] == self.i18n_dir:
            return parts[1]
        return self.default_locale

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _is_excluded(self, relative_path: str) -> bool:
        return any(fnmatch.fnmatch(relative_path, pattern) for pattern in self.exclude)
