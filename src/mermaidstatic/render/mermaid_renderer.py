"""Render a Mermaid source file to an image file.

Two backends implement the same file-in/file-out contract:

1. **mmdc** (default) – the official Mermaid CLI
   (``@mermaid-js/mermaid-cli``), run as ``mmdc`` when it is on ``PATH``
   and through ``npx`` otherwise.

2. **mermaid.ink** – HTTP renderer. The diagram is base64 encoded into
   ``https://mermaid.ink/svg/{encoded}`` (or ``/img/`` for PNG).

Either backend raises :class:`RenderError` when no image was produced.
The executor only depends on the :class:`Renderer` protocol, so tests can
substitute a stub.
"""

from __future__ import annotations

import base64
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional, Protocol

import httpx

from ..core.config import RenderConfig
from ..core.models import OutputFormat, ThemeVariant

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_MERMAID_INK_BASE = "https://mermaid.ink"
_REQUEST_TIMEOUT = 30.0
_NPX_COMMAND = ["npx", "--yes", "@mermaid-js/mermaid-cli"]


class RenderError(RuntimeError):
    """The renderer failed to produce the output file."""

    def __init__(
        self,
        message: str,
        *,
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    @property
    def diagnostics(self) -> str:
        """Captured renderer output, stdout first."""
        return "\n".join(s.strip() for s in (self.stdout, self.stderr) if s and s.strip())


class Renderer(Protocol):
    """Anything that can turn *input_path* into an image at *output_path*."""

    def render(self, input_path: Path, output_path: Path) -> None:
        ...


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _plain_base64(text: str) -> str:
    """URL-safe base64 encoding used by the mermaid.ink routes."""
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii")


def default_mmdc_command() -> list[str]:
    """``mmdc`` if installed globally, else run it through ``npx``."""
    if shutil.which("mmdc"):
        return ["mmdc"]
    return list(_NPX_COMMAND)


# ---------------------------------------------------------------------------
# Backend: mmdc (Mermaid CLI)
# ---------------------------------------------------------------------------

class MmdcRenderer:
    """Invoke the Mermaid CLI for one diagram at a time.

    Parameters
    ----------
    theme
        Mermaid theme passed as ``-t``.
    config_path
        Optional base configuration passed as ``-c``.
    extra_args
        Free-form arguments appended to every invocation.
    command
        Executable prefix; defaults to :func:`default_mmdc_command`.
    timeout
        Seconds before an invocation is abandoned; ``None`` waits forever.
    """

    def __init__(
        self,
        theme: str = "default",
        *,
        config_path: Path | None = None,
        extra_args: list[str] | None = None,
        command: list[str] | None = None,
        timeout: float | None = None,
    ) -> None:
        self.theme = theme
        self.config_path = config_path
        self.extra_args = list(extra_args or [])
        self.command = list(command) if command else default_mmdc_command()
        self.timeout = timeout

    def build_command(self, input_path: Path, output_path: Path) -> list[str]:
        cmd = [*self.command, "-i", str(input_path), "-o", str(output_path)]
        if self.config_path is not None:
            cmd.extend(["-c", str(self.config_path)])
        cmd.extend(["-t", self.theme])
        cmd.extend(self.extra_args)
        return cmd

    def render(self, input_path: Path, output_path: Path) -> None:
        cmd = self.build_command(input_path, output_path)
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            raise RenderError(f"Mermaid CLI not found: {cmd[0]}") from exc
        except subprocess.TimeoutExpired as exc:
            raise RenderError(
                f"mmdc timed out after {self.timeout}s",
                stdout=_as_text(exc.stdout),
                stderr=_as_text(exc.stderr),
            ) from exc

        if result.returncode != 0:
            raise RenderError(
                f"mmdc exited with status {result.returncode}",
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
            )
        if not output_path.exists():
            raise RenderError(
                f"mmdc did not write {output_path.name}",
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
            )


def _as_text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


# ---------------------------------------------------------------------------
# Backend: mermaid.ink
# ---------------------------------------------------------------------------

class InkRenderer:
    """Render through the mermaid.ink HTTP API."""

    def __init__(
        self,
        theme: str = "default",
        *,
        output_format: OutputFormat = OutputFormat.SVG,
        base_url: str = _MERMAID_INK_BASE,
        timeout: float | None = None,
    ) -> None:
        self.theme = theme
        self.output_format = OutputFormat(output_format)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or _REQUEST_TIMEOUT

    def build_url(self, code: str) -> tuple[str, dict[str, str]]:
        encoded = _plain_base64(code)
        params = {"theme": self.theme}
        if self.output_format is OutputFormat.SVG:
            return f"{self.base_url}/svg/{encoded}", params
        params["type"] = "png"
        return f"{self.base_url}/img/{encoded}", params

    def render(self, input_path: Path, output_path: Path) -> None:
        code = input_path.read_text(encoding="utf-8")
        url, params = self.build_url(code)

        try:
            with httpx.Client(timeout=self.timeout, follow_redirects=True) as client:
                resp = client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise RenderError(f"mermaid.ink request failed: {exc}") from exc

        if resp.status_code != 200:
            raise RenderError(
                f"mermaid.ink returned HTTP {resp.status_code}",
                returncode=resp.status_code,
                stderr=resp.text[:500],
            )

        content_type = resp.headers.get("content-type", "")
        if "image" not in content_type:
            raise RenderError(
                f"mermaid.ink returned unexpected content-type: {content_type}",
                stderr=resp.text[:500],
            )
        output_path.write_bytes(resp.content)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def build_renderer(
    config: RenderConfig,
    variant: ThemeVariant,
    base_config_path: Path | None = None,
) -> Renderer:
    """Renderer for one theme pass, bound to the configured backend."""
    if config.backend == "ink":
        return InkRenderer(
            variant.theme,
            output_format=config.output_format,
            timeout=config.timeout,
        )
    return MmdcRenderer(
        variant.theme,
        config_path=base_config_path,
        extra_args=config.mmdc_args,
        command=config.mmdc_command,
        timeout=config.timeout,
    )
