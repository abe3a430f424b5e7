"""Parse the optional metadata header at the top of a diagram block.

A header looks like::

    ---
    id: checkout-flow
    alt: Checkout sequence
    caption: How an order is placed
    width: 600px
    descriptionId: checkout-desc
    prerender: false
    ---
    sequenceDiagram
        Alice->>Bob: Hello

Matching is purely textual: first match wins per key and values are
trimmed. Only the literal ``prerender: false`` disables pre-rendering.
A ``---`` block without any of these keys is Mermaid frontmatter and is
left in the body.
"""

from __future__ import annotations

import re

from .models import Metadata

# Header must open the block; delimiter lines are three or more dashes.
_HEADER_RE = re.compile(
    r"\A\s*^-{3,}[ \t]*\r?\n(?P<content>.*?)^-{3,}[ \t]*$",
    re.MULTILINE | re.DOTALL,
)

_FIELD_PATTERNS = {
    "id": re.compile(r"^[ \t]*id[ \t]*:[ \t]*(.*)$", re.MULTILINE),
    "alt": re.compile(r"^[ \t]*alt[ \t]*:[ \t]*(.*)$", re.MULTILINE),
    "caption": re.compile(r"^[ \t]*caption[ \t]*:[ \t]*(.*)$", re.MULTILINE),
    "width": re.compile(r"^[ \t]*width[ \t]*:[ \t]*(.*)$", re.MULTILINE),
    "description_id": re.compile(
        r"^[ \t]*descriptionId[ \t]*:[ \t]*(.*)$", re.MULTILINE
    ),
}
_PRERENDER_RE = re.compile(r"^[ \t]*prerender[ \t]*:[ \t]*(.*)$", re.MULTILINE)
_KNOWN_KEY_RE = re.compile(
    r"^[ \t]*(?:id|alt|caption|width|descriptionId|prerender)[ \t]*:", re.MULTILINE
)


def _first(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    if match is None:
        return None
    value = match.group(1).strip()
    return value or None


def extract_metadata(raw_block: str) -> tuple[Metadata, str]:
    """Split *raw_block* into its ``Metadata`` and the diagram body.

    Without a header the metadata is empty and the body is the trimmed
    block. Calling this again on the returned body is a no-op.
    """
    raw_block = raw_block or ""
    match = _HEADER_RE.search(raw_block)
    if match is None or not _KNOWN_KEY_RE.search(match.group("content")):
        # Mermaid's own frontmatter (title, config) stays with the diagram.
        return Metadata(), raw_block.strip()

    header = match.group("content")
    fields = {key: _first(pattern, header) for key, pattern in _FIELD_PATTERNS.items()}
    fields["skip_prerender"] = _first(_PRERENDER_RE, header) == "false"

    body = (raw_block[: match.start()] + raw_block[match.end():]).strip()
    return Metadata(**fields), body
