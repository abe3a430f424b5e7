"""Stable identities for diagrams.

An identity names every image rendered from a diagram. It is either the
``id:`` given in the diagram header or a short digest of the diagram body,
so the same body always maps to the same files across builds and locales.
"""

from __future__ import annotations

import hashlib
from typing import Optional

IDENTITY_LENGTH = 10


def content_hash(text: str) -> str:
    """Short MD5 hex digest used as a cache key, not for security."""
    return hashlib.md5(text.encode("utf-8")).hexdigest()[:IDENTITY_LENGTH]


def derive_identity(body: Optional[str], explicit_id: Optional[str] = None) -> str:
    """Return *explicit_id*, trimmed, when it is non-blank, else a digest of *body*.

    *body* must already have its metadata header removed. Two diagrams
    sharing an explicit id are not detected here.
    """
    if isinstance(explicit_id, str) and explicit_id.strip():
        return explicit_id.strip()
    if not isinstance(body, str):
        body = ""
    return content_hash(body.strip())
