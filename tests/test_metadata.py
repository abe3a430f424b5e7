"""Tests for metadata header extraction."""

from __future__ import annotations

import pytest

from mermaidstatic.core.metadata import extract_metadata
from mermaidstatic.core.models import Metadata

FULL_BLOCK = """---
id: checkout-flow
alt: Checkout sequence
caption: How an order is placed
width: 600px
descriptionId: checkout-desc
---
sequenceDiagram
    Alice->>Bob: Hello
"""


class TestExtract:
    def test_no_header(self):
        metadata, body = extract_metadata("\ngraph TD\n    A-->B\n")
        assert metadata == Metadata()
        assert metadata.is_empty
        assert body == "graph TD\n    A-->B"

    def test_all_fields(self):
        metadata, body = extract_metadata(FULL_BLOCK)
        assert metadata.id == "checkout-flow"
        assert metadata.alt == "Checkout sequence"
        assert metadata.caption == "How an order is placed"
        assert metadata.width == "600px"
        assert metadata.description_id == "checkout-desc"
        assert metadata.skip_prerender is False
        assert body == "sequenceDiagram\n    Alice->>Bob: Hello"

    def test_absent_keys_stay_none(self):
        metadata, _ = extract_metadata("---\nid: only-id\n---\ngraph TD")
        assert metadata.id == "only-id"
        assert metadata.alt is None
        assert metadata.caption is None
        assert metadata.width is None
        assert metadata.description_id is None

    def test_values_trimmed_and_first_match_wins(self):
        metadata, _ = extract_metadata("---\nalt:   first  \nalt: second\n---\ngraph TD")
        assert metadata.alt == "first"

    def test_empty_value_is_none(self):
        metadata, _ = extract_metadata("---\nid:\ncaption: c\n---\ngraph TD")
        assert metadata.id is None
        assert metadata.caption == "c"

    def test_long_delimiters(self):
        metadata, body = extract_metadata("-----\nid: a\n-----\ngraph TD")
        assert metadata.id == "a"
        assert body == "graph TD"

    def test_description_id_does_not_set_id(self):
        metadata, _ = extract_metadata("---\ndescriptionId: d\n---\ngraph TD")
        assert metadata.id is None
        assert metadata.description_id == "d"

    def test_dashes_later_in_body_are_not_a_header(self):
        raw = "graph TD\n---\nid: nope\n---"
        metadata, body = extract_metadata(raw)
        assert metadata.is_empty
        assert body == raw

    def test_mermaid_frontmatter_is_kept_in_body(self):
        raw = "---\ntitle: Flow\nconfig:\n  theme: forest\n---\ngraph TD\n  A-->B"
        metadata, body = extract_metadata(raw)
        assert metadata.is_empty
        assert body == raw

    def test_metadata_header_before_mermaid_frontmatter(self):
        metadata, body = extract_metadata("---\nid: x\n---\n---\ntitle: Flow\n---\ngraph TD")
        assert metadata.id == "x"
        assert body == "---\ntitle: Flow\n---\ngraph TD"


class TestPrerenderFlag:
    @pytest.mark.parametrize("value, expected", [
        ("false", True),
        ("true", False),
        ("no", False),
        ("False", False),
    ])
    def test_only_literal_false_skips(self, value, expected):
        metadata, _ = extract_metadata(f"---\nprerender: {value}\n---\ngraph TD")
        assert metadata.skip_prerender is expected

    def test_absent_flag_renders(self):
        metadata, _ = extract_metadata("---\nid: x\n---\ngraph TD")
        assert metadata.skip_prerender is False


class TestIdempotence:
    @pytest.mark.parametrize("raw", [
        FULL_BLOCK,
        "graph TD\n    A-->B",
        "---\nprerender: false\n---\n\n  pie\n    \"a\": 1\n",
        "---\nid: x\n---\n---\ntitle: Flow\n---\ngraph TD\n  A-->B",
    ])
    def test_reextracting_body_is_noop(self, raw):
        _, body = extract_metadata(raw)
        metadata2, body2 = extract_metadata(body)
        assert metadata2.is_empty
        assert body2 == body
