"""
Unit Tests for Content Models
=============================

Description sanitizing, icon normalization, and model validation.
"""

import pytest
from pydantic import ValidationError

from cardrender.core.content import is_valid_icon, normalize_icon, sanitize_desc_html
from cardrender.models.schemas import Card, CardContent, ExportJob


class TestSanitizeDescription:
    """Only <strong>, <code>, and <br/> survive."""

    def test_script_is_escaped(self):
        assert sanitize_desc_html("<script>alert(1)</script>") == "&lt;script&gt;alert(1)&lt;/script&gt;"

    def test_attributes_are_escaped(self):
        out = sanitize_desc_html('<b onclick="x()">hi</b>')
        assert "<b" not in out
        assert "&lt;b onclick=" in out

    def test_markdown_markers(self):
        assert sanitize_desc_html("**bold** and `code`") == "<strong>bold</strong> and <code>code</code>"

    def test_permitted_tags_survive(self):
        assert sanitize_desc_html("<strong>x</strong><br>y<code>z</code>") == (
            "<strong>x</strong><br/>y<code>z</code>"
        )

    def test_newlines_become_breaks(self):
        assert sanitize_desc_html("a\r\nb\nc") == "a<br/>b<br/>c"

    def test_code_content_is_escaped(self):
        assert sanitize_desc_html("`a<b`") == "<code>a&lt;b</code>"

    def test_placeholder_lookalikes_are_kept(self):
        raw = "literal @@CODE_0@@ then `real`"
        assert sanitize_desc_html(raw) == "literal @@CODE_0@@ then <code>real</code>"

    def test_nul_characters_are_dropped(self):
        assert sanitize_desc_html("a\x000\x00 `b`") == "a0 <code>b</code>"

    @pytest.mark.parametrize(
        "raw",
        [
            "<script>alert(1)</script>",
            "Tom & Jerry say \"hi\"",
            "**bold** `a<b` <br/> end",
            "<strong>x</strong> & <em>y</em>",
        ],
    )
    def test_idempotent(self, raw):
        once = sanitize_desc_html(raw)
        assert sanitize_desc_html(once) == once

    def test_non_string(self):
        assert sanitize_desc_html(None) == ""
        assert sanitize_desc_html(42) == ""


class TestIconNormalization:
    def test_lowercase_and_underscores(self):
        assert normalize_icon("Rocket-Launch") == "rocket_launch"

    def test_invalid_falls_back(self):
        assert normalize_icon("<svg>") == "article"
        assert normalize_icon("") == "article"
        assert normalize_icon(None, fallback="star") == "star"

    def test_validity(self):
        assert is_valid_icon("bolt")
        assert is_valid_icon("home, work")
        assert not is_valid_icon("x")
        assert not is_valid_icon("Bolt")


class TestCardModels:
    def test_card_sanitizes_on_construction(self):
        card = Card(title="  T  ", desc="<i>x</i> **y**", icon="Bolt")
        assert card.title == "T"
        assert card.desc == "&lt;i&gt;x&lt;/i&gt; <strong>y</strong>"
        assert card.icon == "bolt"

    def test_card_rejects_bad_icon(self):
        with pytest.raises(ValidationError):
            Card(title="T", desc="", icon="<img>")

    def test_card_is_immutable(self):
        card = Card(title="T", desc="", icon="bolt")
        with pytest.raises(ValidationError):
            card.title = "other"

    @pytest.mark.parametrize("count", [0, 9])
    def test_card_count_bounds(self, count):
        with pytest.raises(ValidationError):
            CardContent(
                main_title="Title",
                cards=[Card(title="T", desc="", icon="bolt") for _ in range(count)],
            )

    def test_wire_aliases(self):
        content = CardContent.model_validate(
            {"mainTitle": " Hello ", "cards": [{"title": "A", "desc": "d", "icon": "bolt"}]}
        )
        assert content.main_title == "Hello"
        assert content.card_count == 1
        assert content.to_wire() == {
            "mainTitle": "Hello",
            "cards": [{"title": "A", "desc": "d", "icon": "bolt"}],
        }

    def test_blank_main_title_rejected(self):
        with pytest.raises(ValidationError):
            CardContent(main_title="   ", cards=[Card(title="T", desc="", icon="bolt")])


class TestExportJob:
    @pytest.mark.parametrize("raw,expected", [(10, 4.0), (0.5, 1.0), ("abc", 2.0), (3, 3.0)])
    def test_pixel_ratio_clamped(self, raw, expected):
        assert ExportJob(pixel_ratio=raw).pixel_ratio == expected

    @pytest.mark.parametrize("raw,expected", [(900, 600), (-5, 0), (120.4, 120), (None, 100)])
    def test_bottom_reserve_clamped(self, raw, expected):
        assert ExportJob(bottom_reserved_px=raw).bottom_reserved_px == expected
