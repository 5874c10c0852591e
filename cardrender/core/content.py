"""
Content Sanitizing
==================

Normalization applied once when card content is constructed: descriptions are
reduced to the ``<strong>``/``<code>``/``<br/>`` subset and icon names to the
icon token charset.
"""

import html
import re
from typing import Any, List

from markupsafe import escape

DEFAULT_ICON = "article"
ICON_PATTERN = re.compile(r"^[a-z0-9_,\s]{2,150}$")

_BR_TAG = re.compile(r"<\s*br\s*/?\s*>", re.IGNORECASE)
_STRONG_TAG = re.compile(r"<\s*/?\s*strong\s*>", re.IGNORECASE)
_CODE_TAG = re.compile(r"<\s*/?\s*code\s*>", re.IGNORECASE)
_INLINE_CODE = re.compile(r"`([^`\n]+?)`")
_BOLD = re.compile(r"\*\*([^\n*][^\n]*?)\*\*")
_CODE_PLACEHOLDER = re.compile("\x00(\\d+)\x00")


def sanitize_desc_html(value: Any) -> str:
    """
    Reduce a description to the permitted HTML subset.

    Legacy ``<strong>``/``<code>``/``<br>`` tags are first folded back into
    markdown-style markers, everything is escaped, and the markers are then
    re-expanded into the three permitted tags. Any other markup ends up as
    escaped text. Entities are decoded before escaping, so sanitizing an
    already-sanitized description returns it unchanged. NUL characters
    are dropped; they delimit inline code while the markers are expanded.
    """
    raw = (value if isinstance(value, str) else "").replace("\x00", "")
    markdownized = _CODE_TAG.sub("`", _STRONG_TAG.sub("**", _BR_TAG.sub("\n", raw)))
    escaped = str(escape(html.unescape(markdownized))).replace("\r\n", "\n").replace("\r", "\n")

    code_blocks: List[str] = []

    def stash_code(match: "re.Match[str]") -> str:
        code_blocks.append(f"<code>{match.group(1)}</code>")
        return f"\x00{len(code_blocks) - 1}\x00"

    def restore_code(match: "re.Match[str]") -> str:
        index = int(match.group(1))
        return code_blocks[index] if index < len(code_blocks) else match.group(0)

    out = _INLINE_CODE.sub(stash_code, escaped)
    out = _BOLD.sub(r"<strong>\1</strong>", out)
    out = out.replace("\n", "<br/>")
    return _CODE_PLACEHOLDER.sub(restore_code, out)


def normalize_icon(value: Any, fallback: str = DEFAULT_ICON) -> str:
    """Lowercase an icon name and map ``-`` to ``_``; fall back when it is not a valid token."""
    token = str(value or "").strip().lower().replace("-", "_")
    return token if ICON_PATTERN.match(token) else fallback


def is_valid_icon(value: str) -> bool:
    return bool(ICON_PATTERN.match(value))
