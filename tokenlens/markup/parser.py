"""Tolerant markup parser producing ExpectedNode trees."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache

from tokenlens.core.types import ExpectedNode

logger = logging.getLogger(__name__)

# Elements that never open a child scope, with or without a trailing "/"
VOID_TAGS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
})

MAX_PARSE_DEPTH = 256
MAX_TEXT_LENGTH = 100

_OPEN_TAG_RE = re.compile(r"<\s*([a-zA-Z][\w:-]*)(.*?)/?>\Z", re.DOTALL)
_CLASS_ATTR_RE = re.compile(r"(?:^|\s)class(?:Name)?\s*=\s*(?:\"([^\"]*)\"|'([^']*)')")
_ID_ATTR_RE = re.compile(r"(?:^|\s)id\s*=\s*(?:\"([^\"]*)\"|'([^']*)')")
_STYLE_ATTR_RE = re.compile(r"(?:^|\s)style\s*=\s*(?:\"([^\"]*)\"|'([^']*)')")
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass
class _OpeningTag:
    tag: str
    classes: list[str] = field(default_factory=list)
    id: str | None = None
    style: str | None = None
    self_closing: bool = False


def parse(markup: str | None) -> ExpectedNode:
    """
    Parse a markup fragment into an ExpectedNode tree.

    Never raises: malformed input degrades to a partial tree, and empty or
    unrecognisable input yields a single childless ``div``. Only the first
    top-level element is returned.
    """
    html = (markup or "").strip()
    nodes = _parse_range(html, 0, len(html), 0)
    if not nodes:
        logger.debug("no element found in markup, using an empty div")
        return ExpectedNode(tag="div")
    return nodes[0]


def _parse_range(html: str, start: int, end: int, depth: int) -> list[ExpectedNode]:
    nodes: list[ExpectedNode] = []
    pos = start
    while pos < end:
        lt = html.find("<", pos, end)
        if lt == -1:
            break
        tag_end = _find_tag_end(html, lt, end)
        if tag_end == -1:
            break
        opening = _parse_opening_tag(html[lt:tag_end + 1])
        if opening is None:
            # Closing tag without an opener, comment or doctype
            pos = lt + 1
            continue

        node = ExpectedNode(
            tag=opening.tag,
            id=opening.id,
            classes=opening.classes,
            raw_styles=opening.style,
        )
        nodes.append(node)
        if opening.self_closing:
            pos = tag_end + 1
            continue

        close_start, close_end = _find_matching_close(html, opening.tag, tag_end + 1, end)
        if close_start == -1:
            # Unclosed: everything up to the end of input is this element's text
            logger.debug("unclosed <%s>, treating end of input as its close", opening.tag)
            node.text_content = _extract_text(html[tag_end + 1:end])
            break

        if depth >= MAX_PARSE_DEPTH:
            logger.warning("markup nesting exceeds %d levels, keeping the rest as text", MAX_PARSE_DEPTH)
        else:
            node.children = _parse_range(html, tag_end + 1, close_start, depth + 1)
        if not node.children:
            node.text_content = _extract_text(html[tag_end + 1:close_start])
        pos = close_end
    return nodes


def _find_tag_end(html: str, start: int, end: int) -> int:
    """Index of the ``>`` closing the tag at *start*, ignoring any inside quotes."""
    quote: str | None = None
    for i in range(start, end):
        ch = html[i]
        if ch in ("'", '"'):
            if quote == ch:
                quote = None
            elif quote is None:
                quote = ch
        elif ch == ">" and quote is None:
            return i
    return -1


def _attr(pattern: re.Pattern[str], attrs: str) -> str | None:
    match = pattern.search(attrs)
    if match is None:
        return None
    return match.group(1) if match.group(1) is not None else match.group(2)


def _parse_opening_tag(text: str) -> _OpeningTag | None:
    match = _OPEN_TAG_RE.match(text)
    if match is None:
        return None
    tag = match.group(1).lower()
    attrs = match.group(2) or ""
    classes = _attr(_CLASS_ATTR_RE, attrs)
    return _OpeningTag(
        tag=tag,
        classes=list(dict.fromkeys(classes.split())) if classes else [],
        id=_attr(_ID_ATTR_RE, attrs) or None,
        style=_attr(_STYLE_ATTR_RE, attrs) or None,
        self_closing=text.endswith("/>") or tag in VOID_TAGS,
    )


@lru_cache(maxsize=128)
def _tag_patterns(tag: str) -> tuple[re.Pattern[str], re.Pattern[str]]:
    name = re.escape(tag)
    return (
        re.compile(rf"<\s*{name}(?=[\s>/])", re.IGNORECASE),
        re.compile(rf"</\s*{name}\s*>", re.IGNORECASE),
    )


def _find_matching_close(html: str, tag: str, start: int, end: int) -> tuple[int, int]:
    """
    Locate the close tag matching an open ``<tag>`` whose body starts at *start*.

    Only opens and closes of the same tag name move the depth; self-closed
    ``<tag/>`` opens do not. Returns ``(-1, -1)`` when no close exists.
    """
    open_re, close_re = _tag_patterns(tag)
    depth = 1
    pos = start
    while pos < end:
        close = close_re.search(html, pos, end)
        if close is None:
            return -1, -1
        opened = open_re.search(html, pos, close.start())
        if opened is not None:
            tag_end = _find_tag_end(html, opened.start(), end)
            if tag_end == -1 or html[tag_end - 1] != "/":
                depth += 1
            pos = opened.end()
            continue
        depth -= 1
        if depth == 0:
            return close.start(), close.end()
        pos = close.end()
    return -1, -1


def _extract_text(html: str) -> str | None:
    """Tag-stripped, whitespace-collapsed, length-capped text of a markup slice."""
    parts: list[str] = []
    pos = 0
    while pos < len(html):
        lt = html.find("<", pos)
        if lt == -1:
            parts.append(html[pos:])
            break
        parts.append(html[pos:lt])
        parts.append(" ")
        tag_end = _find_tag_end(html, lt, len(html))
        if tag_end == -1:
            break
        pos = tag_end + 1
    text = _WHITESPACE_RE.sub(" ", "".join(parts)).strip()[:MAX_TEXT_LENGTH].rstrip()
    return text or None


def to_markup(node: ExpectedNode) -> str:
    """Serialise an ExpectedNode tree back to markup that :func:`parse` reads identically."""
    attrs = ""
    if node.id:
        attrs += f' id="{node.id}"'
    if node.classes:
        attrs += f' class="{" ".join(node.classes)}"'
    if node.raw_styles:
        attrs += f' style="{node.raw_styles}"'
    if node.tag in VOID_TAGS:
        return f"<{node.tag}{attrs} />"
    inner = "".join(to_markup(child) for child in node.children)
    if not node.children and node.text_content:
        inner = node.text_content
    return f"<{node.tag}{attrs}>{inner}</{node.tag}>"
