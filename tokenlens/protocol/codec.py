"""Compact binary encoding of RenderedNode trees."""

from __future__ import annotations

import logging
import struct

from tokenlens.core.types import (
    BoxEdges,
    ComputedStyles,
    Rect,
    RenderedNode,
    ViewportOffset,
)

logger = logging.getLogger(__name__)

MAGIC = 0x43414C49  # "CALI"
VERSION = 1
MAX_TREE_DEPTH = 256
MAX_STRINGS = 0xFFFF  # u16 indices, 0 reserved for "absent"
MAX_STRING_BYTES = 0xFFFF

_HEADER = struct.Struct(">IH")
_U32 = struct.Struct(">I")
_U16 = struct.Struct(">H")
_NODE_REFS = struct.Struct(">5H")  # tag, selector, agentId, htmlId, textContent
_GEOMETRY = struct.Struct(">8f")  # rect top/left/width/height/bottom/right, viewport top/left
_STYLE = struct.Struct(">3Hf2Hf2H")  # display/position/boxSizing, fontSize, weight/family, opacity, color/bg
_EDGES = struct.Struct(">12f")  # padding, margin, border; each top/right/bottom/left
_TAIL = struct.Struct(">2H")  # depth, child count

_STYLE_DEFAULTS = ComputedStyles()


class ProtocolError(ValueError):
    """Raised when bytes cannot be encoded or decoded as a node tree."""


def serialize(root: RenderedNode) -> bytes:
    """Encode a tree: header, string dictionary, then nodes in pre-order."""
    encoder = _Encoder()
    encoder.collect(root, 0)
    out = bytearray(_HEADER.pack(MAGIC, VERSION))
    out += _U32.pack(len(encoder.strings))
    for text in encoder.strings:
        raw = text.encode("utf-8")
        out += _U16.pack(len(raw))
        out += raw
    encoder.write_node(root, out)
    return bytes(out)


def deserialize(data: bytes) -> RenderedNode:
    """Decode bytes produced by :func:`serialize`; raises ProtocolError on malformed input."""
    decoder = _Decoder(bytes(data))
    magic, version = decoder.read(_HEADER)
    if magic != MAGIC:
        raise ProtocolError(f"bad magic 0x{magic:08X}, expected 0x{MAGIC:08X}")
    if version != VERSION:
        raise ProtocolError(f"unsupported protocol version {version}")
    decoder.read_dictionary()
    root = decoder.read_node(None, 0)
    if decoder.remaining:
        logger.debug("ignoring %d trailing bytes after tree", decoder.remaining)
    return root


# ------------------------------------------------------------------
# Encoding
# ------------------------------------------------------------------

class _Encoder:
    def __init__(self) -> None:
        self.strings: list[str] = []
        self._index: dict[str, int] = {}

    def _add(self, value: str | None) -> None:
        if not value or value in self._index:
            return
        if len(value.encode("utf-8")) > MAX_STRING_BYTES:
            raise ProtocolError(f"string of {len(value)} chars exceeds {MAX_STRING_BYTES} bytes")
        if len(self.strings) >= MAX_STRINGS:
            raise ProtocolError(f"more than {MAX_STRINGS} unique strings")
        self.strings.append(value)
        self._index[value] = len(self.strings)  # 1-based

    def ref(self, value: str | None) -> int:
        return self._index[value] if value else 0

    def collect(self, node: RenderedNode, depth: int) -> None:
        if depth > MAX_TREE_DEPTH:
            raise ProtocolError(f"tree deeper than {MAX_TREE_DEPTH} levels")
        for value in (node.tag, node.selector, node.agent_id, node.html_id, node.text_content):
            self._add(value)
        for cls in node.classes:
            self._add(cls)
        s = node.styles
        for value in (
            s.display, s.position, s.box_sizing, s.font_weight, s.font_family,
            s.color, s.background_color,
        ):
            self._add(value)
        for child in node.children:
            self.collect(child, depth + 1)

    def write_node(self, node: RenderedNode, out: bytearray) -> None:
        if len(node.classes) > 0xFFFF or node.child_count > 0xFFFF:
            raise ProtocolError(f"node {node.agent_id} has too many classes or children")
        if not 0 <= node.depth <= 0xFFFF:
            raise ProtocolError(f"node {node.agent_id} has depth {node.depth} outside 0..65535")
        out += _NODE_REFS.pack(
            self.ref(node.tag),
            self.ref(node.selector),
            self.ref(node.agent_id),
            self.ref(node.html_id),
            self.ref(node.text_content),
        )
        out += _U16.pack(len(node.classes))
        for cls in node.classes:
            out += _U16.pack(self.ref(cls))

        r, v = node.rect, node.viewport_rect
        out += _GEOMETRY.pack(r.top, r.left, r.width, r.height, r.bottom, r.right, v.top, v.left)

        s = node.styles
        out += _STYLE.pack(
            self.ref(s.display),
            self.ref(s.position),
            self.ref(s.box_sizing),
            s.font_size,
            self.ref(s.font_weight),
            self.ref(s.font_family),
            s.opacity,
            self.ref(s.color),
            self.ref(s.background_color),
        )
        out += _EDGES.pack(
            *(s.padding.top, s.padding.right, s.padding.bottom, s.padding.left),
            *(s.margin.top, s.margin.right, s.margin.bottom, s.margin.left),
            *(s.border.top, s.border.right, s.border.bottom, s.border.left),
        )
        out += _TAIL.pack(node.depth, node.child_count)
        for child in node.children:
            self.write_node(child, out)


# ------------------------------------------------------------------
# Decoding
# ------------------------------------------------------------------

class _Decoder:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._offset = 0
        self._strings: list[str] = []

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    def read(self, fmt: struct.Struct) -> tuple:
        if self.remaining < fmt.size:
            raise ProtocolError(
                f"truncated payload: need {fmt.size} bytes at offset {self._offset}, have {self.remaining}"
            )
        values = fmt.unpack_from(self._data, self._offset)
        self._offset += fmt.size
        return values

    def read_dictionary(self) -> None:
        (count,) = self.read(_U32)
        if count > MAX_STRINGS:
            raise ProtocolError(f"string dictionary of {count} entries exceeds {MAX_STRINGS}")
        for _ in range(count):
            (length,) = self.read(_U16)
            if self.remaining < length:
                raise ProtocolError(f"truncated string at offset {self._offset}")
            raw = self._data[self._offset:self._offset + length]
            self._offset += length
            try:
                self._strings.append(raw.decode("utf-8"))
            except UnicodeDecodeError as exc:
                raise ProtocolError(f"invalid UTF-8 in string dictionary: {exc}") from exc

    def lookup(self, index: int) -> str | None:
        if index == 0:
            return None
        if index > len(self._strings):
            raise ProtocolError(f"string index {index} out of range ({len(self._strings)} strings)")
        return self._strings[index - 1]

    def read_node(self, parent_id: str | None, level: int) -> RenderedNode:
        if level > MAX_TREE_DEPTH:
            raise ProtocolError(f"tree deeper than {MAX_TREE_DEPTH} levels")
        tag, selector, agent_id, html_id, text = (self.lookup(i) for i in self.read(_NODE_REFS))
        (class_count,) = self.read(_U16)
        classes = [self.lookup(self.read(_U16)[0]) or "" for _ in range(class_count)]

        top, left, width, height, bottom, right, v_top, v_left = self.read(_GEOMETRY)
        display, position, box_sizing, font_size, weight, family, opacity, color, bg = self.read(_STYLE)
        edges = self.read(_EDGES)
        depth, child_count = self.read(_TAIL)

        d = _STYLE_DEFAULTS
        # Fields the wire format does not carry keep their ComputedStyles defaults
        styles = ComputedStyles(
            display=self.lookup(display) or d.display,
            position=self.lookup(position) or d.position,
            box_sizing=self.lookup(box_sizing) or d.box_sizing,
            font_size=font_size,
            font_weight=self.lookup(weight) or d.font_weight,
            font_family=self.lookup(family) or d.font_family,
            opacity=opacity,
            color=self.lookup(color) or d.color,
            background_color=self.lookup(bg) or d.background_color,
            padding=BoxEdges(*edges[0:4]),
            margin=BoxEdges(*edges[4:8]),
            border=BoxEdges(*edges[8:12]),
        )
        node = RenderedNode(
            agent_id=agent_id or "",
            tag=tag or "div",
            selector=selector or "",
            html_id=html_id,
            classes=classes,
            rect=Rect(top, left, width, height, bottom, right),
            viewport_rect=ViewportOffset(v_top, v_left),
            depth=depth,
            text_content=text,
            styles=styles,
            parent_agent_id=parent_id,
        )
        node.children = [self.read_node(node.agent_id, level + 1) for _ in range(child_count)]
        return node
