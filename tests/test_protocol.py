"""Tests for the binary tree protocol and the JSON + payload envelope."""

import struct

import pytest

from tokenlens.core.types import BoxEdges, ComputedStyles, Rect, RenderedNode, ViewportOffset
from tokenlens.protocol.codec import MAGIC, MAX_TREE_DEPTH, VERSION, ProtocolError, deserialize, serialize
from tokenlens.protocol.envelope import pack_envelope, unpack_envelope


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_tree() -> RenderedNode:
    label = RenderedNode(
        agent_id="n2",
        tag="span",
        selector="button > span",
        text_content="Jetzt kaufen ✓",
        rect=Rect(top=10, left=12, width=40, height=20, bottom=30, right=52),
        depth=1,
        styles=ComputedStyles(font_size=14.0, font_weight="600", color="rgb(255, 255, 255)"),
    )
    return RenderedNode(
        agent_id="n1",
        tag="button",
        selector="#buy",
        html_id="buy",
        classes=["btn", "btn-primary"],
        rect=Rect(top=0, left=0, width=64.5, height=40, bottom=40, right=64.5),
        viewport_rect=ViewportOffset(top=100, left=20),
        children=[label],
        styles=ComputedStyles(
            display="inline-flex",
            box_sizing="border-box",
            padding=BoxEdges(8, 12, 8, 12),
            border=BoxEdges(1, 1, 1, 1),
            background_color="rgb(37, 99, 235)",
            opacity=0.5,
        ),
    )


def deep_tree(levels: int) -> RenderedNode:
    root = node = RenderedNode(agent_id="d0", tag="div")
    for i in range(1, levels + 1):
        child = RenderedNode(agent_id=f"d{i}", tag="div", depth=i)
        node.children.append(child)
        node = child
    return root


# ---------------------------------------------------------------------------
# serialize / deserialize
# ---------------------------------------------------------------------------

class TestCodec:
    def test_header(self):
        data = serialize(make_tree())
        assert struct.unpack(">IH", data[:6]) == (MAGIC, VERSION)

    def test_round_trip_fields(self):
        decoded = deserialize(serialize(make_tree()))
        assert decoded.agent_id == "n1"
        assert decoded.tag == "button"
        assert decoded.html_id == "buy"
        assert decoded.classes == ["btn", "btn-primary"]
        assert decoded.rect.width == 64.5
        assert decoded.viewport_rect.top == 100
        assert decoded.styles.display == "inline-flex"
        assert decoded.styles.padding == BoxEdges(8, 12, 8, 12)
        assert decoded.styles.opacity == 0.5
        assert decoded.styles.background_color == "rgb(37, 99, 235)"

    def test_children_and_parent_ids(self):
        decoded = deserialize(serialize(make_tree()))
        child = decoded.children[0]
        assert child.parent_agent_id == "n1"
        assert child.text_content == "Jetzt kaufen ✓"
        assert child.styles.font_weight == "600"
        assert child.depth == 1

    def test_absent_strings_stay_absent(self):
        decoded = deserialize(serialize(make_tree()))
        assert decoded.text_content is None
        assert decoded.children[0].html_id is None

    def test_fields_off_the_wire_get_defaults(self):
        tree = make_tree()
        tree.styles.line_height = "24px"
        tree.styles.z_index = 5
        decoded = deserialize(serialize(tree))
        assert decoded.styles.line_height == "normal"
        assert decoded.styles.z_index is None
        assert decoded.styles.overflow == "visible"

    def test_strings_deduplicated(self):
        tree = RenderedNode(agent_id="r", tag="div", children=[
            RenderedNode(agent_id=f"c{i}", tag="div", classes=["item"]) for i in range(50)
        ])
        data = serialize(tree)
        assert data.count(b"item") == 1

    def test_bad_magic(self):
        data = bytearray(serialize(make_tree()))
        data[0] ^= 0xFF
        with pytest.raises(ProtocolError, match="magic"):
            deserialize(bytes(data))

    def test_unsupported_version(self):
        data = bytearray(serialize(make_tree()))
        data[4:6] = struct.pack(">H", VERSION + 1)
        with pytest.raises(ProtocolError, match="version"):
            deserialize(bytes(data))

    @pytest.mark.parametrize("cut", [3, 10, 40, -1])
    def test_truncated(self, cut):
        data = serialize(make_tree())
        with pytest.raises(ProtocolError):
            deserialize(data[:cut])

    def test_invalid_utf8(self):
        body = struct.pack(">IH", MAGIC, VERSION) + struct.pack(">I", 1) + struct.pack(">H", 2) + b"\xff\xfe"
        with pytest.raises(ProtocolError, match="UTF-8"):
            deserialize(body)

    def test_string_index_out_of_range(self):
        header = struct.pack(">IH", MAGIC, VERSION) + struct.pack(">I", 0)
        with pytest.raises(ProtocolError, match="out of range"):
            deserialize(header + struct.pack(">5H", 1, 0, 0, 0, 0))

    def test_depth_limit(self):
        serialize(deep_tree(MAX_TREE_DEPTH))
        with pytest.raises(ProtocolError, match="deeper"):
            serialize(deep_tree(MAX_TREE_DEPTH + 1))

    @pytest.mark.parametrize("depth", [-1, 0x10000])
    def test_node_depth_outside_u16_range(self, depth):
        tree = make_tree()
        tree.children[0].depth = depth
        with pytest.raises(ProtocolError, match="outside"):
            serialize(tree)

    def test_protocol_error_is_value_error(self):
        assert issubclass(ProtocolError, ValueError)


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------

class TestEnvelope:
    def test_round_trip(self):
        payload = serialize(make_tree())
        envelope = unpack_envelope(pack_envelope({"type": "reconcile", "id": 7}, payload))
        assert envelope.message == {"type": "reconcile", "id": 7}
        assert envelope.payload == payload
        assert deserialize(envelope.payload).agent_id == "n1"

    def test_prebuilt_json_string(self):
        envelope = unpack_envelope(pack_envelope('{"ok": true}'))
        assert envelope.message == {"ok": True}
        assert envelope.payload == b""

    def test_too_short(self):
        with pytest.raises(ProtocolError):
            unpack_envelope(b"\x00\x00")

    def test_declared_length_exceeds_data(self):
        with pytest.raises(ProtocolError, match="declares"):
            unpack_envelope(struct.pack(">I", 100) + b"{}")

    def test_invalid_json(self):
        with pytest.raises(ProtocolError, match="JSON"):
            unpack_envelope(struct.pack(">I", 3) + b"{x}")
