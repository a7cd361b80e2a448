"""Tests for the markup parser: tolerant parsing of design markup into ExpectedNode trees."""

from tokenlens.core.types import ExpectedNode
from tokenlens.markup.parser import MAX_PARSE_DEPTH, MAX_TEXT_LENGTH, parse, to_markup


def shape(node: ExpectedNode) -> tuple:
    """Structural fingerprint of a tree, for comparing two parses."""
    return (
        node.tag,
        node.id,
        tuple(node.classes),
        node.raw_styles,
        node.text_content,
        tuple(shape(c) for c in node.children),
    )


# ---------------------------------------------------------------------------
# Well-formed markup
# ---------------------------------------------------------------------------

class TestParse:
    def test_simple_element(self):
        root = parse('<button id="buy" class="btn p-4" style="color: red">Buy now</button>')
        assert root.tag == "button"
        assert root.id == "buy"
        assert root.classes == ["btn", "p-4"]
        assert root.raw_styles == "color: red"
        assert root.text_content == "Buy now"

    def test_nested_children_in_order(self):
        root = parse("<ul><li>One</li><li>Two</li><li>Three</li></ul>")
        assert [c.text_content for c in root.children] == ["One", "Two", "Three"]

    def test_class_name_attribute(self):
        assert parse("<div className='a b'></div>").classes == ["a", "b"]

    def test_duplicate_classes_deduplicated(self):
        assert parse('<div class="a b a"></div>').classes == ["a", "b"]

    def test_tag_lowercased(self):
        assert parse("<DIV>x</DIV>").tag == "div"

    def test_same_tag_nesting(self):
        root = parse("<div><div><div>deep</div></div><div>sibling</div></div>")
        assert len(root.children) == 2
        assert root.children[0].children[0].text_content == "deep"
        assert root.children[1].text_content == "sibling"

    def test_first_top_level_element_wins(self):
        root = parse("leading text <section>a</section><aside>b</aside>")
        assert root.tag == "section"

    def test_whitespace_collapsed(self):
        root = parse("<p>\n   Hello\n\n   world   </p>")
        assert root.text_content == "Hello world"

    def test_text_truncated(self):
        root = parse(f"<p>{'x' * 500}</p>")
        assert len(root.text_content) == MAX_TEXT_LENGTH

    def test_text_only_on_leaf_nodes(self):
        root = parse("<div><p>Hello <span>World</span></p></div>")
        paragraph = root.children[0]
        assert paragraph.tag == "p"
        assert paragraph.text_content is None
        assert paragraph.children[0].text_content == "World"


# ---------------------------------------------------------------------------
# Malformed markup
# ---------------------------------------------------------------------------

class TestParseHardening:
    def test_unclosed_tag(self):
        root = parse("<div><span>No closing span</div>")
        assert root.tag == "div"
        assert len(root.children) == 1
        assert root.children[0].tag == "span"
        assert "No closing span" in root.children[0].text_content

    def test_gt_inside_quoted_attribute(self):
        root = parse('<div data-custom="value > still value">Text</div>')
        assert root.tag == "div"
        assert root.text_content == "Text"

    def test_extreme_whitespace_in_tags(self):
        root = parse('<div    class="p-4"   id="test"   >Content</   div   >')
        assert root.tag == "div"
        assert "p-4" in root.classes
        assert root.id == "test"
        assert root.text_content == "Content"

    def test_void_and_self_closing_tags(self):
        root = parse("<div><br /><hr><span>After</span></div>")
        assert [c.tag for c in root.children] == ["br", "hr", "span"]

    def test_self_closing_non_void_tag(self):
        root = parse("<div><div /><p>After</p></div>")
        assert [c.tag for c in root.children] == ["div", "p"]

    def test_stray_closing_tag_ignored(self):
        root = parse("<div></span><p>x</p></div>")
        assert [c.tag for c in root.children] == ["p"]

    def test_comments_ignored(self):
        root = parse("<div><!-- note --><p>x</p></div>")
        assert [c.tag for c in root.children] == ["p"]

    def test_unterminated_open_tag(self):
        assert parse("<div class='x").tag == "div"

    def test_empty_and_garbage_input(self):
        for markup in ("", None, "   ", "just text", "<<<>>>"):
            root = parse(markup)
            assert root.tag == "div"
            assert root.children == []

    def test_depth_guard(self):
        depth = MAX_PARSE_DEPTH + 20
        root = parse("<div>" * depth + "bottom" + "</div>" * depth)
        levels = 0
        node = root
        while node.children:
            node = node.children[0]
            levels += 1
        assert levels == MAX_PARSE_DEPTH
        assert node.text_content == "bottom"


# ---------------------------------------------------------------------------
# Round trip
# ---------------------------------------------------------------------------

class TestToMarkup:
    def test_parse_is_idempotent(self):
        markup = (
            '<main id="app" class="flex gap-4"><section style="padding: 8px">'
            "<h1>Title</h1><img><p>Body <b>bold</b></p></section></main>"
        )
        first = parse(markup)
        second = parse(to_markup(first))
        assert shape(first) == shape(second)

    def test_void_tag_serialised_self_closing(self):
        assert to_markup(ExpectedNode(tag="img", classes=["avatar"])) == '<img class="avatar" />'
