"""Shared types and dataclasses for tokenlens."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Framework(str, Enum):
    REACT_TAILWIND = "react-tailwind"
    VUE_TAILWIND = "vue-tailwind"
    SVELTE_TAILWIND = "svelte-tailwind"
    HTML_TAILWIND = "html-tailwind"
    REACT_CSS = "react-css"
    VUE_CSS = "vue-css"
    SVELTE_CSS = "svelte-css"
    HTML_CSS = "html-css"

    @property
    def is_tailwind(self) -> bool:
        return self.value.endswith("-tailwind")


class MatchSignal(str, Enum):
    TAG_MATCH = "tag_match"
    TAG_MISMATCH = "tag_mismatch"
    ID_MATCH = "id_match"
    TEXT_EXACT = "text_exact"
    TEXT_FUZZY = "text_fuzzy"
    CLASS_SEMANTIC = "class_semantic"
    CHILD_COUNT_MATCH = "child_count_match"
    CHILD_COUNT_MISMATCH = "child_count_mismatch"
    LAYOUT_MATCH = "layout_match"


class Severity(str, Enum):
    EXACT = "exact"
    MINOR = "minor"
    MAJOR = "major"


class TokenCategory(str, Enum):
    COLORS = "colors"
    SPACING = "spacing"
    TYPOGRAPHY = "typography"
    BORDER_RADIUS = "borderRadius"


def _as_float(value: Any, default: float = 0.0) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


# ---------------------------------------------------------------------------
# Rendered tree (captured from a live page)
# ---------------------------------------------------------------------------

@dataclass
class Rect:
    """Viewport-relative border box of a rendered element."""

    top: float = 0.0
    left: float = 0.0
    width: float = 0.0
    height: float = 0.0
    bottom: float = 0.0
    right: float = 0.0

    @property
    def x(self) -> float:
        return self.left

    @property
    def y(self) -> float:
        return self.top

    def to_dict(self) -> dict[str, float]:
        return {
            "top": self.top,
            "left": self.left,
            "width": self.width,
            "height": self.height,
            "bottom": self.bottom,
            "right": self.right,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Rect:
        top = _as_float(data.get("top", data.get("y")))
        left = _as_float(data.get("left", data.get("x")))
        width = _as_float(data.get("width"))
        height = _as_float(data.get("height"))
        return cls(
            top=top,
            left=left,
            width=width,
            height=height,
            bottom=_as_float(data.get("bottom"), top + height),
            right=_as_float(data.get("right"), left + width),
        )


@dataclass
class ViewportOffset:
    top: float = 0.0
    left: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {"top": self.top, "left": self.left}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ViewportOffset:
        return cls(top=_as_float(data.get("top")), left=_as_float(data.get("left")))


@dataclass
class BoxEdges:
    """Four-sided numeric edge record (padding, margin, border widths) in px."""

    top: float = 0.0
    right: float = 0.0
    bottom: float = 0.0
    left: float = 0.0

    def side(self, name: str) -> float:
        return getattr(self, name)

    def to_dict(self) -> dict[str, float]:
        return {"top": self.top, "right": self.right, "bottom": self.bottom, "left": self.left}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> BoxEdges:
        data = data or {}
        return cls(
            top=_as_float(data.get("top")),
            right=_as_float(data.get("right")),
            bottom=_as_float(data.get("bottom")),
            left=_as_float(data.get("left")),
        )


# (attribute, camelCase key, default) for the scalar style fields
_STYLE_FIELDS: tuple[tuple[str, str, Any], ...] = (
    ("display", "display", "block"),
    ("position", "position", "static"),
    ("box_sizing", "boxSizing", "content-box"),
    ("font_weight", "fontWeight", "400"),
    ("font_family", "fontFamily", ""),
    ("color", "color", ""),
    ("background_color", "backgroundColor", ""),
    ("border_radius", "borderRadius", "0"),
    ("overflow", "overflow", "visible"),
    ("overflow_x", "overflowX", "visible"),
    ("overflow_y", "overflowY", "visible"),
    ("gap", "gap", None),
    ("line_height", "lineHeight", "normal"),
    ("letter_spacing", "letterSpacing", "normal"),
    ("z_index", "zIndex", None),
    ("flex_direction", "flexDirection", None),
    ("justify_content", "justifyContent", None),
    ("align_items", "alignItems", None),
    ("border_color", "borderColor", None),
)


@dataclass
class ComputedStyles:
    """The subset of computed CSS captured for each rendered element."""

    display: str = "block"
    position: str = "static"
    box_sizing: str = "content-box"
    padding: BoxEdges = field(default_factory=BoxEdges)
    margin: BoxEdges = field(default_factory=BoxEdges)
    border: BoxEdges = field(default_factory=BoxEdges)
    font_size: float = 16.0
    font_weight: str = "400"
    font_family: str = ""
    color: str = ""
    background_color: str = ""
    border_radius: str = "0"
    opacity: float = 1.0
    overflow: str = "visible"
    overflow_x: str = "visible"
    overflow_y: str = "visible"
    gap: float | None = None
    line_height: float | str | None = "normal"
    letter_spacing: float | str = "normal"
    z_index: int | str | None = None
    flex_direction: str | None = None
    justify_content: str | None = None
    align_items: str | None = None
    border_color: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {key: getattr(self, attr) for attr, key, _ in _STYLE_FIELDS}
        data["padding"] = self.padding.to_dict()
        data["margin"] = self.margin.to_dict()
        data["border"] = self.border.to_dict()
        data["fontSize"] = self.font_size
        data["opacity"] = self.opacity
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ComputedStyles:
        data = data or {}
        kwargs: dict[str, Any] = {}
        for attr, key, default in _STYLE_FIELDS:
            value = data.get(key, default)
            if attr == "font_weight" and value is not None:
                value = str(value)
            kwargs[attr] = value
        if isinstance(kwargs["gap"], str):
            kwargs["gap"] = _as_float(kwargs["gap"].replace("px", ""), 0.0)
        return cls(
            padding=BoxEdges.from_dict(data.get("padding")),
            margin=BoxEdges.from_dict(data.get("margin")),
            border=BoxEdges.from_dict(data.get("border")),
            font_size=_as_float(data.get("fontSize"), 16.0),
            opacity=_as_float(data.get("opacity"), 1.0),
            **kwargs,
        )


@dataclass
class RenderedNode:
    """A single element of the live page, as captured by DOM inspection."""

    agent_id: str  # stable opaque id assigned by the capturing agent
    tag: str
    selector: str = ""
    html_id: str | None = None
    classes: list[str] = field(default_factory=list)
    rect: Rect = field(default_factory=Rect)
    viewport_rect: ViewportOffset = field(default_factory=ViewportOffset)
    depth: int = 0
    text_content: str | None = None  # direct text only, not descendant text
    children: list[RenderedNode] = field(default_factory=list)
    styles: ComputedStyles = field(default_factory=ComputedStyles)
    parent_agent_id: str | None = None

    @property
    def child_count(self) -> int:
        return len(self.children)

    def walk(self) -> list[RenderedNode]:
        """Return all nodes as a flat list (depth-first, pre-order)."""
        result: list[RenderedNode] = []
        stack = [self]
        while stack:
            node = stack.pop()
            result.append(node)
            stack.extend(reversed(node.children))
        return result

    def to_dict(self) -> dict[str, Any]:
        return {
            "agentId": self.agent_id,
            "tagName": self.tag,
            "selector": self.selector,
            "htmlId": self.html_id,
            "classList": list(self.classes),
            "rect": self.rect.to_dict(),
            "viewportRect": self.viewport_rect.to_dict(),
            "depth": self.depth,
            "textContent": self.text_content,
            "childCount": self.child_count,
            "children": [c.to_dict() for c in self.children],
            "styles": self.styles.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], parent_agent_id: str | None = None) -> RenderedNode:
        agent_id = str(data.get("agentId", data.get("id", "")))
        node = cls(
            agent_id=agent_id,
            tag=str(data.get("tagName", data.get("tag", "div"))).lower(),
            selector=data.get("selector", ""),
            html_id=data.get("htmlId") or None,
            classes=list(dict.fromkeys(data.get("classList", data.get("classes", [])))),
            rect=Rect.from_dict(data.get("rect", {})),
            viewport_rect=ViewportOffset.from_dict(data.get("viewportRect", {})),
            depth=int(data.get("depth", 0)),
            text_content=data.get("textContent"),
            styles=ComputedStyles.from_dict(data.get("styles")),
            parent_agent_id=parent_agent_id,
        )
        node.children = [cls.from_dict(c, parent_agent_id=agent_id) for c in data.get("children", [])]
        return node


# ---------------------------------------------------------------------------
# Expected tree (parsed from design-intent markup)
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class ExpectedNode:
    """
    One node of the expected markup tree.

    Compared by identity so nodes can key the per-run inferred-style cache.
    """

    tag: str = "div"
    id: str | None = None
    classes: list[str] = field(default_factory=list)
    raw_styles: str | None = None  # unparsed inline style attribute
    text_content: str | None = None
    children: list[ExpectedNode] = field(default_factory=list)

    def walk(self) -> list[ExpectedNode]:
        """Return all nodes as a flat list (depth-first, pre-order)."""
        result: list[ExpectedNode] = []
        stack = [self]
        while stack:
            node = stack.pop()
            result.append(node)
            stack.extend(reversed(node.children))
        return result

    def to_dict(self) -> dict[str, Any]:
        return {
            "tag": self.tag,
            "id": self.id,
            "classes": list(self.classes),
            "rawStyles": self.raw_styles,
            "textContent": self.text_content,
            "children": [c.to_dict() for c in self.children],
        }


# ---------------------------------------------------------------------------
# Design tokens and environment
# ---------------------------------------------------------------------------

@dataclass
class FontDefinition:
    font_size: float
    font_weight: str | int = 400
    font_family: str | None = None
    line_height: float | str | None = None
    letter_spacing: float | str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"fontSize": self.font_size, "fontWeight": self.font_weight}
        if self.font_family is not None:
            data["fontFamily"] = self.font_family
        if self.line_height is not None:
            data["lineHeight"] = self.line_height
        if self.letter_spacing is not None:
            data["letterSpacing"] = self.letter_spacing
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FontDefinition:
        return cls(
            font_size=_as_float(data.get("fontSize", data.get("font_size")), 16.0),
            font_weight=data.get("fontWeight", data.get("font_weight", 400)),
            font_family=data.get("fontFamily", data.get("font_family")),
            line_height=data.get("lineHeight", data.get("line_height")),
            letter_spacing=data.get("letterSpacing", data.get("letter_spacing")),
        )


@dataclass
class DesignTokenDictionary:
    """
    Four independent name -> value maps.

    Names are unique per category; the same literal may appear under several
    names, in which case lookups resolve to the first inserted name.
    """

    colors: dict[str, str] = field(default_factory=dict)
    spacing: dict[str, str] = field(default_factory=dict)
    typography: dict[str, FontDefinition] = field(default_factory=dict)
    border_radius: dict[str, str] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (self.colors or self.spacing or self.typography or self.border_radius)

    def to_dict(self) -> dict[str, Any]:
        return {
            "colors": dict(self.colors),
            "spacing": dict(self.spacing),
            "typography": {k: v.to_dict() for k, v in self.typography.items()},
            "borderRadius": dict(self.border_radius),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> DesignTokenDictionary:
        data = data or {}
        typography = {
            name: value if isinstance(value, FontDefinition) else FontDefinition.from_dict(value)
            for name, value in (data.get("typography") or {}).items()
        }
        return cls(
            colors={k: str(v) for k, v in (data.get("colors") or {}).items()},
            spacing={k: str(v) for k, v in (data.get("spacing") or {}).items()},
            typography=typography,
            border_radius={
                k: str(v)
                for k, v in (data.get("borderRadius", data.get("border_radius")) or {}).items()
            },
        )


@dataclass(frozen=True)
class Preferences:
    color_scheme: str = "light"
    reduced_motion: bool = False


@dataclass(frozen=True)
class ContextMetrics:
    """Immutable snapshot of the environment a page was measured in."""

    root_font_size: float = 16.0
    device_pixel_ratio: float = 1.0
    viewport_width: float = 1920.0
    viewport_height: float = 1080.0
    visual_viewport_width: float | None = None
    visual_viewport_height: float | None = None
    scroll_x: float = 0.0
    scroll_y: float = 0.0
    document_width: float = 1920.0
    document_height: float = 1080.0
    orientation: str = "landscape"
    preferences: Preferences = field(default_factory=Preferences)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rootFontSize": self.root_font_size,
            "devicePixelRatio": self.device_pixel_ratio,
            "viewportWidth": self.viewport_width,
            "viewportHeight": self.viewport_height,
            "visualViewportWidth": self.visual_viewport_width,
            "visualViewportHeight": self.visual_viewport_height,
            "scrollX": self.scroll_x,
            "scrollY": self.scroll_y,
            "documentWidth": self.document_width,
            "documentHeight": self.document_height,
            "orientation": self.orientation,
            "preferences": {
                "colorScheme": self.preferences.color_scheme,
                "reducedMotion": self.preferences.reduced_motion,
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ContextMetrics:
        data = data or {}
        prefs = data.get("preferences") or {}
        visual_w = data.get("visualViewportWidth")
        visual_h = data.get("visualViewportHeight")
        viewport_w = _as_float(data.get("viewportWidth"), 1920.0)
        viewport_h = _as_float(data.get("viewportHeight"), 1080.0)
        return cls(
            root_font_size=_as_float(data.get("rootFontSize"), 16.0),
            device_pixel_ratio=_as_float(data.get("devicePixelRatio"), 1.0),
            viewport_width=viewport_w,
            viewport_height=viewport_h,
            visual_viewport_width=None if visual_w is None else _as_float(visual_w),
            visual_viewport_height=None if visual_h is None else _as_float(visual_h),
            scroll_x=_as_float(data.get("scrollX")),
            scroll_y=_as_float(data.get("scrollY")),
            document_width=_as_float(data.get("documentWidth"), viewport_w),
            document_height=_as_float(data.get("documentHeight"), viewport_h),
            orientation=data.get("orientation", "landscape"),
            preferences=Preferences(
                color_scheme=prefs.get("colorScheme", "light"),
                reduced_motion=bool(prefs.get("reducedMotion", False)),
            ),
        )


DEFAULT_CONTEXT_METRICS = ContextMetrics(
    visual_viewport_width=1920.0,
    visual_viewport_height=1080.0,
)


# ---------------------------------------------------------------------------
# Reconciliation output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NodePair:
    """A rendered node paired with an expected node by the matcher."""

    rendered_id: str
    expected_index: int  # pre-order index in the expected tree (root = 0)
    confidence: int  # 0-100
    depth: int
    match_signals: frozenset[MatchSignal] = frozenset()

    def to_dict(self) -> dict[str, Any]:
        return {
            "renderedId": self.rendered_id,
            "expectedIndex": self.expected_index,
            "confidence": self.confidence,
            "depth": self.depth,
            "matchSignals": sorted(s.value for s in self.match_signals),
        }


@dataclass(frozen=True)
class MissedToken:
    """The design intended a token here but the rendering used another value."""

    token_name: str
    token_category: TokenCategory
    expected_value: str
    actual_value: str
    property: str
    selector: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "tokenName": self.token_name,
            "tokenCategory": self.token_category.value,
            "expectedValue": self.expected_value,
            "actualValue": self.actual_value,
            "property": self.property,
            "selector": self.selector,
        }


@dataclass(frozen=True)
class PropertyDelta:
    property: str
    figma_value: str  # expected (design) value
    caliper_value: str  # rendered (measured) value
    delta: float
    severity: Severity
    selector: str = ""
    token_name: str | None = None
    css_recommendation: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "property": self.property,
            "figmaValue": self.figma_value,
            "caliperValue": self.caliper_value,
            "delta": self.delta,
            "severity": self.severity.value,
            "selector": self.selector,
            "tokenName": self.token_name,
            "cssRecommendation": self.css_recommendation,
        }


@dataclass(frozen=True)
class ReconciliationSummary:
    total_pairs: int = 0
    high_confidence_pairs: int = 0  # confidence >= high threshold (70)
    low_confidence_pairs: int = 0  # confidence < low threshold (60)
    unmatched_rendered: int = 0
    unmatched_expected: int = 0
    total_deltas: int = 0
    major_deltas: int = 0
    minor_deltas: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "totalPairs": self.total_pairs,
            "highConfidencePairs": self.high_confidence_pairs,
            "lowConfidencePairs": self.low_confidence_pairs,
            "unmatchedRendered": self.unmatched_rendered,
            "unmatchedExpected": self.unmatched_expected,
            "totalDeltas": self.total_deltas,
            "majorDeltas": self.major_deltas,
            "minorDeltas": self.minor_deltas,
        }


@dataclass(frozen=True)
class ReconciliationReport:
    """What tokenlens returns to the caller after a reconciliation run."""

    framework: Framework
    pairs: tuple[NodePair, ...] = ()
    unmatched_rendered: tuple[str, ...] = ()
    unmatched_expected: tuple[int, ...] = ()
    deltas: tuple[PropertyDelta, ...] = ()
    missed_tokens: tuple[MissedToken, ...] = ()
    tokens_used_correctly: tuple[str, ...] = ()
    summary: ReconciliationSummary = field(default_factory=ReconciliationSummary)
    css_recommendations: str = ""
    responsive_css_recommendations: str | None = None
    figma_layer_url: str = ""
    duration_ms: float = 0.0

    @property
    def is_clean(self) -> bool:
        return not self.deltas and not self.unmatched_expected

    def to_dict(self) -> dict[str, Any]:
        return {
            "framework": self.framework.value,
            "pairs": [p.to_dict() for p in self.pairs],
            "unmatchedRendered": list(self.unmatched_rendered),
            "unmatchedExpected": list(self.unmatched_expected),
            "deltas": [d.to_dict() for d in self.deltas],
            "missedTokens": [m.to_dict() for m in self.missed_tokens],
            "tokensUsedCorrectly": list(self.tokens_used_correctly),
            "summary": self.summary.to_dict(),
            "cssRecommendations": self.css_recommendations,
            "responsiveCssRecommendations": self.responsive_css_recommendations,
            "figmaLayerUrl": self.figma_layer_url,
            "durationMs": self.duration_ms,
        }
