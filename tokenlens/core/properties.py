"""Registry of the CSS properties compared during reconciliation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping

from tokenlens.core.types import RenderedNode
from tokenlens.units.evaluator import format_number

# (node, parent width, parent height) -> reference length for percentage values
PercentageBasis = Callable[[RenderedNode, float, float], float]


@dataclass(frozen=True)
class PropertyDefinition:
    id: str  # camelCase property reported in deltas
    category: str  # "layout", "spacing", "typography", "colors", "borderRadius"
    actual: Callable[[RenderedNode], Any]  # rendered value, None when not captured
    inferred_key: str = ""  # key in the inferred styles, defaults to id
    side: str | None = None  # edge side for padding/margin entries
    percentage_basis: PercentageBasis | None = None

    def expected(self, styles: Mapping[str, Any]) -> Any:
        value = styles.get(self.inferred_key or self.id)
        if self.side is not None:
            return value.get(self.side) if isinstance(value, Mapping) else None
        return value

    def actual_value(self, node: RenderedNode) -> str | None:
        value = self.actual(node)
        if value is None or value == "":
            return None
        if isinstance(value, float):
            return format_number(value)
        return str(value)


def _px(value: float | None) -> str | None:
    return None if value is None else f"{format_number(value)}px"


def _parent_width(node: RenderedNode, parent_width: float, parent_height: float) -> float:
    return parent_width


def _parent_height(node: RenderedNode, parent_width: float, parent_height: float) -> float:
    return parent_height


def _own_font_size(node: RenderedNode, parent_width: float, parent_height: float) -> float:
    return node.styles.font_size


def _own_width(node: RenderedNode, parent_width: float, parent_height: float) -> float:
    return node.rect.width


def _edge(prop: str, side: str) -> PropertyDefinition:
    return PropertyDefinition(
        id=f"{prop}{side.capitalize()}",
        category="spacing",
        actual=lambda n: _px(getattr(n.styles, prop).side(side)),
        inferred_key=prop,
        side=side,
        # Percentage padding/margin resolve against the containing block's width
        percentage_basis=_parent_width,
    )


def _length_or_keyword(value: float | str | None) -> str | None:
    if isinstance(value, (int, float)):
        return _px(float(value))
    return value


PROPERTY_REGISTRY: tuple[PropertyDefinition, ...] = (
    PropertyDefinition("display", "layout", lambda n: n.styles.display),
    PropertyDefinition("position", "layout", lambda n: n.styles.position),
    PropertyDefinition("boxSizing", "layout", lambda n: n.styles.box_sizing),
    PropertyDefinition("flexDirection", "layout", lambda n: n.styles.flex_direction),
    PropertyDefinition("justifyContent", "layout", lambda n: n.styles.justify_content),
    PropertyDefinition("alignItems", "layout", lambda n: n.styles.align_items),
    PropertyDefinition("gap", "spacing", lambda n: _px(n.styles.gap), percentage_basis=_parent_width),
    *(_edge("padding", side) for side in ("top", "right", "bottom", "left")),
    *(_edge("margin", side) for side in ("top", "right", "bottom", "left")),
    PropertyDefinition("width", "spacing", lambda n: _px(n.rect.width), percentage_basis=_parent_width),
    PropertyDefinition("height", "spacing", lambda n: _px(n.rect.height), percentage_basis=_parent_height),
    PropertyDefinition("fontSize", "typography", lambda n: _px(n.styles.font_size)),
    PropertyDefinition("fontWeight", "typography", lambda n: n.styles.font_weight),
    PropertyDefinition("fontFamily", "typography", lambda n: n.styles.font_family),
    PropertyDefinition(
        "lineHeight", "typography", lambda n: _length_or_keyword(n.styles.line_height),
        percentage_basis=_own_font_size,
    ),
    PropertyDefinition(
        "letterSpacing", "typography", lambda n: _length_or_keyword(n.styles.letter_spacing),
        percentage_basis=_own_font_size,
    ),
    PropertyDefinition("color", "colors", lambda n: n.styles.color),
    PropertyDefinition("backgroundColor", "colors", lambda n: n.styles.background_color),
    PropertyDefinition("borderColor", "colors", lambda n: n.styles.border_color),
    PropertyDefinition(
        "borderRadius", "borderRadius", lambda n: n.styles.border_radius,
        percentage_basis=_own_width,
    ),
    PropertyDefinition("opacity", "layout", lambda n: n.styles.opacity),
    PropertyDefinition("zIndex", "layout", lambda n: n.styles.z_index),
    PropertyDefinition("overflow", "layout", lambda n: n.styles.overflow),
    PropertyDefinition("overflowX", "layout", lambda n: n.styles.overflow_x),
    PropertyDefinition("overflowY", "layout", lambda n: n.styles.overflow_y),
)

PROPERTIES_BY_ID: dict[str, PropertyDefinition] = {p.id: p for p in PROPERTY_REGISTRY}
