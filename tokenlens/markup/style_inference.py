"""Infer expected CSS from utility classes and inline style attributes."""

from __future__ import annotations

import logging
import re
from typing import Any

from tokenlens.core.types import (
    DEFAULT_CONTEXT_METRICS,
    ContextMetrics,
    DesignTokenDictionary,
    ExpectedNode,
    Framework,
)
from tokenlens.markup.scales import (
    BORDER_RADIUS_SCALE,
    FONT_SIZE_SCALE,
    FONT_WEIGHT_MAP,
    LAYOUT_VALUES,
    LEADING_SCALE,
    SPACING_SCALE,
    TAILWIND_COLOR_PALETTE,
    TRACKING_SCALE,
)
from tokenlens.tokens.color import serialize_color, try_parse_color
from tokenlens.units.evaluator import CalcOptions, format_number, lookup_token_value, try_to_pixels

logger = logging.getLogger(__name__)

# camelCase CSS property -> value; padding/margin map to four-sided dicts
InferredStyles = dict[str, Any]

EDGE_SIDES: tuple[str, ...] = ("top", "right", "bottom", "left")

_EDGE_PROPERTIES = {"p": "padding", "m": "margin"}
_EDGE_SUFFIXES: dict[str, tuple[str, ...]] = {
    "": EDGE_SIDES,
    "x": ("left", "right"),
    "y": ("top", "bottom"),
    "t": ("top",),
    "r": ("right",),
    "b": ("bottom",),
    "l": ("left",),
}

_SPACING_CLASS_RE = re.compile(r"^([pm])([xytrbl]?)-(.+)$")
_GAP_CLASS_RE = re.compile(r"^gap(?:-([xy]))?-(.+)$")
_SIZE_CLASS_RE = re.compile(r"^(w|h|size)-(.+)$")
_COLOR_ALPHA_RE = re.compile(r"^(.+?)/(\d{1,3})$")
_FRACTION_RE = re.compile(r"^(\d+)/(\d+)$")
_CSS_KEYWORDS = frozenset({"inherit", "initial", "unset", "currentcolor", "revert"})

_SIZE_KEYWORDS: dict[str, str] = {
    "auto": "auto",
    "full": "100%",
    "min": "min-content",
    "max": "max-content",
    "fit": "fit-content",
}


def _camel(prop: str) -> str:
    return re.sub(r"-([a-z])", lambda m: m.group(1).upper(), prop)


def _split_outside_parens(text: str, separator: str | None) -> list[str]:
    """Split on *separator* (whitespace when None) only outside parentheses."""
    parts: list[str] = []
    depth = 0
    current = ""
    for ch in text:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(0, depth - 1)
        is_sep = ch.isspace() if separator is None else ch == separator
        if is_sep and depth == 0:
            if current.strip():
                parts.append(current.strip())
            current = ""
        else:
            current += ch
    if current.strip():
        parts.append(current.strip())
    return parts


def _closing_paren(text: str, open_pos: int) -> int:
    depth = 0
    for i in range(open_pos, len(text)):
        if text[i] == "(":
            depth += 1
        elif text[i] == ")":
            depth -= 1
            if depth == 0:
                return i
    return len(text) - 1


def expand_edges(value: str) -> dict[str, str]:
    """Expand a 1-4 value padding/margin shorthand into its four sides."""
    parts = _split_outside_parens(value, None)
    if not parts:
        return {}
    if len(parts) == 1:
        parts *= 4
    elif len(parts) == 2:
        parts = [parts[0], parts[1], parts[0], parts[1]]
    elif len(parts) == 3:
        parts = [parts[0], parts[1], parts[2], parts[1]]
    return dict(zip(EDGE_SIDES, parts[:4]))


class _ValueResolver:
    """Turns class-name fragments and token references into CSS values."""

    def __init__(self, tokens: DesignTokenDictionary, metrics: ContextMetrics) -> None:
        self.tokens = tokens
        self.metrics = metrics

    def substitute_vars(self, text: str, seen: frozenset[str] = frozenset()) -> str:
        """Replace ``var(--name[, fallback])`` with the token's literal value."""
        result = ""
        pos = 0
        while True:
            start = text.find("var(", pos)
            if start == -1:
                return result + text[pos:]
            end = _closing_paren(text, start + 3)
            name, sep, fallback = text[start + 4:end].partition(",")
            name = name.strip().removeprefix("--")
            found = None if name in seen else lookup_token_value(name, self.tokens)
            if found is not None:
                replacement = self.substitute_vars(found, seen | {name})
            elif sep:
                replacement = self.substitute_vars(fallback.strip(), seen)
            else:
                # Unknown token and no fallback: leave the reference in place
                replacement = text[start:end + 1]
            result += text[pos:start] + replacement
            pos = end + 1

    def length(self, literal: str) -> str:
        """Resolve a length literal to ``Npx`` where it is numeric; keep percentages and keywords."""
        text = self.substitute_vars(literal.strip())
        if "%" in text or "var(" in text:
            return text
        pixels = try_to_pixels(text, self.metrics, CalcOptions(tokens=self.tokens))
        if pixels is None:
            return text
        return f"{format_number(pixels)}px"

    def color(self, literal: str, alpha_percent: int | None = None) -> str | None:
        text = self.substitute_vars(literal.strip())
        if text.lower() in _CSS_KEYWORDS:
            return text.lower()
        parsed = try_parse_color(text)
        if parsed is None:
            return None
        if alpha_percent is not None and parsed.alpha > 0:
            parsed = parsed._replace(alpha=parsed.alpha * alpha_percent / 100)
        return serialize_color(parsed)

    @staticmethod
    def arbitrary(value: str) -> str | None:
        """``[12.5px]`` / ``(--x)`` -> the raw CSS value, underscores as spaces."""
        if value.startswith("[") and value.endswith("]"):
            inner = value[1:-1]
            inner = re.sub(r"^(?:color|length|number|percentage):", "", inner)
            return inner.replace("\\_", "\0").replace("_", " ").replace("\0", "_")
        if value.startswith("(") and value.endswith(")"):
            return f"var({value[1:-1]})"
        return None


class _ClassResolver:
    """Maps one utility class (without variants or ``!``) to the styles it sets."""

    def __init__(self, tokens: DesignTokenDictionary, metrics: ContextMetrics) -> None:
        self.tokens = tokens
        self.values = _ValueResolver(tokens, metrics)
        self._families = {
            "text": self._text,
            "bg": self._bg,
            "border": self._border,
            "font": self._font,
            "leading": self._leading,
            "tracking": self._tracking,
            "opacity": self._opacity,
        }

    def resolve(self, cls: str) -> InferredStyles:
        for prop, table in LAYOUT_VALUES.items():
            if cls in table:
                return {prop: table[cls]}

        negative = cls.startswith("-")
        name = cls[1:] if negative else cls

        match = _SPACING_CLASS_RE.match(name)
        if match:
            value = self._spacing(match.group(3), negative)
            if value is None:
                return {}
            prop = _EDGE_PROPERTIES[match.group(1)]
            return {prop: {side: value for side in _EDGE_SUFFIXES[match.group(2)]}}

        match = _GAP_CLASS_RE.match(name)
        if match:
            value = self._spacing(match.group(2), False)
            if value is None:
                return {}
            key = {"x": "columnGap", "y": "rowGap"}.get(match.group(1) or "", "gap")
            return {key: value}

        match = _SIZE_CLASS_RE.match(name)
        if match:
            return self._size(match.group(1), match.group(2))

        prefix, _, value = name.partition("-")
        if prefix == "rounded":
            return self._radius(value)
        if prefix == "z" and value:
            return self._z(value, negative)
        family = self._families.get(prefix)
        return family(value) if family is not None and value else {}

    # ------------------------------------------------------------------
    # Value families
    # ------------------------------------------------------------------

    def _spacing(self, value: str, negative: bool) -> str | None:
        raw = self.values.arbitrary(value)
        if raw is not None:
            resolved = self.values.length(raw)
        elif value in self.tokens.spacing:
            resolved = self.values.length(self.tokens.spacing[value])
        elif value in SPACING_SCALE:
            resolved = SPACING_SCALE[value]
        elif value == "auto":
            return "auto"
        else:
            return None
        if negative and not resolved.startswith("-") and resolved not in ("0px", "0"):
            resolved = f"-{resolved}"
        return resolved

    def _color_value(self, value: str) -> str | None:
        alpha: int | None = None
        match = _COLOR_ALPHA_RE.match(value)
        if match and not _FRACTION_RE.match(value):
            value, alpha = match.group(1), int(match.group(2))

        raw = self.values.arbitrary(value)
        if raw is not None:
            return self.values.color(raw, alpha)
        if value in self.tokens.colors:
            return self.values.color(self.tokens.colors[value], alpha)
        if value in TAILWIND_COLOR_PALETTE:
            return self.values.color(TAILWIND_COLOR_PALETTE[value], alpha)
        return None

    def _text(self, value: str) -> InferredStyles:
        if value in FONT_SIZE_SCALE:
            return {"fontSize": FONT_SIZE_SCALE[value]}
        font = self.tokens.typography.get(value)
        if font is not None:
            styles: InferredStyles = {
                "fontSize": f"{format_number(float(font.font_size))}px",
                "fontWeight": str(font.font_weight),
            }
            if font.font_family:
                styles["fontFamily"] = font.font_family
            return styles

        color = self._color_value(value)
        if color is not None:
            return {"color": color}
        raw = self.values.arbitrary(value)
        if raw is not None:
            return {"fontSize": self.values.length(raw)}
        return {}

    def _bg(self, value: str) -> InferredStyles:
        color = self._color_value(value)
        return {} if color is None else {"backgroundColor": color}

    def _border(self, value: str) -> InferredStyles:
        color = self._color_value(value)
        return {} if color is None else {"borderColor": color}

    def _font(self, value: str) -> InferredStyles:
        if value in FONT_WEIGHT_MAP:
            return {"fontWeight": FONT_WEIGHT_MAP[value]}
        raw = self.values.arbitrary(value)
        if raw is not None:
            raw = self.values.substitute_vars(raw)
            return {"fontWeight": raw} if raw.isdigit() else {"fontFamily": raw}
        return {}

    def _radius(self, value: str) -> InferredStyles:
        raw = self.values.arbitrary(value)
        if raw is not None:
            return {"borderRadius": self.values.length(raw)}
        if value in self.tokens.border_radius:
            return {"borderRadius": self.values.length(self.tokens.border_radius[value])}
        if value in BORDER_RADIUS_SCALE:
            return {"borderRadius": BORDER_RADIUS_SCALE[value]}
        return {}

    def _size(self, axis: str, value: str) -> InferredStyles:
        fraction = _FRACTION_RE.match(value)
        if fraction:
            numerator, denominator = int(fraction.group(1)), int(fraction.group(2))
            if denominator == 0:
                return {}
            resolved: str | None = f"{format_number(numerator / denominator * 100)}%"
        elif value == "screen":
            resolved = self.values.length("100vw" if axis == "w" else "100vh")
        elif value in _SIZE_KEYWORDS:
            resolved = _SIZE_KEYWORDS[value]
        else:
            resolved = self._spacing(value, False)
        if resolved is None:
            return {}
        if axis == "size":
            return {"width": resolved, "height": resolved}
        return {"width" if axis == "w" else "height": resolved}

    def _leading(self, value: str) -> InferredStyles:
        if value in LEADING_SCALE:
            return {"lineHeight": LEADING_SCALE[value]}
        raw = self.values.arbitrary(value)
        if raw is not None:
            return {"lineHeight": self.values.length(raw)}
        if value in SPACING_SCALE:
            return {"lineHeight": SPACING_SCALE[value]}
        return {}

    def _tracking(self, value: str) -> InferredStyles:
        if value in TRACKING_SCALE:
            return {"letterSpacing": TRACKING_SCALE[value]}
        raw = self.values.arbitrary(value)
        if raw is not None:
            return {"letterSpacing": self.values.length(raw)}
        return {}

    def _opacity(self, value: str) -> InferredStyles:
        raw = self.values.arbitrary(value)
        if raw is not None:
            return {"opacity": raw}
        if value.isdigit():
            return {"opacity": format_number(int(value) / 100)}
        return {}

    def _z(self, value: str, negative: bool) -> InferredStyles:
        if value == "auto":
            return {"zIndex": "auto"}
        raw = self.values.arbitrary(value)
        if raw is not None:
            return {"zIndex": raw}
        if value.isdigit():
            return {"zIndex": f"-{value}" if negative else value}
        return {}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def _merge(
    target: InferredStyles,
    important: set[str],
    styles: InferredStyles,
    is_important: bool,
    fill_edges: bool = True,
) -> None:
    for key, value in styles.items():
        if key in important and not is_important:
            continue
        if isinstance(value, dict):
            edges = dict(target.get(key) or (_zero_edges() if fill_edges else {}))
            edges.update(value)
            target[key] = edges
        else:
            target[key] = value
        if is_important:
            important.add(key)


def _zero_edges() -> dict[str, str]:
    return {side: "0px" for side in EDGE_SIDES}


def _strip_important(cls: str) -> tuple[str, bool]:
    if cls.startswith("!"):
        return cls[1:], True
    if cls.endswith("!"):
        return cls[:-1], True
    return cls, False


def _has_variant(cls: str) -> bool:
    """True for ``hover:``/``md:`` style prefixes (colons outside brackets)."""
    depth = 0
    for ch in cls:
        if ch in "[(":
            depth += 1
        elif ch in "])":
            depth -= 1
        elif ch == ":" and depth == 0:
            return True
    return False


def infer_styles_from_classes(
    classes: list[str],
    framework: Framework | str,
    tokens: DesignTokenDictionary | None = None,
    metrics: ContextMetrics | None = None,
) -> InferredStyles:
    """
    Infer the base (no state or breakpoint variant) styles a class list sets.

    Only utility-class frameworks are understood; other frameworks yield {}.
    Later classes override earlier ones unless the earlier one is ``!important``.
    """
    if not Framework(framework).is_tailwind:
        return {}
    resolver = _ClassResolver(tokens or DesignTokenDictionary(), metrics or DEFAULT_CONTEXT_METRICS)
    result: InferredStyles = {}
    important: set[str] = set()
    for raw in classes:
        if _has_variant(raw):
            continue
        cls, is_important = _strip_important(raw)
        styles = resolver.resolve(cls)
        if styles:
            _merge(result, important, styles, is_important)
    return result


def parse_inline_styles(
    style: str | None,
    tokens: DesignTokenDictionary | None = None,
    metrics: ContextMetrics | None = None,
) -> InferredStyles:
    """Parse a ``style`` attribute into camelCase properties, resolving ``var()`` against tokens."""
    return _parse_declarations(style, tokens, metrics, fill_edges=True)


def _parse_declarations(
    style: str | None,
    tokens: DesignTokenDictionary | None,
    metrics: ContextMetrics | None,
    fill_edges: bool,
) -> InferredStyles:
    if not style:
        return {}
    values = _ValueResolver(tokens or DesignTokenDictionary(), metrics or DEFAULT_CONTEXT_METRICS)
    result: InferredStyles = {}
    important: set[str] = set()

    for declaration in _split_outside_parens(style, ";"):
        prop, sep, value = declaration.partition(":")
        if not sep:
            continue
        prop = _camel(prop.strip().lower())
        value = value.strip()
        is_important = value.lower().endswith("!important")
        if is_important:
            value = value[: -len("!important")].strip()
        if not prop or not value:
            continue
        value = values.substitute_vars(value)

        base = next((b for b in ("padding", "margin") if prop.startswith(b)), None)
        side = prop[len(base):].lower() if base else ""
        if base is not None and prop == base:
            styles: InferredStyles = {base: expand_edges(value)}
        elif base is not None and side in EDGE_SIDES:
            styles = {base: {side: value}}
        else:
            styles = {prop: value}
        _merge(result, important, styles, is_important, fill_edges)
    return result


def infer_node_styles(
    node: ExpectedNode,
    framework: Framework | str,
    tokens: DesignTokenDictionary | None = None,
    metrics: ContextMetrics | None = None,
) -> InferredStyles:
    """Class-inferred styles overlaid with the node's inline style (inline wins)."""
    styles = infer_styles_from_classes(node.classes, framework, tokens, metrics)
    # Only the edge sides the style attribute names override class values
    inline = _parse_declarations(node.raw_styles, tokens, metrics, fill_edges=False)
    for key, value in inline.items():
        if isinstance(value, dict):
            styles[key] = {**(styles.get(key) or _zero_edges()), **value}
        else:
            styles[key] = value
    return styles


class StyleCache:
    """
    Per-run memo of inferred styles keyed by ExpectedNode identity.

    Each node's styles are computed in full on first access and reused for
    the rest of the run; nodes themselves are never mutated.
    """

    def __init__(
        self,
        framework: Framework | str,
        tokens: DesignTokenDictionary | None = None,
        metrics: ContextMetrics | None = None,
    ) -> None:
        self.framework = Framework(framework)
        self.tokens = tokens or DesignTokenDictionary()
        self.metrics = metrics or DEFAULT_CONTEXT_METRICS
        self._styles: dict[ExpectedNode, InferredStyles] = {}

    def get(self, node: ExpectedNode) -> InferredStyles:
        styles = self._styles.get(node)
        if styles is None:
            styles = infer_node_styles(node, self.framework, self.tokens, self.metrics)
            self._styles[node] = styles
        return styles

    def __contains__(self, node: ExpectedNode) -> bool:
        return node in self._styles

    def __len__(self) -> int:
        return len(self._styles)

    def clear(self) -> None:
        self._styles.clear()
