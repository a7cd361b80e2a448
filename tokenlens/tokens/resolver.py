"""Token index: maps computed values back to named design tokens."""

from __future__ import annotations

import logging
import re
from bisect import bisect_left
from dataclasses import dataclass

from tokenlens.core.types import (
    DEFAULT_CONTEXT_METRICS,
    ContextMetrics,
    DesignTokenDictionary,
    MissedToken,
    TokenCategory,
)
from tokenlens.tokens.color import OklabColor, delta_e, serialize_color, try_parse_color
from tokenlens.units.evaluator import CalcOptions, format_number, lookup_token_value, try_to_pixels

logger = logging.getLogger(__name__)

DEFAULT_COLOR_THRESHOLD = 0.05  # max ΔE (OKLab) for a color to count as a token
DEFAULT_PIXEL_THRESHOLD = 2.0  # max px difference for a length to count as a token

COLOR_PROPERTIES = frozenset({
    "color", "backgroundColor", "borderColor", "outlineColor",
    "background-color", "border-color", "outline-color",
})
SPACING_PROPERTIES = frozenset({
    "padding", "paddingTop", "paddingRight", "paddingBottom", "paddingLeft",
    "margin", "marginTop", "marginRight", "marginBottom", "marginLeft",
    "gap", "rowGap", "columnGap", "width", "height",
    "padding-top", "padding-right", "padding-bottom", "padding-left",
    "margin-top", "margin-right", "margin-bottom", "margin-left",
    "row-gap", "column-gap",
})
RADIUS_PROPERTIES = frozenset({"borderRadius", "border-radius"})
FONT_SIZE_PROPERTIES = frozenset({"fontSize", "font-size"})
FONT_WEIGHT_PROPERTIES = frozenset({"fontWeight", "font-weight"})
# Lengths that may also be unitless numbers
HYBRID_PROPERTIES = frozenset({"lineHeight", "line-height", "letterSpacing", "letter-spacing"})
NUMERIC_PROPERTIES = frozenset({"opacity", "zIndex", "z-index"})

LENGTH_PROPERTIES = SPACING_PROPERTIES | RADIUS_PROPERTIES | FONT_SIZE_PROPERTIES

GLOBAL_KEYWORDS = frozenset({"inherit", "initial", "unset", "revert", "revert-layer"})

_FONT_WEIGHT_KEYWORDS: dict[str, str] = {
    "thin": "100", "hairline": "100", "extralight": "200", "light": "300",
    "normal": "400", "regular": "400", "medium": "500", "semibold": "600",
    "bold": "700", "extrabold": "800", "black": "900",
}
_KEYWORD_RE = re.compile(r"^[a-z-]+$")

Normalized = str | float


@dataclass(frozen=True)
class TokenComparison:
    is_match: bool
    token_name: str | None = None
    missed_token: MissedToken | None = None
    expected: Normalized | None = None  # normalised expected value
    actual: Normalized | None = None  # normalised actual value


@dataclass(frozen=True)
class _PixelEntry:
    pixels: float
    name: str


def token_category(property: str) -> TokenCategory | None:
    if property in COLOR_PROPERTIES:
        return TokenCategory.COLORS
    if property in FONT_SIZE_PROPERTIES or property in FONT_WEIGHT_PROPERTIES:
        return TokenCategory.TYPOGRAPHY
    if property in RADIUS_PROPERTIES:
        return TokenCategory.BORDER_RADIUS
    if property in SPACING_PROPERTIES:
        return TokenCategory.SPACING
    return None


def to_css_property(property: str) -> str:
    """``backgroundColor`` -> ``background-color``."""
    return re.sub(r"([A-Z])", lambda m: "-" + m.group(1).lower(), property)


def css_recommendation(property: str, value: str, token_name: str | None = None) -> str:
    """One CSS declaration, preferring the token custom property when a token is known."""
    prop = to_css_property(property)
    if token_name:
        return f"{prop}: var(--{to_css_property(token_name).lstrip('-')}); /* {value} */"
    return f"{prop}: {value};"


class TokenIndex:
    """
    Searchable indices over one DesignTokenDictionary.

    Built fresh for each reconciliation run: colors are indexed by literal and
    by OKLab value, lengths as (pixels, name) lists sorted ascending so the
    nearest token is found by bisection.
    """

    def __init__(
        self,
        tokens: DesignTokenDictionary | None = None,
        metrics: ContextMetrics | None = None,
        *,
        color_threshold: float = DEFAULT_COLOR_THRESHOLD,
        pixel_threshold: float = DEFAULT_PIXEL_THRESHOLD,
    ) -> None:
        self.color_threshold = color_threshold
        self.pixel_threshold = pixel_threshold
        self.tokens = DesignTokenDictionary()
        self.metrics = DEFAULT_CONTEXT_METRICS
        self._color_literals: dict[str, str] = {}
        self._colors: list[tuple[str, OklabColor]] = []
        self._spacing: list[_PixelEntry] = []
        self._radius: list[_PixelEntry] = []
        self._font_sizes: list[_PixelEntry] = []
        self._pixel_memo: dict[tuple[str, float, float, float | None], float | None] = {}
        self.rebuild(tokens or DesignTokenDictionary(), metrics or DEFAULT_CONTEXT_METRICS)

    @classmethod
    def build(
        cls,
        tokens: DesignTokenDictionary | None = None,
        metrics: ContextMetrics | None = None,
        **kwargs,
    ) -> TokenIndex:
        return cls(tokens, metrics, **kwargs)

    def rebuild(self, tokens: DesignTokenDictionary, metrics: ContextMetrics) -> None:
        """Clear and repopulate every index and the pixel memo."""
        self.tokens = tokens
        self.metrics = metrics
        self._color_literals.clear()
        self._colors.clear()
        self._pixel_memo.clear()

        for name, value in tokens.colors.items():
            literal = self._resolve_color_literal(value)
            self._color_literals.setdefault(literal, name)
            parsed = try_parse_color(literal)
            if parsed is not None:
                self._colors.append((name, parsed))

        self._spacing = self._pixel_index(tokens.spacing)
        self._radius = self._pixel_index(tokens.border_radius)
        self._font_sizes = sorted(
            (_PixelEntry(float(font.font_size), name) for name, font in tokens.typography.items()),
            key=lambda e: e.pixels,
        )
        logger.debug(
            "token index: %d colors, %d spacing, %d radius, %d font sizes",
            len(self._colors), len(self._spacing), len(self._radius), len(self._font_sizes),
        )

    def _pixel_index(self, table: dict[str, str]) -> list[_PixelEntry]:
        entries = []
        for name, value in table.items():
            pixels = self.pixels(value)
            if pixels is None:
                logger.debug("token %s=%r is not a length, skipped", name, value)
                continue
            entries.append(_PixelEntry(pixels, name))
        # sorted() is stable, so equal values keep insertion order
        return sorted(entries, key=lambda e: e.pixels)

    def _resolve_color_literal(self, value: str) -> str:
        """Follow ``var(--x)`` chains through the color table to a literal."""
        literal = value.strip()
        seen: set[str] = set()
        while literal.lower().startswith("var("):
            inner = literal[4:-1]
            name, _, fallback = inner.partition(",")
            name = name.strip().removeprefix("--")
            if name in seen:
                return literal.lower()
            seen.add(name)
            found = lookup_token_value(name, self.tokens)
            if found is None:
                if not fallback:
                    return literal.lower()
                found = fallback
            literal = found.strip()
        return literal.lower()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def pixels(self, value: str | float, percentage_reference: float | None = None) -> float | None:
        """Memoised px resolution; None when *value* is not a length."""
        if isinstance(value, (int, float)):
            return float(value)
        key = (value, self.metrics.viewport_width, self.metrics.root_font_size, percentage_reference)
        if key not in self._pixel_memo:
            options = CalcOptions(percentage_reference=percentage_reference, tokens=self.tokens)
            self._pixel_memo[key] = try_to_pixels(value, self.metrics, options)
        return self._pixel_memo[key]

    def find_token_by_value(
        self,
        property: str,
        value: str | float,
        percentage_reference: float | None = None,
    ) -> str | None:
        found = self._find_token(property, value, percentage_reference)
        return None if found is None else found[0]

    def _find_token(
        self,
        property: str,
        value: str | float,
        percentage_reference: float | None,
    ) -> tuple[str, TokenCategory] | None:
        """Token name and the category of the table it was found in."""
        ref = percentage_reference
        if property in COLOR_PROPERTIES:
            name, category = self._find_color(str(value)), TokenCategory.COLORS
        elif property in FONT_SIZE_PROPERTIES:
            name, category = self._find_length(self._font_sizes, value, ref), TokenCategory.TYPOGRAPHY
            if name is None:
                # Spacing stands in for a font size only at the exact value
                name = self._find_length(self._spacing, value, ref, tolerance=0.0)
                category = TokenCategory.SPACING
        elif property in SPACING_PROPERTIES:
            name, category = self._find_length(self._spacing, value, ref), TokenCategory.SPACING
        elif property in RADIUS_PROPERTIES:
            name, category = self._find_length(self._radius, value, ref), TokenCategory.BORDER_RADIUS
        else:
            return None
        return None if name is None else (name, category)

    def _find_color(self, value: str) -> str | None:
        literal = self._resolve_color_literal(value)
        if literal in self._color_literals:
            return self._color_literals[literal]
        target = try_parse_color(literal)
        if target is None or not self._colors:
            return None

        best_name, best_distance = None, float("inf")
        for name, color in self._colors:
            distance = delta_e(target, color)
            if distance < best_distance:
                best_name, best_distance = name, distance
        if best_distance < self.color_threshold:
            return best_name
        logger.debug("no color token within ΔE %.3f of %s", self.color_threshold, value)
        return None

    def _find_length(
        self,
        entries: list[_PixelEntry],
        value: str | float,
        percentage_reference: float | None,
        tolerance: float | None = None,
    ) -> str | None:
        if not entries:
            return None
        pixels = self.pixels(value, percentage_reference)
        if pixels is None:
            return None

        keys = [e.pixels for e in entries]
        pos = bisect_left(keys, pixels)
        best: _PixelEntry | None = None
        for candidate in (pos - 1, pos):
            if 0 <= candidate < len(entries):
                entry = entries[candidate]
                if best is None or abs(entry.pixels - pixels) < abs(best.pixels - pixels):
                    best = entry
        limit = self.pixel_threshold if tolerance is None else tolerance
        if best is not None and abs(best.pixels - pixels) <= limit:
            return best.name
        return None

    def resolve_token(self, category: TokenCategory, name: str) -> str | None:
        """Return the literal value of a named token (font size for typography)."""
        if category is TokenCategory.COLORS:
            value = self.tokens.colors.get(name)
            return None if value is None else self._resolve_color_literal(value)
        if category is TokenCategory.SPACING:
            return self.tokens.spacing.get(name)
        if category is TokenCategory.BORDER_RADIUS:
            return self.tokens.border_radius.get(name)
        font = self.tokens.typography.get(name)
        return None if font is None else f"{format_number(font.font_size)}px"

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def normalize(
        self,
        property: str,
        value: str | float,
        percentage_reference: float | None = None,
    ) -> Normalized:
        if isinstance(value, (int, float)):
            return round(float(value), 3)
        raw = value.strip()
        text = raw.lower()
        if text in GLOBAL_KEYWORDS:
            return text

        if property in COLOR_PROPERTIES:
            literal = self._resolve_color_literal(raw)
            color = try_parse_color(literal)
            return literal if color is None else serialize_color(color)
        if property in FONT_WEIGHT_PROPERTIES:
            text = _FONT_WEIGHT_KEYWORDS.get(text, text)
            return _number_or_text(text)
        if property in NUMERIC_PROPERTIES:
            return _number_or_text(text)
        if property in HYBRID_PROPERTIES:
            number = _number_or_text(text)
            if isinstance(number, float) or _KEYWORD_RE.match(text):
                return number
        elif property not in LENGTH_PROPERTIES:
            return text

        if _KEYWORD_RE.match(text):
            return text
        pixels = self.pixels(raw, percentage_reference)
        return text if pixels is None else round(pixels, 3)

    def compare_with_tokens(
        self,
        property: str,
        expected: str | float,
        actual: str | float,
        selector: str = "",
        percentage_reference: float | None = None,
    ) -> TokenComparison:
        """
        Compare an expected (design) and actual (rendered) value.

        A match still reports the token the value corresponds to. A mismatch
        whose expected value resolves to a token is reported as a missed token.
        """
        norm_expected = self.normalize(property, expected, percentage_reference)
        norm_actual = self.normalize(property, actual, percentage_reference)
        found = self._find_token(property, expected, percentage_reference)
        token_name = None if found is None else found[0]

        if norm_expected == norm_actual:
            return TokenComparison(True, token_name, None, norm_expected, norm_actual)

        missed = None
        if found is not None:
            missed = MissedToken(
                token_name=token_name,
                token_category=found[1],
                expected_value=_display(norm_expected),
                actual_value=_display(norm_actual),
                property=property,
                selector=selector,
            )
        return TokenComparison(False, token_name, missed, norm_expected, norm_actual)


def build_index(
    tokens: DesignTokenDictionary | None = None,
    metrics: ContextMetrics | None = None,
    **kwargs,
) -> TokenIndex:
    return TokenIndex.build(tokens, metrics, **kwargs)


def _number_or_text(text: str) -> Normalized:
    try:
        return float(text)
    except ValueError:
        return text


def _display(value: Normalized) -> str:
    return format_number(value) if isinstance(value, float) else value
