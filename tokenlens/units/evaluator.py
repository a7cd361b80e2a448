"""CSS length / math-function evaluator: resolves values to pixels."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field

from tokenlens.core.types import DEFAULT_CONTEXT_METRICS, ContextMetrics, DesignTokenDictionary

logger = logging.getLogger(__name__)

MATH_FUNCTIONS: tuple[str, ...] = ("calc(", "clamp(", "min(", "max(")

# Fixed conversion factors to CSS px
_PHYSICAL_UNITS: dict[str, float] = {
    "pt": 4 / 3,
    "pc": 16.0,
    "in": 96.0,
    "cm": 96 / 2.54,
    "mm": 96 / 25.4,
}

_CH_RATIO = 0.5
_EX_RATIO = 0.45

_NUMBER_RE = re.compile(r"^([+-]?(?:\d+\.?\d*|\.\d+))\s*([a-z%]*)$", re.IGNORECASE)
_TOKEN_RE = re.compile(r"([+\-*/(),])|(\d*\.?\d+(?:[a-z]+|%)?)|([a-z-]+\()", re.IGNORECASE)


@dataclass
class CalcOptions:
    """Per-call inputs that are not part of the environment snapshot."""

    parent_font_size: float | None = None
    percentage_reference: float | None = None
    tokens: DesignTokenDictionary | None = None
    visited: set[str] = field(default_factory=set)  # var() names on the current chain


def format_number(value: float) -> str:
    """Render a float the way CSS does: no trailing ``.0`` for integers."""
    if math.isfinite(value) and value == int(value):
        return str(int(value))
    return repr(round(value, 4)) if math.isfinite(value) else str(value)


def to_pixels(
    value: str | float | int | None,
    metrics: ContextMetrics | None = None,
    options: CalcOptions | None = None,
) -> float:
    """Resolve a CSS length, math function or ``var()`` reference to px (0 when unresolvable)."""
    result = try_to_pixels(value, metrics, options)
    return 0.0 if result is None else result


def try_to_pixels(
    value: str | float | int | None,
    metrics: ContextMetrics | None = None,
    options: CalcOptions | None = None,
) -> float | None:
    """Like :func:`to_pixels` but returns None for values that are not numeric at all."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)

    metrics = metrics or DEFAULT_CONTEXT_METRICS
    options = options or CalcOptions()
    # Custom property names are case-sensitive; only keywords and units are folded
    text = value.strip()
    if not text:
        return None

    folded = text.lower()
    if folded.startswith(MATH_FUNCTIONS):
        return resolve_calc(text, metrics, options)
    if folded.startswith("var("):
        return _resolve_var(text, metrics, options)

    match = _NUMBER_RE.match(text)
    if match is None:
        return None
    return _convert(float(match.group(1)), match.group(2).lower(), metrics, options)


def _convert(num: float, unit: str, metrics: ContextMetrics, options: CalcOptions) -> float:
    if unit in ("", "px"):
        return num
    if unit == "rem":
        return num * metrics.root_font_size
    if unit == "em":
        return num * (options.parent_font_size or metrics.root_font_size)
    if unit == "%":
        reference = options.percentage_reference
        if reference is None:
            reference = metrics.viewport_width
        return num * reference / 100

    viewport = _viewport_dimension(unit, metrics)
    if viewport is not None:
        return num * viewport / 100

    if unit in _PHYSICAL_UNITS:
        return num * _PHYSICAL_UNITS[unit]
    if unit == "ch":
        return num * metrics.root_font_size * _CH_RATIO
    if unit == "ex":
        return num * metrics.root_font_size * _EX_RATIO
    return num


def _viewport_dimension(unit: str, metrics: ContextMetrics) -> float | None:
    """Return the px dimension a viewport-relative unit is a percentage of."""
    width, height = metrics.viewport_width, metrics.viewport_height
    # Container-query units fall back to the viewport when no container is known
    if unit.startswith("cq"):
        unit = {"cqw": "vw", "cqi": "vw", "cqh": "vh", "cqb": "vh"}.get(unit, "v" + unit[2:])
    elif unit[:1] in ("s", "l") and unit[1:2] == "v":
        unit = unit[1:]
    elif unit[:2] == "dv":
        width = metrics.visual_viewport_width or width
        height = metrics.visual_viewport_height or height
        unit = unit[1:]

    if unit == "vw":
        return width
    if unit == "vh":
        return height
    if unit == "vmin":
        return min(width, height)
    if unit == "vmax":
        return max(width, height)
    return None


# ------------------------------------------------------------------
# var()
# ------------------------------------------------------------------

def _split_var(text: str) -> tuple[str, str | None]:
    """Split ``var(--name, fallback)`` into the bare name and the fallback expression."""
    content = text[4:-1] if text.endswith(")") else text[4:]
    name, sep, fallback = content.partition(",")
    name = name.strip()
    if name.startswith("--"):
        name = name[2:]
    return name, fallback.strip() if sep else None


def lookup_token_value(name: str, tokens: DesignTokenDictionary) -> str | None:
    """Find a token literal by name: spacing, then border radius, colors, typography font size."""
    for table in (tokens.spacing, tokens.border_radius, tokens.colors):
        if name in table:
            return table[name]
    font = tokens.typography.get(name)
    if font is not None:
        return f"{format_number(font.font_size)}px"
    return None


def _resolve_var(text: str, metrics: ContextMetrics, options: CalcOptions) -> float:
    name, fallback = _split_var(text)
    if name in options.visited:
        logger.debug("var() cycle on --%s, resolving to 0", name)
        return 0.0

    found = lookup_token_value(name, options.tokens) if options.tokens is not None else None
    if found is not None:
        options.visited.add(name)
        try:
            return to_pixels(found, metrics, options)
        finally:
            options.visited.discard(name)

    if fallback:
        return to_pixels(fallback, metrics, options)
    logger.debug("var(--%s) has no token and no fallback", name)
    return 0.0


def substitute_vars(expression: str, metrics: ContextMetrics, options: CalcOptions) -> str:
    """Replace every (possibly nested) ``var(...)`` in *expression* with its px value."""
    while True:
        start = expression.lower().find("var(")
        if start == -1:
            return expression
        end = _matching_paren(expression, start + 3)
        resolved = _resolve_var(expression[start:end + 1], metrics, options)
        expression = f"{expression[:start]}{format_number(resolved)}{expression[end + 1:]}"


def _matching_paren(text: str, open_pos: int) -> int:
    depth = 0
    for i in range(open_pos, len(text)):
        if text[i] == "(":
            depth += 1
        elif text[i] == ")":
            depth -= 1
            if depth == 0:
                return i
    return len(text) - 1


# ------------------------------------------------------------------
# calc() / clamp() / min() / max()
# ------------------------------------------------------------------

def resolve_calc(
    expression: str,
    metrics: ContextMetrics | None = None,
    options: CalcOptions | None = None,
) -> float:
    """Evaluate a CSS math expression (``calc(2rem + 10px)``, ``clamp(...)``, ``10 / 0``)."""
    metrics = metrics or DEFAULT_CONTEXT_METRICS
    options = options or CalcOptions()
    expression = substitute_vars(expression.strip(), metrics, options).lower()
    return evaluate_math(expression, metrics, options)


def evaluate_math(
    expression: str,
    metrics: ContextMetrics | None = None,
    options: CalcOptions | None = None,
) -> float:
    """Recursive-descent evaluation of an already var()-free math expression."""
    tokens = [m.group(0) for m in _TOKEN_RE.finditer(expression)]
    return _MathParser(tokens, metrics or DEFAULT_CONTEXT_METRICS, options or CalcOptions()).parse()


class _MathParser:
    """
    expression := term (('+'|'-') term)*
    term       := factor (('*'|'/') factor)*
    factor     := '(' expression ')' | fn expression (',' expression)* ')' | value
    """

    def __init__(self, tokens: list[str], metrics: ContextMetrics, options: CalcOptions) -> None:
        self._tokens = tokens
        self._pos = 0
        self._metrics = metrics
        self._options = options

    def parse(self) -> float:
        if not self._tokens:
            return 0.0
        return self._expression()

    def _peek(self) -> str | None:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _next(self) -> str | None:
        token = self._peek()
        self._pos += 1
        return token

    def _expression(self) -> float:
        result = self._term()
        while self._peek() in ("+", "-"):
            op = self._next()
            right = self._term()
            result = result + right if op == "+" else result - right
        return result

    def _term(self) -> float:
        result = self._factor()
        while self._peek() in ("*", "/"):
            op = self._next()
            right = self._factor()
            if op == "*":
                result *= right
            else:
                result = _divide(result, right)
        return result

    def _factor(self) -> float:
        token = self._next()
        if token is None:
            return 0.0
        if token == "(":
            result = self._expression()
            if self._peek() == ")":
                self._next()
            return result
        if token in ("-", "+"):
            value = self._factor()
            return -value if token == "-" else value
        if token.endswith("("):
            return self._function(token[:-1])
        return to_pixels(token, self._metrics, self._options)

    def _function(self, name: str) -> float:
        args = [self._expression()]
        while self._peek() == ",":
            self._next()
            args.append(self._expression())
        if self._peek() == ")":
            self._next()

        if name == "min":
            return min(args)
        if name == "max":
            return max(args)
        if name == "clamp" and len(args) == 3:
            low, value, high = args
            # An inverted range (low > high) yields low
            return max(low, min(value, high))
        return args[0]


def _divide(left: float, right: float) -> float:
    if right == 0:
        if left == 0:
            return math.nan
        return math.copysign(math.inf, left)
    return left / right
