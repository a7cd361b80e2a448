"""Similarity signals between a rendered node and an expected node."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from tokenlens.core.types import (
    ContextMetrics,
    DesignTokenDictionary,
    ExpectedNode,
    Framework,
    MatchSignal,
    RenderedNode,
)
from tokenlens.markup.style_inference import StyleCache

SignalResult = tuple[int, MatchSignal | None]
SignalFn = Callable[[RenderedNode, ExpectedNode, Mapping[str, Any]], SignalResult]

TAG_EXACT_POINTS = 100
TAG_EQUIVALENT_POINTS = 50
TAG_MISMATCH_POINTS = -50
ID_MATCH_POINTS = 100
TEXT_EXACT_POINTS = 80
TEXT_FUZZY_POINTS = 40
CLASS_MAX_POINTS = 60
CHILD_COUNT_MATCH_POINTS = 20
CHILD_COUNT_MISMATCH_POINTS = -30
CHILD_COUNT_TOLERANCE = 2
LAYOUT_POINTS = 20
LAYOUT_DIRECTION_POINTS = 30

# Tags within a group are interchangeable
TAG_EQUIVALENCE_GROUPS: tuple[frozenset[str], ...] = (
    frozenset({"div", "section", "article", "main", "aside", "header", "footer", "nav"}),
    frozenset({"span", "strong", "em", "b", "i", "small", "mark"}),
    frozenset({"a", "button"}),
)

_EQUIVALENT_TAGS: dict[str, frozenset[str]] = {
    tag: group for group in TAG_EQUIVALENCE_GROUPS for tag in group
}


@dataclass
class MatchContext:
    """
    Framework and tokens used to infer expected styles during matching.

    Owns the run's StyleCache, so every comparison against the same
    ExpectedNode reuses one inference result.
    """

    framework: Framework
    tokens: DesignTokenDictionary = field(default_factory=DesignTokenDictionary)
    metrics: ContextMetrics | None = None
    cache: StyleCache = field(init=False)

    def __post_init__(self) -> None:
        self.framework = Framework(self.framework)
        self.cache = StyleCache(self.framework, self.tokens, self.metrics)

    def inferred_styles(self, node: ExpectedNode) -> Mapping[str, Any]:
        return self.cache.get(node)


@dataclass(frozen=True)
class Similarity:
    score: int  # clamped to [0, 100]
    signals: tuple[MatchSignal, ...] = ()


# ---------------------------------------------------------------------------
# Signals: each returns (points, signal or None)
# ---------------------------------------------------------------------------

def tag_signal(rendered: RenderedNode, expected: ExpectedNode, styles: Mapping[str, Any]) -> SignalResult:
    actual, wanted = rendered.tag.lower(), expected.tag.lower()
    if actual == wanted:
        return TAG_EXACT_POINTS, MatchSignal.TAG_MATCH
    if wanted in _EQUIVALENT_TAGS.get(actual, ()):
        return TAG_EQUIVALENT_POINTS, MatchSignal.TAG_MATCH
    return TAG_MISMATCH_POINTS, MatchSignal.TAG_MISMATCH


def id_signal(rendered: RenderedNode, expected: ExpectedNode, styles: Mapping[str, Any]) -> SignalResult:
    if rendered.html_id and expected.id and rendered.html_id == expected.id:
        return ID_MATCH_POINTS, MatchSignal.ID_MATCH
    return 0, None


def text_signal(rendered: RenderedNode, expected: ExpectedNode, styles: Mapping[str, Any]) -> SignalResult:
    actual = (rendered.text_content or "").strip().lower()
    wanted = (expected.text_content or "").strip().lower()
    if not actual or not wanted:
        return 0, None
    if actual == wanted:
        return TEXT_EXACT_POINTS, MatchSignal.TEXT_EXACT
    if actual in wanted or wanted in actual:
        return TEXT_FUZZY_POINTS, MatchSignal.TEXT_FUZZY
    return 0, None


def class_signal(rendered: RenderedNode, expected: ExpectedNode, styles: Mapping[str, Any]) -> SignalResult:
    actual = {c.lower() for c in rendered.classes}
    wanted = {c.lower() for c in expected.classes}
    if not actual or not wanted:
        return 0, None
    matches = len(actual & wanted)
    if not matches:
        return 0, None
    return round(matches / max(len(actual), len(wanted)) * CLASS_MAX_POINTS), MatchSignal.CLASS_SEMANTIC


def child_count_signal(rendered: RenderedNode, expected: ExpectedNode, styles: Mapping[str, Any]) -> SignalResult:
    difference = abs(rendered.child_count - len(expected.children))
    if difference == 0:
        return CHILD_COUNT_MATCH_POINTS, MatchSignal.CHILD_COUNT_MATCH
    if difference > CHILD_COUNT_TOLERANCE:
        return CHILD_COUNT_MISMATCH_POINTS, MatchSignal.CHILD_COUNT_MISMATCH
    return 0, None


def layout_signal(rendered: RenderedNode, expected: ExpectedNode, styles: Mapping[str, Any]) -> SignalResult:
    display = styles.get("display")
    if not display or display != rendered.styles.display:
        return 0, None
    direction = styles.get("flexDirection")
    if direction and direction == rendered.styles.flex_direction:
        return LAYOUT_DIRECTION_POINTS, MatchSignal.LAYOUT_MATCH
    return LAYOUT_POINTS, MatchSignal.LAYOUT_MATCH


SIGNALS: tuple[SignalFn, ...] = (
    tag_signal,
    id_signal,
    text_signal,
    class_signal,
    child_count_signal,
    layout_signal,
)


def similarity(
    rendered: RenderedNode,
    expected: ExpectedNode,
    context: MatchContext | None = None,
) -> Similarity:
    """Sum every signal's points for the pair and clamp the total to [0, 100]."""
    styles: Mapping[str, Any] = context.inferred_styles(expected) if context is not None else {}
    total = 0
    fired: list[MatchSignal] = []
    for signal in SIGNALS:
        points, tag = signal(rendered, expected, styles)
        total += points
        if tag is not None:
            fired.append(tag)
    return Similarity(score=max(0, min(100, total)), signals=tuple(fired))
