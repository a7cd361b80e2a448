"""Greedy child alignment and hierarchical pairing of rendered vs. expected trees."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from tokenlens.core.types import ExpectedNode, MatchSignal, NodePair, RenderedNode
from tokenlens.matcher.signals import MatchContext, similarity

logger = logging.getLogger(__name__)

CANDIDATE_MIN_SCORE = 10  # candidates need more than this (or an id match)
ACCEPT_MIN_SCORE = 30  # accepted alignments need at least this
MAX_PAIRING_DEPTH = 256


@dataclass(frozen=True)
class Alignment:
    rendered_idx: int
    expected_idx: int
    score: int
    signals: tuple[MatchSignal, ...] = ()


@dataclass
class HierarchicalPairing:
    """Result of pairing two trees top-down."""

    pairs: list[NodePair] = field(default_factory=list)
    unmatched_rendered: list[str] = field(default_factory=list)
    unmatched_expected: list[int] = field(default_factory=list)
    rendered_by_id: dict[str, RenderedNode] = field(default_factory=dict)
    expected_by_index: dict[int, ExpectedNode] = field(default_factory=dict)
    rendered_parents: dict[str, RenderedNode] = field(default_factory=dict)


def greedy_child_alignment(
    rendered_children: list[RenderedNode],
    expected_children: list[ExpectedNode],
    context: MatchContext | None = None,
) -> list[Alignment]:
    """
    Align two sibling lists.

    Every (i, j) scoring above the candidate threshold (or matching by id) is
    a candidate; candidates are taken best-first and accepted only when both
    indices are still free and the score reaches the acceptance threshold.
    Equal scores keep (i, j) generation order.
    """
    candidates: list[Alignment] = []
    for i, rendered in enumerate(rendered_children):
        for j, expected in enumerate(expected_children):
            result = similarity(rendered, expected, context)
            if result.score > CANDIDATE_MIN_SCORE or MatchSignal.ID_MATCH in result.signals:
                candidates.append(Alignment(i, j, result.score, result.signals))

    candidates.sort(key=lambda c: c.score, reverse=True)

    used_rendered: set[int] = set()
    used_expected: set[int] = set()
    accepted: list[Alignment] = []
    for candidate in candidates:
        if candidate.score < ACCEPT_MIN_SCORE:
            continue
        if candidate.rendered_idx in used_rendered or candidate.expected_idx in used_expected:
            continue
        used_rendered.add(candidate.rendered_idx)
        used_expected.add(candidate.expected_idx)
        accepted.append(candidate)
    return accepted


def pair_hierarchically(
    rendered_root: RenderedNode,
    expected_root: ExpectedNode,
    context: MatchContext | None = None,
) -> HierarchicalPairing:
    """
    Pair the roots, then recurse into aligned children only.

    Expected nodes are numbered in pre-order (root 0) before matching starts.
    Nodes never reached by an alignment are reported as unmatched.
    """
    result = HierarchicalPairing()
    expected_index: dict[ExpectedNode, int] = {}
    for index, node in enumerate(expected_root.walk()):
        expected_index[node] = index
        result.expected_by_index[index] = node
    for node in rendered_root.walk():
        result.rendered_by_id[node.agent_id] = node
        for child in node.children:
            result.rendered_parents[child.agent_id] = node

    _pair(rendered_root, expected_root, 0, context, expected_index, result)

    paired_rendered = {p.rendered_id for p in result.pairs}
    paired_expected = {p.expected_index for p in result.pairs}
    result.unmatched_rendered = [rid for rid in result.rendered_by_id if rid not in paired_rendered]
    result.unmatched_expected = [idx for idx in result.expected_by_index if idx not in paired_expected]
    logger.debug(
        "paired %d nodes, %d rendered and %d expected unmatched",
        len(result.pairs), len(result.unmatched_rendered), len(result.unmatched_expected),
    )
    return result


def _pair(
    rendered: RenderedNode,
    expected: ExpectedNode,
    depth: int,
    context: MatchContext | None,
    expected_index: dict[ExpectedNode, int],
    result: HierarchicalPairing,
) -> None:
    match = similarity(rendered, expected, context)
    result.pairs.append(NodePair(
        rendered_id=rendered.agent_id,
        expected_index=expected_index[expected],
        confidence=match.score,
        depth=depth,
        match_signals=frozenset(match.signals),
    ))
    if depth >= MAX_PAIRING_DEPTH:
        logger.warning("pairing depth limit %d reached at %s", MAX_PAIRING_DEPTH, rendered.agent_id)
        return

    for alignment in greedy_child_alignment(rendered.children, expected.children, context):
        _pair(
            rendered.children[alignment.rendered_idx],
            expected.children[alignment.expected_idx],
            depth + 1,
            context,
            expected_index,
            result,
        )
