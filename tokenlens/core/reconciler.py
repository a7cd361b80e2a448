"""Reconciler — main orchestrator: rendered tree + expected markup -> report."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from tokenlens.benchmarks.latency_tracker import LatencyTracker
from tokenlens.core.config import ReconcilerConfig
from tokenlens.core.properties import PROPERTY_REGISTRY
from tokenlens.core.types import (
    ContextMetrics,
    DesignTokenDictionary,
    Framework,
    MissedToken,
    PropertyDelta,
    ReconciliationReport,
    ReconciliationSummary,
    RenderedNode,
    Severity,
)
from tokenlens.formatter.formatter import ReportFormatter
from tokenlens.markup.parser import parse
from tokenlens.matcher.alignment import HierarchicalPairing, pair_hierarchically
from tokenlens.matcher.signals import MatchContext
from tokenlens.protocol.codec import deserialize
from tokenlens.tokens.resolver import TokenIndex, css_recommendation

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationInput:
    """One reconciliation request."""

    rendered: RenderedNode | dict[str, Any] | bytes  # tree, its JSON form, or protocol bytes
    expected_markup: str
    tokens: DesignTokenDictionary | None = None  # None -> the configured tokens
    framework: Framework | str | None = None  # None -> the configured framework
    metrics: ContextMetrics | None = None  # None -> the configured metrics
    secondary_markup: str | None = None  # design for a second viewport
    secondary_tokens: DesignTokenDictionary | None = None
    secondary_metrics: ContextMetrics | None = None
    figma_layer_url: str = ""


@dataclass
class _DiffResult:
    deltas: list[PropertyDelta]
    missed_tokens: list[MissedToken]
    tokens_used: list[str]


class Reconciler:
    """
    Decides whether a rendered tree implements a design and explains every
    mismatch in design-token terms.

    Usage:
        reconciler = Reconciler()
        report = reconciler.reconcile(ReconciliationInput(
            rendered=tree,
            expected_markup='<button class="bg-brand p-4">Buy</button>',
            tokens=tokens,
            framework="react-tailwind",
        ))
        # report.deltas            -> property mismatches
        # report.css_recommendations -> CSS to apply

    Per-phase timings accumulate on ``latency``, which keeps only the newest
    records; call ``latency.reset()`` to clear them between sessions.
    """

    def __init__(self, config: ReconcilerConfig | None = None) -> None:
        self.config = config or ReconcilerConfig()
        self.latency = LatencyTracker()
        self._formatter = ReportFormatter()
        self._run = 0

    def reconcile(self, request: ReconciliationInput) -> ReconciliationReport:
        t0 = time.perf_counter()
        self._run += 1
        run = self._run

        framework = Framework(request.framework or self.config.framework)
        tokens = request.tokens if request.tokens is not None else self.config.tokens
        metrics = request.metrics or self.config.metrics

        with self.latency.measure(run, "decode"):
            rendered = _as_tree(request.rendered)
        with self.latency.measure(run, "parse"):
            expected = parse(request.expected_markup)
        with self.latency.measure(run, "index"):
            index = self._build_index(tokens, metrics)
            context = MatchContext(framework, tokens, metrics)
        with self.latency.measure(run, "pairing"):
            pairing = pair_hierarchically(rendered, expected, context)
        with self.latency.measure(run, "diff"):
            diff = self._diff(pairing, context, index, metrics)

        with self.latency.measure(run, "format"):
            css = self._formatter.css_recommendations(diff.deltas)
            responsive = None
            if request.secondary_markup:
                responsive = self._responsive(rendered, request, framework, tokens, metrics)

        summary = self._summarize(pairing, diff.deltas)
        duration_ms = (time.perf_counter() - t0) * 1000
        self.latency.record(run, "total", duration_ms)
        logger.debug(
            "reconciled %d pairs, %d deltas in %.1f ms",
            summary.total_pairs, summary.total_deltas, duration_ms,
        )

        return ReconciliationReport(
            framework=framework,
            pairs=tuple(pairing.pairs),
            unmatched_rendered=tuple(pairing.unmatched_rendered),
            unmatched_expected=tuple(pairing.unmatched_expected),
            deltas=tuple(diff.deltas),
            missed_tokens=tuple(diff.missed_tokens),
            tokens_used_correctly=tuple(dict.fromkeys(diff.tokens_used)),
            summary=summary,
            css_recommendations=css,
            responsive_css_recommendations=responsive,
            figma_layer_url=request.figma_layer_url,
            duration_ms=duration_ms,
        )

    def _build_index(self, tokens: DesignTokenDictionary, metrics: ContextMetrics) -> TokenIndex:
        return TokenIndex.build(
            tokens,
            metrics,
            color_threshold=self.config.color_delta_e_threshold,
            pixel_threshold=self.config.pixel_threshold,
        )

    # ------------------------------------------------------------------
    # Property diffing
    # ------------------------------------------------------------------

    def _diff(
        self,
        pairing: HierarchicalPairing,
        context: MatchContext,
        index: TokenIndex,
        metrics: ContextMetrics,
    ) -> _DiffResult:
        result = _DiffResult([], [], [])
        for pair in pairing.pairs:
            rendered = pairing.rendered_by_id.get(pair.rendered_id)
            expected = pairing.expected_by_index.get(pair.expected_index)
            if rendered is None or expected is None:
                continue
            parent = pairing.rendered_parents.get(rendered.agent_id)
            self._diff_node(rendered, parent, context.inferred_styles(expected), index, metrics, result)
        return result

    def _diff_node(
        self,
        rendered: RenderedNode,
        parent: RenderedNode | None,
        styles: dict[str, Any],
        index: TokenIndex,
        metrics: ContextMetrics,
        result: _DiffResult,
    ) -> None:
        parent_width = parent.rect.width if parent is not None else metrics.viewport_width
        parent_height = parent.rect.height if parent is not None else metrics.viewport_height
        selector = rendered.selector

        for prop in PROPERTY_REGISTRY:
            expected_value = prop.expected(styles)
            if expected_value is None:
                continue
            actual_value = prop.actual_value(rendered)
            if actual_value is None:
                continue
            basis = prop.percentage_basis(rendered, parent_width, parent_height) if prop.percentage_basis else None

            expected_text = str(expected_value)
            comparison = index.compare_with_tokens(prop.id, expected_text, actual_value, selector, basis)
            if comparison.is_match:
                if comparison.token_name:
                    result.tokens_used.append(comparison.token_name)
                continue

            if isinstance(comparison.expected, float) and isinstance(comparison.actual, float):
                delta = comparison.actual - comparison.expected
            else:
                delta = 0.0
            severity = Severity.MAJOR if abs(delta) > self.config.major_delta else Severity.MINOR
            result.deltas.append(PropertyDelta(
                property=prop.id,
                figma_value=expected_text,
                caliper_value=actual_value,
                delta=round(delta, 3),
                severity=severity,
                selector=selector,
                token_name=comparison.token_name,
                css_recommendation=css_recommendation(prop.id, expected_text, comparison.token_name),
            ))
            if comparison.missed_token is not None:
                result.missed_tokens.append(comparison.missed_token)

    def _responsive(
        self,
        rendered: RenderedNode,
        request: ReconciliationInput,
        framework: Framework,
        tokens: DesignTokenDictionary,
        metrics: ContextMetrics,
    ) -> str:
        """Diff the same rendered tree against the secondary design and render overrides."""
        secondary_tokens = request.secondary_tokens or tokens
        secondary_metrics = request.secondary_metrics or metrics
        expected = parse(request.secondary_markup)
        index = self._build_index(secondary_tokens, secondary_metrics)
        context = MatchContext(framework, secondary_tokens, secondary_metrics)
        pairing = pair_hierarchically(rendered, expected, context)
        diff = self._diff(pairing, context, index, secondary_metrics)
        return self._formatter.responsive_css(diff.deltas, framework, secondary_metrics.viewport_width)

    def _summarize(self, pairing: HierarchicalPairing, deltas: list[PropertyDelta]) -> ReconciliationSummary:
        return ReconciliationSummary(
            total_pairs=len(pairing.pairs),
            high_confidence_pairs=sum(1 for p in pairing.pairs if p.confidence >= self.config.high_confidence),
            low_confidence_pairs=sum(1 for p in pairing.pairs if p.confidence < self.config.low_confidence),
            unmatched_rendered=len(pairing.unmatched_rendered),
            unmatched_expected=len(pairing.unmatched_expected),
            total_deltas=len(deltas),
            major_deltas=sum(1 for d in deltas if d.severity is Severity.MAJOR),
            minor_deltas=sum(1 for d in deltas if d.severity is Severity.MINOR),
        )


def _as_tree(rendered: RenderedNode | dict[str, Any] | bytes) -> RenderedNode:
    if isinstance(rendered, RenderedNode):
        return rendered
    if isinstance(rendered, (bytes, bytearray, memoryview)):
        return deserialize(bytes(rendered))
    return RenderedNode.from_dict(rendered)


def reconcile(request: ReconciliationInput, config: ReconcilerConfig | None = None) -> ReconciliationReport:
    """One-shot convenience wrapper around :class:`Reconciler`."""
    return Reconciler(config).reconcile(request)
