"""ReportFormatter — turns deltas and reports into CSS and agent-ready text."""

from __future__ import annotations

import re

from tokenlens.core.types import Framework, PropertyDelta, ReconciliationReport, Severity
from tokenlens.markup.scales import SPACING_SCALE
from tokenlens.units.evaluator import format_number

_INDENT = "  "
_PX_RE = re.compile(r"^(\d+(?:\.\d+)?)px$")

# (min viewport width, prefix), widest first
TAILWIND_BREAKPOINTS: tuple[tuple[int, str], ...] = (
    (1536, "2xl"),
    (1280, "xl"),
    (1024, "lg"),
    (768, "md"),
    (640, "sm"),
)

_SPACING_CLASS_PREFIXES: dict[str, str] = {
    "paddingTop": "pt",
    "paddingRight": "pr",
    "paddingBottom": "pb",
    "paddingLeft": "pl",
    "marginTop": "mt",
    "marginRight": "mr",
    "marginBottom": "mb",
    "marginLeft": "ml",
    "gap": "gap",
}

_KEYWORD_CLASSES: dict[str, dict[str, str]] = {
    "display": {"flex": "flex", "grid": "grid", "block": "block", "none": "hidden", "inline-flex": "inline-flex"},
    "flexDirection": {"column": "flex-col", "row": "flex-row"},
}


def tailwind_prefix(viewport_width: float | None) -> str:
    """Breakpoint prefix whose min-width is at or below *viewport_width*."""
    if not viewport_width:
        return "sm"
    for min_width, prefix in TAILWIND_BREAKPOINTS:
        if viewport_width >= min_width:
            return prefix
    return "max-sm"


def _spacing_key(px: float) -> str:
    """Scale key for *px*: exact, else the next larger step, else an arbitrary value."""
    steps = sorted(((float(v[:-2]), k) for k, v in SPACING_SCALE.items()), key=lambda s: s[0])
    for step_px, key in steps:
        if step_px == px:
            return key
    for step_px, key in steps:
        if step_px >= px:
            return key
    return f"[{format_number(px)}px]"


def css_to_tailwind_class(property: str, value: str) -> str | None:
    match = _PX_RE.match(value.strip())
    px = float(match.group(1)) if match else None

    if property in _SPACING_CLASS_PREFIXES:
        return None if px is None else f"{_SPACING_CLASS_PREFIXES[property]}-{_spacing_key(px)}"
    if property == "fontSize":
        return None if px is None else f"text-[{format_number(px)}px]"
    if property in ("width", "height"):
        return None if px is None else f"{property[0]}-[{format_number(px)}px]"
    if property in _KEYWORD_CLASSES:
        return _KEYWORD_CLASSES[property].get(value.strip())
    return None


class ReportFormatter:
    """Renders reconciliation output as CSS blocks, responsive overrides and text."""

    def css_recommendations(self, deltas: list[PropertyDelta] | tuple[PropertyDelta, ...]) -> str:
        """One ``selector { ... }`` block per selector, in first-seen order."""
        grouped = _group_by_selector(deltas)
        blocks = []
        for selector, selector_deltas in grouped.items():
            rules = "\n".join(f"{_INDENT}{d.css_recommendation}" for d in selector_deltas)
            blocks.append(f"{selector} {{\n{rules}\n}}")
        return "\n\n".join(blocks)

    def responsive_css(
        self,
        deltas: list[PropertyDelta] | tuple[PropertyDelta, ...],
        framework: Framework,
        viewport_width: float | None = None,
    ) -> str:
        """Overrides for a secondary viewport: prefixed classes or a max-width media block."""
        if not deltas:
            return ""
        if framework.is_tailwind:
            return self._tailwind_responsive(deltas, viewport_width)

        css = self.css_recommendations(deltas)
        breakpoint = format_number(viewport_width) if viewport_width else "768"
        label = f"{breakpoint}px" if viewport_width else "secondary"
        body = "\n".join(f"{_INDENT}{line}" if line else line for line in css.split("\n"))
        return f"/* Responsive overrides for {label} view */\n@media (max-width: {breakpoint}px) {{\n{body}\n}}"

    def _tailwind_responsive(
        self,
        deltas: list[PropertyDelta] | tuple[PropertyDelta, ...],
        viewport_width: float | None,
    ) -> str:
        prefix = tailwind_prefix(viewport_width)
        target = format_number(viewport_width) if viewport_width else "mobile"
        recommendations = []
        for selector, selector_deltas in _group_by_selector(deltas).items():
            classes = [
                f"{prefix}:{cls}"
                for cls in (css_to_tailwind_class(d.property, d.figma_value) for d in selector_deltas)
                if cls
            ]
            if classes:
                recommendations.append(
                    f"/* {selector} (target: {target}px) */\n/* Add classes: {' '.join(classes)} */"
                )
        return "\n\n".join(recommendations)

    # ------------------------------------------------------------------
    # Text rendering
    # ------------------------------------------------------------------

    def format(self, report: ReconciliationReport) -> str:
        """Compact text summary of a report for an agent or a terminal."""
        s = report.summary
        lines = [
            f"[RECONCILIATION — {report.framework.value} — {s.total_pairs} pair{'s' if s.total_pairs != 1 else ''}]",
            f"High confidence: {s.high_confidence_pairs}  Low confidence: {s.low_confidence_pairs}",
            f"Unmatched: {s.unmatched_rendered} rendered, {s.unmatched_expected} expected",
            f"Deltas: {s.total_deltas} ({s.major_deltas} major, {s.minor_deltas} minor)",
        ]
        if report.figma_layer_url:
            lines.append(f"Design: {report.figma_layer_url}")

        if report.deltas:
            lines += ["", "DELTAS:"]
            for delta in report.deltas:
                lines.append(self._render_delta(delta))

        if report.missed_tokens:
            lines += ["", "MISSED TOKENS:"]
            for missed in report.missed_tokens:
                lines.append(
                    f"{_INDENT}- {missed.selector} {missed.property}: "
                    f"expected {missed.token_name} ({missed.expected_value}), got {missed.actual_value}"
                )

        if report.css_recommendations:
            lines += ["", "CSS:", report.css_recommendations]
        if report.responsive_css_recommendations:
            lines += ["", "RESPONSIVE:", report.responsive_css_recommendations]
        return "\n".join(lines)

    def _render_delta(self, delta: PropertyDelta) -> str:
        marker = "!" if delta.severity is Severity.MAJOR else "~"
        token = f" [token: {delta.token_name}]" if delta.token_name else ""
        change = f" ({delta.delta:+g})" if delta.delta else ""
        return (
            f"{_INDENT}{marker} {delta.selector} {delta.property}: "
            f"{delta.figma_value!r} → {delta.caliper_value!r}{change}{token}"
        )


def _group_by_selector(
    deltas: list[PropertyDelta] | tuple[PropertyDelta, ...],
) -> dict[str, list[PropertyDelta]]:
    grouped: dict[str, list[PropertyDelta]] = {}
    for delta in deltas:
        grouped.setdefault(delta.selector, []).append(delta)
    return grouped
