"""Tests for the formatter layer."""

import pytest

from tokenlens.core.types import (
    Framework,
    MissedToken,
    PropertyDelta,
    ReconciliationReport,
    ReconciliationSummary,
    Severity,
    TokenCategory,
)
from tokenlens.formatter.formatter import ReportFormatter, css_to_tailwind_class, tailwind_prefix


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_delta(prop="paddingTop", figma="16px", caliper="12px", selector=".card", token=None, delta=-4.0):
    recommendation = f"padding-top: var(--{token}); /* {figma} */" if token else f"padding-top: {figma};"
    return PropertyDelta(
        property=prop,
        figma_value=figma,
        caliper_value=caliper,
        delta=delta,
        severity=Severity.MAJOR if abs(delta) > 8 else Severity.MINOR,
        selector=selector,
        token_name=token,
        css_recommendation=recommendation,
    )


# ---------------------------------------------------------------------------
# Tailwind helpers
# ---------------------------------------------------------------------------

class TestTailwindPrefix:
    @pytest.mark.parametrize("width,prefix", [
        (1920, "2xl"),
        (1280, "xl"),
        (1100, "lg"),
        (768, "md"),
        (700, "sm"),
        (375, "max-sm"),
    ])
    def test_breakpoints(self, width, prefix):
        assert tailwind_prefix(width) == prefix

    def test_unknown_width(self):
        assert tailwind_prefix(None) == "sm"


class TestCssToTailwindClass:
    def test_exact_spacing_step(self):
        assert css_to_tailwind_class("paddingTop", "16px") == "pt-4"
        assert css_to_tailwind_class("marginLeft", "8px") == "ml-2"
        assert css_to_tailwind_class("gap", "2px") == "gap-0.5"

    def test_rounds_up_to_next_step(self):
        assert css_to_tailwind_class("paddingBottom", "13px") == "pb-3.5"

    def test_beyond_scale_is_arbitrary(self):
        assert css_to_tailwind_class("marginTop", "500px") == "mt-[500px]"

    def test_font_size_and_dimensions(self):
        assert css_to_tailwind_class("fontSize", "18px") == "text-[18px]"
        assert css_to_tailwind_class("width", "240px") == "w-[240px]"

    def test_keywords(self):
        assert css_to_tailwind_class("display", "none") == "hidden"
        assert css_to_tailwind_class("flexDirection", "column") == "flex-col"

    def test_unconvertible(self):
        assert css_to_tailwind_class("paddingTop", "1rem") is None
        assert css_to_tailwind_class("color", "rgb(0, 0, 0)") is None


# ---------------------------------------------------------------------------
# ReportFormatter
# ---------------------------------------------------------------------------

class TestCssRecommendations:
    def test_grouped_in_first_seen_order(self):
        deltas = [
            make_delta(selector=".card"),
            make_delta(selector="h1", figma="4px"),
            make_delta(selector=".card", figma="8px", token="space-2"),
        ]
        assert ReportFormatter().css_recommendations(deltas) == (
            ".card {\n  padding-top: 16px;\n  padding-top: var(--space-2); /* 8px */\n}"
            "\n\n"
            "h1 {\n  padding-top: 4px;\n}"
        )

    def test_empty(self):
        assert ReportFormatter().css_recommendations([]) == ""


class TestResponsiveCss:
    def test_tailwind_classes(self):
        text = ReportFormatter().responsive_css([make_delta()], Framework.VUE_TAILWIND, 1024)
        assert text == "/* .card (target: 1024px) */\n/* Add classes: lg:pt-4 */"

    def test_tailwind_skips_unconvertible(self):
        delta = make_delta(prop="color", figma="rgb(0, 0, 0)")
        assert ReportFormatter().responsive_css([delta], Framework.REACT_TAILWIND, 768) == ""

    def test_css_media_block(self):
        text = ReportFormatter().responsive_css([make_delta()], Framework.SVELTE_CSS, 480)
        assert text == (
            "/* Responsive overrides for 480px view */\n"
            "@media (max-width: 480px) {\n"
            "  .card {\n"
            "    padding-top: 16px;\n"
            "  }\n"
            "}"
        )

    def test_css_without_viewport(self):
        text = ReportFormatter().responsive_css([make_delta()], Framework.HTML_CSS)
        assert text.startswith("/* Responsive overrides for secondary view */\n@media (max-width: 768px)")

    def test_no_deltas(self):
        assert ReportFormatter().responsive_css([], Framework.HTML_CSS, 375) == ""


class TestFormat:
    def make_report(self, **kwargs):
        defaults = dict(
            framework=Framework.REACT_TAILWIND,
            deltas=(make_delta(token="space-4", delta=-12.0),),
            missed_tokens=(MissedToken(
                token_name="space-4",
                token_category=TokenCategory.SPACING,
                expected_value="16",
                actual_value="4",
                property="paddingTop",
                selector=".card",
            ),),
            summary=ReconciliationSummary(total_pairs=1, high_confidence_pairs=1, total_deltas=1, major_deltas=1),
            css_recommendations=".card {\n  padding-top: var(--space-4); /* 16px */\n}",
            figma_layer_url="https://figma.com/file/abc",
        )
        defaults.update(kwargs)
        return ReconciliationReport(**defaults)

    def test_header(self):
        text = ReportFormatter().format(self.make_report())
        assert text.startswith("[RECONCILIATION — react-tailwind — 1 pair]")
        assert "Deltas: 1 (1 major, 0 minor)" in text
        assert "Design: https://figma.com/file/abc" in text

    def test_plural_pairs(self):
        report = self.make_report(summary=ReconciliationSummary(total_pairs=3))
        assert "3 pairs]" in ReportFormatter().format(report).splitlines()[0]

    def test_sections(self):
        text = ReportFormatter().format(self.make_report())
        assert "DELTAS:" in text
        assert "! .card paddingTop: '16px' → '12px' (-12) [token: space-4]" in text
        assert "- .card paddingTop: expected space-4 (16), got 4" in text
        assert "CSS:" in text
        assert "RESPONSIVE:" not in text

    def test_clean_report_has_no_sections(self):
        report = ReconciliationReport(framework=Framework.HTML_CSS)
        text = ReportFormatter().format(report)
        assert "DELTAS:" not in text
        assert "MISSED TOKENS:" not in text
        assert text.splitlines()[0] == "[RECONCILIATION — html-css — 0 pairs]"
