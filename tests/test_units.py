"""Tests for the units layer: to_pixels, resolve_calc, evaluate_math, var() resolution."""

import math

import pytest

from tokenlens.core.types import DEFAULT_CONTEXT_METRICS, ContextMetrics, DesignTokenDictionary
from tokenlens.units.evaluator import (
    CalcOptions,
    evaluate_math,
    format_number,
    resolve_calc,
    to_pixels,
    try_to_pixels,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_tokens(**spacing: str) -> DesignTokenDictionary:
    return DesignTokenDictionary(spacing={k.replace("_", "-"): v for k, v in spacing.items()})


METRICS = DEFAULT_CONTEXT_METRICS


# ---------------------------------------------------------------------------
# to_pixels
# ---------------------------------------------------------------------------

class TestToPixels:
    def test_plain_px_and_unitless(self):
        assert to_pixels("12px") == 12
        assert to_pixels("12") == 12
        assert to_pixels(7) == 7.0

    def test_rem_uses_root_font_size(self):
        metrics = ContextMetrics(root_font_size=20)
        assert to_pixels("2rem", metrics) == 40

    def test_em_prefers_parent_font_size(self):
        assert to_pixels("2em", METRICS, CalcOptions(parent_font_size=10)) == 20
        assert to_pixels("2em", METRICS) == 32

    def test_viewport_width(self):
        assert to_pixels("10vw", ContextMetrics(viewport_width=1920)) == 192

    def test_viewport_height_and_min_max(self):
        metrics = ContextMetrics(viewport_width=1000, viewport_height=500)
        assert to_pixels("10vh", metrics) == 50
        assert to_pixels("10vmin", metrics) == 50
        assert to_pixels("10vmax", metrics) == 100

    def test_small_large_viewport_variants_use_layout_viewport(self):
        metrics = ContextMetrics(viewport_width=1000, viewport_height=500)
        assert to_pixels("10svw", metrics) == 100
        assert to_pixels("10lvh", metrics) == 50

    def test_dynamic_viewport_uses_visual_viewport(self):
        metrics = ContextMetrics(viewport_width=1000, viewport_height=800, visual_viewport_height=600)
        assert to_pixels("10dvh", metrics) == 60
        assert to_pixels("10dvw", metrics) == 100

    def test_container_units_fall_back_to_viewport(self):
        metrics = ContextMetrics(viewport_width=1000, viewport_height=500)
        assert to_pixels("10cqw", metrics) == 100
        assert to_pixels("10cqh", metrics) == 50

    def test_percentage_reference(self):
        assert to_pixels("50%", METRICS, CalcOptions(percentage_reference=1000)) == 500

    def test_percentage_without_reference_uses_viewport_width(self):
        assert to_pixels("10%", ContextMetrics(viewport_width=1920)) == 192

    def test_physical_units(self):
        assert to_pixels("1in") == 96
        assert to_pixels("12pt") == pytest.approx(16)
        assert to_pixels("2.54cm") == pytest.approx(96)

    def test_font_relative_approximations(self):
        assert to_pixels("2ch") == 16
        assert to_pixels("1ex") == pytest.approx(7.2)

    def test_unresolvable_is_zero(self):
        assert to_pixels("auto") == 0
        assert to_pixels(None) == 0
        assert try_to_pixels("auto") is None
        assert try_to_pixels("") is None

    def test_negative_and_decimal(self):
        assert to_pixels("-0.5rem") == -8
        assert to_pixels(".5px") == 0.5


# ---------------------------------------------------------------------------
# evaluate_math
# ---------------------------------------------------------------------------

class TestEvaluateMath:
    def test_basic_arithmetic(self):
        assert evaluate_math("10 + 20") == 30
        assert evaluate_math("100 - 40") == 60
        assert evaluate_math("5 * 10") == 50
        assert evaluate_math("50 / 2") == 25

    def test_operator_precedence(self):
        assert evaluate_math("10 + 5 * 2") == 20
        assert evaluate_math("(10 + 5) * 2") == 30

    def test_floats_and_negatives(self):
        assert evaluate_math("10.5 + 2.5") == 13
        assert evaluate_math("0 - 10") == -10
        assert evaluate_math("-10 + 4") == -6

    def test_division_by_zero(self):
        assert evaluate_math("10 / 0") == math.inf
        assert evaluate_math("-10 / 0") == -math.inf
        assert math.isnan(evaluate_math("0 / 0"))

    def test_empty_expression(self):
        assert evaluate_math("") == 0


# ---------------------------------------------------------------------------
# resolve_calc
# ---------------------------------------------------------------------------

class TestResolveCalc:
    def test_simple_px(self):
        assert resolve_calc("calc(10px + 20px)") == 30

    def test_rem_relative_to_root(self):
        assert resolve_calc("calc(2rem + 10px)", ContextMetrics(root_font_size=16)) == 42

    def test_viewport_units(self):
        assert resolve_calc("calc(10vw + 5vh)", METRICS) == 246

    def test_nested_calc(self):
        assert resolve_calc("calc(10px + calc(5px * 2))") == 20

    def test_clamp_min_max(self):
        assert resolve_calc("clamp(10px, 50px, 100px)") == 50
        assert resolve_calc("min(10px, 20px)") == 10
        assert resolve_calc("max(10px, 20px)") == 20

    def test_inverted_clamp_floor_wins(self):
        assert resolve_calc("clamp(100px, 50px, 0px)") == 100

    def test_var_tokens(self):
        options = CalcOptions(tokens=make_tokens(spacing_1="4px", primary_width="100px"))
        assert resolve_calc("calc(var(--spacing-1) * 2)", METRICS, options) == 8
        assert resolve_calc("calc(var(--primary-width) - 20px)", METRICS, options) == 80

    def test_var_fallback(self):
        options = CalcOptions(tokens=DesignTokenDictionary())
        assert resolve_calc("var(--missing, 15px)", METRICS, options) == 15

    def test_var_fallback_without_tokens(self):
        assert to_pixels("var(--missing, 2rem)") == 32

    def test_var_missing_without_fallback_is_zero(self):
        assert to_pixels("var(--missing)") == 0

    def test_var_cycle_resolves_to_zero(self):
        options = CalcOptions(tokens=make_tokens(a="var(--b)", b="var(--a)"))
        assert to_pixels("var(--a)", METRICS, options) == 0
        assert options.visited == set()

    def test_var_chain(self):
        options = CalcOptions(tokens=make_tokens(base="8px", double="calc(var(--base) * 2)"))
        assert to_pixels("var(--double)", METRICS, options) == 16

    def test_var_names_keep_their_case(self):
        options = CalcOptions(tokens=DesignTokenDictionary(spacing={"spaceLg": "24px"}))
        assert to_pixels("var(--spaceLg)", METRICS, options) == 24
        assert resolve_calc("calc(var(--spaceLg) + 1px)", METRICS, options) == 25
        assert resolve_calc("CALC(VAR(--spaceLg) * 2)", METRICS, options) == 48
        assert to_pixels("var(--spacelg)", METRICS, options) == 0

    @pytest.mark.parametrize("expression,expected", [
        ("(1 + 2) * 3", 9),
        ("1 + (2 * 3)", 7),
        ("10 / (5 - 3)", 5),
        ("calc(100% - 20px)", 1900),
        ("min(10px, 20px, 5px)", 5),
        ("max(1px, 2px, 3px, 4px)", 4),
        ("clamp(0px, 50px, 100px)", 50),
        ("clamp(100px, 50px, 0px)", 100),
    ])
    def test_math_edge_cases(self, expression, expected):
        assert resolve_calc(expression, METRICS) == expected


class TestFormatNumber:
    def test_integers_drop_fraction(self):
        assert format_number(16.0) == "16"
        assert format_number(-4.0) == "-4"

    def test_fractions_kept(self):
        assert format_number(0.5) == "0.5"
        assert format_number(1 / 3) == "0.3333"

    def test_non_finite(self):
        assert format_number(math.inf) == "inf"
