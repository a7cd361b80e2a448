"""Tests for color parsing, OKLab distance and serialisation."""

import pytest

from tokenlens.tokens.color import (
    TRANSPARENT,
    contrast_ratio,
    delta_e,
    parse_color,
    serialize_color,
    to_srgb255,
    try_parse_color,
)


def rgb_of(text: str) -> tuple[int, int, int]:
    color = try_parse_color(text)
    assert color is not None, text
    return to_srgb255(color)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class TestParseColor:
    @pytest.mark.parametrize("text", [
        "#ff0000", "#f00", "#FF0000", "#ff0000ff", "red", "rgb(255, 0, 0)",
        "rgb(255 0 0)", "rgba(255,0,0,1)", "rgb(100% 0% 0%)", "hsl(0, 100%, 50%)",
        "hsl(0deg 100% 50%)", "hwb(0 0% 0%)", "color(srgb 1 0 0)",
    ])
    def test_red_in_every_syntax(self, text):
        assert rgb_of(text) == (255, 0, 0)

    def test_named_colors(self):
        assert rgb_of("white") == (255, 255, 255)
        assert rgb_of("RebeccaPurple") == (102, 51, 153)

    def test_oklab_and_oklch_round_trip_white(self):
        assert rgb_of("oklab(1 0 0)") == (255, 255, 255)
        assert rgb_of("oklch(1 0 0)") == (255, 255, 255)

    def test_lab_white(self):
        assert rgb_of("lab(100 0 0)") == (255, 255, 255)

    def test_alpha_channel(self):
        color = try_parse_color("rgb(255 0 0 / 50%)")
        assert color.alpha == pytest.approx(0.5)
        assert try_parse_color("#ff000080").alpha == pytest.approx(128 / 255)

    def test_fully_transparent_is_canonical(self):
        assert try_parse_color("rgba(255, 0, 0, 0)") == TRANSPARENT
        assert try_parse_color("transparent") == TRANSPARENT

    def test_color_mix_midpoint(self):
        mixed = try_parse_color("color-mix(in oklab, black, white)")
        black, white = parse_color("black"), parse_color("white")
        assert mixed.l == pytest.approx((black.l + white.l) / 2)

    def test_color_mix_weights(self):
        assert try_parse_color("color-mix(in oklab, red 100%, blue)") == parse_color("red")

    def test_invalid_inputs(self):
        assert try_parse_color("") is None
        assert try_parse_color("not-a-color") is None
        assert try_parse_color("#12") is None
        assert try_parse_color("#gggggg") is None
        assert try_parse_color("rgb(1, 2)") is None

    def test_parse_color_falls_back_to_transparent(self):
        assert parse_color("nonsense") == TRANSPARENT


# ---------------------------------------------------------------------------
# Distance and output
# ---------------------------------------------------------------------------

class TestDeltaE:
    def test_identical_is_zero(self):
        assert delta_e(parse_color("#336699"), parse_color("rgb(51, 102, 153)")) == pytest.approx(0, abs=1e-9)

    def test_near_colors_below_threshold(self):
        assert delta_e(parse_color("#ff0000"), parse_color("#fe0000")) < 0.05

    def test_distinct_colors_above_threshold(self):
        assert delta_e(parse_color("#ff0000"), parse_color("#0000ff")) > 0.05

    def test_alpha_contributes(self):
        opaque = parse_color("rgb(0 0 0)")
        half = parse_color("rgb(0 0 0 / 0.5)")
        assert delta_e(opaque, half) == pytest.approx((0.25 * 0.5) ** 0.5)


class TestSerializeColor:
    def test_opaque(self):
        assert serialize_color(parse_color("#ff0000")) == "rgb(255, 0, 0)"

    def test_translucent(self):
        assert serialize_color(parse_color("rgba(0, 0, 255, 0.5)")) == "rgba(0, 0, 255, 0.5)"

    def test_transparent(self):
        assert serialize_color(TRANSPARENT) == "transparent"


class TestContrast:
    def test_black_on_white(self):
        assert contrast_ratio(parse_color("black"), parse_color("white")) == pytest.approx(21, rel=1e-3)

    def test_same_color(self):
        assert contrast_ratio(parse_color("#777"), parse_color("#777")) == pytest.approx(1)
