"""CSS color parsing into OKLab, perceptual distance and serialisation."""

from __future__ import annotations

import math
import re
from typing import NamedTuple


class OklabColor(NamedTuple):
    l: float  # noqa: E741 - OKLab lightness, 0..1
    a: float
    b: float
    alpha: float = 1.0


TRANSPARENT = OklabColor(0.0, 0.0, 0.0, 0.0)

NAMED_COLORS: dict[str, str] = {
    "aliceblue": "#f0f8ff", "antiquewhite": "#faebd7", "aqua": "#00ffff",
    "aquamarine": "#7fffd4", "azure": "#f0ffff", "beige": "#f5f5dc",
    "bisque": "#ffe4c4", "black": "#000000", "blanchedalmond": "#ffebcd",
    "blue": "#0000ff", "blueviolet": "#8a2be2", "brown": "#a52a2a",
    "burlywood": "#deb887", "cadetblue": "#5f9ea0", "chartreuse": "#7fff00",
    "chocolate": "#d2691e", "coral": "#ff7f50", "cornflowerblue": "#6495ed",
    "cornsilk": "#fff8dc", "crimson": "#dc143c", "cyan": "#00ffff",
    "darkblue": "#00008b", "darkcyan": "#008b8b", "darkgoldenrod": "#b8860b",
    "darkgray": "#a9a9a9", "darkgreen": "#006400", "darkgrey": "#a9a9a9",
    "darkkhaki": "#bdb76b", "darkmagenta": "#8b008b", "darkolivegreen": "#556b2f",
    "darkorange": "#ff8c00", "darkorchid": "#9932cc", "darkred": "#8b0000",
    "darksalmon": "#e9967a", "darkseagreen": "#8fbc8f", "darkslateblue": "#483d8b",
    "darkslategray": "#2f4f4f", "darkslategrey": "#2f4f4f", "darkturquoise": "#00ced1",
    "darkviolet": "#9400d3", "deeppink": "#ff1493", "deepskyblue": "#00bfff",
    "dimgray": "#696969", "dimgrey": "#696969", "dodgerblue": "#1e90ff",
    "firebrick": "#b22222", "floralwhite": "#fffaf0", "forestgreen": "#228b22",
    "fuchsia": "#ff00ff", "gainsboro": "#dcdcdc", "ghostwhite": "#f8f8ff",
    "gold": "#ffd700", "goldenrod": "#daa520", "gray": "#808080",
    "green": "#008000", "greenyellow": "#adff2f", "grey": "#808080",
    "honeydew": "#f0fff0", "hotpink": "#ff69b4", "indianred": "#cd5c5c",
    "indigo": "#4b0082", "ivory": "#fffff0", "khaki": "#f0e68c",
    "lavender": "#e6e6fa", "lavenderblush": "#fff0f5", "lawngreen": "#7cfc00",
    "lemonchiffon": "#fffacd", "lightblue": "#add8e6", "lightcoral": "#f08080",
    "lightcyan": "#e0ffff", "lightgoldenrodyellow": "#fafad2", "lightgray": "#d3d3d3",
    "lightgreen": "#90ee90", "lightgrey": "#d3d3d3", "lightpink": "#ffb6c1",
    "lightsalmon": "#ffa07a", "lightseagreen": "#20b2aa", "lightskyblue": "#87cefa",
    "lightslategray": "#778899", "lightslategrey": "#778899", "lightsteelblue": "#b0c4de",
    "lightyellow": "#ffffe0", "lime": "#00ff00", "limegreen": "#32cd32",
    "linen": "#faf0e6", "magenta": "#ff00ff", "maroon": "#800000",
    "mediumaquamarine": "#66cdaa", "mediumblue": "#0000cd", "mediumorchid": "#ba55d3",
    "mediumpurple": "#9370db", "mediumseagreen": "#3cb371", "mediumslateblue": "#7b68ee",
    "mediumspringgreen": "#00fa9a", "mediumturquoise": "#48d1cc", "mediumvioletred": "#c71585",
    "midnightblue": "#191970", "mintcream": "#f5fffa", "mistyrose": "#ffe4e1",
    "moccasin": "#ffe4b5", "navajowhite": "#ffdead", "navy": "#000080",
    "oldlace": "#fdf5e6", "olive": "#808000", "olivedrab": "#6b8e23",
    "orange": "#ffa500", "orangered": "#ff4500", "orchid": "#da70d6",
    "palegoldenrod": "#eee8aa", "palegreen": "#98fb98", "paleturquoise": "#afeeee",
    "palevioletred": "#db7093", "papayawhip": "#ffefd5", "peachpuff": "#ffdab9",
    "peru": "#cd853f", "pink": "#ffc0cb", "plum": "#dda0dd",
    "powderblue": "#b0e0e6", "purple": "#800080", "rebeccapurple": "#663399",
    "red": "#ff0000", "rosybrown": "#bc8f8f", "royalblue": "#4169e1",
    "saddlebrown": "#8b4513", "salmon": "#fa8072", "sandybrown": "#f4a460",
    "seagreen": "#2e8b57", "seashell": "#fff5ee", "sienna": "#a0522d",
    "silver": "#c0c0c0", "skyblue": "#87ceeb", "slateblue": "#6a5acd",
    "slategray": "#708090", "slategrey": "#708090", "snow": "#fffafa",
    "springgreen": "#00ff7f", "steelblue": "#4682b4", "tan": "#d2b48c",
    "teal": "#008080", "thistle": "#d8bfd8", "tomato": "#ff6347",
    "turquoise": "#40e0d0", "violet": "#ee82ee", "wheat": "#f5deb3",
    "white": "#ffffff", "whitesmoke": "#f5f5f5", "yellow": "#ffff00",
    "yellowgreen": "#9acd32",
}

_FUNCTION_RE = re.compile(r"^(rgba?|hsla?|hwb|lab|lch|oklab|oklch|color)\((.*)\)$")
_CHANNEL_SPLIT_RE = re.compile(r"[\s,/]+")

# XYZ (D65) -> linear sRGB
_XYZ_TO_SRGB = (
    (3.2409699419045226, -1.537383177570094, -0.4986107602930034),
    (-0.9692436362808796, 1.8759675015077202, 0.04155505740717559),
    (0.05563007969699366, -0.20397695888897652, 1.0569715142428786),
)
# Bradford chromatic adaptation D50 -> D65
_D50_TO_D65 = (
    (0.9554734527042182, -0.023098536874261423, 0.0632593086610217),
    (-0.028369706963208136, 1.0099954580058226, 0.021041398966943008),
    (0.012314001688319899, -0.020507696433477912, 1.3303659366080753),
)
_P3_TO_XYZ = (
    (0.4865709486482162, 0.26566769316909306, 0.1982172852343625),
    (0.2289745640697488, 0.6917385218365064, 0.079286914093745),
    (0.0, 0.04511338185890264, 1.043944368900976),
)
_D50_WHITE = (0.3457 / 0.3585, 1.0, (1.0 - 0.3457 - 0.3585) / 0.3585)
_LAB_EPSILON = 216 / 24389
_LAB_KAPPA = 24389 / 27


def _mat(m: tuple[tuple[float, float, float], ...], v: tuple[float, float, float]) -> tuple[float, float, float]:
    return (
        m[0][0] * v[0] + m[0][1] * v[1] + m[0][2] * v[2],
        m[1][0] * v[0] + m[1][1] * v[1] + m[1][2] * v[2],
        m[2][0] * v[0] + m[2][1] * v[1] + m[2][2] * v[2],
    )


# ---------------------------------------------------------------------------
# Color space conversions
# ---------------------------------------------------------------------------

def _to_linear(c: float) -> float:
    sign = -1.0 if c < 0 else 1.0
    c = abs(c)
    if c <= 0.04045:
        return sign * c / 12.92
    return sign * ((c + 0.055) / 1.055) ** 2.4


def _from_linear(c: float) -> float:
    sign = -1.0 if c < 0 else 1.0
    c = abs(c)
    if c <= 0.0031308:
        return sign * c * 12.92
    return sign * (1.055 * c ** (1 / 2.4) - 0.055)


def linear_srgb_to_oklab(r: float, g: float, b: float, alpha: float = 1.0) -> OklabColor:
    l = 0.4122214708 * r + 0.5363325363 * g + 0.0514459929 * b  # noqa: E741
    m = 0.2119034982 * r + 0.6806995451 * g + 0.1073969566 * b
    s = 0.0883024619 * r + 0.2817188376 * g + 0.6299787005 * b
    l_, m_, s_ = (math.copysign(abs(x) ** (1 / 3), x) for x in (l, m, s))
    return _canonical(OklabColor(
        0.2104542553 * l_ + 0.7936177850 * m_ - 0.0040720468 * s_,
        1.9779984951 * l_ - 2.4285922050 * m_ + 0.4505937099 * s_,
        0.0259040371 * l_ + 0.7827717662 * m_ - 0.8086757660 * s_,
        alpha,
    ))


def oklab_to_linear_srgb(color: OklabColor) -> tuple[float, float, float]:
    l_ = color.l + 0.3963377774 * color.a + 0.2158037573 * color.b
    m_ = color.l - 0.1055613458 * color.a - 0.0638541728 * color.b
    s_ = color.l - 0.0894841775 * color.a - 1.2914855480 * color.b
    l, m, s = l_ ** 3, m_ ** 3, s_ ** 3  # noqa: E741
    return (
        4.0767416621 * l - 3.3077115913 * m + 0.2309699292 * s,
        -1.2684380046 * l + 2.6097574011 * m - 0.3413193965 * s,
        -0.0041960863 * l - 0.7034186147 * m + 1.7076147010 * s,
    )


def _srgb_to_oklab(r: float, g: float, b: float, alpha: float = 1.0) -> OklabColor:
    """Gamma-encoded sRGB channels in 0..1."""
    return linear_srgb_to_oklab(_to_linear(r), _to_linear(g), _to_linear(b), alpha)


def _xyz_d65_to_oklab(xyz: tuple[float, float, float], alpha: float) -> OklabColor:
    return linear_srgb_to_oklab(*_mat(_XYZ_TO_SRGB, xyz), alpha)


def _lab_to_oklab(lightness: float, a: float, b: float, alpha: float) -> OklabColor:
    fy = (lightness + 16) / 116
    fx = a / 500 + fy
    fz = fy - b / 200
    x = fx ** 3 if fx ** 3 > _LAB_EPSILON else (116 * fx - 16) / _LAB_KAPPA
    y = fy ** 3 if lightness > _LAB_KAPPA * _LAB_EPSILON else lightness / _LAB_KAPPA
    z = fz ** 3 if fz ** 3 > _LAB_EPSILON else (116 * fz - 16) / _LAB_KAPPA
    xyz_d50 = (x * _D50_WHITE[0], y * _D50_WHITE[1], z * _D50_WHITE[2])
    return _xyz_d65_to_oklab(_mat(_D50_TO_D65, xyz_d50), alpha)


def _hsl_to_rgb(h: float, s: float, lightness: float) -> tuple[float, float, float]:
    def channel(n: int) -> float:
        k = (n + h / 30) % 12
        a = s * min(lightness, 1 - lightness)
        return lightness - a * max(-1.0, min(k - 3, 9 - k, 1.0))

    return channel(0), channel(8), channel(4)


def _hwb_to_rgb(h: float, white: float, black: float) -> tuple[float, float, float]:
    if white + black >= 1:
        gray = white / (white + black)
        return gray, gray, gray
    r, g, b = _hsl_to_rgb(h, 1.0, 0.5)
    scale = 1 - white - black
    return r * scale + white, g * scale + white, b * scale + white


def _canonical(color: OklabColor) -> OklabColor:
    # Fully transparent colors are indistinguishable
    if color.alpha <= 0:
        return TRANSPARENT
    return color


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _number(text: str, percent_scale: float = 1.0) -> float:
    """Parse a channel; ``p%`` maps to ``p / 100 * percent_scale``."""
    if text == "none":
        return 0.0
    if text.endswith("%"):
        return float(text[:-1]) / 100 * percent_scale
    return float(text)


def _hue(text: str) -> float:
    if text == "none":
        return 0.0
    for suffix, factor in (("deg", 1.0), ("grad", 0.9), ("rad", 180 / math.pi), ("turn", 360.0)):
        if text.endswith(suffix):
            return float(text[: -len(suffix)]) * factor
    return float(text)


def _alpha(parts: list[str], index: int) -> float:
    if len(parts) <= index:
        return 1.0
    return max(0.0, min(1.0, _number(parts[index])))


def _parse_hex(text: str) -> OklabColor | None:
    digits = text[1:]
    if len(digits) in (3, 4):
        digits = "".join(c * 2 for c in digits)
    if len(digits) not in (6, 8):
        return None
    try:
        values = [int(digits[i:i + 2], 16) for i in range(0, len(digits), 2)]
    except ValueError:
        return None
    alpha = values[3] / 255 if len(values) == 4 else 1.0
    return _srgb_to_oklab(values[0] / 255, values[1] / 255, values[2] / 255, alpha)


def _parse_function(name: str, body: str) -> OklabColor | None:
    if name == "color":
        return _parse_color_function(body)
    parts = [p for p in _CHANNEL_SPLIT_RE.split(body.strip()) if p]
    if len(parts) < 3:
        return None

    if name in ("rgb", "rgba"):
        r, g, b = (_number(p, 255.0) / 255 for p in parts[:3])
        return _srgb_to_oklab(r, g, b, _alpha(parts, 3))
    if name in ("hsl", "hsla"):
        s = _number(parts[1].rstrip("%")) / 100
        lightness = _number(parts[2].rstrip("%")) / 100
        return _srgb_to_oklab(*_hsl_to_rgb(_hue(parts[0]) % 360, s, lightness), _alpha(parts, 3))
    if name == "hwb":
        white = _number(parts[1].rstrip("%")) / 100
        black = _number(parts[2].rstrip("%")) / 100
        return _srgb_to_oklab(*_hwb_to_rgb(_hue(parts[0]) % 360, white, black), _alpha(parts, 3))
    if name == "lab":
        return _lab_to_oklab(
            _number(parts[0], 100.0), _number(parts[1], 125.0), _number(parts[2], 125.0),
            _alpha(parts, 3),
        )
    if name == "lch":
        chroma, hue = _number(parts[1], 150.0), math.radians(_hue(parts[2]))
        return _lab_to_oklab(
            _number(parts[0], 100.0), chroma * math.cos(hue), chroma * math.sin(hue),
            _alpha(parts, 3),
        )
    if name == "oklab":
        return _canonical(OklabColor(
            _number(parts[0]), _number(parts[1], 0.4), _number(parts[2], 0.4), _alpha(parts, 3),
        ))
    if name == "oklch":
        chroma, hue = _number(parts[1], 0.4), math.radians(_hue(parts[2]))
        return _canonical(OklabColor(
            _number(parts[0]), chroma * math.cos(hue), chroma * math.sin(hue), _alpha(parts, 3),
        ))
    return None


def _parse_color_function(body: str) -> OklabColor | None:
    parts = [p for p in _CHANNEL_SPLIT_RE.split(body.strip()) if p]
    if len(parts) < 4:
        return None
    space = parts[0]
    channels = tuple(_number(p) for p in parts[1:4])
    alpha = _alpha(parts, 4)
    if space == "srgb":
        return _srgb_to_oklab(*channels, alpha)
    if space == "srgb-linear":
        return linear_srgb_to_oklab(*channels, alpha)
    if space == "display-p3":
        linear = tuple(_to_linear(c) for c in channels)
        return _xyz_d65_to_oklab(_mat(_P3_TO_XYZ, linear), alpha)
    if space in ("xyz", "xyz-d65"):
        return _xyz_d65_to_oklab(channels, alpha)
    if space == "xyz-d50":
        return _xyz_d65_to_oklab(_mat(_D50_TO_D65, channels), alpha)
    return None


def _split_top_level(text: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current = ""
    for ch in text:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append(current.strip())
            current = ""
        else:
            current += ch
    parts.append(current.strip())
    return parts


def _parse_color_mix(body: str) -> OklabColor | None:
    """``color-mix(in <space>, c1 [p1], c2 [p2])``, interpolated in OKLab."""
    parts = _split_top_level(body)
    if len(parts) != 3 or not parts[0].startswith("in "):
        return None

    mixed: list[tuple[OklabColor, float | None]] = []
    for part in parts[1:]:
        weight: float | None = None
        match = re.search(r"\s(\d*\.?\d+)%$", part)
        if match:
            weight = float(match.group(1)) / 100
            part = part[: match.start()].strip()
        color = try_parse_color(part)
        if color is None:
            return None
        mixed.append((color, weight))

    (c1, p1), (c2, p2) = mixed
    if p1 is None and p2 is None:
        p1, p2 = 0.5, 0.5
    elif p1 is None:
        p1 = 1 - p2
    elif p2 is None:
        p2 = 1 - p1
    total = p1 + p2
    if total <= 0:
        return None
    alpha_scale = min(total, 1.0)
    w2 = p2 / total
    w1 = 1 - w2
    return _canonical(OklabColor(
        c1.l * w1 + c2.l * w2,
        c1.a * w1 + c2.a * w2,
        c1.b * w1 + c2.b * w2,
        (c1.alpha * w1 + c2.alpha * w2) * alpha_scale,
    ))


def try_parse_color(text: str) -> OklabColor | None:
    """Parse any supported CSS color; None when *text* is not a color."""
    value = text.strip().lower()
    if not value:
        return None
    if value == "transparent":
        return TRANSPARENT
    if value in NAMED_COLORS:
        return _parse_hex(NAMED_COLORS[value])
    if value.startswith("#"):
        return _parse_hex(value)
    try:
        if value.startswith("color-mix(") and value.endswith(")"):
            return _parse_color_mix(value[len("color-mix("):-1])
        match = _FUNCTION_RE.match(value)
        if match:
            return _parse_function(match.group(1), match.group(2))
    except (ValueError, ZeroDivisionError):
        return None
    return None


def parse_color(text: str) -> OklabColor:
    """Parse a CSS color; unparseable input yields transparent black."""
    color = try_parse_color(text)
    return TRANSPARENT if color is None else color


# ---------------------------------------------------------------------------
# Distance and output
# ---------------------------------------------------------------------------

def delta_e(c1: OklabColor, c2: OklabColor) -> float:
    """Euclidean OKLab distance with alpha weighted at half."""
    return math.sqrt(
        (c1.l - c2.l) ** 2
        + (c1.a - c2.a) ** 2
        + (c1.b - c2.b) ** 2
        + (c1.alpha - c2.alpha) ** 2 * 0.5
    )


def to_srgb255(color: OklabColor) -> tuple[int, int, int]:
    return tuple(
        max(0, min(255, round(_from_linear(c) * 255))) for c in oklab_to_linear_srgb(color)
    )  # type: ignore[return-value]


def serialize_color(color: OklabColor) -> str:
    """Serialise to ``rgb()`` / ``rgba()`` like a browser's computed style."""
    if color.alpha <= 0:
        return "transparent"
    r, g, b = to_srgb255(color)
    if color.alpha >= 1:
        return f"rgb({r}, {g}, {b})"
    alpha = round(color.alpha, 3)
    return f"rgba({r}, {g}, {b}, {alpha:g})"


def luminance(color: OklabColor) -> float:
    """WCAG relative luminance of the (gamut-clamped) color."""
    r, g, b = (max(0.0, min(1.0, c)) for c in oklab_to_linear_srgb(color))
    return 0.2126 * r + 0.7152 * g + 0.0722 * b


def contrast_ratio(c1: OklabColor, c2: OklabColor) -> float:
    lighter, darker = sorted((luminance(c1), luminance(c2)), reverse=True)
    return (lighter + 0.05) / (darker + 0.05)
