from tokenlens.tokens.color import (
    OklabColor,
    contrast_ratio,
    delta_e,
    luminance,
    parse_color,
    serialize_color,
    try_parse_color,
)
from tokenlens.tokens.resolver import (
    TokenComparison,
    TokenIndex,
    build_index,
    css_recommendation,
    to_css_property,
    token_category,
)

__all__ = [
    "OklabColor",
    "TokenComparison",
    "TokenIndex",
    "build_index",
    "contrast_ratio",
    "css_recommendation",
    "delta_e",
    "luminance",
    "parse_color",
    "serialize_color",
    "to_css_property",
    "token_category",
    "try_parse_color",
]
