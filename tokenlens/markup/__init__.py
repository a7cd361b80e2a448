from tokenlens.markup.parser import parse, to_markup
from tokenlens.markup.style_inference import (
    StyleCache,
    infer_node_styles,
    infer_styles_from_classes,
    parse_inline_styles,
)

__all__ = [
    "StyleCache",
    "infer_node_styles",
    "infer_styles_from_classes",
    "parse",
    "parse_inline_styles",
    "to_markup",
]
