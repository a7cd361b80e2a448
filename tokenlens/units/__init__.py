from tokenlens.units.evaluator import (
    CalcOptions,
    evaluate_math,
    format_number,
    resolve_calc,
    to_pixels,
    try_to_pixels,
)

__all__ = [
    "CalcOptions",
    "evaluate_math",
    "format_number",
    "resolve_calc",
    "to_pixels",
    "try_to_pixels",
]
