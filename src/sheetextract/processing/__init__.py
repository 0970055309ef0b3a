"""Field extraction processing helpers."""

from sheetextract.processing.heuristics import apply_exclude_rule, find_value, heuristic_extract
from sheetextract.processing.json_coercion import CoercionResult, Parsed, Unparsable, coerce_json_object
from sheetextract.processing.normalization import apply_aliases, coerce_field_value, normalize_fields

__all__ = [
    "CoercionResult",
    "Parsed",
    "Unparsable",
    "apply_aliases",
    "apply_exclude_rule",
    "coerce_field_value",
    "coerce_json_object",
    "find_value",
    "heuristic_extract",
    "normalize_fields",
]
