"""Deterministic field extraction from Markdown text."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sheetextract.typing.models import FieldSchema, MatchRule


def _label_pattern(terms: tuple[str, ...]) -> re.Pattern[str]:
    """Compile the `label [sep] value` pattern for a set of label terms.

    Longer terms are tried first so `model name` wins over `model`.
    """
    alternation = "|".join(re.escape(term) for term in sorted(terms, key=len, reverse=True))
    return re.compile(
        rf"^(?:\|\s*)?(?:{alternation})\s*(?:\||:|=|-)?\s*([^|]+?)(?:\|.*)?$",
        re.IGNORECASE,
    )


def _table_row_value(line: str, folded_terms: list[str]) -> str | None:
    """Return the second cell of a pipe-table row whose first cell contains a term."""
    if not line.startswith("|"):
        return None
    cells = [cell.strip() for cell in line.split("|")[1:]]
    if len(cells) < 2:  # noqa: PLR2004
        return None
    first = cells[0].casefold()
    if any(term in first for term in folded_terms):
        return cells[1]
    return None


def find_value(lines: list[str], terms: tuple[str, ...]) -> str:
    """Find the first value labelled by one of `terms`.

    `label sep value` lines (sep is `|`, `:`, `=` or `-`) are scanned first, then
    pipe-table rows whose first cell contains a term.

    Args:
        lines (list[str]): Stripped Markdown lines, top to bottom.
        terms (tuple[str, ...]): Label terms.

    Returns:
        str: The value, or an empty string.
    """
    if not terms:
        return ""
    pattern = _label_pattern(terms)
    for line in lines:
        match = pattern.match(line)
        if match and match.group(1):
            return match.group(1).strip()

    folded_terms = [term.casefold() for term in terms]
    for line in lines:
        value = _table_row_value(line, folded_terms)
        if value is not None:
            return value
    return ""


def apply_exclude_rule(value: str, rule: MatchRule) -> str:
    """Drop a value that looks like an excluded label.

    A value containing one of the field's own match terms is always kept.

    Args:
        value (str): Candidate value.
        rule (MatchRule): Field rule.

    Returns:
        str: The value, or an empty string when excluded.
    """
    if not value or not rule.exclude:
        return value
    folded = value.casefold()
    if any(term.casefold() in folded for term in rule.match):
        return value
    if any(term.casefold() in folded for term in rule.exclude):
        return ""
    return value


def heuristic_extract(markdown: str, schema: FieldSchema) -> dict[str, str]:
    """Extract every requested field from Markdown without a model.

    Args:
        markdown (str): Markdown text.
        schema (FieldSchema): Requested schema.

    Returns:
        dict[str, str]: One entry per requested field, empty when nothing was found.
    """
    lines = [line.strip() for line in (markdown or "").replace("\r", "").split("\n")]
    extracted: dict[str, str] = {}
    for name in schema.fields:
        rule = schema.rule_for(name)
        extracted[name] = apply_exclude_rule(find_value(lines, rule.match), rule)
    return extracted
