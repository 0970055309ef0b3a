"""Prompt builders and model response contracts."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from sheetextract.typing.models import FieldSchema

NO_TABLES_IN_IMAGE = "No tables detected in the image."
NO_TABLES_IN_DOCUMENT = "No tables detected in the document."
NO_CONTENT_EXTRACTED = "No content extracted"
_NO_TABLES_MARKER = "no tables detected"

TABLE_EXTRACTION_PROMPT = "\n".join(
    [
        "You are an expert at reading tables from images.",
        "Extract all tabular data present in the image and output ONLY GitHub-Flavored Markdown (GFM) tables.",
        "Guidelines:",
        "- Reconstruct headers and multi-row cells faithfully.",
        "- If merged cells exist, replicate with repeated values or add footnotes.",
        "- Preserve number formatting and units; do not invent data.",
        "- If multiple tables exist, output them sequentially with a blank line between.",
        "- Do not include any explanations or prose, only Markdown tables.",
        f'- If no tables are found, return "{NO_TABLES_IN_IMAGE}"',
    ],
)


def is_no_tables_response(text: str) -> bool:
    """Return whether a page response carries no table content.

    Args:
        text (str): Raw model response for one page.

    Returns:
        bool: True for blank responses and responses containing the no-table sentinel.
    """
    stripped = text.strip()
    return not stripped or _NO_TABLES_MARKER in stripped.lower()


def aggregate_page_markdown(page_outputs: Iterable[tuple[int, str]]) -> str:
    """Join per-page model responses into one Markdown document.

    Args:
        page_outputs (Iterable[tuple[int, str]]): `(page_number, response)` pairs.

    Returns:
        str: Page sections in ascending page order, or the document sentinel when no page has tables.
    """
    sections = [
        f"### Page {page_number}\n\n{text.strip()}"
        for page_number, text in sorted(page_outputs, key=lambda pair: pair[0])
        if not is_no_tables_response(text)
    ]
    if not sections:
        return NO_TABLES_IN_DOCUMENT
    return "\n\n".join(sections)


def build_field_instructions(schema: FieldSchema) -> str:
    """Build the per-field match/exclude clauses.

    Only fields that carry an explicit rule get a clause.

    Args:
        schema (FieldSchema): Requested schema.

    Returns:
        str: One clause per line, or an empty string.
    """
    lines: list[str] = []
    for name in schema.fields:
        if not schema.has_rule(name):
            continue
        rule = schema.rule_for(name)
        clause = f"For the field '{name}', use only values matching: {json.dumps(list(rule.match), ensure_ascii=False)}"
        if rule.exclude:
            clause += f", and ignore any values matching: {json.dumps(list(rule.exclude), ensure_ascii=False)}"
        lines.append(f"{clause}.")
    return "\n".join(lines)


def build_alias_instructions(renames: Mapping[str, str], deleted: Iterable[str]) -> str:
    """Build the legacy-field clause.

    Args:
        renames (Mapping[str, str]): Old field name to current field name.
        deleted (Iterable[str]): Field names that no longer exist.

    Returns:
        str: Alias instructions, or an empty string when there is nothing to say.
    """
    lines: list[str] = []
    if renames:
        pairs = ", ".join(f"'{old}' -> '{new}'" for old, new in renames.items())
        lines.append(
            "Some fields were renamed. If you recognize a legacy field name, "
            f"report its value under the new name instead: {pairs}.",
        )
    deleted_names = sorted(deleted)
    if deleted_names:
        names = ", ".join(f"'{name}'" for name in deleted_names)
        lines.append(f"These fields were removed and must not be reported: {names}.")
    return "\n".join(lines)


def build_field_extraction_prompt(
    schema: FieldSchema,
    *,
    renames: Mapping[str, str] | None = None,
    deleted: Iterable[str] = (),
) -> str:
    """Build the instruction used to map Markdown tables onto the requested fields.

    Args:
        schema (FieldSchema): Requested schema.
        renames (Mapping[str, str] | None): Old field name to current field name.
        deleted (Iterable[str]): Field names that were removed from the schema.

    Returns:
        str: Prompt text. The Markdown itself is appended by the caller.
    """
    parts = [
        "You will receive Markdown that contains one or more tables describing a pump and motor.",
        "Map the content to the following fixed fields. Use semantic matching and reasonable synonyms.",
        "Units should be preserved if present. If a field is missing, use an empty string.",
        build_field_instructions(schema),
        build_alias_instructions(renames or {}, deleted),
        "Return STRICT JSON with exactly these keys and string values only:",
        json.dumps(list(schema.fields), ensure_ascii=False),
        "Do not include any extra keys or commentary. JSON only.",
    ]
    return "\n".join(part for part in parts if part)


def with_markdown(prompt: str, markdown: str) -> str:
    """Append the Markdown payload after the instruction."""
    return f"{prompt}\n\nMARKDOWN:\n{markdown}"
