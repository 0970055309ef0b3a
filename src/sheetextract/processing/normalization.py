"""Alias reconciliation and final field normalization."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence


def coerce_field_value(value: Any) -> str:
    """Coerce a raw field value to a string.

    Args:
        value (Any): Raw value from the model or the heuristic extractor.

    Returns:
        str: `""` for None, JSON text for containers, `str(value)` otherwise.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, dict | list | tuple):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def apply_aliases(
    raw: Mapping[str, Any],
    *,
    renames: Mapping[str, str],
    deleted: Iterable[str] = (),
) -> dict[str, Any]:
    """Rename legacy keys and drop deleted ones.

    A renamed value never overwrites a non-empty value already present under
    the new name.

    Args:
        raw (Mapping[str, Any]): Raw extractor output.
        renames (Mapping[str, str]): Old field name to new field name.
        deleted (Iterable[str]): Field names to drop.

    Returns:
        dict[str, Any]: Reconciled mapping.
    """
    deleted_names = set(deleted)
    reconciled = {key: value for key, value in raw.items() if key not in deleted_names and key not in renames}
    for old, new in renames.items():
        if old not in raw or old in deleted_names:
            continue
        if coerce_field_value(reconciled.get(new)).strip():
            continue
        reconciled[new] = raw[old]
    return reconciled


def normalize_fields(raw: Mapping[str, Any], fields: Sequence[str]) -> dict[str, str]:
    """Project a raw mapping onto exactly the requested fields.

    Args:
        raw (Mapping[str, Any]): Raw (aliased) mapping. Extra keys are ignored.
        fields (Sequence[str]): Requested field names, in output order.

    Returns:
        dict[str, str]: One string value per requested field, `""` when missing. A requested name
        with surrounding spaces also picks up the value stored under its trimmed form.
    """
    return {name: coerce_field_value(raw[name] if name in raw else raw.get(name.strip())) for name in fields}
