from __future__ import annotations

from sheetextract.processing import apply_aliases, coerce_field_value, normalize_fields

FIELDS = ("manufacturer", "pump model name", "TDH")


def test_coerce_field_value() -> None:
    assert coerce_field_value(None) == ""
    assert coerce_field_value("x") == "x"
    assert coerce_field_value(12.5) == "12.5"
    assert coerce_field_value(True) == "True"
    assert coerce_field_value({"value": 40, "unit": "m"}) == '{"value": 40, "unit": "m"}'
    assert coerce_field_value(["a", "b"]) == '["a", "b"]'


def test_normalize_projects_exact_keys_in_order() -> None:
    normalized = normalize_fields({"TDH": 40, "extra": "drop me", "manufacturer": None}, FIELDS)

    assert list(normalized) == list(FIELDS)
    assert normalized == {"manufacturer": "", "pump model name": "", "TDH": "40"}


def test_normalize_is_idempotent() -> None:
    raw = {"manufacturer": "ACME", "TDH": {"v": 1}, "noise": 3}

    once = normalize_fields(raw, FIELDS)

    assert normalize_fields(once, FIELDS) == once


def test_aliases_rename_and_delete() -> None:
    raw = {"model": "SM.V1", "noise": "70 dB", "TDH": "40 m"}

    reconciled = apply_aliases(raw, renames={"model": "pump model name"}, deleted={"noise"})

    assert reconciled == {"pump model name": "SM.V1", "TDH": "40 m"}


def test_alias_never_overwrites_non_empty_target() -> None:
    raw = {"model": "legacy", "pump model name": "SM.V1"}

    reconciled = apply_aliases(raw, renames={"model": "pump model name"})

    assert reconciled["pump model name"] == "SM.V1"
    assert "model" not in reconciled


def test_alias_fills_empty_target() -> None:
    raw = {"model": "SM.V1", "pump model name": "  "}

    reconciled = apply_aliases(raw, renames={"model": "pump model name"})

    assert reconciled["pump model name"] == "SM.V1"


def test_alias_for_missing_key_is_ignored() -> None:
    assert apply_aliases({"TDH": "40 m"}, renames={"model": "pump model name"}) == {"TDH": "40 m"}


def test_normalize_reads_trimmed_key_for_padded_request() -> None:
    normalized = normalize_fields({"TDH": "40 m", " weight": "120 kg", "weight": "ignored"}, (" TDH", " weight"))

    assert normalized == {" TDH": "40 m", " weight": "120 kg"}
