"""Default pump datasheet schema, label synonyms and field aliases."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sheetextract.typing.models import FieldSchema, MatchRule

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

DEFAULT_FIELDS: tuple[str, ...] = (
    "manufacturer",
    "pump model name",
    "rated flow",
    "max flow",
    "min flow",
    "normal flow",
    "TDH",
    "casing material",
    "shaft material",
    "impeller material",
    "shaft power",
    "pump efficiency",
    "shutoff TDH",
)

# Korean labels are common on the supplier datasheets this schema was built for.
DEFAULT_MATCH_RULES: dict[str, MatchRule] = {
    "manufacturer": MatchRule(
        match=("manufacturer", "maker", "brand", "company", "제조사", "브랜드", "회사"),
    ),
    "pump model name": MatchRule(
        match=("pump model name", "model", "pump model", "model name", "모델", "모델명"),
    ),
    "rated flow": MatchRule(
        match=("rated flow", "q rated", "q at rated", "flow", "정격 유량"),
        exclude=("nominal flow", "flow (nominal)"),
    ),
    "max flow": MatchRule(
        match=("max flow", "q max", "maximum flow", "최대 유량"),
    ),
    "min flow": MatchRule(
        match=("min flow", "q min", "minimum flow", "최소 유량"),
    ),
    "normal flow": MatchRule(
        match=(
            "normal flow",
            "nominal flow",
            "flow (nominal)",
            "q nominal",
            "보통 유량",
            "정상 유량",
            "정격유량",
        ),
        exclude=("rated flow",),
    ),
    "TDH": MatchRule(
        match=(
            "tdh",
            "total dynamic head",
            "head",
            "head (at qmax.-qnominal-qmin.)",
            "shutoff head",
            "전양정",
            "양정",
        ),
    ),
    "casing material": MatchRule(
        match=("casing material", "pump casing material", "casing", "케이싱 재질", "케이싱"),
    ),
    "shaft material": MatchRule(
        match=("shaft material", "shaft material (pump)", "shaft", "샤프트 재질", "축 재질"),
    ),
    "impeller material": MatchRule(
        match=("impeller material", "impeller", "임펠러 재질"),
    ),
    "shaft power": MatchRule(
        match=("shaft power", "shaft power (p2)", "p2", "power (shaft)", "축 동력"),
    ),
    "pump efficiency": MatchRule(
        match=("pump efficiency", "max. pump efficiency", "efficiency", "펌프 효율", "효율"),
    ),
    "shutoff TDH": MatchRule(
        match=("shutoff tdh", "shut-off head", "shut off head", "head at shutoff", "차단양정"),
        exclude=("head at QMax", "head at QMin", "TDH"),
    ),
}


def _lookup_rule(name: str) -> MatchRule | None:
    label = name.strip()
    rule = DEFAULT_MATCH_RULES.get(label)
    if rule is not None:
        return rule
    folded = label.casefold()
    for known, candidate in DEFAULT_MATCH_RULES.items():
        if known.casefold() == folded:
            return candidate
    return None


def build_field_schema(fields: Iterable[str] | None = None) -> FieldSchema:
    """Build the schema for a request.

    Args:
        fields (Iterable[str] | None): Requested field names. None or empty selects the default schema.

    Returns:
        FieldSchema: Unique, ordered field names, kept exactly as requested. Blank names are dropped.
        Names known to the default vocabulary keep their rule; other names match on their trimmed text.
    """
    names: list[str] = []
    seen: set[str] = set()
    for name in fields or ():
        if name.strip() and name not in seen:
            seen.add(name)
            names.append(name)
    if not names:
        names = list(DEFAULT_FIELDS)

    rules: dict[str, MatchRule] = {}
    for name in names:
        rule = _lookup_rule(name)
        if rule is not None:
            rules[name] = rule
    return FieldSchema(fields=tuple(names), rules=rules)


def split_aliases(aliases: Mapping[str, str | None] | None) -> tuple[dict[str, str], set[str]]:
    """Split an alias map into renames and deletions.

    Args:
        aliases (Mapping[str, str | None] | None): Old field name to new field name. A blank or null
            target marks the old field as deleted.

    Returns:
        tuple[dict[str, str], set[str]]: Renames and deleted field names.
    """
    renames: dict[str, str] = {}
    deleted: set[str] = set()
    for old, new in (aliases or {}).items():
        target = (new or "").strip()
        if not target:
            deleted.add(old)
        elif target != old:
            renames[old] = target
    return renames, deleted
