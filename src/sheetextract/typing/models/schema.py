"""Field schema models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MatchRule(BaseModel):
    """Label keywords that bias extraction toward (`match`) or away from (`exclude`) a value."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    match: tuple[str, ...]
    exclude: tuple[str, ...] = ()


class FieldSchema(BaseModel):
    """Ordered canonical field names with their matching rules."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    fields: tuple[str, ...]
    rules: dict[str, MatchRule] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_unique_fields(self) -> FieldSchema:
        if len(set(self.fields)) != len(self.fields):
            raise ValueError("Field names must be unique")  # noqa: TRY003
        return self

    def has_rule(self, name: str) -> bool:
        """Return whether a field carries an explicit rule."""
        return name in self.rules

    def rule_for(self, name: str) -> MatchRule:
        """Return the rule for a field, falling back to matching the trimmed field name.

        Args:
            name (str): Field name.

        Returns:
            MatchRule: Explicit rule or a rule matching the field name itself.
        """
        rule = self.rules.get(name)
        if rule is not None:
            return rule
        return MatchRule(match=(name.strip(),))
