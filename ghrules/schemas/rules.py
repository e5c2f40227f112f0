"""
Rule Schemas
============

Rules are a tagged union over ``kind``:

* :class:`ThresholdRule` carries ``from_comp_id``, ``operator_`` and ``threshold``;
* :class:`TimeRule` carries ``time_spec`` and an automatically resolved
  ``from_comp_id``.

Fields belonging to the other variant are dropped on input (with a warning
when they carry a value), so a parsed rule never holds stale values from a
prior kind. Unknown keys are still rejected. The remote authority names the
comparison field ``operator``; the Python attribute is ``operator_``.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, ClassVar, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

from ghrules.constants import NO_SOURCE_COMPONENT
from ghrules.enums.rules import ComparisonOperator, RuleKind

logger = logging.getLogger(__name__)

# Wire name -> attribute name for fields whose names differ
WIRE_ALIASES = {"operator": "operator_"}

THRESHOLD_FIELDS = frozenset({"from_comp_id", "operator_", "threshold"})
TIME_FIELDS = frozenset({"time_spec"})

# Fields the server assigns; never part of a create body or a patch
READ_ONLY_FIELDS = frozenset({"rule_id", "created_at", "updated_at"})


class _RuleBase(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    # Keys belonging to the other variant; dropped on input
    foreign_fields: ClassVar[frozenset[str]] = frozenset()

    rule_id: int
    gh_id: int
    name: str
    to_comp_id: int
    enabled: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _drop_foreign_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        kept = {}
        for key, value in data.items():
            if WIRE_ALIASES.get(key, key) in cls.foreign_fields:
                if value is not None:
                    logger.warning(
                        "Dropping %s=%r from %s rule %s", key, value, data.get("kind"), data.get("rule_id")
                    )
                continue
            kept[key] = value
        return kept

    def fields(self) -> dict[str, Any]:
        """Attribute-named field dict (enum values as plain strings)."""
        return self.model_dump(mode="json")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ThresholdRule(_RuleBase):
    """Fires ``to_comp_id`` when ``from_comp_id``'s reading compares true against ``threshold``."""

    foreign_fields: ClassVar[frozenset[str]] = TIME_FIELDS

    kind: Literal["threshold"] = "threshold"
    from_comp_id: int
    operator_: ComparisonOperator = Field(alias="operator")
    threshold: float


class TimeRule(_RuleBase):
    """Fires ``to_comp_id`` at ``time_spec`` ("HH:MM" or an ISO date)."""

    foreign_fields: ClassVar[frozenset[str]] = THRESHOLD_FIELDS - {"from_comp_id"}

    kind: Literal["time"] = "time"
    from_comp_id: int = NO_SOURCE_COMPONENT
    time_spec: str


Rule = Annotated[Union[ThresholdRule, TimeRule], Field(discriminator="kind")]

_rule_adapter: TypeAdapter[Rule] = TypeAdapter(Rule)
_rule_list_adapter: TypeAdapter[list[Rule]] = TypeAdapter(list[Rule])


class ToggleResult(BaseModel):
    """Server response to a toggle request."""

    model_config = ConfigDict(extra="ignore")

    rule_id: int
    enabled: bool


def parse_rule(data: Any) -> ThresholdRule | TimeRule:
    """Validate a server payload (or attribute dict) into the matching variant."""
    return _rule_adapter.validate_python(data)


def parse_rules(data: Any) -> list[ThresholdRule | TimeRule]:
    return _rule_list_adapter.validate_python(data)


def fields_for_kind(kind: RuleKind | str) -> frozenset[str]:
    """Kind-specific fields legal for ``kind``."""
    if RuleKind(kind) == RuleKind.THRESHOLD:
        return THRESHOLD_FIELDS
    return TIME_FIELDS | {"from_comp_id"}


def illegal_fields_for_kind(kind: RuleKind | str) -> frozenset[str]:
    return (THRESHOLD_FIELDS | TIME_FIELDS) - fields_for_kind(kind)


def to_wire_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Rename attribute keys to wire keys and unwrap enum values."""
    reverse = {attr: wire for wire, attr in WIRE_ALIASES.items()}
    wire: dict[str, Any] = {}
    for key, value in fields.items():
        if isinstance(value, (RuleKind, ComparisonOperator)):
            value = value.value
        wire[reverse.get(key, key)] = value
    return wire


def merge_rule(rule: ThresholdRule | TimeRule, patch: dict[str, Any]) -> ThresholdRule | TimeRule:
    """
    Apply an attribute-named patch onto ``rule`` and re-validate.

    Keys patched to ``None`` are removed, as are fields illegal for the
    resulting kind.
    """
    merged = rule.fields()
    for key, value in patch.items():
        key = WIRE_ALIASES.get(key, key)
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = value.value if isinstance(value, (RuleKind, ComparisonOperator)) else value
    for key in illegal_fields_for_kind(merged["kind"]):
        merged.pop(key, None)
    return parse_rule(merged)
