"""
Rule Draft
==========

A partial rule under construction (add) or amendment (edit). The draft is
mutable and may be incomplete; :meth:`RuleDraft.missing_fields` reports what
still blocks a save. Switching ``kind`` clears the fields that are illegal for
the new kind so no stale values survive.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields as dataclass_fields
from typing import Any, Optional

from ghrules.constants import DEFAULT_OPERATOR, DEFAULT_THRESHOLD
from ghrules.domain.exceptions import ValidationError
from ghrules.enums.rules import ComparisonOperator, RuleKind
from ghrules.schemas.rules import (
    READ_ONLY_FIELDS,
    ThresholdRule,
    TimeRule,
    fields_for_kind,
    illegal_fields_for_kind,
)

# Fields every rule carries regardless of kind
COMMON_FIELDS = ("gh_id", "name", "kind", "to_comp_id", "enabled")

# Fields an operator edits directly; kind goes through switch_kind()
EDITABLE_FIELDS = frozenset({"name", "to_comp_id", "from_comp_id", "operator_", "threshold", "time_spec", "enabled"})


def _coerce_id(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid component id {value!r}") from None


def _coerce_threshold(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid threshold {value!r}") from None


def _coerce_operator(value: Any) -> Optional[ComparisonOperator]:
    if value is None or value == "":
        return None
    try:
        return ComparisonOperator(value)
    except ValueError:
        raise ValidationError(f"Unsupported operator {value!r}") from None


_COERCERS = {
    "to_comp_id": _coerce_id,
    "from_comp_id": _coerce_id,
    "threshold": _coerce_threshold,
    "operator_": _coerce_operator,
    "name": lambda v: "" if v is None else str(v),
    "time_spec": lambda v: None if v is None else str(v),
    "enabled": bool,
}


@dataclass
class RuleDraft:
    """Uncommitted rule fields.

    Attributes:
        kind: Rule shape; decides which of the optional fields are legal
        name: Rule name, required
        gh_id: Greenhouse the rule belongs to
        to_comp_id: Target actuator, required for both kinds
        from_comp_id: Source sensor (threshold) or the resolved Time sensor (time)
        operator_: Comparison operator (threshold only)
        threshold: Comparison value (threshold only)
        time_spec: "HH:MM" or ISO date trigger (time only)
        enabled: Whether the evaluator should run the rule
        rule_id: Set when amending an existing rule
    """

    kind: Optional[RuleKind] = RuleKind.TIME
    name: str = ""
    gh_id: Optional[int] = None
    to_comp_id: Optional[int] = None
    from_comp_id: Optional[int] = None
    operator_: Optional[ComparisonOperator] = None
    threshold: Optional[float] = None
    time_spec: Optional[str] = None
    enabled: bool = True
    rule_id: Optional[int] = None
    created_at: Optional[str] = field(default=None, repr=False)
    updated_at: Optional[str] = field(default=None, repr=False)

    @classmethod
    def new(cls, gh_id: int, time_sensor_id: int) -> "RuleDraft":
        """Fresh time-rule draft for the active greenhouse."""
        return cls(
            kind=RuleKind.TIME,
            name="",
            gh_id=gh_id,
            from_comp_id=time_sensor_id,
            time_spec="",
            enabled=True,
        )

    @classmethod
    def from_rule(cls, rule: ThresholdRule | TimeRule) -> "RuleDraft":
        """Full copy of an existing rule."""
        draft = cls(
            kind=RuleKind(rule.kind),
            name=rule.name,
            gh_id=rule.gh_id,
            to_comp_id=rule.to_comp_id,
            from_comp_id=rule.from_comp_id,
            enabled=rule.enabled,
            rule_id=rule.rule_id,
            created_at=rule.created_at,
            updated_at=rule.updated_at,
        )
        if isinstance(rule, ThresholdRule):
            draft.operator_ = rule.operator_
            draft.threshold = rule.threshold
        else:
            draft.time_spec = rule.time_spec
        return draft

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------
    def set(self, name: str, value: Any) -> None:
        """Set an editable field legal for the current kind."""
        if name not in EDITABLE_FIELDS:
            raise ValidationError(f"Field {name!r} is not editable")
        if name in illegal_fields_for_kind(self.kind or RuleKind.TIME):
            raise ValidationError(f"Field {name!r} is not used by {self.kind} rules")
        if name == "from_comp_id" and self.kind == RuleKind.TIME:
            raise ValidationError("The source of a time rule is resolved automatically")
        setattr(self, name, _COERCERS[name](value))

    def switch_kind(self, kind: RuleKind | str, time_sensor_id: int) -> None:
        """
        Change the rule shape.

        threshold -> time: drops operator/threshold, points the source at the
        Time sensor and keeps any time_spec. time -> threshold: drops
        time_spec, defaults operator to "<" and threshold to 0 when unset and
        leaves the source for the operator to choose.
        """
        kind = RuleKind(kind)
        if kind == self.kind:
            return
        if kind == RuleKind.TIME:
            self.operator_ = None
            self.threshold = None
            self.time_spec = self.time_spec or ""
            self.from_comp_id = time_sensor_id
        else:
            self.time_spec = None
            if self.operator_ is None:
                self.operator_ = DEFAULT_OPERATOR
            if self.threshold is None:
                self.threshold = DEFAULT_THRESHOLD
            self.from_comp_id = None
        self.kind = kind

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def missing_fields(self) -> list[str]:
        """Required fields that are absent; empty strings and id 0 count as absent."""
        missing = []
        if not self.name:
            missing.append("name")
        if not self.kind:
            missing.append("kind")
        if not self.to_comp_id:
            missing.append("to_comp_id")

        if self.kind == RuleKind.THRESHOLD:
            if not self.from_comp_id:
                missing.append("from_comp_id")
            if not self.operator_:
                missing.append("operator_")
            if self.threshold is None:
                missing.append("threshold")
        elif self.kind == RuleKind.TIME:
            if not self.time_spec:
                missing.append("time_spec")
        return missing

    def validate(self) -> None:
        """Raise ValidationError listing every missing required field."""
        missing = self.missing_fields()
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing=missing)

    @property
    def is_valid(self) -> bool:
        return not self.missing_fields()

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_fields(self) -> dict[str, Any]:
        """Attribute-named fields legal for the draft's kind, ``None`` omitted."""
        names = list(COMMON_FIELDS) + sorted(fields_for_kind(self.kind or RuleKind.TIME))
        result: dict[str, Any] = {}
        for name in names:
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, (RuleKind, ComparisonOperator)):
                value = value.value
            result[name] = value
        return result

    def changes_from(self, rule: ThresholdRule | TimeRule) -> dict[str, Any]:
        """
        Patch turning ``rule`` into this draft.

        Fields the draft no longer carries are sent as ``None`` so the server
        clears them; ``gh_id`` is fixed at creation and never patched.
        """
        current = {k: v for k, v in rule.fields().items() if k not in READ_ONLY_FIELDS and v is not None}
        desired = self.to_fields()
        patch: dict[str, Any] = {}
        for key, value in desired.items():
            if key == "gh_id":
                continue
            if current.get(key) != value:
                patch[key] = value
        for key in current:
            if key not in desired and key != "gh_id":
                patch[key] = None
        return patch

    def copy(self) -> "RuleDraft":
        return RuleDraft(**{f.name: getattr(self, f.name) for f in dataclass_fields(self)})
