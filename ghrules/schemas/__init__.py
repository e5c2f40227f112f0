"""
Schemas Module
==============

Pydantic models for the remote rule authority's payloads and for event bus
payloads.
"""

from ghrules.schemas.events import (
    GreenhouseDataLoadedPayload,
    GreenhouseLoadFailedPayload,
    NotificationPayload,
    RuleChangedPayload,
    RuleToggledPayload,
    SelectionChangedPayload,
)
from ghrules.schemas.greenhouse import Component, Greenhouse
from ghrules.schemas.rules import (
    Rule,
    ThresholdRule,
    TimeRule,
    ToggleResult,
    merge_rule,
    parse_rule,
    parse_rules,
)

__all__ = [
    "Component",
    "Greenhouse",
    "GreenhouseDataLoadedPayload",
    "GreenhouseLoadFailedPayload",
    "NotificationPayload",
    "Rule",
    "RuleChangedPayload",
    "RuleToggledPayload",
    "SelectionChangedPayload",
    "ThresholdRule",
    "TimeRule",
    "ToggleResult",
    "merge_rule",
    "parse_rule",
    "parse_rules",
]
