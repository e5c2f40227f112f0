"""
Enums Module
============

Enumeration types for GreenRules.
"""

from ghrules.enums.events import (
    EventType,
    GreenhouseEvent,
    NotificationEvent,
    NotificationSeverity,
    RuleEvent,
)
from ghrules.enums.rules import (
    ComparisonOperator,
    ComponentRole,
    EditorMode,
    LoadStatus,
    RuleKind,
)

__all__ = [
    "ComparisonOperator",
    "ComponentRole",
    "EditorMode",
    "EventType",
    "GreenhouseEvent",
    "LoadStatus",
    "NotificationEvent",
    "NotificationSeverity",
    "RuleEvent",
    "RuleKind",
]
