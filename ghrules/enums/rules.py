"""
Rule Enumerations
=================

Enums for the rule data model and the editor/loader state machines.
"""

from enum import Enum


class RuleKind(str, Enum):
    """Discriminant of a rule's shape."""

    TIME = "time"
    THRESHOLD = "threshold"

    def __str__(self) -> str:
        return self.value


class ComparisonOperator(str, Enum):
    """Comparison applied by the evaluator between a reading and the threshold."""

    LT = "<"
    LE = "<="
    EQ = "=="
    GE = ">="
    GT = ">"

    def __str__(self) -> str:
        return self.value


class ComponentRole(str, Enum):
    """Role of a greenhouse component; fixed at creation."""

    SENSOR = "sensor"
    ACTUATOR = "actuator"

    def __str__(self) -> str:
        return self.value


class LoadStatus(str, Enum):
    """
    Load state of a remotely backed section.
    Used by: greenhouse selector, component directory, rule store
    """

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


class EditorMode(str, Enum):
    """Draft editor states."""

    IDLE = "idle"
    ADDING = "adding"
    EDITING = "editing"

    def __str__(self) -> str:
        return self.value
