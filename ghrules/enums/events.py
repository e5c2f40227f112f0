from enum import Enum
from typing import TypeAlias


class GreenhouseEvent(str, Enum):
    """Greenhouse selection and dependent data loading."""

    SELECTION_CHANGED = "greenhouse_selection_changed"
    DATA_LOADED = "greenhouse_data_loaded"
    LOAD_FAILED = "greenhouse_load_failed"


class RuleEvent(str, Enum):
    """Rule store mutations confirmed by the remote authority."""

    CREATED = "rule_created"
    UPDATED = "rule_updated"
    DELETED = "rule_deleted"
    TOGGLED = "rule_toggled"


class NotificationEvent(str, Enum):
    USER_NOTICE = "user_notice"


class NotificationSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


EventType: TypeAlias = GreenhouseEvent | RuleEvent | NotificationEvent
