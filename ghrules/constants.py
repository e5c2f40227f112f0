"""Application-wide constants for rule configuration."""

from ghrules.enums.rules import ComparisonOperator

# Sensor subtype marking the default trigger source of time rules.
# Matched case-sensitively.
TIME_SENSOR_SUBTYPE = "Time"

# from_comp_id of a time rule when the greenhouse has no Time sensor
NO_SOURCE_COMPONENT = 0

DEFAULT_OPERATOR = ComparisonOperator.LT
DEFAULT_THRESHOLD = 0.0

OPERATOR_OPTIONS: tuple[str, ...] = tuple(op.value for op in ComparisonOperator)

# User-facing messages
MSG_GREENHOUSES_LOAD_FAILED = "Failed to load greenhouses"
MSG_DATA_LOAD_FAILED = "Failed to load rules / components"
MSG_REQUIRED_FIELDS = "Fill in all required fields"
MSG_SAVE_FAILED = "Failed to save rule"
MSG_DELETE_FAILED = "Failed to delete rule"
MSG_TOGGLE_FAILED = "Failed to toggle rule"
DELETE_PROMPT = "Delete rule?"
