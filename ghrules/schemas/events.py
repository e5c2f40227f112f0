from typing import Literal, Optional

from pydantic import BaseModel, Field

from ghrules.enums.events import NotificationSeverity

RuleAction = Literal["create", "update", "delete", "toggle"]


class SelectionChangedPayload(BaseModel):
    """Active greenhouse changed; ``version`` tags loads issued for it."""

    schema_version: int = Field(default=1)

    gh_id: Optional[int] = None
    previous_gh_id: Optional[int] = None
    version: int


class GreenhouseDataLoadedPayload(BaseModel):
    gh_id: int
    version: int
    rule_count: int
    sensor_count: int
    actuator_count: int


class GreenhouseLoadFailedPayload(BaseModel):
    gh_id: Optional[int] = None
    version: Optional[int] = None
    message: str


class RuleChangedPayload(BaseModel):
    """Payload for rule created/updated/deleted events."""

    rule_id: int
    gh_id: Optional[int] = None
    action: RuleAction


class RuleToggledPayload(BaseModel):
    rule_id: int
    requested: bool
    enabled: bool


class NotificationPayload(BaseModel):
    """User-visible signal raised by a failed or refused operation."""

    severity: NotificationSeverity = NotificationSeverity.INFO
    message: str
    context: Optional[str] = None
    timestamp: str
