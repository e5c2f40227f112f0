"""
Greenhouse Schemas
==================

Pydantic models for greenhouses and their sensor/actuator components as
returned by the remote rule authority.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ghrules.enums.rules import ComponentRole


class Greenhouse(BaseModel):
    """A site grouping under automation management."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    gh_id: int
    name: str
    location: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Component(BaseModel):
    """A sensor or actuator belonging to exactly one greenhouse."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "comp_id": 5,
                "gh_id": 1,
                "name": "Air temperature",
                "role": "sensor",
                "subtype": "temperature",
            }
        },
    )

    comp_id: int
    gh_id: int
    name: str = Field(default="")
    role: ComponentRole
    subtype: str = Field(default="", description="Free-form classification, e.g. 'temperature' or 'Time'")
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_sensor(self) -> bool:
        return self.role == ComponentRole.SENSOR

    @property
    def is_actuator(self) -> bool:
        return self.role == ComponentRole.ACTUATOR
