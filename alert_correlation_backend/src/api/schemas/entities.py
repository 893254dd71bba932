from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


MatchStrategy = Literal["guid", "name"]


class EntityCorrelationOut(BaseModel):
    """A monitored entity and the alert conditions that apply to it."""

    model_config = ConfigDict(populate_by_name=True)

    guid: Optional[str] = Field(default=None, description="Entity GUID.")
    name: Optional[str] = Field(default=None, description="Entity display name.")
    type: Optional[str] = Field(default=None, description="Raw entity type.")
    domain: Optional[str] = Field(default=None, description="Owning domain.")
    friendly_type: Optional[str] = Field(
        default=None, description="Display label for (type, domain); raw type when unmapped.", alias="friendlyType"
    )
    has_alerts: bool = Field(False, description="Whether any condition matched.", alias="hasAlerts")
    alerts: List[str] = Field(default_factory=list, description="Matched condition names, first-seen order.")
    alert_count: int = Field(0, ge=0, description="Number of matched conditions.", alias="alertCount")
    match_strategy: Optional[MatchStrategy] = Field(
        default=None,
        description="'guid' when matched by GUID, 'name' when matched by the name fallback, null otherwise.",
        alias="matchStrategy",
    )
