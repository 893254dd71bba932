from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class EntityRef(BaseModel):
    """Reference to a monitored entity (declared on a condition or resolved by GUID)."""

    guid: Optional[str] = Field(default=None, description="Globally unique entity GUID.")
    name: Optional[str] = Field(default=None, description="Entity display name.")
    type: Optional[str] = Field(default=None, description="Raw entity type (e.g. APPLICATION, HOST).")
    domain: Optional[str] = Field(default=None, description="Owning domain (APM, INFRA, SYNTH, BROWSER, MOBILE...).")


class NrqlQuery(BaseModel):
    """NRQL query attached to a condition."""

    query: Optional[str] = Field(default=None, description="NRQL text the condition evaluates.")


class ThresholdTerm(BaseModel):
    """One threshold rule of a condition."""

    model_config = ConfigDict(populate_by_name=True)

    # Kept as a plain string so unknown operators from the platform still pass through.
    operator: Optional[str] = Field(default=None, description="Comparison operator, e.g. ABOVE or BELOW_OR_EQUALS.")
    threshold: Optional[float] = Field(default=None, description="Numeric threshold.")
    priority: Optional[str] = Field(default=None, description="Severity priority (critical|warning).")
    threshold_duration: Optional[int] = Field(
        default=None, description="Seconds the threshold must be breached.", alias="thresholdDuration"
    )
    threshold_occurrences: Optional[Union[int, str]] = Field(
        default=None,
        description="Occurrences required: a count, or ALL / AT_LEAST_ONCE.",
        alias="thresholdOccurrences",
    )


class PolicyOut(BaseModel):
    """Alert policy (id -> name lookup only)."""

    id: str = Field(..., description="Policy id.")
    name: str = Field(..., description="Policy name.")


class NrqlConditionOut(BaseModel):
    """NRQL alert condition enriched with its resolved entity and display fields."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Condition id.")
    name: str = Field(..., description="Condition name.")
    description: Optional[str] = Field(default=None, description="Free-text description.")
    enabled: bool = Field(True, description="Whether the condition is enabled.")
    type: Optional[str] = Field(default=None, description="Condition kind (STATIC, BASELINE...).")
    runbook_url: Optional[str] = Field(default=None, description="Runbook reference.", alias="runbookUrl")
    policy_id: Optional[str] = Field(default=None, description="Owning policy id.", alias="policyId")
    policy_name: Optional[str] = Field(default=None, description="Owning policy name, when known.", alias="policyName")

    nrql: NrqlQuery = Field(default_factory=NrqlQuery, description="NRQL query of the condition.")
    terms: List[ThresholdTerm] = Field(default_factory=list, description="Threshold terms in declared order.")

    entity: Optional[EntityRef] = Field(default=None, description="Entity declared by the platform (may be stale).")
    real_entity: EntityRef = Field(
        default_factory=EntityRef,
        description="Entity resolved by GUID; supersedes the declared entity.",
        alias="realEntity",
    )
    entity_guids: List[str] = Field(
        default_factory=list, description="Entity GUIDs found in the NRQL query.", alias="entityGuids"
    )
    formatted_terms: str = Field("", description="Human-readable rendering of terms.", alias="formattedTerms")


class ConditionSearchRequest(BaseModel):
    """Request body for listing conditions of one policy."""

    model_config = ConfigDict(populate_by_name=True)

    policy_id: Optional[Union[str, int]] = Field(default=None, description="Policy id to filter by.", alias="policyId")
