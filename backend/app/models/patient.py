# patient models: registry create/update payloads and list responses
# mirrors frontend Patient interface (camelCase aliases)

from typing import Literal, Optional, get_args
from pydantic import BaseModel, Field

FunctionalLevel = Literal[
    "independent",
    "minimal-assistance",
    "moderate-assistance",
    "maximum-assistance",
    "total-assistance",
]

FUNCTIONAL_LEVELS: tuple[str, ...] = get_args(FunctionalLevel)


class PatientCreate(BaseModel):
    """payload for creating or fully replacing a patient record"""
    name: str = Field(..., min_length=1, description="patient full name")
    age: int = Field(..., ge=1, le=130, description="age in years")
    diagnosis: str = Field(..., min_length=1, description="primary diagnosis")
    functional_level: FunctionalLevel = Field(..., alias="functionalLevel")
    interests: str = Field("", description="free-text interests")
    limitations: str = Field("", description="free-text limitations")

    model_config = {"populate_by_name": True, "str_strip_whitespace": True}


class PatientResponse(BaseModel):
    id: str
    name: str
    age: int
    diagnosis: str
    functional_level: str = Field(..., alias="functionalLevel")
    interests: str = ""
    limitations: str = ""
    created_at: str = Field(..., alias="createdAt")

    # derived from the plan collection at read time, joined on patient name
    active_plans: int = Field(0, alias="activePlans")
    last_plan_date: Optional[str] = Field(None, alias="lastPlanDate")

    # where the record lives: remote (primary store) or local (fallback bucket)
    storage: Literal["remote", "local"] = "remote"

    model_config = {"populate_by_name": True}
