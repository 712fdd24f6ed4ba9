# plan generator models: wizard form and the three wizard states
# each state carries only the fields valid in it, so a plan can't be read before it exists

from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field

from app.models.patient import FunctionalLevel
from app.models.plan import GeneratedPlanContent, TherapyPlanResponse

SessionFrequency = Literal["daily", "3x-weekly", "2x-weekly", "weekly"]


class PlanForm(BaseModel):
    """fields collected in step 1; everything optional until the advance gate"""
    patient_name: str = Field("", alias="patientName")
    age: Optional[int] = Field(None, ge=1, le=130)
    diagnosis: str = ""
    functional_level: Optional[FunctionalLevel] = Field(None, alias="functionalLevel")
    primary_goal: str = Field("", alias="primaryGoal")
    secondary_goals: str = Field("", alias="secondaryGoals")
    interests: str = ""
    limitations: str = ""
    session_duration: int = Field(60, alias="sessionDuration", ge=15, le=240, description="minutes")
    frequency: SessionFrequency = "weekly"
    duration_weeks: int = Field(8, alias="durationWeeks", ge=1, le=52, description="program length in weeks")

    model_config = {"populate_by_name": True, "str_strip_whitespace": True}


class PlanFormUpdate(BaseModel):
    """partial form update; only fields present in the payload are applied.

    a field sent as null is reset to its blank default (e.g. age -> None).
    """
    patient_name: Optional[str] = Field(None, alias="patientName")
    age: Optional[int] = Field(None, ge=1, le=130)
    diagnosis: Optional[str] = None
    functional_level: Optional[FunctionalLevel] = Field(None, alias="functionalLevel")
    primary_goal: Optional[str] = Field(None, alias="primaryGoal")
    secondary_goals: Optional[str] = Field(None, alias="secondaryGoals")
    interests: Optional[str] = None
    limitations: Optional[str] = None
    session_duration: Optional[int] = Field(None, alias="sessionDuration", ge=15, le=240)
    frequency: Optional[SessionFrequency] = None
    duration_weeks: Optional[int] = Field(None, alias="durationWeeks", ge=1, le=52)

    model_config = {"populate_by_name": True, "str_strip_whitespace": True}


# wizard states

class CollectingInput(BaseModel):
    step: Literal["collecting-input"] = "collecting-input"
    form: PlanForm = Field(default_factory=PlanForm)


class Summarizing(BaseModel):
    step: Literal["summarizing"] = "summarizing"
    form: PlanForm
    generating: bool = False


class ReviewingResult(BaseModel):
    step: Literal["reviewing-result"] = "reviewing-result"
    form: PlanForm
    plan: GeneratedPlanContent
    saved_plan_id: Optional[str] = Field(None, alias="savedPlanId")

    model_config = {"populate_by_name": True}


WizardState = Annotated[
    Union[CollectingInput, Summarizing, ReviewingResult],
    Field(discriminator="step"),
]


class SavePlanResponse(BaseModel):
    plan: TherapyPlanResponse
    patient_created: bool = Field(False, alias="patientCreated")

    model_config = {"populate_by_name": True}
