# therapy plan models: generated plan content schema, library responses
# GeneratedPlanContent is both the structured-output schema sent to the llm
# and the schema the stored plan blob is validated against on read

from typing import Literal, Optional
from pydantic import BaseModel, Field

PlanStatus = Literal["active", "completed", "draft"]
LibraryTab = Literal["all", "active", "completed", "draft"]


# generated content

class PlanObjective(BaseModel):
    goal: str = Field(..., description="treatment goal")
    measurable_outcome: str = Field("", alias="measurableOutcome", description="how progress is measured")
    timeframe: str = Field("", description="e.g. 4 weeks")

    model_config = {"populate_by_name": True}


class PlanActivity(BaseModel):
    name: str = Field(..., description="activity name")
    description: str = Field("", description="what the patient does")
    duration: str = Field("", description="e.g. 30 minutes")
    materials: list[str] = Field(default_factory=list, description="materials needed")
    adaptations: str = Field("", description="adaptations for the patient's limitations")
    progress_measures: str = Field("", alias="progressMeasures", description="how progress is tracked")

    model_config = {"populate_by_name": True}


class WeeklyScheduleEntry(BaseModel):
    week: int = Field(..., ge=1, description="week number")
    focus: str = Field("", description="focus of the week")
    activities: list[str] = Field(default_factory=list, description="activity names for the week")


class GeneratedPlanContent(BaseModel):
    """structured therapy plan produced by the generation capability"""
    plan_title: str = Field(..., alias="planTitle", description="short plan title")
    overview: str = Field(..., description="free-text plan overview")
    objectives: list[PlanObjective] = Field(default_factory=list)
    activities: list[PlanActivity] = Field(default_factory=list)
    weekly_schedule: list[WeeklyScheduleEntry] = Field(default_factory=list, alias="weeklySchedule")
    assessment_methods: list[str] = Field(default_factory=list, alias="assessmentMethods")
    recommendations: list[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


# library

class PlanStatusUpdate(BaseModel):
    status: PlanStatus


class TherapyPlanResponse(BaseModel):
    """plan summary as listed in the library"""
    id: str
    patient_name: str = Field(..., alias="patientName")
    patient_age: int = Field(..., alias="patientAge")
    diagnosis: str
    primary_goal: str = Field(..., alias="primaryGoal")
    plan_title: Optional[str] = Field(None, alias="planTitle")
    status: PlanStatus
    created_at: str = Field(..., alias="createdAt")
    storage: Literal["remote", "local"] = "remote"

    model_config = {"populate_by_name": True}


class TherapyPlanDetail(TherapyPlanResponse):
    """full plan with parsed content; content is null and error set when the blob is unreadable"""
    content: Optional[GeneratedPlanContent] = None
    error: Optional[str] = None
