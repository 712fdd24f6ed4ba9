# dashboard models: overview stats for the therapist landing view

from pydantic import BaseModel, Field

from app.models.plan import TherapyPlanResponse


class DashboardStats(BaseModel):
    """aggregate stats for the therapist dashboard overview"""
    total_patients: int = Field(0, alias="totalPatients")
    active_plans: int = Field(0, alias="activePlans")
    this_week_plans: int = Field(0, alias="thisWeekPlans")
    recent_plans: list[TherapyPlanResponse] = Field(default_factory=list, alias="recentPlans")
    # true when any counted record came from the local fallback
    includes_local_data: bool = Field(False, alias="includesLocalData")

    model_config = {"populate_by_name": True}
