# dashboard router: aggregate stats and recent plans for the therapist overview

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends

from app.config import settings
from app.models.dashboard import DashboardStats
from app.services.record_store import RecordStore
from app.dependencies import get_current_user, get_patients, get_plans
from app.routers.plans import doc_to_plan

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    current_user: dict = Depends(get_current_user),
    patients: RecordStore = Depends(get_patients),
    plans: RecordStore = Depends(get_plans),
):
    """patient count, active plans, plans created this week and the most recent plans"""
    owner_id = current_user["id"]
    patient_items = await patients.list_records(owner_id)
    plan_items = await plans.list_records(owner_id)

    week_ago = (datetime.now(timezone.utc) - timedelta(days=7)).isoformat()
    active_plans = sum(1 for item in plan_items if item.record.get("status") == "active")
    this_week = sum(1 for item in plan_items if str(item.record.get("created_at", "")) >= week_ago)

    includes_local = any(item.source == "local" for item in patient_items + plan_items)

    return DashboardStats(
        totalPatients=len(patient_items),
        activePlans=active_plans,
        thisWeekPlans=this_week,
        recentPlans=[doc_to_plan(item) for item in plan_items[:settings.RECENT_PLANS_LIMIT]],
        includesLocalData=includes_local,
    )
