# library helpers: search, tab filters, plan-count join and plan duplication
# pure functions over record dicts so they compose in any order

import hashlib
import secrets
from datetime import datetime, timezone
from typing import Optional, get_args

from app.models.plan import PlanStatus

COPY_SUFFIX = " (Copy)"
PLAN_STATUSES = get_args(PlanStatus)


def new_record_id(prefix: str, owner_id: str) -> str:
    """short unique id, e.g. plan_3f9a1c2b7d4e"""
    raw = f"{owner_id}:{datetime.now(timezone.utc).isoformat()}:{secrets.token_hex(8)}"
    return f"{prefix}_{hashlib.md5(raw.encode()).hexdigest()[:12]}"


def _contains(value, needle: str) -> bool:
    return needle in str(value or "").lower()


def search_patients(patients: list[dict], query: Optional[str]) -> list[dict]:
    """case-insensitive substring match over name and diagnosis"""
    if not query:
        return list(patients)
    needle = query.strip().lower()
    return [
        p for p in patients
        if _contains(p.get("name"), needle) or _contains(p.get("diagnosis"), needle)
    ]


def search_plans(plans: list[dict], query: Optional[str]) -> list[dict]:
    """case-insensitive substring match over patient name, diagnosis and primary goal"""
    if not query:
        return list(plans)
    needle = query.strip().lower()
    return [
        p for p in plans
        if _contains(p.get("patient_name"), needle)
        or _contains(p.get("diagnosis"), needle)
        or _contains(p.get("primary_goal"), needle)
    ]


def plan_status(plan: dict) -> str:
    """stored status, with anything unrecognised read as draft"""
    value = plan.get("status")
    return value if value in PLAN_STATUSES else "draft"


def filter_by_tab(plans: list[dict], tab: str) -> list[dict]:
    """'all' keeps everything, any other tab keeps plans with that status"""
    if tab == "all":
        return list(plans)
    return [p for p in plans if plan_status(p) == tab]


def plan_stats_by_patient(plans: list[dict]) -> dict[str, dict]:
    """active-plan count and newest plan date per patient name.

    plans reference patients by name, not id: renaming a patient
    detaches its earlier plans from these stats.
    """
    stats: dict[str, dict] = {}
    for plan in plans:
        name = plan.get("patient_name", "")
        entry = stats.setdefault(name, {"active_plans": 0, "last_plan_date": None})
        if plan.get("status") == "active":
            entry["active_plans"] += 1
        created_at = plan.get("created_at")
        if created_at and (entry["last_plan_date"] is None or created_at > entry["last_plan_date"]):
            entry["last_plan_date"] = created_at
    return stats


def duplicate_plan(plan: dict, owner_id: str) -> dict:
    """clone a plan under a new id, as a draft, with a (Copy) suffix on the patient name"""
    now = datetime.now(timezone.utc)
    copy = dict(plan)
    copy.update({
        "plan_id": new_record_id("plan", owner_id),
        "user_id": owner_id,
        "patient_name": f"{plan.get('patient_name', '')}{COPY_SUFFIX}",
        "status": "draft",
        "created_at": now.isoformat(),
    })
    return copy
