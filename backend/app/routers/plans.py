# plans router: the plan library: list, view, export, duplicate, status, delete
# plan content is stored as a json blob and validated against the plan schema on read

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import PlainTextResponse

from app.models.plan import (
    LibraryTab,
    PlanStatusUpdate,
    TherapyPlanDetail,
    TherapyPlanResponse,
)
from app.services.errors import MalformedPlanData, RecordNotFound
from app.services.library import duplicate_plan, filter_by_tab, plan_status, search_plans
from app.services.plan_codec import PLAN_DATA_ERROR, parse_plan, plan_title_or_none, render_markdown
from app.services.record_store import Persisted, RecordStore
from app.dependencies import get_current_user, get_plans

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/plans", tags=["plans"])


def _plan_fields(item: Persisted) -> dict:
    doc = item.record
    return {
        "id": doc.get("plan_id", ""),
        "patientName": doc.get("patient_name", ""),
        "patientAge": doc.get("patient_age", 0),
        "diagnosis": doc.get("diagnosis", ""),
        "primaryGoal": doc.get("primary_goal", ""),
        "status": plan_status(doc),
        "createdAt": doc.get("created_at", ""),
        "storage": item.source,
    }


def doc_to_plan(item: Persisted) -> TherapyPlanResponse:
    """convert a stored plan record to the library card model"""
    return TherapyPlanResponse(
        **_plan_fields(item),
        planTitle=plan_title_or_none(item.record.get("plan_data")),
    )


async def _get_plan(plans: RecordStore, owner_id: str, plan_id: str) -> Persisted:
    try:
        return await plans.get(owner_id, plan_id)
    except RecordNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Therapy plan not found",
        )


@router.get("", response_model=list[TherapyPlanResponse])
async def list_plans(
    tab: LibraryTab = Query("all", alias="status", description="all | active | completed | draft"),
    q: str = Query(None, description="search by patient name, diagnosis or primary goal"),
    current_user: dict = Depends(get_current_user),
    plans: RecordStore = Depends(get_plans),
):
    """list saved plans, newest first, filtered by status tab and search text"""
    items = await plans.list_records(current_user["id"])

    by_id = {item.record["plan_id"]: item for item in items}
    matched = search_plans(filter_by_tab([item.record for item in items], tab), q)
    return [doc_to_plan(by_id[doc["plan_id"]]) for doc in matched]


@router.get("/{plan_id}", response_model=TherapyPlanDetail)
async def get_plan(
    plan_id: str,
    current_user: dict = Depends(get_current_user),
    plans: RecordStore = Depends(get_plans),
):
    """full plan; an unreadable blob yields a placeholder error instead of failing"""
    item = await _get_plan(plans, current_user["id"], plan_id)

    try:
        content = parse_plan(item.record.get("plan_data"))
    except MalformedPlanData:
        logger.warning(f"Plan {plan_id} has malformed plan data")
        return TherapyPlanDetail(**_plan_fields(item), content=None, error=PLAN_DATA_ERROR)

    return TherapyPlanDetail(
        **_plan_fields(item),
        planTitle=content.plan_title,
        content=content,
    )


@router.get("/{plan_id}/export", response_class=PlainTextResponse)
async def export_plan(
    plan_id: str,
    current_user: dict = Depends(get_current_user),
    plans: RecordStore = Depends(get_plans),
):
    """download the plan as a markdown document"""
    item = await _get_plan(plans, current_user["id"], plan_id)

    try:
        content = parse_plan(item.record.get("plan_data"))
    except MalformedPlanData:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=PLAN_DATA_ERROR,
        )

    return PlainTextResponse(
        render_markdown(item.record, content),
        media_type="text/markdown",
        headers={"Content-Disposition": f'attachment; filename="{plan_id}.md"'},
    )


@router.post("/{plan_id}/duplicate", response_model=TherapyPlanResponse, status_code=status.HTTP_201_CREATED)
async def duplicate(
    plan_id: str,
    current_user: dict = Depends(get_current_user),
    plans: RecordStore = Depends(get_plans),
):
    """clone a plan as a draft under a new id"""
    owner_id = current_user["id"]
    source = await _get_plan(plans, owner_id, plan_id)

    item = await plans.create(duplicate_plan(source.record, owner_id))
    logger.info(f"Plan duplicated: {plan_id} -> {item.record['plan_id']} ({item.source})")
    return doc_to_plan(item)


@router.patch("/{plan_id}/status", response_model=TherapyPlanResponse)
async def update_status(
    plan_id: str,
    body: PlanStatusUpdate,
    current_user: dict = Depends(get_current_user),
    plans: RecordStore = Depends(get_plans),
):
    """move a plan between active, completed and draft"""
    try:
        item = await plans.update(current_user["id"], plan_id, {"status": body.status})
    except RecordNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Therapy plan not found",
        )

    logger.info(f"Plan {plan_id} status -> {body.status} ({item.source})")
    return doc_to_plan(item)


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plan(
    plan_id: str,
    current_user: dict = Depends(get_current_user),
    plans: RecordStore = Depends(get_plans),
):
    """permanently delete a plan; unknown ids are ignored"""
    item = await plans.delete(current_user["id"], plan_id)
    return Response(
        status_code=status.HTTP_204_NO_CONTENT,
        headers={"X-Storage-Source": item.source},
    )
