# patients router: list, create, replace and delete patient records for a therapist
# records live in the patients collection, falling back to the owner's local bucket

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from app.models.patient import PatientCreate, PatientResponse
from app.services.errors import RecordNotFound
from app.services.library import new_record_id, plan_stats_by_patient, search_patients
from app.services.record_store import Persisted, RecordStore
from app.dependencies import get_current_user, get_patients, get_plans

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/patients", tags=["patients"])


def _doc_to_patient(item: Persisted, stats: dict[str, dict]) -> PatientResponse:
    """convert a stored patient record to response model, joining plan stats by name"""
    doc = item.record
    patient_stats = stats.get(doc.get("name", ""), {})
    return PatientResponse(
        id=doc.get("patient_id", ""),
        name=doc.get("name", ""),
        age=doc.get("age", 0),
        diagnosis=doc.get("diagnosis", ""),
        functionalLevel=doc.get("functional_level", ""),
        interests=doc.get("interests", ""),
        limitations=doc.get("limitations", ""),
        createdAt=doc.get("created_at", ""),
        activePlans=patient_stats.get("active_plans", 0),
        lastPlanDate=patient_stats.get("last_plan_date"),
        storage=item.source,
    )


async def _plan_stats(owner_id: str, plans: RecordStore) -> dict[str, dict]:
    items = await plans.list_records(owner_id)
    return plan_stats_by_patient([item.record for item in items])


@router.get("", response_model=list[PatientResponse])
async def list_patients(
    q: str = Query(None, description="search by name or diagnosis"),
    current_user: dict = Depends(get_current_user),
    patients: RecordStore = Depends(get_patients),
    plans: RecordStore = Depends(get_plans),
):
    """list the therapist's patients, newest first, with active plan counts"""
    owner_id = current_user["id"]
    items = await patients.list_records(owner_id)
    stats = await _plan_stats(owner_id, plans)

    by_id = {item.record["patient_id"]: item for item in items}
    matched = search_patients([item.record for item in items], q)
    return [_doc_to_patient(by_id[doc["patient_id"]], stats) for doc in matched]


@router.post("", response_model=PatientResponse, status_code=status.HTTP_201_CREATED)
async def create_patient(
    body: PatientCreate,
    current_user: dict = Depends(get_current_user),
    patients: RecordStore = Depends(get_patients),
    plans: RecordStore = Depends(get_plans),
):
    """add a patient profile"""
    owner_id = current_user["id"]
    doc = {
        "patient_id": new_record_id("patient", owner_id),
        "user_id": owner_id,
        **body.model_dump(),
        "created_at": datetime.now(timezone.utc).isoformat(),
    }

    item = await patients.create(doc)
    logger.info(f"Patient created: {doc['patient_id']} ({item.source}) by {owner_id}")
    return _doc_to_patient(item, await _plan_stats(owner_id, plans))


@router.put("/{patient_id}", response_model=PatientResponse)
async def replace_patient(
    patient_id: str,
    body: PatientCreate,
    current_user: dict = Depends(get_current_user),
    patients: RecordStore = Depends(get_patients),
    plans: RecordStore = Depends(get_plans),
):
    """overwrite every editable field of a patient; id, owner and creation date are kept"""
    owner_id = current_user["id"]
    fields = {
        **body.model_dump(),
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }

    try:
        item = await patients.update(owner_id, patient_id, fields)
    except RecordNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Patient not found",
        )

    logger.info(f"Patient updated: {patient_id} ({item.source}) by {owner_id}")
    return _doc_to_patient(item, await _plan_stats(owner_id, plans))


@router.delete("/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_patient(
    patient_id: str,
    current_user: dict = Depends(get_current_user),
    patients: RecordStore = Depends(get_patients),
):
    """permanently delete a patient; unknown ids are ignored"""
    item = await patients.delete(current_user["id"], patient_id)
    return Response(
        status_code=status.HTTP_204_NO_CONTENT,
        headers={"X-Storage-Source": item.source},
    )
