# generator router: multi-step plan generation wizard
# collect form -> summary -> gemini structured generation -> review -> save to library

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status

from app.models.generator import PlanFormUpdate, SavePlanResponse, WizardState
from app.services.errors import GenerationFailed, InvalidTransition, MissingRequiredFields
from app.services.library import new_record_id
from app.services.plan_codec import serialize_plan
from app.services.plan_generator import PlanGenerator, get_plan_generator
from app.services.plan_wizard import (
    WizardRegistry,
    advance,
    back,
    fail_generation,
    finish_generation,
    get_wizard_registry,
    mark_saved,
    reset,
    start_generation,
    unmark_saved,
    update_form,
)
from app.services.record_store import RecordStore
from app.dependencies import get_current_user, get_patients, get_plans
from app.routers.plans import doc_to_plan

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/generator", tags=["generator"])


def _conflict(e: InvalidTransition) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get("", response_model=WizardState)
async def get_wizard(
    current_user: dict = Depends(get_current_user),
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    """current wizard step for the therapist"""
    return registry.get(current_user["id"])


@router.put("/input", response_model=WizardState)
async def edit_form(
    body: PlanFormUpdate,
    current_user: dict = Depends(get_current_user),
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    """merge form field changes (step 1 only)"""
    user_id = current_user["id"]
    try:
        return registry.put(user_id, update_form(registry.get(user_id), body))
    except InvalidTransition as e:
        raise _conflict(e)


@router.post("/advance", response_model=WizardState)
async def advance_to_summary(
    current_user: dict = Depends(get_current_user),
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    """move from the form to the summary once required fields are filled"""
    user_id = current_user["id"]
    try:
        return registry.put(user_id, advance(registry.get(user_id)))
    except MissingRequiredFields as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": "Missing required fields", "fields": e.fields},
        )
    except InvalidTransition as e:
        raise _conflict(e)


@router.post("/back", response_model=WizardState)
async def back_to_form(
    current_user: dict = Depends(get_current_user),
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    """return from the summary to the form"""
    user_id = current_user["id"]
    try:
        return registry.put(user_id, back(registry.get(user_id)))
    except InvalidTransition as e:
        raise _conflict(e)


@router.post("/generate", response_model=WizardState)
async def generate(
    current_user: dict = Depends(get_current_user),
    registry: WizardRegistry = Depends(get_wizard_registry),
    generator: PlanGenerator = Depends(get_plan_generator),
):
    """run the single structured generation call for the summarized form"""
    user_id = current_user["id"]
    try:
        generating = registry.put(user_id, start_generation(registry.get(user_id)))
    except InvalidTransition as e:
        raise _conflict(e)

    try:
        plan = await generator.generate_plan(generating.form)
    except GenerationFailed as e:
        logger.error(f"Generation failed for user {user_id}: {e}")
        if registry.is_current(user_id, generating):
            registry.put(user_id, fail_generation(generating))
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Plan generation failed. Please try again.",
        )

    if not registry.is_current(user_id, generating):
        # wizard was reset while the call was in flight; drop the result
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Wizard changed while the plan was being generated",
        )

    return registry.put(user_id, finish_generation(generating, plan))


@router.post("/save", response_model=SavePlanResponse, status_code=status.HTTP_201_CREATED)
async def save_plan(
    current_user: dict = Depends(get_current_user),
    registry: WizardRegistry = Depends(get_wizard_registry),
    patients: RecordStore = Depends(get_patients),
    plans: RecordStore = Depends(get_plans),
):
    """persist the reviewed plan as active and add the patient profile if it is new"""
    owner_id = current_user["id"]
    plan_id = new_record_id("plan", owner_id)
    try:
        saved = registry.put(owner_id, mark_saved(registry.get(owner_id), plan_id))
    except InvalidTransition as e:
        raise _conflict(e)

    form = saved.form
    now = datetime.now(timezone.utc).isoformat()
    plan_doc = {
        "plan_id": plan_id,
        "user_id": owner_id,
        "patient_name": form.patient_name,
        "patient_age": form.age,
        "diagnosis": form.diagnosis,
        "primary_goal": form.primary_goal,
        "plan_data": serialize_plan(saved.plan),
        "status": "active",
        "created_at": now,
    }

    try:
        item = await plans.create(plan_doc)
    except Exception:
        # allow a retry of the save
        if registry.is_current(owner_id, saved):
            registry.put(owner_id, unmark_saved(saved))
        raise

    # patients are matched by name, as plans reference them
    existing = await patients.list_records(owner_id, where={"name": form.patient_name}, limit=1)
    patient_created = False
    if not existing:
        await patients.create({
            "patient_id": new_record_id("patient", owner_id),
            "user_id": owner_id,
            "name": form.patient_name,
            "age": form.age,
            "diagnosis": form.diagnosis,
            "functional_level": form.functional_level,
            "interests": form.interests,
            "limitations": form.limitations,
            "created_at": now,
        })
        patient_created = True

    logger.info(f"Plan saved: {plan_id} ({item.source}), new patient: {patient_created}")
    return SavePlanResponse(plan=doc_to_plan(item), patientCreated=patient_created)


@router.post("/reset", response_model=WizardState)
async def reset_wizard(
    current_user: dict = Depends(get_current_user),
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    """clear the wizard and start a new plan"""
    return registry.put(current_user["id"], reset())
