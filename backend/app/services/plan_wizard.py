# plan wizard: transitions between collecting-input, summarizing and reviewing-result
#
#   CollectingInput --advance--> Summarizing --generate--> Summarizing(generating)
#         ^                          |                         |        |
#         +-----------back-----------+            fail <-------+        +--> ReviewingResult
#
#   reset returns to an empty CollectingInput from any state.
#
# transitions are pure: they take a state and return a new one, raising
# InvalidTransition or MissingRequiredFields when the move is not allowed.

from typing import Optional

from app.models.generator import (
    CollectingInput,
    PlanForm,
    PlanFormUpdate,
    ReviewingResult,
    Summarizing,
    WizardState,
)
from app.models.plan import GeneratedPlanContent
from app.services.errors import InvalidTransition, MissingRequiredFields

# python field -> api field name, in form order
REQUIRED_FIELDS = {
    "patient_name": "patientName",
    "age": "age",
    "diagnosis": "diagnosis",
    "functional_level": "functionalLevel",
    "primary_goal": "primaryGoal",
}


def missing_fields(form: PlanForm) -> list[str]:
    return [alias for field, alias in REQUIRED_FIELDS.items() if not getattr(form, field)]


def _expect(state: WizardState, kind: type, action: str):
    if not isinstance(state, kind):
        raise InvalidTransition(f"Cannot {action} while in step '{state.step}'")


def update_form(state: WizardState, update: PlanFormUpdate) -> CollectingInput:
    _expect(state, CollectingInput, "edit the form")
    changes = update.model_dump(exclude_unset=True)
    # an explicit null clears the field back to its blank default
    for field, value in changes.items():
        if value is None:
            changes[field] = PlanForm.model_fields[field].get_default(call_default_factory=True)
    form = PlanForm.model_validate({**state.form.model_dump(), **changes})
    return CollectingInput(form=form)


def advance(state: WizardState) -> Summarizing:
    _expect(state, CollectingInput, "advance to the summary")
    missing = missing_fields(state.form)
    if missing:
        raise MissingRequiredFields(missing)
    return Summarizing(form=state.form)


def back(state: WizardState) -> CollectingInput:
    _expect(state, Summarizing, "go back to the form")
    if state.generating:
        raise InvalidTransition("Cannot go back while a plan is being generated")
    return CollectingInput(form=state.form)


def start_generation(state: WizardState) -> Summarizing:
    _expect(state, Summarizing, "generate a plan")
    if state.generating:
        raise InvalidTransition("A plan is already being generated")
    return Summarizing(form=state.form, generating=True)


def finish_generation(state: WizardState, plan: GeneratedPlanContent) -> ReviewingResult:
    _expect(state, Summarizing, "accept a generated plan")
    return ReviewingResult(form=state.form, plan=plan)


def fail_generation(state: WizardState) -> Summarizing:
    _expect(state, Summarizing, "record a generation failure")
    return Summarizing(form=state.form, generating=False)


def mark_saved(state: WizardState, plan_id: str) -> ReviewingResult:
    _expect(state, ReviewingResult, "save a plan")
    if state.saved_plan_id:
        raise InvalidTransition(f"Plan already saved as {state.saved_plan_id}")
    return state.model_copy(update={"saved_plan_id": plan_id})


def unmark_saved(state: WizardState) -> ReviewingResult:
    _expect(state, ReviewingResult, "undo a save")
    return state.model_copy(update={"saved_plan_id": None})


def reset() -> CollectingInput:
    return CollectingInput()


class WizardRegistry:
    """per-user wizard state held in process memory"""

    def __init__(self):
        self._states: dict[str, WizardState] = {}

    def get(self, user_id: str) -> WizardState:
        return self._states.get(user_id) or CollectingInput()

    def put(self, user_id: str, state: WizardState) -> WizardState:
        self._states[user_id] = state
        return state

    def is_current(self, user_id: str, state: WizardState) -> bool:
        """true if state is still the one stored for the user (not replaced meanwhile)"""
        return self._states.get(user_id) is state


_registry: Optional[WizardRegistry] = None


async def get_wizard_registry() -> WizardRegistry:
    """dependency injection for wizard state"""
    global _registry
    if _registry is None:
        _registry = WizardRegistry()
    return _registry
