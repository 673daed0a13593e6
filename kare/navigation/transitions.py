"""
Pure navigation transitions

transition(state, event) -> state never performs I/O. Each event kind has one
handler in _HANDLERS; screen entry goes through _enter so the per-screen
requirements in SCREEN_REQUIREMENTS are enforced in one place.
"""
from typing import Callable, Dict, FrozenSet, Optional, Tuple

from kare.models.navigation import (
    NavigationState,
    NavigationEvent,
    Screen,
    EditingChecklistItem,
    PatientLoaded,
    LoadFailed,
    ContactDetailsSubmitted,
    PersonalDetailsSubmitted,
    MedicalDetailsSubmitted,
    StepRejected,
    PatientCreated,
    PatientCreateFailed,
    TabSelected,
    Navigate,
    EditChecklistItem,
    ChecklistItemSaved,
    ChecklistItemRefreshed,
    BackResolved,
    OperationFailed,
)

# State that must be present before a screen can be shown
SCREEN_REQUIREMENTS: Dict[Screen, Tuple[str, ...]] = {
    Screen.ONBOARDING: (),
    Screen.CONTACT_DETAILS: (),
    Screen.PERSONAL_DETAILS: ("contact_details",),
    Screen.MEDICAL_QUESTIONS: ("contact_details", "personal_details"),
    Screen.ASSESSMENT_INTRO: (),
    Screen.ELIGIBILITY_QUESTIONNAIRE: ("patient_id",),
    Screen.FINANCIAL_INTRO: (),
    Screen.FINANCIAL_QUESTIONNAIRE: ("patient_id",),
    Screen.HOME: (),
    Screen.RESULTS_DETAIL: (),
    Screen.CHECKLIST_TIMELINE: (),
    Screen.CHECKLIST_ITEM_EDIT: ("editing_item",),
    Screen.CHECKLIST_DOCUMENTS: ("editing_item",),
    Screen.REFERRAL_NAVIGATOR: (),
    Screen.REFERRAL_VIEW: (),
}

# Back destinations that need no lookup (None: back does nothing)
BACK_TARGETS: Dict[Screen, Optional[Screen]] = {
    Screen.ONBOARDING: None,
    Screen.CONTACT_DETAILS: Screen.ONBOARDING,
    Screen.PERSONAL_DETAILS: Screen.CONTACT_DETAILS,
    Screen.MEDICAL_QUESTIONS: Screen.PERSONAL_DETAILS,
    Screen.ELIGIBILITY_QUESTIONNAIRE: Screen.ASSESSMENT_INTRO,
    Screen.FINANCIAL_QUESTIONNAIRE: Screen.FINANCIAL_INTRO,
    Screen.HOME: None,
    Screen.RESULTS_DETAIL: Screen.HOME,
    Screen.CHECKLIST_TIMELINE: Screen.HOME,
    Screen.CHECKLIST_ITEM_EDIT: Screen.CHECKLIST_TIMELINE,
    Screen.CHECKLIST_DOCUMENTS: Screen.CHECKLIST_ITEM_EDIT,
    Screen.REFERRAL_NAVIGATOR: Screen.HOME,
    Screen.REFERRAL_VIEW: Screen.HOME,
}

# Back destinations decided by an async lookup (see NavigationController.go_back)
GUARDED_BACK: FrozenSet[Screen] = frozenset({Screen.ASSESSMENT_INTRO, Screen.FINANCIAL_INTRO})

# Screens reachable with a plain Navigate event
NAVIGABLE: FrozenSet[Screen] = frozenset({
    Screen.HOME,
    Screen.RESULTS_DETAIL,
    Screen.CHECKLIST_TIMELINE,
    Screen.REFERRAL_NAVIGATOR,
    Screen.REFERRAL_VIEW,
    Screen.ASSESSMENT_INTRO,
})

# Onboarding screens whose data is committed once the patient is created
WIZARD_SCREENS: FrozenSet[Screen] = frozenset({
    Screen.ONBOARDING,
    Screen.CONTACT_DETAILS,
    Screen.PERSONAL_DETAILS,
    Screen.MEDICAL_QUESTIONS,
})

_EDITING_SCREENS: FrozenSet[Screen] = frozenset({Screen.CHECKLIST_ITEM_EDIT, Screen.CHECKLIST_DOCUMENTS})


def _check_tables() -> None:
    screens = set(Screen)
    missing = screens - set(SCREEN_REQUIREMENTS)
    if missing:
        raise RuntimeError(f"SCREEN_REQUIREMENTS missing screens: {sorted(s.value for s in missing)}")
    unrouted = screens - set(BACK_TARGETS) - GUARDED_BACK
    if unrouted:
        raise RuntimeError(f"No back route for screens: {sorted(s.value for s in unrouted)}")


_check_tables()


def can_enter(state: NavigationState, screen: Screen) -> bool:
    return all(getattr(state, field) for field in SCREEN_REQUIREMENTS[screen])


def _enter(state: NavigationState, screen: Screen, **updates) -> NavigationState:
    """
    Move to screen after applying updates, or return state unchanged when the
    screen's requirements are not met
    """
    candidate = state.model_copy(update=updates) if updates else state
    if not can_enter(candidate, screen):
        return state
    changes = {"screen": screen}
    if screen != state.screen:
        changes.update(error=None, field_errors={})
    if screen not in _EDITING_SCREENS:
        changes["editing_item"] = None
    return candidate.model_copy(update=changes)


# Handlers

def _patient_loaded(state: NavigationState, event: PatientLoaded) -> NavigationState:
    if event.patient.id:
        return _enter(state, Screen.HOME, patient=event.patient)
    return _enter(state, Screen.ONBOARDING, patient=None)


def _patient_missing(state: NavigationState, event) -> NavigationState:
    return _enter(state, Screen.ONBOARDING, patient=None)


def _load_failed(state: NavigationState, event: LoadFailed) -> NavigationState:
    return state.model_copy(update={"error": event.message})


def _get_started(state: NavigationState, event) -> NavigationState:
    if state.screen != Screen.ONBOARDING:
        return state
    return _enter(state, Screen.CONTACT_DETAILS)


def _contact_details_submitted(state: NavigationState, event: ContactDetailsSubmitted) -> NavigationState:
    if state.screen != Screen.CONTACT_DETAILS:
        return state
    return _enter(state, Screen.PERSONAL_DETAILS, contact_details=event.data)


def _personal_details_submitted(state: NavigationState, event: PersonalDetailsSubmitted) -> NavigationState:
    if state.screen != Screen.PERSONAL_DETAILS:
        return state
    return _enter(state, Screen.MEDICAL_QUESTIONS, personal_details=event.data)


def _medical_details_submitted(state: NavigationState, event: MedicalDetailsSubmitted) -> NavigationState:
    if state.screen != Screen.MEDICAL_QUESTIONS:
        return state
    return state.model_copy(update={"medical_details": event.data, "field_errors": {}})


def _step_rejected(state: NavigationState, event: StepRejected) -> NavigationState:
    return state.model_copy(update={"field_errors": dict(event.errors)})


def _patient_created(state: NavigationState, event: PatientCreated) -> NavigationState:
    # The patient exists now whatever screen is showing; wizard data is committed
    persisted = state.model_copy(update={
        "patient": event.patient,
        "contact_details": None,
        "personal_details": None,
        "medical_details": None,
        "error": None,
    })
    # The wizard cannot continue without its caches, so any wizard screen moves on
    if state.screen not in WIZARD_SCREENS:
        return persisted
    return _enter(persisted, Screen.ASSESSMENT_INTRO)


def _patient_create_failed(state: NavigationState, event: PatientCreateFailed) -> NavigationState:
    return state.model_copy(update={"error": event.message})


def _begin_assessment(state: NavigationState, event) -> NavigationState:
    if state.screen != Screen.ASSESSMENT_INTRO:
        return state
    return _enter(state, Screen.ELIGIBILITY_QUESTIONNAIRE)


def _questionnaire_completed(state: NavigationState, event) -> NavigationState:
    flagged = state.model_copy(update={"is_first_time_financial_flow": True})
    if state.screen != Screen.ELIGIBILITY_QUESTIONNAIRE:
        return flagged
    return _enter(flagged, Screen.FINANCIAL_INTRO)


def _edit_financial_assessment(state: NavigationState, event) -> NavigationState:
    if not state.patient_id:
        return state
    return _enter(state, Screen.FINANCIAL_INTRO, is_first_time_financial_flow=False)


def _begin_financial_assessment(state: NavigationState, event) -> NavigationState:
    if state.screen != Screen.FINANCIAL_INTRO:
        return state
    return _enter(state, Screen.FINANCIAL_QUESTIONNAIRE)


def _financial_questionnaire_completed(state: NavigationState, event) -> NavigationState:
    cleared = state.model_copy(update={"is_first_time_financial_flow": False})
    if state.screen != Screen.FINANCIAL_QUESTIONNAIRE:
        return cleared
    return _enter(cleared, Screen.HOME)


def _tab_selected(state: NavigationState, event: TabSelected) -> NavigationState:
    return state.model_copy(update={"active_tab": event.tab})


def _navigate(state: NavigationState, event: Navigate) -> NavigationState:
    if event.screen not in NAVIGABLE:
        return state
    return _enter(state, event.screen)


def _edit_checklist_item(state: NavigationState, event: EditChecklistItem) -> NavigationState:
    if state.screen != Screen.CHECKLIST_TIMELINE:
        return state
    pointer = EditingChecklistItem(item_id=event.item.id, item=event.item)
    return _enter(state, Screen.CHECKLIST_ITEM_EDIT, editing_item=pointer)


def _checklist_item_saved(state: NavigationState, event: ChecklistItemSaved) -> NavigationState:
    if state.screen != Screen.CHECKLIST_ITEM_EDIT:
        return state
    if state.editing_item is None or state.editing_item.item_id != event.item_id:
        return state
    return _enter(state, Screen.CHECKLIST_TIMELINE)


def _checklist_item_refreshed(state: NavigationState, event: ChecklistItemRefreshed) -> NavigationState:
    if state.editing_item is None or state.editing_item.item_id != event.item.id:
        return state
    pointer = EditingChecklistItem(item_id=event.item.id, item=event.item)
    return state.model_copy(update={"editing_item": pointer})


def _request_documents(state: NavigationState, event) -> NavigationState:
    if state.screen != Screen.CHECKLIST_ITEM_EDIT:
        return state
    return _enter(state, Screen.CHECKLIST_DOCUMENTS)


def _back(state: NavigationState, event) -> NavigationState:
    target = BACK_TARGETS.get(state.screen)
    if target is None:
        return state
    return _enter(state, target)


def _back_resolved(state: NavigationState, event: BackResolved) -> NavigationState:
    if event.patient is not None and state.patient is None:
        state = state.model_copy(update={"patient": event.patient})
    # The user may have moved on while the lookup was running
    if state.screen != event.origin:
        return state
    return _enter(state, event.destination)


def _patient_deleted(state: NavigationState, event) -> NavigationState:
    return NavigationState(screen=Screen.ONBOARDING)


def _operation_failed(state: NavigationState, event: OperationFailed) -> NavigationState:
    return state.model_copy(update={"error": event.message})


def _error_dismissed(state: NavigationState, event) -> NavigationState:
    return state.model_copy(update={"error": None})


_HANDLERS: Dict[str, Callable[[NavigationState, NavigationEvent], NavigationState]] = {
    "patient_loaded": _patient_loaded,
    "patient_missing": _patient_missing,
    "load_failed": _load_failed,
    "get_started": _get_started,
    "contact_details_submitted": _contact_details_submitted,
    "personal_details_submitted": _personal_details_submitted,
    "medical_details_submitted": _medical_details_submitted,
    "step_rejected": _step_rejected,
    "patient_created": _patient_created,
    "patient_create_failed": _patient_create_failed,
    "begin_assessment": _begin_assessment,
    "questionnaire_completed": _questionnaire_completed,
    "edit_financial_assessment": _edit_financial_assessment,
    "begin_financial_assessment": _begin_financial_assessment,
    "financial_questionnaire_completed": _financial_questionnaire_completed,
    "tab_selected": _tab_selected,
    "navigate": _navigate,
    "edit_checklist_item": _edit_checklist_item,
    "checklist_item_saved": _checklist_item_saved,
    "checklist_item_refreshed": _checklist_item_refreshed,
    "request_documents": _request_documents,
    "back": _back,
    "back_resolved": _back_resolved,
    "patient_deleted": _patient_deleted,
    "operation_failed": _operation_failed,
    "error_dismissed": _error_dismissed,
}


def transition(state: NavigationState, event: NavigationEvent) -> NavigationState:
    """
    Apply one event to the navigation state

    Events that do not apply to the current screen leave the state unchanged.
    """
    return _HANDLERS[event.kind](state, event)
