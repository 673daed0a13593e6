"""
Navigation controller

Runs the collaborator calls behind each user action and feeds their outcomes
through the pure transitions. Collaborator errors never escape: absence is a
normal branch, write failures become the error banner, unexpected read
failures are logged and treated as "no data".
"""
import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, Field, ValidationError

from kare.api.client import ApiService
from kare.api.errors import ApiError, NotFoundError
from kare.models.navigation import (
    NavigationState,
    NavigationEvent,
    Screen,
    Tab,
    PatientLoaded,
    PatientMissing,
    LoadFailed,
    GetStarted,
    ContactDetailsSubmitted,
    PersonalDetailsSubmitted,
    MedicalDetailsSubmitted,
    StepRejected,
    PatientCreated,
    PatientCreateFailed,
    BeginAssessment,
    QuestionnaireCompleted,
    EditFinancialAssessment,
    BeginFinancialAssessment,
    FinancialQuestionnaireCompleted,
    TabSelected,
    Navigate,
    EditChecklistItem,
    ChecklistItemSaved,
    ChecklistItemRefreshed,
    RequestDocuments,
    Back,
    BackResolved,
    PatientDeleted,
    OperationFailed,
    ErrorDismissed,
)
from kare.models.onboarding import ContactDetails, PersonalDetails, MedicalDetails, field_errors
from kare.models.schemas import (
    ChecklistItem,
    ChecklistProgress,
    PathwayStage,
    Patient,
    PatientReferralState,
    PatientStatus,
    QuestionDefinition,
    TransplantChecklist,
)
from kare.navigation.autosave import AutosaveCoordinator, Answers
from kare.navigation.transitions import transition
from kare.services.checklist import UNSET, compute_progress, build_item_update
from kare.services.pathway import resolve_stage, stage_statuses, StageStatus
from kare.services.patient_details import build_patient_payload
from kare.services.status import load_questions, compute_status_from_submissions

logger = logging.getLogger(__name__)

T = TypeVar("T")

StepData = Union[BaseModel, Dict[str, Any]]

# Returned by the wizard submits when the step is not the one showing
STEP_UNAVAILABLE_FIELD = "__root__"
STEP_UNAVAILABLE_MESSAGE = "This step is no longer available"


class PathwayView(BaseModel):
    """
    Everything the pathway tab shows, read in one refresh
    """
    status: Optional[PatientStatus]                   = Field(None, description="Patient status (backend record or locally recomputed)")
    status_is_local: bool                             = Field(default=False, description="True when status was recomputed locally because the backend read failed")
    referral: Optional[PatientReferralState]          = Field(None, description="Referral state, if recorded")
    checklist: Optional[TransplantChecklist]          = Field(None, description="Pre-transplant checklist, if created")
    progress: Optional[ChecklistProgress]             = Field(None, description="Checklist progress summary")
    stage: PathwayStage                               = Field(..., description="Resolved current pathway stage")
    stages: List[Tuple[PathwayStage, StageStatus]]    = Field(default_factory=list, description="Every stage marked completed/current/upcoming")


class NavigationController:
    """
    Owns the navigation state for one device and its side effects

    Every operation returns the resulting NavigationState unless noted.
    """

    def __init__(self, client: ApiService, questions: Optional[List[QuestionDefinition]] = None):
        self.client = client
        self.questions = questions if questions is not None else load_questions()
        self.state = NavigationState()
        self.autosave: Optional[AutosaveCoordinator] = None
        self.pathway: Optional[PathwayView] = None
        self._in_flight: Set[str] = set()
        self._refresh_generation = 0

    def dispatch(self, event: NavigationEvent) -> NavigationState:
        previous = self.state.screen
        self.state = transition(self.state, event)
        if self.state.screen != previous:
            logger.debug(f"{event.kind}: {previous.value} -> {self.state.screen.value}")
        return self.state

    async def _write_once(self, key: str, call: Callable[[], Awaitable[T]]) -> Optional[T]:
        """
        Run a write unless one for the same entity is already running

        Returns None when the write was skipped. ApiError propagates.
        """
        if key in self._in_flight:
            logger.info(f"Ignoring duplicate write for {key}, one is already in flight")
            return None
        self._in_flight.add(key)
        try:
            return await call()
        finally:
            self._in_flight.discard(key)

    def _fail(self, message: str, error: ApiError) -> NavigationState:
        logger.error(f"{message}: {error}")
        return self.dispatch(OperationFailed(message=f"{message}: {error.detail}"))

    # Startup / onboarding

    async def launch(self) -> NavigationState:
        try:
            patient = await self.client.get_patient()
        except NotFoundError:
            return self.dispatch(PatientMissing())
        except ApiError as e:
            logger.warning(f"Error loading patient: {e}")
            return self.dispatch(LoadFailed(message=f"Failed to load patient data: {e.detail}"))
        return self.dispatch(PatientLoaded(patient=patient))

    def get_started(self) -> NavigationState:
        return self.dispatch(GetStarted())

    def _submit_step(self, model: Type[BaseModel], data: StepData, event_type: Type[BaseModel]) -> Dict[str, str]:
        try:
            payload = model.model_validate(data)
        except ValidationError as e:
            errors = field_errors(e)
            self.dispatch(StepRejected(errors=errors))
            return errors
        before = self.state
        if self.dispatch(event_type(data=payload)) is before:
            logger.info(f"{event_type.__name__} ignored on {before.screen.value}")
            return {STEP_UNAVAILABLE_FIELD: STEP_UNAVAILABLE_MESSAGE}
        return {}

    def submit_contact_details(self, data: StepData) -> Dict[str, str]:
        """
        Validate and cache the contact step, then advance to personal details

        Returns field errors (empty on success).
        """
        return self._submit_step(ContactDetails, data, ContactDetailsSubmitted)

    def submit_personal_details(self, data: StepData) -> Dict[str, str]:
        return self._submit_step(PersonalDetails, data, PersonalDetailsSubmitted)

    async def submit_medical_details(self, data: StepData) -> Dict[str, str]:
        """
        Validate the medical step and create the patient from all three steps

        Returns field errors (empty on success or when the create failed; a
        failed create is reported through state.error and keeps the caches).
        """
        if self.state.screen != Screen.MEDICAL_QUESTIONS:
            return {STEP_UNAVAILABLE_FIELD: STEP_UNAVAILABLE_MESSAGE}
        errors = self._submit_step(MedicalDetails, data, MedicalDetailsSubmitted)
        if errors:
            return errors

        try:
            payload = build_patient_payload(
                self.state.contact_details,
                self.state.personal_details,
                self.state.medical_details,
            )
        except ValidationError as e:
            errors = field_errors(e)
            self.dispatch(StepRejected(errors=errors))
            return errors

        try:
            patient = await self._write_once("patient", lambda: self.client.create_patient(payload))
        except ApiError as e:
            logger.error(f"Error creating patient: {e}")
            self.dispatch(PatientCreateFailed(message=f"Failed to save patient information: {e.detail}"))
            return {}
        if patient is not None:
            self.dispatch(PatientCreated(patient=patient))
        return {}

    # Eligibility assessment

    def begin_assessment(self) -> NavigationState:
        return self.dispatch(BeginAssessment())

    async def submit_questionnaire(self, answers: Answers) -> NavigationState:
        patient_id = self.state.patient_id
        if not patient_id or self.state.screen != Screen.ELIGIBILITY_QUESTIONNAIRE:
            return self.state
        # "Don't know" answers are not sent
        cleaned = {question_id: answer for question_id, answer in answers.items() if answer is not None}
        try:
            submitted = await self._write_once(
                "questionnaire", lambda: self.client.submit_questionnaire(patient_id, cleaned)
            )
        except ApiError as e:
            return self._fail("Failed to submit questionnaire", e)
        if submitted is None:
            return self.state
        return self.dispatch(QuestionnaireCompleted())

    # Financial assessment

    def edit_financial_assessment(self) -> NavigationState:
        return self.dispatch(EditFinancialAssessment())

    def begin_financial_assessment(self) -> NavigationState:
        return self.dispatch(BeginFinancialAssessment())

    async def _fetch_financial_answers(self) -> Answers:
        try:
            profile = await self.client.get_financial_profile()
        except NotFoundError:
            return {}
        except ApiError as e:
            logger.warning(f"Error loading financial profile: {e}")
            return {}
        return dict(profile.answers)

    async def open_financial_questionnaire(self) -> Optional[AutosaveCoordinator]:
        """
        Start a financial questionnaire draft with autosave

        On the first-time flow no profile can exist yet, so the read is
        skipped. Returns None without a persisted patient.
        """
        patient_id = self.state.patient_id
        if not patient_id:
            return None
        await self._close_autosave()

        async def save(answers: Answers) -> None:
            await self.client.save_financial_profile(patient_id, answers)

        coordinator = AutosaveCoordinator(save)
        self.autosave = coordinator
        if not self.state.is_first_time_financial_flow:
            await coordinator.load(self._fetch_financial_answers)
        return coordinator

    async def complete_financial_questionnaire(self, answers: Optional[Answers] = None) -> NavigationState:
        patient_id = self.state.patient_id
        if not patient_id or self.state.screen != Screen.FINANCIAL_QUESTIONNAIRE:
            return self.state
        if answers is None:
            answers = self.autosave.answers if self.autosave else {}
        if self.autosave:
            # Final submit carries the whole draft
            self.autosave.cancel()
        cleaned = {question_id: answer for question_id, answer in answers.items() if answer is not None}
        try:
            submitted = await self._write_once(
                "financial-profile", lambda: self.client.submit_financial_profile(patient_id, cleaned)
            )
        except ApiError as e:
            return self._fail("Failed to submit financial assessment", e)
        if submitted is None:
            return self.state
        await self._close_autosave()
        return self.dispatch(FinancialQuestionnaireCompleted())

    async def _close_autosave(self, flush: bool = False) -> None:
        if self.autosave is None:
            return
        coordinator, self.autosave = self.autosave, None
        if flush:
            await coordinator.flush()
        await coordinator.aclose()

    # Back

    async def _assessment_back_target(self) -> Tuple[Screen, Optional[Patient]]:
        if self.state.patient_id:
            return Screen.HOME, None
        try:
            patient = await self.client.get_patient()
        except NotFoundError:
            return Screen.MEDICAL_QUESTIONS, None
        except ApiError as e:
            logger.warning(f"Error checking for patient: {e}")
            return Screen.MEDICAL_QUESTIONS, None
        if not patient.id:
            return Screen.MEDICAL_QUESTIONS, None
        return Screen.HOME, patient

    async def _financial_back_target(self) -> Screen:
        try:
            await self.client.get_financial_profile()
        except NotFoundError:
            return Screen.ASSESSMENT_INTRO
        except ApiError as e:
            logger.warning(f"Error checking for financial profile: {e}")
            return Screen.ASSESSMENT_INTRO
        return Screen.HOME

    async def go_back(self) -> NavigationState:
        origin = self.state.screen
        found: Optional[Patient] = None
        if origin == Screen.ASSESSMENT_INTRO:
            destination, found = await self._assessment_back_target()
        elif origin == Screen.FINANCIAL_INTRO:
            destination = await self._financial_back_target()
        else:
            if origin == Screen.FINANCIAL_QUESTIONNAIRE:
                await self._close_autosave(flush=True)
            return self.dispatch(Back())
        return self.dispatch(BackResolved(origin=origin, destination=destination, patient=found))

    # Home / tabs

    def select_tab(self, tab: Tab) -> NavigationState:
        return self.dispatch(TabSelected(tab=tab))

    def navigate(self, screen: Screen) -> NavigationState:
        return self.dispatch(Navigate(screen=screen))

    def view_results(self) -> NavigationState:
        return self.navigate(Screen.RESULTS_DETAIL)

    def view_checklist(self) -> NavigationState:
        return self.navigate(Screen.CHECKLIST_TIMELINE)

    def find_referral(self) -> NavigationState:
        return self.navigate(Screen.REFERRAL_NAVIGATOR)

    def view_referral(self) -> NavigationState:
        return self.navigate(Screen.REFERRAL_VIEW)

    # Checklist

    def edit_checklist_item(self, item: ChecklistItem) -> NavigationState:
        return self.dispatch(EditChecklistItem(item=item))

    async def save_checklist_item(self, is_complete: Optional[bool] = None, notes: Any = UNSET) -> NavigationState:
        """
        Save the item being edited and return to the timeline
        """
        editing = self.state.editing_item
        if editing is None or self.state.screen != Screen.CHECKLIST_ITEM_EDIT:
            return self.state
        updates = build_item_update(editing.item, is_complete=is_complete, notes=notes)
        try:
            saved = await self._write_once(
                f"checklist-item:{editing.item_id}",
                lambda: self.client.update_checklist_item(editing.item_id, updates),
            )
        except ApiError as e:
            return self._fail("Failed to save checklist item", e)
        if saved is None:
            return self.state
        return self.dispatch(ChecklistItemSaved(item_id=editing.item_id))

    def request_documents(self) -> NavigationState:
        return self.dispatch(RequestDocuments())

    async def attach_document(self, file_path: Union[str, Path], content_type: Optional[str] = None) -> NavigationState:
        editing = self.state.editing_item
        if editing is None:
            return self.state
        try:
            checklist = await self._write_once(
                f"checklist-item:{editing.item_id}",
                lambda: self.client.upload_checklist_item_document(editing.item_id, file_path, content_type),
            )
        except ApiError as e:
            return self._fail("Failed to upload document", e)
        except OSError as e:
            logger.error(f"Error reading document {file_path}: {e}")
            return self.dispatch(OperationFailed(message=f"Failed to read document: {e}"))
        if checklist is None:
            return self.state
        updated = next((item for item in checklist.items if item.id == editing.item_id), None)
        if updated is None:
            logger.warning(f"Checklist item {editing.item_id} missing from upload response")
            return self.state
        return self.dispatch(ChecklistItemRefreshed(item=updated))

    # Referral

    async def record_referral(self, **fields: Any) -> Optional[PatientReferralState]:
        """
        Write referral state fields (has_referral, referral_source, ...)

        Returns the stored referral state, or None if the write failed.
        """
        patient_id = self.state.patient_id
        if not patient_id:
            return None
        updates = {"patient_id": patient_id, **fields}
        try:
            return await self._write_once("referral-state", lambda: self.client.update_referral_state(updates))
        except ApiError as e:
            self._fail("Failed to save referral information", e)
            return None

    # Pathway

    async def _read_optional(self, fetch: Callable[[], Awaitable[T]], label: str) -> Optional[T]:
        try:
            return await fetch()
        except NotFoundError:
            return None
        except ApiError as e:
            logger.warning(f"Error loading {label}: {e}")
            return None

    async def _read_status(self) -> Tuple[Optional[PatientStatus], bool]:
        try:
            return await self.client.get_patient_status(), False
        except NotFoundError:
            return None, False
        except ApiError as e:
            logger.warning(f"Error loading patient status, recomputing locally: {e}")

        submission = await self._read_optional(self.client.get_questionnaire, "questionnaire")
        if submission is None:
            return None, False
        return compute_status_from_submissions(self.questions, [submission]), True

    async def refresh_pathway(self) -> Optional[PathwayView]:
        """
        Read status, referral state and checklist and resolve the pathway stage

        Returns None when a newer refresh (or a patient deletion) started
        while this one was running.
        """
        self._refresh_generation += 1
        generation = self._refresh_generation

        (status, status_is_local), referral, checklist = await asyncio.gather(
            self._read_status(),
            self._read_optional(self.client.get_referral_state, "referral state"),
            self._read_optional(self.client.get_checklist, "checklist"),
        )
        if generation != self._refresh_generation:
            logger.debug(f"Discarding stale pathway refresh {generation}")
            return None

        progress = compute_progress(checklist.items) if checklist is not None else None
        stage = resolve_stage(status, referral, progress)
        self.pathway = PathwayView(
            status=status,
            status_is_local=status_is_local,
            referral=referral,
            checklist=checklist,
            progress=progress,
            stage=stage,
            stages=stage_statuses(stage),
        )
        return self.pathway

    # Settings

    async def delete_patient(self, confirmed: bool = False) -> NavigationState:
        """
        Delete all of this device's data and return to onboarding

        Does nothing unless the user confirmed.
        """
        if not confirmed:
            return self.state
        if self.autosave:
            # No draft write may land while the patient is being deleted
            self.autosave.cancel()
        try:
            await self.client.delete_patient()
        except NotFoundError:
            logger.info("Patient already deleted on the backend")
        except ApiError as e:
            return self._fail("Failed to delete patient data", e)

        await self._close_autosave()
        self._refresh_generation += 1
        self.pathway = None
        return self.dispatch(PatientDeleted())

    def dismiss_error(self) -> NavigationState:
        return self.dispatch(ErrorDismissed())
