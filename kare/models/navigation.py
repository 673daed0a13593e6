"""
Navigation state and events

The whole client is driven by one NavigationState value. Every user action
and every collaborator outcome is an event; kare.navigation.transitions maps
(state, event) to the next state.
"""
from enum import Enum
from typing import Annotated, Optional, Dict, Literal, Union
from pydantic import BaseModel, Field, ConfigDict

from kare.models.schemas import Patient, ChecklistItem
from kare.models.onboarding import ContactDetails, PersonalDetails, MedicalDetails


class Screen(str, Enum):
    # Onboarding wizard
    ONBOARDING = "onboarding"
    CONTACT_DETAILS = "contact-details"
    PERSONAL_DETAILS = "personal-details"
    MEDICAL_QUESTIONS = "medical-questions"
    # Eligibility assessment
    ASSESSMENT_INTRO = "assessment-intro"
    ELIGIBILITY_QUESTIONNAIRE = "eligibility-questionnaire"
    # Financial assessment
    FINANCIAL_INTRO = "financial-intro"
    FINANCIAL_QUESTIONNAIRE = "financial-questionnaire"
    # Main app
    HOME = "home"
    RESULTS_DETAIL = "results-detail"
    # Checklist
    CHECKLIST_TIMELINE = "checklist-timeline"
    CHECKLIST_ITEM_EDIT = "checklist-item-edit"
    CHECKLIST_DOCUMENTS = "checklist-documents"
    # Referral
    REFERRAL_NAVIGATOR = "referral-navigator"
    REFERRAL_VIEW = "referral-view"


class Tab(str, Enum):
    PATHWAY = "pathway"
    CHAT = "chat"
    SETTINGS = "settings"


class EditingChecklistItem(BaseModel):
    """
    Pointer to the checklist item being edited (plus a snapshot of it)
    """
    model_config = ConfigDict(frozen=True)
    item_id: str
    item: ChecklistItem


class NavigationState(BaseModel):
    """
    Client-only navigation state

    Wizard caches hold validated step payloads until the patient is persisted.
    """
    model_config = ConfigDict(frozen=True)
    screen: Screen                                 = Screen.ONBOARDING
    active_tab: Tab                                = Tab.PATHWAY
    patient: Optional[Patient]                     = None
    contact_details: Optional[ContactDetails]      = None
    personal_details: Optional[PersonalDetails]    = None
    medical_details: Optional[MedicalDetails]      = None
    is_first_time_financial_flow: bool             = False
    editing_item: Optional[EditingChecklistItem]   = None
    error: Optional[str]                           = None
    field_errors: Dict[str, str]                   = Field(default_factory=dict)

    @property
    def patient_id(self) -> Optional[str]:
        return self.patient.id if self.patient else None

    @property
    def has_wizard_data(self) -> bool:
        return any((self.contact_details, self.personal_details, self.medical_details))


# Events

class PatientLoaded(BaseModel):
    kind: Literal["patient_loaded"] = "patient_loaded"
    patient: Patient


class PatientMissing(BaseModel):
    kind: Literal["patient_missing"] = "patient_missing"


class LoadFailed(BaseModel):
    kind: Literal["load_failed"] = "load_failed"
    message: str


class GetStarted(BaseModel):
    kind: Literal["get_started"] = "get_started"


class ContactDetailsSubmitted(BaseModel):
    kind: Literal["contact_details_submitted"] = "contact_details_submitted"
    data: ContactDetails


class PersonalDetailsSubmitted(BaseModel):
    kind: Literal["personal_details_submitted"] = "personal_details_submitted"
    data: PersonalDetails


class MedicalDetailsSubmitted(BaseModel):
    kind: Literal["medical_details_submitted"] = "medical_details_submitted"
    data: MedicalDetails


class StepRejected(BaseModel):
    kind: Literal["step_rejected"] = "step_rejected"
    errors: Dict[str, str]


class PatientCreated(BaseModel):
    kind: Literal["patient_created"] = "patient_created"
    patient: Patient


class PatientCreateFailed(BaseModel):
    kind: Literal["patient_create_failed"] = "patient_create_failed"
    message: str


class BeginAssessment(BaseModel):
    kind: Literal["begin_assessment"] = "begin_assessment"


class QuestionnaireCompleted(BaseModel):
    kind: Literal["questionnaire_completed"] = "questionnaire_completed"


class EditFinancialAssessment(BaseModel):
    kind: Literal["edit_financial_assessment"] = "edit_financial_assessment"


class BeginFinancialAssessment(BaseModel):
    kind: Literal["begin_financial_assessment"] = "begin_financial_assessment"


class FinancialQuestionnaireCompleted(BaseModel):
    kind: Literal["financial_questionnaire_completed"] = "financial_questionnaire_completed"


class TabSelected(BaseModel):
    kind: Literal["tab_selected"] = "tab_selected"
    tab: Tab


class Navigate(BaseModel):
    kind: Literal["navigate"] = "navigate"
    screen: Screen


class EditChecklistItem(BaseModel):
    kind: Literal["edit_checklist_item"] = "edit_checklist_item"
    item: ChecklistItem


class ChecklistItemSaved(BaseModel):
    kind: Literal["checklist_item_saved"] = "checklist_item_saved"
    item_id: str


class ChecklistItemRefreshed(BaseModel):
    kind: Literal["checklist_item_refreshed"] = "checklist_item_refreshed"
    item: ChecklistItem


class RequestDocuments(BaseModel):
    kind: Literal["request_documents"] = "request_documents"


class Back(BaseModel):
    kind: Literal["back"] = "back"


class BackResolved(BaseModel):
    kind: Literal["back_resolved"] = "back_resolved"
    origin: Screen
    destination: Screen
    # Patient record found by the lookup, if it had to read one
    patient: Optional[Patient] = None


class PatientDeleted(BaseModel):
    kind: Literal["patient_deleted"] = "patient_deleted"


class OperationFailed(BaseModel):
    kind: Literal["operation_failed"] = "operation_failed"
    message: str


class ErrorDismissed(BaseModel):
    kind: Literal["error_dismissed"] = "error_dismissed"


NavigationEvent = Annotated[
    Union[
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
    ],
    Field(discriminator="kind"),
]
