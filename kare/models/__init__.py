"""
Models module

Contains the backend payload schemas and the onboarding step payloads.
"""

from kare.models.schemas import (
    PathwayStage,
    Patient,
    QuestionDefinition,
    QuestionnaireSubmission,
    Contraindication,
    PatientStatus,
    ChecklistItem,
    TransplantChecklist,
    ChecklistProgress,
    FinancialProfile,
    PatientReferralState,
)
from kare.models.onboarding import (
    ContactDetails,
    PersonalDetails,
    MedicalDetails,
    field_errors,
)

__all__ = [
    "PathwayStage",
    "Patient",
    "QuestionDefinition",
    "QuestionnaireSubmission",
    "Contraindication",
    "PatientStatus",
    "ChecklistItem",
    "TransplantChecklist",
    "ChecklistProgress",
    "FinancialProfile",
    "PatientReferralState",
    "ContactDetails",
    "PersonalDetails",
    "MedicalDetails",
    "field_errors",
]
