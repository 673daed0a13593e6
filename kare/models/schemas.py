"""
Data models shared with the backend

- Mirror the backend's response payloads (extra fields are ignored)
- Pydantic provides automatic validation of everything read from the wire
- Optional fields for entities that are created lazily
"""
from enum import Enum
from typing import Optional, Dict, Any, List, Literal
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict


class PathwayStage(str, Enum):
    """
    Transplant pathway stages, declared in pathway order
    """
    IDENTIFICATION = "identification"
    REFERRAL = "referral"
    EVALUATION = "evaluation"
    SELECTION = "selection"
    TRANSPLANTATION = "transplantation"
    POST_TRANSPLANT = "post-transplant"


class Patient(BaseModel):
    """
    Patient record as stored by the backend

    The identifier is assigned by the backend on first create.
    """
    model_config = ConfigDict(extra="ignore")
    id: Optional[str]            = Field(None, description="Patient unique identifier (assigned by the backend)")
    name: str                    = Field(...,  description="Patient legal name")
    date_of_birth: str           = Field(...,  description="Date of birth (format: YYYY-MM-DD)")
    sex: Optional[Literal["male", "female", "unknown"]] = Field(None, description="Sex assigned at birth")
    height_cm: Optional[float]   = Field(None, description="Height in centimeters (cm)")
    weight_kg: Optional[float]   = Field(None, description="Weight in kilograms (kg)")
    email: Optional[str]         = Field(None, description="Email address")
    phone: Optional[str]         = Field(None, description="Phone number")
    has_ckd_esrd: Optional[bool] = Field(None, description="Whether patient has CKD or ESRD")
    last_gfr: Optional[float]    = Field(None, description="Last known GFR (Glomerular Filtration Rate) value")
    has_referral: Optional[bool] = Field(None, description="Whether patient already has a referral to a transplant center")


class QuestionDefinition(BaseModel):
    """
    One entry of the static eligibility question catalog
    """
    model_config = ConfigDict(extra="ignore")
    id: str                                               = Field(..., description="Question identifier")
    category: Literal["absolute", "relative", "general"]  = Field(..., description="Contraindication severity the question screens for")
    question: str                                         = Field(..., description="Question text shown to the patient")
    description: Optional[str]                            = Field(None, description="Longer explanation of the question")


class QuestionnaireSubmission(BaseModel):
    """
    Eligibility questionnaire submission

    Answers are 'yes' / 'no', or None for "don't know".
    Status is computed on the backend from the answers.
    """
    model_config = ConfigDict(extra="ignore")
    id: Optional[str]                 = Field(None, description="Unique questionnaire submission ID (assigned by the backend)")
    patient_id: str                   = Field(..., description="Patient ID this questionnaire is associated with")
    answers: Dict[str, Optional[str]] = Field(..., description="Question answers as key-value pairs (question_id -> 'yes'/'no'/null)")
    submitted_at: Optional[datetime]  = Field(None, description="Timestamp when questionnaire was submitted")


class Contraindication(BaseModel):
    """
    Individual contraindication identified in questionnaire
    """
    model_config = ConfigDict(extra="ignore")
    id: str                                               = Field(..., description="Question ID that identified this contraindication")
    question: str                                         = Field(..., description="Question text describing the contraindication")
    category: Optional[Literal["absolute", "relative"]]   = Field(None, description="Severity of the contraindication")


class PatientStatus(BaseModel):
    """
    Patient transplant status based on questionnaire results

    has_absolute / has_relative mirror whether the matching list is non-empty.
    pathway_stage is the backend's computed stage, kept as the raw string so
    unknown values can be reconciled locally.
    """
    model_config = ConfigDict(extra="ignore")
    id: Optional[str]                                  = Field(None, description="Unique status ID (assigned by the backend)")
    patient_id: Optional[str]                          = Field(None, description="Patient ID this status is associated with")
    has_absolute: bool                                 = Field(..., description="Whether patient has absolute contraindications")
    has_relative: bool                                 = Field(..., description="Whether patient has relative contraindications")
    absolute_contraindications: List[Contraindication] = Field(default_factory=list, description="List of absolute contraindications")
    relative_contraindications: List[Contraindication] = Field(default_factory=list, description="List of relative contraindications")
    pathway_stage: Optional[str]                       = Field(None, description="Backend pathway stage: 'identification', 'referral', 'evaluation', 'selection', 'transplantation', 'post-transplant'")
    updated_at: Optional[datetime]                     = Field(default_factory=datetime.now, description="Timestamp when status was last updated")


class ChecklistItem(BaseModel):
    """
    Individual checklist item for pre-transplant evaluation

    Represents one step in the pre-transplant workup process
    """
    model_config = ConfigDict(extra="ignore")
    id: str                           = Field(..., description="Unique identifier for the checklist item (e.g., 'physical_exam', 'lab_work')")
    title: str                        = Field(..., description="Display title of the checklist item")
    description: Optional[str]        = Field(None, description="Detailed description of what this evaluation entails")
    is_complete: bool                 = Field(default=False, description="Whether this item has been completed")
    notes: Optional[str]              = Field(None, description="Patient notes about where records are stored or other details")
    completed_at: Optional[datetime]  = Field(None, description="Timestamp when item was marked complete")
    order: int                        = Field(..., description="Display order in the checklist (ascending)")
    documents: List[str]              = Field(default_factory=list, description="Array of document path names referencing stored documents")


class TransplantChecklist(BaseModel):
    """
    Pre-transplant checklist for a patient
    """
    model_config = ConfigDict(extra="ignore")
    id: Optional[str]                 = Field(None, description="Unique checklist ID (assigned by the backend)")
    patient_id: str                   = Field(..., description="Patient ID this checklist is associated with")
    items: List[ChecklistItem]        = Field(default_factory=list, description="List of checklist items")
    created_at: Optional[datetime]    = Field(None, description="Timestamp when checklist was created")
    updated_at: Optional[datetime]    = Field(None, description="Timestamp when checklist was last updated")


class ChecklistProgress(BaseModel):
    """
    Derived progress through the checklist (never persisted)
    """
    current_step: int        = Field(..., description="1-based index of the first incomplete item (0 for an empty checklist)")
    total_steps: int         = Field(..., description="Number of checklist items")
    completed_steps: int     = Field(..., description="Number of completed items")
    current_step_title: str  = Field(..., description="Title of the current item, or 'All Complete'")
    percentage: int          = Field(..., description="Completion percentage (0-100)")


class FinancialProfile(BaseModel):
    """
    Financial assessment profile for a patient

    Stores answers from the financial assessment questionnaire
    """
    model_config = ConfigDict(extra="ignore")
    id: Optional[str]                 = Field(None, description="Unique financial profile ID (assigned by the backend)")
    patient_id: str                   = Field(..., description="Patient ID this financial profile is associated with")
    answers: Dict[str, Optional[str]] = Field(default_factory=dict, description="Financial assessment answers as key-value pairs (question_id -> answer or null)")
    submitted_at: Optional[datetime]  = Field(None, description="Timestamp when financial profile was submitted")
    updated_at: Optional[datetime]    = Field(None, description="Timestamp when financial profile was last updated")


class PatientReferralState(BaseModel):
    """
    Patient referral state for the Transplant Access Navigator

    Tracks patient's referral status and provider information
    """
    model_config = ConfigDict(extra="ignore")
    patient_id: str                             = Field(..., description="Patient ID")
    location: Dict[str, Any]                    = Field(default_factory=dict, description="Patient location (zip, city, state, optionally lat/lng)")
    has_referral: bool                          = Field(default=False, description="Whether patient has a referral")
    referral_source: Optional[str]              = Field(None, description="Source of referral (nephrologist, pcp, dialysis_center, etc.)")
    last_nephrologist: Optional[Dict[str, Any]] = Field(None, description="Nephrologist information (name, clinic)")
    dialysis_center: Optional[Dict[str, Any]]   = Field(None, description="Dialysis center information (name, social_worker_contact)")
    preferred_centers: List[str]                = Field(default_factory=list, description="List of preferred center IDs")
    referral_status: str                        = Field(default="not_started", description="Status: not_started, in_progress, completed")
