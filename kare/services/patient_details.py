"""
Patient payload assembly for the onboarding wizard

Merges the three cached wizard steps into one patient payload.
"""
from typing import Dict, Any, Optional

from pydantic import BaseModel

from kare.models.schemas import Patient


def build_patient_payload(*steps: Optional[BaseModel]) -> Patient:
    """
    Merge wizard step payloads (later steps win) into one Patient to create

    Steps are already validated, so their fields carry canonical names and
    types. Missing steps are skipped.

    Raises pydantic.ValidationError if the merged payload is incomplete.
    """
    merged: Dict[str, Any] = {}
    for step in steps:
        if step is not None:
            merged.update(step.model_dump(exclude_none=True))
    return Patient.model_validate(merged)
