"""
Pathway stage resolution

The backend computes the patient's pathway stage and returns it on the status
record. The client trusts that value whenever it is present and only derives
a best-effort stage from local signals when it is missing.
"""
import logging
from typing import List, Literal, Optional, Tuple

from kare.models.schemas import (
    PathwayStage,
    PatientStatus,
    PatientReferralState,
    ChecklistProgress,
)

logger = logging.getLogger(__name__)

StageStatus = Literal["completed", "current", "upcoming"]

PATHWAY_ORDER: List[PathwayStage] = list(PathwayStage)


def parse_stage(value: Optional[str]) -> Optional[PathwayStage]:
    """
    Parse a raw stage string, None if it is not one of the six stages
    """
    if not isinstance(value, str):
        return None
    try:
        return PathwayStage(value.strip())
    except ValueError:
        return None


def _has_explicit_stage(status: Optional[PatientStatus]) -> bool:
    return (
        status is not None
        and isinstance(status.pathway_stage, str)
        and status.pathway_stage.strip() != ""
    )


def resolve_stage(
    status: Optional[PatientStatus],
    referral: Optional[PatientReferralState],
    checklist: Optional[ChecklistProgress],
) -> PathwayStage:
    """
    Determine the current pathway stage

    Args:
        status: Patient status record, if one exists
        referral: Referral state, if one exists
        checklist: Checklist progress, if a checklist exists

    Returns:
        The backend's stage when the status carries one (unknown values fall back
        to identification). Otherwise a stage derived from local signals.
    """
    # Backend-computed stage is authoritative
    if _has_explicit_stage(status):
        stage = parse_stage(status.pathway_stage)
        if stage is None:
            logger.warning(f"Unknown pathway_stage '{status.pathway_stage}' from backend, using identification")
            return PathwayStage.IDENTIFICATION
        return stage

    # Stage 1: Identification - no status yet (brand-new patient)
    if status is None:
        return PathwayStage.IDENTIFICATION

    if checklist is not None and checklist.total_steps > 0:
        # Stage 4: Selection - every checklist item complete
        if checklist.completed_steps >= checklist.total_steps:
            return PathwayStage.SELECTION
        # Stage 3: Evaluation - checklist in progress
        return PathwayStage.EVALUATION

    # Stage 2: Referral - referral received
    if referral is not None and referral.has_referral:
        return PathwayStage.REFERRAL

    return PathwayStage.IDENTIFICATION


def stage_statuses(current: PathwayStage) -> List[Tuple[PathwayStage, StageStatus]]:
    """
    Mark every stage as completed, current or upcoming relative to the current one
    """
    current_index = PATHWAY_ORDER.index(current)
    statuses: List[Tuple[PathwayStage, StageStatus]] = []
    for index, stage in enumerate(PATHWAY_ORDER):
        if index < current_index:
            statuses.append((stage, "completed"))
        elif index == current_index:
            statuses.append((stage, "current"))
        else:
            statuses.append((stage, "upcoming"))
    return statuses
