"""
Patient status computation service

Classifies eligibility questionnaire answers into absolute and relative
contraindications. The backend computes the authoritative status; this is
used to preview results and to rebuild a status when the backend's is
unavailable.
"""
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Any, Iterable, Optional, Union

from pydantic import ValidationError

from kare.core.config import QUESTIONS_PATH
from kare.models.schemas import (
    PatientStatus,
    Contraindication,
    QuestionDefinition,
    QuestionnaireSubmission,
)

logger = logging.getLogger(__name__)


def load_questions(path: Optional[Union[str, Path]] = None) -> List[QuestionDefinition]:
    """
    Load the eligibility question catalog from JSON

    Returns list of question definitions with id, category, question, description
    If file doesn't exist or is invalid, returns empty list (nothing gets flagged)
    """
    questions_path = Path(path) if path is not None else QUESTIONS_PATH
    try:
        with open(questions_path, 'r') as f:
            raw = json.load(f)
        return [QuestionDefinition.model_validate(entry) for entry in raw]
    except (FileNotFoundError, json.JSONDecodeError, TypeError, ValidationError) as e:
        logger.warning(f"Failed to load questions from {questions_path}: {e}. Using empty catalog.")
        return []


def _findings(
    questions: Iterable[QuestionDefinition],
    answers: Dict[str, Any],
    category: str,
) -> List[Contraindication]:
    # Catalog order, not answer order
    return [
        Contraindication(id=question.id, question=question.question, category=category)
        for question in questions
        if question.category == category and answers.get(question.id) == 'yes'
    ]


def compute_status(
    questions: List[QuestionDefinition],
    answers: Dict[str, Any],
    patient_id: Optional[str] = None,
) -> PatientStatus:
    """
    Compute patient status from questionnaire answers

    Args:
        questions: Static question catalog
        answers: Dictionary mapping question_id to 'yes', 'no' or None
        patient_id: Optional patient ID to stamp on the status

    Returns:
        PatientStatus with contraindications in catalog order. Only answers equal
        to 'yes' are flagged; unknown question IDs and any other value are ignored.
        pathway_stage is left unset (the backend owns it).
    """
    answers = answers or {}

    # Find absolute contraindications (category='absolute' and answer='yes')
    absolute_contraindications = _findings(questions, answers, 'absolute')

    # Find relative contraindications (category='relative' and answer='yes')
    relative_contraindications = _findings(questions, answers, 'relative')

    return PatientStatus(
        patient_id=patient_id,
        has_absolute=len(absolute_contraindications) > 0,
        has_relative=len(relative_contraindications) > 0,
        absolute_contraindications=absolute_contraindications,
        relative_contraindications=relative_contraindications,
        updated_at=datetime.now(),
    )


def merge_submission_answers(submissions: Iterable[QuestionnaireSubmission]) -> Dict[str, Optional[str]]:
    """
    Roll up answers across questionnaire submissions

    The newest submission wins per question. Submissions without submitted_at
    are treated as oldest.
    """
    def get_sort_key(submission: QuestionnaireSubmission) -> float:
        if submission.submitted_at is None:
            return float('-inf')
        return submission.submitted_at.timestamp()

    latest_answers: Dict[str, Optional[str]] = {}
    for submission in sorted(submissions, key=get_sort_key, reverse=True):
        for question_id, answer in submission.answers.items():
            # Only set if not already set (newest wins)
            if question_id not in latest_answers:
                latest_answers[question_id] = answer
    return latest_answers


def compute_status_from_submissions(
    questions: List[QuestionDefinition],
    submissions: List[QuestionnaireSubmission],
) -> PatientStatus:
    """
    Compute patient status by rolling up all questionnaire submissions
    """
    patient_id = submissions[0].patient_id if submissions else None
    return compute_status(questions, merge_submission_answers(submissions), patient_id=patient_id)
