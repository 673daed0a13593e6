"""
Eligibility rules engine tests - contraindication classification from answers
"""
import json
from datetime import datetime

from kare.models.schemas import QuestionDefinition, QuestionnaireSubmission
from kare.services.status import (
    load_questions,
    compute_status,
    merge_submission_answers,
    compute_status_from_submissions,
)


def test_catalog_loads(questions):
    """Test the packaged catalog has every category and unique ids"""
    ids = [q.id for q in questions]
    assert len(ids) == len(set(ids))
    assert {q.category for q in questions} == {"absolute", "relative", "general"}


def test_missing_catalog_returns_empty(tmp_path):
    """Test a missing catalog file yields an empty list instead of raising"""
    assert load_questions(tmp_path / "missing.json") == []


def test_invalid_catalog_returns_empty(tmp_path):
    """Test malformed JSON and bad entries both yield an empty list"""
    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    assert load_questions(broken) == []

    wrong_shape = tmp_path / "wrong.json"
    wrong_shape.write_text(json.dumps([{"id": "x", "category": "severe"}]))
    assert load_questions(wrong_shape) == []


def test_empty_answers_flag_nothing(questions):
    """Test no answers means no contraindications"""
    status = compute_status(questions, {})
    assert status.has_absolute is False
    assert status.has_relative is False
    assert status.absolute_contraindications == []
    assert status.relative_contraindications == []
    assert status.pathway_stage is None


def test_only_yes_is_flagged(questions):
    """Test 'no', None and other values are not contraindications"""
    answers = {
        "metastatic_cancer": "no",
        "decompensated_cirrhosis": None,
        "severe_lung_disease": "YES",
        "active_substance_use": "maybe",
    }
    status = compute_status(questions, answers)
    assert status.has_absolute is False
    assert status.has_relative is False


def test_absolute_and_relative_classification(questions):
    """Test yes answers are split by question category"""
    answers = {
        "active_infection": "yes",
        "high_bmi": "yes",
        "on_dialysis": "yes",
        "unknown_question": "yes",
    }
    status = compute_status(questions, answers, patient_id="patient-1")

    assert status.patient_id == "patient-1"
    assert status.has_absolute is True
    assert status.has_relative is True
    assert [c.id for c in status.absolute_contraindications] == ["active_infection"]
    assert [c.id for c in status.relative_contraindications] == ["high_bmi"]
    assert status.absolute_contraindications[0].category == "absolute"
    assert status.relative_contraindications[0].question


def test_findings_follow_catalog_order(questions):
    """Test contraindications are listed in catalog order, not answer order"""
    answers = {"active_infection": "yes", "metastatic_cancer": "yes", "severe_lung_disease": "yes"}
    status = compute_status(questions, answers)
    assert [c.id for c in status.absolute_contraindications] == [
        "metastatic_cancer",
        "severe_lung_disease",
        "active_infection",
    ]


def test_flags_match_lists(questions):
    """Test has_absolute/has_relative always mirror the lists"""
    for answers in ({}, {"recent_cancer": "yes"}, {"metastatic_cancer": "yes"}):
        status = compute_status(questions, answers)
        assert status.has_absolute == bool(status.absolute_contraindications)
        assert status.has_relative == bool(status.relative_contraindications)


def test_empty_catalog_flags_nothing():
    """Test nothing is flagged when the catalog could not be loaded"""
    status = compute_status([], {"metastatic_cancer": "yes"})
    assert status.has_absolute is False


def test_merge_newest_submission_wins():
    """Test per-question roll-up keeps the newest answer"""
    older = QuestionnaireSubmission(
        patient_id="patient-1",
        answers={"high_bmi": "yes", "recent_cancer": "no"},
        submitted_at=datetime(2024, 1, 1),
    )
    newer = QuestionnaireSubmission(
        patient_id="patient-1",
        answers={"high_bmi": "no"},
        submitted_at=datetime(2024, 6, 1),
    )
    undated = QuestionnaireSubmission(patient_id="patient-1", answers={"recent_cancer": "yes", "limited_support": "yes"})

    merged = merge_submission_answers([older, undated, newer])
    assert merged == {"high_bmi": "no", "recent_cancer": "no", "limited_support": "yes"}


def test_status_from_submissions(questions):
    """Test status is computed from the rolled-up answers"""
    submission = QuestionnaireSubmission(patient_id="patient-1", answers={"medication_adherence": "yes"})
    status = compute_status_from_submissions(questions, [submission])
    assert status.patient_id == "patient-1"
    assert [c.id for c in status.relative_contraindications] == ["medication_adherence"]


def test_custom_catalog():
    """Test classification uses whatever catalog it is given"""
    catalog = [QuestionDefinition(id="q1", category="relative", question="Question one?")]
    status = compute_status(catalog, {"q1": "yes"})
    assert status.has_relative is True
    assert status.has_absolute is False
