"""
Status service module
"""

from kare.services.status.computation import (
    load_questions,
    compute_status,
    merge_submission_answers,
    compute_status_from_submissions,
)

__all__ = [
    "load_questions",
    "compute_status",
    "merge_submission_answers",
    "compute_status_from_submissions",
]
