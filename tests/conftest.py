"""
Shared fixtures - questions catalog, sample records and a mocked backend
"""
import pytest
from unittest.mock import AsyncMock

from kare.api.client import ApiService
from kare.api.errors import NotFoundError
from kare.models.schemas import Patient, ChecklistItem
from kare.navigation.controller import NavigationController
from kare.services.status import load_questions


CONTACT = {"name": "Jane Doe", "email": "jane@example.com", "phone": "555-0100"}
PERSONAL = {"date_of_birth": "1970-01-01", "sex": "female", "height_cm": 165, "weight_kg": 70}
MEDICAL = {"has_ckd_esrd": True, "last_gfr": 12, "has_referral": False}


def make_item(item_id, order, is_complete=False, title=None, **extra):
    """Build a checklist item with sensible defaults"""
    return ChecklistItem(
        id=item_id,
        title=title or item_id.replace("_", " ").title(),
        order=order,
        is_complete=is_complete,
        **extra,
    )


@pytest.fixture
def questions():
    """Packaged eligibility question catalog"""
    return load_questions()


@pytest.fixture
def patient():
    """Persisted patient record"""
    return Patient(
        id="patient-1",
        name="Jane Doe",
        date_of_birth="1970-01-01",
        sex="female",
        has_ckd_esrd=True,
        last_gfr=12,
        has_referral=False,
    )


@pytest.fixture
def api():
    """Backend where nothing exists yet"""
    client = AsyncMock(spec=ApiService)
    client.get_patient.side_effect = NotFoundError("Patient not found")
    client.get_patient_status.side_effect = NotFoundError("Patient status not found")
    client.get_questionnaire.side_effect = NotFoundError("Questionnaire not found")
    client.get_checklist.side_effect = NotFoundError("Checklist not found")
    client.get_financial_profile.side_effect = NotFoundError("Financial profile not found")
    client.get_referral_state.side_effect = NotFoundError("Referral state not found")
    return client


@pytest.fixture
def controller(api, questions):
    """Controller wired to the mocked backend"""
    return NavigationController(api, questions=questions)
