"""
API client tests - routes, device header and error mapping against a mocked transport
"""
import json

import httpx
import pytest

from kare.api.client import ApiService
from kare.api.errors import ApiError, NotFoundError
from kare.api.utils import resolve_device_id, device_headers
from kare.models.schemas import Patient, TransplantChecklist
from tests.conftest import make_item

PATIENT_JSON = {
    "id": "patient-1",
    "name": "Jane Doe",
    "date_of_birth": "1970-01-01",
    "sex": "female",
    "has_ckd_esrd": True,
    "created_at": "2024-01-01T00:00:00",
}


def _service(handler):
    return ApiService(base_url="http://backend.test", device_id="device-123", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_device_header_and_prefix():
    """Test every request carries X-Device-ID and the /api/v1 prefix"""
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=PATIENT_JSON)

    async with _service(handler) as api:
        patient = await api.get_patient()

    assert patient.id == "patient-1"
    assert seen[0].headers["X-Device-ID"] == "device-123"
    assert seen[0].url.path == "/api/v1/patients"


@pytest.mark.asyncio
async def test_create_patient_payload():
    """Test create sends the patient without id or empty fields"""
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json=PATIENT_JSON)

    async with _service(handler) as api:
        await api.create_patient(Patient(id="ignored", name="Jane Doe", date_of_birth="1970-01-01"))

    assert bodies == [{"name": "Jane Doe", "date_of_birth": "1970-01-01"}]


@pytest.mark.asyncio
async def test_not_found_raises_not_found_error():
    """Test 404 maps to NotFoundError with the backend's detail"""
    def handler(request):
        return httpx.Response(404, json={"detail": "Patient not found"})

    async with _service(handler) as api:
        with pytest.raises(NotFoundError) as exc_info:
            await api.get_patient()

    assert exc_info.value.status_code == 404
    assert exc_info.value.detail == "Patient not found"


@pytest.mark.asyncio
async def test_server_error_raises_api_error():
    """Test other error statuses map to ApiError carrying the status"""
    def handler(request):
        return httpx.Response(500, json={"detail": "Internal error"})

    async with _service(handler) as api:
        with pytest.raises(ApiError) as exc_info:
            await api.get_checklist()

    assert not isinstance(exc_info.value, NotFoundError)
    assert exc_info.value.status_code == 500
    assert str(exc_info.value) == "Internal error (status 500)"


@pytest.mark.asyncio
async def test_connection_failure():
    """Test a transport failure maps to ApiError without a status"""
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with _service(handler) as api:
        with pytest.raises(ApiError) as exc_info:
            await api.get_patient_status()

    assert exc_info.value.status_code is None
    assert "Unable to connect" in exc_info.value.detail


@pytest.mark.asyncio
async def test_timeout():
    """Test a timeout maps to ApiError('Request timeout')"""
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    async with _service(handler) as api:
        with pytest.raises(ApiError, match="Request timeout"):
            await api.get_referral_state()


@pytest.mark.asyncio
async def test_unexpected_payload():
    """Test a response that does not match the model is an ApiError"""
    def handler(request):
        return httpx.Response(200, json={"answers": "not a dict"})

    async with _service(handler) as api:
        with pytest.raises(ApiError, match="Unexpected QuestionnaireSubmission payload"):
            await api.get_questionnaire()


@pytest.mark.asyncio
async def test_delete_with_empty_body():
    """Test an empty success response is returned as an empty dict"""
    def handler(request):
        assert request.method == "DELETE"
        return httpx.Response(204)

    async with _service(handler) as api:
        assert await api.delete_patient() == {}


@pytest.mark.asyncio
async def test_item_update_and_financial_routes():
    """Test checklist item, financial profile and referral routes"""
    calls = []

    def handler(request):
        calls.append((request.method, request.url.path, json.loads(request.content or b"{}")))
        if "checklist" in request.url.path:
            return httpx.Response(200, json={"patient_id": "patient-1", "items": []})
        if "referral" in request.url.path:
            return httpx.Response(200, json={"patient_id": "patient-1", "has_referral": True})
        return httpx.Response(200, json={"patient_id": "patient-1", "answers": {"insurance": "medicare"}})

    async with _service(handler) as api:
        await api.update_checklist_item("lab_work", {"is_complete": True})
        await api.save_financial_profile("patient-1", {"insurance": "medicare"})
        await api.submit_financial_profile("patient-1", {"insurance": "medicare"})
        referral = await api.update_referral_state({"patient_id": "patient-1", "has_referral": True})

    assert calls[0] == ("PATCH", "/api/v1/checklist/items/lab_work", {"is_complete": True})
    assert calls[1][:2] == ("POST", "/api/v1/financial-profile")
    assert calls[2][:2] == ("POST", "/api/v1/financial-profile/submit")
    assert calls[2][2] == {"patient_id": "patient-1", "answers": {"insurance": "medicare"}}
    assert calls[3][:2] == ("POST", "/api/v1/referral-state")
    assert referral.has_referral is True


@pytest.mark.asyncio
async def test_patient_update_and_checklist_save_routes():
    """Test patient update and whole-checklist save routes"""
    calls = []

    def handler(request):
        calls.append((request.method, request.url.path, json.loads(request.content or b"{}")))
        if "checklist" in request.url.path:
            return httpx.Response(200, json={"patient_id": "patient-1", "items": [{"id": "lab_work", "title": "Lab Work", "order": 1}]})
        return httpx.Response(200, json={**PATIENT_JSON, "phone": "555-0199"})

    async with _service(handler) as api:
        patient = await api.update_patient({"phone": "555-0199"})
        checklist = await api.save_checklist(
            TransplantChecklist(patient_id="patient-1", items=[make_item("lab_work", 1)])
        )

    assert calls[0] == ("PATCH", "/api/v1/patients", {"phone": "555-0199"})
    assert patient.phone == "555-0199"
    assert calls[1][:2] == ("POST", "/api/v1/checklist")
    assert calls[1][2]["patient_id"] == "patient-1"
    assert [item["id"] for item in calls[1][2]["items"]] == ["lab_work"]
    assert checklist.items[0].id == "lab_work"


@pytest.mark.asyncio
async def test_document_upload_is_multipart(tmp_path):
    """Test document upload posts the file as multipart form data"""
    document = tmp_path / "results.pdf"
    document.write_bytes(b"%PDF-1.4 test")
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"patient_id": "patient-1", "items": []})

    async with _service(handler) as api:
        await api.upload_checklist_item_document("lab_work", document)

    request = requests[0]
    assert request.url.path == "/api/v1/checklist/items/lab_work/documents"
    assert request.headers["Content-Type"].startswith("multipart/form-data")
    assert b'filename="results.pdf"' in request.content
    assert b"application/pdf" in request.content


def test_resolve_device_id(monkeypatch):
    """Test an explicit device ID wins, then config, then a generated one"""
    monkeypatch.setattr("kare.api.utils.DEVICE_ID", "configured-device")
    assert resolve_device_id(" device-abc ") == "device-abc"
    assert resolve_device_id() == "configured-device"

    monkeypatch.setattr("kare.api.utils.DEVICE_ID", "")
    generated = resolve_device_id()
    assert len(generated) == 36
    assert resolve_device_id() != generated


def test_device_headers_require_id():
    """Test building headers without a device ID fails"""
    assert device_headers("device-1") == {"X-Device-ID": "device-1"}
    with pytest.raises(ValueError):
        device_headers("")
