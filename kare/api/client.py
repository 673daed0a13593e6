"""
Backend API client

- One async httpx client per device, every request carries X-Device-ID
- 404 is raised as NotFoundError (entity absent), anything else as ApiError
- Responses are validated into the shared pydantic models
"""
import logging
import mimetypes
import time
from pathlib import Path
from typing import Any, Dict, Optional, Type, TypeVar, Union

import httpx
from pydantic import BaseModel, ValidationError

from kare.core.config import API_BASE_URL, API_PREFIX, REQUEST_TIMEOUT_SECONDS
from kare.api.errors import ApiError, NotFoundError
from kare.api.utils import resolve_device_id, device_headers
from kare.models.schemas import (
    Patient,
    QuestionnaireSubmission,
    PatientStatus,
    TransplantChecklist,
    FinancialProfile,
    PatientReferralState,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _error_detail(response: httpx.Response) -> str:
    """
    Pull the backend's error message out of a failed response
    """
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or f"HTTP error! status: {response.status_code}"
    if isinstance(body, dict):
        detail = body.get('detail') or body.get('message')
        if detail:
            return detail if isinstance(detail, str) else str(detail)
    return f"HTTP error! status: {response.status_code}"


class ApiService:
    """
    Remote collaborator for patient, questionnaire, status, checklist,
    financial profile and referral state records
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        device_id: Optional[str] = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.device_id = resolve_device_id(device_id)
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=device_headers(self.device_id),
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ApiService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        path = f"{API_PREFIX}{endpoint}"
        start_time = time.time()
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException:
            logger.warning(f"Timeout calling {method} {path}")
            raise ApiError("Request timeout")
        except httpx.HTTPError as e:
            logger.warning(f"Error calling {method} {path}: {e}")
            raise ApiError(f"Unable to connect to server. Please ensure the backend is running at {self.base_url}")

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"[TIMING] {method} {path} | device_id={self.device_id} | "
            f"duration={duration_ms:.2f}ms | status={response.status_code}"
        )

        if response.status_code == 404:
            raise NotFoundError(_error_detail(response))
        if response.is_error:
            raise ApiError(_error_detail(response), status_code=response.status_code)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            raise ApiError(f"Invalid JSON response from {path}", status_code=response.status_code)

    async def _request_model(self, model: Type[ModelT], method: str, endpoint: str, **kwargs) -> ModelT:
        data = await self._request(method, endpoint, **kwargs)
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise ApiError(f"Unexpected {model.__name__} payload from {endpoint}: {e}")

    # Patient

    async def create_patient(self, patient: Patient) -> Patient:
        payload = patient.model_dump(mode="json", exclude_none=True, exclude={"id"})
        return await self._request_model(Patient, "POST", "/patients", json=payload)

    async def get_patient(self) -> Patient:
        return await self._request_model(Patient, "GET", "/patients")

    async def update_patient(self, updates: Dict[str, Any]) -> Patient:
        return await self._request_model(Patient, "PATCH", "/patients", json=updates)

    async def delete_patient(self) -> Dict[str, Any]:
        return await self._request("DELETE", "/patients")

    # Questionnaire / status

    async def get_questionnaire(self) -> QuestionnaireSubmission:
        return await self._request_model(QuestionnaireSubmission, "GET", "/questionnaire")

    async def submit_questionnaire(self, patient_id: str, answers: Dict[str, Optional[str]]) -> QuestionnaireSubmission:
        payload = {"patient_id": patient_id, "answers": answers}
        return await self._request_model(QuestionnaireSubmission, "POST", "/questionnaire", json=payload)

    async def get_patient_status(self) -> PatientStatus:
        return await self._request_model(PatientStatus, "GET", "/patient-status")

    # Checklist

    async def get_checklist(self) -> TransplantChecklist:
        return await self._request_model(TransplantChecklist, "GET", "/checklist")

    async def save_checklist(self, checklist: TransplantChecklist) -> TransplantChecklist:
        payload = checklist.model_dump(mode="json")
        return await self._request_model(TransplantChecklist, "POST", "/checklist", json=payload)

    async def update_checklist_item(self, item_id: str, updates: Dict[str, Any]) -> TransplantChecklist:
        return await self._request_model(
            TransplantChecklist, "PATCH", f"/checklist/items/{item_id}", json=updates
        )

    async def upload_checklist_item_document(
        self,
        item_id: str,
        file_path: Union[str, Path],
        content_type: Optional[str] = None,
    ) -> TransplantChecklist:
        path = Path(file_path)
        content_type = content_type or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        with open(path, "rb") as f:
            files = {"file": (path.name, f, content_type)}
            return await self._request_model(
                TransplantChecklist, "POST", f"/checklist/items/{item_id}/documents", files=files
            )

    # Financial profile

    async def get_financial_profile(self) -> FinancialProfile:
        return await self._request_model(FinancialProfile, "GET", "/financial-profile")

    async def save_financial_profile(self, patient_id: str, answers: Dict[str, Optional[str]]) -> FinancialProfile:
        payload = {"patient_id": patient_id, "answers": answers}
        return await self._request_model(FinancialProfile, "POST", "/financial-profile", json=payload)

    async def submit_financial_profile(self, patient_id: str, answers: Dict[str, Optional[str]]) -> FinancialProfile:
        payload = {"patient_id": patient_id, "answers": answers}
        return await self._request_model(FinancialProfile, "POST", "/financial-profile/submit", json=payload)

    # Referral state

    async def get_referral_state(self) -> PatientReferralState:
        return await self._request_model(PatientReferralState, "GET", "/referral-state")

    async def update_referral_state(self, updates: Dict[str, Any]) -> PatientReferralState:
        return await self._request_model(PatientReferralState, "POST", "/referral-state", json=updates)
