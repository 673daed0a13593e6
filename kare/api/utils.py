"""
Utility functions for backend requests
"""
import logging
import uuid
from typing import Dict, Optional

from kare.core.config import DEVICE_ID

logger = logging.getLogger(__name__)


def resolve_device_id(device_id: Optional[str] = None) -> str:
    """
    Pick the device ID sent with every request

    Explicit argument first, then KARE_DEVICE_ID, otherwise a fresh UUID for
    this process (the backend scopes all records to it).
    """
    resolved = (device_id or DEVICE_ID or "").strip()
    if not resolved:
        resolved = str(uuid.uuid4())
        logger.info(f"No device ID configured, generated {resolved}")
    return resolved


def device_headers(device_id: str) -> Dict[str, str]:
    """
    Build request headers for a device

    Raises ValueError if device ID is missing; the backend rejects such requests.
    """
    if not device_id:
        raise ValueError("Missing device ID. X-Device-ID header is required for all requests.")
    return {'X-Device-ID': device_id}
