"""
Collaborator call errors

Every backend call either returns a typed payload or raises one of these.
NotFoundError means the entity does not exist yet, which is a normal branch.
"""
from typing import Optional


class ApiError(Exception):
    """
    Backend call failed (HTTP error status, network failure or timeout)

    status_code is None when no response was received.
    """
    def __init__(self, detail: str, status_code: Optional[int] = None):
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is None:
            return self.detail
        return f"{self.detail} (status {self.status_code})"


class NotFoundError(ApiError):
    """
    Backend returned 404: the requested entity does not exist
    """
    def __init__(self, detail: str = "Not found"):
        super().__init__(detail, status_code=404)
