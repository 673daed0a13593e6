# Backend collaborator
from kare.api.client import ApiService
from kare.api.errors import ApiError, NotFoundError

__all__ = ["ApiService", "ApiError", "NotFoundError"]
