"""
Checklist service module
"""

from kare.services.checklist.progress import (
    ALL_COMPLETE,
    UNSET,
    compute_progress,
    build_item_update,
)

__all__ = [
    "ALL_COMPLETE",
    "UNSET",
    "compute_progress",
    "build_item_update",
]
