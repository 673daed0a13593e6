"""
Checklist progress computation

Derives where the patient is in the pre-transplant checklist.
"""
import math
from datetime import datetime
from typing import Dict, Any, List, Optional

from kare.models.schemas import ChecklistItem, ChecklistProgress

ALL_COMPLETE = "All Complete"

UNSET: Any = object()


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_progress(items: List[ChecklistItem], prefer_sentinel: bool = False) -> ChecklistProgress:
    """
    Compute progress summary for a list of checklist items

    Args:
        items: Checklist items in any order
        prefer_sentinel: When every item is complete, report 'All Complete'
            as the current step title instead of the last item's title

    Returns:
        ChecklistProgress where current_step is the 1-based position of the first
        incomplete item (sorted by order), or total_steps when all are complete.
        An empty checklist reports step 0 and 0%.
    """
    # sorted() is stable, ties keep their original positions
    sorted_items = sorted(items, key=lambda item: item.order)
    total_steps = len(sorted_items)

    if total_steps == 0:
        return ChecklistProgress(
            current_step=0,
            total_steps=0,
            completed_steps=0,
            current_step_title=ALL_COMPLETE,
            percentage=0,
        )

    completed_steps = sum(1 for item in sorted_items if item.is_complete)

    current_step_index = next(
        (index for index, item in enumerate(sorted_items) if not item.is_complete),
        None,
    )
    if current_step_index is None:
        current_step_index = total_steps - 1
        title = ALL_COMPLETE if prefer_sentinel else sorted_items[current_step_index].title
    else:
        title = sorted_items[current_step_index].title

    return ChecklistProgress(
        current_step=current_step_index + 1,
        total_steps=total_steps,
        completed_steps=completed_steps,
        current_step_title=title,
        percentage=_round_half_up(100 * completed_steps / total_steps),
    )


def build_item_update(
    item: ChecklistItem,
    is_complete: Optional[bool] = None,
    notes: Any = UNSET,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Build the partial update body for a checklist item

    Keeps completed_at present only while the item is complete: completing an
    item stamps it (an existing stamp is kept), un-completing clears it.
    Blank notes are sent as None.
    """
    updates: Dict[str, Any] = {}

    if is_complete is not None:
        updates['is_complete'] = is_complete
        if is_complete:
            completed_at = item.completed_at if item.is_complete and item.completed_at else (now or datetime.now())
            updates['completed_at'] = completed_at.isoformat()
        else:
            updates['completed_at'] = None

    if notes is not UNSET:
        updates['notes'] = notes.strip() if notes and notes.strip() else None

    return updates
