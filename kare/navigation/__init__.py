"""
Navigation module

Pure screen transitions, the side-effecting controller and questionnaire autosave.
"""

from kare.navigation.transitions import (
    SCREEN_REQUIREMENTS,
    BACK_TARGETS,
    GUARDED_BACK,
    NAVIGABLE,
    can_enter,
    transition,
)
from kare.navigation.autosave import AutosaveCoordinator
from kare.navigation.controller import NavigationController, PathwayView

__all__ = [
    "SCREEN_REQUIREMENTS",
    "BACK_TARGETS",
    "GUARDED_BACK",
    "NAVIGABLE",
    "can_enter",
    "transition",
    "AutosaveCoordinator",
    "NavigationController",
    "PathwayView",
]
