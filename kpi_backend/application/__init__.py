"""Application services."""

from .tracker import TrackerService, get_tracker_service, reset_tracker_state

__all__ = [
    "TrackerService",
    "get_tracker_service",
    "reset_tracker_state",
]
