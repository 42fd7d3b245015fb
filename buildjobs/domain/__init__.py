"""
Domain models for buildjobs.

This package contains pure domain logic with no database coupling.
"""

from .job import (
    TERMINAL_STATES,
    Build,
    Commit,
    Job,
    JobState,
    Reference,
    Repository,
    can_transition,
)

__all__ = [
    "TERMINAL_STATES",
    "Build",
    "Commit",
    "Job",
    "JobState",
    "Reference",
    "Repository",
    "can_transition",
]
