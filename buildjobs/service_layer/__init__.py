"""
Service layer for business logic.

This package contains the service layer which implements business
logic and orchestrates between the domain and repository layers.
"""

from .events import EventBus
from .job_service import InvalidTransitionError, JobNotFoundError, JobService

__all__ = ["EventBus", "InvalidTransitionError", "JobNotFoundError", "JobService"]
