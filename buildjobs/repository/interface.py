"""
Repository interface for job persistence.

This module defines the abstract interface that all repository
implementations must follow.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional

from buildjobs.domain import Job, JobState, Reference


class JobRepository(ABC):
    """
    Abstract repository for job persistence.

    Implementations must order every query by creation sequence and apply
    state transitions atomically, so that two consumers can never both
    move the same job out of a given state.
    """

    @abstractmethod
    def create(self, job: Job) -> Job:
        """
        Store a new job together with its empty log.

        Both records become visible at the same time; a reader never sees
        the job without its log.

        Args:
            job: The job to store (its id must be None)

        Returns:
            The job with its id assigned
        """

    @abstractmethod
    def get(self, job_id: int) -> Optional[Job]:
        """
        Get a job by id.

        Returns:
            The job if found, None otherwise
        """

    @abstractmethod
    def find_by_states(
        self,
        states: Iterable[JobState],
        queue: Optional[str] = None,
    ) -> List[Job]:
        """
        Find jobs in any of `states`, optionally limited to one queue.

        Returns:
            Matching jobs in creation order
        """

    @abstractmethod
    def find_excluding_states(self, states: Iterable[str]) -> List[Job]:
        """
        Find jobs whose stored state is none of `states`.

        `states` are raw stored values so that legacy values outside of
        JobState can be named.
        """

    @abstractmethod
    def find_by_owner(self, owner: Reference) -> List[Job]:
        """Jobs billed to `owner`, in creation order."""

    @abstractmethod
    def find_by_source(self, source: Reference) -> List[Job]:
        """Jobs requested by `source`, in creation order."""

    @abstractmethod
    def transition(
        self,
        job_id: int,
        expected: JobState,
        target: JobState,
        started_at: Optional[datetime] = None,
        finished_at: Optional[datetime] = None,
    ) -> bool:
        """
        Move a job from `expected` to `target` if it is still in `expected`.

        Timestamps that are given are written in the same update.

        Returns:
            True if the job changed state, False if another writer got there
            first or the job does not exist
        """

    @abstractmethod
    def get_log(self, job_id: int) -> Optional[str]:
        """Return the job's log content, None if the job has no log."""

    @abstractmethod
    def close(self) -> None:
        """Close repository and release resources."""
