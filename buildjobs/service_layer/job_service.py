"""
Business logic for the job lifecycle.

This module contains the JobService class which creates jobs, routes them
to queues, moves them through their states and answers the queue queries
consumers poll.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from buildjobs.domain import (
    Build,
    Commit,
    Job,
    JobState,
    Reference,
    Repository,
)
from buildjobs.domain.job import UNFINISHED_EXCLUDED_STATES
from buildjobs.domain.matrix import matches
from buildjobs.queues import QueueSelector
from buildjobs.repository import JobRepository
from buildjobs.secure import ConfigProtector, KeyRing
from buildjobs.utils import utcNow

from . import events

LOG = logging.getLogger(__name__)

FINISH_STATES = (JobState.PASSED, JobState.FAILED, JobState.ERRORED)


class JobNotFoundError(ValueError):
    pass


class InvalidTransitionError(ValueError):
    pass


def allowFailures(buildConfig: Optional[Dict[str, Any]]) -> List[Any]:
    matrix = (buildConfig or {}).get("matrix")
    if not isinstance(matrix, dict):
        return []
    return list(matrix.get("allow_failures") or [])


class JobService:
    """
    Service for job lifecycle management.

    This class contains the business logic for jobs, including:
    - Creating jobs and assigning their queue
    - Claiming, starting, finishing and canceling jobs
    - Querying queued, queueable, running and unfinished jobs
    - Rendering a job's configuration for display or for a worker
    """

    def __init__(
        self,
        repo: JobRepository,
        selector: QueueSelector,
        bus: Optional[events.EventBus] = None,
        keys: Optional[KeyRing] = None,
    ):
        """
        Initialize service.

        Args:
            repo: Job repository for persistence
            selector: Routes new jobs to a queue
            bus: Receives lifecycle events (a private bus if not provided)
            keys: Repository key material for decrypting configs
        """
        self.repo = repo
        self.selector = selector
        self.bus = bus or events.EventBus()
        self.keys = keys or KeyRing(None)

    # pylint: disable-next=too-many-arguments
    def create_job(
        self,
        repository: Repository,
        commit: Commit,
        source: Reference,
        owner: Reference,
        config: Optional[Dict[str, Any]] = None,
        number: Optional[str] = None,
        state: Optional[JobState] = None,
        build_config: Optional[Dict[str, Any]] = None,
    ) -> Job:
        """
        Create a new job.

        The job is routed to its queue and stored together with its log
        before anything else can see it. Subscribers hear about it once the
        write has committed.

        Args:
            build_config: Config of the whole build, consulted for
                matrix.allow_failures

        Returns:
            The stored job
        """
        job = Job(
            repository=repository,
            commit=commit,
            source=source,
            owner=owner,
            config=config,
            number=number,
            state=state,
        )
        if job.state is None:
            job.state = JobState.CREATED
        job.queue = self.selector.select(job)
        job.allow_failure = any(
            matches(job, candidate) for candidate in allowFailures(build_config))

        self.repo.create(job)
        LOG.info("Created job %s on queue %s", job.id, job.queue)

        self.bus.publish(events.JOB_CREATED, job)
        return job

    def get(self, job_id: int) -> Job:
        job = self.repo.get(job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return job

    def queued(self, queue: Optional[str] = None) -> List[Job]:
        """Jobs waiting for or handed to a worker."""
        return self.repo.find_by_states(
            [JobState.CREATED, JobState.QUEUED], queue)

    def queueable(self, queue: Optional[str] = None) -> List[Job]:
        """Jobs that still need to be queued, oldest first."""
        return self.repo.find_by_states([JobState.CREATED], queue)

    def running(self, queue: Optional[str] = None) -> List[Job]:
        """Jobs already queued or started."""
        return self.repo.find_by_states(
            [JobState.QUEUED, JobState.STARTED], queue)

    def unfinished(self) -> List[Job]:
        return self.repo.find_excluding_states(UNFINISHED_EXCLUDED_STATES)

    def owned_by(self, owner: Reference) -> List[Job]:
        return self.repo.find_by_owner(owner)

    def jobs_for(self, source: Reference) -> List[Job]:
        return self.repo.find_by_source(source)

    def build_for(self, job: Job) -> Build:
        return Build(
            id=job.source.id,
            repository=job.repository,
            commit=job.commit,
            jobs=self.jobs_for(job.source),
        )

    def _transition(self, job: Job, target: JobState, event: str,
                    **timestamps) -> Optional[Job]:
        if not job.can_transition(target):
            raise InvalidTransitionError(
                f"Job {job.id} cannot go from {job.state.value} to {target.value}")
        if not self.repo.transition(job.id, job.state, target, **timestamps):
            LOG.info("Job %s was no longer %s, not moved to %s",
                     job.id, job.state.value, target.value)
            return None
        updated = self.get(job.id)
        LOG.info("Job %s is %s", job.id, target.value)
        self.bus.publish(event, updated)
        return updated

    def claim(self, queue: str) -> Optional[Job]:
        """
        Queue the oldest created job on `queue`.

        Consumers may race for the same job; the one whose conditional
        update lands gets it and the others move on to the next job.
        """
        for job in self.queueable(queue):
            claimed = self._transition(job, JobState.QUEUED, events.JOB_QUEUED)
            if claimed is not None:
                return claimed
        return None

    def start(self, job_id: int) -> Optional[Job]:
        return self._transition(
            self.get(job_id), JobState.STARTED, events.JOB_STARTED,
            started_at=utcNow())

    def finish(self, job_id: int, state: JobState) -> Optional[Job]:
        if state not in FINISH_STATES:
            raise InvalidTransitionError(
                f"{state.value} is not a result a job can finish with")
        return self._transition(
            self.get(job_id), state, events.JOB_FINISHED, finished_at=utcNow())

    def cancel(self, job_id: int) -> Optional[Job]:
        return self._transition(
            self.get(job_id), JobState.CANCELED, events.JOB_CANCELED,
            finished_at=utcNow())

    def _protector(self, job: Job) -> ConfigProtector:
        if job.pull_request:
            # no key for pull requests; secure entries are dropped
            return ConfigProtector(pullRequest=True)
        return ConfigProtector(
            pullRequest=False, key=self.keys.get(job.repository.slug))

    def obfuscated_config(self, job: Job) -> Dict[str, Any]:
        return self._protector(job).obfuscate(job.config)

    def decrypted_config(self, job: Job) -> Dict[str, Any]:
        return self._protector(job).decrypt(job.config)

    def close(self) -> None:
        self.bus.close()
        self.repo.close()
