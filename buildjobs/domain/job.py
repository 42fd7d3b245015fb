"""
Pure domain model for build jobs.

This module contains the Job dataclass and the state machine it moves
through. It has no coupling to the database layer; persistence is
handled by the repository layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from ..utils import deepStringifyKeys, utcNow


class JobState(Enum):
    """Job lifecycle states."""

    CREATED = "created"
    QUEUED = "queued"
    STARTED = "started"
    PASSED = "passed"
    FAILED = "failed"
    ERRORED = "errored"
    CANCELED = "canceled"

    @property
    def terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES: FrozenSet[JobState] = frozenset({
    JobState.PASSED,
    JobState.FAILED,
    JobState.ERRORED,
    JobState.CANCELED,
})

# Older records may carry "finished" as an umbrella terminal state. It is
# not part of JobState, but the unfinished query still excludes it.
LEGACY_FINISHED = "finished"
UNFINISHED_EXCLUDED_STATES = (LEGACY_FINISHED,) + tuple(
    sorted(state.value for state in TERMINAL_STATES))

TRANSITIONS: Dict[JobState, FrozenSet[JobState]] = {
    JobState.CREATED: frozenset({JobState.QUEUED, JobState.CANCELED}),
    JobState.QUEUED: frozenset({JobState.STARTED, JobState.CANCELED}),
    JobState.STARTED: frozenset({
        JobState.PASSED,
        JobState.FAILED,
        JobState.ERRORED,
        JobState.CANCELED,
    }),
}


def can_transition(current: JobState, target: JobState) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


@dataclass(frozen=True)
class Reference:
    """
    Typed reference to an entity owned elsewhere.

    Jobs point at whatever requested them (a Build) and whatever account
    is billed for them (a User or Organization) through these.
    """

    type: str
    id: int

    def __str__(self) -> str:
        return f"{self.type}#{self.id}"


@dataclass(frozen=True)
class Repository:
    id: int
    slug: str

    @property
    def owner_name(self) -> str:
        return self.slug.split("/", 1)[0]


@dataclass(frozen=True)
class Commit:
    sha: str
    branch: Optional[str] = None
    head_commit: Optional[str] = None
    pull_request: bool = False


@dataclass
class Job:  # pylint: disable=too-many-instance-attributes
    """
    Pure domain model representing one cell of a build matrix.

    `id` is assigned by the repository when the job is first saved and
    reflects creation order.
    """

    repository: Repository
    commit: Commit
    source: Reference
    owner: Reference
    config: Dict[str, Any] = field(default_factory=dict)

    id: Optional[int] = None
    number: Optional[str] = None
    state: Optional[JobState] = None
    queue: Optional[str] = None
    allow_failure: bool = False

    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def __setattr__(self, name, value):
        if name == "config":
            value = deepStringifyKeys(value) if value else {}
        object.__setattr__(self, name, value)

    def __post_init__(self):
        if self.created_at is None:
            self.created_at = utcNow()

    @property
    def pull_request(self) -> bool:
        return self.commit.pull_request

    @property
    def duration(self) -> Optional[float]:
        """Seconds between start and finish, None unless both are known."""
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    def is_finished(self) -> bool:
        return self.state is not None and self.state.terminal

    def can_transition(self, target: JobState) -> bool:
        return self.state is not None and can_transition(self.state, target)

    def __str__(self) -> str:
        state = self.state.value if self.state else "new"
        return f"[{self.id}] {self.repository.slug} {self.number or ''} {state}"


@dataclass
class Build:
    """
    Read model for the jobs one build request spawned.

    The state is derived from the jobs and never stored.
    """

    id: int
    repository: Repository
    commit: Commit
    jobs: List[Job] = field(default_factory=list)

    @property
    def state(self) -> JobState:
        states = [job.state for job in self.jobs]
        if not all(state is not None and state.terminal for state in states):
            if JobState.STARTED in states:
                return JobState.STARTED
            if JobState.QUEUED in states:
                return JobState.QUEUED
            return JobState.CREATED

        required = [job.state for job in self.jobs if not job.allow_failure]
        for state in (JobState.CANCELED, JobState.ERRORED, JobState.FAILED):
            if state in required:
                return state
        return JobState.PASSED

