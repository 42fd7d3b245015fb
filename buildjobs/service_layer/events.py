"""
Delivery of job lifecycle events to subscribers.

Subscribers are callables taking `(event, job)`. Without an executor the
bus calls them inline. With one, every event is handed to a single worker
thread, so subscribers observe events in the order they were published.

A subscriber may be registered with a `prepare(event, job)` callable. It
always runs on the publishing thread, and its result is what the
subscriber receives in place of the job. Asynchronous subscribers use it
to snapshot state that is only reachable from the publisher, such as the
repository's sqlite connection.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
import logging
from typing import Any, Callable, List, Optional, Tuple

from buildjobs.domain import Job

LOG = logging.getLogger(__name__)

JOB_CREATED = "job:created"
JOB_QUEUED = "job:queued"
JOB_STARTED = "job:started"
JOB_FINISHED = "job:finished"
JOB_CANCELED = "job:canceled"

Subscriber = Callable[[str, Any], None]
Prepare = Callable[[str, Job], Any]


def _logFailure(event: str, job: Job) -> Callable[[Future], None]:
    def callback(future: Future) -> None:
        error = future.exception()
        if error is not None:
            LOG.error("subscriber failed handling %s for job %s: %r",
                      event, job.id, error)
    return callback


class EventBus(object):
    def __init__(self, asynchronous: bool = False):
        self._subscribers: List[Tuple[Subscriber, Optional[Prepare]]] = []
        self._executor: Optional[ThreadPoolExecutor] = None
        if asynchronous:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="buildjobs-events")

    def subscribe(self, subscriber: Subscriber,
                  prepare: Optional[Prepare] = None) -> None:
        self._subscribers.append((subscriber, prepare))

    def _prepare(self, event: str, job: Job) -> List[Tuple[Subscriber, Any]]:
        deliveries = []
        for subscriber, prepare in list(self._subscribers):
            if prepare is None:
                deliveries.append((subscriber, job))
                continue
            try:
                deliveries.append((subscriber, prepare(event, job)))
            except Exception as error:  # pylint: disable=broad-except
                if self._executor is None:
                    raise
                LOG.error("subscriber failed preparing %s for job %s: %r",
                          event, job.id, error)
        return deliveries

    @staticmethod
    def _deliver(event: str, deliveries: List[Tuple[Subscriber, Any]]) -> None:
        for subscriber, arg in deliveries:
            subscriber(event, arg)

    def publish(self, event: str, job: Job) -> None:
        LOG.debug("publish %s for job %s", event, job.id)
        deliveries = self._prepare(event, job)
        if self._executor is None:
            self._deliver(event, deliveries)
            return
        future = self._executor.submit(self._deliver, event, deliveries)
        future.add_done_callback(_logFailure(event, job))

    def close(self) -> None:
        """Wait for queued events to be delivered."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
