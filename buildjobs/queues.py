"""
Queue routing for new jobs.

Every job is assigned exactly one queue when it is created. Plugins get the
first say, then the configured rules in file order, then the default queue.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Iterable, Optional, Tuple

from .domain import Job
from .plugins import Plugins

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueueRule:
    """Routes jobs to `queue` when every attribute that is set matches."""

    queue: str
    slug: Optional[str] = None
    owner: Optional[str] = None
    language: Optional[str] = None
    os: Optional[str] = None
    sponsor: Optional[str] = None

    @classmethod
    def fromConfig(cls, queue, attrs):
        return cls(queue=queue, **attrs)

    def _attributes(self, job: Job) -> Tuple[Tuple[Optional[str], object], ...]:
        return (
            (self.slug, job.repository.slug),
            (self.owner, job.repository.owner_name),
            (self.language, job.config.get("language")),
            (self.os, job.config.get("os")),
            (self.sponsor, job.config.get("sponsor")),
        )

    def matches(self, job: Job) -> bool:
        return all(
            expected == actual
            for expected, actual in self._attributes(job)
            if expected is not None)


class QueueSelector(object):
    def __init__(self, defaultQueue: str, rules: Iterable[QueueRule] = (),
                 plugins: Optional[Plugins] = None):
        self.defaultQueue = defaultQueue
        self.rules = list(rules)
        self.plugins = plugins

    @classmethod
    def fromConfig(cls, config, plugins=None):
        rules = [QueueRule.fromConfig(queue, attrs)
                 for queue, attrs in config.queueRules]
        return cls(config.defaultQueue, rules, plugins)

    def select(self, job: Job) -> str:
        if self.plugins is not None:
            queue = self.plugins.queueFor(job)
            if queue:
                LOG.debug("plugin routed job for %s to %s", job.repository.slug, queue)
                return queue
        for rule in self.rules:
            if rule.matches(job):
                LOG.debug("rule %r routed job for %s", rule, job.repository.slug)
                return rule.queue
        return self.defaultQueue
