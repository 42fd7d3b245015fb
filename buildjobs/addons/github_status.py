"""
Commit status updates on GitHub.

Sets the status of the commit a build runs against, so the build result
shows up on pull requests and branches. Delivery is best effort: a failed
update is logged and never affects the jobs themselves.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from buildjobs.domain import Build, Commit, Job, Repository

LOG = logging.getLogger(__name__)

STATES = {
    'created': 'pending',
    'queued': 'pending',
    'started': 'pending',
    'passed': 'success',
    'failed': 'failure',
    'errored': 'error',
    'canceled': 'error',
}

DESCRIPTIONS = {
    'pending': 'The Travis build is in progress',
    'success': 'The Travis build passed',
    'failure': 'The Travis build failed',
    'error': 'The Travis build could not complete due to an error',
}


class TransportError(Exception):
    pass


class GithubClient(object):
    def __init__(self, apiHost: str, session: Optional[requests.Session] = None,
                 timeout: float = 10.0):
        self.apiHost = apiHost.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout

    def post(self, path: str, payload: Dict[str, Any], token: Optional[str]) -> Any:
        headers = {
            'Accept': 'application/vnd.github+json',
            'Content-Type': 'application/json; charset=UTF-8',
        }
        if token:
            headers['Authorization'] = 'token {}'.format(token)
        try:
            ret = self._session.post(
                self.apiHost + path, json=payload, headers=headers,
                timeout=self._timeout)
            ret.raise_for_status()
        except requests.RequestException as error:
            raise TransportError(str(error)) from error
        return ret


def statusSha(commit: Commit) -> str:
    if commit.pull_request and commit.head_commit:
        return commit.head_commit
    return commit.sha


def statusPath(repository: Repository, commit: Commit) -> str:
    return "/repos/{}/statuses/{}".format(repository.slug, statusSha(commit))


class StatusNotifier(object):
    def __init__(self, httpHost: str, client: GithubClient,
                 token: Optional[str] = None, builds=None):
        """
        Args:
            httpHost: Public web host target URLs point at
            client: Transport for the status API
            token: Default token when notify() is not given one
            builds: Callable mapping a Job to its Build; needed when the
                notifier is subscribed to an EventBus
        """
        self.httpHost = httpHost.rstrip("/")
        self.client = client
        self.token = token
        self._builds = builds

    @classmethod
    def fromConfig(cls, config, builds=None, session=None):
        return cls(
            config.httpHost,
            GithubClient(config.githubApiHost, session=session),
            token=config.githubToken,
            builds=builds)

    def targetUrl(self, build: Build) -> str:
        return "{}/{}/builds/{}".format(
            self.httpHost, build.repository.slug, build.id)

    def payload(self, build: Build) -> Dict[str, str]:
        state = STATES[build.state.value]
        return {
            'state': state,
            'description': DESCRIPTIONS[state],
            'target_url': self.targetUrl(build),
        }

    def notify(self, build: Build, token: Optional[str] = None) -> bool:
        path = statusPath(build.repository, build.commit)
        payload = self.payload(build)
        LOG.info("Update commit status on %s to %s", path, payload['state'])
        try:
            self.client.post(path, payload, token or self.token)
        except TransportError as error:
            LOG.error("Could not update the PR status on %s%s (%s).",
                      self.client.apiHost, path, error)
            return False
        return True

    def snapshot(self, event: str, job: Job) -> Build:
        assert self._builds is not None, "subscribing requires a build lookup"
        LOG.debug("%s for job %s, updating build status", event, job.id)
        return self._builds(job)

    def onBuild(self, event: str, build: Build) -> None:
        self.notify(build)

    def subscribeTo(self, bus) -> None:
        """
        Post a status for every event on `bus`.

        The Build is read while the event is published, so asynchronous
        delivery reports the state the build had at that moment and never
        touches the repository from the worker thread.
        """
        bus.subscribe(self.onBuild, prepare=self.snapshot)
