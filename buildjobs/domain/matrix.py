"""
Build matrix membership.

A build expands its configuration into one job per combination of the
matrix axes. `matches` answers whether a candidate configuration (for
example an `allow_failures` entry) describes the cell a job runs.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, List, Optional

from ..utils import deepStringifyKeys
from .job import Job

MATRIX_KEYS = (
    "rvm",
    "gemfile",
    "env",
    "otp_release",
    "php",
    "node_js",
    "scala",
    "jdk",
    "python",
    "perl",
    "compiler",
    "go",
    "xcode_sdk",
    "xcode_scheme",
    "ghc",
    "ruby",
    "os",
    "dist",
    "branch",
)


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def matrix_keys_for(config: Mapping) -> List[str]:
    return [key for key in MATRIX_KEYS if key in config]


def _env_matches(job: Job, candidate_env: Any) -> bool:
    job_env = _as_list(job.config.get("env"))
    candidate_env = _as_list(candidate_env)
    global_env = _as_list(job.config["global_env"])
    matrix_env = [entry for entry in job_env if entry not in global_env]
    # The job's own config carries the merged env; let it match itself.
    return matrix_env == candidate_env or job_env == candidate_env


def _key_matches(job: Job, key: str, value: Any) -> bool:
    if key == "env" and job.config.get("global_env"):
        return _env_matches(job, value)
    return job.config.get(key) == value or job.commit.branch == value


def matches(job: Job, candidate: Any) -> Optional[bool]:
    """
    Return whether `candidate` selects the matrix cell `job` runs.

    Every matrix key present in the candidate must agree with the job's
    config, or equal the job's branch. Returns None when the candidate
    names no matrix keys and False when it is not a mapping at all.
    """
    if not isinstance(candidate, Mapping):
        return False
    candidate = deepStringifyKeys(candidate)
    keys = matrix_keys_for(candidate)
    if not keys:
        return None
    return all(_key_matches(job, key, candidate[key]) for key in keys)
