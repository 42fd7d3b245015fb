"""
SQLite implementation of the job repository.

This module provides a concrete implementation of JobRepository using
SQLite. Job ids come from an AUTOINCREMENT column, so ordering by id is
ordering by creation.
"""

from __future__ import annotations

import logging
import os
import sqlite3
from typing import Iterable, List, Optional

import simplejson as json

from buildjobs.domain import Commit, Job, JobState, Reference, Repository
from buildjobs.utils import dateTimeFromJson, dateTimeToJson

from .interface import JobRepository

LOG = logging.getLogger(__name__)

SCHEMA_VERSION = "1"


class SqliteJobRepository(JobRepository):
    """SQLite-based job repository."""

    def __init__(self, db_path: str):
        """
        Initialize repository.

        Args:
            db_path: Path to SQLite database file, or ":memory:"
        """
        self.db_path = db_path
        self._ensure_db_dir()
        self._conn: Optional[sqlite3.Connection] = None
        self._init_schema()

    def _ensure_db_dir(self):
        """Create database directory if it doesn't exist."""
        db_dir = os.path.dirname(self.db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection, creating if needed."""
        if self._conn is None:
            self._conn = sqlite3.connect(self.db_path)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_schema(self):
        """Create database schema if it doesn't exist."""
        conn = self._get_conn()
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS jobs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                repository_id INTEGER NOT NULL,
                repository_slug TEXT NOT NULL,
                commit_json TEXT NOT NULL,
                source_type TEXT NOT NULL,
                source_id INTEGER NOT NULL,
                owner_type TEXT NOT NULL,
                owner_id INTEGER NOT NULL,
                number TEXT,
                state TEXT NOT NULL,
                queue TEXT NOT NULL,
                config_json TEXT NOT NULL,
                allow_failure INTEGER DEFAULT 0,
                created_at TEXT NOT NULL,
                started_at TEXT,
                finished_at TEXT
            )
        """)
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_jobs_state_queue "
            "ON jobs(state, queue)")
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_jobs_source "
            "ON jobs(source_type, source_id)")
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_jobs_owner "
            "ON jobs(owner_type, owner_id)")

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                job_id INTEGER NOT NULL UNIQUE REFERENCES jobs(id),
                content TEXT NOT NULL DEFAULT ''
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS metadata (
                key TEXT PRIMARY KEY,
                value TEXT
            )
        """)
        cursor.execute(
            "INSERT OR IGNORE INTO metadata (key, value) VALUES (?, ?)",
            ("schema_version", SCHEMA_VERSION))

        conn.commit()

    def _job_to_row(self, job: Job) -> tuple:
        """Convert Job to the tuple inserted into the jobs table."""
        return (
            job.repository.id,
            job.repository.slug,
            json.dumps({
                "sha": job.commit.sha,
                "branch": job.commit.branch,
                "head_commit": job.commit.head_commit,
                "pull_request": job.commit.pull_request,
            }),
            job.source.type,
            job.source.id,
            job.owner.type,
            job.owner.id,
            job.number,
            job.state.value,
            job.queue,
            json.dumps(job.config),
            int(job.allow_failure),
            dateTimeToJson(job.created_at),
            dateTimeToJson(job.started_at),
            dateTimeToJson(job.finished_at),
        )

    def _row_to_job(self, row: sqlite3.Row) -> Job:
        """Convert database row to Job object."""
        commit = json.loads(row["commit_json"])
        return Job(
            id=row["id"],
            repository=Repository(row["repository_id"], row["repository_slug"]),
            commit=Commit(
                sha=commit["sha"],
                branch=commit.get("branch"),
                head_commit=commit.get("head_commit"),
                pull_request=bool(commit.get("pull_request")),
            ),
            source=Reference(row["source_type"], row["source_id"]),
            owner=Reference(row["owner_type"], row["owner_id"]),
            number=row["number"],
            state=JobState(row["state"]),
            queue=row["queue"],
            config=json.loads(row["config_json"]),
            allow_failure=bool(row["allow_failure"]),
            created_at=dateTimeFromJson(row["created_at"]),
            started_at=dateTimeFromJson(row["started_at"]),
            finished_at=dateTimeFromJson(row["finished_at"]),
        )

    def _select(self, where: str, params: Iterable) -> List[Job]:
        cursor = self._get_conn().cursor()
        cursor.execute(
            "SELECT * FROM jobs WHERE " + where + " ORDER BY id", list(params))
        return [self._row_to_job(row) for row in cursor.fetchall()]

    def create(self, job: Job) -> Job:
        """Insert the job and its log in one transaction."""
        assert job.id is None, "job %s already stored" % job.id
        conn = self._get_conn()
        with conn:
            cursor = conn.execute("""
                INSERT INTO jobs (
                    repository_id, repository_slug, commit_json,
                    source_type, source_id, owner_type, owner_id, number,
                    state, queue, config_json, allow_failure,
                    created_at, started_at, finished_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, self._job_to_row(job))
            job.id = cursor.lastrowid
            conn.execute("INSERT INTO logs (job_id) VALUES (?)", (job.id,))
        return job

    def get(self, job_id: int) -> Optional[Job]:
        jobs = self._select("id = ?", [job_id])
        return jobs[0] if jobs else None

    def find_by_states(
        self,
        states: Iterable[JobState],
        queue: Optional[str] = None,
    ) -> List[Job]:
        values = [state.value for state in states]
        where = "state IN ({})".format(", ".join("?" * len(values)))
        if queue is not None:
            where += " AND queue = ?"
            values.append(queue)
        return self._select(where, values)

    def find_excluding_states(self, states: Iterable[str]) -> List[Job]:
        values = list(states)
        where = "state NOT IN ({})".format(", ".join("?" * len(values)))
        return self._select(where, values)

    def find_by_owner(self, owner: Reference) -> List[Job]:
        return self._select(
            "owner_type = ? AND owner_id = ?", [owner.type, owner.id])

    def find_by_source(self, source: Reference) -> List[Job]:
        return self._select(
            "source_type = ? AND source_id = ?", [source.type, source.id])

    def transition(self, job_id, expected, target,
                   started_at=None, finished_at=None) -> bool:
        sets = ["state = ?"]
        params = [target.value]
        if started_at is not None:
            sets.append("started_at = ?")
            params.append(dateTimeToJson(started_at))
        if finished_at is not None:
            sets.append("finished_at = ?")
            params.append(dateTimeToJson(finished_at))
        params.extend([job_id, expected.value])

        conn = self._get_conn()
        with conn:
            cursor = conn.execute(
                "UPDATE jobs SET " + ", ".join(sets)
                + " WHERE id = ? AND state = ?", params)
        changed = cursor.rowcount == 1
        if not changed:
            LOG.debug("transition of job %s from %s to %s rejected",
                      job_id, expected.value, target.value)
        return changed

    def get_log(self, job_id: int) -> Optional[str]:
        cursor = self._get_conn().cursor()
        cursor.execute("SELECT content FROM logs WHERE job_id = ?", (job_id,))
        row = cursor.fetchone()
        return row["content"] if row else None

    def close(self) -> None:
        """Close database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
