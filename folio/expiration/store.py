"""Persistence for expiration tasks.

SqliteTaskStore is the durable backend: tasks survive process restarts and
can be shared by an HTTP process and a standalone worker process.
MemoryTaskStore keeps tasks in process memory only.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from uuid import UUID

from .errors import TaskStoreError
from .models import DUE_STATES, ExpirationTask, TaskState

logger = logging.getLogger(__name__)


class TaskStore(ABC):
    """Storage interface for expiration tasks."""

    @abstractmethod
    def save(self, task: ExpirationTask) -> None:
        """Insert or replace a task."""

    @abstractmethod
    def get(self, task_id: UUID) -> ExpirationTask | None:
        """Load a task by id."""

    @abstractmethod
    def list_tasks(self, states: tuple[TaskState, ...] | None = None) -> list[ExpirationTask]:
        """List tasks, optionally filtered by state, ordered by due time."""

    @abstractmethod
    def claim_due(self, now: datetime, limit: int) -> list[ExpirationTask]:
        """
        Atomically move up to ``limit`` due tasks to dispatching.

        A task is claimed by at most one caller.
        """

    @abstractmethod
    def recover(self, now: datetime, stale_before: datetime) -> int:
        """
        Repair tasks left behind by a crash.

        Scheduled tasks are armed against their original deadline;
        dispatching tasks last touched before ``stale_before`` are requeued.

        Returns:
            Number of tasks changed
        """


class MemoryTaskStore(TaskStore):
    """In-process task store. Tasks are lost when the process exits."""

    def __init__(self) -> None:
        self._tasks: dict[UUID, ExpirationTask] = {}
        self._lock = threading.Lock()

    def save(self, task: ExpirationTask) -> None:
        with self._lock:
            self._tasks[task.task_id] = task.model_copy(deep=True)

    def get(self, task_id: UUID) -> ExpirationTask | None:
        with self._lock:
            task = self._tasks.get(task_id)
            return task.model_copy(deep=True) if task else None

    def list_tasks(self, states: tuple[TaskState, ...] | None = None) -> list[ExpirationTask]:
        with self._lock:
            tasks = [
                t.model_copy(deep=True)
                for t in self._tasks.values()
                if states is None or t.state in states
            ]
        return sorted(tasks, key=lambda t: t.due_at)

    def claim_due(self, now: datetime, limit: int) -> list[ExpirationTask]:
        with self._lock:
            due = sorted(
                (t for t in self._tasks.values() if t.is_due(now)),
                key=lambda t: t.due_at,
            )[:limit]
            for task in due:
                task.dispatch(now)
            return [t.model_copy(deep=True) for t in due]

    def recover(self, now: datetime, stale_before: datetime) -> int:
        changed = 0
        with self._lock:
            for task in self._tasks.values():
                if _repair(task, now, stale_before):
                    changed += 1
        return changed


class SqliteTaskStore(TaskStore):
    """
    Durable task store backed by a sqlite database file.

    Opens one connection per operation so it can be used from worker
    threads. Claims run under BEGIN IMMEDIATE, which serializes claimers
    across processes sharing the file.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self._ensure_db_directory()
        self._init_db()

    def _ensure_db_directory(self) -> None:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise TaskStoreError(
                f"Failed to create task database directory {self.db_path.parent}: {e}"
            ) from e

    def _init_db(self) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS expiration_tasks (
                    task_id TEXT PRIMARY KEY,
                    state TEXT NOT NULL,
                    due_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    payload TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_expiration_tasks_state_due
                ON expiration_tasks (state, due_at)
                """
            )

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.db_path, timeout=30.0, isolation_level=None)
        except sqlite3.Error as e:
            raise TaskStoreError(f"Failed to open task database {self.db_path}: {e}") from e
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._get_connection() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
                yield conn
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise TaskStoreError(f"Task database error: {e}") from e
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise

    def save(self, task: ExpirationTask) -> None:
        with self._transaction() as conn:
            self._write(conn, task)

    def get(self, task_id: UUID) -> ExpirationTask | None:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT payload FROM expiration_tasks WHERE task_id = ?",
                (str(task_id),),
            ).fetchone()
        return ExpirationTask.model_validate_json(row[0]) if row else None

    def list_tasks(self, states: tuple[TaskState, ...] | None = None) -> list[ExpirationTask]:
        query = "SELECT payload FROM expiration_tasks"
        params: tuple[str, ...] = ()
        if states is not None:
            if not states:
                return []
            query += f" WHERE state IN ({_placeholders(states)})"
            params = tuple(s.value for s in states)
        query += " ORDER BY due_at"

        with self._transaction() as conn:
            rows = conn.execute(query, params).fetchall()
        return [ExpirationTask.model_validate_json(r[0]) for r in rows]

    def claim_due(self, now: datetime, limit: int) -> list[ExpirationTask]:
        with self._transaction() as conn:
            rows = conn.execute(
                f"""
                SELECT payload FROM expiration_tasks
                WHERE state IN ({_placeholders(DUE_STATES)}) AND due_at <= ?
                ORDER BY due_at
                LIMIT ?
                """,
                (*(s.value for s in DUE_STATES), now.timestamp(), limit),
            ).fetchall()

            claimed = []
            for row in rows:
                task = ExpirationTask.model_validate_json(row[0])
                task.dispatch(now)
                self._write(conn, task)
                claimed.append(task)
        return claimed

    def recover(self, now: datetime, stale_before: datetime) -> int:
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT payload FROM expiration_tasks
                WHERE state = ? OR (state = ? AND updated_at <= ?)
                """,
                (
                    TaskState.SCHEDULED.value,
                    TaskState.DISPATCHING.value,
                    stale_before.timestamp(),
                ),
            ).fetchall()

            changed = 0
            for row in rows:
                task = ExpirationTask.model_validate_json(row[0])
                if _repair(task, now, stale_before):
                    self._write(conn, task)
                    changed += 1
        return changed

    @staticmethod
    def _write(conn: sqlite3.Connection, task: ExpirationTask) -> None:
        conn.execute(
            """
            INSERT INTO expiration_tasks (task_id, state, due_at, updated_at, payload)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT (task_id) DO UPDATE SET
                state = excluded.state,
                due_at = excluded.due_at,
                updated_at = excluded.updated_at,
                payload = excluded.payload
            """,
            (
                str(task.task_id),
                task.state.value,
                task.due_at.timestamp(),
                task.updated_at.timestamp(),
                task.model_dump_json(),
            ),
        )


def _placeholders(values: tuple[object, ...]) -> str:
    return ", ".join("?" for _ in values)


def _repair(task: ExpirationTask, now: datetime, stale_before: datetime) -> bool:
    if task.state == TaskState.SCHEDULED:
        task.arm(now)
        logger.info(
            "Armed scheduled expiration task",
            extra={"task_id": str(task.task_id), "target": task.target},
        )
        return True
    if task.state == TaskState.DISPATCHING and task.updated_at <= stale_before:
        task.requeue(now)
        logger.warning(
            "Requeued orphaned expiration task",
            extra={"task_id": str(task.task_id), "target": task.target},
        )
        return True
    return False
