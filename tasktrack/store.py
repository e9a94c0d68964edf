"""
Store interface and the in-memory backend.

The request handlers only ever talk to a Store; the backend (in-memory or
SQLAlchemy) is picked from the configured database URL by build_store().
"""

import abc
import dataclasses
import itertools
import logging
import threading
from typing import Any, Mapping, Optional

from .auth import new_token, session_expiry, verify_password
from .entities import Session, Task, User, utcnow
from .errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

PATCHABLE_FIELDS = ("title", "description", "completed")
STATUS_FILTERS = ("all", "completed", "pending")


def _matches_status(task: Task, status: Optional[str]) -> bool:
    if status == "completed":
        return task.completed
    if status == "pending":
        return not task.completed
    return True


class Store(abc.ABC):
    session_days = 7

    # ---- users ----

    @abc.abstractmethod
    def create_user(self, username: str, email: str, password_hash: str) -> User:
        """Raises ConflictError if the email is already registered."""

    @abc.abstractmethod
    def get_user(self, user_id: int) -> Optional[User]: ...

    @abc.abstractmethod
    def find_user_by_email(self, email: str) -> Optional[User]: ...

    @abc.abstractmethod
    def count_users(self) -> int: ...

    def find_user_by_credentials(self, email: str, password: str) -> Optional[User]:
        user = self.find_user_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            return None
        return user

    # ---- sessions ----

    @abc.abstractmethod
    def create_session(self, user_id: int) -> Session: ...

    @abc.abstractmethod
    def get_session(self, token: str) -> Optional[Session]:
        """Live session for the token; expired ones are purged and read as None."""

    @abc.abstractmethod
    def delete_session(self, token: str) -> None: ...

    @abc.abstractmethod
    def count_sessions(self) -> int:
        """Stored sessions, expired ones not yet purged included."""

    # ---- tasks ----

    @abc.abstractmethod
    def list_tasks_for_user(self, user_id: int, status: Optional[str] = None) -> list[Task]: ...

    @abc.abstractmethod
    def create_task(self, user_id: int, title: str, description: str = "") -> Task: ...

    @abc.abstractmethod
    def update_task(self, user_id: int, task_id: int, patch: Mapping[str, Any]) -> Task:
        """Apply the given fields only; NotFoundError unless user_id owns task_id."""

    @abc.abstractmethod
    def delete_task(self, user_id: int, task_id: int) -> None: ...

    @abc.abstractmethod
    def count_tasks(self) -> int: ...

    def close(self) -> None:
        return


class MemoryStore(Store):
    """Process-local store. One lock serializes every operation."""

    def __init__(self, session_days: int = 7) -> None:
        self.session_days = session_days
        self._lock = threading.Lock()
        self._users: dict[int, User] = {}
        self._emails: dict[str, int] = {}
        self._sessions: dict[str, Session] = {}
        self._tasks: dict[int, Task] = {}
        self._user_ids = itertools.count(1)
        self._task_ids = itertools.count(1)
        logger.info("MemoryStore ready session_days=%s", session_days)

    def create_user(self, username: str, email: str, password_hash: str) -> User:
        with self._lock:
            if email in self._emails:
                raise ConflictError("Email already registered")
            user = User(
                id=next(self._user_ids),
                username=username,
                email=email,
                password_hash=password_hash,
            )
            self._users[user.id] = user
            self._emails[email] = user.id
            return user

    def get_user(self, user_id: int) -> Optional[User]:
        with self._lock:
            return self._users.get(user_id)

    def find_user_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            user_id = self._emails.get(email)
            return None if user_id is None else self._users[user_id]

    def count_users(self) -> int:
        with self._lock:
            return len(self._users)

    def create_session(self, user_id: int) -> Session:
        session = Session(token=new_token(), user_id=user_id, expires_at=session_expiry(self.session_days))
        with self._lock:
            now = utcnow()
            for token in [t for t, s in self._sessions.items() if s.is_expired(now)]:
                del self._sessions[token]
            self._sessions[session.token] = session
        return session

    def count_sessions(self) -> int:
        with self._lock:
            return len(self._sessions)

    def get_session(self, token: str) -> Optional[Session]:
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            if session.is_expired():
                del self._sessions[token]
                return None
            return session

    def delete_session(self, token: str) -> None:
        with self._lock:
            self._sessions.pop(token, None)

    def list_tasks_for_user(self, user_id: int, status: Optional[str] = None) -> list[Task]:
        with self._lock:
            return [
                t for t in self._tasks.values()
                if t.user_id == user_id and _matches_status(t, status)
            ]

    def create_task(self, user_id: int, title: str, description: str = "") -> Task:
        with self._lock:
            task = Task(
                id=next(self._task_ids),
                user_id=user_id,
                title=title,
                description=description,
                completed=False,
                created_at=utcnow(),
            )
            self._tasks[task.id] = task
            return task

    def _owned(self, user_id: int, task_id: int) -> Task:
        task = self._tasks.get(task_id)
        if task is None or task.user_id != user_id:
            raise NotFoundError("Task not found")
        return task

    def update_task(self, user_id: int, task_id: int, patch: Mapping[str, Any]) -> Task:
        changes = {k: patch[k] for k in PATCHABLE_FIELDS if k in patch}
        with self._lock:
            task = dataclasses.replace(self._owned(user_id, task_id), **changes)
            self._tasks[task_id] = task
            return task

    def delete_task(self, user_id: int, task_id: int) -> None:
        with self._lock:
            self._owned(user_id, task_id)
            del self._tasks[task_id]

    def count_tasks(self) -> int:
        with self._lock:
            return len(self._tasks)


def build_store(settings) -> Store:
    if settings.uses_memory_store:
        return MemoryStore(session_days=settings.session_days)
    from .sql_store import SqlStore

    return SqlStore(settings.database_url, session_days=settings.session_days)
