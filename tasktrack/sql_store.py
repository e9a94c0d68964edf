import logging
from typing import Any, Mapping, Optional

from sqlalchemy.exc import IntegrityError

from . import entities, models
from .auth import new_token, session_expiry
from .db import Base, make_engine, make_session_factory
from .entities import utcnow
from .errors import ConflictError, NotFoundError
from .store import PATCHABLE_FIELDS, Store

logger = logging.getLogger(__name__)


def _user(row: models.User) -> entities.User:
    return entities.User(id=row.id, username=row.username, email=row.email, password_hash=row.password_hash)


def _session(row: models.Session) -> entities.Session:
    return entities.Session(token=row.token, user_id=row.user_id, expires_at=row.expires_at)


def _task(row: models.Task) -> entities.Task:
    return entities.Task(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        description=row.description,
        completed=row.completed,
        created_at=row.created_at,
    )


class SqlStore(Store):
    """SQLAlchemy-backed store. Each operation runs in its own DB session."""

    def __init__(self, database_url: str, session_days: int = 7) -> None:
        self.session_days = session_days
        self.engine = make_engine(database_url)
        Base.metadata.create_all(bind=self.engine)
        self._db = make_session_factory(self.engine)
        logger.info("SqlStore ready url=%s users=%s", self.engine.url, self.count_users())

    def close(self) -> None:
        self.engine.dispose()

    # ---- users ----

    def create_user(self, username: str, email: str, password_hash: str) -> entities.User:
        with self._db() as db:
            if db.query(models.User).filter(models.User.email == email).first():
                raise ConflictError("Email already registered")
            row = models.User(username=username, email=email, password_hash=password_hash)
            db.add(row)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise ConflictError("Email already registered")
            return _user(row)

    def get_user(self, user_id: int) -> Optional[entities.User]:
        with self._db() as db:
            row = db.get(models.User, user_id)
            return _user(row) if row else None

    def find_user_by_email(self, email: str) -> Optional[entities.User]:
        with self._db() as db:
            row = db.query(models.User).filter(models.User.email == email).first()
            return _user(row) if row else None

    def count_users(self) -> int:
        with self._db() as db:
            return db.query(models.User).count()

    # ---- sessions ----

    def create_session(self, user_id: int) -> entities.Session:
        with self._db() as db:
            db.query(models.Session).filter(models.Session.expires_at <= utcnow()).delete()
            row = models.Session(user_id=user_id, token=new_token(), expires_at=session_expiry(self.session_days))
            db.add(row)
            db.commit()
            return _session(row)

    def get_session(self, token: str) -> Optional[entities.Session]:
        with self._db() as db:
            row = db.query(models.Session).filter(models.Session.token == token).first()
            if row is None:
                return None
            if row.expires_at <= utcnow():
                db.delete(row)
                db.commit()
                return None
            return _session(row)

    def delete_session(self, token: str) -> None:
        with self._db() as db:
            db.query(models.Session).filter(models.Session.token == token).delete()
            db.commit()

    def count_sessions(self) -> int:
        with self._db() as db:
            return db.query(models.Session).count()

    # ---- tasks ----

    def list_tasks_for_user(self, user_id: int, status: Optional[str] = None) -> list[entities.Task]:
        with self._db() as db:
            query = db.query(models.Task).filter(models.Task.user_id == user_id)
            if status == "completed":
                query = query.filter(models.Task.completed.is_(True))
            elif status == "pending":
                query = query.filter(models.Task.completed.is_(False))
            return [_task(row) for row in query.order_by(models.Task.id).all()]

    def create_task(self, user_id: int, title: str, description: str = "") -> entities.Task:
        with self._db() as db:
            row = models.Task(
                user_id=user_id,
                title=title,
                description=description,
                completed=False,
                created_at=utcnow(),
            )
            db.add(row)
            db.commit()
            return _task(row)

    def _owned(self, db, user_id: int, task_id: int) -> models.Task:
        row = (
            db.query(models.Task)
            .filter(models.Task.id == task_id, models.Task.user_id == user_id)
            .first()
        )
        if row is None:
            raise NotFoundError("Task not found")
        return row

    def update_task(self, user_id: int, task_id: int, patch: Mapping[str, Any]) -> entities.Task:
        with self._db() as db:
            row = self._owned(db, user_id, task_id)
            for field in PATCHABLE_FIELDS:
                if field in patch:
                    setattr(row, field, patch[field])
            db.commit()
            return _task(row)

    def delete_task(self, user_id: int, task_id: int) -> None:
        with self._db() as db:
            db.delete(self._owned(db, user_id, task_id))
            db.commit()

    def count_tasks(self) -> int:
        with self._db() as db:
            return db.query(models.Task).count()
