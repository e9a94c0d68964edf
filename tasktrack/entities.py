import datetime
from dataclasses import dataclass


def utcnow() -> datetime.datetime:
    """Naive UTC timestamp, the form every backend stores."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def isoformat(value: datetime.datetime) -> str:
    return value.isoformat(timespec="milliseconds") + "Z"


@dataclass(slots=True, frozen=True)
class User:
    id: int
    username: str
    email: str
    password_hash: str

    def public(self) -> dict:
        return {"id": self.id, "username": self.username, "email": self.email}


@dataclass(slots=True, frozen=True)
class Session:
    token: str
    user_id: int
    expires_at: datetime.datetime

    def is_expired(self, now: datetime.datetime | None = None) -> bool:
        return self.expires_at <= (now or utcnow())


@dataclass(slots=True, frozen=True)
class Task:
    id: int
    user_id: int
    title: str
    description: str
    completed: bool
    created_at: datetime.datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "createdAt": isoformat(self.created_at),
        }
