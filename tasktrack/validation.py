"""Input rules applied before anything reaches the store."""

import re
from typing import Any, Optional

from .errors import NotFoundError, ValidationError
from .schemas import RegisterIn, TaskIn, TaskPatch
from .store import STATUS_FILTERS

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
TITLE_MAX = 100
DESCRIPTION_MAX = 500
# ids are stored as signed 64-bit integers
TASK_ID_MAX = 2**63 - 1


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def is_valid_password(password: Optional[str], min_length: int = 6) -> bool:
    if not password:
        return False
    return len(password.strip()) >= min_length


def clean_registration(payload: RegisterIn, min_password_length: int) -> tuple[str, str, str]:
    username = (payload.username or "").strip()
    email = (payload.email or "").strip()
    password = payload.password or ""
    if not username or not email or not password:
        raise ValidationError("Username, email and password are required")
    if not is_valid_email(email):
        raise ValidationError("Invalid email address")
    if not is_valid_password(password, min_password_length):
        raise ValidationError(f"Password must be at least {min_password_length} characters")
    return username, email, password


def clean_title(title: Optional[str]) -> str:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Title is required")
    if len(title) > TITLE_MAX:
        raise ValidationError(f"Title must be at most {TITLE_MAX} characters")
    return title


def clean_description(description: Optional[str]) -> str:
    description = (description or "").strip()
    if len(description) > DESCRIPTION_MAX:
        raise ValidationError(f"Description must be at most {DESCRIPTION_MAX} characters")
    return description


def clean_new_task(payload: TaskIn) -> tuple[str, str]:
    return clean_title(payload.title), clean_description(payload.description)


def clean_patch(payload: TaskPatch) -> dict[str, Any]:
    sent = payload.model_dump(exclude_unset=True)
    patch: dict[str, Any] = {}
    if "title" in sent:
        patch["title"] = clean_title(sent["title"])
    if "description" in sent:
        patch["description"] = clean_description(sent["description"])
    if "completed" in sent:
        if sent["completed"] is None:
            raise ValidationError("Completed must be true or false")
        patch["completed"] = sent["completed"]
    return patch


def parse_task_id(raw: str) -> int:
    # an id that is not a number can never match a task
    try:
        task_id = int(raw)
    except ValueError:
        raise NotFoundError("Task not found")
    if not 1 <= task_id <= TASK_ID_MAX:
        raise NotFoundError("Task not found")
    return task_id


def parse_status(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    status = raw.strip().lower()
    if status not in STATUS_FILTERS:
        raise ValidationError(f"Status must be one of: {', '.join(STATUS_FILTERS)}")
    return None if status == "all" else status
