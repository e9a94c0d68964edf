from typing import Optional
from pydantic import BaseModel, StrictBool


class RegisterIn(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginIn(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class TaskIn(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None


class TaskPatch(BaseModel):
    """Only the fields the client actually sent are applied."""

    title: Optional[str] = None
    description: Optional[str] = None
    completed: Optional[StrictBool] = None
