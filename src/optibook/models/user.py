"""User and authentication models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from optibook.models._base import ConsoleModel


class UserRole(StrEnum):
    USER = "user"
    ADMIN = "admin"
    PROVIDER = "provider"


class User(ConsoleModel):
    id: str
    name: str
    email: str
    role: UserRole = UserRole.USER
    email_verified: bool = False
    banned: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class LoginData(ConsoleModel):
    email: str = ""
    password: str = ""


class SignupData(ConsoleModel):
    name: str = ""
    email: str = ""
    password: str = ""


class AuthState(ConsoleModel):
    user: User | None = None
    is_authenticated: bool = False
    is_loading: bool = False
    is_optimistic: bool = False
