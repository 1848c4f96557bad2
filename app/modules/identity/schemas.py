"""Identity schemas."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.core.enums import ActivitySignalEnum, AdminRoleEnum, FailureKindEnum, RouteOutcomeEnum


class CamelModel(BaseModel):
    """Base schema serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AdminAccount(CamelModel):
    """Administrator account as persisted in the admin users document."""

    id: str
    username: str
    name: str
    email: str
    password_hash: str
    role: AdminRoleEnum
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class AdminSession(AdminAccount):
    """Copy of the logged-in account taken at login; may go stale until next login."""

    @classmethod
    def from_account(cls, account: AdminAccount) -> "AdminSession":
        return cls.model_validate(account.model_dump())


class AdminAccountRead(CamelModel):
    """Public view of an admin account."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    username: str
    name: str
    email: str
    role: AdminRoleEnum
    is_active: bool
    created_at: datetime
    updated_at: datetime


class AdminUserCreate(CamelModel):
    """New admin account request."""

    username: str
    name: str
    email: str
    password: str
    role: AdminRoleEnum = AdminRoleEnum.EDITOR
    is_active: bool = True


class AdminUserUpdate(CamelModel):
    """Partial admin account update; unset fields are left alone."""

    name: str | None = None
    email: str | None = None
    role: AdminRoleEnum | None = None
    is_active: bool | None = None


class PasswordResetRequest(CamelModel):
    """Superadmin password reset payload."""

    new_password: str


class OwnPasswordChangeRequest(CamelModel):
    """Self-service password change payload."""

    current_password: str
    new_password: str


class OwnProfileChangeRequest(CamelModel):
    """Self-service username/email change payload."""

    new_username: str
    new_email: str
    current_password: str


class LoginRequest(BaseModel):
    """Credentials for login."""

    username: str = Field(max_length=255)
    password: str = Field(max_length=255)


class SessionTokenRead(BaseModel):
    """Tab-scoped session token issued on login."""

    session_token: str
    token_type: str = "bearer"
    user: AdminAccountRead


class ActivitySignalRequest(BaseModel):
    """Client-side activity forwarded to keep the session alive."""

    signal: ActivitySignalEnum


@dataclass(frozen=True, slots=True)
class OperationResult:
    """Outcome of an admin operation. Expected failures are values, never raised."""

    success: bool
    message: str
    user: AdminAccount | None = None
    failure: FailureKindEnum | None = None

    @classmethod
    def ok(cls, message: str, user: AdminAccount | None = None) -> "OperationResult":
        return cls(success=True, message=message, user=user)

    @classmethod
    def fail(cls, message: str, failure: FailureKindEnum) -> "OperationResult":
        return cls(success=False, message=message, failure=failure)


class OperationResultRead(BaseModel):
    """Successful operation response."""

    success: bool
    message: str
    user: AdminAccountRead | None = None


class RouteDecisionRead(BaseModel):
    """Route guard verdict for a back-office view."""

    model_config = ConfigDict(from_attributes=True)

    outcome: RouteOutcomeEnum
    target: str
    notice: str | None = None
    allowed: bool
