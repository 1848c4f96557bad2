"""Identity business logic layer."""

from __future__ import annotations

import logging
import re
from collections.abc import Collection, Iterator
from contextlib import contextmanager
from typing import Any

from fastapi import Depends, Request
from starlette.datastructures import State

from app.core.config import get_settings
from app.core.document_store import DocumentStoreError
from app.core.enums import AdminRoleEnum, AuditActionEnum, FailureKindEnum, RouteOutcomeEnum
from app.core.metrics import ADMIN_LOGIN_ATTEMPTS_TOTAL, ADMIN_SESSIONS_EXPIRED_TOTAL
from app.core.security import (
    decode_session_token,
    dummy_verify,
    hash_password,
    oauth2_scheme,
    verify_password,
)
from app.modules.audit.recorder import AuditTrailRecorder
from app.modules.audit.schemas import AuditLogCreate
from app.modules.identity.directory import AdminDirectory
from app.modules.identity.guard import LANDING_VIEW, RouteDecision, guard_route
from app.modules.identity.schemas import (
    AdminAccount,
    AdminSession,
    AdminUserCreate,
    AdminUserUpdate,
    OperationResult,
)
from app.modules.identity.session_store import SessionStore
from app.shared.exceptions import (
    AppException,
    AuthenticationException,
    BusinessRuleException,
    ConflictException,
    DocumentStoreException,
    NotFoundException,
    UnauthorizedException,
)
from app.shared.utils import new_id, utc_now

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
ADMIN_ENTITY_TYPE = "AdminUser"
UNAUTHORIZED_MESSAGE = "Unauthorized."
NOT_LOGGED_IN_MESSAGE = "Not logged in."
USER_NOT_FOUND_MESSAGE = "User not found."


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value))


class AuthService:
    """Login, logout and admin-account lifecycle for one session slot.

    This is the only writer of the admin directory and the only producer of
    admin-account audit entries. Rule violations come back as failed
    ``OperationResult`` values; a document store outage propagates as
    ``DocumentStoreError`` and leaves directory, session and audit trail as
    they were.
    """

    def __init__(
        self,
        directory: AdminDirectory,
        session_store: SessionStore,
        recorder: AuditTrailRecorder,
        *,
        password_min_length: int = 6,
        username_min_length: int = 3,
    ) -> None:
        self.directory = directory
        self.session_store = session_store
        self.recorder = recorder
        self.password_min_length = password_min_length
        self.username_min_length = username_min_length

    @property
    def admin_users(self) -> tuple[AdminAccount, ...]:
        return self.directory.accounts

    async def current_user(self) -> AdminSession | None:
        return await self.session_store.get()

    async def login(self, username: str, password: str) -> bool:
        """Open a session for matching, active credentials."""
        if not self.directory.is_loaded:
            logger.warning("Login blocked: admin directory is not loaded")
            ADMIN_LOGIN_ATTEMPTS_TOTAL.labels(outcome="not_ready").inc()
            return False

        account = self.directory.find_by_username(username)
        if account is None:
            dummy_verify()
            ADMIN_LOGIN_ATTEMPTS_TOTAL.labels(outcome="invalid_credentials").inc()
            return False
        if not verify_password(password, account.password_hash):
            ADMIN_LOGIN_ATTEMPTS_TOTAL.labels(outcome="invalid_credentials").inc()
            return False
        if not account.is_active:
            ADMIN_LOGIN_ATTEMPTS_TOTAL.labels(outcome="inactive").inc()
            return False

        await self.session_store.set(AdminSession.from_account(account))
        ADMIN_LOGIN_ATTEMPTS_TOTAL.labels(outcome="success").inc()
        logger.info("Admin %s logged in", account.username)
        return True

    async def logout(self) -> None:
        """Close the session. Safe to call without one."""
        actor = await self.session_store.get()
        await self.session_store.clear()
        if actor is not None:
            await self._audit(actor, AuditActionEnum.ADMIN_LOGOUT)

    async def expire_for_inactivity(self) -> RouteDecision:
        """Forced logout after the inactivity timeout."""
        await self.logout()
        ADMIN_SESSIONS_EXPIRED_TOTAL.inc()
        return RouteDecision.redirect(LANDING_VIEW)

    async def add_admin_user(self, data: AdminUserCreate) -> OperationResult:
        actor = await self._superadmin()
        if actor is None:
            return OperationResult.fail(UNAUTHORIZED_MESSAGE, FailureKindEnum.UNAUTHORIZED)

        username = data.username.strip()
        email = data.email.strip()

        async with self.directory.lock:
            if self.directory.username_taken(username):
                return OperationResult.fail(
                    f'Username "{username}" already exists.',
                    FailureKindEnum.CONFLICT,
                )
            if self.directory.email_taken(email):
                return OperationResult.fail(
                    f'Email "{email}" is already in use.',
                    FailureKindEnum.CONFLICT,
                )
            invalid = self._validate_profile(username, email) or self._validate_new_password(
                data.password,
                label="Password",
            )
            if invalid is not None:
                return invalid

            now = utc_now()
            new_user = AdminAccount(
                id=new_id("admin"),
                username=username,
                name=data.name.strip(),
                email=email,
                password_hash=hash_password(data.password),
                role=data.role,
                is_active=data.is_active,
                created_at=now,
                updated_at=now,
            )
            await self.directory.replace([*self.directory.accounts, new_user])

        await self._audit(
            actor,
            AuditActionEnum.ADMIN_CREATED,
            entity_id_or_name=new_user.username,
            details={"name": new_user.name, "email": new_user.email, "role": new_user.role},
        )
        return OperationResult.ok("Admin user created successfully.", user=new_user)

    async def update_admin_user(
        self,
        user_id: str,
        updates: AdminUserUpdate | dict[str, Any],
    ) -> OperationResult:
        actor = await self._superadmin()
        if actor is None:
            return OperationResult.fail(UNAUTHORIZED_MESSAGE, FailureKindEnum.UNAUTHORIZED)

        if isinstance(updates, dict):
            updates = AdminUserUpdate.model_validate(updates)
        changes = {
            field: value
            for field, value in updates.model_dump(exclude_unset=True).items()
            if value is not None
        }

        async with self.directory.lock:
            target = self.directory.get(user_id)
            if target is None:
                return OperationResult.fail(USER_NOT_FOUND_MESSAGE, FailureKindEnum.NOT_FOUND)

            if target.id == actor.id:
                if changes.get("is_active") is False:
                    return OperationResult.fail(
                        "Superadmin cannot deactivate their own account.",
                        FailureKindEnum.UNAUTHORIZED,
                    )
                role = changes.get("role")
                if role is not None and role != AdminRoleEnum.SUPERADMIN:
                    return OperationResult.fail(
                        "Superadmin cannot change their own role to a non-superadmin role.",
                        FailureKindEnum.UNAUTHORIZED,
                    )

            email = changes.get("email")
            if email is not None:
                email = changes["email"] = email.strip()
                if not is_valid_email(email):
                    return OperationResult.fail("Invalid email format.", FailureKindEnum.VALIDATION)
                if self.directory.email_taken(email, exclude_id=user_id):
                    return OperationResult.fail(
                        f'Email "{email}" is already in use by another admin.',
                        FailureKindEnum.CONFLICT,
                    )

            updated = target.model_copy(update={**changes, "updated_at": utc_now()})
            await self._replace_account(updated)

        if updated.id == actor.id:
            await self.session_store.set(AdminSession.from_account(updated))

        await self._audit(
            actor,
            AuditActionEnum.ADMIN_UPDATED,
            entity_id_or_name=target.username,
            details={
                "updates": AdminUserUpdate(**changes).model_dump(mode="json", exclude_unset=True),
            },
        )
        return OperationResult.ok("Admin user updated successfully.", user=updated)

    async def reset_admin_password(self, user_id: str, new_password: str) -> OperationResult:
        actor = await self._superadmin()
        if actor is None:
            return OperationResult.fail(UNAUTHORIZED_MESSAGE, FailureKindEnum.UNAUTHORIZED)
        invalid = self._validate_new_password(new_password)
        if invalid is not None:
            return invalid

        async with self.directory.lock:
            target = self.directory.get(user_id)
            if target is None:
                return OperationResult.fail(USER_NOT_FOUND_MESSAGE, FailureKindEnum.NOT_FOUND)
            updated = target.model_copy(
                update={"password_hash": hash_password(new_password), "updated_at": utc_now()},
            )
            await self._replace_account(updated)

        if updated.id == actor.id:
            await self.session_store.set(AdminSession.from_account(updated))

        await self._audit(
            actor,
            AuditActionEnum.ADMIN_PASSWORD_RESET,
            entity_id_or_name=target.username,
        )
        return OperationResult.ok("Admin password reset successfully.")

    async def delete_admin_user(self, user_id: str) -> OperationResult:
        actor = await self._superadmin()
        if actor is None:
            return OperationResult.fail(UNAUTHORIZED_MESSAGE, FailureKindEnum.UNAUTHORIZED)
        if user_id == actor.id:
            return OperationResult.fail(
                "Cannot delete your own superadmin account.",
                FailureKindEnum.UNAUTHORIZED,
            )

        async with self.directory.lock:
            target = self.directory.get(user_id)
            if target is None:
                return OperationResult.fail(USER_NOT_FOUND_MESSAGE, FailureKindEnum.NOT_FOUND)
            await self.directory.replace(
                account for account in self.directory.accounts if account.id != user_id
            )

        await self._audit(actor, AuditActionEnum.ADMIN_DELETED, entity_id_or_name=target.username)
        return OperationResult.ok("Admin user deleted successfully.")

    async def change_own_password(self, current_password: str, new_password: str) -> OperationResult:
        actor = await self.session_store.get()
        if actor is None:
            return OperationResult.fail(NOT_LOGGED_IN_MESSAGE, FailureKindEnum.UNAUTHORIZED)
        if not verify_password(current_password, actor.password_hash):
            return OperationResult.fail("Incorrect current password.", FailureKindEnum.VALIDATION)
        invalid = self._validate_new_password(new_password)
        if invalid is not None:
            return invalid

        async with self.directory.lock:
            account = self.directory.get(actor.id)
            if account is None:
                return OperationResult.fail(USER_NOT_FOUND_MESSAGE, FailureKindEnum.NOT_FOUND)
            updated = account.model_copy(
                update={"password_hash": hash_password(new_password), "updated_at": utc_now()},
            )
            await self._replace_account(updated)

        await self.session_store.set(AdminSession.from_account(updated))
        await self._audit(
            actor,
            AuditActionEnum.ADMIN_OWN_PASSWORD_CHANGED,
            entity_id_or_name=actor.username,
        )
        return OperationResult.ok("Password changed successfully.")

    async def change_own_username_and_email(
        self,
        new_username: str,
        new_email: str,
        current_password: str,
    ) -> OperationResult:
        actor = await self.session_store.get()
        if actor is None:
            return OperationResult.fail(NOT_LOGGED_IN_MESSAGE, FailureKindEnum.UNAUTHORIZED)
        if not verify_password(current_password, actor.password_hash):
            return OperationResult.fail("Incorrect password.", FailureKindEnum.VALIDATION)

        username = new_username.strip()
        email = new_email.strip()
        invalid = self._validate_profile(username, email, label="New username")
        if invalid is not None:
            return invalid

        async with self.directory.lock:
            if self.directory.username_taken(username, exclude_id=actor.id):
                return OperationResult.fail(
                    f'Username "{username}" is already taken.',
                    FailureKindEnum.CONFLICT,
                )
            if self.directory.email_taken(email, exclude_id=actor.id):
                return OperationResult.fail(
                    f'Email "{email}" is already in use.',
                    FailureKindEnum.CONFLICT,
                )
            account = self.directory.get(actor.id)
            if account is None:
                return OperationResult.fail(USER_NOT_FOUND_MESSAGE, FailureKindEnum.NOT_FOUND)
            updated = account.model_copy(
                update={"username": username, "email": email, "updated_at": utc_now()},
            )
            await self._replace_account(updated)

        await self.session_store.set(AdminSession.from_account(updated))
        await self._audit(
            actor,
            AuditActionEnum.ADMIN_OWN_PROFILE_UPDATED,
            entity_id_or_name=username,
            details={
                "oldUsername": actor.username,
                "newUsername": username,
                "oldEmail": actor.email,
                "newEmail": email,
            },
        )
        return OperationResult.ok("Username and email updated successfully.", user=updated)

    async def _superadmin(self) -> AdminSession | None:
        actor = await self.session_store.get()
        if actor is None or actor.role != AdminRoleEnum.SUPERADMIN:
            return None
        return actor

    async def _replace_account(self, updated: AdminAccount) -> None:
        await self.directory.replace(
            updated if account.id == updated.id else account for account in self.directory.accounts
        )

    def _validate_new_password(
        self,
        password: str,
        *,
        label: str = "New password",
    ) -> OperationResult | None:
        if len(password) < self.password_min_length:
            return OperationResult.fail(
                f"{label} must be at least {self.password_min_length} characters long.",
                FailureKindEnum.VALIDATION,
            )
        return None

    def _validate_profile(
        self,
        username: str,
        email: str,
        *,
        label: str = "Username",
    ) -> OperationResult | None:
        if len(username) < self.username_min_length:
            return OperationResult.fail(
                f"{label} must be at least {self.username_min_length} characters long.",
                FailureKindEnum.VALIDATION,
            )
        if not is_valid_email(email):
            return OperationResult.fail("Invalid email format.", FailureKindEnum.VALIDATION)
        return None

    async def _audit(
        self,
        actor: AdminSession,
        action: AuditActionEnum,
        *,
        entity_id_or_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        await self.recorder.record(
            AuditLogCreate(
                admin_user_id=actor.id,
                admin_username=actor.username,
                admin_role=actor.role,
                action=action,
                entity_type=ADMIN_ENTITY_TYPE if entity_id_or_name is not None else None,
                entity_id_or_name=entity_id_or_name,
                details=details,
            ),
        )


def build_auth_service(state: State, session_id: str) -> AuthService:
    """Bind an AuthService to one session slot using shared app resources."""
    settings = get_settings()
    return AuthService(
        state.admin_directory,
        SessionStore(state.kv_store, session_id, key_prefix=settings.session_key_prefix),
        state.audit_recorder,
        password_min_length=settings.password_min_length,
        username_min_length=settings.username_min_length,
    )


def arm_inactivity_timeout(state: State, session_id: str) -> None:
    """Start the idle countdown that logs the session out when it elapses."""

    async def _on_timeout() -> None:
        await build_auth_service(state, session_id).expire_for_inactivity()

    state.inactivity.arm(session_id, _on_timeout)


async def get_session_id(token: str | None = Depends(oauth2_scheme)) -> str | None:
    """Resolve session id from the bearer session token, if any."""
    if not token:
        return None
    return decode_session_token(token)


async def get_optional_auth_service(
    request: Request,
    session_id: str | None = Depends(get_session_id),
) -> AuthService | None:
    if session_id is None:
        return None
    return build_auth_service(request.app.state, session_id)


async def get_auth_service(
    service: AuthService | None = Depends(get_optional_auth_service),
) -> AuthService:
    """Dependency to provide the session-bound auth service."""
    if service is None:
        raise AuthenticationException(NOT_LOGGED_IN_MESSAGE)
    return service


async def get_optional_session(
    request: Request,
    service: AuthService | None = Depends(get_optional_auth_service),
) -> AdminSession | None:
    """Return the session snapshot and count the request as activity."""
    if service is None:
        return None
    session = await service.current_user()
    if session is None:
        return None

    state = request.app.state
    session_id = service.session_store.session_id
    if not state.inactivity.touch(session_id):
        arm_inactivity_timeout(state, session_id)
    return session


def _enforce(decision: RouteDecision, session: AdminSession | None) -> AdminSession:
    if decision.outcome == RouteOutcomeEnum.REDIRECT or session is None:
        raise AuthenticationException(NOT_LOGGED_IN_MESSAGE)
    if decision.outcome == RouteOutcomeEnum.DENIED:
        raise UnauthorizedException(decision.notice or UNAUTHORIZED_MESSAGE)
    return session


async def get_current_session(
    request: Request,
    session: AdminSession | None = Depends(get_optional_session),
) -> AdminSession:
    """Resolve the logged-in admin or fail with 401."""
    return _enforce(guard_route(session, request.url.path), session)


def require_roles(*roles: AdminRoleEnum):
    """Dependency factory for role-based access."""
    allowed: Collection[AdminRoleEnum] = frozenset(roles)

    async def _checker(
        request: Request,
        session: AdminSession | None = Depends(get_optional_session),
    ) -> AdminSession:
        return _enforce(guard_route(session, request.url.path, allowed), session)

    return _checker


_FAILURE_EXCEPTIONS: dict[FailureKindEnum, type[AppException]] = {
    FailureKindEnum.VALIDATION: BusinessRuleException,
    FailureKindEnum.UNAUTHORIZED: UnauthorizedException,
    FailureKindEnum.NOT_FOUND: NotFoundException,
    FailureKindEnum.CONFLICT: ConflictException,
}


def raise_for_failure(result: OperationResult) -> OperationResult:
    """Turn a failed operation result into the matching HTTP error."""
    if result.success:
        return result
    exception_class = _FAILURE_EXCEPTIONS.get(result.failure, BusinessRuleException)
    raise exception_class(result.message)


@contextmanager
def document_store_errors() -> Iterator[None]:
    """Surface document store failures as 502 responses."""
    try:
        yield
    except DocumentStoreError as exc:
        logger.error("Admin directory write failed: %s", exc.message)
        raise DocumentStoreException(exc.message) from exc
