"""Identity API router."""

from __future__ import annotations

import logging
import secrets

from fastapi import APIRouter, Depends, Request, status

from app.core.security import create_session_token
from app.modules.identity.guard import check_view_access
from app.modules.identity.schemas import (
    ActivitySignalRequest,
    AdminAccountRead,
    AdminSession,
    LoginRequest,
    OperationResultRead,
    OwnPasswordChangeRequest,
    OwnProfileChangeRequest,
    RouteDecisionRead,
    SessionTokenRead,
)
from app.modules.identity.service import (
    AuthService,
    arm_inactivity_timeout,
    build_auth_service,
    document_store_errors,
    get_auth_service,
    get_current_session,
    get_optional_session,
    raise_for_failure,
)
from app.shared.exceptions import AuthenticationException

router = APIRouter(prefix="/identity", tags=["identity"])
logger = logging.getLogger(__name__)


@router.post("/auth/login", response_model=SessionTokenRead)
async def login(payload: LoginRequest, request: Request) -> SessionTokenRead:
    """Open a new session slot and return its session token."""
    session_id = secrets.token_urlsafe(24)
    service = build_auth_service(request.app.state, session_id)
    if not await service.login(payload.username, payload.password):
        raise AuthenticationException("Invalid username or password.")

    arm_inactivity_timeout(request.app.state, session_id)
    session = await service.current_user()
    return SessionTokenRead(
        session_token=create_session_token(session_id),
        user=AdminAccountRead.model_validate(session),
    )


@router.post("/auth/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    request: Request,
    service: AuthService = Depends(get_auth_service),
) -> None:
    """Close the session. Repeating the call is harmless."""
    request.app.state.inactivity.disarm(service.session_store.session_id)
    await service.logout()


@router.post("/auth/activity", status_code=status.HTTP_204_NO_CONTENT)
async def register_activity(
    payload: ActivitySignalRequest,
    _: AdminSession = Depends(get_current_session),
) -> None:
    """Reset the inactivity countdown."""
    logger.debug("Activity signal %s", payload.signal)


@router.get("/me", response_model=AdminAccountRead)
async def get_me(session: AdminSession = Depends(get_current_session)) -> AdminAccountRead:
    """Return the session snapshot of the logged-in admin."""
    return AdminAccountRead.model_validate(session)


@router.put("/me/password", response_model=OperationResultRead)
async def change_own_password(
    payload: OwnPasswordChangeRequest,
    _: AdminSession = Depends(get_current_session),
    service: AuthService = Depends(get_auth_service),
) -> OperationResultRead:
    with document_store_errors():
        result = await service.change_own_password(payload.current_password, payload.new_password)
    raise_for_failure(result)
    return OperationResultRead(success=True, message=result.message)


@router.put("/me/profile", response_model=OperationResultRead)
async def change_own_profile(
    payload: OwnProfileChangeRequest,
    _: AdminSession = Depends(get_current_session),
    service: AuthService = Depends(get_auth_service),
) -> OperationResultRead:
    with document_store_errors():
        result = await service.change_own_username_and_email(
            payload.new_username,
            payload.new_email,
            payload.current_password,
        )
    raise_for_failure(result)
    return OperationResultRead(
        success=True,
        message=result.message,
        user=AdminAccountRead.model_validate(result.user),
    )


@router.get("/views/{view:path}", response_model=RouteDecisionRead)
async def resolve_view(
    view: str,
    session: AdminSession | None = Depends(get_optional_session),
) -> RouteDecisionRead:
    """Tell the client whether to render, redirect or deny a back-office view."""
    return RouteDecisionRead.model_validate(check_view_access(session, f"/{view}"))
