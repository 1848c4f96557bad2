"""Admin users API router."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from app.core.enums import AdminRoleEnum
from app.modules.identity.schemas import (
    AdminAccountRead,
    AdminSession,
    AdminUserCreate,
    AdminUserUpdate,
    OperationResultRead,
    PasswordResetRequest,
)
from app.modules.identity.service import (
    AuthService,
    document_store_errors,
    get_auth_service,
    raise_for_failure,
    require_roles,
)

router = APIRouter(prefix="/admin", tags=["admin"])

require_superadmin = require_roles(AdminRoleEnum.SUPERADMIN)


@router.get("/users", response_model=list[AdminAccountRead])
async def list_admin_users(
    _: AdminSession = Depends(require_superadmin),
    service: AuthService = Depends(get_auth_service),
) -> list[AdminAccountRead]:
    """List admin accounts."""
    return [AdminAccountRead.model_validate(account) for account in service.admin_users]


@router.post("/users", response_model=OperationResultRead, status_code=status.HTTP_201_CREATED)
async def create_admin_user(
    payload: AdminUserCreate,
    _: AdminSession = Depends(require_superadmin),
    service: AuthService = Depends(get_auth_service),
) -> OperationResultRead:
    """Create admin account."""
    with document_store_errors():
        result = raise_for_failure(await service.add_admin_user(payload))
    return OperationResultRead(
        success=True,
        message=result.message,
        user=AdminAccountRead.model_validate(result.user),
    )


@router.patch("/users/{user_id}", response_model=OperationResultRead)
async def update_admin_user(
    user_id: str,
    payload: AdminUserUpdate,
    _: AdminSession = Depends(require_superadmin),
    service: AuthService = Depends(get_auth_service),
) -> OperationResultRead:
    """Update name, email, role or active flag."""
    with document_store_errors():
        result = raise_for_failure(await service.update_admin_user(user_id, payload))
    return OperationResultRead(
        success=True,
        message=result.message,
        user=AdminAccountRead.model_validate(result.user),
    )


@router.put("/users/{user_id}/password", response_model=OperationResultRead)
async def reset_admin_password(
    user_id: str,
    payload: PasswordResetRequest,
    _: AdminSession = Depends(require_superadmin),
    service: AuthService = Depends(get_auth_service),
) -> OperationResultRead:
    """Set a new password for another admin."""
    with document_store_errors():
        result = raise_for_failure(await service.reset_admin_password(user_id, payload.new_password))
    return OperationResultRead(success=True, message=result.message)


@router.delete("/users/{user_id}", response_model=OperationResultRead)
async def delete_admin_user(
    user_id: str,
    _: AdminSession = Depends(require_superadmin),
    service: AuthService = Depends(get_auth_service),
) -> OperationResultRead:
    """Remove admin account."""
    with document_store_errors():
        result = raise_for_failure(await service.delete_admin_user(user_id))
    return OperationResultRead(success=True, message=result.message)
