"""
Staff Management Endpoints

Admin accounts of a tenant. Customers have their own endpoints.

RBAC:
- All operations: staff:manage (tenant admins, super admins)
- An admin cannot deactivate their own account

Users are deactivated, never deleted.
"""
from fastapi import APIRouter, Depends, Query, Request, status
from typing import Optional

from storehub.models.user import User, UserRole
from storehub.schemas.user import (
    StaffCreate,
    StaffUpdate,
    UserListResponse,
    UserResponse,
)
from storehub.api.deps import tenant_scope
from storehub.core.exceptions import ConflictError, InvalidInputError, UserNotFoundError
from storehub.core.permissions import Permission
from storehub.core.security import get_password_hash
from storehub.core.tenancy import TenantContext
from storehub.services.audit import record_audit
from storehub.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/users", tags=["staff"])

staff_scope = tenant_scope(Permission.STAFF_MANAGE)


def _get_staff(ctx: TenantContext, user_id: str) -> User:
    user = ctx.scope.query(User, User.id == user_id, User.role == UserRole.ADMIN).first()
    if not user:
        ctx.scope.raise_if_foreign(User, user_id)
        raise UserNotFoundError(user_id)
    return user


@router.get("", response_model=UserListResponse)
async def list_staff(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    is_active: Optional[bool] = Query(None),
    ctx: TenantContext = Depends(staff_scope)
):
    query = ctx.scope.query(User, User.role == UserRole.ADMIN)
    if is_active is not None:
        query = query.filter(User.is_active == is_active)

    total = query.count()
    users = query.order_by(User.created_at).offset((page - 1) * page_size).limit(page_size).all()

    return UserListResponse(users=users, total=total, page=page, page_size=page_size)


@router.get("/{user_id}", response_model=UserResponse)
async def get_staff(user_id: str, ctx: TenantContext = Depends(staff_scope)):
    return _get_staff(ctx, user_id)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_staff(
    data: StaffCreate,
    request: Request,
    ctx: TenantContext = Depends(staff_scope)
):
    email = data.email.lower()
    if ctx.scope.query(User, User.email == email).first():
        raise ConflictError("User with this email already exists")

    user = ctx.scope.add(User(
        email=email,
        hashed_password=get_password_hash(data.password),
        full_name=data.full_name,
        phone=data.phone,
        role=UserRole.ADMIN,
        is_active=True
    ))
    ctx.db.flush()

    record_audit(
        ctx.db, "staff.create", "user", user.id,
        actor=ctx.actor, tenant_id=ctx.tenant_id, details={"email": email}, request=request
    )
    ctx.db.commit()

    logger.info(f"Staff account created: {user.id} by {ctx.actor_id}")
    return user


@router.patch("/{user_id}", response_model=UserResponse)
async def update_staff(
    user_id: str,
    data: StaffUpdate,
    request: Request,
    ctx: TenantContext = Depends(staff_scope)
):
    user = _get_staff(ctx, user_id)

    changes = data.model_dump(exclude_unset=True)
    if changes.get("is_active") is False and user.id == ctx.actor_id:
        raise InvalidInputError("Cannot deactivate your own account")

    for field, value in changes.items():
        setattr(user, field, value)

    record_audit(
        ctx.db, "staff.update", "user", user.id,
        actor=ctx.actor, tenant_id=ctx.tenant_id, details={"fields": sorted(changes)}, request=request
    )
    ctx.db.commit()
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_staff(
    user_id: str,
    request: Request,
    ctx: TenantContext = Depends(staff_scope)
):
    """Deactivate a staff account. The row is kept for the audit trail."""
    user = _get_staff(ctx, user_id)

    if user.id == ctx.actor_id:
        raise InvalidInputError("Cannot deactivate your own account")

    user.is_active = False
    record_audit(
        ctx.db, "staff.deactivate", "user", user.id,
        actor=ctx.actor, tenant_id=ctx.tenant_id, request=request
    )
    ctx.db.commit()

    logger.info(f"Staff account deactivated: {user_id} by {ctx.actor_id}")
    return None
