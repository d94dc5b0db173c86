"""
Customer Endpoints

Admins manage every customer of the tenant. Customers read and update
their own record only; another customer's id answers 404.
"""
from decimal import Decimal
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func
from typing import Optional

from storehub.models.order import Order, OrderStatus
from storehub.models.user import User, UserRole
from storehub.schemas.user import (
    CustomerCreate,
    CustomerListResponse,
    CustomerResponse,
    CustomerSelfUpdate,
    CustomerStats,
    CustomerUpdate,
)
from storehub.api.deps import tenant_scope
from storehub.core.exceptions import ConflictError, CustomerNotFoundError
from storehub.core.permissions import Permission
from storehub.core.security import get_password_hash
from storehub.core.tenancy import TenantContext
from storehub.services.audit import record_audit
from storehub.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/customers", tags=["customers"])

manage_scope = tenant_scope(Permission.CUSTOMERS_MANAGE)
self_scope = tenant_scope(Permission.PROFILE_SELF)


def get_customer(ctx: TenantContext, customer_id: str) -> User:
    """
    Load a customer of the tenant visible to the actor.

    Without customers:manage the actor only sees themselves.
    """
    if not ctx.role_can(Permission.CUSTOMERS_MANAGE) and customer_id != ctx.actor_id:
        raise CustomerNotFoundError(customer_id)

    customer = ctx.scope.query(User, User.id == customer_id, User.role == UserRole.CUSTOMER).first()
    if not customer:
        ctx.scope.raise_if_foreign(User, customer_id)
        raise CustomerNotFoundError(customer_id)
    return customer


@router.get("", response_model=CustomerListResponse)
async def list_customers(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    ctx: TenantContext = Depends(manage_scope)
):
    query = ctx.scope.query(User, User.role == UserRole.CUSTOMER)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            User.full_name.ilike(pattern) | User.email.ilike(pattern) | User.phone.ilike(pattern)
        )
    if is_active is not None:
        query = query.filter(User.is_active == is_active)

    total = query.count()
    customers = query.order_by(User.created_at.desc()).offset((page - 1) * page_size).limit(page_size).all()

    return CustomerListResponse(customers=customers, total=total, page=page, page_size=page_size)


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    data: CustomerCreate,
    request: Request,
    ctx: TenantContext = Depends(manage_scope)
):
    """Register a customer from the admin side (walk-ins may have no password)."""
    email = data.email.lower()
    if ctx.scope.query(User, User.email == email).first():
        raise ConflictError("An account with this email already exists")

    customer = ctx.scope.add(User(
        email=email,
        hashed_password=get_password_hash(data.password) if data.password else None,
        full_name=data.full_name,
        phone=data.phone,
        role=UserRole.CUSTOMER,
        credit_limit=Decimal(str(data.credit_limit)) if data.credit_limit is not None else None,
        is_active=True
    ))
    ctx.db.flush()

    record_audit(
        ctx.db, "customer.create", "user", customer.id,
        actor=ctx.actor, tenant_id=ctx.tenant_id, details={"email": email}, request=request
    )
    ctx.db.commit()
    return customer


@router.get("/me", response_model=CustomerResponse)
async def get_own_record(ctx: TenantContext = Depends(self_scope)):
    return ctx.actor


@router.patch("/me", response_model=CustomerResponse)
async def update_own_record(
    data: CustomerSelfUpdate,
    request: Request,
    ctx: TenantContext = Depends(self_scope)
):
    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(ctx.actor, field, value)

    record_audit(
        ctx.db, "customer.update_self", "user", ctx.actor_id,
        actor=ctx.actor, tenant_id=ctx.tenant_id, details={"fields": sorted(changes)}, request=request
    )
    ctx.db.commit()
    return ctx.actor


@router.get("/{customer_id}", response_model=CustomerResponse)
async def read_customer(customer_id: str, ctx: TenantContext = Depends(self_scope)):
    return get_customer(ctx, customer_id)


@router.patch("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: str,
    data: CustomerUpdate,
    request: Request,
    ctx: TenantContext = Depends(manage_scope)
):
    customer = get_customer(ctx, customer_id)

    changes = data.model_dump(exclude_unset=True)
    if "credit_limit" in changes and changes["credit_limit"] is not None:
        changes["credit_limit"] = Decimal(str(changes["credit_limit"]))
    for field, value in changes.items():
        setattr(customer, field, value)

    record_audit(
        ctx.db, "customer.update", "user", customer.id,
        actor=ctx.actor, tenant_id=ctx.tenant_id, details={"fields": sorted(changes)}, request=request
    )
    ctx.db.commit()
    return customer


@router.get("/{customer_id}/stats", response_model=CustomerStats)
async def customer_stats(customer_id: str, ctx: TenantContext = Depends(self_scope)):
    """Order count, total spent (cancelled orders excluded) and last order time."""
    customer = get_customer(ctx, customer_id)

    order_count, total_spent, last_order_at = ctx.scope.query_columns(
        Order,
        func.count(Order.id),
        func.coalesce(func.sum(Order.total), 0),
        func.max(Order.created_at),
    ).filter(
        Order.customer_id == customer.id,
        Order.status != OrderStatus.CANCELLED,
    ).one()

    return CustomerStats(
        customer_id=customer.id,
        order_count=order_count,
        total_spent=float(total_spent or 0),
        last_order_at=last_order_at,
        loyalty_points=customer.loyalty_points,
        credit_balance=float(customer.credit_balance or 0),
    )
