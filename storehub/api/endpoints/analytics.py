"""
Analytics Endpoints

Revenue counts fulfilled orders only (delivered or picked up).
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from storehub.database import get_db
from storehub.models.catalog import Product
from storehub.models.ledger import LedgerEntry, LedgerEntryStatus
from storehub.models.order import FULFILLED_STATUSES, Order
from storehub.models.tenant import Tenant
from storehub.models.user import User, UserRole
from storehub.schemas.notification import PlatformSummary, TenantSummary, TopTenant
from storehub.api.deps import require_super_admin, tenant_scope
from storehub.core.permissions import Permission
from storehub.core.tenancy import TenantContext

router = APIRouter(prefix="/analytics", tags=["analytics"])

# Mounted once, under /api/v1 only
platform_router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/summary", response_model=TenantSummary)
async def tenant_summary(ctx: TenantContext = Depends(tenant_scope(Permission.ANALYTICS_READ))):
    scope = ctx.scope

    by_status = scope.query_columns(Order, Order.status, func.count(Order.id)).group_by(Order.status).all()
    orders_by_status = {order_status.value: count for order_status, count in by_status}

    revenue, fulfilled = scope.query_columns(
        Order, func.coalesce(func.sum(Order.total), 0), func.count(Order.id)
    ).filter(Order.status.in_(FULFILLED_STATUSES)).one()

    customers = scope.query(User, User.role == UserRole.CUSTOMER).count()
    products = scope.query(Product, Product.active == True).count()  # noqa: E712
    pending_credit = scope.query(LedgerEntry, LedgerEntry.status == LedgerEntryStatus.PENDING).count()

    revenue = float(revenue or 0)
    return TenantSummary(
        tenant_id=ctx.tenant_id,
        revenue=revenue,
        delivered_orders=fulfilled,
        average_order_value=round(revenue / fulfilled, 2) if fulfilled else 0.0,
        orders_by_status=orders_by_status,
        customers=customers,
        products=products,
        pending_credit_requests=pending_credit,
    )


@platform_router.get("/platform", response_model=PlatformSummary)
async def platform_summary(
    top: int = Query(5, ge=1, le=50),
    _: User = Depends(require_super_admin),
    db: Session = Depends(get_db)
):
    """Cross-tenant totals. Super admin only."""
    by_status = db.query(Tenant.status, func.count(Tenant.id)).group_by(Tenant.status).all()
    total_orders = db.query(func.count(Order.id)).scalar() or 0
    total_revenue = db.query(func.coalesce(func.sum(Order.total), 0)) \
        .filter(Order.status.in_(FULFILLED_STATUSES)).scalar()

    revenue = func.sum(Order.total).label("revenue")
    top_rows = db.query(Tenant.id, Tenant.name, revenue) \
        .join(Order, Order.tenant_id == Tenant.id) \
        .filter(Order.status.in_(FULFILLED_STATUSES)) \
        .group_by(Tenant.id, Tenant.name) \
        .order_by(revenue.desc()) \
        .limit(top).all()

    return PlatformSummary(
        tenants_by_status={tenant_status.value: count for tenant_status, count in by_status},
        total_orders=total_orders,
        total_revenue=float(total_revenue or 0),
        top_tenants=[
            TopTenant(tenant_id=tenant_id, name=name, revenue=float(amount or 0))
            for tenant_id, name, amount in top_rows
        ],
    )
