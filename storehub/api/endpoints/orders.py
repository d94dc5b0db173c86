"""
Order Endpoints

RBAC:
- Place: orders:place (customers for themselves, admins for a customer)
- Read: orders:read; without orders:manage only the actor's own orders
- Status changes: orders:manage
- Cancel: customers while pending, managers until delivered

An order of another customer of the same tenant answers 404; an order of
another tenant answers 403.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from typing import Optional

from storehub.models.order import Order, OrderStatus, OrderStatusHistory
from storehub.models.user import User, UserRole
from storehub.schemas.order import (
    OrderCancel,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderStatusHistoryResponse,
    OrderStatusUpdate,
)
from storehub.api.deps import tenant_scope
from storehub.core.exceptions import (
    CustomerNotFoundError,
    InvalidInputError,
    InvalidTransitionError,
    OrderNotFoundError,
    PermissionDenied,
)
from storehub.core.permissions import Permission
from storehub.core.tenancy import TenantContext
from storehub.models.notification import NotificationPriority
from storehub.services.audit import record_audit
from storehub.services.notifications import notify
from storehub.services.orders import (
    create_order,
    get_order_for_update,
    schedule_status_effects,
    transition_order,
)
from storehub.services.webhooks import WebhookEvent, order_event_data, product_event_data, queue_event
from storehub.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])

read_scope = tenant_scope(Permission.ORDERS_READ)
place_scope = tenant_scope(Permission.ORDERS_PLACE)
manage_scope = tenant_scope(Permission.ORDERS_MANAGE)


def _visible_orders(ctx: TenantContext):
    query = ctx.scope.query(Order)
    if not ctx.role_can(Permission.ORDERS_MANAGE):
        query = query.filter(Order.customer_id == ctx.actor_id)
    return query


def get_visible_order(ctx: TenantContext, order_id: str, for_update: bool = False) -> Order:
    order = get_order_for_update(ctx.scope, order_id) if for_update else ctx.scope.get(Order, order_id)
    if order is None:
        ctx.scope.raise_if_foreign(Order, order_id)
        raise OrderNotFoundError(order_id)
    if not ctx.role_can(Permission.ORDERS_MANAGE) and order.customer_id != ctx.actor_id:
        raise OrderNotFoundError(order_id)
    return order


def _order_customer(ctx: TenantContext, data: OrderCreate) -> User:
    """The customer an order is placed for."""
    if not ctx.can(Permission.ORDERS_MANAGE):
        if data.customer_id and data.customer_id != ctx.actor_id:
            raise PermissionDenied("Customers can only place orders for themselves")
        return ctx.actor

    if not data.customer_id:
        raise InvalidInputError("customer_id is required when ordering on behalf of a customer")

    customer = ctx.scope.query(
        User, User.id == data.customer_id, User.role == UserRole.CUSTOMER
    ).first()
    if customer is None or not customer.is_active:
        raise CustomerNotFoundError(data.customer_id)
    return customer


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def place_order(
    data: OrderCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    ctx: TenantContext = Depends(place_scope)
):
    """
    Place an order priced from the catalog.

    Inventory is reserved immediately; the order waits for acceptance until
    its acceptance deadline, after which the auto-accept job takes it.
    """
    customer = _order_customer(ctx, data)
    order, depleted = create_order(ctx.scope, customer, data, placed_by=ctx.actor)
    ctx.db.flush()

    notify(
        ctx.scope,
        "new_order",
        f"New order {order.order_number}",
        f"{customer.full_name or customer.email} placed an order of {order.total}",
        data={"order_id": order.id},
        priority=NotificationPriority.HIGH,
    )
    for product in depleted:
        notify(
            ctx.scope,
            "out_of_stock",
            f"{product.name} is out of stock",
            f"Inventory for {product.name} reached zero",
            data={"product_id": product.id},
        )
    record_audit(
        ctx.db, "order.create", "order", order.id,
        actor=ctx.actor, tenant_id=ctx.tenant_id,
        details={"order_number": order.order_number, "customer_id": customer.id, "total": float(order.total)},
        request=request
    )
    ctx.db.commit()

    queue_event(background_tasks, ctx.tenant_id, WebhookEvent.ORDER_PLACED, order_event_data(order))
    for product in depleted:
        queue_event(background_tasks, ctx.tenant_id, WebhookEvent.PRODUCT_OUT_OF_STOCK, product_event_data(product))

    return order


@router.get("", response_model=OrderListResponse)
async def list_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    order_status: Optional[OrderStatus] = Query(None, alias="status"),
    customer_id: Optional[str] = None,
    ctx: TenantContext = Depends(read_scope)
):
    query = _visible_orders(ctx)
    if order_status:
        query = query.filter(Order.status == order_status)
    if customer_id:
        query = query.filter(Order.customer_id == customer_id)

    total = query.count()
    orders = query.order_by(Order.created_at.desc()).offset((page - 1) * page_size).limit(page_size).all()

    return OrderListResponse(orders=orders, total=total, page=page, page_size=page_size)


@router.get("/pending", response_model=list[OrderResponse])
async def pending_orders(ctx: TenantContext = Depends(manage_scope)):
    """Orders waiting for acceptance, oldest deadline first."""
    return ctx.scope.query(Order, Order.status == OrderStatus.PENDING) \
        .order_by(Order.acceptance_deadline).all()


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, ctx: TenantContext = Depends(read_scope)):
    return get_visible_order(ctx, order_id)


@router.get("/{order_id}/history", response_model=list[OrderStatusHistoryResponse])
async def order_history(order_id: str, ctx: TenantContext = Depends(read_scope)):
    order = get_visible_order(ctx, order_id)
    return ctx.scope.query(OrderStatusHistory, OrderStatusHistory.order_id == order.id) \
        .order_by(OrderStatusHistory.changed_at, OrderStatusHistory.id).all()


@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    data: OrderStatusUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    ctx: TenantContext = Depends(manage_scope)
):
    """
    Move an order along its lifecycle.

    Repeating the current status, or any move not in the lifecycle, is a
    409 and leaves no history row.
    """
    order = get_visible_order(ctx, order_id, for_update=True)
    previous = order.status

    loyalty = transition_order(
        ctx.scope,
        order,
        data.status,
        actor=ctx.actor,
        notes=data.notes,
        tracking_number=data.tracking_number,
    )
    record_audit(
        ctx.db, "order.status", "order", order.id,
        actor=ctx.actor, tenant_id=ctx.tenant_id,
        details={"from": previous.value, "to": order.status.value},
        request=request
    )
    ctx.db.commit()

    customer = ctx.scope.get(User, order.customer_id)
    schedule_status_effects(
        background_tasks.add_task, ctx.tenant_id, order,
        customer_phone=customer.phone if customer else None, loyalty=loyalty
    )
    return order


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: str,
    data: OrderCancel,
    request: Request,
    background_tasks: BackgroundTasks,
    ctx: TenantContext = Depends(place_scope)
):
    """Cancel an order; its inventory is restored."""
    order = get_visible_order(ctx, order_id, for_update=True)
    if not ctx.can(Permission.ORDERS_MANAGE) and order.status != OrderStatus.PENDING:
        raise InvalidTransitionError(
            order.status.value, OrderStatus.CANCELLED.value,
            "customers can only cancel pending orders"
        )

    previous = order.status
    transition_order(
        ctx.scope,
        order,
        OrderStatus.CANCELLED,
        actor=ctx.actor,
        cancellation_reason=data.reason,
    )
    record_audit(
        ctx.db, "order.cancel", "order", order.id,
        actor=ctx.actor, tenant_id=ctx.tenant_id,
        details={"from": previous.value, "reason": data.reason},
        request=request
    )
    ctx.db.commit()

    customer = ctx.scope.get(User, order.customer_id)
    schedule_status_effects(
        background_tasks.add_task, ctx.tenant_id, order,
        customer_phone=customer.phone if customer else None
    )
    return order
