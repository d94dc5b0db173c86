"""
Order Lifecycle

Creation, status transitions, cancellation and auto-acceptance.

Every transition writes the new status, its timestamp column and an
order_status_history row in the caller's transaction. Repeating the
current status or skipping a step is rejected with InvalidTransitionError
(HTTP 409) and writes nothing.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from sqlalchemy.orm import Session

from storehub.config import get_settings
from storehub.core.exceptions import InvalidInputError, InvalidTransitionError
from storehub.core.tenancy import TenantScope
from storehub.models.catalog import Product
from storehub.models.ledger import LoyaltyTransaction
from storehub.models.order import (
    DELIVERY_ONLY_STATUSES,
    FULFILLED_STATUSES,
    ORDER_TRANSITIONS,
    PICKUP_ONLY_STATUSES,
    STATUS_TIMESTAMP_FIELDS,
    DeliveryType,
    Order,
    OrderItem,
    OrderStatus,
    OrderStatusHistory,
    PaymentStatus,
)
from storehub.models.tenant import Tenant, TenantStatus
from storehub.models.user import User
from storehub.schemas.order import OrderCreate
from storehub.models.notification import MessageChannel
from storehub.services.ledger import award_points, release_order_credit
from storehub.services.notifications import notify, send_message
from storehub.services.webhooks import ORDER_STATUS_EVENTS, WebhookEvent, deliver_event, order_event_data
from storehub.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


def generate_order_number(scope: TenantScope, now: Optional[datetime] = None) -> str:
    """
    Next order number of the day for this tenant: ORD-YYYYMMDD-NNNN.
    """
    now = now or datetime.utcnow()
    prefix = f"ORD-{now:%Y%m%d}-"
    sequence = scope.query(Order, Order.order_number.like(f"{prefix}%")).count() + 1

    candidate = f"{prefix}{sequence:04d}"
    while scope.query(Order, Order.order_number == candidate).first() is not None:
        sequence += 1
        candidate = f"{prefix}{sequence:04d}"
    return candidate


def get_order_for_update(scope: TenantScope, order_id: str) -> Optional[Order]:
    """Load an order with a row lock (no-op on SQLite)."""
    return scope.query(Order, Order.id == order_id).with_for_update().first()


def create_order(
    scope: TenantScope,
    customer: User,
    data: OrderCreate,
    placed_by: User,
) -> Tuple[Order, List[Product]]:
    """
    Price the items from the catalog, reserve inventory and open the order.

    Returns the order and the products whose inventory reached zero.
    """
    if data.delivery_type == DeliveryType.DELIVERY and not data.delivery_address:
        raise InvalidInputError("Delivery address is required for delivery orders")

    # Merge repeated product lines
    quantities = {}
    for item in data.items:
        quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity

    now = datetime.utcnow()
    order = Order(
        customer_id=customer.id,
        order_number=generate_order_number(scope, now),
        status=OrderStatus.PENDING,
        delivery_type=data.delivery_type,
        payment_method=data.payment_method,
        payment_status=PaymentStatus.PENDING,
        delivery_address=data.delivery_address,
        delivery_phone=data.delivery_phone or customer.phone,
        notes=data.notes,
        acceptance_deadline=now + timedelta(seconds=settings.AUTO_ACCEPT_SECONDS),
        created_at=now,
    )

    total = Decimal("0.00")
    depleted = []
    for product_id, quantity in quantities.items():
        product = scope.query(Product, Product.id == product_id).with_for_update().first()
        if product is None or not product.active:
            raise InvalidInputError(f"Product not available: {product_id}")
        if product.inventory_count < quantity:
            raise InvalidInputError(
                f"Insufficient inventory for {product.name}: {product.inventory_count} available"
            )

        product.inventory_count -= quantity
        if product.inventory_count == 0:
            depleted.append(product)

        line_total = product.price * quantity
        total += line_total
        order.items.append(OrderItem(
            tenant_id=scope.tenant_id,
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            unit_price=product.price,
            line_total=line_total,
        ))

    order.total = total
    order.history.append(OrderStatusHistory(
        tenant_id=scope.tenant_id,
        from_status=None,
        to_status=OrderStatus.PENDING,
        changed_by=placed_by.id,
        notes="Order placed",
        changed_at=now,
    ))
    scope.add(order)

    logger.info(f"Order {order.order_number} placed for customer {customer.id}, total {total}")
    return order, depleted


def check_transition(order: Order, new_status: OrderStatus) -> None:
    """Raise InvalidTransitionError unless order may move to new_status."""
    current = order.status
    if new_status not in ORDER_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(current.value, new_status.value)

    if new_status in DELIVERY_ONLY_STATUSES and order.delivery_type != DeliveryType.DELIVERY:
        raise InvalidTransitionError(current.value, new_status.value, "only delivery orders can be dispatched or delivered")
    if new_status in PICKUP_ONLY_STATUSES and order.delivery_type != DeliveryType.PICKUP:
        raise InvalidTransitionError(current.value, new_status.value, "only pickup orders can be ready for pickup")


def restore_inventory(scope: TenantScope, order: Order) -> None:
    for item in order.items:
        if not item.product_id:
            continue
        product = scope.get(Product, item.product_id)
        if product is not None:
            product.inventory_count += item.quantity


def transition_order(
    scope: TenantScope,
    order: Order,
    new_status: OrderStatus,
    actor: Optional[User],
    notes: Optional[str] = None,
    tracking_number: Optional[str] = None,
    cancellation_reason: Optional[str] = None,
    auto: bool = False,
) -> Optional[LoyaltyTransaction]:
    """
    Move an order to new_status.

    Side effects by target status:
    - accepted: accepted_by / auto_accepted
    - cancelled: inventory restored, credit released, reason kept
    - delivered, ready_for_pickup: loyalty points, cash payment completed

    Returns the loyalty transaction when points were awarded.
    """
    check_transition(order, new_status)

    now = datetime.utcnow()
    previous = order.status
    order.status = new_status
    setattr(order, STATUS_TIMESTAMP_FIELDS[new_status], now)

    if tracking_number:
        order.tracking_number = tracking_number

    if new_status == OrderStatus.ACCEPTED:
        order.accepted_by = actor.id if actor else None
        order.auto_accepted = auto

    if new_status == OrderStatus.CANCELLED:
        order.cancellation_reason = cancellation_reason or notes
        restore_inventory(scope, order)
        release_order_credit(scope, order, actor)

    loyalty = None
    if new_status in FULFILLED_STATUSES:
        if order.payment_status == PaymentStatus.PENDING:
            order.payment_status = PaymentStatus.COMPLETED
        loyalty = award_points(scope, order)

    scope.add(OrderStatusHistory(
        order_id=order.id,
        from_status=previous,
        to_status=new_status,
        changed_by=actor.id if actor else None,
        notes=notes or cancellation_reason,
        changed_at=now,
    ))

    notify(
        scope,
        "order_status",
        f"Order {order.order_number} {new_status.value.replace('_', ' ')}",
        status_message(order),
        recipient_id=order.customer_id,
        data={"order_id": order.id, "status": new_status.value},
    )

    logger.info(f"Order {order.order_number}: {previous.value} -> {new_status.value}")
    return loyalty


@dataclass
class AutoAcceptOutcome:
    accepted: List[Order] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)


def auto_accept_orders(db: Session, now: Optional[datetime] = None) -> AutoAcceptOutcome:
    """
    Accept every pending order of an active tenant past its deadline.

    Each order is committed on its own. A failing order is rolled back,
    logged and reported; the batch continues. Only orders still pending
    are selected, so running twice accepts nothing new.
    """
    now = now or datetime.utcnow()
    outcome = AutoAcceptOutcome()

    tenant_ids = [row.id for row in db.query(Tenant.id).filter(Tenant.status == TenantStatus.ACTIVE).all()]
    for tenant_id in tenant_ids:
        scope = TenantScope(db, tenant_id)
        due_ids = [
            row.id for row in scope.query_columns(Order, Order.id).filter(
                Order.status == OrderStatus.PENDING,
                Order.acceptance_deadline <= now,
            ).all()
        ]

        for order_id in due_ids:
            try:
                order = get_order_for_update(scope, order_id)
                if order is None or order.status != OrderStatus.PENDING:
                    db.rollback()
                    continue
                transition_order(
                    scope,
                    order,
                    OrderStatus.ACCEPTED,
                    actor=None,
                    notes="Auto-accepted after acceptance deadline",
                    auto=True,
                )
                db.commit()
                outcome.accepted.append(order)
            except Exception as e:
                db.rollback()
                logger.exception(f"Auto-accept failed for order {order_id}", extra={"tenant_id": tenant_id})
                outcome.failed.append((order_id, str(e)))

    if outcome.accepted or outcome.failed:
        logger.info(f"Auto-accept: {len(outcome.accepted)} accepted, {len(outcome.failed)} failed")
    return outcome


STATUS_MESSAGES = {
    OrderStatus.ACCEPTED: "Your order {number} has been accepted.",
    OrderStatus.PACKED: "Your order {number} has been packed.",
    OrderStatus.DISPATCHED: "Your order {number} is on its way.",
    OrderStatus.DELIVERED: "Your order {number} has been delivered.",
    OrderStatus.READY_FOR_PICKUP: "Your order {number} is ready for pickup.",
    OrderStatus.CANCELLED: "Your order {number} has been cancelled.",
}


def status_message(order: Order) -> str:
    template = STATUS_MESSAGES.get(order.status, "Your order {number} is now {status}.")
    return template.format(number=order.order_number, status=order.status.value)


def schedule_status_effects(
    schedule: Callable,
    tenant_id: str,
    order: Order,
    customer_phone: Optional[str] = None,
    loyalty: Optional[LoyaltyTransaction] = None,
) -> None:
    """
    Queue the outbound side effects of a committed transition.

    `schedule` is BackgroundTasks.add_task in request handlers and a plain
    call in batch jobs.
    """
    event = ORDER_STATUS_EVENTS.get(order.status)
    if event is not None:
        schedule(deliver_event, tenant_id, event.value, order_event_data(order))

    if loyalty is not None:
        schedule(deliver_event, tenant_id, WebhookEvent.LOYALTY_POINTS_EARNED.value, {
            "customer_id": order.customer_id,
            "order_id": order.id,
            "points": loyalty.points,
            "purchase_amount": float(order.total),
        })

    if customer_phone:
        schedule(
            send_message,
            tenant_id,
            MessageChannel.SMS.value,
            customer_phone,
            status_message(order),
            order.customer_id,
        )
