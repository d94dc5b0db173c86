"""
Webhook Dispatch

Business events are posted to every enabled subscription of the tenant
after the response has been sent (FastAPI BackgroundTasks). Delivery is a
single attempt; each attempt is written to webhook_logs.

Payload:
    {"event": "order-placed", "tenant_id": "...", "timestamp": "...", "data": {...}}
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

import httpx
from fastapi import BackgroundTasks

from storehub.config import get_settings
from storehub.core.tenancy import TenantScope
from storehub.database import SessionLocal
from storehub.models.order import OrderStatus
from storehub.models.webhook import WebhookSubscription, WebhookLog
from storehub.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


class WebhookEvent(str, Enum):
    ORDER_PLACED = "order-placed"
    ORDER_ACCEPTED = "order-accepted"
    ORDER_PACKED = "order-packed"
    ORDER_DISPATCHED = "order-dispatched"
    ORDER_DELIVERED = "order-delivered"
    ORDER_CANCELLED = "order-cancelled"
    ORDER_READY_FOR_PICKUP = "order-ready-for-pickup"
    CUSTOMER_REGISTERED = "customer-registered"
    PRODUCT_CREATED = "product-created"
    PRODUCT_OUT_OF_STOCK = "product-out-of-stock"
    LOYALTY_POINTS_EARNED = "loyalty-points-earned"


ORDER_STATUS_EVENTS = {
    OrderStatus.ACCEPTED: WebhookEvent.ORDER_ACCEPTED,
    OrderStatus.PACKED: WebhookEvent.ORDER_PACKED,
    OrderStatus.DISPATCHED: WebhookEvent.ORDER_DISPATCHED,
    OrderStatus.DELIVERED: WebhookEvent.ORDER_DELIVERED,
    OrderStatus.CANCELLED: WebhookEvent.ORDER_CANCELLED,
    OrderStatus.READY_FOR_PICKUP: WebhookEvent.ORDER_READY_FOR_PICKUP,
}


def get_http_client() -> httpx.Client:
    """Client used for webhook delivery. Replaced in tests with a mock transport."""
    return httpx.Client(timeout=settings.WEBHOOK_TIMEOUT_SECONDS)


def build_payload(event: str, tenant_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "event": event,
        "tenant_id": tenant_id,
        "timestamp": datetime.utcnow().isoformat(),
        "data": data,
    }


def deliver_event(
    tenant_id: str,
    event: str,
    data: Dict[str, Any],
    client: Optional[httpx.Client] = None,
) -> int:
    """
    Post one event to every enabled subscription of the tenant.

    Opens its own session: it runs after the request session is gone.
    Every attempt is logged, whatever goes wrong with the target.
    Returns the number of successful deliveries.
    """
    event = WebhookEvent(event).value
    owns_client = client is None
    db = SessionLocal()
    delivered = 0

    try:
        scope = TenantScope(db, tenant_id)
        subscriptions = scope.query(
            WebhookSubscription,
            WebhookSubscription.event_type == event,
            WebhookSubscription.enabled == True  # noqa: E712
        ).all()

        if not subscriptions:
            return 0

        payload = build_payload(event, tenant_id, data)
        if owns_client:
            client = get_http_client()

        for subscription in subscriptions:
            log = WebhookLog(
                subscription_id=subscription.id,
                event_type=event,
                target_url=subscription.target_url,
                payload=payload,
            )
            try:
                response = client.post(
                    subscription.target_url,
                    json=payload,
                    headers={"X-StoreHub-Event": event},
                )
                log.status_code = response.status_code
                log.success = response.is_success
                if not response.is_success:
                    log.error = response.text[:1000]
            except httpx.HTTPError as e:
                log.success = False
                log.error = f"{type(e).__name__}: {e}"
            except Exception as e:
                logger.exception(
                    f"Webhook delivery crashed: {event} -> {subscription.target_url}",
                    extra={"tenant_id": tenant_id}
                )
                log.success = False
                log.error = f"{type(e).__name__}: {e}"

            if log.success:
                delivered += 1
            else:
                logger.warning(
                    f"Webhook delivery failed: {event} -> {subscription.target_url}",
                    extra={"tenant_id": tenant_id}
                )
            scope.add(log)
            # One commit per attempt: a later failure keeps earlier logs
            db.commit()

        return delivered

    finally:
        if owns_client and client is not None:
            client.close()
        db.close()


def queue_event(
    background_tasks: BackgroundTasks,
    tenant_id: str,
    event: WebhookEvent,
    data: Dict[str, Any],
) -> None:
    """Schedule delivery after the response is sent."""
    background_tasks.add_task(deliver_event, tenant_id, event.value, data)


def order_event_data(order) -> Dict[str, Any]:
    return {
        "order_id": order.id,
        "order_number": order.order_number,
        "customer_id": order.customer_id,
        "status": order.status.value,
        "delivery_type": order.delivery_type.value,
        "total": float(order.total),
        "payment_status": order.payment_status.value,
    }


def product_event_data(product) -> Dict[str, Any]:
    return {
        "product_id": product.id,
        "name": product.name,
        "sku": product.sku,
        "price": float(product.price),
        "inventory_count": product.inventory_count,
    }
