"""
Webhook Subscription Endpoints

Admins subscribe URLs to business events and inspect delivery attempts.
"""
from fastapi import APIRouter, Depends, Query, Request, status
from typing import Optional

from storehub.models.webhook import WebhookLog, WebhookSubscription
from storehub.schemas.notification import (
    WebhookLogResponse,
    WebhookSubscriptionCreate,
    WebhookSubscriptionResponse,
)
from storehub.api.deps import tenant_scope
from storehub.core.exceptions import InvalidInputError, NotFoundError
from storehub.core.permissions import Permission
from storehub.core.tenancy import TenantContext
from storehub.services.audit import record_audit
from storehub.services.webhooks import WebhookEvent

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

manage_scope = tenant_scope(Permission.WEBHOOKS_MANAGE)


@router.get("/events", response_model=list[str])
async def list_event_types(ctx: TenantContext = Depends(manage_scope)):
    return [event.value for event in WebhookEvent]


@router.get("", response_model=list[WebhookSubscriptionResponse])
async def list_subscriptions(ctx: TenantContext = Depends(manage_scope)):
    return ctx.scope.query(WebhookSubscription).order_by(WebhookSubscription.created_at).all()


@router.post("", response_model=WebhookSubscriptionResponse, status_code=status.HTTP_201_CREATED)
async def create_subscription(
    data: WebhookSubscriptionCreate,
    request: Request,
    ctx: TenantContext = Depends(manage_scope)
):
    try:
        event = WebhookEvent(data.event_type)
    except ValueError:
        raise InvalidInputError(f"Unknown event type: {data.event_type}")

    subscription = ctx.scope.add(WebhookSubscription(
        event_type=event.value,
        target_url=str(data.target_url),
        enabled=data.enabled,
        created_by=ctx.actor_id,
    ))
    ctx.db.flush()

    record_audit(
        ctx.db, "webhook.create", "webhook_subscription", subscription.id,
        actor=ctx.actor, tenant_id=ctx.tenant_id,
        details={"event_type": event.value, "target_url": subscription.target_url}, request=request
    )
    ctx.db.commit()
    return subscription


@router.delete("/{subscription_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subscription(
    subscription_id: str,
    request: Request,
    ctx: TenantContext = Depends(manage_scope)
):
    subscription = ctx.scope.get_or_404(
        WebhookSubscription, subscription_id, NotFoundError("Webhook subscription", subscription_id)
    )
    ctx.db.delete(subscription)

    record_audit(
        ctx.db, "webhook.delete", "webhook_subscription", subscription_id,
        actor=ctx.actor, tenant_id=ctx.tenant_id, details={"event_type": subscription.event_type}, request=request
    )
    ctx.db.commit()
    return None


@router.get("/logs", response_model=list[WebhookLogResponse])
async def list_delivery_logs(
    event_type: Optional[str] = None,
    success: Optional[bool] = None,
    limit: int = Query(50, ge=1, le=200),
    ctx: TenantContext = Depends(manage_scope)
):
    query = ctx.scope.query(WebhookLog)
    if event_type:
        query = query.filter(WebhookLog.event_type == event_type)
    if success is not None:
        query = query.filter(WebhookLog.success == success)
    return query.order_by(WebhookLog.triggered_at.desc()).limit(limit).all()
