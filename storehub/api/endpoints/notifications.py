"""
Notification Endpoints

In-app notifications for the current actor. Admins also see the
tenant-wide notifications (recipient NULL). Admins can send channel
messages to customers; delivery happens after the response.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from sqlalchemy import or_
from typing import Optional

from storehub.models.notification import MessageChannel, MessageLog, MessageStatus, Notification
from storehub.schemas.notification import (
    MessageLogResponse,
    MessageSend,
    NotificationListResponse,
    NotificationResponse,
)
from storehub.api.deps import tenant_scope
from storehub.api.endpoints.customers import get_customer
from storehub.core.exceptions import InvalidInputError, NotFoundError
from storehub.core.permissions import Permission
from storehub.core.tenancy import TenantContext
from storehub.services.audit import record_audit
from storehub.services.notifications import queue_message

router = APIRouter(prefix="/notifications", tags=["notifications"])

read_scope = tenant_scope(Permission.NOTIFICATIONS_READ)
send_scope = tenant_scope(Permission.NOTIFICATIONS_SEND)


def _own_notifications(ctx: TenantContext):
    if ctx.can(Permission.NOTIFICATIONS_SEND):
        return ctx.scope.query(
            Notification,
            or_(Notification.recipient_id == ctx.actor_id, Notification.recipient_id.is_(None))
        )
    return ctx.scope.query(Notification, Notification.recipient_id == ctx.actor_id)


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
    ctx: TenantContext = Depends(read_scope)
):
    query = _own_notifications(ctx)
    unread = query.filter(Notification.read == False).count()  # noqa: E712
    if unread_only:
        query = query.filter(Notification.read == False)  # noqa: E712

    notifications = query.order_by(Notification.created_at.desc()).limit(limit).all()
    return NotificationListResponse(notifications=notifications, unread=unread)


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(notification_id: str, ctx: TenantContext = Depends(read_scope)):
    notification = _own_notifications(ctx).filter(Notification.id == notification_id).first()
    if notification is None:
        raise NotFoundError("Notification", notification_id)

    notification.read = True
    ctx.db.commit()
    return notification


@router.post("/read-all", status_code=status.HTTP_204_NO_CONTENT)
async def mark_all_read(ctx: TenantContext = Depends(read_scope)):
    for notification in _own_notifications(ctx).filter(Notification.read == False).all():  # noqa: E712
        notification.read = True
    ctx.db.commit()
    return None


@router.post("/messages", status_code=status.HTTP_202_ACCEPTED)
async def send_customer_message(
    data: MessageSend,
    request: Request,
    background_tasks: BackgroundTasks,
    ctx: TenantContext = Depends(send_scope)
):
    """Queue an SMS/WhatsApp/push message to a customer."""
    customer = get_customer(ctx, data.customer_id)
    if data.channel != MessageChannel.PUSH and not customer.phone:
        raise InvalidInputError("Customer has no phone number")

    destination = customer.phone if data.channel != MessageChannel.PUSH else customer.id
    record_audit(
        ctx.db, "message.send", "user", customer.id,
        actor=ctx.actor, tenant_id=ctx.tenant_id, details={"channel": data.channel.value}, request=request
    )
    ctx.db.commit()

    queue_message(background_tasks, ctx.tenant_id, data.channel, destination, data.body, customer.id)
    return {"queued": True, "channel": data.channel.value, "customer_id": customer.id}


@router.get("/messages", response_model=list[MessageLogResponse])
async def list_messages(
    message_status: Optional[MessageStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    ctx: TenantContext = Depends(send_scope)
):
    query = ctx.scope.query(MessageLog)
    if message_status:
        query = query.filter(MessageLog.status == message_status)
    return query.order_by(MessageLog.created_at.desc()).limit(limit).all()
