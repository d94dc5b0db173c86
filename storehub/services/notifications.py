"""
Notifications

In-app notifications are rows in the tenant's notifications table: a
NULL recipient means "every admin of the tenant".

Channel messages (SMS, WhatsApp, push) are posted as JSON to the gateway
URL configured for the channel. One attempt per message; the outcome is
written to message_logs as sent, failed, or skipped when no gateway is
configured.
"""
from typing import Any, Dict, Optional

import httpx
from fastapi import BackgroundTasks
from sqlalchemy import func
from sqlalchemy.orm import Session

from storehub.config import get_settings
from storehub.core.tenancy import TenantScope
from storehub.database import SessionLocal
from storehub.models.notification import (
    MessageChannel,
    MessageLog,
    MessageStatus,
    Notification,
    NotificationPriority,
)
from storehub.models.tenant import Tenant, TenantStatus
from storehub.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

DIGEST_TYPE = "digest"


def notify(
    scope: TenantScope,
    notification_type: str,
    title: str,
    message: str,
    recipient_id: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
    priority: NotificationPriority = NotificationPriority.MEDIUM,
) -> Notification:
    """Add an in-app notification; recipient_id=None targets the tenant admins."""
    notification = Notification(
        recipient_id=recipient_id,
        type=notification_type,
        title=title,
        message=message,
        data=data,
        priority=priority,
    )
    return scope.add(notification)


def gateway_url(channel: MessageChannel) -> str:
    return {
        MessageChannel.SMS: settings.SMS_GATEWAY_URL,
        MessageChannel.WHATSAPP: settings.WHATSAPP_GATEWAY_URL,
        MessageChannel.PUSH: settings.PUSH_GATEWAY_URL,
    }[channel]


def get_http_client() -> httpx.Client:
    return httpx.Client(timeout=settings.WEBHOOK_TIMEOUT_SECONDS)


def send_message(
    tenant_id: str,
    channel: str,
    destination: Optional[str],
    body: str,
    recipient_id: Optional[str] = None,
    client: Optional[httpx.Client] = None,
) -> MessageStatus:
    """
    Deliver one channel message and log the attempt.

    Opens its own session so it can run as a background task.
    """
    channel = MessageChannel(channel)
    url = gateway_url(channel)
    log = MessageLog(
        recipient_id=recipient_id,
        channel=channel,
        destination=destination,
        body=body,
    )

    if not url or not destination:
        log.status = MessageStatus.SKIPPED
        log.error = "No gateway configured" if not url else "No destination"
    else:
        owns_client = client is None
        if owns_client:
            client = get_http_client()
        try:
            response = client.post(url, json={
                "tenant_id": tenant_id,
                "channel": channel.value,
                "to": destination,
                "body": body,
            })
            log.status_code = response.status_code
            if response.is_success:
                log.status = MessageStatus.SENT
            else:
                log.status = MessageStatus.FAILED
                log.error = response.text[:1000]
        except httpx.HTTPError as e:
            log.status = MessageStatus.FAILED
            log.error = f"{type(e).__name__}: {e}"
        finally:
            if owns_client:
                client.close()

    if log.status == MessageStatus.FAILED:
        logger.warning(f"{channel.value} message to {destination} failed", extra={"tenant_id": tenant_id})

    db = SessionLocal()
    try:
        TenantScope(db, tenant_id).add(log)
        db.commit()
    finally:
        db.close()
    return log.status


def queue_message(
    background_tasks: BackgroundTasks,
    tenant_id: str,
    channel: MessageChannel,
    destination: Optional[str],
    body: str,
    recipient_id: Optional[str] = None,
) -> None:
    background_tasks.add_task(send_message, tenant_id, channel.value, destination, body, recipient_id)


def build_digests(db: Session) -> int:
    """
    Add one digest notification per active tenant with unread admin
    notifications. Returns the number of digests created.
    """
    created = 0
    tenant_ids = [row.id for row in db.query(Tenant.id).filter(Tenant.status == TenantStatus.ACTIVE).all()]

    for tenant_id in tenant_ids:
        scope = TenantScope(db, tenant_id)
        rows = scope.query_columns(Notification, Notification.type, func.count(Notification.id)).filter(
            Notification.recipient_id.is_(None),
            Notification.read == False,  # noqa: E712
            Notification.type != DIGEST_TYPE,
        ).group_by(Notification.type).all()

        counts = {notification_type: count for notification_type, count in rows}
        unread = sum(counts.values())
        if not unread:
            continue

        summary = ", ".join(f"{count} {name}" for name, count in sorted(counts.items()))
        notify(
            scope,
            DIGEST_TYPE,
            "Daily digest",
            f"{unread} unread notifications: {summary}",
            data={"counts": counts, "unread": unread},
            priority=NotificationPriority.LOW,
        )
        created += 1

    db.commit()
    logger.info(f"Created {created} notification digests")
    return created
