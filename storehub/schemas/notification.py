"""
Notification, Webhook, Audit and Analytics Schemas

Smaller response models grouped together.
"""
from pydantic import BaseModel, Field, HttpUrl
from typing import Any, Optional
from datetime import datetime
from storehub.models.notification import NotificationPriority, MessageChannel, MessageStatus


class NotificationResponse(BaseModel):
    id: str
    recipient_id: Optional[str] = None
    type: str
    title: str
    message: str
    data: Optional[dict[str, Any]] = None
    priority: NotificationPriority
    read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    unread: int


class MessageSend(BaseModel):
    """Send a channel message to a customer of the tenant."""
    customer_id: str
    channel: MessageChannel
    body: str = Field(..., min_length=1, max_length=1000)


class MessageLogResponse(BaseModel):
    id: str
    recipient_id: Optional[str] = None
    channel: MessageChannel
    destination: Optional[str] = None
    body: str
    status: MessageStatus
    status_code: Optional[int] = None
    error: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class WebhookSubscriptionCreate(BaseModel):
    event_type: str
    target_url: HttpUrl
    enabled: bool = True


class WebhookSubscriptionResponse(BaseModel):
    id: str
    tenant_id: str
    event_type: str
    target_url: str
    enabled: bool
    created_at: datetime

    class Config:
        from_attributes = True


class WebhookLogResponse(BaseModel):
    id: str
    subscription_id: Optional[str] = None
    event_type: str
    target_url: str
    payload: dict[str, Any]
    success: bool
    status_code: Optional[int] = None
    error: Optional[str] = None
    triggered_at: datetime

    class Config:
        from_attributes = True


class AuditLogResponse(BaseModel):
    id: str
    tenant_id: Optional[str] = None
    actor_id: Optional[str] = None
    actor_role: Optional[str] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    details: Optional[dict[str, Any]] = None
    ip_address: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogListResponse(BaseModel):
    logs: list[AuditLogResponse]
    total: int
    page: int
    page_size: int


class TenantSummary(BaseModel):
    tenant_id: str
    revenue: float
    delivered_orders: int
    average_order_value: float
    orders_by_status: dict[str, int]
    customers: int
    products: int
    pending_credit_requests: int


class TopTenant(BaseModel):
    tenant_id: str
    name: str
    revenue: float


class PlatformSummary(BaseModel):
    tenants_by_status: dict[str, int]
    total_orders: int
    total_revenue: float
    top_tenants: list[TopTenant]
