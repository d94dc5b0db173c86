"""
Webhook Models

Per-tenant subscriptions to business events and a log of every delivery
attempt. Automation tools (n8n and the like) are the usual consumers.
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Index, Integer, JSON
from datetime import datetime
from storehub.database import Base
from storehub.models.mixins import TenantScopedMixin
import uuid


class WebhookSubscription(TenantScopedMixin, Base):
    __tablename__ = "webhook_subscriptions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    event_type = Column(String(50), nullable=False)
    target_url = Column(String(1024), nullable=False)
    enabled = Column(Boolean, default=True, nullable=False)

    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_webhook_tenant_event', 'tenant_id', 'event_type', 'enabled'),
    )


class WebhookLog(TenantScopedMixin, Base):
    __tablename__ = "webhook_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    subscription_id = Column(
        String(36),
        ForeignKey("webhook_subscriptions.id", ondelete="SET NULL"),
        nullable=True
    )
    event_type = Column(String(50), nullable=False, index=True)
    target_url = Column(String(1024), nullable=False)
    payload = Column(JSON, nullable=False)

    success = Column(Boolean, default=False, nullable=False)
    status_code = Column(Integer, nullable=True)
    error = Column(Text, nullable=True)

    triggered_at = Column(DateTime, default=datetime.utcnow, nullable=False)
