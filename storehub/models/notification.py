"""
Notification Models

In-app notifications and the delivery log for outbound channels
(SMS, WhatsApp, push). Delivery is single-attempt; failures stay in
message_logs for manual inspection.
"""
from sqlalchemy import (
    Column, String, Text, Boolean, DateTime, ForeignKey, Index, Integer, JSON,
    Enum as SQLEnum
)
from datetime import datetime
from storehub.database import Base
from storehub.models.mixins import TenantScopedMixin
import uuid
import enum


class NotificationPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Notification(TenantScopedMixin, Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # NULL recipient = every admin of the tenant
    recipient_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)

    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    priority = Column(SQLEnum(NotificationPriority), default=NotificationPriority.MEDIUM, nullable=False)
    read = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_notification_tenant_recipient', 'tenant_id', 'recipient_id', 'read'),
    )


class MessageChannel(str, enum.Enum):
    SMS = "sms"
    WHATSAPP = "whatsapp"
    PUSH = "push"


class MessageStatus(str, enum.Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"  # no gateway configured for the channel


class MessageLog(TenantScopedMixin, Base):
    __tablename__ = "message_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    recipient_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    channel = Column(SQLEnum(MessageChannel), nullable=False)
    destination = Column(String(255), nullable=True)
    body = Column(Text, nullable=False)

    status = Column(SQLEnum(MessageStatus), nullable=False, index=True)
    status_code = Column(Integer, nullable=True)
    error = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
