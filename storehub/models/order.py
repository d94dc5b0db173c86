"""
Order Models

Orders, their line items and the status history trail.

Lifecycle:
    pending -> accepted -> packed -> dispatched -> delivered
    accepted/packed -> ready_for_pickup   (pickup orders, terminal)
    any state before delivered -> cancelled

The transition table lives here so the service layer and the tests
share one definition.
"""
from sqlalchemy import (
    Column, String, Text, Boolean, DateTime, ForeignKey, Index, Integer, Numeric,
    Enum as SQLEnum
)
from sqlalchemy.orm import relationship
from datetime import datetime
from storehub.database import Base
from storehub.models.mixins import TenantScopedMixin
import uuid
import enum


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    PACKED = "packed"
    DISPATCHED = "dispatched"
    DELIVERED = "delivered"
    READY_FOR_PICKUP = "ready_for_pickup"
    CANCELLED = "cancelled"


class DeliveryType(str, enum.Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CREDIT_REQUESTED = "credit_requested"
    CREDIT_APPROVED = "credit_approved"
    CREDIT_REJECTED = "credit_rejected"


ORDER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.ACCEPTED, OrderStatus.CANCELLED},
    OrderStatus.ACCEPTED: {OrderStatus.PACKED, OrderStatus.READY_FOR_PICKUP, OrderStatus.CANCELLED},
    OrderStatus.PACKED: {OrderStatus.DISPATCHED, OrderStatus.READY_FOR_PICKUP, OrderStatus.CANCELLED},
    OrderStatus.DISPATCHED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.READY_FOR_PICKUP: set(),
    OrderStatus.CANCELLED: set(),
}

# Statuses only valid for one delivery type
DELIVERY_ONLY_STATUSES = {OrderStatus.DISPATCHED, OrderStatus.DELIVERED}
PICKUP_ONLY_STATUSES = {OrderStatus.READY_FOR_PICKUP}

# Completion states award loyalty points
FULFILLED_STATUSES = {OrderStatus.DELIVERED, OrderStatus.READY_FOR_PICKUP}

STATUS_TIMESTAMP_FIELDS = {
    OrderStatus.ACCEPTED: "accepted_at",
    OrderStatus.PACKED: "packed_at",
    OrderStatus.DISPATCHED: "dispatched_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.READY_FOR_PICKUP: "ready_at",
    OrderStatus.CANCELLED: "cancelled_at",
}


class Order(TenantScopedMixin, Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    customer_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    order_number = Column(String(50), nullable=False)
    status = Column(SQLEnum(OrderStatus), default=OrderStatus.PENDING, nullable=False, index=True)
    delivery_type = Column(SQLEnum(DeliveryType), default=DeliveryType.DELIVERY, nullable=False)

    total = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String(50), nullable=False)
    payment_status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)

    delivery_address = Column(Text, nullable=True)
    delivery_phone = Column(String(32), nullable=True)
    notes = Column(Text, nullable=True)
    tracking_number = Column(String(100), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    # Auto-accept bookkeeping
    acceptance_deadline = Column(DateTime, nullable=True, index=True)
    auto_accepted = Column(Boolean, default=False, nullable=False)
    accepted_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # One timestamp per lifecycle step
    accepted_at = Column(DateTime, nullable=True)
    packed_at = Column(DateTime, nullable=True)
    dispatched_at = Column(DateTime, nullable=True)
    delivered_at = Column(DateTime, nullable=True)
    ready_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    customer = relationship("User", back_populates="orders", foreign_keys=[customer_id])
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    history = relationship(
        "OrderStatusHistory",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusHistory.changed_at"
    )

    __table_args__ = (
        Index('idx_order_tenant_status', 'tenant_id', 'status'),
        Index('idx_order_tenant_customer', 'tenant_id', 'customer_id'),
        Index('idx_order_tenant_number', 'tenant_id', 'order_number', unique=True),
    )

    def __repr__(self):
        return f"<Order {self.order_number} {self.status} (tenant={self.tenant_id})>"


class OrderItem(TenantScopedMixin, Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    # Snapshot so the order survives catalog edits
    product_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    line_total = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="items")


class OrderStatusHistory(TenantScopedMixin, Base):
    __tablename__ = "order_status_history"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    from_status = Column(SQLEnum(OrderStatus), nullable=True)  # NULL for creation
    to_status = Column(SQLEnum(OrderStatus), nullable=False)
    changed_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)  # NULL = system
    notes = Column(Text, nullable=True)
    changed_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    order = relationship("Order", back_populates="history")
