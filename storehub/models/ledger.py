"""
Ledger Models

Credit ledger (store credit extended to customers) and the loyalty
points trail. Both are append-mostly: balances on the customer row are
updated in the same transaction as the entry that explains them.
"""
from sqlalchemy import (
    Column, String, Text, DateTime, ForeignKey, Index, Integer, Numeric,
    Enum as SQLEnum
)
from datetime import datetime
from storehub.database import Base
from storehub.models.mixins import TenantScopedMixin
import uuid
import enum


class LedgerEntryType(str, enum.Enum):
    CREDIT_PURCHASE = "credit_purchase"
    PAYMENT = "payment"
    CREDIT_REVERSAL = "credit_reversal"  # approved credit of a cancelled order


class LedgerEntryStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SETTLED = "settled"  # payment and reversal entries


class LedgerEntry(TenantScopedMixin, Base):
    __tablename__ = "ledger_entries"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    customer_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, index=True)

    entry_type = Column(SQLEnum(LedgerEntryType), nullable=False)
    status = Column(SQLEnum(LedgerEntryStatus), default=LedgerEntryStatus.PENDING, nullable=False, index=True)

    amount = Column(Numeric(10, 2), nullable=False)
    # Customer credit balance after this entry takes effect
    balance = Column(Numeric(10, 2), nullable=False)

    payment_method = Column(String(50), nullable=True)
    payment_reference = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    decided_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    decided_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_ledger_tenant_customer', 'tenant_id', 'customer_id'),
        Index('idx_ledger_tenant_status', 'tenant_id', 'status'),
    )


class LoyaltyTransactionType(str, enum.Enum):
    EARNED = "earned"
    REDEEMED = "redeemed"


class LoyaltyTransaction(TenantScopedMixin, Base):
    __tablename__ = "loyalty_transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    customer_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="SET NULL"), nullable=True)

    transaction_type = Column(SQLEnum(LoyaltyTransactionType), nullable=False)
    points = Column(Integer, nullable=False)  # always positive; type gives the sign
    purchase_amount = Column(Numeric(10, 2), nullable=True)
    description = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_loyalty_tenant_customer', 'tenant_id', 'customer_id'),
    )
