"""
Ledger and Loyalty Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal
from storehub.models.ledger import LedgerEntryType, LedgerEntryStatus, LoyaltyTransactionType


class CreditRequest(BaseModel):
    order_id: str
    notes: Optional[str] = None


class CreditDecision(BaseModel):
    approve: bool
    notes: Optional[str] = None


class PaymentCreate(BaseModel):
    customer_id: str
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    payment_method: str = Field("cash", max_length=50)
    payment_reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class LedgerEntryResponse(BaseModel):
    id: str
    tenant_id: str
    customer_id: str
    order_id: Optional[str] = None
    entry_type: LedgerEntryType
    status: LedgerEntryStatus
    amount: float
    balance: float
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    notes: Optional[str] = None
    decided_by: Optional[str] = None
    decided_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CustomerLedgerResponse(BaseModel):
    customer_id: str
    credit_limit: Optional[float] = None
    credit_balance: float
    entries: list[LedgerEntryResponse]


class LoyaltyTransactionResponse(BaseModel):
    id: str
    customer_id: str
    order_id: Optional[str] = None
    transaction_type: LoyaltyTransactionType
    points: int
    purchase_amount: Optional[float] = None
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LoyaltyHistoryResponse(BaseModel):
    customer_id: str
    loyalty_points: int
    transactions: list[LoyaltyTransactionResponse]


class LoyaltyRedeem(BaseModel):
    customer_id: Optional[str] = None
    points: int = Field(..., ge=1)
    description: Optional[str] = Field(None, max_length=255)
