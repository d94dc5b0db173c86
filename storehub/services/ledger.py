"""
Credit Ledger and Loyalty

Balances on the customer row change only together with the ledger or
loyalty row that explains them. Callers commit.

Credit flow:
    customer requests credit for an order -> pending credit_purchase entry
    admin approves -> credit_balance += order total
    admin rejects  -> balance unchanged
    admin records a payment -> credit_balance -= amount (never below zero)
    order cancelled -> pending request rejected, approved credit reversed
"""
from datetime import datetime
from decimal import Decimal, ROUND_FLOOR
from typing import List, Optional

from storehub.config import get_settings
from storehub.core.exceptions import ConflictError, CreditLimitExceeded, InvalidInputError
from storehub.core.tenancy import TenantScope
from storehub.models.ledger import (
    LedgerEntry,
    LedgerEntryStatus,
    LedgerEntryType,
    LoyaltyTransaction,
    LoyaltyTransactionType,
)
from storehub.models.order import Order, OrderStatus, PaymentStatus
from storehub.models.user import User
from storehub.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

ZERO = Decimal("0.00")


def request_credit(scope: TenantScope, customer: User, order: Order, notes: Optional[str] = None) -> LedgerEntry:
    """Open a pending credit request for one of the customer's orders."""
    if order.customer_id != customer.id:
        raise InvalidInputError("Credit can only be requested for your own orders")
    if order.status == OrderStatus.CANCELLED:
        raise InvalidInputError("Cannot request credit for a cancelled order")

    pending = scope.query(
        LedgerEntry,
        LedgerEntry.order_id == order.id,
        LedgerEntry.status == LedgerEntryStatus.PENDING,
    ).first()
    if pending:
        raise ConflictError("A credit request for this order is already pending")

    if order.payment_status == PaymentStatus.CREDIT_APPROVED:
        raise ConflictError("Credit for this order is already approved")

    balance = customer.credit_balance or ZERO
    if customer.credit_limit is not None and balance + order.total > customer.credit_limit:
        raise CreditLimitExceeded(
            f"Credit limit exceeded: balance {balance} + order {order.total} > limit {customer.credit_limit}"
        )

    entry = LedgerEntry(
        customer_id=customer.id,
        order_id=order.id,
        entry_type=LedgerEntryType.CREDIT_PURCHASE,
        status=LedgerEntryStatus.PENDING,
        amount=order.total,
        balance=balance,
        notes=notes,
    )
    scope.add(entry)
    order.payment_status = PaymentStatus.CREDIT_REQUESTED
    return entry


def decide_credit(
    scope: TenantScope,
    entry: LedgerEntry,
    approve: bool,
    admin: User,
    notes: Optional[str] = None,
) -> LedgerEntry:
    """Approve or reject a pending credit request."""
    if entry.entry_type != LedgerEntryType.CREDIT_PURCHASE or entry.status != LedgerEntryStatus.PENDING:
        raise ConflictError("Only pending credit requests can be decided")

    customer = scope.get(User, entry.customer_id)
    order = scope.get(Order, entry.order_id) if entry.order_id else None

    if approve and order is not None and order.status == OrderStatus.CANCELLED:
        raise ConflictError("Cannot approve credit for a cancelled order")

    if approve:
        # Limit re-checked: other requests may have been approved meanwhile
        balance = customer.credit_balance or ZERO
        if customer.credit_limit is not None and balance + entry.amount > customer.credit_limit:
            raise CreditLimitExceeded()
        customer.credit_balance = balance + entry.amount
        entry.status = LedgerEntryStatus.APPROVED
        entry.balance = customer.credit_balance
        if order is not None:
            order.payment_status = PaymentStatus.CREDIT_APPROVED
    else:
        entry.status = LedgerEntryStatus.REJECTED
        entry.balance = customer.credit_balance or ZERO
        if order is not None:
            order.payment_status = PaymentStatus.CREDIT_REJECTED

    entry.decided_by = admin.id
    entry.decided_at = datetime.utcnow()
    if notes:
        entry.notes = notes

    logger.info(f"Credit request {entry.id} {entry.status.value} by {admin.id}")
    return entry


def record_payment(
    scope: TenantScope,
    customer: User,
    amount: Decimal,
    admin: User,
    payment_method: str = "cash",
    payment_reference: Optional[str] = None,
    notes: Optional[str] = None,
) -> LedgerEntry:
    """Record a repayment against the customer's credit balance."""
    balance = customer.credit_balance or ZERO
    new_balance = max(ZERO, balance - amount)
    customer.credit_balance = new_balance

    entry = LedgerEntry(
        customer_id=customer.id,
        entry_type=LedgerEntryType.PAYMENT,
        status=LedgerEntryStatus.SETTLED,
        amount=amount,
        balance=new_balance,
        payment_method=payment_method,
        payment_reference=payment_reference,
        notes=notes,
        decided_by=admin.id,
        decided_at=datetime.utcnow(),
    )
    return scope.add(entry)


def release_order_credit(scope: TenantScope, order: Order, actor: Optional[User]) -> List[LedgerEntry]:
    """
    Undo the credit side of a cancelled order.

    A pending request is rejected. Approved credit is reversed with a
    credit_reversal entry and taken off the customer's balance (never below
    zero). Returns the reversal entries written.
    """
    entries = scope.query(
        LedgerEntry,
        LedgerEntry.order_id == order.id,
        LedgerEntry.entry_type == LedgerEntryType.CREDIT_PURCHASE,
        LedgerEntry.status.in_([LedgerEntryStatus.PENDING, LedgerEntryStatus.APPROVED]),
    ).all()

    now = datetime.utcnow()
    reversals = []
    for entry in entries:
        customer = scope.get(User, entry.customer_id)
        balance = customer.credit_balance or ZERO

        if entry.status == LedgerEntryStatus.PENDING:
            entry.status = LedgerEntryStatus.REJECTED
            entry.balance = balance
            entry.decided_by = actor.id if actor else None
            entry.decided_at = now
            entry.notes = f"Order {order.order_number} cancelled"
            order.payment_status = PaymentStatus.CREDIT_REJECTED
            continue

        customer.credit_balance = max(ZERO, balance - entry.amount)
        reversals.append(scope.add(LedgerEntry(
            customer_id=customer.id,
            order_id=order.id,
            entry_type=LedgerEntryType.CREDIT_REVERSAL,
            status=LedgerEntryStatus.SETTLED,
            amount=entry.amount,
            balance=customer.credit_balance,
            notes=f"Order {order.order_number} cancelled",
            decided_by=actor.id if actor else None,
            decided_at=now,
        )))

    if entries:
        logger.info(f"Released credit of cancelled order {order.order_number}: {len(reversals)} reversed")
    return reversals


def points_for(total: Decimal) -> int:
    """One point per LOYALTY_SPEND_PER_POINT spent, rounded down."""
    per_point = Decimal(settings.LOYALTY_SPEND_PER_POINT)
    return int((Decimal(total) / per_point).to_integral_value(rounding=ROUND_FLOOR))


def award_points(scope: TenantScope, order: Order) -> Optional[LoyaltyTransaction]:
    """
    Credit loyalty points for a fulfilled order.

    Returns None when the order is too small to earn a point.
    """
    points = points_for(order.total)
    if points <= 0:
        return None

    customer = scope.get(User, order.customer_id)
    customer.loyalty_points = (customer.loyalty_points or 0) + points

    transaction = LoyaltyTransaction(
        customer_id=customer.id,
        order_id=order.id,
        transaction_type=LoyaltyTransactionType.EARNED,
        points=points,
        purchase_amount=order.total,
        description=f"Order {order.order_number}",
    )
    return scope.add(transaction)


def redeem_points(
    scope: TenantScope,
    customer: User,
    points: int,
    description: Optional[str] = None,
) -> LoyaltyTransaction:
    available = customer.loyalty_points or 0
    if points > available:
        raise InvalidInputError(f"Insufficient loyalty points: {available} available")

    customer.loyalty_points = available - points
    transaction = LoyaltyTransaction(
        customer_id=customer.id,
        transaction_type=LoyaltyTransactionType.REDEEMED,
        points=points,
        description=description or "Points redeemed",
    )
    return scope.add(transaction)
