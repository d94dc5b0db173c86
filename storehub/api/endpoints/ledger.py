"""
Credit Ledger Endpoints

Customers ask for credit against their own orders; admins approve,
reject and record repayments. Every balance change is audited.
"""
from fastapi import APIRouter, Depends, Request, status

from storehub.models.ledger import LedgerEntry, LedgerEntryStatus, LedgerEntryType
from storehub.models.order import Order
from storehub.schemas.ledger import (
    CreditDecision,
    CreditRequest,
    CustomerLedgerResponse,
    LedgerEntryResponse,
    PaymentCreate,
)
from storehub.api.deps import tenant_scope
from storehub.api.endpoints.customers import get_customer
from storehub.core.exceptions import NotFoundError, OrderNotFoundError
from storehub.core.permissions import Permission
from storehub.core.tenancy import TenantContext
from storehub.services.audit import record_audit
from storehub.services.ledger import decide_credit, record_payment, request_credit
from storehub.services.notifications import notify
from storehub.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/ledger", tags=["ledger"])

manage_scope = tenant_scope(Permission.LEDGER_MANAGE)


@router.post("/credit-requests", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
async def create_credit_request(
    data: CreditRequest,
    request: Request,
    ctx: TenantContext = Depends(tenant_scope(Permission.CREDIT_REQUEST))
):
    """Ask the store to carry an order on the customer's credit account."""
    order = ctx.scope.get(Order, data.order_id)
    if order is None:
        ctx.scope.raise_if_foreign(Order, data.order_id)
    if order is None or order.customer_id != ctx.actor_id:
        raise OrderNotFoundError(data.order_id)

    entry = request_credit(ctx.scope, ctx.actor, order, notes=data.notes)
    ctx.db.flush()

    notify(
        ctx.scope,
        "credit_request",
        f"Credit requested for order {order.order_number}",
        f"{ctx.actor.full_name or ctx.actor.email} asked for {order.total} on credit",
        data={"entry_id": entry.id, "order_id": order.id},
    )
    record_audit(
        ctx.db, "ledger.credit_request", "ledger_entry", entry.id,
        actor=ctx.actor, tenant_id=ctx.tenant_id,
        details={"order_id": order.id, "amount": float(entry.amount)}, request=request
    )
    ctx.db.commit()
    return entry


@router.get("/pending", response_model=list[LedgerEntryResponse])
async def pending_credit_requests(ctx: TenantContext = Depends(manage_scope)):
    return ctx.scope.query(
        LedgerEntry,
        LedgerEntry.entry_type == LedgerEntryType.CREDIT_PURCHASE,
        LedgerEntry.status == LedgerEntryStatus.PENDING,
    ).order_by(LedgerEntry.created_at).all()


@router.post("/{entry_id}/decision", response_model=LedgerEntryResponse)
async def decide_credit_request(
    entry_id: str,
    data: CreditDecision,
    request: Request,
    ctx: TenantContext = Depends(manage_scope)
):
    """
    Approve or reject a pending credit request.

    Approval adds the order total to the customer's credit balance and
    fails with credit_limit_exceeded if that would pass the limit.
    """
    entry = ctx.scope.get_or_404(LedgerEntry, entry_id, NotFoundError("Ledger entry", entry_id))
    decide_credit(ctx.scope, entry, data.approve, ctx.actor, notes=data.notes)

    notify(
        ctx.scope,
        "credit_decision",
        "Credit request approved" if data.approve else "Credit request rejected",
        f"Your credit request for {entry.amount} was {entry.status.value}",
        recipient_id=entry.customer_id,
        data={"entry_id": entry.id, "status": entry.status.value},
    )
    record_audit(
        ctx.db, "ledger.credit_decision", "ledger_entry", entry.id,
        actor=ctx.actor, tenant_id=ctx.tenant_id,
        details={"status": entry.status.value, "amount": float(entry.amount)}, request=request
    )
    ctx.db.commit()
    return entry


@router.post("/payments", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    data: PaymentCreate,
    request: Request,
    ctx: TenantContext = Depends(manage_scope)
):
    customer = get_customer(ctx, data.customer_id)
    entry = record_payment(
        ctx.scope,
        customer,
        data.amount,
        ctx.actor,
        payment_method=data.payment_method,
        payment_reference=data.payment_reference,
        notes=data.notes,
    )
    ctx.db.flush()

    record_audit(
        ctx.db, "ledger.payment", "ledger_entry", entry.id,
        actor=ctx.actor, tenant_id=ctx.tenant_id,
        details={"customer_id": customer.id, "amount": float(data.amount), "balance": float(entry.balance)},
        request=request
    )
    ctx.db.commit()
    logger.info(f"Payment of {data.amount} recorded for customer {customer.id}")
    return entry


@router.get("/customers/{customer_id}", response_model=CustomerLedgerResponse)
async def customer_ledger(customer_id: str, ctx: TenantContext = Depends(tenant_scope(Permission.LEDGER_READ))):
    """A customer's credit balance and entries, newest first. Customers see their own only."""
    customer = get_customer(ctx, customer_id)
    entries = ctx.scope.query(LedgerEntry, LedgerEntry.customer_id == customer.id) \
        .order_by(LedgerEntry.created_at.desc()).all()

    return CustomerLedgerResponse(
        customer_id=customer.id,
        credit_limit=customer.credit_limit,
        credit_balance=customer.credit_balance or 0,
        entries=entries,
    )
