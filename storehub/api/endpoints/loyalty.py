"""
Loyalty Endpoints

Points are earned automatically when an order is delivered or picked up.
Customers redeem their own points; admins may redeem on a customer's
behalf at the counter.
"""
from fastapi import APIRouter, Depends, Request, status

from storehub.models.ledger import LoyaltyTransaction
from storehub.schemas.ledger import LoyaltyHistoryResponse, LoyaltyRedeem, LoyaltyTransactionResponse
from storehub.api.deps import tenant_scope
from storehub.api.endpoints.customers import get_customer
from storehub.core.exceptions import InvalidInputError
from storehub.core.permissions import Permission
from storehub.core.tenancy import TenantContext
from storehub.services.audit import record_audit
from storehub.services.ledger import redeem_points

router = APIRouter(prefix="/loyalty", tags=["loyalty"])


@router.get("/customers/{customer_id}", response_model=LoyaltyHistoryResponse)
async def loyalty_history(customer_id: str, ctx: TenantContext = Depends(tenant_scope(Permission.LOYALTY_READ))):
    customer = get_customer(ctx, customer_id)
    transactions = ctx.scope.query(LoyaltyTransaction, LoyaltyTransaction.customer_id == customer.id) \
        .order_by(LoyaltyTransaction.created_at.desc()).all()

    return LoyaltyHistoryResponse(
        customer_id=customer.id,
        loyalty_points=customer.loyalty_points or 0,
        transactions=transactions,
    )


@router.post("/redeem", response_model=LoyaltyTransactionResponse, status_code=status.HTTP_201_CREATED)
async def redeem(
    data: LoyaltyRedeem,
    request: Request,
    ctx: TenantContext = Depends(tenant_scope(Permission.LOYALTY_REDEEM))
):
    customer_id = data.customer_id or ctx.actor_id
    if ctx.can(Permission.CUSTOMERS_MANAGE) and not data.customer_id:
        raise InvalidInputError("customer_id is required when redeeming for a customer")

    customer = get_customer(ctx, customer_id)
    transaction = redeem_points(ctx.scope, customer, data.points, data.description)
    ctx.db.flush()

    record_audit(
        ctx.db, "loyalty.redeem", "loyalty_transaction", transaction.id,
        actor=ctx.actor, tenant_id=ctx.tenant_id,
        details={"customer_id": customer.id, "points": data.points}, request=request
    )
    ctx.db.commit()
    return transaction
