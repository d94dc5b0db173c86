"""
Job Endpoints

Super-admin triggers for the periodic jobs, for deployments that drive
them from an external scheduler over HTTP instead of `python -m
storehub.jobs`.
"""
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from storehub.database import get_db
from storehub.models.user import User
from storehub.schemas.order import AutoAcceptFailure, AutoAcceptResult
from storehub.api.deps import require_super_admin
from storehub.services.notifications import build_digests
from storehub.services.orders import auto_accept_orders, schedule_status_effects

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.post("/auto-accept", response_model=AutoAcceptResult)
async def run_auto_accept(
    background_tasks: BackgroundTasks,
    _: User = Depends(require_super_admin),
    db: Session = Depends(get_db)
):
    outcome = auto_accept_orders(db)

    for order in outcome.accepted:
        customer = db.get(User, order.customer_id)
        schedule_status_effects(
            background_tasks.add_task, order.tenant_id, order,
            customer_phone=customer.phone if customer else None
        )

    return AutoAcceptResult(
        accepted=[order.id for order in outcome.accepted],
        failed=[AutoAcceptFailure(order_id=order_id, error=error) for order_id, error in outcome.failed],
    )


@router.post("/digest")
async def run_digest(
    _: User = Depends(require_super_admin),
    db: Session = Depends(get_db)
):
    return {"digests": build_digests(db)}
