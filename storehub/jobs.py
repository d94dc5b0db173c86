"""
Periodic Jobs

Run from cron or any scheduler:

    python -m storehub.jobs auto-accept
    python -m storehub.jobs digest

Outbound side effects (webhooks, SMS) run inline after each commit since
there is no request to attach background tasks to.
"""
import argparse
import sys

from storehub.config import get_settings
from storehub.database import SessionLocal
from storehub.models.user import User
from storehub.services.notifications import build_digests
from storehub.services.orders import auto_accept_orders, schedule_status_effects
from storehub.utils.logging import get_logger, setup_logging

settings = get_settings()
logger = get_logger(__name__)


def run_now(func, *args, **kwargs):
    return func(*args, **kwargs)


def auto_accept() -> int:
    db = SessionLocal()
    try:
        outcome = auto_accept_orders(db)
        for order in outcome.accepted:
            customer = db.get(User, order.customer_id)
            schedule_status_effects(
                run_now, order.tenant_id, order,
                customer_phone=customer.phone if customer else None
            )
    finally:
        db.close()

    print(f"accepted={len(outcome.accepted)} failed={len(outcome.failed)}")
    for order_id, error in outcome.failed:
        print(f"  {order_id}: {error}")
    return 1 if outcome.failed else 0


def digest() -> int:
    db = SessionLocal()
    try:
        created = build_digests(db)
    finally:
        db.close()

    print(f"digests={created}")
    return 0


COMMANDS = {
    "auto-accept": auto_accept,
    "digest": digest,
}


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="storehub.jobs", description="StoreHub periodic jobs")
    parser.add_argument("command", choices=sorted(COMMANDS))
    args = parser.parse_args(argv)

    setup_logging(log_level=settings.LOG_LEVEL, json_format=(settings.ENVIRONMENT == "production"))
    logger.info(f"Running job: {args.command}")
    return COMMANDS[args.command]()


if __name__ == "__main__":
    sys.exit(main())
