"""
Authentication Endpoints

Login for every role, customer self-registration, and the actor's own
account. Login is scoped to a tenant (body tenant_id, body subdomain, path
or Host subdomain); a login naming no tenant is a super-admin login.
"""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from sqlalchemy.orm import Session

from storehub.database import get_db
from storehub.models.tenant import Tenant
from storehub.models.user import User, UserRole
from storehub.schemas.auth import LoginRequest, Token, RegisterRequest, ChangePasswordRequest
from storehub.schemas.user import UserResponse, CustomerResponse
from storehub.api.deps import get_account_actor, tenant_scope
from storehub.core.exceptions import (
    AuthenticationError,
    ConflictError,
    RateLimitExceeded,
    TenantConflictError,
    TenantNotFoundError,
)
from storehub.core.login_attempts import get_login_tracker
from storehub.core.security import verify_password, get_password_hash, create_actor_token
from storehub.core.tenancy import TenantContext, TenantScope, TenantSignals, resolve_tenant
from storehub.services.audit import record_audit
from storehub.services.notifications import notify
from storehub.services.webhooks import WebhookEvent, queue_event
from storehub.utils.logging import log_security_event, get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def _login_tenant(db: Session, credentials: LoginRequest, request: Request) -> Optional[Tenant]:
    """
    Tenant named by the login request, or None for a platform login.
    """
    body_tenant_id = credentials.tenant_id
    if credentials.subdomain:
        named = db.query(Tenant).filter(Tenant.subdomain == credentials.subdomain.lower()).first()
        if named is None:
            raise TenantNotFoundError(credentials.subdomain)
        if body_tenant_id and body_tenant_id != named.id:
            raise TenantConflictError()
        body_tenant_id = named.id

    signals = TenantSignals(
        subdomain=getattr(request.state, "subdomain", None),
        path_tenant_id=request.path_params.get("tenant_id"),
        body_tenant_id=body_tenant_id,
    )
    if not (signals.subdomain or signals.explicit_ids()):
        return None

    return resolve_tenant(db, None, signals)


@router.post("/login", response_model=Token)
async def login(
    credentials: LoginRequest,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Authenticate and return a JWT.

    SECURITY: every credential failure returns the same generic error, and
    repeated failures for one tenant/email pair are locked out.
    """
    tenant = _login_tenant(db, credentials, request)
    tenant_id = tenant.id if tenant else None
    email = credentials.email.lower()

    tracker = get_login_tracker()
    retry_after = tracker.retry_after(tenant_id, email)
    if retry_after:
        log_security_event("login_locked", {"email": email, "tenant_id": tenant_id}, logger)
        raise RateLimitExceeded(
            retry_after=retry_after,
            detail="Too many failed login attempts. Please try again later."
        )

    if tenant is None:
        user = db.query(User).filter(
            User.tenant_id.is_(None),
            User.role == UserRole.SUPER_ADMIN,
            User.email == email
        ).first()
    else:
        user = TenantScope(db, tenant.id).query(User, User.email == email).first()

    if not user or not verify_password(credentials.password, user.hashed_password):
        attempts = tracker.record_failure(tenant_id, email)
        log_security_event(
            "failed_login",
            {"reason": "invalid_credentials", "email": email, "tenant_id": tenant_id, "attempts": attempts},
            logger
        )
        raise AuthenticationError("Invalid credentials")

    if not user.is_active:
        log_security_event("failed_login", {"reason": "user_inactive", "user_id": user.id}, logger)
        raise AuthenticationError("User account is inactive")

    if tenant is not None and not tenant.is_active:
        log_security_event("failed_login", {"reason": "tenant_inactive", "tenant_id": tenant.id}, logger)
        raise AuthenticationError("Tenant account is inactive")

    tracker.reset(tenant_id, email)
    user.last_login_at = datetime.utcnow()
    db.commit()

    logger.info(f"Successful login: user={user.id}, tenant={tenant_id}")

    return Token(
        access_token=create_actor_token(user),
        role=user.role,
        tenant_id=user.tenant_id
    )


@router.post("/register", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def register(
    registration: RegisterRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    ctx: TenantContext = Depends(tenant_scope(public=True))
):
    """
    Register a customer in the resolved tenant.

    The tenant must be active (checked during resolution).
    """
    email = registration.email.lower()
    existing = ctx.scope.query(User, User.email == email).first()
    if existing:
        raise ConflictError("An account with this email already exists")

    customer = ctx.scope.add(User(
        email=email,
        hashed_password=get_password_hash(registration.password),
        full_name=registration.full_name,
        phone=registration.phone,
        role=UserRole.CUSTOMER,
        is_active=True
    ))
    ctx.db.flush()

    notify(
        ctx.scope,
        "customer_registered",
        "New customer",
        f"{customer.full_name} ({customer.email}) registered",
        data={"customer_id": customer.id},
    )
    record_audit(
        ctx.db, "customer.register", "user", customer.id,
        actor=customer, tenant_id=ctx.tenant_id, request=request
    )
    ctx.db.commit()

    queue_event(background_tasks, ctx.tenant_id, WebhookEvent.CUSTOMER_REGISTERED, {
        "customer_id": customer.id,
        "email": customer.email,
        "full_name": customer.full_name,
        "phone": customer.phone,
    })

    logger.info(f"New customer registered: {customer.id} in tenant {ctx.tenant_id}")
    return customer


@router.get("/me", response_model=UserResponse)
async def me(actor: User = Depends(get_account_actor)):
    return actor


@router.post("/change-password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    payload: ChangePasswordRequest,
    request: Request,
    actor: User = Depends(get_account_actor),
    db: Session = Depends(get_db)
):
    if not verify_password(payload.current_password, actor.hashed_password):
        log_security_event("failed_password_change", {"user_id": actor.id}, logger)
        raise AuthenticationError("Current password is incorrect")

    actor.hashed_password = get_password_hash(payload.new_password)
    record_audit(
        db, "user.change_password", "user", actor.id,
        actor=actor, tenant_id=actor.tenant_id, request=request
    )
    db.commit()
    return None
