"""
API Dependencies

Reusable FastAPI dependencies for authentication and tenant scoping.

PATTERN: Tenant-facing routes declare

    ctx: TenantContext = Depends(tenant_scope(Permission.ORDERS_MANAGE))

and receive the resolved tenant, the actor and a TenantScope bound to the
tenant. Resolution, access validation and the permission check all run
here, once, before the handler.
"""
from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from storehub.database import get_db
from storehub.models.user import User
from storehub.core.exceptions import AuthenticationError, PermissionDenied
from storehub.core.permissions import Permission, require_permissions
from storehub.core.security import decode_access_token, is_api_key
from storehub.core.tenancy import (
    TenantContext,
    TenantSignals,
    extract_subdomain,
    resolve_tenant,
    validate_tenant_access,
)
from storehub.models.user import UserRole
from storehub.services.api_keys import authenticate_api_key, key_scopes
from storehub.utils.logging import get_logger, tenant_id_var, user_id_var

logger = get_logger(__name__)

# auto_error=False: public routes accept anonymous callers
security = HTTPBearer(auto_error=False)

BODY_METHODS = {"POST", "PUT", "PATCH"}


async def get_optional_actor(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """
    Authenticated actor, or None for anonymous requests.

    A token that is present but invalid is an error, not anonymity. An API
    key (pk_...) authenticates as the admin who issued it.
    """
    if credentials is None:
        return None

    if is_api_key(credentials.credentials):
        api_key, owner = authenticate_api_key(db, credentials.credentials)
        request.state.api_key_id = api_key.id
        request.state.api_key_scopes = frozenset(key_scopes(api_key))
        request.state.user_id = owner.id
        user_id_var.set(owner.id)
        return owner

    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise AuthenticationError("Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token payload")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        logger.warning(f"Token for unknown user: {user_id}")
        raise AuthenticationError("User not found")

    # The token's tenant claim must still match the account
    if payload.get("tenant_id") != user.tenant_id:
        logger.warning(f"Token tenant claim no longer matches user {user_id}")
        raise AuthenticationError("Invalid token payload")

    if not user.is_active:
        raise AuthenticationError("User account is inactive")

    request.state.user_id = user.id
    user_id_var.set(user.id)
    return user


async def get_current_actor(
    actor: Optional[User] = Depends(get_optional_actor)
) -> User:
    if actor is None:
        raise AuthenticationError("Not authenticated")
    return actor


async def require_super_admin(
    actor: User = Depends(get_current_actor)
) -> User:
    """Platform-level routes."""
    if actor.role != UserRole.SUPER_ADMIN:
        raise PermissionDenied("Super admin privileges required")
    return actor


async def _body_tenant_id(request: Request) -> Optional[str]:
    """tenant_id from a JSON object or form body, if any."""
    if request.method not in BODY_METHODS:
        return None

    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            return None
        value = body.get("tenant_id") if isinstance(body, dict) else None
    elif content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        form = await request.form()
        value = form.get("tenant_id")
    else:
        return None

    return value if isinstance(value, str) and value else None


async def collect_tenant_signals(request: Request) -> TenantSignals:
    subdomain = getattr(request.state, "subdomain", None)
    if subdomain is None:
        subdomain = extract_subdomain(request.headers.get("Host"))

    return TenantSignals(
        subdomain=subdomain,
        path_tenant_id=request.path_params.get("tenant_id"),
        query_tenant_id=request.query_params.get("tenant_id"),
        body_tenant_id=await _body_tenant_id(request),
    )


def require_key_scopes(request: Request, permissions) -> None:
    """For API key requests, every permission must also be a scope of the key."""
    granted = getattr(request.state, "api_key_scopes", None)
    if granted is None:
        return
    for permission in permissions:
        if permission not in granted:
            raise PermissionDenied(f"API key lacks scope: {permission.value}")


async def get_account_actor(
    request: Request,
    actor: User = Depends(get_current_actor),
    db: Session = Depends(get_db)
) -> User:
    """
    Actor for routes about the caller's own account.

    These routes need no tenant, but any tenant the request names must
    still agree with the token: a bound actor naming another tenant is a
    tenant_mismatch, as on every tenant-scoped route. API keys have no
    account of their own.
    """
    if getattr(request.state, "api_key_id", None):
        raise PermissionDenied("API keys cannot use account routes")

    signals = await collect_tenant_signals(request)
    if actor.is_tenant_bound or signals.explicit_ids():
        tenant = resolve_tenant(db, actor, signals)
        request.state.tenant_id = tenant.id
        tenant_id_var.set(tenant.id)
    return actor


def tenant_scope(*permissions: Permission, public: bool = False):
    """
    Build the dependency for a tenant-scoped route.

    Args:
        permissions: every permission the actor must hold
        public: allow anonymous callers (storefront reads, registration)
    """

    async def dependency(
        request: Request,
        actor: Optional[User] = Depends(get_optional_actor),
        db: Session = Depends(get_db),
    ) -> TenantContext:
        if actor is None and not public:
            raise AuthenticationError("Not authenticated")

        signals = await collect_tenant_signals(request)
        tenant = resolve_tenant(db, actor, signals)
        validate_tenant_access(actor, tenant)

        if actor is not None:
            require_permissions(actor, permissions)
            require_key_scopes(request, permissions)

        request.state.tenant_id = tenant.id
        tenant_id_var.set(tenant.id)
        return TenantContext(
            tenant=tenant,
            actor=actor,
            db=db,
            key_scopes=getattr(request.state, "api_key_scopes", None),
        )

    return dependency
