"""
Tenant Resolution, Access Validation and Scoped Queries

Every tenant-facing request goes through three steps:

1. resolve_tenant(): turn the request's signals into exactly one tenant
2. validate_tenant_access(): make sure the actor may act on it
3. TenantScope: the only way handlers reach tenant-scoped tables

Resolution priority (first match wins):
    token tenant (admin/customer) > Host subdomain > path tenant_id
    > query tenant_id > body tenant_id

Disagreeing signals are errors, never silent overrides.
"""
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Tuple, Type, TypeVar

from sqlalchemy.orm import Session

from storehub.config import get_settings
from storehub.core.exceptions import (
    NotFoundError,
    TenantConflictError,
    TenantInactiveError,
    TenantIsolationError,
    TenantMismatchError,
    TenantNotFoundError,
    TenantRequiredError,
    UnscopedQueryError,
)
from storehub.core.permissions import Permission, has_permission
from storehub.models.tenant import Tenant
from storehub.models.user import User
from storehub.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)
settings = get_settings()

ModelT = TypeVar("ModelT")


def extract_subdomain(host: Optional[str]) -> Optional[str]:
    """
    Extract the tenant subdomain from a Host header value.

    "citypharma.storehub.local:8000" -> "citypharma"

    Hosts with fewer than three labels, the base domain itself and
    reserved names (www, api, app, ...) carry no tenant.
    """
    if not host:
        return None

    hostname = host.split(":", 1)[0].strip().lower().rstrip(".")
    if not hostname or hostname == settings.BASE_DOMAIN.lower():
        return None

    parts = hostname.split(".")
    if len(parts) < 3:
        return None

    subdomain = parts[0]
    if subdomain in settings.RESERVED_SUBDOMAINS:
        return None
    return subdomain


@dataclass
class TenantSignals:
    """Tenant identifiers supplied by the request itself (not the token)."""
    subdomain: Optional[str] = None
    path_tenant_id: Optional[str] = None
    query_tenant_id: Optional[str] = None
    body_tenant_id: Optional[str] = None

    def explicit_ids(self) -> List[Tuple[str, str]]:
        """(source, tenant_id) pairs in priority order."""
        pairs = [
            ("path", self.path_tenant_id),
            ("query", self.query_tenant_id),
            ("body", self.body_tenant_id),
        ]
        return [(source, value) for source, value in pairs if value]


def _lookup_subdomain(db: Session, subdomain: Optional[str]) -> Optional[Tenant]:
    if not subdomain:
        return None
    return db.query(Tenant).filter(Tenant.subdomain == subdomain).first()


def resolve_tenant(db: Session, actor: Optional[User], signals: TenantSignals) -> Tenant:
    """
    Produce the single effective tenant for a request.

    Raises:
        TenantMismatchError: bound actor named a different tenant (403)
        TenantConflictError: unbound caller named two different tenants (400)
        TenantNotFoundError: an explicit tenant_id names no tenant (404)
        TenantRequiredError: no signal at all (400)
    """
    host_tenant = _lookup_subdomain(db, signals.subdomain)

    # (source, tenant_id) in priority order; host first
    candidates = []
    if host_tenant is not None:
        candidates.append(("subdomain", host_tenant.id))
    candidates.extend(signals.explicit_ids())

    if actor is not None and actor.is_tenant_bound:
        for source, tenant_id in candidates:
            if tenant_id != actor.tenant_id:
                log_security_event(
                    "tenant_mismatch",
                    {
                        "user_id": actor.id,
                        "token_tenant": actor.tenant_id,
                        "requested_tenant": tenant_id,
                        "source": source,
                    },
                    logger,
                )
                raise TenantMismatchError()

        tenant = db.query(Tenant).filter(Tenant.id == actor.tenant_id).first()
        if tenant is None:
            raise TenantNotFoundError(actor.tenant_id)
        return tenant

    distinct_ids = {tenant_id for _, tenant_id in candidates}
    if len(distinct_ids) > 1:
        logger.info(f"Conflicting tenant signals: {candidates}")
        raise TenantConflictError()

    if not candidates:
        raise TenantRequiredError()

    source, tenant_id = candidates[0]
    if host_tenant is not None and source == "subdomain":
        return host_tenant

    tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
    if tenant is None:
        raise TenantNotFoundError(tenant_id)
    return tenant


def validate_tenant_access(actor: Optional[User], tenant: Tenant) -> None:
    """
    Check that the actor may act on the resolved tenant.

    - super_admin: any tenant, whatever its status
    - admin/customer: their bound tenant only
    - anonymous: public routes of active tenants only
    """
    if actor is not None and actor.is_super_admin:
        return

    if actor is not None and actor.tenant_id != tenant.id:
        log_security_event(
            "tenant_isolation_violation",
            {"user_id": actor.id, "token_tenant": actor.tenant_id, "requested_tenant": tenant.id},
            logger,
        )
        raise TenantIsolationError()

    if not tenant.is_active:
        raise TenantInactiveError(tenant.status.value)


class TenantScope:
    """
    Query builder bound to one tenant.

    Only models marked __tenant_scoped__ are accepted, and every query it
    builds filters on tenant_id. There is no way to build an unfiltered
    query through it.
    """

    def __init__(self, db: Session, tenant_id: Optional[str]):
        if not tenant_id:
            raise UnscopedQueryError()
        self.db = db
        self.tenant_id = tenant_id

    @staticmethod
    def is_scoped(model) -> bool:
        return bool(getattr(model, "__tenant_scoped__", False))

    def _require_scoped(self, model) -> None:
        if not self.is_scoped(model):
            raise TypeError(f"{getattr(model, '__name__', model)!r} is not a tenant-scoped model")

    def query(self, model: Type[ModelT], *criteria):
        """Query `model` restricted to this tenant, plus optional criteria."""
        self._require_scoped(model)
        return self.db.query(model).filter(model.tenant_id == self.tenant_id, *criteria)

    def query_columns(self, model, *columns):
        """Aggregate/column query over `model` restricted to this tenant."""
        self._require_scoped(model)
        return self.db.query(*columns).select_from(model).filter(model.tenant_id == self.tenant_id)

    def get(self, model: Type[ModelT], obj_id: str) -> Optional[ModelT]:
        return self.query(model, model.id == obj_id).first()

    def raise_if_foreign(self, model, obj_id: str) -> None:
        """Raise TenantIsolationError if obj_id is a row of another tenant."""
        self._require_scoped(model)
        owner = self.db.query(model.tenant_id).filter(model.id == obj_id).scalar()
        if owner is not None and owner != self.tenant_id:
            raise TenantIsolationError()

    def get_or_404(self, model: Type[ModelT], obj_id: str, error: Optional[Exception] = None) -> ModelT:
        """
        Load one row of this tenant or raise.

        A row of another tenant is a 403 (TenantIsolationError); an id that
        exists nowhere is a 404.
        """
        obj = self.get(model, obj_id)
        if obj is None:
            self.raise_if_foreign(model, obj_id)
            raise error or NotFoundError(model.__name__, obj_id)
        return obj

    def add(self, obj: ModelT) -> ModelT:
        """Stamp tenant_id on a new object and add it to the session."""
        self._require_scoped(type(obj))
        current = getattr(obj, "tenant_id", None)
        if current is None:
            obj.tenant_id = self.tenant_id
        elif current != self.tenant_id:
            raise TenantIsolationError(
                f"Object belongs to tenant {current}, scope is {self.tenant_id}"
            )
        self.db.add(obj)
        return obj


@dataclass
class TenantContext:
    """
    What a tenant-scoped route handler receives.

    key_scopes is set when the actor authenticated with an API key; the
    actor then holds only the permissions in both its role and the key.
    """
    tenant: Tenant
    actor: Optional[User]
    db: Session
    key_scopes: Optional[FrozenSet[Permission]] = None
    scope: TenantScope = field(init=False)

    def __post_init__(self):
        self.scope = TenantScope(self.db, self.tenant.id)

    @property
    def tenant_id(self) -> str:
        return self.tenant.id

    @property
    def actor_id(self) -> Optional[str]:
        return self.actor.id if self.actor else None

    def role_can(self, permission: Permission) -> bool:
        """
        Whether the actor's role holds permission, whatever the API key
        scopes. Decides which rows a read shows, not which routes run.
        """
        return self.actor is not None and has_permission(self.actor, permission)

    def can(self, permission: Permission) -> bool:
        if self.key_scopes is not None and permission not in self.key_scopes:
            return False
        return self.actor is not None and has_permission(self.actor, permission)
