"""
Audit Log Endpoints

audit_logs is not a tenant-scoped table (platform events have no tenant),
so the tenant filter is applied explicitly here:

- admins: their own tenant, always
- super admin: every tenant, or the one named by the request
"""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import Optional

from storehub.database import get_db
from storehub.models.audit import AuditLog
from storehub.models.user import User
from storehub.schemas.notification import AuditLogListResponse
from storehub.api.deps import collect_tenant_signals, get_current_actor, require_key_scopes
from storehub.core.permissions import Permission, require_permissions
from storehub.core.tenancy import resolve_tenant, validate_tenant_access

router = APIRouter(prefix="/audit-logs", tags=["audit"])


async def _audit_tenant_filter(request: Request, actor: User, db: Session) -> Optional[str]:
    """Tenant id the listing is restricted to; None means all tenants."""
    signals = await collect_tenant_signals(request)

    if actor.is_super_admin and not (signals.subdomain or signals.explicit_ids()):
        return None

    tenant = resolve_tenant(db, actor, signals)
    validate_tenant_access(actor, tenant)
    return tenant.id


@router.get("", response_model=AuditLogListResponse)
async def list_audit_logs(
    request: Request,
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    actor_id: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    actor: User = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    require_permissions(actor, [Permission.AUDIT_READ])
    require_key_scopes(request, [Permission.AUDIT_READ])
    tenant_id = await _audit_tenant_filter(request, actor, db)

    query = db.query(AuditLog)
    if tenant_id is not None:
        query = query.filter(AuditLog.tenant_id == tenant_id)
    if action:
        query = query.filter(AuditLog.action == action)
    if resource_type:
        query = query.filter(AuditLog.resource_type == resource_type)
    if resource_id:
        query = query.filter(AuditLog.resource_id == resource_id)
    if actor_id:
        query = query.filter(AuditLog.actor_id == actor_id)

    total = query.count()
    logs = query.order_by(AuditLog.created_at.desc()).offset((page - 1) * page_size).limit(page_size).all()

    return AuditLogListResponse(logs=logs, total=total, page=page, page_size=page_size)
