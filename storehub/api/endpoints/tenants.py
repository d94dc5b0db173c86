"""
Tenant Endpoints

Provisioning and status are platform operations (super admin). Profile
and branding belong to the tenant's admins. Branding is public so the
storefront can render before anyone logs in.

Tenants are never deleted; suspension is a status change.
"""
from fastapi import APIRouter, Depends, File, Query, Request, UploadFile, status
from sqlalchemy.orm import Session
from typing import Optional

from storehub.database import get_db
from storehub.config import get_settings
from storehub.models.tenant import Tenant, TenantStatus
from storehub.models.user import User, UserRole
from storehub.schemas.tenant import (
    BrandingResponse,
    TenantCreate,
    TenantListResponse,
    TenantProvisionResponse,
    TenantRegister,
    TenantResponse,
    TenantStatusUpdate,
    TenantUpdate,
)
from storehub.api.deps import require_super_admin, tenant_scope
from storehub.core.exceptions import ConflictError, InvalidInputError
from storehub.core.permissions import Permission
from storehub.core.security import get_password_hash
from storehub.core.tenancy import TenantContext
from storehub.services.audit import record_audit
from storehub.services.catalog import save_image
from storehub.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(prefix="/tenants", tags=["tenants"])


def _create_tenant(db: Session, data, tenant_status: TenantStatus) -> tuple[Tenant, User]:
    """Create a tenant and its first admin in the current transaction."""
    subdomain = data.subdomain.lower()
    if subdomain in settings.RESERVED_SUBDOMAINS:
        raise InvalidInputError(f"Subdomain is reserved: {subdomain}")

    if db.query(Tenant).filter(Tenant.subdomain == subdomain).first():
        raise ConflictError(f"Subdomain already taken: {subdomain}")

    tenant = Tenant(
        name=data.name,
        subdomain=subdomain,
        status=tenant_status,
        business_type=data.business_type,
        contact_email=data.contact_email,
        phone=data.phone,
        city=data.city,
        state=data.state,
        country=data.country,
    )
    db.add(tenant)
    db.flush()

    admin = User(
        tenant_id=tenant.id,
        email=data.admin_email.lower(),
        hashed_password=get_password_hash(data.admin_password),
        full_name=data.admin_name,
        role=UserRole.ADMIN,
        is_active=True,
    )
    db.add(admin)
    db.flush()
    return tenant, admin


@router.post("", response_model=TenantProvisionResponse, status_code=status.HTTP_201_CREATED)
async def provision_tenant(
    data: TenantCreate,
    request: Request,
    actor: User = Depends(require_super_admin),
    db: Session = Depends(get_db)
):
    """Provision a tenant and its first admin (active by default)."""
    tenant, admin = _create_tenant(db, data, data.status)
    record_audit(
        db, "tenant.provision", "tenant", tenant.id,
        actor=actor, tenant_id=tenant.id,
        details={"subdomain": tenant.subdomain, "admin_id": admin.id, "status": tenant.status.value},
        request=request
    )
    db.commit()

    logger.info(f"Tenant provisioned: {tenant.subdomain} ({tenant.id}) by {actor.id}")
    return TenantProvisionResponse(tenant=TenantResponse.model_validate(tenant), admin_id=admin.id)


@router.post("/register", response_model=TenantProvisionResponse, status_code=status.HTTP_201_CREATED)
async def register_tenant(
    data: TenantRegister,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Self-service store signup.

    The tenant stays pending, and its admin cannot log in, until a super
    admin activates it.
    """
    tenant, admin = _create_tenant(db, data, TenantStatus.PENDING)
    record_audit(
        db, "tenant.register", "tenant", tenant.id,
        actor=admin, tenant_id=tenant.id,
        details={"subdomain": tenant.subdomain},
        request=request
    )
    db.commit()

    logger.info(f"Tenant registered (pending): {tenant.subdomain} ({tenant.id})")
    return TenantProvisionResponse(tenant=TenantResponse.model_validate(tenant), admin_id=admin.id)


@router.get("", response_model=TenantListResponse)
async def list_tenants(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    tenant_status: Optional[TenantStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
    actor: User = Depends(require_super_admin),
    db: Session = Depends(get_db)
):
    query = db.query(Tenant)
    if tenant_status:
        query = query.filter(Tenant.status == tenant_status)
    if search:
        pattern = f"%{search}%"
        query = query.filter(Tenant.name.ilike(pattern) | Tenant.subdomain.ilike(pattern))

    total = query.count()
    tenants = query.order_by(Tenant.created_at.desc()).offset((page - 1) * page_size).limit(page_size).all()

    return TenantListResponse(tenants=tenants, total=total, page=page, page_size=page_size)


@router.get("/{tenant_id}", response_model=TenantResponse)
async def get_tenant(ctx: TenantContext = Depends(tenant_scope())):
    return ctx.tenant


@router.patch("/{tenant_id}", response_model=TenantResponse)
async def update_tenant(
    data: TenantUpdate,
    request: Request,
    ctx: TenantContext = Depends(tenant_scope(Permission.TENANT_MANAGE))
):
    """Profile and branding update by the tenant's admin or a super admin."""
    tenant = ctx.tenant
    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(tenant, field, value)

    record_audit(
        ctx.db, "tenant.update", "tenant", tenant.id,
        actor=ctx.actor, tenant_id=tenant.id, details={"fields": sorted(changes)}, request=request
    )
    ctx.db.commit()
    return tenant


@router.patch("/{tenant_id}/status", response_model=TenantResponse)
async def change_tenant_status(
    data: TenantStatusUpdate,
    request: Request,
    ctx: TenantContext = Depends(tenant_scope(Permission.PLATFORM_MANAGE))
):
    """
    Move a tenant between pending, active and suspended.

    pending -> active | suspended, active -> suspended, suspended -> active
    """
    tenant = ctx.tenant
    previous = tenant.status
    if data.status == previous:
        raise ConflictError(f"Tenant is already {previous.value}")
    if not tenant.can_transition_to(data.status):
        raise ConflictError(f"Cannot move tenant from {previous.value} to {data.status.value}")

    tenant.status = data.status
    record_audit(
        ctx.db, "tenant.status", "tenant", tenant.id,
        actor=ctx.actor, tenant_id=tenant.id,
        details={"from": previous.value, "to": data.status.value, "reason": data.reason},
        request=request
    )
    ctx.db.commit()

    logger.info(f"Tenant {tenant.id}: {previous.value} -> {data.status.value} by {ctx.actor_id}")
    return tenant


@router.get("/{tenant_id}/branding", response_model=BrandingResponse)
async def get_branding(ctx: TenantContext = Depends(tenant_scope(public=True))):
    tenant = ctx.tenant
    return BrandingResponse(
        tenant_id=tenant.id,
        name=tenant.name,
        subdomain=tenant.subdomain,
        business_type=tenant.business_type,
        logo_url=tenant.logo_url,
        primary_color=tenant.primary_color,
        accent_color=tenant.accent_color,
        tagline=tenant.tagline,
    )


@router.post("/{tenant_id}/logo", response_model=TenantResponse)
async def upload_logo(
    request: Request,
    file: UploadFile = File(...),
    ctx: TenantContext = Depends(tenant_scope(Permission.TENANT_MANAGE))
):
    tenant = ctx.tenant
    tenant.logo_url = await save_image(tenant.id, file, "branding")
    record_audit(
        ctx.db, "tenant.logo", "tenant", tenant.id,
        actor=ctx.actor, tenant_id=tenant.id, details={"logo_url": tenant.logo_url}, request=request
    )
    ctx.db.commit()
    return tenant
