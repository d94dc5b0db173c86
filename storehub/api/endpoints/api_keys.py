"""
Developer API Key Endpoints

Tenant admins issue keys for their integrations, list them with usage
counts and revoke them. A key is shown in full only in the creation
response.
"""
from fastapi import APIRouter, Depends, Request, status

from storehub.models.api_key import ApiKey
from storehub.schemas.api_key import ApiKeyCreate, ApiKeyCreated, ApiKeyResponse
from storehub.api.deps import tenant_scope
from storehub.core.exceptions import NotFoundError, PermissionDenied
from storehub.core.permissions import Permission
from storehub.core.tenancy import TenantContext
from storehub.services.api_keys import create_api_key, revoke_api_key
from storehub.services.audit import record_audit

router = APIRouter(prefix="/api-keys", tags=["api keys"])

manage_scope = tenant_scope(Permission.API_KEYS_MANAGE)


@router.get("", response_model=list[ApiKeyResponse])
async def list_api_keys(ctx: TenantContext = Depends(manage_scope)):
    return ctx.scope.query(ApiKey).order_by(ApiKey.created_at.desc()).all()


@router.post("", response_model=ApiKeyCreated, status_code=status.HTTP_201_CREATED)
async def generate_api_key(
    data: ApiKeyCreate,
    request: Request,
    ctx: TenantContext = Depends(manage_scope)
):
    """
    Issue a key acting for the calling admin within the given scopes.

    Super admins cannot issue keys: a key needs a tenant admin to act for.
    """
    if not ctx.actor.is_tenant_bound:
        raise PermissionDenied("API keys are issued by tenant admins")

    api_key, plain_key = create_api_key(
        ctx.scope,
        ctx.actor,
        data.name,
        scopes=data.scopes,
        description=data.description,
        expires_in_days=data.expires_in_days,
    )
    ctx.db.flush()

    record_audit(
        ctx.db, "api_key.create", "api_key", api_key.id,
        actor=ctx.actor, tenant_id=ctx.tenant_id,
        details={"name": api_key.name, "key_prefix": api_key.key_prefix, "scopes": api_key.scopes},
        request=request
    )
    ctx.db.commit()

    return ApiKeyCreated(**ApiKeyResponse.model_validate(api_key).model_dump(), api_key=plain_key)


@router.get("/{key_id}", response_model=ApiKeyResponse)
async def get_api_key(key_id: str, ctx: TenantContext = Depends(manage_scope)):
    return ctx.scope.get_or_404(ApiKey, key_id, NotFoundError("API key", key_id))


@router.post("/{key_id}/revoke", response_model=ApiKeyResponse)
async def revoke_key(
    key_id: str,
    request: Request,
    ctx: TenantContext = Depends(manage_scope)
):
    """Revoke a key. The row stays for its usage history."""
    api_key = ctx.scope.get_or_404(ApiKey, key_id, NotFoundError("API key", key_id))
    revoke_api_key(api_key)

    record_audit(
        ctx.db, "api_key.revoke", "api_key", api_key.id,
        actor=ctx.actor, tenant_id=ctx.tenant_id, details={"key_prefix": api_key.key_prefix}, request=request
    )
    ctx.db.commit()
    return api_key
