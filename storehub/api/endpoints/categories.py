"""
Category Endpoints

Listing is public (storefront navigation); changes need catalog:manage.
"""
from fastapi import APIRouter, Depends, Request, status

from storehub.models.catalog import Category
from storehub.schemas.catalog import CategoryCreate, CategoryResponse
from storehub.api.deps import tenant_scope
from storehub.core.exceptions import CategoryNotFoundError, ConflictError
from storehub.core.permissions import Permission
from storehub.core.tenancy import TenantContext
from storehub.services.audit import record_audit

router = APIRouter(prefix="/categories", tags=["catalog"])


@router.get("", response_model=list[CategoryResponse])
async def list_categories(ctx: TenantContext = Depends(tenant_scope(public=True))):
    query = ctx.scope.query(Category)
    if not ctx.can(Permission.CATALOG_MANAGE):
        query = query.filter(Category.is_active == True)  # noqa: E712
    return query.order_by(Category.display_order, Category.name).all()


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    data: CategoryCreate,
    request: Request,
    ctx: TenantContext = Depends(tenant_scope(Permission.CATALOG_MANAGE))
):
    if ctx.scope.query(Category, Category.name == data.name).first():
        raise ConflictError(f"Category already exists: {data.name}")

    category = ctx.scope.add(Category(**data.model_dump()))
    ctx.db.flush()
    record_audit(
        ctx.db, "category.create", "category", category.id,
        actor=ctx.actor, tenant_id=ctx.tenant_id, details={"name": category.name}, request=request
    )
    ctx.db.commit()
    return category


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: str,
    request: Request,
    ctx: TenantContext = Depends(tenant_scope(Permission.CATALOG_MANAGE))
):
    """Delete a category; its products stay, uncategorized."""
    category = ctx.scope.get_or_404(Category, category_id, CategoryNotFoundError(category_id))

    ctx.db.delete(category)
    record_audit(
        ctx.db, "category.delete", "category", category_id,
        actor=ctx.actor, tenant_id=ctx.tenant_id, details={"name": category.name}, request=request
    )
    ctx.db.commit()
    return None
