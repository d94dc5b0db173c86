"""
Product Endpoints

Storefront reads are public and only show active products. Catalog
changes need catalog:manage. Deleting a product deactivates it; order
lines keep pointing at it.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, File, Query, Request, UploadFile, status
from typing import Optional

from storehub.models.catalog import Product
from storehub.schemas.catalog import (
    ImportRowError,
    ProductCreate,
    ProductImportResult,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
)
from storehub.api.deps import tenant_scope
from storehub.core.exceptions import InvalidInputError, ProductNotFoundError
from storehub.core.permissions import Permission
from storehub.core.tenancy import TenantContext
from storehub.services.audit import record_audit
from storehub.services.catalog import find_category, import_products_csv, read_csv_upload, save_image
from storehub.services.webhooks import WebhookEvent, product_event_data, queue_event
from storehub.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/products", tags=["catalog"])

public_scope = tenant_scope(public=True)
manage_scope = tenant_scope(Permission.CATALOG_MANAGE)


def _get_product(ctx: TenantContext, product_id: str) -> Product:
    product = ctx.scope.get_or_404(Product, product_id, ProductNotFoundError(product_id))
    if not product.active and not ctx.can(Permission.CATALOG_MANAGE):
        raise ProductNotFoundError(product_id)
    return product


def _check_category(ctx: TenantContext, category_id: Optional[str]) -> None:
    if category_id and find_category(ctx.scope, category_id) is None:
        raise InvalidInputError(f"Unknown category: {category_id}")


@router.get("", response_model=ProductListResponse)
async def list_products(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    category_id: Optional[str] = None,
    featured: Optional[bool] = None,
    in_stock: Optional[bool] = None,
    active: Optional[bool] = None,
    ctx: TenantContext = Depends(public_scope)
):
    """
    List the tenant's products.

    The active filter is honored for catalog managers only; everyone else
    sees active products.
    """
    query = ctx.scope.query(Product)

    if ctx.can(Permission.CATALOG_MANAGE):
        if active is not None:
            query = query.filter(Product.active == active)
    else:
        query = query.filter(Product.active == True)  # noqa: E712

    if search:
        pattern = f"%{search}%"
        query = query.filter(
            Product.name.ilike(pattern) | Product.brand.ilike(pattern) | Product.sku.ilike(pattern)
        )
    if category_id:
        query = query.filter(Product.category_id == category_id)
    if featured is not None:
        query = query.filter(Product.featured == featured)
    if in_stock is True:
        query = query.filter(Product.inventory_count > 0)
    elif in_stock is False:
        query = query.filter(Product.inventory_count <= 0)

    total = query.count()
    products = query.order_by(Product.name).offset((page - 1) * page_size).limit(page_size).all()

    return ProductListResponse(products=products, total=total, page=page, page_size=page_size)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str, ctx: TenantContext = Depends(public_scope)):
    return _get_product(ctx, product_id)


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    data: ProductCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    ctx: TenantContext = Depends(manage_scope)
):
    _check_category(ctx, data.category_id)

    values = data.model_dump()
    if values["mrp"] is None:
        values["mrp"] = values["price"]

    product = ctx.scope.add(Product(**values))
    ctx.db.flush()

    record_audit(
        ctx.db, "product.create", "product", product.id,
        actor=ctx.actor, tenant_id=ctx.tenant_id, details={"name": product.name}, request=request
    )
    ctx.db.commit()

    queue_event(background_tasks, ctx.tenant_id, WebhookEvent.PRODUCT_CREATED, product_event_data(product))
    logger.info(f"Product created: {product.id} by {ctx.actor_id}")
    return product


@router.post("/import", response_model=ProductImportResult)
async def import_products(
    request: Request,
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    ctx: TenantContext = Depends(manage_scope)
):
    """Bulk create products from a CSV file; bad rows are reported, not fatal."""
    content = await read_csv_upload(file)
    created, errors = import_products_csv(ctx.scope, content)
    ctx.db.flush()

    record_audit(
        ctx.db, "product.import", "product", None,
        actor=ctx.actor, tenant_id=ctx.tenant_id,
        details={"created": len(created), "failed": len(errors), "filename": file.filename},
        request=request
    )
    ctx.db.commit()

    for product in created:
        queue_event(background_tasks, ctx.tenant_id, WebhookEvent.PRODUCT_CREATED, product_event_data(product))

    return ProductImportResult(
        created=len(created),
        failed=len(errors),
        errors=[ImportRowError(row=row, error=error) for row, error in errors],
        product_ids=[product.id for product in created],
    )


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    data: ProductUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    ctx: TenantContext = Depends(manage_scope)
):
    product = _get_product(ctx, product_id)
    changes = data.model_dump(exclude_unset=True)
    if "category_id" in changes:
        _check_category(ctx, changes["category_id"])

    was_in_stock = product.in_stock
    for field, value in changes.items():
        setattr(product, field, value)

    record_audit(
        ctx.db, "product.update", "product", product.id,
        actor=ctx.actor, tenant_id=ctx.tenant_id, details={"fields": sorted(changes)}, request=request
    )
    ctx.db.commit()

    if was_in_stock and not product.in_stock:
        queue_event(background_tasks, ctx.tenant_id, WebhookEvent.PRODUCT_OUT_OF_STOCK, product_event_data(product))
    return product


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_product(
    product_id: str,
    request: Request,
    ctx: TenantContext = Depends(manage_scope)
):
    product = _get_product(ctx, product_id)
    product.active = False

    record_audit(
        ctx.db, "product.deactivate", "product", product.id,
        actor=ctx.actor, tenant_id=ctx.tenant_id, request=request
    )
    ctx.db.commit()
    return None


@router.post("/{product_id}/image", response_model=ProductResponse)
async def upload_product_image(
    product_id: str,
    request: Request,
    file: UploadFile = File(...),
    ctx: TenantContext = Depends(manage_scope)
):
    product = _get_product(ctx, product_id)
    product.image_url = await save_image(ctx.tenant_id, file, "products")

    record_audit(
        ctx.db, "product.image", "product", product.id,
        actor=ctx.actor, tenant_id=ctx.tenant_id, details={"image_url": product.image_url}, request=request
    )
    ctx.db.commit()
    return product
