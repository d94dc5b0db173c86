"""
Catalog Schemas

Categories, products and the CSV import report.
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    display_order: int = 0


class CategoryResponse(BaseModel):
    id: str
    tenant_id: str
    name: str
    description: Optional[str] = None
    display_order: int
    is_active: bool

    class Config:
        from_attributes = True


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    brand: Optional[str] = Field(None, max_length=255)
    sku: Optional[str] = Field(None, max_length=100)
    category_id: Optional[str] = None
    requires_rx: bool = False
    featured: bool = False


class ProductCreate(ProductBase):
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    mrp: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    inventory_count: int = Field(0, ge=0)


class ProductUpdate(BaseModel):
    """All fields optional."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    brand: Optional[str] = Field(None, max_length=255)
    sku: Optional[str] = Field(None, max_length=100)
    category_id: Optional[str] = None
    requires_rx: Optional[bool] = None
    featured: Optional[bool] = None
    price: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    mrp: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    inventory_count: Optional[int] = Field(None, ge=0)
    active: Optional[bool] = None


class ProductResponse(ProductBase):
    id: str
    tenant_id: str
    price: float
    mrp: float
    image_url: Optional[str] = None
    inventory_count: int
    in_stock: bool
    active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProductListResponse(BaseModel):
    products: list[ProductResponse]
    total: int
    page: int
    page_size: int


class ImportRowError(BaseModel):
    row: int
    error: str


class ProductImportResult(BaseModel):
    created: int
    failed: int
    errors: list[ImportRowError]
    product_ids: list[str]
