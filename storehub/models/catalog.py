"""
Catalog Models

Categories and products. Both are tenant-scoped: a store's catalog is
never visible to another store.
"""
from sqlalchemy import (
    Column, String, Text, Boolean, DateTime, ForeignKey, Index, Integer, Numeric
)
from sqlalchemy.orm import relationship
from datetime import datetime
from storehub.database import Base
from storehub.models.mixins import TenantScopedMixin
import uuid


class Category(TenantScopedMixin, Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    display_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    products = relationship("Product", back_populates="category")

    __table_args__ = (
        Index('idx_category_tenant_name', 'tenant_id', 'name', unique=True),
    )

    def __repr__(self):
        return f"<Category {self.name} (tenant={self.tenant_id})>"


class Product(TenantScopedMixin, Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    category_id = Column(
        String(36),
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    brand = Column(String(255), nullable=True)
    sku = Column(String(100), nullable=True)

    price = Column(Numeric(10, 2), nullable=False)
    mrp = Column(Numeric(10, 2), nullable=False)  # maximum retail price

    image_url = Column(String(512), nullable=True)
    requires_rx = Column(Boolean, default=False, nullable=False)  # prescription required
    featured = Column(Boolean, default=False, nullable=False)
    inventory_count = Column(Integer, default=0, nullable=False)

    # Soft delete: inactive products stay referenced by old orders
    active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    category = relationship("Category", back_populates="products")

    __table_args__ = (
        Index('idx_product_tenant_active', 'tenant_id', 'active'),
        Index('idx_product_tenant_name', 'tenant_id', 'name'),
        Index('idx_product_tenant_sku', 'tenant_id', 'sku'),
    )

    def __repr__(self):
        return f"<Product {self.name} (tenant={self.tenant_id})>"

    @property
    def in_stock(self) -> bool:
        return self.inventory_count > 0
