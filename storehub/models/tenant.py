"""
Tenant Model

The tenant is the isolation boundary: one business account (a pharmacy,
grocery, or other store) sharing the platform with every other tenant.

We use a shared database and shared schema; every tenant-scoped table
carries a tenant_id column. Tenants are never hard-deleted, only moved
between pending, active and suspended.
"""
from sqlalchemy import Column, String, DateTime, Enum as SQLEnum, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from storehub.database import Base
import uuid
import enum


class TenantStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"


class BusinessType(str, enum.Enum):
    PHARMACY = "pharmacy"
    GROCERY = "grocery"
    RETAIL = "retail"
    RESTAURANT = "restaurant"
    OTHER = "other"


# Allowed status moves; a tenant may be reactivated after suspension
TENANT_STATUS_TRANSITIONS = {
    TenantStatus.PENDING: {TenantStatus.ACTIVE, TenantStatus.SUSPENDED},
    TenantStatus.ACTIVE: {TenantStatus.SUSPENDED},
    TenantStatus.SUSPENDED: {TenantStatus.ACTIVE},
}


class Tenant(Base):
    __tablename__ = "tenants"

    # UUIDs avoid enumeration of tenant ids
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    name = Column(String(255), nullable=False)

    # Subdomain for tenant routing (e.g., citypharma.storehub.local)
    subdomain = Column(String(63), unique=True, nullable=False, index=True)

    status = Column(
        SQLEnum(TenantStatus),
        default=TenantStatus.PENDING,
        nullable=False,
        index=True
    )
    business_type = Column(
        SQLEnum(BusinessType),
        default=BusinessType.PHARMACY,
        nullable=False
    )

    # Branding
    logo_url = Column(String(512), nullable=True)
    primary_color = Column(String(7), nullable=True)
    accent_color = Column(String(7), nullable=True)
    tagline = Column(String(255), nullable=True)

    # Contact
    contact_email = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True, default="India")

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    users = relationship("User", back_populates="tenant")

    __table_args__ = (
        Index('idx_tenant_status_subdomain', 'status', 'subdomain'),
    )

    def __repr__(self):
        return f"<Tenant {self.subdomain} ({self.status.value if self.status else None})>"

    @property
    def is_active(self) -> bool:
        return self.status == TenantStatus.ACTIVE

    def can_transition_to(self, new_status: TenantStatus) -> bool:
        return new_status in TENANT_STATUS_TRANSITIONS.get(self.status, set())
