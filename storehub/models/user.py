"""
User Model

Every actor of the platform lives in this table: super admins (no tenant),
tenant admins (store staff) and customers.

IMPORTANT: tenant_id is the isolation field. It is NULL only for
super_admin rows; the CHECK constraint keeps it that way.
"""
from sqlalchemy import (
    Column, String, Boolean, DateTime, ForeignKey, Index, Integer, Numeric,
    CheckConstraint, Enum as SQLEnum
)
from sqlalchemy.orm import relationship
from datetime import datetime
from decimal import Decimal
from storehub.database import Base
import uuid
import enum


class UserRole(str, enum.Enum):
    """
    Closed set of actor roles.

    SUPER_ADMIN: platform operator, not bound to any tenant
    ADMIN: store staff, full access to their own tenant
    CUSTOMER: shopper, access to their own records within their tenant
    """
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    CUSTOMER = "customer"


class User(Base):
    __tablename__ = "users"

    # Scoped by TenantScope even though the column is nullable
    __tenant_scoped__ = True

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    tenant_id = Column(
        String(36),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )

    email = Column(String(255), nullable=False, index=True)
    # Nullable: admins can register walk-in customers who never log in
    hashed_password = Column(String(255), nullable=True)
    full_name = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=True, index=True)

    role = Column(
        SQLEnum(UserRole),
        default=UserRole.CUSTOMER,
        nullable=False,
        index=True
    )

    # Soft deactivation; users are never deleted
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Customer balances
    loyalty_points = Column(Integer, default=0, nullable=False)
    credit_limit = Column(Numeric(10, 2), nullable=True)  # NULL = no limit
    credit_balance = Column(Numeric(10, 2), default=Decimal("0.00"), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    last_login_at = Column(DateTime, nullable=True)

    tenant = relationship("Tenant", back_populates="users")
    orders = relationship("Order", back_populates="customer", foreign_keys="Order.customer_id")

    __table_args__ = (
        # Same email may exist in different tenants
        Index('idx_user_tenant_email', 'tenant_id', 'email', unique=True),
        Index('idx_user_tenant_active', 'tenant_id', 'is_active'),
        Index('idx_user_tenant_role', 'tenant_id', 'role'),
        CheckConstraint(
            "(role = 'SUPER_ADMIN' AND tenant_id IS NULL) OR "
            "(role != 'SUPER_ADMIN' AND tenant_id IS NOT NULL)",
            name="ck_user_tenant_binding",
        ),
    )

    def __repr__(self):
        return f"<User {self.email} role={self.role} (tenant={self.tenant_id})>"

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN

    @property
    def is_tenant_bound(self) -> bool:
        return self.role in (UserRole.ADMIN, UserRole.CUSTOMER)
