"""
API Key Model

Developer API keys for a tenant's integrations. Only a bcrypt hash of the
key is stored; key_prefix (the first characters of the key) narrows the
lookup to a handful of rows before the hash is checked.
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Index, Integer, JSON
from datetime import datetime
from storehub.database import Base
from storehub.models.mixins import TenantScopedMixin
import uuid


class ApiKey(TenantScopedMixin, Base):
    __tablename__ = "api_keys"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    key_prefix = Column(String(20), nullable=False, index=True)
    key_hash = Column(String(255), nullable=False)
    scopes = Column(JSON, nullable=False, default=list)  # permission values

    is_active = Column(Boolean, default=True, nullable=False)
    expires_at = Column(DateTime, nullable=True)
    revoked_at = Column(DateTime, nullable=True)

    # Usage
    last_used_at = Column(DateTime, nullable=True)
    total_requests = Column(Integer, default=0, nullable=False)

    # The key acts for this admin, within its scopes
    created_by = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_api_key_tenant_active', 'tenant_id', 'is_active'),
    )

    def __repr__(self):
        return f"<ApiKey {self.key_prefix}... ({self.tenant_id})>"
