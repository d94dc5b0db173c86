"""
Model Mixins

TenantScopedMixin marks a table as tenant-scoped. TenantScope only builds
queries for models carrying it, and the mixin guarantees the indexed,
non-null tenant_id column those queries filter on.
"""
from sqlalchemy import Column, String, ForeignKey
from sqlalchemy.orm import declared_attr


class TenantScopedMixin:
    """Adds a required, indexed tenant_id foreign key."""

    __tenant_scoped__ = True

    @declared_attr
    def tenant_id(cls):
        return Column(
            String(36),
            ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=False,
            index=True
        )
