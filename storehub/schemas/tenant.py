"""
Tenant Schemas
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from storehub.models.tenant import TenantStatus, BusinessType

SUBDOMAIN_PATTERN = r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$"
COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"


class TenantBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    subdomain: str = Field(..., min_length=1, max_length=63, pattern=SUBDOMAIN_PATTERN)
    business_type: BusinessType = BusinessType.PHARMACY
    contact_email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=32)
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None


class TenantCreate(TenantBase):
    """
    Tenant provisioning by a super admin, with the store's first admin.
    """
    admin_email: EmailStr
    admin_password: str = Field(..., min_length=8, max_length=100)
    admin_name: Optional[str] = None
    status: TenantStatus = TenantStatus.ACTIVE


class TenantRegister(TenantBase):
    """Self-service signup; the tenant stays pending until approved."""
    admin_email: EmailStr
    admin_password: str = Field(..., min_length=8, max_length=100)
    admin_name: Optional[str] = None


class TenantUpdate(BaseModel):
    """Profile and branding changes. All fields optional."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    business_type: Optional[BusinessType] = None
    primary_color: Optional[str] = Field(None, pattern=COLOR_PATTERN)
    accent_color: Optional[str] = Field(None, pattern=COLOR_PATTERN)
    tagline: Optional[str] = Field(None, max_length=255)
    contact_email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=32)
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None


class TenantStatusUpdate(BaseModel):
    status: TenantStatus
    reason: Optional[str] = None


class TenantResponse(BaseModel):
    id: str
    name: str
    subdomain: str
    status: TenantStatus
    business_type: BusinessType
    logo_url: Optional[str] = None
    primary_color: Optional[str] = None
    accent_color: Optional[str] = None
    tagline: Optional[str] = None
    contact_email: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TenantListResponse(BaseModel):
    tenants: list[TenantResponse]
    total: int
    page: int
    page_size: int


class BrandingResponse(BaseModel):
    """Public storefront branding."""
    tenant_id: str
    name: str
    subdomain: str
    business_type: BusinessType
    logo_url: Optional[str] = None
    primary_color: Optional[str] = None
    accent_color: Optional[str] = None
    tagline: Optional[str] = None


class TenantProvisionResponse(BaseModel):
    tenant: TenantResponse
    admin_id: str
