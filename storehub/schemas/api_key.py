"""
API Key Schemas

The plain key appears only in ApiKeyCreated, returned once on creation.
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from storehub.core.permissions import Permission


class ApiKeyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    scopes: Optional[list[Permission]] = None
    expires_in_days: Optional[int] = Field(None, ge=1, le=3650)


class ApiKeyResponse(BaseModel):
    id: str
    tenant_id: str
    name: str
    description: Optional[str] = None
    key_prefix: str
    scopes: list[str]
    is_active: bool
    expires_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None
    total_requests: int
    created_by: str
    created_at: datetime

    class Config:
        from_attributes = True


class ApiKeyCreated(ApiKeyResponse):
    api_key: str
