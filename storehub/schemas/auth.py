"""
Authentication Schemas

Request/response models for authentication endpoints.
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from storehub.models.user import UserRole


class Token(BaseModel):
    """JWT token response."""
    access_token: str
    token_type: str = "bearer"
    role: UserRole
    tenant_id: Optional[str] = None


class LoginRequest(BaseModel):
    """
    Login request body.

    The tenant comes from tenant_id, subdomain, or the Host header, in that
    order. With none of them the login is a super-admin login.
    """
    email: EmailStr
    password: str = Field(..., min_length=1)
    tenant_id: Optional[str] = None
    subdomain: Optional[str] = None


class RegisterRequest(BaseModel):
    """Customer self-registration in the resolved tenant."""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)
    full_name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=32)
    tenant_id: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "email": "asha@example.com",
                "password": "securepassword123",
                "full_name": "Asha Rao",
                "phone": "+91 98450 00000",
            }
        }


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=100)
