"""
User Schemas

Request/response models for actors: staff accounts and customers.
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from storehub.models.user import UserRole


class UserBase(BaseModel):
    """Base user schema with common fields."""
    email: EmailStr
    full_name: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=32)


class StaffCreate(UserBase):
    """Schema for creating a tenant admin."""
    password: str = Field(..., min_length=8, max_length=100)


class StaffUpdate(BaseModel):
    """Schema for updating a staff account. All fields optional."""
    full_name: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=32)
    is_active: Optional[bool] = None


class UserResponse(UserBase):
    """User response schema (excludes sensitive data)."""
    id: str
    tenant_id: Optional[str]
    role: UserRole
    is_active: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    """Paginated list of users."""
    users: list[UserResponse]
    total: int
    page: int
    page_size: int


class CustomerCreate(UserBase):
    """
    Admin-created customer.

    Password is optional: walk-in customers may never log in.
    """
    password: Optional[str] = Field(None, min_length=8, max_length=100)
    credit_limit: Optional[float] = Field(None, ge=0)


class CustomerUpdate(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=32)
    is_active: Optional[bool] = None
    credit_limit: Optional[float] = Field(None, ge=0)


class CustomerSelfUpdate(BaseModel):
    """Fields a customer may change on their own record."""
    full_name: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=32)


class CustomerResponse(UserResponse):
    loyalty_points: int
    credit_limit: Optional[float] = None
    credit_balance: float


class CustomerListResponse(BaseModel):
    customers: list[CustomerResponse]
    total: int
    page: int
    page_size: int


class CustomerStats(BaseModel):
    customer_id: str
    order_count: int
    total_spent: float
    last_order_at: Optional[datetime] = None
    loyalty_points: int
    credit_balance: float
