"""
Order Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from storehub.models.order import OrderStatus, DeliveryType, PaymentStatus


class OrderItemCreate(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=1, le=1000)


class OrderCreate(BaseModel):
    """
    Place an order.

    Customers order for themselves; admins pass customer_id to order on a
    customer's behalf.
    """
    items: list[OrderItemCreate] = Field(..., min_length=1)
    delivery_type: DeliveryType = DeliveryType.DELIVERY
    payment_method: str = Field("cash", min_length=1, max_length=50)
    delivery_address: Optional[str] = None
    delivery_phone: Optional[str] = Field(None, max_length=32)
    notes: Optional[str] = None
    customer_id: Optional[str] = None
    tenant_id: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    notes: Optional[str] = None
    tracking_number: Optional[str] = Field(None, max_length=100)


class OrderCancel(BaseModel):
    reason: Optional[str] = None


class OrderItemResponse(BaseModel):
    id: str
    product_id: Optional[str] = None
    product_name: str
    quantity: int
    unit_price: float
    line_total: float

    class Config:
        from_attributes = True


class OrderStatusHistoryResponse(BaseModel):
    id: str
    from_status: Optional[OrderStatus] = None
    to_status: OrderStatus
    changed_by: Optional[str] = None
    notes: Optional[str] = None
    changed_at: datetime

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: str
    tenant_id: str
    customer_id: str
    order_number: str
    status: OrderStatus
    delivery_type: DeliveryType
    total: float
    payment_method: str
    payment_status: PaymentStatus
    delivery_address: Optional[str] = None
    delivery_phone: Optional[str] = None
    notes: Optional[str] = None
    tracking_number: Optional[str] = None
    cancellation_reason: Optional[str] = None
    acceptance_deadline: Optional[datetime] = None
    auto_accepted: bool
    accepted_at: Optional[datetime] = None
    packed_at: Optional[datetime] = None
    dispatched_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    items: list[OrderItemResponse] = []

    class Config:
        from_attributes = True


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]
    total: int
    page: int
    page_size: int


class AutoAcceptFailure(BaseModel):
    order_id: str
    error: str


class AutoAcceptResult(BaseModel):
    accepted: list[str]
    failed: list[AutoAcceptFailure]
