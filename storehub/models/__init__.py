"""
Database Models

Tenant-scoped tables carry tenant_id through TenantScopedMixin and are
queried through storehub.core.tenancy.TenantScope.
"""
from storehub.models.tenant import Tenant, TenantStatus, BusinessType
from storehub.models.user import User, UserRole
from storehub.models.catalog import Category, Product
from storehub.models.order import Order, OrderItem, OrderStatusHistory, OrderStatus, DeliveryType, PaymentStatus
from storehub.models.ledger import LedgerEntry, LoyaltyTransaction
from storehub.models.notification import Notification, MessageLog
from storehub.models.webhook import WebhookSubscription, WebhookLog
from storehub.models.audit import AuditLog
from storehub.models.api_key import ApiKey

__all__ = [
    "Tenant", "TenantStatus", "BusinessType",
    "User", "UserRole",
    "Category", "Product",
    "Order", "OrderItem", "OrderStatusHistory", "OrderStatus", "DeliveryType", "PaymentStatus",
    "LedgerEntry", "LoyaltyTransaction",
    "Notification", "MessageLog",
    "WebhookSubscription", "WebhookLog",
    "AuditLog",
    "ApiKey",
]
