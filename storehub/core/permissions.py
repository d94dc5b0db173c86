"""
Permission System (RBAC)

Each role maps to a fixed capability set. Routes declare the permissions
they need through storehub.api.deps.tenant_scope and a single check runs
before the handler; handlers never branch on role names to authorize.

Super admins hold every permission, on every tenant.
"""
from enum import Enum
from typing import Iterable, Set

from storehub.core.exceptions import PermissionDenied
from storehub.models.user import User, UserRole


class Permission(str, Enum):
    # Platform
    PLATFORM_MANAGE = "platform:manage"

    # Tenant profile and branding
    TENANT_MANAGE = "tenant:manage"

    # People
    STAFF_MANAGE = "staff:manage"
    CUSTOMERS_MANAGE = "customers:manage"
    PROFILE_SELF = "profile:self"

    # Catalog
    CATALOG_MANAGE = "catalog:manage"

    # Orders
    ORDERS_PLACE = "orders:place"
    ORDERS_READ = "orders:read"
    ORDERS_MANAGE = "orders:manage"

    # Credit ledger and loyalty
    CREDIT_REQUEST = "credit:request"
    LEDGER_READ = "ledger:read"
    LEDGER_MANAGE = "ledger:manage"
    LOYALTY_READ = "loyalty:read"
    LOYALTY_REDEEM = "loyalty:redeem"

    # Notifications and automation
    NOTIFICATIONS_READ = "notifications:read"
    NOTIFICATIONS_SEND = "notifications:send"
    WEBHOOKS_MANAGE = "webhooks:manage"
    API_KEYS_MANAGE = "api_keys:manage"

    # Reporting
    AUDIT_READ = "audit:read"
    ANALYTICS_READ = "analytics:read"


CUSTOMER_PERMISSIONS = {
    Permission.PROFILE_SELF,
    Permission.ORDERS_PLACE,
    Permission.ORDERS_READ,
    Permission.CREDIT_REQUEST,
    Permission.LEDGER_READ,
    Permission.LOYALTY_READ,
    Permission.LOYALTY_REDEEM,
    Permission.NOTIFICATIONS_READ,
}

ADMIN_PERMISSIONS = {
    Permission.TENANT_MANAGE,
    Permission.STAFF_MANAGE,
    Permission.CUSTOMERS_MANAGE,
    Permission.PROFILE_SELF,
    Permission.CATALOG_MANAGE,
    Permission.ORDERS_PLACE,
    Permission.ORDERS_READ,
    Permission.ORDERS_MANAGE,
    Permission.LEDGER_READ,
    Permission.LEDGER_MANAGE,
    Permission.LOYALTY_READ,
    Permission.LOYALTY_REDEEM,
    Permission.NOTIFICATIONS_READ,
    Permission.NOTIFICATIONS_SEND,
    Permission.WEBHOOKS_MANAGE,
    Permission.API_KEYS_MANAGE,
    Permission.AUDIT_READ,
    Permission.ANALYTICS_READ,
}

# What a developer API key may be granted. Keys never manage staff, the
# tenant profile or other keys.
API_KEY_SCOPES = {
    Permission.CATALOG_MANAGE,
    Permission.CUSTOMERS_MANAGE,
    Permission.ORDERS_PLACE,
    Permission.ORDERS_READ,
    Permission.ORDERS_MANAGE,
    Permission.LEDGER_READ,
    Permission.LOYALTY_READ,
    Permission.NOTIFICATIONS_READ,
    Permission.WEBHOOKS_MANAGE,
    Permission.ANALYTICS_READ,
}

ROLE_PERMISSIONS = {
    UserRole.SUPER_ADMIN: set(Permission),
    UserRole.ADMIN: ADMIN_PERMISSIONS,
    UserRole.CUSTOMER: CUSTOMER_PERMISSIONS,
}


def get_permissions(role: UserRole) -> Set[Permission]:
    return ROLE_PERMISSIONS.get(role, set())


def has_permission(user: User, permission: Permission) -> bool:
    return permission in get_permissions(user.role)


def require_permissions(user: User, permissions: Iterable[Permission]) -> None:
    """
    Check that the user holds every listed permission.

    Raises PermissionDenied naming the first missing one.
    """
    granted = get_permissions(user.role)
    for permission in permissions:
        if permission not in granted:
            raise PermissionDenied(f"Missing permission: {permission.value}")
