"""
Custom Exceptions

Centralized exception definitions. Each carries an error_type tag that the
handlers in storehub.main put next to the message:

    {"error": "<message>", "type": "<error_type>"}
"""
from fastapi import HTTPException, status


class AppError(HTTPException):
    """Base class for application errors."""

    error_type = "error"

    def __init__(self, status_code: int, detail: str, headers: dict = None):
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class NotFoundError(AppError):
    """Raised when a resource cannot be found in the current tenant."""

    error_type = "not_found"

    def __init__(self, resource: str = "Resource", resource_id: str = ""):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found: {resource_id}" if resource_id else f"{resource} not found"
        )


class TenantNotFoundError(NotFoundError):
    """Raised when tenant cannot be found."""

    def __init__(self, tenant_identifier: str = ""):
        super().__init__("Tenant", tenant_identifier)


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str = ""):
        super().__init__("User", user_id)


class CustomerNotFoundError(NotFoundError):
    def __init__(self, customer_id: str = ""):
        super().__init__("Customer", customer_id)


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: str = ""):
        super().__init__("Product", product_id)


class CategoryNotFoundError(NotFoundError):
    def __init__(self, category_id: str = ""):
        super().__init__("Category", category_id)


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: str = ""):
        super().__init__("Order", order_id)


class TenantRequiredError(AppError):
    """Raised when no tenant signal can be resolved from the request."""

    error_type = "tenant_required"

    def __init__(self, detail: str = "Tenant identification required"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class TenantConflictError(AppError):
    """Raised when an unbound caller supplies two different tenants."""

    error_type = "tenant_conflict"

    def __init__(self, detail: str = "Conflicting tenant identifiers in request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class TenantInactiveError(AppError):
    """Raised when the resolved tenant is pending or suspended."""

    error_type = "tenant_inactive"

    def __init__(self, tenant_status: str = ""):
        detail = f"Tenant is {tenant_status}" if tenant_status else "Tenant is not active"
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class AuthenticationError(AppError):
    """Raised when authentication fails."""

    error_type = "authentication_error"

    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class PermissionDenied(AppError):
    """Raised when the actor's role lacks a required permission."""

    error_type = "permission_denied"

    def __init__(self, detail: str = "Permission denied"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class TenantIsolationError(AppError):
    """
    Raised when a tenant isolation violation is detected.

    This is a security error and is logged as one by the handler.
    """

    error_type = "tenant_isolation_error"

    def __init__(self, detail: str = "Cross-tenant access denied"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class TenantMismatchError(TenantIsolationError):
    """Raised when a bound actor names a tenant other than their own."""

    error_type = "tenant_mismatch"

    def __init__(self, detail: str = "Cross-tenant access denied: token tenant does not match request"):
        super().__init__(detail)


class UnscopedQueryError(TenantIsolationError):
    """Raised when a tenant-scoped query is built without a tenant."""

    error_type = "unscoped_query"

    def __init__(self, detail: str = "Tenant-scoped query requires a tenant"):
        super().__init__(detail)


class InvalidInputError(AppError):
    """Raised when input validation fails beyond schema checks."""

    error_type = "validation_error"

    def __init__(self, detail: str = "Invalid input"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ConflictError(AppError):
    """Raised on duplicates and state conflicts."""

    error_type = "conflict"

    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class InvalidTransitionError(ConflictError):
    """Raised when a lifecycle transition is not allowed from the current state."""

    error_type = "invalid_transition"

    def __init__(self, current: str, requested: str, reason: str = None):
        if current == requested:
            detail = f"Order is already {current}"
        else:
            detail = f"Cannot move order from {current} to {requested}"
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(detail)
        self.current = current
        self.requested = requested


class CreditLimitExceeded(InvalidInputError):
    error_type = "credit_limit_exceeded"

    def __init__(self, detail: str = "Credit limit exceeded"):
        super().__init__(detail)


class UploadRejectedError(AppError):
    """Raised for uploads with a disallowed MIME type or oversized body."""

    error_type = "upload_rejected"

    def __init__(self, detail: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(status_code=status_code, detail=detail)


class RateLimitExceeded(AppError):
    """Raised when rate limit is exceeded."""

    error_type = "rate_limit_exceeded"

    def __init__(self, retry_after: int = 60, detail: str = "Rate limit exceeded. Please try again later."):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=detail,
            headers={"Retry-After": str(retry_after)}
        )
