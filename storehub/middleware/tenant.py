"""
Tenant Hint Middleware

Extracts the tenant subdomain from the Host header and stores it on
request.state.subdomain for the rate limiter and the tenant dependency.

ARCHITECTURE: The middleware does NOT resolve the tenant. Path parameters
only exist after routing, and the token tenant only after authentication,
so full resolution happens in storehub.api.deps.tenant_scope. Keeping this
layer free of database access also keeps it cheap on every request.

Subdomain routing:
- citypharma.storehub.local -> "citypharma"
- www/api/app/admin.storehub.local -> no tenant
- storehub.local, localhost, testserver -> no tenant
"""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from storehub.core.tenancy import extract_subdomain
from storehub.utils.logging import get_logger

logger = get_logger(__name__)


class TenantHintMiddleware(BaseHTTPMiddleware):
    """Attach the Host subdomain hint to the request state."""

    async def dispatch(self, request: Request, call_next):
        subdomain = extract_subdomain(request.headers.get("Host"))
        request.state.subdomain = subdomain

        if subdomain:
            logger.debug(f"Request for subdomain: {subdomain}")

        return await call_next(request)
