"""
Developer API Keys

A key belongs to one tenant and acts for the admin who created it, limited
to the scopes it was granted. Requests send it as a bearer token:

    Authorization: Bearer pk_...

Usage (last_used_at, total_requests) is counted on every authenticated
request.
"""
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Set, Tuple

from sqlalchemy.orm import Session

from storehub.core.exceptions import AuthenticationError, ConflictError, InvalidInputError
from storehub.core.permissions import API_KEY_SCOPES, Permission
from storehub.core.security import (
    API_KEY_PREFIX_LENGTH,
    generate_api_key,
    get_password_hash,
    verify_password,
)
from storehub.core.tenancy import TenantScope
from storehub.models.api_key import ApiKey
from storehub.models.user import User
from storehub.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)

DEFAULT_SCOPES = [Permission.ORDERS_READ]


def validate_scopes(scopes: Iterable[Permission]) -> List[str]:
    granted = []
    for scope in scopes:
        if scope not in API_KEY_SCOPES:
            raise InvalidInputError(f"Scope not available to API keys: {scope.value}")
        if scope.value not in granted:
            granted.append(scope.value)
    if not granted:
        raise InvalidInputError("An API key needs at least one scope")
    return granted


def create_api_key(
    scope: TenantScope,
    creator: User,
    name: str,
    scopes: Optional[Iterable[Permission]] = None,
    description: Optional[str] = None,
    expires_in_days: Optional[int] = None,
) -> Tuple[ApiKey, str]:
    """
    Issue a key for the scope's tenant.

    Returns (row, plain key). The plain key is not stored anywhere.
    """
    if creator.tenant_id != scope.tenant_id:
        raise InvalidInputError("API keys are issued by an admin of the tenant")

    key, prefix = generate_api_key()
    api_key = ApiKey(
        name=name,
        description=description,
        key_prefix=prefix,
        key_hash=get_password_hash(key),
        scopes=validate_scopes(scopes if scopes is not None else DEFAULT_SCOPES),
        created_by=creator.id,
    )
    if expires_in_days:
        api_key.expires_at = datetime.utcnow() + timedelta(days=expires_in_days)
    scope.add(api_key)

    logger.info(f"API key {prefix}... issued by {creator.id}", extra={"tenant_id": scope.tenant_id})
    return api_key, key


def revoke_api_key(api_key: ApiKey) -> ApiKey:
    if not api_key.is_active:
        raise ConflictError("API key is already revoked")
    api_key.is_active = False
    api_key.revoked_at = datetime.utcnow()
    return api_key


def key_scopes(api_key: ApiKey) -> Set[Permission]:
    known = {permission.value for permission in Permission}
    return {Permission(value) for value in api_key.scopes or [] if value in known}


def authenticate_api_key(db: Session, token: str) -> Tuple[ApiKey, User]:
    """
    Find the active key matching token and count the request.

    Returns (key, acting admin). Every failure is the same 401.
    """
    candidates = db.query(ApiKey).filter(
        ApiKey.key_prefix == token[:API_KEY_PREFIX_LENGTH],
        ApiKey.is_active == True,  # noqa: E712
    ).all()
    api_key = next((c for c in candidates if verify_password(token, c.key_hash)), None)
    if api_key is None:
        log_security_event("invalid_api_key", {"key_prefix": token[:API_KEY_PREFIX_LENGTH]}, logger)
        raise AuthenticationError("Invalid or revoked API key")

    if api_key.expires_at is not None and api_key.expires_at <= datetime.utcnow():
        log_security_event("expired_api_key", {"api_key_id": api_key.id, "tenant_id": api_key.tenant_id}, logger)
        raise AuthenticationError("API key has expired")

    owner = db.query(User).filter(User.id == api_key.created_by).first()
    if owner is None or not owner.is_active or owner.tenant_id != api_key.tenant_id:
        log_security_event("orphaned_api_key", {"api_key_id": api_key.id}, logger)
        raise AuthenticationError("Invalid or revoked API key")

    db.query(ApiKey).filter(ApiKey.id == api_key.id).update(
        {ApiKey.total_requests: ApiKey.total_requests + 1, ApiKey.last_used_at: datetime.utcnow()},
        synchronize_session=False,
    )
    db.commit()
    return api_key, owner
