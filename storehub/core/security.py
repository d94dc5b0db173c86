"""
Security Module

Handles password hashing and JWT token generation/validation
(passlib with bcrypt, python-jose).

Tokens carry the actor id, role and, for admins and customers, the bound
tenant_id. That claim is authoritative during tenant resolution.
"""
from datetime import datetime, timedelta
import secrets
from typing import Optional, Dict, Any, Tuple
from jose import JWTError, jwt
from passlib.context import CryptContext
from storehub.config import get_settings

settings = get_settings()

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """
    Verify a password against its hash.

    Accounts without a password (walk-in customers) never verify.
    """
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt. Slow by design; keep out of hot paths."""
    return pwd_context.hash(password)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Payload:
    - sub: user id
    - role: actor role
    - tenant_id: bound tenant (omitted for super admins)
    - exp / iat
    """
    to_encode = {key: value for key, value in data.items() if value is not None}

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({
        "exp": expire,
        "iat": datetime.utcnow()
    })

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )


def create_actor_token(user) -> str:
    """Issue the bearer token for an authenticated actor."""
    return create_access_token({
        "sub": user.id,
        "role": user.role.value,
        "tenant_id": user.tenant_id,
        "email": user.email,
    })


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a JWT token.

    Returns the payload if valid, None if invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        return None


API_KEY_MARKER = "pk_"
API_KEY_PREFIX_LENGTH = 12


def generate_api_key() -> Tuple[str, str]:
    """
    Create a developer API key.

    Returns (key, key_prefix). The key is shown to its owner once; only
    its hash and prefix are stored.
    """
    key = f"{API_KEY_MARKER}{secrets.token_hex(32)}"
    return key, key[:API_KEY_PREFIX_LENGTH]


def is_api_key(token: str) -> bool:
    return token.startswith(API_KEY_MARKER)
