"""Password hashing (bcrypt) and access-token signing (HS256 JWT)."""

import time

import bcrypt
from jose import JWTError, jwt

from parts_inventory.core.config import settings


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def create_access_token(
    sub: str,
    role: str,
    expires_in: int | None = None,
) -> str:
    """Create a signed access token carrying the username and role."""
    if expires_in is None:
        expires_in = settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    now = int(time.time())
    payload = {
        "sub": sub,
        "role": role,
        "token_use": "access",
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Decode and verify an access token. Returns the claims dict."""
    claims = jwt.decode(
        token,
        settings.SECRET_KEY,
        algorithms=[settings.JWT_ALGORITHM],
        options={"verify_aud": False, "verify_iss": False},
    )
    if claims.get("token_use") != "access":
        raise JWTError("Not an access token")
    return claims
