from datetime import UTC, datetime, timedelta

import bcrypt
from jose import JWTError, jwt

from crud_users.config import settings

ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode(), salt).decode()


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode(), hashed.encode())
    except ValueError:
        # Malformed stored hash or over-long input
        return False


def create_access_token(user_id: str, expires_delta: timedelta | None = None) -> str:
    now = datetime.now(UTC)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    return jwt.encode(
        {"sub": str(user_id), "iat": now, "exp": now + expires_delta},
        settings.secret_key,
        algorithm=ALGORITHM,
    )


def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])


def verify_token(token: str) -> dict | None:
    """Decode a token, returning None if it is invalid, expired or has no subject."""
    try:
        payload = decode_token(token)
    except JWTError:
        return None
    if not payload.get("sub"):
        return None
    return payload


def extract_bearer_token(header: str | None) -> str | None:
    if not header:
        return None
    parts = header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1]
