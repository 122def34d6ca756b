"""JWT token creation and decoding.

Token claims:
  - sub:   user ID
  - role:  user role string
  - ver:   the user's token version; bumping it invalidates older tokens
  - type:  "access" | "refresh"
  - iat:   issue timestamp
  - exp:   expiry timestamp
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from packtrack.config import settings

ALGORITHM = settings.jwt_algorithm


def _encode(user_id: str, role: str, token_version: int, token_type: str, lifetime: timedelta) -> str:
    issued = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "role": role,
        "ver": token_version,
        "type": token_type,
        "iat": issued,
        "exp": issued + lifetime,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def create_access_token(
    user_id: str,
    role: str,
    token_version: int = 0,
    expires_delta: timedelta | None = None,
) -> str:
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    return _encode(user_id, role, token_version, "access", lifetime)


def create_refresh_token(user_id: str, role: str, token_version: int = 0) -> str:
    return _encode(
        user_id, role, token_version, "refresh", timedelta(days=settings.refresh_token_expire_days)
    )


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Returns empty dict on failure."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return {}
