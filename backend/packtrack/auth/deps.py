"""FastAPI dependencies for authentication and authorization.

Dependencies:
  get_current_user       → decode JWT, load user from DB, return User
  get_optional_user      → same, but None when no token is presented
  require_role(...)      → restrict to specific roles
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from packtrack.auth.jwt import decode_token
from packtrack.auth.revocation import TokenRevocation
from packtrack.database import get_db
from packtrack.models.user import User, UserRole

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _resolve_user(token: str, db: AsyncSession) -> User:
    payload = decode_token(token)
    user_id: str | None = payload.get("sub")
    if not user_id or payload.get("type") != "access":
        raise _unauthorized("Invalid or expired token")

    if await TokenRevocation.is_revoked(token):
        raise _unauthorized("Token has been revoked")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise _unauthorized("User not found or inactive")

    # Password changes bump the version and invalidate older tokens
    if payload.get("ver", 0) != user.token_version:
        raise _unauthorized("Session expired. Please log in again.")

    # Stash token payload for downstream deps (logout needs exp)
    user._token_payload = payload  # type: ignore[attr-defined]
    return user


# ── Core user dependency ────────────────────────────────────

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode the bearer JWT and return the active user it names."""
    return await _resolve_user(token, db)


async def get_optional_user(
    token: str | None = Depends(optional_oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    if not token:
        return None
    return await _resolve_user(token, db)


# ── Role-based access control ───────────────────────────────

def require_role(*roles: UserRole):
    """Dependency factory: restrict to one or more roles.

    Usage:
        @router.delete("/{load_id}")
        async def delete_load(user: User = Depends(require_role(UserRole.ADMIN))):
            ...
    """
    async def _check(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return _check
