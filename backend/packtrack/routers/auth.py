"""Auth routes: login, register, profile, password, refresh, logout.

Route overview:
  POST /login       email + password login
  POST /register    open while the database has no users, admin-only after
  GET  /me          current user profile
  PUT  /password    change own password; invalidates every older token
  POST /refresh     exchange a refresh token for a new access token
  POST /logout      revoke the presented access token
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from packtrack.auth.deps import get_current_user, get_optional_user, oauth2_scheme
from packtrack.auth.jwt import create_access_token, create_refresh_token, decode_token
from packtrack.auth.password import hash_password, verify_password
from packtrack.auth.revocation import TokenRevocation
from packtrack.database import get_db
from packtrack.middleware.exceptions import ConflictError
from packtrack.models.user import User, UserRole
from packtrack.schemas.auth import (
    AccessTokenResponse,
    ChangePasswordRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserOut,
    UserResponse,
)
from packtrack.schemas.common import MessageResponse

logger = logging.getLogger("packtrack.auth")

router = APIRouter()


def _access_token(user: User) -> str:
    return create_access_token(
        user_id=user.id, role=user.role.value, token_version=user.token_version
    )


def _refresh_token(user: User) -> str:
    return create_refresh_token(
        user_id=user.id, role=user.role.value, token_version=user.token_version
    )


# ── POST /login ──────────────────────────────────────────────

@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Email + password login. Every failure is the same 401."""
    result = await db.execute(select(User).where(User.email == body.email.lower()))
    user = result.scalar_one_or_none()

    if not user or not user.is_active or not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    user.last_login_at = datetime.utcnow()
    await db.flush()

    return TokenResponse(
        token=_access_token(user),
        refresh_token=_refresh_token(user),
        user=UserOut.model_validate(user),
    )


# ── POST /register ──────────────────────────────────────────

@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    current: User | None = Depends(get_optional_user),
):
    """Create a user.

    The very first user of an empty database registers without a token and
    becomes an admin. Once any user exists, only an admin may register others.
    """
    user_count = await db.scalar(select(func.count(User.id))) or 0
    bootstrap = user_count == 0
    if not bootstrap and (current is None or current.role != UserRole.ADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only administrators can register new users",
        )

    email = body.email.lower()
    existing = await db.execute(select(User).where(User.email == email))
    if existing.scalar_one_or_none():
        raise ConflictError("Email already registered", "DUPLICATE_EMAIL")

    user = User(
        email=email,
        password_hash=hash_password(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
        role=UserRole.ADMIN if bootstrap else body.role,
        assigned_site_id=body.assigned_site_id,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info(f"User registered: {user.email} ({user.role.value})")
    return RegisterResponse(
        user=UserOut.model_validate(user),
        token=_access_token(user),
        refresh_token=_refresh_token(user),
    )


# ── GET /me ──────────────────────────────────────────────────

@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)):
    return UserResponse(user=UserOut.model_validate(user))


# ── PUT /password ────────────────────────────────────────────

@router.put("/password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Change the caller's password and invalidate all existing tokens."""
    if not verify_password(body.current_password, user.password_hash):
        raise HTTPException(status_code=401, detail="Current password is incorrect")

    user.password_hash = hash_password(body.new_password)
    user.token_version = (user.token_version or 0) + 1
    await db.flush()

    logger.info(f"Password changed for {user.email}; older tokens invalidated")
    return MessageResponse(message="Password updated successfully")


# ── POST /refresh ────────────────────────────────────────────

@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """Exchange a refresh token for a new access token."""
    payload = decode_token(body.refresh_token)
    if payload.get("type") != "refresh":
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    result = await db.execute(select(User).where(User.id == payload.get("sub")))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    if payload.get("ver", 0) != user.token_version:
        raise HTTPException(status_code=401, detail="Session expired. Please log in again.")

    return AccessTokenResponse(token=_access_token(user))


# ── POST /logout ─────────────────────────────────────────────

@router.post("/logout", response_model=MessageResponse)
async def logout(
    token: str = Depends(oauth2_scheme),
    user: User = Depends(get_current_user),
):
    payload = getattr(user, "_token_payload", {})
    revoked = await TokenRevocation.revoke_token(token, float(payload.get("exp", 0)))
    if not revoked:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not revoke token, try again",
        )
    return MessageResponse(message="Logged out")
