"""FastAPI dependencies for authentication, access resolution, and database access."""

import uuid
from typing import Generator

import jwt
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from cfs_portal.core.access import AccessContext
from cfs_portal.core.security import decode_session_token
from cfs_portal.db.session import SessionLocal


# Cookie and header names
COOKIE_NAME = "cfs_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_profile(
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Get authenticated profile from session cookie.

    Validates:
    - Session cookie exists
    - JWT is valid and not expired
    - Profile exists and is active
    - Token version matches (for revocation support)

    Raises:
        HTTPException 401: Authentication failed
    """
    # Import here to avoid circular imports
    from cfs_portal.db.models import Profile

    token = request.cookies.get(COOKIE_NAME)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = decode_session_token(token)
        profile_id = uuid.UUID(str(payload["sub"]))
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid session")

    profile = db.get(Profile, profile_id)
    if not profile:
        raise HTTPException(status_code=401, detail="Profile not found")

    if not profile.is_active:
        raise HTTPException(status_code=401, detail="Account disabled")

    # Token version check (revocation support)
    if profile.token_version != payload.get("token_version"):
        raise HTTPException(status_code=401, detail="Session revoked")

    return profile


def get_access_context(
    profile=Depends(get_current_profile),
    db: Session = Depends(get_db),
) -> AccessContext:
    """
    Resolve the caller's capability bundle once per request.

    This is the PRIMARY auth dependency for CFS endpoints; the context is
    passed explicitly into every service call.
    """
    from cfs_portal.services import access_service

    return access_service.resolve_access_context(db, profile)


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.

    Apply to state-changing endpoints (POST, PATCH, DELETE).

    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'"
        )
