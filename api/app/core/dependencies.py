"""FastAPI dependencies for injection into route handlers."""

import secrets

from fastapi import Header, HTTPException, status

from app.core.config import settings


async def require_admin(x_admin_key: str | None = Header(default=None)) -> None:
    """Require the shared admin key on admin routes.

    There are no user accounts in this service; front-desk staff tools send
    the key configured as QD_ADMIN_KEY.
    """
    if x_admin_key is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Admin key required")
    if not secrets.compare_digest(x_admin_key.encode(), settings.admin_key.encode()):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin key")
