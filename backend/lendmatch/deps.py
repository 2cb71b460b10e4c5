"""Dependency injection for FastAPI endpoints."""

import secrets
from typing import AsyncGenerator, Optional

from fastapi import Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from lendmatch.config import settings
from lendmatch.db.session import get_db
from lendmatch.services.notifications import NotificationDispatcher

__all__ = ["get_db", "get_session", "get_dispatcher", "verify_cron_secret"]


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Get database session dependency.

    This is an alias for get_db for clarity in endpoint signatures.
    """
    async for session in get_db():
        yield session


def get_dispatcher() -> NotificationDispatcher:
    """Notification dispatcher built from settings."""
    return NotificationDispatcher()


async def verify_cron_secret(authorization: Optional[str] = Header(default=None)) -> None:
    """
    Guard for scheduler-only endpoints.

    When ``CRON_SECRET`` is configured the request must carry
    ``Authorization: Bearer <CRON_SECRET>``.
    """
    if not settings.CRON_SECRET:
        return

    expected = f"Bearer {settings.CRON_SECRET}"
    if authorization is None or not secrets.compare_digest(authorization, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
