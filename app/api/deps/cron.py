"""Shared-secret check for cron-triggered endpoints."""

from fastapi import Header, HTTPException, status

from app.config import settings


def check_cron_secret(x_cron_secret: str | None) -> None:
    """Raise unless the given value matches the configured cron secret."""
    if not settings.cron_enabled:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Cron secret not configured",
        )
    if x_cron_secret != settings.cron_secret:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid cron secret",
        )


def verify_cron_secret(x_cron_secret: str = Header(...)) -> None:
    """Validate the X-Cron-Secret header against the configured secret."""
    check_cron_secret(x_cron_secret)
