"""
Base class and utilities for sync services.

Contains shared logic and helper functions used across
all sync service implementations.
"""
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.services.sportmonks_client import SportmonksClient, get_sportmonks_client

logger = logging.getLogger(__name__)

DATA_SOURCE = "sportmonks"


# ==================== Date/Time Parsing ====================

def parse_utc_datetime(value: Any) -> datetime | None:
    """
    Parse a provider timestamp into an aware UTC datetime.

    Accepts unix timestamps, "YYYY-MM-DD HH:MM:SS" (Sportmonks, always UTC)
    and ISO 8601 strings with or without offset.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value.astimezone(timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip().replace("Z", "+00:00")
        for parse in (datetime.fromisoformat, lambda s: datetime.strptime(s, "%Y-%m-%d %H:%M:%S")):
            try:
                parsed = parse(text)
            except ValueError:
                continue
            if parsed.tzinfo is None:
                return parsed.replace(tzinfo=timezone.utc)
            return parsed.astimezone(timezone.utc)
    return None


def parse_int(value: Any) -> int | None:
    """Parse an integer from int or numeric string, else None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


# ==================== Base Sync Service ====================

class BaseSyncService:
    """
    Base class for all sync services.

    Provides common functionality:
    - Database session management
    - Sportmonks API client access
    - Settings resolved once at construction
    """

    def __init__(
        self,
        db: AsyncSession,
        client: SportmonksClient | None = None,
        settings: Settings | None = None,
    ):
        """
        Initialize the sync service.

        Args:
            db: SQLAlchemy async session
            client: Optional Sportmonks client (uses singleton if not provided)
            settings: Optional settings (uses cached settings if not provided)
        """
        self.db = db
        self.settings = settings or get_settings()
        self.client = client or get_sportmonks_client()
