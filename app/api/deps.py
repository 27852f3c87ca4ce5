from app.config import Settings, get_settings
from app.database import get_db

__all__ = ["get_db", "get_settings", "Settings"]
