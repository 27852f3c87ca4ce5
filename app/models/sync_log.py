from datetime import datetime
from sqlalchemy import Integer, String, Text, DateTime, ForeignKey, Enum, JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.schemas.sync import SyncStatus
from app.utils.timestamps import utcnow


class SyncLog(Base):
    """One row per pipeline run."""
    __tablename__ = "sync_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sync_type: Mapped[str] = mapped_column(String(32), nullable=False)  # fixtures, live
    competition_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("competitions.id"))
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    status: Mapped[SyncStatus] = mapped_column(Enum(SyncStatus), nullable=False)

    fixtures_processed: Mapped[int] = mapped_column(Integer, default=0, nullable=False, server_default="0")
    fixtures_inserted: Mapped[int] = mapped_column(Integer, default=0, nullable=False, server_default="0")
    fixtures_updated: Mapped[int] = mapped_column(Integer, default=0, nullable=False, server_default="0")
    fixtures_unchanged: Mapped[int] = mapped_column(Integer, default=0, nullable=False, server_default="0")
    fixtures_skipped: Mapped[int] = mapped_column(Integer, default=0, nullable=False, server_default="0")
    fixtures_failed: Mapped[int] = mapped_column(Integer, default=0, nullable=False, server_default="0")
    api_calls: Mapped[int] = mapped_column(Integer, default=0, nullable=False, server_default="0")
    windows_failed: Mapped[int] = mapped_column(Integer, default=0, nullable=False, server_default="0")

    error_message: Mapped[str | None] = mapped_column(Text)
    details: Mapped[dict | None] = mapped_column(JSON)
