from datetime import datetime
from sqlalchemy import Integer, String, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.utils.timestamps import utcnow


class Competition(Base):
    """League or cup. Static reference data; the sync pipeline only reads it."""
    __tablename__ = "competitions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    sportmonks_league_id: Mapped[int | None] = mapped_column(Integer, unique=True, index=True)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, server_default="true")
    # When False our local data is the source of truth and Sportmonks must not overwrite it
    sync_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, server_default="true")
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # Relationships
    teams: Mapped[list["Team"]] = relationship("Team", back_populates="competition")
    fixtures: Mapped[list["Fixture"]] = relationship("Fixture", back_populates="competition")
