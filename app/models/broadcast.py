from datetime import datetime
from sqlalchemy import Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.sql_types import BROADCAST_ID_SQL_TYPE, FIXTURE_ID_SQL_TYPE
from app.utils.timestamps import utcnow


class Broadcast(Base):
    """One candidate TV/stream assignment for a fixture.

    A fixture may have many rows (one per country or rights holder); the
    displayed primary broadcaster is chosen at read time.
    """
    __tablename__ = "broadcasts"
    __table_args__ = (
        UniqueConstraint("fixture_id", "sportmonks_tv_station_id", name="uq_broadcast_fixture_station"),
    )

    id: Mapped[int] = mapped_column(BROADCAST_ID_SQL_TYPE, primary_key=True, autoincrement=True)
    fixture_id: Mapped[int] = mapped_column(
        FIXTURE_ID_SQL_TYPE, ForeignKey("fixtures.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # NULL = station not mapped to a provider yet
    provider_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("providers.id", ondelete="SET NULL"), index=True
    )
    sportmonks_tv_station_id: Mapped[int | None] = mapped_column(Integer, index=True)
    channel_name: Mapped[str | None] = mapped_column(String(255))
    broadcaster_type: Mapped[str | None] = mapped_column(String(32))  # tv, channel, streaming
    country_code: Mapped[str | None] = mapped_column(String(8))
    data_source: Mapped[str | None] = mapped_column(String(32))
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # Relationships
    fixture: Mapped["Fixture"] = relationship("Fixture", back_populates="broadcasts")
    provider: Mapped["Provider | None"] = relationship("Provider", back_populates="broadcasts")
