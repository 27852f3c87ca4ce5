import enum
from datetime import datetime
from sqlalchemy import (
    Integer, String, DateTime, ForeignKey, Index, Enum, CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.sql_types import FIXTURE_ID_SQL_TYPE
from app.utils.timestamps import utcnow


class FixtureStatus(str, enum.Enum):
    """Canonical match status."""
    scheduled = "scheduled"
    live = "live"
    finished = "finished"
    postponed = "postponed"
    suspended = "suspended"
    canceled = "canceled"


class Fixture(Base):
    __tablename__ = "fixtures"
    __table_args__ = (
        CheckConstraint("home_team_id <> away_team_id", name="ck_fixtures_distinct_teams"),
        Index("ix_fixtures_competition_kickoff", "competition_id", "utc_kickoff"),
        Index("ix_fixtures_teams_kickoff", "home_team_id", "away_team_id", "utc_kickoff"),
    )

    id: Mapped[int] = mapped_column(FIXTURE_ID_SQL_TYPE, primary_key=True, autoincrement=True)
    sportmonks_fixture_id: Mapped[int | None] = mapped_column(Integer, unique=True, index=True)
    home_team_id: Mapped[int] = mapped_column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    away_team_id: Mapped[int] = mapped_column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    utc_kickoff: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    competition_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("competitions.id"))

    status: Mapped[FixtureStatus] = mapped_column(
        Enum(FixtureStatus), nullable=False, default=FixtureStatus.scheduled, server_default="scheduled"
    )
    home_score: Mapped[int | None] = mapped_column(Integer)
    away_score: Mapped[int | None] = mapped_column(Integer)

    matchday: Mapped[int | None] = mapped_column(Integer)
    round_name: Mapped[str | None] = mapped_column(String(100))
    stage_name: Mapped[str | None] = mapped_column(String(100))
    venue: Mapped[str | None] = mapped_column(String(255))

    # Quick-access display values taken from the first provider TV station.
    # Full candidate rows live in broadcasts.
    broadcaster: Mapped[str | None] = mapped_column(String(255))
    broadcaster_id: Mapped[int | None] = mapped_column(Integer)

    data_source: Mapped[str | None] = mapped_column(String(32))  # sportmonks, manual
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # Relationships
    competition: Mapped["Competition"] = relationship("Competition", back_populates="fixtures")
    home_team: Mapped["Team"] = relationship(
        "Team", back_populates="home_fixtures", foreign_keys=[home_team_id]
    )
    away_team: Mapped["Team"] = relationship(
        "Team", back_populates="away_fixtures", foreign_keys=[away_team_id]
    )
    broadcasts: Mapped[list["Broadcast"]] = relationship(
        "Broadcast", back_populates="fixture", cascade="all, delete-orphan"
    )
