from datetime import datetime
from sqlalchemy import Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.utils.timestamps import utcnow


class Team(Base):
    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    # Not unique at the DB level: duplicate rows sharing an id are repaired by the merge flow
    sportmonks_team_id: Mapped[int | None] = mapped_column(Integer, index=True)
    competition_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("competitions.id"), index=True
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # Relationships
    competition: Mapped["Competition"] = relationship("Competition", back_populates="teams")
    home_fixtures: Mapped[list["Fixture"]] = relationship(
        "Fixture", back_populates="home_team", foreign_keys="Fixture.home_team_id"
    )
    away_fixtures: Mapped[list["Fixture"]] = relationship(
        "Fixture", back_populates="away_team", foreign_keys="Fixture.away_team_id"
    )
