import enum
from datetime import datetime
from sqlalchemy import Integer, String, Boolean, DateTime, Enum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.utils.timestamps import utcnow


class ProviderType(str, enum.Enum):
    television = "television"
    streaming = "streaming"
    radio = "radio"
    blackout = "blackout"  # sentinel: confirmed no domestic TV coverage


class Provider(Base):
    """Broadcaster at network level (Sky Sports, TNT Sports, ...)."""
    __tablename__ = "providers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    type: Mapped[ProviderType] = mapped_column(
        Enum(ProviderType), nullable=False, default=ProviderType.television
    )
    # 1 = primary rights holder, 2 = secondary/sub-licensee, 3 = re-broadcast
    rights_tier: Mapped[int | None] = mapped_column(Integer)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, server_default="true")
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # Relationships
    broadcasts: Mapped[list["Broadcast"]] = relationship("Broadcast", back_populates="provider")

    @property
    def is_blackout(self) -> bool:
        return self.type == ProviderType.blackout
