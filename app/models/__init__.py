from app.models.competition import Competition
from app.models.team import Team
from app.models.fixture import Fixture, FixtureStatus
from app.models.provider import Provider, ProviderType
from app.models.broadcast import Broadcast
from app.models.tv_station_mapping import TvStationMapping
from app.models.sync_log import SyncLog

__all__ = [
    "Competition",
    "Team",
    "Fixture",
    "FixtureStatus",
    "Provider",
    "ProviderType",
    "Broadcast",
    "TvStationMapping",
    "SyncLog",
]
