import pytest
from datetime import datetime, timezone
from typing import AsyncGenerator
from unittest.mock import Mock

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.config import Settings
from app.database import Base
from app.api.deps import get_db, get_settings  # Import from where routes actually use it
from app.models import Competition, Team, Provider, ProviderType, Fixture, FixtureStatus


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# Note: Using pytest-asyncio's built-in event_loop fixture (asyncio_mode = auto)


@pytest.fixture(scope="function")
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
async def test_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a token and no pacing, so nothing sleeps in tests."""
    return Settings(
        sportmonks_api_token="test-token",
        sportmonks_base_url="https://api.test/v3/football",
        sportmonks_request_delay_seconds=0,
        sync_batch_size=50,
        sync_batch_pause_seconds=0,
        sync_run_deadline_seconds=600,
        sync_competition_ids=[],
    )


@pytest.fixture(scope="function")
async def client(test_session, test_settings) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with overridden database and settings dependencies."""

    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def mock_client() -> Mock:
    """Sportmonks client stand-in; tests set the coroutine attributes they need."""
    client = Mock()
    client.api_calls = 0
    return client


# --- Data Fixtures ---

@pytest.fixture
async def sample_competition(test_session) -> Competition:
    """Create a sample competition mapped to a Sportmonks league."""
    competition = Competition(
        id=1,
        name="Premier League",
        slug="premier-league",
        sportmonks_league_id=8,
        sync_enabled=True,
    )
    test_session.add(competition)
    await test_session.commit()
    await test_session.refresh(competition)
    return competition


@pytest.fixture
async def sample_teams(test_session, sample_competition) -> list[Team]:
    """Create sample teams; Sportmonks ids 19 / 18 / 52, the last one unlinked."""
    teams = [
        Team(id=1, name="Arsenal", slug="arsenal", sportmonks_team_id=19, competition_id=1),
        Team(id=2, name="Chelsea", slug="chelsea", sportmonks_team_id=18, competition_id=1),
        Team(id=3, name="Bournemouth", slug="bournemouth", sportmonks_team_id=None, competition_id=1),
    ]
    test_session.add_all(teams)
    await test_session.commit()
    for team in teams:
        await test_session.refresh(team)
    return teams


@pytest.fixture
async def sample_fixture(test_session, sample_teams) -> Fixture:
    """Create a sample linked fixture: Arsenal v Chelsea."""
    fixture = Fixture(
        sportmonks_fixture_id=1001,
        home_team_id=sample_teams[0].id,
        away_team_id=sample_teams[1].id,
        utc_kickoff=datetime(2025, 3, 1, 15, 0, tzinfo=timezone.utc),
        competition_id=1,
        status=FixtureStatus.scheduled,
        data_source="sportmonks",
    )
    test_session.add(fixture)
    await test_session.commit()
    await test_session.refresh(fixture)
    return fixture


@pytest.fixture
async def sample_providers(test_session) -> dict[str, Provider]:
    """Create providers keyed by slug."""
    providers = {
        "sky-sports": Provider(
            id=10, name="Sky Sports", slug="sky-sports",
            type=ProviderType.television, rights_tier=2,
        ),
        "tnt-sports": Provider(
            id=11, name="TNT Sports", slug="tnt-sports",
            type=ProviderType.television, rights_tier=1,
        ),
        "amazon-prime-video": Provider(
            id=12, name="Amazon Prime Video", slug="amazon-prime-video",
            type=ProviderType.streaming, rights_tier=1,
        ),
        "no-uk-tv": Provider(
            id=13, name="Not televised in the UK", slug="no-uk-tv",
            type=ProviderType.blackout, rights_tier=None,
        ),
    }
    test_session.add_all(providers.values())
    await test_session.commit()
    return providers


def make_fixture_payload(
    fixture_id: int = 1001,
    home: tuple[int, str] | None = (19, "Arsenal"),
    away: tuple[int, str] | None = (18, "Chelsea"),
    starting_at: str | None = "2025-03-01 15:00:00",
    state: str = "NS",
    scores: tuple[int, int] | None = None,
    tvstations: list[dict] | None = None,
    round_name: str | None = "27",
    venue: str | None = "Emirates Stadium",
) -> dict:
    """Sportmonks v3 fixture object as returned with FIXTURE_INCLUDES."""
    participants = []
    if home is not None:
        participants.append({"id": home[0], "name": home[1], "meta": {"location": "home"}})
    if away is not None:
        participants.append({"id": away[0], "name": away[1], "meta": {"location": "away"}})

    payload = {
        "id": fixture_id,
        "league_id": 8,
        "starting_at": starting_at,
        "participants": participants,
        "state": {"id": 1, "state": state, "developer_name": state},
        "scores": [],
        "tvstations": tvstations or [],
    }
    if scores is not None:
        payload["scores"] = [
            {"participant_id": home[0], "description": "CURRENT",
             "score": {"goals": scores[0], "participant": "home"}},
            {"participant_id": away[0], "description": "CURRENT",
             "score": {"goals": scores[1], "participant": "away"}},
        ]
    if round_name is not None:
        payload["round"] = {"id": 500, "name": round_name}
    if venue is not None:
        payload["venue"] = {"id": 204, "name": venue}
    return payload


def make_tvstation(station_id: int, name: str, country_id: int = 462, station_type: str = "tv") -> dict:
    return {
        "fixture_id": 1001,
        "tvstation_id": station_id,
        "country_id": country_id,
        "tvstation": {"id": station_id, "name": name, "type": station_type},
    }


@pytest.fixture
def fixture_payload():
    """Factory for Sportmonks fixture payloads."""
    return make_fixture_payload


@pytest.fixture
def tvstation():
    """Factory for Sportmonks TV-station entries."""
    return make_tvstation
