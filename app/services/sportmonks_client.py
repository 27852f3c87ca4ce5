import asyncio
import calendar
import httpx
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, AsyncIterator

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from app.config import Settings, get_settings
from app.exceptions import ProviderError

logger = logging.getLogger(__name__)

# Exceptions to retry on
RETRYABLE_EXCEPTIONS = (
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.ConnectError,
    httpx.RemoteProtocolError,
)

FIXTURE_INCLUDES = "participants;round;stage;scores;state;venue;tvstations.tvstation"

# Pages followed for one date range before the window is failed
MAX_PAGES = 100


def month_windows(start: date, end: date) -> list[tuple[date, date]]:
    """
    Split an inclusive date range into ascending month-sized windows.

    The first and last windows are clipped to the range, e.g.
    2025-01-20..2025-03-05 -> (01-20, 01-31), (02-01, 02-28), (03-01, 03-05).
    """
    windows = []
    cursor = start
    while cursor <= end:
        last_day = calendar.monthrange(cursor.year, cursor.month)[1]
        window_end = min(date(cursor.year, cursor.month, last_day), end)
        windows.append((cursor, window_end))
        cursor = window_end + timedelta(days=1)
    return windows


@dataclass
class FixtureWindow:
    """Result of fetching one month window: fixtures, or a tagged failure."""
    start: date
    end: date
    fixtures: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "fixtures": len(self.fixtures),
            "error": self.error,
        }


class SportmonksClient:
    """Client for Sportmonks Football API v3 (https://api.sportmonks.com/v3/football)"""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.base_url = self.settings.sportmonks_base_url.rstrip("/")
        self.api_token = self.settings.sportmonks_api_token
        self.timeout = self.settings.sportmonks_timeout_seconds
        self.request_delay = self.settings.sportmonks_request_delay_seconds
        self.per_page = self.settings.sportmonks_per_page
        self.api_calls = 0

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _make_request(
        self,
        method: str,
        url: str,
        params: dict | None = None,
        timeout: float = 30.0,
    ) -> httpx.Response:
        """
        Make an HTTP request with automatic retry on transient failures.

        Retries up to 3 times with exponential backoff (2s, 4s, 8s...)
        on connection timeouts, read timeouts, and connection errors.
        HTTP status errors are raised immediately.
        """
        async with httpx.AsyncClient(follow_redirects=True) as client:
            response = await client.request(
                method.upper(),
                url,
                params=params,
                timeout=timeout,
            )
            response.raise_for_status()
            return response

    async def _get(self, endpoint: str, params: dict | None = None) -> dict[str, Any]:
        """
        GET an endpoint and return the decoded JSON object.

        Enforces the pacing delay before every call after the first one.
        Any transport, status or decoding problem is raised as ProviderError.
        """
        if self.api_calls and self.request_delay > 0:
            await asyncio.sleep(self.request_delay)

        query = {"api_token": self.api_token}
        if params:
            query.update(params)

        self.api_calls += 1
        try:
            response = await self._make_request(
                "get", f"{self.base_url}{endpoint}", params=query, timeout=self.timeout
            )
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            raise ProviderError(f"HTTP {status_code} for {endpoint}", status_code=status_code) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Request to {endpoint} failed: {e!r}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderError(f"Invalid JSON from {endpoint}") from e

        if not isinstance(payload, dict):
            raise ProviderError(f"Unexpected payload type from {endpoint}: {type(payload).__name__}")
        return payload

    # ==================== Fixtures ====================

    async def get_fixtures_between(
        self, league_id: int, start: date, end: date
    ) -> list[dict[str, Any]]:
        """
        Get all fixtures of a league between two dates (inclusive), following pagination.

        Args:
            league_id: Sportmonks league ID
            start: First day of the window
            end: Last day of the window

        Returns:
            Provider-native fixture objects in provider order
        """
        endpoint = f"/fixtures/between/{start.isoformat()}/{end.isoformat()}"
        fixtures: list[dict[str, Any]] = []
        page = 1

        while True:
            payload = await self._get(
                endpoint,
                {
                    "filters": f"fixtureLeagues:{league_id}",
                    "include": FIXTURE_INCLUDES,
                    "per_page": self.per_page,
                    "page": page,
                },
            )
            # "No result(s) found" responses carry no data key
            data = payload.get("data") or []
            if not isinstance(data, list):
                raise ProviderError(f"Malformed fixtures payload for {endpoint}: 'data' is not a list")
            fixtures.extend(item for item in data if isinstance(item, dict))

            pagination = payload.get("pagination") or {}
            if not isinstance(pagination, dict):
                raise ProviderError(f"Malformed fixtures payload for {endpoint}: 'pagination' is not an object")
            if not pagination.get("has_more"):
                break
            if page >= MAX_PAGES:
                raise ProviderError(f"Pagination for {endpoint} did not end after {MAX_PAGES} pages")
            page += 1

        return fixtures

    async def iter_fixture_windows(
        self, league_id: int, start: date, end: date
    ) -> AsyncIterator[FixtureWindow]:
        """
        Fetch a date range month by month, one window at a time.

        A failing window is logged and yielded with ``error`` set; the
        remaining windows are still fetched.
        """
        for window_start, window_end in month_windows(start, end):
            try:
                fixtures = await self.get_fixtures_between(league_id, window_start, window_end)
            except ProviderError as e:
                logger.error(
                    f"League {league_id}: window {window_start}..{window_end} failed: {e}"
                )
                yield FixtureWindow(window_start, window_end, error=str(e))
                continue

            logger.debug(
                f"League {league_id}: window {window_start}..{window_end} -> {len(fixtures)} fixtures"
            )
            yield FixtureWindow(window_start, window_end, fixtures)

    async def iter_fixtures(
        self,
        league_id: int,
        start: date,
        end: date,
        failed_windows: list[FixtureWindow] | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Lazily yield fixtures from successful windows; failed ones are appended to failed_windows."""
        async for window in self.iter_fixture_windows(league_id, start, end):
            if not window.ok:
                if failed_windows is not None:
                    failed_windows.append(window)
                continue
            for fixture in window.fixtures:
                yield fixture

    async def get_fixture(self, fixture_id: int) -> dict[str, Any] | None:
        """Get a single fixture with participants and TV stations."""
        payload = await self._get(f"/fixtures/{fixture_id}", {"include": FIXTURE_INCLUDES})
        data = payload.get("data")
        if data is None:
            return None
        if not isinstance(data, dict):
            raise ProviderError(f"Malformed payload for fixture {fixture_id}")
        return data

    async def get_inplay_fixtures(self, league_ids: list[int] | None = None) -> list[dict[str, Any]]:
        """
        Get fixtures that are currently in play.

        Args:
            league_ids: Only fixtures of these Sportmonks leagues (default: all)

        Returns:
            Provider-native fixture objects with the same includes as the window fetch
        """
        params = {"include": FIXTURE_INCLUDES}
        if league_ids:
            leagues = ",".join(str(league_id) for league_id in league_ids)
            params["filters"] = f"fixtureLeagues:{leagues}"

        payload = await self._get("/livescores/inplay", params)
        data = payload.get("data") or []
        if not isinstance(data, list):
            raise ProviderError("Malformed livescores payload: 'data' is not a list")
        return [item for item in data if isinstance(item, dict)]


# Singleton instance
_sportmonks_client: SportmonksClient | None = None


def get_sportmonks_client() -> SportmonksClient:
    global _sportmonks_client
    if _sportmonks_client is None:
        _sportmonks_client = SportmonksClient()
    return _sportmonks_client
