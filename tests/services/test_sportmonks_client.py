from datetime import date
from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest

from app.exceptions import ProviderError
from app.services.sportmonks_client import MAX_PAGES, SportmonksClient, month_windows


def _response(payload=None, status_code=200):
    response = Mock()
    response.status_code = status_code
    response.json = Mock(return_value=payload)
    if status_code >= 400:
        request = httpx.Request("GET", "https://api.test/v3/football/fixtures")
        error_response = httpx.Response(status_code, request=request)
        response.raise_for_status = Mock(
            side_effect=httpx.HTTPStatusError("error", request=request, response=error_response)
        )
    else:
        response.raise_for_status = Mock()
    return response


class TestMonthWindows:
    def test_clips_first_and_last_window(self):
        assert month_windows(date(2025, 1, 20), date(2025, 3, 5)) == [
            (date(2025, 1, 20), date(2025, 1, 31)),
            (date(2025, 2, 1), date(2025, 2, 28)),
            (date(2025, 3, 1), date(2025, 3, 5)),
        ]

    def test_single_day(self):
        assert month_windows(date(2025, 5, 3), date(2025, 5, 3)) == [
            (date(2025, 5, 3), date(2025, 5, 3)),
        ]

    def test_crosses_year_and_leap_february(self):
        windows = month_windows(date(2023, 12, 15), date(2024, 2, 29))
        assert windows[0] == (date(2023, 12, 15), date(2023, 12, 31))
        assert windows[-1] == (date(2024, 2, 1), date(2024, 2, 29))
        assert len(windows) == 3

    def test_empty_when_start_after_end(self):
        assert month_windows(date(2025, 2, 1), date(2025, 1, 1)) == []


@pytest.mark.asyncio
class TestSportmonksClientRequest:
    async def test_get_sends_token_and_params(self, test_settings):
        request_mock = AsyncMock(return_value=_response({"data": {"id": 1}}))

        with patch("app.services.sportmonks_client.httpx.AsyncClient.request", new=request_mock):
            client = SportmonksClient(test_settings)
            payload = await client.get_fixture(1)

        assert payload == {"id": 1}
        args, kwargs = request_mock.call_args
        assert args[0] == "GET"
        assert args[1] == "https://api.test/v3/football/fixtures/1"
        assert kwargs["params"]["api_token"] == "test-token"
        assert "tvstations.tvstation" in kwargs["params"]["include"]
        assert client.api_calls == 1

    async def test_retry_on_transient_network_error(self, test_settings):
        response = _response({"data": []})
        request_mock = AsyncMock(side_effect=[httpx.ConnectTimeout("timeout"), response])

        with patch("app.services.sportmonks_client.httpx.AsyncClient.request", new=request_mock):
            client = SportmonksClient(test_settings)
            result = await client._make_request("get", "https://api.test/v3/football/fixtures")

        assert result is response
        assert request_mock.await_count == 2

    async def test_http_status_error_is_not_retried(self, test_settings):
        request_mock = AsyncMock(return_value=_response(status_code=429))

        with patch("app.services.sportmonks_client.httpx.AsyncClient.request", new=request_mock):
            client = SportmonksClient(test_settings)
            with pytest.raises(ProviderError) as exc_info:
                await client.get_fixture(1)

        assert exc_info.value.status_code == 429
        assert request_mock.await_count == 1

    async def test_non_object_payload_is_provider_error(self, test_settings):
        request_mock = AsyncMock(return_value=_response(["not", "an", "object"]))

        with patch("app.services.sportmonks_client.httpx.AsyncClient.request", new=request_mock):
            client = SportmonksClient(test_settings)
            with pytest.raises(ProviderError):
                await client.get_fixture(1)

    async def test_missing_fixture_returns_none(self, test_settings):
        request_mock = AsyncMock(return_value=_response({"message": "No result(s) found"}))

        with patch("app.services.sportmonks_client.httpx.AsyncClient.request", new=request_mock):
            client = SportmonksClient(test_settings)
            assert await client.get_fixture(999) is None


@pytest.mark.asyncio
class TestSportmonksClientFixtures:
    async def test_follows_pagination(self, test_settings):
        request_mock = AsyncMock(side_effect=[
            _response({"data": [{"id": 1}, {"id": 2}], "pagination": {"has_more": True}}),
            _response({"data": [{"id": 3}], "pagination": {"has_more": False}}),
        ])

        with patch("app.services.sportmonks_client.httpx.AsyncClient.request", new=request_mock):
            client = SportmonksClient(test_settings)
            fixtures = await client.get_fixtures_between(8, date(2025, 3, 1), date(2025, 3, 31))

        assert [f["id"] for f in fixtures] == [1, 2, 3]
        assert request_mock.await_count == 2
        first, second = request_mock.call_args_list
        assert first.args[1].endswith("/fixtures/between/2025-03-01/2025-03-31")
        assert first.kwargs["params"]["filters"] == "fixtureLeagues:8"
        assert first.kwargs["params"]["page"] == 1
        assert second.kwargs["params"]["page"] == 2

    async def test_no_results_is_empty_list(self, test_settings):
        request_mock = AsyncMock(return_value=_response({"message": "No result(s) found"}))

        with patch("app.services.sportmonks_client.httpx.AsyncClient.request", new=request_mock):
            client = SportmonksClient(test_settings)
            fixtures = await client.get_fixtures_between(8, date(2025, 3, 1), date(2025, 3, 31))

        assert fixtures == []

    async def test_failed_window_does_not_stop_later_windows(self, test_settings):
        request_mock = AsyncMock(side_effect=[
            _response({"data": [{"id": 1}]}),
            _response(status_code=500),
            _response({"data": [{"id": 3}]}),
        ])

        with patch("app.services.sportmonks_client.httpx.AsyncClient.request", new=request_mock):
            client = SportmonksClient(test_settings)
            windows = [
                w async for w in client.iter_fixture_windows(8, date(2025, 1, 1), date(2025, 3, 31))
            ]

        assert [w.ok for w in windows] == [True, False, True]
        assert windows[1].start == date(2025, 2, 1)
        assert "HTTP 500" in windows[1].error
        assert [f["id"] for f in windows[2].fixtures] == [3]

    async def test_iter_fixtures_collects_failed_windows(self, test_settings):
        request_mock = AsyncMock(side_effect=[
            _response(status_code=503),
            _response({"data": [{"id": 7}, {"id": 8}]}),
        ])
        failed = []

        with patch("app.services.sportmonks_client.httpx.AsyncClient.request", new=request_mock):
            client = SportmonksClient(test_settings)
            fixtures = [
                f async for f in client.iter_fixtures(8, date(2025, 1, 10), date(2025, 2, 10), failed)
            ]

        assert [f["id"] for f in fixtures] == [7, 8]
        assert len(failed) == 1
        assert failed[0].end == date(2025, 1, 31)

    async def test_malformed_pagination_fails_the_window(self, test_settings):
        request_mock = AsyncMock(return_value=_response({"data": [{"id": 1}], "pagination": "more"}))

        with patch("app.services.sportmonks_client.httpx.AsyncClient.request", new=request_mock):
            client = SportmonksClient(test_settings)
            windows = [
                w async for w in client.iter_fixture_windows(8, date(2025, 3, 1), date(2025, 3, 31))
            ]

        assert len(windows) == 1
        assert not windows[0].ok
        assert "pagination" in windows[0].error

    async def test_pagination_is_bounded(self, test_settings):
        request_mock = AsyncMock(
            return_value=_response({"data": [{"id": 1}], "pagination": {"has_more": True}})
        )

        with patch("app.services.sportmonks_client.httpx.AsyncClient.request", new=request_mock):
            client = SportmonksClient(test_settings)
            with pytest.raises(ProviderError):
                await client.get_fixtures_between(8, date(2025, 3, 1), date(2025, 3, 31))

        assert request_mock.await_count == MAX_PAGES


@pytest.mark.asyncio
class TestSportmonksClientPacing:
    async def test_delay_only_between_calls(self, test_settings):
        test_settings.sportmonks_request_delay_seconds = 0.2
        sleep_mock = AsyncMock()
        responses = [
            _response({"data": [{"id": 1}], "pagination": {"has_more": True}}),
            _response({"data": [{"id": 2}], "pagination": {"has_more": False}}),
        ]
        sleeps_before_request = []

        async def request(*args, **kwargs):
            sleeps_before_request.append(sleep_mock.await_count)
            return responses.pop(0)

        with patch("app.services.sportmonks_client.httpx.AsyncClient.request", new=AsyncMock(side_effect=request)), \
             patch("app.services.sportmonks_client.asyncio.sleep", new=sleep_mock):
            client = SportmonksClient(test_settings)
            fixtures = await client.get_fixtures_between(8, date(2025, 3, 1), date(2025, 3, 31))

        assert [f["id"] for f in fixtures] == [1, 2]
        assert sleeps_before_request == [0, 1]
        sleep_mock.assert_awaited_once_with(0.2)


@pytest.mark.asyncio
class TestSportmonksClientLivescores:
    async def test_inplay_fixtures(self, test_settings):
        request_mock = AsyncMock(return_value=_response({"data": [{"id": 1001}, "junk", {"id": 1002}]}))

        with patch("app.services.sportmonks_client.httpx.AsyncClient.request", new=request_mock):
            client = SportmonksClient(test_settings)
            fixtures = await client.get_inplay_fixtures([8, 24])

        assert [f["id"] for f in fixtures] == [1001, 1002]
        args, kwargs = request_mock.call_args
        assert args[1] == "https://api.test/v3/football/livescores/inplay"
        assert kwargs["params"]["filters"] == "fixtureLeagues:8,24"
        assert "scores" in kwargs["params"]["include"]

    async def test_no_live_matches(self, test_settings):
        request_mock = AsyncMock(return_value=_response({"message": "No result(s) found"}))

        with patch("app.services.sportmonks_client.httpx.AsyncClient.request", new=request_mock):
            client = SportmonksClient(test_settings)
            assert await client.get_inplay_fixtures() == []

        assert "filters" not in request_mock.call_args.kwargs["params"]
