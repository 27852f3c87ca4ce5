from datetime import datetime, timedelta, timezone
from itertools import permutations

import pytest

from app.models import Broadcast
from app.services.broadcast_selection import (
    BroadcastCandidate,
    BroadcastSelectionService,
    BroadcastVisibility,
    PrimaryBroadcast,
    broadcast_visibility,
    rank_broadcasts,
    select_primary,
)

T0 = datetime(2025, 2, 1, 9, 0, tzinfo=timezone.utc)


def _candidate(broadcast_id, provider_id=None, provider_type=None, rights_tier=None,
               active=True, created_offset=0, name=None):
    return BroadcastCandidate(
        broadcast_id=broadcast_id,
        provider_id=provider_id,
        provider_name=name,
        provider_type=provider_type,
        rights_tier=rights_tier,
        provider_active=active if provider_id is not None else False,
        channel_name=name,
        created_at=T0 + timedelta(minutes=created_offset),
    )


SKY = _candidate(10, 10, "television", 2, created_offset=0, name="Sky Sports")
TNT = _candidate(11, 11, "television", 1, created_offset=1, name="TNT Sports")
AMAZON = _candidate(12, 12, "streaming", 1, created_offset=2, name="Amazon Prime Video")


class TestRanking:
    def test_primary_rights_holder_beats_lowest_id(self):
        # Sky has the lowest broadcast id but only secondary rights; TNT is tier 1 television
        assert select_primary([SKY, TNT, AMAZON]).broadcast_id == 11

    def test_result_independent_of_input_order(self):
        for ordering in permutations([SKY, TNT, AMAZON]):
            assert select_primary(ordering).broadcast_id == 11
            assert [c.broadcast_id for c in rank_broadcasts(ordering)] == [11, 12, 10]

    def test_type_breaks_tier_tie(self):
        assert select_primary([AMAZON, TNT]).provider_type == "television"

    def test_newer_row_wins_full_tie(self):
        older = _candidate(21, 11, "television", 1, created_offset=0)
        newer = _candidate(22, 11, "television", 1, created_offset=5)
        assert select_primary([older, newer]).broadcast_id == 22

    def test_unmapped_and_inactive_are_never_primary(self):
        unmapped = _candidate(30)
        inactive = _candidate(31, 11, "television", 1, active=False)
        assert select_primary([unmapped, inactive]) is None
        assert select_primary([unmapped, inactive, SKY]).broadcast_id == 10

    def test_null_tier_sorts_last(self):
        untiered = _candidate(40, 14, "television", None)
        assert select_primary([untiered, SKY]).broadcast_id == 10


class TestVisibility:
    def test_tbd_without_resolved_provider(self):
        assert broadcast_visibility([]) == BroadcastVisibility.TBD
        assert broadcast_visibility([_candidate(1)]) == BroadcastVisibility.TBD

    def test_confirmed(self):
        assert broadcast_visibility([SKY, _candidate(1)]) == BroadcastVisibility.CONFIRMED

    def test_blackout_overrides_other_rows(self):
        blackout = _candidate(50, 13, "blackout", None)
        selection = PrimaryBroadcast.from_candidates(1, [SKY, blackout])

        assert selection.visibility == BroadcastVisibility.BLACKOUT
        assert selection.primary is None
        assert len(selection.candidates) == 2


@pytest.mark.asyncio
class TestBroadcastSelectionService:
    async def test_selects_from_stored_rows(self, test_session, sample_fixture, sample_providers):
        for broadcast_id, provider_id, offset in ((10, 10, 0), (11, 11, 1), (12, 12, 2)):
            test_session.add(Broadcast(
                id=broadcast_id,
                fixture_id=sample_fixture.id,
                provider_id=provider_id,
                sportmonks_tv_station_id=900 + broadcast_id,
                created_at=T0 + timedelta(minutes=offset),
            ))
        await test_session.commit()

        selection = await BroadcastSelectionService(test_session).primary_for_fixture(sample_fixture.id)

        assert selection.visibility == BroadcastVisibility.CONFIRMED
        assert selection.primary.provider_name == "TNT Sports"
        assert [c.broadcast_id for c in selection.candidates] == [11, 12, 10]

    async def test_fixture_without_rows_is_tbd(self, test_session, sample_fixture):
        results = await BroadcastSelectionService(test_session).primary_for_fixtures([sample_fixture.id])

        assert results[sample_fixture.id].visibility == BroadcastVisibility.TBD
        assert results[sample_fixture.id].primary is None
