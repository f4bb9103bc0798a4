"""
Tests for scoped feeder-role grants and ranked role reconciliation.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from config import RANK_ROLES
from services.rank_sync_service import RankSyncService, pick_rank
from services.riot_api_client import RiotAuthError, RiotServerError
from services.role_grant_service import RoleGrantService
from tests.conftest import BASE_TIME

DAY = 24 * 3600


class TestRoleGrants:
    @pytest.fixture
    def service(self, grant_repository):
        return RoleGrantService(grant_repository, feeder_role_name="Cục Tạ Vàng", feeder_role_hours=24)

    def test_grant_is_idempotent_per_match(self, service):
        first = service.grant_feeder(1001, "VN2_1", now=BASE_TIME)
        again = service.grant_feeder(1001, "VN2_1", now=BASE_TIME + 60)

        assert first is not None
        assert first.expires_at == BASE_TIME + DAY
        assert again is None
        assert service.has_active(1001, "Cục Tạ Vàng", now=BASE_TIME + 10)

    def test_sweep_returns_expired_grants(self, service):
        service.grant_feeder(1001, "VN2_1", now=BASE_TIME)

        assert service.sweep_expired(now=BASE_TIME + DAY - 1) == []
        expired = service.sweep_expired(now=BASE_TIME + DAY)

        assert [(g.discord_id, g.match_id) for g in expired] == [(1001, "VN2_1")]
        assert not service.has_active(1001, "Cục Tạ Vàng", now=BASE_TIME + DAY)
        # Grants are removed once swept
        assert service.sweep_expired(now=BASE_TIME + 2 * DAY) == []

    def test_newer_grant_keeps_role(self, service):
        service.grant_feeder(1001, "VN2_1", now=BASE_TIME)
        service.grant_feeder(1001, "VN2_2", now=BASE_TIME + 3600)

        assert service.sweep_expired(now=BASE_TIME + DAY) == []
        assert service.has_active(1001, "Cục Tạ Vàng", now=BASE_TIME + DAY)

        expired = service.sweep_expired(now=BASE_TIME + DAY + 3600)
        assert [g.match_id for g in expired] == ["VN2_2"]

    def test_one_revocation_per_user(self, service):
        service.grant_feeder(1001, "VN2_1", now=BASE_TIME)
        service.grant_feeder(1001, "VN2_2", now=BASE_TIME + 60)
        service.grant_feeder(1002, "VN2_2", now=BASE_TIME + 60)

        expired = service.sweep_expired(now=BASE_TIME + 2 * DAY)

        assert sorted(g.discord_id for g in expired) == [1001, 1002]


class TestPickRank:
    def test_prefers_solo_queue(self):
        entries = [
            {"queueType": "RANKED_FLEX_SR", "tier": "DIAMOND", "rank": "I", "leaguePoints": 10},
            {"queueType": "RANKED_SOLO_5x5", "tier": "SILVER", "rank": "III", "leaguePoints": 55},
        ]
        rank = pick_rank(entries)
        assert rank.label == "SILVER_III"
        assert rank.lp == 55

    def test_falls_back_to_flex(self):
        rank = pick_rank([{"queueType": "RANKED_FLEX_SR", "tier": "GOLD", "rank": "I"}])
        assert rank.label == "GOLD_I"
        assert rank.queue_type == "RANKED_FLEX_SR"

    def test_ignores_other_queues(self):
        assert pick_rank([{"queueType": "CHERRY", "tier": "GOLD", "rank": "I"}]) is None
        assert pick_rank([]) is None


class TestRankSync:
    @pytest.fixture
    def riot_client(self):
        entries = {
            "puuid-1001": [{"queueType": "RANKED_SOLO_5x5", "tier": "PLATINUM", "rank": "IV", "leaguePoints": 0}],
            "puuid-1003": [{"queueType": "RANKED_FLEX_SR", "tier": "GOLD", "rank": "I", "leaguePoints": 75}],
        }
        client = AsyncMock()
        client.resume = Mock()
        client.get_ranked_entries.side_effect = lambda puuid, platform=None: entries.get(puuid, [])
        return client

    @pytest.fixture
    def service(self, riot_client, account_repository):
        return RankSyncService(riot_client, account_repository, RANK_ROLES, clock=lambda: BASE_TIME)

    def test_role_change_for_tier(self, service):
        role, revoke = service.role_change_for("EMERALD")
        assert role == "Xanh Ngọc"
        assert "Xanh Ngọc" not in revoke
        assert "Vàng" in revoke

    def test_role_change_for_unranked_revokes_everything(self, service):
        role, revoke = service.role_change_for(None)
        assert role is None
        assert sorted(revoke) == sorted(set(RANK_ROLES.values()))

    @pytest.mark.asyncio
    async def test_sync_all_reports_changes(self, service, account_repository, linked_accounts):
        result = await service.sync_all()

        assert result.synced == 5
        assert result.errors == []
        changes = {c.discord_id: c for c in result.changes}
        assert set(changes) == {1001, 1003}
        assert (changes[1001].old_rank, changes[1001].new_rank) == ("GOLD_II", "PLATINUM_IV")
        assert changes[1001].role_to_grant == "Xanh Lam"
        assert "Vàng" in changes[1001].roles_to_revoke
        assert (changes[1003].old_rank, changes[1003].new_rank) == (None, "GOLD_I")
        assert account_repository.get_by_id(1001).rank.label == "PLATINUM_IV"

    @pytest.mark.asyncio
    async def test_unchanged_rank_is_not_reported(self, service, linked_accounts):
        await service.sync_all()
        second = await service.sync_all()
        assert second.changes == []

    @pytest.mark.asyncio
    async def test_transient_error_skips_one_account(self, service, riot_client, linked_accounts):
        def entries(puuid, platform=None):
            if puuid == "puuid-1002":
                raise RiotServerError("Riot API server error: 503", status=503)
            return []

        riot_client.get_ranked_entries.side_effect = entries

        result = await service.sync_all()

        assert result.synced == 4
        assert [e["discord_id"] for e in result.errors] == [1002]

    @pytest.mark.asyncio
    async def test_auth_failure_stops_sync(self, service, riot_client, linked_accounts):
        riot_client.get_ranked_entries.side_effect = RiotAuthError("Riot API authentication failed", status=403)

        result = await service.sync_all()

        assert result.synced == 0
        assert len(result.errors) == 1
        assert riot_client.get_ranked_entries.await_count == 1

    @pytest.mark.asyncio
    async def test_each_sync_starts_a_fresh_run(self, service, riot_client, linked_accounts):
        await service.sync_all()
        await service.sync_all()
        assert riot_client.resume.call_count == 2
