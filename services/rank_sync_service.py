"""
Reconciles Riot ranked standings into linked accounts and tier roles.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field

from domain.models.account import LinkedAccount, Rank
from repositories.interfaces import IAccountRepository
from services.riot_api_client import RiotApiClient, RiotApiError, RiotAuthError

logger = logging.getLogger("rift_bot.services.rank_sync")

QUEUE_PRIORITY = ("RANKED_SOLO_5x5", "RANKED_FLEX_SR")


@dataclass
class RankChange:
    discord_id: int
    old_rank: str | None
    new_rank: str | None
    role_to_grant: str | None
    roles_to_revoke: list[str] = field(default_factory=list)


@dataclass
class RankSyncResult:
    synced: int = 0
    errors: list[dict] = field(default_factory=list)
    changes: list[RankChange] = field(default_factory=list)


def pick_rank(entries: list[dict]) -> Rank | None:
    """Solo queue standing if present, else flex, else None."""
    for queue in QUEUE_PRIORITY:
        for entry in entries:
            if entry.get("queueType") == queue and entry.get("tier"):
                return Rank(
                    tier=entry["tier"],
                    division=entry.get("rank"),
                    lp=entry.get("leaguePoints", 0),
                    queue_type=queue,
                )
    return None


class RankSyncService:
    def __init__(
        self,
        riot_client: RiotApiClient,
        account_repo: IAccountRepository,
        rank_roles: dict[str, str] | None = None,
        clock=time.time,
    ):
        self.riot_client = riot_client
        self.account_repo = account_repo
        self.rank_roles = rank_roles or {}
        self._clock = clock

    def role_change_for(self, tier: str | None) -> tuple[str | None, list[str]]:
        """Role to grant for a tier and every other tier role to strip."""
        role = self.rank_roles.get(tier) if tier else None
        revoke = sorted({name for name in self.rank_roles.values() if name != role})
        return role, revoke

    async def fetch_rank(self, account: LinkedAccount) -> Rank | None:
        entries = await self.riot_client.get_ranked_entries(account.riot_puuid, account.region)
        return pick_rank(entries)

    async def sync_account(self, account: LinkedAccount) -> RankChange | None:
        """Refresh one account. Returns a RankChange when the label moved."""
        rank = await self.fetch_rank(account)
        old_label = account.rank.label if account.rank else None
        new_label = rank.label if rank else None
        await asyncio.to_thread(self.account_repo.update_rank, account.discord_id, rank, int(self._clock()))

        if rank is None or old_label == new_label:
            return None

        role, revoke = self.role_change_for(rank.tier)
        logger.info(f"Rank changed for {account.discord_id}: {old_label or 'Unranked'} -> {new_label}")
        return RankChange(
            discord_id=account.discord_id,
            old_rank=old_label,
            new_rank=new_label,
            role_to_grant=role,
            roles_to_revoke=revoke,
        )

    async def sync_all(self) -> RankSyncResult:
        result = RankSyncResult()
        self.riot_client.resume()
        accounts = await asyncio.to_thread(self.account_repo.get_all_active)
        logger.info(f"Starting rank sync for {len(accounts)} accounts")

        for account in accounts:
            try:
                change = await self.sync_account(account)
            except RiotAuthError as e:
                result.errors.append({"discord_id": account.discord_id, "error": str(e)})
                logger.error("Rank sync stopped: Riot API credentials rejected")
                break
            except RiotApiError as e:
                logger.error(f"Error syncing rank for {account.discord_id}: {e}")
                result.errors.append({"discord_id": account.discord_id, "error": str(e)})
                continue
            result.synced += 1
            if change is not None:
                result.changes.append(change)

        logger.info(
            f"Rank sync completed: {result.synced} synced, {len(result.changes)} changed, "
            f"{len(result.errors)} errors"
        )
        return result
