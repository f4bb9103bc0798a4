"""
Linking Discord users to Riot accounts.
"""

from __future__ import annotations

import asyncio
import logging

from domain.models.account import LinkedAccount
from repositories.account_repository import AccountAlreadyLinkedError
from repositories.interfaces import IAccountRepository
from services import error_codes
from services.rank_sync_service import pick_rank
from services.result import Result
from services.riot_api_client import RiotApiClient, RiotApiError

logger = logging.getLogger("rift_bot.services.account")


def parse_riot_id(riot_id: str) -> tuple[str, str] | None:
    """Split 'GameName#TagLine'. Returns None when either part is missing."""
    parts = (riot_id or "").strip().split("#")
    if len(parts) != 2:
        return None
    game_name, tag_line = parts[0].strip(), parts[1].strip()
    if not game_name or not tag_line:
        return None
    return game_name, tag_line


class AccountService:
    def __init__(
        self,
        account_repo: IAccountRepository,
        riot_client: RiotApiClient,
        initial_balance: int = 1000,
        region: str = "vn2",
    ):
        self.account_repo = account_repo
        self.riot_client = riot_client
        self.initial_balance = initial_balance
        self.region = region

    async def link(self, discord_id: int, riot_id: str) -> Result[LinkedAccount]:
        parsed = parse_riot_id(riot_id)
        if parsed is None:
            return Result.fail(
                "Please use the format `GameName#TagLine`, e.g. `Faker#KR1`.",
                code=error_codes.INVALID_RIOT_ID,
            )
        game_name, tag_line = parsed

        existing = await asyncio.to_thread(self.account_repo.get_by_id, discord_id)
        if existing is not None:
            return Result.fail(
                f"You are already linked to **{existing.summoner_name}**. Use /unlink first.",
                code=error_codes.ACCOUNT_ALREADY_LINKED,
            )

        try:
            riot_account = await self.riot_client.get_account_by_riot_id(game_name, tag_line)
        except RiotApiError as e:
            logger.error(f"Riot account lookup failed for {riot_id}: {e}")
            return Result.fail(
                "Could not reach the Riot API. Please try again later.",
                code=error_codes.EXTERNAL_SERVICE_ERROR,
            )
        if not riot_account or not riot_account.get("puuid"):
            return Result.fail(
                f"Riot account **{game_name}#{tag_line}** was not found.",
                code=error_codes.RIOT_ACCOUNT_NOT_FOUND,
            )

        rank = None
        try:
            rank = pick_rank(await self.riot_client.get_ranked_entries(riot_account["puuid"]))
        except RiotApiError as e:
            logger.warning(f"Initial rank lookup failed for {riot_id}: {e}")

        display = f"{riot_account.get('gameName', game_name)}#{riot_account.get('tagLine', tag_line)}"
        try:
            account = await asyncio.to_thread(
                self.account_repo.add,
                discord_id,
                riot_account["puuid"],
                display,
                self.region,
                self.initial_balance,
                riot_account.get("gameName", game_name),
                riot_account.get("tagLine", tag_line),
                rank,
            )
        except AccountAlreadyLinkedError as e:
            return Result.fail(str(e), code=error_codes.ACCOUNT_ALREADY_LINKED)

        logger.info(f"Linked {discord_id} to {display}")
        return Result.ok(account)

    async def unlink(self, discord_id: int) -> Result[LinkedAccount]:
        account = await asyncio.to_thread(self.account_repo.get_by_id, discord_id)
        if account is None:
            return Result.fail("Your account is not linked.", code=error_codes.ACCOUNT_NOT_LINKED)
        await asyncio.to_thread(self.account_repo.soft_delete, discord_id)
        logger.info(f"Unlinked {discord_id} from {account.summoner_name}")
        return Result.ok(account)
