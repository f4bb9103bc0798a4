"""
Match ingestion pipeline.

Polls recent match ids for linked accounts, claims each unseen match through
the matches primary key, scores it, and hands terminal records to the
feeder-role and settlement side effects.

Claim state machine per match id:
    absent -> claimed -> terminal
    claimed -> (stale after CLAIM_STALE_SECONDS) -> absent

Bulk entry points never raise for per-match or per-account failures; every
problem is collected into the returned IngestionResult.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field

from domain.models.account import LinkedAccount
from domain.models.leaderboard import iso_week_key
from domain.models.match import MatchRecord
from repositories.interfaces import IAccountRepository, IMatchRepository
from services.commentary_service import CommentaryService
from services.match_analysis_service import MatchAnalysis, MatchAnalysisService, game_start_seconds
from services.riot_api_client import RiotApiClient, RiotApiError, RiotAuthError
from services.role_grant_service import RoleGrantService
from services.settlement_service import SettlementService

logger = logging.getLogger("rift_bot.services.match_ingestion")


@dataclass
class IngestionResult:
    checked: int = 0
    new_matches: int = 0
    skipped_already_processed: int = 0
    skipped_not_enough_players: int = 0
    errors: list[dict] = field(default_factory=list)
    analyses: list[MatchAnalysis] = field(default_factory=list)
    settlements: list = field(default_factory=list)
    grants: list = field(default_factory=list)
    halted: bool = False

    def add_error(self, error: str, match_id: str | None = None, discord_id: int | None = None) -> None:
        self.errors.append({"match_id": match_id, "discord_id": discord_id, "error": error})


class MatchIngestionService:
    def __init__(
        self,
        riot_client: RiotApiClient,
        account_repo: IAccountRepository,
        match_repo: IMatchRepository,
        analysis_service: MatchAnalysisService,
        settlement_service: SettlementService,
        role_grant_service: RoleGrantService,
        commentary_service: CommentaryService | None = None,
        *,
        recent_match_count: int = 5,
        match_type: str | None = None,
        min_linked_players: int = 2,
        claim_stale_seconds: int = 300,
        clock=time.time,
    ):
        self.riot_client = riot_client
        self.account_repo = account_repo
        self.match_repo = match_repo
        self.analysis_service = analysis_service
        self.settlement_service = settlement_service
        self.role_grant_service = role_grant_service
        self.commentary_service = commentary_service
        self.recent_match_count = recent_match_count
        self.match_type = match_type
        self.min_linked_players = min_linked_players
        self.claim_stale_seconds = claim_stale_seconds
        self._clock = clock

    async def sweep_all_accounts(self) -> IngestionResult:
        """Check the recent matches of every active linked account."""
        result = IngestionResult()
        self.riot_client.resume()
        await self.retry_pending_settlements(result)
        accounts = await asyncio.to_thread(self.account_repo.get_all_active)
        seen: set[str] = set()
        logger.info(f"Starting match sweep over {len(accounts)} linked accounts")

        for account in accounts:
            await self._check_account(account, result, seen)
            if result.halted:
                logger.error("Match sweep stopped: Riot API credentials rejected")
                break

        logger.info(
            f"Match sweep complete: {result.checked} checked, {result.new_matches} new, "
            f"{result.skipped_already_processed} already processed, "
            f"{result.skipped_not_enough_players} without linked players, {len(result.errors)} errors"
        )
        return result

    async def check_account(self, discord_id: int) -> IngestionResult:
        """On-demand check for one linked account (the /refresh path)."""
        result = IngestionResult()
        account = await asyncio.to_thread(self.account_repo.get_by_id, discord_id)
        if account is None:
            result.add_error("Account is not linked", discord_id=discord_id)
            return result
        self.riot_client.resume()
        await self._check_account(account, result, set())
        return result

    async def cleanup_stale_claims(self, now: float | None = None) -> int:
        now = self._clock() if now is None else now
        removed = await asyncio.to_thread(
            self.match_repo.cleanup_stale_claims, now - self.claim_stale_seconds
        )
        if removed:
            logger.warning(f"Removed {removed} stale match claims")
        return removed

    async def _check_account(self, account: LinkedAccount, result: IngestionResult, seen: set[str]) -> None:
        try:
            match_ids = await self.riot_client.list_recent_match_ids(
                account.riot_puuid, count=self.recent_match_count, match_type=self.match_type
            )
        except RiotAuthError as e:
            result.halted = True
            result.add_error(str(e), discord_id=account.discord_id)
            return
        except RiotApiError as e:
            logger.error(f"Failed to list matches for {account.discord_id}: {e}")
            result.add_error(str(e), discord_id=account.discord_id)
            return

        result.checked += len(match_ids)
        for match_id in match_ids:
            if match_id in seen:
                continue
            seen.add(match_id)
            try:
                await self._process_match_id(match_id, result)
            except RiotAuthError as e:
                result.halted = True
                result.add_error(str(e), match_id=match_id, discord_id=account.discord_id)
                return
            except Exception as e:
                logger.error(f"Error processing match {match_id}: {e}", exc_info=True)
                result.add_error(str(e), match_id=match_id, discord_id=account.discord_id)

    async def _process_match_id(self, match_id: str, result: IngestionResult) -> None:
        now = self._clock()
        record = await asyncio.to_thread(self.match_repo.get, match_id)
        if record is not None:
            if record.is_terminal:
                result.skipped_already_processed += 1
                return
            age = record.claim_age(now)
            if age < self.claim_stale_seconds:
                logger.debug(f"Match {match_id} is being processed ({age:.0f}s old claim)")
                result.skipped_already_processed += 1
                return
            logger.warning(f"Match {match_id} has a stale claim ({age:.0f}s old); reclaiming")
            await asyncio.to_thread(
                self.match_repo.delete_stale_claim, match_id, now - self.claim_stale_seconds
            )

        detail = await self.riot_client.get_match_detail(match_id)
        if detail is None:
            result.add_error("Match detail not found", match_id=match_id)
            return

        puuids = [p.get("puuid") for p in detail.get("info", {}).get("participants", []) if p.get("puuid")]
        linked = await asyncio.to_thread(self.account_repo.get_by_puuids, puuids)
        if not linked:
            result.skipped_not_enough_players += 1
            return

        game_start = game_start_seconds(detail)
        token = await asyncio.to_thread(self.match_repo.try_claim, match_id, now, game_start)
        if token is None:
            logger.info(f"Match {match_id} was claimed by another worker")
            result.skipped_already_processed += 1
            return
        logger.info(f"Claimed match {match_id} ({len(linked)} linked players)")

        ranks = {a.discord_id: a.rank.label if a.rank else None for a in linked.values()}
        try:
            analysis = await asyncio.to_thread(
                self._complete, match_id, token, detail, linked, ranks, game_start
            )
        except Exception:
            released = await asyncio.to_thread(self.match_repo.release_claim, match_id, token)
            if released:
                logger.info(f"Released claim on {match_id} after failure")
            raise

        result.new_matches += 1
        if analysis is None:
            logger.info(f"Match {match_id} processed as solo game (leaderboard only)")
            return

        await self._after_terminal(analysis, ranks, result)

    def _complete(
        self,
        match_id: str,
        token: str,
        detail: dict,
        linked: dict[str, LinkedAccount],
        ranks: dict[int, str | None],
        game_start: float | None,
    ) -> MatchAnalysis | None:
        """Score and persist a claimed match. Returns None for a solo game."""
        info = detail.get("info", {})
        week = iso_week_key(game_start if game_start is not None else self._clock())
        common = {
            "game_duration": int(info.get("gameDuration") or 0),
            "game_mode": info.get("gameMode"),
            "queue_id": info.get("queueId"),
            "game_start": game_start,
            "week": week,
            "ranks": ranks,
            "now": self._clock(),
        }

        if len(linked) < self.min_linked_players:
            participants = self.analysis_service.solo_projection(detail, linked)
            self.match_repo.complete_claim(
                match_id,
                token,
                participants,
                mvp_discord_id=None,
                feeder_discord_id=None,
                solo_game=True,
                **common,
            )
            return None

        analysis = self.analysis_service.analyze(match_id, detail, linked)
        self.match_repo.complete_claim(
            match_id,
            token,
            analysis.participants,
            mvp_discord_id=analysis.mvp.discord_id if analysis.mvp else None,
            feeder_discord_id=analysis.feeder.discord_id if analysis.feeder else None,
            solo_game=False,
            **common,
        )
        logger.info(
            f"Match {match_id} analyzed: MVP {analysis.mvp.summoner_name if analysis.mvp else '-'}, "
            f"feeder {analysis.feeder.summoner_name if analysis.feeder else '-'}"
        )
        return analysis

    async def _settle(self, record: MatchRecord, result: IngestionResult) -> bool:
        """Run settlement for a terminal record; the match stays pending on failure."""
        try:
            settlements = await asyncio.to_thread(self.settlement_service.settle_match, record)
            await asyncio.to_thread(self.match_repo.mark_settled, record.match_id, self._clock())
        except Exception as e:
            logger.error(f"Settlement failed for {record.match_id}: {e}", exc_info=True)
            result.add_error(f"Settlement failed: {e}", match_id=record.match_id)
            return False
        result.settlements.extend(settlements)
        return True

    async def retry_pending_settlements(self, result: IngestionResult | None = None) -> IngestionResult:
        """
        Re-run settlement for terminal team games whose earlier attempt failed.

        Settlement is idempotent per window, so a match that already bound its
        windows before failing settles nothing twice.
        """
        result = result or IngestionResult()
        pending = await asyncio.to_thread(self.match_repo.get_unsettled)
        if pending:
            logger.info(f"Retrying settlement for {len(pending)} matches")
        for record in pending:
            await self._settle(record, result)
        return result

    async def _after_terminal(
        self, analysis: MatchAnalysis, ranks: dict[int, str | None], result: IngestionResult
    ) -> None:
        """Side effects of a terminal match. Failures are recorded, never re-raised."""
        match_id = analysis.match_id

        if analysis.feeder is not None:
            try:
                grant = await asyncio.to_thread(
                    self.role_grant_service.grant_feeder, analysis.feeder.discord_id, match_id
                )
                if grant is not None:
                    result.grants.append(grant)
            except Exception as e:
                logger.error(f"Feeder grant failed for {match_id}: {e}", exc_info=True)
                result.add_error(f"Feeder grant failed: {e}", match_id=match_id)

        record = await asyncio.to_thread(self.match_repo.get, match_id)
        if record is not None:
            await self._settle(record, result)

        if self.commentary_service is not None:
            analysis.trash_talks = await self.commentary_service.generate_trash_talks(
                analysis.participants, ranks
            )
        result.analyses.append(analysis)
