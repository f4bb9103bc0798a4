"""
Riot Games API client with rate limiting and retry handling.

Only read endpoints are used: match-v5 and account-v1 on the regional
routing host, league-v4 on the platform host.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import requests

from domain.services.scoring_service import kda as compute_kda
from utils.rate_limiter import DualWindowRateLimiter

logger = logging.getLogger("rift_bot.services.riot_api")

SERVER_ERROR_STATUSES = {500, 502, 503, 504}
DEFAULT_RETRY_AFTER_SECONDS = 2.0

# Riot's match-v5 "type" filter values
MATCH_TYPES = {"ranked", "normal", "tourney", "tutorial"}


class RiotApiError(Exception):
    """Base error for Riot API failures."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class RiotAuthError(RiotApiError):
    """401/403: the API key is missing, expired or lacks access. Never retried."""


class RiotRateLimitError(RiotApiError):
    """429 persisted beyond the retry budget."""


class RiotServerError(RiotApiError):
    """5xx or network failure persisted beyond the retry budget."""


@dataclass
class RecentPerformance:
    """Form over a player's last N games, used to quote odds."""

    win_rate: float = 0.0  # percentage
    avg_kda: float = 0.0
    avg_deaths: float = 0.0
    wins: int = 0
    losses: int = 0
    games: int = 0


class RiotApiClient:
    """
    Thin wrapper over the Riot REST API.

    Each request waits for a slot on the instance's DualWindowRateLimiter, then
    runs the blocking requests call in a worker thread. 404 is returned as None.
    Once a 401/403 is seen the client halts and every later call raises
    RiotAuthError without touching the network until resume() starts the
    next run.
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        platform: str = "vn2",
        routing: str = "asia",
        rate_limiter: DualWindowRateLimiter | None = None,
        max_retries: int = 3,
        timeout: float = 10.0,
        session: requests.Session | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api_key = api_key
        self.platform = platform
        self.routing = routing
        self.platform_url = f"https://{platform}.api.riotgames.com"
        self.regional_url = f"https://{routing}.api.riotgames.com"
        self.rate_limiter = rate_limiter or DualWindowRateLimiter()
        self.max_retries = max_retries
        self.timeout = timeout
        self.session = session or requests.Session()
        self._sleep = sleep
        self.halted = False

    def resume(self) -> None:
        """Clear an auth halt at the start of a new run so a fixed key is picked up."""
        if self.halted:
            logger.info("Riot API client resuming after an earlier authentication failure")
        self.halted = False

    async def _request(self, url: str, params: dict[str, Any] | None = None) -> Any:
        if self.halted:
            raise RiotAuthError("Riot API client halted after an authentication failure")

        attempt = 0
        while True:
            await self.rate_limiter.acquire()
            try:
                response = await asyncio.to_thread(
                    self.session.get,
                    url,
                    headers={"X-Riot-Token": self.api_key or ""},
                    params=params,
                    timeout=self.timeout,
                )
            except requests.RequestException as exc:
                if attempt < self.max_retries:
                    delay = 2**attempt
                    logger.warning(f"Riot API network error on {url}, retrying in {delay}s: {exc}")
                    await self._sleep(delay)
                    attempt += 1
                    continue
                raise RiotServerError(f"Riot API network error: {exc}") from exc

            status = response.status_code
            logger.debug(f"Riot API {status} {url}")

            if status == 200:
                return response.json()

            if status == 404:
                return None

            if status in (401, 403):
                self.halted = True
                logger.error(f"Riot API authentication failed ({status}) - check RIOT_API_KEY")
                raise RiotAuthError("Riot API authentication failed", status=status)

            if status == 429:
                if attempt < self.max_retries:
                    retry_after = self._parse_retry_after(response.headers.get("Retry-After"))
                    logger.warning(
                        f"Riot API rate limited, retrying in {retry_after}s (attempt {attempt + 1})"
                    )
                    await self._sleep(retry_after)
                    attempt += 1
                    continue
                raise RiotRateLimitError("Riot API rate limit exceeded", status=status)

            if status in SERVER_ERROR_STATUSES:
                if attempt < self.max_retries:
                    delay = 2**attempt  # 1s, 2s, 4s
                    logger.warning(f"Riot API server error {status}, retrying in {delay}s")
                    await self._sleep(delay)
                    attempt += 1
                    continue
                raise RiotServerError(f"Riot API server error: {status}", status=status)

            raise RiotApiError(f"Riot API request failed: {status}", status=status)

    @staticmethod
    def _parse_retry_after(raw: str | None) -> float:
        if not raw:
            return DEFAULT_RETRY_AFTER_SECONDS
        try:
            return max(0.0, float(raw))
        except ValueError:
            return DEFAULT_RETRY_AFTER_SECONDS

    # --- match-v5 ---

    async def list_recent_match_ids(
        self, puuid: str, count: int = 5, match_type: str | None = None, start: int = 0
    ) -> list[str]:
        """Match ids for a player, most recent first."""
        params: dict[str, Any] = {"start": start, "count": count}
        if match_type:
            if match_type not in MATCH_TYPES:
                raise ValueError(f"Unknown match type filter: {match_type}")
            params["type"] = match_type
        data = await self._request(
            f"{self.regional_url}/lol/match/v5/matches/by-puuid/{puuid}/ids", params=params
        )
        return list(data or [])

    async def get_match_detail(self, match_id: str) -> dict | None:
        return await self._request(f"{self.regional_url}/lol/match/v5/matches/{match_id}")

    # --- account-v1 / league-v4 ---

    async def get_account_by_riot_id(self, game_name: str, tag_line: str) -> dict | None:
        """Resolve GameName#TagLine to {puuid, gameName, tagLine}."""
        return await self._request(
            f"{self.regional_url}/riot/account/v1/accounts/by-riot-id/"
            f"{quote(game_name, safe='')}/{quote(tag_line, safe='')}"
        )

    async def get_ranked_entries(self, puuid: str, platform: str | None = None) -> list[dict]:
        base = f"https://{platform}.api.riotgames.com" if platform else self.platform_url
        data = await self._request(f"{base}/lol/league/v4/entries/by-puuid/{puuid}")
        return list(data or [])

    async def get_recent_performance(self, puuid: str, games: int = 20) -> RecentPerformance:
        """
        Win rate, average KDA and average deaths over the last `games` matches.

        Matches that 404 are skipped. Returns zeros when there is no history.
        """
        match_ids = await self.list_recent_match_ids(puuid, count=games)
        wins = kills = deaths = assists = counted = 0
        for match_id in match_ids:
            detail = await self.get_match_detail(match_id)
            participant = find_participant(detail, puuid)
            if participant is None:
                continue
            counted += 1
            wins += 1 if participant.get("win") else 0
            kills += participant.get("kills", 0)
            deaths += participant.get("deaths", 0)
            assists += participant.get("assists", 0)

        if counted == 0:
            return RecentPerformance()

        avg_kills = kills / counted
        avg_deaths = deaths / counted
        avg_assists = assists / counted
        if avg_deaths == 0:
            avg_kda = avg_kills + avg_assists
        else:
            avg_kda = (avg_kills + avg_assists) / avg_deaths
        return RecentPerformance(
            win_rate=round(wins / counted * 100, 1),
            avg_kda=round(avg_kda, 2),
            avg_deaths=round(avg_deaths, 1),
            wins=wins,
            losses=counted - wins,
            games=counted,
        )


def find_participant(match: dict | None, puuid: str) -> dict | None:
    """The raw participant dict for puuid in a match-v5 payload."""
    if not match:
        return None
    for participant in match.get("info", {}).get("participants", []):
        if participant.get("puuid") == puuid:
            return participant
    return None


def participant_kda(participant: dict) -> float:
    return compute_kda(
        participant.get("kills", 0), participant.get("deaths", 0), participant.get("assists", 0)
    )
