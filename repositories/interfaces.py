"""
Abstract repository interfaces for data access.

These interfaces define the contracts implemented by concrete repositories.
"""

from abc import ABC, abstractmethod

from domain.models.account import LinkedAccount, Rank
from domain.models.betting import Bet, BetWindow
from domain.models.grant import ScopedGrant
from domain.models.leaderboard import LeaderboardEntry
from domain.models.match import MatchRecord, ParticipantStats
from domain.models.schedule import Schedule, ScheduleStatus


class IAccountRepository(ABC):
    @abstractmethod
    def add(
        self,
        discord_id: int,
        riot_puuid: str,
        summoner_name: str,
        region: str,
        initial_balance: int,
        game_name: str | None = None,
        tag_line: str | None = None,
        rank: Rank | None = None,
        now: int | None = None,
    ) -> LinkedAccount: ...

    @abstractmethod
    def get_by_id(self, discord_id: int, include_unlinked: bool = False) -> LinkedAccount | None: ...

    @abstractmethod
    def get_by_puuid(self, riot_puuid: str) -> LinkedAccount | None: ...

    @abstractmethod
    def get_by_puuids(self, puuids: list[str]) -> dict[str, LinkedAccount]: ...

    @abstractmethod
    def get_by_ids(self, discord_ids: list[int]) -> dict[int, LinkedAccount]: ...

    @abstractmethod
    def get_all_active(self) -> list[LinkedAccount]: ...

    @abstractmethod
    def soft_delete(self, discord_id: int, now: int | None = None) -> bool: ...

    @abstractmethod
    def get_balance(self, discord_id: int) -> int: ...

    @abstractmethod
    def add_balance(self, discord_id: int, amount: int) -> int: ...

    @abstractmethod
    def update_rank(self, discord_id: int, rank: Rank | None, synced_at: int) -> None: ...


class IMatchRepository(ABC):
    @abstractmethod
    def get(self, match_id: str) -> MatchRecord | None: ...

    @abstractmethod
    def try_claim(self, match_id: str, now: float, game_start: float | None = None) -> str | None: ...

    @abstractmethod
    def release_claim(self, match_id: str, claim_token: str) -> bool: ...

    @abstractmethod
    def delete_stale_claim(self, match_id: str, cutoff: float) -> bool: ...

    @abstractmethod
    def cleanup_stale_claims(self, cutoff: float) -> int: ...

    @abstractmethod
    def complete_claim(
        self,
        match_id: str,
        claim_token: str,
        participants: list[ParticipantStats],
        *,
        mvp_discord_id: int | None,
        feeder_discord_id: int | None,
        game_duration: int,
        game_mode: str | None,
        queue_id: int | None,
        game_start: float | None,
        solo_game: bool,
        week: str,
        ranks: dict[int, str | None],
        now: float,
    ) -> None: ...

    @abstractmethod
    def mark_settled(self, match_id: str, now: float) -> None: ...

    @abstractmethod
    def get_unsettled(self, limit: int = 50) -> list[MatchRecord]: ...


class IBetRepository(ABC):
    @abstractmethod
    def create_window(self, target_discord_id: int, opened_at: float, odds: dict[str, float]) -> BetWindow: ...

    @abstractmethod
    def get_window(self, window_id: int) -> BetWindow | None: ...

    @abstractmethod
    def get_active_window(self, target_discord_id: int) -> BetWindow | None: ...

    @abstractmethod
    def get_open_windows(self) -> list[BetWindow]: ...

    @abstractmethod
    def close_due_windows(self, duration_seconds: float, now: float) -> list[BetWindow]: ...

    @abstractmethod
    def get_latest_unresolved_closed_window(self, target_discord_id: int) -> BetWindow | None: ...

    @abstractmethod
    def get_expired_windows(self, cutoff: float) -> list[BetWindow]: ...

    @abstractmethod
    def place_bet_atomic(
        self, *, window_id: int, bettor_discord_id: int, bet_kind: str, amount: int, now: float
    ) -> Bet: ...

    @abstractmethod
    def settle_window_atomic(
        self, *, window_id: int, match_id: str, results: dict[int, bool], payouts: dict[int, int], now: float
    ) -> dict[str, list[dict]] | None: ...

    @abstractmethod
    def cancel_window_atomic(self, *, window_id: int, penalty: int, now: float) -> dict | None: ...

    @abstractmethod
    def get_pending_bets_for_window(self, window: BetWindow) -> list[Bet]: ...

    @abstractmethod
    def get_undelivered_notifications(self) -> list[dict]: ...

    @abstractmethod
    def claim_notification(self, notification_id: int, now: float, lease_seconds: float = 300) -> bool: ...

    @abstractmethod
    def release_notification(self, notification_id: int) -> None: ...

    @abstractmethod
    def mark_notification_delivered(self, notification_id: int, now: float) -> None: ...

    @abstractmethod
    def get_bettor_summary(self, discord_id: int) -> dict: ...


class ILeaderboardRepository(ABC):
    @abstractmethod
    def get_week(self, week: str) -> list[LeaderboardEntry]: ...

    @abstractmethod
    def get_entry(self, discord_id: int, week: str) -> LeaderboardEntry | None: ...


class IGrantRepository(ABC):
    @abstractmethod
    def grant(self, grant: ScopedGrant) -> bool: ...

    @abstractmethod
    def get_active(self, discord_id: int, capability: str, now: float) -> list[ScopedGrant]: ...

    @abstractmethod
    def pop_expired(self, now: float) -> list[ScopedGrant]: ...


class IScheduleRepository(ABC):
    @abstractmethod
    def create(self, schedule: Schedule) -> bool: ...

    @abstractmethod
    def get(self, schedule_id: str) -> Schedule | None: ...

    @abstractmethod
    def get_active_for_creator(self, creator_id: int, now: float) -> Schedule | None: ...

    @abstractmethod
    def join(self, schedule_id: str, user_id: int, now: float) -> Schedule: ...

    @abstractmethod
    def leave(self, schedule_id: str, user_id: int, now: float) -> Schedule: ...

    @abstractmethod
    def finish(self, schedule_id: str, actor_id: int, status: ScheduleStatus, now: float) -> Schedule: ...

    @abstractmethod
    def set_message(self, schedule_id: str, channel_id: int, message_id: int) -> None: ...

    @abstractmethod
    def list_open(self, now: float, limit: int = 10) -> list[Schedule]: ...

    @abstractmethod
    def list_for_user(self, user_id: int, now: float, limit: int = 5) -> list[Schedule]: ...

    @abstractmethod
    def expire_stale(self, now: float) -> list[Schedule]: ...
