"""
Service container for dependency injection and initialization.

This module centralizes service creation and wiring, keeping bot.py thin.

Usage:
    container = ServiceContainer(ServiceConfig.from_env())
    await container.initialize()

    # Access services
    ingestion = container.match_ingestion_service
    betting = container.betting_service
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from services.account_service import AccountService
    from services.betting_service import BettingService
    from services.commentary_service import CommentaryService
    from services.leaderboard_service import LeaderboardService
    from services.match_ingestion_service import MatchIngestionService
    from services.rank_sync_service import RankSyncService
    from services.riot_api_client import RiotApiClient
    from services.role_grant_service import RoleGrantService
    from services.schedule_service import ScheduleService
    from services.settlement_service import SettlementService

from infrastructure.schema_manager import SchemaManager

# Repositories
from repositories.account_repository import AccountRepository
from repositories.bet_repository import BetRepository
from repositories.grant_repository import GrantRepository
from repositories.leaderboard_repository import LeaderboardRepository
from repositories.match_repository import MatchRepository
from repositories.schedule_repository import ScheduleRepository

logger = logging.getLogger("rift_bot.infrastructure.container")


@dataclass
class RepositoryContainer:
    """Container for all repositories."""

    account: AccountRepository | None = None
    match: MatchRepository | None = None
    bet: BetRepository | None = None
    leaderboard: LeaderboardRepository | None = None
    grant: GrantRepository | None = None
    schedule: ScheduleRepository | None = None


@dataclass
class ServiceConfig:
    """Configuration for service initialization."""

    # Database
    db_path: str = "rift_bot.db"

    # Riot API
    riot_api_key: str | None = None
    riot_region: str = "vn2"
    riot_routing: str = "asia"
    rate_limit_short: int = 20
    rate_limit_short_window: float = 1.0
    rate_limit_long: int = 100
    rate_limit_long_window: float = 120.0
    riot_max_retries: int = 3
    riot_request_timeout: float = 10.0

    # Ingestion
    match_type_filter: str | None = "ranked"
    recent_match_count: int = 5
    min_linked_players: int = 2
    claim_stale_seconds: int = 300

    # Betting
    betting_window_minutes: int = 5
    max_game_start_window_minutes: int = 40
    max_match_wait_minutes: int = 90
    cancellation_penalty: int = 50
    initial_coins: int = 1000
    house_edge: float = 0.95
    odds_sample_games: int = 20
    min_bet: int = 1

    # Roles
    feeder_role_name: str = "Cục Tạ Vàng"
    feeder_role_hours: int = 24
    rank_roles: dict[str, str] = field(default_factory=dict)

    # Leaderboard
    leaderboard_min_games_for_winrate: int = 5
    leaderboard_limit: int = 10

    # Lobby scheduling
    schedule_expiry_hours: float = 6.0
    schedule_list_limit: int = 10

    # Optional features
    enable_ai_services: bool = False
    cerebras_api_key: str | None = None
    ai_model: str = "cerebras/llama-3.3-70b"
    ai_timeout_seconds: float = 8.0
    ai_max_tokens: int = 150
    ai_temperature: float = 0.9

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """Build a config from the values loaded by config.py."""
        import config

        return cls(
            db_path=config.DB_PATH,
            riot_api_key=config.RIOT_API_KEY,
            riot_region=config.RIOT_REGION,
            riot_routing=config.RIOT_ROUTING,
            rate_limit_short=config.RIOT_RATE_LIMIT_SHORT,
            rate_limit_short_window=config.RIOT_RATE_LIMIT_SHORT_WINDOW,
            rate_limit_long=config.RIOT_RATE_LIMIT_LONG,
            rate_limit_long_window=config.RIOT_RATE_LIMIT_LONG_WINDOW,
            riot_max_retries=config.RIOT_MAX_RETRIES,
            riot_request_timeout=config.RIOT_REQUEST_TIMEOUT,
            match_type_filter=config.MATCH_TYPE_FILTER,
            recent_match_count=config.RECENT_MATCH_COUNT,
            min_linked_players=config.MIN_LINKED_PLAYERS,
            claim_stale_seconds=config.CLAIM_STALE_SECONDS,
            betting_window_minutes=config.BETTING_WINDOW_MINUTES,
            max_game_start_window_minutes=config.MAX_GAME_START_WINDOW_MINUTES,
            max_match_wait_minutes=config.MAX_MATCH_WAIT_MINUTES,
            cancellation_penalty=config.CANCELLATION_PENALTY,
            initial_coins=config.INITIAL_COINS,
            house_edge=config.HOUSE_EDGE,
            odds_sample_games=config.ODDS_SAMPLE_GAMES,
            min_bet=config.MIN_BET,
            feeder_role_name=config.FEEDER_ROLE_NAME,
            feeder_role_hours=config.FEEDER_ROLE_HOURS,
            rank_roles=dict(config.RANK_ROLES),
            leaderboard_min_games_for_winrate=config.LEADERBOARD_MIN_GAMES_FOR_WINRATE,
            leaderboard_limit=config.LEADERBOARD_LIMIT,
            schedule_expiry_hours=config.SCHEDULE_EXPIRY_HOURS,
            schedule_list_limit=config.SCHEDULE_LIST_LIMIT,
            enable_ai_services=config.AI_FEATURES_ENABLED and bool(config.CEREBRAS_API_KEY),
            cerebras_api_key=config.CEREBRAS_API_KEY,
            ai_model=config.AI_MODEL,
            ai_timeout_seconds=config.AI_TIMEOUT_SECONDS,
            ai_max_tokens=config.AI_MAX_TOKENS,
            ai_temperature=config.AI_TEMPERATURE,
        )


class ServiceContainer:
    """
    Central container for all application services.

    Handles proper initialization order and dependency injection.

    Example:
        container = ServiceContainer(config)
        await container.initialize()

        # Services are now available
        ingestion = container.match_ingestion_service
    """

    def __init__(self, config: ServiceConfig | None = None):
        """
        Initialize the container with configuration.

        Args:
            config: Service configuration (uses defaults if None)
        """
        self.config = config or ServiceConfig()
        self._initialized = False
        self._repos = RepositoryContainer()
        self._services: dict[str, Any] = {}

    @property
    def is_initialized(self) -> bool:
        """Check if container has been initialized."""
        return self._initialized

    async def initialize(self) -> None:
        """
        Initialize all services in correct order.

        This method is idempotent - calling it multiple times has no effect.
        """
        if self._initialized:
            logger.debug("ServiceContainer already initialized, skipping")
            return

        logger.info("Initializing ServiceContainer...")

        self._init_database()
        self._init_repositories()

        # Initialize services in dependency order
        self._init_external_clients()
        self._init_core_services()
        self._init_match_services()

        self._initialized = True
        logger.info("ServiceContainer initialization complete")

    def _init_database(self) -> None:
        """Initialize database and run migrations."""
        logger.debug(f"Initializing database at {self.config.db_path}")
        SchemaManager(self.config.db_path).initialize()

    def _init_repositories(self) -> None:
        logger.debug("Initializing repositories")

        db_path = self.config.db_path
        self._repos.account = AccountRepository(db_path)
        self._repos.match = MatchRepository(db_path)
        self._repos.bet = BetRepository(db_path)
        self._repos.leaderboard = LeaderboardRepository(db_path)
        self._repos.grant = GrantRepository(db_path)
        self._repos.schedule = ScheduleRepository(db_path)

    def _init_external_clients(self) -> None:
        """Riot API client and, when configured, the AI service."""
        logger.debug("Initializing external clients")

        from services.ai_service import AIService
        from services.commentary_service import CommentaryService
        from services.riot_api_client import RiotApiClient
        from utils.rate_limiter import DualWindowRateLimiter

        if not self.config.riot_api_key:
            logger.warning("RIOT_API_KEY is not set; Riot API calls will be rejected")

        self._services["riot_client"] = RiotApiClient(
            self.config.riot_api_key,
            platform=self.config.riot_region,
            routing=self.config.riot_routing,
            rate_limiter=DualWindowRateLimiter(
                short_limit=self.config.rate_limit_short,
                short_window=self.config.rate_limit_short_window,
                long_limit=self.config.rate_limit_long,
                long_window=self.config.rate_limit_long_window,
            ),
            max_retries=self.config.riot_max_retries,
            timeout=self.config.riot_request_timeout,
        )

        ai_service = None
        if self.config.enable_ai_services and self.config.cerebras_api_key:
            ai_service = AIService(
                model=self.config.ai_model,
                api_key=self.config.cerebras_api_key,
                timeout=self.config.ai_timeout_seconds,
                max_tokens=self.config.ai_max_tokens,
                temperature=self.config.ai_temperature,
            )
        else:
            logger.info("AI commentary disabled; using fallback templates")
        self._services["commentary"] = CommentaryService(ai_service)

    def _init_core_services(self) -> None:
        """Account, betting, settlement, grants, leaderboard and schedules."""
        logger.debug("Initializing core services")

        from services.account_service import AccountService
        from services.betting_service import BettingService
        from services.leaderboard_service import LeaderboardService
        from services.rank_sync_service import RankSyncService
        from services.role_grant_service import RoleGrantService
        from services.schedule_service import ScheduleService
        from services.settlement_service import SettlementService

        riot_client = self._services["riot_client"]

        self._services["account"] = AccountService(
            account_repo=self._repos.account,
            riot_client=riot_client,
            initial_balance=self.config.initial_coins,
            region=self.config.riot_region,
        )
        self._services["betting"] = BettingService(
            bet_repo=self._repos.bet,
            account_repo=self._repos.account,
            riot_client=riot_client,
            commentary_service=self._services["commentary"],
            window_minutes=self.config.betting_window_minutes,
            house_edge=self.config.house_edge,
            sample_games=self.config.odds_sample_games,
            min_bet=self.config.min_bet,
        )
        self._services["settlement"] = SettlementService(
            bet_repo=self._repos.bet,
            max_game_start_minutes=self.config.max_game_start_window_minutes,
            max_match_wait_minutes=self.config.max_match_wait_minutes,
            cancellation_penalty=self.config.cancellation_penalty,
        )
        self._services["role_grant"] = RoleGrantService(
            grant_repo=self._repos.grant,
            feeder_role_name=self.config.feeder_role_name,
            feeder_role_hours=self.config.feeder_role_hours,
        )
        self._services["rank_sync"] = RankSyncService(
            riot_client=riot_client,
            account_repo=self._repos.account,
            rank_roles=self.config.rank_roles,
        )
        self._services["leaderboard"] = LeaderboardService(
            leaderboard_repo=self._repos.leaderboard,
            account_repo=self._repos.account,
            match_repo=self._repos.match,
            min_games_for_winrate=self.config.leaderboard_min_games_for_winrate,
            limit=self.config.leaderboard_limit,
        )
        self._services["schedule"] = ScheduleService(
            schedule_repo=self._repos.schedule,
            expiry_hours=self.config.schedule_expiry_hours,
            list_limit=self.config.schedule_list_limit,
        )

    def _init_match_services(self) -> None:
        logger.debug("Initializing match services")

        from services.match_analysis_service import MatchAnalysisService
        from services.match_ingestion_service import MatchIngestionService

        self._services["match_ingestion"] = MatchIngestionService(
            riot_client=self._services["riot_client"],
            account_repo=self._repos.account,
            match_repo=self._repos.match,
            analysis_service=MatchAnalysisService(),
            settlement_service=self._services["settlement"],
            role_grant_service=self._services["role_grant"],
            commentary_service=self._services["commentary"],
            recent_match_count=self.config.recent_match_count,
            match_type=self.config.match_type_filter,
            min_linked_players=self.config.min_linked_players,
            claim_stale_seconds=self.config.claim_stale_seconds,
        )

    # =========================================================================
    # Service accessors
    # =========================================================================

    @property
    def account_repo(self) -> AccountRepository:
        return self._repos.account

    @property
    def match_repo(self) -> MatchRepository:
        return self._repos.match

    @property
    def bet_repo(self) -> BetRepository:
        return self._repos.bet

    @property
    def leaderboard_repo(self) -> LeaderboardRepository:
        return self._repos.leaderboard

    @property
    def grant_repo(self) -> GrantRepository:
        return self._repos.grant

    @property
    def schedule_repo(self) -> ScheduleRepository:
        return self._repos.schedule

    @property
    def riot_client(self) -> "RiotApiClient | None":
        return self._services.get("riot_client")

    @property
    def commentary_service(self) -> "CommentaryService | None":
        return self._services.get("commentary")

    @property
    def account_service(self) -> "AccountService | None":
        return self._services.get("account")

    @property
    def betting_service(self) -> "BettingService | None":
        return self._services.get("betting")

    @property
    def settlement_service(self) -> "SettlementService | None":
        return self._services.get("settlement")

    @property
    def role_grant_service(self) -> "RoleGrantService | None":
        return self._services.get("role_grant")

    @property
    def rank_sync_service(self) -> "RankSyncService | None":
        return self._services.get("rank_sync")

    @property
    def leaderboard_service(self) -> "LeaderboardService | None":
        return self._services.get("leaderboard")

    @property
    def match_ingestion_service(self) -> "MatchIngestionService | None":
        return self._services.get("match_ingestion")

    @property
    def schedule_service(self) -> "ScheduleService | None":
        return self._services.get("schedule")

    def expose_to_bot(self, bot) -> None:
        """
        Expose all services to a Discord bot object.

        Cogs look their dependencies up via bot.<service_name>.

        Args:
            bot: The Discord bot instance
        """
        # Repositories
        bot.account_repo = self.account_repo
        bot.match_repo = self.match_repo
        bot.bet_repo = self.bet_repo
        bot.leaderboard_repo = self.leaderboard_repo
        bot.grant_repo = self.grant_repo
        bot.schedule_repo = self.schedule_repo

        # Services
        bot.riot_client = self.riot_client
        bot.commentary_service = self.commentary_service
        bot.account_service = self.account_service
        bot.betting_service = self.betting_service
        bot.settlement_service = self.settlement_service
        bot.role_grant_service = self.role_grant_service
        bot.rank_sync_service = self.rank_sync_service
        bot.leaderboard_service = self.leaderboard_service
        bot.match_ingestion_service = self.match_ingestion_service
        bot.schedule_service = self.schedule_service

        logger.info("Services exposed to bot object")
