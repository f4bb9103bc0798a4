"""
Application services layer.

Services orchestrate tracking and betting operations using repositories and domain services.
"""

from services.account_service import AccountService
from services.ai_service import AIService
from services.betting_service import BettingService
from services.commentary_service import CommentaryService
from services.leaderboard_service import LeaderboardService
from services.match_analysis_service import MatchAnalysisService
from services.match_ingestion_service import MatchIngestionService
from services.rank_sync_service import RankSyncService

# Result type for consistent error handling
from services.result import Result
from services.riot_api_client import RiotApiClient
from services.role_grant_service import RoleGrantService
from services.settlement_service import SettlementService

__all__ = [
    "AccountService",
    "AIService",
    "BettingService",
    "CommentaryService",
    "LeaderboardService",
    "MatchAnalysisService",
    "MatchIngestionService",
    "RankSyncService",
    "RiotApiClient",
    "RoleGrantService",
    "SettlementService",
    # Result type
    "Result",
]
