"""
Centralized configuration for the Rift bot.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def _parse_int(env_var: str, default: int) -> int:
    raw = os.getenv(env_var)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_float(env_var: str, default: float) -> float:
    raw = os.getenv(env_var)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _parse_bool(env_var: str, default: bool) -> bool:
    raw = os.getenv(env_var)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def _parse_int_list(env_var: str, default: list[int]) -> list[int]:
    raw = os.getenv(env_var)
    if raw is None:
        return default
    try:
        return [int(x.strip()) for x in raw.split(",") if x.strip()]
    except ValueError:
        return default


def _parse_optional_int(env_var: str) -> int | None:
    raw = os.getenv(env_var)
    if not raw:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


DB_PATH = os.getenv("DB_PATH", "rift_bot.db")
DISCORD_BOT_TOKEN = os.getenv("DISCORD_BOT_TOKEN")
GUILD_ID = _parse_optional_int("GUILD_ID")
# Channel where match analyses and settlements are posted
TRACKED_CHANNEL_ID = _parse_optional_int("TRACKED_CHANNEL_ID")
ADMIN_USER_IDS: list[int] = _parse_int_list("ADMIN_USER_IDS", [])

# Riot API
RIOT_API_KEY = os.getenv("RIOT_API_KEY")
RIOT_REGION = os.getenv("RIOT_REGION", "vn2")  # Platform host for league-v4
RIOT_ROUTING = os.getenv("RIOT_ROUTING", "asia")  # Regional host for match-v5 / account-v1
RIOT_RATE_LIMIT_SHORT = _parse_int("RIOT_RATE_LIMIT_SHORT", 20)  # Requests per short window
RIOT_RATE_LIMIT_SHORT_WINDOW = _parse_float("RIOT_RATE_LIMIT_SHORT_WINDOW", 1.0)  # Seconds
RIOT_RATE_LIMIT_LONG = _parse_int("RIOT_RATE_LIMIT_LONG", 100)  # Requests per long window
RIOT_RATE_LIMIT_LONG_WINDOW = _parse_float("RIOT_RATE_LIMIT_LONG_WINDOW", 120.0)  # 2 minutes
RIOT_MAX_RETRIES = _parse_int("RIOT_MAX_RETRIES", 3)
RIOT_REQUEST_TIMEOUT = _parse_float("RIOT_REQUEST_TIMEOUT", 10.0)  # Seconds

# Match ingestion
MATCH_TYPE_FILTER = os.getenv("MATCH_TYPE_FILTER", "ranked") or None  # ranked, normal, tourney, or empty for all
RECENT_MATCH_COUNT = _parse_int("RECENT_MATCH_COUNT", 5)
MIN_LINKED_PLAYERS = _parse_int("MIN_LINKED_PLAYERS", 2)  # Below this a match is a solo game
CLAIM_STALE_SECONDS = _parse_int("CLAIM_STALE_SECONDS", 300)  # 5 minutes
MATCH_SWEEP_INTERVAL_MINUTES = _parse_int("MATCH_SWEEP_INTERVAL_MINUTES", 10)
CLAIM_CLEANUP_INTERVAL_MINUTES = _parse_int("CLAIM_CLEANUP_INTERVAL_MINUTES", 5)

# Betting
BETTING_WINDOW_MINUTES = _parse_int("BETTING_WINDOW_MINUTES", 5)
MAX_GAME_START_WINDOW_MINUTES = _parse_int("MAX_GAME_START_WINDOW_MINUTES", 40)
MAX_MATCH_WAIT_MINUTES = _parse_int("MAX_MATCH_WAIT_MINUTES", 90)  # 40 start + ~50 game length
CANCELLATION_PENALTY = _parse_int("CANCELLATION_PENALTY", 50)
INITIAL_COINS = _parse_int("INITIAL_COINS", 1000)
HOUSE_EDGE = _parse_float("HOUSE_EDGE", 0.95)  # Multiplier applied to all quoted odds
ODDS_SAMPLE_GAMES = _parse_int("ODDS_SAMPLE_GAMES", 20)
MIN_BET = _parse_int("MIN_BET", 1)
WINDOW_CHECK_INTERVAL_SECONDS = _parse_int("WINDOW_CHECK_INTERVAL_SECONDS", 60)

# Roles
FEEDER_ROLE_NAME = os.getenv("FEEDER_ROLE_NAME", "Cục Tạ Vàng")
FEEDER_ROLE_HOURS = _parse_int("FEEDER_ROLE_HOURS", 24)
ROLE_EXPIRY_INTERVAL_MINUTES = _parse_int("ROLE_EXPIRY_INTERVAL_MINUTES", 60)
RANK_SYNC_INTERVAL_HOURS = _parse_int("RANK_SYNC_INTERVAL_HOURS", 6)
RANK_ROLES: dict[str, str] = {
    "CHALLENGER": "Đỏ",
    "GRANDMASTER": "Đỏ",
    "MASTER": "Đỏ",
    "DIAMOND": "Xanh Ngọc",
    "EMERALD": "Xanh Ngọc",
    "PLATINUM": "Xanh Lam",
    "GOLD": "Vàng",
    "SILVER": "Bạc",
    "BRONZE": "Đồng",
    "IRON": "Xám",
}

# Leaderboard
LEADERBOARD_MIN_GAMES_FOR_WINRATE = _parse_int("LEADERBOARD_MIN_GAMES_FOR_WINRATE", 5)
LEADERBOARD_LIMIT = _parse_int("LEADERBOARD_LIMIT", 10)

# Lobby scheduling
SCHEDULE_EXPIRY_HOURS = _parse_float("SCHEDULE_EXPIRY_HOURS", 6.0)
SCHEDULE_LIST_LIMIT = _parse_int("SCHEDULE_LIST_LIMIT", 10)
SCHEDULE_EXPIRY_INTERVAL_MINUTES = _parse_int("SCHEDULE_EXPIRY_INTERVAL_MINUTES", 60)

# AI (commentary)
CEREBRAS_API_KEY = os.getenv("CEREBRAS_API_KEY")
AI_MODEL = os.getenv("AI_MODEL", "cerebras/llama-3.3-70b")
AI_TIMEOUT_SECONDS = _parse_float("AI_TIMEOUT_SECONDS", 8.0)
AI_MAX_TOKENS = _parse_int("AI_MAX_TOKENS", 150)
AI_TEMPERATURE = _parse_float("AI_TEMPERATURE", 0.9)
AI_FEATURES_ENABLED = _parse_bool("AI_FEATURES_ENABLED", True)
