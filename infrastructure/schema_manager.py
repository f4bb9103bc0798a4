"""
Schema and migration management for SQLite database.
"""

import logging
import sqlite3

logger = logging.getLogger("rift_bot.schema")


class SchemaManager:
    """
    Owns schema creation and migrations.

    Call initialize() to ensure schema is present and migrations are applied.
    """

    def __init__(self, db_path: str, use_uri: bool = False):
        self.db_path = db_path
        self.use_uri = use_uri

    def initialize(self) -> None:
        """Create base schema and apply migrations."""
        logger.info(f"Initializing database schema: {self.db_path}")
        with self._connect() as conn:
            cursor = conn.cursor()
            self._create_base_schema(cursor)
            self._create_schema_migrations_table(cursor)
            self._run_migrations(cursor)
            conn.commit()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, uri=self.use_uri)
        conn.row_factory = sqlite3.Row
        if not self.use_uri:  # Skip WAL for in-memory databases
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA busy_timeout=5000")
        return conn

    def _create_base_schema(self, cursor) -> None:
        # Discord <-> Riot account links
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS linked_accounts (
                discord_id INTEGER PRIMARY KEY,
                riot_puuid TEXT NOT NULL,
                summoner_name TEXT NOT NULL,
                game_name TEXT,
                tag_line TEXT,
                region TEXT DEFAULT 'vn2',
                balance INTEGER DEFAULT 0,
                rank_tier TEXT,
                rank_division TEXT,
                rank_lp INTEGER,
                rank_queue TEXT,
                last_rank_sync INTEGER,
                linked_at INTEGER,
                unlinked_at INTEGER
            )
            """
        )

        # Processed matches; the primary key doubles as the claim lock
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS matches (
                match_id TEXT PRIMARY KEY,
                processing INTEGER NOT NULL DEFAULT 0,
                claimed_at REAL,
                claim_token TEXT,
                participants TEXT,
                mvp_discord_id INTEGER,
                feeder_discord_id INTEGER,
                game_duration INTEGER DEFAULT 0,
                game_mode TEXT,
                queue_id INTEGER,
                game_start REAL,
                processed_at REAL,
                solo_game INTEGER NOT NULL DEFAULT 0
            )
            """
        )

    # --- Migration helpers ---

    def _add_column_if_not_exists(self, cursor, table: str, column: str, column_type: str) -> None:
        try:
            cursor.execute(f"ALTER TABLE {table} ADD COLUMN {column} {column_type}")
        except sqlite3.OperationalError:
            pass

    def _create_schema_migrations_table(self, cursor) -> None:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                name TEXT PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """
        )

    def _run_migrations(self, cursor) -> None:
        applied = {row["name"] for row in cursor.execute("SELECT name FROM schema_migrations")}
        for name, action in self._get_migrations():
            if name in applied:
                continue
            logger.info(f"Applying migration: {name}")
            action(cursor)
            cursor.execute(
                "INSERT INTO schema_migrations (name) VALUES (?)",
                (name,),
            )

    def _get_migrations(self):
        return [
            ("create_bet_windows_table", self._migration_create_bet_windows_table),
            ("create_bets_table", self._migration_create_bets_table),
            ("create_settlement_notifications_table", self._migration_create_settlement_notifications),
            ("create_leaderboard_table", self._migration_create_leaderboard_table),
            ("create_scoped_grants_table", self._migration_create_scoped_grants_table),
            ("add_indexes_v1", self._migration_add_indexes_v1),
            ("add_match_settled_at", self._migration_add_match_settled_at),
            ("add_notification_delivery_lease", self._migration_add_notification_delivery_lease),
            ("create_schedules_table", self._migration_create_schedules_table),
        ]

    # --- Migrations ---

    def _migration_create_bet_windows_table(self, cursor) -> None:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS bet_windows (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                target_discord_id INTEGER NOT NULL,
                status TEXT NOT NULL DEFAULT 'open',
                opened_at REAL NOT NULL,
                closed_at REAL,
                match_id TEXT,
                total_bets INTEGER DEFAULT 0,
                total_amount INTEGER DEFAULT 0,
                odds TEXT
            )
            """
        )
        # At most one active window (open, or closed and unresolved) per target
        cursor.execute(
            """
            CREATE UNIQUE INDEX IF NOT EXISTS idx_bet_windows_one_active
            ON bet_windows(target_discord_id)
            WHERE status IN ('open', 'closed')
            """
        )

    def _migration_create_bets_table(self, cursor) -> None:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS bets (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                window_id INTEGER NOT NULL,
                bettor_discord_id INTEGER NOT NULL,
                target_discord_id INTEGER NOT NULL,
                bet_kind TEXT NOT NULL,
                amount INTEGER NOT NULL CHECK (amount > 0),
                odds REAL NOT NULL,
                opened_at REAL NOT NULL,
                result TEXT NOT NULL DEFAULT 'pending',
                payout INTEGER DEFAULT 0,
                match_id TEXT,
                placed_at REAL,
                settled_at REAL,
                FOREIGN KEY (window_id) REFERENCES bet_windows(id)
            )
            """
        )

    def _migration_create_settlement_notifications(self, cursor) -> None:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS settlement_notifications (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                window_id INTEGER NOT NULL UNIQUE,
                match_id TEXT NOT NULL,
                target_discord_id INTEGER NOT NULL,
                winners TEXT,
                losers TEXT,
                created_at REAL,
                delivered_at REAL
            )
            """
        )

    def _migration_create_leaderboard_table(self, cursor) -> None:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS leaderboard (
                discord_id INTEGER NOT NULL,
                week TEXT NOT NULL,
                kills INTEGER DEFAULT 0,
                deaths INTEGER DEFAULT 0,
                assists INTEGER DEFAULT 0,
                games_played INTEGER DEFAULT 0,
                games_won INTEGER DEFAULT 0,
                highest_rank TEXT,
                updated_at REAL,
                PRIMARY KEY (discord_id, week)
            )
            """
        )

    def _migration_create_scoped_grants_table(self, cursor) -> None:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS scoped_grants (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                discord_id INTEGER NOT NULL,
                capability TEXT NOT NULL,
                match_id TEXT NOT NULL DEFAULT '',
                reason TEXT,
                granted_at REAL,
                expires_at REAL NOT NULL,
                UNIQUE (discord_id, capability, match_id)
            )
            """
        )

    def _migration_add_indexes_v1(self, cursor) -> None:
        cursor.execute(
            """
            CREATE UNIQUE INDEX IF NOT EXISTS idx_linked_accounts_active_puuid
            ON linked_accounts(riot_puuid) WHERE unlinked_at IS NULL
            """
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_matches_processing ON matches(processing, claimed_at)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_bet_windows_status ON bet_windows(status, opened_at)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_bets_window_result ON bets(window_id, result)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_bets_bettor ON bets(bettor_discord_id)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_scoped_grants_expires ON scoped_grants(expires_at)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_leaderboard_week ON leaderboard(week)"
        )

    def _migration_add_match_settled_at(self, cursor) -> None:
        # NULL on a terminal team game means settlement still has to run
        self._add_column_if_not_exists(cursor, "matches", "settled_at", "REAL")
        cursor.execute(
            """
            UPDATE matches SET settled_at = processed_at
            WHERE participants IS NOT NULL AND settled_at IS NULL
            """
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_matches_unsettled ON matches(solo_game, settled_at)"
        )

    def _migration_add_notification_delivery_lease(self, cursor) -> None:
        self._add_column_if_not_exists(cursor, "settlement_notifications", "delivering_at", "REAL")

    def _migration_create_schedules_table(self, cursor) -> None:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS schedules (
                schedule_id TEXT PRIMARY KEY,
                creator_id INTEGER NOT NULL,
                mode TEXT NOT NULL,
                max_players INTEGER NOT NULL,
                scheduled_time TEXT NOT NULL,
                description TEXT DEFAULT '',
                participants TEXT NOT NULL DEFAULT '[]',
                status TEXT NOT NULL DEFAULT 'open',
                channel_id INTEGER,
                message_id INTEGER,
                created_at REAL NOT NULL,
                expires_at REAL NOT NULL
            )
            """
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_schedules_status ON schedules(status, expires_at)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_schedules_creator ON schedules(creator_id, status)"
        )
