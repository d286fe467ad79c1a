"""
Database schema initialization.

Handles creation of tables, indexes and schema version tracking. All
timestamps are stored as REAL unix seconds (UTC).
"""

import aiosqlite
from cultbot.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1


class SchemaManager:
    """Creates the CultBot schema on a fresh or existing database."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create all tables and indexes if they do not exist.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized")

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        """Create all required database tables."""
        await db.execute("""
            CREATE TABLE IF NOT EXISTS initiation_sessions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                guild_id INTEGER NOT NULL,
                ritual_channel_id INTEGER NOT NULL,
                ritual_message_id INTEGER NOT NULL,
                join_time REAL NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending'
                    CHECK (status IN ('pending', 'completed', 'expired')),
                chosen_path TEXT,
                completed_time REAL,
                expired_time REAL,
                CHECK (completed_time IS NULL OR expired_time IS NULL)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS spam_trackers (
                user_id INTEGER NOT NULL,
                guild_id INTEGER NOT NULL,
                recent_message_times TEXT NOT NULL DEFAULT '[]',
                spam_score INTEGER NOT NULL DEFAULT 0,
                last_spam_check REAL,
                slow_mode_active INTEGER NOT NULL DEFAULT 0,
                slow_mode_until REAL,
                PRIMARY KEY (user_id, guild_id)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS moderation_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                guild_id INTEGER NOT NULL,
                moderator_id INTEGER,
                action TEXT NOT NULL,
                reason TEXT NOT NULL,
                category TEXT,
                timestamp REAL NOT NULL,
                is_automated INTEGER NOT NULL DEFAULT 1
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS user_messages (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                guild_id INTEGER NOT NULL,
                channel_id INTEGER NOT NULL,
                content TEXT NOT NULL DEFAULT '',
                timestamp REAL NOT NULL,
                was_deleted INTEGER NOT NULL DEFAULT 0,
                was_flagged INTEGER NOT NULL DEFAULT 0,
                flag_reason TEXT
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS user_activity (
                user_id INTEGER NOT NULL,
                guild_id INTEGER NOT NULL,
                username TEXT NOT NULL DEFAULT '',
                total_message_count INTEGER NOT NULL DEFAULT 0,
                first_seen_at REAL,
                last_message_time REAL,
                joined_at REAL,
                left_at REAL,
                join_count INTEGER NOT NULL DEFAULT 0,
                leave_count INTEGER NOT NULL DEFAULT 0,
                warning_count INTEGER NOT NULL DEFAULT 0,
                slow_mode_count INTEGER NOT NULL DEFAULT 0,
                is_banned INTEGER NOT NULL DEFAULT 0,
                current_game TEXT,
                game_started_at REAL,
                last_updated REAL,
                PRIMARY KEY (user_id, guild_id)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS game_activity (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                guild_id INTEGER NOT NULL,
                game_name TEXT NOT NULL,
                started_at REAL NOT NULL,
                ended_at REAL,
                duration_seconds REAL
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS live_stream_status (
                platform TEXT PRIMARY KEY,
                current_video_id TEXT,
                is_live INTEGER NOT NULL DEFAULT 0,
                live_started_at REAL,
                announcement_sent INTEGER NOT NULL DEFAULT 0,
                last_checked_at REAL
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        """Create lookup indexes, including the one-pending-session guard."""
        # At most one pending session per (user, guild); racing inserts fail here
        await db.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS uq_initiation_sessions_pending "
            "ON initiation_sessions(user_id, guild_id) WHERE status = 'pending'"
        )
        await db.execute("CREATE INDEX IF NOT EXISTS idx_initiation_sessions_user ON initiation_sessions(user_id, guild_id)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_initiation_sessions_status ON initiation_sessions(status, join_time)")

        await db.execute("CREATE INDEX IF NOT EXISTS idx_moderation_logs_user ON moderation_logs(user_id, guild_id, action)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_moderation_logs_timestamp ON moderation_logs(timestamp DESC)")

        await db.execute("CREATE INDEX IF NOT EXISTS idx_user_messages_user ON user_messages(user_id, guild_id, timestamp DESC)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_game_activity_user ON game_activity(user_id, guild_id, ended_at)")

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
