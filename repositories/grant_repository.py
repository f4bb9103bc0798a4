"""
Repository for scoped grants (temporary capabilities such as the feeder role).
"""

from domain.models.grant import ScopedGrant
from repositories.base_repository import BaseRepository
from repositories.interfaces import IGrantRepository


class GrantRepository(BaseRepository, IGrantRepository):
    def grant(self, grant: ScopedGrant) -> bool:
        """
        Record a grant. Idempotent per (discord_id, capability, match_id).

        Returns:
            True if a new grant was recorded, False if it already existed
        """
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT OR IGNORE INTO scoped_grants (
                    discord_id, capability, match_id, reason, granted_at, expires_at
                )
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    grant.discord_id,
                    grant.capability,
                    grant.match_id or "",
                    grant.reason,
                    grant.granted_at,
                    grant.expires_at,
                ),
            )
            if cursor.rowcount == 1:
                grant.id = cursor.lastrowid
                return True
            return False

    def get_active(self, discord_id: int, capability: str, now: float) -> list[ScopedGrant]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM scoped_grants
                WHERE discord_id = ? AND capability = ? AND expires_at > ?
                ORDER BY expires_at
                """,
                (discord_id, capability, now),
            )
            return [self._row_to_grant(row) for row in cursor.fetchall()]

    def pop_expired(self, now: float) -> list[ScopedGrant]:
        """Delete and return every grant whose expiry has passed."""
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM scoped_grants WHERE expires_at <= ? ORDER BY expires_at",
                (now,),
            )
            expired = [self._row_to_grant(row) for row in cursor.fetchall()]
            if expired:
                placeholders = ",".join("?" * len(expired))
                cursor.execute(
                    f"DELETE FROM scoped_grants WHERE id IN ({placeholders})",
                    [g.id for g in expired],
                )
            return expired

    @staticmethod
    def _row_to_grant(row) -> ScopedGrant:
        return ScopedGrant(
            id=row["id"],
            discord_id=row["discord_id"],
            capability=row["capability"],
            match_id=row["match_id"] or None,
            reason=row["reason"],
            granted_at=row["granted_at"],
            expires_at=row["expires_at"],
        )
