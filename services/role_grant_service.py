"""
Temporary role grants recorded as scoped grants.

The service only tracks who should hold a role and until when; the Discord
cog applies and removes the actual guild role.
"""

import logging
import time

from domain.models.grant import ScopedGrant
from repositories.interfaces import IGrantRepository

logger = logging.getLogger("rift_bot.services.role_grant")


class RoleGrantService:
    def __init__(
        self,
        grant_repo: IGrantRepository,
        feeder_role_name: str = "Cục Tạ Vàng",
        feeder_role_hours: int = 24,
        clock=time.time,
    ):
        self.grant_repo = grant_repo
        self.feeder_role_name = feeder_role_name
        self.feeder_role_hours = feeder_role_hours
        self._clock = clock

    def grant_feeder(self, discord_id: int, match_id: str, now: float | None = None) -> ScopedGrant | None:
        """
        Grant the feeder role for one match.

        Returns:
            The new grant, or None if this match already granted it
        """
        now = self._clock() if now is None else now
        grant = ScopedGrant(
            discord_id=discord_id,
            capability=self.feeder_role_name,
            match_id=match_id,
            reason="feeder",
            granted_at=now,
            expires_at=now + self.feeder_role_hours * 3600,
        )
        if not self.grant_repo.grant(grant):
            logger.info(f"Feeder role for {discord_id} on {match_id} already granted")
            return None
        logger.info(f"Granted {self.feeder_role_name} to {discord_id} until {grant.expires_at:.0f}")
        return grant

    def has_active(self, discord_id: int, capability: str, now: float | None = None) -> bool:
        now = self._clock() if now is None else now
        return bool(self.grant_repo.get_active(discord_id, capability, now))

    def sweep_expired(self, now: float | None = None) -> list[ScopedGrant]:
        """
        Remove expired grants.

        A grant whose subject still holds another live grant of the same
        capability is dropped from the result so the role is not removed early.
        """
        now = self._clock() if now is None else now
        expired = self.grant_repo.pop_expired(now)
        to_revoke = []
        seen = set()
        for grant in expired:
            key = (grant.discord_id, grant.capability)
            if key in seen:
                continue
            seen.add(key)
            if self.grant_repo.get_active(grant.discord_id, grant.capability, now):
                continue
            to_revoke.append(grant)
        if to_revoke:
            logger.info(f"{len(to_revoke)} scoped grants expired")
        return to_revoke
