"""
Scoped grant: a capability held by a subject until an expiry time.

Temporary Discord roles (the feeder role) are recorded as grants; the
presentation layer applies and removes the actual role.
"""

from dataclasses import dataclass


@dataclass
class ScopedGrant:
    discord_id: int
    capability: str
    expires_at: float
    match_id: str | None = None
    reason: str | None = None
    granted_at: float | None = None
    id: int | None = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now
