"""
ARQ background task: purge invites whose expiry has passed.

Expired invites are already rejected on read; this only reclaims the rows.
"""

from __future__ import annotations

import structlog

from scheduler.core.database import get_session_context
from scheduler.services.invites import purge_expired_invites

log = structlog.get_logger()


async def purge_expired(ctx: dict) -> int:
    """Delete expired invites. Returns the number removed."""
    async with get_session_context() as session:
        count = await purge_expired_invites(session)

    if count:
        log.info("invite_cleanup.purged", count=count)
    return count


# ARQ worker settings
class WorkerSettings:
    """ARQ worker configuration."""

    functions = [purge_expired]
    cron_jobs = [
        # Daily at 03:00
        {
            "coroutine": purge_expired,
            "hour": 3,
            "minute": 0,
        },
    ]
