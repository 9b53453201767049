"""Maintenance background tasks for cleanup operations."""

import logging
from typing import Any

from magiclink.database import get_session_context
from magiclink.models.base import utcnow
from magiclink.services.store import SQLIdentityStore

logger = logging.getLogger(__name__)

# Timeout for maintenance tasks (5 minutes)
MAINTENANCE_TIMEOUT_SECONDS = 5 * 60


async def prune_expired_auth_records(ctx: dict[str, Any]) -> dict[str, Any]:
    """Delete expired verification records and sessions.

    Expired links can no longer be redeemed, and a failed delivery leaves its
    token behind, so these rows only ever need removing.

    Args:
        ctx: SAQ context

    Returns:
        Dict with counts of deleted rows
    """
    now = utcnow()

    async with get_session_context() as session:
        store = SQLIdentityStore(session)
        verifications_deleted = await store.delete_expired_verifications(now)
        sessions_deleted = await store.delete_expired_sessions(now)

    logger.info(
        f"Pruned {verifications_deleted} expired verifications "
        f"and {sessions_deleted} expired sessions"
    )
    return {
        "success": True,
        "verifications_deleted": verifications_deleted,
        "sessions_deleted": sessions_deleted,
    }
