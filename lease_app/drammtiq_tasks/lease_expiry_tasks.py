import logging

import dramatiq

from core.get_db import AsyncSessionLocal
from services.lease_expiry_service import LeaseExpiryService

logger = logging.getLogger(__name__)

SWEEP_ACTOR_NAME = "expire_ended_leases"


async def run_lease_expiry_sweep(session_factory=AsyncSessionLocal, now=None) -> int:
    async with session_factory() as session:
        expired = await LeaseExpiryService(session).sweep(now=now)
    logger.info(f"Lease expiry sweep finished, {expired} lease(s) expired")
    return expired


def create_lease_expiry_task():
    @dramatiq.actor(
        actor_name=SWEEP_ACTOR_NAME,
        queue_name="lease_expiry",
        max_retries=3,
        time_limit=600_000,
    )
    async def expire_ended_leases():
        return await run_lease_expiry_sweep()

    return expire_ended_leases
