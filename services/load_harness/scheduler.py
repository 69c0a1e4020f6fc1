"""Virtual user scheduler: one task per voter, one vote per task."""
import asyncio
import logging
import time
from typing import Awaitable, Callable

from services.shared import VoteOutcome, VoteResult

from .evaluator import OutcomeTally

logger = logging.getLogger(__name__)


async def run_virtual_users(
    total_users: int,
    workload: Callable[[int], Awaitable[VoteResult]],
    tally: OutcomeTally
) -> OutcomeTally:
    """
    Run the workload once per virtual user, all released as a single burst.

    Every task is created and parked on a shared start gate before the gate
    opens, so no virtual user gets a head start. Each task records exactly
    one result in the tally.

    Args:
        total_users: Number of virtual users (and iterations)
        workload: Coroutine function called with the zero-based worker ordinal
        tally: Collector for the per-worker results

    Returns:
        OutcomeTally: The same tally, holding total_users results
    """
    start_gate = asyncio.Event()

    async def _virtual_user(worker_index: int):
        await start_gate.wait()
        try:
            result = await workload(worker_index)
        except Exception as e:
            logger.exception(f"Virtual user {worker_index} crashed")
            result = VoteResult(
                worker_index=worker_index,
                voter_id=None,
                candidate_id=None,
                outcome=VoteOutcome.FAILED,
                error=type(e).__name__
            )
        tally.record(result)

    tasks = [
        asyncio.create_task(_virtual_user(worker_index))
        for worker_index in range(total_users)
    ]

    logger.info(f"Releasing {total_users} virtual users")
    tally.start_time = time.time()
    start_gate.set()

    try:
        await asyncio.gather(*tasks)
    finally:
        tally.end_time = time.time()

    logger.info(f"All {total_users} virtual users finished in {tally.duration:.2f}s")
    return tally
