"""Concurrent batch execution of independent HTTP requests."""
import asyncio
import logging
import time
from typing import List, Optional, Sequence

import httpx

from services.shared import BatchResult, RequestDescriptor

logger = logging.getLogger(__name__)


async def send_request(
    client: httpx.AsyncClient,
    request: RequestDescriptor
) -> BatchResult:
    """
    Send one request and capture its response or transport error.

    Args:
        client: Shared async HTTP client
        request: Request to send

    Returns:
        BatchResult: Response (any status) or the transport error
    """
    start_time = time.perf_counter()

    try:
        response = await client.request(
            request.method,
            request.url,
            json=request.json,
            headers=request.headers
        )
        return BatchResult(response=response, elapsed=time.perf_counter() - start_time)

    except httpx.HTTPError as e:
        logger.debug(f"{request.method} {request.url} failed: {type(e).__name__}: {e}")
        return BatchResult(error=e, elapsed=time.perf_counter() - start_time)


async def execute_batch(
    client: httpx.AsyncClient,
    requests: Sequence[RequestDescriptor]
) -> List[BatchResult]:
    """
    Issue a batch of requests concurrently and wait for all of them.

    Result ``i`` always belongs to request ``i`` regardless of the order in
    which responses arrive. A transport error is recorded in its own slot
    and never cancels the rest of the batch. Nothing is retried.

    Args:
        client: Shared async HTTP client
        requests: Ordered request descriptors

    Returns:
        list: One BatchResult per request, in request order
    """
    results: List[Optional[BatchResult]] = [None] * len(requests)

    async def _run(index: int, request: RequestDescriptor):
        results[index] = await send_request(client, request)

    await asyncio.gather(*(
        _run(index, request) for index, request in enumerate(requests)
    ))

    failed = sum(1 for result in results if not result.ok)
    logger.debug(f"Batch of {len(requests)} requests complete ({failed} not successful)")

    return results
