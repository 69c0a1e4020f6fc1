"""Per-virtual-user vote workload."""
import logging
import time

import httpx

from services.shared import (
    ExecutionContext,
    VoteOutcome,
    VoteResult,
    auth_header,
    classify_status,
    get_api_path,
    voter_user_id,
)

logger = logging.getLogger(__name__)


class VoteWorkload:
    """
    Casts exactly one vote for a worker ordinal.

    Worker ``i`` always uses voter ``i mod len(voter_tokens)`` and candidate
    ``i mod len(candidate_ids)``, so the worker -> voter/candidate mapping is
    the same on every run regardless of scheduling order.
    """

    def __init__(self, client: httpx.AsyncClient, context: ExecutionContext, auth_scheme: str = ""):
        self.client = client
        self.context = context
        self.auth_scheme = auth_scheme

    async def __call__(self, worker_index: int) -> VoteResult:
        voter_id = voter_user_id(self.context.voter_index(worker_index))
        token = self.context.token_for(worker_index)
        candidate_id = self.context.candidate_for(worker_index)

        result = VoteResult(
            worker_index=worker_index,
            voter_id=voter_id,
            candidate_id=candidate_id,
            outcome=VoteOutcome.FAILED
        )

        # Provisioning gaps degrade this worker only; no request is sent
        if not token:
            result.outcome = VoteOutcome.UNAUTHORIZED
            result.error = "no token"
            return result
        if not candidate_id:
            result.error = "candidate not provisioned"
            return result

        try:
            request = self.client.build_request(
                "POST",
                get_api_path('vote'),
                json={
                    "candidateID": candidate_id,
                    "electionID": self.context.election_id
                },
                headers=auth_header(token, self.auth_scheme)
            )
        except (UnicodeEncodeError, ValueError) as e:
            # Not a legal header value, so the server could never accept it
            result.outcome = VoteOutcome.UNAUTHORIZED
            result.error = "invalid token"
            logger.warning(f"Token for {voter_id} is not a valid header value: {e}")
            return result

        start_time = time.perf_counter()

        try:
            response = await self.client.send(request)
            result.latency = time.perf_counter() - start_time
            result.status_code = response.status_code
            result.outcome = classify_status(response.status_code)
            if result.outcome == VoteOutcome.FAILED:
                result.error = f"HTTP {response.status_code}"

        except httpx.HTTPError as e:
            result.latency = time.perf_counter() - start_time
            result.error = type(e).__name__
            logger.debug(f"Vote by {voter_id} failed: {type(e).__name__}: {e}")

        return result
