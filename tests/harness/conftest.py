"""Pytest fixtures for the vote load harness tests.

The election API is replaced by an in-process fake served through
httpx.MockTransport, so no server is needed. The fake keeps just enough
state (voters, tokens, cast votes) to answer like the real API: 201 for
creations, a JSON string for election ids and tokens, 401 for bad tokens
and 409 for a second vote by the same voter.
"""

import asyncio
import json
import random
from typing import Dict, List, Optional, Set, Tuple

import httpx
import pytest

from services.load_harness.config import Settings

API_PREFIX = "/api/v1"
BASE_URL = "http://election.test/api/v1"
ADMIN_TOKEN = "admin-token"


class FakeElectionAPI:
    """In-memory stand-in for the election API."""

    def __init__(
        self,
        admin_token: str = ADMIN_TOKEN,
        admin_credentials: Tuple[str, str] = ("9831024", "1234"),
        election_id: str = "election.1712345678",
        election_status: int = 201,
        candidate_failures: Optional[Set[str]] = None,
        voter_failures: Optional[Set[str]] = None,
        login_failures: Optional[Set[str]] = None,
        vote_status_overrides: Optional[Dict[str, int]] = None,
        vote_transport_failures: Optional[Set[str]] = None,
        token_overrides: Optional[Dict[str, str]] = None,
        jitter: float = 0.003,
        seed: int = 42
    ):
        self.admin_token = admin_token
        self.admin_credentials = admin_credentials
        self.election_id = election_id
        self.election_status = election_status
        self.candidate_failures = candidate_failures or set()
        self.voter_failures = voter_failures or set()
        self.login_failures = login_failures or set()
        self.vote_status_overrides = vote_status_overrides or {}
        self.vote_transport_failures = vote_transport_failures or set()
        self.token_overrides = token_overrides or {}
        self.jitter = jitter
        self.random = random.Random(seed)

        self.voters: Set[str] = set()
        self.tokens: Dict[str, str] = {}
        self.voted: Set[str] = set()
        self.votes: List[dict] = []
        self.log: List[Tuple[str, dict]] = []

    def requests_to(self, endpoint: str) -> List[dict]:
        return [body for path, body in self.log if path == endpoint]

    @property
    def vote_requests(self) -> int:
        return len(self.requests_to("/vote"))

    def _is_admin(self, request: httpx.Request) -> bool:
        return request.headers.get("Authorization", "").strip().strip('"') == self.admin_token

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path[len(API_PREFIX):]
        body = json.loads(request.content) if request.content else {}
        self.log.append((path, body))

        # Shuffle completion order across concurrent requests
        if self.jitter:
            await asyncio.sleep(self.random.uniform(0, self.jitter))

        if path == "/authenticate":
            return self._authenticate(body)
        if path == "/vote":
            return self._vote(request, body)

        if not self._is_admin(request):
            return httpx.Response(401, json="Invalid token")

        if path == "/election":
            if self.election_status != 201:
                return httpx.Response(self.election_status, json={"error": "rejected"})
            return httpx.Response(201, json=self.election_id)

        if path == "/candidate":
            if body["userID"] in self.candidate_failures:
                return httpx.Response(400, json={"error": "candidate rejected"})
            return httpx.Response(201, json={"message": "Candidate created", "status": 201})

        if path == "/voter":
            user_id = body["userID"]
            if user_id in self.voter_failures or user_id in self.voters:
                return httpx.Response(400, json={"error": "voter rejected"})
            self.voters.add(user_id)
            return httpx.Response(201, json={"message": "Voter created", "status": 201})

        return httpx.Response(404)

    def _authenticate(self, body: dict) -> httpx.Response:
        username, password = body.get("username"), body.get("password")

        if body.get("role") == "admin":
            if (username, password) != self.admin_credentials:
                return httpx.Response(401, json="Invalid username or password")
            return httpx.Response(200, json=self.admin_token)

        if username not in self.voters or username in self.login_failures or password != username:
            return httpx.Response(401, json="Invalid username or password")

        token = self.token_overrides.get(username, f"token-{username}")
        self.tokens[token] = username
        return httpx.Response(200, json=token)

    def _vote(self, request: httpx.Request, body: dict) -> httpx.Response:
        user_id = self.tokens.get(request.headers.get("Authorization", "").strip().strip('"'))
        if user_id is None:
            return httpx.Response(401, json="Invalid token")

        if user_id in self.vote_transport_failures:
            raise httpx.ConnectError("connection reset", request=request)
        if user_id in self.vote_status_overrides:
            return httpx.Response(self.vote_status_overrides[user_id], json={"error": "injected"})

        # No await between check and add: one vote per voter
        if user_id in self.voted:
            return httpx.Response(409, json={"error": "already voted"})
        self.voted.add(user_id)
        self.votes.append({"voter": user_id, **body})
        return httpx.Response(200, json={"message": "Vote casted", "status": 200})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_api() -> FakeElectionAPI:
    """Fresh fake election API per test."""
    return FakeElectionAPI()


@pytest.fixture
def make_settings():
    """Factory for harness settings pointing at the fake API."""
    def _make(**overrides) -> Settings:
        values = {
            "API_BASE_URL": BASE_URL,
            "ADMIN_TOKEN": ADMIN_TOKEN,
            "CANDIDATE_COUNT": 5,
            "TOTAL_VOTERS": 40,
            "REQUEST_TIMEOUT": 5.0,
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def harness_settings(make_settings) -> Settings:
    return make_settings()


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers",
        "load: mark test as driving a full setup + vote burst"
    )
