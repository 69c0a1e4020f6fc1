"""
Shared data models and utilities for the vote load harness.

This module contains:
- ExecutionContext: the frozen fixture handed from setup to every worker
- VoteOutcome: classification of a single vote submission
- Request/result records exchanged with the batch executor
- Identifier helpers for the deterministic test fixture
"""

from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any, Tuple
from enum import Enum

import httpx


class VoteOutcome(str, Enum):
    """Outcome of one virtual user's vote submission."""
    ACCEPTED = "accepted"
    ALREADY_VOTED = "already_voted"
    UNAUTHORIZED = "unauthorized"
    FAILED = "failed"


# HTTP status -> outcome; anything not listed is a failure
STATUS_OUTCOMES = {
    200: VoteOutcome.ACCEPTED,
    409: VoteOutcome.ALREADY_VOTED,
    401: VoteOutcome.UNAUTHORIZED,
}


def classify_status(status_code: int) -> VoteOutcome:
    """
    Classify the HTTP status of a vote submission.

    Args:
        status_code: Status returned by POST /vote

    Returns:
        VoteOutcome: accepted, already_voted, unauthorized or failed
    """
    return STATUS_OUTCOMES.get(status_code, VoteOutcome.FAILED)


@dataclass(frozen=True)
class Election:
    """Election created once per run."""
    election_id: str
    name: str
    start_date: str
    end_date: str


@dataclass(frozen=True)
class ExecutionContext:
    """
    Fixture produced by the provisioner and shared read-only by all workers.

    Attributes:
        election_id: Identifier returned by the election endpoint
        candidate_ids: Candidate ids by creation index (None where creation failed)
        voter_tokens: Voter tokens by voter index (None where login failed)
    """
    election_id: str
    candidate_ids: Tuple[Optional[str], ...]
    voter_tokens: Tuple[Optional[str], ...]

    def __post_init__(self):
        # Callers may hand in lists; freeze them so nothing can append later
        object.__setattr__(self, 'candidate_ids', tuple(self.candidate_ids))
        object.__setattr__(self, 'voter_tokens', tuple(self.voter_tokens))

        if not self.candidate_ids:
            raise ValueError("ExecutionContext requires at least one candidate")
        if not self.voter_tokens:
            raise ValueError("ExecutionContext requires at least one voter token")

    def voter_index(self, worker_index: int) -> int:
        return worker_index % len(self.voter_tokens)

    def candidate_index(self, worker_index: int) -> int:
        return worker_index % len(self.candidate_ids)

    def token_for(self, worker_index: int) -> Optional[str]:
        """Token assigned to a worker ordinal."""
        return self.voter_tokens[self.voter_index(worker_index)]

    def candidate_for(self, worker_index: int) -> Optional[str]:
        """Candidate id assigned to a worker ordinal."""
        return self.candidate_ids[self.candidate_index(worker_index)]

    @property
    def valid_token_count(self) -> int:
        return sum(1 for token in self.voter_tokens if token)

    @property
    def valid_candidate_count(self) -> int:
        return sum(1 for candidate_id in self.candidate_ids if candidate_id)


@dataclass(frozen=True)
class RequestDescriptor:
    """One entry of a concurrent request batch."""
    method: str
    url: str
    json: Optional[Any] = None
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class BatchResult:
    """
    Response (or transport error) for one request of a batch.

    Exactly one of response/error is set.
    """
    response: Optional[httpx.Response] = None
    error: Optional[Exception] = None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        """True when a 2xx response arrived."""
        return self.response is not None and self.response.is_success

    @property
    def status_code(self) -> Optional[int]:
        return self.response.status_code if self.response is not None else None

    def describe(self) -> str:
        """Short description for log lines."""
        if self.error is not None:
            return type(self.error).__name__
        return f"HTTP {self.response.status_code}"


@dataclass
class VoteResult:
    """Classified result of one worker's single vote attempt."""
    worker_index: int
    voter_id: Optional[str]
    candidate_id: Optional[str]
    outcome: VoteOutcome
    status_code: Optional[int] = None
    latency: float = 0.0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data['outcome'] = self.outcome.value
        return data


def voter_user_id(index: int) -> str:
    """
    Account identity of voter ``index``.

    Used as user id, username and password of the voter.
    """
    return f"user{index}"


def candidate_id_for(user_id: str) -> str:
    """Candidate identifier the election API derives from a user id."""
    return f"candidate.{user_id}"


def candidate_name(index: int) -> str:
    return f"candidate.{index}"


def decode_identifier(response: httpx.Response, *keys: str) -> Optional[str]:
    """
    Decode an identifier or token from a response body.

    The election API answers with a bare JSON string (``"election.1712"``).
    Object bodies are accepted too, looked up by ``keys``.

    Args:
        response: Response to decode
        *keys: Keys to try when the body is a JSON object

    Returns:
        str: Decoded value, or None if the body holds no usable value
    """
    try:
        data = response.json()
    except ValueError:
        data = response.text

    if isinstance(data, dict):
        data = next((data[key] for key in keys if data.get(key)), None)

    if not isinstance(data, str):
        return None

    value = data.strip().strip('"')
    return value or None


def auth_header(token: str, scheme: str = "") -> Dict[str, str]:
    """
    Build the Authorization/Content-Type headers for an API request.

    The election API reads the raw token from Authorization, so the
    scheme prefix is empty unless configured.
    """
    value = f"{scheme} {token}" if scheme else token
    return {
        "Authorization": value,
        "Content-Type": "application/json",
    }


# Election API endpoints, relative to the configured base URL
API_PATHS = {
    'election': '/election',
    'candidate': '/candidate',
    'voter': '/voter',
    'authenticate': '/authenticate',
    'vote': '/vote',
}


def get_api_path(endpoint: str) -> str:
    """
    Get the path of an election API endpoint.

    Args:
        endpoint: Endpoint name (election, candidate, voter, authenticate, vote)

    Returns:
        str: Path relative to the API base URL
    """
    return API_PATHS[endpoint]
