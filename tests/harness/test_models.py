"""Tests for the shared fixture models and helpers."""

import dataclasses

import httpx
import pytest

from services.shared import (
    ExecutionContext,
    VoteOutcome,
    auth_header,
    candidate_id_for,
    classify_status,
    decode_identifier,
    voter_user_id,
)


def make_context(candidates: int = 5, voters: int = 2000) -> ExecutionContext:
    return ExecutionContext(
        election_id="election.1",
        candidate_ids=[candidate_id_for(voter_user_id(i)) for i in range(candidates)],
        voter_tokens=[f"token-user{i}" for i in range(voters)]
    )


class TestClassifyStatus:
    """Tests for the HTTP status -> outcome mapping."""

    @pytest.mark.parametrize("status,outcome", [
        (200, VoteOutcome.ACCEPTED),
        (409, VoteOutcome.ALREADY_VOTED),
        (401, VoteOutcome.UNAUTHORIZED),
        (201, VoteOutcome.FAILED),
        (400, VoteOutcome.FAILED),
        (403, VoteOutcome.FAILED),
        (500, VoteOutcome.FAILED),
        (503, VoteOutcome.FAILED),
    ])
    def test_status_mapping(self, status, outcome):
        assert classify_status(status) == outcome


class TestExecutionContext:
    """Tests for the frozen fixture and its modulo assignment."""

    def test_worker_seven_of_five_candidates(self):
        """candidateCount=5, totalVoters=2000: worker 7 votes for candidateIDs[2]."""
        context = make_context()

        assert context.candidate_index(7) == 2
        assert context.candidate_for(7) == "candidate.user2"

    def test_worker_maps_to_same_voter(self):
        context = make_context()

        for worker_index in range(2000):
            assert context.token_for(worker_index) == f"token-user{worker_index}"

    def test_mapping_wraps_past_token_count(self):
        context = make_context(voters=10)

        assert context.voter_index(13) == 3
        assert context.token_for(13) == "token-user3"

    def test_mapping_is_repeatable(self):
        first = [make_context().candidate_for(i) for i in range(50)]
        second = [make_context().candidate_for(i) for i in range(50)]

        assert first == second

    def test_context_is_frozen(self):
        context = make_context()

        with pytest.raises(dataclasses.FrozenInstanceError):
            context.election_id = "election.2"

    def test_sequences_are_tuples(self):
        context = make_context(candidates=2, voters=3)

        assert isinstance(context.candidate_ids, tuple)
        assert isinstance(context.voter_tokens, tuple)

    def test_rejects_empty_candidates(self):
        with pytest.raises(ValueError):
            ExecutionContext(election_id="e", candidate_ids=[], voter_tokens=["t"])

    def test_rejects_empty_tokens(self):
        with pytest.raises(ValueError):
            ExecutionContext(election_id="e", candidate_ids=["c"], voter_tokens=[])

    def test_valid_counts_skip_placeholders(self):
        context = ExecutionContext(
            election_id="e",
            candidate_ids=["candidate.user0", None],
            voter_tokens=["t0", None, "t2"]
        )

        assert context.valid_candidate_count == 1
        assert context.valid_token_count == 2


class TestDecodeIdentifier:
    """Tests for decoding ids and tokens from API responses."""

    def test_json_string_body(self):
        response = httpx.Response(201, json="election.1712345678")

        assert decode_identifier(response) == "election.1712345678"

    def test_object_body_by_key(self):
        response = httpx.Response(200, json={"token": "abc"})

        assert decode_identifier(response, "token") == "abc"

    def test_plain_text_body(self):
        response = httpx.Response(200, text='"abc"\n')

        assert decode_identifier(response) == "abc"

    def test_missing_value(self):
        assert decode_identifier(httpx.Response(200, json={"other": 1}), "token") is None
        assert decode_identifier(httpx.Response(200, json=""), "token") is None
        assert decode_identifier(httpx.Response(200, json=[1, 2])) is None


class TestHelpers:
    """Tests for identifier and header helpers."""

    def test_voter_and_candidate_ids(self):
        assert voter_user_id(1999) == "user1999"
        assert candidate_id_for("user3") == "candidate.user3"

    def test_raw_token_header(self):
        assert auth_header("tok")["Authorization"] == "tok"

    def test_scheme_header(self):
        headers = auth_header("tok", "Bearer")

        assert headers["Authorization"] == "Bearer tok"
        assert headers["Content-Type"] == "application/json"
