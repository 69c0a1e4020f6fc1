"""
Shared models and utilities for the vote load harness.

This package contains common code used by every harness component:
- Fixture data (Election, ExecutionContext)
- Outcome taxonomy (VoteOutcome, classify_status)
- Batch request/result records
- Identifier, header and endpoint helpers
"""

from .models import (
    Election,
    ExecutionContext,
    VoteOutcome,
    VoteResult,
    RequestDescriptor,
    BatchResult,
    classify_status,
    voter_user_id,
    candidate_id_for,
    candidate_name,
    decode_identifier,
    auth_header,
    get_api_path,
    STATUS_OUTCOMES,
    API_PATHS,
)

__all__ = [
    'Election',
    'ExecutionContext',
    'VoteOutcome',
    'VoteResult',
    'RequestDescriptor',
    'BatchResult',
    'classify_status',
    'voter_user_id',
    'candidate_id_for',
    'candidate_name',
    'decode_identifier',
    'auth_header',
    'get_api_path',
    'STATUS_OUTCOMES',
    'API_PATHS',
]

__version__ = '1.0.0'
