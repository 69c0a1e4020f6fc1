"""
Concurrent vote load harness for the election API.

Two phases:
- setup: provision one election, candidates and voters, log every voter in
  and freeze the result into an ExecutionContext
- run: release one virtual user per voter as a single burst, each casting
  exactly one vote, then judge the failure rate against a threshold
"""

from .batch import execute_batch
from .evaluator import OutcomeTally, ThresholdEvaluator, ThresholdVerdict
from .provisioner import FixtureProvisioner, ProvisioningError
from .scheduler import run_virtual_users
from .workload import VoteWorkload

__all__ = [
    'execute_batch',
    'OutcomeTally',
    'ThresholdEvaluator',
    'ThresholdVerdict',
    'FixtureProvisioner',
    'ProvisioningError',
    'run_virtual_users',
    'VoteWorkload',
]
