"""Tests for the vote load harness.

This package covers every harness component against an in-process fake
of the election API:

- Batch request execution and result ordering
- Fixture provisioning and its failure boundaries
- Vote workload assignment and outcome classification
- Virtual user scheduling (single burst, one vote per user)
- Threshold evaluation and reporting
- End-to-end runs through the entry point
"""
