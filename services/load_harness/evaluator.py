"""
Outcome aggregation and pass/fail evaluation for a load test run.

The tally collects one VoteResult per virtual user; the evaluator turns it
into a verdict by comparing the failure rate against the configured
threshold. Only ``failed`` outcomes count against the run: ``already_voted``
and ``unauthorized`` are tolerated under concurrent double submission.
"""

import json
import logging
from collections import Counter as OutcomeCounter
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from prometheus_client import Counter, Histogram

from services.shared import VoteOutcome, VoteResult

logger = logging.getLogger(__name__)

# Prometheus metrics
vote_outcomes = Counter(
    'loadtest_vote_outcomes_total',
    'Vote submissions by classified outcome',
    ['outcome']
)

vote_latency = Histogram(
    'loadtest_vote_latency_seconds',
    'Latency of vote submissions',
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)


class OutcomeTally:
    """Collect per-worker vote results for one run."""

    def __init__(self):
        self.results: List[VoteResult] = []
        self.counts: Dict[VoteOutcome, int] = OutcomeCounter()
        self.latencies: List[float] = []
        self.errors: Dict[str, int] = OutcomeCounter()
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

    def record(self, result: VoteResult):
        """
        Record one worker's result.

        Called from event-loop tasks only; there is no await inside, so
        concurrent workers never interleave within a record.
        """
        self.results.append(result)
        self.counts[result.outcome] += 1
        vote_outcomes.labels(outcome=result.outcome.value).inc()

        if result.status_code is not None:
            self.latencies.append(result.latency)
            vote_latency.observe(result.latency)

        if result.error:
            self.errors[result.error] += 1

    def count(self, outcome: VoteOutcome) -> int:
        return self.counts[outcome]

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def duration(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return self.end_time - self.start_time

    @property
    def requests_per_second(self) -> float:
        """Calculate vote requests per second."""
        return len(self.latencies) / self.duration if self.duration > 0 else 0.0

    def calculate_percentile(self, percentile: float) -> float:
        """Calculate latency percentile."""
        if not self.latencies:
            return 0.0

        sorted_latencies = sorted(self.latencies)
        index = int(len(sorted_latencies) * (percentile / 100.0))
        return sorted_latencies[min(index, len(sorted_latencies) - 1)]

    @property
    def min_latency(self) -> float:
        return min(self.latencies) if self.latencies else 0.0

    @property
    def max_latency(self) -> float:
        return max(self.latencies) if self.latencies else 0.0

    @property
    def mean_latency(self) -> float:
        if not self.latencies:
            return 0.0
        return sum(self.latencies) / len(self.latencies)


@dataclass(frozen=True)
class ThresholdVerdict:
    """Result of evaluating a run against the failure-rate threshold."""
    total_voters: int
    failed: int
    failure_rate: float
    threshold: float
    passed: bool


class ThresholdEvaluator:
    """Pass iff ``failed / total_voters < threshold``."""

    def __init__(self, threshold: float = 0.05):
        if not 0.0 < threshold <= 1.0:
            raise ValueError(f"Threshold must be in (0, 1], got {threshold}")
        self.threshold = threshold

    def evaluate(self, tally: OutcomeTally, total_voters: int) -> ThresholdVerdict:
        """
        Judge a completed run.

        Args:
            tally: Results of the vote phase
            total_voters: Configured number of virtual users

        Returns:
            ThresholdVerdict: Failure rate and pass/fail decision
        """
        if total_voters <= 0:
            raise ValueError("total_voters must be > 0")
        # A virtual user that left no result counts as failed
        missing = max(total_voters - tally.total, 0)
        if missing:
            logger.error(f"Expected {total_voters} vote results, got {tally.total}")

        failed = tally.count(VoteOutcome.FAILED) + missing
        failure_rate = failed / total_voters

        return ThresholdVerdict(
            total_voters=total_voters,
            failed=failed,
            failure_rate=failure_rate,
            threshold=self.threshold,
            passed=failure_rate < self.threshold
        )


def generate_report(tally: OutcomeTally, verdict: ThresholdVerdict) -> str:
    """Generate the end-of-run report."""
    report = [
        "\n" + "=" * 70,
        "VOTE LOAD TEST RESULTS",
        "=" * 70,
        f"\nDuration: {tally.duration:.2f} seconds",
        f"Virtual users: {verdict.total_voters:,}",
        f"Results recorded: {tally.total:,}",
        "\nOutcomes:",
    ]

    for outcome in VoteOutcome:
        count = tally.count(outcome)
        share = (count / verdict.total_voters) * 100
        report.append(f"   - {outcome.value:<14} {count:>8,} ({share:.2f}%)")

    report.extend([
        "\nThroughput:",
        f"   - Votes/sec: {tally.requests_per_second:.2f}",
        "\nLatency (ms):",
        f"   - Min: {tally.min_latency * 1000:.2f}",
        f"   - Max: {tally.max_latency * 1000:.2f}",
        f"   - Mean: {tally.mean_latency * 1000:.2f}",
        f"   - Median (p50): {tally.calculate_percentile(50) * 1000:.2f}",
        f"   - p95: {tally.calculate_percentile(95) * 1000:.2f}",
        f"   - p99: {tally.calculate_percentile(99) * 1000:.2f}",
    ])

    if tally.errors:
        report.append("\nErrors:")
        for error, count in sorted(tally.errors.items(), key=lambda x: -x[1]):
            report.append(f"   - {error}: {count}")

    status = "PASS" if verdict.passed else "FAIL"
    report.append(
        f"\nFailure rate: {verdict.failure_rate * 100:.2f}% "
        f"(threshold < {verdict.threshold * 100:.2f}%) -> {status}"
    )
    report.append("=" * 70 + "\n")

    return "\n".join(report)


def save_results(
    tally: OutcomeTally,
    verdict: ThresholdVerdict,
    test_config: dict,
    results_dir: str
) -> Path:
    """
    Save run results to a timestamped JSON file.

    Returns:
        Path: The file written
    """
    results = {
        "timestamp": datetime.now().isoformat(),
        "test_config": test_config,
        "verdict": {
            "passed": verdict.passed,
            "failure_rate": verdict.failure_rate,
            "threshold": verdict.threshold,
            "failed": verdict.failed,
            "total_voters": verdict.total_voters,
        },
        "metrics": {
            "duration_seconds": tally.duration,
            "outcomes": {outcome.value: tally.count(outcome) for outcome in VoteOutcome},
            "requests_per_second": tally.requests_per_second,
            "latency_ms": {
                "min": tally.min_latency * 1000,
                "max": tally.max_latency * 1000,
                "mean": tally.mean_latency * 1000,
                "p50": tally.calculate_percentile(50) * 1000,
                "p95": tally.calculate_percentile(95) * 1000,
                "p99": tally.calculate_percentile(99) * 1000,
            },
            "errors": dict(tally.errors)
        }
    }

    directory = Path(results_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"vote_load_results_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"

    with open(path, 'w') as f:
        json.dump(results, f, indent=2)

    logger.info(f"Detailed results saved to: {path}")
    return path
