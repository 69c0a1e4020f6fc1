"""
Vote load test entry point.

Provisions the election fixture, releases one virtual user per voter to
cast a single vote each, and judges the run against the failure-rate
threshold.

Usage:
    vote-loadtest --host http://localhost:80/api/v1 --voters 2000 --candidates 5

    # Same settings from the environment / .env
    API_BASE_URL=http://localhost:80/api/v1 ADMIN_TOKEN=... vote-loadtest

Exit codes:
    0 - failure rate below threshold
    1 - threshold breached
    2 - setup aborted (configuration, admin auth, election or candidates)
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

import httpx
from prometheus_client import start_http_server
from pydantic import ValidationError

from .config import Settings
from .evaluator import (
    OutcomeTally,
    ThresholdEvaluator,
    ThresholdVerdict,
    generate_report,
    save_results,
)
from .provisioner import FixtureProvisioner, ProvisioningError
from .scheduler import run_virtual_users
from .workload import VoteWorkload

logger = logging.getLogger(__name__)

EXIT_PASS = 0
EXIT_THRESHOLD_BREACH = 1
EXIT_SETUP_ERROR = 2


def create_client(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> httpx.AsyncClient:
    """Create the HTTP client shared by setup and every virtual user."""
    return httpx.AsyncClient(
        base_url=settings.API_BASE_URL,
        timeout=settings.REQUEST_TIMEOUT,
        limits=httpx.Limits(
            max_connections=settings.MAX_CONNECTIONS,
            max_keepalive_connections=settings.MAX_CONNECTIONS
        ),
        transport=transport
    )


async def run_load_test(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> ThresholdVerdict:
    """
    Run setup, the vote burst and the threshold evaluation.

    Args:
        settings: Harness settings
        transport: Optional transport override (tests mount a fake API here)

    Returns:
        ThresholdVerdict: Outcome of the run

    Raises:
        ProvisioningError: If setup fails; no vote is sent in that case
    """
    evaluator = ThresholdEvaluator(settings.FAILURE_RATE_THRESHOLD)

    async with create_client(settings, transport) as client:
        context = await FixtureProvisioner(client, settings).provision()
        logger.info(
            f"Fixture ready: election {context.election_id}, "
            f"{context.valid_candidate_count}/{len(context.candidate_ids)} candidates, "
            f"{context.valid_token_count}/{len(context.voter_tokens)} voter tokens"
        )

        workload = VoteWorkload(client, context, settings.AUTH_SCHEME)
        tally = await run_virtual_users(settings.TOTAL_VOTERS, workload, OutcomeTally())

    verdict = evaluator.evaluate(tally, settings.TOTAL_VOTERS)
    print(generate_report(tally, verdict))

    if settings.RESULTS_DIR:
        save_results(tally, verdict, {
            "api_base_url": settings.API_BASE_URL,
            "election_name": settings.ELECTION_NAME,
            "candidate_count": settings.CANDIDATE_COUNT,
            "total_voters": settings.TOTAL_VOTERS,
            "failure_rate_threshold": settings.FAILURE_RATE_THRESHOLD,
        }, settings.RESULTS_DIR)

    return verdict


def parse_args(argv=None) -> argparse.Namespace:
    """Parse CLI arguments; unset flags fall back to the environment."""
    parser = argparse.ArgumentParser(
        description="Concurrent vote load test against the election API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # 2000 voters, 5 candidates, admin token from the environment
  vote-loadtest --voters 2000 --candidates 5

  # Log the admin in instead of passing a token
  vote-loadtest --admin-username 9831024 --admin-password 1234
        """
    )

    parser.add_argument('--host', dest='API_BASE_URL', help='Election API base URL (with /api/v1)')
    parser.add_argument('--admin-token', dest='ADMIN_TOKEN', help='Admin bearer token')
    parser.add_argument('--admin-username', dest='ADMIN_USERNAME', help='Admin username')
    parser.add_argument('--admin-password', dest='ADMIN_PASSWORD', help='Admin password')
    parser.add_argument('--election-name', dest='ELECTION_NAME', help='Name of the election to create')
    parser.add_argument('--candidates', dest='CANDIDATE_COUNT', type=int, help='Number of candidates')
    parser.add_argument('--voters', dest='TOTAL_VOTERS', type=int, help='Number of voters / virtual users')
    parser.add_argument('--threshold', dest='FAILURE_RATE_THRESHOLD', type=float,
                        help='Maximum failure rate (exclusive), e.g. 0.05')
    parser.add_argument('--timeout', dest='REQUEST_TIMEOUT', type=float, help='Per-request timeout in seconds')
    parser.add_argument('--max-connections', dest='MAX_CONNECTIONS', type=int, help='HTTP connection pool size')
    parser.add_argument('--metrics-port', dest='METRICS_PORT', type=int, help='Expose Prometheus metrics on this port')
    parser.add_argument('--results-dir', dest='RESULTS_DIR', help='Write a JSON results file to this directory')
    parser.add_argument('--debug', dest='DEBUG', action='store_true', default=None, help='Debug logging')

    return parser.parse_args(argv)


def load_settings(args: argparse.Namespace) -> Settings:
    """
    Apply CLI overrides on top of environment settings.

    Raises:
        ValidationError: If the merged environment and flags are invalid
    """
    overrides = {key: value for key, value in vars(args).items() if value is not None}
    return Settings(**overrides)


def main(argv=None) -> int:
    """Main entry point for CLI."""
    args = parse_args(argv)

    try:
        settings = load_settings(args)
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}", file=sys.stderr)
        return EXIT_SETUP_ERROR

    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if settings.METRICS_PORT:
        start_http_server(settings.METRICS_PORT)
        logger.info(f"Prometheus metrics exposed on port {settings.METRICS_PORT}")

    try:
        verdict = asyncio.run(run_load_test(settings))
    except ProvisioningError as e:
        logger.error(f"Setup aborted, no votes sent: {e}")
        return EXIT_SETUP_ERROR

    return EXIT_PASS if verdict.passed else EXIT_THRESHOLD_BREACH


if __name__ == "__main__":
    sys.exit(main())
