"""
Fixture provisioning for the vote load harness.

Creates the election, candidates and voters through the admin API, logs
every voter in, and freezes the result into an ExecutionContext before any
vote traffic starts.

Setup order:
1. Admin token (configured, or obtained through /authenticate)
2. Election (fatal on failure)
3. Candidates (batch; individual failures kept as None)
4. Voter accounts (batch), then voter logins (batch, only after step 4
   has fully completed)
"""

import logging
from typing import List, Optional, Tuple

import httpx
from prometheus_client import Counter

from services.shared import (
    Election,
    ExecutionContext,
    RequestDescriptor,
    BatchResult,
    auth_header,
    candidate_id_for,
    candidate_name,
    decode_identifier,
    get_api_path,
    voter_user_id,
)

from .batch import execute_batch, send_request
from .config import Settings

logger = logging.getLogger(__name__)


class ProvisioningError(Exception):
    """Setup-fatal failure; the run aborts before any vote traffic."""
    pass


setup_requests = Counter(
    'loadtest_setup_requests_total',
    'Setup requests issued while provisioning the fixture',
    ['step', 'status']
)


def _record_setup(step: str, results: List[BatchResult]):
    for result in results:
        setup_requests.labels(step=step, status='ok' if result.ok else 'error').inc()


class FixtureProvisioner:
    """Builds the ExecutionContext for one load test run."""

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self.client = client
        self.settings = settings

    def _admin_headers(self, admin_token: str) -> dict:
        return auth_header(admin_token, self.settings.AUTH_SCHEME)

    async def authenticate_admin(self) -> str:
        """
        Get the admin token used for every setup request.

        Returns:
            str: Configured ADMIN_TOKEN, or a token from /authenticate

        Raises:
            ProvisioningError: If no credentials are configured or login fails
        """
        if self.settings.ADMIN_TOKEN:
            return self.settings.ADMIN_TOKEN

        if not self.settings.has_admin_credentials:
            raise ProvisioningError(
                "No admin credentials configured (set ADMIN_TOKEN or ADMIN_USERNAME/ADMIN_PASSWORD)"
            )

        result = await send_request(self.client, RequestDescriptor(
            method="POST",
            url=get_api_path('authenticate'),
            json={
                "username": self.settings.ADMIN_USERNAME,
                "password": self.settings.ADMIN_PASSWORD,
                "role": "admin"
            },
            headers={"Content-Type": "application/json"}
        ))
        _record_setup('admin_login', [result])

        token = decode_identifier(result.response, "token") if result.ok else None
        if not token:
            raise ProvisioningError(f"Admin login failed: {result.describe()}")

        logger.info(f"Authenticated admin {self.settings.ADMIN_USERNAME}")
        return token

    async def create_election(self, admin_token: str) -> Election:
        """
        Create the election every vote targets.

        Raises:
            ProvisioningError: Unless the server answers 201 with an id
        """
        result = await send_request(self.client, RequestDescriptor(
            method="POST",
            url=get_api_path('election'),
            json={
                "electionName": self.settings.ELECTION_NAME,
                "startDate": self.settings.ELECTION_START_DATE,
                "endDate": self.settings.ELECTION_END_DATE
            },
            headers=self._admin_headers(admin_token)
        ))
        _record_setup('election', [result])

        if result.status_code != 201:
            raise ProvisioningError(f"Election creation failed: {result.describe()}")

        election_id = decode_identifier(result.response, "electionID", "id")
        if not election_id:
            raise ProvisioningError(
                f"Election creation returned no identifier: {result.response.text!r}"
            )

        logger.info(f"Created election {election_id} ({self.settings.ELECTION_NAME})")
        return Election(
            election_id=election_id,
            name=self.settings.ELECTION_NAME,
            start_date=self.settings.ELECTION_START_DATE,
            end_date=self.settings.ELECTION_END_DATE
        )

    async def create_candidates(self, admin_token: str, election_id: str) -> List[Optional[str]]:
        """
        Create CANDIDATE_COUNT candidates for the election.

        Returns:
            list: Candidate id per index, None where creation failed

        Raises:
            ProvisioningError: If no candidate could be created
        """
        user_ids = [voter_user_id(i) for i in range(self.settings.CANDIDATE_COUNT)]
        requests = [
            RequestDescriptor(
                method="POST",
                url=get_api_path('candidate'),
                json={
                    "name": candidate_name(i),
                    "userID": user_id,
                    "electionID": election_id
                },
                headers=self._admin_headers(admin_token)
            )
            for i, user_id in enumerate(user_ids)
        ]

        results = await execute_batch(self.client, requests)
        _record_setup('candidate', results)

        candidate_ids: List[Optional[str]] = []
        for user_id, result in zip(user_ids, results):
            if result.ok:
                candidate_ids.append(candidate_id_for(user_id))
            else:
                logger.warning(f"Candidate for {user_id} not created: {result.describe()}")
                candidate_ids.append(None)

        created = sum(1 for candidate_id in candidate_ids if candidate_id)
        if created == 0:
            raise ProvisioningError("No candidate could be created")

        logger.info(f"Created {created}/{len(candidate_ids)} candidates")
        return candidate_ids

    def build_voter_requests(
        self,
        admin_token: str
    ) -> Tuple[List[RequestDescriptor], List[RequestDescriptor]]:
        """
        Build voter-creation and login requests, aligned by voter index.

        Returns:
            tuple: (create_requests, login_requests)
        """
        create_requests = []
        login_requests = []

        for i in range(self.settings.TOTAL_VOTERS):
            user_id = voter_user_id(i)

            create_requests.append(RequestDescriptor(
                method="POST",
                url=get_api_path('voter'),
                json={"userID": user_id},
                headers=self._admin_headers(admin_token)
            ))

            login_requests.append(RequestDescriptor(
                method="POST",
                url=get_api_path('authenticate'),
                json={
                    "username": user_id,
                    "password": user_id,
                    "role": "user"
                },
                headers={"Content-Type": "application/json"}
            ))

        return create_requests, login_requests

    async def register_voters(self, create_requests: List[RequestDescriptor]) -> List[BatchResult]:
        """
        Create every voter account.

        Failures are logged but never abort setup; the account may already
        exist from an earlier run, and logins are attempted for all voters.
        """
        results = await execute_batch(self.client, create_requests)
        _record_setup('voter', results)

        failed = [i for i, result in enumerate(results) if not result.ok]
        if failed:
            logger.warning(
                f"{len(failed)}/{len(results)} voter creations failed "
                f"(first: {voter_user_id(failed[0])}, {results[failed[0]].describe()})"
            )
        logger.info(f"Voter creation complete: {len(results) - len(failed)}/{len(results)} created")
        return results

    async def login_voters(self, login_requests: List[RequestDescriptor]) -> List[Optional[str]]:
        """
        Log every voter in.

        Returns:
            list: Token per voter index, None where login failed
        """
        results = await execute_batch(self.client, login_requests)
        _record_setup('login', results)

        tokens: List[Optional[str]] = []
        for i, result in enumerate(results):
            token = decode_identifier(result.response, "token") if result.ok else None
            if token is None:
                logger.debug(f"Login failed for {voter_user_id(i)}: {result.describe()}")
            tokens.append(token)

        missing = sum(1 for token in tokens if token is None)
        if missing:
            logger.warning(f"{missing}/{len(tokens)} voter logins failed; those voters will be unauthorized")
        logger.info(f"Authenticated {len(tokens) - missing}/{len(tokens)} voters")
        return tokens

    async def provision(self) -> ExecutionContext:
        """
        Run the full setup phase.

        Returns:
            ExecutionContext: Frozen fixture for the vote phase

        Raises:
            ProvisioningError: If a setup-fatal step fails
        """
        logger.info(
            f"Provisioning fixture: {self.settings.CANDIDATE_COUNT} candidates, "
            f"{self.settings.TOTAL_VOTERS} voters"
        )

        admin_token = await self.authenticate_admin()
        election = await self.create_election(admin_token)
        candidate_ids = await self.create_candidates(admin_token, election.election_id)

        create_requests, login_requests = self.build_voter_requests(admin_token)
        await self.register_voters(create_requests)
        voter_tokens = await self.login_voters(login_requests)

        return ExecutionContext(
            election_id=election.election_id,
            candidate_ids=tuple(candidate_ids),
            voter_tokens=tuple(voter_tokens)
        )
