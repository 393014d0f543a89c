"""
Client-side verification poller.

Drives ``POST /api/domains/{id}/verify`` on a fixed interval while the record
is in DNS_VERIFICATION. Polling stops as soon as the record leaves that state
(ACTIVE or FAILED), the server says there is nothing left to try, the round
budget runs out, or the caller cancels (the dashboard session ended).

Cooldown answers, 5xx responses and transport errors are not terminal: the
next round simply tries again. A FAILED record ends polling even with attempts
left, so no attempt is spent without the owner asking for it.
"""
import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_result, stop_after_attempt, wait_fixed

from tinypm.config import Settings

logger = logging.getLogger("tinypm.poller")


class PollOutcome(str, enum.Enum):
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"
    MAX_ATTEMPTS = "MAX_ATTEMPTS"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    REJECTED = "REJECTED"
    BUDGET_EXHAUSTED = "BUDGET_EXHAUSTED"
    CANCELLED = "CANCELLED"


@dataclass
class PollResult:
    outcome: PollOutcome
    rounds: int
    record: Optional[Dict[str, Any]] = None


class _PollCancelled(Exception):
    pass


class DomainVerificationPoller:
    def __init__(
        self,
        client: httpx.AsyncClient,
        domain_id: str,
        *,
        interval: float = 10.0,
        max_rounds: int = 30,
        api_prefix: str = "/api",
    ):
        self.client = client
        self.domain_id = str(domain_id)
        self.interval = interval
        self.max_rounds = max_rounds
        self.url = f"{api_prefix}/domains/{self.domain_id}/verify"
        self.rounds = 0
        self.record: Optional[Dict[str, Any]] = None
        self._stopped = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient, domain_id: str, settings: Settings) -> "DomainVerificationPoller":
        return cls(
            client,
            domain_id,
            interval=settings.DOMAIN_POLL_INTERVAL_SECONDS,
            max_rounds=settings.DOMAIN_POLL_MAX_ROUNDS,
            api_prefix=settings.API_PREFIX,
        )

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    def cancel(self) -> None:
        """Stop at the next wait; the running task finishes with CANCELLED."""
        self._stopped.set()

    @property
    def cancelled(self) -> bool:
        return self._stopped.is_set()

    async def run(self) -> PollResult:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_rounds),
            wait=wait_fixed(self.interval),
            retry=retry_if_result(lambda outcome: outcome is None),
            sleep=self._sleep,
            retry_error_callback=lambda state: PollOutcome.BUDGET_EXHAUSTED,
        )
        try:
            outcome = await retrying(self._poll_once)
        except _PollCancelled:
            outcome = PollOutcome.CANCELLED

        logger.info(
            "Polling for domain %s finished: %s after %d round(s)",
            self.domain_id, outcome.value, self.rounds,
        )
        return PollResult(outcome=outcome, rounds=self.rounds, record=self.record)

    async def _sleep(self, seconds: float) -> None:
        if self._stopped.is_set():
            raise _PollCancelled()
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise _PollCancelled()

    async def _poll_once(self) -> Optional[PollOutcome]:
        """One round. ``None`` means keep polling."""
        if self._stopped.is_set():
            return PollOutcome.CANCELLED
        self.rounds += 1

        try:
            response = await self.client.post(self.url)
        except httpx.HTTPError as exc:
            logger.warning("Verify request for %s failed: %s", self.domain_id, exc)
            return None

        if response.status_code == 401:
            return PollOutcome.UNAUTHORIZED
        if response.status_code == 404:
            return PollOutcome.NOT_FOUND
        if response.status_code >= 500:
            logger.warning("Verify for %s answered %d, retrying", self.domain_id, response.status_code)
            return None

        body = _json_or_empty(response)
        if response.status_code >= 400:
            code = body.get("code")
            if code == "COOLDOWN":
                logger.debug("Domain %s cooling down (%ss left)", self.domain_id, body.get("remainingSeconds"))
                return None
            if code == "MAX_ATTEMPTS":
                return PollOutcome.MAX_ATTEMPTS
            logger.warning("Verify for %s rejected: %s", self.domain_id, body.get("error"))
            return PollOutcome.REJECTED

        self.record = body
        status = body.get("status")
        if status == "DNS_VERIFICATION":
            return None
        if status == "ACTIVE":
            return PollOutcome.ACTIVE
        if status == "FAILED" and body.get("remainingAttempts", 1) <= 0:
            return PollOutcome.MAX_ATTEMPTS
        # FAILED with attempts left: the owner fixes DNS and asks again
        return PollOutcome.FAILED


def _json_or_empty(response: httpx.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
