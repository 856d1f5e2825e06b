"""Readiness polling for a freshly started stack.

Polls the main service's status and its HTTP health endpoint until it is
ready, crashes, or the attempt budget runs out.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

import httpx
import structlog

from .driver import ServiceStatus

logger = structlog.get_logger(__name__)


class ReadinessOutcome(Enum):
    """How a readiness poll ended."""

    READY = "ready"
    CRASHED = "crashed"  # Service exited or died, remaining attempts skipped
    TIMED_OUT = "timed_out"  # Attempts exhausted, service still starting


@dataclass
class HealthCheckResult:
    """Result of a readiness poll."""

    outcome: ReadinessOutcome
    attempts: int = 0
    elapsed_seconds: float = 0.0
    status: ServiceStatus = ServiceStatus.UNKNOWN
    error: str | None = None

    @property
    def healthy(self) -> bool:
        return self.outcome is ReadinessOutcome.READY


class HealthPoller:
    """Poll service status and the health endpoint."""

    def __init__(
        self,
        max_attempts: int = 30,
        interval_seconds: float = 2.0,
        timeout_seconds: float = 5.0,
    ):
        """Initialize health poller.

        Args:
            max_attempts: Maximum number of attempts.
            interval_seconds: Seconds between attempts.
            timeout_seconds: Timeout for each HTTP request.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.interval_seconds = interval_seconds
        self.timeout_seconds = timeout_seconds

    async def probe(self, url: str) -> str | None:
        """GET the health URL once.

        Returns:
            None if the endpoint answered without an HTTP error, else the error text.
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.get(url)
                if response.status_code < 400:
                    return None
                return f"HTTP {response.status_code}"
        except httpx.InvalidURL as e:
            return f"Invalid health URL: {e}"
        except httpx.ConnectError:
            return "Connection refused"
        except httpx.TimeoutException:
            return "Request timeout"
        except httpx.HTTPError as e:
            return str(e) or type(e).__name__

    async def wait_for_ready(
        self,
        url: str,
        status_check: Callable[[], ServiceStatus] | None = None,
        on_attempt: Callable[[int, int, str | None], None] | None = None,
    ) -> HealthCheckResult:
        """Poll until ready, crashed, or out of attempts.

        Each attempt checks the service status first. A crashed service ends
        the poll at once; otherwise the health URL is probed and the first
        success ends the poll.

        Args:
            url: Health endpoint URL.
            status_check: Returns the main service status. Skipped if None.
            on_attempt: Optional callback called with (attempt, max_attempts, error)
                       for progress reporting.

        Returns:
            HealthCheckResult tagged with the outcome.
        """
        start = datetime.now()
        last_error: str | None = None
        status = ServiceStatus.UNKNOWN

        for attempt in range(1, self.max_attempts + 1):
            if status_check is not None:
                # docker compose ps blocks, keep it off the event loop
                status = await asyncio.to_thread(status_check)
                if status.crashed:
                    logger.warning("service_crashed", attempt=attempt, status=status.value)
                    return HealthCheckResult(
                        outcome=ReadinessOutcome.CRASHED,
                        attempts=attempt,
                        elapsed_seconds=(datetime.now() - start).total_seconds(),
                        status=status,
                        error=f"Service is {status.value}",
                    )

            last_error = await self.probe(url)
            if last_error is None:
                logger.info("service_ready", attempt=attempt, url=url)
                return HealthCheckResult(
                    outcome=ReadinessOutcome.READY,
                    attempts=attempt,
                    elapsed_seconds=(datetime.now() - start).total_seconds(),
                    status=status,
                )

            logger.debug("health_probe_failed", attempt=attempt, error=last_error)
            if on_attempt:
                on_attempt(attempt, self.max_attempts, last_error)

            # Wait before next attempt (unless this was the last one)
            if attempt < self.max_attempts:
                await asyncio.sleep(self.interval_seconds)

        return HealthCheckResult(
            outcome=ReadinessOutcome.TIMED_OUT,
            attempts=self.max_attempts,
            elapsed_seconds=(datetime.now() - start).total_seconds(),
            status=status,
            error=f"Not healthy after {self.max_attempts} attempts. Last error: {last_error}",
        )

    def wait_for_ready_sync(
        self,
        url: str,
        status_check: Callable[[], ServiceStatus] | None = None,
        on_attempt: Callable[[int, int, str | None], None] | None = None,
    ) -> HealthCheckResult:
        """Synchronous wrapper for wait_for_ready."""
        return asyncio.run(self.wait_for_ready(url, status_check, on_attempt))
