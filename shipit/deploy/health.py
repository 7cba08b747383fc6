"""Health checker: poll a release's primary container until it settles."""

import asyncio
import logging
import time
from enum import Enum

from shipit.errors import ContainerNotFoundError, HealthCheckError
from shipit.ssh.session import RemoteCommandError

logger = logging.getLogger(__name__)

HEALTH_STATUS_FORMAT = "{{.State.Health.Status}}"


class HealthState(Enum):
    PENDING = "pending"
    POLLING = "polling"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    TIMED_OUT = "timed_out"

    @property
    def terminal(self) -> bool:
        return self in (HealthState.HEALTHY, HealthState.UNHEALTHY, HealthState.TIMED_OUT)


class HealthChecker:
    """One check of one release's primary service on one host.

    PENDING -> POLLING -> HEALTHY | UNHEALTHY | TIMED_OUT. Polling is bounded
    by `retries` polls spaced `interval` seconds apart, and, when `timeout`
    is positive, by a wall-clock deadline.
    """

    def __init__(self, session, release_path, project_name, service, config, sleep=None, clock=time.monotonic):
        self.session = session
        self.release_path = release_path
        self.project_name = project_name
        self.service = service
        self.config = config
        self.state = HealthState.PENDING
        self.container_id = None
        self.attempts = 0
        self._sleep = sleep or asyncio.sleep
        self._clock = clock

    async def resolve_container(self) -> str:
        try:
            output = await self.session.exec(
                ["docker", "compose", "-p", self.project_name, "ps", "-q", self.service],
                cwd=self.release_path,
            )
        except RemoteCommandError as e:
            raise ContainerNotFoundError(f"Failed to get container ID for service '{self.service}': {e}") from e
        lines = output.strip().splitlines()
        if not lines:
            raise ContainerNotFoundError(f"No running container for service '{self.service}' ({self.project_name})")
        return lines[0].strip()

    async def poll(self) -> str:
        """Current health status string; empty if docker inspect fails."""
        try:
            output = await self.session.exec(["docker", "inspect", "--format", HEALTH_STATUS_FORMAT, self.container_id])
        except RemoteCommandError as e:
            logger.debug(f"docker inspect failed: {e}")
            return ""
        return output.strip()

    def _fail(self, state, message):
        self.state = state
        raise HealthCheckError(message, state=state, attempts=self.attempts)

    async def run(self) -> HealthState:
        """Poll until a terminal state. Returns HEALTHY, raises HealthCheckError otherwise."""
        self.container_id = await self.resolve_container()
        self.state = HealthState.POLLING
        retries = self.config.retries
        interval = self.config.interval
        deadline = self._clock() + self.config.timeout if self.config.timeout > 0 else None
        target = f"{self.config.port}{self.config.path}"

        logger.info(f"  Waiting for container {self.container_id[:12]} to become healthy ...")
        while self.attempts < retries:
            self.attempts += 1
            status = await self.poll()
            if status == "healthy":
                self.state = HealthState.HEALTHY
                logger.info("  Health check passed")
                return self.state
            if status == "unhealthy":
                self._fail(HealthState.UNHEALTHY, f"Container reported unhealthy ({target})")

            logger.debug(f"Container status: {status or 'unknown'} (attempt {self.attempts}/{retries})")
            if self.attempts >= retries:
                break
            if deadline is not None and self._clock() + interval > deadline:
                self._fail(
                    HealthState.TIMED_OUT,
                    f"Health check timed out after {self.config.timeout}s ({self.attempts} attempts, {target})",
                )
            await self._sleep(interval)

        self._fail(HealthState.TIMED_OUT, f"Health check timed out after {retries} attempts ({target})")
