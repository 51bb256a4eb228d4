"""
Health monitor for the primary graph backend.

Caches a single (verdict, checked_at) pair process-wide. Callers inside
one TTL window share the cached verdict instead of each probing, trading
bounded staleness for no probe storms. Coordination is by timestamp
comparison only; a redundant concurrent re-probe is harmless.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from redis.exceptions import RedisError

from .client import GraphClient

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30.0
DEFAULT_PROBE_TIMEOUT_SECONDS = 5.0


class HealthMonitor:
    """
    TTL-cached reachability verdict for the graph backend.

    Args:
        client: Graph client to probe. ``None`` means the graph layer is
            disabled and the monitor always reports unhealthy.
        ttl_seconds: How long a verdict is reused before re-probing.
        probe_timeout: Upper bound on a single connectivity check.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        client: GraphClient | None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._client = client
        self.ttl_seconds = ttl_seconds
        self.probe_timeout = probe_timeout
        self._clock = clock
        self._healthy = False
        self._checked_at: float | None = None

    @property
    def enabled(self) -> bool:
        return self._client is not None

    @property
    def last_verdict(self) -> bool:
        return self._healthy

    @property
    def checked_at(self) -> float | None:
        return self._checked_at

    async def is_healthy(self) -> bool:
        """Return the cached verdict, re-probing once it is older than the TTL."""
        if self._client is None:
            return False

        now = self._clock()
        if self._checked_at is not None and now - self._checked_at < self.ttl_seconds:
            return self._healthy

        verdict = await self.probe()
        if verdict != self._healthy:
            logger.info(f"Graph backend health changed: {'healthy' if verdict else 'unhealthy'}")
        self._healthy = verdict
        self._checked_at = now
        return verdict

    async def probe(self) -> bool:
        """
        Run one bounded connectivity check. Never raises.

        Returns:
            True if the backend answered within the timeout, False otherwise.
        """
        if self._client is None:
            return False

        try:
            await asyncio.wait_for(self._client.ping(), timeout=self.probe_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Graph connectivity check timed out after {self.probe_timeout:.1f}s")
            return False
        except (RedisError, OSError) as e:
            logger.warning(f"Graph connectivity check failed: {type(e).__name__}: {e}")
            return False
        except Exception as e:
            logger.error(f"Graph connectivity check raised unexpectedly: {e}")
            return False

        logger.debug("Graph connectivity verified")
        return True

    def mark_unhealthy(self) -> None:
        """Record an observed outage now; the next re-probe happens after the TTL."""
        if self._healthy:
            logger.warning("Graph backend marked unhealthy after a failed operation")
        self._healthy = False
        self._checked_at = self._clock()

    def reset(self) -> None:
        """Drop the cached verdict so the next call re-probes."""
        self._checked_at = None
