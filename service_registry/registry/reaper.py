import asyncio
import time
from typing import Optional

from service_registry.config import (
    REAPER_ENABLED,
    REAPER_INTERVAL_SECONDS,
    REAPER_POLICY,
    REGISTRY_TIMEOUT_SECONDS,
)
from service_registry.constants import (
    LOG_REAPER_STARTED,
    LOG_REAPER_STOPPED,
    RETRY_DELAY_SECONDS,
)
from service_registry.logger_config import RegistryLogger
from service_registry.registry.registry import Registry
from service_registry.types import ReaperPolicy, SweepResult

logger = RegistryLogger.get_logger(__name__)


def _empty_stats() -> dict:
    return {
        "sweeps": 0,
        "marked_down": 0,
        "evicted": 0,
        "instance_errors": 0,
        "failed_sweeps": 0,
    }


class Reaper:
    """Periodic sweep that enforces the heartbeat timeout on a registry"""

    def __init__(
        self,
        registry: Registry,
        interval_seconds: float = REAPER_INTERVAL_SECONDS,
        timeout_seconds: float = REGISTRY_TIMEOUT_SECONDS,
        policy: ReaperPolicy = ReaperPolicy(REAPER_POLICY),
        enabled: bool = REAPER_ENABLED,
    ):
        self.registry = registry
        self.interval_seconds = interval_seconds
        self.timeout_seconds = timeout_seconds
        self.policy = policy
        self.enabled = enabled
        self._running = False
        self._reaper_task: Optional[asyncio.Task] = None
        self._stats = _empty_stats()

    async def start(self):
        """Start the sweep loop"""
        if self._running:
            return

        if not self.enabled:
            logger.info("Reaper is disabled")
            return

        self._running = True
        self._reaper_task = asyncio.create_task(self._reaper_loop())
        logger.info(
            LOG_REAPER_STARTED.format(
                self.interval_seconds, self.timeout_seconds, self.policy.value
            )
        )

    async def stop(self):
        """Stop the sweep loop"""
        if not self._running:
            return

        self._running = False
        if self._reaper_task:
            self._reaper_task.cancel()
            try:
                await self._reaper_task
            except asyncio.CancelledError:
                pass
            finally:
                self._reaper_task = None
        logger.info(LOG_REAPER_STOPPED)

    async def sweep_once(self) -> SweepResult:
        """Run a single sweep and record its outcome"""
        result = await self.registry.sweep(self.timeout_seconds, self.policy)

        self._stats["sweeps"] += 1
        self._stats["marked_down"] += len(result.marked_down)
        self._stats["evicted"] += len(result.evicted)
        self._stats["instance_errors"] += result.errors

        if result.changed or result.errors:
            logger.info(
                "Reaper sweep finished",
                extra={
                    "marked_down": len(result.marked_down),
                    "evicted": len(result.evicted),
                    "errors": result.errors,
                    "policy": self.policy.value,
                    "event_type": "reaper_sweep",
                },
            )
        return result

    async def _reaper_loop(self):
        """Sweep on a fixed cadence until cancelled"""
        while self._running:
            try:
                start_time = time.monotonic()
                await self.sweep_once()

                # Keep a consistent cadence regardless of sweep duration
                elapsed_time = time.monotonic() - start_time
                await asyncio.sleep(max(0, self.interval_seconds - elapsed_time))

            except asyncio.CancelledError:
                break
            except Exception as e:
                self._stats["failed_sweeps"] += 1
                logger.error(
                    f"Error in reaper loop: {e}",
                    extra={"error_type": "reaper_loop_error"},
                )
                await asyncio.sleep(min(RETRY_DELAY_SECONDS, self.interval_seconds))

    def get_stats(self) -> dict:
        """Get current reaper statistics"""
        return self._stats.copy()

    def reset_stats(self):
        """Reset reaper statistics"""
        self._stats = _empty_stats()

    def is_running(self) -> bool:
        return self._running
