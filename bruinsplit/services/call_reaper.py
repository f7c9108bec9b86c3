"""
Background eviction of abandoned calls.

Calls normally end when the last participant leaves. A client that closes
the tab without leaving would otherwise keep its call in memory forever, so
calls with no signaling activity for the configured timeout are dropped.
"""
import asyncio
import logging

from bruinsplit.core.call_registry import CallRegistry

logger = logging.getLogger(__name__)


def sweep_idle_calls(registry: CallRegistry, idle_timeout_seconds: int) -> list:
    """Evict idle calls once and log what was removed."""
    evicted = registry.evict_idle(idle_timeout_seconds)
    if evicted:
        logger.info(f"[CALLS] Evicted {len(evicted)} idle call(s): {evicted}")
    return evicted


async def run_call_reaper(
    registry: CallRegistry,
    idle_timeout_seconds: int,
    interval_seconds: int
) -> None:
    """
    Sweep the registry every interval_seconds until cancelled.

    Args:
        registry: Registry to sweep
        idle_timeout_seconds: Inactivity after which a call is evicted
        interval_seconds: Delay between sweeps
    """
    logger.info(
        f"[CALLS] Idle call reaper started (timeout={idle_timeout_seconds}s, interval={interval_seconds}s)"
    )
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            sweep_idle_calls(registry, idle_timeout_seconds)
        except Exception as e:
            logger.error(f"[CALLS] Idle call sweep failed: {type(e).__name__}: {str(e)}", exc_info=True)


def start_call_reaper(registry: CallRegistry, idle_timeout_seconds: int, interval_seconds: int):
    """
    Schedule the reaper on the running loop.

    Returns:
        The asyncio.Task, or None when idle_timeout_seconds is 0 (disabled)
    """
    if idle_timeout_seconds <= 0:
        logger.info("[CALLS] Idle call reaper disabled")
        return None
    return asyncio.create_task(
        run_call_reaper(registry, idle_timeout_seconds, interval_seconds),
        name="call-reaper"
    )
