"""
Background cache refresh scheduler.

Each invocation refreshes at most one stale cache (or the group of caches
that share its upstream fetch), chosen by the staleness ranking. Refresher
failures are reported, never raised; only a failure to read cache metadata
aborts the invocation.
"""
import time
import logging
from typing import Callable, List, Optional

from app.cache.core import StalenessCandidate
from app.cache.staleness import StalenessEvaluator, has_stale
from app.cache.ttl_policies import get_group_keys

from .models import RunResult
from .refreshers import ClassRefreshers

logger = logging.getLogger("refresh.scheduler")

ALL_FRESH = "All caches fresh"


class RefreshScheduler:
    """
    Picks the most urgent stale cache and dispatches it to its refresher.

    Overlapping invocations are not guarded against.
    """

    def __init__(
        self,
        evaluator: StalenessEvaluator,
        refreshers: ClassRefreshers,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self._evaluator = evaluator
        self._refreshers = refreshers
        self._monotonic = monotonic

    def run_once(self) -> RunResult:
        """
        Refresh the single most urgent stale cache.

        Raises:
            CacheReadError: If the staleness evaluation cannot read the store
        """
        started = self._monotonic()

        candidates = self._evaluator.evaluate()

        if not has_stale(candidates):
            logger.info("All caches fresh, nothing to do")
            return RunResult(
                updates=[ALL_FRESH],
                elapsed_ms=self._elapsed_ms(started),
            )

        target = candidates[0]
        logger.info(
            f"Refreshing {target.type} (priority={target.priority}, "
            f"age={self._format_age(target.age)})"
        )

        result = RunResult(processed_key=target.type)
        self._dispatch(target.type, result)
        result.next_key = self._next_key(candidates, target.type)
        result.elapsed_ms = self._elapsed_ms(started)

        logger.info(
            f"Processed {target.type} in {result.duration_display}, "
            f"next in queue: {result.next_key}"
        )
        return result

    def refresh_key(self, key: str) -> RunResult:
        """
        Refresh a named cache key regardless of staleness.

        The key must be one of the known cache keys; refresher errors are
        reported in the result like in run_once().
        """
        started = self._monotonic()
        result = RunResult(processed_key=key)
        self._dispatch(key, result)
        result.elapsed_ms = self._elapsed_ms(started)
        return result

    def _dispatch(self, key: str, result: RunResult) -> None:
        try:
            result.updates.extend(self._refreshers.refresh_key(key))
        except Exception as e:
            logger.error(f"Refresh of {key} failed: {e}")
            result.errors.append(f"{key}: {e}")

    def _next_key(self, candidates: List[StalenessCandidate], processed_key: str) -> str:
        # The processed group was just attempted
        group = set(get_group_keys(processed_key))
        for candidate in candidates:
            if candidate.is_stale and candidate.type not in group:
                return candidate.type
        return "none"

    def _elapsed_ms(self, started: float) -> int:
        return int((self._monotonic() - started) * 1000)

    @staticmethod
    def _format_age(age: float) -> str:
        if age == float("inf"):
            return "never"
        return f"{age / 1000:.0f}s"
