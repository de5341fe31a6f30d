"""Metrics service for tracking recommendation performance.

Singleton service counting recommendation requests per strategy, their
latency, time budget overruns and recorded behavior events.
"""

import threading
from typing import Dict


class MetricsService:
    """Singleton service for tracking API metrics.

    Thread-safe counters and latency tracking for recommendation calls.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        """Create singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(MetricsService, cls).__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._lock = threading.Lock()
        self._reset_counters()
        self._initialized = True

    def _reset_counters(self) -> None:
        self._recommendation_count = 0
        self._strategy_counts: Dict[str, int] = {}
        self._total_latency_ms = 0.0
        self._min_latency_ms = float("inf")
        self._max_latency_ms = 0.0
        self._budget_overruns = 0
        self._events_recorded = 0

    def record_recommendation(
        self, strategy: str, latency_ms: float, over_budget: bool = False
    ) -> None:
        """Record a served recommendation request.

        Args:
            strategy: Strategy that produced the result
            latency_ms: Latency in milliseconds
            over_budget: Whether the request exceeded the time budget
        """
        with self._lock:
            self._recommendation_count += 1
            self._strategy_counts[strategy] = self._strategy_counts.get(strategy, 0) + 1
            self._total_latency_ms += latency_ms
            self._min_latency_ms = min(self._min_latency_ms, latency_ms)
            self._max_latency_ms = max(self._max_latency_ms, latency_ms)
            if over_budget:
                self._budget_overruns += 1

    def record_event(self) -> None:
        """Count one recorded behavior event."""
        with self._lock:
            self._events_recorded += 1

    def get_metrics(self) -> Dict:
        """Get current metrics.

        Returns:
            Dictionary with metrics including:
            - recommendation_count: Total number of recommendation calls
            - strategy_counts: Calls per strategy
            - average_latency_ms / min_latency_ms / max_latency_ms
            - budget_overruns: Calls slower than the time budget
            - events_recorded: Behavior events recorded through the API
        """
        with self._lock:
            avg_latency = (
                self._total_latency_ms / self._recommendation_count
                if self._recommendation_count > 0
                else 0.0
            )

            return {
                "recommendation_count": self._recommendation_count,
                "strategy_counts": dict(self._strategy_counts),
                "average_latency_ms": round(avg_latency, 2),
                "min_latency_ms": (
                    round(self._min_latency_ms, 2)
                    if self._min_latency_ms != float("inf")
                    else 0.0
                ),
                "max_latency_ms": round(self._max_latency_ms, 2),
                "budget_overruns": self._budget_overruns,
                "events_recorded": self._events_recorded,
            }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._reset_counters()


# Global singleton instance
metrics_service = MetricsService()
