"""Cache pool metrics collection and reporting."""

import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)


def calc_hit_rate(hits: int, misses: int) -> float:
    total = hits + misses
    return (hits / total * 100) if total > 0 else 0.0


class CacheMetrics:
    """Collect and report hit/miss and deferred-commit counters for one pool."""

    def __init__(self, name: str = "default"):
        self.name = name
        self.hits = 0
        self.misses = 0
        self.deferred = 0
        self.rejected_deferred = 0
        self.commits = 0
        self.failed_commits = 0

    def record_hit(self):
        self.hits += 1

    def record_miss(self):
        self.misses += 1

    def record_deferred(self):
        """Record an item accepted into the deferred queue."""
        self.deferred += 1

    def record_rejected_deferred(self):
        """Record a deferred save refused because a commit failed."""
        self.rejected_deferred += 1

    def record_commit(self, succeeded: bool):
        if succeeded:
            self.commits += 1
        else:
            self.failed_commits += 1

    def get_report(self) -> Dict[str, Any]:
        """
        Generate cache performance report.

        Returns:
            Dictionary with lookup and commit statistics for this pool
        """
        return {
            "pool": self.name,
            "lookups": {
                "hits": self.hits,
                "misses": self.misses,
                "hit_rate": calc_hit_rate(self.hits, self.misses),
            },
            "deferred": {
                "queued": self.deferred,
                "rejected": self.rejected_deferred,
                "commits": self.commits,
                "failed_commits": self.failed_commits,
            },
        }

    def log_report(self):
        """Log cache performance report to logger."""
        report = self.get_report()
        lookups = report["lookups"]
        deferred = report["deferred"]
        logger.info(f"=== Cache Pool Report ({self.name}) ===")
        logger.info(
            f"lookups: hits={lookups['hits']}, misses={lookups['misses']}, "
            f"hit_rate={lookups['hit_rate']:.1f}%"
        )
        logger.info(
            f"deferred: queued={deferred['queued']}, rejected={deferred['rejected']}, "
            f"commits={deferred['commits']}, failed_commits={deferred['failed_commits']}"
        )

    def reset(self):
        """Reset all metrics counters."""
        self.hits = 0
        self.misses = 0
        self.deferred = 0
        self.rejected_deferred = 0
        self.commits = 0
        self.failed_commits = 0
        logger.info(f"Cache metrics reset for pool '{self.name}'")
