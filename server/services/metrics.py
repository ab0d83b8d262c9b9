"""
In-process counters for the RDFPoker server.

Counters are keyed by name plus optional tags, e.g.
`rdfpoker.card.played{game=<id>}`, and reported by /metrics.
"""

import threading
from collections import Counter
from typing import Optional

GAME_CREATED = "rdfpoker.game.created"
PLAYER_CREATED = "rdfpoker.player.created"
CARD_PLAYED = "rdfpoker.card.played"


def _metric_key(name: str, tags: dict) -> str:
    if not tags:
        return name
    rendered = ",".join(f"{key}={value}" for key, value in sorted(tags.items()))
    return f"{name}{{{rendered}}}"


class MetricsRegistry:
    """Thread-safe named counters."""

    def __init__(self):
        self._counts: Counter = Counter()
        self._lock = threading.Lock()

    def increment(self, name: str, amount: int = 1, **tags) -> int:
        """Add to a counter and return its new value."""
        key = _metric_key(name, tags)
        with self._lock:
            self._counts[key] += amount
            return self._counts[key]

    def get(self, name: str, **tags) -> int:
        with self._lock:
            return self._counts.get(_metric_key(name, tags), 0)

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(sorted(self._counts.items()))


# Global instance
_metrics: Optional[MetricsRegistry] = None


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics


def close_metrics() -> None:
    global _metrics
    _metrics = None
