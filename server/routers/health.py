"""
Health check endpoints for production deployment.

Provides:
- /health - Basic liveness check (is the app running?)
- /ready - Readiness check (can the app reach its database?)
- /metrics - Game counters and open event streams
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Response

from services.metrics import MetricsRegistry
from services.subscriptions import SubscriptionManager
from stores.game_store import GameStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Service references (set during app initialization)
_game_store: Optional[GameStore] = None
_subscriptions: Optional[SubscriptionManager] = None
_metrics: Optional[MetricsRegistry] = None


def set_health_dependencies(
    game_store: Optional[GameStore] = None,
    subscriptions: Optional[SubscriptionManager] = None,
    metrics: Optional[MetricsRegistry] = None,
):
    """Set dependencies for health checks."""
    global _game_store, _subscriptions, _metrics
    _game_store = game_store
    _subscriptions = subscriptions
    _metrics = metrics


@router.get("/health")
async def health_check():
    """
    Basic liveness check - is the app running?

    This endpoint should always return 200 if the process is alive.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ready")
async def readiness_check():
    """
    Readiness check - can the app handle requests?

    Returns 503 if the database cannot be queried.
    """
    checks = {}
    overall_healthy = True

    if _game_store is not None:
        try:
            _game_store.ping()
            checks["database"] = {"status": "ok"}
        except Exception as e:
            logger.warning(f"Database health check failed: {e}")
            checks["database"] = {"status": "error", "message": str(e)}
            overall_healthy = False
    else:
        checks["database"] = {"status": "not_configured"}
        overall_healthy = False

    status_code = 200 if overall_healthy else 503
    return Response(
        content=json.dumps({
            "status": "ok" if overall_healthy else "degraded",
            "checks": checks,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }),
        status_code=status_code,
        media_type="application/json",
    )


@router.get("/metrics")
async def metrics():
    """
    Expose application metrics for monitoring.

    Counters are keyed like `rdfpoker.card.played{game=<id>}`.
    """
    metrics_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if _metrics is not None:
        metrics_data["counters"] = _metrics.snapshot()

    if _subscriptions is not None:
        games = _subscriptions.get_games_with_subscribers()
        metrics_data.update({
            "games_with_listeners": len(games),
            "open_streams": sum(games.values()),
        })

    return metrics_data
