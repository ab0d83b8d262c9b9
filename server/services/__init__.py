"""Services package for RDFPoker game logic."""

from .subscriptions import (
    Subscriber,
    SubscriptionManager,
    get_subscription_manager,
    close_subscription_manager,
)
from .metrics import MetricsRegistry, get_metrics, close_metrics
from .game_state_service import GameStateService, StateSnapshot, parse_phase
from .card_service import CardService
from .player_service import PlayerService
from .rules_service import RulesService

__all__ = [
    # Notifications
    "Subscriber",
    "SubscriptionManager",
    "get_subscription_manager",
    "close_subscription_manager",
    # Metrics
    "MetricsRegistry",
    "get_metrics",
    "close_metrics",
    # Game services
    "GameStateService",
    "StateSnapshot",
    "parse_phase",
    "CardService",
    "PlayerService",
    "RulesService",
]
