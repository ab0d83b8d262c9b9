"""Models package for the RDFPoker server."""

from .game_state import Phase, CardStatus, Rules, Card, Player, GameState
from .events import NotificationType, Notification, turn_payload

__all__ = [
    "Phase",
    "CardStatus",
    "Rules",
    "Card",
    "Player",
    "GameState",
    "NotificationType",
    "Notification",
    "turn_payload",
]
