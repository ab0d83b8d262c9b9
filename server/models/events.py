"""
Notification events pushed to subscribers of a game.

Each event has a name (sent as the SSE `event:` field) and a JSON payload
(sent as the `data:` field).
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from models.game_state import Phase, Player, Rules


class NotificationType(str, Enum):
    """Event names a client can listen for."""
    PHASE = "PHASE"
    TURN = "TURN"
    RULES = "RULES"


@dataclass
class Notification:
    """
    A single push event for one game.

    Attributes:
        event_type: Event name.
        game_state_id: Game the event belongs to.
        data: JSON-serializable payload.
        timestamp: When the event was created (UTC).
    """
    event_type: NotificationType
    game_state_id: str
    data: dict
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_sse(self) -> str:
        """Render as a server-sent event frame."""
        return f"event: {self.event_type.value}\ndata: {json.dumps(self.data)}\n\n"


def turn_payload(player: Optional[Player]) -> dict:
    """Whose turn it is; both fields are None when nobody holds a card."""
    return {
        "playerId": player.id if player else None,
        "playerNickName": player.nick_name if player else None,
    }


# =============================================================================
# Notification Factory Functions
# =============================================================================


def phase_changed(game_state_id: str, phase: Phase) -> Notification:
    return Notification(
        event_type=NotificationType.PHASE,
        game_state_id=game_state_id,
        data={"phase": phase.value},
    )


def turn_changed(game_state_id: str, player: Optional[Player]) -> Notification:
    return Notification(
        event_type=NotificationType.TURN,
        game_state_id=game_state_id,
        data=turn_payload(player),
    )


def rules_changed(game_state_id: str, rules: Rules) -> Notification:
    return Notification(
        event_type=NotificationType.RULES,
        game_state_id=game_state_id,
        data=rules.to_dict(),
    )
