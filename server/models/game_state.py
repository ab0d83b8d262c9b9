"""
Domain model for RDFPoker games.

A GameState owns its Rules and Players; a Player owns its Cards. Children
hold their parent's id rather than a reference back to the parent, and the
store joins them on load.

Usage:
    with store.read() as repo:
        game_state = repo.get_game_state(game_state_id)
    player = game_state.which_players_turn()
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from errors import ConflictError, INVALID_RULES

MAX_CARDS_IN_HAND_LIMIT = 6
MAX_CHIPS_PER_PLAYER_LIMIT = 5


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Phase(str, Enum):
    """Game phases. Any phase may follow any other."""
    PREGAME = "PREGAME"
    PREPARATION = "PREPARATION"
    TURN = "TURN"
    BETTING = "BETTING"
    POSTGAME = "POSTGAME"


class CardStatus(str, Enum):
    """Where a card sits: a hand, the display slot, or the table."""
    INHAND = "INHAND"
    ONDISPLAY = "ONDISPLAY"
    ONTABLE = "ONTABLE"


@dataclass
class Rules:
    """
    Per-game parameters, editable by the dealer during PREGAME.

    Timer durations are advisory values for the client countdowns.
    """
    game_state_id: str
    id: str = field(default_factory=new_id)
    prompt: str = "Sweet, thought-provoking prompt"
    max_cards_in_hand: int = 5
    chips_allotted_per_player: int = 3
    preparation_timer_duration: int = 5
    turn_timer_duration: int = 1
    betting_timer_duration: int = 1
    min_chips_for_card_post_game_discussion: int = 1
    min_card_contribution: int = 1

    # Fields a partial rules update may touch
    UPDATABLE_FIELDS = (
        "prompt",
        "max_cards_in_hand",
        "chips_allotted_per_player",
        "preparation_timer_duration",
        "turn_timer_duration",
        "betting_timer_duration",
        "min_chips_for_card_post_game_discussion",
        "min_card_contribution",
    )

    def validate(self) -> None:
        """Raise INVALID_RULES if any field is out of range."""
        problems = []
        if not self.prompt or not self.prompt.strip():
            problems.append("prompt must not be blank")
        if not 1 <= self.max_cards_in_hand <= MAX_CARDS_IN_HAND_LIMIT:
            problems.append(f"maxCardsInHand must be between 1 and {MAX_CARDS_IN_HAND_LIMIT}")
        if not 1 <= self.chips_allotted_per_player <= MAX_CHIPS_PER_PLAYER_LIMIT:
            problems.append(f"chipsAllottedPerPlayer must be between 1 and {MAX_CHIPS_PER_PLAYER_LIMIT}")
        for name, value in (
            ("preparationTimerDuration", self.preparation_timer_duration),
            ("turnTimerDuration", self.turn_timer_duration),
            ("bettingTimerDuration", self.betting_timer_duration),
            ("minChipsForCardPostGameDiscussion", self.min_chips_for_card_post_game_discussion),
            ("minCardContribution", self.min_card_contribution),
        ):
            if value < 1:
                problems.append(f"{name} must be positive")
        if problems:
            raise ConflictError(INVALID_RULES, "; ".join(problems))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "gameStateId": self.game_state_id,
            "prompt": self.prompt,
            "maxCardsInHand": self.max_cards_in_hand,
            "chipsAllottedPerPlayer": self.chips_allotted_per_player,
            "preparationTimerDuration": self.preparation_timer_duration,
            "turnTimerDuration": self.turn_timer_duration,
            "bettingTimerDuration": self.betting_timer_duration,
            "minChipsForCardPostGameDiscussion": self.min_chips_for_card_post_game_discussion,
            "minCardContribution": self.min_card_contribution,
        }


@dataclass
class Card:
    """
    A card written by a player.

    Attributes:
        player_id: Owning player.
        content: Free text; blank cards are purged when TURN begins.
        card_status: INHAND, ONDISPLAY or ONTABLE.
        num_chips: Chips bet on this card.
    """
    player_id: str
    id: str = field(default_factory=new_id)
    content: str = ""
    card_status: CardStatus = CardStatus.INHAND
    num_chips: int = 0

    def is_blank(self) -> bool:
        return not self.content.strip()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "playerId": self.player_id,
            "content": self.content,
            "cardStatus": self.card_status.value,
            "numChips": self.num_chips,
        }


@dataclass
class Player:
    """
    A participant in one game.

    last_turn_completed_timestamp orders turns only; it starts at creation
    time and moves to "now" whenever the player plays a card.
    """
    game_state_id: str
    id: str = field(default_factory=new_id)
    num_chips: int = 3
    nick_name: Optional[str] = None
    is_dealer: bool = False
    last_turn_completed_timestamp: datetime = field(default_factory=utc_now)
    cards: list[Card] = field(default_factory=list)

    def has_cards_in_hand(self) -> bool:
        return any(card.card_status == CardStatus.INHAND for card in self.cards)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "gameStateId": self.game_state_id,
            "numChips": self.num_chips,
            "nickName": self.nick_name,
            "isDealer": self.is_dealer,
            "lastTurnCompletedTimestamp": self.last_turn_completed_timestamp.isoformat(),
            "cards": [card.to_dict() for card in self.cards],
        }


@dataclass
class GameState:
    """
    A game with its rules and players (players in creation order).

    Whose turn it is is derived from the players' hands, never stored.
    """
    id: str = field(default_factory=new_id)
    phase: Phase = Phase.PREGAME
    players: list[Player] = field(default_factory=list)
    rules: Optional[Rules] = None

    def which_players_turn(self) -> Optional[Player]:
        """
        Return the player who has gone longest without a turn.

        Only players holding at least one INHAND card are eligible. Ties on
        the timestamp go to the player created first. Returns None when no
        player has a card in hand.
        """
        eligible = [player for player in self.players if player.has_cards_in_hand()]
        if not eligible:
            return None
        # min() keeps the first of equal keys, i.e. creation order
        return min(eligible, key=lambda player: player.last_turn_completed_timestamp)

    def all_cards(self) -> list[Card]:
        return [card for player in self.players for card in player.cards]

    def cards_with_status(self, status: CardStatus) -> list[Card]:
        return [card for card in self.all_cards() if card.card_status == status]

    def played_cards(self) -> list[Card]:
        return [card for card in self.all_cards() if card.card_status != CardStatus.INHAND]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "phase": self.phase.value,
            "rules": self.rules.to_dict() if self.rules else None,
            "players": [player.to_dict() for player in self.players],
        }
