"""
Game state service for RDFPoker.

Creates games, answers read queries about them, and applies the phase
transition policy:

- TURN: every blank card in the game is deleted, whatever its status.
- BETTING: the card on display moves to the table.
- PREGAME, PREPARATION, POSTGAME: nothing beyond the phase change.

Any phase may follow any other. Subscribers hear about the new phase (and,
for TURN, whose turn it is) only after the transaction commits.
"""

from dataclasses import dataclass
from typing import Optional

from config import RulesDefaults
from errors import ConflictError, PHASE_DOES_NOT_EXIST
from logging_config import get_logger
from models.events import turn_payload
from models.game_state import Card, CardStatus, GameState, Phase, Player, Rules
from services.lookups import require_game_state, require_rules
from services.metrics import GAME_CREATED, MetricsRegistry
from services.subscriptions import SubscriptionManager
from stores.game_store import GameStore

logger = get_logger(__name__)


def parse_phase(phase_string: str) -> Phase:
    """Map a phase name to a Phase; names are case-sensitive."""
    try:
        return Phase(phase_string)
    except ValueError:
        raise ConflictError(PHASE_DOES_NOT_EXIST, f"Phase {phase_string!r} does not exist")


@dataclass
class StateSnapshot:
    """Everything a client needs to draw the table for one game."""
    cards_on_table: list[Card]
    card_displayed: Optional[Card]
    phase: Phase
    rules: Rules
    whose_turn: Optional[Player]

    def to_dict(self) -> dict:
        return {
            "cardsOnTable": [card.to_dict() for card in self.cards_on_table],
            "cardDisplayed": self.card_displayed.to_dict() if self.card_displayed else None,
            "phase": self.phase.value,
            "rules": self.rules.to_dict(),
            "whoseTurn": turn_payload(self.whose_turn),
        }


class GameStateService:
    """Game creation, read queries and phase transitions."""

    def __init__(
        self,
        store: GameStore,
        subscriptions: SubscriptionManager,
        metrics: MetricsRegistry,
        rules_defaults: Optional[RulesDefaults] = None,
        display_is_global: bool = True,
    ):
        self.store = store
        self.subscriptions = subscriptions
        self.metrics = metrics
        self.rules_defaults = rules_defaults or RulesDefaults()
        self.display_is_global = display_is_global

    async def create_game(self) -> GameState:
        """Create a game in PREGAME together with its default rules."""
        game_state = GameState()
        defaults = self.rules_defaults
        rules = Rules(
            game_state_id=game_state.id,
            prompt=defaults.prompt,
            max_cards_in_hand=defaults.max_cards_in_hand,
            chips_allotted_per_player=defaults.chips_allotted_per_player,
            preparation_timer_duration=defaults.preparation_timer_duration,
            turn_timer_duration=defaults.turn_timer_duration,
            betting_timer_duration=defaults.betting_timer_duration,
            min_chips_for_card_post_game_discussion=defaults.min_chips_for_card_post_game_discussion,
            min_card_contribution=defaults.min_card_contribution,
        )

        with self.store.transaction() as repo:
            repo.insert_game_state(game_state)
            repo.insert_rules(rules)
        game_state.rules = rules

        self.metrics.increment(GAME_CREATED)
        logger.with_context(game_id=game_state.id).info("Game created")
        return game_state

    async def get_state(self, game_state_id: str) -> StateSnapshot:
        with self.store.read() as repo:
            game_state = require_game_state(repo, game_state_id)
        rules = require_rules(game_state)

        displayed = game_state.cards_with_status(CardStatus.ONDISPLAY)
        return StateSnapshot(
            cards_on_table=game_state.cards_with_status(CardStatus.ONTABLE),
            card_displayed=displayed[0] if displayed else None,
            phase=game_state.phase,
            rules=rules,
            whose_turn=game_state.which_players_turn(),
        )

    async def get_phase(self, game_state_id: str) -> Phase:
        with self.store.read() as repo:
            return require_game_state(repo, game_state_id).phase

    async def get_turn(self, game_state_id: str) -> Optional[Player]:
        with self.store.read() as repo:
            return require_game_state(repo, game_state_id).which_players_turn()

    async def get_played_cards(self, game_state_id: str) -> list[Card]:
        """All cards of the game that have left their owner's hand."""
        with self.store.read() as repo:
            return require_game_state(repo, game_state_id).played_cards()

    async def list_states(self) -> list[GameState]:
        with self.store.read() as repo:
            return repo.list_game_states()

    async def advance_phase(self, game_state_id: str, phase_string: str) -> GameState:
        """
        Move a game to a new phase and apply the phase's side effects.

        Args:
            game_state_id: Game to advance.
            phase_string: Name of the target phase.

        Returns:
            The game as committed.

        Raises:
            ConflictError: PHASE_DOES_NOT_EXIST for an unknown phase name.
            NotFoundError: GAME_STATE_NOT_FOUND.
        """
        new_phase = parse_phase(phase_string)
        log = logger.with_context(game_id=game_state_id)

        with self.store.transaction() as repo:
            game_state = require_game_state(repo, game_state_id)
            repo.update_phase(game_state_id, new_phase)

            if new_phase == Phase.TURN:
                blank_ids = [card.id for card in game_state.all_cards() if card.is_blank()]
                deleted = repo.delete_cards(blank_ids)
                if deleted:
                    log.info(f"Removed {deleted} blank cards")
            elif new_phase == Phase.BETTING:
                scope = None if self.display_is_global else game_state_id
                repo.move_displayed_cards_to_table(scope)

            game_state = require_game_state(repo, game_state_id)

        log.info(f"Phase advanced to {new_phase.value}")

        await self.subscriptions.notify_phase(game_state_id, new_phase)
        if new_phase == Phase.TURN:
            await self.subscriptions.notify_turn(game_state_id, game_state.which_players_turn())

        return game_state
