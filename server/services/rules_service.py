"""
Rules service for RDFPoker.

Rules can only change while a game is in PREGAME. Changing
chipsAllottedPerPlayer resets every player's chip balance to the new
allotment in the same transaction.
"""

import dataclasses
import logging

from errors import ConflictError, WRONG_PHASE_TO_UPDATE_RULES
from models.game_state import Phase, Rules
from services.lookups import require_game_state, require_rules
from services.subscriptions import SubscriptionManager
from stores.game_store import GameStore

logger = logging.getLogger(__name__)


class RulesService:
    def __init__(self, store: GameStore, subscriptions: SubscriptionManager):
        self.store = store
        self.subscriptions = subscriptions

    async def get_rules(self, game_state_id: str) -> Rules:
        with self.store.read() as repo:
            return require_rules(require_game_state(repo, game_state_id))

    async def update_rules(self, game_state_id: str, **changes) -> Rules:
        """
        Merge the given fields into a game's rules.

        Args:
            game_state_id: Game whose rules change.
            **changes: Rules field names (snake_case); None values are ignored.

        Returns:
            The full updated rules.

        Raises:
            NotFoundError: game or rules missing.
            ConflictError: WRONG_PHASE_TO_UPDATE_RULES outside PREGAME,
                INVALID_RULES if the merged rules are out of range.
        """
        updates = {
            name: value for name, value in changes.items()
            if name in Rules.UPDATABLE_FIELDS and value is not None
        }

        with self.store.transaction() as repo:
            game_state = require_game_state(repo, game_state_id)
            rules = require_rules(game_state)

            if game_state.phase != Phase.PREGAME:
                logger.warning(
                    f"Rules update rejected for game {game_state_id} in {game_state.phase.value}"
                )
                raise ConflictError(
                    WRONG_PHASE_TO_UPDATE_RULES,
                    f"Rules can only change during PREGAME, game is in {game_state.phase.value}",
                )

            rules = dataclasses.replace(rules, **updates)
            repo.update_rules(rules)

            if "chips_allotted_per_player" in updates:
                repo.set_chips_for_game(game_state_id, rules.chips_allotted_per_player)

        logger.info(f"Rules updated for game {game_state_id}: {sorted(updates)}")
        await self.subscriptions.notify_rules(game_state_id, rules)
        return rules
