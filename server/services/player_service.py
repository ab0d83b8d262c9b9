"""
Player service for RDFPoker.

Handles joining a game, chip and nickname edits, betting chips on cards,
and handing the dealer role to another player.
"""

import logging
from typing import Optional

from errors import (
    ConflictError,
    DEALER_ALREADY_EXISTS,
    INVALID_DEALER_SWAP,
    INVALID_NUM_CHIPS,
    NOT_ENOUGH_CHIPS,
    PLAYER_ALREADY_EXISTS,
)
from models.game_state import Player
from services.lookups import require_card, require_game_state, require_player, require_rules
from services.metrics import PLAYER_CREATED, MetricsRegistry
from stores.game_store import GameStore

logger = logging.getLogger(__name__)


class PlayerService:
    """Player lifecycle and chip handling."""

    def __init__(self, store: GameStore, metrics: MetricsRegistry):
        self.store = store
        self.metrics = metrics

    async def get_player(self, player_id: str) -> Player:
        with self.store.read() as repo:
            return require_player(repo, player_id)

    async def create_player(
        self,
        game_state_id: str,
        nick_name: Optional[str] = None,
        is_dealer: bool = False,
    ) -> Player:
        """
        Add a player to a game.

        The player starts with the game's chipsAllottedPerPlayer. Nicknames
        are unique within a game (case-sensitive) and a game has at most
        one dealer.

        Raises:
            NotFoundError: game or its rules missing.
            ConflictError: PLAYER_ALREADY_EXISTS, DEALER_ALREADY_EXISTS.
        """
        with self.store.transaction() as repo:
            game_state = require_game_state(repo, game_state_id)
            rules = require_rules(game_state)

            if nick_name is not None and repo.nick_name_taken(game_state_id, nick_name):
                logger.warning(f"Nickname {nick_name!r} already taken in game {game_state_id}")
                raise ConflictError(
                    PLAYER_ALREADY_EXISTS,
                    f"A player named {nick_name!r} already exists in this game",
                )

            if is_dealer and repo.dealer_exists(game_state_id):
                logger.warning(f"Second dealer rejected for game {game_state_id}")
                raise ConflictError(DEALER_ALREADY_EXISTS, "This game already has a dealer")

            player = Player(
                game_state_id=game_state_id,
                nick_name=nick_name,
                is_dealer=is_dealer,
                num_chips=rules.chips_allotted_per_player,
            )
            repo.insert_player(player)

        self.metrics.increment(PLAYER_CREATED, game=game_state_id)
        logger.info(f"Player {player.id} joined game {game_state_id}")
        return player

    async def update_player(
        self,
        player_id: str,
        num_chips: Optional[int] = None,
        nick_name: Optional[str] = None,
    ) -> Player:
        """Apply a partial update; numChips must stay within the game's allotment."""
        with self.store.transaction() as repo:
            player = require_player(repo, player_id)
            rules = require_rules(require_game_state(repo, player.game_state_id))

            if num_chips is not None:
                if not 0 <= num_chips <= rules.chips_allotted_per_player:
                    raise ConflictError(
                        INVALID_NUM_CHIPS,
                        f"numChips must be between 0 and {rules.chips_allotted_per_player}",
                    )
                player.num_chips = num_chips

            if nick_name is not None:
                player.nick_name = nick_name

            repo.update_player(player)
        return player

    async def place_bet(self, player_id: str, card_id: str) -> Player:
        """
        Move one chip from a player onto a card.

        Both balances change in the same transaction, or neither does.
        """
        with self.store.transaction() as repo:
            player = require_player(repo, player_id)
            card = require_card(repo, card_id)

            if player.num_chips <= 0:
                logger.warning(f"Player {player_id} tried to bet with no chips left")
                raise ConflictError(NOT_ENOUGH_CHIPS, "Player has no chips left to bet")

            player.num_chips -= 1
            card.num_chips += 1
            repo.update_player(player)
            repo.update_card(card)

        logger.info(f"Player {player_id} bet a chip on card {card_id}")
        return player

    async def swap_dealers(self, current_dealer_id: str, future_dealer_id: str) -> None:
        """Hand the dealer role from one player to another in the same game."""
        with self.store.transaction() as repo:
            current_dealer = require_player(repo, current_dealer_id)
            future_dealer = require_player(repo, future_dealer_id)

            if current_dealer.game_state_id != future_dealer.game_state_id:
                raise ConflictError(INVALID_DEALER_SWAP, "Players are not in the same game")
            if not current_dealer.is_dealer:
                raise ConflictError(
                    INVALID_DEALER_SWAP,
                    f"Player {current_dealer_id} is not the dealer",
                )

            current_dealer.is_dealer = False
            future_dealer.is_dealer = True
            repo.update_player(current_dealer)
            repo.update_player(future_dealer)

        logger.info(
            f"Dealer role moved from {current_dealer_id} to {future_dealer_id} "
            f"in game {current_dealer.game_state_id}"
        )
