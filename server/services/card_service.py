"""
Card service for RDFPoker.

Cards move INHAND -> ONDISPLAY -> ONTABLE. Playing a card puts it in the
display slot and pushes whatever was displayed onto the table; only the
player whose turn it is may play. A direct INHAND -> ONTABLE update counts
as taking a turn too, but skips the turn-ownership check.
"""

from typing import Optional

from errors import ConflictError, ForbiddenError, FORBIDDEN_TO_PLAY_CARD, INVALID_NUM_CHIPS
from logging_config import get_logger
from models.game_state import Card, CardStatus, GameState, utc_now
from services.lookups import require_card, require_game_state, require_player
from services.metrics import CARD_PLAYED, MetricsRegistry
from services.subscriptions import SubscriptionManager
from stores.game_store import GameRepository, GameStore

logger = get_logger(__name__)


class CardService:
    """Card creation, edits, deletion and play."""

    def __init__(
        self,
        store: GameStore,
        subscriptions: SubscriptionManager,
        metrics: MetricsRegistry,
        display_is_global: bool = True,
    ):
        self.store = store
        self.subscriptions = subscriptions
        self.metrics = metrics
        self.display_is_global = display_is_global

    def _clear_display(self, repo: GameRepository, game_state_id: str) -> list[str]:
        return repo.move_displayed_cards_to_table(
            None if self.display_is_global else game_state_id
        )

    async def add_card(self, player_id: str) -> Card:
        """Give a player a new blank card in hand."""
        with self.store.transaction() as repo:
            require_player(repo, player_id)
            card = Card(player_id=player_id)
            repo.insert_card(card)
        return card

    async def delete_card(self, card_id: str) -> None:
        with self.store.transaction() as repo:
            require_card(repo, card_id)
            repo.delete_card(card_id)

    async def play_card(self, card_id: str) -> Card:
        """
        Put a card on display on behalf of its owner.

        Raises:
            NotFoundError: card, owner or game missing.
            ForbiddenError: the owner does not hold the turn.
        """
        with self.store.transaction() as repo:
            card = require_card(repo, card_id)
            player = require_player(repo, card.player_id)
            game_state = require_game_state(repo, player.game_state_id)
            log = logger.with_context(game_id=game_state.id, player_id=player.id)

            whose_turn = game_state.which_players_turn()
            if whose_turn is None or whose_turn.id != player.id:
                log.warning(f"Rejected out-of-turn play of card {card_id}")
                raise ForbiddenError(
                    FORBIDDEN_TO_PLAY_CARD,
                    f"It is not player {player.id}'s turn to play",
                )

            self._clear_display(repo, game_state.id)
            card.card_status = CardStatus.ONDISPLAY
            repo.update_card(card)

            player.last_turn_completed_timestamp = utc_now()
            repo.update_player(player)

            game_state = require_game_state(repo, game_state.id)

        log.info(f"Card {card_id} played")
        await self._turn_taken(game_state.id, game_state)
        return card

    async def update_card(
        self,
        card_id: str,
        content: Optional[str] = None,
        card_status: Optional[CardStatus] = None,
        num_chips: Optional[int] = None,
    ) -> Card:
        """
        Apply a partial update to a card.

        Only the fields that are not None change. Moving a card straight
        from INHAND to ONTABLE takes the owner's turn.
        """
        if num_chips is not None and num_chips < 0:
            raise ConflictError(INVALID_NUM_CHIPS, "A card cannot hold a negative number of chips")

        turn_taken = False
        with self.store.transaction() as repo:
            card = require_card(repo, card_id)
            player = require_player(repo, card.player_id)
            game_state_id = require_game_state(repo, player.game_state_id).id

            if content is not None:
                card.content = content

            if card_status is not None:
                if card_status == CardStatus.ONTABLE and card.card_status == CardStatus.INHAND:
                    self._clear_display(repo, game_state_id)
                    player.last_turn_completed_timestamp = utc_now()
                    repo.update_player(player)
                    turn_taken = True
                elif card_status == CardStatus.ONDISPLAY and card.card_status != CardStatus.ONDISPLAY:
                    self._clear_display(repo, game_state_id)
                card.card_status = card_status

            if num_chips is not None:
                card.num_chips = num_chips

            repo.update_card(card)

            if turn_taken:
                game_state = require_game_state(repo, game_state_id)

        if turn_taken:
            logger.with_context(game_id=game_state_id, player_id=player.id).info(
                f"Card {card_id} moved from hand to table"
            )
            await self._turn_taken(game_state_id, game_state)
        return card

    async def _turn_taken(self, game_state_id: str, game_state: GameState) -> None:
        await self.subscriptions.notify_turn(game_state_id, game_state.which_players_turn())
        self.metrics.increment(CARD_PLAYED, game=game_state_id)
