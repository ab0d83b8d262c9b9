"""
Tests for the player lifecycle: joining, editing, betting and dealer swaps.

Run with: pytest test_player_service.py -v
"""

import pytest

from errors import (
    CARD_NOT_FOUND,
    DEALER_ALREADY_EXISTS,
    GAME_STATE_NOT_FOUND,
    INVALID_DEALER_SWAP,
    INVALID_NUM_CHIPS,
    NOT_ENOUGH_CHIPS,
    PLAYER_ALREADY_EXISTS,
    PLAYER_NOT_FOUND,
    RULES_NOT_FOUND,
    ConflictError,
    NotFoundError,
)
from models.game_state import Card, GameState
from services.game_state_service import GameStateService
from services.metrics import PLAYER_CREATED, MetricsRegistry
from services.player_service import PlayerService
from services.subscriptions import SubscriptionManager
from stores.game_store import GameStore


@pytest.fixture
def store(tmp_path):
    return GameStore(db_path=str(tmp_path / "rdfpoker.db"))


@pytest.fixture
def metrics():
    return MetricsRegistry()


@pytest.fixture
def games(store, metrics):
    return GameStateService(store, SubscriptionManager(), metrics)


@pytest.fixture
def service(store, metrics):
    return PlayerService(store, metrics)


def give_card(store, player_id, content="a card"):
    card = Card(player_id=player_id, content=content)
    with store.transaction() as repo:
        repo.insert_card(card)
    return card


# =============================================================================
# create_player
# =============================================================================


class TestCreatePlayer:

    @pytest.mark.asyncio
    async def test_player_gets_allotted_chips(self, games, service, metrics):
        game = await games.create_game()

        player = await service.create_player(game.id, nick_name="alice")

        assert player.num_chips == 3
        assert player.game_state_id == game.id
        assert player.is_dealer is False
        assert metrics.get(PLAYER_CREATED, game=game.id) == 1

    @pytest.mark.asyncio
    async def test_nickname_is_optional_and_not_unique_when_missing(self, games, service):
        game = await games.create_game()

        first = await service.create_player(game.id)
        second = await service.create_player(game.id)

        assert first.id != second.id
        assert first.nick_name is None

    @pytest.mark.asyncio
    async def test_duplicate_nickname_rejected(self, games, service):
        game = await games.create_game()
        await service.create_player(game.id, nick_name="alice")

        with pytest.raises(ConflictError) as exc_info:
            await service.create_player(game.id, nick_name="alice")
        assert exc_info.value.code == PLAYER_ALREADY_EXISTS

    @pytest.mark.asyncio
    async def test_nickname_check_is_case_sensitive_and_per_game(self, games, service):
        game = await games.create_game()
        other = await games.create_game()
        await service.create_player(game.id, nick_name="alice")

        await service.create_player(game.id, nick_name="Alice")
        await service.create_player(other.id, nick_name="alice")

    @pytest.mark.asyncio
    async def test_second_dealer_rejected(self, store, games, service):
        """The existing dealer keeps the role after a failed second dealer."""
        game = await games.create_game()
        dealer = await service.create_player(game.id, nick_name="dealer", is_dealer=True)

        with pytest.raises(ConflictError) as exc_info:
            await service.create_player(game.id, nick_name="usurper", is_dealer=True)
        assert exc_info.value.code == DEALER_ALREADY_EXISTS

        with store.read() as repo:
            players = repo.get_players(game.id)
        assert [p.id for p in players] == [dealer.id]
        assert players[0].is_dealer is True

    @pytest.mark.asyncio
    async def test_unknown_game(self, service):
        with pytest.raises(NotFoundError) as exc_info:
            await service.create_player("missing", nick_name="alice")
        assert exc_info.value.code == GAME_STATE_NOT_FOUND

    @pytest.mark.asyncio
    async def test_game_without_rules(self, store, service):
        game = GameState()
        with store.transaction() as repo:
            repo.insert_game_state(game)

        with pytest.raises(NotFoundError) as exc_info:
            await service.create_player(game.id)
        assert exc_info.value.code == RULES_NOT_FOUND


# =============================================================================
# get_player / update_player
# =============================================================================


class TestUpdatePlayer:

    @pytest.mark.asyncio
    async def test_get_player_includes_cards(self, store, games, service):
        game = await games.create_game()
        player = await service.create_player(game.id, nick_name="alice")
        card = give_card(store, player.id)

        loaded = await service.get_player(player.id)

        assert [c.id for c in loaded.cards] == [card.id]

    @pytest.mark.asyncio
    async def test_get_missing_player(self, service):
        with pytest.raises(NotFoundError) as exc_info:
            await service.get_player("missing")
        assert exc_info.value.code == PLAYER_NOT_FOUND

    @pytest.mark.asyncio
    @pytest.mark.parametrize("num_chips", [0, 1, 3])
    async def test_chips_within_allotment(self, games, service, num_chips):
        game = await games.create_game()
        player = await service.create_player(game.id)

        updated = await service.update_player(player.id, num_chips=num_chips)

        assert updated.num_chips == num_chips

    @pytest.mark.asyncio
    @pytest.mark.parametrize("num_chips", [-1, 4])
    async def test_chips_outside_allotment(self, games, service, num_chips):
        game = await games.create_game()
        player = await service.create_player(game.id)

        with pytest.raises(ConflictError) as exc_info:
            await service.update_player(player.id, num_chips=num_chips)
        assert exc_info.value.code == INVALID_NUM_CHIPS
        assert (await service.get_player(player.id)).num_chips == 3

    @pytest.mark.asyncio
    async def test_rename_skips_uniqueness_check(self, games, service):
        game = await games.create_game()
        await service.create_player(game.id, nick_name="alice")
        bob = await service.create_player(game.id, nick_name="bob")

        renamed = await service.update_player(bob.id, nick_name="alice")

        assert renamed.nick_name == "alice"
        assert renamed.num_chips == 3


# =============================================================================
# place_bet
# =============================================================================


class TestPlaceBet:

    @pytest.mark.asyncio
    async def test_chip_moves_from_player_to_card(self, store, games, service):
        game = await games.create_game()
        player = await service.create_player(game.id)
        card = give_card(store, player.id)

        updated = await service.place_bet(player.id, card.id)

        assert updated.num_chips == 2
        with store.read() as repo:
            assert repo.get_card(card.id).num_chips == 1
            assert repo.get_player(player.id).num_chips == 2

    @pytest.mark.asyncio
    async def test_broke_player_cannot_bet(self, store, games, service):
        game = await games.create_game()
        player = await service.create_player(game.id)
        card = give_card(store, player.id)
        await service.update_player(player.id, num_chips=0)

        with pytest.raises(ConflictError) as exc_info:
            await service.place_bet(player.id, card.id)

        assert exc_info.value.code == NOT_ENOUGH_CHIPS
        with store.read() as repo:
            assert repo.get_card(card.id).num_chips == 0
            assert repo.get_player(player.id).num_chips == 0

    @pytest.mark.asyncio
    async def test_bet_until_broke(self, store, games, service):
        game = await games.create_game()
        player = await service.create_player(game.id)
        card = give_card(store, player.id)

        for _ in range(3):
            await service.place_bet(player.id, card.id)
        with pytest.raises(ConflictError):
            await service.place_bet(player.id, card.id)

        with store.read() as repo:
            assert repo.get_card(card.id).num_chips == 3

    @pytest.mark.asyncio
    async def test_missing_card_leaves_chips(self, games, service):
        game = await games.create_game()
        player = await service.create_player(game.id)

        with pytest.raises(NotFoundError) as exc_info:
            await service.place_bet(player.id, "missing")

        assert exc_info.value.code == CARD_NOT_FOUND
        assert (await service.get_player(player.id)).num_chips == 3


# =============================================================================
# swap_dealers
# =============================================================================


class TestSwapDealers:

    @pytest.mark.asyncio
    async def test_swap(self, games, service):
        game = await games.create_game()
        dealer = await service.create_player(game.id, nick_name="dealer", is_dealer=True)
        other = await service.create_player(game.id, nick_name="other")

        await service.swap_dealers(dealer.id, other.id)

        assert (await service.get_player(dealer.id)).is_dealer is False
        assert (await service.get_player(other.id)).is_dealer is True

    @pytest.mark.asyncio
    async def test_current_must_be_dealer(self, games, service):
        game = await games.create_game()
        await service.create_player(game.id, nick_name="dealer", is_dealer=True)
        a = await service.create_player(game.id, nick_name="a")
        b = await service.create_player(game.id, nick_name="b")

        with pytest.raises(ConflictError) as exc_info:
            await service.swap_dealers(a.id, b.id)
        assert exc_info.value.code == INVALID_DEALER_SWAP

    @pytest.mark.asyncio
    async def test_players_must_share_a_game(self, games, service):
        game = await games.create_game()
        other_game = await games.create_game()
        dealer = await service.create_player(game.id, is_dealer=True)
        stranger = await service.create_player(other_game.id)

        with pytest.raises(ConflictError) as exc_info:
            await service.swap_dealers(dealer.id, stranger.id)

        assert exc_info.value.code == INVALID_DEALER_SWAP
        assert (await service.get_player(dealer.id)).is_dealer is True

    @pytest.mark.asyncio
    async def test_missing_player(self, games, service):
        game = await games.create_game()
        dealer = await service.create_player(game.id, is_dealer=True)

        with pytest.raises(NotFoundError) as exc_info:
            await service.swap_dealers(dealer.id, "missing")
        assert exc_info.value.code == PLAYER_NOT_FOUND
