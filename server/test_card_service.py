"""
Tests for playing and editing cards.

Run with: pytest test_card_service.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from errors import (
    CARD_NOT_FOUND,
    FORBIDDEN_TO_PLAY_CARD,
    INVALID_NUM_CHIPS,
    PLAYER_NOT_FOUND,
    ConflictError,
    ForbiddenError,
    NotFoundError,
)
from models.events import NotificationType
from models.game_state import Card, CardStatus
from services.card_service import CardService
from services.game_state_service import GameStateService
from services.metrics import CARD_PLAYED, MetricsRegistry
from services.player_service import PlayerService
from services.subscriptions import SubscriptionManager
from stores.game_store import GameStore

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path):
    return GameStore(db_path=str(tmp_path / "rdfpoker.db"))


@pytest.fixture
def subscriptions():
    return SubscriptionManager()


@pytest.fixture
def metrics():
    return MetricsRegistry()


@pytest.fixture
def games(store, subscriptions, metrics):
    return GameStateService(store, subscriptions, metrics)


@pytest.fixture
def players(store, metrics):
    return PlayerService(store, metrics)


@pytest.fixture
def cards(store, subscriptions, metrics):
    return CardService(store, subscriptions, metrics)


async def seat(store, players, game_state_id, nick_name, offset_seconds, contents):
    """Create a player with a fixed timestamp and cards holding the given content."""
    player = await players.create_player(game_state_id, nick_name=nick_name)
    with store.transaction() as repo:
        player.last_turn_completed_timestamp = T0 + timedelta(seconds=offset_seconds)
        repo.update_player(player)
    card_ids = []
    for content in contents:
        with store.transaction() as repo:
            card = Card(player_id=player.id, content=content)
            repo.insert_card(card)
        card_ids.append(card.id)
    return player, card_ids


def drain(subscriber):
    events = []
    while not subscriber.queue.empty():
        events.append(subscriber.queue.get_nowait())
    return events


# =============================================================================
# play_card
# =============================================================================


class TestPlayCard:

    @pytest.mark.asyncio
    async def test_turn_passes_to_next_player(self, store, games, players, cards, subscriptions, metrics):
        """A (T0) plays, then B (T1) holds the turn."""
        game = await games.create_game()
        alice, alice_cards = await seat(store, players, game.id, "alice", 0, ["a1", "a2"])
        bob, _ = await seat(store, players, game.id, "bob", 1, ["b1"])
        subscriber = await subscriptions.subscribe(game.id)

        assert (await games.get_turn(game.id)).id == alice.id

        played = await cards.play_card(alice_cards[0])

        assert played.card_status == CardStatus.ONDISPLAY
        assert (await games.get_turn(game.id)).id == bob.id

        events = drain(subscriber)
        assert [e.event_type for e in events] == [NotificationType.TURN]
        assert events[0].data == {"playerId": bob.id, "playerNickName": "bob"}
        assert metrics.get(CARD_PLAYED, game=game.id) == 1

    @pytest.mark.asyncio
    async def test_previous_display_moves_to_table(self, store, games, players, cards):
        game = await games.create_game()
        _, alice_cards = await seat(store, players, game.id, "alice", 0, ["a1"])
        _, bob_cards = await seat(store, players, game.id, "bob", 1, ["b1"])

        await cards.play_card(alice_cards[0])
        await cards.play_card(bob_cards[0])

        snapshot = await games.get_state(game.id)
        assert snapshot.card_displayed.id == bob_cards[0]
        assert [c.id for c in snapshot.cards_on_table] == [alice_cards[0]]

    @pytest.mark.asyncio
    async def test_player_timestamp_updated(self, store, games, players, cards):
        game = await games.create_game()
        alice, alice_cards = await seat(store, players, game.id, "alice", 0, ["a1"])

        await cards.play_card(alice_cards[0])

        refreshed = await players.get_player(alice.id)
        assert refreshed.last_turn_completed_timestamp > T0

    @pytest.mark.asyncio
    async def test_out_of_turn_is_forbidden_and_changes_nothing(self, store, games, players, cards, subscriptions):
        game = await games.create_game()
        alice, _ = await seat(store, players, game.id, "alice", 0, ["a1"])
        bob, bob_cards = await seat(store, players, game.id, "bob", 1, ["b1"])
        subscriber = await subscriptions.subscribe(game.id)

        with pytest.raises(ForbiddenError) as exc_info:
            await cards.play_card(bob_cards[0])

        assert exc_info.value.code == FORBIDDEN_TO_PLAY_CARD
        assert exc_info.value.status_code == 403
        refreshed = await players.get_player(bob.id)
        assert refreshed.cards[0].card_status == CardStatus.INHAND
        assert refreshed.last_turn_completed_timestamp == T0 + timedelta(seconds=1)
        assert (await games.get_turn(game.id)).id == alice.id
        assert drain(subscriber) == []

    @pytest.mark.asyncio
    async def test_forbidden_when_nobody_has_the_turn(self, store, games, players, cards):
        """A card already on display cannot be replayed once its owner's hand is empty."""
        game = await games.create_game()
        _, alice_cards = await seat(store, players, game.id, "alice", 0, ["a1"])
        await cards.play_card(alice_cards[0])

        with pytest.raises(ForbiddenError):
            await cards.play_card(alice_cards[0])

    @pytest.mark.asyncio
    async def test_last_play_notifies_nobody(self, store, games, players, cards, subscriptions):
        game = await games.create_game()
        _, alice_cards = await seat(store, players, game.id, "alice", 0, ["a1"])
        subscriber = await subscriptions.subscribe(game.id)

        await cards.play_card(alice_cards[0])

        events = drain(subscriber)
        assert events[0].data == {"playerId": None, "playerNickName": None}

    @pytest.mark.asyncio
    async def test_missing_card(self, cards):
        with pytest.raises(NotFoundError) as exc_info:
            await cards.play_card("missing")
        assert exc_info.value.code == CARD_NOT_FOUND


# =============================================================================
# Display slot scope
# =============================================================================


class TestDisplaySlot:

    @pytest.mark.asyncio
    async def test_single_display_slot_across_games(self, store, games, players, cards):
        game_a = await games.create_game()
        game_b = await games.create_game()
        _, a_cards = await seat(store, players, game_a.id, "alice", 0, ["a1"])
        _, b_cards = await seat(store, players, game_b.id, "bob", 0, ["b1"])

        await cards.play_card(a_cards[0])
        await cards.play_card(b_cards[0])

        with store.read() as repo:
            assert repo.get_card(a_cards[0]).card_status == CardStatus.ONTABLE
            assert repo.get_card(b_cards[0]).card_status == CardStatus.ONDISPLAY

    @pytest.mark.asyncio
    async def test_display_slot_per_game(self, store, games, players, subscriptions, metrics):
        per_game_cards = CardService(store, subscriptions, metrics, display_is_global=False)
        game_a = await games.create_game()
        game_b = await games.create_game()
        _, a_cards = await seat(store, players, game_a.id, "alice", 0, ["a1"])
        _, b_cards = await seat(store, players, game_b.id, "bob", 0, ["b1"])

        await per_game_cards.play_card(a_cards[0])
        await per_game_cards.play_card(b_cards[0])

        with store.read() as repo:
            assert repo.get_card(a_cards[0]).card_status == CardStatus.ONDISPLAY
            assert repo.get_card(b_cards[0]).card_status == CardStatus.ONDISPLAY


# =============================================================================
# add / update / delete
# =============================================================================


class TestCardEdits:

    @pytest.mark.asyncio
    async def test_add_card_starts_blank_in_hand(self, games, players, cards):
        game = await games.create_game()
        player = await players.create_player(game.id, nick_name="alice")

        card = await cards.add_card(player.id)

        assert card.player_id == player.id
        assert card.content == ""
        assert card.card_status == CardStatus.INHAND
        assert card.num_chips == 0

    @pytest.mark.asyncio
    async def test_add_card_for_missing_player(self, cards):
        with pytest.raises(NotFoundError) as exc_info:
            await cards.add_card("missing")
        assert exc_info.value.code == PLAYER_NOT_FOUND

    @pytest.mark.asyncio
    async def test_update_merges_only_given_fields(self, store, games, players, cards, subscriptions):
        game = await games.create_game()
        _, alice_cards = await seat(store, players, game.id, "alice", 0, ["draft"])
        subscriber = await subscriptions.subscribe(game.id)

        card = await cards.update_card(alice_cards[0], content="final")
        card = await cards.update_card(alice_cards[0], num_chips=2)

        assert card.content == "final"
        assert card.num_chips == 2
        assert card.card_status == CardStatus.INHAND
        assert drain(subscriber) == []

    @pytest.mark.asyncio
    async def test_update_hand_to_table_takes_turn_without_ownership_check(
        self, store, games, players, cards, subscriptions, metrics
    ):
        game = await games.create_game()
        alice, alice_cards = await seat(store, players, game.id, "alice", 0, ["a1"])
        bob, bob_cards = await seat(store, players, game.id, "bob", 1, ["b1", "b2"])
        subscriber = await subscriptions.subscribe(game.id)
        await cards.play_card(alice_cards[0])
        drain(subscriber)

        # Bob has the turn now, but Alice's card is already out; move Bob's straight to the table
        card = await cards.update_card(bob_cards[0], card_status=CardStatus.ONTABLE)

        assert card.card_status == CardStatus.ONTABLE
        with store.read() as repo:
            assert repo.get_card(alice_cards[0]).card_status == CardStatus.ONTABLE
            assert repo.get_player(bob.id).last_turn_completed_timestamp > T0 + timedelta(seconds=1)
        events = drain(subscriber)
        assert [e.event_type for e in events] == [NotificationType.TURN]
        assert metrics.get(CARD_PLAYED, game=game.id) == 2

    @pytest.mark.asyncio
    async def test_update_to_display_keeps_single_display(self, store, games, players, cards):
        game = await games.create_game()
        _, alice_cards = await seat(store, players, game.id, "alice", 0, ["a1", "a2"])
        await cards.play_card(alice_cards[0])

        await cards.update_card(alice_cards[1], card_status=CardStatus.ONDISPLAY)

        snapshot = await games.get_state(game.id)
        assert snapshot.card_displayed.id == alice_cards[1]
        assert [c.id for c in snapshot.cards_on_table] == [alice_cards[0]]

    @pytest.mark.asyncio
    async def test_negative_chips_rejected(self, store, games, players, cards):
        game = await games.create_game()
        _, alice_cards = await seat(store, players, game.id, "alice", 0, ["a1"])

        with pytest.raises(ConflictError) as exc_info:
            await cards.update_card(alice_cards[0], num_chips=-1)
        assert exc_info.value.code == INVALID_NUM_CHIPS

    @pytest.mark.asyncio
    async def test_delete_card(self, store, games, players, cards):
        game = await games.create_game()
        _, alice_cards = await seat(store, players, game.id, "alice", 0, ["a1"])

        await cards.delete_card(alice_cards[0])

        with pytest.raises(NotFoundError) as exc_info:
            await cards.delete_card(alice_cards[0])
        assert exc_info.value.code == CARD_NOT_FOUND
