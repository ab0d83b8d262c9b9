"""Load-or-raise helpers shared by the game services."""

from errors import card_not_found, game_state_not_found, player_not_found, rules_not_found
from models.game_state import Card, GameState, Player, Rules
from stores.game_store import GameRepository


def require_game_state(repo: GameRepository, game_state_id: str) -> GameState:
    game_state = repo.get_game_state(game_state_id)
    if game_state is None:
        raise game_state_not_found(game_state_id)
    return game_state


def require_rules(game_state: GameState) -> Rules:
    if game_state.rules is None:
        raise rules_not_found(game_state.id)
    return game_state.rules


def require_player(repo: GameRepository, player_id: str) -> Player:
    player = repo.get_player(player_id)
    if player is None:
        raise player_not_found(player_id)
    return player


def require_card(repo: GameRepository, card_id: str) -> Card:
    card = repo.get_card(card_id)
    if card is None:
        raise card_not_found(card_id)
    return card
