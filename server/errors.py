"""
Domain errors for the RDFPoker server.

Every error carries a stable code and the HTTP status it maps to. main.py
renders them as {"error": code, "detail": message}.
"""

# Error codes
GAME_STATE_NOT_FOUND = "GAME_STATE_NOT_FOUND"
PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
CARD_NOT_FOUND = "CARD_NOT_FOUND"
RULES_NOT_FOUND = "RULES_NOT_FOUND"
PLAYER_ALREADY_EXISTS = "PLAYER_ALREADY_EXISTS"
DEALER_ALREADY_EXISTS = "DEALER_ALREADY_EXISTS"
NOT_ENOUGH_CHIPS = "NOT_ENOUGH_CHIPS"
INVALID_NUM_CHIPS = "INVALID_NUM_CHIPS"
PHASE_DOES_NOT_EXIST = "PHASE_DOES_NOT_EXIST"
INVALID_RULES = "INVALID_RULES"
WRONG_PHASE_TO_UPDATE_RULES = "WRONG_PHASE_TO_UPDATE_RULES"
INVALID_DEALER_SWAP = "INVALID_DEALER_SWAP"
FORBIDDEN_TO_PLAY_CARD = "FORBIDDEN_TO_PLAY_CARD"
INVALID_REQUEST = "INVALID_REQUEST"


class GameError(Exception):
    """Base exception for game-related errors."""

    status_code = 400

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


class NotFoundError(GameError):
    """A referenced game, player, card or rules record does not exist."""


class ConflictError(GameError):
    """The request breaks a business rule."""


class ForbiddenError(GameError):
    """The action is not allowed for this player right now."""

    status_code = 403


def game_state_not_found(game_state_id: str) -> NotFoundError:
    return NotFoundError(GAME_STATE_NOT_FOUND, f"Game state {game_state_id} does not exist")


def player_not_found(player_id: str) -> NotFoundError:
    return NotFoundError(PLAYER_NOT_FOUND, f"Player {player_id} does not exist")


def card_not_found(card_id: str) -> NotFoundError:
    return NotFoundError(CARD_NOT_FOUND, f"Card {card_id} does not exist")


def rules_not_found(game_state_id: str) -> NotFoundError:
    return NotFoundError(RULES_NOT_FOUND, f"Game state {game_state_id} has no rules")
