"""Stores package for RDFPoker persistence."""

from .game_store import GameStore, GameRepository, get_game_store, close_game_store

__all__ = [
    "GameStore",
    "GameRepository",
    "get_game_store",
    "close_game_store",
]
