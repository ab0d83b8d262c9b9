"""
Centralized configuration for the RDFPoker server.

Configuration is loaded from (in order of precedence):
1. Environment variables
2. .env file (if exists)
3. Default values

Usage:
    from config import config
    print(config.PORT)
    print(config.rules_defaults.chips_allotted_per_player)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


DISPLAY_SCOPE_GLOBAL = "global"
DISPLAY_SCOPE_GAME = "game"


def get_env(key: str, default: str = "") -> str:
    """Get environment variable with default."""
    return os.environ.get(key, default)


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    val = os.environ.get(key, "").lower()
    if val in ("true", "1", "yes", "on"):
        return True
    if val in ("false", "0", "no", "off"):
        return False
    return default


def get_env_int(key: str, default: int = 0) -> int:
    """Get integer environment variable."""
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


@dataclass
class RulesDefaults:
    """Rules a freshly created game starts with."""
    prompt: str = "Sweet, thought-provoking prompt"
    max_cards_in_hand: int = 5
    chips_allotted_per_player: int = 3
    preparation_timer_duration: int = 5
    turn_timer_duration: int = 1
    betting_timer_duration: int = 1
    min_chips_for_card_post_game_discussion: int = 1
    min_card_contribution: int = 1


@dataclass
class ServerConfig:
    """Server configuration."""
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # Database
    DATABASE_PATH: str = "rdfpoker.db"

    # "global" keeps a single display slot across every game,
    # "game" gives each game its own.
    DISPLAY_SCOPE: str = DISPLAY_SCOPE_GLOBAL

    # Admin listing is off in production unless explicitly enabled
    ADMIN_ENDPOINTS_ENABLED: bool = True

    # Server-sent events
    SSE_KEEPALIVE_SECONDS: int = 15
    SSE_QUEUE_SIZE: int = 100
    MAX_SUBSCRIBERS_PER_GAME: int = 50

    rules_defaults: RulesDefaults = field(default_factory=RulesDefaults)

    @property
    def display_is_global(self) -> bool:
        return self.DISPLAY_SCOPE != DISPLAY_SCOPE_GAME

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Load configuration from environment variables."""
        environment = get_env("ENVIRONMENT", "development")
        display_scope = get_env("DISPLAY_SCOPE", DISPLAY_SCOPE_GLOBAL).lower()
        if display_scope not in (DISPLAY_SCOPE_GLOBAL, DISPLAY_SCOPE_GAME):
            display_scope = DISPLAY_SCOPE_GLOBAL

        return cls(
            HOST=get_env("HOST", "0.0.0.0"),
            PORT=get_env_int("PORT", 8080),
            DEBUG=get_env_bool("DEBUG", False),
            LOG_LEVEL=get_env("LOG_LEVEL", "INFO"),
            ENVIRONMENT=environment,
            DATABASE_PATH=get_env("DATABASE_PATH", "rdfpoker.db"),
            DISPLAY_SCOPE=display_scope,
            ADMIN_ENDPOINTS_ENABLED=get_env_bool(
                "ADMIN_ENDPOINTS_ENABLED", environment != "production"
            ),
            SSE_KEEPALIVE_SECONDS=get_env_int("SSE_KEEPALIVE_SECONDS", 15),
            SSE_QUEUE_SIZE=get_env_int("SSE_QUEUE_SIZE", 100),
            MAX_SUBSCRIBERS_PER_GAME=get_env_int("MAX_SUBSCRIBERS_PER_GAME", 50),
            rules_defaults=RulesDefaults(
                prompt=get_env("DEFAULT_PROMPT", "Sweet, thought-provoking prompt"),
                max_cards_in_hand=get_env_int("DEFAULT_MAX_CARDS_IN_HAND", 5),
                chips_allotted_per_player=get_env_int("DEFAULT_CHIPS_PER_PLAYER", 3),
                preparation_timer_duration=get_env_int("DEFAULT_PREPARATION_TIMER", 5),
                turn_timer_duration=get_env_int("DEFAULT_TURN_TIMER", 1),
                betting_timer_duration=get_env_int("DEFAULT_BETTING_TIMER", 1),
                min_chips_for_card_post_game_discussion=get_env_int(
                    "DEFAULT_MIN_CHIPS_FOR_DISCUSSION", 1
                ),
                min_card_contribution=get_env_int("DEFAULT_MIN_CARD_CONTRIBUTION", 1),
            ),
        )


# Global config instance - loaded once at module import
config = ServerConfig.from_env()
