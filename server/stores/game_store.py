"""
SQLite-backed game store for the RDFPoker server.

Tables mirror the ownership graph: game_states -> rules (one-to-one),
game_states -> players -> cards, with ON DELETE CASCADE on every child.

All reads and writes go through a GameRepository bound to one connection:

    with store.transaction() as repo:
        game_state = repo.get_game_state(game_state_id)
        ...

transaction() opens the connection with BEGIN IMMEDIATE, so writers are
serialized by SQLite's write lock and everything done inside the block
commits or rolls back together.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

from errors import ConflictError, INVALID_RULES
from models.game_state import Card, CardStatus, GameState, Phase, Player, Rules

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
-- Games (seq keeps creation order)
CREATE TABLE IF NOT EXISTS game_states (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT UNIQUE NOT NULL,
    phase TEXT NOT NULL DEFAULT 'PREGAME'
        CHECK (phase IN ('PREGAME', 'PREPARATION', 'TURN', 'BETTING', 'POSTGAME')),
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Rules (exactly one per game created through the API)
CREATE TABLE IF NOT EXISTS rules (
    id TEXT PRIMARY KEY,
    game_state_id TEXT UNIQUE NOT NULL REFERENCES game_states(id) ON DELETE CASCADE,
    prompt TEXT NOT NULL CHECK (length(trim(prompt)) > 0),
    max_cards_in_hand INTEGER NOT NULL CHECK (max_cards_in_hand BETWEEN 1 AND 6),
    chips_allotted_per_player INTEGER NOT NULL CHECK (chips_allotted_per_player BETWEEN 1 AND 5),
    preparation_timer_duration INTEGER NOT NULL CHECK (preparation_timer_duration > 0),
    turn_timer_duration INTEGER NOT NULL CHECK (turn_timer_duration > 0),
    betting_timer_duration INTEGER NOT NULL CHECK (betting_timer_duration > 0),
    min_chips_for_card_post_game_discussion INTEGER NOT NULL
        CHECK (min_chips_for_card_post_game_discussion > 0),
    min_card_contribution INTEGER NOT NULL CHECK (min_card_contribution > 0)
);

-- Players (seq keeps creation order)
CREATE TABLE IF NOT EXISTS players (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT UNIQUE NOT NULL,
    game_state_id TEXT NOT NULL REFERENCES game_states(id) ON DELETE CASCADE,
    num_chips INTEGER NOT NULL DEFAULT 3 CHECK (num_chips >= 0),
    nick_name TEXT,
    is_dealer BOOLEAN NOT NULL DEFAULT 0,
    last_turn_completed_timestamp TEXT NOT NULL
);

-- Cards
CREATE TABLE IF NOT EXISTS cards (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT UNIQUE NOT NULL,
    player_id TEXT NOT NULL REFERENCES players(id) ON DELETE CASCADE,
    content TEXT NOT NULL DEFAULT '',
    card_status TEXT NOT NULL DEFAULT 'INHAND'
        CHECK (card_status IN ('INHAND', 'ONDISPLAY', 'ONTABLE')),
    num_chips INTEGER NOT NULL DEFAULT 0 CHECK (num_chips >= 0)
);

-- Indexes
CREATE INDEX IF NOT EXISTS idx_players_game_state_id ON players(game_state_id);
CREATE INDEX IF NOT EXISTS idx_cards_player_id ON cards(player_id);
CREATE INDEX IF NOT EXISTS idx_cards_card_status ON cards(card_status);
"""


class GameRepository:
    """Queries and writes for one open connection."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    # -------------------------------------------------------------------------
    # Games
    # -------------------------------------------------------------------------

    def insert_game_state(self, game_state: GameState) -> None:
        self.conn.execute(
            "INSERT INTO game_states (id, phase) VALUES (?, ?)",
            (game_state.id, game_state.phase.value),
        )

    def get_game_state(self, game_state_id: str) -> Optional[GameState]:
        """Load a game with its rules, players and their cards."""
        row = self.conn.execute(
            "SELECT id, phase FROM game_states WHERE id = ?",
            (game_state_id,),
        ).fetchone()
        if row is None:
            return None
        return self._load_game_state(row)

    def list_game_states(self) -> list[GameState]:
        rows = self.conn.execute(
            "SELECT id, phase FROM game_states ORDER BY seq"
        ).fetchall()
        return [self._load_game_state(row) for row in rows]

    def update_phase(self, game_state_id: str, phase: Phase) -> None:
        self.conn.execute(
            "UPDATE game_states SET phase = ? WHERE id = ?",
            (phase.value, game_state_id),
        )

    def _load_game_state(self, row: sqlite3.Row) -> GameState:
        return GameState(
            id=row["id"],
            phase=Phase(row["phase"]),
            players=self.get_players(row["id"]),
            rules=self.get_rules(row["id"]),
        )

    # -------------------------------------------------------------------------
    # Rules
    # -------------------------------------------------------------------------

    def insert_rules(self, rules: Rules) -> None:
        rules.validate()
        self._write_rules(
            """
            INSERT INTO rules (
                prompt, max_cards_in_hand, chips_allotted_per_player,
                preparation_timer_duration, turn_timer_duration, betting_timer_duration,
                min_chips_for_card_post_game_discussion, min_card_contribution,
                id, game_state_id
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            rules,
        )

    def update_rules(self, rules: Rules) -> None:
        rules.validate()
        self._write_rules(
            """
            UPDATE rules SET
                prompt = ?, max_cards_in_hand = ?, chips_allotted_per_player = ?,
                preparation_timer_duration = ?, turn_timer_duration = ?,
                betting_timer_duration = ?, min_chips_for_card_post_game_discussion = ?,
                min_card_contribution = ?
            WHERE id = ? AND game_state_id = ?
            """,
            rules,
        )

    def get_rules(self, game_state_id: str) -> Optional[Rules]:
        row = self.conn.execute(
            "SELECT * FROM rules WHERE game_state_id = ?",
            (game_state_id,),
        ).fetchone()
        if row is None:
            return None
        return Rules(
            id=row["id"],
            game_state_id=row["game_state_id"],
            prompt=row["prompt"],
            max_cards_in_hand=row["max_cards_in_hand"],
            chips_allotted_per_player=row["chips_allotted_per_player"],
            preparation_timer_duration=row["preparation_timer_duration"],
            turn_timer_duration=row["turn_timer_duration"],
            betting_timer_duration=row["betting_timer_duration"],
            min_chips_for_card_post_game_discussion=row["min_chips_for_card_post_game_discussion"],
            min_card_contribution=row["min_card_contribution"],
        )

    def _write_rules(self, sql: str, rules: Rules) -> None:
        try:
            self.conn.execute(
                sql,
                (
                    rules.prompt,
                    rules.max_cards_in_hand,
                    rules.chips_allotted_per_player,
                    rules.preparation_timer_duration,
                    rules.turn_timer_duration,
                    rules.betting_timer_duration,
                    rules.min_chips_for_card_post_game_discussion,
                    rules.min_card_contribution,
                    rules.id,
                    rules.game_state_id,
                ),
            )
        except sqlite3.IntegrityError as e:
            raise ConflictError(INVALID_RULES, f"Rules rejected by the store: {e}") from e

    # -------------------------------------------------------------------------
    # Players
    # -------------------------------------------------------------------------

    def insert_player(self, player: Player) -> None:
        self.conn.execute(
            """
            INSERT INTO players (
                id, game_state_id, num_chips, nick_name, is_dealer,
                last_turn_completed_timestamp
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                player.id,
                player.game_state_id,
                player.num_chips,
                player.nick_name,
                player.is_dealer,
                player.last_turn_completed_timestamp.isoformat(),
            ),
        )

    def get_player(self, player_id: str) -> Optional[Player]:
        row = self.conn.execute(
            "SELECT * FROM players WHERE id = ?",
            (player_id,),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_player(row)

    def get_players(self, game_state_id: str) -> list[Player]:
        """Players of a game in creation order, each with their cards."""
        rows = self.conn.execute(
            "SELECT * FROM players WHERE game_state_id = ? ORDER BY seq",
            (game_state_id,),
        ).fetchall()
        return [self._row_to_player(row) for row in rows]

    def nick_name_taken(self, game_state_id: str, nick_name: str) -> bool:
        row = self.conn.execute(
            "SELECT 1 FROM players WHERE game_state_id = ? AND nick_name = ? LIMIT 1",
            (game_state_id, nick_name),
        ).fetchone()
        return row is not None

    def dealer_exists(self, game_state_id: str) -> bool:
        row = self.conn.execute(
            "SELECT 1 FROM players WHERE game_state_id = ? AND is_dealer = 1 LIMIT 1",
            (game_state_id,),
        ).fetchone()
        return row is not None

    def update_player(self, player: Player) -> None:
        self.conn.execute(
            """
            UPDATE players SET
                num_chips = ?, nick_name = ?, is_dealer = ?, last_turn_completed_timestamp = ?
            WHERE id = ?
            """,
            (
                player.num_chips,
                player.nick_name,
                player.is_dealer,
                player.last_turn_completed_timestamp.isoformat(),
                player.id,
            ),
        )

    def set_chips_for_game(self, game_state_id: str, num_chips: int) -> int:
        """Overwrite every player's chip balance in a game. Returns rows changed."""
        cursor = self.conn.execute(
            "UPDATE players SET num_chips = ? WHERE game_state_id = ?",
            (num_chips, game_state_id),
        )
        return cursor.rowcount

    def _row_to_player(self, row: sqlite3.Row) -> Player:
        return Player(
            id=row["id"],
            game_state_id=row["game_state_id"],
            num_chips=row["num_chips"],
            nick_name=row["nick_name"],
            is_dealer=bool(row["is_dealer"]),
            last_turn_completed_timestamp=datetime.fromisoformat(row["last_turn_completed_timestamp"]),
            cards=self.get_cards_for_player(row["id"]),
        )

    # -------------------------------------------------------------------------
    # Cards
    # -------------------------------------------------------------------------

    def insert_card(self, card: Card) -> None:
        self.conn.execute(
            """
            INSERT INTO cards (id, player_id, content, card_status, num_chips)
            VALUES (?, ?, ?, ?, ?)
            """,
            (card.id, card.player_id, card.content, card.card_status.value, card.num_chips),
        )

    def get_card(self, card_id: str) -> Optional[Card]:
        row = self.conn.execute(
            "SELECT * FROM cards WHERE id = ?",
            (card_id,),
        ).fetchone()
        return self._row_to_card(row) if row else None

    def get_cards_for_player(self, player_id: str) -> list[Card]:
        rows = self.conn.execute(
            "SELECT * FROM cards WHERE player_id = ? ORDER BY seq",
            (player_id,),
        ).fetchall()
        return [self._row_to_card(row) for row in rows]

    def update_card(self, card: Card) -> None:
        self.conn.execute(
            "UPDATE cards SET content = ?, card_status = ?, num_chips = ? WHERE id = ?",
            (card.content, card.card_status.value, card.num_chips, card.id),
        )

    def delete_card(self, card_id: str) -> bool:
        cursor = self.conn.execute("DELETE FROM cards WHERE id = ?", (card_id,))
        return cursor.rowcount > 0

    def delete_cards(self, card_ids: list[str]) -> int:
        deleted = 0
        for card_id in card_ids:
            if self.delete_card(card_id):
                deleted += 1
        return deleted

    def move_displayed_cards_to_table(self, game_state_id: Optional[str] = None) -> list[str]:
        """
        Move ONDISPLAY cards to ONTABLE.

        With game_state_id=None every displayed card in the store moves;
        otherwise only the displayed cards of that game do.

        Returns:
            Ids of the cards that moved.
        """
        if game_state_id is None:
            rows = self.conn.execute(
                "SELECT id FROM cards WHERE card_status = ?",
                (CardStatus.ONDISPLAY.value,),
            ).fetchall()
        else:
            rows = self.conn.execute(
                """
                SELECT c.id FROM cards c
                JOIN players p ON p.id = c.player_id
                WHERE c.card_status = ? AND p.game_state_id = ?
                """,
                (CardStatus.ONDISPLAY.value, game_state_id),
            ).fetchall()

        card_ids = [row["id"] for row in rows]
        for card_id in card_ids:
            self.conn.execute(
                "UPDATE cards SET card_status = ? WHERE id = ?",
                (CardStatus.ONTABLE.value, card_id),
            )
        return card_ids

    def _row_to_card(self, row: sqlite3.Row) -> Card:
        return Card(
            id=row["id"],
            player_id=row["player_id"],
            content=row["content"],
            card_status=CardStatus(row["card_status"]),
            num_chips=row["num_chips"],
        )


class GameStore:
    """Owns the SQLite database file and hands out repositories."""

    def __init__(self, db_path: str = "rdfpoker.db"):
        self.db_path = Path(db_path)
        self._init_db()

    def _init_db(self) -> None:
        """Initialize database schema."""
        conn = self._connect()
        try:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.executescript(SCHEMA_SQL)
        finally:
            conn.close()
        logger.info(f"Game store ready at {self.db_path}")

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=10.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def transaction(self) -> Iterator[GameRepository]:
        """
        Open a write transaction.

        Commits when the block exits normally, rolls back on any exception
        and re-raises it.
        """
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield GameRepository(conn)
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()

    @contextmanager
    def read(self) -> Iterator[GameRepository]:
        """Open a read-only snapshot; nothing written here is kept."""
        conn = self._connect()
        try:
            conn.execute("BEGIN")
            try:
                yield GameRepository(conn)
            finally:
                conn.execute("ROLLBACK")
        finally:
            conn.close()

    def ping(self) -> bool:
        """Check the database answers a trivial query."""
        conn = self._connect()
        try:
            return conn.execute("SELECT 1").fetchone()[0] == 1
        finally:
            conn.close()


# Global game store instance (initialized on first use)
_game_store: Optional[GameStore] = None


def get_game_store(db_path: str) -> GameStore:
    """
    Get or create the global game store instance.

    Args:
        db_path: Path of the SQLite database file.

    Returns:
        GameStore instance.
    """
    global _game_store
    if _game_store is None:
        _game_store = GameStore(db_path)
    return _game_store


def close_game_store() -> None:
    """Drop the global game store."""
    global _game_store
    _game_store = None
