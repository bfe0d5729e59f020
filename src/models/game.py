# src/models/game.py

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Dict, Any, Iterable, List, Optional, Tuple
import sqlite3

'''
    ### Table definition for game (see db.create_tables)

    game_id, tournament_id, round_no, table_no,
    player1_name, player1_rating, player1_points,
    result, raw_result,
    player2_name, player2_rating, player2_points,
    finished_at, observed_at, row_created

    UNIQUE (tournament_id, round_no, table_no)
'''

UNPLAYED_MARKER = "-"

# Spaces are removed from the result before lookup
RESULT_POINTS: Dict[str, Tuple[float, float]] = {
    "1-0":  (1.0, 0.0),
    "0-1":  (0.0, 1.0),
    "X-X":  (0.5, 0.5),
    "½-½":  (0.5, 0.5),
    "1-0F": (1.0, 0.0),
    "+/-":  (1.0, 0.0),
    "0-1F": (0.0, 1.0),
    "-/+":  (0.0, 1.0),
}

TABLE_COLUMNS = [
    "game_id",
    "tournament_id",
    "round_no",
    "table_no",
    "player1_name",
    "player1_rating",
    "player1_points",
    "result",
    "raw_result",
    "player2_name",
    "player2_rating",
    "player2_points",
    "finished_at",
    "observed_at",
]


def make_game_id(tournament_id: int, round_no: int, table_no: int) -> str:
    return f"{tournament_id}_{round_no}_{table_no}"

def is_finished_result(result: Optional[str]) -> bool:
    text = (result or "").strip()
    return bool(text) and text != UNPLAYED_MARKER

def result_points(result: Optional[str]) -> Tuple[float, float]:
    return RESULT_POINTS.get((result or "").replace(" ", ""), (0.0, 0.0))


@dataclass
class Game:
    tournament_id:          int
    round_no:               int
    table_no:               int
    player1_name:           str             = ""
    player1_rating:         str             = ""
    player1_points:         str             = ""
    result:                 str             = ""
    raw_result:             str             = ""
    player2_name:           str             = ""
    player2_rating:         str             = ""
    player2_points:         str             = ""
    finished_at:            Optional[int]   = None      # epoch millis, set once when first seen finished
    observed_at:            int             = 0         # epoch millis of the fetch that produced the row
    game_id:                str             = ""

    def __post_init__(self):
        if not self.game_id:
            self.game_id = make_game_id(self.tournament_id, self.round_no, self.table_no)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Game":
        return cls(**{k: d.get(k) for k in {f.name for f in fields(cls)} if k in d})

    def with_finished_at(self, finished_at: Optional[int]) -> "Game":
        return replace(self, finished_at=finished_at)

    def is_finished(self) -> bool:
        return is_finished_result(self.result)

    def points(self) -> Tuple[float, float]:
        return result_points(self.result)

    def player_names(self) -> Tuple[str, str]:
        return self.player1_name, self.player2_name

    def involves_any(self, names: Iterable[str]) -> bool:
        names = set(names)
        return self.player1_name in names or self.player2_name in names

    def formatted_result(self) -> str:
        return f"{self.player1_name} ({self.player1_rating}) {self.result} {self.player2_name} ({self.player2_rating})"

    # ---------------------------------------------------------------
    # Storage, keyed by (tournament_id, round_no)
    # ---------------------------------------------------------------

    @classmethod
    def _from_rows(cls, cursor: sqlite3.Cursor) -> List["Game"]:
        columns = [col[0] for col in cursor.description]
        return [cls.from_dict(dict(zip(columns, row))) for row in cursor.fetchall()]

    @classmethod
    def get_for_round(cls, cursor: sqlite3.Cursor, tournament_id: int, round_no: int) -> List["Game"]:
        """All stored games of the round, in table order."""
        cursor.execute(f"""
            SELECT {', '.join(TABLE_COLUMNS)}
            FROM game
            WHERE tournament_id = ? AND round_no = ?
            ORDER BY table_no
        """, (tournament_id, round_no))
        return cls._from_rows(cursor)

    @classmethod
    def get_recent_for_round(cls, cursor: sqlite3.Cursor, tournament_id: int, round_no: int) -> List["Game"]:
        """
        Most recent first: by finished_at when the game is finished, else by observed_at.
        """
        cursor.execute(f"""
            SELECT {', '.join(TABLE_COLUMNS)}
            FROM game
            WHERE tournament_id = ? AND round_no = ?
            ORDER BY COALESCE(finished_at, observed_at) DESC, table_no
        """, (tournament_id, round_no))
        return cls._from_rows(cursor)

    @classmethod
    def count_for_round(cls, cursor: sqlite3.Cursor, tournament_id: int, round_no: int) -> int:
        cursor.execute(
            "SELECT COUNT(*) FROM game WHERE tournament_id = ? AND round_no = ?",
            (tournament_id, round_no)
        )
        return cursor.fetchone()[0]

    @classmethod
    def remove_for_round(cls, cursor: sqlite3.Cursor, tournament_id: int, round_no: int) -> int:
        cursor.execute(
            "DELETE FROM game WHERE tournament_id = ? AND round_no = ?",
            (tournament_id, round_no)
        )
        return cursor.rowcount

    @classmethod
    def replace_for_round(
        cls,
        cursor: sqlite3.Cursor,
        tournament_id: int,
        round_no: int,
        games: List["Game"]
    ) -> int:
        """
        Replace the whole stored batch of the round with `games`.
        The caller owns the transaction (commit/rollback).
        """
        for game in games:
            if (game.tournament_id, game.round_no) != (tournament_id, round_no):
                raise ValueError(f"Game {game.game_id} does not belong to tournament {tournament_id} round {round_no}")

        cls.remove_for_round(cursor, tournament_id, round_no)
        cursor.executemany(f"""
            INSERT INTO game ({', '.join(TABLE_COLUMNS)})
            VALUES ({', '.join(':' + c for c in TABLE_COLUMNS)})
        """, [g.to_dict() for g in games])
        return len(games)
