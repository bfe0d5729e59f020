# src/models/user_preference.py

from typing import Optional, Set
import sqlite3

PREF_TOURNAMENT_ID  = "tournament_id"
PREF_ROUND          = "round"


class UserPreference:
    """
    Last used tournament/round and the watch-list, stored in SQLite.
    Each value is read and written on its own; nothing is atomic across keys.
    """

    def __init__(self, cursor: sqlite3.Cursor):
        self.cursor = cursor

    def _get(self, key: str) -> Optional[str]:
        self.cursor.execute("SELECT pref_value FROM user_preference WHERE pref_key = ?", (key,))
        row = self.cursor.fetchone()
        return row[0] if row else None

    def _set(self, key: str, value: str) -> None:
        self.cursor.execute("""
            INSERT INTO user_preference (pref_key, pref_value)
            VALUES (?, ?)
            ON CONFLICT(pref_key) DO UPDATE SET
                pref_value  = excluded.pref_value,
                row_updated = CURRENT_TIMESTAMP
        """, (key, value))
        self.cursor.connection.commit()

    @staticmethod
    def _as_int(value: Optional[str]) -> Optional[int]:
        try:
            return int(value) if value is not None else None
        except ValueError:
            return None

    def get_tournament_id(self) -> Optional[int]:
        return self._as_int(self._get(PREF_TOURNAMENT_ID))

    def save_tournament_id(self, tournament_id: int) -> None:
        self._set(PREF_TOURNAMENT_ID, str(tournament_id))

    def get_round(self) -> Optional[int]:
        return self._as_int(self._get(PREF_ROUND))

    def save_round(self, round_no: int) -> None:
        self._set(PREF_ROUND, str(round_no))

    def get_watch_list(self) -> Set[str]:
        self.cursor.execute("SELECT player_name FROM watch_list_player")
        return {row[0] for row in self.cursor.fetchall()}

    def add_to_watch_list(self, player_name: str) -> None:
        self.cursor.execute(
            "INSERT OR IGNORE INTO watch_list_player (player_name) VALUES (?)",
            (player_name,)
        )
        self.cursor.connection.commit()

    def remove_from_watch_list(self, player_name: str) -> None:
        self.cursor.execute("DELETE FROM watch_list_player WHERE player_name = ?", (player_name,))
        self.cursor.connection.commit()
