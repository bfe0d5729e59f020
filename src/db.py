
# db.py:

import sqlite3
from config import DB_NAME
import logging
import datetime
import os

# --- register adapters/converters once (Python 3.12+ friendly) ---
_ADAPTERS_REGISTERED = False

def get_conn(db_name: str = DB_NAME):

    try:
        _register_sqlite_date_time_adapters()

        if db_name != ":memory:":
            db_dir = os.path.dirname(os.path.abspath(db_name))
            os.makedirs(db_dir, exist_ok=True)

        # Enable parsing for declared column types (DATE/TIMESTAMP)
        conn = sqlite3.connect(
            db_name,
            detect_types=sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES
        )
        logging.debug(f"Connected to database: {db_name}")

        conn.execute("PRAGMA journal_mode = WAL;")
        conn.execute("PRAGMA synchronous = NORMAL;")
        conn.execute("PRAGMA temp_store = MEMORY;")
        conn.execute("PRAGMA foreign_keys = ON;")

        return conn, conn.cursor()

    except sqlite3.Error as e:
        print(f"❌ Database connection failed: {e}")
        raise


def _register_sqlite_date_time_adapters() -> None:
    global _ADAPTERS_REGISTERED
    if _ADAPTERS_REGISTERED:
        return

    # Serialize Python date/datetime -> ISO strings
    sqlite3.register_adapter(datetime.date, lambda d: d.isoformat())
    sqlite3.register_adapter(datetime.datetime, lambda dt: dt.isoformat(sep=" "))

    # Parse DB values back into Python objects for columns declared as DATE/TIMESTAMP
    sqlite3.register_converter("DATE", lambda b: datetime.date.fromisoformat(b.decode()))
    sqlite3.register_converter("TIMESTAMP", lambda b: datetime.datetime.fromisoformat(b.decode()))

    _ADAPTERS_REGISTERED = True

def create_tables(cursor):

    tables = {

        ############ GAMES ######################

        # One row per pairing of one round; the whole (tournament_id, round_no) batch
        # is replaced on every successful fetch cycle.
        # finished_at / observed_at are epoch milliseconds.
        "game":
        '''
            CREATE TABLE IF NOT EXISTS game (
                game_id                         TEXT PRIMARY KEY,
                tournament_id                   INTEGER NOT NULL,
                round_no                        INTEGER NOT NULL,
                table_no                        INTEGER NOT NULL,
                player1_name                    TEXT,
                player1_rating                  TEXT,
                player1_points                  TEXT,
                result                          TEXT,
                raw_result                      TEXT,
                player2_name                    TEXT,
                player2_rating                  TEXT,
                player2_points                  TEXT,
                finished_at                     INTEGER,
                observed_at                     INTEGER NOT NULL,
                row_created                     TIMESTAMP DEFAULT CURRENT_TIMESTAMP,

                UNIQUE (tournament_id, round_no, table_no)
            );
        ''',

        ############ PREFERENCES ######################

        "user_preference":
        '''
            CREATE TABLE IF NOT EXISTS user_preference (
                pref_key                        TEXT PRIMARY KEY,
                pref_value                      TEXT,
                row_updated                     TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );
        ''',

        "watch_list_player":
        '''
            CREATE TABLE IF NOT EXISTS watch_list_player (
                player_name                     TEXT PRIMARY KEY,
                row_created                     TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );
        ''',

        ############ DEBUG TABLES ######################

        "log_details":
        '''
            CREATE TABLE IF NOT EXISTS log_details (
                id                      INTEGER PRIMARY KEY AUTOINCREMENT,
                run_id                  TEXT NOT NULL,
                run_date                DATETIME DEFAULT CURRENT_TIMESTAMP,
                object_type             TEXT NOT NULL,      -- Same as parent run
                process_type            TEXT NOT NULL,      -- Same as parent run
                function_name           TEXT NOT NULL,
                filename                TEXT NOT NULL,
                context_json            TEXT,
                status                  TEXT NOT NULL,      -- 'error', 'warning', 'skipped', 'success'
                message                 TEXT NOT NULL,
                msg_id                  TEXT
            );
        ''',

        "log_runs":
        '''
            CREATE TABLE IF NOT EXISTS log_runs (
                id                      INTEGER PRIMARY KEY AUTOINCREMENT,
                run_id                  TEXT NOT NULL,
                run_date                DATETIME DEFAULT CURRENT_TIMESTAMP,
                object_type             TEXT NOT NULL,          -- e.g., 'game'
                process_type            TEXT NOT NULL,          -- e.g., 'update'
                records_processed       INTEGER DEFAULT 0,
                records_success         INTEGER DEFAULT 0,
                records_failed          INTEGER DEFAULT 0,
                records_skipped         INTEGER DEFAULT 0,
                records_warnings        INTEGER DEFAULT 0,
                runtime_seconds         REAL,
                remarks                 TEXT
            );
        '''
    }

    created = []

    try:
        for name, ddl in tables.items():
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name=?;",
                (name,)
            )
            if not cursor.fetchone():
                cursor.execute(ddl)
                created.append(name)

        create_indexes(cursor)

    except sqlite3.Error as e:
        logging.error(f"Error creating tables: {e}")
        print(f"❌ Error creating tables: {e}")
        raise

    if created:
        logging.info(f"Created tables: {', '.join(created)}")


def create_indexes(cursor):

    indexes = [
        # Every read and replace goes through (tournament_id, round_no)
        "CREATE INDEX IF NOT EXISTS idx_game_tournament_round ON game(tournament_id, round_no)",
        "CREATE INDEX IF NOT EXISTS idx_log_details_run_id ON log_details(run_id)",
    ]

    try:
        for stmt in indexes:
            cursor.execute(stmt)
    except sqlite3.Error as e:
        print(f"Error creating indexes: {e}")
        logging.error(f"Error creating indexes: {e}")
        raise
