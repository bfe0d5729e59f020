# src/utils.py
# Contains reusable functions like logging setup, the operation logger and timestamp helpers.

import inspect
import json
import time
import pandas as pd
from collections import defaultdict
import logging
import os
from datetime import datetime, date
from config import LOG_FILE, LOG_LEVEL, LOG_TO_CONSOLE
from typing import Dict, Optional
import sqlite3
import uuid
from db import get_conn


def setup_logging():

    # DEBUG: Detailed logs for development and debugging.
    # INFO: High-level events (like app startup, task completion).
    # WARNING: Non-critical issues that should be looked at.
    # ERROR: Serious issues that affect functionality but the app can continue.
    # CRITICAL: Fatal errors, the app cannot continue.

    # Create log directory if not exists (derive from LOG_FILE)
    log_dir = os.path.dirname(os.path.abspath(LOG_FILE))
    os.makedirs(log_dir, exist_ok=True)

    # Clear any existing handlers to avoid duplicates
    logging.getLogger().handlers = []

    # File handler with UTF-8 encoding
    file_handler = logging.FileHandler(LOG_FILE, encoding='utf-8', mode='a')  # 'a' for append
    file_handler.setLevel(LOG_LEVEL)
    file_formatter = logging.Formatter('[%(asctime)s] %(levelname)-8s %(filename)-32.32s%(lineno)-5d%(funcName)-35.35s: %(message)-100s', datefmt='%b %d %a] [%H:%M:%S')
    file_handler.setFormatter(file_formatter)
    logging.getLogger().addHandler(file_handler)

    # Console handler for real-time output
    if LOG_TO_CONSOLE:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(LOG_LEVEL)
        console_formatter = logging.Formatter('[%(asctime)s] [%(levelname)-7s] %(funcName)-35s : %(message)s', datefmt='%b %d %a %H:%M:%S')
        console_handler.setFormatter(console_formatter)
        logging.getLogger().addHandler(console_handler)

    logging.getLogger().setLevel(LOG_LEVEL)

    logging.info(f"Logging configured to {LOG_FILE} at level {LOG_LEVEL}")
    logging.info("-------------------------------------------------------------------")
    print(f"Logging configured to {LOG_FILE} at level {LOG_LEVEL}")
    print("-------------------------------------------------------------------")

def now_millis() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)

def format_millis(millis: Optional[int], fmt: str = "%H:%M:%S") -> str:
    """
    Format epoch milliseconds for display.
    Example: 1700000000000 -> '22:13:20' (local time), None -> ''
    """
    if millis is None:
        return ""
    return datetime.fromtimestamp(millis / 1000).strftime(fmt)


class OperationLogger:
    """
    A general logging class for tracking success, failed, skipped, and warnings in operations like scrapers and updates.

    Usage:
    - Initialize at the start of an operation:
      logger = OperationLogger(verbosity=1, print_output=True, log_to_db=False, cursor=None)
    - Add messages during processing:
      logger.success({"game_id": "1_8_1"}, "Processed OK")
      logger.failed({"game_id": "1_8_2"}, "Invalid data")
      logger.skipped({"game_id": "1_8_3"}, "Duplicate")
      logger.warning({"game_id": "1_8_4"}, "Minor issue")
    - Call summarize() at the end to print/log the summary.

    Parameters:
    - verbosity (int): Controls detail level:
        0: Summary totals only.
        1: Totals + reason breakdowns (default).
        2: Level 1 + individual details for failed/skipped/warnings.
        3: Level 2 + detailed output for all items.
    - print_output (bool): If True, prints the summary to console (default: True).
    - log_to_db (bool): If True, logs details to the log_details table (requires cursor).
    - cursor (sqlite3.Cursor): DB cursor for logging to table (required if log_to_db=True).

    A run_id groups the rows of one operation in the DB; one is generated when not given.
    """
    def __init__(
        self,
        verbosity:      int = 1,
        print_output:   bool = True,
        log_to_db:      bool = False,
        cursor:         Optional[sqlite3.Cursor] = None,
        object_type:    Optional[str] = None,   # e.g., 'game'
        run_type:       Optional[str] = None,   # e.g., 'scrape', 'resolve', 'update'
        run_id:         Optional[str] = None
    ):
        self.run_id             = run_id or str(uuid.uuid4())
        self.verbosity          = verbosity
        self.print_output       = print_output
        self.log_to_db          = log_to_db
        self.cursor             = cursor if log_to_db else None
        self.results            = defaultdict(lambda: {"success": 0, "failed": 0, "skipped": 0})
        self.reasons            = {"success": defaultdict(int), "failed": defaultdict(int), "skipped": defaultdict(int), "warning": defaultdict(int)}
        self.individual_logs    = []
        self.object_type        = object_type
        self.run_type           = run_type
        self.processed          = 0
        self.start_time         = time.time()

        if log_to_db and not cursor:
            raise ValueError("Cursor required if log_to_db is True")

    def inc_processed(self, n: int = 1):
        """Increment number of processed records (used for overhead tracking)."""
        self.processed += n

    def _format_msg(self, context: dict, reason: str) -> str:
        return f"({', '.join(f'{k}: {v}' for k,v in context.items())}): {reason}"

    def _enrich_context(self, context: dict) -> dict:
        """Copy the context and convert dates to ISO strings so it serializes to JSON."""
        enriched = context.copy()
        for key, value in enriched.items():
            if isinstance(value, date):
                enriched[key] = value.isoformat()
        return enriched

    def _log_to_db(self, status: str, context_json: str, reason: str, msg_id: Optional[str], function_name: str, filename: str):
        if not self.cursor:
            return
        try:
            self.cursor.execute('''
                INSERT INTO log_details (
                    run_id, run_date, object_type, process_type,
                    function_name, filename, context_json, status, message, msg_id
                ) VALUES (?, CURRENT_TIMESTAMP, ?, ?, ?, ?, ?, ?, ?, ?)
            ''', (
                self.run_id,
                self.object_type or "unknown",
                self.run_type or "unknown",
                function_name,
                filename,
                context_json,
                status,
                reason,
                msg_id
            ))
        except sqlite3.Error as e:
            logging.error(f"Error logging {status} to DB: {e}")

    def _record(
        self,
        status: str,
        context: dict,
        reason: str,
        msg_id: Optional[str],
        to_console: Optional[bool],
        emoji: str,
        show_key: bool,
        log_level: int,
        min_verbosity: int,
        db_min_verbosity: int,
    ):
        # Caller of success()/failed()/... is two frames up
        frame = inspect.currentframe().f_back.f_back
        function_name = frame.f_code.co_name
        filename = os.path.basename(inspect.getfile(frame))

        enriched_context = self._enrich_context(context)
        context_json = json.dumps(enriched_context, default=str)

        if show_key:
            msg = self._format_msg(enriched_context, reason)
        else:
            msg = reason

        if self.verbosity >= db_min_verbosity:
            self._log_to_db(status, context_json, reason, msg_id, function_name, filename)

        if self.verbosity >= min_verbosity:
            logging.log(log_level, msg, stacklevel=3)

        # Console printing controlled solely by to_console
        if to_console:
            print(f"{emoji} {msg}")

        self.individual_logs.append({
            'status': status,
            'context': enriched_context,
            'message': reason,
            'msg_id': msg_id,
            'function_name': function_name,
            'filename': filename
        })

    def info(
        self,
        item_key_or_message: str,
        reason: Optional[str] = None,
        *,
        show_key: bool = True,
        to_console: Optional[bool] = None,
        emoji: str = "ℹ️ ",
    ):
        """
        Usage:
        logger.info("global", "Fetching round 8...", to_console=True)  # with key
        logger.info("Fetching round 8...", to_console=True)            # message-only

        Does NOT affect counters/summaries.
        """
        if reason is None:
            log_msg = item_key_or_message
        else:
            log_msg = f"{item_key_or_message}: {reason}" if (item_key_or_message and show_key) else reason

        logging.info(log_msg, stacklevel=2)

        should_print = self.print_output if to_console is None else to_console
        if should_print:
            print(f"{emoji} {log_msg}")

    def success(
        self,
        context: dict,
        reason: Optional[str] = "Success",
        msg_id: Optional[str] = None,
        *,  # keyword-only after this
        to_console: Optional[bool] = None,
        emoji: str = "✅ ",
        show_key: bool = True,
    ):
        self.results[str(context)]["success"] += 1
        self.reasons["success"][reason] += 1
        self._record("success", context, reason, msg_id, to_console, emoji, show_key,
                     logging.INFO, min_verbosity=3, db_min_verbosity=3)

    def failed(
        self,
        context: dict,
        reason: Optional[str] = "Failed",
        msg_id: Optional[str] = None,
        *,
        to_console: Optional[bool] = None,
        emoji: str = "❌ ",
        show_key: bool = True,
    ):
        self.results[str(context)]["failed"] += 1
        self.reasons["failed"][reason] += 1
        self._record("error", context, reason, msg_id, to_console, emoji, show_key,
                     logging.ERROR, min_verbosity=1, db_min_verbosity=0)

    def skipped(
        self,
        context: dict,
        reason: Optional[str] = "Skipped",
        msg_id: Optional[str] = None,
        *,
        to_console: Optional[bool] = None,
        emoji: str = "⏭️  ",
        show_key: bool = True,
    ):
        self.results[str(context)]["skipped"] += 1
        self.reasons["skipped"][reason] += 1
        self._record("skipped", context, reason, msg_id, to_console, emoji, show_key,
                     logging.WARNING, min_verbosity=2, db_min_verbosity=2)

    def warning(
        self,
        context: dict,
        reason: str,
        msg_id: Optional[str] = None,
        *,
        to_console: Optional[bool] = None,
        emoji: str = "⚠️  ",
        show_key: bool = True,
    ):
        self.reasons["warning"][reason] += 1
        self._record("warning", context, reason, msg_id, to_console, emoji, show_key,
                     logging.WARNING, min_verbosity=2, db_min_verbosity=0)

    def totals(self) -> Dict[str, int]:
        return {
            "success":  sum(d["success"] for d in self.results.values()),
            "failed":   sum(d["failed"]  for d in self.results.values()),
            "skipped":  sum(d["skipped"] for d in self.results.values()),
            "warning":  sum(self.reasons["warning"].values()),
        }

    def summarize(self):
        """Generate and print/log the full summary, always including totals, one line at a time."""
        totals = self.totals()

        lines = []
        lines.append("📊 Operation Summary:")
        for status, emoji, label in [
            ("success", "✅", "Success"),
            ("failed",  "❌", "Failed"),
            ("skipped", "⏭️ ", "Skipped"),
            ("warning", "⚠️ ", "Warnings"),
        ]:
            lines.append(f"   {emoji} {label}: {totals[status]}")
            if self.verbosity >= 1:
                for reason, count in self.reasons[status].items():
                    lines.append(f"      • {reason}: {count}")

        runtime_seconds = time.time() - self.start_time
        lines.append("")
        lines.append(f"   ⏱️  Runtime: {runtime_seconds:.1f}s")
        lines.append(f"   📦 Records processed: {self.processed}")

        for line in lines:
            logging.info(line, stacklevel=2)
            if self.print_output:
                print(line)

    def commit_run_summary(self, cursor: sqlite3.Cursor, remarks: Optional[str] = None):
        runtime_seconds = time.time() - self.start_time
        totals = self.totals()

        cursor.execute("""
            INSERT INTO log_runs (
                run_id, object_type, process_type, records_processed,
                records_success, records_failed, records_skipped,
                records_warnings, runtime_seconds, remarks
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            self.run_id,
            self.object_type or "unknown",
            self.run_type or "unknown",
            self.processed, totals["success"], totals["failed"],
            totals["skipped"], totals["warning"], runtime_seconds, remarks
        ))

def export_logs_to_excel(path: str = "logs.xlsx"):
    """
    Export the latest run's record-level logs (log_details) to an Excel file.
    Always rewrites the file, so it only contains the most recent run.
    """
    conn, cursor = get_conn()
    df = pd.read_sql_query(
        "SELECT * FROM log_details WHERE run_id = (SELECT run_id FROM log_details ORDER BY id DESC LIMIT 1)",
        conn
    )
    conn.close()

    if df.empty:
        print("ℹ️  No logs to export.")
        logging.info("No logs to export.")
        return

    # Parse and flatten context_json into columns
    df['context'] = df['context_json'].apply(lambda x: json.loads(x) if x else {})
    context_df = pd.json_normalize(df['context'])
    df = pd.concat([df.drop(['context', 'context_json'], axis=1), context_df], axis=1)

    with pd.ExcelWriter(path, engine='openpyxl') as writer:
        df.to_excel(writer, sheet_name='All_Logs', index=False)

        # By status (split into tabs)
        for status in ['error', 'warning', 'skipped']:
            subset = df[df['status'] == status]
            if not subset.empty:
                subset.to_excel(writer, sheet_name=status.capitalize(), index=False)

    print(f"ℹ️  Exported latest run logs to {path}")
    logging.info(f"Exported latest run logs to {path}")


def export_runs_to_excel(path: str = "run_log.xlsx", limit: int = 100):
    """
    Export the most recent run-level summaries (log_runs) to an Excel file.
    """
    conn, cursor = get_conn()
    df = pd.read_sql_query(
        "SELECT * FROM log_runs ORDER BY id DESC LIMIT ?",
        conn,
        params=(limit,)
    )
    conn.close()

    if df.empty:
        print("ℹ️  No run summaries to export.")
        logging.info("No run summaries to export.")
        return

    with pd.ExcelWriter(path, engine='openpyxl') as writer:
        df.to_excel(writer, sheet_name='Run_Summary', index=False)

    print(f"ℹ️  Exported run summaries to {path}")
    logging.info(f"Exported run summaries to {path}")
