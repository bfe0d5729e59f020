# src/main.py

import argparse
import logging
import sys
import time
from typing import List, Optional

from config import MONITOR_INTERVAL_SECONDS
from db import create_tables, get_conn
from models.game import Game
from models.tournament_snapshot import CycleResult
from models.user_preference import UserPreference
from monitor import RoundMonitor
from notifications import ConsoleNotifier
from upd_round_data import upd_round_data
from utils import export_logs_to_excel, export_runs_to_excel, format_millis, setup_logging


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Monitor a chess tournament round on echecs.asso.fr and report games as they finish."
    )
    parser.add_argument("--tournament", type=int, help="Tournament id (defaults to the last used one).")
    parser.add_argument("--round", type=int, dest="round_no", help="Round number (defaults to the last used one).")
    parser.add_argument("--watch", action="append", default=[], metavar="NAME", help="Add a player to the watch-list (repeatable).")
    parser.add_argument("--unwatch", action="append", default=[], metavar="NAME", help="Remove a player from the watch-list (repeatable).")
    parser.add_argument("--once", action="store_true", help="Run a single fetch cycle and exit.")
    parser.add_argument("--interval", type=float, default=MONITOR_INTERVAL_SECONDS, help="Seconds between fetch cycles.")
    parser.add_argument("--show-standings", action="store_true", help="Print the player standings after each cycle.")
    parser.add_argument("--recent", type=int, default=0, metavar="N", help="With --once, print the N most recently finished or observed games.")
    parser.add_argument("--export-logs", action="store_true", help="Export the latest run logs to Excel on exit.")
    return parser.parse_args(argv)


def print_result(result: CycleResult, show_standings: bool = False) -> None:
    if not result.success:
        print(f"❌ Tournament {result.tournament_id} round {result.round_no}: {result.failure_kind.value} ({result.failure_message})")
        return

    snapshot = result.snapshot
    finished = len(snapshot.finished_games())
    print(f"ℹ️  {snapshot.tournament_name or 'Tournament ' + str(snapshot.tournament_id)} round {snapshot.round_no} "
          f"@ {format_millis(snapshot.fetched_at)}: {finished}/{len(snapshot.games)} games finished, "
          f"{len(result.newly_finished)} new")

    if show_standings:
        for position, player in enumerate(snapshot.players, start=1):
            print(f"   {position:>3}. {player.name:<35} {player.points:>4} pts ({player.rating})")


def print_recent(cursor, tournament_id: int, round_no: int, limit: int = 5) -> None:
    stored = Game.count_for_round(cursor, tournament_id, round_no)
    print(f"ℹ️  Latest games ({stored} stored):")
    for game in Game.get_recent_for_round(cursor, tournament_id, round_no)[:limit]:
        print(f"   {format_millis(game.finished_at or game.observed_at)}  {game.formatted_result()}")


def main(argv: Optional[List[str]] = None) -> int:

    args = parse_args(argv)
    setup_logging()

    conn, cursor = get_conn()
    try:
        create_tables(cursor)
        conn.commit()

        prefs = UserPreference(cursor)
        for name in args.watch:
            prefs.add_to_watch_list(name)
        for name in args.unwatch:
            prefs.remove_from_watch_list(name)

        tournament_id = args.tournament if args.tournament is not None else prefs.get_tournament_id()
        round_no = args.round_no if args.round_no is not None else prefs.get_round()
        if tournament_id is None or round_no is None:
            print("❌ Tournament id and round are required (no previous values saved).")
            return 2

        prefs.save_tournament_id(tournament_id)
        prefs.save_round(round_no)
        watch_list = prefs.get_watch_list()
        print(f"ℹ️  Watch-list: {', '.join(sorted(watch_list)) if watch_list else '(empty)'}")

        if args.once:
            result = upd_round_data(cursor, tournament_id, round_no, watch_list=watch_list, notifier=ConsoleNotifier())
            print_result(result, show_standings=args.show_standings)
            if args.recent > 0:
                print_recent(cursor, tournament_id, round_no, limit=args.recent)
            if args.export_logs:
                export_runs_to_excel()
                export_logs_to_excel()
            return 0 if result.success else 1
    finally:
        conn.close()

    monitor = RoundMonitor(
        interval    = args.interval,
        notifier    = ConsoleNotifier(),
        on_result   = lambda r: print_result(r, show_standings=args.show_standings)
    )
    monitor.start(tournament_id, round_no)
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("ℹ️  Stopping monitor...")
    finally:
        monitor.stop()
        monitor.join(timeout=5)
        if args.export_logs:
            export_runs_to_excel()
            export_logs_to_excel()

    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as e:
        logging.error(f"Error: {e}", stack_info=True, stacklevel=3, exc_info=True)
        print(f"❌ Error: {e}")
        sys.exit(1)
