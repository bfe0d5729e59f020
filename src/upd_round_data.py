# src/upd_round_data.py

import logging
import sqlite3
from typing import AbstractSet, Callable, Optional, Union

from config import LOGGER_LOG_TO_DB, LOGGER_VERBOSITY
from errors import FailureKind, FetchError
from models.game import Game
from models.tournament_snapshot import CycleResult, CycleState, TournamentSnapshot
from models.user_preference import UserPreference
from notifications import NotificationSink
from resolvers.detect_finished_games import detect_finished_games, find_newly_finished
from resolvers.resolve_round_games import find_retractions, find_transitions, reconcile_round_games
from resolvers.resolve_standings import rank_players
from scrapers.scrape_round_games_echecs import fetch_round_page, parse_round_page
from utils import OperationLogger, format_millis, now_millis

Fetcher = Callable[[int, int], Union[str, bytes]]


def upd_round_data(
        cursor: sqlite3.Cursor,
        tournament_id: int,
        round_no: int,
        *,
        watch_list: Optional[AbstractSet[str]] = None,
        fetch: Fetcher = fetch_round_page,
        notifier: Optional[NotificationSink] = None,
        now: Optional[int] = None,
        run_id: Optional[str] = None,
        on_state: Optional[Callable[[CycleState], None]] = None,
        should_continue: Optional[Callable[[], bool]] = None
    ) -> CycleResult:
    """
    One fetch cycle for a tournament round:
    fetch → parse → reconcile → persist → rank → detect → notify.

    A failed fetch leaves the stored batch untouched and returns a failed CycleResult
    classified by FailureKind. On success the stored batch of the round is replaced
    exactly once and the alerts are handed to the notifier.

    should_continue is checked once the page is reconciled, before anything is persisted; when it
    returns False the cycle is abandoned with storage untouched and nothing notified.
    """
    conn = cursor.connection

    logger = OperationLogger(
        verbosity       = LOGGER_VERBOSITY,
        print_output    = False,
        log_to_db       = LOGGER_LOG_TO_DB,
        cursor          = cursor,
        object_type     = "game",
        run_type        = "update",
        run_id          = run_id
    )

    def set_state(state: CycleState) -> None:
        if on_state:
            on_state(state)

    def fail(kind: FailureKind, message: str, retryable: bool) -> CycleResult:
        set_state(CycleState.FAILED)
        logger.failed({"tournament_id": tournament_id, "round_no": round_no}, f"Fetch cycle failed ({kind.value}): {message}")
        logger.commit_run_summary(cursor, remarks=f"failed: {kind.value}")
        conn.commit()
        set_state(CycleState.IDLE)
        return CycleResult(
            tournament_id   = tournament_id,
            round_no        = round_no,
            success         = False,
            state           = CycleState.FAILED,
            failure_kind    = kind,
            failure_message = message,
            retryable       = retryable
        )

    if watch_list is None:
        watch_list = UserPreference(cursor).get_watch_list()

    # Prior state is read before the fetch; it is the "previous" side of the merge
    previous = Game.get_for_round(cursor, tournament_id, round_no)
    previous_finished_ids = {g.game_id for g in previous if g.is_finished()}

    set_state(CycleState.FETCHING)
    logger.info(f"Fetching tournament {tournament_id} round {round_no} ({len(previous)} stored games)")

    try:
        html = fetch(tournament_id, round_no)
        now = now if now is not None else now_millis()
        tournament_name, games, _ = parse_round_page(html, tournament_id, round_no, observed_at=now, logger=logger)
    except FetchError as e:
        return fail(e.kind, str(e), e.retryable)
    except Exception as e:
        logging.error(f"Unexpected error fetching tournament {tournament_id} round {round_no}: {e}", exc_info=True)
        return fail(FailureKind.UNKNOWN, str(e), False)

    set_state(CycleState.RECONCILING)
    reconciled = reconcile_round_games(previous, games, now)

    finished_at_by_id = {g.game_id: g.finished_at for g in reconciled}
    for game_id in sorted(find_transitions(previous, reconciled)):
        logger.info(f"{game_id} finished at {format_millis(finished_at_by_id[game_id])}")
    for game_id in sorted(find_retractions(previous, reconciled)):
        logger.warning({"game_id": game_id}, "Finished game shows no result anymore, finish time cleared")

    if should_continue is not None and not should_continue():
        conn.rollback()
        logger.info(f"Cycle for tournament {tournament_id} round {round_no} cancelled, nothing persisted")
        set_state(CycleState.IDLE)
        return CycleResult(
            tournament_id   = tournament_id,
            round_no        = round_no,
            success         = False,
            state           = CycleState.IDLE,
            failure_message = "cancelled"
        )

    try:
        Game.replace_for_round(cursor, tournament_id, round_no, reconciled)
        logger.commit_run_summary(cursor, remarks=f"{len(reconciled)} games")
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        logging.error(f"Error persisting tournament {tournament_id} round {round_no}: {e}", exc_info=True)
        return fail(FailureKind.UNKNOWN, f"Persist failed: {e}", False)
    set_state(CycleState.PERSISTED)

    players = rank_players(reconciled)
    newly_finished = find_newly_finished(previous_finished_ids, reconciled)
    alerts = detect_finished_games(previous_finished_ids, reconciled, watch_list)

    if notifier:
        for game in alerts:
            try:
                notifier.notify(game, watch_list)
            except Exception as e:
                logging.error(f"Notifier failed for {game.game_id}: {e}", exc_info=True)

    logger.info(
        f"Tournament {tournament_id} round {round_no}: {len(reconciled)} games, "
        f"{len(newly_finished)} newly finished, {len(alerts)} alert(s)"
    )
    logger.summarize()
    set_state(CycleState.IDLE)

    return CycleResult(
        tournament_id   = tournament_id,
        round_no        = round_no,
        success         = True,
        state           = CycleState.PERSISTED,
        snapshot        = TournamentSnapshot(
            tournament_id   = tournament_id,
            round_no        = round_no,
            tournament_name = tournament_name,
            games           = reconciled,
            players         = players,
            fetched_at      = now
        ),
        newly_finished  = newly_finished,
        alerts          = alerts
    )
