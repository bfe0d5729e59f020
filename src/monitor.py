# src/monitor.py

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

from config import DB_NAME, MONITOR_INTERVAL_SECONDS, MONITOR_RUN_FIRST_TICK_IMMEDIATELY
from db import create_tables, get_conn
from models.tournament_snapshot import ConnectionStatus, CycleResult, CycleState, TournamentSnapshot
from notifications import NotificationSink
from scrapers.scrape_round_games_echecs import fetch_round_page
from upd_round_data import Fetcher, upd_round_data

TargetKey = Tuple[int, int]


@dataclass
class _Target:
    tournament_id:      int
    round_no:           int
    in_flight:          threading.Lock                  = field(default_factory=threading.Lock)
    stopped:            threading.Event                 = field(default_factory=threading.Event)
    thread:             Optional[threading.Thread]      = None
    state:              CycleState                      = CycleState.IDLE
    status:             ConnectionStatus                = ConnectionStatus.DISCONNECTED
    snapshot:           Optional[TournamentSnapshot]    = None      # last known good
    last_result:        Optional[CycleResult]           = None


class RoundMonitor:
    """
    Runs fetch cycles for (tournament_id, round_no) targets on a fixed interval.

    At most one cycle is in flight per target: a tick arriving while a cycle runs is dropped.
    stop() prevents new cycles; a cycle already running completes and its result is discarded.
    Each cycle opens its own SQLite connection.
    """

    def __init__(
        self,
        *,
        db_name: str = DB_NAME,
        interval: float = MONITOR_INTERVAL_SECONDS,
        fetch: Fetcher = fetch_round_page,
        notifier: Optional[NotificationSink] = None,
        on_result: Optional[Callable[[CycleResult], None]] = None
    ):
        self.db_name = db_name
        self.interval = interval
        self.fetch = fetch
        self.notifier = notifier
        self.on_result = on_result
        self._targets: Dict[TargetKey, _Target] = {}
        self._registry_lock = threading.Lock()

    def _target(self, tournament_id: int, round_no: int) -> _Target:
        key = (tournament_id, round_no)
        with self._registry_lock:
            if key not in self._targets:
                self._targets[key] = _Target(tournament_id, round_no)
            return self._targets[key]

    def tick(self, tournament_id: int, round_no: int) -> Optional[CycleResult]:
        """
        Run one cycle for the target unless one is already running or the target is stopped.
        Returns None when the tick was dropped or its result discarded.
        """
        target = self._target(tournament_id, round_no)
        if target.stopped.is_set():
            return None

        if not target.in_flight.acquire(blocking=False):
            logging.debug(f"Tick dropped for tournament {tournament_id} round {round_no}: cycle in flight")
            return None

        try:
            def set_state(state: CycleState) -> None:
                target.state = state

            conn, cursor = get_conn(self.db_name)
            try:
                create_tables(cursor)
                result = upd_round_data(
                    cursor,
                    tournament_id,
                    round_no,
                    fetch           = self.fetch,
                    notifier        = self.notifier,
                    on_state        = set_state,
                    should_continue = lambda: not target.stopped.is_set()
                )
            finally:
                conn.close()
        finally:
            target.state = CycleState.IDLE
            target.in_flight.release()

        if target.stopped.is_set():
            logging.info(f"Monitoring stopped during cycle for tournament {tournament_id} round {round_no}, result discarded")
            return None

        target.last_result = result
        target.status = result.connection_status
        if result.success:
            target.snapshot = result.snapshot
        else:
            logging.warning(
                f"Cycle failed for tournament {tournament_id} round {round_no} "
                f"({result.failure_kind.value}, retryable={result.retryable}): {result.failure_message}"
            )

        if self.on_result:
            self.on_result(result)
        return result

    def _run(self, target: _Target) -> None:
        if MONITOR_RUN_FIRST_TICK_IMMEDIATELY:
            self._safe_tick(target)
        while not target.stopped.wait(self.interval):
            self._safe_tick(target)

    def _safe_tick(self, target: _Target) -> None:
        try:
            self.tick(target.tournament_id, target.round_no)
        except Exception as e:
            # Keep the schedule alive; the next tick retries
            target.status = ConnectionStatus.ERROR
            logging.error(f"Error in monitor tick for tournament {target.tournament_id} round {target.round_no}: {e}", exc_info=True)

    def start(self, tournament_id: int, round_no: int) -> None:
        target = self._target(tournament_id, round_no)
        if target.thread and target.thread.is_alive():
            if not target.stopped.is_set():
                return
            # Stopped but still finishing a tick; it must exit before the flag is cleared
            target.thread.join()
        target.stopped.clear()
        target.status = ConnectionStatus.CONNECTED
        target.thread = threading.Thread(
            target=self._run,
            args=(target,),
            name=f"round-monitor-{tournament_id}-{round_no}",
            daemon=True
        )
        target.thread.start()
        logging.info(f"Started monitoring tournament {tournament_id} round {round_no} every {self.interval}s")

    def stop(self, tournament_id: Optional[int] = None, round_no: Optional[int] = None) -> None:
        """Stop one target, or every target when called without arguments."""
        with self._registry_lock:
            targets = [
                t for key, t in self._targets.items()
                if tournament_id is None or key == (tournament_id, round_no)
            ]
        for target in targets:
            target.stopped.set()
            target.status = ConnectionStatus.DISCONNECTED
            logging.info(f"Stopped monitoring tournament {target.tournament_id} round {target.round_no}")

    def join(self, timeout: Optional[float] = None) -> None:
        with self._registry_lock:
            threads = [t.thread for t in self._targets.values() if t.thread]
        for thread in threads:
            thread.join(timeout)

    def snapshot(self, tournament_id: int, round_no: int) -> Optional[TournamentSnapshot]:
        return self._target(tournament_id, round_no).snapshot

    def status(self, tournament_id: int, round_no: int) -> ConnectionStatus:
        return self._target(tournament_id, round_no).status

    def state(self, tournament_id: int, round_no: int) -> CycleState:
        return self._target(tournament_id, round_no).state
