# src/models/tournament_snapshot.py

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from errors import FailureKind
from models.game import Game
from models.player import Player


class CycleState(Enum):
    IDLE        = "idle"
    FETCHING    = "fetching"
    RECONCILING = "reconciling"
    PERSISTED   = "persisted"
    FAILED      = "failed"


class ConnectionStatus(Enum):
    DISCONNECTED    = "disconnected"
    CONNECTED       = "connected"
    NETWORK_ERROR   = "network_error"
    ERROR           = "error"


@dataclass
class TournamentSnapshot:
    """What one successful fetch cycle observed. Rebuilt every cycle."""
    tournament_id:      int
    round_no:           int
    tournament_name:    str
    games:              List[Game]      = field(default_factory=list)
    players:            List[Player]    = field(default_factory=list)
    fetched_at:         Optional[int]   = None      # epoch millis

    def finished_games(self) -> List[Game]:
        return [g for g in self.games if g.is_finished()]


@dataclass
class CycleResult:
    tournament_id:      int
    round_no:           int
    success:            bool
    state:              CycleState
    snapshot:           Optional[TournamentSnapshot]    = None
    failure_kind:       Optional[FailureKind]           = None
    failure_message:    Optional[str]                   = None
    retryable:          bool                            = False
    newly_finished:     List[Game]                      = field(default_factory=list)   # every game that just finished
    alerts:             List[Game]                      = field(default_factory=list)   # the watched subset, handed to the notifier

    @property
    def connection_status(self) -> ConnectionStatus:
        if self.success:
            return ConnectionStatus.CONNECTED
        if self.failure_kind == FailureKind.TRANSPORT:
            return ConnectionStatus.NETWORK_ERROR
        return ConnectionStatus.ERROR
