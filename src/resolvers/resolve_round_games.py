# src/resolvers/resolve_round_games.py

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Set, Union

from models.game import Game

PreviousGames = Union[Mapping[str, Game], Iterable[Game]]


def _index_by_id(previous: PreviousGames) -> Dict[str, Game]:
    if isinstance(previous, Mapping):
        return dict(previous)
    return {g.game_id: g for g in previous}


def resolve_finished_at(previous: Optional[Game], incoming: Game, now: int) -> Optional[int]:
    """
    finished_at for one incoming game given the stored one with the same id.

    - incoming unfinished                           -> None (results can be retracted upstream)
    - incoming finished, no previous                -> now
    - incoming finished, previous unfinished        -> now (transition)
    - incoming finished, previous finished          -> previous.finished_at (never advances)
    """
    if not incoming.is_finished():
        return None
    if previous is None or not previous.is_finished():
        return now
    # A stored finished row without a timestamp predates timestamping; stamp it once
    return previous.finished_at if previous.finished_at is not None else now


def reconcile_round_games(previous: PreviousGames, incoming: List[Game], now: int) -> List[Game]:
    """
    Merge a freshly parsed batch with the stored batch of the same round.

    The incoming batch is the source of truth for which games exist: output has exactly
    the incoming games, in incoming order, each with its resolved finished_at.
    Stored games missing from the incoming batch are dropped.
    Inputs are not mutated.
    """
    previous_by_id = _index_by_id(previous)

    reconciled = []
    for game in incoming:
        prior = previous_by_id.get(game.game_id)
        reconciled.append(game.with_finished_at(resolve_finished_at(prior, game, now)))

    dropped = set(previous_by_id) - {g.game_id for g in incoming}
    if dropped:
        logging.warning(f"Dropping {len(dropped)} stored game(s) absent from latest fetch: {sorted(dropped)}")

    return reconciled


def find_transitions(previous: PreviousGames, reconciled: List[Game]) -> Set[str]:
    """Ids that are finished now and were not finished (or not stored) before."""
    previous_by_id = _index_by_id(previous)
    return {
        g.game_id for g in reconciled
        if g.is_finished() and not (g.game_id in previous_by_id and previous_by_id[g.game_id].is_finished())
    }


def find_retractions(previous: PreviousGames, reconciled: List[Game]) -> Set[str]:
    """Ids that were finished before and are unfinished now."""
    previous_by_id = _index_by_id(previous)
    return {
        g.game_id for g in reconciled
        if not g.is_finished() and g.game_id in previous_by_id and previous_by_id[g.game_id].is_finished()
    }
