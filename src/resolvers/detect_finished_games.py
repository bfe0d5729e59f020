# src/resolvers/detect_finished_games.py

import logging
from typing import AbstractSet, Iterable, List

from models.game import Game


def find_newly_finished(previous_finished_ids: AbstractSet[str], reconciled: Iterable[Game]) -> List[Game]:
    """Games finished now whose id was not in the previously finished set, in batch order."""
    return [g for g in reconciled if g.is_finished() and g.game_id not in previous_finished_ids]


def detect_finished_games(
        previous_finished_ids: AbstractSet[str],
        reconciled: Iterable[Game],
        watch_list: AbstractSet[str]
    ) -> List[Game]:
    """
    Games that just finished and involve at least one watched player.

    Newly finished games without a watched player are only logged at DEBUG;
    the returned alerts are logged at INFO.
    """
    alerts = []
    for game in find_newly_finished(previous_finished_ids, reconciled):
        if game.involves_any(watch_list):
            logging.info(f"New finished game with watched player detected: {game.game_id} {game.formatted_result()}")
            alerts.append(game)
        else:
            logging.debug(f"New finished game detected but no watched players: {game.game_id} {game.formatted_result()}")
    return alerts
