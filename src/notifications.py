# src/notifications.py

import logging
from typing import AbstractSet, List, Tuple

from models.game import Game


class NotificationSink:
    """Receives the alerts of a fetch cycle. Delivery and de-duplication beyond that are the sink's concern."""

    def notify(self, game: Game, watch_list: AbstractSet[str]) -> None:
        raise NotImplementedError


def notification_title(game: Game, watch_list: AbstractSet[str]) -> str:
    if watch_list and game.involves_any(watch_list):
        return "Watched Player Game Finished!"
    return "Game Finished!"


def watched_players(game: Game, watch_list: AbstractSet[str]) -> List[str]:
    return [name for name in game.player_names() if name in watch_list]


class ConsoleNotifier(NotificationSink):
    """Prints and logs one line per finished game."""

    def notify(self, game: Game, watch_list: AbstractSet[str]) -> None:
        title = notification_title(game, watch_list)
        watched = ", ".join(watched_players(game, watch_list))
        print(f"🔔 {title} {game.formatted_result()}" + (f" [{watched}]" if watched else ""))
        logging.info(f"Notified {game.game_id}: {title} {game.formatted_result()}")


class CollectingNotifier(NotificationSink):
    """Keeps every notified game in memory, in order."""

    def __init__(self):
        self.events: List[Tuple[Game, frozenset]] = []

    def notify(self, game: Game, watch_list: AbstractSet[str]) -> None:
        self.events.append((game, frozenset(watch_list)))

    @property
    def game_ids(self) -> List[str]:
        return [game.game_id for game, _ in self.events]
