# src/resolvers/resolve_standings.py

from typing import Dict, Iterable, List

from models.game import Game
from models.player import Player, is_countable_name


def players_from_games(games: Iterable[Game]) -> Dict[str, Player]:
    """
    Fold both sides of every game into a name -> Player map.
    The first row a name appears in wins; later rows for the same name are ignored.
    Points are the 'points before this round' cells.
    """
    players: Dict[str, Player] = {}
    for game in games:
        for name, rating_text, points_text in (
            (game.player1_name, game.player1_rating, game.player1_points),
            (game.player2_name, game.player2_rating, game.player2_points),
        ):
            if is_countable_name(name) and name not in players:
                players[name] = Player.from_slot(name, rating_text, points_text)
    return players


def rank_players(games: Iterable[Game]) -> List[Player]:
    """Standings: points descending, then rating descending. Stable for full ties."""
    players = players_from_games(games).values()
    return sorted(players, key=lambda p: (-p.points, -p.rating))
