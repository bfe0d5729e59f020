# src/models/player.py

from dataclasses import dataclass

EXEMPT_NAME = "EXEMPT"
ASCII_DIGITS = "0123456789"

@dataclass
class Player:
    """
    A player as listed in the pairings of the current round.
    Not persisted; always rebuilt from the game rows.
    """
    name:       str
    rating:     int     = 0
    points:     float   = 0.0

    @staticmethod
    def from_slot(
        name: str,
        rating_text: str,
        points_text: str
    ) -> "Player":
        '''
        Create a Player from the raw rating/points cells of one side of a game row.
        '''
        return Player(
            name    = name,
            rating  = parse_rating(rating_text),
            points  = parse_points(points_text)
        )


def is_countable_name(name: str) -> bool:
    """False for blank names and for the bye slot (EXEMPT, any case)."""
    return bool(name and name.strip()) and name.strip().upper() != EXEMPT_NAME

def parse_rating(rating_text: str) -> int:
    """
    Keep the digits of the rating cell.
    Example: '1850 F' -> 1850, '' -> 0
    """
    digits = "".join(ch for ch in (rating_text or "") if ch in ASCII_DIGITS)
    return int(digits) if digits else 0

def parse_points(points_text: str) -> float:
    """
    Parse a 'points before this round' cell using the half-point glyph.
    Examples: '3½' -> 3.5, '½' -> 0.5, '2' -> 2.0, 'abc' -> 0.0
    """
    formatted = (points_text or "").replace("½", ".5").replace(" ", "")
    if formatted.startswith("."):
        formatted = "0" + formatted
    try:
        return float(formatted)
    except ValueError:
        return 0.0
