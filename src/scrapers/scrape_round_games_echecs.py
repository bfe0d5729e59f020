# src/scrapers/scrape_round_games_echecs.py

from typing import Dict, List, Optional, Tuple, Union

from bs4 import BeautifulSoup, NavigableString, Tag
import requests

from config import ECHECS_BASE_URL, ECHECS_REQUEST_TIMEOUT, ECHECS_USER_AGENT, LOGGER_VERBOSITY
from errors import HttpStatusError, ParseRowError, TransportError, UnknownFailure
from models.game import Game
from models.player import Player, is_countable_name
from utils import OperationLogger, now_millis

# Striping classes of the papi results table (even/odd rows)
RESULT_ROW_CLASSES = ("papi_liste_c", "papi_liste_f")
MIN_RESULT_CELLS = 8


def build_round_url(tournament_id: int, round_no: int) -> str:
    """
    Example: (61234, 8) -> https://www.echecs.asso.fr/Resultats.aspx?URL=Tournois/Id/61234/61234&Action=08
    """
    return f"{ECHECS_BASE_URL}Resultats.aspx?URL=Tournois/Id/{tournament_id}/{tournament_id}&Action={round_no:02d}"


def fetch_round_page(
        tournament_id: int,
        round_no: int,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = ECHECS_REQUEST_TIMEOUT
    ) -> Union[str, bytes]:
    """
    One GET of the round results page.
    Returns the decoded text when the server names a charset, else the raw bytes so that
    BeautifulSoup detects the encoding from the markup.
    Raises TransportError for connectivity problems, HttpStatusError for non-2xx answers
    and UnknownFailure for any other request failure.
    """
    url = build_round_url(tournament_id, round_no)
    headers = {"User-Agent": ECHECS_USER_AGENT}
    http = session or requests

    try:
        resp = http.get(url, headers=headers, timeout=timeout)
    except requests.Timeout as e:
        raise TransportError(f"Timeout fetching {url}: {e}") from e
    except requests.ConnectionError as e:
        raise TransportError(f"Connection error fetching {url}: {e}") from e
    except requests.RequestException as e:
        raise UnknownFailure(f"Request failed for {url}: {e}") from e

    if not 200 <= resp.status_code < 300:
        raise HttpStatusError(resp.status_code, url=url, reason=resp.reason)

    # requests assumes ISO-8859-1 when the Content-Type has no charset
    if "charset=" in resp.headers.get("Content-Type", "").lower():
        return resp.text
    return resp.content


def _extract_tournament_name(soup: BeautifulSoup) -> str:
    """Text of the title cell up to the first <br>, or '' when the page has no title row."""
    title_cell = soup.select_one("tr.papi_titre td")
    if title_cell is None:
        return ""

    parts = []
    for child in title_cell.children:
        if isinstance(child, Tag) and child.name == "br":
            break
        if isinstance(child, NavigableString):
            parts.append(str(child))
        elif isinstance(child, Tag):
            parts.append(child.get_text())
    return "".join(parts).strip()


def _select_result_rows(soup: BeautifulSoup) -> List[List[Tag]]:
    """
    Rows shaped like a result row: 8 or more cells of their own.
    The striped papi rows (RESULT_ROW_CLASSES) always have that shape; a header row
    with the same shape fails the table number parse and is skipped.
    """
    rows = []
    for row in soup.find_all("tr"):
        cells = row.find_all("td", recursive=False)
        if len(cells) >= MIN_RESULT_CELLS:
            rows.append(cells)
    return rows


def count_striped_rows(soup: BeautifulSoup) -> int:
    """Number of rows carrying the papi striping classes, used to cross-check the shape match."""
    return len(soup.select(", ".join(f"tr.{c}" for c in RESULT_ROW_CLASSES)))


def _parse_game_row(cells: List[Tag], tournament_id: int, round_no: int, observed_at: int, row_index: int) -> Game:
    try:
        table_no_str    = cells[0].get_text().strip()
        player1_points  = cells[1].get_text().strip()
        player1_name    = cells[2].get_text().strip()
        player1_rating  = cells[3].get_text().strip()
        raw_result      = cells[4].get_text()
        player2_name    = cells[5].get_text().strip()
        player2_rating  = cells[6].get_text().strip()
        player2_points  = cells[7].get_text().strip()
    except (IndexError, AttributeError) as e:
        raise ParseRowError(f"Cell access failed: {e}", row_index=row_index) from e

    try:
        table_no = int(table_no_str)
    except ValueError as e:
        raise ParseRowError(f"Invalid table number: '{table_no_str}'", row_index=row_index) from e

    if table_no < 1:
        raise ParseRowError(f"Invalid table number: '{table_no_str}'", row_index=row_index)

    return Game(
        tournament_id   = tournament_id,
        round_no        = round_no,
        table_no        = table_no,
        player1_name    = player1_name,
        player1_rating  = player1_rating,
        player1_points  = player1_points,
        result          = raw_result.strip(),
        raw_result      = raw_result,
        player2_name    = player2_name,
        player2_rating  = player2_rating,
        player2_points  = player2_points,
        observed_at     = observed_at
    )


def _row_players(game: Game) -> List[Player]:
    return [
        Player.from_slot(name, rating_text, points_text)
        for name, rating_text, points_text in (
            (game.player1_name, game.player1_rating, game.player1_points),
            (game.player2_name, game.player2_rating, game.player2_points),
        )
        if is_countable_name(name)
    ]


def parse_round_page(
        html: Union[str, bytes],
        tournament_id: int,
        round_no: int,
        *,
        observed_at: Optional[int] = None,
        logger: Optional[OperationLogger] = None
    ) -> Tuple[str, List[Game], Dict[str, Player]]:
    """
    Parse a papi round results page into (tournament_name, games, players).

    Games keep page order and carry no finished_at yet; the reconciler decides it.
    Players are keyed by name, last row wins, EXEMPT excluded.
    A malformed row is skipped and logged, it never aborts the batch.
    """
    if logger is None:
        logger = OperationLogger(
            verbosity       = LOGGER_VERBOSITY,
            print_output    = False,
            log_to_db       = False,
            object_type     = "game",
            run_type        = "scrape"
        )
    if observed_at is None:
        observed_at = now_millis()

    soup = BeautifulSoup(html or "", "html.parser")
    tournament_name = _extract_tournament_name(soup)

    games: List[Game] = []
    players: Dict[str, Player] = {}
    seen_ids = set()

    for row_index, cells in enumerate(_select_result_rows(soup)):
        logger.inc_processed()
        logger_keys = {
            "tournament_id":    tournament_id,
            "round_no":         round_no,
            "row_index":        row_index
        }

        try:
            game = _parse_game_row(cells, tournament_id, round_no, observed_at, row_index)
            row_players = _row_players(game)
        except (ParseRowError, ValueError) as e:
            logger.skipped(logger_keys, f"Row skipped: {e}")
            continue

        logger_keys["game_id"] = game.game_id
        if game.game_id in seen_ids:
            logger.warning(logger_keys, "Duplicate table number on page, keeping first row")
            continue
        seen_ids.add(game.game_id)

        games.append(game)
        for player in row_players:
            players[player.name] = player
        logger.success(logger_keys, "Game row parsed")

    if not games:
        logger.warning({"tournament_id": tournament_id, "round_no": round_no}, "No game rows found on page")
    elif len(games) < count_striped_rows(soup):
        logger.warning({"tournament_id": tournament_id, "round_no": round_no}, "Fewer games parsed than striped result rows")

    return tournament_name, games, players
