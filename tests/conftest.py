import pytest

from db import create_tables, get_conn
from models.game import Game


ROUND_PAGE = """
<html><body>
<table>
  <tr class="papi_titre"><td colspan="8">Open de Noël 2025<br>Ronde 8</td></tr>
  <tr class="papi_liste_t">
    <td>Ech</td><td>Pts</td><td>Blancs</td><td>Elo</td><td>Res.</td><td>Noirs</td><td>Elo</td><td>Pts</td>
  </tr>
  <tr class="papi_liste_c">
    <td>1</td><td>5½</td><td>DUPONT Jean</td><td>2105 F</td><td> 1-0 </td><td>MARTIN Paul</td><td>1987 N</td><td>5</td>
  </tr>
  <tr class="papi_liste_f">
    <td>2</td><td>5</td><td>BERNARD Luc</td><td>1850</td><td> - </td><td>PETIT Anne</td><td>1902 F</td><td>4½</td>
  </tr>
  <tr class="papi_liste_c">
    <td>3</td><td>4½</td><td>ROUX Marie</td><td>1750</td><td>½-½</td><td>LEROY Marc</td><td>1820</td><td>4½</td>
  </tr>
  <tr class="papi_liste_f">
    <td>4</td><td>½</td><td>MOREAU Eva</td><td>1200</td><td>1-0F</td><td>EXEMPT</td><td></td><td></td>
  </tr>
</table>
</body></html>
"""


def make_game(
    table_no,
    result="",
    *,
    tournament_id=1,
    round_no=8,
    player1_name=None,
    player2_name=None,
    player1_rating="1500",
    player2_rating="1500",
    player1_points="0",
    player2_points="0",
    finished_at=None,
    observed_at=0,
):
    return Game(
        tournament_id=tournament_id,
        round_no=round_no,
        table_no=table_no,
        player1_name=player1_name or f"White {table_no}",
        player1_rating=player1_rating,
        player1_points=player1_points,
        result=result.strip(),
        raw_result=result,
        player2_name=player2_name or f"Black {table_no}",
        player2_rating=player2_rating,
        player2_points=player2_points,
        finished_at=finished_at,
        observed_at=observed_at,
    )


@pytest.fixture
def round_page():
    return ROUND_PAGE


@pytest.fixture
def cursor():
    conn, cur = get_conn(":memory:")
    create_tables(cur)
    conn.commit()
    yield cur
    conn.close()
