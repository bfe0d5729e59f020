"""Tests for the papi round page parser and the source fetch."""

from unittest.mock import MagicMock

import pytest
import requests

from errors import FailureKind, HttpStatusError, TransportError, UnknownFailure
from models.player import Player
from scrapers.scrape_round_games_echecs import build_round_url, fetch_round_page, parse_round_page


class TestBuildRoundUrl:
    def test_round_is_zero_padded(self):
        assert build_round_url(61234, 8) == (
            "https://www.echecs.asso.fr/Resultats.aspx?URL=Tournois/Id/61234/61234&Action=08"
        )

    def test_two_digit_round_unchanged(self):
        assert build_round_url(5, 11).endswith("Tournois/Id/5/5&Action=11")


class TestParseRoundPage:
    def test_extracts_tournament_name_before_line_break(self, round_page):
        name, _, _ = parse_round_page(round_page, 1, 8)

        assert name == "Open de Noël 2025"

    def test_missing_title_gives_empty_name(self):
        name, games, players = parse_round_page("<html><body><p>nothing</p></body></html>", 1, 8)

        assert name == ""
        assert games == []
        assert players == {}

    def test_parses_games_in_page_order(self, round_page):
        _, games, _ = parse_round_page(round_page, 1, 8, observed_at=1234)

        assert [g.table_no for g in games] == [1, 2, 3, 4]
        assert [g.game_id for g in games] == ["1_8_1", "1_8_2", "1_8_3", "1_8_4"]
        assert all(g.observed_at == 1234 for g in games)
        assert all(g.finished_at is None for g in games)

    def test_header_row_is_skipped(self, round_page):
        _, games, _ = parse_round_page(round_page, 1, 8)

        assert "Blancs" not in [g.player1_name for g in games]

    def test_fields_by_column_order(self, round_page):
        _, games, _ = parse_round_page(round_page, 1, 8)
        first = games[0]

        assert first.player1_points == "5½"
        assert first.player1_name == "DUPONT Jean"
        assert first.player1_rating == "2105 F"
        assert first.player2_name == "MARTIN Paul"
        assert first.player2_rating == "1987 N"
        assert first.player2_points == "5"

    def test_raw_result_kept_untrimmed(self, round_page):
        _, games, _ = parse_round_page(round_page, 1, 8)

        assert games[0].raw_result == " 1-0 "
        assert games[0].result == "1-0"
        assert games[0].is_finished()
        assert not games[1].is_finished()

    def test_players_exclude_exempt(self, round_page):
        _, _, players = parse_round_page(round_page, 1, 8)

        assert "EXEMPT" not in players
        assert len(players) == 7
        assert players["DUPONT Jean"].rating == 2105
        assert players["DUPONT Jean"].points == 5.5
        assert players["MOREAU Eva"].points == 0.5

    def test_non_numeric_table_number_skips_only_that_row(self):
        html = """
        <table>
          <tr class="papi_liste_c"><td>1</td><td>0</td><td>A</td><td>1500</td><td>1-0</td><td>B</td><td>1400</td><td>0</td></tr>
          <tr class="papi_liste_f"><td>x</td><td>0</td><td>C</td><td>1500</td><td>1-0</td><td>D</td><td>1400</td><td>0</td></tr>
          <tr class="papi_liste_c"><td></td><td>0</td><td>E</td><td>1500</td><td>1-0</td><td>F</td><td>1400</td><td>0</td></tr>
          <tr class="papi_liste_f"><td>4</td><td>0</td><td>G</td><td>1500</td><td>0-1</td><td>H</td><td>1400</td><td>0</td></tr>
        </table>
        """
        _, games, players = parse_round_page(html, 1, 8)

        assert [g.table_no for g in games] == [1, 4]
        assert set(players) == {"A", "B", "G", "H"}

    def test_rows_with_too_few_cells_ignored(self):
        html = """
        <table>
          <tr><td>1</td><td>0</td><td>A</td><td>1500</td><td>1-0</td><td>B</td><td>1400</td></tr>
          <tr><td>2</td><td>0</td><td>C</td><td>1500</td><td>1-0</td><td>D</td><td>1400</td><td>0</td></tr>
        </table>
        """
        _, games, _ = parse_round_page(html, 1, 8)

        assert [g.table_no for g in games] == [2]

    def test_rows_selected_by_shape_without_class_names(self):
        html = """
        <table>
          <tr><td>7</td><td>1</td><td>A</td><td>1500</td><td>0-1</td><td>B</td><td>1400</td><td>1</td><td>extra</td></tr>
        </table>
        """
        _, games, _ = parse_round_page(html, 3, 2)

        assert len(games) == 1
        assert games[0].game_id == "3_2_7"

    def test_duplicate_table_number_keeps_first_row(self):
        html = """
        <table>
          <tr><td>1</td><td>0</td><td>A</td><td>1500</td><td>1-0</td><td>B</td><td>1400</td><td>0</td></tr>
          <tr><td>1</td><td>0</td><td>C</td><td>1500</td><td>1-0</td><td>D</td><td>1400</td><td>0</td></tr>
        </table>
        """
        _, games, _ = parse_round_page(html, 1, 8)

        assert len(games) == 1
        assert games[0].player1_name == "A"

    def test_odd_rating_digit_does_not_abort_page(self):
        html = """
        <table>
          <tr><td>1</td><td>0</td><td>A</td><td>1500</td><td>1-0</td><td>B</td><td>1400</td><td>0</td></tr>
          <tr><td>2</td><td>0</td><td>C</td><td>1500²</td><td>0-1</td><td>D</td><td>1400</td><td>0</td></tr>
        </table>
        """
        _, games, players = parse_round_page(html, 1, 8)

        assert [g.table_no for g in games] == [1, 2]
        assert players["C"].rating == 1500

    def test_row_failing_player_build_is_skipped(self, monkeypatch):
        def from_slot(name, rating_text, points_text):
            if name == "C":
                raise ValueError("bad slot")
            return Player(name=name)

        monkeypatch.setattr(Player, "from_slot", staticmethod(from_slot))
        html = """
        <table>
          <tr><td>1</td><td>0</td><td>A</td><td>1500</td><td>1-0</td><td>B</td><td>1400</td><td>0</td></tr>
          <tr><td>2</td><td>0</td><td>C</td><td>1500</td><td>0-1</td><td>D</td><td>1400</td><td>0</td></tr>
        </table>
        """
        _, games, players = parse_round_page(html, 1, 8)

        assert [g.table_no for g in games] == [1]
        assert set(players) == {"A", "B"}

    def test_tournament_name_keeps_inner_spacing(self):
        html = "<table><tr class='papi_titre'><td>  Open  A <br>Ronde 1</td></tr></table>"

        assert parse_round_page(html, 1, 1)[0] == "Open  A"

    def test_empty_markup(self):
        assert parse_round_page("", 1, 1) == ("", [], {})


class TestFetchRoundPage:
    def _session(self, status_code=200, text="<html></html>", side_effect=None, content_type="text/html; charset=utf-8", content=b""):
        session = MagicMock()
        if side_effect is not None:
            session.get.side_effect = side_effect
        else:
            response = MagicMock(status_code=status_code, text=text, content=content, reason="Reason",
                                 headers={"Content-Type": content_type})
            session.get.return_value = response
        return session

    def test_returns_page_text(self):
        session = self._session(text="<table></table>")

        assert fetch_round_page(1, 8, session=session) == "<table></table>"
        url = session.get.call_args[0][0]
        assert url == build_round_url(1, 8)

    def test_without_charset_returns_bytes(self):
        raw = "<table></table>".encode("utf-8")
        session = self._session(content_type="text/html", content=raw)

        assert fetch_round_page(1, 8, session=session) == raw

    def test_non_2xx_raises_http_status_error(self):
        session = self._session(status_code=503)

        with pytest.raises(HttpStatusError) as exc_info:
            fetch_round_page(1, 8, session=session)

        assert exc_info.value.status_code == 503
        assert exc_info.value.kind == FailureKind.HTTP_STATUS
        assert exc_info.value.retryable

    def test_404_is_not_retryable(self):
        session = self._session(status_code=404)

        with pytest.raises(HttpStatusError) as exc_info:
            fetch_round_page(1, 8, session=session)

        assert not exc_info.value.retryable

    def test_timeout_raises_transport_error(self):
        session = self._session(side_effect=requests.Timeout("slow"))

        with pytest.raises(TransportError) as exc_info:
            fetch_round_page(1, 8, session=session)

        assert exc_info.value.kind == FailureKind.TRANSPORT

    def test_connection_error_raises_transport_error(self):
        session = self._session(side_effect=requests.ConnectionError("refused"))

        with pytest.raises(TransportError):
            fetch_round_page(1, 8, session=session)

    def test_other_request_failure_is_unknown(self):
        session = self._session(side_effect=requests.TooManyRedirects("loop"))

        with pytest.raises(UnknownFailure):
            fetch_round_page(1, 8, session=session)


class TestPageEncoding:
    PAGE = (
        "<table><tr class='papi_titre'><td>Open d'Été<br>Ronde 3</td></tr>"
        "<tr><td>1</td><td>2½</td><td>Hélène</td><td>1500</td><td>½-½</td><td>Zoé</td><td>1400</td><td>½</td></tr>"
        "</table>"
    )

    def test_undeclared_utf8_bytes_are_decoded(self):
        name, games, players = parse_round_page(self.PAGE.encode("utf-8"), 1, 3)

        assert name == "Open d'Été"
        assert games[0].player1_name == "Hélène"
        assert games[0].points() == (0.5, 0.5)
        assert players["Hélène"].points == 2.5
        assert players["Zoé"].points == 0.5
