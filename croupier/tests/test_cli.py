"""
Tests for the command-line interface.
"""

from ..cli import main
from ..engine_core.events import SessionMoved, encode_event_frame
from .factories import card, roulette_state


class TestCli:
    """Tests for croupier subcommands."""

    def test_games(self, capsys):
        assert main(["games"]) == 0

        out = capsys.readouterr().out
        assert "Roulette" in out
        assert "Ultimate Hold'em" in out

    def test_decode(self, capsys):
        assert main(["decode", "roulette", roulette_state(bets=[(0, 17, 10)], result=17).hex()]) == 0

        out = capsys.readouterr().out
        assert out.startswith("Roulette v1 - result")
        assert "wager kind=0 target=17 amount=10" in out
        assert "color: black" in out

    def test_decode_cards(self, capsys):
        blob = bytes([card("K"), card("5", 1), 0]).hex()

        assert main(["decode", "war", blob]) == 0
        assert "player: K♠" in capsys.readouterr().out

    def test_decode_failure(self, capsys):
        assert main(["decode", "roulette", "0115"]) == 1
        assert "Decode failed" in capsys.readouterr().err

    def test_unknown_game(self, capsys):
        assert main(["decode", "poker", "00"]) == 1
        assert "Unknown game type" in capsys.readouterr().err

    def test_bad_hex(self, capsys):
        assert main(["frame", "xyz"]) == 1
        assert "not valid hex" in capsys.readouterr().err

    def test_encode_place(self, capsys):
        assert main(["encode", "roulette", "place_wager", "--kind", "0", "--target", "17", "--amount", "10"]) == 0
        assert capsys.readouterr().out.strip() == "000011" + "000000000000000a"

    def test_encode_odds(self, capsys):
        assert main(["encode", "craps", "add-odds", "--amount", "40"]) == 0
        assert capsys.readouterr().out.strip() == "01" + "0000000000000028"

    def test_encode_unsupported(self, capsys):
        assert main(["encode", "hilo", "hit"]) == 1
        assert "Encode failed" in capsys.readouterr().err

    def test_frame(self, capsys):
        frame = encode_event_frame(SessionMoved(session_id=5, state=b"\x01\x02", move_number=2))

        assert main(["frame", frame.hex()]) == 0
        assert capsys.readouterr().out.strip() == "moved session=5 move=2 state=0102"

    def test_no_command(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out
