import random

import chess
import pytest

from talchess.moves import MoveDescriptor
from talchess.openings import (
    BOOKS,
    book_move,
    lookup,
    opening_name,
    position_key,
)


def _board(*ucis: str) -> chess.Board:
    board = chess.Board()
    for uci in ucis:
        board.push_uci(uci)
    return board


def test_position_key_drops_en_passant_and_counters() -> None:
    board = _board("e2e4")
    assert board.fen().endswith("b KQkq - 0 1")
    assert position_key(board) == "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq"
    assert position_key(board.fen()) == position_key(board)


def test_position_key_ignores_move_counters() -> None:
    a = chess.Board("rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq e3 0 1")
    b = chess.Board("rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 12 40")
    assert position_key(a) == position_key(b)


def test_black_answers_e4_with_the_sicilian() -> None:
    key = position_key(_board("e2e4"))
    assert lookup(key, chess.BLACK) == (MoveDescriptor("c7", "c5"),)


def test_white_opens_with_e4() -> None:
    assert lookup(position_key(chess.Board()), chess.WHITE) == (MoveDescriptor("e2", "e4"),)


def test_books_are_per_side() -> None:
    key = position_key(_board("e2e4"))
    assert lookup(key, chess.WHITE) == ()


def test_out_of_book_position() -> None:
    assert lookup(position_key(_board("a2a3", "h7h6")), chess.WHITE) == ()


def test_stored_key_matches_as_prefix_of_longer_query() -> None:
    key = position_key(_board("e2e4"))
    assert lookup(key + " e3 0 1", chess.BLACK) == (MoveDescriptor("c7", "c5"),)


def test_each_position_is_listed_once_per_side() -> None:
    for color in (chess.WHITE, chess.BLACK):
        keys = [stored for stored, _ in BOOKS[color]]
        assert len(keys) == len(set(keys))


def test_kings_indian_and_benoni_both_answer_c4() -> None:
    board = _board("d2d4", "g8f6", "c2c4")
    assert lookup(position_key(board), chess.BLACK) == (
        MoveDescriptor("c7", "c5"),
        MoveDescriptor("g7", "g6"),
    )
    rng = random.Random(8)
    assert {book_move(board, rng).uci() for _ in range(200)} == {"c7c5", "g7g6"}


def test_earlier_prefix_entry_shadows_longer_match(monkeypatch: pytest.MonkeyPatch) -> None:
    placement = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b"
    book = (
        (f"{placement} KQ", (MoveDescriptor("e7", "e5"),)),
        (f"{placement} KQkq", (MoveDescriptor("c7", "c5"),)),
    )
    monkeypatch.setitem(BOOKS, chess.BLACK, book)
    assert lookup(f"{placement} KQkq", chess.BLACK) == (MoveDescriptor("e7", "e5"),)
    assert lookup(f"{placement} Kk", chess.BLACK) == ()


@pytest.mark.parametrize("color", [chess.WHITE, chess.BLACK])
def test_every_book_move_is_legal_in_its_position(color: chess.Color) -> None:
    for key, moves in BOOKS[color]:
        board = chess.Board(key + " - 0 1")
        assert board.turn == color, key
        for descriptor in moves:
            assert descriptor.to_move() in board.legal_moves, (key, descriptor.uci())


def test_book_move_samples_among_candidates() -> None:
    board = _board("e2e4", "c7c5", "g1f3", "d7d6", "d2d4", "c5d4", "f3d4",
                   "g8f6", "b1c3", "a7a6")
    rng = random.Random(3)
    seen = {book_move(board, rng).uci() for _ in range(200)}
    assert seen == {"c1g5", "c1e3", "f2f3"}


def test_book_move_none_out_of_book() -> None:
    assert book_move(_board("a2a3"), random.Random(0)) is None


def test_opening_name_reports_longest_line() -> None:
    assert opening_name(chess.Board()) is None
    assert opening_name(_board("e2e4", "e7e5", "f2f4")).startswith("King's Gambit")

    najdorf = ["e2e4", "c7c5", "g1f3", "d7d6", "d2d4", "c5d4", "f3d4",
               "g8f6", "b1c3", "a7a6"]
    assert opening_name(_board(*najdorf)).startswith("Sicilian Najdorf")
    assert opening_name(_board(*najdorf, "c1e3")).startswith("Sicilian English Attack")
