import dataclasses

import chess
import pytest

from talchess.constants import CHECKMATE_BONUS, REPETITION_PENALTY
from talchess.profiles import resolve
from talchess.style import (
    attacking_replies,
    captured_piece_type,
    is_complex_position,
    score_move,
    square_distance,
)

BACK_RANK_MATE = "6k1/5ppp/8/8/8/8/5PPP/R5K1 w - - 0 1"
COMPLEX_MIDDLEGAME = "r2q1rk1/ppp2ppp/2np1n2/2b1p1B1/2B1P1b1/2NP1N2/PPP2PPP/R2Q1RK1 w - - 0 8"


def _score(fen_or_board, uci: str, persona: str = "legend") -> float:
    board = fen_or_board if isinstance(fen_or_board, chess.Board) else chess.Board(fen_or_board)
    profile = persona if not isinstance(persona, str) else resolve(persona)
    return score_move(board, chess.Move.from_uci(uci), profile)


def test_square_distance_is_manhattan() -> None:
    assert square_distance(chess.A1, chess.H8) == 14
    assert square_distance(chess.E4, chess.E4) == 0
    assert square_distance(chess.D5, chess.H8) == 7


def test_captured_piece_type() -> None:
    board = chess.Board("7k/8/8/3q4/4P3/8/8/7K w - - 0 1")
    assert captured_piece_type(board, chess.Move.from_uci("e4d5")) == chess.QUEEN
    assert captured_piece_type(board, chess.Move.from_uci("e4e5")) is None

    en_passant = chess.Board("7k/8/8/3pP3/8/8/8/7K w - d6 0 2")
    move = chess.Move.from_uci("e5d6")
    assert en_passant.is_en_passant(move)
    assert captured_piece_type(en_passant, move) == chess.PAWN


@pytest.mark.parametrize("persona", ["beginner", "legend"])
def test_checkmate_outranks_every_other_move(persona: str) -> None:
    board = chess.Board(BACK_RANK_MATE)
    mate = _score(board, "a1a8", persona)
    assert mate >= CHECKMATE_BONUS
    for move in board.legal_moves:
        if move.uci() != "a1a8":
            assert _score(board, move.uci(), persona) < mate


def test_scoring_does_not_touch_the_board() -> None:
    board = chess.Board()
    board.push_uci("e2e4")
    fen, stack = board.fen(), list(board.move_stack)
    for move in board.legal_moves:
        score_move(board, move, resolve("master"))
    assert board.fen() == fen
    assert board.move_stack == stack


def test_pawn_takes_queen_scores_material_and_center() -> None:
    # 900 x 1.5 for the queen, +25 for d5, +50 x intensity for a d-file pawn.
    fen = "7k/8/8/3q4/4P3/8/8/7K w - - 0 1"
    assert _score(fen, "e4d5", "legend") == pytest.approx(1425.0)
    assert _score(fen, "e4d5", "beginner") == pytest.approx(1385.0)


def test_sacrifice_acceptance_depends_on_threshold() -> None:
    # Rook takes a defended-by-nothing pawn: a four-pawn deficit on paper.
    fen = "7k/8/8/3p4/8/8/8/3R3K w - - 0 1"
    beginner = resolve("beginner")
    cautious = dataclasses.replace(beginner, sacrifice_threshold=-3)
    board = chess.Board(fen)
    move = chess.Move.from_uci("d1d5")
    bold = score_move(board, move, beginner)
    timid = score_move(board, move, cautious)
    assert bold - timid == pytest.approx(50 * beginner.intensity)


def test_sacrifice_continuation_needs_attacking_replies() -> None:
    quiet = chess.Board("7k/8/8/3p4/8/8/8/3R3K w - - 0 1")
    lively = chess.Board("7k/8/1n3n2/3p4/5n2/8/8/3R3K w - - 0 1")
    move = chess.Move.from_uci("d1d5")

    after_quiet = quiet.copy()
    after_quiet.push(move)
    after_lively = lively.copy()
    after_lively.push(move)
    assert attacking_replies(after_quiet) == 0
    assert attacking_replies(after_lively) > 2

    legend = resolve("legend")
    # Continuation bonus: 100 x deficit (4 pawns) x intensity.
    assert score_move(lively, move, legend) - score_move(quiet, move, legend) == pytest.approx(400.0)


def test_repetition_penalty_for_moving_a_piece_twice_early() -> None:
    board = chess.Board()
    for uci in ("g1f3", "b8c6"):
        board.push_uci(uci)
    fresh = chess.Board(board.fen())
    assert fresh.ply() == board.ply()

    with_history = _score(board, "f3e5", "advanced")
    without_history = _score(fresh, "f3e5", "advanced")
    assert with_history - without_history == pytest.approx(REPETITION_PENALTY)


def test_quiet_retreat_is_penalized() -> None:
    board = chess.Board("7k/8/8/8/3N4/8/8/7K w - - 0 30")
    forward = _score(board, "d4e6", "legend")
    back = _score(board, "d4e2", "legend")
    assert back < 0 < forward


def test_complex_position_detection() -> None:
    assert not is_complex_position(chess.Board())
    board = chess.Board(COMPLEX_MIDDLEGAME)
    assert board.legal_moves.count() > 30
    assert is_complex_position(board)

    legend = resolve("legend")
    move = chess.Move.from_uci("a2a3")
    assert score_move(board, move, legend, True) - score_move(board, move, legend, False) == 60.0
