import asyncio
import random

import chess
import pytest

from talchess.clock import ClockStatus, Side
from talchess.session import (
    GameOverError,
    GameSession,
    GameStatus,
    IllegalMoveError,
    NotYourTurnError,
    parse_color,
)


class TopChoice(random.Random):
    """Random source that always picks the best-ranked candidate."""

    def choice(self, seq):
        return seq[0]


async def _no_sleep(delay: float) -> None:
    return None


def _session(**kwargs) -> GameSession:
    kwargs.setdefault("persona", "legend")
    kwargs.setdefault("rng", random.Random(1))
    kwargs.setdefault("sleep", _no_sleep)
    return GameSession(**kwargs)


@pytest.mark.parametrize(
    "value, color",
    [("white", chess.WHITE), ("B", chess.BLACK), (" w ", chess.WHITE), (chess.BLACK, chess.BLACK)],
)
def test_parse_color(value, color) -> None:
    assert parse_color(value) is color


def test_parse_color_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        parse_color("purple")


def test_start_runs_the_clock_of_the_side_to_move() -> None:
    white = _session(player_color="white")
    white.start()
    assert white.clock.active_side is Side.PLAYER
    assert white.clock.status is ClockStatus.RUNNING

    black = _session(player_color="black")
    black.start()
    assert black.clock.active_side is Side.OPPONENT


def test_full_exchange_of_moves() -> None:
    session = _session(player_color="white")
    session.start()

    session.play_player_move("e2e4")
    assert session.clock.active_side is Side.OPPONENT

    move = asyncio.run(session.play_opponent_move())
    assert move.uci() == "c7c5"
    assert session.last_selection.source == "book"
    assert session.clock.active_side is Side.PLAYER
    assert session.history_san() == ["e4", "c5"]
    assert session.status() is GameStatus.IN_PROGRESS


def test_persona_opens_when_player_has_black() -> None:
    session = _session(player_color="black")
    session.start()
    with pytest.raises(NotYourTurnError):
        session.play_player_move("e7e5")
    assert asyncio.run(session.play_opponent_move()).uci() == "e2e4"
    assert session.side_to_move is Side.PLAYER


def test_illegal_and_malformed_moves() -> None:
    session = _session()
    session.start()
    with pytest.raises(IllegalMoveError):
        session.play_player_move("e2e5")
    with pytest.raises(IllegalMoveError):
        session.play_player_move("zz")
    assert session.board.move_stack == []


def test_opponent_cannot_move_on_players_turn() -> None:
    session = _session()
    session.start()
    with pytest.raises(NotYourTurnError):
        asyncio.run(session.play_opponent_move())


def test_promotion_defaults_to_queen() -> None:
    session = _session()
    session.board = chess.Board("8/P6k/8/8/8/8/8/K7 w - - 0 1")
    move = session.play_player_move("a7a8")
    assert move.promotion == chess.QUEEN
    assert session.board.piece_at(chess.A8) == chess.Piece(chess.QUEEN, chess.WHITE)


def test_captures_and_material() -> None:
    session = _session()
    assert session.material_balance() == 0.0
    session.board = chess.Board("7k/8/8/3q4/4P3/8/8/7K w - - 0 1")
    assert session.material_balance() == -8.0
    session.play_player_move("e4d5")
    assert session.captured_by_player == [chess.QUEEN]
    assert session.captured_by_opponent == []
    assert session.material_balance() == 1.0


def test_stale_result_is_discarded_after_reset() -> None:
    session = None

    async def reset_while_thinking(delay: float) -> None:
        session.reset()

    session = _session(player_color="black", sleep=reset_while_thinking)
    session.start()

    assert asyncio.run(session.play_opponent_move()) is None
    assert session.board.move_stack == []
    assert session.last_selection is None
    assert session.clock.active_side is Side.OPPONENT


def _fools_mate_session() -> GameSession:
    session = _session(player_color="white", rng=TopChoice(1))
    session.start()
    for uci in ("f2f3", "e7e5"):
        session.board.push_uci(uci)
    session.play_player_move("g2g4")
    return session


def test_checkmate_ends_the_game_and_pauses_the_clock() -> None:
    session = _fools_mate_session()

    move = asyncio.run(session.play_opponent_move())

    assert move.uci() == "d8h4"
    assert session.status() is GameStatus.CHECKMATE
    assert session.winner() is Side.OPPONENT
    assert session.clock.paused
    with pytest.raises(GameOverError):
        session.play_player_move("a2a3")


def test_undo_after_checkmate_restarts_the_clock() -> None:
    session = _fools_mate_session()
    asyncio.run(session.play_opponent_move())
    assert session.clock.status is ClockStatus.IDLE

    assert session.undo() is True
    assert session.status() is GameStatus.IN_PROGRESS
    assert session.clock.status is ClockStatus.RUNNING
    assert session.clock.active_side is Side.PLAYER
    assert session.side_to_move is Side.PLAYER


def test_undo_keeps_a_manual_pause() -> None:
    session = _session()
    session.start()
    session.play_player_move("e2e4")
    asyncio.run(session.play_opponent_move())
    session.clock.pause()
    assert session.undo() is True
    assert session.clock.status is ClockStatus.IDLE


def test_timeout_ends_the_game() -> None:
    session = _session(time_control="bullet")
    session.start()
    for _ in range(1800):
        session.clock.tick()

    assert session.timed_out is Side.PLAYER
    assert session.status() is GameStatus.TIMEOUT
    assert session.winner() is Side.OPPONENT
    assert session.is_over
    with pytest.raises(GameOverError):
        session.play_player_move("e2e4")


def test_undo_takes_back_a_full_move() -> None:
    session = _session()
    session.start()
    assert session.undo() is False

    session.play_player_move("e2e4")
    asyncio.run(session.play_opponent_move())
    assert session.undo() is True
    assert session.board.fen() == chess.STARTING_FEN
    assert session.captured_by_player == []
    assert session.undo() is False


def test_reset_restores_a_fresh_game() -> None:
    session = _session(time_control="blitz")
    session.start()
    session.play_player_move("e2e4")
    session.clock.tick()
    session.reset()
    assert session.board.move_stack == []
    assert session.clock.remaining(Side.PLAYER) == 300
    assert session.clock.active_side is Side.PLAYER
    assert session.status() is GameStatus.IN_PROGRESS


def test_opening_name_follows_the_game() -> None:
    session = _session()
    session.start()
    session.play_player_move("e2e4")
    assert session.opening() is None
    for uci in ("e7e5", "f2f4"):
        session.board.push_uci(uci)
    assert session.opening().startswith("King's Gambit")
