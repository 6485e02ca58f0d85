"""
Game session: one human, one persona, one board, one clock.

The session is the caller the engine and the clock were designed for. It
owns the authoritative chess.Board (python-chess is the rules oracle), a
PersonaEngine, and a ClockStateMachine. It enforces the ordering the two
collaborators rely on:

    - switch_active() is called exactly once per applied ply, after the move
      is on the board and before the other side starts thinking;
    - an engine result that arrives after the session moved on (reset, undo,
      timeout, game over) is discarded, not applied.

The second rule uses a generation counter. Every event that invalidates an
in-flight computation bumps it, and play_opponent_move() only applies its
result if the generation it started with is still current.
"""

import asyncio
import logging
import random
from enum import Enum
from typing import Awaitable, Callable

import chess

from talchess.clock import DEFAULT_TIME_CONTROL, ClockStateMachine, Side
from talchess.constants import DISPLAY_PAWN_VALUES
from talchess.openings import opening_name
from talchess.selector import PersonaEngine, Selection
from talchess.style import captured_piece_type

_log = logging.getLogger(__name__)


class GameError(ValueError):
    """Base class for requests the current game state cannot honour."""


class IllegalMoveError(GameError):
    def __init__(self, uci: str):
        self.uci = uci
        super().__init__(f"Illegal move: {uci}")


class NotYourTurnError(GameError):
    def __init__(self, side: Side):
        self.side = side
        super().__init__(f"It is not the {side.value}'s turn")


class GameOverError(GameError):
    def __init__(self, status: "GameStatus"):
        self.status = status
        super().__init__(f"Game is already over: {status.value}")


class GameStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    CHECK = "check"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    THREEFOLD_REPETITION = "threefold_repetition"
    INSUFFICIENT_MATERIAL = "insufficient_material"
    DRAW = "draw"
    TIMEOUT = "timeout"


def parse_color(value: chess.Color | str) -> chess.Color:
    """Accept chess.WHITE/BLACK or "white"/"black"/"w"/"b"."""
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in ("white", "w"):
        return chess.WHITE
    if lowered in ("black", "b"):
        return chess.BLACK
    raise ValueError(f"unknown color: {value!r}")


class GameSession:
    """
    A single game against the Tal persona.

    Args:
        persona:      Tier name or PersonaProfile for the opponent.
        time_control: Clock preset key ("blitz", "unlimited", ...).
        player_color: The human's color; the persona plays the other one.
        rng:          Random source for the engine (seed it for replays).
        sleep:        Awaitable used for the engine's thinking delay.
        think_scale:  Multiplier on the persona's think time.
    """

    def __init__(
        self,
        persona: str | None = None,
        time_control: str = DEFAULT_TIME_CONTROL,
        player_color: chess.Color | str = chess.WHITE,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        think_scale: float = 1.0,
    ) -> None:
        self.player_color = parse_color(player_color)
        self.engine = PersonaEngine(persona, rng=rng, sleep=sleep, think_scale=think_scale)
        self.clock = ClockStateMachine(time_control)
        self.clock.on_timeout(self._on_timeout)
        self.board = chess.Board()
        self.timed_out: Side | None = None
        self.started = False
        self.last_selection: Selection | None = None
        self._plies: list[tuple[Side, chess.PieceType | None]] = []
        self._generation = 0
        self._clock_task: asyncio.Task | None = None

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------

    def start(self) -> None:
        """Start the clock of whoever moves first."""
        self.started = True
        self.clock.start(self.side_to_move)
        _log.info(
            "new game: player=%s persona=%s clock=%s",
            chess.COLOR_NAMES[self.player_color],
            self.engine.profile.key,
            self.clock.time_control.key,
        )

    def reset(self) -> None:
        """New game with the same persona, color and time control."""
        self._generation += 1
        self.board = chess.Board()
        self._plies.clear()
        self.timed_out = None
        self.last_selection = None
        self.clock.reset()
        self.start()
        if self._clock_task is not None:
            self.ensure_clock_task()

    def ensure_clock_task(self) -> None:
        """Drive the clock in real time if an event loop is running."""
        if self._clock_task is not None and not self._clock_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._clock_task = loop.create_task(self.clock.run())

    def close(self) -> None:
        self._generation += 1
        if self._clock_task is not None:
            self._clock_task.cancel()
            self._clock_task = None

    # -----------------------------------------------------------------------
    # State queries
    # -----------------------------------------------------------------------

    def side_for(self, color: chess.Color) -> Side:
        return Side.PLAYER if color == self.player_color else Side.OPPONENT

    @property
    def side_to_move(self) -> Side:
        return self.side_for(self.board.turn)

    @property
    def is_over(self) -> bool:
        return self.timed_out is not None or self.board.is_game_over(claim_draw=True)

    def status(self) -> GameStatus:
        board = self.board
        if self.timed_out is not None:
            return GameStatus.TIMEOUT
        if board.is_checkmate():
            return GameStatus.CHECKMATE
        if board.is_stalemate():
            return GameStatus.STALEMATE
        if board.is_insufficient_material():
            return GameStatus.INSUFFICIENT_MATERIAL
        if board.can_claim_threefold_repetition():
            return GameStatus.THREEFOLD_REPETITION
        if board.is_game_over(claim_draw=True):
            return GameStatus.DRAW
        if board.is_check():
            return GameStatus.CHECK
        return GameStatus.IN_PROGRESS

    def winner(self) -> Side | None:
        """The winning side, or None while playing and for draws."""
        if self.timed_out is not None:
            return self.timed_out.other
        if self.board.is_checkmate():
            return self.side_for(not self.board.turn)
        return None

    @property
    def captured_by_player(self) -> list[chess.PieceType]:
        return [p for side, p in self._plies if side is Side.PLAYER and p is not None]

    @property
    def captured_by_opponent(self) -> list[chess.PieceType]:
        return [p for side, p in self._plies if side is Side.OPPONENT and p is not None]

    def material_balance(self) -> float:
        """Material difference in pawns from White's point of view."""
        balance = 0.0
        for piece in self.board.piece_map().values():
            value = DISPLAY_PAWN_VALUES[piece.piece_type]
            balance += value if piece.color == chess.WHITE else -value
        return round(balance, 1)

    def history_san(self) -> list[str]:
        replay = self.board.root()
        sans = []
        for move in self.board.move_stack:
            sans.append(replay.san(move))
            replay.push(move)
        return sans

    def opening(self) -> str | None:
        return opening_name(self.board)

    # -----------------------------------------------------------------------
    # Moves
    # -----------------------------------------------------------------------

    def play_player_move(self, uci: str) -> chess.Move:
        """
        Apply the human's move.

        Pawns reaching the last rank without a promotion piece promote to a
        queen.

        Raises:
            GameOverError:    The game has already ended.
            NotYourTurnError: It is the persona's turn.
            IllegalMoveError: `uci` is malformed or not legal here.
        """
        if self.is_over:
            raise GameOverError(self.status())
        if self.board.turn != self.player_color:
            raise NotYourTurnError(Side.PLAYER)
        try:
            move = chess.Move.from_uci(uci)
        except ValueError as exc:
            raise IllegalMoveError(uci) from exc
        if move not in self.board.legal_moves and move.promotion is None:
            move = chess.Move(move.from_square, move.to_square, promotion=chess.QUEEN)
        if move not in self.board.legal_moves:
            raise IllegalMoveError(uci)
        self._apply(move, Side.PLAYER)
        return move

    async def play_opponent_move(self) -> chess.Move | None:
        """
        Let the persona think and play.

        Returns:
            The applied move, or None when the result was discarded because
            the session changed while the engine was thinking.

        Raises:
            GameOverError:    The game has already ended.
            NotYourTurnError: It is the human's turn.
        """
        if self.is_over:
            raise GameOverError(self.status())
        if self.board.turn == self.player_color:
            raise NotYourTurnError(Side.OPPONENT)

        generation = self._generation
        selection = await self.engine.choose_move(self.board)

        if generation != self._generation or self.is_over:
            _log.info("discarding stale engine result %s", selection and selection.move)
            return None
        if selection is None:
            return None
        move = selection.move.to_move()
        if move not in self.board.legal_moves:
            _log.warning("engine produced an illegal move %s", move.uci())
            return None
        self.last_selection = selection
        self._apply(move, Side.OPPONENT)
        return move

    def undo(self) -> bool:
        """
        Take back the persona's reply and the human's move before it.

        Returns False when fewer than two plies have been played. Taking
        back a finishing move restarts the clock that game over paused.
        """
        if len(self.board.move_stack) < 2:
            return False
        finished = self.is_over
        self._generation += 1
        for _ in range(2):
            self.board.pop()
            self._plies.pop()
        if finished and not self.is_over:
            self.clock.resume()
        return True

    def _apply(self, move: chess.Move, side: Side) -> None:
        captured = captured_piece_type(self.board, move)
        self.board.push(move)
        self._plies.append((side, captured))
        self.clock.switch_active()
        if self.is_over:
            self._generation += 1
            self.clock.pause()
            _log.info("game over: %s", self.status().value)

    def _on_timeout(self, side: Side) -> None:
        self.timed_out = side
        self._generation += 1
