"""
FastAPI web application for Tal Chess.

Two ways to play:

- POST /api/move is stateless, like a UCI "go". The client sends a FEN and a
  persona tier and gets back the persona's move and the resulting FEN. No
  thinking delay is applied.
- /api/games/* holds in-memory game sessions. Each session has a board, a
  persona engine and a running chess clock driven by an asyncio task. The
  client posts its own moves, then asks the persona to reply. The reply
  endpoint awaits the persona's thinking delay.

Every response carries the position FEN (for the board renderer) and the
formatted clock displays (for the timer widgets). Rendering itself is the
client's job.

Architecture notes:
- /api/move is a sync endpoint: FastAPI runs it in a thread pool, the right
  place for a CPU-bound scoring pass.
- Session endpoints are async so the clock task and the engine's awaited
  thinking delay share the server's event loop.
- Sessions are kept in process memory and vanish on restart.

Configuration (environment):
    TALCHESS_LOG_LEVEL    logging level name (default INFO)
    TALCHESS_THINK_SCALE  multiplier on persona think times (default 1.0)
"""

import logging
import os
import random
import uuid

import chess
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, field_validator

from talchess.clock import DEFAULT_TIME_CONTROL, TIME_CONTROLS, Side
from talchess.profiles import DEFAULT_PROFILE, PROFILES
from talchess.selector import PersonaEngine
from talchess.session import (
    GameError,
    GameSession,
    IllegalMoveError,
    parse_color,
)

# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

logging.basicConfig(level=os.environ.get("TALCHESS_LOG_LEVEL", "INFO").upper())
_log = logging.getLogger(__name__)

THINK_SCALE = float(os.environ.get("TALCHESS_THINK_SCALE", "1.0"))

app = FastAPI(title="Tal Chess", version="1.0.0")

_sessions: dict[str, GameSession] = {}


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class MoveRequest(BaseModel):
    """
    Stateless move request.

    Fields:
        fen:     Full FEN of the position; the persona plays the side to move.
        persona: Tier name. Unknown names fall back to the default tier.
        seed:    Optional seed for reproducible choices.
    """

    fen: str
    persona: str = DEFAULT_PROFILE
    seed: int | None = None


class MoveResponse(BaseModel):
    """
    The persona's answer.

    Fields:
        move:   Move in UCI notation (e.g. "e2e4", "e7e8q").
        fen:    FEN after the move is applied.
        source: "book", "mistake" or "scored".
        score:  Style score on the scored path, else null.
    """

    move: str
    fen: str
    source: str
    score: float | None = None


class NewGameRequest(BaseModel):
    persona: str = DEFAULT_PROFILE
    time_control: str = DEFAULT_TIME_CONTROL
    player_color: str = "white"
    seed: int | None = None

    @field_validator("player_color")
    @classmethod
    def check_color(cls, v: str) -> str:
        """Normalize to "white"/"black"; anything else is rejected."""
        return chess.COLOR_NAMES[parse_color(v)]


class PlayerMoveRequest(BaseModel):
    move: str


class TimerView(BaseModel):
    text: str
    seconds: float | None
    active: bool
    low: bool
    critical: bool


class ClockView(BaseModel):
    time_control: str
    status: str
    active_side: str | None
    increment: int
    player: TimerView
    opponent: TimerView


class GameState(BaseModel):
    id: str
    fen: str
    turn: str
    player_color: str
    persona: str
    status: str
    winner: str | None
    history: list[str]
    opening: str | None
    material: float
    captured_by_player: list[str]
    captured_by_opponent: list[str]
    last_move: str | None
    last_source: str | None
    clock: ClockView


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _timer_view(session: GameSession, side: Side) -> TimerView:
    display = session.clock.display(side)
    return TimerView(
        text=display.text,
        seconds=session.clock.remaining(side),
        active=display.active,
        low=display.low,
        critical=display.critical,
    )


def _state(game_id: str, session: GameSession) -> GameState:
    clock = session.clock
    winner = session.winner()
    last = session.board.move_stack[-1].uci() if session.board.move_stack else None
    return GameState(
        id=game_id,
        fen=session.board.fen(),
        turn=chess.COLOR_NAMES[session.board.turn],
        player_color=chess.COLOR_NAMES[session.player_color],
        persona=session.engine.profile.key,
        status=session.status().value,
        winner=winner.value if winner else None,
        history=session.history_san(),
        opening=session.opening(),
        material=session.material_balance(),
        captured_by_player=[chess.piece_symbol(p) for p in session.captured_by_player],
        captured_by_opponent=[chess.piece_symbol(p) for p in session.captured_by_opponent],
        last_move=last,
        last_source=session.last_selection.source if session.last_selection else None,
        clock=ClockView(
            time_control=clock.time_control.key,
            status=clock.status.value,
            active_side=clock.active_side.value if clock.active_side else None,
            increment=clock.increment_ms // 1000,
            player=_timer_view(session, Side.PLAYER),
            opponent=_timer_view(session, Side.OPPONENT),
        ),
    )


def _get_session(game_id: str) -> GameSession:
    session = _sessions.get(game_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown game: {game_id}")
    return session


def _http_error(exc: GameError) -> HTTPException:
    status = 400 if isinstance(exc, IllegalMoveError) else 409
    return HTTPException(status_code=status, detail=str(exc))


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------


@app.get("/api/personas")
def list_personas() -> list[dict]:
    return [
        {
            "key": p.key,
            "name": p.name,
            "rating": p.rating,
            "intensity": p.intensity,
            "mistake_rate": p.mistake_rate,
            "description": p.description,
        }
        for p in PROFILES.values()
    ]


@app.get("/api/time-controls")
def list_time_controls() -> list[dict]:
    return [
        {
            "key": tc.key,
            "name": tc.name,
            "seconds": tc.seconds,
            "increment": tc.increment,
            "description": tc.description,
        }
        for tc in TIME_CONTROLS.values()
    ]


# ---------------------------------------------------------------------------
# Stateless move
# ---------------------------------------------------------------------------


@app.post("/api/move", response_model=MoveResponse)
def api_move(request: MoveRequest) -> MoveResponse:
    """
    Pick the persona's move for the given position.

    Raises:
        HTTPException 400: Malformed FEN or game already over.
    """
    try:
        board = chess.Board(request.fen)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid FEN: {exc}") from exc

    if board.is_game_over():
        raise HTTPException(
            status_code=400,
            detail=f"Game is already over: {board.result()}",
        )

    engine = PersonaEngine(request.persona, rng=random.Random(request.seed))
    selection = engine.select_move(board)
    if selection is None:
        raise HTTPException(status_code=400, detail="No legal moves")

    _log.info(
        "persona=%s move=%s source=%s fen=%s",
        engine.profile.key,
        selection.move.uci(),
        selection.source,
        request.fen[:40],
    )

    board.push(selection.move.to_move())
    return MoveResponse(
        move=selection.move.uci(),
        fen=board.fen(),
        source=selection.source,
        score=selection.score,
    )


# ---------------------------------------------------------------------------
# Game sessions
# ---------------------------------------------------------------------------


@app.post("/api/games", response_model=GameState, status_code=201)
async def create_game(request: NewGameRequest) -> GameState:
    """Create a session and start the clock of the side to move."""
    session = GameSession(
        persona=request.persona,
        time_control=request.time_control,
        player_color=request.player_color,
        rng=random.Random(request.seed),
        think_scale=THINK_SCALE,
    )
    game_id = uuid.uuid4().hex
    _sessions[game_id] = session
    session.start()
    session.ensure_clock_task()
    return _state(game_id, session)


@app.get("/api/games/{game_id}", response_model=GameState)
async def get_game(game_id: str) -> GameState:
    return _state(game_id, _get_session(game_id))


@app.delete("/api/games/{game_id}", status_code=204)
async def delete_game(game_id: str) -> None:
    session = _get_session(game_id)
    session.close()
    del _sessions[game_id]


@app.post("/api/games/{game_id}/move", response_model=GameState)
async def player_move(game_id: str, request: PlayerMoveRequest) -> GameState:
    """
    Apply the human's move.

    Raises:
        HTTPException 400: Illegal or malformed move.
        HTTPException 409: Not the player's turn, or the game is over.
    """
    session = _get_session(game_id)
    try:
        session.play_player_move(request.move)
    except GameError as exc:
        raise _http_error(exc) from exc
    return _state(game_id, session)


@app.post("/api/games/{game_id}/opponent", response_model=GameState)
async def opponent_move(game_id: str) -> GameState:
    """
    Let the persona think and reply.

    If the game was reset or ended while the persona was thinking, its move
    is discarded and the current state is returned unchanged.
    """
    session = _get_session(game_id)
    try:
        await session.play_opponent_move()
    except GameError as exc:
        raise _http_error(exc) from exc
    return _state(game_id, session)


@app.post("/api/games/{game_id}/undo", response_model=GameState)
async def undo_move(game_id: str) -> GameState:
    session = _get_session(game_id)
    if not session.undo():
        raise HTTPException(status_code=409, detail="Nothing to undo")
    return _state(game_id, session)


@app.post("/api/games/{game_id}/reset", response_model=GameState)
async def reset_game(game_id: str) -> GameState:
    session = _get_session(game_id)
    session.reset()
    session.ensure_clock_task()
    return _state(game_id, session)


@app.post("/api/games/{game_id}/pause", response_model=GameState)
async def pause_clock(game_id: str) -> GameState:
    session = _get_session(game_id)
    session.clock.pause()
    return _state(game_id, session)


@app.post("/api/games/{game_id}/resume", response_model=GameState)
async def resume_clock(game_id: str) -> GameState:
    session = _get_session(game_id)
    if not session.is_over:
        session.clock.resume()
    return _state(game_id, session)
