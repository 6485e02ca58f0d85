"""
Move selection for the Tal persona: book, then mistakes, then style.

PersonaEngine is the single entry point the game session (or the UCI and web
surfaces) talks to. Each engine instance owns its profile and its random
source, so two games never share state through the engine.

Selection runs three stages in order:

1. Opening book. If the position is in Tal's repertoire for the side to
   move, a book move is sampled uniformly and scoring is skipped entirely.

2. Mistake injection. With probability profile.mistake_rate the engine
   plays a uniformly random legal move. The legend tier has a rate of 0 and
   never reaches this path.

3. Style scoring. Every legal move is scored by style.score_move(), the
   list is sorted by score (stable, so ties keep the oracle's move order),
   and a move is sampled uniformly from the top ceil(3 x (1 - intensity/2))
   moves. More intense personas consider fewer alternatives. The mate bonus
   puts a mating move first in the ranking, but a wide pool can still
   pass it up.

Asynchronous model:
    choose_move() scores moves in a worker thread so the clock task keeps
    ticking, then awaits a simulated thinking delay of think_time_ms +/-15%.
    The engine never cancels itself. If the game ends while it is
    thinking, the caller discards the result.
"""

import asyncio
import logging
import math
import random
from dataclasses import dataclass
from typing import Awaitable, Callable

import chess

from talchess.constants import (
    CANDIDATE_POOL_BASE,
    CANDIDATE_POOL_SHRINK,
    THINK_JITTER_FRACTION,
)
from talchess.moves import MoveDescriptor
from talchess.openings import book_move
from talchess.profiles import PersonaProfile, resolve
from talchess.style import is_complex_position, score_move

_log = logging.getLogger(__name__)

BOOK = "book"
MISTAKE = "mistake"
SCORED = "scored"


@dataclass(frozen=True)
class Selection:
    """
    The engine's answer for one position.

    Attributes:
        move:   The chosen move.
        source: Which stage produced it: "book", "mistake" or "scored".
        score:  Style score of the move on the scored path, else None.
    """

    move: MoveDescriptor
    source: str
    score: float | None = None


def candidate_pool_size(profile: PersonaProfile) -> int:
    """How many top-ranked moves the scored path samples from."""
    shrink = 1 - profile.intensity * CANDIDATE_POOL_SHRINK
    return max(1, math.ceil(CANDIDATE_POOL_BASE * shrink))


class PersonaEngine:
    """
    A persona-biased opponent.

    Args:
        profile:     A PersonaProfile, or a tier name passed to resolve().
        rng:         Random source. Pass a seeded random.Random for
                     reproducible games; defaults to a fresh instance.
        sleep:       Awaitable used for the thinking delay. Tests inject a
                     recorder instead of really sleeping.
        think_scale: Multiplier applied to the profile's think time
                     (0 disables the delay).
    """

    def __init__(
        self,
        profile: PersonaProfile | str | None = None,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        think_scale: float = 1.0,
    ) -> None:
        self.profile = profile if isinstance(profile, PersonaProfile) else resolve(profile)
        self.rng = rng if rng is not None else random.Random()
        self.think_scale = think_scale
        self._sleep = sleep

    def set_profile(self, profile: PersonaProfile | str | None) -> None:
        self.profile = profile if isinstance(profile, PersonaProfile) else resolve(profile)
        _log.info(
            "persona set to %s (%d Elo)", self.profile.name, self.profile.rating
        )

    # -----------------------------------------------------------------------
    # Synchronous selection
    # -----------------------------------------------------------------------

    def rank_moves(self, board: chess.Board) -> list[tuple[chess.Move, float]]:
        """
        Score every legal move and sort best first.

        The sort is stable: equal scores keep the order in which the oracle
        generated the moves.
        """
        complex_position = is_complex_position(board)
        scored = [
            (move, score_move(board, move, self.profile, complex_position))
            for move in board.legal_moves
        ]
        return sorted(scored, key=lambda item: item[1], reverse=True)

    def select_move(self, board: chess.Board) -> Selection | None:
        """
        Pick a move for the side to move in `board`.

        Args:
            board: Current position. Not modified.

        Returns:
            A Selection, or None when there are no legal moves (the game is
            over; callers should have checked that first).
        """
        book = book_move(board, self.rng)
        if book is not None:
            _log.info("%s plays from opening book: %s", self.profile.name, book)
            return Selection(book, BOOK)

        moves = list(board.legal_moves)
        if not moves:
            return None

        if self.rng.random() < self.profile.mistake_rate:
            move = self.rng.choice(moves)
            _log.info("%s makes a small mistake: %s", self.profile.name, move.uci())
            return Selection(MoveDescriptor.from_move(move), MISTAKE)

        ranked = self.rank_moves(board)
        pool = ranked[: candidate_pool_size(self.profile)]
        move, score = self.rng.choice(pool)
        _log.info(
            "%s plays %s (score %.1f, pool %d)",
            self.profile.name, board.san(move), score, len(pool),
        )
        return Selection(MoveDescriptor.from_move(move), SCORED, score)

    # -----------------------------------------------------------------------
    # Asynchronous selection
    # -----------------------------------------------------------------------

    def think_delay(self) -> float:
        """Simulated thinking time in seconds: think_time_ms +/-15%, scaled."""
        base = self.profile.think_time_ms / 1000 * self.think_scale
        jitter = base * THINK_JITTER_FRACTION
        return base + self.rng.uniform(-jitter, jitter)

    async def choose_move(self, board: chess.Board) -> Selection | None:
        """
        Select a move without blocking the event loop, then "think".

        The board is copied before it is handed to the worker thread, so the
        caller may keep using its own board while the engine runs.
        """
        selection = await asyncio.to_thread(self.select_move, board.copy())
        await self._sleep(self.think_delay())
        return selection
