"""
Style constants: piece values, style modifiers, and clock parameters.

Every number the scorer and the clock depend on lives here so that tuning a
persona never means hunting for magic numbers inside the scoring code.

Two piece-value scales are used on purpose:
    - CP_VALUES (centipawns) drive the capture term of the move score.
    - PAWN_VALUES (whole pawns) measure material given up in a sacrifice and
      are compared against a profile's sacrifice_threshold, which is also
      expressed in pawns.
"""

import chess

# ---------------------------------------------------------------------------
# Piece values
# ---------------------------------------------------------------------------
# The king is worth nothing here: it can never be captured, and a king move
# is never treated as a sacrifice.

CP_VALUES: dict[int, int] = {
    chess.PAWN:   100,
    chess.KNIGHT: 320,
    chess.BISHOP: 330,
    chess.ROOK:   500,
    chess.QUEEN:  900,
    chess.KING:   0,
}

PAWN_VALUES: dict[int, int] = {
    chess.PAWN:   1,
    chess.KNIGHT: 3,
    chess.BISHOP: 3,
    chess.ROOK:   5,
    chess.QUEEN:  9,
    chess.KING:   0,
}

# Material balance shown to the player. Bishops get a small edge over knights.
DISPLAY_PAWN_VALUES: dict[int, float] = {
    chess.PAWN:   1.0,
    chess.KNIGHT: 3.0,
    chess.BISHOP: 3.2,
    chess.ROOK:   5.0,
    chess.QUEEN:  9.0,
    chess.KING:   0.0,
}

# ---------------------------------------------------------------------------
# Move scoring
# ---------------------------------------------------------------------------

CAPTURE_MULTIPLIER: float = 1.5   # captures are attractive at every intensity
CHECKMATE_BONUS: int = 100_000    # larger than any sum of the other terms

# Style modifiers (centipawns). Terms marked "x intensity" are multiplied by
# the active profile's intensity before being added.
CHECK_BONUS: int = 80                   # flat, plus the same again x intensity
SACRIFICE_BONUS: int = 150              # x intensity
SACRIFICE_ACCEPT_BONUS: int = 50        # x intensity, deficit within threshold
SACRIFICE_CONTINUATION: int = 100       # x deficit x intensity
KING_ATTACK_BONUS: int = 100            # x squares gained x intensity
KING_APPROACH_BONUS: int = 20           # x squares gained x intensity
KING_PROXIMITY_BONUS: int = 30          # x intensity
CENTER_PAWN_BONUS: int = 50             # x intensity
CENTRAL_SQUARE_BONUS: int = 25
PIECE_ACTIVITY_BONUS: int = 40          # x intensity
DEVELOPMENT_BONUS: int = 20
REPETITION_PENALTY: int = -15
PASSIVE_PIECE_PENALTY: int = -50        # x intensity
COMPLEX_POSITION_BONUS: int = 60        # x intensity

# A sacrifice "keeps the attack going" when the opponent has more than this
# many checking or capturing replies.
ATTACK_REPLY_THRESHOLD: int = 2

# Proximity bonus is awarded when the destination is this close to the king.
KING_PROXIMITY_DISTANCE: int = 3

CENTRAL_SQUARES: frozenset[int] = frozenset(
    [chess.C4, chess.D4, chess.E4, chess.F4, chess.C5, chess.D5, chess.E5, chess.F5]
)
CENTRAL_PAWN_FILES: frozenset[int] = frozenset([3, 4])  # d and e files

# Plies during which shuffling the same piece is penalized.
REPETITION_WINDOW_PLIES: int = 10
# Plies during which developing minor pieces earns the activity bonus.
DEVELOPMENT_WINDOW_PLIES: int = 20

# A position is "complex" when it has more legal moves than this
# inside the middlegame window (inclusive bounds).
COMPLEXITY_MOVE_THRESHOLD: int = 30
MIDDLEGAME_PLY_RANGE: tuple[int, int] = (10, 40)

# ---------------------------------------------------------------------------
# Move selection
# ---------------------------------------------------------------------------

CANDIDATE_POOL_BASE: int = 3          # pool = ceil(3 x (1 - intensity x 0.5))
CANDIDATE_POOL_SHRINK: float = 0.5
THINK_JITTER_FRACTION: float = 0.15   # think time varies by +/-15%

# Under UCI the simulated thinking delay never uses more than this share of
# the time budget the GUI grants for the move.
THINK_BUDGET_FRACTION: float = 0.5

# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------
# Remaining time is tracked in integer milliseconds so repeated ticks never
# accumulate floating point drift.

TICK_INTERVAL_MS: int = 100
LOW_TIME_SECONDS: int = 30
CRITICAL_TIME_SECONDS: int = 10
TENTHS_DISPLAY_SECONDS: int = 20      # show tenths below this
