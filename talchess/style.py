"""
Tal-style move scoring: material, tactics, and a taste for the attack.

This is not a position evaluator. Each legal move is scored on its own from
a handful of fixed heuristics, and the persona's intensity decides how much
the stylistic terms matter relative to plain material:

    capture       captured value x 1.5 (never scaled: captures always appeal)
    checkmate     +100000, dwarfing everything else
    check         flat bonus plus the same again x intensity
    sacrifice     giving up material in a capture; more when within the
                  persona's threshold and more again if the attack continues
    king hunt     moving closer to the enemy king (Manhattan distance)
    center        landing on one of the eight central squares
    development   leaving the back rank
    repetition    moving an already-moved piece early in the game
    retreat       quiet moves back toward one's own back rank
    complexity    a bonus for every move while the position is rich

Scores are floats in centipawn-like units with no upper or lower bound.
"""

import chess

from talchess.constants import (
    ATTACK_REPLY_THRESHOLD,
    CAPTURE_MULTIPLIER,
    CENTER_PAWN_BONUS,
    CENTRAL_PAWN_FILES,
    CENTRAL_SQUARE_BONUS,
    CENTRAL_SQUARES,
    CHECK_BONUS,
    CHECKMATE_BONUS,
    COMPLEX_POSITION_BONUS,
    COMPLEXITY_MOVE_THRESHOLD,
    CP_VALUES,
    DEVELOPMENT_BONUS,
    DEVELOPMENT_WINDOW_PLIES,
    KING_APPROACH_BONUS,
    KING_ATTACK_BONUS,
    KING_PROXIMITY_BONUS,
    KING_PROXIMITY_DISTANCE,
    MIDDLEGAME_PLY_RANGE,
    PASSIVE_PIECE_PENALTY,
    PAWN_VALUES,
    PIECE_ACTIVITY_BONUS,
    REPETITION_PENALTY,
    REPETITION_WINDOW_PLIES,
    SACRIFICE_ACCEPT_BONUS,
    SACRIFICE_BONUS,
    SACRIFICE_CONTINUATION,
)
from talchess.profiles import PersonaProfile


def square_distance(a: chess.Square, b: chess.Square) -> int:
    """Manhattan distance (file delta + rank delta) between two squares."""
    return (
        abs(chess.square_file(a) - chess.square_file(b))
        + abs(chess.square_rank(a) - chess.square_rank(b))
    )


def captured_piece_type(board: chess.Board, move: chess.Move) -> chess.PieceType | None:
    """Type of the piece `move` captures, or None for a quiet move."""
    if board.is_en_passant(move):
        return chess.PAWN
    victim = board.piece_at(move.to_square)
    if victim is None or victim.color == board.turn:
        return None
    return victim.piece_type


def is_complex_position(board: chess.Board) -> bool:
    """Many legal moves inside the middlegame window: the kind of mess Tal liked."""
    low, high = MIDDLEGAME_PLY_RANGE
    if not low <= board.ply() <= high:
        return False
    return board.legal_moves.count() > COMPLEXITY_MOVE_THRESHOLD


def attacking_replies(board: chess.Board) -> int:
    """Number of legal moves in `board` that capture or give check."""
    return sum(
        1 for reply in board.legal_moves
        if board.is_capture(reply) or board.gives_check(reply)
    )


def score_move(
    board: chess.Board,
    move: chess.Move,
    profile: PersonaProfile,
    complex_position: bool | None = None,
) -> float:
    """
    Score a legal move for the side to move, Tal style.

    One probe copy of the board (without its move stack) is made to see what
    the move leads to: mate, check, and the opponent's attacking replies.
    The caller's board is never modified.

    Args:
        board:            Current position, with history if available (the
                          repetition penalty reads board.move_stack).
        move:             A legal move in `board`. Legality is the caller's
                          responsibility.
        profile:          Active persona; supplies intensity and the
                          sacrifice threshold.
        complex_position: Precomputed is_complex_position(board). The value
                          is the same for every move in a position, so
                          callers scoring all moves should compute it once.

    Returns:
        Desirability score; higher is better.

    Example:
        >>> import chess
        >>> from talchess.profiles import resolve
        >>> b = chess.Board("6k1/5ppp/8/8/8/8/5PPP/R5K1 w - - 0 1")
        >>> score_move(b, chess.Move.from_uci("a1a8"), resolve("legend")) > 100_000
        True
    """
    intensity = profile.intensity
    mover = board.piece_at(move.from_square)
    color = board.turn
    piece_type = mover.piece_type if mover else chess.PAWN
    captured = captured_piece_type(board, move)
    ply = board.ply()
    from_rank = chess.square_rank(move.from_square)
    to_rank = chess.square_rank(move.to_square)
    back_rank = 0 if color == chess.WHITE else 7

    score = 0.0

    # --- Material ---
    if captured is not None:
        score += CP_VALUES[captured] * CAPTURE_MULTIPLIER

    # --- What the move leads to ---
    probe = board.copy(stack=False)
    probe.push(move)

    if probe.is_checkmate():
        score += CHECKMATE_BONUS
    elif probe.is_check():
        score += CHECK_BONUS + CHECK_BONUS * intensity

    # --- Sacrifice: a capture made with the more valuable piece ---
    if captured is not None and PAWN_VALUES[piece_type] > PAWN_VALUES[captured]:
        deficit = PAWN_VALUES[piece_type] - PAWN_VALUES[captured]
        score += SACRIFICE_BONUS * intensity
        if attacking_replies(probe) > ATTACK_REPLY_THRESHOLD:
            score += SACRIFICE_CONTINUATION * deficit * intensity
        if deficit <= abs(profile.sacrifice_threshold):
            score += SACRIFICE_ACCEPT_BONUS * intensity

    # --- King hunt ---
    enemy_king = board.king(not color)
    if enemy_king is not None:
        before = square_distance(move.from_square, enemy_king)
        after = square_distance(move.to_square, enemy_king)
        if after < before:
            gained = before - after
            score += (KING_ATTACK_BONUS + KING_APPROACH_BONUS) * gained * intensity
        if after <= KING_PROXIMITY_DISTANCE:
            score += KING_PROXIMITY_BONUS * intensity

    # --- Center ---
    if move.to_square in CENTRAL_SQUARES:
        score += CENTRAL_SQUARE_BONUS
    if piece_type == chess.PAWN and chess.square_file(move.to_square) in CENTRAL_PAWN_FILES:
        score += CENTER_PAWN_BONUS * intensity

    # --- Development ---
    if from_rank == back_rank and piece_type != chess.KING:
        score += DEVELOPMENT_BONUS
        if piece_type in (chess.KNIGHT, chess.BISHOP) and ply < DEVELOPMENT_WINDOW_PLIES:
            score += PIECE_ACTIVITY_BONUS * intensity

    # --- Don't shuffle the same piece in the opening ---
    if ply < REPETITION_WINDOW_PLIES and any(
        earlier.from_square == move.from_square or earlier.to_square == move.from_square
        for earlier in board.move_stack
    ):
        score += REPETITION_PENALTY

    # --- Retreats ---
    retreating = to_rank < from_rank if color == chess.WHITE else to_rank > from_rank
    if retreating and captured is None:
        score += PASSIVE_PIECE_PENALTY * intensity

    # --- Complexity ---
    if complex_position is None:
        complex_position = is_complex_position(board)
    if complex_position:
        score += COMPLEX_POSITION_BONUS * intensity

    return score
