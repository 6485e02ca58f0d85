"""
Opening book: Tal's repertoire as a static position -> moves table.

The book is keyed on a normalized position string rather than on move order.
A position key is the first three FEN fields (piece placement, side to move,
castling rights). The en passant field and both move counters are stripped,
so a position reached with a different halfmove clock still hits the book.

Lookup semantics (kept deliberately):
    Each side's book is an ORDERED tuple of (key, moves) entries. A query
    matches the FIRST entry whose stored key is a prefix of the queried key.
    Because every stored key is a full placement + side + castling string,
    in practice this is an exact match. A shorter stored key (for example one
    with fewer castling rights) would still shadow a later, longer match. This is declaration-order
    lookup, not longest-prefix lookup.

The tables are built once at import time and never mutated.
"""

import logging
import random

import chess

from talchess.moves import MoveDescriptor

_log = logging.getLogger(__name__)

BookEntry = tuple[str, tuple[MoveDescriptor, ...]]


def position_key(position: chess.Board | str) -> str:
    """
    Normalize a board or FEN string to an opening-book key.

    Args:
        position: A chess.Board, or a FEN string (full or already trimmed).

    Returns:
        "placement side castling", e.g.
        "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq".
    """
    fen = position.fen() if isinstance(position, chess.Board) else position
    return " ".join(fen.split()[:3])


def _build(raw: list[tuple[str, str]]) -> tuple[BookEntry, ...]:
    return tuple(
        (position_key(key), tuple(MoveDescriptor.from_uci(uci) for uci in moves.split()))
        for key, moves in raw
    )


# ---------------------------------------------------------------------------
# Tal as White
# ---------------------------------------------------------------------------

WHITE_BOOK: tuple[BookEntry, ...] = _build([
    # Starting position: 1.e4, Tal's signature
    ("rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq -", "e2e4"),

    # Sicilian: 1.e4 c5, go for the Open Sicilian
    ("rnbqkbnr/pp1ppppp/8/2p5/4P3/8/PPPP1PPP/RNBQKBNR w KQkq -", "g1f3"),
    ("rnbqkbnr/pp2pppp/3p4/2p5/4P3/5N2/PPPP1PPP/RNBQKB1R w KQkq -", "d2d4"),
    ("r1bqkbnr/pp1ppppp/2n5/2p5/4P3/5N2/PPPP1PPP/RNBQKB1R w KQkq -", "d2d4"),
    ("rnbqkbnr/pp1p1ppp/4p3/2p5/4P3/5N2/PPPP1PPP/RNBQKB1R w KQkq -", "d2d4"),
    # 3.d4 cxd4 4.Nxd4
    ("rnbqkbnr/pp2pppp/3p4/8/3pP3/5N2/PPP2PPP/RNBQKB1R w KQkq -", "f3d4"),
    # 4...Nf6 5.Nc3
    ("rnbqkb1r/pp2pppp/3p1n2/8/3NP3/8/PPP2PPP/RNBQKB1R w KQkq -", "b1c3"),
    # Najdorf 5...a6: 6.Bg5, 6.Be3 or the English Attack 6.f3
    ("rnbqkb1r/1p2pppp/p2p1n2/8/3NP3/2N5/PPP2PPP/R1BQKB1R w KQkq -", "c1g5 c1e3 f2f3"),
    # Najdorf 6.Bg5 e6 7.f4, inviting the Poisoned Pawn
    ("rnbqkb1r/1p3ppp/p2ppn2/6B1/3NP3/2N5/PPP2PPP/R2QKB1R w KQkq -", "f2f4"),
    # Dragon 5...g6
    ("rnbqkb1r/pp2pp1p/3p1np1/8/3NP3/2N5/PPP2PPP/R1BQKB1R w KQkq -", "c1e3 f2f3"),
    # Scheveningen 5...e6, the Keres Attack
    ("rnbqkb1r/pp3ppp/3ppn2/8/3NP3/2N5/PPP2PPP/R1BQKB1R w KQkq -", "g2g4 c1e3"),

    # 1.e4 e5: King's Gambit or Italian
    ("rnbqkbnr/pppp1ppp/8/4p3/4P3/8/PPPP1PPP/RNBQKBNR w KQkq -", "g1f3 f2f4"),
    # King's Gambit Accepted: 3.Nf3
    ("rnbqkbnr/pppp1ppp/8/8/4Pp2/8/PPPP2PP/RNBQKBNR w KQkq -", "g1f3"),
    # 2.Nf3 Nc6: Italian or Scotch
    ("r1bqkbnr/pppp1ppp/2n5/4p3/4P3/5N2/PPPP1PPP/RNBQKB1R w KQkq -", "f1c4 d2d4"),

    # French
    ("rnbqkbnr/pppp1ppp/4p3/8/4P3/8/PPPP1PPP/RNBQKBNR w KQkq -", "d2d4"),
    ("rnbqkbnr/ppp2ppp/4p3/3p4/3PP3/8/PPP2PPP/RNBQKBNR w KQkq -", "b1c3 e4e5"),

    # Caro-Kann
    ("rnbqkbnr/pp1ppppp/2p5/8/4P3/8/PPPP1PPP/RNBQKBNR w KQkq -", "d2d4"),
    ("rnbqkbnr/pp2pppp/2p5/3p4/3PP3/8/PPP2PPP/RNBQKBNR w KQkq -", "b1c3 e4e5"),

    # Pirc / Modern, heading for the Austrian Attack
    ("rnbqkbnr/ppp1pppp/3p4/8/4P3/8/PPPP1PPP/RNBQKBNR w KQkq -", "d2d4"),
    ("rnbqkb1r/ppp1pppp/3p1n2/8/3PP3/8/PPP2PPP/RNBQKBNR w KQkq -", "b1c3"),
    ("rnbqkb1r/ppp1pp1p/3p1np1/8/3PP3/2N5/PPP2PPP/R1BQKBNR w KQkq -", "f2f4"),

    # Alekhine
    ("rnbqkb1r/pppppppp/5n2/8/4P3/8/PPPP1PPP/RNBQKBNR w KQkq -", "e4e5"),
    ("rnbqkb1r/pppppppp/8/3nP3/8/8/PPPP1PPP/RNBQKBNR w KQkq -", "d2d4"),
])

# ---------------------------------------------------------------------------
# Tal as Black
# ---------------------------------------------------------------------------

BLACK_BOOK: tuple[BookEntry, ...] = _build([
    # Against 1.e4: the Sicilian Najdorf
    ("rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq -", "c7c5"),
    ("rnbqkbnr/pp1ppppp/8/2p5/4P3/5N2/PPPP1PPP/RNBQKB1R b KQkq -", "d7d6"),
    ("rnbqkbnr/pp2pppp/3p4/2p5/3PP3/5N2/PPP2PPP/RNBQKB1R b KQkq -", "c5d4"),
    ("rnbqkbnr/pp2pppp/3p4/8/3NP3/8/PPP2PPP/RNBQKB1R b KQkq -", "g8f6"),
    ("rnbqkb1r/pp2pppp/3p1n2/8/3NP3/2N5/PPP2PPP/R1BQKB1R b KQkq -", "a7a6"),
    # 6.Bg5
    ("rnbqkb1r/1p2pppp/p2p1n2/6B1/3NP3/2N5/PPP2PPP/R2QKB1R b KQkq -", "e7e6"),
    # 6.Be3
    ("rnbqkb1r/1p2pppp/p2p1n2/8/3NP3/2N1B3/PPP2PPP/R2QKB1R b KQkq -", "e7e5 e7e6 b8d7"),
    # 6.Be2
    ("rnbqkb1r/1p2pppp/p2p1n2/8/3NP3/2N5/PPP1BPPP/R1BQK2R b KQkq -", "e7e5"),
    # 6.f3
    ("rnbqkb1r/1p2pppp/p2p1n2/8/3NP3/2N2P2/PPP3PP/R1BQKB1R b KQkq -", "e7e5 e7e6"),
    # Poisoned Pawn: 6.Bg5 e6 7.f4 Qb6
    ("rnbqkb1r/1p3ppp/p2ppn2/6B1/3NPP2/2N5/PPP3PP/R2QKB1R b KQkq -", "d8b6"),

    # Against 1.d4: the King's Indian
    ("rnbqkbnr/pppppppp/8/8/3P4/8/PPP1PPPP/RNBQKBNR b KQkq -", "g8f6"),
    # 2.c4: King's Indian or Benoni
    ("rnbqkb1r/pppppppp/5n2/8/2PP4/8/PP2PPPP/RNBQKBNR b KQkq -", "c7c5 g7g6"),
    ("rnbqkb1r/pppppp1p/5np1/8/2PP4/2N5/PP2PPPP/R1BQKBNR b KQkq -", "f8g7"),
    ("rnbqkb1r/pppppp1p/5np1/8/2PPP3/2N5/PP3PPP/R1BQKBNR b KQkq -", "d7d6"),
    # Classical: 5.Nf3 O-O 6.Be2 e5
    ("rnbqk2r/ppp1ppbp/3p1np1/8/2PPP3/2N2N2/PP3PPP/R1BQKB1R b KQkq -", "e8g8"),
    ("rnbq1rk1/ppp1ppbp/3p1np1/8/2PPP3/2N2N2/PP2BPPP/R1BQK2R b KQ -", "e7e5"),
    # Mar del Plata: 7.O-O Nc6
    ("rnbq1rk1/ppp2pbp/3p1np1/4p3/2PPP3/2N2N2/PP2BPPP/R1BQ1RK1 b - -", "b8c6 b8d7"),
    # Saemisch: 5.f3 O-O 6.Be3
    ("rnbqk2r/ppp1ppbp/3p1np1/8/2PPP3/2N2P2/PP4PP/R1BQKBNR b KQkq -", "e8g8"),
    ("rnbq1rk1/ppp1ppbp/3p1np1/8/2PPP3/2N1BP2/PP4PP/R2QKBNR b KQ -", "e7e5 c7c5"),
    # Botvinnik-Tal, World Championship 1960, game 6: 6.Nge2 e5
    ("rnbq1rk1/ppp1ppbp/3p1np1/8/2PPP3/2N2P2/PP2N1PP/R1BQKB1R b KQ -", "e7e5"),
    # Four Pawns Attack: 5.f4
    ("rnbqk2r/ppp1ppbp/3p1np1/8/2PPPP2/2N5/PP4PP/R1BQKBNR b KQkq -", "e8g8 c7c5"),

    # Against 1.c4: the English
    ("rnbqkbnr/pppppppp/8/8/2P5/8/PP1PPPPP/RNBQKBNR b KQkq -", "e7e5 g8f6 c7c5"),
    ("rnbqkbnr/pppp1ppp/8/4p3/2P5/2N5/PP1PPPPP/R1BQKBNR b KQkq -", "g8f6 b8c6"),

    # Against 1.Nf3
    ("rnbqkbnr/pppppppp/8/8/8/5N2/PPPPPPPP/RNBQKB1R b KQkq -", "d7d5 g8f6"),

    # Benoni: 2...c5 3.d5 e6, then after 4.Nc3 exd5 5.cxd5 d6 6.e4 g6
    ("rnbqkb1r/pp1ppppp/5n2/2pP4/2P5/8/PP2PPPP/RNBQKBNR b KQkq -", "e7e6"),
    ("rnbqkb1r/pp1p1ppp/5n2/2pP4/8/2N5/PP2PPPP/R1BQKBNR b KQkq -", "d7d6"),
    ("rnbqkb1r/pp3ppp/3p1n2/2pP4/4P3/2N5/PP3PPP/R1BQKBNR b KQkq -", "g7g6"),

    # Replies when the opponent steers into Tal's White repertoire
    # King's Gambit: accept it
    ("rnbqkbnr/pppp1ppp/8/4p3/4PP2/8/PPPP2PP/RNBQKBNR b KQkq -", "e5f4"),
    # Italian: 3.Bc4
    ("r1bqkbnr/pppp1ppp/2n5/4p3/2B1P3/5N2/PPPP1PPP/RNBQK2R b KQkq -", "f8c5 g8f6"),
    # Scotch: 3.d4
    ("r1bqkbnr/pppp1ppp/2n5/4p3/3PP3/5N2/PPP2PPP/RNBQKB1R b KQkq -", "e5d4"),
    # French Advance and 3.Nc3
    ("rnbqkbnr/ppp2ppp/4p3/3pP3/3P4/8/PPP2PPP/RNBQKBNR b KQkq -", "c7c5"),
    ("rnbqkbnr/ppp2ppp/4p3/3p4/3PP3/2N5/PPP2PPP/R1BQKBNR b KQkq -", "g8f6 d5e4"),
    # Caro-Kann Advance
    ("rnbqkbnr/pp2pppp/2p5/3pP3/3P4/8/PPP2PPP/RNBQKBNR b KQkq -", "c8f5"),
    # Pirc: 3.Nc3
    ("rnbqkb1r/ppp1pppp/3p1n2/8/3PP3/2N5/PPP2PPP/R1BQKBNR b KQkq -", "g7g6"),
])

BOOKS: dict[chess.Color, tuple[BookEntry, ...]] = {
    chess.WHITE: WHITE_BOOK,
    chess.BLACK: BLACK_BOOK,
}

# ---------------------------------------------------------------------------
# Opening names
# ---------------------------------------------------------------------------
# (key, display name, defining move sequence in UCI). Longer lines are more
# specific; opening_name() reports the longest line the game has followed.

_NAJDORF = "e2e4 c7c5 g1f3 d7d6 d2d4 c5d4 f3d4 g8f6 b1c3 a7a6"

OPENING_LINES: tuple[tuple[str, str, tuple[str, ...]], ...] = tuple(
    (key, name, tuple(line.split()))
    for key, name, line in [
        ("kings_gambit", "King's Gambit - Romantic chess at its finest",
         "e2e4 e7e5 f2f4"),
        ("sicilian_najdorf", 'Sicilian Najdorf - "The Rolls Royce of openings"',
         _NAJDORF),
        ("english_attack", "Sicilian English Attack - Modern aggression",
         _NAJDORF + " c1e3"),
        ("sicilian_dragon", "Sicilian Dragon - Fire-breathing chess",
         "e2e4 c7c5 g1f3 d7d6 d2d4 c5d4 f3d4 g8f6 b1c3 g7g6"),
        ("sicilian_scheveningen", "Sicilian Scheveningen - Flexibility and counterplay",
         "e2e4 c7c5 g1f3 d7d6 d2d4 c5d4 f3d4 g8f6 b1c3 e7e6"),
        ("kings_indian", "King's Indian Defense - Tal's trusted weapon",
         "d2d4 g8f6 c2c4 g7g6 b1c3 f8g7 e2e4 d7d6"),
        ("french_advance", "French Defense - Breaking through",
         "e2e4 e7e6 d2d4 d7d5 e4e5"),
        ("benoni", "Benoni Defense - Dynamic counterplay",
         "d2d4 g8f6 c2c4 c7c5 d4d5"),
        ("austrian_attack", "Pirc Austrian Attack - Full throttle",
         "e2e4 d7d6 d2d4 g8f6 b1c3 g7g6 f2f4"),
    ]
)


def lookup(key: str, color: chess.Color) -> tuple[MoveDescriptor, ...]:
    """
    Return the book candidates for a position key, or () when out of book.

    Scans the side's entries in declaration order and returns the moves of
    the first entry whose stored key is a prefix of `key`.

    Args:
        key:   A position key as produced by position_key().
        color: The side the engine is playing (chess.WHITE or chess.BLACK).
    """
    for stored, moves in BOOKS[color]:
        if key.startswith(stored):
            return moves
    return ()


def book_move(board: chess.Board, rng: random.Random) -> MoveDescriptor | None:
    """
    Sample a book move for the side to move, uniformly among the candidates.

    Candidates the oracle rejects as illegal are skipped; if none survive the
    position is treated as out of book.
    """
    candidates = lookup(position_key(board), board.turn)
    if not candidates:
        return None
    legal = [c for c in candidates if c.to_move() in board.legal_moves]
    if not legal:
        _log.warning("book entry has no legal candidates: %s", position_key(board))
        return None
    return rng.choice(legal)


def opening_name(board: chess.Board) -> str | None:
    """Name of the most specific known opening line the game has followed."""
    played = tuple(move.uci() for move in board.move_stack)
    best: tuple[int, str] | None = None
    for _, name, line in OPENING_LINES:
        if played[: len(line)] == line and (best is None or len(line) > best[0]):
            best = (len(line), name)
    return best[1] if best else None
