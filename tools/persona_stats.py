#!/usr/bin/env python3
"""
Persona report: how each tier chooses its moves on a fixed set of positions.

For every tier and position the engine is asked for a move many times with
seeded randomness. The table shows how often each stage produced the move
(book, mistake, scored), how many distinct moves were played, and the
most frequent choice. Run it after touching the style weights or the book
to see how the personas' behaviour shifted.

Usage: python3 tools/persona_stats.py [runs_per_position]
"""
import os
import random
import sys
from collections import Counter

REPO = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO not in sys.path:
    sys.path.insert(0, REPO)

import chess
from talchess.profiles import PROFILES
from talchess.selector import BOOK, MISTAKE, SCORED, PersonaEngine

# Fixed positions spanning book, early middlegame and tactical middlegame.
POSITIONS = [
    ("Start",        "startpos"),
    ("After 1.e4",   "startpos moves e2e4"),
    ("After 1.d4",   "startpos moves d2d4"),
    ("Out of book",  "startpos moves a2a3 h7h6"),
    ("Italian",      "startpos moves e2e4 e7e5 g1f3 b8c6 f1c4 f8c5"),
    ("Mid-open",     "fen r1bqkb1r/pppp1ppp/2n2n2/4p3/2B1P3/5N2/PPPP1PPP/RNBQK2R w KQkq - 4 4"),
    ("Complex mid",  "fen r2q1rk1/ppp2ppp/2np1n2/2b1p1B1/2B1P1b1/2NP1N2/PPP2PPP/R2Q1RK1 w - - 0 8"),
    ("Mate in one",  "fen 6k1/5ppp/8/8/8/8/5PPP/R5K1 w - - 0 1"),
]


def build_board(setup: str) -> chess.Board:
    """Build a board from a "startpos [moves ...]" or "fen <FEN> [moves ...]" setup."""
    tokens = setup.split()
    if tokens[0] == "startpos":
        board = chess.Board()
        rest = tokens[1:]
    else:
        end = tokens.index("moves") if "moves" in tokens else len(tokens)
        board = chess.Board(" ".join(tokens[1:end]))
        rest = tokens[end:]
    for uci in rest[1:] if rest and rest[0] == "moves" else []:
        board.push_uci(uci)
    return board


def run_position(persona: str, label: str, setup: str, runs: int) -> dict:
    """Select `runs` moves for one persona/position pair and tally them."""
    board = build_board(setup)
    engine = PersonaEngine(persona, rng=random.Random(1))
    sources: Counter = Counter()
    moves: Counter = Counter()
    for _ in range(runs):
        selection = engine.select_move(board)
        if selection is None:
            break
        sources[selection.source] += 1
        moves[selection.move.uci()] += 1

    top, top_count = moves.most_common(1)[0] if moves else ("(none)", 0)
    return {
        "label": label,
        "book": sources[BOOK],
        "mistake": sources[MISTAKE],
        "scored": sources[SCORED],
        "distinct": len(moves),
        "top": top,
        "top_count": top_count,
    }


def main() -> None:
    runs = int(sys.argv[1]) if len(sys.argv) > 1 else 50
    print(f"Tal Chess persona report, {runs} selections per position")
    for key, profile in PROFILES.items():
        print()
        print(
            f"{profile.name} ({profile.rating}), intensity {profile.intensity}, "
            f"mistakes {profile.mistake_rate:.0%}"
        )
        print(
            f"{'Position':<14} {'Book':>5} {'Mistake':>8} {'Scored':>7} "
            f"{'Distinct':>9} {'Top move':>9} {'Top %':>6}"
        )
        print("-" * 64)
        for label, setup in POSITIONS:
            r = run_position(key, label, setup, runs)
            print(
                f"{r['label']:<14} {r['book']:>5} {r['mistake']:>8} {r['scored']:>7} "
                f"{r['distinct']:>9} {r['top']:>9} {r['top_count'] * 100 // runs:>5}%"
            )


if __name__ == "__main__":
    main()
