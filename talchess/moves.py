"""
Move descriptors: the engine's output format.

A MoveDescriptor is the smallest thing the engine hands back to its caller:
origin square, destination square, and an optional promotion piece, all as
lowercase algebraic strings ("e7", "e8", "q"). The caller applies it through
the rules oracle (python-chess); the engine never mutates a caller's board.
"""

from dataclasses import dataclass

import chess


@dataclass(frozen=True)
class MoveDescriptor:
    from_square: str
    to_square: str
    promotion: str | None = None

    @classmethod
    def from_uci(cls, uci: str) -> "MoveDescriptor":
        """Build a descriptor from UCI notation ("e2e4", "e7e8q")."""
        if len(uci) < 4:
            raise ValueError(f"not a UCI move: {uci!r}")
        return cls(uci[0:2], uci[2:4], uci[4] if len(uci) > 4 else None)

    @classmethod
    def from_move(cls, move: chess.Move) -> "MoveDescriptor":
        promotion = chess.piece_symbol(move.promotion) if move.promotion else None
        return cls(
            chess.square_name(move.from_square),
            chess.square_name(move.to_square),
            promotion,
        )

    def uci(self) -> str:
        return f"{self.from_square}{self.to_square}{self.promotion or ''}"

    def to_move(self) -> chess.Move:
        """Convert to a chess.Move for the oracle."""
        return chess.Move.from_uci(self.uci())

    def __str__(self) -> str:
        return self.uci()
