"""
Tal Chess package: a persona-biased opponent and a dual chess clock.

The opponent does not search. It plays from Mikhail Tal's opening book,
injects deliberate mistakes at lower tiers, and otherwise ranks legal moves
with a handful of aggressive style heuristics. Chess rules come from
python-chess.

Modules:
    constants: Piece values, style modifiers, clock parameters
    moves: MoveDescriptor, the engine's output type
    openings: Position keys and the per-side opening book
    profiles: The five persona tiers and resolve()
    style: score_move(): Tal-style move scoring
    selector: PersonaEngine: book -> mistake -> scored move selection
    clock: ClockStateMachine and time-control presets
    session: GameSession tying board, engine and clock together
"""
