"""
UCI (Universal Chess Interface) protocol handler for the Tal persona.

This lets any UCI GUI (or cutechess-cli) play against a persona tier. The
persona is picked with a standard option:

    setoption name Persona value legend

Protocol overview:
    GUI → Engine: uci, isready, ucinewgame, setoption, position, go, stop, quit
    Engine → GUI: id name, id author, option, uciok, readyok, info, bestmove

Threading model:
    The UCI loop runs on the main thread and must never block on the engine.
    On "go" a daemon thread picks the move and then "thinks" for the persona's
    think time, capped to a share of the GUI's time budget. The thinking wait
    is a threading.Event wait, so "stop" cuts it short and the move is sent
    at once.

Critical rule: NEVER print to stdout except for valid UCI responses.
Debug output must go to stderr or be suppressed entirely.
"""

import logging
import sys
import os
import threading

# ---------------------------------------------------------------------------
# Path setup: make 'talchess' importable when this script is run directly
# (python interface/uci.py from the repo root).
# ---------------------------------------------------------------------------
_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)

import chess
from talchess.constants import THINK_BUDGET_FRACTION
from talchess.profiles import DEFAULT_PROFILE, PROFILES
from talchess.selector import PersonaEngine


def _send(line: str) -> None:
    """Write a UCI response line to stdout and flush immediately."""
    print(line, flush=True)


def _log(message: str) -> None:
    """Write a diagnostic line to stderr (stdout belongs to the protocol)."""
    print(message, file=sys.stderr, flush=True)


class UciHandler:
    """
    Stateful handler for the UCI protocol.

    Attributes:
        board:         The current position, updated by "position" commands.
        engine:        The persona engine; its tier follows the Persona option.
        search_thread: The thread picking the current move, or None.
        stop_event:    Set by "stop" to end the thinking delay early.
    """

    def __init__(self, engine: PersonaEngine | None = None) -> None:
        self.board: chess.Board = chess.Board()
        self.engine: PersonaEngine = engine or PersonaEngine(DEFAULT_PROFILE)
        self.search_thread: threading.Thread | None = None
        self.stop_event: threading.Event = threading.Event()

    # -----------------------------------------------------------------------
    # Command handlers
    # -----------------------------------------------------------------------

    def handle_uci(self) -> None:
        """Identify the engine and advertise the Persona option."""
        _send("id name TalChess")
        _send("id author Tal Chess Project")
        tiers = " ".join(f"var {key}" for key in PROFILES)
        _send(f"option name Persona type combo default {self.engine.profile.key} {tiers}")
        _send("uciok")

    def handle_isready(self) -> None:
        _send("readyok")

    def handle_ucinewgame(self) -> None:
        """Stop any pending move and reset the board to the start position."""
        self._stop_search()
        self.board = chess.Board()

    def handle_setoption(self, tokens: list[str]) -> None:
        """
        Parse "setoption name <id> [value <x>]".

        Only Persona is understood; other options are logged and ignored.
        Option names are case-insensitive per the UCI specification.
        """
        if "name" not in tokens:
            return
        name_idx = tokens.index("name") + 1
        if "value" in tokens:
            value_idx = tokens.index("value")
            name = " ".join(tokens[name_idx:value_idx])
            value = " ".join(tokens[value_idx + 1:])
        else:
            name = " ".join(tokens[name_idx:])
            value = ""

        if name.lower() == "persona":
            if value.lower() not in PROFILES:
                _log(f"uci: unknown persona {value!r}, using {DEFAULT_PROFILE}")
            self.engine.set_profile(value)
        else:
            _log(f"uci: ignoring unknown option: {name!r}")

    def handle_position(self, tokens: list[str]) -> None:
        """
        Parse and apply a "position" command.

        Command formats:
            position startpos [moves e2e4 e7e5 ...]
            position fen <FEN> [moves e2e4 e7e5 ...]

        The replayed move list matters beyond the final position: the
        persona's repetition penalty reads the game history.
        """
        try:
            if not tokens:
                return

            if tokens[0] == "startpos":
                self.board = chess.Board()
                move_tokens = tokens[2:] if len(tokens) > 1 and tokens[1] == "moves" else []
            elif tokens[0] == "fen":
                if "moves" in tokens:
                    moves_idx = tokens.index("moves")
                    fen = " ".join(tokens[1:moves_idx])
                    move_tokens = tokens[moves_idx + 1:]
                else:
                    fen = " ".join(tokens[1:])
                    move_tokens = []
                self.board = chess.Board(fen)
            else:
                _log(f"uci: unknown position type: {tokens[0]}")
                return

            for uci_move in move_tokens:
                move = chess.Move.from_uci(uci_move)
                if move in self.board.legal_moves:
                    self.board.push(move)
                else:
                    _log(f"uci: illegal move in position command: {uci_move}")
                    break

        except ValueError as e:
            _log(f"uci: error in position command: {e}")

    def handle_go(self, tokens: list[str]) -> None:
        """
        Start picking a move in a background thread.

        The move itself is chosen immediately; the thread then waits out the
        persona's thinking delay (or until "stop") before replying.
        """
        self._stop_search()

        time_limit_ms = self._parse_go_time(tokens)
        self.stop_event = threading.Event()
        board_copy = self.board.copy()
        stop_event = self.stop_event
        engine = self.engine

        def select_and_reply() -> None:
            try:
                selection = engine.select_move(board_copy)
                if selection is None:
                    _send("bestmove (none)")
                    return

                delay = min(engine.think_delay(), time_limit_ms / 1000 * THINK_BUDGET_FRACTION)
                stop_event.wait(delay)

                if selection.score is not None:
                    _send(f"info depth 1 score cp {int(selection.score)} pv {selection.move.uci()}")
                _send(f"info string {engine.profile.key} {selection.source}")
                _send(f"bestmove {selection.move.uci()}")

            except Exception as e:
                _log(f"selection error: {e}")
                _send("bestmove (none)")

        self.search_thread = threading.Thread(target=select_and_reply, daemon=True)
        self.search_thread.start()

    def handle_stop(self) -> None:
        self._stop_search()

    def handle_quit(self) -> None:
        self._stop_search()
        sys.exit(0)

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _stop_search(self) -> None:
        """End the thinking delay and wait for the reply thread to finish."""
        self.stop_event.set()
        if self.search_thread is not None and self.search_thread.is_alive():
            self.search_thread.join(timeout=2.0)
        self.search_thread = None

    def _parse_go_time(self, tokens: list[str]) -> int:
        """
        Extract the time budget in milliseconds from "go" command tokens.

        Supports:
            movetime <ms>
            wtime <ms> btime <ms> [winc <ms> binc <ms>]
                (1/40 of the remaining time plus the increment)

        Anything else ("go infinite") yields an effectively unlimited budget,
        in which case the persona's own think time is the only limit.
        """
        params: dict[str, int] = {}
        i = 0
        while i < len(tokens) - 1:
            key = tokens[i]
            try:
                params[key] = int(tokens[i + 1])
                i += 2
            except (ValueError, IndexError):
                i += 1

        if "movetime" in params:
            return params["movetime"]

        color = self.board.turn
        time_key = "wtime" if color == chess.WHITE else "btime"
        inc_key = "winc" if color == chess.WHITE else "binc"

        if time_key in params:
            time_left = params[time_key]
            increment = params.get(inc_key, 0)
            return max(1, time_left // 40 + increment)

        return 10_000_000


def run_uci_loop() -> None:
    """
    Main UCI protocol loop.

    Each command is wrapped in a try/except so that a bug in one handler
    does not crash the engine; errors are logged to stderr and the loop
    continues.
    """
    logging.basicConfig(stream=sys.stderr, level=logging.WARNING)
    handler = UciHandler()

    for raw_line in sys.stdin:
        line = raw_line.strip()
        if not line:
            continue

        tokens = line.split()
        command = tokens[0]
        args = tokens[1:]

        try:
            if command == "uci":
                handler.handle_uci()
            elif command == "isready":
                handler.handle_isready()
            elif command == "ucinewgame":
                handler.handle_ucinewgame()
            elif command == "setoption":
                handler.handle_setoption(args)
            elif command == "position":
                handler.handle_position(args)
            elif command == "go":
                handler.handle_go(args)
            elif command == "stop":
                handler.handle_stop()
            elif command == "quit":
                handler.handle_quit()
            else:
                _log(f"uci: ignoring unknown command: {command!r}")

        except Exception as e:
            _log(f"uci: unhandled error for command {command!r}: {e}")


if __name__ == "__main__":
    run_uci_loop()
