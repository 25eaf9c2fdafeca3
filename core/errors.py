"""
Engine errors

Rule violations are reported through ``GameState.warning``; the exception here
is reserved for states the engine itself should never produce.
"""


class InvariantViolation(RuntimeError):
    """A structural invariant of the game state is broken (engine bug)"""
