"""
Error taxonomy.

Only InvalidDrawError / InvalidSequenceError are allowed to stop a batch;
everything else is recovered where it is raised or recorded per step.
"""


class LottoLabError(Exception):
    """Base class for all engine errors."""


class InvalidDrawError(LottoLabError, ValueError):
    """A draw record violates the 6-distinct-numbers / bonus invariants."""


class InvalidSequenceError(LottoLabError, ValueError):
    """Rounds are duplicated or out of order."""


class DataUnavailable(LottoLabError):
    """A requested round could not be fetched or found."""

    def __init__(self, round_no, reason=""):
        self.round = round_no
        self.reason = reason
        msg = f"round {round_no} unavailable"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class InsufficientHistory(LottoLabError):
    """Not enough prior draws to evaluate a rule."""


class SelectionUnsatisfiable(LottoLabError):
    """A constrained selection found no candidate set within its budget."""
