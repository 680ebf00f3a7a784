class SolverError(Exception):
    """Base class for fatal search errors."""


class UnhashableStateError(SolverError):
    """A game state could not be turned into a canonical key."""


class StructuralInvariantViolation(SolverError):
    """A move generator found a card kind it did not expect.

    The state handed to the generator is corrupt; nothing is retried.
    """


class EmptyStackUnderflow(SolverError):
    """The exploration stack was popped while empty."""
