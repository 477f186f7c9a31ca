"""Exception types raised by the reserve accounting engine."""


class ReserveError(Exception):
    """Base class for every error the engine reports to its callers."""


class InvalidFraction(ReserveError, ValueError):
    """A rational number could not be built (malformed text, zero denominator, float input)."""


class InvalidAmount(ReserveError, ValueError):
    """A replenish amount or day count was rejected."""


class IndexOutOfRange(ReserveError, IndexError):
    """A mutation referenced a drug index that does not exist."""


class PersistenceError(ReserveError):
    """The store could not be read from or written to its data file.

    When raised after a mutation, the in-memory change has already been
    applied; retry ``ReserveStore.flush`` rather than the mutation.
    """

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class ConfigError(ReserveError):
    """The configuration file or environment held an unusable value."""
