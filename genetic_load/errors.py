"""Exception types for genetic_load.

Both classes are fatal to a simulation run. Configuration errors are raised
while a species is being set up; integrity errors are raised when a genetic
state no longer matches its structural invariants.
"""


class ConfigurationError(ValueError):
    """Raised when a species' genetic-load configuration cannot be run.

    Covers missing or unknown distribution parameters, unknown distribution
    families and out-of-range ploidy, positions or rates.
    """
    pass


class GeneticIntegrityError(RuntimeError):
    """Raised when a genetic state violates its structural invariants.

    This error indicates a bug in the host simulation (e.g. parents passed
    out of order, or position sets that disagree between species and
    individual) rather than a recoverable condition.
    """
    pass


class LocusNotFoundError(GeneticIntegrityError, KeyError):
    """Raised when a queried locus position is absent from a genetic state."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return RuntimeError.__str__(self)
