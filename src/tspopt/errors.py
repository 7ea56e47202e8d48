"""Exception types raised by the tour-optimization engine."""


class TSPError(Exception):
    """Base class for all tspopt errors."""


class OutOfRangeError(TSPError, IndexError):
    """A city index outside ``[0, n)`` was used."""


class InvalidParameterError(TSPError, ValueError):
    """A configuration value or algorithm parameter is not acceptable."""


class InvalidTourError(TSPError, ValueError):
    """A sequence is not a permutation of the instance's cities."""


class ConstructionError(TSPError, RuntimeError):
    """A construction heuristic could not complete with the candidate set it was given."""


class InfeasibleError(TSPError):
    """Branch constraints admit no 1-tree. Only used inside branch-and-bound."""


class InvalidInstanceError(TSPError, ValueError):
    """Instance data violates the loader contract (size, sign, finiteness)."""
