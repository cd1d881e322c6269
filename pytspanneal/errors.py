class AnnealingError(ValueError):
    pass


class InvalidInputError(AnnealingError):
    """Malformed coordinates, prices or run parameters."""


class InvalidTourError(AnnealingError):
    """A tour is not a closed permutation of every city."""


class DegenerateInstanceError(AnnealingError):
    """Fewer than 3 cities, so there are no two interior positions to swap."""
