"""Exception hierarchy for the Lotka-Volterra engine.

Two families are kept apart so callers can react differently:

  - ContractError: a caller bug (wrong vector length, species index out of
    range, out-of-order trace append). Not meant to be caught.
  - InvalidParameterError: a bad value supplied at runtime (negative
    coefficient, mismatched bulk dimensions). Parameter searches catch it
    and reject the candidate.

Numeric divergence during integration is not an error and has no exception.
"""


class LotkaVolterraError(Exception):
    """Base class for all engine errors."""


class ContractError(LotkaVolterraError):
    """A precondition of an engine call was violated by the caller."""


class SpeciesIndexError(ContractError, IndexError):
    """Species index outside [0, n_species)."""


class InvalidParameterError(LotkaVolterraError, ValueError):
    """A model or integration parameter has an invalid value."""


class TraceFormatError(LotkaVolterraError, ValueError):
    """A model or trace text file could not be parsed."""
