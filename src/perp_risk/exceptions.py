"""Custom exceptions for the margin and risk engine.

Degenerate arithmetic (zero denominators) and unsolvable boundaries are
reported as sentinel values, not exceptions. Exceptions here are reserved
for inputs that violate the engine's invariants.
"""


class MarginEngineError(Exception):
    """Base exception for all engine errors."""


class InvalidInputError(MarginEngineError):
    """Raised when an input violates a parameter invariant (e.g. non-positive leverage)."""


class MissingMarkPriceError(InvalidInputError):
    """Raised when a symbol has no mark price in the snapshot or position record."""


class SnapshotFormatError(MarginEngineError):
    """Raised when a raw snapshot document is missing required fields."""
