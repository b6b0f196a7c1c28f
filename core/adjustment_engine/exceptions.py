"""Exception hierarchy for the Adjustment Engine."""


class AdjustmentEngineError(Exception):
    """Base exception for all adjustment engine errors."""


class InvalidInputError(AdjustmentEngineError, ValueError):
    """Raised when the comparable's base price is missing, zero or negative."""

    def __init__(self, message: str, base_price=None):
        super().__init__(message)
        self.base_price = base_price


class UnknownAttributeError(AdjustmentEngineError, KeyError):
    """Raised when a key does not name an attribute in the catalogue."""

    def __str__(self) -> str:
        return f"Unknown adjustment attribute: {self.args[0]!r}"


class PolicyError(AdjustmentEngineError, ValueError):
    """Raised when a weighting policy holds a malformed rate table."""
