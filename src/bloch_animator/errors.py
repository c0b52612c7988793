"""Exceptions raised by the qubit engine and the rotation animator."""


class BlochError(Exception):
    """Base class of every error raised by bloch_animator."""


class UnrecognizedGateSymbolError(BlochError, KeyError):
    """A gate symbol matches no entry of the gate catalog."""

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"Unknown gate: {symbol!r}")

    def __str__(self) -> str:
        # KeyError quotes its argument, keep the plain message instead
        return self.args[0]


class InvalidNumericInputError(BlochError, ValueError):
    """An angle or amplitude is not a finite number."""


class InvalidAxisError(BlochError, ValueError):
    """A rotation axis is unknown, zero-length or not finite."""
