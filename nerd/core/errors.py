"""
Error taxonomy shared by the engine, the stores and the API.

ValidationError and DataError also derive from ValueError so callers that
only care about "bad input" can keep catching the builtin.
"""


class NerdError(Exception):
    """Base class for every error raised by nerd."""


class ValidationError(NerdError, ValueError):
    """Malformed request: unknown kind or activation, bad id, bad payload."""


class InputCountMismatch(ValidationError):
    """Fewer inputs were given than the network's first layer expects."""

    def __init__(self, expected: int, got: int):
        super().__init__(f"expected {expected} inputs, got {got}")
        self.expected = expected
        self.got = got


class DataError(NerdError, ValueError):
    """The training data cannot be used as given."""


class DegenerateLabel(DataError):
    """A label has zero deviation over the training partition."""

    def __init__(self, label: str):
        super().__init__(f"label {label!r} has zero deviation, it cannot be normalized")
        self.label = label


class StoreError(NerdError, OSError):
    """A parameter or point store could not be read or written."""
