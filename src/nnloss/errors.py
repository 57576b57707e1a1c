# src/nnloss/errors.py
"""
Error types raised by the loss functions.

Every error is raised at the offending call, before any numeric work, and is
never caught inside the library. They all derive from ValueError so callers
that only know about numpy-style argument errors still catch them.
"""


class LossError(ValueError):
    """Base class for all loss errors."""


class ShapeMismatch(LossError):
    """Prediction and target (or the two halves of a paired input) don't line up."""

    def __init__(self, message, expected=None, got=None):
        super().__init__(message)
        self.expected = expected
        self.got = got


class DomainViolation(LossError):
    """Input values fall outside the loss's mathematical domain."""


class ConfigurationError(LossError):
    """A loss parameter is invalid (unknown reduction, negative margin, ...)."""
