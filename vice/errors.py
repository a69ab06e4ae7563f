"""Error taxonomy for model validation.

Every validator raises the first violation it finds. Container validators
prefix the message with positional context via ``wrap`` so the caller can
localize the problem, keeping the underlying error as ``__cause__``.
"""

from __future__ import annotations


class ViceError(ValueError):
    """Base class for all validation and parse failures."""

    kind = "invalid"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message

    def wrap(self, context: str) -> ViceError:
        wrapped = type(self)(f"{context}: {self.message}")
        wrapped.__cause__ = self
        return wrapped


class MissingFieldError(ViceError):
    """A required field is absent or blank."""

    kind = "structural"


class FormatError(ViceError):
    """A date, time, number or identifier could not be parsed."""

    kind = "format"


class DuplicateError(ViceError):
    """A key that must be unique appears twice."""

    kind = "uniqueness"


class ConsistencyError(ViceError):
    """Fields disagree with each other (status vs value, tier ordering, ...)."""

    kind = "consistency"


class ReferenceNotFoundError(ViceError):
    """A reference points at something that does not exist."""

    kind = "reference"
