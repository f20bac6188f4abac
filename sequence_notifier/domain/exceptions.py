"""Errors raised at the boundary of a notification run."""

from typing import List, Optional


class InputValidationError(ValueError):
    """A notification request cannot be processed as given.

    Raised for empty or missing markers and templates. Fatal to the single
    invocation: no records are pulled from the source.
    """

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = list(errors or [])
        if self.errors:
            message = f"{message}: {'; '.join(self.errors)}"
        super().__init__(message)
