"""
Registry and matching errors.
"""

from typing import Optional


class CommandEngineError(Exception):
    """Base class for all engine errors."""


class DuplicateRegistrationError(CommandEngineError):
    """A name, alias or intent phrase is already taken."""

    def __init__(self, key: str, existing: str, attempted: Optional[str] = None):
        self.key = key
        self.existing = existing
        self.attempted = attempted
        detail = f" (while registering '{attempted}')" if attempted else ""
        super().__init__(f"'{key}' is already registered to '{existing}'{detail}")


class CatalogError(CommandEngineError):
    """The command catalog file is missing or malformed."""


class AmbiguousMatchWarning(UserWarning):
    """Two candidates tied for the best match and no rule separated them."""
