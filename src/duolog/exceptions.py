"""Exception hierarchy for duolog.

None of these ever reach application code through a logging call. They are
raised by construction-time validation (``ConfigurationError``) or caught at
the handler boundary and reported locally (``PayloadError``).
"""

from __future__ import annotations


class DuoLogError(Exception):
    """Base exception for duolog errors."""

    pass


class ConfigurationError(DuoLogError):
    """Raised when handler options are invalid."""

    pass


class PayloadError(DuoLogError):
    """Raised when a JSON payload cannot be built or serialized."""

    pass
