"""Exception hierarchy for SigSync.

Only ``KeyGenerationError``, ``SigningError`` and ``ProtocolNotReady`` ever
escape to callers.  ``DecodingError`` and ``VerificationFailure`` are turned
into a negative trust decision at the verification boundary.
"""

from __future__ import annotations


class SigSyncError(Exception):
    """Base class for every error raised by this package."""


class KeyGenerationError(SigSyncError):
    """The key-pair algorithm or entropy source is unavailable."""


class SigningError(SigSyncError):
    """A signature could not be produced (bad key, bad parameters)."""


class DecodingError(SigSyncError):
    """Malformed base64, PEM or DER input."""


class VerificationFailure(SigSyncError):
    """Well-formed input whose signature does not match."""


class ProtocolNotReady(SigSyncError):
    """An exchange was attempted before the client finished ``start()``."""
