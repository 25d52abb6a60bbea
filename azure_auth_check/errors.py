"""
Error classes for npm feed authentication checks.

Provides structured exception types for expected failures. Probe failures
are reported as data (AuthProbeResult), not raised.
"""


class AuthCheckError(Exception):
    """Base class for expected auth-check failures."""

    pass


class InvalidConfigError(AuthCheckError):
    """Raised when the feed configuration is missing or invalid."""

    pass


class CredentialFileError(AuthCheckError):
    """Raised when an .npmrc file cannot be read or written."""

    pass
