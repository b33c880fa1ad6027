"""Error taxonomy for versioned data handling.

Every error raised by this package derives from :class:`VbareError`.  Each
concrete error also inherits the closest builtin exception so that callers
written against ``ValueError`` or ``LookupError`` keep working.

Classes
-------
- VbareError              — base class for all package errors
- UnknownVersionError     — a codec or handler does not recognise a version
- FutureVersionError      — version is newer than the latest this build knows
- MissingMigrationError   — a migration chain is shorter than required
- TruncatedFrameError     — embedded-version frame shorter than its prefix
- VersionOutOfRangeError  — frame version does not fit in an unsigned 16-bit field
- ConfigurationError      — invalid handler, chain or codec-set configuration
"""
from __future__ import annotations


class VbareError(Exception):
    """Base class for every error raised by ``vbare``."""


class UnknownVersionError(VbareError, ValueError):
    """Raised when asked to decode or encode a version that is not recognised.

    Parameters
    ----------
    version:
        The offending version number.
    """

    def __init__(self, version: int) -> None:
        self.version = version
        super().__init__(f"invalid version: {version}")


class FutureVersionError(VbareError, ValueError):
    """Raised when a version is newer than the latest version this handler knows.

    A representation from a newer build cannot be converted automatically,
    because no transform for it exists here.

    Parameters
    ----------
    requested:
        The version the caller asked for.
    latest:
        The latest version the handler can reach.
    """

    def __init__(self, requested: int, latest: int) -> None:
        self.requested = requested
        self.latest = latest
        super().__init__(
            f"Version {requested} is newer than the latest known version {latest}"
        )


class MissingMigrationError(VbareError, LookupError):
    """Raised when a migration chain has no entry for a required adjacent step.

    This signals a misconfigured handler (codecs and chains disagree), not
    bad data.

    Parameters
    ----------
    from_version:
        Source version of the missing step.
    to_version:
        Target version of the missing step.
    """

    def __init__(self, from_version: int, to_version: int) -> None:
        self.from_version = from_version
        self.to_version = to_version
        super().__init__(
            f"Missing migration from version {from_version} to {to_version}"
        )


class TruncatedFrameError(VbareError, ValueError):
    """Raised when an embedded-version frame is shorter than its version prefix.

    Parameters
    ----------
    length:
        Number of bytes actually supplied.
    """

    def __init__(self, length: int) -> None:
        self.length = length
        super().__init__(
            f"payload too short for embedded version: got {length} byte(s), need at least 2"
        )


class VersionOutOfRangeError(VbareError, ValueError):
    """Raised when a frame version does not fit in an unsigned 16-bit integer."""

    def __init__(self, version: int) -> None:
        self.version = version
        super().__init__(f"Version {version} is outside the range 0..65535")


class ConfigurationError(VbareError, ValueError):
    """Raised when a handler, chain, or codec set is configured inconsistently."""
