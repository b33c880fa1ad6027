"""Embedded-version framing for versioned payloads.

A frame prefixes an opaque payload with its schema version so that a reader
can recover the version without any out-of-band metadata.

Wire layout::

    offset 0, length 2: version, unsigned little-endian
    offset 2, length N: payload (opaque, codec-defined)

There is no checksum and no length field; the payload length is implied by
the buffer boundary supplied by the caller.

Classes
-------
VersionedFrame
    Immutable value object holding a version and its payload.

Functions
---------
embed_version
    Prefix a payload with its version.
extract_version
    Split a frame into ``(version, payload)``.
"""
from __future__ import annotations

from dataclasses import dataclass

from vbare.errors import TruncatedFrameError, VersionOutOfRangeError

# ---------------------------------------------------------------------------
# Wire-format constants
# ---------------------------------------------------------------------------

VERSION_PREFIX_LENGTH: int = 2
MAX_FRAME_VERSION: int = 0xFFFF


# ---------------------------------------------------------------------------
# VersionedFrame
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VersionedFrame:
    """A payload tagged with the schema version it was encoded at.

    Parameters
    ----------
    version:
        Schema version, in the range 0..65535.
    payload:
        Codec-defined bytes for that version.

    Raises
    ------
    VersionOutOfRangeError
        If *version* does not fit in an unsigned 16-bit integer.
    """

    version: int
    payload: bytes

    def __post_init__(self) -> None:
        if not 0 <= self.version <= MAX_FRAME_VERSION:
            raise VersionOutOfRangeError(self.version)

    def to_bytes(self) -> bytes:
        """Serialise to the embedded-version wire format.

        Returns
        -------
        bytes
            ``2 + len(payload)`` bytes, little-endian version first.
        """
        return self.version.to_bytes(VERSION_PREFIX_LENGTH, "little") + bytes(self.payload)

    @classmethod
    def from_bytes(cls, data: bytes) -> VersionedFrame:
        """Parse a frame produced by :meth:`to_bytes`.

        Parameters
        ----------
        data:
            Raw frame bytes.

        Returns
        -------
        VersionedFrame
            The decoded version and the remaining bytes as payload.

        Raises
        ------
        TruncatedFrameError
            If *data* is shorter than the 2-byte version prefix.
        """
        if len(data) < VERSION_PREFIX_LENGTH:
            raise TruncatedFrameError(len(data))
        version = int.from_bytes(data[:VERSION_PREFIX_LENGTH], "little")
        return cls(version=version, payload=bytes(data[VERSION_PREFIX_LENGTH:]))

    def __len__(self) -> int:
        return VERSION_PREFIX_LENGTH + len(self.payload)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def embed_version(payload: bytes, version: int) -> bytes:
    """Return *payload* prefixed with *version* as a little-endian u16."""
    return VersionedFrame(version=version, payload=payload).to_bytes()


def extract_version(data: bytes) -> tuple[int, bytes]:
    """Split an embedded-version frame into ``(version, payload)``.

    Raises
    ------
    TruncatedFrameError
        If *data* holds fewer than two bytes.
    """
    frame = VersionedFrame.from_bytes(data)
    return frame.version, frame.payload
