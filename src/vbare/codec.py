"""Per-version codecs and closed version dispatch tables.

A handler delegates all byte-level work to a codec contract of the form
``decode(payload, version)`` / ``encode(value, version)``.  Schema compilers
usually emit one decode/encode pair per version; :class:`VersionCodecSet`
binds those pairs into a closed table that rejects unknown versions
explicitly instead of falling through.

Classes
-------
- VersionCodec     — decode/encode pair bound to one schema version
- VersionCodecSet  — immutable ``{version: VersionCodec}`` dispatch table

Functions
---------
- model_codec      — build a ``VersionCodec`` from a pydantic model type
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Literal, Mapping

import yaml
from pydantic import TypeAdapter

from vbare.errors import ConfigurationError, UnknownVersionError
from vbare.framing import MAX_FRAME_VERSION

logger = logging.getLogger(__name__)

CodecFormat = Literal["json", "yaml"]


@dataclass(frozen=True)
class VersionCodec:
    """Pure decode/encode pair for a single schema version.

    Parameters
    ----------
    decode:
        ``bytes -> Value(v)``.  Must fail with its own exception on malformed
        input; the handler does not wrap it.
    encode:
        ``Value(v) -> bytes``.
    """

    decode: Callable[[bytes], Any]
    encode: Callable[[Any], bytes]


class VersionCodecSet:
    """Closed mapping from version number to :class:`VersionCodec`.

    The table is copied at construction and exposed read-only, so a codec
    set can be shared between threads without locking.

    Parameters
    ----------
    codecs:
        ``{version: VersionCodec}`` for every supported version.

    Raises
    ------
    ConfigurationError
        If *codecs* is empty, or a key is outside ``1..65535``, or a value
        is not a :class:`VersionCodec`.
    """

    def __init__(self, codecs: Mapping[int, VersionCodec]) -> None:
        if not codecs:
            raise ConfigurationError("A codec set needs at least one version")
        for version, codec in codecs.items():
            if not isinstance(version, int) or not 1 <= version <= MAX_FRAME_VERSION:
                raise ConfigurationError(
                    f"Codec versions must be integers in 1..{MAX_FRAME_VERSION}, got {version!r}"
                )
            if not isinstance(codec, VersionCodec):
                raise ConfigurationError(
                    f"Codec for version {version} must be a VersionCodec, got {type(codec).__name__}"
                )
        self._codecs: Mapping[int, VersionCodec] = MappingProxyType(dict(codecs))

    @property
    def versions(self) -> tuple[int, ...]:
        """All supported versions in ascending order."""
        return tuple(sorted(self._codecs))

    @property
    def latest_version(self) -> int:
        """The highest supported version."""
        return max(self._codecs)

    def supports(self, version: int) -> bool:
        """Return True when *version* has a registered codec."""
        return version in self._codecs

    def codec_for(self, version: int) -> VersionCodec:
        """Return the codec bound to *version*.

        Raises
        ------
        UnknownVersionError
            If *version* is not in the table.
        """
        try:
            return self._codecs[version]
        except KeyError:
            raise UnknownVersionError(version) from None

    def decode(self, payload: bytes, version: int) -> Any:
        """Decode *payload* with the codec registered for *version*."""
        codec = self.codec_for(version)
        logger.debug("Decoding %d byte(s) at version %d", len(payload), version)
        return codec.decode(payload)

    def encode(self, value: Any, version: int) -> bytes:
        """Encode *value* with the codec registered for *version*."""
        codec = self.codec_for(version)
        payload = codec.encode(value)
        logger.debug("Encoded %d byte(s) at version %d", len(payload), version)
        return payload

    def __len__(self) -> int:
        return len(self._codecs)

    def __contains__(self, version: object) -> bool:
        return version in self._codecs

    def __repr__(self) -> str:
        return f"VersionCodecSet(versions={list(self.versions)})"


# ---------------------------------------------------------------------------
# Model-backed codecs
# ---------------------------------------------------------------------------


def model_codec(model_type: Any, fmt: CodecFormat = "json") -> VersionCodec:
    """Build a :class:`VersionCodec` for a pydantic model (or any type pydantic can adapt).

    Parameters
    ----------
    model_type:
        The in-memory type for one schema version, e.g. a ``BaseModel``
        subclass generated for that version.
    fmt:
        ``"json"`` (default) or ``"yaml"``.

    Returns
    -------
    VersionCodec
        A codec whose ``decode`` validates into *model_type* and whose
        ``encode`` produces UTF-8 bytes.

    Raises
    ------
    ValueError
        If *fmt* is not a supported format.
    """
    adapter: TypeAdapter[Any] = TypeAdapter(model_type)

    if fmt == "json":
        return VersionCodec(
            decode=adapter.validate_json,
            encode=adapter.dump_json,
        )

    if fmt == "yaml":

        def decode_yaml(payload: bytes) -> Any:
            return adapter.validate_python(yaml.safe_load(payload))

        def encode_yaml(value: Any) -> bytes:
            data = adapter.dump_python(value, mode="json")
            return yaml.safe_dump(data, sort_keys=True, allow_unicode=True).encode("utf-8")

        return VersionCodec(decode=decode_yaml, encode=encode_yaml)

    raise ValueError(f"Unsupported codec format {fmt!r}. Use 'json' or 'yaml'.")
