"""Versioned data handler: decode/encode with chained schema migrations.

The handler is the single integration point between stored bytes and the
application's latest in-memory representation.  Reads decode at the stored
version and walk the upgrade chain forward to latest; writes walk the
downgrade chain away from latest and encode at the requested version.

Chain addressing
----------------
- Upgrade position ``i`` converts version ``i + 1`` to ``i + 2``.  Reading
  version ``v`` runs positions ``v - 1 .. latest - 2``.
- The downgrade chain is authored walking away from latest: position ``0``
  converts ``latest`` to ``latest - 1``, position ``1`` converts
  ``latest - 1`` to ``latest - 2``, and so on.  Writing version ``v`` runs
  positions ``0 .. latest - v - 1``.

Both walks apply strictly increasing positions, one step at a time.

Classes
-------
- VersionedDataConfig   — immutable handler configuration (pydantic)
- VersionedDataHandler  — the orchestrator

Functions
---------
- create_versioned_data_handler — build a handler from keyword arguments
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Generic, Sequence, TypeVar

from pydantic import BaseModel, Field, ValidationError, model_validator

from vbare.chain import Converter, MigrationChain
from vbare.codec import VersionCodecSet
from vbare.errors import ConfigurationError, FutureVersionError, UnknownVersionError
from vbare.framing import MAX_FRAME_VERSION, embed_version, extract_version

logger = logging.getLogger(__name__)

LatestT = TypeVar("LatestT")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class VersionedDataConfig(BaseModel):
    """Configuration for a :class:`VersionedDataHandler`.

    Instances are frozen; converter sequences are stored as tuples so no
    entry can be added, removed, or reordered after construction.

    Parameters
    ----------
    decode:
        ``(payload, version) -> Value(version)``.  Must raise
        :class:`~vbare.errors.UnknownVersionError` for versions it does not
        recognise.
    encode:
        ``(value, version) -> bytes``.  Same obligation as *decode*.
    upgrade_converters:
        Entry ``i`` converts version ``i + 1`` to ``i + 2``.
    downgrade_converters:
        Entry ``0`` converts latest to ``latest - 1``, entry ``1`` continues
        one step further, and so on.
    current_version:
        Latest schema version.  Defaults to ``len(upgrade_converters) + 1``.
        Set it explicitly when the chains are expected to be complete, so a
        short chain is reported as a missing migration.
    """

    decode: Callable[[bytes, int], Any]
    encode: Callable[[Any, int], bytes]
    upgrade_converters: tuple[Callable[[Any], Any], ...] = ()
    downgrade_converters: tuple[Callable[[Any], Any], ...] = ()
    current_version: int | None = Field(default=None, ge=1, le=MAX_FRAME_VERSION)

    model_config = {"frozen": True}

    @property
    def latest_version(self) -> int:
        """The latest schema version this configuration reaches."""
        if self.current_version is not None:
            return self.current_version
        return len(self.upgrade_converters) + 1

    @model_validator(mode="after")
    def chains_fit_version_range(self) -> VersionedDataConfig:
        max_steps = self.latest_version - 1
        if max_steps + 1 > MAX_FRAME_VERSION:
            raise ValueError(
                f"Upgrade chain reaches version {max_steps + 1}, beyond {MAX_FRAME_VERSION}"
            )
        for name in ("upgrade_converters", "downgrade_converters"):
            steps = len(getattr(self, name))
            if steps > max_steps:
                raise ValueError(
                    f"{name} has {steps} entries but latest version "
                    f"{self.latest_version} allows at most {max_steps}"
                )
        return self


# ---------------------------------------------------------------------------
# Handler
# ---------------------------------------------------------------------------


class VersionedDataHandler(Generic[LatestT]):
    """Decode and encode versioned payloads through migration chains.

    The handler holds no per-call state; a single instance can serve any
    number of concurrent calls.

    Parameters
    ----------
    config:
        The immutable handler configuration.

    Example
    -------
    .. code-block:: python

        handler = VersionedDataHandler.from_codecs(
            VersionCodecSet({1: model_codec(AppV1), 2: model_codec(AppV2)}),
            upgrade_converters=[app_v1_to_v2],
            downgrade_converters=[app_v2_to_v1],
        )
        app = handler.deserialize_with_embedded_version(stored_bytes)
        stored_bytes = handler.serialize_with_embedded_version(app, 1)
    """

    def __init__(self, config: VersionedDataConfig) -> None:
        self._config = config
        self._latest = config.latest_version
        self._upgrades = MigrationChain(config.upgrade_converters)
        self._downgrades = MigrationChain(config.downgrade_converters)

    @classmethod
    def from_codecs(
        cls,
        codecs: VersionCodecSet,
        upgrade_converters: Sequence[Converter] = (),
        downgrade_converters: Sequence[Converter] = (),
        current_version: int | None = None,
    ) -> VersionedDataHandler[Any]:
        """Build a handler around a :class:`VersionCodecSet`.

        *current_version* defaults to the codec set's highest version.

        Raises
        ------
        ConfigurationError
            If the chains do not fit the version range.
        """
        return create_versioned_data_handler(
            decode=codecs.decode,
            encode=codecs.encode,
            upgrade_converters=upgrade_converters,
            downgrade_converters=downgrade_converters,
            current_version=(
                codecs.latest_version if current_version is None else current_version
            ),
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def config(self) -> VersionedDataConfig:
        """The configuration this handler was built with."""
        return self._config

    @property
    def latest_version(self) -> int:
        """The latest (canonical in-memory) schema version."""
        return self._latest

    def __repr__(self) -> str:
        return (
            f"VersionedDataHandler(latest_version={self._latest}, "
            f"upgrades={len(self._upgrades)}, downgrades={len(self._downgrades)})"
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_reachable(self, version: int) -> None:
        if version < 1:
            raise UnknownVersionError(version)
        if version > self._latest:
            raise FutureVersionError(version, self._latest)

    def _downgrade_label(self, position: int) -> tuple[int, int]:
        return self._latest - position, self._latest - position - 1

    # ------------------------------------------------------------------
    # Chain application without codecs
    # ------------------------------------------------------------------

    def upgrade(self, value: Any, from_version: int) -> LatestT:
        """Run the upgrade chain on an already decoded value.

        Parameters
        ----------
        value:
            An in-memory value at *from_version*.
        from_version:
            The schema version of *value*.

        Returns
        -------
        LatestT
            The value converted to the latest version.

        Raises
        ------
        UnknownVersionError
            If *from_version* is not positive.
        FutureVersionError
            If *from_version* is newer than latest.
        MissingMigrationError
            If the upgrade chain is too short.
        """
        self._require_reachable(from_version)
        return self._upgrades.run(value, from_version - 1, self._latest - 1)

    def downgrade(self, value: LatestT, to_version: int) -> Any:
        """Run the downgrade chain on a latest-version value without encoding it."""
        self._require_reachable(to_version)
        return self._downgrades.run(
            value, 0, self._latest - to_version, self._downgrade_label
        )

    # ------------------------------------------------------------------
    # Bytes
    # ------------------------------------------------------------------

    def deserialize(self, payload: bytes, source_version: int) -> LatestT:
        """Decode *payload* stored at *source_version* and upgrade it to latest.

        Chain coverage is verified before the codec runs, so a misconfigured
        handler fails the same way regardless of payload contents.

        Raises
        ------
        UnknownVersionError
            If *source_version* is not positive, or the codec does not
            recognise it.
        FutureVersionError
            If *source_version* is newer than latest.
        MissingMigrationError
            If the upgrade chain cannot bridge *source_version* to latest.
        """
        self._require_reachable(source_version)
        start, stop = source_version - 1, self._latest - 1
        self._upgrades.check(start, stop)
        value = self._config.decode(payload, source_version)
        logger.debug(
            "Decoded version %d payload, applying %d upgrade(s)",
            source_version,
            max(0, stop - start),
        )
        return self._upgrades.run(value, start, stop)

    def serialize(self, value: LatestT, target_version: int) -> bytes:
        """Downgrade *value* to *target_version* and encode it.

        Raises
        ------
        UnknownVersionError
            If *target_version* is not positive, or the codec does not
            recognise it.
        FutureVersionError
            If *target_version* is newer than latest.
        MissingMigrationError
            If the downgrade chain cannot reach *target_version*.
        """
        downgraded = self.downgrade(value, target_version)
        payload = self._config.encode(downgraded, target_version)
        logger.debug("Encoded %d byte(s) at version %d", len(payload), target_version)
        return payload

    def serialize_with_embedded_version(self, value: LatestT, version: int) -> bytes:
        """Like :meth:`serialize`, prefixed with *version* as a little-endian u16."""
        return embed_version(self.serialize(value, version), version)

    def deserialize_with_embedded_version(self, data: bytes) -> LatestT:
        """Read the embedded version from *data* and :meth:`deserialize` the rest.

        Raises
        ------
        TruncatedFrameError
            If *data* is shorter than the 2-byte version prefix.
        """
        version, payload = extract_version(data)
        return self.deserialize(payload, version)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_versioned_data_handler(
    decode: Callable[[bytes, int], Any],
    encode: Callable[[Any, int], bytes],
    upgrade_converters: Sequence[Converter] = (),
    downgrade_converters: Sequence[Converter] = (),
    current_version: int | None = None,
) -> VersionedDataHandler[Any]:
    """Validate a configuration and return a handler for it.

    Raises
    ------
    ConfigurationError
        If the configuration fails validation.  The pydantic
        ``ValidationError`` is chained as the cause.
    """
    try:
        config = VersionedDataConfig(
            decode=decode,
            encode=encode,
            upgrade_converters=tuple(upgrade_converters),
            downgrade_converters=tuple(downgrade_converters),
            current_version=current_version,
        )
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid versioned data configuration: {exc}") from exc
    return VersionedDataHandler(config)
