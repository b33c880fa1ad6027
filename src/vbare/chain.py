"""Ordered migration chains.

A chain is an immutable sequence of pure converter functions.  Each entry
moves a value exactly one schema version; chains never skip a version.
Entries are addressed by zero-based position and applied in strictly
increasing position order, one step at a time.

Classes
-------
MigrationChain
    Immutable ordered list of converters with range application helpers.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Iterator, Mapping

from vbare.errors import ConfigurationError, MissingMigrationError

logger = logging.getLogger(__name__)

Converter = Callable[[Any], Any]
StepLabel = Callable[[int], tuple[int, int]]


def upgrade_label(position: int) -> tuple[int, int]:
    """Return ``(from_version, to_version)`` for an upgrade chain position."""
    return position + 1, position + 2


class MigrationChain:
    """An immutable, ordered list of single-step converters.

    Parameters
    ----------
    converters:
        Converter callables in application order.  Copied into a tuple, so
        later changes to the caller's list have no effect.

    Raises
    ------
    ConfigurationError
        If any entry is not callable.

    Example
    -------
    .. code-block:: python

        chain = MigrationChain([v1_to_v2, v2_to_v3])
        latest = chain.run(decoded_v1, 0, len(chain))
    """

    def __init__(self, converters: Iterable[Converter] = ()) -> None:
        steps = tuple(converters)
        for position, fn in enumerate(steps):
            if not callable(fn):
                raise ConfigurationError(
                    f"Migration at position {position} is not callable: {fn!r}"
                )
        self._steps: tuple[Converter, ...] = steps

    @classmethod
    def from_mapping(cls, migrations: Mapping[int, Converter]) -> MigrationChain:
        """Build an upgrade chain from a ``{from_version: converter}`` mapping.

        Keys must be exactly ``1..N`` with no gaps, so that entry ``v``
        converts version ``v`` to ``v + 1``.

        Raises
        ------
        ConfigurationError
            If a key is not positive or a version is skipped.
        """
        expected = 1
        ordered: list[Converter] = []
        for from_version in sorted(migrations):
            if from_version != expected:
                if from_version < 1:
                    raise ConfigurationError(
                        f"Migration source versions must be positive, got {from_version}"
                    )
                raise ConfigurationError(
                    f"Missing migration from version {expected} to {expected + 1}"
                )
            ordered.append(migrations[from_version])
            expected += 1
        return cls(ordered)

    # ------------------------------------------------------------------
    # Sequence protocol
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._steps)

    def __getitem__(self, position: int) -> Converter:
        return self._steps[position]

    def __iter__(self) -> Iterator[Converter]:
        return iter(self._steps)

    def __repr__(self) -> str:
        return f"MigrationChain(steps={len(self._steps)})"

    def has(self, position: int) -> bool:
        """Return True when an entry exists at *position*."""
        return 0 <= position < len(self._steps)

    # ------------------------------------------------------------------
    # Application
    # ------------------------------------------------------------------

    def check(self, start: int, stop: int, step_label: StepLabel = upgrade_label) -> None:
        """Verify that every position in ``start .. stop - 1`` is present.

        Parameters
        ----------
        start:
            First position to apply.
        stop:
            One past the last position to apply.
        step_label:
            Maps a position to the ``(from_version, to_version)`` pair it
            bridges, used for the error message.

        Raises
        ------
        MissingMigrationError
            Naming the first absent step.
        """
        for position in range(start, stop):
            if not self.has(position):
                from_version, to_version = step_label(position)
                raise MissingMigrationError(from_version, to_version)

    def run(
        self,
        value: Any,
        start: int,
        stop: int,
        step_label: StepLabel = upgrade_label,
    ) -> Any:
        """Apply positions ``start .. stop - 1`` in order, threading *value*.

        Each converter receives the previous converter's output.  When
        ``start >= stop`` no converter runs and *value* is returned as is.

        Raises
        ------
        MissingMigrationError
            If the chain has no entry at a required position.  Nothing is
            applied in that case.
        """
        self.check(start, stop, step_label)
        result = value
        for position in range(start, stop):
            from_version, to_version = step_label(position)
            logger.debug("Applying migration %d -> %d", from_version, to_version)
            result = self._steps[position](result)
        return result
