"""vbare — Versioned data migration for binary-encoded application state.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import vbare
>>> vbare.__version__
'0.1.0'
"""
from __future__ import annotations

# Errors
from vbare.errors import (
    ConfigurationError,
    FutureVersionError,
    MissingMigrationError,
    TruncatedFrameError,
    UnknownVersionError,
    VbareError,
    VersionOutOfRangeError,
)

# Framing
from vbare.framing import VersionedFrame, embed_version, extract_version

# Chains and codecs
from vbare.chain import MigrationChain
from vbare.codec import VersionCodec, VersionCodecSet, model_codec

# Handler
from vbare.handler import (
    VersionedDataConfig,
    VersionedDataHandler,
    create_versioned_data_handler,
)

__version__: str = "0.1.0"

__all__ = [
    "__version__",
    # Errors
    "ConfigurationError",
    "FutureVersionError",
    "MissingMigrationError",
    "TruncatedFrameError",
    "UnknownVersionError",
    "VbareError",
    "VersionOutOfRangeError",
    # Framing
    "VersionedFrame",
    "embed_version",
    "extract_version",
    # Chains and codecs
    "MigrationChain",
    "VersionCodec",
    "VersionCodecSet",
    "model_codec",
    # Handler
    "VersionedDataConfig",
    "VersionedDataHandler",
    "create_versioned_data_handler",
]
