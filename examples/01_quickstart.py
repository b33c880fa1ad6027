#!/usr/bin/env python3
"""Example: Quickstart — vbare

Minimal working example: two schema versions of a record, a handler that
upgrades on read and downgrades on write, and the embedded-version frame.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install vbare
"""
from __future__ import annotations

from pydantic import BaseModel

import vbare
from vbare import VersionCodecSet, VersionedDataHandler, model_codec


class RecordV1(BaseModel):
    id: int
    name: str


class RecordV2(BaseModel):
    id: int
    name: str
    description: str


def v1_to_v2(record: RecordV1) -> RecordV2:
    return RecordV2(id=record.id, name=record.name, description="default")


def v2_to_v1(record: RecordV2) -> RecordV1:
    return RecordV1(id=record.id, name=record.name)


def main() -> None:
    print(f"vbare version: {vbare.__version__}")

    # Step 1: Build a handler from one codec per version plus both chains
    handler = VersionedDataHandler.from_codecs(
        VersionCodecSet({1: model_codec(RecordV1), 2: model_codec(RecordV2)}),
        upgrade_converters=[v1_to_v2],
        downgrade_converters=[v2_to_v1],
    )
    print(f"Latest version: {handler.latest_version}")

    # Step 2: Write for an old reader
    record = RecordV2(id=456, name="test", description="will be stripped")
    framed = handler.serialize_with_embedded_version(record, 1)
    print(f"Framed v1 bytes: {framed!r}")

    # Step 3: Read it back; the upgrade chain fills the new field
    restored = handler.deserialize_with_embedded_version(framed)
    print(f"Restored: {restored!r}")

    # Step 4: Versions this build has never heard of are rejected
    try:
        handler.deserialize(b"{}", 9)
    except vbare.FutureVersionError as exc:
        print(f"Rejected: {exc}")


if __name__ == "__main__":
    main()
