"""Unit tests for vbare.handler.

Tests cover deserialize/serialize chain traversal, the embedded-version
helpers, error reporting for unreachable versions and short chains, and
configuration validation.
"""
from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import pytest
from pydantic import BaseModel, ValidationError

from vbare.codec import VersionCodecSet, model_codec
from vbare.errors import (
    ConfigurationError,
    FutureVersionError,
    MissingMigrationError,
    TruncatedFrameError,
    UnknownVersionError,
)
from vbare.handler import (
    VersionedDataConfig,
    VersionedDataHandler,
    create_versioned_data_handler,
)


# ---------------------------------------------------------------------------
# Three-version record schema
# ---------------------------------------------------------------------------


class RecordV1(BaseModel):
    id: int
    name: str


class RecordV2(BaseModel):
    id: int
    name: str
    description: str


class RecordV3(BaseModel):
    id: int
    name: str
    description: str
    tags: list[str]


def v1_to_v2(record: RecordV1) -> RecordV2:
    return RecordV2(id=record.id, name=record.name, description="default")


def v2_to_v3(record: RecordV2) -> RecordV3:
    return RecordV3(id=record.id, name=record.name, description=record.description, tags=[])


def v3_to_v2(record: RecordV3) -> RecordV2:
    return RecordV2(id=record.id, name=record.name, description=record.description)


def v2_to_v1(record: RecordV2) -> RecordV1:
    return RecordV1(id=record.id, name=record.name)


CODECS = VersionCodecSet(
    {
        1: model_codec(RecordV1),
        2: model_codec(RecordV2),
        3: model_codec(RecordV3),
    }
)


def _make_handler(**overrides: Any) -> VersionedDataHandler[RecordV3]:
    options: dict[str, Any] = {
        "upgrade_converters": [v1_to_v2, v2_to_v3],
        "downgrade_converters": [v3_to_v2, v2_to_v1],
    }
    options.update(overrides)
    return VersionedDataHandler.from_codecs(CODECS, **options)


def _latest() -> RecordV3:
    return RecordV3(id=789, name="v3_test", description="test description", tags=["tag1", "tag2"])


def _recording_handler(calls: list[str], latest: int = 3) -> VersionedDataHandler[list[str]]:
    """Handler over list values where every step appends its label."""

    def step(label: str):
        def apply(value: list[str]) -> list[str]:
            calls.append(label)
            return [*value, label]

        return apply

    return create_versioned_data_handler(
        decode=lambda payload, version: json.loads(payload),
        encode=lambda value, version: json.dumps(value).encode("utf-8"),
        upgrade_converters=[step(f"up{v}->{v + 1}") for v in range(1, latest)],
        downgrade_converters=[step(f"down{v}->{v - 1}") for v in range(latest, 1, -1)],
        current_version=latest,
    )


# ---------------------------------------------------------------------------
# deserialize
# ---------------------------------------------------------------------------


class TestDeserialize:
    def test_v1_payload_upgrades_to_latest(self) -> None:
        handler = _make_handler()
        payload = model_codec(RecordV1).encode(RecordV1(id=456, name="test"))
        result = handler.deserialize(payload, 1)
        assert result == RecordV3(id=456, name="test", description="default", tags=[])

    def test_v2_payload_keeps_description(self) -> None:
        handler = _make_handler()
        payload = model_codec(RecordV2).encode(RecordV2(id=1, name="n", description="data"))
        result = handler.deserialize(payload, 2)
        assert result.description == "data"
        assert result.tags == []

    def test_latest_payload_is_returned_unchanged(self) -> None:
        handler = _make_handler()
        latest = _latest()
        assert handler.deserialize(model_codec(RecordV3).encode(latest), 3) == latest

    @pytest.mark.parametrize(
        ("version", "expected"),
        [
            (1, ["up1->2", "up2->3"]),
            (2, ["up2->3"]),
            (3, []),
        ],
    )
    def test_applies_exactly_latest_minus_version_steps(
        self, version: int, expected: list[str]
    ) -> None:
        calls: list[str] = []
        handler = _recording_handler(calls)
        assert handler.deserialize(b"[]", version) == expected
        assert calls == expected

    def test_future_version_rejected(self) -> None:
        handler = _make_handler()
        with pytest.raises(FutureVersionError) as info:
            handler.deserialize(b"{}", 4)
        assert info.value.requested == 4
        assert info.value.latest == 3

    @pytest.mark.parametrize("version", [0, -1])
    def test_non_positive_version_rejected(self, version: int) -> None:
        handler = _make_handler()
        with pytest.raises(UnknownVersionError):
            handler.deserialize(b"{}", version)

    def test_codec_unknown_version_propagates(self) -> None:
        codecs = VersionCodecSet({1: model_codec(RecordV1), 3: model_codec(RecordV3)})
        handler = VersionedDataHandler.from_codecs(
            codecs, upgrade_converters=[v1_to_v2, v2_to_v3]
        )
        with pytest.raises(UnknownVersionError, match="invalid version: 2"):
            handler.deserialize(b"{}", 2)

    def test_malformed_payload_error_propagates_unchanged(self) -> None:
        handler = _make_handler()
        with pytest.raises(ValidationError):
            handler.deserialize(b"not json", 3)


class TestMissingMigration:
    def test_short_upgrade_chain_raises(self) -> None:
        handler = _make_handler(upgrade_converters=[v1_to_v2])
        payload = model_codec(RecordV1).encode(RecordV1(id=1, name="x"))
        with pytest.raises(MissingMigrationError) as info:
            handler.deserialize(payload, 1)
        assert (info.value.from_version, info.value.to_version) == (2, 3)

    def test_short_upgrade_chain_checked_before_decode(self) -> None:
        handler = _make_handler(upgrade_converters=[v1_to_v2])
        with pytest.raises(MissingMigrationError):
            handler.deserialize(b"not json", 2)

    def test_short_upgrade_chain_fine_at_latest(self) -> None:
        handler = _make_handler(upgrade_converters=[v1_to_v2])
        latest = _latest()
        assert handler.deserialize(model_codec(RecordV3).encode(latest), 3) == latest

    def test_short_downgrade_chain_raises(self) -> None:
        handler = _make_handler(downgrade_converters=[v3_to_v2])
        with pytest.raises(MissingMigrationError) as info:
            handler.serialize(_latest(), 1)
        assert (info.value.from_version, info.value.to_version) == (2, 1)

    def test_short_downgrade_chain_fine_one_step_back(self) -> None:
        handler = _make_handler(downgrade_converters=[v3_to_v2])
        payload = handler.serialize(_latest(), 2)
        assert json.loads(payload)["description"] == "test description"


# ---------------------------------------------------------------------------
# serialize
# ---------------------------------------------------------------------------


class TestSerialize:
    def test_to_v2_strips_tags(self) -> None:
        handler = _make_handler()
        payload = handler.serialize(_latest(), 2)
        assert json.loads(payload) == {
            "id": 789,
            "name": "v3_test",
            "description": "test description",
        }

    def test_to_v1_applies_both_downgrades(self) -> None:
        handler = _make_handler()
        payload = handler.serialize(_latest(), 1)
        assert json.loads(payload) == {"id": 789, "name": "v3_test"}

    def test_to_latest_encodes_unchanged(self) -> None:
        handler = _make_handler()
        latest = _latest()
        assert handler.serialize(latest, 3) == model_codec(RecordV3).encode(latest)

    @pytest.mark.parametrize(
        ("version", "expected"),
        [
            (1, ["down3->2", "down2->1"]),
            (2, ["down3->2"]),
            (3, []),
        ],
    )
    def test_applies_exactly_latest_minus_version_steps(
        self, version: int, expected: list[str]
    ) -> None:
        calls: list[str] = []
        handler = _recording_handler(calls)
        assert json.loads(handler.serialize([], version)) == expected
        assert calls == expected

    def test_future_version_rejected(self) -> None:
        handler = _make_handler()
        with pytest.raises(FutureVersionError):
            handler.serialize(_latest(), 4)

    def test_non_positive_version_rejected(self) -> None:
        handler = _make_handler()
        with pytest.raises(UnknownVersionError):
            handler.serialize(_latest(), 0)

    def test_v3_to_v1_then_back_fills_defaults(self) -> None:
        handler = _make_handler()
        result = handler.deserialize(handler.serialize(_latest(), 1), 1)
        assert result == RecordV3(id=789, name="v3_test", description="default", tags=[])


class TestRoundTripWithExactInverses:
    """Lossless chains must round-trip at every supported version."""

    @staticmethod
    def _lossless_handler() -> VersionedDataHandler[dict[str, Any]]:
        def cents_to_amount(value: dict[str, Any]) -> dict[str, Any]:
            return {"amount": {"units": value["cents"] // 100, "cents": value["cents"] % 100}}

        def amount_to_cents(value: dict[str, Any]) -> dict[str, Any]:
            return {"cents": value["amount"]["units"] * 100 + value["amount"]["cents"]}

        def amount_to_pair(value: dict[str, Any]) -> dict[str, Any]:
            return {"units": value["amount"]["units"], "cents": value["amount"]["cents"]}

        def pair_to_amount(value: dict[str, Any]) -> dict[str, Any]:
            return {"amount": {"units": value["units"], "cents": value["cents"]}}

        return create_versioned_data_handler(
            decode=lambda payload, version: json.loads(payload),
            encode=lambda value, version: json.dumps(value, sort_keys=True).encode("utf-8"),
            upgrade_converters=[cents_to_amount, amount_to_pair],
            downgrade_converters=[pair_to_amount, amount_to_cents],
        )

    @pytest.mark.parametrize("version", [1, 2, 3])
    @pytest.mark.parametrize("units,cents", [(0, 0), (1, 99), (12345, 7)])
    def test_round_trip(self, version: int, units: int, cents: int) -> None:
        handler = self._lossless_handler()
        value = {"units": units, "cents": cents}
        assert handler.deserialize(handler.serialize(value, version), version) == value


# ---------------------------------------------------------------------------
# Embedded version
# ---------------------------------------------------------------------------


class TestEmbeddedVersion:
    def test_v1_prefix(self) -> None:
        handler = _make_handler()
        data = handler.serialize_with_embedded_version(_latest(), 1)
        assert data[0] == 1
        assert data[1] == 0
        assert data[2:] == handler.serialize(_latest(), 1)

    def test_v2_prefix(self) -> None:
        handler = _make_handler()
        data = handler.serialize_with_embedded_version(_latest(), 2)
        assert data[:2] == b"\x02\x00"

    def test_length_is_prefix_plus_payload(self) -> None:
        handler = _make_handler()
        data = handler.serialize_with_embedded_version(_latest(), 3)
        assert len(data) == 2 + len(handler.serialize(_latest(), 3))

    def test_embedded_v1_upgrades_on_read(self) -> None:
        handler = _make_handler()
        data = handler.serialize_with_embedded_version(_latest(), 1)
        result = handler.deserialize_with_embedded_version(data)
        assert result == RecordV3(id=789, name="v3_test", description="default", tags=[])

    def test_embedded_latest_round_trip(self) -> None:
        handler = _make_handler()
        latest = _latest()
        data = handler.serialize_with_embedded_version(latest, 3)
        assert handler.deserialize_with_embedded_version(data) == latest

    @pytest.mark.parametrize("data", [b"", b"\x01"])
    def test_truncated_frame_rejected(self, data: bytes) -> None:
        handler = _make_handler()
        with pytest.raises(TruncatedFrameError):
            handler.deserialize_with_embedded_version(data)

    def test_embedded_future_version_rejected(self) -> None:
        handler = _make_handler()
        with pytest.raises(FutureVersionError):
            handler.deserialize_with_embedded_version(b"\x09\x00{}")

    def test_embedded_zero_version_rejected(self) -> None:
        handler = _make_handler()
        with pytest.raises(UnknownVersionError):
            handler.deserialize_with_embedded_version(b"\x00\x00{}")


# ---------------------------------------------------------------------------
# upgrade / downgrade without codecs
# ---------------------------------------------------------------------------


class TestInMemoryMigration:
    def test_upgrade_from_v1(self) -> None:
        handler = _make_handler()
        result = handler.upgrade(RecordV1(id=7, name="hello"), 1)
        assert result == RecordV3(id=7, name="hello", description="default", tags=[])

    def test_upgrade_from_latest_returns_same_object(self) -> None:
        handler = _make_handler()
        latest = _latest()
        assert handler.upgrade(latest, 3) is latest

    def test_downgrade_to_v2(self) -> None:
        handler = _make_handler()
        assert handler.downgrade(_latest(), 2) == RecordV2(
            id=789, name="v3_test", description="test description"
        )


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TestConfiguration:
    def test_latest_defaults_to_chain_length_plus_one(self) -> None:
        handler = create_versioned_data_handler(
            decode=CODECS.decode,
            encode=CODECS.encode,
            upgrade_converters=[v1_to_v2, v2_to_v3],
        )
        assert handler.latest_version == 3

    def test_from_codecs_uses_highest_codec_version(self) -> None:
        handler = VersionedDataHandler.from_codecs(CODECS)
        assert handler.latest_version == 3

    def test_single_version_without_converters(self) -> None:
        codecs = VersionCodecSet({1: model_codec(RecordV1)})
        handler = VersionedDataHandler.from_codecs(codecs)
        record = RecordV1(id=1, name="x")
        assert handler.deserialize(handler.serialize(record, 1), 1) == record

    def test_chain_longer_than_versions_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            create_versioned_data_handler(
                decode=CODECS.decode,
                encode=CODECS.encode,
                upgrade_converters=[v1_to_v2, v2_to_v3],
                current_version=2,
            )

    def test_downgrade_chain_longer_than_versions_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            create_versioned_data_handler(
                decode=CODECS.decode,
                encode=CODECS.encode,
                downgrade_converters=[v3_to_v2],
            )

    def test_non_callable_converter_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            create_versioned_data_handler(
                decode=CODECS.decode,
                encode=CODECS.encode,
                upgrade_converters=["not callable"],  # type: ignore[list-item]
            )

    @pytest.mark.parametrize("current_version", [0, -1, 70000])
    def test_from_codecs_rejects_invalid_current_version(self, current_version: int) -> None:
        with pytest.raises(ConfigurationError):
            VersionedDataHandler.from_codecs(
                CODECS,
                upgrade_converters=[v1_to_v2, v2_to_v3],
                downgrade_converters=[v3_to_v2, v2_to_v1],
                current_version=current_version,
            )

    @pytest.mark.parametrize("current_version", [0, 70000])
    def test_current_version_range(self, current_version: int) -> None:
        with pytest.raises(ValidationError):
            VersionedDataConfig(
                decode=CODECS.decode,
                encode=CODECS.encode,
                current_version=current_version,
            )

    def test_config_is_frozen(self) -> None:
        config = VersionedDataConfig(decode=CODECS.decode, encode=CODECS.encode)
        with pytest.raises(ValidationError):
            config.current_version = 5  # type: ignore[misc]

    def test_converters_stored_as_tuple(self) -> None:
        handler = _make_handler()
        assert isinstance(handler.config.upgrade_converters, tuple)
        assert handler.config.upgrade_converters == (v1_to_v2, v2_to_v3)

    def test_configuration_error_chains_validation_error(self) -> None:
        with pytest.raises(ConfigurationError) as info:
            create_versioned_data_handler(
                decode=CODECS.decode,
                encode=CODECS.encode,
                current_version=0,
            )
        assert isinstance(info.value.__cause__, ValidationError)

    def test_repr(self) -> None:
        assert repr(_make_handler()) == (
            "VersionedDataHandler(latest_version=3, upgrades=2, downgrades=2)"
        )


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


class TestConcurrentUse:
    def test_shared_handler_across_threads(self) -> None:
        handler = _make_handler()
        records = [RecordV3(id=i, name=f"r{i}", description="d", tags=[str(i)]) for i in range(50)]

        def round_trip(record: RecordV3) -> RecordV3:
            data = handler.serialize_with_embedded_version(record, 2)
            return handler.deserialize_with_embedded_version(data)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(round_trip, records))

        assert [r.id for r in results] == list(range(50))
        assert all(r.tags == [] and r.description == "d" for r in results)
