"""Unit tests for rotation/naming.py: RotatedName and name generation."""
from __future__ import annotations

from datetime import datetime

import pytest

from pylogrotate.policies.policy import PolicyRecord
from pylogrotate.rotation.naming import (
    RotatedName,
    compute_rotated_name,
    date_suffix_pattern,
    format_date_suffix,
    new_rotated_name,
    reference_instant,
)

NOW = datetime(2024, 3, 7, 14, 5, 9)


# ---------------------------------------------------------------------------
# Date suffixes
# ---------------------------------------------------------------------------


class TestFormatDateSuffix:
    def test_default_format(self) -> None:
        assert format_date_suffix("-%Y%m%d", NOW) == "-20240307"

    def test_hour_and_minute(self) -> None:
        assert format_date_suffix("-%Y-%m-%d_%H%M", NOW) == "-2024-03-07_1405"

    def test_epoch_seconds(self) -> None:
        assert format_date_suffix(".%s", NOW) == f".{int(NOW.timestamp())}"

    def test_unknown_token_kept(self) -> None:
        assert format_date_suffix("-%Y%q", NOW) == "-2024%q"

    def test_pattern_matches_expansion(self) -> None:
        pattern = date_suffix_pattern("-%Y%m%d")
        assert pattern.match("-20240307")
        assert not pattern.match("-2024037")
        assert not pattern.match(".1")


class TestReferenceInstant:
    def test_now_by_default(self) -> None:
        assert reference_instant(PolicyRecord(), NOW) == NOW

    def test_dateyesterday(self) -> None:
        assert reference_instant(PolicyRecord(dateyesterday=True), NOW).day == 6

    def test_datehourago(self) -> None:
        assert reference_instant(PolicyRecord(datehourago=True), NOW).hour == 13

    def test_dateyesterday_takes_precedence(self) -> None:
        moment = reference_instant(PolicyRecord(dateyesterday=True, datehourago=True), NOW)
        assert (moment.day, moment.hour) == (6, 14)


# ---------------------------------------------------------------------------
# compute_rotated_name
# ---------------------------------------------------------------------------


class TestComputeRotatedName:
    def test_numeric_default(self) -> None:
        assert compute_rotated_name(PolicyRecord(), "test.log") == "test.log.1"

    def test_numeric_start(self) -> None:
        assert compute_rotated_name(PolicyRecord(start=5), "test.log") == "test.log.5"

    def test_extension_preserved(self) -> None:
        assert compute_rotated_name(PolicyRecord(extension=".log"), "app.log") == "app.1.log"

    def test_extension_not_matching_is_ignored(self) -> None:
        assert compute_rotated_name(PolicyRecord(extension=".log"), "app.txt") == "app.txt.1"

    def test_addextension_outermost(self) -> None:
        assert compute_rotated_name(PolicyRecord(addextension=".backup"), "app.log") == "app.log.1.backup"

    def test_extension_and_addextension(self) -> None:
        policy = PolicyRecord(extension=".log", addextension=".backup")
        assert compute_rotated_name(policy, "app.log") == "app.1.log.backup"

    def test_date_mode(self) -> None:
        assert compute_rotated_name(PolicyRecord(dateext=True), "app.log", NOW) == "app.log-20240307"

    def test_date_mode_with_extension(self) -> None:
        policy = PolicyRecord(dateext=True, extension=".log")
        assert compute_rotated_name(policy, "app.log", NOW) == "app-20240307.log"

    def test_date_mode_yesterday(self) -> None:
        policy = PolicyRecord(dateext=True, dateyesterday=True)
        assert compute_rotated_name(policy, "app.log", NOW) == "app.log-20240306"

    def test_compression_never_added(self) -> None:
        assert compute_rotated_name(PolicyRecord(compress=True), "app.log") == "app.log.1"

    def test_same_inputs_same_name(self) -> None:
        policy = PolicyRecord(dateext=True, dateformat="-%Y%m%d%H%M")
        assert compute_rotated_name(policy, "app.log", NOW) == compute_rotated_name(policy, "app.log", NOW)


# ---------------------------------------------------------------------------
# RotatedName.parse / format
# ---------------------------------------------------------------------------


class TestRotatedNameParse:
    @pytest.mark.parametrize(
        ("candidate", "index", "compressed"),
        [
            ("app.log.1", 1, False),
            ("app.log.12", 12, False),
            ("app.log.3.gz", 3, True),
        ],
    )
    def test_numeric(self, candidate: str, index: int, compressed: bool) -> None:
        parsed = RotatedName.parse(candidate, "app.log", PolicyRecord())
        assert parsed is not None
        assert parsed.index == index
        assert parsed.is_compressed is compressed
        assert parsed.format() == candidate

    @pytest.mark.parametrize(
        "candidate",
        ["app.log", "app.log.bak", "app.log-20240307", "app.logger.1", "other.log.1", "app.log.1x"],
    )
    def test_numeric_rejects(self, candidate: str) -> None:
        assert RotatedName.parse(candidate, "app.log", PolicyRecord()) is None

    def test_extension_and_addextension_and_compression(self) -> None:
        policy = PolicyRecord(extension=".log", addextension=".backup", compress=True)
        parsed = RotatedName.parse("app.2.log.backup.gz", "app.log", policy)
        assert parsed == RotatedName(
            base="app", index=2, extension=".log", addextension=".backup", compression=".gz"
        )

    def test_extension_required_when_configured(self) -> None:
        assert RotatedName.parse("app.log.1", "app.log", PolicyRecord(extension=".log")) is None

    def test_custom_compressext(self) -> None:
        parsed = RotatedName.parse("app.log.1.bz2", "app.log", PolicyRecord(compressext="bz2"))
        assert parsed is not None
        assert parsed.compression == ".bz2"

    def test_date_mode(self) -> None:
        parsed = RotatedName.parse("app.log-20240307.gz", "app.log", PolicyRecord(dateext=True))
        assert parsed is not None
        assert parsed.date_suffix == "-20240307"
        assert parsed.index is None

    def test_date_mode_rejects_numeric(self) -> None:
        assert RotatedName.parse("app.log.1", "app.log", PolicyRecord(dateext=True)) is None


class TestRotatedNameTransforms:
    def test_with_index(self) -> None:
        name = RotatedName(base="app", index=1, extension=".log", compression=".gz")
        assert name.with_index(2).format() == "app.2.log.gz"

    def test_with_compression(self) -> None:
        name = new_rotated_name(PolicyRecord(addextension=".backup"), "app.log")
        assert name.with_compression(".gz").format() == "app.log.1.backup.gz"

    def test_new_rotated_name_is_uncompressed(self) -> None:
        assert new_rotated_name(PolicyRecord(compress=True), "app.log").is_compressed is False
