"""Tests for provider timestamp normalization."""

from datetime import datetime, timedelta, timezone

import pytest

from restore_manager.core.timestamps import normalize_timestamp, try_normalize_timestamp
from restore_manager.errors import TimestampNormalizationError

EXPECTED = datetime(2025, 10, 29, 13, 30, 27, tzinfo=timezone.utc)


class TestAcceptedEncodings:
    """The three encodings resolve to the same instant."""

    @pytest.mark.parametrize(
        "value",
        [
            "20251029133027.000000-000",
            "20251029133027.000000+000",
            "2025-10-29T13:30:27",
            "2025-10-29T13:30:27Z",
            "2025-10-29T13:30:27+00:00",
            "2025-10-29 13:30:27",
            datetime(2025, 10, 29, 13, 30, 27),
            datetime(2025, 10, 29, 13, 30, 27, tzinfo=timezone.utc),
            EXPECTED.timestamp(),
            int(EXPECTED.timestamp()),
            f"/Date({int(EXPECTED.timestamp() * 1000)})/",
            "10/29/2025 13:30:27",
        ],
    )
    def test_equivalent_inputs(self, value):
        """Test every accepted form normalizes to the same UTC instant."""
        result = normalize_timestamp(value)

        assert result == EXPECTED
        assert result.tzinfo == timezone.utc

    def test_wmi_positive_offset(self):
        """Test the WMI offset is minutes east of UTC."""
        result = normalize_timestamp("20251029143027.000000+060")

        assert result == EXPECTED

    def test_wmi_negative_offset(self):
        """Test a western offset moves the instant later in UTC."""
        result = normalize_timestamp("20251029083027.000000-300")

        assert result == EXPECTED

    def test_wmi_microseconds(self):
        """Test fractional seconds are preserved."""
        result = normalize_timestamp("20251029133027.250000-000")

        assert result == EXPECTED + timedelta(microseconds=250000)

    def test_naive_values_use_assumed_zone(self):
        """Test naive inputs take the assumed zone."""
        eastern = timezone(timedelta(hours=-4))

        result = normalize_timestamp("2025-10-29T09:30:27", assume_tz=eastern)

        assert result == EXPECTED

    def test_offset_aware_iso_ignores_assumed_zone(self):
        """Test explicit offsets win over the assumed zone."""
        result = normalize_timestamp(
            "2025-10-29T15:30:27+02:00", assume_tz=timezone(timedelta(hours=9))
        )

        assert result == EXPECTED

    def test_dotnet_json_with_offset_suffix(self):
        """Test the offset suffix of the .NET JSON form is informational."""
        millis = int(EXPECTED.timestamp() * 1000)

        assert normalize_timestamp(f"/Date({millis}+0200)/") == EXPECTED


class TestRejectedValues:
    """Values that cannot be normalized."""

    @pytest.mark.parametrize(
        "value",
        [
            None,
            "",
            "   ",
            "yesterday",
            "20251329133027.000000-000",
            "2025-13-45T99:00:00",
            True,
            ["2025-10-29"],
        ],
    )
    def test_raises(self, value):
        """Test unrecognized values raise TimestampNormalizationError."""
        with pytest.raises(TimestampNormalizationError):
            normalize_timestamp(value)

    def test_try_variant_returns_none(self):
        """Test the non-raising variant."""
        assert try_normalize_timestamp("not a date") is None
        assert try_normalize_timestamp("20251029133027.000000-000") == EXPECTED
