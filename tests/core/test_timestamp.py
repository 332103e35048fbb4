"""timestamp 规范化单元测试

测试内容：
1. epoch 毫秒（int / 整数 float / 数字字符串）
2. ISO-8601（含 Z、时区偏移、无时区）
3. 缺省取当前时间，截断到毫秒
4. 非法输入抛出 InvalidTimestampError
"""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from chatrelay.core.exceptions import InvalidTimestampError
from chatrelay.core.ingest import normalize_timestamp
from chatrelay.core.models import from_epoch_ms, to_epoch_ms

EXPECTED = datetime(2023, 11, 14, 22, 13, 20, 123000, tzinfo=UTC)


class TestEpochMillis:
    """epoch 毫秒输入"""

    @pytest.mark.parametrize("value", [1700000000123, 1700000000123.0, "1700000000123", " 1700000000123 "])
    def test_epoch_ms_forms(self, value):
        assert normalize_timestamp(value) == EXPECTED

    def test_negative_epoch(self):
        """1970 年之前的时刻"""
        assert normalize_timestamp("-5") == datetime(1969, 12, 31, 23, 59, 59, 995000, tzinfo=UTC)

    def test_zero(self):
        assert normalize_timestamp(0) == datetime(1970, 1, 1, tzinfo=UTC)


class TestIsoStrings:
    """ISO-8601 输入"""

    def test_zulu_suffix_truncated_to_ms(self):
        result = normalize_timestamp("2024-01-02T03:04:05.678901Z")
        assert result == datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=UTC)

    def test_offset_converted_to_utc(self):
        result = normalize_timestamp("2024-01-02T03:04:05+08:00")
        assert result == datetime(2024, 1, 1, 19, 4, 5, tzinfo=UTC)
        assert result.utcoffset() == timedelta(0)

    def test_naive_treated_as_utc(self):
        result = normalize_timestamp("2024-01-02T03:04:05")
        assert result == datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)


class TestDefaultNow:
    """缺省 timestamp"""

    def test_none_uses_now(self):
        now = datetime(2024, 5, 6, 7, 8, 9, 123456, tzinfo=UTC)
        assert normalize_timestamp(None, now=now) == datetime(2024, 5, 6, 7, 8, 9, 123000, tzinfo=UTC)

    def test_none_without_now_is_recent(self):
        before = datetime.now(UTC) - timedelta(seconds=1)
        result = normalize_timestamp(None)
        assert before <= result <= datetime.now(UTC)
        assert result.microsecond % 1000 == 0

    def test_non_utc_now_kept_as_is(self):
        tz = timezone(timedelta(hours=2))
        now = datetime(2024, 5, 6, 7, 8, 9, tzinfo=tz)
        assert normalize_timestamp(None, now=now) == now


class TestInvalid:
    """非法输入"""

    @pytest.mark.parametrize(
        "value",
        [
            "yesterday",
            "",
            "   ",
            "--5",
            "12abc",
            "2024-13-45T00:00:00",
            True,
            False,
            1.5,
            float("nan"),
            float("inf"),
            10**20,
            -(10**20),
            [],
            {"ms": 1},
        ],
    )
    def test_rejected(self, value):
        with pytest.raises(InvalidTimestampError) as exc_info:
            normalize_timestamp(value)
        assert exc_info.value.field == "timestamp"


class TestEpochConversion:
    """epoch 毫秒与 datetime 互转"""

    def test_round_trip(self):
        assert to_epoch_ms(from_epoch_ms(1700000000123)) == 1700000000123

    def test_to_epoch_ms_floors_microseconds(self):
        ts = datetime(1970, 1, 1, 0, 0, 0, 1999, tzinfo=UTC)
        assert to_epoch_ms(ts) == 1

    def test_before_epoch(self):
        assert to_epoch_ms(datetime(1969, 12, 31, 23, 59, 59, 995000, tzinfo=UTC)) == -5
