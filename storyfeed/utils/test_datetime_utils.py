# storyfeed/utils/test_datetime_utils.py
"""
시간 유틸리티 기능 테스트

사용법: python -m pytest storyfeed/utils/test_datetime_utils.py -v
"""

import pytest
from datetime import datetime, timedelta, timezone
from storyfeed.utils.datetime_utils import DateTimeUtils, format_time_ago


def test_parse_iso_datetime():
    """ISO 포맷 파싱 테스트"""
    test_cases = [
        "2024-01-15T10:30:00Z",
        "2024-01-15T10:30:00+09:00",
        "2024-01-15T10:30:00.123456Z",
        "2024-01-15T10:30:00"
    ]

    for iso_string in test_cases:
        dt = DateTimeUtils.parse_iso_datetime(iso_string)
        assert isinstance(dt, datetime)
        assert dt.tzinfo == timezone.utc


def test_to_iso_string_uses_z_suffix():
    dt = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
    assert DateTimeUtils.to_iso_string(dt) == "2024-01-15T10:30:00Z"
    # naive datetime은 UTC로 간주
    assert DateTimeUtils.to_iso_string(datetime(2024, 1, 15, 10, 30)) == "2024-01-15T10:30:00Z"


def test_for_firestore():
    """Firestore 변환 테스트"""
    converted = DateTimeUtils.for_firestore({
        'createdAt': datetime(2024, 1, 15, 10, 30),
        'comments': [{'time': datetime(2024, 1, 1)}],
    })
    assert converted['createdAt'].tzinfo == timezone.utc
    assert converted['comments'][0]['time'].tzinfo == timezone.utc


def test_coerce_datetime():
    assert DateTimeUtils.coerce_datetime(None) is None
    assert DateTimeUtils.coerce_datetime("2024-01-15T10:30:00Z") == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
    # 해석할 수 없는 예전 문자열은 None
    assert DateTimeUtils.coerce_datetime("2 hours ago") is None
    naive = DateTimeUtils.coerce_datetime(datetime(2024, 1, 15))
    assert naive.tzinfo == timezone.utc


def test_format_time_ago():
    now = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
    assert format_time_ago(None, now) == "Just now"
    assert format_time_ago(now - timedelta(seconds=5), now) == "5 sec ago"
    assert format_time_ago(now - timedelta(minutes=3), now) == "3 min ago"
    assert format_time_ago(now - timedelta(hours=1), now) == "1 hour ago"
    assert format_time_ago(now - timedelta(days=2), now) == "2 days ago"
    assert format_time_ago(now - timedelta(days=14), now) == "2 weeks ago"
    assert format_time_ago(now - timedelta(days=90), now) == "3 months ago"


def test_error_handling():
    """오류 처리 테스트"""
    with pytest.raises(ValueError):
        DateTimeUtils.parse_iso_datetime("invalid-date")

    with pytest.raises(ValueError):
        DateTimeUtils.parse_iso_datetime("")
