# storyfeed/utils/datetime_utils.py
"""
피드 전체에서 일관된 시간 처리를 위한 유틸리티 모듈

이 모듈의 목적:
1. 모든 시각을 UTC timezone-aware datetime으로 통일
2. Firestore Timestamp <-> datetime 변환
3. 댓글/답글 'time' 필드의 ISO 문자열 파싱/생성
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Union
from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)


class DateTimeUtils:
    """시간 처리를 위한 중앙화된 유틸리티 클래스"""

    @staticmethod
    def now() -> datetime:
        """현재 시간을 UTC timezone-aware datetime으로 반환"""
        return datetime.now(timezone.utc)

    @staticmethod
    def parse_iso_datetime(iso_string: str) -> datetime:
        """
        ISO 포맷 문자열을 datetime 객체로 파싱

        지원 포맷:
        - 2024-01-15T10:30:00Z
        - 2024-01-15T10:30:00+09:00
        - 2024-01-15T10:30:00.123456Z
        - 2024-01-15T10:30:00
        """
        try:
            if not iso_string:
                raise ValueError("빈 문자열은 파싱할 수 없습니다")

            if iso_string.endswith('Z'):
                iso_string = iso_string[:-1] + '+00:00'

            dt = dateutil_parser.isoparse(iso_string)

            # timezone-naive인 경우 UTC로 가정
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)

            return dt.astimezone(timezone.utc)

        except Exception as e:
            logger.error(f"ISO datetime 파싱 실패: {iso_string} - {e}")
            raise ValueError(f"잘못된 ISO 날짜 형식입니다: {iso_string}")

    @staticmethod
    def to_iso_string(dt: datetime) -> str:
        """datetime 객체를 'Z' 접미사가 붙은 ISO 문자열로 변환 (브라우저 Date와 호환)"""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        else:
            dt = dt.astimezone(timezone.utc)
        return dt.isoformat().replace('+00:00', 'Z')

    @staticmethod
    def for_firestore(obj: Any) -> Any:
        """
        Firestore 저장을 위해 datetime 필드를 UTC timezone-aware 값으로 변환
        - dict/list 내부는 재귀적으로 변환합니다.
        """
        if isinstance(obj, datetime):
            if obj.tzinfo is None:
                return obj.replace(tzinfo=timezone.utc)
            return obj.astimezone(timezone.utc)
        elif isinstance(obj, dict):
            return {k: DateTimeUtils.for_firestore(v) for k, v in obj.items()}
        elif isinstance(obj, (list, tuple)):
            return [DateTimeUtils.for_firestore(item) for item in obj]
        return obj

    @staticmethod
    def coerce_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
        """
        Firestore에서 읽은 시각 값을 datetime으로 변환합니다.
        - Firestore Timestamp(DatetimeWithNanoseconds)와 datetime은 UTC로 정규화
        - ISO 문자열은 파싱
        - 서버 타임스탬프가 아직 확정되지 않은 경우(None)는 None을 그대로 반환
        """
        if value is None:
            return None
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=timezone.utc)
            return value.astimezone(timezone.utc)
        if isinstance(value, str):
            try:
                return DateTimeUtils.parse_iso_datetime(value)
            except ValueError:
                # 예전 문서에는 "2 hours ago" 같은 일반 문자열이 남아 있을 수 있음
                logger.warning(f"시각 문자열을 해석할 수 없어 무시합니다: {value!r}")
                return None
        raise ValueError(f"지원하지 않는 시각 타입입니다: {type(value)}")


def format_time_ago(dt: Optional[datetime], now: Optional[datetime] = None) -> str:
    """게시글/댓글 시각을 '3 min ago' 형태의 상대 시간 문자열로 변환합니다."""
    if dt is None:
        return "Just now"
    now = now or DateTimeUtils.now()
    seconds = int((now - DateTimeUtils.for_firestore(dt)).total_seconds())

    if seconds < 60:
        return f"{max(seconds, 0)} sec ago"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes} min ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    days = hours // 24
    if days < 7:
        return f"{days} day{'s' if days > 1 else ''} ago"
    weeks = days // 7
    if weeks < 4:
        return f"{weeks} week{'s' if weeks > 1 else ''} ago"
    months = days // 30
    return f"{months} month{'s' if months > 1 else ''} ago"
