"""타임존 유틸리티.

스케줄러와 헬스 로그의 모든 타임스탬프는 timezone-aware datetime으로 다룬다.
모듈에서 datetime.now() 대신 now_utc()를, 크론 타임존은 get_timezone()을 사용할 것.
"""
from datetime import datetime, timezone, tzinfo

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def get_timezone(name: str) -> tzinfo:
    """IANA 타임존 이름을 tzinfo로 변환. 알 수 없는 이름이면 ValueError."""
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e


def now_utc() -> datetime:
    """현재 UTC 시간 반환."""
    return datetime.now(timezone.utc)
