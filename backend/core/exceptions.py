"""헬스 모니터링 예외 계층.

컨트롤 API 호출자에게 동기적으로 노출되는 것은 검증 실패와 not-found 뿐이다.
프로브 실패와 로그 기록 실패는 예외로 올라오지 않고 결과/로그로 기록된다.
"""
from typing import Optional

from pydantic import ValidationError as PydanticValidationError


class MonitoringError(Exception):
    """헬스 모니터링 예외 기본 클래스."""


class ValidationFailedError(MonitoringError):
    """하나 이상의 필드 검증 실패.

    필드별로 따로 던지지 않고 위반 항목 전체를 errors에 모아서 한 번에 보고한다.
    """

    def __init__(self, errors: list[dict[str, str]], message: Optional[str] = None):
        self.errors = errors
        fields = ", ".join(e["field"] for e in errors)
        self.message = message or f"Validation failed: {fields}"
        super().__init__(self.message)

    @property
    def fields(self) -> list[str]:
        return [e["field"] for e in self.errors]

    def to_dict(self) -> dict:
        return {"message": self.message, "errors": self.errors}


class ConfigurationError(ValidationFailedError):
    """모니터링 설정 오류."""

    @classmethod
    def from_validation_error(cls, error: PydanticValidationError) -> "ConfigurationError":
        """pydantic 검증 오류를 필드별 항목으로 변환."""
        errors = [
            {"field": str(e["loc"][-1]) if e["loc"] else "config", "message": e["msg"]}
            for e in error.errors()
        ]
        return cls(errors)


class InvalidScheduleError(ConfigurationError):
    """크론 표현식 오류."""

    def __init__(self, schedule: str, reason: str = ""):
        detail = f"Invalid cron schedule: '{schedule}'"
        if reason:
            detail = f"{detail} ({reason})"
        super().__init__([{"field": "schedule", "message": detail}], message=detail)
        self.schedule = schedule


class JobNotFoundError(MonitoringError):
    """등록되지 않은 작업 ID."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Cron job with ID '{job_id}' not found")


class JobExecutionError(MonitoringError):
    """작업 본문에서 예외가 발생함 (수동 실행 시에만 호출자에게 전달)."""

    def __init__(self, job_id: str, reason: str):
        self.job_id = job_id
        self.reason = reason
        super().__init__(f"Job '{job_id}' failed: {reason}")
