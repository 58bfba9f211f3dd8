"""헬스 모니터링 스키마."""
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """프로브 판정 결과."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class JobState(str, Enum):
    """스케줄 작업 상태."""
    STOPPED = "stopped"  # 등록됨, 실행 중 아님
    RUNNING = "running"  # 본문 실행 중
    ERROR = "error"  # 마지막 실행에서 예외 발생


class LogFormat(str, Enum):
    """헬스 로그 파일 포맷."""
    JSON = "json"  # NDJSON, 다시 읽기 가능
    TEXT = "text"  # 사람이 읽는 한 줄 포맷


# ============ Probe / Log ============

class ProbeResult(BaseModel):
    """프로브 1회 결과. 생성 후 변경 불가."""
    status: HealthStatus
    timestamp: datetime
    response_time_ms: int
    http_status_code: int = 0  # 응답을 받지 못하면 0
    endpoint: str
    message: Optional[str] = None
    error: Optional[str] = None
    details: Optional[Any] = None  # 응답 본문 (JSON)

    class Config:
        frozen = True

    @property
    def is_success(self) -> bool:
        return 200 <= self.http_status_code < 300


class LogMetadata(BaseModel):
    """로그 레코드 실행 메타데이터."""
    job_id: str
    execution_time_ms: int
    retry_count: int = 0
    environment: str


class LogRecord(BaseModel):
    """헬스 로그 파일 한 줄."""
    id: str
    timestamp: datetime
    check_result: ProbeResult
    application_status: HealthStatus
    metadata: LogMetadata


class LoggerStats(BaseModel):
    """로그 파일 통계."""
    current_file_size: int
    current_file_path: str
    total_log_files: int
    format: LogFormat
    max_file_size: int
    max_files: int


# ============ Config ============

class CronJobConfig(BaseModel):
    """헬스체크 작업 설정."""
    schedule: str = "*/5 * * * *"
    enabled: bool = True
    timezone: str = "UTC"
    max_retries: int = 3
    retry_delay_ms: int = 5000
    timeout_ms: int = 10000


class LoggingConfig(BaseModel):
    """헬스 로그 설정."""
    enabled: bool = True
    file_path: str = "logs/health-monitoring.log"
    max_file_size: str = "10MB"
    max_files: int = 5
    format: LogFormat = LogFormat.JSON


class MonitoringConfig(BaseModel):
    """헬스 모니터링 전체 설정."""
    cron_job: CronJobConfig = Field(default_factory=CronJobConfig)
    health_check_endpoint: str = "/api/health"
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class CronJobConfigUpdate(BaseModel):
    """작업 설정 부분 수정."""
    schedule: Optional[str] = None
    enabled: Optional[bool] = None
    timezone: Optional[str] = None
    max_retries: Optional[int] = None
    retry_delay_ms: Optional[int] = None
    timeout_ms: Optional[int] = None


class LoggingConfigUpdate(BaseModel):
    """로그 설정 부분 수정."""
    enabled: Optional[bool] = None
    file_path: Optional[str] = None
    max_file_size: Optional[str] = None
    max_files: Optional[int] = None
    format: Optional[LogFormat] = None


class MonitoringConfigUpdate(BaseModel):
    """설정 부분 수정 요청. 지정한 필드만 반영된다."""
    cron_job: Optional[CronJobConfigUpdate] = None
    health_check_endpoint: Optional[str] = None
    logging: Optional[LoggingConfigUpdate] = None


# ============ Jobs ============

class JobStatus(BaseModel):
    """스케줄 작업 런타임 상태."""
    id: str
    name: str
    schedule: str
    enabled: bool = False
    status: JobState = JobState.STOPPED
    run_count: int = 0
    error_count: int = 0
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None
    last_error: Optional[str] = None


class JobInfo(BaseModel):
    """작업 상세 정보 (스케줄 설정 포함)."""
    id: str
    name: str
    schedule: str
    timezone: str
    status: JobStatus


class JobSummary(BaseModel):
    running: int = 0
    stopped: int = 0
    errors: int = 0


class JobStatusList(BaseModel):
    """전체 작업 상태 목록."""
    jobs: list[JobStatus]
    total: int
    summary: JobSummary


class CronJobStats(BaseModel):
    total: int
    running: int
    stopped: int
    errors: int
    jobs: list[JobStatus]


class RecoverySummary(BaseModel):
    """에러 상태 작업 복구 결과."""
    total_jobs: int = 0
    healthy_jobs: int = 0
    error_jobs: int = 0
    recovered_jobs: int = 0


class SystemHealthDetails(BaseModel):
    total_jobs: int
    running_jobs: int
    error_jobs: int
    disabled_jobs: int


class SystemHealth(BaseModel):
    """스케줄러 자체 상태."""
    status: HealthStatus
    details: SystemHealthDetails


# ============ Control surface responses ============

class MonitoringStats(BaseModel):
    """통합 통계 응답."""
    logging: LoggerStats
    cron_jobs: CronJobStats
    configuration: MonitoringConfig


class JobActionResponse(BaseModel):
    """시작/정지/재시작 결과."""
    success: bool
    job: JobStatus


class RecentLogsResponse(BaseModel):
    logs: list[LogRecord]
    count: int
    limit: int


class ConnectivityResult(BaseModel):
    """엔드포인트 연결 테스트 결과."""
    success: bool
    response_time_ms: int
    error: Optional[str] = None


class ServiceStatus(BaseModel):
    """헬스 모니터 서비스 정보."""
    is_configured: bool
    base_url: str
    endpoint: str
    last_check: Optional[datetime] = None
    last_status: Optional[HealthStatus] = None
