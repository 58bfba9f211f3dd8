"""헬스 모니터 서비스.

프로브 클라이언트를 재시도 정책(고정 간격, 최대 max_retries + 1회)으로 감싸고,
시도마다 결과를 HealthLogger에 기록한다. 설정 조회/변경도 여기서 담당한다.
"""
import itertools
import logging
from typing import Optional, Union

from apscheduler.triggers.cron import CronTrigger
from pydantic import ValidationError
from tenacity import AsyncRetrying, RetryCallState, retry_if_result, stop_after_attempt, wait_fixed

from core.exceptions import ConfigurationError
from core.timezone import get_timezone
from integrations.health_probe import HealthProbeClient
from schemas.health_monitoring import (
    ConnectivityResult,
    LoggerStats,
    LogRecord,
    MonitoringConfig,
    MonitoringConfigUpdate,
    ProbeResult,
    ServiceStatus,
)
from services.health_logger import HealthLogger, build_log_record
from utils.file_size import parse_file_size

logger = logging.getLogger(__name__)

HEALTH_MONITOR_JOB_ID = "health-monitoring"


def _needs_retry(result: ProbeResult) -> bool:
    return not result.is_success


def _last_result(retry_state: RetryCallState) -> ProbeResult:
    # 시도를 모두 소진하면 마지막 결과를 그대로 반환
    return retry_state.outcome.result()


class HealthMonitorService:
    """liveness 프로브 + 재시도 + 로그 기록."""

    def __init__(
        self,
        config: MonitoringConfig,
        base_url: str = "http://localhost:8000",
        probe_client: Optional[HealthProbeClient] = None,
        environment: str = "development",
        job_id: str = HEALTH_MONITOR_JOB_ID,
    ):
        self.validate_config(config)
        self._config = config.model_copy(deep=True)
        self.base_url = base_url.rstrip("/")
        self.probe_client = probe_client or HealthProbeClient()
        self.environment = environment
        self.job_id = job_id
        self._health_logger = self._build_logger(self._config)
        self._last_result: Optional[ProbeResult] = None

    @staticmethod
    def _build_logger(config: MonitoringConfig) -> HealthLogger:
        return HealthLogger(
            file_path=config.logging.file_path,
            max_file_size=parse_file_size(config.logging.max_file_size),
            max_files=config.logging.max_files,
            format=config.logging.format,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}{self._config.health_check_endpoint}"

    @property
    def health_logger(self) -> HealthLogger:
        return self._health_logger

    # ============ Health checks ============

    async def perform_once(self, attempt_index: int = 0) -> ProbeResult:
        """프로브 1회 실행 후 (로깅이 켜져 있으면) 결과를 기록."""
        config = self._config
        result = await self.probe_client.probe(
            self.endpoint,
            timeout_ms=config.cron_job.timeout_ms,
            retry_count=attempt_index,
        )

        if config.logging.enabled:
            record = build_log_record(
                result,
                job_id=self.job_id,
                execution_time_ms=result.response_time_ms,
                retry_count=attempt_index,
                environment=self.environment,
            )
            self._health_logger.append(record)

        self._last_result = result
        return result

    async def perform_with_retry(self) -> ProbeResult:
        """2xx 응답이 나올 때까지 최대 max_retries + 1회 시도.

        시도 사이에만 retry_delay_ms 만큼 대기한다 (지수 백오프 아님).
        성공하지 못하면 마지막 시도 결과를 반환한다.
        """
        cron_job = self._config.cron_job
        attempts = itertools.count()

        async def attempt() -> ProbeResult:
            return await self.perform_once(next(attempts))

        retrying = AsyncRetrying(
            stop=stop_after_attempt(cron_job.max_retries + 1),
            wait=wait_fixed(cron_job.retry_delay_ms / 1000),
            retry=retry_if_result(_needs_retry),
            retry_error_callback=_last_result,
        )
        result = await retrying(attempt)

        if not result.is_success:
            logger.warning(
                f"Health check failed after {next(attempts)} attempts: "
                f"{result.status.value} ({result.http_status_code}) {result.error or ''}"
            )
        return result

    async def is_service_healthy(self) -> bool:
        result = await self.perform_once()
        return result.is_success

    async def test_connectivity(self) -> ConnectivityResult:
        return await self.probe_client.test_connectivity(self.endpoint)

    def get_service_status(self) -> ServiceStatus:
        last = self._last_result
        return ServiceStatus(
            is_configured=True,
            base_url=self.base_url,
            endpoint=self._config.health_check_endpoint,
            last_check=last.timestamp if last else None,
            last_status=last.status if last else None,
        )

    # ============ Logs ============

    def get_recent_logs(self, limit: int = 100) -> list[LogRecord]:
        return self._health_logger.recent(limit)

    def get_log_stats(self) -> LoggerStats:
        return self._health_logger.stats()

    def clear_logs(self) -> bool:
        return self._health_logger.clear()

    # ============ Config ============

    def get_config(self) -> MonitoringConfig:
        return self._config.model_copy(deep=True)

    def update_config(
        self,
        update: Union[MonitoringConfigUpdate, dict],
    ) -> MonitoringConfig:
        """설정 부분 수정. 병합 결과 전체를 검증한 뒤에만 반영한다.

        로그 설정이 바뀌면 다음 기록 전에 HealthLogger를 새 설정으로 다시 만든다.

        Raises:
            ConfigurationError: 병합된 설정이 유효하지 않을 때 (위반 필드 전체 포함)
        """
        if isinstance(update, dict):
            try:
                update = MonitoringConfigUpdate.model_validate(update)
            except ValidationError as e:
                raise ConfigurationError.from_validation_error(e) from e

        current = self._config
        changes: dict = {}
        if update.health_check_endpoint is not None:
            changes["health_check_endpoint"] = update.health_check_endpoint
        if update.cron_job is not None:
            changes["cron_job"] = current.cron_job.model_copy(
                update=update.cron_job.model_dump(exclude_none=True)
            )
        if update.logging is not None:
            changes["logging"] = current.logging.model_copy(
                update=update.logging.model_dump(exclude_none=True)
            )

        merged = MonitoringConfig.model_validate(
            current.model_copy(update=changes).model_dump()
        )
        self.validate_config(merged)

        logging_changed = merged.logging != current.logging
        self._config = merged
        if logging_changed:
            self._health_logger = self._build_logger(merged)
            logger.info(f"Health logger reinitialized: {merged.logging.file_path}")

        logger.info("Health monitoring configuration updated")
        return self.get_config()

    @staticmethod
    def validate_config(config: MonitoringConfig) -> None:
        """설정 검증. 위반 항목을 모두 모아 ConfigurationError 하나로 보고."""
        errors: list[dict[str, str]] = []

        def fail(field: str, message: str) -> None:
            errors.append({"field": field, "message": message})

        if not config.health_check_endpoint:
            fail("health_check_endpoint", "Health check endpoint is required")

        cron_job = config.cron_job
        try:
            tz = get_timezone(cron_job.timezone)
        except ValueError as e:
            fail("timezone", str(e))
            tz = None

        if not cron_job.schedule or not cron_job.schedule.strip():
            fail("schedule", "Cron schedule is required")
        else:
            try:
                CronTrigger.from_crontab(cron_job.schedule, timezone=tz)
            except ValueError as e:
                fail("schedule", f"Invalid cron schedule: {e}")

        if cron_job.max_retries < 0:
            fail("max_retries", "Max retries must be non-negative")
        if cron_job.retry_delay_ms < 0:
            fail("retry_delay_ms", "Retry delay must be non-negative")
        if cron_job.timeout_ms <= 0:
            fail("timeout_ms", "Timeout must be positive")

        logging_config = config.logging
        if logging_config.enabled and not logging_config.file_path:
            fail("file_path", "Log file path is required when logging is enabled")
        try:
            if parse_file_size(logging_config.max_file_size) <= 0:
                fail("max_file_size", "Max file size must be positive")
        except ValueError as e:
            fail("max_file_size", str(e))
        if logging_config.max_files < 1:
            fail("max_files", "Max files must be at least 1")

        if errors:
            raise ConfigurationError(errors)
