"""헬스 모니터링 컨트롤 서피스.

외부 제어 요청(시작/정지/수동 점검/설정 변경/조회)을 JobScheduler와
HealthMonitorService 호출로 옮기는 얇은 계층. HTTP 라우터는 이 객체만 사용한다.
initialize_health_monitoring()이 성공하기 전에는 이 객체 자체가 존재하지 않는다.
"""
import functools
import logging
from typing import Optional, Union

from pydantic import ValidationError

from core.config import Settings
from core.exceptions import ConfigurationError, JobNotFoundError, ValidationFailedError
from integrations.health_probe import HealthProbeClient
from scheduler import JobScheduler
from scheduler.jobs.health_check import run_health_check
from schemas.health_monitoring import (
    ConnectivityResult,
    CronJobConfig,
    CronJobStats,
    JobInfo,
    JobState,
    JobStatus,
    JobStatusList,
    JobSummary,
    LoggingConfig,
    LogRecord,
    MonitoringConfig,
    MonitoringConfigUpdate,
    MonitoringStats,
    ProbeResult,
    RecoverySummary,
    ServiceStatus,
    SystemHealth,
)
from services.health_monitor_service import HEALTH_MONITOR_JOB_ID, HealthMonitorService

logger = logging.getLogger(__name__)

MIN_LOG_LIMIT = 1
MAX_LOG_LIMIT = 1000


def _summarize(statuses: list[JobStatus]) -> JobSummary:
    return JobSummary(
        running=sum(1 for s in statuses if s.status == JobState.RUNNING),
        stopped=sum(1 for s in statuses if s.status == JobState.STOPPED),
        errors=sum(1 for s in statuses if s.status == JobState.ERROR),
    )


class HealthMonitoringControl:
    """헬스 모니터링 제어 API."""

    def __init__(
        self,
        monitor: HealthMonitorService,
        scheduler: JobScheduler,
        job_id: str = HEALTH_MONITOR_JOB_ID,
    ):
        self.monitor = monitor
        self.scheduler = scheduler
        self.job_id = job_id

    # ============ Stats / jobs ============

    def get_stats(self) -> MonitoringStats:
        statuses = self.scheduler.all_statuses()
        summary = _summarize(statuses)
        return MonitoringStats(
            logging=self.monitor.get_log_stats(),
            cron_jobs=CronJobStats(
                total=self.scheduler.job_count,
                running=summary.running,
                stopped=summary.stopped,
                errors=summary.errors,
                jobs=statuses,
            ),
            configuration=self.monitor.get_config(),
        )

    def get_job_status(self, job_id: str) -> JobStatus:
        status = self.scheduler.status_of(job_id)
        if status is None:
            raise JobNotFoundError(job_id)
        return status

    def list_job_statuses(self) -> JobStatusList:
        statuses = self.scheduler.all_statuses()
        return JobStatusList(jobs=statuses, total=len(statuses), summary=_summarize(statuses))

    def get_jobs_info(self) -> list[JobInfo]:
        return self.scheduler.jobs_info()

    def start_job(self, job_id: str) -> bool:
        return self.scheduler.start(job_id)

    def stop_job(self, job_id: str) -> bool:
        return self.scheduler.stop(job_id)

    def restart_job(self, job_id: str) -> bool:
        return self.scheduler.restart(job_id)

    def recover_errors(self) -> RecoverySummary:
        return self.scheduler.recover_errors()

    def get_system_health(self) -> SystemHealth:
        return self.scheduler.system_health()

    # ============ Checks ============

    async def trigger_check(self) -> ProbeResult:
        """즉시 점검. 등록된 헬스 작업이 있으면 그 작업의 실행 카운터에도 반영된다."""
        if self.scheduler.status_of(self.job_id) is not None:
            return await self.scheduler.trigger(self.job_id)
        return await self.monitor.perform_with_retry()

    async def test_connectivity(self) -> ConnectivityResult:
        return await self.monitor.test_connectivity()

    def get_service_status(self) -> ServiceStatus:
        return self.monitor.get_service_status()

    # ============ Config ============

    def get_config(self) -> MonitoringConfig:
        return self.monitor.get_config()

    def update_config(self, update: Union[MonitoringConfigUpdate, dict]) -> MonitoringConfig:
        """설정 변경. 스케줄/활성 여부/타임존이 바뀌면 헬스 작업도 다시 스케줄한다.

        Raises:
            ConfigurationError: 위반 필드 전체를 담은 검증 실패
        """
        before = self.monitor.get_config().cron_job
        updated = self.monitor.update_config(update)
        after = updated.cron_job

        if self.scheduler.status_of(self.job_id) is not None and (
            before.schedule != after.schedule
            or before.enabled != after.enabled
            or before.timezone != after.timezone
        ):
            self.scheduler.update_job(
                self.job_id,
                schedule=after.schedule,
                enabled=after.enabled,
                timezone=after.timezone,
            )
        return updated

    # ============ Logs ============

    def get_recent_logs(self, limit: int = 100) -> list[LogRecord]:
        if not MIN_LOG_LIMIT <= limit <= MAX_LOG_LIMIT:
            raise ValidationFailedError(
                [{"field": "limit", "message": f"Limit must be between {MIN_LOG_LIMIT} and {MAX_LOG_LIMIT}"}]
            )
        return self.monitor.get_recent_logs(limit)

    def clear_logs(self) -> bool:
        cleared = self.monitor.clear_logs()
        if cleared:
            logger.warning("Health monitoring logs cleared by operator")
        return cleared

    # ============ Lifecycle ============

    async def shutdown(self) -> None:
        self.scheduler.shutdown()
        await self.monitor.probe_client.close()
        logger.info("Health monitoring shutdown complete")


def build_monitoring_config(settings: Settings) -> MonitoringConfig:
    """환경 설정으로 MonitoringConfig 생성.

    Raises:
        ConfigurationError: 설정 값의 형식이 잘못됐을 때 (예: HEALTH_LOG_FORMAT=xml)
    """
    try:
        return _monitoring_config_from(settings)
    except ValidationError as e:
        raise ConfigurationError.from_validation_error(e) from e


def _monitoring_config_from(settings: Settings) -> MonitoringConfig:
    return MonitoringConfig(
        cron_job=CronJobConfig(
            schedule=settings.health_check_schedule,
            enabled=settings.health_monitoring_enabled,
            timezone=settings.health_check_timezone,
            max_retries=settings.health_check_max_retries,
            retry_delay_ms=settings.health_check_retry_delay_ms,
            timeout_ms=settings.health_check_timeout_ms,
        ),
        health_check_endpoint=settings.health_check_endpoint,
        logging=LoggingConfig(
            enabled=settings.health_log_enabled,
            file_path=settings.health_log_file_path,
            max_file_size=settings.health_log_max_file_size,
            max_files=settings.health_log_max_files,
            format=settings.health_log_format,
        ),
    )


def initialize_health_monitoring(
    settings: Settings,
    probe_client: Optional[HealthProbeClient] = None,
) -> HealthMonitoringControl:
    """모니터 생성 → 스케줄러에 헬스 작업 등록 → 컨트롤 서피스 반환.

    실행 중인 이벤트 루프 안에서 호출해야 한다 (AsyncIOScheduler).

    Raises:
        ConfigurationError: 설정이 유효하지 않을 때
    """
    config = build_monitoring_config(settings)
    monitor = HealthMonitorService(
        config,
        base_url=settings.health_check_base_url,
        probe_client=probe_client,
        environment=settings.app_env,
    )

    scheduler = JobScheduler(timezone=config.cron_job.timezone)
    scheduler.register(
        HEALTH_MONITOR_JOB_ID,
        config.cron_job.schedule,
        functools.partial(run_health_check, monitor),
        enabled=config.cron_job.enabled,
        name="Health Monitoring",
        timezone=config.cron_job.timezone,
    )

    if settings.health_auto_recovery_enabled:
        scheduler.enable_auto_recovery(settings.health_auto_recovery_interval_minutes)

    logger.info(
        f"Health monitoring initialized: {monitor.endpoint} "
        f"({config.cron_job.schedule}, enabled={config.cron_job.enabled})"
    )
    return HealthMonitoringControl(monitor, scheduler)
