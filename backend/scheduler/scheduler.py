"""APScheduler 기반 작업 스케줄러."""
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED, JobExecutionEvent
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from core.exceptions import ConfigurationError, InvalidScheduleError, JobExecutionError, JobNotFoundError
from core.timezone import get_timezone
from scheduler.job_tracker import JobRecord, track_job_execution
from schemas.health_monitoring import (
    HealthStatus,
    JobInfo,
    JobState,
    JobStatus,
    RecoverySummary,
    SystemHealth,
    SystemHealthDetails,
)

logger = logging.getLogger(__name__)

# 이 횟수 이상 실패한 작업은 자동 복구하지 않는다
MAX_RECOVERY_ERROR_COUNT = 5
AUTO_RECOVERY_JOB_ID = "__auto_recovery__"


def build_cron_trigger(schedule: str, timezone: str = "UTC") -> CronTrigger:
    """5필드 크론 표현식을 트리거로 변환.

    Raises:
        InvalidScheduleError: 표현식이 비었거나 잘못됐을 때
        ConfigurationError: 타임존을 알 수 없을 때
    """
    if not schedule or not schedule.strip():
        raise InvalidScheduleError(schedule or "", "empty expression")
    try:
        tz = get_timezone(timezone)
    except ValueError as e:
        raise ConfigurationError([{"field": "timezone", "message": str(e)}]) from e
    try:
        return CronTrigger.from_crontab(schedule.strip(), timezone=tz)
    except ValueError as e:
        raise InvalidScheduleError(schedule, str(e)) from e


class JobScheduler:
    """이름 있는 반복 작업 관리자.

    AsyncIOScheduler를 래핑하여 작업 등록, 시작/정지/재시작, 수동 실행,
    에러 상태 복구, 상태 조회를 관리합니다. 작업별 JobStatus는 이 객체만 변경합니다.
    """

    def __init__(self, timezone: str = "UTC", misfire_grace_time: int = 60):
        self.timezone = timezone
        self.misfire_grace_time = misfire_grace_time
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._jobs: dict[str, JobRecord] = {}

    @property
    def scheduler(self) -> AsyncIOScheduler:
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(
                timezone=get_timezone(self.timezone),
                job_defaults={
                    "coalesce": True,  # 놓친 실행은 한 번만
                    "max_instances": 1,  # 같은 작업 중복 실행 방지
                    "misfire_grace_time": self.misfire_grace_time,
                },
            )
            self._scheduler.add_listener(
                self._job_listener,
                EVENT_JOB_ERROR | EVENT_JOB_MISSED,
            )
        return self._scheduler

    def _job_listener(self, event: JobExecutionEvent):
        """작업 실행 이벤트 리스너."""
        if event.exception:
            logger.error(
                f"Job {event.job_id} failed: {event.exception}",
                exc_info=event.exception,
            )
        else:
            logger.warning(f"Job {event.job_id} missed its run time ({event.scheduled_run_time})")

    def _ensure_started(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Scheduler started")

    def _get_record(self, job_id: str) -> JobRecord:
        record = self._jobs.get(job_id)
        if record is None:
            raise JobNotFoundError(job_id)
        return record

    def _next_run_time(self, job_id: str) -> Optional[datetime]:
        if self._scheduler is None:
            return None
        job = self._scheduler.get_job(job_id)
        return job.next_run_time if job else None

    # ============ Registration ============

    def register(
        self,
        job_id: str,
        cron_expression: str,
        func: Callable[[], Awaitable[Any]],
        enabled: bool = True,
        name: Optional[str] = None,
        timezone: str = "UTC",
    ) -> str:
        """크론 작업 등록. 처음에는 stopped이고 enabled면 바로 타이머를 시작한다.

        Raises:
            InvalidScheduleError: 크론 표현식 오류
            ConfigurationError: 같은 ID가 이미 등록됨
        """
        if job_id in self._jobs:
            raise ConfigurationError(
                [{"field": "job_id", "message": f"Cron job with ID '{job_id}' already exists"}]
            )

        trigger = build_cron_trigger(cron_expression, timezone)
        self._ensure_started()

        # next_run_time=None: 일시정지 상태로 추가
        self.scheduler.add_job(
            self._execute,
            trigger=trigger,
            args=[job_id],
            id=job_id,
            name=name or job_id,
            replace_existing=True,
            next_run_time=None,
        )

        self._jobs[job_id] = JobRecord(
            id=job_id,
            name=name or job_id,
            func=func,
            schedule=cron_expression,
            timezone=timezone,
            status=JobStatus(
                id=job_id,
                name=name or job_id,
                schedule=cron_expression,
                enabled=False,
                status=JobState.STOPPED,
            ),
        )
        logger.info(f"Registered cron job: {job_id} ({cron_expression}, {timezone})")

        if enabled:
            self.start(job_id)
        return job_id

    def remove(self, job_id: str) -> bool:
        """작업 제거. 없는 ID면 False."""
        record = self._jobs.pop(job_id, None)
        if record is None:
            return False
        if self._scheduler is not None:
            try:
                self._scheduler.remove_job(job_id)
            except JobLookupError:
                pass
        logger.info(f"Removed cron job: {job_id}")
        return True

    def update_job(
        self,
        job_id: str,
        schedule: Optional[str] = None,
        enabled: Optional[bool] = None,
        timezone: Optional[str] = None,
    ) -> JobStatus:
        """스케줄/타임존/활성 여부 변경. 새 트리거는 적용 전에 검증한다."""
        record = self._get_record(job_id)
        new_schedule = schedule or record.schedule
        new_timezone = timezone or record.timezone

        if new_schedule != record.schedule or new_timezone != record.timezone:
            trigger = build_cron_trigger(new_schedule, new_timezone)
            if record.status.enabled:
                self.scheduler.reschedule_job(job_id, trigger=trigger)
            else:
                self.scheduler.modify_job(job_id, trigger=trigger)
            record.schedule = new_schedule
            record.timezone = new_timezone
            record.status.schedule = new_schedule
            record.status.next_run = self._next_run_time(job_id)
            logger.info(f"Rescheduled cron job: {job_id} ({new_schedule}, {new_timezone})")

        if enabled is not None and enabled != record.status.enabled:
            if enabled:
                self.start(job_id)
            else:
                self.stop(job_id)

        return record.snapshot()

    # ============ Control ============

    def start(self, job_id: str) -> bool:
        """타이머 시작. 실행 중이거나 이미 활성이면 아무것도 하지 않고 False."""
        record = self._get_record(job_id)
        status = record.status
        if status.status == JobState.RUNNING or status.enabled:
            return False

        self._ensure_started()
        self.scheduler.resume_job(job_id)
        status.enabled = True
        status.status = JobState.STOPPED  # 실행될 때 running으로 바뀜
        status.next_run = self._next_run_time(job_id)
        logger.info(f"Started cron job: {record.name} (next run: {status.next_run})")
        return True

    def stop(self, job_id: str) -> bool:
        """타이머 정지. 이미 정지돼 있으면 False. 실행 중인 시도는 중단하지 않는다."""
        record = self._get_record(job_id)
        status = record.status
        status.next_run = None
        if not status.enabled:
            return False

        self.scheduler.pause_job(job_id)
        status.enabled = False
        if status.status != JobState.RUNNING:
            status.status = JobState.STOPPED  # 실행 중이면 본문이 끝날 때 바뀜
        logger.info(f"Stopped cron job: {record.name}")
        return True

    def restart(self, job_id: str) -> bool:
        """정지 → 에러 기록 초기화 → 시작. 수동 복구용."""
        record = self._get_record(job_id)
        self.stop(job_id)
        record.status.last_error = None
        record.status.error_count = 0
        return self.start(job_id)

    async def trigger(self, job_id: str) -> Any:
        """스케줄과 무관하게 즉시 실행. 실행 카운터는 동일하게 갱신된다.

        Raises:
            JobNotFoundError: 없는 ID
            JobExecutionError: 작업 본문에서 예외 발생
        """
        self._get_record(job_id)
        return await self._execute(job_id, propagate=True)

    async def _execute(self, job_id: str, propagate: bool = False) -> Any:
        record = self._jobs.get(job_id)
        if record is None:
            logger.warning(f"Skipping unknown job: {job_id}")
            return None

        try:
            return await track_job_execution(record, lambda: self._next_run_time(job_id))
        except Exception as e:
            if propagate:
                raise JobExecutionError(job_id, record.status.last_error or str(e)) from e
            return None

    # ============ Recovery ============

    def recover_errors(self) -> RecoverySummary:
        """에러 상태 작업 재시작 시도.

        error_count가 MAX_RECOVERY_ERROR_COUNT 미만인 작업만 재시작한다.
        복구 불가능한 엔드포인트 때문에 무한 재시작하지 않도록 하기 위함.
        """
        summary = RecoverySummary(total_jobs=len(self._jobs))

        for job_id, record in list(self._jobs.items()):
            status = record.status
            if status.status == JobState.ERROR:
                summary.error_jobs += 1
                if status.error_count < MAX_RECOVERY_ERROR_COUNT:
                    logger.info(f"Attempting to recover job: {record.name}")
                    if self.restart(job_id):
                        summary.recovered_jobs += 1
                        logger.info(f"Recovered job: {record.name}")
                else:
                    logger.warning(
                        f"Not recovering job {record.name}: "
                        f"{status.error_count} errors (limit {MAX_RECOVERY_ERROR_COUNT})"
                    )
            elif status.status == JobState.STOPPED and status.enabled:
                summary.healthy_jobs += 1

        return summary

    async def _auto_recover(self) -> None:
        summary = self.recover_errors()
        if summary.error_jobs:
            logger.info(
                f"Auto-recovery: {summary.error_jobs} jobs in error state, "
                f"{summary.recovered_jobs} recovered"
            )

    def enable_auto_recovery(self, interval_minutes: int = 30) -> None:
        """주기적으로 recover_errors() 실행."""
        self._ensure_started()
        self.scheduler.add_job(
            self._auto_recover,
            trigger=IntervalTrigger(minutes=interval_minutes),
            id=AUTO_RECOVERY_JOB_ID,
            name="Auto recovery",
            replace_existing=True,
        )
        logger.info(f"Auto-recovery enabled (every {interval_minutes} minutes)")

    def disable_auto_recovery(self) -> bool:
        if self._scheduler is None:
            return False
        try:
            self._scheduler.remove_job(AUTO_RECOVERY_JOB_ID)
        except JobLookupError:
            return False
        logger.info("Auto-recovery disabled")
        return True

    @property
    def auto_recovery_enabled(self) -> bool:
        return self._scheduler is not None and self._scheduler.get_job(AUTO_RECOVERY_JOB_ID) is not None

    # ============ Queries ============

    def status_of(self, job_id: str) -> Optional[JobStatus]:
        record = self._jobs.get(job_id)
        return record.snapshot() if record else None

    def all_statuses(self) -> list[JobStatus]:
        return [record.snapshot() for record in self._jobs.values()]

    def jobs_info(self) -> list[JobInfo]:
        return [
            JobInfo(
                id=record.id,
                name=record.name,
                schedule=record.schedule,
                timezone=record.timezone,
                status=record.snapshot(),
            )
            for record in self._jobs.values()
        ]

    def has_running_jobs(self) -> bool:
        return any(r.status.status == JobState.RUNNING for r in self._jobs.values())

    @property
    def job_count(self) -> int:
        return len(self._jobs)

    def system_health(self) -> SystemHealth:
        """에러 작업이 절반 이상이면 unhealthy, 하나라도 있으면 degraded."""
        statuses = [r.status for r in self._jobs.values()]
        total = len(statuses)
        error_jobs = sum(1 for s in statuses if s.status == JobState.ERROR)

        status = HealthStatus.HEALTHY
        if error_jobs > 0:
            status = HealthStatus.UNHEALTHY if error_jobs >= total / 2 else HealthStatus.DEGRADED

        return SystemHealth(
            status=status,
            details=SystemHealthDetails(
                total_jobs=total,
                running_jobs=sum(1 for s in statuses if s.status == JobState.RUNNING),
                error_jobs=error_jobs,
                disabled_jobs=sum(1 for s in statuses if not s.enabled),
            ),
        )

    # ============ Lifecycle ============

    def shutdown(self) -> None:
        """모든 타이머 정지 및 제거 후 스케줄러 종료."""
        for job_id in list(self._jobs):
            self.remove(job_id)
        if self._scheduler is not None:
            if self._scheduler.running:
                self._scheduler.shutdown(wait=False)
                logger.info("Scheduler shutdown")
            # AsyncIOScheduler는 종료 상태를 이벤트 루프에서 나중에 반영한다
            self._scheduler = None

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running
