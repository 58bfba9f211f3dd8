"""Job 실행 추적 헬퍼.

작업마다 JobRecord 하나를 두고, 실행할 때마다 그 안의 JobStatus를 제자리에서 갱신한다.
JobStatus를 변경하는 곳은 이 모듈과 JobScheduler 뿐이다.
"""
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from core.timezone import now_utc
from schemas.health_monitoring import JobState, JobStatus

logger = logging.getLogger(__name__)

MAX_ERROR_MESSAGE_LENGTH = 2000


@dataclass
class JobRecord:
    """등록된 작업 하나: 실행 함수, 스케줄, 런타임 상태."""
    id: str
    name: str
    func: Callable[[], Awaitable[Any]]
    schedule: str
    timezone: str
    status: JobStatus

    def snapshot(self) -> JobStatus:
        """외부 노출용 복사본."""
        return self.status.model_copy()


async def track_job_execution(
    record: JobRecord,
    next_run_time: Callable[[], Optional[datetime]],
) -> Any:
    """작업 본문을 실행하고 실행 횟수/에러/마지막 실행 시간을 기록.

    본문이 끝나면(성공/실패 모두) 상태는 stopped 또는 error로 돌아간다.
    본문 예외는 기록한 뒤 그대로 다시 던진다.
    """
    status = record.status
    status.run_count += 1
    status.status = JobState.RUNNING
    started = time.perf_counter()
    logger.info(f"Executing job {record.id} (run #{status.run_count})")

    try:
        result = await record.func()
    except Exception as e:
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        error_msg = (str(e) or e.__class__.__name__)[:MAX_ERROR_MESSAGE_LENGTH]
        status.status = JobState.ERROR
        status.error_count += 1
        status.last_error = error_msg
        status.last_run = now_utc()
        status.next_run = next_run_time()
        logger.error(f"Job {record.id} failed after {elapsed_ms}ms: {error_msg}", exc_info=e)
        raise

    elapsed_ms = int((time.perf_counter() - started) * 1000)
    status.status = JobState.STOPPED
    status.last_run = now_utc()
    status.last_error = None
    status.next_run = next_run_time()
    logger.info(f"Job {record.id} completed in {elapsed_ms}ms")
    return result
