"""헬스 모니터링 작업."""
import logging

from schemas.health_monitoring import ProbeResult
from services.health_monitor_service import HealthMonitorService

logger = logging.getLogger(__name__)


async def run_health_check(monitor: HealthMonitorService) -> ProbeResult:
    """liveness 엔드포인트를 재시도 정책대로 점검합니다.

    점검 결과가 unhealthy여도 작업 자체는 성공이다. 작업은 관찰만 하며,
    모니터링 로직에서 예외가 나올 때만 작업이 error 상태가 된다.
    """
    result = await monitor.perform_with_retry()
    logger.info(
        f"Health check completed in {result.response_time_ms}ms - "
        f"Status: {result.status.value.upper()} ({result.http_status_code})"
    )
    return result
