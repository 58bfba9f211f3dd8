"""서비스 자체 liveness 엔드포인트 프로브 클라이언트."""
import logging
import socket
import time
from typing import Any, Optional

import httpx

from core.timezone import now_utc
from schemas.health_monitoring import ConnectivityResult, HealthStatus, ProbeResult

logger = logging.getLogger(__name__)

USER_AGENT = "ReviewDashboard-HealthMonitor/1.0"
CONNECTIVITY_TIMEOUT_MS = 5000


def classify_health(status_code: int, body: Any = None) -> HealthStatus:
    """HTTP 상태 코드와 응답 본문으로 판정.

    2xx는 healthy. 단 본문이 degraded/unhealthy를 명시하면 그 값을 따른다.
    5xx 또는 응답 없음(0)은 unhealthy, 나머지는 degraded.
    """
    if 200 <= status_code < 300:
        declared = body.get("status") if isinstance(body, dict) else None
        if declared == HealthStatus.DEGRADED.value:
            return HealthStatus.DEGRADED
        if declared == HealthStatus.UNHEALTHY.value:
            return HealthStatus.UNHEALTHY
        return HealthStatus.HEALTHY
    if status_code >= 500 or status_code == 0:
        return HealthStatus.UNHEALTHY
    return HealthStatus.DEGRADED


def _has_cause(exc: BaseException, exc_type: type) -> bool:
    """예외 체인(__cause__/__context__) 안에 exc_type이 있는지."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        if isinstance(current, exc_type):
            return True
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return False


def describe_request_error(exc: Exception) -> str:
    """네트워크 예외를 사람이 읽는 메시지로 변환."""
    if isinstance(exc, httpx.TimeoutException):
        return "Request timeout"
    if isinstance(exc, httpx.ConnectError):
        if _has_cause(exc, socket.gaierror):
            return "Host not found"
        return "Connection refused - service may be down"
    return str(exc) or exc.__class__.__name__


class HealthProbeClient:
    """liveness 엔드포인트에 GET 1회를 보내고 결과를 판정한다.

    예외를 던지지 않는다. 연결 실패, 타임아웃, 비정상 응답은 모두 ProbeResult의
    status/error에 담긴다. 재시도는 호출자(HealthMonitorService) 책임.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                transport=self._transport,
                headers={
                    "User-Agent": USER_AGENT,
                    "Accept": "application/json",
                },
            )
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def probe(self, endpoint: str, timeout_ms: int, retry_count: int = 0) -> ProbeResult:
        """엔드포인트 1회 점검."""
        started = time.perf_counter()

        try:
            response = await self.client.get(
                endpoint,
                timeout=httpx.Timeout(timeout_ms / 1000),
            )
        except Exception as e:
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            error = describe_request_error(e)
            logger.warning(f"Health probe to {endpoint} failed: {error}")
            return ProbeResult(
                status=HealthStatus.UNHEALTHY,
                timestamp=now_utc(),
                response_time_ms=elapsed_ms,
                http_status_code=0,
                endpoint=endpoint,
                error=error,
                message=_failure_message(retry_count),
            )

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        body = _parse_body(response)
        status = classify_health(response.status_code, body)

        if response.is_success:
            message = body.get("message") if isinstance(body, dict) else None
            if not isinstance(message, str):
                message = None
            return ProbeResult(
                status=status,
                timestamp=now_utc(),
                response_time_ms=elapsed_ms,
                http_status_code=response.status_code,
                endpoint=endpoint,
                message=message or "Health check completed",
                details=body,
            )

        return ProbeResult(
            status=status,
            timestamp=now_utc(),
            response_time_ms=elapsed_ms,
            http_status_code=response.status_code,
            endpoint=endpoint,
            message=_failure_message(retry_count),
            error=f"HTTP {response.status_code}: {response.reason_phrase}",
            details=body,
        )

    async def test_connectivity(self, endpoint: str) -> ConnectivityResult:
        """짧은 타임아웃으로 도달 가능 여부만 확인. 상태 코드는 따지지 않는다."""
        started = time.perf_counter()
        try:
            await self.client.get(endpoint, timeout=httpx.Timeout(CONNECTIVITY_TIMEOUT_MS / 1000))
        except Exception as e:
            return ConnectivityResult(
                success=False,
                response_time_ms=int((time.perf_counter() - started) * 1000),
                error=describe_request_error(e),
            )
        return ConnectivityResult(
            success=True,
            response_time_ms=int((time.perf_counter() - started) * 1000),
        )


def _parse_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _failure_message(retry_count: int) -> str:
    if retry_count > 0:
        return f"Health check failed (retry {retry_count})"
    return "Health check failed"
