"""pytest 설정 및 fixtures."""
import httpx
import pytest
from fastapi.testclient import TestClient

import main
from core.config import get_settings
from integrations.health_probe import HealthProbeClient
from schemas.health_monitoring import CronJobConfig, LogFormat, LoggingConfig, MonitoringConfig


class SequenceHandler:
    """MockTransport 핸들러. 준비된 응답(또는 예외)을 순서대로 돌려주고 마지막 것을 반복한다."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        index = min(len(self.requests), len(self.responses) - 1)
        self.requests.append(request)
        item = self.responses[index]
        if isinstance(item, Exception):
            raise item
        # 호출마다 새 Response (httpx가 응답 객체의 스트림을 교체하므로 재사용 불가)
        return httpx.Response(item.status_code, headers=item.headers, content=item.content)


@pytest.fixture
def make_probe_client():
    """준비된 응답을 반환하는 프로브 클라이언트 생성기. (client, handler) 반환."""

    def _make(*responses):
        handler = SequenceHandler(*responses)
        return HealthProbeClient(transport=httpx.MockTransport(handler)), handler

    return _make


@pytest.fixture
def log_path(tmp_path):
    """테스트마다 새 헬스 로그 경로."""
    return str(tmp_path / "logs" / "health-monitoring.log")


@pytest.fixture
def make_config(log_path):
    """테스트용 MonitoringConfig. 재시도 대기 없음."""

    def _make(
        max_retries: int = 3,
        retry_delay_ms: int = 0,
        timeout_ms: int = 1000,
        schedule: str = "*/5 * * * *",
        log_format: LogFormat = LogFormat.JSON,
        logging_enabled: bool = True,
        file_path: str | None = None,
    ) -> MonitoringConfig:
        return MonitoringConfig(
            cron_job=CronJobConfig(
                schedule=schedule,
                max_retries=max_retries,
                retry_delay_ms=retry_delay_ms,
                timeout_ms=timeout_ms,
            ),
            health_check_endpoint="/api/health",
            logging=LoggingConfig(
                enabled=logging_enabled,
                file_path=file_path or log_path,
                max_file_size="10MB",
                max_files=5,
                format=log_format,
            ),
        )

    return _make


@pytest.fixture
def monitoring_env(monkeypatch, tmp_path):
    """테스트용 환경변수. 로그는 tmp_path, 재시도/자동복구 없음."""
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("HEALTH_LOG_FILE_PATH", str(tmp_path / "health-monitoring.log"))
    monkeypatch.setenv("HEALTH_CHECK_MAX_RETRIES", "0")
    monkeypatch.setenv("HEALTH_CHECK_RETRY_DELAY_MS", "0")
    monkeypatch.setenv("HEALTH_AUTO_RECOVERY_ENABLED", "false")
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()


@pytest.fixture(scope="function")
def client(monitoring_env):
    """테스트 클라이언트. 헬스 프로브는 같은 앱의 /api/health로 직접 전달된다."""
    monitoring_env.setattr(
        main,
        "create_probe_client",
        lambda: HealthProbeClient(transport=httpx.ASGITransport(app=main.app)),
    )

    with TestClient(main.app) as c:
        yield c


@pytest.fixture(scope="function")
def uninitialized_client(monitoring_env):
    """스케줄러 비활성: 모니터링 컨트롤이 만들어지지 않은 상태."""
    monitoring_env.setenv("SCHEDULER_ENABLED", "false")
    get_settings.cache_clear()

    with TestClient(main.app) as c:
        yield c
