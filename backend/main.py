import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from core.config import get_settings
from core.exceptions import ConfigurationError
from core.timezone import now_utc
from api.v1 import health_monitoring
from integrations.health_probe import HealthProbeClient
from services.health_monitoring_control import initialize_health_monitoring

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = get_settings()
STARTED_AT = time.monotonic()


def create_probe_client() -> HealthProbeClient:
    return HealthProbeClient()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    app.state.health_monitoring = None
    current = get_settings()

    if current.scheduler_enabled:
        try:
            app.state.health_monitoring = initialize_health_monitoring(
                current,
                probe_client=create_probe_client(),
            )
        except ConfigurationError as e:
            # 모니터링 설정 오류는 서버 기동을 막지 않는다 (API는 503 응답)
            logger.error(f"Health monitoring not started: {e.message} {e.errors}")
    else:
        logger.info("Scheduler is disabled by configuration")

    logger.info("Application started")

    yield

    # Shutdown: 타이머를 모두 정지한 뒤 종료
    if app.state.health_monitoring is not None:
        await app.state.health_monitoring.shutdown()
        app.state.health_monitoring = None
    logger.info("Application shutdown")


app = FastAPI(
    title="Review Dashboard API",
    description="리뷰 관리 대시보드 백엔드",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_monitoring.router, prefix="/api/health-monitoring", tags=["health-monitoring"])


@app.get("/api/health")
async def health_check():
    """liveness 엔드포인트. 헬스 모니터가 주기적으로 이 경로를 점검한다."""
    current = get_settings()
    return {
        "status": "ok",
        "timestamp": now_utc().isoformat(),
        "uptime_seconds": round(time.monotonic() - STARTED_AT, 3),
        "environment": current.app_env,
    }
