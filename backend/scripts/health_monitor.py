#!/usr/bin/env python3
"""헬스 모니터 단독 실행 스크립트.

API 서버와 별도 프로세스로 liveness 엔드포인트를 주기 점검합니다.
설정은 서버와 동일하게 .env / 환경변수에서 읽습니다.

사용법:
    # 스케줄대로 계속 점검 (SIGTERM/SIGINT로 종료)
    python scripts/health_monitor.py

    # 1회 점검 후 결과(JSON) 출력
    python scripts/health_monitor.py --once

    # 다른 서버 점검
    python scripts/health_monitor.py --base-url http://api.internal:8000
"""
import sys
import asyncio
import argparse
import logging
import signal
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import get_settings
from core.exceptions import ConfigurationError
from services.health_monitor_service import HealthMonitorService
from services.health_monitoring_control import build_monitoring_config, initialize_health_monitoring

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("health_monitor")


async def check_once(base_url: str | None) -> int:
    """1회 점검. 2xx면 종료 코드 0."""
    settings = get_settings()
    monitor = HealthMonitorService(
        build_monitoring_config(settings),
        base_url=base_url or settings.health_check_base_url,
        environment=settings.app_env,
    )
    try:
        result = await monitor.perform_with_retry()
    finally:
        await monitor.probe_client.close()

    print(result.model_dump_json(indent=2))
    return 0 if result.is_success else 1


async def run_forever(base_url: str | None) -> int:
    """스케줄러를 띄우고 종료 시그널을 기다린다."""
    settings = get_settings()
    if base_url:
        settings = settings.model_copy(update={"health_check_base_url": base_url})

    control = initialize_health_monitoring(settings)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop_event.set)

    status = control.get_job_status(control.job_id)
    logger.info(f"Health monitor running: {control.monitor.endpoint} (next run: {status.next_run})")

    await stop_event.wait()
    logger.info("Shutdown signal received")
    await control.shutdown()
    return 0


def main():
    parser = argparse.ArgumentParser(description="서비스 liveness 헬스 모니터")
    parser.add_argument("--once", action="store_true", help="1회 점검 후 종료")
    parser.add_argument("--base-url", help="점검 대상 서버 주소 (기본: HEALTH_CHECK_BASE_URL)")
    args = parser.parse_args()

    try:
        if args.once:
            exit_code = asyncio.run(check_once(args.base_url))
        else:
            exit_code = asyncio.run(run_forever(args.base_url))
    except ConfigurationError as e:
        for error in e.errors:
            print(f"  {error['field']}: {error['message']}", file=sys.stderr)
        print(e.message, file=sys.stderr)
        exit_code = 2

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
