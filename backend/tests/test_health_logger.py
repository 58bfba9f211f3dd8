"""헬스 로그 파일 테스트."""
import re
from datetime import datetime, timezone
from pathlib import Path

from schemas.health_monitoring import HealthStatus, LogFormat, ProbeResult
from services.health_logger import (
    HealthLogger,
    build_log_record,
    determine_application_status,
    generate_log_id,
)


def make_result(status_code: int = 200, status: HealthStatus = HealthStatus.HEALTHY, error=None) -> ProbeResult:
    return ProbeResult(
        status=status,
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        response_time_ms=12,
        http_status_code=status_code,
        endpoint="http://localhost:8000/api/health",
        error=error,
    )


def make_record(retry_count: int = 0, **kwargs):
    return build_log_record(
        make_result(**kwargs),
        job_id="health-monitoring",
        execution_time_ms=12,
        retry_count=retry_count,
        environment="test",
    )


def rotated(path: str, index: int) -> Path:
    p = Path(path)
    return p.with_name(f"{p.stem}.{index}{p.suffix}")


class TestLogRecord:
    """레코드 생성 테스트."""

    def test_log_id_format(self):
        assert re.match(r"^health_\d{13}_[a-z0-9]{6}$", generate_log_id())

    def test_application_status(self):
        assert determine_application_status(make_result(200)) == HealthStatus.HEALTHY
        assert (
            determine_application_status(make_result(200, status=HealthStatus.DEGRADED))
            == HealthStatus.DEGRADED
        )
        assert (
            determine_application_status(make_result(404, status=HealthStatus.DEGRADED))
            == HealthStatus.UNHEALTHY
        )
        assert (
            determine_application_status(make_result(0, status=HealthStatus.UNHEALTHY))
            == HealthStatus.UNHEALTHY
        )

    def test_metadata(self):
        record = make_record(retry_count=2)

        assert record.metadata.job_id == "health-monitoring"
        assert record.metadata.retry_count == 2
        assert record.metadata.environment == "test"
        assert record.check_result.http_status_code == 200


class TestHealthLogger:
    """로그 기록/조회/로테이션 테스트."""

    def test_append_creates_directory_and_file(self, log_path):
        health_logger = HealthLogger(log_path, max_file_size=1024 * 1024, max_files=5)

        assert health_logger.append(make_record())

        assert Path(log_path).exists()
        assert len(Path(log_path).read_text(encoding="utf-8").splitlines()) == 1

    def test_recent_newest_first(self, log_path):
        """5개 기록 후 recent(3)은 최신 3개를 역순으로."""
        health_logger = HealthLogger(log_path, max_file_size=1024 * 1024, max_files=5)
        for i in range(5):
            health_logger.append(make_record(retry_count=i))

        records = health_logger.recent(3)

        assert [r.metadata.retry_count for r in records] == [4, 3, 2]

    def test_recent_limit_larger_than_file(self, log_path):
        health_logger = HealthLogger(log_path, max_file_size=1024 * 1024, max_files=5)
        health_logger.append(make_record())

        assert len(health_logger.recent(100)) == 1

    def test_recent_without_file(self, log_path):
        health_logger = HealthLogger(log_path, max_file_size=1024, max_files=5)

        assert health_logger.recent(10) == []

    def test_recent_skips_corrupt_lines(self, log_path):
        health_logger = HealthLogger(log_path, max_file_size=1024 * 1024, max_files=5)
        health_logger.append(make_record(retry_count=0))
        with open(log_path, "a", encoding="utf-8") as f:
            f.write("{not json\n")
        health_logger.append(make_record(retry_count=1))

        records = health_logger.recent(10)

        assert [r.metadata.retry_count for r in records] == [1, 0]

    def test_rotation(self, log_path):
        """최대 크기를 넘으면 .1로 밀려나고 빈 활성 파일이 생긴다."""
        health_logger = HealthLogger(log_path, max_file_size=1, max_files=5)

        health_logger.append(make_record())

        assert rotated(log_path, 1).exists()
        assert Path(log_path).exists()
        assert Path(log_path).stat().st_size == 0
        assert not rotated(log_path, 2).exists()

    def test_rotates_once_per_threshold_crossing(self, log_path):
        """크기를 넘긴 순간 한 번만 로테이션하고, 다시 넘기기 전에는 로테이션하지 않는다."""
        line_size = len(make_record().model_dump_json()) + 1
        health_logger = HealthLogger(log_path, max_file_size=int(line_size * 1.5), max_files=5)

        health_logger.append(make_record(retry_count=0))
        assert not rotated(log_path, 1).exists()

        health_logger.append(make_record(retry_count=1))
        assert rotated(log_path, 1).exists()
        assert len(rotated(log_path, 1).read_text(encoding="utf-8").splitlines()) == 2

        health_logger.append(make_record(retry_count=2))
        assert not rotated(log_path, 2).exists()
        assert [r.metadata.retry_count for r in health_logger.recent(10)] == [2]

    def test_no_rotation_below_limit(self, log_path):
        health_logger = HealthLogger(log_path, max_file_size=1024 * 1024, max_files=5)
        for _ in range(3):
            health_logger.append(make_record())

        assert not health_logger.rotate_if_needed()
        assert not rotated(log_path, 1).exists()

    def test_generation_ceiling(self, log_path):
        """max_files 개의 세대만 보관하고 가장 오래된 것은 삭제."""
        health_logger = HealthLogger(log_path, max_file_size=1, max_files=3)
        for i in range(5):
            health_logger.append(make_record(retry_count=i))

        assert rotated(log_path, 1).exists()
        assert rotated(log_path, 2).exists()
        assert rotated(log_path, 3).exists()
        assert not rotated(log_path, 4).exists()

        # 가장 최근 레코드가 .1, 남은 가장 오래된 레코드가 .3
        assert '"retry_count":4' in rotated(log_path, 1).read_text(encoding="utf-8")
        assert '"retry_count":2' in rotated(log_path, 3).read_text(encoding="utf-8")

        stats = health_logger.stats()
        assert stats.total_log_files == 4  # 활성 파일 + 3세대
        assert stats.current_file_size == 0

    def test_stats(self, log_path):
        health_logger = HealthLogger(log_path, max_file_size=2048, max_files=4)
        health_logger.append(make_record())

        stats = health_logger.stats()

        assert stats.current_file_path == log_path
        assert stats.current_file_size == Path(log_path).stat().st_size
        assert stats.total_log_files == 1
        assert stats.format == LogFormat.JSON
        assert stats.max_file_size == 2048
        assert stats.max_files == 4

    def test_clear(self, log_path):
        health_logger = HealthLogger(log_path, max_file_size=1, max_files=3)
        for _ in range(3):
            health_logger.append(make_record())

        assert health_logger.clear()

        assert not Path(log_path).exists()
        assert not rotated(log_path, 1).exists()
        assert health_logger.stats().total_log_files == 0
        assert health_logger.recent(10) == []

    def test_text_format(self, log_path):
        """text 포맷은 사람이 읽는 한 줄로 기록되고 다시 읽을 수 없다."""
        health_logger = HealthLogger(log_path, max_file_size=1024 * 1024, max_files=5, format=LogFormat.TEXT)
        health_logger.append(make_record())
        health_logger.append(
            make_record(status_code=0, status=HealthStatus.UNHEALTHY, error="Request timeout")
        )

        lines = Path(log_path).read_text(encoding="utf-8").splitlines()

        assert len(lines) == 2
        assert "HEALTHY - http://localhost:8000/api/health (200) 12ms" in lines[0]
        assert lines[1].endswith("UNHEALTHY - http://localhost:8000/api/health (0) 12ms ERROR: Request timeout")
        assert health_logger.recent(10) == []


class TestLoggingFailure:
    """파일 시스템 오류는 호출자에게 예외로 올라오지 않는다."""

    def test_unwritable_path(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        log_path = str(blocker / "health.log")

        health_logger = HealthLogger(log_path, max_file_size=1, max_files=3)

        assert health_logger.append(make_record()) is False
        assert health_logger.rotate_if_needed() is False
        assert health_logger.clear() is False
        assert health_logger.recent(10) == []
        assert health_logger.stats().total_log_files == 0
