"""헬스체크 결과 구조화 로그 (크기 기반 로테이션).

활성 파일 하나(`health-monitoring.log`)에 프로브 시도마다 한 줄씩 추가하고,
최대 크기를 넘으면 `health-monitoring.1.log`, `health-monitoring.2.log` ...로
세대를 밀어낸다. 보관 세대 수를 넘는 가장 오래된 파일은 삭제한다.

어떤 메서드도 호출자에게 예외를 던지지 않는다. I/O 실패는 모듈 로거로만 보고하며
헬스체크 흐름을 끊지 않는다.
"""
import logging
import random
import string
import threading
import time
from pathlib import Path

from core.timezone import now_utc
from schemas.health_monitoring import (
    HealthStatus,
    LogFormat,
    LoggerStats,
    LogMetadata,
    LogRecord,
    ProbeResult,
)

logger = logging.getLogger(__name__)


def generate_log_id() -> str:
    """`health_<epoch ms>_<6자리 base36>` 형태의 로그 ID."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"health_{int(time.time() * 1000)}_{suffix}"


def determine_application_status(result: ProbeResult) -> HealthStatus:
    """애플리케이션 상태: 2xx면 판정이 healthy일 때만 healthy, 아니면 degraded. 그 외 unhealthy."""
    if result.is_success:
        return HealthStatus.HEALTHY if result.status == HealthStatus.HEALTHY else HealthStatus.DEGRADED
    return HealthStatus.UNHEALTHY


def build_log_record(
    result: ProbeResult,
    job_id: str,
    execution_time_ms: int,
    retry_count: int,
    environment: str,
) -> LogRecord:
    return LogRecord(
        id=generate_log_id(),
        timestamp=now_utc(),
        check_result=result,
        application_status=determine_application_status(result),
        metadata=LogMetadata(
            job_id=job_id,
            execution_time_ms=execution_time_ms,
            retry_count=retry_count,
            environment=environment,
        ),
    )


def format_text_line(record: LogRecord) -> str:
    """`[timestamp] STATUS - endpoint (code) Nms ERROR: msg`"""
    result = record.check_result
    error = f" ERROR: {result.error}" if result.error else ""
    return (
        f"[{record.timestamp.isoformat()}] {record.application_status.value.upper()} - "
        f"{result.endpoint} ({result.http_status_code}) {result.response_time_ms}ms{error}"
    )


class HealthLogger:
    """헬스체크 로그 파일 관리자."""

    def __init__(
        self,
        file_path: str,
        max_file_size: int,
        max_files: int,
        format: LogFormat = LogFormat.JSON,
    ):
        self.file_path = Path(file_path)
        self.max_file_size = max_file_size
        self.max_files = max_files
        self.format = LogFormat(format)
        self._lock = threading.Lock()
        self._warned_text_read = False
        self._ensure_directory()

    def _ensure_directory(self) -> bool:
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            return True
        except OSError as e:
            logger.error(f"Failed to create log directory {self.file_path.parent}: {e}")
            return False

    def _rotated_path(self, index: int) -> Path:
        return self.file_path.with_name(f"{self.file_path.stem}.{index}{self.file_path.suffix}")

    def _serialize(self, record: LogRecord) -> str:
        if self.format == LogFormat.JSON:
            return record.model_dump_json()
        return format_text_line(record)

    def append(self, record: LogRecord) -> bool:
        """레코드 한 줄 추가 후 필요하면 로테이션. 실패 시 False."""
        with self._lock:
            try:
                self._ensure_directory()
                line = self._serialize(record)
                with self.file_path.open("a", encoding="utf-8") as f:
                    f.write(line + "\n")
            except Exception as e:
                logger.error(f"Failed to write health check log {self.file_path}: {e}")
                return False

            self._rotate_if_needed()
            return True

    def rotate_if_needed(self) -> bool:
        """활성 파일이 최대 크기 이상이면 로테이션. 로테이션했으면 True."""
        with self._lock:
            return self._rotate_if_needed()

    def _rotate_if_needed(self) -> bool:
        try:
            if not self.file_path.exists():
                return False
            if self.file_path.stat().st_size < self.max_file_size:
                return False
            self._rotate()
            return True
        except OSError as e:
            logger.error(f"Failed to rotate health log {self.file_path}: {e}")
            return False

    def _rotate(self) -> None:
        oldest = self._rotated_path(self.max_files)
        if oldest.exists():
            oldest.unlink()

        for index in range(self.max_files - 1, 0, -1):
            source = self._rotated_path(index)
            if source.exists():
                source.rename(self._rotated_path(index + 1))

        self.file_path.rename(self._rotated_path(1))
        self.file_path.touch()
        logger.info(f"Rotated health log {self.file_path} (keeping {self.max_files} generations)")

    def recent(self, limit: int = 100) -> list[LogRecord]:
        """활성 파일에서 최근 레코드를 최신순으로 반환.

        JSON 포맷에서만 구조화된 레코드로 읽을 수 있다. text 포맷이면 빈 리스트.
        """
        if limit <= 0:
            return []

        if self.format != LogFormat.JSON:
            if not self._warned_text_read:
                logger.warning(
                    f"Health log {self.file_path} uses text format; "
                    "structured read-back is only available for json format"
                )
                self._warned_text_read = True
            return []

        try:
            if not self.file_path.exists():
                return []
            with self._lock:
                content = self.file_path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to read health log {self.file_path}: {e}")
            return []

        lines = [line for line in content.splitlines() if line.strip()]
        records: list[LogRecord] = []
        for line in lines[-limit:]:
            try:
                records.append(LogRecord.model_validate_json(line))
            except ValueError as e:
                logger.warning(f"Skipping unparseable health log line: {e}")

        records.reverse()
        return records

    def stats(self) -> LoggerStats:
        current_size = 0
        total_files = 0
        try:
            if self.file_path.exists():
                current_size = self.file_path.stat().st_size
                total_files = 1
            for index in range(1, self.max_files + 1):
                if self._rotated_path(index).exists():
                    total_files += 1
        except OSError as e:
            logger.error(f"Failed to get health log stats: {e}")

        return LoggerStats(
            current_file_size=current_size,
            current_file_path=str(self.file_path),
            total_log_files=total_files,
            format=self.format,
            max_file_size=self.max_file_size,
            max_files=self.max_files,
        )

    def clear(self) -> bool:
        """활성 파일과 모든 로테이션 세대 삭제 (되돌릴 수 없음)."""
        with self._lock:
            try:
                self.file_path.unlink(missing_ok=True)
                for index in range(1, self.max_files + 1):
                    self._rotated_path(index).unlink(missing_ok=True)
            except OSError as e:
                logger.error(f"Failed to clear health logs {self.file_path}: {e}")
                return False

        logger.info(f"Cleared health logs at {self.file_path}")
        return True
