from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    app_env: str = "development"
    cors_origins: str = "http://localhost:3000"

    # 스케줄러 설정
    scheduler_enabled: bool = True

    # 헬스 모니터링 설정
    health_monitoring_enabled: bool = True
    health_check_base_url: str = "http://localhost:8000"
    health_check_endpoint: str = "/api/health"
    health_check_schedule: str = "*/5 * * * *"  # 5분마다
    health_check_timezone: str = "UTC"
    health_check_timeout_ms: int = 10000
    health_check_max_retries: int = 3
    health_check_retry_delay_ms: int = 5000

    # 헬스 로그 파일 설정
    health_log_enabled: bool = True
    health_log_file_path: str = "logs/health-monitoring.log"
    health_log_max_file_size: str = "10MB"
    health_log_max_files: int = 5
    health_log_format: str = "json"  # json | text

    # 에러 상태 작업 자동 복구
    health_auto_recovery_enabled: bool = True
    health_auto_recovery_interval_minutes: int = 30

    class Config:
        env_file = ".env"
        extra = "allow"

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
