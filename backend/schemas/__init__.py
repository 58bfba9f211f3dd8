from .health_monitoring import (
    HealthStatus,
    JobState,
    LogFormat,
    ProbeResult,
    LogMetadata,
    LogRecord,
    LoggerStats,
    CronJobConfig,
    LoggingConfig,
    MonitoringConfig,
    CronJobConfigUpdate,
    LoggingConfigUpdate,
    MonitoringConfigUpdate,
    JobStatus,
    JobInfo,
    JobActionResponse,
    JobSummary,
    JobStatusList,
    CronJobStats,
    RecoverySummary,
    SystemHealth,
    SystemHealthDetails,
    MonitoringStats,
    RecentLogsResponse,
    ConnectivityResult,
    ServiceStatus,
)

__all__ = [
    "HealthStatus",
    "JobState",
    "LogFormat",
    "ProbeResult",
    "LogMetadata",
    "LogRecord",
    "LoggerStats",
    "CronJobConfig",
    "LoggingConfig",
    "MonitoringConfig",
    "CronJobConfigUpdate",
    "LoggingConfigUpdate",
    "MonitoringConfigUpdate",
    "JobStatus",
    "JobInfo",
    "JobActionResponse",
    "JobSummary",
    "JobStatusList",
    "CronJobStats",
    "RecoverySummary",
    "SystemHealth",
    "SystemHealthDetails",
    "MonitoringStats",
    "RecentLogsResponse",
    "ConnectivityResult",
    "ServiceStatus",
]
