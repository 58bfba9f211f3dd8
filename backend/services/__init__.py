from .health_logger import HealthLogger
from .health_monitor_service import HealthMonitorService, HEALTH_MONITOR_JOB_ID

__all__ = [
    "HealthLogger",
    "HealthMonitorService",
    "HEALTH_MONITOR_JOB_ID",
]
