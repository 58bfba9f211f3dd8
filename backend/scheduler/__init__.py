from .scheduler import JobScheduler, build_cron_trigger, MAX_RECOVERY_ERROR_COUNT

__all__ = ["JobScheduler", "build_cron_trigger", "MAX_RECOVERY_ERROR_COUNT"]
