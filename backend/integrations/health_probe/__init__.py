from .client import HealthProbeClient, classify_health, describe_request_error

__all__ = ["HealthProbeClient", "classify_health", "describe_request_error"]
