from .health_probe import HealthProbeClient

__all__ = ["HealthProbeClient"]
