from . import health_monitoring

__all__ = [
    "health_monitoring",
]
