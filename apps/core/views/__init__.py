from .health import HealthView, PingView

__all__ = ["PingView", "HealthView"]
