from .aggregator import build_dashboard
from .schemas import DashboardView
from .service import DashboardService


__all__ = ["DashboardService", "DashboardView", "build_dashboard"]
