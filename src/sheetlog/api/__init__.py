"""
API endpoints package.

Contains FastAPI routers for all service endpoints:
- /{path} - Catch-all greeting, logs each request to the sheet
- /metrics - Prometheus metrics (ops endpoints only)
- /healthz, /readyz - Health checks (ops endpoints only)
"""
from src.sheetlog.api.greeting import router as greeting_router
from src.sheetlog.api.healthz import router as healthz_router
from src.sheetlog.api.metrics import router as metrics_router

__all__ = ["greeting_router", "healthz_router", "metrics_router"]
