"""
FastAPI API routes and endpoints.

- routes.py: POST /auth, POST /classify, GET /quota, GET /stats, GET /health
- dependencies.py: Singleton component providers
- models.py: API-specific response envelopes
- error_handlers.py: Exception handlers for structured error responses
- middleware.py: Request-id tracing, body size limit, security headers
"""

from classification_proxy.api import dependencies, error_handlers, models
from classification_proxy.api.routes import router

__all__ = [
    "router",
    "dependencies",
    "error_handlers",
    "models",
]
