"""Routes package for FastAPI endpoints.

This package contains all API route modules for the Survegio evaluation service.
"""

from survegio.routes import health, reports, surveys

__all__ = ["health", "reports", "surveys"]
