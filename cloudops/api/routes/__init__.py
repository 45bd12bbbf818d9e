"""API routes module."""

from cloudops.api.routes.actions import router as actions_router
from cloudops.api.routes.analytics import router as analytics_router
from cloudops.api.routes.recommendations import router as recommendations_router
from cloudops.api.routes.savings import router as savings_router

__all__ = [
    "recommendations_router",
    "actions_router",
    "savings_router",
    "analytics_router",
]
