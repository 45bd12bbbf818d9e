"""Database models module."""

from cloudops.models.metric_history import MetricHistory
from cloudops.models.recommendation import Recommendation
from cloudops.models.savings import SavingsTracker

__all__ = [
    "Recommendation",
    "SavingsTracker",
    "MetricHistory",
]
