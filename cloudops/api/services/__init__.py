"""API services module."""

from cloudops.api.services.actuator_client import Actuator, HttpActuator
from cloudops.api.services.analytics_service import AnalyticsService
from cloudops.api.services.implementation_service import ImplementationService
from cloudops.api.services.inventory_client import HttpInventoryProvider, InventoryProvider
from cloudops.api.services.recommendation_service import RecommendationService
from cloudops.api.services.savings_service import SavingsService
from cloudops.api.services.verification_service import VerificationService

__all__ = [
    "Actuator",
    "HttpActuator",
    "InventoryProvider",
    "HttpInventoryProvider",
    "RecommendationService",
    "VerificationService",
    "ImplementationService",
    "SavingsService",
    "AnalyticsService",
]
