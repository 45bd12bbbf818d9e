"""FastAPI dependency factories for services.

Routes never build services themselves; tests swap any of these through
``app.dependency_overrides``.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from cloudops.api.services.actuator_client import Actuator, get_actuator
from cloudops.api.services.analytics_service import AnalyticsService
from cloudops.api.services.implementation_service import ImplementationService
from cloudops.api.services.inventory_client import InventoryProvider, get_inventory_provider
from cloudops.api.services.recommendation_service import RecommendationService
from cloudops.api.services.savings_service import SavingsService
from cloudops.api.services.verification_service import VerificationService
from cloudops.core.database import get_db
from cloudops.core.locks import UserLockRegistry, get_user_locks


def get_recommendation_service(
    db: Session = Depends(get_db),
    inventory: InventoryProvider = Depends(get_inventory_provider),
    locks: UserLockRegistry = Depends(get_user_locks),
) -> RecommendationService:
    return RecommendationService(db, inventory, locks)


def get_verification_service(
    db: Session = Depends(get_db),
    inventory: InventoryProvider = Depends(get_inventory_provider),
) -> VerificationService:
    return VerificationService(db, inventory)


def get_implementation_service(
    db: Session = Depends(get_db),
    actuator: Actuator = Depends(get_actuator),
    locks: UserLockRegistry = Depends(get_user_locks),
) -> ImplementationService:
    return ImplementationService(db, actuator, locks)


def get_savings_service(db: Session = Depends(get_db)) -> SavingsService:
    return SavingsService(db)


def get_analytics_service(
    db: Session = Depends(get_db),
    inventory: InventoryProvider = Depends(get_inventory_provider),
) -> AnalyticsService:
    return AnalyticsService(db, inventory)
