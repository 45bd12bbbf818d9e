"""Recommendations API routes."""

from fastapi import APIRouter, Depends, Path, Query

from cloudops.api.dependencies import get_recommendation_service, get_verification_service
from cloudops.api.services.recommendation_service import RecommendationService
from cloudops.api.services.verification_service import VerificationService
from cloudops.schemas.recommendation import (
    GenerateRecommendationsResponse,
    ImplementRecommendationRequest,
    ImplementRecommendationResponse,
    RecommendationCategory,
    RecommendationListResponse,
    RecommendationPriority,
    RecommendationSummaryResponse,
    SavingsPotential,
    VerificationResponse,
)

router = APIRouter(
    prefix="/api/v1/optimizer/{user_id}",
    tags=["recommendations"],
)


@router.post("/generate-recommendations", response_model=GenerateRecommendationsResponse)
async def generate_recommendations(
    user_id: str = Path(..., min_length=1),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Rebuild the user's recommendations from current inventory.

    Replaces every unimplemented recommendation; implemented ones are kept.
    """
    return await service.generate_recommendations(user_id)


@router.get("/recommendations", response_model=RecommendationListResponse)
async def get_recommendations(
    user_id: str = Path(..., min_length=1),
    implemented: bool | None = Query(default=None),
    priority: RecommendationPriority | None = Query(default=None),
    category: RecommendationCategory | None = Query(default=None),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Get recommendations with optional filtering.

    Args:
        implemented: Only implemented (true) or live (false) recommendations
        priority: Filter by priority (High, Medium, Low)
        category: Filter by category (Compute, Storage, Database)
    """
    recommendations = service.get_recommendations(
        user_id,
        implemented=implemented,
        priority=priority,
        category=category,
    )
    return RecommendationListResponse(count=len(recommendations), recommendations=recommendations)


@router.get("/recommendations/summary", response_model=RecommendationSummaryResponse)
async def get_recommendation_summary(
    user_id: str = Path(..., min_length=1),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Get live recommendations grouped by category."""
    return service.get_recommendation_summary(user_id)


@router.get("/savings-potential", response_model=SavingsPotential)
async def get_savings_potential(
    user_id: str = Path(..., min_length=1),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Get total potential savings from unimplemented recommendations."""
    return service.get_savings_potential(user_id)


@router.post("/verify/{recommendation_id}", response_model=VerificationResponse)
async def verify_recommendation(
    user_id: str = Path(..., min_length=1),
    recommendation_id: int = Path(..., ge=1),
    service: VerificationService = Depends(get_verification_service),
):
    """Check current inventory to confirm a recommendation was acted on."""
    result = await service.verify_implementation(user_id, recommendation_id)
    return VerificationResponse(verified=result.verified, reason=result.reason)


@router.post("/implement/{recommendation_id}", response_model=ImplementRecommendationResponse)
async def implement_recommendation(
    user_id: str = Path(..., min_length=1),
    recommendation_id: int = Path(..., ge=1),
    request: ImplementRecommendationRequest | None = None,
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Record that a recommendation was carried out outside the platform."""
    actual_savings = request.actual_savings if request else None
    recommendation = service.mark_implemented(user_id, recommendation_id, actual_savings)
    return ImplementRecommendationResponse(recommendation=recommendation)
