"""Cloud action API routes."""

from fastapi import APIRouter, Depends, Path

from cloudops.api.dependencies import get_implementation_service
from cloudops.api.services.implementation_service import ImplementationService
from cloudops.schemas.recommendation import ActionRequest, ActionResponse

router = APIRouter(
    prefix="/api/v1/optimizer/{user_id}/actions",
    tags=["actions"],
)


@router.post("/stop-instance", response_model=ActionResponse)
async def stop_instance(
    request: ActionRequest,
    user_id: str = Path(..., min_length=1),
    service: ImplementationService = Depends(get_implementation_service),
):
    """Stop an idle instance and mark its recommendation implemented."""
    return await service.stop_instance(user_id, request.resource_id, request.recommendation_id)


@router.post("/terminate-instance", response_model=ActionResponse)
async def terminate_instance(
    request: ActionRequest,
    user_id: str = Path(..., min_length=1),
    service: ImplementationService = Depends(get_implementation_service),
):
    """Terminate a stopped instance and mark its recommendation implemented."""
    return await service.terminate_instance(user_id, request.resource_id, request.recommendation_id)


@router.post("/delete-volume", response_model=ActionResponse)
async def delete_volume(
    request: ActionRequest,
    user_id: str = Path(..., min_length=1),
    service: ImplementationService = Depends(get_implementation_service),
):
    """Delete an unattached volume and mark its recommendation implemented."""
    return await service.delete_volume(user_id, request.resource_id, request.recommendation_id)
