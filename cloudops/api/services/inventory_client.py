"""Inventory provider client.

Current cloud resources are read from the API gateway, which proxies the
monitoring service: ``GET {gateway}/api/data/metrics/{user_id}`` answers with
``{"resources": {"ec2": [...], "s3": [...], ...}}``.
"""

import logging
from typing import Protocol

import httpx
from pydantic import ValidationError

from cloudops.core.config import get_settings
from cloudops.core.exceptions import UpstreamUnavailableError
from cloudops.schemas.inventory import InventorySnapshot

logger = logging.getLogger(__name__)


class InventoryProvider(Protocol):
    """Source of a user's current resource inventory."""

    async def get_snapshot(self, user_id: str) -> InventorySnapshot: ...


class HttpInventoryProvider:
    """Reads inventory snapshots from the API gateway over HTTP."""

    def __init__(
        self,
        base_url: str,
        timeout: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def get_snapshot(self, user_id: str) -> InventorySnapshot:
        """Fetch and parse the user's inventory.

        Raises:
            UpstreamUnavailableError: the gateway could not be reached, timed
                out, answered with an error status, or sent an unusable body.
        """
        url = f"{self.base_url}/api/data/metrics/{user_id}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url)
                response.raise_for_status()
                payload = response.json()
        except httpx.TimeoutException as e:
            logger.error(f"Inventory request timed out for user {user_id}: {e}")
            raise UpstreamUnavailableError(f"Inventory request timed out after {self.timeout}s")
        except httpx.HTTPStatusError as e:
            logger.error(f"Inventory request failed for user {user_id}: {e}")
            raise UpstreamUnavailableError(
                f"Inventory provider returned {e.response.status_code}"
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to fetch inventory for user {user_id}: {e}")
            raise UpstreamUnavailableError(f"Inventory provider unavailable: {e}")

        resources = payload.get("resources") if isinstance(payload, dict) else None
        if resources is None:
            raise UpstreamUnavailableError("Inventory response did not include resources")

        try:
            return InventorySnapshot.model_validate(resources)
        except ValidationError as e:
            logger.error(f"Invalid inventory payload for user {user_id}: {e}")
            raise UpstreamUnavailableError(f"Invalid inventory payload: {e.error_count()} error(s)")


def get_inventory_provider() -> InventoryProvider:
    """FastAPI dependency building the configured inventory provider."""
    settings = get_settings()
    return HttpInventoryProvider(settings.api_gateway_url, settings.inventory_timeout_seconds)
