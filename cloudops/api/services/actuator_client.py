"""Actuator client for mutating cloud operations.

The monitoring service performs the actual cloud calls; this client only
asks it to and reports whether it answered ``{"success": true}``.
"""

import logging
from typing import Any, Protocol

import httpx

from cloudops.core.config import get_settings
from cloudops.core.exceptions import UpstreamUnavailableError

logger = logging.getLogger(__name__)


class Actuator(Protocol):
    """Performs cloud operations on behalf of a user."""

    async def stop_instance(self, user_id: str, instance_id: str, recommendation_id: int) -> bool: ...

    async def terminate_instance(self, user_id: str, instance_id: str, recommendation_id: int) -> bool: ...

    async def delete_volume(self, user_id: str, volume_id: str, recommendation_id: int) -> bool: ...


class HttpActuator:
    """Sends cloud operations to the monitoring service."""

    def __init__(
        self,
        base_url: str,
        timeout: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def stop_instance(self, user_id: str, instance_id: str, recommendation_id: int) -> bool:
        return await self._post("/api/ec2/stop", {"userId": user_id, "instanceId": instance_id})

    async def terminate_instance(self, user_id: str, instance_id: str, recommendation_id: int) -> bool:
        return await self._post("/api/ec2/terminate", {"userId": user_id, "instanceId": instance_id})

    async def delete_volume(self, user_id: str, volume_id: str, recommendation_id: int) -> bool:
        return await self._post("/api/ebs/delete", {"userId": user_id, "volumeId": volume_id})

    async def _post(self, path: str, body: dict[str, Any]) -> bool:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=body)
                response.raise_for_status()
                payload = response.json()
        except httpx.TimeoutException as e:
            logger.error(f"Actuator call {path} timed out: {e}")
            raise UpstreamUnavailableError(f"Actuator timed out after {self.timeout}s")
        except httpx.HTTPStatusError as e:
            logger.error(f"Actuator call {path} failed: {e}")
            raise UpstreamUnavailableError(f"Actuator returned {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Actuator call {path} failed: {e}")
            raise UpstreamUnavailableError(f"Actuator unavailable: {e}")

        return isinstance(payload, dict) and payload.get("success") is True


def get_actuator() -> Actuator:
    """FastAPI dependency building the configured actuator."""
    settings = get_settings()
    return HttpActuator(settings.monitoring_service_url, settings.actuator_timeout_seconds)
