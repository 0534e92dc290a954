"""Client for the gateway's public model and voice listings."""

import logging
from typing import List

import httpx

from ..config import DEFAULT_VOICES, RELAY_CLOUD_ENDPOINT
from ..errors import CatalogError
from ..models import ModelDescriptor, VoiceDescriptor

logger = logging.getLogger(__name__)


class CatalogClient:
    def __init__(self, http_client: httpx.AsyncClient, endpoint: str = RELAY_CLOUD_ENDPOINT):
        self._http = http_client
        self._endpoint = endpoint.rstrip("/")

    async def fetch_models(self, premium: bool = True) -> List[ModelDescriptor]:
        """
        Fetch the models offered by the gateway.

        Raises:
            CatalogError: The gateway answered with a non-2xx status
        """
        response = await self._http.get(
            f"{self._endpoint}/models",
            params={"premium": "1" if premium else "0"},
            headers={"Accept": "application/json"},
        )
        if not response.is_success:
            raise CatalogError(response.status_code, response.text or None)
        return [ModelDescriptor.model_validate(item) for item in response.json()["models"]]

    async def fetch_voices(self) -> List[VoiceDescriptor]:
        """Fetch the available voices, falling back to the built-in list on any error."""
        try:
            response = await self._http.get(
                f"{self._endpoint}/voices",
                headers={"Accept": "application/json"},
            )
            if not response.is_success:
                raise CatalogError(response.status_code, response.text or None)
            return [VoiceDescriptor.model_validate(item) for item in response.json()["voices"]]
        except (httpx.HTTPError, CatalogError, ValueError, KeyError) as exc:
            logger.info("CatalogClient | voices unavailable (%s), using defaults", exc)
            return list(DEFAULT_VOICES)
