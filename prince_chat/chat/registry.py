"""Model registry client for the backend's installed models."""

import logging

import httpx
from pydantic import ValidationError

from prince_chat.errors import ConnectivityError
from prince_chat.models.schemas import ModelDescriptor, ModelList

logger = logging.getLogger(__name__)

TAGS_PATH = "/api/tags"


class ModelRegistry:
    """Lists the models installed on the backend.

    Args:
        client: HTTP client whose base URL points at the gateway (or backend).
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def list_models(self) -> list[ModelDescriptor]:
        """Fetch the installed models, in the order the backend returns them.

        Returns:
            List of model descriptors, possibly empty.

        Raises:
            ConnectivityError: If the backend is unreachable, returns a
                failure status, or returns an unexpected body.
        """
        try:
            response = await self._client.get(TAGS_PATH)
        except httpx.RequestError as e:
            logger.warning(f"Model listing failed: {e!r}")
            raise ConnectivityError(f"Could not reach the model server: {e}") from e

        if not response.is_success:
            logger.warning(f"Model listing returned HTTP {response.status_code}")
            raise ConnectivityError(
                f"Model server returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            models = ModelList.model_validate_json(response.content).models
        except ValidationError as e:
            raise ConnectivityError(f"Unexpected model list from server: {e}") from e

        logger.info(f"Found {len(models)} installed models")
        return models
