from typing import Any, Dict, List, Optional

import httpx

from config import COUNTRY_API_URL, EXCHANGE_RATE_API_URL, EXTERNAL_API_TIMEOUT
from errors import SourceUnavailableError
from logger import get_logger

logger = get_logger(__name__)


class SourceGateway:
    """HTTP access to the country directory and the exchange-rate feed."""

    def __init__(
        self,
        *,
        country_api_url: str = COUNTRY_API_URL,
        rate_api_url: str = EXCHANGE_RATE_API_URL,
        timeout: float = EXTERNAL_API_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.country_api_url = country_api_url
        self.rate_api_url = rate_api_url
        self._timeout = httpx.Timeout(timeout, connect=timeout)
        self._client = client
        self._owns_client = client is None

    def _client_instance(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def _get_json(self, url: str, source: str) -> Any:
        client = self._client_instance()
        try:
            response = await client.get(url, timeout=self._timeout)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            logger.error("Timed out fetching %s from %s", source, url)
            raise SourceUnavailableError(f"Timed out fetching data from {source}") from e
        except httpx.HTTPError as e:
            logger.error("Error fetching %s from %s: %s", source, url, e)
            raise SourceUnavailableError(f"Could not fetch data from {source}: {e}") from e
        except ValueError as e:
            logger.error("Invalid JSON from %s: %s", source, e)
            raise SourceUnavailableError(f"Invalid response from {source}") from e

    async def fetch_countries(self) -> List[Dict[str, Any]]:
        data = await self._get_json(self.country_api_url, "the countries API")
        if not isinstance(data, list):
            raise SourceUnavailableError("Unexpected payload from the countries API")
        logger.info("Fetched %d raw country records", len(data))
        return [item for item in data if isinstance(item, dict)]

    async def fetch_exchange_rates(self) -> Dict[str, Any]:
        data = await self._get_json(self.rate_api_url, "the exchange rates API")
        if not isinstance(data, dict):
            raise SourceUnavailableError("Unexpected payload from the exchange rates API")
        rates = data.get("rates")
        if not isinstance(rates, dict):
            logger.error("Exchange rates data is missing or invalid: result=%r", data.get("result"))
            raise SourceUnavailableError("Unexpected payload from the exchange rates API")
        logger.info("Fetched %d exchange rates", len(rates))
        return rates

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
