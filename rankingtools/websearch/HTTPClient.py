import httpx
from typing import Any, Dict, Optional

from ..core.logging import get_logger
from ..errors import SearchProviderError

logger = get_logger(__name__)


class HTTPClient:
    """
    Thin JSON-over-HTTP helper around a pooled ``httpx.AsyncClient``.
    Failures are logged once here and re-raised as SearchProviderError.
    """

    def __init__(
        self,
        base_url: str = "",
        default_headers: Optional[Dict[str, str]] = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = httpx.Timeout(timeout, connect=3.0)

        self.headers = {
            "accept": "application/json",
        }
        if default_headers:
            self.headers.update(default_headers)

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=self.headers,
            follow_redirects=True,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        return_json: bool = True,
    ) -> Any:
        return await self._request(
            "GET", url, params=params, headers=headers, return_json=return_json
        )

    async def post(
        self,
        url: str,
        json_data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        return_json: bool = True,
    ) -> Any:
        return await self._request(
            "POST", url, json_data=json_data, headers=headers, return_json=return_json
        )

    async def _request(
        self,
        method: str,
        url: str,
        json_data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        return_json: bool = True,
    ) -> Any:
        try:
            response = await self._client.request(
                method=method,
                url=url,
                json=json_data,
                params=params,
                headers=headers,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"HTTP {method} {e.response.status_code}",
                extra={"url": str(e.request.url), "response": e.response.text[:200]},
            )
            raise SearchProviderError(f"Provider Error: {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error(f"Network Error: {method} {url}", extra={"error": str(e)})
            raise SearchProviderError(f"Network Failure: {str(e)}") from e

        if not return_json:
            return response.text

        try:
            return response.json()
        except ValueError as e:
            logger.error(
                f"Invalid JSON from {method} {url}",
                extra={"response": response.text[:200]},
            )
            raise SearchProviderError(f"Invalid JSON from {url}") from e
