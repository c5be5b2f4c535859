"""
Stract API Searcher Module

This module provides the search provider used by the annotation tool. It posts
the query to the Stract search API and hands back the raw ``webpages`` list in
the order the API ranked them.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from ..core.logging import get_logger
from ..core.settings import settings
from ..errors import SearchProviderError
from .BaseWebSearch import BaseWebSearch
from .HTTPClient import HTTPClient
from .types import Webpage

logger = get_logger(__name__)


class StractWebSearch(BaseWebSearch):
    """
    A web search provider that uses the Stract API to get search results.
    """

    provider_name = "Stract"

    def __init__(
        self,
        api_url: Optional[str] = None,
        num_results: Optional[int] = None,
        return_ranking_signals: Optional[bool] = None,
        http_client: Optional[HTTPClient] = None,
    ):
        self.api_url = api_url or settings.search_api_url
        self.num_results = (
            num_results if num_results is not None else settings.search_num_results
        )
        self.return_ranking_signals = (
            return_ranking_signals
            if return_ranking_signals is not None
            else settings.search_return_ranking_signals
        )
        self.http_client = http_client or HTTPClient(
            default_headers={"Content-Type": "application/json"},
            timeout=settings.search_timeout_seconds,
        )
        logger.info(f"StractWebSearch initialized for {self.api_url}")

    def _build_payload(self, query: str) -> Dict[str, Any]:
        return {
            "query": query,
            "numResults": self.num_results,
            "returnRankingSignals": self.return_ranking_signals,
        }

    async def search(self, query: str) -> List[Webpage]:
        """
        Perform a search using the Stract API and return its webpages.

        Raises:
            SearchProviderError: on transport failures, non-JSON bodies, or a
                response without a ``webpages`` list.
        """
        start_time = datetime.now()
        logger.info(f"Performing Stract API search for: '{query}'")

        api_response = await self.http_client.post(
            self.api_url,
            json_data=self._build_payload(query),
            headers={
                "Content-Type": "application/json",
                "accept": "application/json",
            },
        )

        webpages = (
            api_response.get("webpages") if isinstance(api_response, dict) else None
        )
        if not isinstance(webpages, list):
            logger.error(
                "Stract API response is missing 'webpages'",
                extra={"query": query, "response_type": type(api_response).__name__},
            )
            raise SearchProviderError(
                f"Stract API response for query '{query}' has no 'webpages' list"
            )

        search_time = int((datetime.now() - start_time).total_seconds() * 1000)
        logger.info(
            f"Stract search completed: {len(webpages)} results in {search_time}ms"
        )
        return webpages

    async def close(self) -> None:
        await self.http_client.close()
