"""
Base class for the search providers that feed the annotation tool.
"""

from abc import ABC, abstractmethod
from typing import List

from .types import Webpage


class BaseWebSearch(ABC):
    """Base class for web search providers."""

    provider_name: str = "Base"

    @abstractmethod
    async def search(self, query: str) -> List[Webpage]:
        """Run the query and return the raw webpage records in ranked order."""

    async def close(self) -> None:
        """Release any pooled connections."""
