"""
Loads the annotation page for one query.

The page shows the query's search results, annotated ones first. Results are
fetched from the search provider the first time a query is viewed and persisted,
so later views and annotations work on the same result set.
"""

import asyncio
import weakref
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from sqlmodel.ext.asyncio.session import AsyncSession

from ..core import db
from ..core.logging import get_logger
from ..websearch.BaseWebSearch import BaseWebSearch
from ..websearch.types import Query, SearchResult, as_simple_webpage, result_id

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class Found(Generic[T]):
    value: T


@dataclass
class NotFound:
    qid: str


Lookup = Union[Found[T], NotFound]


@dataclass
class AnnotationPage:
    query: Query
    search_results: List[SearchResult]
    previous_query: Optional[Query] = None
    next_query: Optional[Query] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query.to_dict(),
            "searchResults": [r.to_dict() for r in self.search_results],
            "previousQuery": self.previous_query.to_dict() if self.previous_query else None,
            "nextQuery": self.next_query.to_dict() if self.next_query else None,
        }


def _sort_key(result: SearchResult) -> tuple:
    if result.annotated_rank is None:
        return (1, result.orig_rank)
    return (0, result.annotated_rank)


def sort_search_results(results: List[SearchResult]) -> List[SearchResult]:
    """Annotated results first by annotated rank, then the rest by original rank.

    The sort is stable, so ties keep their input order.
    """
    return sorted(results, key=_sort_key)


def build_search_results(qid: str, webpages: List[Dict[str, Any]]) -> List[SearchResult]:
    """Turn API webpages into results ranked by response order.

    A URL returned more than once keeps only its first occurrence, so result ids
    stay unique and original ranks run 0..n-1 over the kept results.
    """
    results: List[SearchResult] = []
    seen = set()
    for webpage in webpages:
        simple = as_simple_webpage(webpage)
        if simple.url in seen:
            logger.debug(f"Dropping duplicate result {simple.url} for query '{qid}'")
            continue
        seen.add(simple.url)
        results.append(
            SearchResult(
                id=result_id(qid, simple.url),
                orig_rank=len(results),
                annotated_rank=None,
                webpage=simple,
            )
        )
    return results


async def lookup_query(session: AsyncSession, qid: str) -> Lookup[Query]:
    query = await db.get_query(session, qid)
    if query is None:
        return NotFound(qid)
    return Found(query)


class ResultLoader:
    """Builds annotation pages, filling the result cache on first view."""

    def __init__(self, search_provider: BaseWebSearch):
        self.search_provider = search_provider
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, qid: str) -> asyncio.Lock:
        lock = self._locks.get(qid)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[qid] = lock
        return lock

    async def _fetch_and_save(self, session: AsyncSession, query: Query) -> List[SearchResult]:
        webpages = await self.search_provider.search(query.query)
        results = build_search_results(query.qid, webpages)
        await db.save_search_results(session, query.qid, results)
        logger.info(f"Cached {len(results)} search results for query '{query.qid}'")
        return results

    async def get_or_fetch_results(
        self, session: AsyncSession, query: Query
    ) -> List[SearchResult]:
        results = await db.get_search_results(session, query.qid)
        if results:
            return results

        # Concurrent first views of one qid in this process share a single fetch.
        async with self._lock_for(query.qid):
            results = await db.get_search_results(session, query.qid)
            if results:
                return results
            return await self._fetch_and_save(session, query)

    async def load(self, session: AsyncSession, qid: str) -> Lookup[AnnotationPage]:
        lookup = await lookup_query(session, qid)
        if isinstance(lookup, NotFound):
            logger.info(f"Unknown query id '{qid}'")
            return lookup
        query = lookup.value

        previous_query = await db.get_previous_query(session, qid)
        next_query = await db.get_next_query(session, qid)

        results = await self.get_or_fetch_results(session, query)

        return Found(
            AnnotationPage(
                query=query,
                search_results=sort_search_results(results),
                previous_query=previous_query,
                next_query=next_query,
            )
        )
