"""
Storage for queries, their cached search results, and ranking experiments.

Tables are SQLModel models on an async SQLAlchemy engine; every helper takes the
``AsyncSession`` as its first argument and converts rows to the plain types in
``websearch.types`` before returning.
"""

from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import JSON, Column, delete
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Field, SQLModel, col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..websearch.types import Query, SearchResult, SimpleWebpage
from .logging import get_logger
from .settings import settings

logger = get_logger(__name__)


class QueryRow(SQLModel, table=True):
    __tablename__ = "queries"

    # Insertion order defines the previous/next chain.
    id: Optional[int] = Field(default=None, primary_key=True)
    qid: str = Field(index=True, unique=True)
    query: str

    def to_query(self) -> Query:
        return Query(qid=self.qid, query=self.query)


class SearchResultRow(SQLModel, table=True):
    __tablename__ = "search_results"

    id: str = Field(primary_key=True)
    qid: str = Field(index=True)
    orig_rank: int
    annotated_rank: Optional[int] = Field(default=None)
    webpage: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))

    def to_search_result(self) -> SearchResult:
        return SearchResult(
            id=self.id,
            orig_rank=self.orig_rank,
            annotated_rank=self.annotated_rank,
            webpage=SimpleWebpage.from_dict(self.webpage),
        )


class Experiment(SQLModel, table=True):
    __tablename__ = "experiments"

    id: Optional[int] = Field(default=None, primary_key=True)
    query: str
    variant_a: str = Field(default="")
    variant_b: str = Field(default="")
    data: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def create_engine_from_settings(database_url: Optional[str] = None) -> AsyncEngine:
    url = database_url or settings.database_url
    if url.startswith("sqlite") and (":memory:" in url or url.endswith("://")):
        # In-memory SQLite lives on a single connection.
        return create_async_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(url)


async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database tables ready")


def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def iter_sessions(
    maker: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with maker() as session:
        yield session


# --- Queries ---


async def _get_query_row(session: AsyncSession, qid: str) -> Optional[QueryRow]:
    result = await session.exec(select(QueryRow).where(QueryRow.qid == qid))
    return result.first()


async def get_query(session: AsyncSession, qid: str) -> Optional[Query]:
    row = await _get_query_row(session, qid)
    return row.to_query() if row else None


async def get_previous_query(session: AsyncSession, qid: str) -> Optional[Query]:
    current = await _get_query_row(session, qid)
    if current is None:
        return None
    result = await session.exec(
        select(QueryRow)
        .where(col(QueryRow.id) < current.id)
        .order_by(col(QueryRow.id).desc())
    )
    row = result.first()
    return row.to_query() if row else None


async def get_next_query(session: AsyncSession, qid: str) -> Optional[Query]:
    current = await _get_query_row(session, qid)
    if current is None:
        return None
    result = await session.exec(
        select(QueryRow)
        .where(col(QueryRow.id) > current.id)
        .order_by(col(QueryRow.id))
    )
    row = result.first()
    return row.to_query() if row else None


async def list_queries(session: AsyncSession) -> List[Query]:
    result = await session.exec(select(QueryRow).order_by(QueryRow.id))
    return [row.to_query() for row in result.all()]


async def add_queries(session: AsyncSession, queries: Iterable[Query]) -> int:
    """Append queries to the chain, skipping qids that already exist.

    Returns the number of queries inserted.
    """
    result = await session.exec(select(QueryRow.qid))
    known = set(result.all())
    added = 0
    for query in queries:
        if query.qid in known:
            continue
        session.add(QueryRow(qid=query.qid, query=query.query))
        known.add(query.qid)
        added += 1
    await session.commit()
    logger.info(f"Added {added} queries")
    return added


# --- Search results ---


async def get_search_results(session: AsyncSession, qid: str) -> List[SearchResult]:
    result = await session.exec(
        select(SearchResultRow)
        .where(SearchResultRow.qid == qid)
        .order_by(col(SearchResultRow.orig_rank))
    )
    return [row.to_search_result() for row in result.all()]


async def save_search_results(
    session: AsyncSession, qid: str, results: Iterable[SearchResult]
) -> None:
    for r in results:
        # merge: a concurrent writer for the same qid leaves the last write
        await session.merge(
            SearchResultRow(
                id=r.id,
                qid=qid,
                orig_rank=r.orig_rank,
                annotated_rank=r.annotated_rank,
                webpage=r.webpage.to_dict(),
            )
        )
    await session.commit()


async def save_annotations(
    session: AsyncSession, qid: str, ranks: Mapping[str, Optional[int]]
) -> int:
    """Set ``annotated_rank`` for the given result ids of ``qid``.

    Ids that do not belong to the query are ignored. Returns how many results
    were updated.
    """
    result = await session.exec(
        select(SearchResultRow).where(SearchResultRow.qid == qid)
    )
    updated = 0
    for row in result.all():
        if row.id in ranks:
            row.annotated_rank = ranks[row.id]
            session.add(row)
            updated += 1
    await session.commit()
    return updated


# --- Experiments ---


async def save_experiment(
    session: AsyncSession,
    query: str,
    variant_a: str = "",
    variant_b: str = "",
    data: Optional[Dict[str, Any]] = None,
) -> Experiment:
    experiment = Experiment(
        query=query, variant_a=variant_a, variant_b=variant_b, data=data or {}
    )
    session.add(experiment)
    await session.commit()
    await session.refresh(experiment)
    return experiment


async def list_experiments(session: AsyncSession) -> List[Experiment]:
    result = await session.exec(select(Experiment).order_by(Experiment.id))
    return list(result.all())


async def clear_experiments(session: AsyncSession) -> None:
    await session.exec(delete(Experiment))  # type: ignore
    await session.commit()
    logger.info("Cleared experiments")
