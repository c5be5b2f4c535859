"""
HTTP surface for the ranking tools.

- ``GET  /annotate/{slug}``            annotation page payload (301 to ``/`` if unknown)
- ``POST /annotate/{slug}/ranks``      store annotated ranks for a query
- ``GET  /api/queries``                list queries in chain order
- ``POST /api/queries``                import queries
- ``GET  /api/experiments``            list ranking experiments
- ``POST /api/experiments/clear``      drop all experiments
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, RedirectResponse
from pydantic import BaseModel
from sqlmodel.ext.asyncio.session import AsyncSession

from ..annotation.ResultLoader import NotFound, ResultLoader
from ..core import db
from ..core.logging import get_logger, setup_logging
from ..core.settings import settings
from ..websearch.BaseWebSearch import BaseWebSearch
from ..websearch.StractWebSearch import StractWebSearch
from ..websearch.types import Query

logger = get_logger(__name__)


class QueryIn(BaseModel):
    qid: str
    query: str


class AnnotationRanks(BaseModel):
    ranks: Dict[str, Optional[int]]


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    async for session in db.iter_sessions(request.app.state.sessions):
        yield session


def get_loader(request: Request) -> ResultLoader:
    return request.app.state.loader


def create_app(
    database_url: Optional[str] = None,
    search_provider: Optional[BaseWebSearch] = None,
) -> FastAPI:
    setup_logging()

    engine = db.create_engine_from_settings(database_url)
    provider = search_provider or StractWebSearch()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await db.init_db(engine)
        yield
        await provider.close()
        await engine.dispose()

    app = FastAPI(title="Ranking Tools", lifespan=lifespan)
    app.state.engine = engine
    app.state.sessions = db.session_factory(engine)
    app.state.loader = ResultLoader(provider)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/annotate/{slug}", response_model=None)
    async def annotate_page(
        slug: str,
        session: AsyncSession = Depends(get_session),
        loader: ResultLoader = Depends(get_loader),
    ) -> Any:
        page = await loader.load(session, slug)
        if isinstance(page, NotFound):
            return RedirectResponse(url="/", status_code=301)
        return page.value.to_dict()

    @app.post("/annotate/{slug}/ranks", response_class=PlainTextResponse)
    async def save_ranks(
        slug: str,
        body: AnnotationRanks,
        session: AsyncSession = Depends(get_session),
    ) -> str:
        if await db.get_query(session, slug) is None:
            raise HTTPException(status_code=404, detail=f"Unknown query '{slug}'")
        updated = await db.save_annotations(session, slug, body.ranks)
        logger.info(f"Saved {updated} annotations for query '{slug}'")
        return "OK"

    @app.get("/api/queries")
    async def queries(session: AsyncSession = Depends(get_session)) -> List[Dict[str, Any]]:
        return [q.to_dict() for q in await db.list_queries(session)]

    @app.post("/api/queries")
    async def import_queries(
        body: List[QueryIn], session: AsyncSession = Depends(get_session)
    ) -> Dict[str, int]:
        added = await db.add_queries(
            session, [Query(qid=q.qid, query=q.query) for q in body]
        )
        return {"added": added}

    @app.get("/api/experiments")
    async def experiments(
        session: AsyncSession = Depends(get_session),
    ) -> List[Dict[str, Any]]:
        return [e.model_dump(mode="json") for e in await db.list_experiments(session)]

    @app.post("/api/experiments/clear", response_class=PlainTextResponse)
    async def clear_experiments(session: AsyncSession = Depends(get_session)) -> str:
        await db.clear_experiments(session)
        return "OK"

    return app


def main() -> None:
    import uvicorn

    uvicorn.run(create_app(), host=settings.host, port=settings.port)
