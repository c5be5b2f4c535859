import httpx
import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock

from rankingtools.api.app import create_app
from rankingtools.core import db
from rankingtools.websearch.types import Query


@pytest_asyncio.fixture
async def app_and_provider():
    provider = MagicMock()
    provider.search = AsyncMock(
        return_value=[
            {"url": "https://b.com", "title": "B"},
            {"url": "https://a.com", "title": "A"},
            {"url": "https://c.com", "title": "C"},
        ]
    )
    provider.close = AsyncMock()
    app = create_app(database_url="sqlite+aiosqlite://", search_provider=provider)
    await db.init_db(app.state.engine)
    async with app.state.sessions() as session:
        await db.add_queries(session, [Query("q1", "rust"), Query("q2", "python")])
    yield app, provider
    await app.state.engine.dispose()


@pytest_asyncio.fixture
async def client(app_and_provider):
    app, _ = app_and_provider
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
async def test_unknown_query_redirects_permanently(client, app_and_provider) -> None:
    _, provider = app_and_provider

    response = await client.get("/annotate/does-not-exist")

    assert response.status_code == 301
    assert response.headers["location"] == "/"
    provider.search.assert_not_called()


@pytest.mark.asyncio
async def test_annotation_page_payload(client, app_and_provider) -> None:
    _, provider = app_and_provider

    response = await client.get("/annotate/q1")

    assert response.status_code == 200
    data = response.json()
    assert data["query"] == {"qid": "q1", "query": "rust"}
    assert data["previousQuery"] is None
    assert data["nextQuery"] == {"qid": "q2", "query": "python"}
    assert [r["origRank"] for r in data["searchResults"]] == [0, 1, 2]
    assert data["searchResults"][0]["id"] == "q1-https://b.com"
    assert data["searchResults"][0]["annotatedRank"] is None
    provider.search.assert_awaited_once_with("rust")


@pytest.mark.asyncio
async def test_second_view_uses_cached_results(client, app_and_provider) -> None:
    _, provider = app_and_provider

    first = await client.get("/annotate/q1")
    second = await client.get("/annotate/q1")

    assert first.json() == second.json()
    assert provider.search.await_count == 1


@pytest.mark.asyncio
async def test_saved_annotations_reorder_results(client) -> None:
    await client.get("/annotate/q1")

    response = await client.post(
        "/annotate/q1/ranks",
        json={"ranks": {"q1-https://c.com": 0, "q1-https://a.com": 1}},
    )
    assert response.status_code == 200
    assert response.text == "OK"

    data = (await client.get("/annotate/q1")).json()
    assert [r["id"] for r in data["searchResults"]] == [
        "q1-https://c.com",
        "q1-https://a.com",
        "q1-https://b.com",
    ]


@pytest.mark.asyncio
async def test_annotations_for_unknown_query_are_rejected(client) -> None:
    response = await client.post("/annotate/nope/ranks", json={"ranks": {}})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_query_import_and_listing(client) -> None:
    response = await client.post(
        "/api/queries",
        json=[{"qid": "q2", "query": "dup"}, {"qid": "q3", "query": "go"}],
    )
    assert response.json() == {"added": 1}

    listing = (await client.get("/api/queries")).json()
    assert [q["qid"] for q in listing] == ["q1", "q2", "q3"]


@pytest.mark.asyncio
async def test_clear_experiments_endpoint(client, app_and_provider) -> None:
    app, _ = app_and_provider
    async with app.state.sessions() as session:
        await db.save_experiment(session, "rust", variant_a="a", variant_b="b")

    assert len((await client.get("/api/experiments")).json()) == 1

    response = await client.post("/api/experiments/clear")

    assert response.status_code == 200
    assert response.text == "OK"
    assert (await client.get("/api/experiments")).json() == []


@pytest.mark.asyncio
async def test_duplicate_urls_show_the_same_results_on_every_view(app_and_provider) -> None:
    """A URL repeated by the search API is listed once, both fresh and from cache."""
    app, provider = app_and_provider
    provider.search.return_value = [
        {"url": "https://a.com"},
        {"url": "https://b.com"},
        {"url": "https://a.com"},
    ]
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        first = (await client.get("/annotate/q1")).json()["searchResults"]
        second = (await client.get("/annotate/q1")).json()["searchResults"]

    assert [(r["id"], r["origRank"]) for r in first] == [
        ("q1-https://a.com", 0),
        ("q1-https://b.com", 1),
    ]
    assert first == second
    assert provider.search.await_count == 1


@pytest.mark.asyncio
async def test_webpage_payload_uses_camel_case(client) -> None:
    data = (await client.get("/annotate/q1")).json()

    webpage = data["searchResults"][0]["webpage"]
    assert "prettyUrl" in webpage
    assert "rankingSignals" in webpage
    assert "pretty_url" not in webpage
    assert "ranking_signals" not in webpage
