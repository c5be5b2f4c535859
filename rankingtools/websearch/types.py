from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Raw webpage record as returned by the search API.
Webpage = Dict[str, Any]


@dataclass
class Query:
    """A stored search query that is up for annotation."""

    qid: str
    query: str

    def to_dict(self) -> Dict[str, Any]:
        return {"qid": self.qid, "query": self.query}


@dataclass
class SimpleWebpage:
    """Display fields of a webpage, kept alongside each search result."""

    url: str
    title: str = ""
    site: Optional[str] = None
    domain: Optional[str] = None
    pretty_url: Optional[str] = None
    snippet: Optional[str] = None
    ranking_signals: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "site": self.site,
            "domain": self.domain,
            "prettyUrl": self.pretty_url,
            "snippet": self.snippet,
            "rankingSignals": dict(self.ranking_signals),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SimpleWebpage":
        return cls(
            url=data["url"],
            title=data.get("title") or "",
            site=data.get("site"),
            domain=data.get("domain"),
            pretty_url=data.get("prettyUrl", data.get("pretty_url")),
            snippet=data.get("snippet"),
            ranking_signals=dict(
                data.get("rankingSignals", data.get("ranking_signals")) or {}
            ),
        )


@dataclass
class SearchResult:
    """One webpage of a query's result list together with its ranks.

    ``orig_rank`` is the position in the search API response at fetch time and
    never changes. ``annotated_rank`` is set later by annotators and may be
    missing.
    """

    id: str
    orig_rank: int
    webpage: SimpleWebpage
    annotated_rank: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "origRank": self.orig_rank,
            "annotatedRank": self.annotated_rank,
            "webpage": self.webpage.to_dict(),
        }


def result_id(qid: str, url: str) -> str:
    return f"{qid}-{url}"


def _snippet_text(snippet: Any) -> Optional[str]:
    """Flatten the API's snippet into plain text.

    The API sends either a string or a structured snippet of the form
    ``{"text": {"fragments": [{"text": ...}, ...]}}``.
    """
    if snippet is None:
        return None
    if isinstance(snippet, str):
        return snippet
    if isinstance(snippet, dict):
        text = snippet.get("text")
        if isinstance(text, str):
            return text
        if isinstance(text, dict):
            fragments: List[Any] = text.get("fragments") or []
            return "".join(
                f.get("text", "") if isinstance(f, dict) else str(f) for f in fragments
            )
    return None


def _ranking_signals(signals: Any) -> Dict[str, Any]:
    return dict(signals) if isinstance(signals, dict) else {}


def as_simple_webpage(webpage: Webpage) -> SimpleWebpage:
    """Normalize a raw API webpage into the shape stored with results."""
    return SimpleWebpage(
        url=webpage["url"],
        title=webpage.get("title") or "",
        site=webpage.get("site"),
        domain=webpage.get("domain"),
        pretty_url=webpage.get("prettyUrl"),
        snippet=_snippet_text(webpage.get("snippet")),
        ranking_signals=_ranking_signals(webpage.get("rankingSignals")),
    )
