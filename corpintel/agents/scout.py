# corpintel/agents/scout.py
"""
Scout agent: web search fan-out for a company report.

- Uses Tavily Search API (requires TAVILY_API_KEY).
- Issues the company query set (news, case studies, overview, investor docs,
  leadership) and competitor-mention queries concurrently with async httpx, but
  exposes a synchronous `gather_company_intel()` for pipeline use.
- A failing query contributes zero results; it never fails the batch.
- tavily_search() is the blocking single-query call (used by the CLI below).

gather_company_intel(company_name, competitors=None, include_competitors=True) -> WebSearchData
"""
from __future__ import annotations
import json
import logging
import asyncio
import re
from typing import Any, Dict, List, Optional, Tuple

import httpx

from corpintel.config import cfg
from corpintel.models import CompetitorMention, ScoringOptions, SearchResult, WebSearchData
from corpintel.agents.credibility import score_and_filter_results
from corpintel.agents.queries import build_company_queries, generate_competitor_search_queries

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

TAVILY_SEARCH_URL = "https://api.tavily.com/search"

# HTTP / concurrency settings
HTTP_TIMEOUT = 20.0
MAX_CONCURRENT_SEARCHES = 6

# Per-section request shape
SECTION_SEARCH_OPTIONS = {
    "news": {"max_results": 10, "search_depth": "basic", "include_answer": False},
    "case_studies": {"max_results": 5, "search_depth": "basic", "include_answer": False},
    "info": {"max_results": 5, "search_depth": "advanced", "include_answer": True},
    "investor_docs": {"max_results": 5, "search_depth": "basic", "include_answer": False},
    "leadership": {"max_results": 10, "search_depth": "advanced", "include_answer": False},
}
COMPETITOR_SEARCH_OPTIONS = {"max_results": 3, "search_depth": "advanced", "include_answer": False}
COMPETITOR_KEY_PREFIX = "competitor::"

LEADERSHIP_PAGE_MARKERS = ("news", "press", "announce", "blog", "businesswire", "prnewswire", "globenewswire")
LEADERSHIP_TITLE_MARKERS = ("appoint", "name", "hire", "join", "promote")
JOB_BOARD_MARKERS = ("career", "job", "linkedin.com/jobs", "indeed.com", "glassdoor")
GENERIC_MENTION_PAGE = re.compile(r"(career|job|about-us|contact|pricing|demo|login|signup|privacy|terms)")


def _parse_tavily_results(data: Dict[str, Any]) -> List[SearchResult]:
    out = []
    for item in data.get("results", []) if isinstance(data, dict) else []:
        url = item.get("url")
        if not url:
            continue
        try:
            score = float(item.get("score")) if item.get("score") is not None else None
        except (TypeError, ValueError):
            score = None
        out.append(SearchResult(
            title=item.get("title") or "",
            url=url,
            content=item.get("content") or "",
            vendor_score=max(0.0, min(1.0, score)) if score is not None else None,
        ))
    return out


def _payload(query: str, max_results: int, search_depth: str, include_answer: bool) -> Dict[str, Any]:
    if not cfg.TAVILY_API_KEY:
        raise RuntimeError("TAVILY_API_KEY missing; set in env or corpintel.config.cfg")
    return {
        "api_key": cfg.TAVILY_API_KEY,
        "query": query,
        "search_depth": search_depth,
        "max_results": max_results,
        "include_answer": include_answer,
        "include_raw_content": False,
    }


def _unpack(data: Dict[str, Any]) -> Dict[str, Any]:
    return {"answer": (data or {}).get("answer") or "", "results": _parse_tavily_results(data)}


def tavily_search(query: str,
                  max_results: int = 10,
                  search_depth: str = "basic",
                  include_answer: bool = False) -> Dict[str, Any]:
    """Single blocking search. Returns {"answer": str, "results": [SearchResult]}; raises on failure."""
    resp = httpx.post(TAVILY_SEARCH_URL, json=_payload(query, max_results, search_depth, include_answer),
                      timeout=HTTP_TIMEOUT)
    resp.raise_for_status()
    return _unpack(resp.json())


async def _tavily_search_async(client: httpx.AsyncClient,
                               query: str,
                               max_results: int = 10,
                               search_depth: str = "basic",
                               include_answer: bool = False) -> Dict[str, Any]:
    resp = await client.post(TAVILY_SEARCH_URL, json=_payload(query, max_results, search_depth, include_answer))
    resp.raise_for_status()
    return _unpack(resp.json())


async def _search_all(specs: Dict[str, Dict[str, Any]]) -> Tuple[Dict[str, Dict[str, Any]], Dict[str, str]]:
    responses: Dict[str, Dict[str, Any]] = {}
    errors: Dict[str, str] = {}
    sem = asyncio.Semaphore(MAX_CONCURRENT_SEARCHES)

    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:

        async def _one(key: str, spec: Dict[str, Any]):
            async with sem:
                try:
                    responses[key] = await _tavily_search_async(client, **spec)
                except Exception as e:
                    logger.warning("Search failed for %s (q=%s): %s", key, spec.get("query"), e)
                    responses[key] = {"answer": "", "results": []}
                    errors[key] = str(e)

        await asyncio.gather(*[_one(k, s) for k, s in specs.items()])
    return responses, errors


def search_many(specs: Dict[str, Dict[str, Any]]) -> Tuple[Dict[str, Dict[str, Any]], Dict[str, str]]:
    """
    Run every query spec ({key: {"query", "max_results", ...}}) concurrently.
    Returns (responses_by_key, errors_by_key); failed keys get empty responses.
    """
    if not specs:
        return {}, {}
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(_search_all(specs))
    finally:
        loop.close()


def filter_leadership_hits(results: List[SearchResult]) -> List[SearchResult]:
    """Keep news / press pages or appointment-style titles; drop job boards."""
    kept = []
    for r in results:
        url = r.url.lower()
        title = (r.title or "").lower()
        relevant = any(m in url for m in LEADERSHIP_PAGE_MARKERS) or any(m in title for m in LEADERSHIP_TITLE_MARKERS)
        if relevant and not any(m in url for m in JOB_BOARD_MARKERS):
            kept.append(r)
    return kept


def infer_mention_type(url: str, content: str) -> str:
    url_lower = (url or "").lower()
    content_lower = (content or "").lower()
    if any(m in url_lower for m in ("case-study", "casestudy", "customer-story")) or "case study" in content_lower:
        return "case_study"
    if "customer" in url_lower or "client" in url_lower or "customer" in content_lower:
        return "customer"
    if "partner" in url_lower or "partner" in content_lower:
        return "partner"
    if any(m in url_lower for m in ("press", "news", "blog")):
        return "press_release"
    return "other"


def _competitor_specs(company_name: str,
                      competitors: Dict[str, List[str]],
                      queries_per_competitor: int) -> Dict[str, Dict[str, Any]]:
    specs = {}
    for name, domains in competitors.items():
        queries = generate_competitor_search_queries(company_name, name, domains)
        # press-wire query first, then the competitor's own site(s)
        domain_queries = queries[len(queries) - len(domains or []):] if domains else queries[1:]
        picked = (queries[:1] + domain_queries)[:max(1, queries_per_competitor)]
        for i, q in enumerate(picked):
            specs[f"{COMPETITOR_KEY_PREFIX}{name}::{i}"] = {"query": q, **COMPETITOR_SEARCH_OPTIONS}
    return specs


def _competitor_mentions(company_name: str,
                         responses: Dict[str, Dict[str, Any]],
                         options: ScoringOptions) -> List[CompetitorMention]:
    by_competitor: Dict[str, List[SearchResult]] = {}
    for key, resp in responses.items():
        if not key.startswith(COMPETITOR_KEY_PREFIX):
            continue
        name = key[len(COMPETITOR_KEY_PREFIX):].rsplit("::", 1)[0]
        by_competitor.setdefault(name, []).extend(resp.get("results", []))

    company_lower = company_name.lower()
    mentions: List[CompetitorMention] = []
    for name, hits in by_competitor.items():
        seen = set()
        relevant = []
        for h in hits:
            if h.url in seen:
                continue
            seen.add(h.url)
            mentions_company = company_lower in (h.title or "").lower() or company_lower in (h.content or "").lower()
            if mentions_company and not GENERIC_MENTION_PAGE.search(h.url.lower()):
                relevant.append(h)
        for s in score_and_filter_results(relevant, company_name, competitor_name=name, options=options):
            mentions.append(CompetitorMention(
                competitor_name=name,
                mention_type=infer_mention_type(s.url, s.content),
                title=s.title,
                url=s.url,
                summary=(s.content or "")[:200],
                confidence=s.confidence,
            ))
    mentions.sort(key=lambda m: m.confidence or 0, reverse=True)
    return mentions


def gather_company_intel(company_name: str,
                         competitors: Optional[Dict[str, List[str]]] = None,
                         include_competitors: bool = True,
                         queries_per_competitor: Optional[int] = None,
                         options: Optional[ScoringOptions] = None) -> WebSearchData:
    """
    Synchronous fan-out used by the pipeline.

    Section results are returned unscored (the report step scores them);
    competitor mentions are scored here, with each competitor as the comparison
    entity. meta carries query/failure counts and per-query error strings.
    """
    company_name = company_name.strip()
    options = options or ScoringOptions(min_confidence=cfg.MIN_CONFIDENCE, max_results=cfg.MAX_RESULTS,
                                        debug=cfg.DEBUG_SCORING)
    competitors = cfg.COMPETITORS if competitors is None else competitors
    per_vendor = queries_per_competitor or cfg.COMPETITOR_QUERIES_PER_VENDOR

    specs: Dict[str, Dict[str, Any]] = {
        section: {"query": q, **SECTION_SEARCH_OPTIONS[section]}
        for section, q in build_company_queries(company_name).items()
    }
    if include_competitors and competitors:
        specs.update(_competitor_specs(company_name, competitors, per_vendor))

    responses, errors = search_many(specs)

    def _results(section: str) -> List[SearchResult]:
        return responses.get(section, {}).get("results", [])

    data = WebSearchData(
        news=_results("news"),
        case_studies=_results("case_studies"),
        info=_results("info"),
        info_answer=responses.get("info", {}).get("answer", ""),
        investor_docs=_results("investor_docs"),
        leadership=filter_leadership_hits(_results("leadership")),
        competitor_mentions=_competitor_mentions(company_name, responses, options) if include_competitors else [],
        meta={"queries": len(specs), "failed": len(errors), "errors": errors},
    )
    logger.info("Scout: %d queries for %s (%d failed), %d competitor mentions",
                len(specs), company_name, len(errors), len(data.competitor_mentions))
    return data


# Quick CLI for manual testing
if __name__ == "__main__":
    import sys
    if len(sys.argv) > 1:
        # ad-hoc single query: python -m corpintel.agents.scout "acme corp appoints"
        res = tavily_search(" ".join(sys.argv[1:]), max_results=5)
        print(json.dumps({"answer": res["answer"], "results": [r.model_dump() for r in res["results"]]}, indent=2))
    else:
        out = gather_company_intel("Goldman Sachs", include_competitors=False)
        print(json.dumps(out.model_dump(), indent=2)[:2000])
