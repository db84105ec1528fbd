# corpintel/agents/report.py
"""
Report assembly: merge credibility-filtered web results into the AI analysis.

Primary API:
    assemble_report(company_name, analysis, web_data, competitor_name=None, options=None) -> CompanyAnalysis
    describe_search_error(provider_name, exc) -> str

Rules
-----
- news / case studies / investor docs: every web section goes through the
  credibility scorer; accepted results replace the AI's section only when
  at least one survives.
- competitor mentions come from web search only (already scored per competitor).
- leadership: job listings dropped, articles scored, events extracted; if no
  event is found the top article titles are shown instead.
- sources: AI sources first, then accepted web URLs, de-duplicated in order.
"""

from __future__ import annotations
import logging
from typing import List, Optional, Union

import httpx

from corpintel.config import cfg
from corpintel.models import (
    CompanyAnalysis,
    LeadershipChange,
    LinkItem,
    ScoredResult,
    ScoringOptions,
    SearchResult,
    WebSearchData,
)
from corpintel.agents.credibility import score_and_filter_results
from corpintel.agents.leadership import source_host, drop_job_listings, extract_leadership_changes

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

FALLBACK_LEADERSHIP_ITEMS = 6
FALLBACK_ROLE_CHARS = 150
ERROR_DETAIL_CHARS = 100


def default_scoring_options() -> ScoringOptions:
    return ScoringOptions(min_confidence=cfg.MIN_CONFIDENCE, max_results=cfg.MAX_RESULTS, debug=cfg.DEBUG_SCORING)


def _as_links(results: List[ScoredResult]) -> List[LinkItem]:
    return [LinkItem(title=r.title or r.url, url=r.url, summary=r.content or "") for r in results]


def fallback_leadership(articles: List[SearchResult], limit: int = FALLBACK_LEADERSHIP_ITEMS) -> List[LeadershipChange]:
    """Raw article titles as placeholder events when nothing could be extracted."""
    return [
        LeadershipChange(
            person_name=a.title or a.url,
            role=(a.content or "")[:FALLBACK_ROLE_CHARS],
            change_type="appointed",
            source_url=a.url,
            source=source_host(a.url),
        )
        for a in articles[:limit]
    ]


def _leadership(company_name: str,
                articles: List[SearchResult],
                options: ScoringOptions) -> List[LeadershipChange]:
    candidates = drop_job_listings(articles)
    if not candidates:
        return []
    accepted = score_and_filter_results(candidates, company_name, options=options)
    pool: List[SearchResult] = list(accepted) or candidates
    events = extract_leadership_changes(pool, company_name, exclude_names=tuple(cfg.COMPETITORS))
    if events:
        return events
    logger.info("No leadership events parsed for %s; using %d article titles",
                company_name, min(len(pool), FALLBACK_LEADERSHIP_ITEMS))
    return fallback_leadership(pool)


def _merge_sources(existing: List[str], *groups: List[str]) -> List[str]:
    out: List[str] = []
    for url in [*existing, *[u for g in groups for u in g]]:
        if url and url not in out:
            out.append(url)
    return out


def assemble_report(company_name: str,
                    analysis: CompanyAnalysis,
                    web_data: Optional[WebSearchData],
                    competitor_name: Optional[str] = None,
                    options: Optional[ScoringOptions] = None) -> CompanyAnalysis:
    """
    Return a new CompanyAnalysis; `analysis` and `web_data` are left untouched.
    When web_data is None (web search off or failed) the analysis is returned as is.
    """
    if web_data is None:
        return analysis
    company_name = company_name.strip()
    options = options or default_scoring_options()

    def _score(results: List[SearchResult]) -> List[ScoredResult]:
        return score_and_filter_results(results, company_name, competitor_name=competitor_name, options=options)

    news = _score(web_data.news)
    case_studies = _score(web_data.case_studies)
    investor_docs = _score(web_data.investor_docs)
    info = _score(web_data.info)

    mentions = web_data.competitor_mentions
    if competitor_name:
        wanted = competitor_name.strip().lower()
        mentions = [m for m in mentions if m.competitor_name.lower() == wanted]

    update = {}
    if news:
        update["tech_news"] = _as_links(news)
    if case_studies:
        update["case_studies"] = _as_links(case_studies)
    if investor_docs:
        update["investor_docs"] = _as_links(investor_docs)
    if mentions:
        update["competitor_mentions"] = list(mentions)
    if web_data.leadership:
        update["leadership_changes"] = _leadership(company_name, web_data.leadership, options)

    update["sources"] = _merge_sources(
        analysis.sources,
        [r.url for r in news],
        [r.url for r in case_studies],
        [r.url for r in investor_docs],
        [r.url for r in info],
        [m.url for m in mentions],
    )
    logger.info("Report for %s: news=%d case_studies=%d investor_docs=%d mentions=%d leadership=%d",
                company_name, len(news), len(case_studies), len(investor_docs), len(mentions),
                len(update.get("leadership_changes", analysis.leadership_changes)))
    return analysis.model_copy(update=update, deep=True)


def describe_search_error(provider_name: str, exc: Union[BaseException, str]) -> str:
    """User-facing one-liner for a failed web search."""
    if isinstance(exc, httpx.TimeoutException):
        return f"{provider_name} request timed out"
    status = exc.response.status_code if isinstance(exc, httpx.HTTPStatusError) else None
    msg = str(exc)
    lower = msg.lower()
    if status in (401, 403) or any(m in msg for m in ("Forbidden", "401", "403")) or "invalid api key" in lower:
        return f"{provider_name} key is invalid or expired"
    if status == 429 or "429" in msg or "rate limit" in lower:
        return f"{provider_name} rate limit exceeded"
    if "timeout" in lower or "timed out" in lower or "ETIMEDOUT" in msg:
        return f"{provider_name} request timed out"
    return f"{provider_name} failed: " + msg[:ERROR_DETAIL_CHARS]
