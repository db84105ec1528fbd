# corpintel/agents/credibility.py
"""
Result credibility scoring.

Purpose:
Take raw web search hits (title / url / content, optional vendor relevance score)
and assign each an integer confidence so that hallucinated or generic pages can be
dropped before they reach the report. Everything here is offline: no page fetches,
no network validation, so it runs the same inside a restricted serverless worker.

Score composition (each dimension bounded independently, then summed):
    confidence = BASE_SCORE
               + vendor_score * VENDOR_WEIGHT
               + clamp(url_score, +-DIMENSION_CAP)
               + clamp(content_score, +-DIMENSION_CAP)
               + cross_reference_score            (0..CROSS_REF_CAP)

The URL and content heuristics live in URL_RULES / CONTENT_RULES: one ScoringRule
per signal, with its point delta and the matcher that triggers it. Tune a signal by
editing its row.

Public API:
    score_results(results, company_name, competitor_name=None, options=None)
        -> every result, scored, in input order (rejected ones flagged)
    score_and_filter_results(results, company_name, competitor_name=None, options=None)
        -> accepted results only, sorted by confidence desc, truncated to max_results
"""

from __future__ import annotations
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import urlparse

from corpintel.models import ScoredResult, ScoringOptions, SearchResult

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

# Composition constants
BASE_SCORE = 50
VENDOR_WEIGHT = 20
URL_SCORE_RANGE = (-50, 50)
CONTENT_SCORE_RANGE = (-50, 50)
DIMENSION_CAP = 30
CROSS_REF_CAP = 30
CROSS_REF_POINTS = 5
GENERIC_PAGE_VETO = -40
UNVERIFIED_BAND = 15

MIN_CONTENT_CHARS = 50
SHORT_CONTENT_SCORE = -30
INVALID_URL_SCORE = -50
GENERIC_LISTING_SCORE = -50
INDEX_PAGE_SCORE = -30
UNGROUNDED_PENALTY = -20
COOCCURRENCE_WINDOW = 200

# Paths that enumerate many items rather than describe one fact
REJECT_URL_PATTERNS = [
    re.compile(r"/customers?/?$"),
    re.compile(r"/clients?/?$"),
    re.compile(r"/case-stud(y|ies)/?$"),
    re.compile(r"/partners?/?$"),
    re.compile(r"/resources?/?$"),
    re.compile(r"/integrations?/?$"),
    re.compile(r"/solutions?/?$"),
    re.compile(r"/testimonials?/?$"),
    re.compile(r"/(news|blog|press)/?$"),
    re.compile(r"/industries?/?$"),
    re.compile(r"/success-stories?/?$"),
]

TRUSTED_NEWS_DOMAINS = [
    "reuters.com",
    "businesswire.com",
    "prnewswire.com",
    "globenewswire.com",
    "bloomberg.com",
    "wsj.com",
    "ft.com",
    "cnbc.com",
    "marketwatch.com",
    "sec.gov",
    "finra.org",
]

# Copy that shows up in generic or fabricated vendor blurbs
HALLUCINATION_PHRASES = [
    "leading provider of",
    "leading provider in",
    "trusted by",
    "helps organizations",
    "enables companies",
    "comprehensive solution",
    "industry-leading",
    "best-in-class",
    "world-class",
    "cutting-edge",
    "state-of-the-art",
    "innovative solution",
    "enterprise-grade",
    "mission-critical",
    "next-generation",
    "seamless integration",
    "end-to-end",
    "robust platform",
    "scalable solution",
]

_MONTHS = (
    r"(?:january|february|march|april|may|june|july|august|september|october|november|december"
    r"|jan|feb|mar|apr|jun|jul|aug|sept?|oct|nov|dec)\.?"
)

GROUNDING_PATTERNS = {
    "specific_date": re.compile(r"\b" + _MONTHS + r"\s+\d{1,2},?\s*20\d{2}\b", re.IGNORECASE),
    "year_only": re.compile(r"\b20(?:2[0-9]|1\d)\b"),
    "dollar_amount": re.compile(r"\$[\d,]+(?:\.\d+)?\s*(?:million|billion|m|b|k)?", re.IGNORECASE),
    "direct_quote": re.compile(r"\"[^\"]{15,}\"|“[^”]{15,}”"),
    "executive_attribution": re.compile(
        r"\b(?:CEO|CFO|CTO|COO|CIO|CISO|President|Vice President|VP|Director|Manager)\b"
        r"[^.]*\b(?:said|stated|announced|commented|noted|explained)",
        re.IGNORECASE,
    ),
    "percentage_metric": re.compile(r"\d+(?:\.\d+)?%"),
    "specific_number": re.compile(
        r"\b\d{2,}\s+(?:customers?|clients?|employees?|users?|companies|organizations)", re.IGNORECASE
    ),
}

_YEAR_IN_PATH = re.compile(r"(?<!\d)20(?:2[0-9]|1\d)(?!\d)")
_TEMPLATE_PATH_MARKERS = ("/category/", "/tag/", "/page/")
_DOCUMENT_PATH_MARKERS = ("/documents/", "/filings/")
_WORD_SPLIT = re.compile(r"\s+")


@dataclass(frozen=True)
class ScoringRule:
    """
    One row of the scoring table.

    matcher returns a hit count (a bool counts as 0/1); the rule contributes
    points * hits. grounding=False keeps a positive rule from counting as a
    grounding signal for the ungrounded-content penalty.
    """
    name: str
    points: int
    matcher: Callable[[Any], int]
    grounding: bool = True


@dataclass
class _UrlView:
    hostname: str
    path: str
    parts: List[str]
    company_slugs: Tuple[str, ...] = ()


@dataclass
class _ContentView:
    content: str
    combined_lower: str
    entity_distance: Optional[int] = None
    matched: Dict[str, bool] = field(default_factory=dict)


def _is_trusted_domain(hostname: str) -> bool:
    return any(hostname == d or hostname.endswith("." + d) for d in TRUSTED_NEWS_DOMAINS)


def _has_long_slug(u: _UrlView) -> bool:
    return any(len(p) > 15 for p in u.parts)


URL_RULES: List[ScoringRule] = [
    ScoringRule("trusted_news_domain", 25, lambda u: _is_trusted_domain(u.hostname)),
    ScoringRule(
        "document_path", 15,
        lambda u: u.path.endswith(".pdf") or any(m in u.path for m in _DOCUMENT_PATH_MARKERS),
    ),
    ScoringRule("dated_path", 10, lambda u: bool(_YEAR_IN_PATH.search(u.path))),
    ScoringRule("specific_slug", 20, lambda u: len(u.parts) >= 3 and _has_long_slug(u)),
    ScoringRule("deep_path", 10, lambda u: len(u.parts) >= 3 and not _has_long_slug(u)),
    ScoringRule("company_in_path", 15, lambda u: any(s in u.path for s in u.company_slugs)),
    ScoringRule("listing_template_path", -15, lambda u: any(m in u.path for m in _TEMPLATE_PATH_MARKERS)),
]


def _pattern_rule(name: str, points: int) -> ScoringRule:
    pattern = GROUNDING_PATTERNS[name]
    return ScoringRule(name, points, lambda c: bool(pattern.search(c.content)))


CONTENT_RULES: List[ScoringRule] = [
    ScoringRule("marketing_phrase", -10, lambda c: sum(1 for p in HALLUCINATION_PHRASES if p in c.combined_lower)),
    _pattern_rule("specific_date", 20),
    # bare year only counts when no full date was found
    ScoringRule(
        "year_only", 5,
        lambda c: not c.matched.get("specific_date") and bool(GROUNDING_PATTERNS["year_only"].search(c.content)),
    ),
    _pattern_rule("dollar_amount", 15),
    _pattern_rule("direct_quote", 20),
    _pattern_rule("executive_attribution", 15),
    _pattern_rule("percentage_metric", 10),
    _pattern_rule("specific_number", 10),
    ScoringRule(
        "entity_cooccurrence", 25,
        lambda c: c.entity_distance is not None and c.entity_distance < COOCCURRENCE_WINDOW,
    ),
    ScoringRule(
        "entity_mentions", 10,
        lambda c: c.entity_distance is not None and c.entity_distance >= COOCCURRENCE_WINDOW,
        grounding=False,
    ),
]


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _company_slugs(company_name: Optional[str]) -> Tuple[str, ...]:
    if not company_name:
        return ()
    lower = company_name.lower()
    slug = re.sub(r"[^a-z0-9]+", "-", lower).strip("-")
    short_slug = re.sub(r"[^a-z0-9]+", "", lower)
    return tuple(s for s in (slug, short_slug) if s)


def _parse_url(url: str) -> Optional[Tuple[str, str]]:
    """Return (hostname, path) lowercased, or None if the URL is unusable."""
    try:
        parsed = urlparse((url or "").strip())
        hostname = parsed.hostname
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not hostname:
        return None
    return hostname.lower(), (parsed.path or "/").lower()


def calculate_url_score(url: str, company_name: Optional[str] = None) -> Tuple[int, Optional[str], List[str]]:
    """
    URL quality score in URL_SCORE_RANGE.
    Returns (score, rejection_reason, matched_rule_names).
    """
    parsed = _parse_url(url)
    if parsed is None:
        return INVALID_URL_SCORE, "Invalid URL", []
    hostname, path = parsed

    for pattern in REJECT_URL_PATTERNS:
        if pattern.search(path):
            return GENERIC_LISTING_SCORE, f"Generic listing page: {path}", []

    parts = [p for p in path.split("/") if p]
    if len(parts) <= 1:
        return INDEX_PAGE_SCORE, "URL path too short (likely index page)", []

    view = _UrlView(hostname=hostname, path=path, parts=parts, company_slugs=_company_slugs(company_name))
    score = 0
    matched: List[str] = []
    for rule in URL_RULES:
        hits = int(rule.matcher(view))
        if hits:
            score += rule.points * hits
            matched.append(rule.name)
    return int(_clamp(score, *URL_SCORE_RANGE)), None, matched


def _entity_distance(content: str, company_name: str, competitor_name: Optional[str]) -> Optional[int]:
    if not competitor_name or not company_name:
        return None
    lower = content.lower()
    company_idx = lower.find(company_name.lower())
    competitor_idx = lower.find(competitor_name.lower())
    if company_idx == -1 or competitor_idx == -1:
        return None
    return abs(company_idx - competitor_idx)


def calculate_content_score(content: str,
                            title: str,
                            company_name: str,
                            competitor_name: Optional[str] = None) -> Tuple[int, Optional[str], List[str]]:
    """
    Content quality score in CONTENT_SCORE_RANGE.
    Returns (score, rejection_reason, matched_rule_names).
    """
    if not content or len(content) < MIN_CONTENT_CHARS:
        return SHORT_CONTENT_SCORE, "Content too short", []

    view = _ContentView(
        content=content,
        combined_lower=f"{title or ''} {content}".lower(),
        entity_distance=_entity_distance(content, company_name, competitor_name),
    )
    score = 0
    positive_signals = 0
    negative_signals = 0
    matched: List[str] = []
    for rule in CONTENT_RULES:
        hits = int(rule.matcher(view))
        view.matched[rule.name] = hits > 0
        if not hits:
            continue
        score += rule.points * hits
        matched.append(rule.name)
        if rule.points < 0:
            negative_signals += hits
        elif rule.grounding:
            positive_signals += 1

    if positive_signals == 0 and negative_signals >= 2:
        score += UNGROUNDED_PENALTY
        matched.append("ungrounded_marketing_copy")

    return int(_clamp(score, *CONTENT_SCORE_RANGE)), None, matched


def _hostname(url: str) -> Optional[str]:
    parsed = _parse_url(url)
    return parsed[0] if parsed else None


def calculate_cross_reference_score(result: SearchResult, all_results: List[SearchResult]) -> int:
    """Corroboration from the rest of the batch, 0..CROSS_REF_CAP."""
    score = 0
    result_host = _hostname(result.url)
    title_words = [w for w in _WORD_SPLIT.split((result.title or "").lower()) if len(w) > 4]

    for other in all_results:
        if other.url == result.url:
            continue

        if result_host and result_host == _hostname(other.url):
            score += CROSS_REF_POINTS

        other_title = (other.title or "").lower()
        other_content = (other.content or "").lower()
        matched_keywords = sum(1 for w in title_words if w in other_content or w in other_title)
        if matched_keywords >= 2:
            score += CROSS_REF_POINTS

    return min(CROSS_REF_CAP, score)


def _coerce_result(item: Union[SearchResult, Dict[str, Any]]) -> SearchResult:
    """Accept SearchResult models or raw search-vendor dicts."""
    if isinstance(item, SearchResult):
        # ScoredResult is a SearchResult; drop any earlier scoring
        return SearchResult(**item.model_dump(include={"title", "url", "content", "vendor_score"}))
    data = dict(item or {})
    raw_score = data.get("vendor_score", data.get("score"))
    try:
        vendor_score = _clamp(float(raw_score), 0.0, 1.0) if raw_score is not None else None
    except (TypeError, ValueError):
        vendor_score = None
    return SearchResult(
        title=str(data.get("title") or ""),
        url=str(data.get("url") or ""),
        content=str(data.get("content") or data.get("snippet") or data.get("description") or ""),
        vendor_score=vendor_score,
    )


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _coerce_options(options: Union[ScoringOptions, Dict[str, Any], None]) -> ScoringOptions:
    if options is None:
        return ScoringOptions()
    if isinstance(options, ScoringOptions):
        return options
    return ScoringOptions(**options)


def score_results(results: List[Union[SearchResult, Dict[str, Any]]],
                  company_name: str,
                  competitor_name: Optional[str] = None,
                  options: Union[ScoringOptions, Dict[str, Any], None] = None) -> List[ScoredResult]:
    """
    Score every result. Returns new ScoredResult objects in input order; inputs
    are never mutated.
    """
    opts = _coerce_options(options)
    batch = [_coerce_result(r) for r in results or []]
    scored: List[ScoredResult] = []

    for result in batch:
        vendor = (result.vendor_score or 0.0) * VENDOR_WEIGHT
        url_score, url_reason, url_signals = calculate_url_score(result.url, company_name)
        content_score, content_reason, content_signals = calculate_content_score(
            result.content, result.title, company_name, competitor_name
        )
        cross_ref = calculate_cross_reference_score(result, batch)

        capped_url = _clamp(url_score, -DIMENSION_CAP, DIMENSION_CAP)
        capped_content = _clamp(content_score, -DIMENSION_CAP, DIMENSION_CAP)
        confidence = _round_half_up(BASE_SCORE + vendor + capped_url + capped_content + cross_ref)

        rejection_reason: Optional[str] = None
        if url_score <= GENERIC_PAGE_VETO:
            rejection_reason = url_reason
        elif confidence < opts.min_confidence:
            rejection_reason = f"Low confidence: {confidence} (URL: {url_score}, Content: {content_score})"
            if content_reason:
                rejection_reason += f" - {content_reason}"

        rejected = rejection_reason is not None
        if opts.debug:
            logger.info("[credibility] %s", result.url)
            logger.info("  vendor=%.1f url=%s content=%s xref=%s signals=%s",
                        vendor, capped_url, capped_content, cross_ref, url_signals + content_signals)
            logger.info("  confidence=%s%s", confidence, f" REJECTED: {rejection_reason}" if rejected else "")

        scored.append(ScoredResult(
            **result.model_dump(),
            confidence=confidence,
            rejected=rejected,
            rejection_reason=rejection_reason,
            unverified=rejected or confidence < opts.min_confidence + UNVERIFIED_BAND,
            url_score=url_score,
            content_score=content_score,
            cross_ref_score=cross_ref,
            signals=url_signals + content_signals,
        ))

    return scored


def score_and_filter_results(results: List[Union[SearchResult, Dict[str, Any]]],
                             company_name: str,
                             competitor_name: Optional[str] = None,
                             options: Union[ScoringOptions, Dict[str, Any], None] = None) -> List[ScoredResult]:
    """
    Accepted results only, sorted by confidence (desc), at most options.max_results.
    Never raises on bad input: malformed URLs and thin content are rejected instead.
    """
    opts = _coerce_options(options)
    scored = score_results(results, company_name, competitor_name, opts)
    accepted = sorted((s for s in scored if not s.rejected), key=lambda s: s.confidence, reverse=True)
    if opts.debug:
        logger.info("[credibility] accepted %d/%d results for %s", len(accepted), len(scored), company_name)
    return accepted[:max(0, opts.max_results)]
