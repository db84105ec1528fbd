# corpintel/agents/leadership.py
"""
Leadership-change extraction.

Turns news / press-release hits into structured LeadershipChange records
(person, role, change type, optional date and previous role) using pattern
matching over the headline and the first few hundred characters of the body.

Primary function:
    extract_leadership_changes(articles, company_name, exclude_names=()) -> List[LeadershipChange]

Callers must run drop_job_listings() first; job boards and career pages read like
appointments ("Acme hires a Director of ...") but are not news.

Extraction is best-effort: an article that matches nothing, or whose person/role
pair does not validate, simply yields no event.
"""

from __future__ import annotations
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union
from urllib.parse import urlparse

from dateutil import parser as dateparser

from corpintel.models import LeadershipChange, SearchResult

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

LEAD_CHARS = 600
MAX_EVENTS = 10
MAX_ROLE_WORDS = 10
JOB_URL_MARKERS = ("career", "job", "linkedin.com/jobs")

# Verb stems -> change type. Order matters only for readability; stems are disjoint.
VERB_FAMILIES = {
    "appointed": ("appoint", "name", "hire", "hiring", "join", "rejoin", "welcome", "tap", "elect"),
    "promoted": ("promot", "elevat"),
    "departed": ("step", "stepped", "resign", "retir", "depart", "leav", "left", "exit"),
    "expanded_role": ("add", "assum", "take", "took", "expand"),
}

EXEC_TITLE = re.compile(
    r"\b(?:CEO|CFO|CTO|COO|CMO|CIO|CISO|CRO|CPO|CHRO|CDO|CCO|SVP|EVP|VP|"
    r"president|vice[\s-]president|director|chief|chair(?:man|woman|person)?|head|"
    r"general\s+counsel|treasurer|secretary|executive|officer|board)\b",
    re.IGNORECASE,
)

# Capitalised words that start titles or headlines, never a person's name
_NAME_STOPWORDS = [
    "Chief", "Vice", "President", "Senior", "Executive", "Director", "Head", "General", "Managing",
    "Interim", "New", "Former", "Its", "The", "As", "To", "And", "Of", "Board", "Officer", "Chairman",
    "Appoints", "Names", "Named", "Promotes", "Promoted", "Hires", "Hired", "Joins", "Welcomes",
    "Announces", "Steps", "Resigns", "Retires", "Departs", "Leaves", "Adds", "Assumes", "Taps", "Elects",
]
_CORPORATE_WORDS = {
    "inc", "corp", "corporation", "company", "group", "holdings", "ltd", "llc", "plc", "bank",
    "technologies", "technology", "partners", "capital", "systems", "software", "labs", "global",
    "international", "financial", "services", "securities", "solutions", "news", "press", "release",
}

_STOP = r"(?!(?:" + "|".join(_NAME_STOPWORDS) + r")\b)"
_TOKEN = r"(?:[A-Z]'[A-Z][a-z]+|[A-Z][a-zA-Z]*[a-z](?:-[A-Z][a-z]+)?)"
NAME = rf"(?P<name>{_STOP}{_TOKEN}(?:\s+[A-Z]\.)?(?:\s+{_STOP}{_TOKEN}){{1,2}})"
ROLE = r"(?P<role>[^.;:\n()|,\"“”]{2,120})"
_ROLE_LEAD = r"(?:(?i:the\s+(?:role|position)\s+of)\s+)?(?:(?i:its|the|our)\s+)?(?:(?i:new)\s+)?"
_PROMOTED_FROM = r"(?:(?i:from)\s+(?P<prev>[^.;:\n(),|]{2,60}?)\s+(?i:to)\s+)?"
_AS_OR_TO = r"(?:(?i:as|to)\s+)?"
_AUX = r"(?:(?i:has\s+been|have\s+been|was|is|will\s+be|to\s+be|to|will|has|have)\s+)?"
_TITLE_PREFIX = (
    r"(?P<role>\b(?:CEO|CFO|CTO|COO|CMO|CIO|CISO|CRO|CHRO|President|Chair(?:man|woman)?|"
    r"Chief\s+[A-Z][a-z]+\s+Officer))"
)

LEADERSHIP_PATTERNS = [
    # "Acme appoints Jane Doe as CFO", "Acme announces the appointment of Jane Doe as CFO"
    re.compile(
        r"(?P<verb>(?i:appoints|names|hires|welcomes|taps|elects|promotes|elevates|"
        r"appointment\s+of|promotion\s+of|hiring\s+of))\s+"
        + NAME + r"\s*,?\s+" + _PROMOTED_FROM + _AS_OR_TO + _ROLE_LEAD + ROLE
    ),
    # "Jane Doe has been appointed Chief Financial Officer"
    re.compile(
        NAME + r"\s*,?\s+" + _AUX
        + r"(?P<verb>(?i:appointed|named|promoted|elevated|elected|hired|tapped))\s+"
        + _PROMOTED_FROM + _AS_OR_TO + _ROLE_LEAD + ROLE
    ),
    # "Jane Doe joins Acme as Chief Revenue Officer"
    re.compile(
        NAME + r"\s+(?P<verb>(?i:joins|joined|rejoins|to\s+join|will\s+join))\s+"
        r"(?:[^,.;:\n]{0,60}?\s)?(?i:as)\s+" + _ROLE_LEAD + ROLE
    ),
    # "Jane Doe steps down as CEO", "Jane Doe to retire from her role as President"
    re.compile(
        NAME + r"\s*,?\s+" + _AUX
        + r"(?P<verb>(?i:steps\s+down|stepped\s+down|step\s+down|resigns|resigned|resign|retires|retired|"
        r"retire|departs|departed|depart|leaves|left|leave|exits|exited|exit))\s+(?i:as|from)\s+"
        r"(?:(?i:his|her|their|the|its)\s+)?(?:(?i:role|position|post)\s+(?i:as|of)\s+)?" + ROLE
    ),
    # "Acme CFO Jane Doe to step down"
    re.compile(
        _TITLE_PREFIX + r"\s+" + NAME + r"\s*,?\s+" + _AUX
        + r"(?P<verb>(?i:steps\s+down|stepped\s+down|step\s+down|resigns|resigned|retires|retired|retire|"
        r"departs|departed|depart|leaves|exits))\b"
    ),
    # "Jane Doe adds role of Chief Operating Officer", "Jane Doe assumes additional role as COO"
    re.compile(
        NAME + r"\s+" + _AUX
        + r"(?P<verb>(?i:adds|add|added|assumes|assume|assumed|takes\s+on|take\s+on|took\s+on|"
        r"expands\s+role|expanded\s+role))\s+(?:(?i:to\s+include)\s+)?(?:(?i:the)\s+)?"
        r"(?:(?i:additional|expanded|new)\s+)?(?:(?i:role|title|position|responsibilities)\s+(?:(?i:of|as)\s+)?)?"
        + ROLE
    ),
]

_ROLE_CUT = re.compile(
    r"\s+(?:effective|who|after|following|succeeding|replacing|and|at|to|as|in|on|from|with|amid|"
    r"alongside|starting|beginning|where|while|since|for|today|immediately)\b.*$"
    r"|\s*[—–]\s*.*$|\s+-\s+.*$",
    re.IGNORECASE,
)
_ROLE_TRAILING = re.compile(r"\s+(?:role|title|position|post|responsibilities)$", re.IGNORECASE)
_ROLE_LEADING = re.compile(r"^(?:its|the|our|a|an)\s+", re.IGNORECASE)
_ROLE_REJECT_LEADING = re.compile(r"^(?:former|previous|ex-)", re.IGNORECASE)

_PREVIOUS_ROLE = re.compile(
    r"(?:previously|formerly|most\s+recently)\s+(?:served\s+as\s+|was\s+|as\s+)?(?P<role>[^.;:\n()|,]{2,80})",
    re.IGNORECASE,
)
PREVIOUS_ROLE_WINDOW = 300

_MONTHS = (
    r"(?:january|february|march|april|may|june|july|august|september|october|november|december"
    r"|jan|feb|mar|apr|jun|jul|aug|sept?|oct|nov|dec)\.?"
)
_DATE_PATTERNS = [
    (re.compile(r"\b" + _MONTHS + r"\s+\d{1,2},?\s+20\d{2}\b", re.IGNORECASE), "%Y-%m-%d"),
    (re.compile(r"\b20\d{2}-\d{2}-\d{2}\b"), "%Y-%m-%d"),
    (re.compile(r"\b" + _MONTHS + r"\s+20\d{2}\b", re.IGNORECASE), "%Y-%m"),
]


def drop_job_listings(articles: Iterable[Union[SearchResult, Dict[str, Any]]]) -> List[Union[SearchResult, Dict[str, Any]]]:
    """Remove career pages and job-board hits (URL substring check)."""
    kept = []
    for a in articles or []:
        url = (_field(a, "url") or "").lower()
        if any(marker in url for marker in JOB_URL_MARKERS):
            continue
        kept.append(a)
    return kept


def _field(article: Any, name: str) -> str:
    if isinstance(article, dict):
        value = article.get(name)
        if value is None and name == "content":
            value = article.get("description") or article.get("snippet")
        return str(value or "")
    return str(getattr(article, name, "") or "")


def source_host(url: str) -> str:
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        return "Source"
    return host[4:] if host.startswith("www.") else (host or "Source")


def _classify_verb(verb: str) -> Optional[str]:
    v = re.sub(r"\s+", " ", verb.strip().lower())
    for prefix in ("to ", "will "):
        if v.startswith(prefix):
            v = v[len(prefix):]
    for change_type, stems in VERB_FAMILIES.items():
        if any(v.startswith(stem) for stem in stems):
            return change_type
    return None


def _clean_role(role: Optional[str], company_name: str = "") -> Optional[str]:
    if not role:
        return None
    r = re.sub(r"\s+", " ", role).strip()
    if company_name:
        r = re.sub(r"\s+(?:of|at)\s+" + re.escape(company_name.strip()) + r".*$", "", r, flags=re.IGNORECASE)
    r = _ROLE_CUT.sub("", r)
    r = _ROLE_LEADING.sub("", r)
    r = _ROLE_TRAILING.sub("", r).strip(" -")
    if not r or _ROLE_REJECT_LEADING.match(r):
        return None
    if len(r.split()) > MAX_ROLE_WORDS or not EXEC_TITLE.search(r):
        return None
    return r


def _valid_person_name(name: str, company_name: str, exclude_names: Sequence[str]) -> bool:
    tokens = name.split()
    if not 2 <= len(tokens) <= 4:
        return False
    lowered = [t.lower().strip(".") for t in tokens]
    if any(t in _CORPORATE_WORDS for t in lowered):
        return False
    name_lower = name.lower()
    company_lower = (company_name or "").lower().strip()
    if company_lower:
        company_tokens = {t for t in re.split(r"[^a-z0-9]+", company_lower) if len(t) > 2}
        if company_lower in name_lower or any(t in company_tokens for t in lowered):
            return False
    for other in exclude_names or ():
        other_tokens = set(other.lower().split())
        if other_tokens and (other_tokens <= set(lowered) or name_lower == other.lower().strip()):
            return False
    return True


def _extract_date(text: str) -> Optional[str]:
    for pattern, fmt in _DATE_PATTERNS:
        m = pattern.search(text)
        if not m:
            continue
        try:
            return dateparser.parse(m.group(0)).strftime(fmt)
        except (ValueError, OverflowError):
            continue
    return None


def _previous_role(text: str, start: int, company_name: str) -> Optional[str]:
    m = _PREVIOUS_ROLE.search(text[start:start + PREVIOUS_ROLE_WINDOW])
    return _clean_role(m.group("role"), company_name) if m else None


def _events_from_article(article: Any, company_name: str, exclude_names: Sequence[str]) -> List[LeadershipChange]:
    url = _field(article, "url")
    if not url:
        return []
    title = _field(article, "title")
    content = _field(article, "content")
    segments = [title, content[:LEAD_CHARS]]
    full_text = f"{title}\n{content}"
    article_date = _extract_date(full_text)

    events: List[LeadershipChange] = []
    for segment in segments:
        if not segment:
            continue
        for pattern in LEADERSHIP_PATTERNS:
            for m in pattern.finditer(segment):
                name = re.sub(r"\s+", " ", m.group("name")).strip()
                if not _valid_person_name(name, company_name, exclude_names):
                    continue
                change_type = _classify_verb(m.group("verb"))
                role = _clean_role(m.group("role"), company_name)
                if not change_type or not role:
                    continue
                groups = m.groupdict()
                previous = _clean_role(groups.get("prev"), company_name) or _previous_role(segment, m.end(), company_name)
                events.append(LeadershipChange(
                    person_name=name,
                    role=role,
                    change_type=change_type,
                    date=article_date,
                    previous_role=previous,
                    source_url=url,
                    source=source_host(url),
                ))
    return events


def extract_leadership_changes(articles: Iterable[Union[SearchResult, Dict[str, Any]]],
                               company_name: str,
                               exclude_names: Sequence[str] = ()) -> List[LeadershipChange]:
    """
    Extract leadership changes from pre-filtered articles ({title, url, content}).

    exclude_names: organisation names (e.g. configured competitors) that must never
    be reported as a person.

    Returns at most MAX_EVENTS events, one per person, in article order. Returns []
    when nothing is confidently extracted; never raises.
    """
    out: List[LeadershipChange] = []
    seen = set()
    for article in articles or []:
        try:
            events = _events_from_article(article, company_name or "", exclude_names)
        except Exception as e:
            logger.debug("Leadership extraction failed for %s: %s", _field(article, "url"), e)
            continue
        for ev in events:
            key = ev.person_name.lower()
            if key in seen:
                continue
            seen.add(key)
            out.append(ev)
            if len(out) >= MAX_EVENTS:
                logger.info("Leadership: extracted %d events (capped) for %s", len(out), company_name)
                return out
    logger.info("Leadership: extracted %d events for %s", len(out), company_name)
    return out
