# corpintel/agents/analyze.py
"""
corpintel/agents/analyze.py

Purpose
-------
Ask an LLM for a corporate intelligence profile of one company and parse the
tagged-section answer into a CompanyAnalysis.

Primary functions:
    build_analysis_prompt(company_name) -> str
    parse_tagged_analysis(text, company_name) -> CompanyAnalysis
    analyze_company(company_name, provider=None, model=None) -> {"analysis", "provider", "model"}

Answer format
-------------
Each section is wrapped in [TAG] ... [/TAG]. Row sections are pipe-delimited
("Title | URL | Summary"), list sections are numbered, QUICK_FACTS is
"Key: Value" per line. Missing or malformed sections yield empty fields; the
parser never raises on LLM output.
"""

from __future__ import annotations
import logging
import re
from typing import Any, Dict, List, Optional

from corpintel.models import (
    CompanyAnalysis,
    LeadershipChange,
    LinkItem,
    MAActivity,
    Regulator,
    RegulatoryEvent,
)
from corpintel.services.llm_client import call_llm

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

# Tunables
ANALYSIS_TEMPERATURE = 0.2
ANALYSIS_MAX_TOKENS = 8192
ANALYSIS_TIMEOUT_SECS = 90

SENTIMENTS = ("BULLISH", "BEARISH", "MIXED", "NEUTRAL")
CHANGE_TYPES = ("appointed", "promoted", "departed", "expanded_role")

_SECTION_RE = re.compile(r"\[(?P<tag>[A-Z_]+)\](?P<body>.*?)\[/(?P=tag)\]", re.S)
_NUMBERED_RE = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s*")
_URL_RE = re.compile(r"^https?://\S+$", re.I)
_PLACEHOLDERS = {"", "n/a", "na", "none", "unknown", "not found", "not available", "null", "-"}

SYSTEM_PROMPT = "You are a corporate intelligence analyst. Be factual; leave a section empty rather than guess."


def build_analysis_prompt(company_name: str) -> str:
    c = company_name.strip()
    return f"""
Analyze "{c}" and provide comprehensive, current information.

Return your analysis in the following EXACT format with tags:

[SUMMARY]
Exactly 4 sentences on the company's core activities, market position and recent developments.
[/SUMMARY]

[SENTIMENT]
One word only: BULLISH, BEARISH, MIXED or NEUTRAL, based on recent news and market perception.
[/SENTIMENT]

[QUICK_FACTS]
Employee Count: <number or estimate>
Headquarters: <location>
Industry: <primary industry>
Founded: <year>
CEO: <name>
Market Cap: <value if public, or "Private">
[/QUICK_FACTS]

[INVESTOR_DOCS]
Latest 10-K | <URL if found> | <key highlights>
Latest Investor Presentation | <URL if found> | <key highlights>
[/INVESTOR_DOCS]

[KEY_PRIORITIES]
1. <priority>   (5 strategic priorities from executive communications)
[/KEY_PRIORITIES]

[GROWTH_INITIATIVES]
1. <initiative>   (5 growth initiatives)
[/GROWTH_INITIATIVES]

[TECH_NEWS]
Up to 10 AI/technology news items about {c} from the past month, one per line:
Title | URL | Brief summary
[/TECH_NEWS]

[CASE_STUDIES]
Up to 5 case studies HOSTED BY other technology companies where {c} is a customer or partner
(not pages on {c}'s own website), one per line:
Vendor: Title | URL | Summary
[/CASE_STUDIES]

[COMPLIANCE_VENDORS]
Compliance, archiving, e-discovery or communications surveillance vendors {c} may use or partner with.
Real, named companies only; one name per line; leave empty if none.
[/COMPLIANCE_VENDORS]

[LEADERSHIP_CHANGES]
Leadership changes in the past 12 months, one per line:
Name | New Role | Change Type (appointed/promoted/departed/expanded_role) | Date | Previous Role | Source URL
[/LEADERSHIP_CHANGES]

[MA_ACTIVITY]
Only verified, publicly announced deals from the past 10 years with REAL counterparties; leave empty otherwise.
Year | Type (Acquisition/Merger/Divestiture) | Target/Partner | Deal Value | Strategic Rationale
[/MA_ACTIVITY]

[REGULATORY_LANDSCAPE]
Every regulatory body that oversees or interacts with {c} given its industry and jurisdictions. Must not be empty.
Short name or acronym | Relationship context | Regulator homepage URL
[/REGULATORY_LANDSCAPE]

[REGULATORY_EVENTS]
Enforcement actions, fines, settlements, consent orders or investigations involving {c} in the past 5 years.
Real events with verifiable sources only.
Date (YYYY-MM or YYYY) | Regulatory Body | Event Type (fine/penalty/settlement/enforcement/investigation/consent/order) | Amount | Description | Source URL
[/REGULATORY_EVENTS]

[SOURCES]
All source URLs used, one per line.
[/SOURCES]
""".strip()


def _sections(text: str) -> Dict[str, str]:
    return {m.group("tag"): m.group("body").strip() for m in _SECTION_RE.finditer(text or "")}


def _lines(body: Optional[str]) -> List[str]:
    return [ln.strip() for ln in (body or "").splitlines() if ln.strip()]


def _blank(value: Optional[str]) -> bool:
    v = (value or "").strip()
    # unfilled template slots: "[year]", "<URL if found>"
    if v[:1] in ("[", "<") and v[-1:] in ("]", ">"):
        return True
    return v.lower() in _PLACEHOLDERS


def _opt(value: Optional[str]) -> Optional[str]:
    return None if _blank(value) else value.strip()


def _url(value: Optional[str]) -> Optional[str]:
    v = (value or "").strip().strip("<>")
    return v if _URL_RE.match(v) else None


def _rows(body: Optional[str], min_cols: int) -> List[List[str]]:
    out = []
    for ln in _lines(body):
        cols = [c.strip() for c in _NUMBERED_RE.sub("", ln).split("|")]
        if len(cols) >= min_cols and not _blank(cols[0]):
            out.append(cols + [""] * (6 - len(cols)))
    return out


def _numbered(body: Optional[str]) -> List[str]:
    items = []
    for ln in _lines(body):
        item = _NUMBERED_RE.sub("", ln).strip()
        if item and not item.endswith(":") and not _blank(item):
            items.append(item)
    return items


def _quick_facts(body: Optional[str]) -> Dict[str, str]:
    facts = {}
    for ln in _lines(body):
        key, sep, value = ln.partition(":")
        if sep and key.strip() and not _blank(value):
            facts[key.strip()] = value.strip()
    return facts


def _sentiment(body: Optional[str]) -> str:
    words = (body or "").upper().split()
    word = words[0].strip(".*") if words else ""
    return word if word in SENTIMENTS else "NEUTRAL"


def _link_items(body: Optional[str], with_vendor: bool = False) -> List[LinkItem]:
    items = []
    for cols in _rows(body, 1):
        title, vendor = cols[0], None
        if with_vendor and ":" in title:
            vendor, _, rest = title.partition(":")
            vendor, title = vendor.strip() or None, rest.strip() or title
        items.append(LinkItem(title=title, url=_url(cols[1]) or "", summary=cols[2], vendor=vendor))
    return items


def _leadership(body: Optional[str]) -> List[LeadershipChange]:
    out = []
    for cols in _rows(body, 2):
        name, role = cols[0], cols[1]
        if _blank(role):
            continue
        change_type = cols[2].strip().lower().replace(" ", "_")
        out.append(LeadershipChange(
            person_name=name,
            role=role,
            change_type=change_type if change_type in CHANGE_TYPES else "appointed",
            date=_opt(cols[3]),
            previous_role=_opt(cols[4]),
            source_url=_url(cols[5]) or "",
        ))
    return out


def _ma_activity(body: Optional[str]) -> List[MAActivity]:
    return [
        MAActivity(year=cols[0], deal_type=cols[1], target=cols[2], deal_value=_opt(cols[3]), rationale=cols[4])
        for cols in _rows(body, 3)
        if not _blank(cols[2])
    ]


def _regulators(body: Optional[str]) -> List[Regulator]:
    return [Regulator(body=cols[0], context=cols[1], url=_url(cols[2])) for cols in _rows(body, 1)]


def _regulatory_events(body: Optional[str]) -> List[RegulatoryEvent]:
    out = []
    for cols in _rows(body, 2):
        if _blank(cols[1]):
            continue
        out.append(RegulatoryEvent(
            date=cols[0],
            regulatory_body=cols[1],
            event_type=(cols[2] or "other").lower(),
            amount=_opt(cols[3]),
            description=cols[4],
            url=_url(cols[5]),
        ))
    return out


def parse_tagged_analysis(text: str, company_name: str) -> CompanyAnalysis:
    """Parse an LLM answer in the tagged-section format. Unknown tags are ignored."""
    s = _sections(text)
    sources = []
    for ln in _lines(s.get("SOURCES")):
        u = _url(_NUMBERED_RE.sub("", ln))
        if u and u not in sources:
            sources.append(u)

    return CompanyAnalysis(
        company_name=company_name.strip(),
        summary=" ".join((s.get("SUMMARY") or "").split()),
        sentiment=_sentiment(s.get("SENTIMENT")),
        quick_facts=_quick_facts(s.get("QUICK_FACTS")),
        investor_docs=_link_items(s.get("INVESTOR_DOCS")),
        key_priorities=_numbered(s.get("KEY_PRIORITIES")),
        growth_initiatives=_numbered(s.get("GROWTH_INITIATIVES")),
        tech_news=_link_items(s.get("TECH_NEWS")),
        case_studies=_link_items(s.get("CASE_STUDIES"), with_vendor=True),
        compliance_vendors=_numbered(s.get("COMPLIANCE_VENDORS")),
        leadership_changes=_leadership(s.get("LEADERSHIP_CHANGES")),
        ma_activity=_ma_activity(s.get("MA_ACTIVITY")),
        regulatory_landscape=_regulators(s.get("REGULATORY_LANDSCAPE")),
        regulatory_events=_regulatory_events(s.get("REGULATORY_EVENTS")),
        sources=sources,
    )


def analyze_company(company_name: str,
                    provider: Optional[str] = None,
                    model: Optional[str] = None) -> Dict[str, Any]:
    """
    Run the analysis prompt through call_llm. Provider errors propagate so the
    API layer can map them to user-facing messages.
    """
    if not (company_name or "").strip():
        raise ValueError("company_name is required")
    resp = call_llm(
        build_analysis_prompt(company_name),
        provider=provider,
        model=model,
        system=SYSTEM_PROMPT,
        max_tokens=ANALYSIS_MAX_TOKENS,
        temperature=ANALYSIS_TEMPERATURE,
        timeout=ANALYSIS_TIMEOUT_SECS,
    )
    text = resp.get("text", "") if isinstance(resp, dict) else str(resp)
    analysis = parse_tagged_analysis(text, company_name)
    if not analysis.summary:
        logger.warning("Analysis for %s has no SUMMARY section (%d chars returned)", company_name, len(text))
    return {"analysis": analysis, "provider": resp.get("provider"), "model": resp.get("model")}
