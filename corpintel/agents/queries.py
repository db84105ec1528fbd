# corpintel/agents/queries.py
"""
Search query generation.

Builds the fixed query sets issued to the search provider. Queries lean on exact
phrases, press-wire `site:` restrictions and announcement verbs so that fewer
generic or invented pages come back in the first place; the credibility scorer
handles whatever still slips through.

Competitor names and domains are always passed in by the caller (see
corpintel.config.cfg.COMPETITORS); nothing here keeps its own list.
"""

from __future__ import annotations
import datetime
from typing import Dict, List, Optional, Sequence

PRESS_WIRE_DOMAINS = ["businesswire.com", "prnewswire.com"]

# Verbs used in real customer / partner announcements
ANNOUNCEMENT_VERBS = ["announces", "selects", "partners", "deploys", "implements"]

LEADERSHIP_VERBS = ["appoints", "appointed", "names", "named", "promotes", "promoted", "hires", "hired", "joins"]
LEADERSHIP_TITLES = ["CEO", "CFO", "CTO", "COO", "CMO", '"Chief"', "President", '"Vice President"', "Director", "Executive"]


def _quote(s: str) -> str:
    return '"' + s.strip().replace('"', "") + '"'


def generate_competitor_search_queries(company_name: str,
                                       competitor_name: str,
                                       competitor_domains: Optional[Sequence[str]] = None) -> List[str]:
    """
    Ordered, most reliable first: press-wire restricted, then verb-anchored
    announcements, then one `site:` query per competitor domain.
    """
    company = _quote(company_name)
    competitor = _quote(competitor_name)

    wires = " OR ".join(f"site:{d}" for d in PRESS_WIRE_DOMAINS)
    queries = [f"{competitor} {company} {wires}"]
    queries.extend(f"{competitor} {verb} {company}" for verb in ANNOUNCEMENT_VERBS)

    for domain in competitor_domains or []:
        queries.append(
            f"{company} site:{domain} "
            "(customer OR partner OR case study OR announcement OR press release OR deploys OR selects OR chooses)"
        )
    return queries


def build_company_queries(company_name: str, year: Optional[int] = None) -> Dict[str, str]:
    """Section name -> query for the standard company research fan-out."""
    name = company_name.strip()
    year = year or datetime.date.today().year
    return {
        "news": f"{name} latest news technology AI developments",
        "case_studies": f"{name} case study customer success story",
        "info": f"{name} company overview business strategy recent developments",
        "investor_docs": f"{name} investor relations SEC filing annual report 10-K",
        "leadership": (
            f"{_quote(name)} ({' OR '.join(LEADERSHIP_VERBS)}) ({' OR '.join(LEADERSHIP_TITLES)}) "
            f"{year - 2}..{year}"
        ),
    }
