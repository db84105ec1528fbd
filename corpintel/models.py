from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any, Literal

ChangeType = Literal["appointed", "promoted", "departed", "expanded_role"]
Sentiment = Literal["BULLISH", "BEARISH", "MIXED", "NEUTRAL"]


class SearchResult(BaseModel):
    title: str = ""
    url: str
    content: str = ""
    vendor_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class ScoredResult(SearchResult):
    confidence: int
    rejected: bool = False
    rejection_reason: Optional[str] = None
    unverified: bool = False
    url_score: int = 0
    content_score: int = 0
    cross_ref_score: int = 0
    signals: List[str] = Field(default_factory=list)


class ScoringOptions(BaseModel):
    min_confidence: int = 60
    max_results: int = 10
    debug: bool = False


class LeadershipChange(BaseModel):
    person_name: str
    role: str
    change_type: ChangeType
    date: Optional[str] = None
    previous_role: Optional[str] = None
    source_url: str
    source: Optional[str] = None


class CompetitorMention(BaseModel):
    competitor_name: str
    mention_type: Literal["customer", "partner", "case_study", "press_release", "other"] = "other"
    title: str
    url: str
    summary: str = ""
    confidence: Optional[int] = None


class LinkItem(BaseModel):
    title: str
    url: str = ""
    summary: str = ""
    vendor: Optional[str] = None


class MAActivity(BaseModel):
    year: str
    deal_type: str
    target: str
    deal_value: Optional[str] = None
    rationale: str = ""


class Regulator(BaseModel):
    body: str
    context: str = ""
    url: Optional[str] = None


class RegulatoryEvent(BaseModel):
    date: str = "Recent"
    regulatory_body: str
    event_type: str = "other"
    amount: Optional[str] = None
    description: str = ""
    url: Optional[str] = None


class CompanyAnalysis(BaseModel):
    company_name: str
    summary: str = ""
    sentiment: Sentiment = "NEUTRAL"
    quick_facts: Dict[str, str] = Field(default_factory=dict)
    investor_docs: List[LinkItem] = Field(default_factory=list)
    key_priorities: List[str] = Field(default_factory=list)
    growth_initiatives: List[str] = Field(default_factory=list)
    tech_news: List[LinkItem] = Field(default_factory=list)
    case_studies: List[LinkItem] = Field(default_factory=list)
    compliance_vendors: List[str] = Field(default_factory=list)
    competitor_mentions: List[CompetitorMention] = Field(default_factory=list)
    leadership_changes: List[LeadershipChange] = Field(default_factory=list)
    ma_activity: List[MAActivity] = Field(default_factory=list)
    regulatory_landscape: List[Regulator] = Field(default_factory=list)
    regulatory_events: List[RegulatoryEvent] = Field(default_factory=list)
    sources: List[str] = Field(default_factory=list)


class WebSearchData(BaseModel):
    news: List[SearchResult] = Field(default_factory=list)
    case_studies: List[SearchResult] = Field(default_factory=list)
    info: List[SearchResult] = Field(default_factory=list)
    info_answer: str = ""
    investor_docs: List[SearchResult] = Field(default_factory=list)
    leadership: List[SearchResult] = Field(default_factory=list)
    competitor_mentions: List[CompetitorMention] = Field(default_factory=list)
    meta: Dict[str, Any] = Field(default_factory=dict)
