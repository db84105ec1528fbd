"""
LangGraph pipeline for a company intelligence report.

Wires together:
- plan      (validate input, decide web search + competitor set)
- search    (Tavily fan-out; failures become web_search_error, never fatal)
- analyze   (LLM tagged-section analysis; provider errors propagate)
- assemble  (credibility-filtered merge of web results into the analysis)

Run via:
    from corpintel.pipeline_graph import run_analysis_sync
    state = run_analysis_sync("Goldman Sachs")
    state["report"]  # CompanyAnalysis
"""

from __future__ import annotations
import time
import logging
from typing import TypedDict, List, Dict, Any, Optional

from langgraph.graph import StateGraph, END

from corpintel.config import cfg
from corpintel.models import CompanyAnalysis, WebSearchData
from corpintel.agents.scout import gather_company_intel
from corpintel.agents.analyze import analyze_company
from corpintel.agents.report import assemble_report, describe_search_error

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

WEB_SEARCH_PROVIDER = "Tavily"


class PipelineState(TypedDict, total=False):
    company_name: str
    competitor_name: Optional[str]
    provider: Optional[str]
    model: Optional[str]
    use_web_search: bool
    competitors: Dict[str, List[str]]
    web_data: Optional[WebSearchData]
    web_search_error: Optional[str]
    analysis: CompanyAnalysis
    report: CompanyAnalysis
    analyzed_provider: Optional[str]
    analyzed_model: Optional[str]
    warnings: List[str]
    start_time: float
    duration: float


def _competitor_set(competitor_name: Optional[str]) -> Dict[str, List[str]]:
    if competitor_name:
        wanted = competitor_name.strip().lower()
        for name, domains in cfg.COMPETITORS.items():
            if name.lower() == wanted:
                return {name: list(domains)}
        return {competitor_name.strip(): []}
    return dict(cfg.COMPETITORS) if cfg.COMPETITOR_MENTIONS_ENABLED else {}


def node_plan(state: PipelineState) -> PipelineState:
    name = (state.get("company_name") or "").strip()
    if not name:
        raise ValueError("company_name is required")
    state["company_name"] = name
    state.setdefault("warnings", [])

    wants_search = state.get("use_web_search", True)
    if wants_search and not cfg.TAVILY_API_KEY:
        state["warnings"].append("web_search_skipped:no_tavily_key")
        wants_search = False
    state["use_web_search"] = wants_search
    state["competitors"] = _competitor_set(state.get("competitor_name")) if wants_search else {}
    logger.info("[plan] company=%s web_search=%s competitors=%d", name, wants_search, len(state["competitors"]))
    return state


def node_search(state: PipelineState) -> PipelineState:
    logger.info("[search] company=%s", state["company_name"])
    state["web_data"] = None
    try:
        data = gather_company_intel(
            state["company_name"],
            competitors=state.get("competitors", {}),
            include_competitors=bool(state.get("competitors")),
        )
    except Exception as e:
        logger.exception("Web search failed: %s", e)
        state["web_search_error"] = describe_search_error(WEB_SEARCH_PROVIDER, e)
        state.setdefault("warnings", []).append(f"search_failed:{str(e)}")
        return state

    queries, errors = data.meta.get("queries", 0), data.meta.get("errors", {})
    if queries and len(errors) >= queries:
        # every query failed; report the first reason
        state["web_search_error"] = describe_search_error(WEB_SEARCH_PROVIDER, next(iter(errors.values())))
        state.setdefault("warnings", []).append("search_failed:all_queries")
        return state
    if errors:
        state.setdefault("warnings", []).append(f"search_partial:{len(errors)}/{queries}")
    state["web_data"] = data
    return state


def node_analyze(state: PipelineState) -> PipelineState:
    logger.info("[analyze] company=%s provider=%s", state["company_name"], state.get("provider"))
    try:
        out = analyze_company(state["company_name"], provider=state.get("provider"), model=state.get("model"))
    except Exception as e:
        logger.exception("Analysis failed: %s", e)
        raise
    state["analysis"] = out["analysis"]
    state["analyzed_provider"] = out.get("provider")
    state["analyzed_model"] = out.get("model")
    return state


def node_assemble(state: PipelineState) -> PipelineState:
    logger.info("[assemble] web_data=%s", state.get("web_data") is not None)
    try:
        state["report"] = assemble_report(
            state["company_name"],
            state["analysis"],
            state.get("web_data"),
            competitor_name=state.get("competitor_name"),
        )
    except Exception as e:
        logger.exception("Assemble failed: %s", e)
        state.setdefault("warnings", []).append(f"assemble_failed:{str(e)}")
        state["report"] = state["analysis"]
    return state


def _route_after_plan(state: PipelineState) -> str:
    return "search" if state.get("use_web_search") else "analyze"


graph = StateGraph(PipelineState)

graph.add_node("plan", node_plan)
graph.add_node("search", node_search)
graph.add_node("analyze", node_analyze)
graph.add_node("assemble", node_assemble)


graph.set_entry_point("plan")


graph.add_conditional_edges("plan", _route_after_plan, {"search": "search", "analyze": "analyze"})
graph.add_edge("search", "analyze")
graph.add_edge("analyze", "assemble")
graph.add_edge("assemble", END)

pipeline = graph.compile()


def run_analysis_sync(company_name: str,
                      competitor_name: Optional[str] = None,
                      provider: Optional[str] = None,
                      model: Optional[str] = None,
                      use_web_search: bool = True) -> PipelineState:
    init_state: PipelineState = {
        "company_name": company_name,
        "competitor_name": competitor_name,
        "provider": provider,
        "model": model,
        "use_web_search": use_web_search,
        "warnings": [],
        "start_time": time.time(),
    }
    final_state = pipeline.invoke(init_state)
    final_state["duration"] = time.time() - init_state["start_time"]
    return final_state


def report_document(state: PipelineState) -> Dict[str, Any]:
    """JSON-ready payload for the API / cache."""
    report = state.get("report") or state.get("analysis")
    return {
        **(report.model_dump() if report else {}),
        "web_search_used": state.get("web_data") is not None,
        "web_search_error": state.get("web_search_error"),
        "provider": state.get("analyzed_provider"),
        "model": state.get("analyzed_model"),
        "warnings": state.get("warnings", []),
    }
