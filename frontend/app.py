"""
Streamlit dashboard for company intelligence reports.

- Runs: corpintel.pipeline_graph.run_analysis_sync(...) (or serves a fresh cached report)
- Displays summary, quick facts, credibility-filtered news / case studies / investor docs,
  competitor mentions, leadership changes, M&A, regulatory history and a stock chart

Usage:
    streamlit run frontend/app.py
"""
from __future__ import annotations
import time
import logging
from typing import Any, Dict, List

import streamlit as st
import pandas as pd

st.set_page_config(page_title="Corporate Intelligence", layout="wide")
logger = logging.getLogger("corpintel_ui")
logger.setLevel(logging.INFO)

st.title("Corporate Intelligence")
st.write("Search a company to get an AI analysis augmented with credibility-filtered web results. A fresh run takes 30-90 seconds; cached reports load instantly.")
st.write("Ensure you have set your api-keys in the .env file (Tavily, OpenAI or Gemini) for the backend services to be available.")

# Import pipeline
import sys
import os
# Add the repo root to Python path if not already there
repo_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)

from corpintel.config import cfg
from corpintel.pipeline_graph import run_analysis_sync, report_document
from corpintel.services.analysis_cache import get_cached_analysis, is_fresh, set_cached_analysis
from corpintel.services.stock_client import RANGE_CONFIG, StockDataError, fetch_stock_data

# Sidebar config
with st.sidebar:
    st.header("Search")
    company = st.text_input("Company", value="Goldman Sachs")
    competitor = st.selectbox("Competitor focus (optional)", options=["(all)"] + sorted(cfg.COMPETITORS), index=0)
    provider = st.selectbox("LLM provider", options=["gemini", "openai"], index=0)
    use_web = st.checkbox("Augment with web search", value=True)
    force_refresh = st.checkbox("Force refresh (ignore cache)", value=False)
    ticker = st.text_input("Stock ticker (optional)", value="GS")
    stock_range = st.selectbox("Chart range", options=list(RANGE_CONFIG), index=list(RANGE_CONFIG).index("1y"))
    run_btn = st.button("Analyze")

status_box = st.empty()


def _links_table(items: List[Dict[str, Any]], label: str):
    st.subheader(label)
    if not items:
        st.info(f"No {label.lower()} found.")
        return
    for it in items:
        title = it.get("title") or it.get("url")
        vendor = f"**{it['vendor']}**: " if it.get("vendor") else ""
        st.markdown(f"- {vendor}[{title}]({it.get('url', '')})")
        if it.get("summary"):
            st.caption(it["summary"][:300])


def _frame(rows: List[Dict[str, Any]], cols: List[str]):
    df = pd.DataFrame(rows)
    st.dataframe(df[[c for c in cols if c in df.columns]], use_container_width=True)


def _display_report(doc: Dict[str, Any]):
    sentiment = doc.get("sentiment", "NEUTRAL")
    st.header(f"{doc.get('company_name', '')}  ·  {sentiment}")
    if doc.get("web_search_error"):
        st.warning(f"Web search unavailable: {doc['web_search_error']}")
    st.write(doc.get("summary") or "No summary returned.")

    facts = doc.get("quick_facts") or {}
    if facts:
        cols = st.columns(min(len(facts), 6))
        for i, (k, v) in enumerate(facts.items()):
            cols[i % len(cols)].metric(k, v)

    left, right = st.columns(2)
    with left:
        st.subheader("Key priorities")
        for p in doc.get("key_priorities") or []:
            st.write(f"- {p}")
    with right:
        st.subheader("Growth initiatives")
        for g in doc.get("growth_initiatives") or []:
            st.write(f"- {g}")

    _links_table(doc.get("tech_news") or [], "News")
    _links_table(doc.get("case_studies") or [], "Case studies")
    _links_table(doc.get("investor_docs") or [], "Investor documents")

    if doc.get("compliance_vendors"):
        st.write("**Known compliance vendors:** " + ", ".join(doc["compliance_vendors"]))

    mentions = doc.get("competitor_mentions") or []
    st.subheader("Competitor mentions")
    if mentions:
        _frame(mentions, ["competitor_name", "mention_type", "title", "url", "confidence"])
    else:
        st.info("No verified competitor mentions.")

    leadership = doc.get("leadership_changes") or []
    st.subheader("Leadership changes")
    if leadership:
        _frame(leadership, ["person_name", "role", "change_type", "date", "previous_role", "source"])
    else:
        st.info("No leadership changes found.")

    if doc.get("ma_activity"):
        st.subheader("M&A activity")
        _frame(doc["ma_activity"], ["year", "deal_type", "target", "deal_value", "rationale"])

    if doc.get("regulatory_landscape"):
        st.subheader("Regulators")
        _frame(doc["regulatory_landscape"], ["body", "context", "url"])
    if doc.get("regulatory_events"):
        st.subheader("Regulatory events")
        _frame(doc["regulatory_events"], ["date", "regulatory_body", "event_type", "amount", "description", "url"])

    with st.expander(f"Sources ({len(doc.get('sources') or [])})"):
        for s in doc.get("sources") or []:
            st.markdown(f"- {s}")


def _num(v) -> str:
    return f"{v:.2f}" if isinstance(v, (int, float)) else "n/a"


def _display_stock(symbol: str, range_: str):
    try:
        data = fetch_stock_data(symbol, range_)
    except (ValueError, StockDataError) as e:
        st.warning(f"Stock data unavailable for {symbol}: {e}")
        return
    st.subheader(f"{data['company_name']} ({data['ticker']})")
    c1, c2, c3 = st.columns(3)
    c1.metric("Price", f"{_num(data.get('price'))} {data.get('currency') or ''}", f"{_num(data.get('change_percent'))}%")
    c2.metric("Day range", f"{_num(data.get('day_low'))} - {_num(data.get('day_high'))}")
    c3.metric("52w range", f"{_num(data.get('fifty_two_week_low'))} - {_num(data.get('fifty_two_week_high'))}")
    hist = data.get("history") or {}
    if hist.get("prices"):
        df = pd.DataFrame({
            "time": pd.to_datetime(hist["timestamps"], unit="ms"),
            "close": hist["prices"],
        }).set_index("time")
        st.line_chart(df, height=260)
        st.caption(hist.get("range_label", ""))


# Main run logic (blocking)
if run_btn:
    if not company.strip():
        st.warning("Please enter a company name.")
    else:
        competitor_name = None if competitor == "(all)" else competitor
        doc = None
        if not force_refresh and competitor_name is None:
            entry = get_cached_analysis(company)
            if is_fresh(entry):
                doc = entry["data"]
                status_box.info(f"Loaded cached report (analysed {entry.get('analyzed_at')})")

        if doc is None:
            try:
                with st.spinner("Running analysis pipeline..."):
                    start_t = time.time()
                    state = run_analysis_sync(company, competitor_name=competitor_name,
                                              provider=provider, use_web_search=use_web)
                    duration = time.time() - start_t
                doc = report_document(state)
                status_box.success(f"Analysis completed in {duration:.1f}s")
                if competitor_name is None:
                    set_cached_analysis(company, doc, provider=doc.get("provider"))
                for w in doc.get("warnings") or []:
                    st.write(f"- {w}")
            except Exception as e:
                status_box.error(f"Analysis failed: {e}")
                logger.exception("Pipeline run failed")
                with st.expander("Error details"):
                    st.text(str(e))

        if doc:
            _display_report(doc)
            with st.expander("Show raw report (debug)"):
                st.json(doc)

    if ticker.strip():
        _display_stock(ticker.strip(), stock_range)
