import pytest

from corpintel.config import cfg
from corpintel import pipeline_graph
from corpintel.models import CompanyAnalysis, LinkItem, SearchResult, WebSearchData
from corpintel.pipeline_graph import report_document, run_analysis_sync

GOOD = ('On March 3, 2024 Acme Corp said revenue rose 12% to $4 billion. '
        '"We had a strong quarter," the CEO said in a statement.')
NEWS_URL = "https://www.reuters.com/business/2024/acme-corp-quarterly-results-beat"


def _fake_analyze(company_name, provider=None, model=None):
    return {
        "analysis": CompanyAnalysis(company_name=company_name, summary="AI summary",
                                    tech_news=[LinkItem(title="AI news", url="https://ai.example.com/n")]),
        "provider": provider or "gemini",
        "model": model or "gemini-2.0-flash",
    }


@pytest.fixture
def wired(monkeypatch):
    calls = {}

    def fake_gather(company_name, competitors=None, include_competitors=True, **kwargs):
        calls["gather"] = {"company_name": company_name, "competitors": competitors,
                           "include_competitors": include_competitors}
        return WebSearchData(news=[SearchResult(title="Acme Corp quarterly results", url=NEWS_URL, content=GOOD,
                                                vendor_score=0.9)],
                             meta={"queries": 5, "failed": 0, "errors": {}})

    monkeypatch.setattr(cfg, "TAVILY_API_KEY", "tvly-test")
    monkeypatch.setattr(cfg, "COMPETITORS", {"Smarsh": ["smarsh.com"], "NICE": ["nice.com"]})
    monkeypatch.setattr(cfg, "COMPETITOR_MENTIONS_ENABLED", True)
    monkeypatch.setattr(pipeline_graph, "gather_company_intel", fake_gather)
    monkeypatch.setattr(pipeline_graph, "analyze_company", _fake_analyze)
    return calls


class TestPipeline:
    """plan -> search -> analyze -> assemble"""

    def test_full_run(self, wired):
        state = run_analysis_sync("  Acme Corp ", provider="openai")
        assert wired["gather"]["company_name"] == "Acme Corp"
        assert set(wired["gather"]["competitors"]) == {"Smarsh", "NICE"}
        report = state["report"]
        assert [n.url for n in report.tech_news] == [NEWS_URL]
        assert state["analyzed_provider"] == "openai"
        assert state["duration"] >= 0

        doc = report_document(state)
        assert doc["web_search_used"] is True
        assert doc["web_search_error"] is None
        assert doc["company_name"] == "Acme Corp"
        assert doc["provider"] == "openai"

    def test_competitor_focus(self, wired):
        run_analysis_sync("Acme Corp", competitor_name="smarsh")
        assert wired["gather"]["competitors"] == {"Smarsh": ["smarsh.com"]}

    def test_web_search_off(self, wired):
        state = run_analysis_sync("Acme Corp", use_web_search=False)
        assert "gather" not in wired
        assert [n.title for n in state["report"].tech_news] == ["AI news"]
        assert report_document(state)["web_search_used"] is False

    def test_missing_tavily_key_skips_search(self, wired, monkeypatch):
        monkeypatch.setattr(cfg, "TAVILY_API_KEY", None)
        state = run_analysis_sync("Acme Corp")
        assert "gather" not in wired
        assert "web_search_skipped:no_tavily_key" in state["warnings"]

    def test_search_exception_is_not_fatal(self, wired, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("401 Unauthorized")
        monkeypatch.setattr(pipeline_graph, "gather_company_intel", boom)
        state = run_analysis_sync("Acme Corp")
        assert state["web_search_error"] == "Tavily key is invalid or expired"
        assert state["report"].summary == "AI summary"

    def test_all_queries_failed(self, wired, monkeypatch):
        def all_failed(*args, **kwargs):
            return WebSearchData(meta={"queries": 2, "failed": 2,
                                       "errors": {"news": "HTTP 429 Too Many Requests", "info": "HTTP 429"}})
        monkeypatch.setattr(pipeline_graph, "gather_company_intel", all_failed)
        state = run_analysis_sync("Acme Corp")
        assert state["web_search_error"] == "Tavily rate limit exceeded"
        assert report_document(state)["web_search_used"] is False

    def test_analysis_errors_propagate(self, wired, monkeypatch):
        def fail(*args, **kwargs):
            raise RuntimeError("429 rate limit")
        monkeypatch.setattr(pipeline_graph, "analyze_company", fail)
        with pytest.raises(RuntimeError):
            run_analysis_sync("Acme Corp")

    def test_blank_company(self, wired):
        with pytest.raises(ValueError):
            run_analysis_sync("   ")
