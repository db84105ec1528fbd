import httpx
import pytest

from corpintel.config import cfg
from corpintel.models import SearchResult
from corpintel.agents import scout
from corpintel.agents.scout import (
    _competitor_specs,
    _parse_tavily_results,
    filter_leadership_hits,
    gather_company_intel,
    infer_mention_type,
    search_many,
)

COMPANY = "Acme Corp"

GOOD_CONTENT = ('On March 3, 2024 Acme Corp selected Smarsh to archive trader communications for $2 million. '
                '"The rollout covers every desk," the CIO said.')


def _hit(url, title="Acme Corp update", content=GOOD_CONTENT, score=0.8):
    return {"url": url, "title": title, "content": content, "score": score}


class TestParseTavily:
    """Tavily payload parsing"""

    def test_maps_score_to_vendor_score(self):
        data = {"results": [
            _hit("https://a.example.com/x", score=0.42),
            _hit("https://b.example.com/x", score=3),
            _hit("https://c.example.com/x", score=None),
            {"title": "no url"},
        ]}
        out = _parse_tavily_results(data)
        assert [r.url for r in out] == ["https://a.example.com/x", "https://b.example.com/x", "https://c.example.com/x"]
        assert [r.vendor_score for r in out] == [0.42, 1.0, None]

    def test_bad_payload(self):
        assert _parse_tavily_results(None) == []
        assert _parse_tavily_results({"results": []}) == []


class TestFilters:
    """Leadership relevance and mention typing"""

    def test_leadership_filter(self):
        results = [
            SearchResult(url="https://www.prnewswire.com/news-releases/acme-cfo-1.html", title="Acme update"),
            SearchResult(url="https://acme.com/about/team", title="Acme appoints Jane Doe as CFO"),
            SearchResult(url="https://acme.com/about/team", title="Our leadership team"),
            SearchResult(url="https://www.indeed.com/viewjob?news=1", title="CFO job at Acme"),
            SearchResult(url="https://acme.com/careers/press-officer", title="Press officer"),
        ]
        kept = filter_leadership_hits(results)
        assert [r.title for r in kept] == ["Acme update", "Acme appoints Jane Doe as CFO"]

    @pytest.mark.parametrize("url,content,expected", [
        ("https://smarsh.com/case-study/acme", "", "case_study"),
        ("https://smarsh.com/resources/acme", "Read the case study", "case_study"),
        ("https://smarsh.com/customer/acme-story", "", "customer"),
        ("https://smarsh.com/x/acme", "Acme is a long-time customer", "customer"),
        ("https://smarsh.com/x/acme", "a new partner agreement", "partner"),
        ("https://smarsh.com/press/acme-deal", "", "press_release"),
        ("https://smarsh.com/x/acme", "", "other"),
    ])
    def test_infer_mention_type(self, url, content, expected):
        assert infer_mention_type(url, content) == expected


class TestCompetitorSpecs:
    """Per-competitor query selection"""

    def test_press_wire_then_domain(self):
        specs = _competitor_specs(COMPANY, {"Smarsh": ["smarsh.com"], "NICE": []}, 2)
        assert sorted(specs) == ["competitor::NICE::0", "competitor::NICE::1",
                                 "competitor::Smarsh::0", "competitor::Smarsh::1"]
        assert "site:businesswire.com" in specs["competitor::Smarsh::0"]["query"]
        assert specs["competitor::Smarsh::1"]["query"].startswith('"Acme Corp" site:smarsh.com')
        assert specs["competitor::NICE::1"]["query"] == '"NICE" announces "Acme Corp"'

    def test_at_least_one_query(self):
        specs = _competitor_specs(COMPANY, {"Smarsh": ["smarsh.com"]}, 0)
        assert list(specs) == ["competitor::Smarsh::0"]


class TestSearchMany:
    """Concurrent fan-out tolerates per-query failures"""

    def test_failed_query_yields_empty(self, monkeypatch):
        async def fake_search(client, query, **kwargs):
            if "boom" in query:
                raise RuntimeError("HTTP 500")
            return {"answer": "", "results": [SearchResult(url=f"https://example.com/{query}")]}

        monkeypatch.setattr(scout, "_tavily_search_async", fake_search)
        responses, errors = search_many({
            "ok": {"query": "fine", "max_results": 5},
            "bad": {"query": "boom", "max_results": 5},
        })
        assert [r.url for r in responses["ok"]["results"]] == ["https://example.com/fine"]
        assert responses["bad"] == {"answer": "", "results": []}
        assert errors == {"bad": "HTTP 500"}

    def test_missing_key_is_a_per_query_error(self, monkeypatch):
        monkeypatch.setattr(cfg, "TAVILY_API_KEY", None)
        responses, errors = search_many({"news": {"query": "acme"}})
        assert responses["news"]["results"] == []
        assert "TAVILY_API_KEY" in errors["news"]

    def test_empty(self):
        assert search_many({}) == ({}, {})


class TestTavilySearch:
    """Blocking single-query call"""

    def test_posts_payload_and_parses(self, monkeypatch):
        monkeypatch.setattr(cfg, "TAVILY_API_KEY", "tvly-test")
        seen = {}

        def fake_post(url, json=None, timeout=None):
            seen.update(url=url, json=json, timeout=timeout)
            request = httpx.Request("POST", url)
            return httpx.Response(200, json={"answer": "Acme makes widgets.",
                                             "results": [_hit("https://example.com/acme")]}, request=request)

        monkeypatch.setattr(scout.httpx, "post", fake_post)
        res = scout.tavily_search("acme corp", max_results=3, search_depth="advanced", include_answer=True)
        assert res["answer"] == "Acme makes widgets."
        assert [r.url for r in res["results"]] == ["https://example.com/acme"]
        assert res["results"][0].vendor_score == 0.8
        assert seen["url"] == scout.TAVILY_SEARCH_URL
        assert seen["json"]["max_results"] == 3
        assert seen["json"]["search_depth"] == "advanced"
        assert seen["timeout"] == scout.HTTP_TIMEOUT

    def test_http_error_raises(self, monkeypatch):
        monkeypatch.setattr(cfg, "TAVILY_API_KEY", "tvly-test")

        def fake_post(url, json=None, timeout=None):
            return httpx.Response(401, json={"detail": "bad key"}, request=httpx.Request("POST", url))

        monkeypatch.setattr(scout.httpx, "post", fake_post)
        with pytest.raises(httpx.HTTPStatusError):
            scout.tavily_search("acme corp")

    def test_missing_key(self, monkeypatch):
        monkeypatch.setattr(cfg, "TAVILY_API_KEY", None)
        with pytest.raises(RuntimeError):
            scout.tavily_search("acme corp")


class TestGatherCompanyIntel:
    """Search bundle assembly"""

    def _fake_search_many(self, captured):
        def fake(specs):
            captured.update(specs)
            responses = {k: {"answer": "", "results": []} for k in specs}
            responses["news"] = {"answer": "", "results": _parse_tavily_results({"results": [
                _hit("https://www.reuters.com/business/2024/acme-corp-expands-archiving")]})}
            responses["info"] = {"answer": "Acme Corp is a bank.", "results": []}
            responses["leadership"] = {"answer": "", "results": _parse_tavily_results({"results": [
                _hit("https://www.businesswire.com/news/home/acme-names-cfo", title="Acme names CFO"),
                _hit("https://acme.com/careers/cfo", title="CFO job"),
            ]})}
            responses["competitor::Smarsh::0"] = {"answer": "", "results": _parse_tavily_results({"results": [
                _hit("https://www.businesswire.com/news/home/20240303/smarsh-acme-corp-archiving-deal"),
                _hit("https://www.businesswire.com/news/home/20240303/smarsh-acme-corp-archiving-deal"),
                _hit("https://smarsh.com/pricing/enterprise/acme-corp-quote"),
                _hit("https://www.businesswire.com/news/home/20240304/smarsh-other-bank",
                     title="Smarsh signs Other Bank", content="Other Bank selected Smarsh " + "x" * 60),
            ]})}
            return responses, {"competitor::Smarsh::1": "HTTP 429"}
        return fake

    def test_bundle(self, monkeypatch):
        captured = {}
        monkeypatch.setattr(scout, "search_many", self._fake_search_many(captured))
        data = gather_company_intel(COMPANY, competitors={"Smarsh": ["smarsh.com"]}, queries_per_competitor=2)

        assert {"news", "case_studies", "info", "investor_docs", "leadership",
                "competitor::Smarsh::0", "competitor::Smarsh::1"} == set(captured)
        assert captured["info"]["include_answer"] is True
        assert data.info_answer == "Acme Corp is a bank."
        assert [r.url for r in data.news] == ["https://www.reuters.com/business/2024/acme-corp-expands-archiving"]
        assert [r.title for r in data.leadership] == ["Acme names CFO"]
        assert data.meta == {"queries": 7, "failed": 1, "errors": {"competitor::Smarsh::1": "HTTP 429"}}

        # deduped, company must be mentioned, generic pages skipped, scored against the competitor
        assert len(data.competitor_mentions) == 1
        mention = data.competitor_mentions[0]
        assert mention.competitor_name == "Smarsh"
        assert mention.mention_type == "press_release"
        assert mention.confidence >= cfg.MIN_CONFIDENCE
        assert mention.summary == GOOD_CONTENT[:200]

    def test_without_competitors(self, monkeypatch):
        captured = {}
        monkeypatch.setattr(scout, "search_many", self._fake_search_many(captured))
        data = gather_company_intel(COMPANY, competitors={"Smarsh": ["smarsh.com"]}, include_competitors=False)
        assert not any(k.startswith("competitor::") for k in captured)
        assert data.competitor_mentions == []
