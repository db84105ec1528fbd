import pytest

from corpintel.models import SearchResult
from corpintel.agents.leadership import (
    MAX_EVENTS,
    drop_job_listings,
    extract_leadership_changes,
    source_host,
)

COMPANY = "Acme Corp"
URL = "https://www.businesswire.com/news/home/20240305/acme-corp-appoints-jane-doe-cfo"


def _article(title, content="", url=URL):
    return SearchResult(title=title, url=url, content=content)


class TestAppointments:
    """Appointment headlines and body text"""

    def test_headline_appointment(self):
        """Exactly one appointed event carrying the article URL"""
        events = extract_leadership_changes([_article("Acme Corp Appoints Jane Doe as CFO")], COMPANY)
        assert len(events) == 1
        ev = events[0]
        assert ev.change_type == "appointed"
        assert "CFO" in ev.role
        assert ev.person_name == "Jane Doe"
        assert ev.source_url == URL
        assert ev.source == "businesswire.com"

    def test_headline_and_body_deduplicated(self):
        content = ("Acme Corp today announced that Jane Doe has been appointed Chief Financial Officer, "
                   "effective April 1, 2024.")
        events = extract_leadership_changes([_article("Acme Corp Appoints Jane Doe as CFO", content)], COMPANY)
        assert len(events) == 1
        assert events[0].date == "2024-04-01"

    def test_names_without_as(self):
        events = extract_leadership_changes([_article("Acme Corp names John Smith Chief Financial Officer")], COMPANY)
        assert [(e.person_name, e.role) for e in events] == [("John Smith", "Chief Financial Officer")]

    def test_joins(self):
        events = extract_leadership_changes(
            [_article("Mary Major joins Acme Corp as Chief Revenue Officer")], COMPANY)
        assert len(events) == 1
        assert events[0].change_type == "appointed"
        assert events[0].role == "Chief Revenue Officer"


class TestOtherChangeTypes:
    """Promotions, departures and expanded roles"""

    def test_promotion_with_previous_role(self):
        events = extract_leadership_changes(
            [_article("Leadership update",
                      "Jane Roe was promoted from Senior Vice President to Chief Operating Officer.")],
            COMPANY,
        )
        assert len(events) == 1
        ev = events[0]
        assert ev.change_type == "promoted"
        assert ev.role == "Chief Operating Officer"
        assert ev.previous_role == "Senior Vice President"

    def test_departure(self):
        events = extract_leadership_changes([_article("Jane Doe steps down as CEO of Acme Corp")], COMPANY)
        assert len(events) == 1
        assert events[0].change_type == "departed"
        assert events[0].role == "CEO"

    def test_title_prefixed_departure(self):
        events = extract_leadership_changes([_article("Acme Corp CFO Jane Doe to step down")], COMPANY)
        assert [(e.person_name, e.role, e.change_type) for e in events] == [("Jane Doe", "CFO", "departed")]

    def test_expanded_role(self):
        events = extract_leadership_changes(
            [_article("Jane Doe assumes additional role of Chief Operating Officer")], COMPANY)
        assert len(events) == 1
        assert events[0].change_type == "expanded_role"
        assert events[0].role == "Chief Operating Officer"


class TestNoEvents:
    """Nothing confident means nothing returned"""

    def test_no_matching_patterns(self):
        articles = [
            _article("Acme Corp reports quarterly earnings", "Revenue grew in the third quarter."),
            _article("Acme Corp opens office in Dublin", "The office will house 200 engineers."),
        ]
        assert extract_leadership_changes(articles, COMPANY) == []

    @pytest.mark.parametrize("articles", [[], None, [None], [42], [{"title": "Acme appoints"}], [{"url": ""}]])
    def test_odd_inputs_never_raise(self, articles):
        assert extract_leadership_changes(articles, COMPANY) == []

    def test_excluded_organisation_names(self):
        article = _article("Acme Corp appoints Theta Lake as compliance officer")
        assert len(extract_leadership_changes([article], COMPANY)) == 1
        assert extract_leadership_changes([article], COMPANY, exclude_names=["Theta Lake"]) == []

    @pytest.mark.parametrize("title", [
        "Acme Corp selects Red Hat as cloud partner",
        "Acme Corp names Red Hat as cloud partner",
        "Red Hat selected as Acme Corp technology partner",
    ])
    def test_vendor_and_partner_headlines(self, title):
        assert extract_leadership_changes([_article(title)], COMPANY) == []

    def test_company_name_is_not_a_person(self):
        article = _article("Jane Doe names Acme Corp as Chief Partner")
        assert extract_leadership_changes([article], COMPANY) == []

    def test_event_cap(self):
        first = ["Alice", "Brian", "Carla", "David", "Erica", "Frank", "Grace", "Henry", "Irene", "James", "Karen"]
        articles = [_article(f"Acme Corp appoints {n} Walker as CFO", url=f"https://news.example.com/a/{i}")
                    for i, n in enumerate(first)]
        events = extract_leadership_changes(articles, COMPANY)
        assert len(events) == MAX_EVENTS
        assert [e.source_url for e in events] == [a.url for a in articles[:MAX_EVENTS]]


class TestHelpers:
    """Job-listing filter and source host"""

    def test_drop_job_listings(self):
        articles = [
            _article("Acme hires", url="https://acme.com/careers/cfo"),
            _article("Acme hires", url="https://www.linkedin.com/jobs/view/1"),
            _article("Acme hires", url="https://boards.example.com/job/1"),
            {"title": "ok", "url": "https://news.example.com/acme-cfo"},
            _article("ok", url="https://news.example.com/acme-cto"),
        ]
        kept = drop_job_listings(articles)
        assert len(kept) == 2
        assert kept[0]["url"] == "https://news.example.com/acme-cfo"

    def test_dict_articles(self):
        article = {"title": "Update", "url": URL, "description": "Acme Corp appoints Jane Doe as CFO."}
        events = extract_leadership_changes([article], COMPANY)
        assert len(events) == 1
        assert events[0].source_url == URL

    def test_source_host(self):
        assert source_host("https://www.reuters.com/a") == "reuters.com"
        assert source_host("not a url") == "Source"
