import pytest
from fastapi.testclient import TestClient

import server
from config import VERSION, SiteUrls
from knowledge import DocumentStore
from models import ChatResult, Product

from conftest import SITE


class FakeHarvester:
    def __init__(self, products):
        self.products = products
        self.categories: list[str] = []

    async def harvest_category(self, url):
        self.categories.append(url)
        return self.products

    async def harvest_home_kits(self):
        return [p for p in self.products if "kit" in p.title.lower()]


class FakeAssistant:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.urls = SiteUrls.for_site(SITE)
        self.documents = DocumentStore()
        self.queries: list[str] = []
        self.harvester = FakeHarvester(
            [Product(title=f"Item {i}", url=f"{SITE}/Item_p_{i}.html", instock=True) for i in range(12)]
            + [Product(title="Ear Piercing Kit", url=f"{SITE}/Kit_p_99.html")]
        )

    async def respond(self, query):
        self.queries.append(query)
        if self.fail:
            raise RuntimeError("storefront exploded")
        return ChatResult(intent="general", query=query, heading="Top Picks")

    def classify(self, query):
        return "sterile" if "steril" in query else "general"

    async def course_url(self):
        return f"{SITE}/crm.asp?action=contactus"


@pytest.fixture
def fake(monkeypatch):
    assistant = FakeAssistant()
    monkeypatch.setattr(server, "assistant", assistant)
    return assistant


@pytest.fixture
def client():
    return TestClient(server.app)


def test_chat_returns_structured_result(fake, client):
    resp = client.post("/hbj/chat", json={"q": "septum ring"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["intent"] == "general"
    assert body["query"] == "septum ring"
    assert body["items"] == []
    assert fake.queries == ["septum ring"]


def test_chat_accepts_missing_query(fake, client):
    assert client.post("/hbj/chat", json={}).status_code == 200
    assert fake.queries == [""]


def test_chat_error_is_generic_500(monkeypatch, client):
    monkeypatch.setattr(server, "assistant", FakeAssistant(fail=True))
    resp = client.post("/hbj/chat", json={"q": "anything"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Server error. Try again shortly."}


def test_intent_endpoint(fake, client):
    resp = client.get("/hbj/intent", params={"q": "sterile studs"})
    assert resp.json() == {"q": "sterile studs", "intent": "sterile"}


def test_health(fake, client):
    assert client.get("/hbj/health").json() == {"ok": True, "docs": 0, "version": VERSION}


def test_probe_defaults_to_sterilized_category(fake, client):
    body = client.get("/hbj/probe").json()
    assert body["ok"] is True
    assert body["count"] == 13
    assert len(body["sample"]) == 10
    assert fake.harvester.categories == [fake.urls.sterilized]


def test_probe_named_targets(fake, client):
    client.get("/hbj/probe", params={"type": "prokits"})
    assert fake.harvester.categories == [fake.urls.pro_kits]
    kits = client.get("/hbj/probe", params={"type": "homespecials"}).json()
    assert [p["title"] for p in kits["sample"]] == ["Ear Piercing Kit"]
    course = client.get("/hbj/probe", params={"type": "course"}).json()
    assert course["course_url"].endswith("contactus")


def test_probe_failure_reports_error(fake, client, monkeypatch):
    async def boom(url):
        raise RuntimeError("listing moved")

    monkeypatch.setattr(fake.harvester, "harvest_category", boom)
    resp = client.get("/hbj/probe", params={"type": "safekits"})
    assert resp.status_code == 500
    assert resp.json() == {"ok": False, "error": "listing moved"}


def test_cors_allows_storefront_origin(fake, client):
    resp = client.options(
        "/hbj/chat",
        headers={"Origin": "https://www.hottiebodyjewelry.com", "Access-Control-Request-Method": "POST"},
    )
    assert resp.headers["access-control-allow-origin"] == "https://www.hottiebodyjewelry.com"


@pytest.mark.parametrize("raw, expected", [(123, "123"), (None, "")])
def test_chat_coerces_non_string_query(fake, client, raw, expected):
    assert client.post("/hbj/chat", json={"q": raw}).status_code == 200
    assert fake.queries == [expected]
