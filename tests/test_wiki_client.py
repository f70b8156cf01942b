from __future__ import annotations

import httpx
import pytest

from conftest import FakeClock
from esports_wiki.db.enums import FetchOutcomeEnum
from esports_wiki.ingestion.providers.base.client import BaseHttpClient
from esports_wiki.ingestion.providers.base.errors import ProviderRequestError, ProviderResponseError
from esports_wiki.ingestion.providers.wiki.aggregator import TournamentAggregator
from esports_wiki.ingestion.providers.wiki.client import WikiApiClient
from esports_wiki.ingestion.providers.wiki.fetchers import EntityFetcher
from esports_wiki.ingestion.providers.wiki.governor import RateLimitClass, RequestGovernor
from esports_wiki.ingestion.providers.wiki.resolver import TournamentNameResolver


def _client(handler) -> WikiApiClient:
    clock = FakeClock()
    http = BaseHttpClient(base_url="https://wiki.test", transport=httpx.MockTransport(handler))
    governor = RequestGovernor(
        http,
        intervals={},
        user_agent="EsportsWikiTests/1.0",
        sleep=clock.sleep,
        monotonic=clock.monotonic,
    )
    return WikiApiClient(governor, base_url="https://wiki.test")


async def test_structured_query_unwraps_cargo_rows() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/dota2/api.php"
        assert request.url.params["action"] == "cargoquery"
        assert request.url.params["tables"] == "Teams"
        assert request.url.params["fields"] == "_pageName=pagename,name"
        assert request.url.params["format"] == "json"
        return httpx.Response(
            200,
            json={"cargoquery": [{"title": {"pagename": "Team Liquid", "name": "Team Liquid"}}]},
        )

    client = _client(handler)
    rows = await client.structured_query(
        "dota2", table="Teams", fields=["_pageName=pagename", "name"], limit=10
    )

    assert rows == [{"pagename": "Team Liquid", "name": "Team Liquid"}]


async def test_page_wikitext_returns_none_for_missing_page() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["action"] == "parse"
        assert request.url.params["redirects"] == "1"
        return httpx.Response(200, json={"error": {"code": "missingtitle", "info": "missing"}})

    client = _client(handler)
    assert await client.page_wikitext("dota2", "Nope") is None


async def test_page_wikitext_follows_redirect_title() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "parse": {
                    "title": "The International 2023",
                    "pageid": 42,
                    "wikitext": {"*": "{{Infobox league|name=TI}}"},
                }
            },
        )

    client = _client(handler)
    page = await client.page_wikitext("dota2", "TI 2023")

    assert page is not None
    assert page.title == "The International 2023"
    assert page.page_id == 42
    assert page.content.startswith("{{Infobox league")


async def test_other_api_errors_are_raised() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": {"code": "badvalue", "info": "bad"}})

    client = _client(handler)
    with pytest.raises(ProviderResponseError) as excinfo:
        await client.search("dota2", "anything")
    assert excinfo.value.code == "badvalue"


async def test_search_and_category_listing() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["list"] == "search":
            return httpx.Response(
                200, json={"query": {"search": [{"title": "ESL One"}, {"title": "ESL Pro"}]}}
            )
        assert request.url.params["cmtitle"] == "Category:Teams"
        assert request.url.params["cmlimit"] == "5"
        return httpx.Response(
            200, json={"query": {"categorymembers": [{"pageid": 1, "title": "OG"}, {"pageid": 2}]}}
        )

    client = _client(handler)

    assert await client.search("dota2", "esl") == ["ESL One", "ESL Pro"]
    members = await client.category_members("dota2", "Teams", limit=5)
    assert [m["title"] for m in members] == ["OG"]


def test_page_url_uses_underscores() -> None:
    client = WikiApiClient(governor=None, base_url="https://liquipedia.net/")  # type: ignore[arg-type]
    assert client.page_url("dota2", "Team Liquid") == "https://liquipedia.net/dota2/Team_Liquid"


async def test_rate_classes_per_operation() -> None:
    seen: list[RateLimitClass] = []

    class Recorder:
        async def execute(self, spec, rate_class):
            seen.append(rate_class)
            return {"query": {"search": [], "recentchanges": []}, "cargoquery": []}

    client = WikiApiClient(Recorder())
    await client.search("dota2", "x")
    await client.recent_changes("dota2")
    await client.structured_query("dota2", table="Teams", fields=["name"])
    await client.page_html("dota2", "X")

    assert seen == [
        RateLimitClass.STANDARD,
        RateLimitClass.STANDARD,
        RateLimitClass.BULK_QUERY,
        RateLimitClass.INTENSIVE,
    ]


def _disconnect(request: httpx.Request) -> httpx.Response:
    raise httpx.RemoteProtocolError("Server disconnected without sending a response.", request=request)


async def test_dropped_connection_is_a_request_error() -> None:
    client = _client(_disconnect)

    with pytest.raises(ProviderRequestError) as excinfo:
        await client.search("dota2", "The International")

    assert "RemoteProtocolError" in str(excinfo.value)


async def test_dropped_connection_does_not_escape_fetchers_or_aggregator() -> None:
    client = _client(_disconnect)
    fetcher = EntityFetcher(client, politeness_delay_s=0.0)
    aggregator = TournamentAggregator(
        TournamentNameResolver(client), fetcher, politeness_delay_s=0.0, fetch_html=False
    )

    assert await fetcher.fetch_teams("dota2", 5) == []

    outcome = await aggregator.fetch_tournament_by_name("X Cup", "dota2")
    assert outcome.status is FetchOutcomeEnum.FAILED
    assert "RemoteProtocolError" in (outcome.error or "")
