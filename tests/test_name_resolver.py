from __future__ import annotations

from conftest import FakeGovernor
from esports_wiki.ingestion.providers.wiki.client import WikiApiClient
from esports_wiki.ingestion.providers.wiki.governor import RateLimitClass
from esports_wiki.ingestion.providers.wiki.resolver import (
    TournamentNameResolver,
    name_variants,
    title_similarity,
)


def test_name_variants_order() -> None:
    assert name_variants("CCT Season 3 Oceania Series 2") == [
        "CCT Season 3 Oceania Series 2",
        "CCT Season 3 Oceania Series",
        "CCT Season 3 Oceania",
    ]
    assert name_variants("blast_premier fall final") == [
        "Blast premier fall final",
        "Blast premier fall",
        "Blast premier",
    ]
    assert name_variants("   ") == []


async def test_resolves_series_suffix_variant_before_search() -> None:
    governor = FakeGovernor(pages={"CCT Season 3 Oceania Series": "{{Infobox league}}"})
    resolver = TournamentNameResolver(WikiApiClient(governor))

    page = await resolver.resolve_page("CCT Season 3 Oceania Series 2", "counterstrike")

    assert page is not None
    assert page.title == "CCT Season 3 Oceania Series"
    assert page.via == "variant"
    assert governor.parsed_pages() == [
        "CCT Season 3 Oceania Series 2",
        "CCT Season 3 Oceania Series",
    ]
    assert "search" not in governor.actions()
    assert {rate_class for rate_class, _ in governor.calls} == {RateLimitClass.INTENSIVE}


async def test_exact_name_resolves_directly() -> None:
    governor = FakeGovernor(pages={"The International 2023": "text"})
    resolver = TournamentNameResolver(WikiApiClient(governor))

    assert await resolver.resolve("The International 2023", "dota2") == "The International 2023"
    assert len(governor.calls) == 1


async def test_falls_back_to_search_with_similarity_bar() -> None:
    governor = FakeGovernor(
        pages={"BLAST Premier Fall Final 2024": "text"},
        search_hits=["Unrelated Cup", "BLAST Premier Fall Final 2024"],
    )
    resolver = TournamentNameResolver(WikiApiClient(governor), min_similarity=0.6)

    page = await resolver.resolve_page("blast premier fall final europe", "counterstrike")

    assert page is not None
    assert page.title == "BLAST Premier Fall Final 2024"
    assert page.via == "search"
    search_calls = [(rc, p) for rc, p in governor.calls if p.get("list") == "search"]
    assert len(search_calls) == 1
    assert search_calls[0][0] is RateLimitClass.STANDARD


async def test_weak_search_hits_resolve_to_none() -> None:
    governor = FakeGovernor(search_hits=["Summer Cup", "Winter Invitational"])
    resolver = TournamentNameResolver(WikiApiClient(governor), min_similarity=0.6)

    assert await resolver.resolve("ESL One Birmingham 2024", "dota2") is None


def test_title_similarity_is_query_token_overlap() -> None:
    assert title_similarity("ESL One Birmingham", "ESL One Birmingham 2024") == 1.0
    assert title_similarity("ESL One Birmingham", "ESL Pro League") == 1 / 3
    assert title_similarity("", "anything") == 0.0
