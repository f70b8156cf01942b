from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from esports_wiki.core.text import name_tokens, normalize_name, page_title
from esports_wiki.ingestion.providers.wiki.client import ParsedPage, WikiApiClient

logger = logging.getLogger(__name__)

_trailing_number_re = re.compile(r"\s*#?\s*\d+$")
_trailing_series_re = re.compile(
    r"\s+(?:season|series|stage|split|week|part|phase|edition)s?(?:\s*#?\s*\d+)?$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ResolvedPage:
    title: str
    wikitext: str
    query: str
    via: str  # "direct" | "variant" | "search"
    page_id: int | None = None


def name_variants(raw: str) -> list[str]:
    """Candidate page names for a user-typed tournament name, most specific first.

    raw name, then trailing number stripped, then trailing season/series token
    stripped, then the last one and two words dropped.
    """

    base = page_title(raw)
    if not base:
        return []

    candidates = [base]

    no_number = _trailing_number_re.sub("", base).strip()
    candidates.append(no_number)
    candidates.append(_trailing_series_re.sub("", no_number).strip())
    candidates.append(_trailing_series_re.sub("", base).strip())

    words = base.split(" ")
    if len(words) > 2:
        candidates.append(" ".join(words[:-1]))
    if len(words) > 3:
        candidates.append(" ".join(words[:-2]))

    seen: set[str] = set()
    out: list[str] = []
    for c in candidates:
        key = normalize_name(c)
        if len(key) < 2 or key in seen:
            continue
        seen.add(key)
        out.append(c)
    return out


def title_similarity(query: str, candidate: str) -> float:
    """Share of the query's tokens that also appear in the candidate title."""

    q = name_tokens(query)
    if not q:
        return 0.0
    return len(q & name_tokens(candidate)) / len(q)


class TournamentNameResolver:
    """Turns a typed tournament name into the wiki's canonical page.

    Transport failures propagate; running out of candidates returns None.
    """

    def __init__(
        self,
        client: WikiApiClient,
        *,
        min_similarity: float = 0.6,
        search_limit: int = 10,
    ) -> None:
        self.client = client
        self.min_similarity = min_similarity
        self.search_limit = search_limit

    async def resolve(self, raw_name: str, game: str) -> str | None:
        page = await self.resolve_page(raw_name, game)
        return page.title if page is not None else None

    async def resolve_page(self, raw_name: str, game: str) -> ResolvedPage | None:
        variants = name_variants(raw_name)
        for index, variant in enumerate(variants):
            page = await self.client.page_wikitext(game, variant)
            if page is not None:
                via = "direct" if index == 0 else "variant"
                logger.info("Resolved %r to %r via %s lookup", raw_name, page.title, via)
                return self._resolved(page, raw_name, via)
            logger.debug("No page for variant %r", variant)

        if not variants:
            return None

        hits = await self.client.search(game, raw_name, limit=self.search_limit)
        best: str | None = None
        best_score = 0.0
        for title in hits:
            score = title_similarity(raw_name, title)
            if score > best_score:
                best, best_score = title, score

        if best is None or best_score < self.min_similarity:
            logger.info(
                "No page found for %r on %s (best search hit %r, similarity %.2f)",
                raw_name,
                game,
                best,
                best_score,
            )
            return None

        page = await self.client.page_wikitext(game, best)
        if page is None:
            return None
        logger.info("Resolved %r to %r via search (similarity %.2f)", raw_name, page.title, best_score)
        return self._resolved(page, raw_name, "search")

    @staticmethod
    def _resolved(page: ParsedPage, raw_name: str, via: str) -> ResolvedPage:
        return ResolvedPage(
            title=page.title,
            wikitext=page.content,
            query=raw_name,
            via=via,
            page_id=page.page_id,
        )
