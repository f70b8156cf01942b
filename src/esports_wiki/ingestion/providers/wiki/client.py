from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import quote

from esports_wiki.ingestion.providers.base.client import Json
from esports_wiki.ingestion.providers.base.errors import ProviderMappingError, ProviderResponseError
from esports_wiki.ingestion.providers.wiki.governor import RateLimitClass, RequestSpec

logger = logging.getLogger(__name__)

ApiRow = dict[str, Any]

_MISSING_PAGE_CODES = {"missingtitle", "missing", "invalidtitle", "nosuchpageid"}


class Governor(Protocol):
    async def execute(self, spec: RequestSpec, rate_class: RateLimitClass) -> Json: ...


@dataclass(frozen=True)
class ParsedPage:
    title: str
    content: str
    page_id: int | None = None


def _raise_api_error(data: Json) -> None:
    error = data.get("error")
    if isinstance(error, dict):
        code = str(error.get("code") or "unknown")
        raise ProviderResponseError(f"wiki api error {code}: {error.get('info', '')}", code=code)


class WikiApiClient:
    """MediaWiki api.php operations for a per-game wiki.

    Every call goes through the governor with the rate class that fits its cost:
    page parses are intensive, structured (cargo) queries are bulk queries, and
    list/search queries are standard.
    """

    def __init__(self, governor: Governor, *, base_url: str = "https://liquipedia.net") -> None:
        self.governor = governor
        self.base_url = base_url.rstrip("/")

    def page_url(self, game: str, title: str) -> str:
        return f"{self.base_url}/{game}/{quote(title.replace(' ', '_'))}"

    async def _call(self, game: str, params: dict[str, Any], rate_class: RateLimitClass) -> Json:
        spec = RequestSpec(path=f"{game}/api.php", params={"format": "json", **params})
        return await self.governor.execute(spec, rate_class)

    async def structured_query(
        self,
        game: str,
        *,
        table: str,
        fields: Sequence[str],
        where: str | None = None,
        order_by: str | None = None,
        limit: int = 50,
    ) -> list[ApiRow]:
        params: dict[str, Any] = {
            "action": "cargoquery",
            "tables": table,
            "fields": ",".join(fields),
            "limit": str(limit),
        }
        if where:
            params["where"] = where
        if order_by:
            params["order_by"] = order_by

        data = await self._call(game, params, RateLimitClass.BULK_QUERY)
        _raise_api_error(data)

        items = data.get("cargoquery") or []
        if not isinstance(items, list):
            raise ProviderMappingError("cargoquery payload is not a list", {"table": table})

        rows: list[ApiRow] = []
        for item in items:
            if isinstance(item, dict) and isinstance(item.get("title"), dict):
                rows.append(item["title"])
        return rows

    async def category_members(self, game: str, category: str, *, limit: int = 20) -> list[ApiRow]:
        if not category.startswith("Category:"):
            category = f"Category:{category}"
        data = await self._call(
            game,
            {
                "action": "query",
                "list": "categorymembers",
                "cmtitle": category,
                "cmnamespace": "0",
                "cmlimit": str(limit),
            },
            RateLimitClass.STANDARD,
        )
        _raise_api_error(data)
        members = (data.get("query") or {}).get("categorymembers") or []
        return [m for m in members if isinstance(m, dict) and m.get("title")]

    async def recent_changes(self, game: str, *, limit: int = 100) -> list[ApiRow]:
        data = await self._call(
            game,
            {
                "action": "query",
                "list": "recentchanges",
                "rcnamespace": "0",
                "rclimit": str(limit),
                "rctype": "edit|new",
                "rcshow": "!bot",
                "rcprop": "title|ids|timestamp",
            },
            RateLimitClass.STANDARD,
        )
        _raise_api_error(data)
        changes = (data.get("query") or {}).get("recentchanges") or []
        return [c for c in changes if isinstance(c, dict) and c.get("title")]

    async def search(self, game: str, query: str, *, limit: int = 10) -> list[str]:
        data = await self._call(
            game,
            {
                "action": "query",
                "list": "search",
                "srsearch": query,
                "srnamespace": "0",
                "srlimit": str(limit),
            },
            RateLimitClass.STANDARD,
        )
        _raise_api_error(data)
        hits = (data.get("query") or {}).get("search") or []
        return [str(h["title"]) for h in hits if isinstance(h, dict) and h.get("title")]

    async def _parse(self, game: str, page: str, prop: str) -> ParsedPage | None:
        data = await self._call(
            game,
            {"action": "parse", "page": page, "prop": prop, "redirects": "1"},
            RateLimitClass.INTENSIVE,
        )
        try:
            _raise_api_error(data)
        except ProviderResponseError as e:
            if e.code in _MISSING_PAGE_CODES:
                logger.debug("Page %r not found on %s wiki", page, game)
                return None
            raise

        parsed = data.get("parse")
        if not isinstance(parsed, dict):
            return None
        body = parsed.get(prop)
        content = body.get("*") if isinstance(body, dict) else body
        if not isinstance(content, str):
            return None

        page_id = parsed.get("pageid")
        return ParsedPage(
            title=str(parsed.get("title") or page),
            content=content,
            page_id=page_id if isinstance(page_id, int) else None,
        )

    async def page_wikitext(self, game: str, page: str) -> ParsedPage | None:
        return await self._parse(game, page, "wikitext")

    async def page_html(self, game: str, page: str) -> ParsedPage | None:
        return await self._parse(game, page, "text")
