"""Field extraction for tournament, team and player pages.

Each field has its own rule and is extracted independently: a field the
page does not carry comes back as None/empty and never affects the others.
Labeled values that are present but do not parse are reported in
`unparsed` so brittle rules stay visible.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from bs4 import BeautifulSoup

from esports_wiki.core.text import dedupe_names, normalize_name
from esports_wiki.db.enums import EntityStatusEnum
from esports_wiki.ingestion.dates import parse_wiki_date
from esports_wiki.ingestion.providers.base.types import DateRange
from esports_wiki.ingestion.providers.wiki.wikitext import (
    Template,
    iter_templates,
    labeled_values,
    strip_markup,
    template_value,
)

logger = logging.getLogger(__name__)

_number_re = re.compile(r"^\$?\s*(\d[\d,]*(?:\.\d+)?)$")
_int_re = re.compile(r"\d+")
_list_split_re = re.compile(r"\s*(?:,|;|\n|<br\s*/?>)\s*", re.IGNORECASE)

_TIER_NAMES = {
    "1": "S-Tier",
    "2": "A-Tier",
    "3": "B-Tier",
    "4": "C-Tier",
    "5": "D-Tier",
    "-1": "Misc",
}

_INFOBOX_NAMES = ("infobox league", "infobox tournament", "infobox series", "infobox")
_TEAM_TEMPLATES = {"team", "teamshort", "teampart", "teamicon", "teamopponent", "teambracket"}
_PLACEHOLDER_NAMES = {"tbd", "tba", "bye", "", "-", "?"}
_SQUAD_TEMPLATES = {"squad", "activesquad", "formersquad", "inactivesquad"}


@dataclass
class TournamentFields:
    prize_pool: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    location: str | None = None
    organizer: str | None = None
    tier: str | None = None
    team_count: int | None = None
    sponsors: list[str] = field(default_factory=list)
    participants: list[str] = field(default_factory=list)
    score_markers: list[str] = field(default_factory=list)
    unparsed: list[str] = field(default_factory=list)

    @property
    def date_range(self) -> DateRange:
        return DateRange(start=self.start_date, end=self.end_date)


@dataclass(frozen=True)
class HtmlFields:
    participants: list[str] = field(default_factory=list)
    score_markers: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class FieldRule:
    """First labeled value under any of `keys` (in key order) that `parse` accepts."""

    name: str
    keys: tuple[str, ...]
    parse: Callable[[str], Any]

    def apply(self, pairs: dict[str, list[str]]) -> tuple[Any, bool]:
        """Returns (value, present_but_unparsed)."""
        seen = False
        for key in self.keys:
            for raw in pairs.get(key, []):
                if not strip_markup(raw) and "{{" not in raw:
                    continue
                seen = True
                value = self.parse(raw)
                if value is not None:
                    return value, False
        return None, seen


def _clean_text(raw: str) -> str | None:
    v = template_value(raw)
    return v or None


def _parse_prize(raw: str) -> str | None:
    v = strip_markup(raw)
    if not v:
        return None
    m = _number_re.match(v)
    if m:
        amount = float(m.group(1).replace(",", ""))
        if amount.is_integer():
            return f"${int(amount):,}"
        return f"${amount:,.2f}"
    return v


def _parse_tier(raw: str) -> str | None:
    v = template_value(raw)
    if not v:
        return None
    return _TIER_NAMES.get(v, v)


def _parse_int(raw: str) -> int | None:
    m = _int_re.search(strip_markup(raw))
    return int(m.group(0)) if m else None


def _parse_date(raw: str) -> date | None:
    return parse_wiki_date(strip_markup(raw))


TOURNAMENT_RULES: tuple[FieldRule, ...] = (
    FieldRule("prize_pool", ("prizepool", "prizepoolusd", "prize_pool", "prize pool"), _parse_prize),
    FieldRule("start_date", ("sdate", "start_date", "startdate", "date_start", "date"), _parse_date),
    FieldRule("end_date", ("edate", "end_date", "enddate", "date_end", "date"), _parse_date),
    FieldRule("location", ("location", "city", "venue", "country"), _clean_text),
    FieldRule("organizer", ("organizer", "organizers", "organiser", "organizer1"), _clean_text),
    FieldRule("tier", ("liquipediatier", "tier"), _parse_tier),
    FieldRule("team_count", ("team_number", "teams", "participants_number"), _parse_int),
)


def _infobox_pairs(text: str) -> dict[str, list[str]]:
    """Named infobox parameters, from the parsed template and a line scan of it.

    Template parameters come first so single-line infoboxes are read too; the
    line scan only adds values the template split did not already yield.
    """

    pairs: dict[str, list[str]] = {}
    scope = text
    for tpl in iter_templates(text, name_contains="infobox"):
        if tpl.name.lower().startswith(_INFOBOX_NAMES):
            for key, value in tpl.ordered:
                if key not in tpl.named:
                    continue
                pairs.setdefault(key, []).append(value)
            scope = text[tpl.start : tpl.end]
            break
    for key, value in labeled_values(scope):
        values = pairs.setdefault(key, [])
        if value not in values:
            values.append(value)
    return pairs


def _split_names(raw: str) -> list[str]:
    names: list[str] = []
    for piece in _list_split_re.split(raw):
        name = template_value(piece)
        if name:
            names.append(name)
    return names


def _is_real_name(name: str) -> bool:
    return normalize_name(name) not in _PLACEHOLDER_NAMES


def extract_sponsors(text: str) -> list[str]:
    values: list[str] = []
    for key, raws in _infobox_pairs(text).items():
        if key.startswith("sponsor"):
            for raw in raws:
                values.extend(_split_names(raw))
    return dedupe_names(values)


def _teamcard_name(tpl: Template) -> str | None:
    raw = tpl.get("team", "name", "link") or tpl.arg(0)
    return template_value(raw) if raw else None


def extract_participants(text: str) -> list[str]:
    """Team names from team cards and team templates, in page order."""

    names: list[str] = []
    for tpl in iter_templates(text):
        lname = tpl.name.lower()
        name: str | None = None
        if lname == "teamcard":
            name = _teamcard_name(tpl)
        elif lname in _TEAM_TEMPLATES:
            raw = tpl.arg(0) or tpl.get("template", "name")
            name = strip_markup(raw) if raw else None
        if name and _is_real_name(name):
            names.append(name)
    return dedupe_names(names)


def extract_tournament_fields(text: str) -> TournamentFields:
    fields = TournamentFields()
    pairs = _infobox_pairs(text)

    for rule in TOURNAMENT_RULES:
        value, unparsed = rule.apply(pairs)
        if value is not None:
            setattr(fields, rule.name, value)
        elif unparsed:
            fields.unparsed.append(rule.name)

    fields.sponsors = extract_sponsors(text)
    fields.participants = extract_participants(text)

    if fields.unparsed:
        logger.debug("Unparsed tournament fields: %s", ", ".join(fields.unparsed))
    return fields


# ---------------------------------------------------------------------------
# Rendered HTML (supplementary)
# ---------------------------------------------------------------------------

_HTML_TEAM_SELECTORS = (
    ".teamcard center a",
    ".teamcard-inner a",
    ".team-template-text a",
    ".block-team .name",
)
_HTML_MATCH_SELECTORS = (".brkts-match", ".bracket-game", ".match-row")
_HTML_SCORE_SELECTORS = ".brkts-opponent-score-inner, .bracket-score, .score"
_HTML_OPPONENT_SELECTORS = ".brkts-opponent-entry, .bracket-team-top, .bracket-team-bottom, .team"


def _opponent_name(node: Any) -> str | None:
    for attr in ("aria-label", "data-highlightingclass", "title"):
        value = node.get(attr)
        if value and value.strip():
            return value.strip()
    name = node.select_one(".name, .team-template-text")
    if name is not None:
        text = name.get_text(" ", strip=True)
        return text or None
    return None


def score_marker(team1: str, score1: Any, score2: Any, team2: str) -> str:
    return f"{team1} {score1}-{score2} {team2}"


def extract_html_fields(html: str) -> HtmlFields:
    """Participant names and per-match score markers from rendered page HTML."""

    soup = BeautifulSoup(html, "html.parser")

    names: list[str] = []
    for selector in _HTML_TEAM_SELECTORS:
        for node in soup.select(selector):
            text = node.get_text(" ", strip=True) or node.get("title", "")
            if text and _is_real_name(text):
                names.append(text)
    for node in soup.select("[data-highlightingclass]"):
        text = str(node.get("data-highlightingclass") or "").strip()
        if text and _is_real_name(text):
            names.append(text)

    markers: list[str] = []
    for selector in _HTML_MATCH_SELECTORS:
        for match in soup.select(selector):
            opponents = [_opponent_name(n) for n in match.select(_HTML_OPPONENT_SELECTORS)]
            opponents = [o for o in opponents if o]
            scores = [
                s.get_text(strip=True) for s in match.select(_HTML_SCORE_SELECTORS)
            ]
            scores = [s for s in scores if s]
            if len(opponents) >= 2 and len(scores) >= 2:
                markers.append(score_marker(opponents[0], scores[0], scores[1], opponents[1]))

    return HtmlFields(participants=dedupe_names(names), score_markers=dedupe_names(markers))


def merge_html_fields(
    fields: TournamentFields,
    html_fields: HtmlFields,
    *,
    known_markers: Iterable[str] = (),
) -> TournamentFields:
    """Append HTML-derived values after the wikitext ones, dropping duplicates.

    Wikitext values are kept as-is and always come first.
    """

    known = {normalize_name(m) for m in known_markers}
    fields.participants = dedupe_names(fields.participants, html_fields.participants)
    fields.score_markers = [
        m
        for m in dedupe_names(fields.score_markers, html_fields.score_markers)
        if normalize_name(m) not in known
    ]
    return fields


# ---------------------------------------------------------------------------
# Team / player pages
# ---------------------------------------------------------------------------


def classify_status(*hints: str | None) -> EntityStatusEnum:
    """Map free-text status hints (field values, titles, section names) to a status."""

    for hint in hints:
        if not hint:
            continue
        h = hint.strip().lower()
        if "disband" in h or "defunct" in h:
            return EntityStatusEnum.DISBANDED
        if "retire" in h:
            return EntityStatusEnum.RETIRED
        if "inactive" in h or "former" in h or "free agent" in h:
            return EntityStatusEnum.INACTIVE
        if "active" in h or h in {"current", "signed"}:
            return EntityStatusEnum.ACTIVE
    return EntityStatusEnum.UNKNOWN


@dataclass(frozen=True)
class RosterEntry:
    name: str
    nationality: str | None = None
    role: str | None = None
    status: EntityStatusEnum = EntityStatusEnum.ACTIVE


@dataclass(frozen=True)
class TeamPageFields:
    location: str | None = None
    region: str | None = None
    status: EntityStatusEnum = EntityStatusEnum.UNKNOWN
    roster: list[RosterEntry] = field(default_factory=list)


def _squad_status(squad: Template) -> EntityStatusEnum:
    hint = squad.get("status", "type")
    if hint is None and squad.arg(0) and "{{" not in squad.positional[0]:
        hint = squad.arg(0)
    status = classify_status(hint, squad.name)
    return EntityStatusEnum.ACTIVE if status is EntityStatusEnum.UNKNOWN else status


def extract_roster(text: str) -> list[RosterEntry]:
    """Players listed in squad tables; former/inactive squads keep their status."""

    squads = list(iter_templates(text, _SQUAD_TEMPLATES))
    entries: list[RosterEntry] = []
    seen: set[str] = set()

    for tpl in iter_templates(text, {"squadplayer", "squadperson", "person"}):
        name = tpl.get("id", "name", "link") or tpl.arg(0)
        if not name:
            continue
        name = strip_markup(name)
        key = normalize_name(name)
        if not name or key in seen:
            continue
        seen.add(key)

        status = EntityStatusEnum.ACTIVE
        for squad in squads:
            if squad.start < tpl.start < squad.end:
                status = _squad_status(squad)
                break
        if tpl.get("leavedate", "leave_date"):
            status = EntityStatusEnum.INACTIVE

        entries.append(
            RosterEntry(
                name=name,
                nationality=tpl.get("flag", "nationality", "country"),
                role=_clean_text(tpl.get("role", "position") or ""),
                status=status,
            )
        )
    return entries


def extract_team_fields(text: str) -> TeamPageFields:
    pairs = _infobox_pairs(text)

    def first(*keys: str) -> str | None:
        for key in keys:
            for raw in pairs.get(key, []):
                value = _clean_text(raw)
                if value:
                    return value
        return None

    status = classify_status(first("status"))
    if status is EntityStatusEnum.UNKNOWN:
        status = (
            EntityStatusEnum.DISBANDED if first("disbanded", "disbandeddate") else EntityStatusEnum.UNKNOWN
        )

    return TeamPageFields(
        location=first("location", "country"),
        region=first("region"),
        status=status,
        roster=extract_roster(text),
    )
