"""Match and bracket recovery from tournament page wikitext.

Two passes feed the match list:

- the bracket pass walks bracket templates and pairs their positional
  team/score/winner slots by index;
- the match-list pass picks up standalone two-team match blocks outside any
  bracket.

Results are merged in page order. A match that a page lists both in a bracket
and in a separate match list is reported twice; the passes do not try to
reconcile each other.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from esports_wiki.db.enums import MatchStatusEnum
from esports_wiki.ingestion.dates import parse_wiki_datetime
from esports_wiki.ingestion.providers.base.types import BracketEntry, MatchRecord
from esports_wiki.ingestion.providers.wiki.wikitext import (
    Template,
    iter_templates,
    labeled_values,
    strip_markup,
    template_value,
)

logger = logging.getLogger(__name__)

_slot_key_re = re.compile(r"^(r(\d+)[a-z]+\d+)(team|score|win|winner)$")
_plain_slot_key_re = re.compile(r"^(team|score|win|winner)(\d+)$")
_match_key_re = re.compile(r"^r(\d+)m(\d+)$")
_MATCH_TEMPLATES = {"match", "matchmaps", "match2", "matchlistmatch"}
_OPPONENT_TEMPLATES = {"teamopponent", "opponent", "team", "teamshort", "solo", "soloopponent"}
_WIN_SCORES = {"w"}
_LOSS_SCORES = {"ff", "l", "dq", "-"}


@dataclass
class _Slot:
    key: str
    round: int
    team: str | None = None
    score: str | None = None
    win: str | None = None


def _score_value(raw: str | None) -> int | None:
    if raw is None:
        return None
    v = strip_markup(raw).lower()
    if v.isdigit():
        return int(v)
    if v in _WIN_SCORES:
        return 1
    if v in _LOSS_SCORES:
        return 0
    return None


def _winner_from_scores(team1: str, team2: str, s1: int | None, s2: int | None) -> str | None:
    if s1 is None or s2 is None or s1 == s2:
        return None
    return team1 if s1 > s2 else team2


def _winner_from_param(raw: str | None, team1: str, team2: str) -> str | None:
    if not raw:
        return None
    v = strip_markup(raw)
    if v == "1":
        return team1
    if v == "2":
        return team2
    return v or None


def _round_for_pair(index: int, total: int) -> int:
    """Round number of pair `index` in a balanced single-elimination layout of `total` pairs."""

    size = max(1, (total + 1) // 2)
    start = 0
    rnd = 1
    while index >= start + size and size > 1:
        start += size
        size = max(1, size // 2)
        rnd += 1
    return rnd


def _is_bracket(tpl: Template) -> bool:
    lname = tpl.name.lower()
    return "bracket" in lname and lname != "teambracket"


# ---------------------------------------------------------------------------
# match templates (shared by both passes)
# ---------------------------------------------------------------------------


def _opponent(value: str | None) -> tuple[str | None, str | None]:
    """(name, score) from an `opponentN=` value."""

    if not value:
        return None, None
    for tpl in iter_templates(value):
        if tpl.name.lower() in _OPPONENT_TEMPLATES:
            name = tpl.arg(0) or tpl.get("template", "name", "1")
            return (strip_markup(name) if name else None), tpl.get("score")
        break
    name = strip_markup(value)
    return (name or None), None


def match_from_template(tpl: Template) -> MatchRecord | None:
    lname = tpl.name.lower()
    if lname == "matchmaps":
        team1 = template_value(tpl.get("team1") or "")
        team2 = template_value(tpl.get("team2") or "")
        raw1, raw2 = tpl.get("games1", "score1"), tpl.get("games2", "score2")
    else:
        team1, raw1 = _opponent(tpl.get("opponent1", "team1"))
        team2, raw2 = _opponent(tpl.get("opponent2", "team2"))
        team1 = team1 or ""
        team2 = team2 or ""
        raw1 = raw1 or tpl.get("score1")
        raw2 = raw2 or tpl.get("score2")

    if not team1 and not team2:
        return None
    team1 = team1 or "TBD"
    team2 = team2 or "TBD"

    s1, s2 = _score_value(raw1), _score_value(raw2)
    winner = _winner_from_param(tpl.get("winner"), team1, team2)
    if winner is None:
        winner = _winner_from_scores(team1, team2, s1, s2)

    both_scores = s1 is not None and s2 is not None
    return MatchRecord(
        team1=team1,
        team2=team2,
        score1=s1,
        score2=s2,
        date=parse_wiki_datetime(strip_markup(tpl.get("date") or "")),
        status=MatchStatusEnum.COMPLETED if both_scores else MatchStatusEnum.SCHEDULED,
        winner=winner,
    )


# ---------------------------------------------------------------------------
# bracket pass
# ---------------------------------------------------------------------------


def _slot_pairs(tpl: Template) -> list[tuple[_Slot, _Slot]]:
    slots: dict[str, _Slot] = {}
    order: list[str] = []
    for key, value in tpl.ordered:
        m = _slot_key_re.match(key)
        if m:
            slot_key, rnd, kind = m.group(1), int(m.group(2)), m.group(3)
        else:
            plain = _plain_slot_key_re.match(key)
            if not plain:
                continue
            # no round prefix; the round is derived from the pair index later
            slot_key, rnd, kind = f"slot{plain.group(2)}", 0, plain.group(1)
        slot = slots.get(slot_key)
        if slot is None:
            slot = slots[slot_key] = _Slot(key=slot_key, round=rnd)
            order.append(slot_key)
        if kind == "team":
            slot.team = template_value(value) or None
        elif kind == "score":
            slot.score = strip_markup(value) or None
        else:
            slot.win = strip_markup(value) or None
    ordered = [slots[k] for k in order]
    return [(ordered[i], ordered[i + 1]) for i in range(0, len(ordered) - 1, 2)]


def _bracket_pass(text: str) -> list[tuple[int, BracketEntry, MatchRecord | None]]:
    found: list[tuple[int, BracketEntry, MatchRecord | None]] = []

    for bracket in iter_templates(text):
        if not _is_bracket(bracket):
            continue

        # current bracket layout: |R1M1={{Match|...}}
        for key, value in bracket.ordered:
            m = _match_key_re.match(key)
            if not m or "{{" not in value:
                continue
            tpl = next(iter(iter_templates(value, _MATCH_TEMPLATES)), None)
            if tpl is None:
                continue
            match = match_from_template(tpl)
            if match is None:
                continue
            score = f"{match.score1 if match.score1 is not None else ''}-{match.score2 if match.score2 is not None else ''}"
            entry = BracketEntry(
                round=int(m.group(1)),
                match_id=key.upper(),
                score=score,
                winner=match.winner,
                status=MatchStatusEnum.COMPLETED if match.winner else MatchStatusEnum.SCHEDULED,
            )
            found.append((bracket.start + bracket.body.find(value), entry, match))

        # legacy layout: |R1D1team= |R1D1score= |R1D1win=
        pairs = _slot_pairs(bracket)
        for index, (a, b) in enumerate(pairs):
            if a.score is None and b.score is None and a.win is None and b.win is None:
                continue
            team1, team2 = a.team or "TBD", b.team or "TBD"
            if a.win:
                winner: str | None = team1
            elif b.win:
                winner = team2
            else:
                winner = _winner_from_scores(team1, team2, _score_value(a.score), _score_value(b.score))
            rnd = a.round or _round_for_pair(index, len(pairs))
            entry = BracketEntry(
                round=rnd,
                match_id=f"R{rnd}M{index + 1}",
                score=f"{a.score or ''}-{b.score or ''}",
                winner=winner,
                status=MatchStatusEnum.COMPLETED if winner else MatchStatusEnum.SCHEDULED,
            )
            s1, s2 = _score_value(a.score), _score_value(b.score)
            match = MatchRecord(
                team1=team1,
                team2=team2,
                score1=s1,
                score2=s2,
                status=MatchStatusEnum.COMPLETED if winner else MatchStatusEnum.SCHEDULED,
                winner=winner,
            )
            found.append((bracket.start + index, entry, match))

    return found


def extract_bracket_entries(text: str) -> list[BracketEntry]:
    return [entry for _, entry, _ in _bracket_pass(text)]


def extract_bracket_matches(text: str) -> list[MatchRecord]:
    return [m for _, _, m in _bracket_pass(text) if m is not None]


# ---------------------------------------------------------------------------
# match-list pass
# ---------------------------------------------------------------------------


def _match_list_pass(text: str) -> list[tuple[int, MatchRecord]]:
    spans = [(t.start, t.end) for t in iter_templates(text) if _is_bracket(t)]
    found: list[tuple[int, MatchRecord]] = []
    for tpl in iter_templates(text, _MATCH_TEMPLATES):
        if any(start < tpl.start < end for start, end in spans):
            continue
        match = match_from_template(tpl)
        if match is not None:
            found.append((tpl.start, match))
    return found


def extract_match_list(text: str) -> list[MatchRecord]:
    return [m for _, m in _match_list_pass(text)]


def extract_matches(text: str, *, completed_brackets_only: bool = False) -> list[MatchRecord]:
    """Bracket-derived and match-list matches merged in page order (no cross-pass dedup).

    With `completed_brackets_only`, undecided bracket pairs are left out; match-list
    entries are always kept.
    """

    merged: list[tuple[int, MatchRecord]] = [
        (pos, m)
        for pos, _, m in _bracket_pass(text)
        if m is not None and (not completed_brackets_only or m.status is MatchStatusEnum.COMPLETED)
    ]
    merged.extend(_match_list_pass(text))
    merged.sort(key=lambda item: item[0])
    return [m for _, m in merged]


# ---------------------------------------------------------------------------
# single match pages
# ---------------------------------------------------------------------------


def extract_match_page(text: str) -> MatchRecord | None:
    """Teams, score and date from a standalone match page."""

    first = next(iter(_match_list_pass(text)), None)
    if first is not None:
        return first[1]

    teams: list[str] = []
    for tpl in iter_templates(text, {"team", "teamshort", "teamopponent"}):
        name = tpl.arg(0)
        if name:
            teams.append(strip_markup(name))
    if len(teams) < 2:
        logger.debug("Match page has fewer than two team templates")
        return None

    s1 = s2 = None
    score_tpl = next(iter(iter_templates(text, {"score"})), None)
    if score_tpl is not None:
        s1, s2 = _score_value(score_tpl.arg(0)), _score_value(score_tpl.arg(1))

    match_date = None
    for key, value in labeled_values(text):
        if key == "date":
            match_date = parse_wiki_datetime(strip_markup(value))
            break

    both_scores = s1 is not None and s2 is not None
    return MatchRecord(
        team1=teams[0],
        team2=teams[1],
        score1=s1,
        score2=s2,
        date=match_date,
        status=MatchStatusEnum.COMPLETED if both_scores else MatchStatusEnum.SCHEDULED,
        winner=_winner_from_scores(teams[0], teams[1], s1, s2),
    )
