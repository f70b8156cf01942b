from __future__ import annotations

from datetime import date

from fixtures_wikitext import ALPHA_PAGE, TOURNAMENT_PAGE
from esports_wiki.core.text import normalize_name
from esports_wiki.db.enums import EntityStatusEnum
from esports_wiki.ingestion.providers.wiki.markup import (
    HtmlFields,
    classify_status,
    extract_html_fields,
    extract_team_fields,
    extract_tournament_fields,
    merge_html_fields,
)


def test_extracts_infobox_scalar_and_list_fields() -> None:
    fields = extract_tournament_fields(TOURNAMENT_PAGE)

    assert fields.prize_pool == "$1,000,000"
    assert fields.start_date == date(2024, 1, 1)
    assert fields.end_date == date(2024, 1, 10)
    assert fields.location == "Copenhagen"
    assert fields.organizer == "PGL"
    assert fields.tier == "S-Tier"
    assert fields.team_count == 4
    assert fields.sponsors == ["Intel", "Red Bull"]
    assert fields.participants == ["Team Alpha", "Team Beta", "Team Gamma", "Team Delta"]
    assert fields.unparsed == []


def test_missing_field_does_not_affect_the_others() -> None:
    text = TOURNAMENT_PAGE.replace("|prizepool=1000000\n", "").replace("|location=Copenhagen\n", "")
    fields = extract_tournament_fields(text)

    assert fields.prize_pool is None
    assert fields.location is None
    assert fields.organizer == "PGL"
    assert fields.start_date == date(2024, 1, 1)
    assert fields.tier == "S-Tier"
    assert fields.unparsed == []


def test_present_but_unreadable_fields_are_reported() -> None:
    text = TOURNAMENT_PAGE.replace("|sdate=2024-01-01", "|sdate=sometime in spring")
    fields = extract_tournament_fields(text)

    assert fields.start_date is None
    assert fields.end_date == date(2024, 1, 10)
    assert "start_date" in fields.unparsed


def test_single_line_infobox_is_read() -> None:
    text = (
        "{{Infobox league|name=X Cup|prizepool=50000|sdate=2024-01-01|edate=2024-01-10"
        "|organizer=[[PGL]]|sponsor=[[Intel]]}}\nSome prose."
    )
    fields = extract_tournament_fields(text)

    assert fields.prize_pool == "$50,000"
    assert fields.start_date == date(2024, 1, 1)
    assert fields.end_date == date(2024, 1, 10)
    assert fields.organizer == "PGL"
    assert fields.sponsors == ["Intel"]
    assert fields.unparsed == []


def test_single_line_infobox_reports_unreadable_fields() -> None:
    fields = extract_tournament_fields("{{Infobox league|name=X Cup|sdate=sometime|edate=2024-01-10}}")

    assert fields.start_date is None
    assert fields.end_date == date(2024, 1, 10)
    assert fields.unparsed == ["start_date"]


def test_page_without_infobox_yields_empty_fields() -> None:
    fields = extract_tournament_fields("Just some prose about a tournament.")

    assert fields.prize_pool is None
    assert fields.start_date is None
    assert fields.participants == []
    assert fields.sponsors == []


HTML = """
<div class="teamcard"><center><a href="/dota2/Team_Omega">Team Omega</a></center></div>
<div class="teamcard"><center><a href="/dota2/Team_Alpha">team  alpha</a></center></div>
<div class="brkts-match">
  <div class="brkts-opponent-entry" aria-label="Team Alpha"><div class="brkts-opponent-score-inner">2</div></div>
  <div class="brkts-opponent-entry" aria-label="Team Gamma"><div class="brkts-opponent-score-inner">0</div></div>
</div>
<div class="brkts-match">
  <div class="brkts-opponent-entry" aria-label="Team Beta"><div class="brkts-opponent-score-inner">1</div></div>
  <div class="brkts-opponent-entry" aria-label="Team Omega"><div class="brkts-opponent-score-inner">2</div></div>
</div>
"""


def test_html_fields_supplement_without_duplicates() -> None:
    fields = extract_tournament_fields(TOURNAMENT_PAGE)
    html_fields = extract_html_fields(HTML)

    assert "Team Omega" in html_fields.participants
    assert "Team Alpha 2-0 Team Gamma" in html_fields.score_markers

    merged = merge_html_fields(
        fields, html_fields, known_markers=["Team Alpha 2-0 Team Gamma"]
    )

    assert merged.participants[:4] == ["Team Alpha", "Team Beta", "Team Gamma", "Team Delta"]
    assert merged.participants[-1] == "Team Omega"
    keys = [normalize_name(p) for p in merged.participants]
    assert len(keys) == len(set(keys))
    assert merged.score_markers == ["Team Beta 1-2 Team Omega"]


def test_html_merge_never_replaces_wikitext_values() -> None:
    fields = extract_tournament_fields(TOURNAMENT_PAGE)
    merge_html_fields(fields, HtmlFields(participants=["TEAM BETA", "Team Zeta"]))

    assert fields.participants == ["Team Alpha", "Team Beta", "Team Gamma", "Team Delta", "Team Zeta"]


def test_team_page_roster_and_status() -> None:
    team = extract_team_fields(ALPHA_PAGE)

    assert team.location == "Sweden"
    assert team.status is EntityStatusEnum.ACTIVE
    by_name = {p.name: p for p in team.roster}
    assert set(by_name) == {"alpha1", "alpha2", "oldtimer"}
    assert by_name["alpha1"].nationality == "se"
    assert by_name["alpha1"].role == "Carry"
    assert by_name["alpha1"].status is EntityStatusEnum.ACTIVE
    assert by_name["oldtimer"].status is EntityStatusEnum.INACTIVE


def test_classify_status_hints() -> None:
    assert classify_status("Disbanded") is EntityStatusEnum.DISBANDED
    assert classify_status(None, "Retired player") is EntityStatusEnum.RETIRED
    assert classify_status("Former") is EntityStatusEnum.INACTIVE
    assert classify_status("active") is EntityStatusEnum.ACTIVE
    assert classify_status(None, "") is EntityStatusEnum.UNKNOWN
