from __future__ import annotations

import re
from collections.abc import Iterable

_whitespace_re = re.compile(r"\s+")
_non_alnum_re = re.compile(r"[^a-z0-9\s]")


def normalize_name(value: str) -> str:
    """Case/whitespace-insensitive key for comparing names across sources."""

    return _whitespace_re.sub(" ", value.replace("_", " ")).strip().casefold()


def name_tokens(value: str) -> set[str]:
    v = value.replace("_", " ").strip().lower()
    v = _non_alnum_re.sub(" ", v)
    return {t for t in _whitespace_re.split(v) if t}


def dedupe_names(*groups: Iterable[str]) -> list[str]:
    """Merge name lists in order, dropping blanks and normalized duplicates.

    The first spelling seen wins.
    """

    seen: set[str] = set()
    out: list[str] = []
    for group in groups:
        for raw in group:
            name = _whitespace_re.sub(" ", raw).strip()
            if not name:
                continue
            key = normalize_name(name)
            if key in seen:
                continue
            seen.add(key)
            out.append(name)
    return out


def page_title(value: str) -> str:
    """Display form of a wiki page name: underscores to spaces, first letter upper."""

    v = _whitespace_re.sub(" ", value.replace("_", " ")).strip()
    if not v:
        return v
    return v[0].upper() + v[1:]
