"""Small scanning helpers over raw wikitext.

Not a wiki-markup parser: just enough structure (balanced template blocks,
top-level parameters, labeled lines) for the field rules in this package.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, field

_template_open_re = re.compile(r"\{\{\s*([^{}|\n]+?)\s*(?=\||\}\}|\n)")
_comment_re = re.compile(r"<!--.*?-->", re.DOTALL)
_ref_re = re.compile(r"<ref[^>/]*/>|<ref[^>]*>.*?</ref>", re.DOTALL | re.IGNORECASE)
_br_re = re.compile(r"<br\s*/?>", re.IGNORECASE)
_tag_re = re.compile(r"</?[a-zA-Z][^>]*>")
_wikilink_re = re.compile(r"\[\[(?:[^\]|]*\|)?([^\]]*)\]\]")
_extlink_re = re.compile(r"\[(?:https?:)?//\S+\s+([^\]]+)\]")
_bare_extlink_re = re.compile(r"\[(?:https?:)?//\S+\]")
_quotes_re = re.compile(r"'{2,}")
_labeled_line_re = re.compile(r"^\s*\|\s*([A-Za-z0-9_ \-]+?)\s*=(.*)$")
_whitespace_re = re.compile(r"\s+")


@dataclass(frozen=True)
class Template:
    name: str
    body: str
    start: int
    end: int
    named: dict[str, str] = field(default_factory=dict)
    positional: list[str] = field(default_factory=list)
    # every parameter in source order; positional ones keyed "1", "2", ...
    ordered: list[tuple[str, str]] = field(default_factory=list)

    def get(self, *keys: str) -> str | None:
        for key in keys:
            value = self.named.get(key.lower())
            if value is not None and value.strip():
                return value.strip()
        return None

    def arg(self, index: int) -> str | None:
        if 0 <= index < len(self.positional) and self.positional[index].strip():
            return self.positional[index].strip()
        return None


def find_block_end(text: str, start: int) -> int | None:
    """Index just past the `}}` closing the `{{` at `start`, or None if unbalanced."""

    depth = 0
    i = start
    n = len(text)
    while i < n - 1:
        pair = text[i : i + 2]
        if pair == "{{":
            depth += 1
            i += 2
            continue
        if pair == "}}":
            depth -= 1
            i += 2
            if depth == 0:
                return i
            continue
        i += 1
    return None


def split_params(body: str) -> tuple[dict[str, str], list[str], list[tuple[str, str]]]:
    """Split a template body (text after the name) on top-level pipes."""

    pieces: list[str] = []
    depth_tpl = 0
    depth_link = 0
    buf: list[str] = []
    i = 0
    n = len(body)
    while i < n:
        pair = body[i : i + 2]
        if pair == "{{":
            depth_tpl += 1
            buf.append(pair)
            i += 2
            continue
        if pair == "}}" and depth_tpl > 0:
            depth_tpl -= 1
            buf.append(pair)
            i += 2
            continue
        if pair == "[[":
            depth_link += 1
            buf.append(pair)
            i += 2
            continue
        if pair == "]]" and depth_link > 0:
            depth_link -= 1
            buf.append(pair)
            i += 2
            continue
        ch = body[i]
        if ch == "|" and depth_tpl == 0 and depth_link == 0:
            pieces.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
        i += 1
    pieces.append("".join(buf))

    named: dict[str, str] = {}
    positional: list[str] = []
    ordered: list[tuple[str, str]] = []
    # pieces[0] is whatever followed the template name before the first pipe
    for piece in pieces[1:]:
        key, sep, value = piece.partition("=")
        if sep and "{{" not in key and "[[" not in key and key.strip():
            k = key.strip().lower()
            named.setdefault(k, value.strip())
            ordered.append((k, value.strip()))
        else:
            positional.append(piece.strip())
            ordered.append((str(len(positional)), piece.strip()))
    return named, positional, ordered


def iter_templates(
    text: str,
    names: set[str] | None = None,
    *,
    name_contains: str | None = None,
) -> Iterator[Template]:
    """Yield templates in source order, nested ones included.

    `names` filters by exact (case-insensitive) name; `name_contains` by substring.
    """

    wanted = {n.lower() for n in names} if names else None
    for m in _template_open_re.finditer(text):
        name = m.group(1).strip()
        lname = name.lower()
        if wanted is not None and lname not in wanted:
            continue
        if name_contains is not None and name_contains.lower() not in lname:
            continue
        end = find_block_end(text, m.start())
        if end is None:
            continue
        inner = text[m.start() + 2 : end - 2]
        body = inner[inner.find(name) + len(name) :] if name in inner else inner
        named, positional, ordered = split_params(body)
        yield Template(
            name=name,
            body=inner,
            start=m.start(),
            end=end,
            named=named,
            positional=positional,
            ordered=ordered,
        )


def labeled_values(text: str) -> Iterator[tuple[str, str]]:
    """Line-scanned `|key = value` pairs, keys lowercased."""

    for line in text.splitlines():
        m = _labeled_line_re.match(line)
        if m:
            yield m.group(1).strip().lower(), m.group(2).strip()


def strip_markup(value: str) -> str:
    """Reduce a wikitext value to display text."""

    v = _comment_re.sub("", value)
    v = _ref_re.sub("", v)
    v = _br_re.sub(", ", v)
    v = _wikilink_re.sub(r"\1", v)
    v = _extlink_re.sub(r"\1", v)
    v = _bare_extlink_re.sub("", v)
    # drop any template left over after links are resolved
    while True:
        start = v.find("{{")
        if start < 0:
            break
        end = find_block_end(v, start)
        if end is None:
            v = v[:start]
            break
        v = v[:start] + v[end:]
    v = _tag_re.sub("", v)
    v = _quotes_re.sub("", v)
    v = v.replace("&nbsp;", " ")
    return _whitespace_re.sub(" ", v).strip(" ,")


def template_value(value: str) -> str:
    """Display text of a value that may itself be a `{{Team|Name}}`-style template."""

    v = _comment_re.sub("", value).strip()
    if v.startswith("{{"):
        for tpl in iter_templates(v):
            if tpl.start != 0:
                break
            inner = tpl.arg(0) or tpl.get("name", "team", "1")
            if inner:
                return strip_markup(inner)
            break
    return strip_markup(v)
