"""
Issue, pull request and wiki references in commit messages.

GitBucket understands a few keywords in commit messages. ``fixes #3`` and its
siblings close an issue once the commit lands; ``refs #3``, ``issue #3``,
``pull #3`` and ``wiki Name`` only point somewhere. The helpers here find
these references and turn them into links.
"""

import html
import re
from typing import NamedTuple


class Rule(NamedTuple):
    name: str
    pattern: re.Pattern
    href: str

    def target(self, match: re.Match) -> str:
        return self.href.format(id=match.group("id"))


class Reference(NamedTuple):
    rule: Rule
    id: str
    start: int
    end: int

    @property
    def number(self) -> int:
        return int(self.id)


def _rule(name: str, keyword: str, href: str = "", id_pattern: str = r"#?(?P<id>\d+)"):
    return Rule(name, re.compile(rf"{keyword}\s+{id_pattern}", re.IGNORECASE), href)


CLOSING_RULES = (
    _rule("fix", r"fix(?:es|ed)?"),
    _rule("close", r"close[sd]?"),
    _rule("resolve", r"resolve[sd]?"),
)

LINK_RULES = (
    _rule("refs", "refs", "issues/{id}"),
    _rule("issue", "issue", "issues/{id}"),
    _rule("pull", "pull", "pulls/{id}"),
    _rule("wiki", "wiki", "wiki/{id}", id_pattern=r"(?P<id>\w+)"),
)


def _overlaps(start: int, end: int, accepted: list[Reference]) -> bool:
    return any(start < ref.end and ref.start < end for ref in accepted)


def find_references(text: str, rules=CLOSING_RULES) -> list[Reference]:
    """Return the non-overlapping references in ``text`` ordered by position.

    When matches of two rules overlap, the rule listed first wins.
    """
    accepted: list[Reference] = []
    for rule in rules:
        for match in rule.pattern.finditer(text):
            if _overlaps(match.start(), match.end(), accepted):
                continue
            accepted.append(Reference(rule, match.group("id"), *match.span()))
    return sorted(accepted, key=lambda ref: ref.start)


def find_issue_ids(text: str) -> list[int]:
    """Ids of the issues closed by ``text``, duplicates included."""
    return [ref.number for ref in find_references(text, CLOSING_RULES)]


class MarkupText:
    """Plain text plus tags that surround spans of it.

    The text is HTML-escaped on render, the tags are emitted as given.
    """

    def __init__(self, text: str):
        self.text = text
        self._tags: list[tuple[int, int, str, str]] = []

    def is_marked(self, start: int, end: int) -> bool:
        return any(start < e and s < end for s, e, _, _ in self._tags)

    def surround(self, start: int, end: int, open_tag: str, close_tag: str):
        self._tags.append((start, end, open_tag, close_tag))

    def render(self) -> str:
        out = []
        pos = 0
        for start, end, open_tag, close_tag in sorted(self._tags):
            out.append(html.escape(self.text[pos:start], quote=False))
            out.append(open_tag)
            out.append(html.escape(self.text[start:end], quote=False))
            out.append(close_tag)
            pos = end
        out.append(html.escape(self.text[pos:], quote=False))
        return "".join(out)

    def __str__(self) -> str:
        return self.render()


def annotate_markup(markup: MarkupText, base_url: str, rules=LINK_RULES):
    for rule in rules:
        for match in rule.pattern.finditer(markup.text):
            if markup.is_marked(*match.span()):
                continue
            href = html.escape(f"{base_url}{rule.target(match)}", quote=True)
            markup.surround(match.start(), match.end(), f"<a href='{href}'>", "</a>")


def annotate(text: str, base_url: str) -> str:
    """Wrap issue, pull request and wiki references in ``text`` in links.

    ``text`` is plain text and comes back HTML-escaped. ``base_url`` must end
    with a slash.
    """
    markup = MarkupText(text)
    annotate_markup(markup, base_url)
    return markup.render()
