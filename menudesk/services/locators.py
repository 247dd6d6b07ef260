"""Cascading structural matchers.

A cascade is an ordered list of matcher functions tried in sequence; the
first one returning a non-empty result wins.  Matchers are built from the
selector lists in :mod:`menudesk.config`, so the cascades stay data.
"""

import re
from typing import Iterable, List, NamedTuple, Optional, Tuple

from bs4 import Tag

# Shallow lexical check on an element's class attribute
_PRICE_LIKE_RE = re.compile(r"price|amount", re.IGNORECASE)
_DIGIT_RE = re.compile(r"\d")


class Matcher(NamedTuple):
    """A CSS selector bound to a lookup mode."""

    selector: str
    first_only: bool = False

    def __call__(self, node: Tag) -> List[Tag]:
        if self.first_only:
            found = node.select_one(self.selector)
            return [found] if found is not None else []
        return node.select(self.selector)


def matchers(selectors: Iterable[str], first_only: bool = False) -> List[Matcher]:
    return [Matcher(selector, first_only) for selector in selectors]


def cascade(candidates: Iterable[Matcher], node: Tag) -> Tuple[Optional[Matcher], List[Tag]]:
    """Run *candidates* against *node* in order and return the first hit.

    Returns:
        ``(matcher, matches)`` for the first matcher with a non-empty result,
        or ``(None, [])`` when nothing matched.
    """
    for matcher in candidates:
        found = matcher(node)
        if found:
            return matcher, found
    return None, []


def first_match(selectors: Iterable[str], node: Tag) -> Optional[Tag]:
    """Return the first node found by the first matching selector."""
    _matcher, found = cascade(matchers(selectors, first_only=True), node)
    return found[0] if found else None


def child_elements(node: Tag) -> List[Tag]:
    return [child for child in node.children if isinstance(child, Tag)]


def is_price_like(node: Tag) -> bool:
    classes = node.get("class") or []
    if isinstance(classes, str):
        classes = [classes]
    return bool(_PRICE_LIKE_RE.search(" ".join(classes)))


def has_digit(node: Tag) -> bool:
    return bool(_DIGIT_RE.search(node.get_text()))


def is_inside(node: Tag, selector: str) -> bool:
    """True when *node* or one of its ancestors matches *selector*."""
    return node.css.closest(selector) is not None


def node_text(node: Optional[Tag]) -> str:
    return node.get_text().strip() if node is not None else ""


def set_node_text(node: Tag, value: str) -> None:
    """Replace the whole content of *node* with the text *value*."""
    node.string = value


def unique_nodes(nodes: Iterable[Tag]) -> List[Tag]:
    """Deduplicate *nodes* by identity, keeping document order of first sight.

    bs4 compares tags structurally, so equality cannot be used here.
    """
    seen: set = set()
    result: List[Tag] = []
    for node in nodes:
        if id(node) in seen:
            continue
        seen.add(id(node))
        result.append(node)
    return result
