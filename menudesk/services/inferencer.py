"""Schema inference: works out the field layout of a section from its first item.

Menu pages carry no declared schema.  The same logical field may be a single
element, a group of elements, or missing entirely, so every role is located
through an ordered cascade with well-defined fallbacks:

Name
    Name-specific selectors, then the first child element that is not
    price-like, then the item node itself.

Description
    Description-specific selectors.  A section "uses" descriptions when the
    first item has a matching element, even an empty one.

Prices
    The children of a price-group container when one exists; otherwise the
    standalone price selectors (deduplicated, skipping anything inside a
    price group); otherwise every non-name child element containing a digit.

Labels
    Section header labels when there are at least as many as price slots,
    ``"Price"`` for a single slot, ``"Price 1"``, ``"Price 2"`` … otherwise.
    Labels come from the first item only and are frozen for the section.
"""

import copy
import logging
from typing import List, NamedTuple, Optional

from bs4 import Tag

from menudesk.config import LocatorPatterns
from menudesk.services.locators import (
    cascade,
    child_elements,
    first_match,
    has_digit,
    is_inside,
    is_price_like,
    matchers,
    node_text,
    unique_nodes,
)

logger = logging.getLogger(__name__)


class SectionLayout(NamedTuple):
    item_selector: str
    item_nodes: List[Tag]
    template: Tag
    price_labels: List[str]
    header_labels: List[str]
    uses_description: bool
    has_price_group: bool


# ---------------------------------------------------------------------------
# Field locators (shared with the reader and the writer)
# ---------------------------------------------------------------------------

def find_items(container: Tag, patterns: LocatorPatterns) -> tuple[Optional[str], List[Tag]]:
    """Return ``(selector, item_nodes)`` for the first item pattern that matches."""
    matcher, nodes = cascade(matchers(patterns.items), container)
    if matcher is None:
        return None, []
    return matcher.selector, nodes


def find_name(node: Tag, patterns: LocatorPatterns) -> Tag:
    named = first_match(patterns.names, node)
    if named is not None:
        return named
    for child in child_elements(node):
        if not is_price_like(child):
            return child
    return node


def find_description(node: Tag, patterns: LocatorPatterns) -> Optional[Tag]:
    return first_match(patterns.descriptions, node)


def find_price_group(node: Tag, patterns: LocatorPatterns) -> Optional[Tag]:
    return node.select_one(patterns.price_group)


def find_standalone_prices(node: Tag, patterns: LocatorPatterns) -> List[Tag]:
    candidates = []
    for selector in patterns.prices:
        for element in node.select(selector):
            if is_inside(element, patterns.price_group):
                continue
            candidates.append(element)
    elements = unique_nodes(candidates)
    if elements:
        return elements

    name = find_name(node, patterns)
    return [
        child
        for child in child_elements(node)
        if child is not name and has_digit(child)
    ]


def find_price_slots(node: Tag, patterns: LocatorPatterns) -> List[Tag]:
    """Return the price slot elements of *node* in document order."""
    group = find_price_group(node, patterns)
    if group is not None:
        return group.select(patterns.price_group_slots)
    return find_standalone_prices(node, patterns)


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------

def find_header_labels(section: Tag, patterns: LocatorPatterns) -> List[str]:
    labels = [node_text(el) for el in section.select(patterns.header_labels)]
    return [label for label in labels if label]


def compute_price_labels(header_labels: List[str], slot_count: int) -> List[str]:
    if header_labels and len(header_labels) >= slot_count:
        return header_labels[:slot_count]
    if slot_count == 1:
        return ["Price"]
    return [f"Price {idx + 1}" for idx in range(slot_count)]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def infer_layout(section: Tag, container: Tag, patterns: LocatorPatterns) -> Optional[SectionLayout]:
    """Infer the item layout of *container*.

    Returns *None* when no item pattern matches; that is a normal outcome
    for sections that hold no priced items.
    """
    item_selector, item_nodes = find_items(container, patterns)
    if item_selector is None:
        return None

    first = item_nodes[0]
    template = copy.copy(first)

    header_labels = find_header_labels(section, patterns)
    slots = find_price_slots(first, patterns)
    price_labels = compute_price_labels(header_labels, len(slots))

    layout = SectionLayout(
        item_selector=item_selector,
        item_nodes=item_nodes,
        template=template,
        price_labels=price_labels,
        header_labels=header_labels,
        uses_description=find_description(first, patterns) is not None,
        has_price_group=find_price_group(first, patterns) is not None,
    )
    logger.debug(
        "Inferred layout: selector=%r items=%d labels=%s description=%s",
        item_selector,
        len(item_nodes),
        price_labels,
        layout.uses_description,
    )
    return layout
