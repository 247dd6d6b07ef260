import logging
from typing import List

from bs4 import Tag

from menudesk.config import LocatorPatterns
from menudesk.models.menu import ItemRecord, PriceEntry
from menudesk.services.inferencer import find_description, find_name, find_price_slots
from menudesk.services.locators import node_text

logger = logging.getLogger(__name__)


def read_item(
    node: Tag,
    item_id: str,
    price_labels: List[str],
    uses_description: bool,
    patterns: LocatorPatterns,
) -> ItemRecord:
    """Read one item node into an :class:`ItemRecord` using a frozen layout.

    Prices are read positionally and normalised to ``len(price_labels)``
    entries: missing slots become ``""`` and surplus slots are dropped.
    """
    raw_prices = [node_text(el) for el in find_price_slots(node, patterns)]
    if len(raw_prices) > len(price_labels):
        logger.debug(
            "Item %s has %d price slots, keeping the first %d",
            item_id,
            len(raw_prices),
            len(price_labels),
        )

    prices = [
        PriceEntry(label=label, value=raw_prices[idx] if idx < len(raw_prices) else "")
        for idx, label in enumerate(price_labels)
    ]

    description = None
    if uses_description:
        description = node_text(find_description(node, patterns))

    return ItemRecord(
        id=item_id,
        name=node_text(find_name(node, patterns)),
        description=description,
        prices=prices,
    )


def read_items(
    item_nodes: List[Tag],
    section_id: str,
    price_labels: List[str],
    uses_description: bool,
    patterns: LocatorPatterns,
) -> List[ItemRecord]:
    """Read every item node of a section, the template item included."""
    return [
        read_item(node, f"{section_id}-item-{idx}", price_labels, uses_description, patterns)
        for idx, node in enumerate(item_nodes)
    ]
