"""Document regeneration: writes edited item records back into the page tree.

Only the children of item containers are replaced.  Every other node of the
document is left exactly as it was parsed.
"""

import copy
import logging

from bs4 import BeautifulSoup, Doctype, Tag

from menudesk.config import LocatorPatterns
from menudesk.models.menu import ItemRecord, PageModel, SectionModel
from menudesk.services.inferencer import (
    find_description,
    find_name,
    find_price_slots,
)
from menudesk.services.locators import set_node_text

logger = logging.getLogger(__name__)

DOCTYPE = "<!DOCTYPE html>\n"


def render_item(template: Tag, record: ItemRecord, section: SectionModel, patterns: LocatorPatterns) -> Tag:
    """Return a new item node built from *template* and *record*.

    *template* itself is never modified.
    """
    node = copy.copy(template)

    set_node_text(find_name(node, patterns), record.name.strip())

    if section.uses_description:
        description_el = find_description(node, patterns)
        if description_el is not None:
            set_node_text(description_el, (record.description or "").strip())

    slots = find_price_slots(node, patterns)
    for idx, slot in enumerate(slots):
        # Slots without a value are cleared, never removed
        value = record.prices[idx].value.strip() if idx < len(record.prices) else ""
        set_node_text(slot, value)

    return node


def rebuild_section(section: SectionModel, patterns: LocatorPatterns) -> None:
    """Replace the item nodes of *section*'s container with rendered records."""
    container = section.container
    for node in container.select(section.item_selector):
        node.extract()

    for record in section.visible_items:
        container.append(render_item(section.template, record, section, patterns))


def serialize(document: BeautifulSoup) -> str:
    """Serialize *document* with a standard doctype preamble."""
    body = "".join(str(node) for node in document.contents if not isinstance(node, Doctype))
    return DOCTYPE + body.lstrip()


def regenerate(page: PageModel) -> str:
    """Write every section of *page* back into its document and return the HTML."""
    patterns = page.definition.patterns
    for section in page.sections:
        rebuild_section(section, patterns)

    logger.info(
        "Regenerated page %s: %d sections, %d items",
        page.id,
        len(page.sections),
        sum(len(s.visible_items) for s in page.sections),
    )
    return serialize(page.document)
