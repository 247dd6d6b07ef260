"""Section scanning: turns a parsed menu page into a list of editable sections."""

import logging
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from menudesk.config import LocatorPatterns, PageDefinition
from menudesk.models.menu import SectionModel
from menudesk.services.inferencer import infer_layout
from menudesk.services.locators import first_match, node_text
from menudesk.services.reader import read_items

logger = logging.getLogger(__name__)


def _extract_title(section: Tag, index: int, patterns: LocatorPatterns) -> str:
    heading = first_match(patterns.headings, section)
    title = node_text(heading)
    return title or f"Section {index + 1}"


def find_container(section: Tag, patterns: LocatorPatterns) -> Tag:
    """Return the item container inside *section*, or *section* itself."""
    return first_match(patterns.containers, section) or section


def build_section(section: Tag, index: int, definition: PageDefinition) -> Optional[SectionModel]:
    """Build the :class:`SectionModel` for one anchor match.

    Returns *None* when the section holds no recognisable items.
    """
    patterns = definition.patterns
    section_id = f"{definition.id}-section-{index}"
    title = _extract_title(section, index, patterns)
    container = find_container(section, patterns)

    layout = infer_layout(section, container, patterns)
    if layout is None:
        logger.debug("Skipping section %s (%r): no items found", section_id, title)
        return None

    items = read_items(
        layout.item_nodes,
        section_id,
        layout.price_labels,
        layout.uses_description,
        patterns,
    )
    return SectionModel(
        id=section_id,
        title=title,
        item_selector=layout.item_selector,
        price_labels=layout.price_labels,
        header_labels=layout.header_labels,
        uses_description=layout.uses_description,
        has_price_group=layout.has_price_group,
        items=items,
        element=section,
        container=container,
        template=layout.template,
    )


def scan_sections(document: BeautifulSoup, definition: PageDefinition) -> List[SectionModel]:
    """Find every section of *document* in document order.

    Anchor matches without items are dropped; section ids keep the anchor
    index, so numbering may have gaps.
    """
    sections: List[SectionModel] = []
    for index, node in enumerate(document.select(definition.section_selector)):
        section = build_section(node, index, definition)
        if section is not None:
            sections.append(section)

    logger.info(
        "Scanned page %s: %d sections, %d items",
        definition.id,
        len(sections),
        sum(len(s.items) for s in sections),
    )
    return sections
