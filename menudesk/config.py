"""Page definitions and locator patterns for every menu page of the site.

Each menu page is described by a :class:`PageDefinition` (which file to load
and which anchor selector marks a section).  All pages share one
:class:`LocatorPatterns` instance: the ordered selector lists the cascading
matchers walk through when looking for containers, items, names,
descriptions and prices.  Adding a page type means adding data here, never
touching the matcher code.
"""

import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

# Directory holding the site's HTML files and offers.json
SITE_ROOT = Path(os.environ.get("MENUDESK_SITE_ROOT", "."))

# When set, pages are fetched over HTTP relative to this URL instead of
# being read from SITE_ROOT.
SITE_URL: Optional[str] = os.environ.get("MENUDESK_SITE_URL") or None

OFFERS_FILE = os.environ.get("MENUDESK_OFFERS_FILE", "offers.json")

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


class LocatorPatterns(BaseModel):
    """Ordered CSS selector cascades used to find each structural role."""

    headings: List[str] = ["h2, h3"]
    containers: List[str] = [
        ".misc-table",
        ".classic-list",
        ".spirits-table",
        ".wine-table",
        ".beer-table",
        ".menu-section",
    ]
    items: List[str] = [
        ".menu-item",
        ".misc-item",
        ".spirits-item",
        ".wine-item",
        ".beer-item",
        ".classic-list li",
        ":scope > .misc-item",
    ]
    names: List[str] = [
        ".menu-item-name",
        ".misc-name",
        ".wine-name",
        ".spirit-name",
        ".beer-name",
    ]
    descriptions: List[str] = [".menu-item-body p", ".misc-description"]
    price_group: str = ".misc-price-group, .price-group"
    price_group_slots: str = "span, strong"
    prices: List[str] = [
        ".menu-item-price",
        ".misc-price",
        ".misc-price-ml",
        ".misc-price-bottle",
        ".wine-price",
        ".wine-amount",
        ".spirit-price",
        ".spirit-amount",
        ".beer-price",
    ]
    header_labels: str = ".misc-header-labels span, .spirits-header span, .wine-header span"


DEFAULT_PATTERNS = LocatorPatterns()


class PageDefinition(BaseModel):
    id: str
    label: str
    file: str
    section_selector: str = Field(description="Anchor selector marking each section block.")
    patterns: LocatorPatterns = DEFAULT_PATTERNS


PAGES: List[PageDefinition] = [
    PageDefinition(id="signature", label="Signature Cocktails", file="index.html", section_selector="main .misc-section"),
    PageDefinition(id="classic", label="Classic Cocktails & Shots", file="classic.html", section_selector="main .misc-section"),
    PageDefinition(id="spirits", label="Spirits", file="spirits.html", section_selector="main .spirits-section"),
    PageDefinition(id="whisky", label="Whisky & Cognac", file="whisky.html", section_selector="main .misc-section"),
    PageDefinition(id="wine", label="Champagne & Wine", file="wine.html", section_selector="main .misc-section"),
    PageDefinition(id="beer", label="Beer & Aperitif", file="beer.html", section_selector="main .misc-section"),
    PageDefinition(id="misc", label="Miscellaneous", file="misc.html", section_selector="main .misc-section"),
]


def get_page_definition(page_id: str) -> Optional[PageDefinition]:
    """Return the definition registered under *page_id*, or *None*."""
    for definition in PAGES:
        if definition.id == page_id:
            return definition
    return None
