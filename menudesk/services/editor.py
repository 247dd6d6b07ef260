"""Editing session: the per-page cache of editable models and their mutations.

One :class:`EditorSession` owns every loaded :class:`PageModel` (keyed by
page id) and the offers state.  All mutations are synchronous and mark the
page dirty; the dirty flag is cleared only by a successful save or by reset.
"""

import asyncio
import inspect
import logging
from collections import defaultdict
from typing import Awaitable, Callable, Dict, Optional, Tuple, Union

from bs4 import BeautifulSoup
from pydantic import ValidationError

from menudesk.config import PAGES, PageDefinition, get_page_definition
from menudesk.models.edit_request import EditCommand, FieldName, OfferEditCommand
from menudesk.models.menu import ItemRecord, PageModel, PriceEntry, SectionModel
from menudesk.services.errors import LoadFailure, WriteSinkFailure
from menudesk.services.loader import load_document, load_offers, parse_document
from menudesk.services.offers import OffersModel
from menudesk.services.scanner import scan_sections
from menudesk.services.writer import regenerate

logger = logging.getLogger(__name__)

DocumentLoader = Callable[[PageDefinition], Awaitable[Tuple[str, BeautifulSoup]]]
OffersLoader = Callable[[], Awaitable[dict]]

# A sink receives (filename, content, media_type); it may be sync or async
Sink = Callable[[str, str, str], Union[None, Awaitable[None]]]


def build_page_model(definition: PageDefinition, html: str, document: BeautifulSoup) -> PageModel:
    return PageModel(
        id=definition.id,
        definition=definition,
        original_html=html,
        document=document,
        sections=scan_sections(document, definition),
    )


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

def _ensure_price_entry(section: SectionModel, item: ItemRecord, index: int) -> PriceEntry:
    # An item never holds more price slots than its section has labels
    if not 0 <= index < len(section.price_labels):
        raise ValueError(
            f"Price index {index} is out of range for {len(section.price_labels)} price label(s)."
        )
    while len(item.prices) <= index:
        item.prices.append(PriceEntry(label=section.price_labels[len(item.prices)]))
    return item.prices[index]


def set_field(
    page: PageModel,
    section: SectionModel,
    item: ItemRecord,
    field: FieldName,
    value: str,
    price_index: Optional[int] = None,
) -> None:
    """Overwrite the name, description or one price value of *item*."""
    if field == "name":
        item.name = value
    elif field == "description":
        item.description = value
    elif field == "price":
        if price_index is None:
            raise ValueError("A price edit needs a price_index.")
        _ensure_price_entry(section, item, price_index).value = value
    else:
        raise ValueError(f"Unknown field '{field}'.")
    page.dirty = True


def add_item(page: PageModel, section: SectionModel) -> ItemRecord:
    """Append a blank item to *section*; the document tree is not touched."""
    item = ItemRecord(
        id=f"{section.id}-new-{sum(1 for i in section.items if i.is_new)}",
        name="",
        description="" if section.uses_description else None,
        prices=[PriceEntry(label=label, value="") for label in section.price_labels],
        is_new=True,
    )
    section.items.append(item)
    page.dirty = True
    return item


def toggle_removed(page: PageModel, item: ItemRecord) -> bool:
    """Flip the soft-delete flag of *item* and return the new value."""
    item.removed = not item.removed
    page.dirty = True
    return item.removed


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class EditorSession:
    def __init__(
        self,
        loader: DocumentLoader = load_document,
        offers_loader: OffersLoader = load_offers,
    ) -> None:
        self._loader = loader
        self._offers_loader = offers_loader
        self._pages: Dict[str, PageModel] = {}
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._offers_lock = asyncio.Lock()
        self.offers: Optional[OffersModel] = None

    # -- pages ---------------------------------------------------------------

    def definition(self, page_id: str) -> PageDefinition:
        definition = get_page_definition(page_id)
        if definition is None:
            raise LookupError(f"Unknown page '{page_id}'.")
        return definition

    def cached(self, page_id: str) -> Optional[PageModel]:
        return self._pages.get(page_id)

    def get_page(self, page_id: str) -> PageModel:
        """Return the already-opened model for *page_id*."""
        page = self._pages.get(page_id)
        if page is None:
            raise LookupError(f"Page '{page_id}' is not open.")
        return page

    async def open_page(self, page_id: str) -> PageModel:
        """Return the cached model for *page_id*, loading it on first use.

        Opens of the same page are serialized so one fetch populates the cache.

        Raises:
            LookupError: if *page_id* is not a known page.
            LoadFailure: if the page could not be fetched or parsed.
        """
        definition = self.definition(page_id)
        async with self._locks[page_id]:
            page = self._pages.get(page_id)
            if page is not None:
                return page

            html, document = await self._loader(definition)
            page = build_page_model(definition, html, document)
            self._pages[page_id] = page
            return page

    async def reset(self, page_id: str) -> PageModel:
        """Discard every edit of *page_id* and rebuild it from its original text.

        A page that was never opened is simply loaded.
        """
        page = self._pages.pop(page_id, None)
        if page is None:
            return await self.open_page(page_id)

        document = parse_document(page.original_html)
        rebuilt = build_page_model(page.definition, page.original_html, document)
        self._pages[page_id] = rebuilt
        logger.info("Reset page %s", page_id)
        return rebuilt

    def apply_edit(self, page_id: str, command: EditCommand) -> bool:
        """Apply *command* to an open page and return the resulting dirty flag."""
        page = self.get_page(page_id)
        section = page.find_section(command.section_id)

        if command.action == "add_item":
            add_item(page, section)
            return page.dirty

        if command.item_id is None:
            raise ValueError(f"Action '{command.action}' needs an item_id.")
        item = page.find_item(command.section_id, command.item_id)

        if command.action == "toggle_removed":
            toggle_removed(page, item)
        else:
            if command.field is None:
                raise ValueError("A set_field edit needs a field.")
            set_field(page, section, item, command.field, command.value, command.price_index)
        return page.dirty

    def export_page(self, page_id: str) -> str:
        """Regenerate *page_id* without marking it clean."""
        return regenerate(self.get_page(page_id))

    def mark_saved(self, page_id: str) -> PageModel:
        """Record that the last exported content of *page_id* reached its destination."""
        page = self.get_page(page_id)
        page.dirty = False
        logger.info("Saved page %s", page_id)
        return page

    async def save_page(self, page_id: str, sink: Sink) -> str:
        """Regenerate *page_id*, hand it to *sink* and mark the page clean.

        Raises:
            WriteSinkFailure: if the sink raises; the page stays dirty.
        """
        page = self.get_page(page_id)
        content = self.export_page(page_id)
        await _deliver(sink, page.definition.file, content, "text/html")
        self.mark_saved(page_id)
        return content

    # -- offers --------------------------------------------------------------

    async def open_offers(self) -> OffersModel:
        """Return the offers, loading them on first use.

        Raises:
            LoadFailure: if the offers could not be fetched or are malformed.
        """
        async with self._offers_lock:
            if self.offers is None:
                data = await self._offers_loader()
                try:
                    self.offers = OffersModel(data)
                except ValidationError as exc:
                    raise LoadFailure(f"Offers data is malformed: {exc.error_count()} error(s).") from exc
            return self.offers

    def get_offers(self) -> OffersModel:
        if self.offers is None:
            raise LookupError("Offers are not open.")
        return self.offers

    def apply_offer_edit(self, command: OfferEditCommand) -> bool:
        """Apply *command* to the open offers and return the dirty flag."""
        offers = self.get_offers()
        if command.action == "set_title":
            offers.set_title(command.day, command.value)
        elif command.action == "add_line":
            offers.add_line(command.day, command.value)
        else:
            if command.index is None:
                raise ValueError(f"Action '{command.action}' needs a line index.")
            if command.action == "set_line":
                offers.set_line(command.day, command.index, command.value)
            else:
                offers.delete_line(command.day, command.index)
        return offers.dirty

    def reset_offers(self) -> OffersModel:
        offers = self.get_offers()
        offers.reset()
        return offers

    def export_offers(self) -> str:
        return self.get_offers().to_json()

    def mark_offers_saved(self) -> OffersModel:
        offers = self.get_offers()
        offers.mark_clean()
        logger.info("Saved offers")
        return offers

    async def save_offers(self, sink: Sink) -> str:
        content = self.export_offers()
        await _deliver(sink, "offers.json", content, "application/json")
        self.mark_offers_saved()
        return content

    # -- status --------------------------------------------------------------

    def status(self) -> Dict[str, bool]:
        """Map every known page id to its dirty flag (unopened pages are clean)."""
        status = {}
        for definition in PAGES:
            page = self._pages.get(definition.id)
            status[definition.id] = page.dirty if page is not None else False
        return status

    def has_unsaved_changes(self) -> bool:
        pages_dirty = any(page.dirty for page in self._pages.values())
        return pages_dirty or bool(self.offers and self.offers.dirty)


async def _deliver(sink: Sink, filename: str, content: str, media_type: str) -> None:
    try:
        result = sink(filename, content, media_type)
        if inspect.isawaitable(result):
            await result
    except Exception as exc:
        logger.warning("Sink rejected %s: %s", filename, exc)
        raise WriteSinkFailure(f"Could not deliver {filename}: {exc}") from exc
