from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from menudesk.config import PageDefinition


class PriceEntry(BaseModel):
    label: str
    value: str = ""


class ItemRecord(BaseModel):
    """One editable menu item.

    ``removed`` is a soft-delete flag: the record stays in its section so the
    deletion can be undone until the page is saved or reset.
    """

    id: str
    name: str = ""
    description: Optional[str] = None  # None when the section has no description field
    prices: List[PriceEntry] = []
    removed: bool = False
    is_new: bool = False


class SectionModel(BaseModel):
    """A section scanned from the document, with its frozen item layout.

    ``element``, ``container`` and ``template`` are live references into (or a
    detached clone from) the parsed document and are never serialized.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str
    title: str
    item_selector: str
    price_labels: List[str] = []
    header_labels: List[str] = []
    uses_description: bool = False
    has_price_group: bool = False
    items: List[ItemRecord] = []

    element: Any = Field(default=None, exclude=True, repr=False)
    container: Any = Field(default=None, exclude=True, repr=False)
    template: Any = Field(default=None, exclude=True, repr=False)

    @property
    def visible_items(self) -> List[ItemRecord]:
        return [item for item in self.items if not item.removed]


class PageModel(BaseModel):
    """One loaded menu page: its document tree, original text and sections."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str
    definition: PageDefinition
    original_html: str = Field(exclude=True, repr=False)
    document: Any = Field(default=None, exclude=True, repr=False)
    sections: List[SectionModel] = []
    dirty: bool = False

    def find_section(self, section_id: str) -> SectionModel:
        for section in self.sections:
            if section.id == section_id:
                return section
        raise LookupError(f"Unknown section '{section_id}' on page '{self.id}'.")

    def find_item(self, section_id: str, item_id: str) -> ItemRecord:
        section = self.find_section(section_id)
        for item in section.items:
            if item.id == item_id:
                return item
        raise LookupError(f"Unknown item '{item_id}' in section '{section_id}'.")
