from typing import Literal, Optional

from pydantic import BaseModel, Field

FieldName = Literal["name", "description", "price"]


class EditCommand(BaseModel):
    """A single edit to an open menu page."""

    action: Literal["set_field", "add_item", "toggle_removed"]
    section_id: str
    item_id: Optional[str] = Field(
        default=None,
        description="Target item. Required for set_field and toggle_removed.",
    )
    field: Optional[FieldName] = None
    price_index: Optional[int] = Field(default=None, ge=0)
    value: str = ""


class OfferEditCommand(BaseModel):
    """A single edit to the weekly offers."""

    action: Literal["set_title", "add_line", "set_line", "delete_line"]
    day: str = Field(pattern=r"^[0-6]$", description="Day index, 0 = Sunday.")
    index: Optional[int] = Field(default=None, ge=0, description="Line index for set_line / delete_line.")
    value: str = ""
