from typing import List, Optional

from pydantic import BaseModel

from menudesk.models.menu import SectionModel


class PageSummary(BaseModel):
    id: str
    label: str
    file: str
    loaded: bool
    dirty: bool


class PageListResponse(BaseModel):
    pages: List[PageSummary]
    unsaved_changes: bool


class PageResponse(BaseModel):
    id: str
    label: str
    file: str
    dirty: bool
    sections: List[SectionModel]


class EditResponse(BaseModel):
    dirty: bool
    section: Optional[SectionModel] = None


class CopyResponse(BaseModel):
    """Generated file content handed to the client for a clipboard copy."""

    filename: str
    media_type: str
    content: str
    dirty: bool


class SavedResponse(BaseModel):
    """Acknowledgement that copied content reached the clipboard."""

    dirty: bool
    unsaved_changes: bool
