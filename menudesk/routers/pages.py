import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import Response
from slowapi import Limiter
from slowapi.util import get_remote_address

from menudesk.config import PAGES
from menudesk.models.edit_request import EditCommand
from menudesk.models.menu import PageModel
from menudesk.models.page_response import (
    CopyResponse,
    EditResponse,
    PageListResponse,
    PageResponse,
    PageSummary,
    SavedResponse,
)
from menudesk.services.editor import EditorSession
from menudesk.services.errors import LoadFailure, WriteSinkFailure

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter(prefix="/pages", tags=["Pages"])


@router.get("", response_model=PageListResponse, summary="List editable menu pages")
async def list_pages(request: Request) -> PageListResponse:
    session = _session(request)
    status = session.status()
    pages = [
        PageSummary(
            id=definition.id,
            label=definition.label,
            file=definition.file,
            loaded=session.cached(definition.id) is not None,
            dirty=status[definition.id],
        )
        for definition in PAGES
    ]
    return PageListResponse(pages=pages, unsaved_changes=session.has_unsaved_changes())


@router.get("/{page_id}", response_model=PageResponse, summary="Open a menu page")
async def get_page(request: Request, page_id: str) -> PageResponse:
    page = await _open_page(_session(request), page_id)
    return _page_response(page)


@router.post("/{page_id}/edits", response_model=EditResponse, summary="Apply one edit to a page")
async def apply_edit(request: Request, page_id: str, body: EditCommand) -> EditResponse:
    session = _session(request)
    page = await _open_page(session, page_id)
    logger.info("Edit on %s", page_id, extra={"action": body.action, "section_id": body.section_id})
    try:
        dirty = session.apply_edit(page_id, body)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return EditResponse(dirty=dirty, section=page.find_section(body.section_id))


@router.post("/{page_id}/reset", response_model=PageResponse, summary="Discard all edits of a page")
async def reset_page(request: Request, page_id: str) -> PageResponse:
    session = _session(request)
    _definition_or_404(session, page_id)
    try:
        page = await session.reset(page_id)
    except LoadFailure as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return _page_response(page)


@router.post("/{page_id}/download", summary="Download the regenerated HTML and mark the page saved")
@limiter.limit("30/minute")
async def download_page(request: Request, page_id: str) -> Response:
    session = _session(request)
    page = await _open_page(session, page_id)
    content = await _save(session, page_id)
    return Response(
        content=content,
        media_type="text/html",
        headers={"Content-Disposition": f'attachment; filename="{page.definition.file}"'},
    )


@router.post("/{page_id}/copy", response_model=CopyResponse, summary="Get the regenerated HTML for copying")
@limiter.limit("30/minute")
async def copy_page(request: Request, page_id: str) -> CopyResponse:
    """Return the regenerated HTML. The page stays dirty until the copy is acknowledged."""
    session = _session(request)
    page = await _open_page(session, page_id)
    content = session.export_page(page_id)
    return CopyResponse(
        filename=page.definition.file,
        media_type="text/html",
        content=content,
        dirty=page.dirty,
    )


@router.post("/{page_id}/saved", response_model=SavedResponse, summary="Acknowledge a successful copy")
async def mark_saved(request: Request, page_id: str) -> SavedResponse:
    session = _session(request)
    _definition_or_404(session, page_id)
    try:
        page = session.mark_saved(page_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return SavedResponse(dirty=page.dirty, unsaved_changes=session.has_unsaved_changes())


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _session(request: Request) -> EditorSession:
    return request.app.state.editor


def _definition_or_404(session: EditorSession, page_id: str) -> None:
    try:
        session.definition(page_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


async def _open_page(session: EditorSession, page_id: str) -> PageModel:
    """Open *page_id* and propagate failures as HTTP exceptions."""
    _definition_or_404(session, page_id)
    try:
        return await session.open_page(page_id)
    except LoadFailure as exc:
        logger.error("Could not load page %s: %s", page_id, exc)
        raise HTTPException(
            status_code=502,
            detail="Unable to load the requested page. Check that the site files are reachable.",
        )


def _accept(filename: str, content: str, media_type: str) -> None:
    """Sink for HTTP responses: the content is delivered as the response body."""
    logger.debug("Delivering %s (%s, %d bytes)", filename, media_type, len(content))


async def _save(session: EditorSession, page_id: str) -> str:
    try:
        return await session.save_page(page_id, _accept)
    except WriteSinkFailure as exc:
        raise HTTPException(status_code=502, detail=str(exc))


def _page_response(page: PageModel) -> PageResponse:
    return PageResponse(
        id=page.id,
        label=page.definition.label,
        file=page.definition.file,
        dirty=page.dirty,
        sections=page.sections,
    )
