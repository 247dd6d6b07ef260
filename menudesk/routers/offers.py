import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import Response
from slowapi import Limiter
from slowapi.util import get_remote_address

from menudesk.models.edit_request import OfferEditCommand
from menudesk.models.offers_response import OfferDay, OffersResponse
from menudesk.models.page_response import CopyResponse, SavedResponse
from menudesk.services.editor import EditorSession
from menudesk.services.errors import LoadFailure, WriteSinkFailure
from menudesk.services.offers import OffersModel

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter(prefix="/offers", tags=["Offers"])

_FILENAME = "offers.json"


@router.get("", response_model=OffersResponse, summary="Open the weekly offers")
async def get_offers(request: Request) -> OffersResponse:
    offers = await _open_offers(_session(request))
    return _offers_response(offers)


@router.get("/today", response_model=OfferDay, summary="Offers for the current offer day")
async def today(request: Request) -> OfferDay:
    offers = await _open_offers(_session(request))
    return OfferDay(**offers.today())


@router.post("/edits", response_model=OffersResponse, summary="Apply one edit to the offers")
async def apply_edit(request: Request, body: OfferEditCommand) -> OffersResponse:
    session = _session(request)
    offers = await _open_offers(session)
    try:
        session.apply_offer_edit(body)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return _offers_response(offers)


@router.post("/reset", response_model=OffersResponse, summary="Discard unsaved offer edits")
async def reset_offers(request: Request) -> OffersResponse:
    session = _session(request)
    await _open_offers(session)
    return _offers_response(session.reset_offers())


@router.post("/download", summary="Download offers.json and mark the offers saved")
@limiter.limit("30/minute")
async def download_offers(request: Request) -> Response:
    content = await _save(_session(request))
    return Response(
        content=content,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{_FILENAME}"'},
    )


@router.post("/copy", response_model=CopyResponse, summary="Get offers.json for copying")
@limiter.limit("30/minute")
async def copy_offers(request: Request) -> CopyResponse:
    """Return offers.json. The offers stay dirty until the copy is acknowledged."""
    session = _session(request)
    offers = await _open_offers(session)
    return CopyResponse(
        filename=_FILENAME,
        media_type="application/json",
        content=session.export_offers(),
        dirty=offers.dirty,
    )


@router.post("/saved", response_model=SavedResponse, summary="Acknowledge a successful copy")
async def mark_saved(request: Request) -> SavedResponse:
    session = _session(request)
    await _open_offers(session)
    offers = session.mark_offers_saved()
    return SavedResponse(dirty=offers.dirty, unsaved_changes=session.has_unsaved_changes())


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _session(request: Request) -> EditorSession:
    return request.app.state.editor


async def _open_offers(session: EditorSession) -> OffersModel:
    try:
        return await session.open_offers()
    except LoadFailure as exc:
        logger.error("Could not load offers: %s", exc)
        raise HTTPException(
            status_code=502,
            detail="Unable to load offers.json. Confirm that the file exists.",
        )


async def _save(session: EditorSession) -> str:
    await _open_offers(session)
    try:
        return await session.save_offers(lambda filename, content, media_type: None)
    except WriteSinkFailure as exc:
        raise HTTPException(status_code=502, detail=str(exc))


def _offers_response(offers: OffersModel) -> OffersResponse:
    return OffersResponse(dirty=offers.dirty, days=[OfferDay(**day) for day in offers.days()])
