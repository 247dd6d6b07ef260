"""Document loading: reads a page's HTML from disk or over HTTP and parses it."""

import json
import logging
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup
from pydantic import ValidationError

from menudesk.config import OFFERS_FILE, SITE_ROOT, SITE_URL, PageDefinition
from menudesk.models.offers_response import OffersFile
from menudesk.services.errors import LoadFailure

logger = logging.getLogger(__name__)

MAX_CONTENT_SIZE = 10 * 1024 * 1024  # 10 MB
TIMEOUT = 10  # seconds


def parse_document(html: str) -> BeautifulSoup:
    """Parse *html* into a document tree."""
    return BeautifulSoup(html, "lxml")


async def _fetch_remote(url: str) -> str:
    """Fetch *url* and return the body, enforcing MAX_CONTENT_SIZE.

    Raises:
        httpx.HTTPError: on network or HTTP errors.
        RuntimeError: if the response body exceeds MAX_CONTENT_SIZE.
    """
    async with httpx.AsyncClient(follow_redirects=True, timeout=TIMEOUT) as client:
        # Cache-busting headers: an editor must always see the current file
        headers = {"Cache-Control": "no-store"}
        async with client.stream("GET", url, headers=headers) as response:
            response.raise_for_status()

            content_length = response.headers.get("content-length")
            if content_length and int(content_length) > MAX_CONTENT_SIZE:
                raise RuntimeError("Response body exceeds the maximum allowed size.")

            chunks = []
            total = 0
            async for chunk in response.aiter_bytes():
                total += len(chunk)
                if total > MAX_CONTENT_SIZE:
                    raise RuntimeError("Response body exceeds the maximum allowed size.")
                chunks.append(chunk)

            return b"".join(chunks).decode(errors="replace")


def _read_local(path: Path) -> str:
    if path.stat().st_size > MAX_CONTENT_SIZE:
        raise RuntimeError("File exceeds the maximum allowed size.")
    return path.read_text(encoding="utf-8", errors="replace")


async def fetch_text(
    filename: str,
    site_root: Optional[Path] = None,
    site_url: Optional[str] = None,
) -> str:
    """Return the raw text of *filename* from the configured site.

    A site URL takes precedence over the local site directory.

    Raises:
        LoadFailure: on any fetch, HTTP status or filesystem error.
    """
    site_url = site_url if site_url is not None else SITE_URL
    site_root = site_root if site_root is not None else SITE_ROOT

    if site_url:
        url = urljoin(site_url.rstrip("/") + "/", filename)
        try:
            return await _fetch_remote(url)
        except httpx.HTTPStatusError as exc:
            logger.error("HTTP error fetching %s: %s", url, exc)
            raise LoadFailure(
                f"Failed to fetch {filename}: HTTP {exc.response.status_code}."
            ) from exc
        except (httpx.HTTPError, RuntimeError) as exc:
            logger.error("Error fetching %s: %s", url, exc)
            raise LoadFailure(f"Failed to fetch {filename}: {exc}") from exc

    path = Path(site_root) / filename
    try:
        return _read_local(path)
    except (OSError, RuntimeError) as exc:
        logger.error("Error reading %s: %s", path, exc)
        raise LoadFailure(f"Failed to read {filename}: {exc}") from exc


async def load_document(
    definition: PageDefinition,
    site_root: Optional[Path] = None,
    site_url: Optional[str] = None,
) -> Tuple[str, BeautifulSoup]:
    """Load the page described by *definition*.

    Returns:
        A tuple of *(raw_html, document_tree)*.
    """
    html = await fetch_text(definition.file, site_root=site_root, site_url=site_url)
    logger.info("Loaded page %s (%d bytes)", definition.id, len(html))
    return html, parse_document(html)


async def load_offers(
    filename: str = OFFERS_FILE,
    site_root: Optional[Path] = None,
    site_url: Optional[str] = None,
) -> dict:
    """Load and decode the offers JSON mapping."""
    raw = await fetch_text(filename, site_root=site_root, site_url=site_url)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise LoadFailure(f"{filename} is not valid JSON: {exc}") from exc
    try:
        OffersFile.validate_python(data)
    except ValidationError as exc:
        raise LoadFailure(
            f"{filename} must map day indexes 0-6 to {{title, lines}} objects: {_first_error(exc)}"
        ) from exc
    return data


def _first_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error["loc"])
    return f"{location}: {error['msg']}" if location else error["msg"]
