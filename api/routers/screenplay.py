"""Screenplay parsing endpoints.

Supports both JSON (base64-encoded ``content``) and multipart/form-data file
uploads.  Parsing is CPU-bound and runs in the thread pool so the event loop
stays free.
"""

import json
import logging
import time

from fastapi import APIRouter, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from prometheus_client import Counter
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from api.config import get_settings
from core.exceptions import ParsingException
from core.models import (
    CharactersResponse,
    LocationsResponse,
    ParsedDocument,
    ParseRequest,
    ParseResponse,
    SceneLocation,
    ScriptFormat,
)
from parsers.base import format_for_path, get_parser
from parsers.scene_location import parse_scene_location
from services.character_index import build_character_index
from services.location_index import location_breakdown

logger = logging.getLogger(__name__)

router = APIRouter()

DOCUMENTS_PARSED = Counter(
    "slugline_documents_parsed_total",
    "Screenplay documents parsed successfully",
    ["format"],
)
PARSE_FAILURES = Counter(
    "slugline_parse_failures_total",
    "Screenplay documents rejected by a parser",
    ["format"],
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _resolve_request(request: Request) -> tuple[bytes, ScriptFormat, str | None]:
    """Inspect Content-Type and return (raw_content, format, filename).

    Supports:
    - ``application/json``: expects ``ParseRequest``
    - ``multipart/form-data``: expects ``file`` field + optional ``format``
    """
    ct = (request.headers.get("content-type") or "").lower()

    if "multipart/form-data" in ct:
        raw, fmt, filename = await _resolve_multipart(request)
    else:
        raw, fmt, filename = await _resolve_json(request)

    max_bytes = get_settings().max_document_bytes
    if len(raw) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Document exceeds maximum size of {max_bytes} bytes",
        )
    return raw, fmt, filename


async def _resolve_json(request: Request) -> tuple[bytes, ScriptFormat, str | None]:
    try:
        body = await request.json()
    except json.JSONDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Request body must be valid JSON",
        )
    if not isinstance(body, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Request body must be a JSON object",
        )

    # Validate through Pydantic
    try:
        req = ParseRequest(**body)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors())
    return req.decoded_content(), req.format, req.filename


async def _resolve_multipart(request: Request) -> tuple[bytes, ScriptFormat, str | None]:
    form = await request.form()
    upload = form.get("file")
    if upload is None or not hasattr(upload, "read"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Multipart request must include a 'file' field",
        )

    raw = await upload.read()
    if not raw:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty",
        )

    filename = getattr(upload, "filename", None) or None
    requested = str(form.get("format", "")).strip().lower()
    if requested:
        try:
            fmt = ScriptFormat(requested)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unsupported format '{requested}'. Allowed: fountain, fdx",
            )
    elif filename:
        fmt = format_for_path(filename)
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide a 'format' field or a file name with a known extension",
        )

    return raw, fmt, filename


async def _parse(request: Request) -> tuple[ParsedDocument, ScriptFormat, float]:
    """Resolve the request body and parse it off the event loop."""
    raw, fmt, filename = await _resolve_request(request)
    settings = get_settings()
    parser = get_parser(fmt.value, max_xml_size=settings.max_document_bytes)

    t0 = time.monotonic()
    try:
        document = await run_in_threadpool(parser.parse, raw, filename)
    except ParsingException:
        PARSE_FAILURES.labels(format=fmt.value).inc()
        raise
    elapsed = time.monotonic() - t0
    DOCUMENTS_PARSED.labels(format=fmt.value).inc()

    if settings.suppress_scene_numbers:
        document = document.model_copy(update={"suppress_scene_numbers": True})

    logger.info(
        "Parsed %s document %s: %d elements in %.3fs",
        fmt.value,
        filename or "<upload>",
        len(document.elements),
        elapsed,
    )
    return document, fmt, elapsed


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/screenplays/parse",
    response_model=ParseResponse,
    status_code=status.HTTP_200_OK,
    summary="Parse a screenplay",
    description=(
        "Parse a Fountain or Final Draft (.fdx) screenplay into ordered elements "
        "and title-page entries. Accepts JSON (base64 content) or multipart/form-data "
        "file upload."
    ),
)
async def parse_screenplay(request: Request) -> ParseResponse:
    document, fmt, elapsed = await _parse(request)
    return ParseResponse(
        document=document,
        format=fmt,
        element_count=len(document.elements),
        scene_count=len(document.scene_headings()),
        parsing_time_seconds=round(elapsed, 4),
    )


@router.post(
    "/screenplays/locations",
    response_model=LocationsResponse,
    status_code=status.HTTP_200_OK,
    summary="Location breakdown",
    description="Group the scenes of a screenplay by location, in order of first appearance.",
)
async def screenplay_locations(request: Request) -> LocationsResponse:
    document, _, _ = await _parse(request)
    return LocationsResponse(filename=document.filename, locations=location_breakdown(document))


@router.post(
    "/screenplays/characters",
    response_model=CharactersResponse,
    status_code=status.HTTP_200_OK,
    summary="Character index",
    description="List speaking characters with dialogue counts and the scenes they appear in.",
)
async def screenplay_characters(request: Request) -> CharactersResponse:
    document, _, _ = await _parse(request)
    return CharactersResponse(
        filename=document.filename, characters=build_character_index(document)
    )


@router.get(
    "/scene-location",
    response_model=SceneLocation,
    status_code=status.HTTP_200_OK,
    summary="Parse a scene heading",
    description="Split a single scene heading into lighting, scene, setup, time and modifiers.",
)
async def scene_location(
    heading: str = Query(..., min_length=1, max_length=1000, description="Scene heading text"),
) -> SceneLocation:
    return parse_scene_location(heading)
