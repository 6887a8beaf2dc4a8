"""
PageBinder — FastAPI Backend

Endpoints:
  POST /v1/convert        — Image(s) → one PDF, one image per page
  GET  /v1/capabilities   — Decode tiers, HEIC support, platform profile
  GET  /health            — Health check
"""

import base64
import json
import time
import uuid

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import ValidationError as PydanticValidationError

from app.core.config import settings
from app.errors import PageBinderError
from app.imaging.heic import probe_transcoder
from app.models.job import ConversionOptions
from app.models.record import Candidate
from app.pipeline.orchestrator import build_decoder
from app.pipeline.session import ConversionSession
from app.utils.logging import logger

VERSION = "1.0.0"

app = FastAPI(
    title="PageBinder API",
    description="Bind a batch of JPEG, PNG and HEIC images into a single PDF, one image per page.",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-PageBinder-Batch", "X-Pipeline-Duration-Ms", "X-Request-Id"],
)

transcoder = probe_transcoder()


@app.on_event("startup")
async def _startup_banner():
    p = settings.pipeline
    logger.info("")
    logger.info("╔══════════════════════════════════════════════════╗")
    logger.info("║             PageBinder  ·  API Server            ║")
    logger.info("╠══════════════════════════════════════════════════╣")
    logger.info("║  POST /v1/convert       → Images → PDF           ║")
    logger.info("║  GET  /v1/capabilities  → Decoder / HEIC support ║")
    logger.info("║  GET  /health           → Health check           ║")
    logger.info("╠══════════════════════════════════════════════════╣")
    logger.info("║  Platform    : %-33s║", p.platform)
    logger.info("║  Max side    : %-33s║", f"{p.max_dimension} px")
    logger.info("║  HEIC        : %-33s║", "✓ pillow-heif" if transcoder else "✗ unavailable")
    logger.info("╚══════════════════════════════════════════════════╝")
    logger.info("")


def _parse_json_field(name: str, raw: str | None, expected: type):
    if not raw:
        return expected()
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        raise HTTPException(status_code=422, detail=f"'{name}' is not valid JSON")
    if not isinstance(value, expected):
        raise HTTPException(status_code=422, detail=f"'{name}' must be a JSON {expected.__name__}")
    return value


@app.get("/health")
async def health():
    return {"status": "ok", "service": "pagebinder-api", "version": VERSION}


@app.get("/v1/capabilities")
async def capabilities():
    decoder = build_decoder(settings.pipeline)
    return {
        "platform": decoder.profile.name,
        "max_input_bytes": decoder.profile.max_input_bytes,
        "max_dimension": decoder.max_dimension,
        "decode_tiers": [s.name for s in decoder.strategies],
        "heic_transcoder": transcoder is not None,
        "formats": ["jpg", "jpeg", "png", "heic", "heif"],
    }


@app.post(
    "/v1/convert",
    response_class=Response,
    responses={
        200: {"content": {"application/pdf": {}}, "description": "Generated PDF"},
        413: {"description": "Upload too large"},
        422: {"description": "Nothing could be converted"},
        500: {"description": "Pipeline error"},
    },
)
async def convert_images(
    files: list[UploadFile] = File(..., description="One or more images"),
    orientation: str = Form("portrait"),
    sort_key: str = Form("natural"),
    rotations: str | None = Form(None, description='JSON object, e.g. {"a.jpg": 90}'),
    order: str | None = Form(None, description='JSON list of file names, e.g. ["b.jpg", "a.jpg"]'),
    last_modified: str | None = Form(None, description='JSON object of epoch ms, e.g. {"a.jpg": 1700000000000}'),
):
    """
    Convert uploaded images into a single PDF.

    The response includes an X-PageBinder-Batch header with the full
    BatchResult (per-image outcomes, timings, intake rejections) as
    base64 JSON.

    Data handling: No data is stored. Input is processed in memory
    and discarded after the PDF is returned.
    """
    request_id = uuid.uuid4().hex[:12]
    start = time.perf_counter()
    logger.info(
        "[%s] POST /v1/convert — %d files | orientation=%s sort=%s",
        request_id, len(files), orientation, sort_key,
    )

    try:
        options = ConversionOptions(orientation=orientation, sort_key=sort_key)
    except PydanticValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False))

    rotation_map = _parse_json_field("rotations", rotations, dict)
    explicit_order = _parse_json_field("order", order, list)
    timestamps = _parse_json_field("last_modified", last_modified, dict)

    limit = int(settings.max_upload_mb * 1024 * 1024)
    candidates: list[Candidate] = []
    for f in files:
        content = await f.read()
        if len(content) > limit:
            raise HTTPException(
                status_code=413,
                detail=f"File {f.filename} exceeds {settings.max_upload_mb:g}MB limit",
            )
        name = f.filename or ""
        stamp = timestamps.get(name)
        candidates.append(Candidate(
            name=name,
            size=len(content),
            source=content,
            last_modified=int(stamp) if isinstance(stamp, (int, float)) else None,
        ))

    session = ConversionSession(transcoder=transcoder, config=settings.pipeline, options=options)
    report = session.add_files(candidates)

    try:
        for name, degrees in rotation_map.items():
            for record in session.store.find_by_name(name):
                session.rotate(record.identity, degrees)
        if explicit_order:
            ids = [r.identity for name in explicit_order for r in session.store.find_by_name(name)]
            session.reorder(ids)

        result = await session.convert()
    except PageBinderError as exc:
        logger.warning("[%s] PageBinder error: %s", request_id, exc.code)
        detail = exc.to_dict()
        detail["rejected"] = [r.model_dump() for r in report.rejections()]
        raise HTTPException(status_code=422, detail=detail)
    except Exception as exc:
        logger.exception("[%s] Conversion failed", request_id)
        raise HTTPException(status_code=500, detail=str(exc))

    result.rejected = report.rejections()
    pdf_bytes = session.last_pdf

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "[%s] Complete — %d pages, %d bytes in %.0f ms",
        request_id, result.artifact.pages, len(pdf_bytes), elapsed_ms,
    )

    batch_b64 = base64.b64encode(result.model_dump_json().encode()).decode("ascii")

    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{result.artifact.filename}"',
            "X-Pipeline-Duration-Ms": f"{elapsed_ms:.0f}",
            "X-Request-Id": request_id,
            "X-PageBinder-Batch": batch_b64,
        },
    )
