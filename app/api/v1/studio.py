"""Studio API: sessions, uploads, analysis, image/video generation and PDF export."""
from __future__ import annotations

import logging
from typing import List, NoReturn
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from app.core.exceptions import GeminiClientError, StudioError
from app.schemas.assets import ImageAsset, SlotKind, VideoAsset
from app.schemas.base_schemas import BaseResponse
from app.schemas.product import ProductContent
from app.schemas.studio import (
    AnalyzeRequest,
    ImageEditRequest,
    ImageGenerateRequest,
    SelectImageRequest,
    SessionSnapshot,
    SlotSummary,
    UploadResult,
    VideoGenerateRequest,
)
from app.services.analysis_service import AnalysisService
from app.services.gemini_client import GeminiClient
from app.services.image_studio_service import ImageStudioService
from app.services.report_service import ReportService
from app.services.session_store import SessionStore, StudioSession, get_session_store
from app.services.upload_intake import intake_uploads
from app.services.video_studio_service import VideoStudioService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai/studio", tags=["studio"])


# Dependencies


def get_gemini_client() -> GeminiClient:
    return GeminiClient()


def get_analysis_service(client: GeminiClient = Depends(get_gemini_client)) -> AnalysisService:
    return AnalysisService(client)


def get_image_service(client: GeminiClient = Depends(get_gemini_client)) -> ImageStudioService:
    return ImageStudioService(client)


def get_video_service(client: GeminiClient = Depends(get_gemini_client)) -> VideoStudioService:
    return VideoStudioService(client)


def get_report_service() -> ReportService:
    return ReportService()


def get_studio_session(
    session_id: str, store: SessionStore = Depends(get_session_store)
) -> StudioSession:
    try:
        return store.get(session_id)
    except StudioError as e:
        _raise_http(e, "session lookup")


def _raise_http(error: StudioError, action: str) -> NoReturn:
    """Surface a studio error to the caller; provider failures are logged with traceback."""
    if isinstance(error, GeminiClientError):
        logger.error("[API] ✗ %s failed: %s", action, error, exc_info=True)
    else:
        logger.warning("[API] ✗ %s rejected: %s", action, error)
    raise HTTPException(status_code=error.status_code, detail=str(error)) from error


# Sessions


@router.post("/sessions", response_model=BaseResponse[SessionSnapshot], status_code=201)
async def create_session(store: SessionStore = Depends(get_session_store)) -> BaseResponse[SessionSnapshot]:
    """Start a new, empty product session."""
    session = store.create()
    return BaseResponse(data=session.snapshot(), message="Session created")


@router.get("/sessions/{session_id}", response_model=BaseResponse[SessionSnapshot])
async def get_session(session: StudioSession = Depends(get_studio_session)) -> BaseResponse[SessionSnapshot]:
    return BaseResponse(data=session.snapshot())


@router.delete("/sessions/{session_id}", response_model=BaseResponse[str])
async def delete_session(
    session_id: str, store: SessionStore = Depends(get_session_store)
) -> BaseResponse[str]:
    try:
        store.delete(session_id)
    except StudioError as e:
        _raise_http(e, "delete session")
    return BaseResponse(data=session_id, message="Session deleted")


@router.post("/sessions/{session_id}/reset", response_model=BaseResponse[SessionSnapshot])
async def reset_session(
    keep_assets: bool = False,
    session: StudioSession = Depends(get_studio_session),
) -> BaseResponse[SessionSnapshot]:
    """
    Start a new product in the same session.

    Clears the product and upload slots; ``keep_assets=true`` keeps the
    generated image and video history.
    """
    session.reset(keep_assets=keep_assets)
    return BaseResponse(data=session.snapshot(), message="Session reset")


# Uploads


@router.post("/sessions/{session_id}/uploads/{kind}", response_model=BaseResponse[UploadResult])
async def upload_files(
    kind: SlotKind,
    files: List[UploadFile] = File(...),
    session: StudioSession = Depends(get_studio_session),
) -> BaseResponse[UploadResult]:
    """Add product photos (``photo``) or catalog documents (``catalog``) to the session."""
    logger.info("[API] POST uploads/%s - %s file(s)", kind.value, len(files))
    accepted, dropped = await intake_uploads(session, kind, files)
    result = UploadResult(
        kind=kind,
        accepted=[
            SlotSummary(id=s.id, filename=s.filename, mime_type=s.mime_type, size=s.size)
            for s in accepted
        ],
        dropped=dropped,
    )
    return BaseResponse(data=result)


@router.delete("/sessions/{session_id}/uploads/{kind}/{slot_id}", response_model=BaseResponse[SessionSnapshot])
async def remove_upload(
    kind: SlotKind,
    slot_id: str,
    session: StudioSession = Depends(get_studio_session),
) -> BaseResponse[SessionSnapshot]:
    try:
        session.remove_slot(kind, slot_id)
    except StudioError as e:
        _raise_http(e, "remove upload")
    return BaseResponse(data=session.snapshot())


# Orchestrators


@router.post("/sessions/{session_id}/analyze", response_model=BaseResponse[ProductContent])
async def analyze_product(
    request: AnalyzeRequest,
    session: StudioSession = Depends(get_studio_session),
    service: AnalysisService = Depends(get_analysis_service),
) -> BaseResponse[ProductContent]:
    """Deep analysis of the uploaded photos and catalogs with search grounding."""
    logger.info("=" * 80)
    logger.info("[API] POST analyze - session=%s language=%s", session.id, request.language.value)
    try:
        product = await service.analyze(session, request.language, request.guidance)
    except StudioError as e:
        _raise_http(e, "analysis")
    logger.info("=" * 80)
    return BaseResponse(data=product)


@router.post("/sessions/{session_id}/images", response_model=BaseResponse[ImageAsset])
async def generate_image(
    request: ImageGenerateRequest,
    session: StudioSession = Depends(get_studio_session),
    service: ImageStudioService = Depends(get_image_service),
) -> BaseResponse[ImageAsset]:
    """Generate a studio shot; the new image becomes the selected one."""
    try:
        asset = await service.generate_image(session, request.prompt, request.aspect_ratio, request.size)
    except StudioError as e:
        _raise_http(e, "image generation")
    return BaseResponse(data=asset)


@router.post("/sessions/{session_id}/images/edit", response_model=BaseResponse[ImageAsset])
async def edit_image(
    request: ImageEditRequest,
    session: StudioSession = Depends(get_studio_session),
    service: ImageStudioService = Depends(get_image_service),
) -> BaseResponse[ImageAsset]:
    try:
        asset = await service.edit_image(session, request.prompt, request.index)
    except StudioError as e:
        _raise_http(e, "image edit")
    return BaseResponse(data=asset)


@router.put("/sessions/{session_id}/images/selected", response_model=BaseResponse[ImageAsset])
async def select_image(
    request: SelectImageRequest,
    session: StudioSession = Depends(get_studio_session),
) -> BaseResponse[ImageAsset]:
    try:
        asset = session.select_image(request.index)
    except StudioError as e:
        _raise_http(e, "select image")
    return BaseResponse(data=asset)


@router.post("/sessions/{session_id}/videos", response_model=BaseResponse[VideoAsset])
async def generate_video(
    request: VideoGenerateRequest,
    session: StudioSession = Depends(get_studio_session),
    service: VideoStudioService = Depends(get_video_service),
) -> BaseResponse[VideoAsset]:
    """Run a Veo job to completion; the call returns once the clip is stored."""
    try:
        asset = await service.generate_video(
            session, request.prompt, request.aspect_ratio, request.use_selected_image
        )
    except StudioError as e:
        _raise_http(e, "video generation")
    return BaseResponse(data=asset)


@router.post("/sessions/{session_id}/videos/cancel", response_model=BaseResponse[bool])
async def cancel_video(session: StudioSession = Depends(get_studio_session)) -> BaseResponse[bool]:
    cancelled = session.cancel_video()
    return BaseResponse(
        data=cancelled,
        message="Cancellation requested" if cancelled else "No video job running",
    )


@router.get("/sessions/{session_id}/videos/{video_id}/content")
async def video_content(
    video_id: str,
    session: StudioSession = Depends(get_studio_session),
) -> Response:
    try:
        asset, content = session.video_content(video_id)
    except StudioError as e:
        _raise_http(e, "video content")
    return Response(content=content, media_type=asset.mime_type)


# Report


@router.get("/sessions/{session_id}/report")
async def export_report(
    session: StudioSession = Depends(get_studio_session),
    service: ReportService = Depends(get_report_service),
) -> Response:
    """Download the result panel as a PDF named after the product."""
    # Pillow and reportlab are synchronous; render off the event loop.
    try:
        filename, pdf_bytes = await run_in_threadpool(service.export, session)
    except StudioError as e:
        _raise_http(e, "report export")
    ascii_name = filename.encode("ascii", "ignore").decode() or "report.pdf"
    disposition = f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": disposition},
    )
