"""Video studio orchestrator.

Submits a long-running Veo job, polls it on a fixed interval until it is done,
then downloads the generated clip into the session. Polling is bounded by
``video_max_poll_attempts`` and can be cancelled through the session.
"""
from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Dict, Optional

from app.core.exceptions import (
    GeminiClientError,
    InputValidationError,
    ProviderResponseError,
    VideoJobCancelledError,
    VideoJobTimeoutError,
)
from app.schemas.assets import VideoAspectRatio, VideoAsset
from app.services.gemini_client import GeminiClient
from app.services.prompts.studio_prompts import build_video_prompt
from app.services.session_store import VIDEO, CancelToken, StudioSession

logger = logging.getLogger(__name__)

VIDEO_CONTENT_PATH = "/ai/studio/sessions/{session_id}/videos/{video_id}/content"


def extract_video_uri(operation: Dict[str, Any]) -> str:
    """Download URI of the first generated sample in a finished operation."""
    response = operation.get("response") or {}
    body = response.get("generateVideoResponse") or response
    samples = body.get("generatedSamples") or body.get("generatedVideos") or []
    for sample in samples:
        uri = (sample.get("video") or {}).get("uri")
        if uri:
            return uri
    reasons = body.get("raiMediaFilteredReasons")
    if reasons:
        raise ProviderResponseError(f"Video içerik filtresine takıldı: {'; '.join(reasons)}")
    raise ProviderResponseError("Video oluşturulamadı: yanıtta indirme bağlantısı yok.")


class VideoStudioService:
    """Promotional video generation with Veo."""

    def __init__(self, client: Optional[GeminiClient] = None) -> None:
        self.client = client or GeminiClient()

    async def wait_for_operation(
        self, operation: Dict[str, Any], token: Optional[CancelToken] = None
    ) -> Dict[str, Any]:
        """
        Poll ``operation`` until it reports done.

        Sleeps ``video_poll_interval_seconds`` before each status query and gives
        up after ``video_max_poll_attempts`` queries.

        Raises:
            VideoJobCancelledError: The token was cancelled while waiting
            VideoJobTimeoutError: Attempts exhausted before completion
            GeminiClientError: The finished operation carries an error
        """
        settings = self.client.settings
        name = operation["name"]
        token = token or CancelToken()
        attempts = 0

        while not operation.get("done"):
            if attempts >= settings.video_max_poll_attempts:
                raise VideoJobTimeoutError(
                    f"Video {attempts} sorgu sonunda tamamlanmadı; işlem zaman aşımına uğradı."
                )
            if await token.wait(settings.video_poll_interval_seconds):
                raise VideoJobCancelledError("Video oluşturma iptal edildi.")
            operation = await self.client.get_operation(name)
            attempts += 1
            logger.info("[VIDEO] poll %s: operation=%s done=%s", attempts, name, bool(operation.get("done")))

        error = operation.get("error")
        if error:
            raise GeminiClientError(f"Video oluşturulamadı: {error.get('message', error)}")
        return operation

    async def generate_video(
        self,
        session: StudioSession,
        prompt: str,
        aspect_ratio: VideoAspectRatio = VideoAspectRatio.LANDSCAPE,
        use_selected_image: bool = True,
    ) -> VideoAsset:
        """
        Generate a product reveal video and append it to the session.

        Args:
            session: Target session
            prompt: Video scenario
            aspect_ratio: ``16:9`` or ``9:16``
            use_selected_image: Seed the job with the selected gallery image

        Raises:
            InputValidationError: Empty prompt
            BusyError: A video job is already running for this session
            VideoJobCancelledError / VideoJobTimeoutError: Polling stopped early
            GeminiClientError: Provider failure
            SessionResetError: The session was reset before the video arrived
        """
        if not prompt or not prompt.strip():
            raise InputValidationError("Video için bir senaryo girin.")

        async with session.busy(VIDEO, "Video oluşturuluyor..."):
            generation = session.generation
            settings = self.client.settings
            instance: Dict[str, Any] = {"prompt": build_video_prompt(prompt)}
            seed = session.selected_image if use_selected_image else None
            if seed is not None:
                mime_type, payload = seed.inline_payload()
                instance["image"] = {"bytesBase64Encoded": payload, "mimeType": mime_type}
            parameters = {
                "aspectRatio": aspect_ratio.value,
                "resolution": settings.video_resolution,
                "sampleCount": 1,
            }

            start = time.time()
            token = session.begin_video_job()
            try:
                operation = await self.client.start_video_job(settings.video_model, instance, parameters)
                logger.info(
                    "[VIDEO] job submitted: session=%s operation=%s seed=%s",
                    session.id,
                    operation["name"],
                    seed.id if seed else None,
                )
                operation = await self.wait_for_operation(operation, token)
                content, mime_type = await self.client.download(extract_video_uri(operation))
            finally:
                session.end_video_job(token)

            video_id = f"vid-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"
            asset = VideoAsset(
                id=video_id,
                url=VIDEO_CONTENT_PATH.format(session_id=session.id, video_id=video_id),
                prompt=prompt,
                mime_type=mime_type,
            )
            session.ensure_generation(generation)
            session.append_video(asset, content)
            logger.info(
                "[VIDEO] ✓ %s stored: bytes=%s, elapsed=%ss",
                video_id,
                len(content),
                int(time.time() - start),
            )
            return asset
