"""Image studio orchestrator: studio shots from a prompt, and edits of gallery images."""
from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Dict, Optional

from app.core.exceptions import InputValidationError, ProviderResponseError
from app.schemas.assets import AspectRatio, AssetType, ImageAsset, ImageSize
from app.services.gemini_client import GeminiClient, inline_part, text_part
from app.services.prompts.studio_prompts import (
    build_image_edit_prompt,
    build_studio_image_prompt,
)
from app.services.session_store import IMAGE, StudioSession

logger = logging.getLogger(__name__)


def _asset_id(prefix: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


def extract_image_uri(data: Dict[str, Any], failure_message: str) -> str:
    """Encode the first inline image of a response as a data URI."""
    inline = GeminiClient.first_inline_data(data)
    if inline is None:
        raise ProviderResponseError(failure_message)
    mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
    return f"data:{mime_type};base64,{inline['data']}"


class ImageStudioService:
    """Professional product image generation and editing."""

    def __init__(self, client: Optional[GeminiClient] = None) -> None:
        self.client = client or GeminiClient()

    async def generate_image(
        self,
        session: StudioSession,
        prompt: str,
        aspect_ratio: AspectRatio = AspectRatio.SQUARE,
        size: ImageSize = ImageSize.K1,
    ) -> ImageAsset:
        """
        Generate a studio shot, append it to the gallery and select it.

        Raises:
            InputValidationError: Empty prompt
            BusyError: An image action is already running
            GeminiClientError: Provider failure or no image in the response
            SessionResetError: The session was reset before the image arrived
        """
        if not prompt or not prompt.strip():
            raise InputValidationError("Görsel için bir sahne açıklaması girin.")

        async with session.busy(IMAGE, "Görsel oluşturuluyor..."):
            generation = session.generation
            logger.info(
                "[IMAGE] generate: session=%s aspect_ratio=%s size=%s prompt=%s",
                session.id,
                aspect_ratio.value,
                size.value,
                prompt[:80],
            )
            data = await self.client.generate_content(
                self.client.settings.image_model,
                [text_part(build_studio_image_prompt(prompt))],
                generation_config={
                    "responseModalities": ["TEXT", "IMAGE"],
                    "imageConfig": {"aspectRatio": aspect_ratio.value, "imageSize": size.value},
                },
                tools=[{"googleSearch": {}}],
            )
            asset = ImageAsset(
                id=_asset_id("gen"),
                url=extract_image_uri(data, "Resim oluşturulamadı."),
                type=AssetType.GENERATED,
                prompt=prompt,
                aspect_ratio=aspect_ratio.value,
                size=size.value,
            )
            session.ensure_generation(generation)
            session.append_image(asset, select=True)
            logger.info("[IMAGE] ✓ generated %s (gallery=%s)", asset.id, len(session.images))
            return asset

    async def edit_image(
        self,
        session: StudioSession,
        prompt: str,
        index: Optional[int] = None,
    ) -> ImageAsset:
        """
        Restyle a gallery image (the selected one by default) and append the result.

        Raises:
            InputValidationError: Empty prompt or empty gallery
            AssetNotFoundError: ``index`` outside the gallery
            GeminiClientError: Provider failure or no image in the response
            SessionResetError: The session was reset before the image arrived
        """
        if not prompt or not prompt.strip():
            raise InputValidationError("Düzenleme için bir açıklama girin.")
        if not session.images:
            raise InputValidationError("Düzenlenecek görsel yok.")
        source = session.image_at(session.selected_index if index is None else index)

        async with session.busy(IMAGE, "Görsel düzenleniyor..."):
            generation = session.generation
            logger.info("[IMAGE] edit: session=%s source=%s prompt=%s", session.id, source.id, prompt[:80])
            mime_type, payload = source.inline_payload()
            data = await self.client.generate_content(
                self.client.settings.image_edit_model,
                [inline_part(payload, mime_type), text_part(build_image_edit_prompt(prompt))],
                generation_config={"responseModalities": ["TEXT", "IMAGE"]},
            )
            asset = ImageAsset(
                id=_asset_id("edit"),
                url=extract_image_uri(data, "Düzenleme başarısız."),
                type=AssetType.EDITED,
                prompt=prompt,
                aspect_ratio=source.aspect_ratio,
                size=source.size,
            )
            session.ensure_generation(generation)
            session.append_image(asset, select=True)
            logger.info("[IMAGE] ✓ edited %s -> %s", source.id, asset.id)
            return asset
