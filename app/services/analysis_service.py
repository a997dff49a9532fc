"""Product analysis orchestrator.

Sends every uploaded photo and catalog document to Gemini in one multimodal
request with search grounding, and maps the schema-constrained JSON answer
onto ``ProductContent``.
"""
from __future__ import annotations

import json
import logging
import re
from time import perf_counter
from typing import List, Optional

from pydantic import ValidationError

from app.core.exceptions import InputValidationError, ProviderResponseError
from app.schemas.assets import AssetType, ImageAsset, Language
from app.schemas.product import ProductContent, product_response_schema
from app.services.gemini_client import GeminiClient, inline_part, text_part
from app.services.prompts.studio_prompts import (
    build_analysis_instruction,
    build_analyzer_system_prompt,
)
from app.services.session_store import ANALYSIS, StudioSession

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def parse_product_json(text: str) -> ProductContent:
    """
    Parse the model's JSON answer, tolerating surrounding code fences.

    Raises:
        ProviderResponseError: If the text is not valid ProductContent JSON
    """
    cleaned = _CODE_FENCE.sub("", text or "").strip()
    if not cleaned:
        raise ProviderResponseError("Gemini returned an empty analysis")
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ProviderResponseError(f"Failed to parse analysis JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ProviderResponseError("Analysis JSON is not an object")
    try:
        return ProductContent.model_validate(payload)
    except ValidationError as exc:
        raise ProviderResponseError(f"Analysis JSON does not match product schema: {exc}") from exc


class AnalysisService:
    """Deep product analysis with Gemini."""

    def __init__(self, client: Optional[GeminiClient] = None) -> None:
        self.client = client or GeminiClient()

    async def analyze(
        self,
        session: StudioSession,
        language: Language = Language.TURKISH,
        guidance: Optional[str] = None,
    ) -> ProductContent:
        """
        Analyse the session's uploads and replace its product record.

        Args:
            session: Session holding the photo and catalog slots
            language: Output language
            guidance: Optional free-text hints for the model

        Returns:
            The new ProductContent (also stored on the session)

        Raises:
            InputValidationError: No product photo uploaded; nothing is sent
            BusyError: An analysis is already running for this session
            GeminiClientError: Provider, network or parse failure; session unchanged
            SessionResetError: The session was reset while the provider was working
        """
        if not session.photos:
            raise InputValidationError("Lütfen en az bir ürün fotoğrafı yükleyin.")

        async with session.busy(ANALYSIS, "Ürün ve belgeler yapay zeka tarafından inceleniyor..."):
            generation = session.generation
            photos = list(session.photos)
            catalogs = list(session.catalogs)
            logger.info(
                "[ANALYSIS] session=%s photos=%s catalogs=%s language=%s",
                session.id,
                len(photos),
                len(catalogs),
                language.value,
            )
            start = perf_counter()

            parts = [inline_part(slot.data, slot.mime_type) for slot in photos + catalogs]
            parts.append(text_part(build_analysis_instruction(guidance)))
            settings = self.client.settings
            data = await self.client.generate_content(
                settings.analysis_model,
                parts,
                system_instruction=build_analyzer_system_prompt(language),
                generation_config={
                    "thinkingConfig": {"thinkingBudget": settings.analysis_thinking_budget},
                    "responseMimeType": "application/json",
                    "responseSchema": product_response_schema(),
                },
                tools=[{"googleSearch": {}}],
            )

            product = parse_product_json(GeminiClient.response_text(data))
            sources = GeminiClient.grounding_sources(data)
            if sources:
                product = product.model_copy(update={"grounding_urls": sources})

            originals: List[ImageAsset] = [
                ImageAsset(id=f"orig-{i}", url=slot.data_uri, type=AssetType.ORIGINAL)
                for i, slot in enumerate(photos)
            ]
            session.ensure_generation(generation)
            session.set_product(product, originals)

            logger.info(
                "[ANALYSIS] ✓ title=%s, features=%s, sources=%s, latency=%.0fms",
                product.title[:60],
                len(product.features),
                len(sources),
                (perf_counter() - start) * 1000,
            )
            return product
