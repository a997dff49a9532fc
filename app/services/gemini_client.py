"""Gemini REST client (generateContent, long-running video jobs, media download).

Every call is a single request with no retry; callers decide what to do with
``GeminiClientError``.
"""
from __future__ import annotations

import json
import logging
from time import perf_counter
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import Settings, get_settings
from app.core.exceptions import GeminiClientError, ProviderResponseError
from app.schemas.product import GroundingSource

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-goog-api-key"
MAX_DOWNLOAD_REDIRECTS = 5


def inline_part(data: str, mime_type: str) -> Dict[str, Any]:
    """Build an ``inlineData`` content part from a base64 payload."""
    return {"inlineData": {"mimeType": mime_type, "data": data}}


def text_part(text: str) -> Dict[str, Any]:
    return {"text": text}


class GeminiClient:
    """Thin async wrapper over the Gemini v1beta REST API."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._timeout = httpx.Timeout(self.settings.request_timeout_seconds)
        # Injected by tests (httpx.MockTransport)
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.settings.gemini_api_key)

    @property
    def api_host(self) -> str:
        return httpx.URL(self.settings.gemini_base_url).host

    def _is_api_url(self, url: httpx.URL) -> bool:
        return not url.is_absolute_url or url.host == self.api_host

    def _client(self, authenticated: bool = True) -> httpx.AsyncClient:
        if not self.settings.gemini_api_key:
            raise GeminiClientError("GEMINI_API_KEY is not configured")
        # No automatic redirects; the key header must never leave the API host.
        return httpx.AsyncClient(
            base_url=self.settings.gemini_base_url.rstrip("/") + "/",
            headers={API_KEY_HEADER: self.settings.gemini_api_key} if authenticated else None,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        url: str,
        tag: str,
        payload: Optional[Dict[str, Any]] = None,
        authenticated: bool = True,
        allow_redirect: bool = False,
    ) -> httpx.Response:
        start = perf_counter()
        try:
            async with self._client(authenticated) as client:
                response = await client.request(method, url, json=payload)
                logger.info(
                    "[GEMINI] %s response: status=%s, bytes=%s",
                    tag,
                    response.status_code,
                    len(response.content),
                )
                if not (allow_redirect and response.is_redirect):
                    response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise GeminiClientError(f"Gemini {tag} request timed out") from exc
        except httpx.HTTPStatusError as exc:
            raise GeminiClientError(
                f"Gemini {tag} request failed: {self._error_message(exc.response)}"
            ) from exc
        except httpx.RequestError as exc:
            raise GeminiClientError(f"Gemini {tag} transport error: {exc}") from exc
        logger.info("[GEMINI] %s finished in %.2f ms", tag, (perf_counter() - start) * 1000)
        return response

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Prefer the provider's ``error.message`` over the raw status line."""
        try:
            error = response.json().get("error") or {}
        except ValueError:
            error = {}
        if isinstance(error, dict) and error.get("message"):
            return f"{response.status_code} {error['message']}"
        return f"{response.status_code} {response.reason_phrase}"

    @staticmethod
    def _json(response: httpx.Response, tag: str) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderResponseError(f"Gemini {tag} returned non-JSON body") from exc
        if not isinstance(data, dict):
            raise ProviderResponseError(f"Gemini {tag} returned unexpected body")
        return data

    async def generate_content(
        self,
        model: str,
        parts: List[Dict[str, Any]],
        system_instruction: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """
        Call ``models/{model}:generateContent`` with a single user turn.

        Args:
            model: Model name, e.g. ``gemini-3-pro-preview``
            parts: Content parts (inline media and text)
            system_instruction: Optional system prompt
            generation_config: ``generationConfig`` block
            tools: Tool declarations, e.g. ``[{"googleSearch": {}}]``

        Returns:
            The decoded GenerateContentResponse

        Raises:
            GeminiClientError: On transport/HTTP failure or a prompt block
        """
        payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": parts}]}
        if system_instruction:
            payload["systemInstruction"] = {"parts": [text_part(system_instruction)]}
        if generation_config:
            payload["generationConfig"] = generation_config
        if tools:
            payload["tools"] = tools

        texts = [p["text"] for p in parts if "text" in p]
        logger.info(
            "[GEMINI] generateContent: model=%s, media_parts=%s, prompt=%s",
            model,
            len(parts) - len(texts),
            json.dumps(" ".join(texts)[:80], ensure_ascii=False),
        )
        response = await self._request(
            "POST", f"models/{model}:generateContent", "generateContent", payload
        )
        data = self._json(response, "generateContent")

        block_reason = (data.get("promptFeedback") or {}).get("blockReason")
        if block_reason and not data.get("candidates"):
            raise GeminiClientError(f"Gemini blocked the request: {block_reason}")
        return data

    async def start_video_job(
        self, model: str, instance: Dict[str, Any], parameters: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Submit ``models/{model}:predictLongRunning`` and return the operation."""
        logger.info(
            "[GEMINI] predictLongRunning: model=%s, seeded=%s, parameters=%s",
            model,
            "image" in instance,
            parameters,
        )
        response = await self._request(
            "POST",
            f"models/{model}:predictLongRunning",
            "predictLongRunning",
            {"instances": [instance], "parameters": parameters},
        )
        operation = self._json(response, "predictLongRunning")
        if not operation.get("name"):
            raise ProviderResponseError("Gemini video job did not return an operation name")
        return operation

    async def get_operation(self, name: str) -> Dict[str, Any]:
        """Fetch the current state of a long-running operation."""
        response = await self._request("GET", name, "getOperation")
        return self._json(response, "getOperation")

    async def download(self, uri: str) -> tuple[bytes, str]:
        """
        Download generated media.

        The API key header is sent only to the Gemini API host; redirects to
        another host (e.g. a storage bucket) are followed without it.
        """
        response = await self._request(
            "GET", uri, "download", authenticated=self._is_api_url(httpx.URL(uri)), allow_redirect=True
        )
        hops = 0
        while response.is_redirect:
            if hops >= MAX_DOWNLOAD_REDIRECTS:
                raise ProviderResponseError("Gemini download redirected too many times")
            target = response.url.join(response.headers["location"])
            authenticated = self._is_api_url(target)
            logger.info("[GEMINI] download redirected to %s (key sent=%s)", target.host, authenticated)
            response = await self._request(
                "GET", str(target), "download", authenticated=authenticated, allow_redirect=True
            )
            hops += 1
        mime_type = response.headers.get("content-type", "video/mp4").split(";")[0]
        return response.content, mime_type

    # Response helpers

    @staticmethod
    def candidate_parts(data: Dict[str, Any]) -> List[Dict[str, Any]]:
        candidates = data.get("candidates") or []
        if not candidates:
            return []
        content = candidates[0].get("content") or {}
        return content.get("parts") or []

    @classmethod
    def response_text(cls, data: Dict[str, Any]) -> str:
        """Concatenate the text parts of the first candidate, skipping thoughts."""
        return "".join(
            part["text"]
            for part in cls.candidate_parts(data)
            if isinstance(part.get("text"), str) and not part.get("thought")
        )

    @classmethod
    def first_inline_data(cls, data: Dict[str, Any]) -> Optional[Dict[str, str]]:
        for part in cls.candidate_parts(data):
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                return inline
        return None

    @staticmethod
    def grounding_sources(data: Dict[str, Any]) -> List[GroundingSource]:
        """Collect ``groundingChunks[].web`` entries that carry a uri."""
        candidates = data.get("candidates") or []
        if not candidates:
            return []
        metadata = candidates[0].get("groundingMetadata") or {}
        sources = []
        for chunk in metadata.get("groundingChunks") or []:
            web = chunk.get("web") if isinstance(chunk, dict) else None
            if web and web.get("uri"):
                sources.append(GroundingSource(uri=web["uri"], title=web.get("title")))
        return sources
