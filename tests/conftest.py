"""Pytest configuration for test suite."""
from __future__ import annotations

import asyncio
import base64
import io
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, List

import httpx
import pytest
from PIL import Image

# Add project root to Python path
# This ensures 'app' module can be imported in tests
project_root = Path(__file__).parent.parent.resolve()
project_root_str = str(project_root)

if project_root_str not in sys.path:
    sys.path.insert(0, project_root_str)

os.environ.setdefault("PYTHONPATH", project_root_str)
# Keep the test run off the real log directory and off the real key
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("GEMINI_API_KEY", "test-key")

from app.core.config import Settings  # noqa: E402
from app.schemas.assets import SlotKind, UploadSlot  # noqa: E402
from app.services.gemini_client import GeminiClient  # noqa: E402
from app.services.session_store import StudioSession  # noqa: E402

VIDEO_URI = "https://generativelanguage.googleapis.com/v1beta/files/vid123:download?alt=media"
VIDEO_BYTES = b"\x00\x00\x00\x18ftypmp42fake-video"

PRODUCT_JSON: Dict[str, Any] = {
    "title": "Ahşap Gökkuşağı Denge Oyunu",
    "description": "Doğal kayın ağacından, çocukların motor becerilerini geliştiren denge oyunu.",
    "features": ["Doğal kayın ağacı", "Su bazlı boya", "12 parça"],
    "suggestedPrice": "749 TL",
    "category": "Oyuncak > Eğitici Oyuncaklar",
    "tags": ["ahşap oyuncak", "montessori", "denge oyunu"],
    "barcode": "8680000123456",
    "productCode": "WD-RB-012",
    "brand": "Minik Usta",
    "production": "Türkiye",
    "weight": "850 g",
    "productDimensions": "30 x 15 x 8 cm",
    "boxDimensions": "32 x 17 x 10 cm",
    "ageRange": "3+",
    "gender": "Unisex",
    "marketTrends": ["Montessori oyuncaklara talep artıyor"],
}


def make_png(width: int = 40, height: int = 30, color=(200, 80, 40)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeGemini:
    """httpx.MockTransport handler imitating the Gemini REST endpoints."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.generate_responses: List[Any] = []
        self.operations: List[Any] = []
        self.submit_response: Any = {"name": "models/veo/operations/op-1", "done": False}
        self.video_bytes = VIDEO_BYTES

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith(":generateContent"):
            return self._reply(self.generate_responses.pop(0))
        if path.endswith(":predictLongRunning"):
            return self._reply(self.submit_response)
        if path.endswith(":download"):
            return httpx.Response(200, content=self.video_bytes, headers={"content-type": "video/mp4"})
        if "/operations/" in path:
            return self._reply(self.operations.pop(0))
        return httpx.Response(404, json={"error": {"message": f"unexpected path {path}"}})

    @staticmethod
    def _reply(value: Any) -> httpx.Response:
        if isinstance(value, httpx.Response):
            return value
        if isinstance(value, Exception):
            raise value
        return httpx.Response(200, json=value)

    @staticmethod
    def content_response(parts: List[Dict[str, Any]], **candidate_extra: Any) -> Dict[str, Any]:
        """A GenerateContentResponse with one candidate."""
        candidate = {"content": {"role": "model", "parts": parts}, "finishReason": "STOP"}
        candidate.update(candidate_extra)
        return {"candidates": [candidate]}

    def queue_text(self, text: str, **candidate_extra: Any) -> None:
        self.generate_responses.append(self.content_response([{"text": text}], **candidate_extra))

    def queue_image(self, data: str = "aW1hZ2U=", mime_type: str = "image/png") -> None:
        self.generate_responses.append(
            self.content_response(
                [{"text": "Here you go"}, {"inlineData": {"mimeType": mime_type, "data": data}}]
            )
        )

    def queue_video_job(self, pending_polls: int) -> None:
        """``pending_polls`` not-done operations, then a finished one."""
        name = self.submit_response["name"]
        self.operations = [{"name": name} for _ in range(pending_polls)]
        self.operations.append(
            {
                "name": name,
                "done": True,
                "response": {
                    "generateVideoResponse": {"generatedSamples": [{"video": {"uri": VIDEO_URI}}]}
                },
            }
        )

    def calls(self, suffix: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(suffix) or suffix in r.url.path]

    def body(self, index: int = -1) -> Dict[str, Any]:
        return json.loads(self.requests[index].content)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        gemini_api_key="test-key",
        video_poll_interval_seconds=0.0,
        video_max_poll_attempts=5,
        log_to_file=False,
    )


@pytest.fixture
def fake_gemini() -> FakeGemini:
    return FakeGemini()


@pytest.fixture
def gemini_client(settings: Settings, fake_gemini: FakeGemini) -> GeminiClient:
    return GeminiClient(settings=settings, transport=httpx.MockTransport(fake_gemini))


@pytest.fixture
def provider_gate() -> asyncio.Event:
    """Holds every provider response until the test sets it."""
    return asyncio.Event()


@pytest.fixture
def gated_client(settings: Settings, fake_gemini: FakeGemini, provider_gate: asyncio.Event) -> GeminiClient:
    async def handler(request: httpx.Request) -> httpx.Response:
        await provider_gate.wait()
        return fake_gemini(request)

    return GeminiClient(settings=settings, transport=httpx.MockTransport(handler))


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def session() -> StudioSession:
    return StudioSession()


@pytest.fixture
def session_with_photos(session: StudioSession, png_bytes: bytes) -> StudioSession:
    """Session holding two product photos and one catalog PDF."""
    encoded = base64.b64encode(png_bytes).decode("ascii")
    for name in ("front.png", "back.png"):
        session.add_slot(
            SlotKind.PHOTO,
            UploadSlot(id=name, filename=name, mime_type="image/png", data=encoded, size=len(png_bytes)),
        )
    session.add_slot(
        SlotKind.CATALOG,
        UploadSlot(id="cat", filename="catalog.pdf", mime_type="application/pdf", data="JVBERi0=", size=5),
    )
    return session


@pytest.fixture
def product_json() -> Dict[str, Any]:
    return json.loads(json.dumps(PRODUCT_JSON))
