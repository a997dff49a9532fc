"""Tests for the Gemini REST client."""
from __future__ import annotations

import httpx
import pytest

from app.core.config import Settings
from app.core.exceptions import GeminiClientError, ProviderResponseError
from app.services.gemini_client import GeminiClient, inline_part, text_part

DOWNLOAD_URI = "https://generativelanguage.googleapis.com/v1beta/files/vid123:download?alt=media"


class TestGenerateContent:
    """Request shape and error mapping for generateContent."""

    @pytest.mark.asyncio
    async def test_request_carries_key_header_and_payload(self, gemini_client, fake_gemini):
        fake_gemini.queue_text("ok")

        await gemini_client.generate_content(
            "gemini-test",
            [inline_part("AAAA", "image/png"), text_part("describe")],
            system_instruction="be brief",
            generation_config={"responseMimeType": "application/json"},
            tools=[{"googleSearch": {}}],
        )

        request = fake_gemini.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/v1beta/models/gemini-test:generateContent"
        assert request.headers["x-goog-api-key"] == "test-key"
        # The key travels in the header only
        assert "key=" not in str(request.url)

        body = fake_gemini.body()
        assert body["contents"][0]["parts"][0] == {"inlineData": {"mimeType": "image/png", "data": "AAAA"}}
        assert body["contents"][0]["parts"][1] == {"text": "describe"}
        assert body["systemInstruction"] == {"parts": [{"text": "be brief"}]}
        assert body["generationConfig"] == {"responseMimeType": "application/json"}
        assert body["tools"] == [{"googleSearch": {}}]

    @pytest.mark.asyncio
    async def test_http_error_surfaces_provider_message(self, gemini_client, fake_gemini):
        fake_gemini.generate_responses.append(
            httpx.Response(429, json={"error": {"code": 429, "message": "Quota exceeded"}})
        )

        with pytest.raises(GeminiClientError) as exc_info:
            await gemini_client.generate_content("gemini-test", [text_part("x")])

        assert "Quota exceeded" in str(exc_info.value)
        assert "429" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout_is_wrapped(self, gemini_client, fake_gemini):
        fake_gemini.generate_responses.append(httpx.ReadTimeout("slow"))

        with pytest.raises(GeminiClientError, match="timed out"):
            await gemini_client.generate_content("gemini-test", [text_part("x")])

    @pytest.mark.asyncio
    async def test_transport_error_is_wrapped(self, gemini_client, fake_gemini):
        fake_gemini.generate_responses.append(httpx.ConnectError("refused"))

        with pytest.raises(GeminiClientError, match="transport error"):
            await gemini_client.generate_content("gemini-test", [text_part("x")])

    @pytest.mark.asyncio
    async def test_non_json_body_is_provider_error(self, gemini_client, fake_gemini):
        fake_gemini.generate_responses.append(httpx.Response(200, text="<html>"))

        with pytest.raises(ProviderResponseError):
            await gemini_client.generate_content("gemini-test", [text_part("x")])

    @pytest.mark.asyncio
    async def test_blocked_prompt_raises(self, gemini_client, fake_gemini):
        fake_gemini.generate_responses.append({"promptFeedback": {"blockReason": "SAFETY"}})

        with pytest.raises(GeminiClientError, match="SAFETY"):
            await gemini_client.generate_content("gemini-test", [text_part("x")])

    @pytest.mark.asyncio
    async def test_missing_api_key_fails_without_request(self, fake_gemini):
        client = GeminiClient(
            settings=Settings(gemini_api_key=None, log_to_file=False),
            transport=httpx.MockTransport(fake_gemini),
        )

        assert client.configured is False
        with pytest.raises(GeminiClientError, match="GEMINI_API_KEY"):
            await client.generate_content("gemini-test", [text_part("x")])
        assert fake_gemini.requests == []


class TestVideoCalls:
    @pytest.mark.asyncio
    async def test_start_video_job_wraps_instance(self, gemini_client, fake_gemini):
        operation = await gemini_client.start_video_job(
            "veo-test", {"prompt": "spin"}, {"aspectRatio": "16:9"}
        )

        assert operation["name"] == "models/veo/operations/op-1"
        assert fake_gemini.requests[0].url.path == "/v1beta/models/veo-test:predictLongRunning"
        assert fake_gemini.body() == {
            "instances": [{"prompt": "spin"}],
            "parameters": {"aspectRatio": "16:9"},
        }

    @pytest.mark.asyncio
    async def test_start_video_job_without_name(self, gemini_client, fake_gemini):
        fake_gemini.submit_response = {"done": False}

        with pytest.raises(ProviderResponseError):
            await gemini_client.start_video_job("veo-test", {"prompt": "spin"}, {})

    @pytest.mark.asyncio
    async def test_get_operation_and_download(self, gemini_client, fake_gemini):
        fake_gemini.queue_video_job(pending_polls=0)

        operation = await gemini_client.get_operation("models/veo/operations/op-1")
        uri = operation["response"]["generateVideoResponse"]["generatedSamples"][0]["video"]["uri"]
        content, mime_type = await gemini_client.download(uri)

        assert fake_gemini.requests[0].url.path == "/v1beta/models/veo/operations/op-1"
        assert content == fake_gemini.video_bytes
        assert mime_type == "video/mp4"
        assert fake_gemini.requests[1].headers["x-goog-api-key"] == "test-key"

    @pytest.mark.asyncio
    async def test_download_redirect_to_other_host_drops_key(self, settings):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.host == "generativelanguage.googleapis.com":
                return httpx.Response(302, headers={"location": "https://storage.example.com/v.mp4"})
            return httpx.Response(200, content=b"video", headers={"content-type": "video/mp4"})

        client = GeminiClient(settings=settings, transport=httpx.MockTransport(handler))
        content, mime_type = await client.download(DOWNLOAD_URI)

        assert (content, mime_type) == (b"video", "video/mp4")
        assert seen[0].headers["x-goog-api-key"] == "test-key"
        assert seen[1].url.host == "storage.example.com"
        assert "x-goog-api-key" not in seen[1].headers

    @pytest.mark.asyncio
    async def test_download_redirect_on_api_host_keeps_key(self, settings):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if len(seen) == 1:
                return httpx.Response(307, headers={"location": "/v1beta/files/vid123:download?alt=media&hop=1"})
            return httpx.Response(200, content=b"video", headers={"content-type": "video/mp4"})

        client = GeminiClient(settings=settings, transport=httpx.MockTransport(handler))
        await client.download(DOWNLOAD_URI)

        assert seen[1].headers["x-goog-api-key"] == "test-key"

    @pytest.mark.asyncio
    async def test_download_redirect_loop_is_bounded(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(302, headers={"location": str(request.url)})

        client = GeminiClient(settings=settings, transport=httpx.MockTransport(handler))
        with pytest.raises(ProviderResponseError, match="redirected"):
            await client.download(DOWNLOAD_URI)


class TestResponseHelpers:
    def test_response_text_skips_thoughts(self):
        data = {
            "candidates": [
                {
                    "content": {
                        "parts": [
                            {"text": "thinking...", "thought": True},
                            {"text": '{"a": '},
                            {"text": "1}"},
                        ]
                    }
                }
            ]
        }
        assert GeminiClient.response_text(data) == '{"a": 1}'

    def test_response_text_without_candidates(self):
        assert GeminiClient.response_text({}) == ""

    def test_first_inline_data(self):
        data = {
            "candidates": [
                {"content": {"parts": [{"text": "hi"}, {"inlineData": {"mimeType": "image/jpeg", "data": "Zm9v"}}]}}
            ]
        }
        assert GeminiClient.first_inline_data(data) == {"mimeType": "image/jpeg", "data": "Zm9v"}
        assert GeminiClient.first_inline_data({"candidates": []}) is None

    def test_grounding_sources_keep_only_web_chunks_with_uri(self):
        data = {
            "candidates": [
                {
                    "groundingMetadata": {
                        "groundingChunks": [
                            {"web": {"uri": "https://a.example", "title": "A"}},
                            {"web": {"title": "no uri"}},
                            {"retrievedContext": {"uri": "gs://x"}},
                            {"web": {"uri": "https://b.example"}},
                        ]
                    }
                }
            ]
        }

        sources = GeminiClient.grounding_sources(data)

        assert [s.uri for s in sources] == ["https://a.example", "https://b.example"]
        assert sources[0].title == "A"
        assert sources[1].title is None
