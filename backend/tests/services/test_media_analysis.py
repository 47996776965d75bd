"""
Tests for the media-understanding client.

The HTTP layer is replaced with httpx.MockTransport, so requests are
inspected without touching the network.
"""

import json

import httpx
import pytest

from app.core.exceptions import MediaAnalysisError
from app.services.media_analysis import (
    ANALYSIS_SYSTEM_PROMPT,
    MediaUnderstandingClient,
    parse_analysis_content,
)

ANALYSIS = {
    "summary": "Yumurta toplama işleminin adımları.",
    "key_topics": ["opu", "anestezi"],
    "timestamps": [{"time": "00:30", "topic": "Hazırlık"}, {"time": "02:15", "topic": "İşlem"}],
    "medical_terms": ["folikül"],
    "patient_stage": "opu-oncesi",
}


def chat_reply(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def make_client(handler, api_key="media-key"):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return MediaUnderstandingClient(
        api_key=api_key,
        base_url="https://media.example.com/v1/",
        model="video-model",
        http_client=http_client,
    )


class TestParseAnalysisContent:

    def test_plain_json(self):
        result = parse_analysis_content(json.dumps(ANALYSIS))
        assert result.summary == ANALYSIS["summary"]
        assert [t.time for t in result.timestamps] == ["00:30", "02:15"]

    def test_fenced_json(self):
        content = "```json\n" + json.dumps(ANALYSIS) + "\n```"
        assert parse_analysis_content(content).key_topics == ["opu", "anestezi"]

    def test_missing_fields_default(self):
        result = parse_analysis_content('{"summary": null, "key_topics": "opu"}')
        assert result.summary == ""
        assert result.key_topics == []
        assert result.timestamps == []

    def test_invalid_json(self):
        with pytest.raises(MediaAnalysisError):
            parse_analysis_content("Bu video hakkında...")

    def test_non_object(self):
        with pytest.raises(MediaAnalysisError):
            parse_analysis_content("[1, 2]")


@pytest.mark.asyncio
class TestMediaUnderstandingClient:

    async def test_request_shape(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=chat_reply(json.dumps(ANALYSIS)))

        client = make_client(handler)
        result = await client.analyze("https://cdn.example.com/opu.mp4", "Yumurta toplama")
        await client.close()

        assert seen["url"] == "https://media.example.com/v1/chat/completions"
        assert seen["auth"] == "Bearer media-key"
        body = seen["body"]
        assert body["model"] == "video-model"
        assert body["temperature"] == 0.3
        assert body["messages"][0] == {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT}
        parts = body["messages"][1]["content"]
        assert parts[0] == {"type": "video_url", "video_url": {"url": "https://cdn.example.com/opu.mp4"}}
        assert "Yumurta toplama" in parts[1]["text"]

        assert result.patient_stage == "opu-oncesi"
        assert len(result.timestamps) == 2

    async def test_http_error(self):
        client = make_client(lambda request: httpx.Response(503, json={"error": "busy"}))

        with pytest.raises(MediaAnalysisError, match="503"):
            await client.analyze("https://cdn.example.com/opu.mp4", "OPU")

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)

        with pytest.raises(MediaAnalysisError):
            await client.analyze("https://cdn.example.com/opu.mp4", "OPU")

    async def test_empty_content(self):
        client = make_client(lambda request: httpx.Response(200, json=chat_reply("")))

        with pytest.raises(MediaAnalysisError, match="No content"):
            await client.analyze("https://cdn.example.com/opu.mp4", "OPU")

    async def test_missing_api_key(self):
        client = make_client(lambda request: httpx.Response(200, json=chat_reply("{}")), api_key=None)
        client.api_key = None

        with pytest.raises(MediaAnalysisError, match="MEDIA_API_KEY"):
            await client.analyze("https://cdn.example.com/opu.mp4", "OPU")
