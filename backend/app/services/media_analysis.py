"""
Media Understanding Client

Asks a multimodal model to watch a clinic video and describe it as JSON.

The service speaks the OpenAI-compatible chat completions protocol:

    POST {MEDIA_API_URL}/chat/completions
    {
      "model": "...",
      "messages": [
        {"role": "system", "content": <analysis instructions>},
        {"role": "user", "content": [
            {"type": "video_url", "video_url": {"url": "..."}},
            {"type": "text", "text": <url + title + "JSON only">}
        ]}
      ],
      "temperature": 0.3
    }

The reply content is JSON, sometimes wrapped in a ``` fence. It is parsed
into VideoAnalysisResult. Retrying is the analysis queue's job, not this
client's: every failure is raised once as MediaAnalysisError.
"""

import json
import logging
import time
from typing import Any, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from app.core.config import settings
from app.core.exceptions import MediaAnalysisError

logger = logging.getLogger(__name__)


ANALYSIS_SYSTEM_PROMPT = """Sen bir IVF (tüp bebek) kliniği için video analiz uzmanısın. Videoları analiz eder ve aşağıdaki formatta JSON döndürürsün.

Kurallar:
1. IVF/tüp bebek konusunda uzmanlaşmış video içeriklerini analiz et
2. Tıbbi terimleri doğru şekilde tespit et
3. Hasta sürecinin hangi aşamasında olduğunu belirle
4. Zaman damgalarını video içeriğine göre doğru yerleştir

Dönüş formatı (sadece JSON):
{
  "summary": "Videonun 2-3 paragraflık detaylı özeti",
  "key_topics": ["konu1", "konu2", "konu3", "konu4", "konu5"],
  "timestamps": [
    {"time": "00:30", "topic": "Konunun kısa açıklaması"},
    {"time": "02:15", "topic": "Başka bir konu"}
  ],
  "medical_terms": ["OHSS", "folikül", "embriyo transferi", "hCG"],
  "patient_stage": "tedavi-oncesi | opu-oncesi | opu-sonrasi | transfer-sonrasi | beta-bekleme"
}"""


def build_analysis_prompt(video_url: str, title: str) -> str:
    return (
        "Lütfen bu IVF videosunu analiz et:\n\n"
        f"Video URL: {video_url}\n"
        f"Video Başlığı: {title}\n\n"
        "Yukarıdaki videonun içeriğini analiz et ve yukarıdaki JSON formatında sonuç döndür. "
        "Sadece JSON döndür, başka bir şey yazma.\n"
    )


class VideoTimestamp(BaseModel):
    time: str
    topic: str


class VideoAnalysisResult(BaseModel):
    """Structured description of a video."""

    summary: str = ""
    key_topics: list[str] = Field(default_factory=list)
    timestamps: list[VideoTimestamp] = Field(default_factory=list)
    medical_terms: list[str] = Field(default_factory=list)
    patient_stage: Optional[str] = None

    @field_validator("key_topics", "medical_terms", "timestamps", mode="before")
    @classmethod
    def non_list_to_empty(cls, v: Any) -> Any:
        return v if isinstance(v, list) else []

    @field_validator("summary", mode="before")
    @classmethod
    def null_summary(cls, v: Any) -> Any:
        return v or ""


def parse_analysis_content(content: str) -> VideoAnalysisResult:
    """
    Parse the model's reply, tolerating a ```json fence around it.

    Raises:
        MediaAnalysisError: If the content is not a JSON object of the expected shape
    """
    text = content.strip()
    if text.startswith("```"):
        first_newline = text.find("\n")
        text = text[first_newline + 1:] if first_newline != -1 else text[3:]
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
        text = text.strip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse analysis JSON: {text[:200]}")
        raise MediaAnalysisError("Invalid JSON response from media service") from e

    if not isinstance(data, dict):
        raise MediaAnalysisError("Media service response is not a JSON object")

    try:
        return VideoAnalysisResult.model_validate(data)
    except PydanticValidationError as e:
        raise MediaAnalysisError(f"Unexpected analysis shape: {e.error_count()} errors") from e


class MediaUnderstandingClient:
    """
    HTTP client for the media-understanding service.

    Usage:
    ------
    client = MediaUnderstandingClient()
    result = await client.analyze("https://cdn.example.com/transfer.mp4", "Embriyo Transferi")
    result.summary, result.key_topics, result.timestamps

    Pass ``http_client`` to reuse a connection pool or to mock the
    transport in tests.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key or settings.MEDIA_API_KEY
        self.base_url = (base_url or settings.MEDIA_API_URL).rstrip("/")
        self.model = model or settings.MEDIA_MODEL
        self.timeout = timeout or settings.MEDIA_REQUEST_TIMEOUT
        self._client = http_client or httpx.AsyncClient(timeout=self.timeout)

    def _payload(self, video_url: str, title: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "video_url", "video_url": {"url": video_url}},
                        {"type": "text", "text": build_analysis_prompt(video_url, title)},
                    ],
                },
            ],
            "temperature": 0.3,
            "max_tokens": 4000,
        }

    async def analyze(self, video_url: str, title: str) -> VideoAnalysisResult:
        """
        Analyze one video.

        Raises:
            MediaAnalysisError: Missing API key, HTTP/transport failure,
                empty content or unparseable JSON
        """
        if not self.api_key:
            raise MediaAnalysisError("MEDIA_API_KEY not configured")

        logger.info(f"Starting media analysis for '{title}'")
        started = time.perf_counter()

        try:
            response = await self._client.post(
                f"{self.base_url}/chat/completions",
                json=self._payload(video_url, title),
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            raise MediaAnalysisError(
                f"Media service returned HTTP {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise MediaAnalysisError(f"Media service request failed: {e}") from e

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None

        if not content:
            raise MediaAnalysisError("No content in media service response")

        result = parse_analysis_content(content)

        elapsed = time.perf_counter() - started
        logger.info(
            f"Media analysis completed for '{title}' in {elapsed:.1f}s: "
            f"{len(result.key_topics)} topics, {len(result.timestamps)} timestamps"
        )
        return result

    async def close(self) -> None:
        await self._client.aclose()
