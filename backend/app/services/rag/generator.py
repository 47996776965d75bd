"""
RAG Generator for Chat

This module implements the generation half of the RAG pipeline using the
Claude API:
- Context assembly from retrieved knowledge-base items
- Mood- and stage-aware prompt building
- The completion call itself
- Removal of <think>...</think> reasoning blocks from raw replies

The generator never decides *whether* to answer (emergencies and cache
hits are handled before it is reached); it only turns a question plus
context into patient-facing text.
"""

import logging
import re
from typing import Optional, Sequence

from anthropic import AsyncAnthropic

from app.core.config import settings
from app.core.exceptions import CompletionError
from app.services.rag.retriever import SearchResult
from app.services.sentiment import Sentiment

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """Sen bir tüp bebek (IVF) kliniğinin dijital hasta rehberisin.

KURALLAR:
1. ASLA tanı koyma. "Hamilesiniz", "Düşük yapıyorsunuz" gibi ifadeler YASAK.
2. ASLA ilaç dozu önerme veya ilaç değişikliği yapma.
3. Sadece sana verilen bilgi bankasındaki içerikleri kullan.
4. Bilmiyorsan "Bu konuda doktorunuza danışmanızı öneririm" de.
5. Acil belirtiler (kanama, şiddetli ağrı, ateş, nefes darlığı) için
   HEMEN "Lütfen doktorunuzu veya acil servisi arayın" uyarısı ver.
6. Empatik ve sıcak bir dil kullan. Hasta endişeli olabilir.
7. Cevapların sonunda kaynaklarını belirt.
8. Türkçe yaz, tıbbi terimlerin yanına parantez içinde açıklama ekle.
9. Hasta korku içindeyse (fearful), önce sakinleştirici mesaj ver.
10. Hasta endişeliyse (anxious), empatik giriş yap, sonra bilgiyi sun.
11. Hasta umutluysa (hopeful), pozitif ama gerçekçi destek ver.
12. Her zaman kaynaklarla destekli bilgi ver.
13. Markdown formatı KULLANMA. Başlık (#), kalın (**), italik (*), liste (-) gibi işaretler kullanma. Düz metin yaz."""

NO_CONTEXT_TEXT = "Bu konuda bilgi bankasında içerik bulunamadı."

MOOD_PREAMBLES = {
    Sentiment.FEARFUL: "Hasta korku içinde ve sakinleştirilmeye ihtiyacı var. ",
    Sentiment.ANXIOUS: "Hasta endişeli ve empatik bir yaklaşıma ihtiyaç duyuyor. ",
    Sentiment.HOPEFUL: "Hasta umutlu ve pozitif ama gerçekçi desteğe ihtiyaç duyuyor. ",
}

_THINK_TAG_RE = re.compile(r"<think>[\s\S]*?</think>\s*")


def strip_think_tags(text: str) -> str:
    """Remove <think>...</think> blocks (and trailing whitespace) from a reply."""
    return _THINK_TAG_RE.sub("", text).strip()


def build_context_text(results: Sequence[SearchResult], snippet_chars: Optional[int] = None) -> str:
    """
    Render retrieved items as a numbered source list for the prompt.

    Bodies are cut to ``snippet_chars`` with a trailing "..." when longer.
    """
    if not results:
        return NO_CONTEXT_TEXT

    snippet_chars = snippet_chars or settings.RAG_SNIPPET_CHARS
    parts = ["İlgili kaynaklar:\n\n"]

    for index, result in enumerate(results, start=1):
        parts.append(f"Kaynak {index} ({result.kind}): {result.title}\n")
        if result.body:
            snippet = result.body[:snippet_chars]
            ellipsis = "..." if len(result.body) > snippet_chars else ""
            parts.append(f"İçerik: {snippet}{ellipsis}\n")
        if result.url:
            parts.append(f"URL: {result.url}\n")
        parts.append("\n")

    return "".join(parts)


def build_user_prompt(
    message: str,
    context_text: str,
    sentiment: Sentiment,
    stage: Optional[str] = None,
) -> str:
    """Mood preamble, optional treatment stage, context block, then the question."""
    prompt = MOOD_PREAMBLES.get(sentiment, "")

    if stage:
        prompt += f"Hasta şu aşamada: {stage}. "

    prompt += f"\n{context_text}\n\n"
    prompt += f"Soru: {message}\n\n"
    prompt += "Lütfen yukarıdaki kaynakları kullanarak empatik ve bilgilendirici bir cevap ver. "

    return prompt


class CompletionClient:
    """
    Thin wrapper around Claude's Messages API.

    Usage:
    ------
    client = CompletionClient()
    answer = await client.complete(user_prompt)

    The fixed system prompt is sent with every call. Any API error, and an
    empty reply, surfaces as CompletionError.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        system_prompt: str = SYSTEM_PROMPT,
        client: Optional[AsyncAnthropic] = None,
    ):
        """
        Initialize the completion client.

        Args:
            api_key: Anthropic API key (defaults to settings.ANTHROPIC_API_KEY)
            model: Claude model to use (defaults to settings.ANTHROPIC_MODEL)
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature 0-1
            system_prompt: System prompt sent with every request
            client: Pre-built AsyncAnthropic client (tests)
        """
        self.api_key = api_key or settings.ANTHROPIC_API_KEY
        self.model = model or settings.ANTHROPIC_MODEL
        self.max_tokens = max_tokens or settings.ANTHROPIC_MAX_TOKENS
        self.temperature = temperature if temperature is not None else settings.ANTHROPIC_TEMPERATURE
        self.system_prompt = system_prompt

        if client is None and not self.api_key:
            raise ValueError("Anthropic API key is required. Set ANTHROPIC_API_KEY in environment.")

        self.client = client or AsyncAnthropic(api_key=self.api_key)

        logger.info(f"CompletionClient initialized with model={self.model}, max_tokens={self.max_tokens}")

    async def complete(self, user_prompt: str) -> str:
        """
        Generate an answer for ``user_prompt``.

        Returns:
            Raw reply text (think tags not yet removed)

        Raises:
            CompletionError: On API failure, or a reply that is empty once think tags are removed
        """
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=self.system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
            )
            text = "".join(
                block.text for block in response.content if getattr(block, "type", None) == "text"
            )
        except Exception as e:
            logger.error(f"Error generating response: {e}")
            raise CompletionError(f"Completion service failed: {e}") from e

        # Only <think> blocks counts as empty
        if not strip_think_tags(text):
            logger.error("Completion service returned an empty reply")
            raise CompletionError("Completion service returned an empty reply")

        usage = getattr(response, "usage", None)
        tokens = usage.input_tokens + usage.output_tokens if usage is not None else "unknown"
        logger.info(f"Generated response: {len(text)} chars, {tokens} tokens")
        return text

    async def close(self) -> None:
        await self.client.close()
