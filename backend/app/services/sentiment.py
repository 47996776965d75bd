"""
Sentiment Classifier

Rule-based mood tagging for patient messages.

Tags: calm | anxious | fearful | hopeful

Precedence is fixed: fearful vocabulary is checked first, then anxious,
then hopeful; a message with no matches is calm (confidence 0.5).
Keywords are matched as lowercase substrings, so multi-word phrases work
and inflected forms ("endişeliyim") match their stems.

The tag steers the tone of the generated answer and is stored on the
user's conversation turn for the dashboard.
"""

import enum
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class Sentiment(str, enum.Enum):
    CALM = "calm"
    ANXIOUS = "anxious"
    FEARFUL = "fearful"
    HOPEFUL = "hopeful"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SentimentResult:
    tag: Sentiment
    confidence: float


# Distress and physical warning signs
FEARFUL_KEYWORDS: tuple[str, ...] = (
    "çok acı", "dayanamıyorum", "kan", "kanama", "kan geldi", "lekelenme",
    "ates", "titreme", "nefes darlığı", "nefes alamıyorum", "bayıldım",
    "bayılıyorum", "baş dönmesi", "karın şişliği", "ohss", "panik",
    "korkunç", "yardım", "acil", "doktor", "hemen",
)

ANXIOUS_KEYWORDS: tuple[str, ...] = (
    "endiseliyim", "korkuyorum", "stresli", "merak ediyorum", "acaba",
    "ne olur", "bilmiyorum", "kararsızım", "şüpheliyim", "endişe",
    "kaygılı", "gergin", "endişeli",
)

HOPEFUL_KEYWORDS: tuple[str, ...] = (
    "umutluyum", "mutluyum", "heyecanlıyım", "iyi", "güzel", "harika",
    "umut", "mutlu", "sevinçli", "tamamdır", "olur", "başarılı",
)

# (tag, keywords, confidence per match) in precedence order
_TIERS: tuple[tuple[Sentiment, tuple[str, ...], float], ...] = (
    (Sentiment.FEARFUL, FEARFUL_KEYWORDS, 0.3),
    (Sentiment.ANXIOUS, ANXIOUS_KEYWORDS, 0.2),
    (Sentiment.HOPEFUL, HOPEFUL_KEYWORDS, 0.25),
)


class SentimentClassifier:
    """
    Keyword-tier sentiment classifier.

    Usage:
    ------
    classifier = SentimentClassifier()
    result = classifier.analyze("Transfer sonrası kanama oldu, çok endişeliyim")
    result.tag          # Sentiment.FEARFUL (fearful tier wins)
    result.confidence   # 0.6
    """

    def __init__(self, tiers: tuple[tuple[Sentiment, tuple[str, ...], float], ...] = _TIERS):
        self.tiers = tiers

    def analyze(self, text: str) -> SentimentResult:
        lowered = text.lower()

        for tag, keywords, weight in self.tiers:
            matches = sum(1 for keyword in keywords if keyword in lowered)
            if matches:
                return SentimentResult(tag=tag, confidence=min(matches * weight, 1.0))

        return SentimentResult(tag=Sentiment.CALM, confidence=0.5)
