"""
Emergency Detector

Flags messages that describe symptoms needing immediate medical attention
(bleeding, severe pain, fever, breathing difficulty, fainting, OHSS signs).

Contract:
---------
- Every matching rule contributes its matched text to ``keywords``.
- ``message`` and ``severity`` come from the highest-severity match
  (high > medium > low); ties go to the earlier rule.
- ``is_emergency`` is True only for high or medium severity. A lone
  low-severity match (generic "ağrı") still carries an informational
  message but does not escalate.
"""

import enum
import logging
import re
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)


class Severity(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def __str__(self) -> str:
        return self.value


_SEVERITY_RANK = {Severity.HIGH: 3, Severity.MEDIUM: 2, Severity.LOW: 1}


@dataclass(frozen=True)
class EmergencyRule:
    pattern: re.Pattern
    severity: Severity
    message: str


@dataclass
class EmergencyResult:
    is_emergency: bool
    keywords: list[str] = field(default_factory=list)
    message: Optional[str] = None
    severity: Optional[Severity] = None


def _rule(pattern: str, severity: Severity, message: str) -> EmergencyRule:
    return EmergencyRule(re.compile(pattern, re.IGNORECASE), severity, message)


DEFAULT_RULES: tuple[EmergencyRule, ...] = (
    _rule(
        r"kan(ama| geldi| lekelenme| dökülme)",
        Severity.HIGH,
        "Kanama belirtisi tespit edildi. Lütfen hemen doktorunuzu veya acil servisi arayın.",
    ),
    _rule(
        r"(çok)?(şiddetli|dayanılmaz|korkunç|berbat) (ağrı|sancı|sanci|acı)",
        Severity.HIGH,
        "Şiddetli ağrı belirtisi tespit edildi. Lütfen hemen doktorunuzu arayın.",
    ),
    _rule(
        r"(yüksek|çok) (ateş|titreme|titriyor)",
        Severity.HIGH,
        "Ateş/titreme belirtisi tespit edildi. Lütfen hemen doktorunuzu arayın.",
    ),
    _rule(
        r"nefes (darlığı|almıyorum|alamıyorum|alamiyorum|kesilmesi)",
        Severity.HIGH,
        "Nefes darlığı belirtisi tespit edildi. Bu acil bir durumdur, lütfen acil servise başvurun.",
    ),
    _rule(
        r"(bayıldım|bayılıyorum|bayılmak üzereyim|baş dönmesi)",
        Severity.HIGH,
        "Bayılma/baş dönmesi belirtisi tespit edildi. Lütfen hemen doktorunuzu veya acil servisi arayın.",
    ),
    _rule(
        r"(karın şişliği|şiş karın|karnım çok şiş|ohss)",
        Severity.MEDIUM,
        "Karın şişliği veya OHSS belirtisi olabilir. Lütfen en kısa sürede doktorunuzu arayın.",
    ),
    _rule(
        r"ağrı",
        Severity.LOW,
        "Ağrı belirtisi tespit edildi. Eğer ağrı şiddetliyse veya artıyorsa doktorunuza başvurun.",
    ),
)


class EmergencyDetector:
    """
    Ordered rule list with severity precedence.

    Usage:
    ------
    detector = EmergencyDetector()
    result = detector.detect("Kanama var, kan geldi")
    result.is_emergency   # True
    result.message        # "Kanama belirtisi tespit edildi. ..."
    """

    def __init__(self, rules: tuple[EmergencyRule, ...] = DEFAULT_RULES):
        self.rules = rules

    def detect(self, text: str) -> EmergencyResult:
        keywords: list[str] = []
        top: Optional[EmergencyRule] = None

        for rule in self.rules:
            match = rule.pattern.search(text)
            if match is None:
                continue
            keywords.append(match.group(0))
            # Strictly greater keeps the earliest rule on ties
            if top is None or rule.severity.rank > top.severity.rank:
                top = rule

        if top is None:
            return EmergencyResult(is_emergency=False)

        is_emergency = top.severity in (Severity.HIGH, Severity.MEDIUM)
        if is_emergency:
            logger.warning(f"Emergency keywords detected ({top.severity}): {keywords}")

        return EmergencyResult(
            is_emergency=is_emergency,
            keywords=keywords,
            message=top.message,
            severity=top.severity,
        )
