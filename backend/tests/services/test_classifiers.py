"""
Tests for the rule-based message classifiers (sentiment and emergency).
"""

import pytest

from app.services.emergency import EmergencyDetector, Severity
from app.services.sentiment import Sentiment, SentimentClassifier


# ========================================
# Sentiment
# ========================================

class TestSentimentClassifier:

    @pytest.fixture
    def classifier(self):
        return SentimentClassifier()

    def test_no_keywords_is_calm(self, classifier):
        result = classifier.analyze("Embriyo transferi kaç dakika sürüyor?")
        assert result.tag == Sentiment.CALM
        assert result.confidence == 0.5

    def test_fearful(self, classifier):
        result = classifier.analyze("Dayanamıyorum, ne yapmalıyım")
        assert result.tag == Sentiment.FEARFUL
        assert result.confidence == pytest.approx(0.3)

    def test_anxious(self, classifier):
        result = classifier.analyze("Sonuçlar için çok stresli ve gerginim")
        assert result.tag == Sentiment.ANXIOUS
        assert result.confidence == pytest.approx(0.4)

    def test_hopeful(self, classifier):
        result = classifier.analyze("Bu sefer çok umutluyum")
        assert result.tag == Sentiment.HOPEFUL

    def test_fearful_beats_anxious(self, classifier):
        result = classifier.analyze("Kanama oldu, çok endişeliyim")
        assert result.tag == Sentiment.FEARFUL
        # "kan" and "kanama" both match
        assert result.confidence == pytest.approx(0.6)

    def test_anxious_beats_hopeful(self, classifier):
        result = classifier.analyze("Umutluyum ama yine de gerginim")
        assert result.tag == Sentiment.ANXIOUS

    def test_case_insensitive(self, classifier):
        assert classifier.analyze("PANIK oldum").tag == Sentiment.FEARFUL
        assert classifier.analyze("Harika haber").tag == Sentiment.HOPEFUL

    def test_confidence_is_capped(self, classifier):
        text = "kanama kan geldi lekelenme titreme panik acil hemen"
        result = classifier.analyze(text)
        assert result.tag == Sentiment.FEARFUL
        assert result.confidence == 1.0

    def test_tag_serializes_as_value(self):
        assert str(Sentiment.ANXIOUS) == "anxious"


# ========================================
# Emergency
# ========================================

class TestEmergencyDetector:

    @pytest.fixture
    def detector(self):
        return EmergencyDetector()

    def test_plain_question(self, detector):
        result = detector.detect("Transfer sonrası banyo yapabilir miyim?")
        assert result.is_emergency is False
        assert result.keywords == []
        assert result.message is None

    def test_bleeding_is_high(self, detector):
        result = detector.detect("Dün akşamdan beri kanama var")
        assert result.is_emergency is True
        assert result.severity == Severity.HIGH
        assert "Kanama" in result.message

    def test_severe_pain(self, detector):
        result = detector.detect("Çok şiddetli ağrım var")
        assert result.is_emergency is True
        assert result.severity == Severity.HIGH
        assert result.message.startswith("Şiddetli ağrı")
        # The generic low rule also matched
        assert len(result.keywords) == 2

    def test_breathing(self, detector):
        result = detector.detect("Nefes darlığı çekiyorum")
        assert result.is_emergency is True
        assert "acil servise" in result.message

    def test_ohss_is_medium(self, detector):
        result = detector.detect("OHSS olabilir mi, karnım çok şiş")
        assert result.is_emergency is True
        assert result.severity == Severity.MEDIUM

    def test_generic_pain_is_informational_only(self, detector):
        result = detector.detect("Hafif bir ağrı hissediyorum")
        assert result.is_emergency is False
        assert result.severity == Severity.LOW
        assert result.message is not None
        assert result.keywords == ["ağrı"]

    def test_highest_severity_wins(self, detector):
        result = detector.detect("ohss korkusu var ve kan geldi")
        assert result.severity == Severity.HIGH
        assert result.message.startswith("Kanama")

    def test_first_rule_wins_ties(self, detector):
        result = detector.detect("Yüksek ateş ve kanama var")
        # Bleeding rule is listed before fever
        assert result.message.startswith("Kanama")
        assert len(result.keywords) == 2

    def test_severity_rank_order(self):
        assert Severity.HIGH.rank > Severity.MEDIUM.rank > Severity.LOW.rank
