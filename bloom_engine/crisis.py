"""
Crisis Classifier

Combines tiered keyword lists with the sentiment score to produce a
severity verdict for a single utterance.

Tiers are checked strictly in priority order (critical > high > medium),
and a critical match returns before sentiment is even looked at.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from enum import Enum

from .sentiment import SentimentResult, fallback_sentiment
from .text import PhraseMatcher


class CrisisSeverity(Enum):
    """Severity levels, lowest first."""
    LOW = "low"            # no crisis
    MEDIUM = "medium"      # distress words + negative tone
    HIGH = "high"          # hopelessness + strongly negative tone
    CRITICAL = "critical"  # direct self-harm language

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    CrisisSeverity.LOW: 0,
    CrisisSeverity.MEDIUM: 1,
    CrisisSeverity.HIGH: 2,
    CrisisSeverity.CRITICAL: 3,
}


@dataclass(frozen=True)
class CrisisAssessment:
    """Verdict for one utterance. Recomputed per message, never stored."""
    is_crisis: bool
    severity: CrisisSeverity
    confidence: float  # 0.0 - 1.0
    indicators: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict:
        return {
            "is_crisis": self.is_crisis,
            "severity": self.severity.value,
            "confidence": self.confidence,
            "indicators": list(self.indicators),
        }


CRITICAL_KEYWORDS: List[str] = [
    "suicide", "kill myself", "end it all", "end my life",
    "not worth living", "want to die", "take my life",
]

HIGH_KEYWORDS: List[str] = [
    "depressed", "hopeless", "worthless", "can't go on", "give up", "no point",
]

MEDIUM_KEYWORDS: List[str] = [
    "sad", "lonely", "anxious", "worried", "stressed", "overwhelmed",
]

# Sentiment gates per tier
HIGH_SCORE_THRESHOLD = -0.5
MEDIUM_SCORE_THRESHOLD = -0.3
SENTIMENT_ONLY_SCORE = -0.7
SENTIMENT_ONLY_MAGNITUDE = 0.5

NO_CRISIS = CrisisAssessment(
    is_crisis=False,
    severity=CrisisSeverity.LOW,
    confidence=0.5,
)

_critical = PhraseMatcher(CRITICAL_KEYWORDS)
_high = PhraseMatcher(HIGH_KEYWORDS)
_medium = PhraseMatcher(MEDIUM_KEYWORDS)


def detect_crisis(
    text: str,
    sentiment: Optional[SentimentResult] = None
) -> CrisisAssessment:
    """
    Classify crisis severity of an utterance.

    Args:
        text: The user's utterance
        sentiment: Sentiment for the same text; computed with the keyword
                   fallback when omitted

    Returns:
        CrisisAssessment (never raises for str input)
    """
    if not text or not text.strip():
        return NO_CRISIS

    critical = _critical.find(text)
    if critical:
        return CrisisAssessment(
            is_crisis=True,
            severity=CrisisSeverity.CRITICAL,
            confidence=0.95,
            indicators=tuple(critical),
        )

    if sentiment is None:
        sentiment = fallback_sentiment(text)

    high = _high.find(text)
    if high and sentiment.score < HIGH_SCORE_THRESHOLD:
        return CrisisAssessment(
            is_crisis=True,
            severity=CrisisSeverity.HIGH,
            confidence=0.85,
            indicators=tuple(high),
        )

    medium = _medium.find(text)
    if medium and sentiment.score < MEDIUM_SCORE_THRESHOLD:
        return CrisisAssessment(
            is_crisis=True,
            severity=CrisisSeverity.MEDIUM,
            confidence=0.7,
            indicators=tuple(medium),
        )

    if (sentiment.score < SENTIMENT_ONLY_SCORE and
            sentiment.magnitude > SENTIMENT_ONLY_MAGNITUDE):
        return CrisisAssessment(
            is_crisis=True,
            severity=CrisisSeverity.MEDIUM,
            confidence=0.75,
            indicators=("negative sentiment",),
        )

    return NO_CRISIS


def most_severe(assessments: List[CrisisAssessment]) -> CrisisAssessment:
    """Most severe assessment of a list; earlier wins on equal severity."""
    worst = NO_CRISIS
    for assessment in assessments:
        if assessment.severity.rank > worst.severity.rank:
            worst = assessment
    return worst
