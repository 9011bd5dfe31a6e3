"""
Emotion Aggregator

Turns a document sentiment plus keyword cues into an ordered list of
candidate emotions and a primary emotion.

Order matters: score-derived candidates come first, lexicon matches are
appended after them, and the primary emotion is the first candidate with
the maximum intensity. The same input always yields the same output.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .sentiment import SentimentResult, fallback_sentiment
from .text import PhraseMatcher


@dataclass(frozen=True)
class EmotionScore:
    """One candidate emotion."""
    emotion: str
    intensity: float

    def to_dict(self) -> Dict:
        return {"emotion": self.emotion, "intensity": round(self.intensity, 3)}


@dataclass(frozen=True)
class EmotionalTone:
    """Aggregated emotional reading of a single utterance."""
    primary_emotion: str
    emotions: Tuple[EmotionScore, ...]
    overall: SentimentResult

    @property
    def primary_intensity(self) -> float:
        for score in self.emotions:
            if score.emotion == self.primary_emotion:
                return score.intensity
        return 0.0

    def has_emotion(self, emotion: str) -> bool:
        return any(score.emotion == emotion for score in self.emotions)

    def to_dict(self) -> Dict:
        return {
            "primary_emotion": self.primary_emotion,
            "emotions": [e.to_dict() for e in self.emotions],
            "overall": self.overall.to_dict(),
        }


# (emotion, cue words, fixed intensity) - scanned in this order
EMOTION_LEXICONS: List[Tuple[str, List[str], float]] = [
    ("anger", ["angry", "frustrated", "mad"], 0.7),
    ("anxiety", ["anxious", "worried", "nervous"], 0.8),
    ("loneliness", ["lonely", "isolated"], 0.7),
]

_LEXICON_MATCHERS = [
    (emotion, PhraseMatcher(words), intensity)
    for emotion, words, intensity in EMOTION_LEXICONS
]


def score_emotions(sentiment: SentimentResult) -> List[EmotionScore]:
    """Seed candidates from the sentiment score alone."""
    score = sentiment.score
    if score > 0.5:
        return [
            EmotionScore("joy", score),
            EmotionScore("contentment", score * 0.7),
        ]
    if score < -0.5:
        return [
            EmotionScore("sadness", abs(score)),
            EmotionScore("anxiety", sentiment.magnitude * 0.5),
        ]
    return [EmotionScore("neutral", 0.5)]


def pick_primary(emotions: List[EmotionScore]) -> str:
    """Highest intensity wins; ties keep the earliest candidate."""
    if not emotions:
        return "neutral"
    primary = emotions[0]
    for candidate in emotions[1:]:
        if candidate.intensity > primary.intensity:
            primary = candidate
    return primary.emotion


def analyze_emotional_tone(
    text: str,
    sentiment: Optional[SentimentResult] = None
) -> EmotionalTone:
    """
    Aggregate sentiment and keyword cues into an EmotionalTone.

    Args:
        text: The user's utterance
        sentiment: Sentiment from the collaborator; the keyword fallback
                   is used when omitted
    """
    if sentiment is None:
        sentiment = fallback_sentiment(text)

    emotions = score_emotions(sentiment)
    for emotion, matcher, intensity in _LEXICON_MATCHERS:
        if matcher.matches(text):
            emotions.append(EmotionScore(emotion, intensity))

    return EmotionalTone(
        primary_emotion=pick_primary(emotions),
        emotions=tuple(emotions),
        overall=sentiment,
    )
