"""
Sentiment Analysis Module

Two layers:
1. Cloud Natural Language API through the app proxy (async, most accurate)
2. Keyword counting fallback (instant, free, never fails)

The cloud layer degrades to the keyword layer whenever the proxy is not
configured, unreachable, or returns something unparseable.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional
from enum import Enum
import logging

import httpx

logger = logging.getLogger(__name__)


class SentimentLabel(Enum):
    """Coarse polarity of a piece of text."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class SentimentResult:
    """Document-level sentiment."""
    score: float       # -1.0 - 1.0
    magnitude: float   # 0.0 - inf
    sentiment: SentimentLabel
    method: str = "keyword"  # "cloud" or "keyword"

    @property
    def is_negative(self) -> bool:
        return self.sentiment == SentimentLabel.NEGATIVE

    def to_dict(self) -> Dict:
        return {
            "score": round(self.score, 3),
            "magnitude": round(self.magnitude, 3),
            "sentiment": self.sentiment.value,
            "method": self.method,
        }


NEUTRAL_SENTIMENT = SentimentResult(
    score=0.0, magnitude=0.0, sentiment=SentimentLabel.NEUTRAL
)

POSITIVE_WORDS: List[str] = [
    "happy", "good", "great", "wonderful", "amazing",
    "love", "enjoy", "excited", "grateful",
]

NEGATIVE_WORDS: List[str] = [
    "sad", "bad", "terrible", "awful", "hate", "angry",
    "frustrated", "worried", "anxious", "depressed",
]


def label_for_score(score: float, threshold: float) -> SentimentLabel:
    """Map a score to a polarity label using a symmetric threshold."""
    if score > threshold:
        return SentimentLabel.POSITIVE
    if score < -threshold:
        return SentimentLabel.NEGATIVE
    return SentimentLabel.NEUTRAL


class KeywordSentimentAnalyzer:
    """
    Keyword-count sentiment heuristic.

    score = (positive hits - negative hits) / token count, so it always
    stays within [-1, 1]. A token counts once per lexicon even when it
    contains several lexicon words.
    """

    LABEL_THRESHOLD = 0.1

    def __init__(
        self,
        positive_words: Optional[List[str]] = None,
        negative_words: Optional[List[str]] = None
    ):
        self.positive_words = positive_words or POSITIVE_WORDS
        self.negative_words = negative_words or NEGATIVE_WORDS

    def analyze(self, text: str) -> SentimentResult:
        tokens = text.lower().split()
        if not tokens:
            return NEUTRAL_SENTIMENT

        positive = 0
        negative = 0
        for token in tokens:
            if any(word in token for word in self.positive_words):
                positive += 1
            if any(word in token for word in self.negative_words):
                negative += 1

        score = (positive - negative) / len(tokens)
        return SentimentResult(
            score=score,
            magnitude=abs(score),
            sentiment=label_for_score(score, self.LABEL_THRESHOLD),
            method="keyword",
        )


_fallback_analyzer = KeywordSentimentAnalyzer()


def fallback_sentiment(text: str) -> SentimentResult:
    """Sentiment from the local keyword heuristic."""
    return _fallback_analyzer.analyze(text)


class LanguageClient:
    """
    Sentiment collaborator backed by the Cloud Natural Language API.

    Requests go through the app's proxy (`<proxy>/language/analyze-sentiment`).
    Any failure is logged and answered by the keyword fallback, so
    `analyze_sentiment` never raises for string input.
    """

    LABEL_THRESHOLD = 0.25

    def __init__(
        self,
        proxy_url: Optional[str] = None,
        language_code: str = "en",
        timeout: float = 5.0,
        http_client: Optional[httpx.AsyncClient] = None,
        fallback: Optional[KeywordSentimentAnalyzer] = None
    ):
        """
        Args:
            proxy_url: Base URL of the Google Cloud proxy; None disables the API
            language_code: Default document language
            timeout: Request timeout in seconds
            http_client: Shared client (tests inject one with a mock transport)
            fallback: Analyzer used when the API is unavailable
        """
        self.proxy_url = proxy_url.rstrip("/") if proxy_url else None
        self.language_code = language_code
        self.timeout = timeout
        self._client = http_client
        self.fallback = fallback or _fallback_analyzer

    @property
    def enabled(self) -> bool:
        return self.proxy_url is not None

    async def analyze_sentiment(
        self,
        text: str,
        language_code: Optional[str] = None
    ) -> SentimentResult:
        """Analyze document sentiment, degrading to keywords on failure."""
        if not text.strip():
            return NEUTRAL_SENTIMENT

        if not self.enabled:
            return self.fallback.analyze(text)

        payload = {
            "document": {
                "type": "PLAIN_TEXT",
                "content": text,
                "languageCode": language_code or self.language_code,
            },
            "encodingType": "UTF8",
        }

        try:
            data = await self._post("/language/analyze-sentiment", payload)
            document = data["documentSentiment"]
            score = float(document.get("score", 0.0))
            magnitude = float(document.get("magnitude", 0.0))
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Cloud Language API failed, using keyword fallback: {e}")
            return self.fallback.analyze(text)

        score = max(-1.0, min(1.0, score))
        magnitude = max(0.0, magnitude)
        return SentimentResult(
            score=score,
            magnitude=magnitude,
            sentiment=label_for_score(score, self.LABEL_THRESHOLD),
            method="cloud",
        )

    async def _post(self, path: str, payload: Dict) -> Dict:
        url = f"{self.proxy_url}{path}"
        if self._client is not None:
            response = await self._client.post(url, json=payload, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, json=payload)
        response.raise_for_status()
        return response.json()

    async def aclose(self):
        """Close the shared HTTP client, if one was injected."""
        if self._client is not None:
            await self._client.aclose()
