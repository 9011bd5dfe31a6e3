"""
Technique & Topic Tagging

Pure classifiers used by the session layer:
- which therapeutic technique a generated reply leans on
- which conversation topic a user message touches
"""

from typing import List, Optional, Tuple
from enum import Enum


class Technique(Enum):
    """Therapeutic technique tags."""
    CBT = "cbt"                   # thoughts, beliefs, perspective
    ACT = "act"                   # acceptance, values, commitment
    DBT = "dbt"                   # distress tolerance, emotion regulation
    MINDFULNESS = "mindfulness"   # breathing, grounding
    VALIDATION = "validation"     # validating, normalising
    REFRAMING = "reframing"       # alternatives, another way
    EXPLORATION = "exploration"   # default: open questions


# Ordered rules: the first rule with a matching cue wins
TECHNIQUE_RULES: List[Tuple[Technique, List[str]]] = [
    (Technique.CBT, ["thought", "belief", "perspective", "way of thinking"]),
    (Technique.ACT, ["accept", "present moment", "values", "commitment"]),
    (Technique.DBT, ["distress tolerance", "mindfulness", "emotion regulation"]),
    (Technique.MINDFULNESS, ["breathe", "grounding", "moment"]),
    (Technique.VALIDATION, ["validate", "understand", "makes sense"]),
    (Technique.REFRAMING, ["consider", "alternativ", "another way"]),
]

TOPIC_KEYWORDS: List[str] = [
    "anxiety", "stress", "depression", "sad", "worried", "angry",
    "happy", "grateful", "work", "family", "friends", "school",
]


def identify_technique(response: str) -> Technique:
    """Tag a generated reply with exactly one technique."""
    lower = response.lower()
    for technique, cues in TECHNIQUE_RULES:
        if any(cue in lower for cue in cues):
            return technique
    return Technique.EXPLORATION


def extract_topic(text: str) -> Optional[str]:
    """
    First topic keyword (in list order) contained in any token of the text.

    Substring match inside tokens, so "stressed" yields "stress" and
    "workload" yields "work".
    """
    tokens = text.lower().split()
    if not tokens:
        return None
    for topic in TOPIC_KEYWORDS:
        if any(topic in token for token in tokens):
            return topic
    return None
