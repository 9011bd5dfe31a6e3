"""
Text Matching Helpers

Whole-word phrase matching shared by the emotion and crisis classifiers.
"""

from typing import Iterable, List
import re

# Typographic apostrophes from mobile keyboards ("can’t")
_APOSTROPHES = str.maketrans({"’": "'", "‘": "'", "ʼ": "'"})


def normalize_text(text: str) -> str:
    """Lowercase and fold apostrophe variants."""
    return text.translate(_APOSTROPHES).lower()


class PhraseMatcher:
    """Case-insensitive whole-word matcher over a fixed phrase list."""

    def __init__(self, phrases: Iterable[str]):
        self.phrases: List[str] = list(phrases)
        self._compiled = [
            (phrase, re.compile(r"\b" + re.escape(normalize_text(phrase)) + r"\b"))
            for phrase in self.phrases
        ]

    def find(self, text: str) -> List[str]:
        """Return matched phrases in lexicon order."""
        normalized = normalize_text(text)
        return [phrase for phrase, pattern in self._compiled if pattern.search(normalized)]

    def matches(self, text: str) -> bool:
        normalized = normalize_text(text)
        return any(pattern.search(normalized) for _, pattern in self._compiled)
