"""
Gemini AI Integration for Therapeutic Replies

The text-generation collaborator. Output is treated as an opaque string;
the session layer only classifies it afterwards.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol
import logging

import google.generativeai as genai

from . import config
from .errors import ExternalServiceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatTurn:
    """One turn handed to the model."""
    role: str  # "user" or "assistant"
    text: str


class Responder(Protocol):
    async def generate(self, turns: List[ChatTurn]) -> str:
        ...


def to_gemini_contents(turns: List[ChatTurn]) -> List[Dict]:
    """
    Convert turns to Gemini `contents`.

    Gemini names the assistant role "model"; consecutive turns with the
    same role are merged into one entry.
    """
    contents: List[Dict] = []
    for turn in turns:
        role = "model" if turn.role == "assistant" else "user"
        if contents and contents[-1]["role"] == role:
            contents[-1]["parts"].append(turn.text)
        else:
            contents.append({"role": role, "parts": [turn.text]})
    return contents


class GeminiResponder:
    """Therapeutic replies from Gemini."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        temperature: float = 0.7,
        max_output_tokens: int = 400
    ):
        self.api_key = api_key or config.GEMINI_API_KEY
        self.model_name = model_name or config.GEMINI_MODEL
        self.generation_config = {
            "temperature": temperature,
            "max_output_tokens": max_output_tokens,
        }

        if self.api_key:
            genai.configure(api_key=self.api_key)
            self.model = genai.GenerativeModel(self.model_name)
            self.enabled = True
        else:
            self.model = None
            self.enabled = False
            logger.warning("Gemini API key not found. Therapeutic replies will use fallback mode.")

    async def generate(self, turns: List[ChatTurn]) -> str:
        """Generate a reply; raises ExternalServiceError on any failure."""
        if not self.enabled:
            raise ExternalServiceError("gemini", "API key not configured")
        if not turns:
            raise ValueError("At least one turn is required")

        try:
            response = await self.model.generate_content_async(
                to_gemini_contents(turns),
                generation_config=self.generation_config,
            )
            text = response.text.strip()
        except Exception as e:
            logger.error(f"Gemini API error: {e}")
            raise ExternalServiceError("gemini", str(e)) from e

        if not text:
            raise ExternalServiceError("gemini", "empty response")
        return text
