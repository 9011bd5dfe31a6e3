"""
Therapy Coach

Orchestrates one conversational turn:

user message → sentiment/emotion/crisis → prompt → reply → technique tag → note

and, when a session is finished, credits the session XP through the
progression service.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional
import logging

from .crisis import CrisisAssessment
from .emotions import EmotionalTone
from .ledger import ActionType
from .progression import ActivityOutcome, ProgressionService
from .prompts import build_therapeutic_prompt, fallback_reply
from .responder import ChatTurn, GeminiResponder, Responder
from .sentiment import SentimentResult
from .session import EndSessionResult, SessionNote, SessionStore
from .techniques import Technique

logger = logging.getLogger(__name__)

HISTORY_TURNS = 5


def suggest_activity(sentiment: SentimentResult, tone: EmotionalTone) -> Optional[str]:
    """Wellness activity to offer alongside the reply, if any."""
    if sentiment.score < -0.4:
        return "breathing-dragon"
    if tone.has_emotion("anxiety"):
        return "mindfulness"
    if tone.has_emotion("sadness"):
        return "gratitude-hunt"
    return None


@dataclass
class TherapeuticResponse:
    """Reply to one user message plus what was learned from it."""
    session_id: str
    message: str
    technique: Technique
    sentiment: SentimentResult
    tone: EmotionalTone
    crisis: CrisisAssessment
    session_note: SessionNote
    suggested_activity: Optional[str] = None
    used_fallback: bool = False

    def to_dict(self) -> Dict:
        return {
            "session_id": self.session_id,
            "message": self.message,
            "technique": self.technique.value,
            "emotion": {
                "primary": self.tone.primary_emotion,
                "intensity": round(self.tone.primary_intensity, 3),
                "sentiment": self.sentiment.to_dict(),
            },
            "crisis": self.crisis.to_dict(),
            "suggested_activity": self.suggested_activity,
            "session_note": self.session_note.render(),
            "used_fallback": self.used_fallback,
        }


@dataclass
class FinishResult:
    """Outcome of finishing a session."""
    end: EndSessionResult
    outcome: Optional[ActivityOutcome] = None

    @property
    def xp_awarded(self) -> int:
        return self.outcome.final_xp if self.outcome else 0


class TherapyCoach:
    """Chat front door: sessions, replies and session XP."""

    def __init__(
        self,
        store: SessionStore,
        responder: Optional[Responder] = None,
        progression: Optional[ProgressionService] = None,
        history_turns: int = HISTORY_TURNS
    ):
        self.store = store
        self.responder = responder or GeminiResponder()
        self.progression = progression
        self.history_turns = history_turns

    async def respond(
        self,
        user_id: str,
        text: str,
        session_id: Optional[str] = None
    ) -> TherapeuticResponse:
        """
        Handle one user message, starting a session on first use.

        Args:
            user_id: Who is talking
            text: The message
            session_id: Existing session; a new one is created when unknown
        """
        if session_id and session_id in self.store:
            session = self.store.require(session_id)
            if session.user_id != user_id:
                raise ValueError(f"Session {session_id} belongs to another user")
        else:
            session = self.store.create_session(user_id, session_id)
        session_id = session.session_id

        turn = await self.store.append_user_message(session_id, text)
        prompt = build_therapeutic_prompt(text, session, turn, self.store.clock())

        # Latest user message is already the last entry of the history
        turns: List[ChatTurn] = [ChatTurn("user", prompt)]
        turns.extend(
            ChatTurn(m.role.value, m.content)
            for m in session.recent_messages(self.history_turns)
        )

        used_fallback = False
        try:
            message = await self.responder.generate(turns)
        except Exception as e:
            logger.warning(f"Reply generation failed for session {session_id}: {e}")
            message = fallback_reply(text, turn.sentiment, in_crisis=turn.crisis.is_crisis)
            used_fallback = True

        technique = await self.store.append_assistant_message(session_id, message)

        if turn.crisis.is_crisis:
            logger.warning(
                f"Crisis indicators in session {session_id}: "
                f"severity={turn.crisis.severity.value}"
            )

        return TherapeuticResponse(
            session_id=session_id,
            message=message,
            technique=technique,
            sentiment=turn.sentiment,
            tone=turn.tone,
            crisis=turn.crisis,
            session_note=self.store.compute_session_note(session_id),
            suggested_activity=suggest_activity(turn.sentiment, turn.tone),
            used_fallback=used_fallback,
        )

    async def finish(self, user_id: str, session_id: str, current_xp: int = 0) -> FinishResult:
        """End a session and credit its XP once it has been saved."""
        session = self.store.require(session_id)
        if session.user_id != user_id:
            raise ValueError(f"Session {session_id} belongs to another user")

        end = await self.store.end_session(session_id)
        if not end.saved or not end.xp_earned or self.progression is None:
            return FinishResult(end=end)

        outcome = await self.progression.complete_activity(
            user_id,
            current_xp,
            ActionType.CHAT,
            end.xp_earned,
            description="Therapy session",
            activity="therapy_session",
            action_id=f"session-xp-{session_id}",
            metadata={"session_id": session_id, "messages": end.message_count},
        )
        return FinishResult(end=end, outcome=outcome)
