"""
Session Context Module

Per-conversation state for therapy chats.

Session lifecycle:
ACTIVE (accepting user/assistant turns) → ENDED (persisted and evicted)

A Session is single-writer: the SessionStore serialises every mutation
of one session behind its own asyncio.Lock, so turns are recorded in
arrival order while other sessions proceed independently.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional
from enum import Enum
import asyncio
import logging
import uuid

from .crisis import CrisisAssessment, NO_CRISIS, detect_crisis, most_severe
from .emotions import EmotionScore, EmotionalTone, analyze_emotional_tone
from .errors import SessionEndedError, SessionNotFoundError
from .models import MessageDocument, SessionRecord
from .persistence import Persistence
from .sentiment import LanguageClient, SentimentResult
from .techniques import Technique, extract_topic, identify_technique

logger = logging.getLogger(__name__)

SESSION_CATEGORY = "sessions"
XP_PER_MESSAGE = 2
MAX_SESSION_XP = 50
ENDED_SESSION_MEMORY = 1000


class SessionState(Enum):
    ACTIVE = "active"
    ENDED = "ended"


class Role(Enum):
    USER = "user"
    ASSISTANT = "assistant"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Message:
    """One transcript line. Never modified after it is appended."""
    role: Role
    content: str
    timestamp: datetime
    emotion: Optional[EmotionScore] = None

    def to_document(self) -> MessageDocument:
        return MessageDocument(
            role=self.role.value,
            content=self.content,
            timestamp=self.timestamp,
            emotion={"type": self.emotion.emotion, "intensity": self.emotion.intensity}
            if self.emotion else None,
        )


@dataclass(frozen=True)
class EmotionSample:
    """Emotion reading taken from one user message."""
    emotion: str
    intensity: float  # |sentiment score|
    score: float      # raw sentiment score, -1.0 - 1.0
    timestamp: datetime

    def to_dict(self) -> Dict:
        return {
            "type": self.emotion,
            "intensity": round(self.intensity, 3),
            "score": round(self.score, 3),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class UserTurn:
    """Everything learned from a single user message."""
    message: Message
    sentiment: SentimentResult
    tone: EmotionalTone
    crisis: CrisisAssessment
    topic: Optional[str] = None


@dataclass
class SessionNote:
    """Aggregate view of a session, safe to show to clinicians."""
    session_id: str
    created_at: datetime
    duration_minutes: int
    primary_emotion: str
    average_mood: float
    techniques: List[str]
    topics: List[str]
    crisis_detected: bool
    focus: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "session_id": self.session_id,
            "created_at": self.created_at.isoformat(),
            "duration_minutes": self.duration_minutes,
            "primary_emotion": self.primary_emotion,
            "average_mood": round(self.average_mood, 3),
            "techniques": list(self.techniques),
            "topics": list(self.topics),
            "crisis_detected": self.crisis_detected,
            "focus": self.focus,
        }

    def render(self) -> str:
        crisis = "Yes - appropriate resources provided" if self.crisis_detected else "No"
        return "\n".join([
            f"Session Note - {self.created_at.date().isoformat()}",
            f"Duration: {self.duration_minutes} minutes",
            f"Primary emotion: {self.primary_emotion}",
            f"Average mood: {self.average_mood:.2f}",
            f"Techniques used: {', '.join(self.techniques) or 'none'}",
            f"Topics: {', '.join(self.topics) or 'general discussion'}",
            f"Therapeutic focus: {self.focus or 'exploration'}",
            f"Crisis detected: {crisis}",
        ])


@dataclass
class EndSessionResult:
    """Outcome of handing a finished session to persistence."""
    session_id: str
    saved: bool
    message_count: int
    xp_earned: int = 0
    error: Optional[str] = None


@dataclass
class Session:
    """State of one therapy conversation."""
    session_id: str
    user_id: str
    start_time: datetime
    messages: List[Message] = field(default_factory=list)
    emotion_samples: List[EmotionSample] = field(default_factory=list)
    topics: List[str] = field(default_factory=list)
    techniques_used: List[Technique] = field(default_factory=list)
    crisis_detected: bool = False
    peak_crisis: CrisisAssessment = NO_CRISIS
    last_technique: Optional[Technique] = None
    state: SessionState = SessionState.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    def ensure_active(self):
        if not self.is_active:
            raise SessionEndedError(self.session_id)

    def add_user_message(
        self,
        text: str,
        sentiment: SentimentResult,
        now: Optional[datetime] = None
    ) -> UserTurn:
        """Classify and record a user message."""
        self.ensure_active()
        now = now or utc_now()

        tone = analyze_emotional_tone(text, sentiment)
        crisis = detect_crisis(text, sentiment)
        intensity = abs(sentiment.score)

        message = Message(
            role=Role.USER,
            content=text,
            timestamp=now,
            emotion=EmotionScore(tone.primary_emotion, intensity),
        )
        self.messages.append(message)
        self.emotion_samples.append(EmotionSample(
            emotion=tone.primary_emotion,
            intensity=intensity,
            score=sentiment.score,
            timestamp=now,
        ))

        # Sticky: a crisis anywhere in the session keeps the flag set
        self.crisis_detected = self.crisis_detected or crisis.is_crisis
        self.peak_crisis = most_severe([self.peak_crisis, crisis])

        topic = extract_topic(text)
        if topic and topic not in self.topics:
            self.topics.append(topic)

        return UserTurn(
            message=message,
            sentiment=sentiment,
            tone=tone,
            crisis=crisis,
            topic=topic,
        )

    def add_assistant_message(
        self,
        text: str,
        now: Optional[datetime] = None
    ) -> Technique:
        """Record a generated reply and tag its technique."""
        self.ensure_active()
        technique = identify_technique(text)
        self.messages.append(Message(
            role=Role.ASSISTANT,
            content=text,
            timestamp=now or utc_now(),
        ))
        if technique not in self.techniques_used:
            self.techniques_used.append(technique)
        self.last_technique = technique
        return technique

    def elapsed_minutes(self, now: Optional[datetime] = None) -> int:
        seconds = ((now or utc_now()) - self.start_time).total_seconds()
        return max(0, int(seconds // 60))

    def average_mood(self) -> float:
        if not self.emotion_samples:
            return 0.0
        return sum(s.score for s in self.emotion_samples) / len(self.emotion_samples)

    def compute_note(self, now: Optional[datetime] = None) -> SessionNote:
        """Aggregate the session without changing it."""
        now = now or utc_now()
        primary = self.emotion_samples[-1].emotion if self.emotion_samples else "neutral"
        return SessionNote(
            session_id=self.session_id,
            created_at=now,
            duration_minutes=self.elapsed_minutes(now),
            primary_emotion=primary,
            average_mood=self.average_mood(),
            techniques=[t.value for t in self.techniques_used],
            topics=list(self.topics),
            crisis_detected=self.crisis_detected,
            focus=self.last_technique.value if self.last_technique else None,
        )

    def recent_messages(self, count: int = 5) -> List[Message]:
        return self.messages[-count:]

    def end(self):
        self.ensure_active()
        self.state = SessionState.ENDED

    def to_record(self, ended_at: datetime) -> SessionRecord:
        return SessionRecord(
            sessionId=self.session_id,
            userId=self.user_id,
            startTime=self.start_time,
            endTime=ended_at,
            duration=self.elapsed_minutes(ended_at),
            messageCount=len(self.messages),
            emotions=[s.to_dict() for s in self.emotion_samples],
            moodProgression=[
                {"timestamp": s.timestamp.isoformat(), "score": s.score}
                for s in self.emotion_samples
            ],
            topics=list(self.topics),
            techniques=[t.value for t in self.techniques_used],
            crisisDetected=self.crisis_detected,
            peakSeverity=self.peak_crisis.severity.value,
            messages=[m.to_document() for m in self.messages],
        )


class SessionStore:
    """
    Live sessions owned by the caller.

    Creates sessions, serialises their mutations, and hands them to the
    persistence collaborator when they end. Ended sessions are evicted;
    using one afterwards raises SessionEndedError.
    """

    def __init__(
        self,
        language: Optional[LanguageClient] = None,
        persistence: Optional[Persistence] = None,
        clock: Optional[Callable[[], datetime]] = None,
        ended_memory: int = ENDED_SESSION_MEMORY
    ):
        """
        Args:
            language: Sentiment collaborator (keyword fallback when None)
            persistence: Where ended sessions are written
            clock: Source of the current time (injectable for tests)
            ended_memory: How many ended ids are remembered; older ones are
                forgotten and then look like unknown sessions
        """
        self.language = language or LanguageClient()
        self.persistence = persistence
        self.clock = clock or utc_now
        self._sessions: Dict[str, Session] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self.ended_memory = ended_memory
        self._ended: "OrderedDict[str, None]" = OrderedDict()

    def _remember_ended(self, session_id: str):
        self._ended[session_id] = None
        while len(self._ended) > self.ended_memory:
            self._ended.popitem(last=False)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def create_session(self, user_id: str, session_id: Optional[str] = None) -> Session:
        """Start a fresh session for a user."""
        session_id = session_id or f"session-{uuid.uuid4().hex}"
        if session_id in self._ended:
            raise SessionEndedError(session_id)
        if session_id in self._sessions:
            raise ValueError(f"Session id '{session_id}' already used")

        session = Session(
            session_id=session_id,
            user_id=user_id,
            start_time=self.clock(),
        )
        self._sessions[session_id] = session
        self._locks[session_id] = asyncio.Lock()
        logger.info(f"Started session {session_id} for user {user_id}")
        return session

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def require(self, session_id: str) -> Session:
        """Live session by id; raises for ended or unknown ids."""
        session = self._sessions.get(session_id)
        if session is None:
            if session_id in self._ended:
                raise SessionEndedError(session_id)
            raise SessionNotFoundError(session_id)
        return session

    async def append_user_message(
        self,
        session_id: str,
        text: str,
        language_code: Optional[str] = None
    ) -> UserTurn:
        """Analyze a user message and record it in arrival order."""
        session = self.require(session_id)
        async with self._locks[session_id]:
            session.ensure_active()
            sentiment = await self.language.analyze_sentiment(text, language_code)
            return session.add_user_message(text, sentiment, self.clock())

    async def append_assistant_message(self, session_id: str, text: str) -> Technique:
        """Record a generated reply; returns its technique tag."""
        session = self.require(session_id)
        async with self._locks[session_id]:
            return session.add_assistant_message(text, self.clock())

    def compute_session_note(self, session_id: str) -> SessionNote:
        return self.require(session_id).compute_note(self.clock())

    async def end_session(self, session_id: str) -> EndSessionResult:
        """
        End, evict and persist a session.

        The session is ended even when persistence fails; the failure is
        logged and reported in the result, never retried.
        """
        session = self.require(session_id)
        async with self._locks[session_id]:
            session.end()
            self._sessions.pop(session_id, None)
            self._remember_ended(session_id)
        self._locks.pop(session_id, None)

        ended_at = self.clock()
        message_count = len(session.messages)
        logger.info(f"Ended session {session_id} after {message_count} messages")

        if self.persistence is None:
            logger.warning(f"No persistence configured; session {session_id} not saved")
            return EndSessionResult(
                session_id=session_id,
                saved=False,
                message_count=message_count,
                error="persistence not configured",
            )

        record = session.to_record(ended_at)
        try:
            await self.persistence.save(
                session.user_id,
                SESSION_CATEGORY,
                f"therapy-session-{session_id}.json",
                record.model_dump(mode="json"),
            )
        except Exception as e:
            logger.warning(f"Error saving therapy session {session_id}: {e}")
            return EndSessionResult(
                session_id=session_id,
                saved=False,
                message_count=message_count,
                error=str(e),
            )

        return EndSessionResult(
            session_id=session_id,
            saved=True,
            message_count=message_count,
            xp_earned=min(message_count * XP_PER_MESSAGE, MAX_SESSION_XP),
        )
