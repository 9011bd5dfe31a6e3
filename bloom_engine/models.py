"""
Persisted Document Models

Pydantic models for the JSON documents handed to the persistence
collaborator (session transcripts, progress snapshots, streaks).
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import date, datetime, timezone


class MessageDocument(BaseModel):
    """One transcript line."""
    role: str  # "user" or "assistant"
    content: str
    timestamp: datetime
    emotion: Optional[Dict[str, Any]] = None


class SessionRecord(BaseModel):
    """Therapy session transcript written when a session ends."""
    sessionId: str
    userId: str
    startTime: datetime
    endTime: datetime
    duration: int = 0  # whole minutes
    messageCount: int = 0
    emotions: List[Dict[str, Any]] = []
    moodProgression: List[Dict[str, Any]] = []
    topics: List[str] = []
    techniques: List[str] = []
    crisisDetected: bool = False
    peakSeverity: str = "low"
    messages: List[MessageDocument] = []


class ProgressRecord(BaseModel):
    """Snapshot written after every XP change."""
    userId: str
    xp: int
    level: int
    action: Dict[str, Any]
    unlockedAchievements: List[str] = []
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class StreakDocument(BaseModel):
    """Per-user streak state."""
    userId: str
    currentStreak: int = 0
    longestStreak: int = 0
    lastActivityDate: Optional[date] = None
    streakMultiplier: float = 1.0
