"""
Bloom Engine - Therapeutic Conversation Analysis & Wellness Gamification

Analysis layers for a mental-wellness companion:

Conversation:
1. Sentiment (cloud API + keyword fallback) - sentiment.py
2. Emotion aggregation - emotions.py
3. Crisis classification - crisis.py
4. Technique & topic tagging - techniques.py
5. Session context & notes - session.py
6. Therapeutic replies (Gemini) - responder.py, prompts.py
7. Coach orchestration - coach.py

Gamification:
8. Daily streaks & multiplier - streaks.py
9. XP ledger, levels & achievements - ledger.py
10. Rewards store - rewards.py
11. Activity progression - progression.py
"""

from .errors import (
    BloomEngineError,
    SessionNotFoundError,
    SessionEndedError,
    ExternalServiceError,
)

from .sentiment import (
    LanguageClient,
    KeywordSentimentAnalyzer,
    SentimentResult,
    SentimentLabel,
    fallback_sentiment,
)

from .emotions import (
    EmotionScore,
    EmotionalTone,
    analyze_emotional_tone,
)

from .crisis import (
    CrisisAssessment,
    CrisisSeverity,
    detect_crisis,
)

from .techniques import (
    Technique,
    identify_technique,
    extract_topic,
)

from .session import (
    Session,
    SessionStore,
    SessionNote,
    EndSessionResult,
    Message,
    Role,
)

from .persistence import (
    Persistence,
    MongoPersistence,
    InMemoryPersistence,
)

from .responder import (
    Responder,
    GeminiResponder,
    ChatTurn,
)

from .coach import (
    TherapyCoach,
    TherapeuticResponse,
    FinishResult,
)

from .streaks import (
    StreakTracker,
    StreakRecord,
    apply_multiplier,
)

from .ledger import (
    GamificationLedger,
    XPAction,
    XPResult,
    ActionType,
    Achievement,
    LevelProgress,
    Milestone,
    calculate_level,
    xp_for_level,
    get_level_progress,
    check_milestones,
)

from .rewards import (
    RewardStore,
    Reward,
    PurchaseResult,
)

from .progression import (
    ProgressionService,
    ActivityOutcome,
)

__version__ = "1.0.0"
__all__ = [
    # Errors
    "BloomEngineError",
    "SessionNotFoundError",
    "SessionEndedError",
    "ExternalServiceError",
    # Sentiment
    "LanguageClient",
    "KeywordSentimentAnalyzer",
    "SentimentResult",
    "SentimentLabel",
    "fallback_sentiment",
    # Emotions
    "EmotionScore",
    "EmotionalTone",
    "analyze_emotional_tone",
    # Crisis
    "CrisisAssessment",
    "CrisisSeverity",
    "detect_crisis",
    # Techniques
    "Technique",
    "identify_technique",
    "extract_topic",
    # Sessions
    "Session",
    "SessionStore",
    "SessionNote",
    "EndSessionResult",
    "Message",
    "Role",
    # Persistence
    "Persistence",
    "MongoPersistence",
    "InMemoryPersistence",
    # Replies
    "Responder",
    "GeminiResponder",
    "ChatTurn",
    "TherapyCoach",
    "TherapeuticResponse",
    "FinishResult",
    # Streaks
    "StreakTracker",
    "StreakRecord",
    "apply_multiplier",
    # Ledger
    "GamificationLedger",
    "XPAction",
    "XPResult",
    "ActionType",
    "Achievement",
    "LevelProgress",
    "Milestone",
    "calculate_level",
    "xp_for_level",
    "get_level_progress",
    "check_milestones",
    # Rewards
    "RewardStore",
    "Reward",
    "PurchaseResult",
    # Progression
    "ProgressionService",
    "ActivityOutcome",
]
