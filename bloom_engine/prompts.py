"""
Therapeutic prompt templates and safe fallback replies.
"""

from datetime import datetime

from .sentiment import SentimentResult
from .session import Session, UserTurn

THERAPIST_PERSONA = """You are Mira, a licensed and experienced therapist with expertise in Cognitive Behavioral Therapy (CBT), Dialectical Behavior Therapy (DBT), Acceptance and Commitment Therapy (ACT), and mindfulness-based interventions.

YOUR THERAPEUTIC APPROACH:
- Use evidence-based therapeutic techniques
- Practice active listening and validation
- Ask insightful, open-ended questions
- Identify thought patterns and cognitive distortions
- Offer practical coping strategies
- Encourage self-compassion and acceptance
- Normalize emotions and experiences
- Provide gentle guidance without being directive"""

CRISIS_BLOCK = """

CRISIS DETECTED:
- Severity: {severity}
- Indicators: {indicators}
- RESPOND WITH URGENCY: Validate their pain, express empathy, and provide immediate crisis resources.
- Do NOT minimize their feelings.
- Encourage them to contact crisis helpline (988) or emergency services if immediate danger."""

DISTRESS_BLOCK = """

USER APPEARS DISTRESSED:
- Validate their feelings deeply
- Explore what's contributing to this distress
- Offer concrete coping strategies
- Consider suggesting grounding techniques or breathing exercises"""

RESPONSE_INSTRUCTIONS = """

USER'S MESSAGE: "{message}"

Provide a therapeutic response that:
1. Validates and acknowledges their feelings
2. Asks a thoughtful question to explore deeper
3. Offers a practical technique or insight
4. Maintains warm, professional therapeutic rapport
5. Keeps response to 3-5 sentences (concise but meaningful)"""

CRISIS_FALLBACK = (
    "I'm really glad you told me, and I'm taking what you said seriously. "
    "You deserve support right now. If you are in immediate danger, please call "
    "emergency services, or call or text 988 to reach the Suicide & Crisis Lifeline. "
    "I'm here with you - can you tell me where you are right now?"
)


def build_therapeutic_prompt(
    message: str,
    session: Session,
    turn: UserTurn,
    now: datetime
) -> str:
    """System-style prompt for the text-generation model."""
    tone = turn.tone
    sentiment = turn.sentiment
    topics = ", ".join(session.topics) or "none yet"
    techniques = ", ".join(t.value for t in session.techniques_used) or "none yet"

    prompt = THERAPIST_PERSONA + f"""

CURRENT SESSION CONTEXT:
- Session duration: {session.elapsed_minutes(now)} minutes
- Detected emotion: {tone.primary_emotion} (intensity: {tone.primary_intensity:.2f})
- Sentiment: {sentiment.sentiment.value} (score: {sentiment.score:.2f})
- Topics discussed: {topics}
- Previous techniques used: {techniques}"""

    if turn.crisis.is_crisis:
        prompt += CRISIS_BLOCK.format(
            severity=turn.crisis.severity.value,
            indicators=", ".join(turn.crisis.indicators),
        )
    elif sentiment.score < -0.5:
        prompt += DISTRESS_BLOCK

    prompt += RESPONSE_INSTRUCTIONS.format(message=message)
    return prompt


def fallback_reply(message: str, sentiment: SentimentResult, in_crisis: bool = False) -> str:
    """Generic supportive acknowledgement used when generation fails."""
    if in_crisis:
        return CRISIS_FALLBACK

    difficult = (
        "It sounds like you might be going through a difficult time right now. "
        if sentiment.score < -0.4 else ""
    )
    follow_up = (
        "Let me think about that with you. "
        if "?" in message else
        "Can you tell me more about how you're feeling right now? "
    )
    return (
        "I hear you, and I want to understand better. "
        f"{difficult}{follow_up}"
        "I'm here to support you through this."
    )
