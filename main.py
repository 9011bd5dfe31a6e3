#!/usr/bin/env python3
"""
Bloom Engine - Main Runner

Local runner for trying the therapy conversation analysis and the
wellness gamification features.

Usage:
    python main.py demo          # Scripted conversation + a week of activities
    python main.py interactive   # Chat with the coach
    python main.py levels        # Print the level table
"""

import argparse
import asyncio
import json
import logging
from datetime import date, timedelta

from bloom_engine import config
from bloom_engine.coach import TherapyCoach
from bloom_engine.ledger import (
    ActionType,
    GamificationLedger,
    get_level_progress,
    xp_for_level,
)
from bloom_engine.persistence import InMemoryPersistence
from bloom_engine.progression import ProgressionService
from bloom_engine.responder import GeminiResponder
from bloom_engine.rewards import RewardStore
from bloom_engine.sentiment import LanguageClient
from bloom_engine.session import SessionStore
from bloom_engine.streaks import StreakTracker

DEMO_MESSAGES = [
    "Hi, I've been feeling really stressed about work lately",
    "I'm worried I'll never catch up and my family thinks I'm fine",
    "Honestly I feel sad and lonely most evenings",
    "Talking about it helps a bit, I'm grateful you listen",
]

# (day offset, action type, base xp, activity)
DEMO_ACTIVITIES = [
    (0, ActionType.GAME, 50, "breathing"),
    (1, ActionType.JOURNAL, 30, "gratitude"),
    (2, ActionType.MEDITATION, 40, None),
    (3, ActionType.GAME, 50, "breathing"),
    (4, ActionType.CHALLENGE, 60, None),
    (5, ActionType.JOURNAL, 30, "gratitude"),
    (6, ActionType.GAME, 50, "breathing"),
]


def print_header(text: str):
    """Print a formatted header."""
    print("\n" + "=" * 60)
    print(f"  {text}")
    print("=" * 60)


def print_section(text: str):
    """Print a formatted section header."""
    print(f"\n--- {text} ---")


class SimulatedCalendar:
    """Day source the demo can move forward."""

    def __init__(self, start: date):
        self.today = start

    def __call__(self) -> date:
        return self.today


def build_coach(persistence: InMemoryPersistence, progression: ProgressionService) -> TherapyCoach:
    language = LanguageClient(
        proxy_url=config.LANGUAGE_PROXY_URL,
        language_code=config.LANGUAGE_CODE,
        timeout=config.LANGUAGE_TIMEOUT_SECONDS,
    )
    store = SessionStore(language=language, persistence=persistence)
    return TherapyCoach(store, GeminiResponder(), progression)


async def run_demo():
    """Run a scripted conversation and a simulated week of activities."""
    print_header("Bloom Engine Demo")

    persistence = InMemoryPersistence()
    calendar = SimulatedCalendar(date.today())
    streaks = StreakTracker(clock=calendar, persistence=persistence)
    ledger = GamificationLedger(persistence=persistence)
    progression = ProgressionService(streaks, ledger)
    coach = build_coach(persistence, progression)

    user_id = "demo_user"
    xp = 0

    print_section("Therapy Session")
    session_id = None
    for text in DEMO_MESSAGES:
        response = await coach.respond(user_id, text, session_id)
        session_id = response.session_id
        print(f"\nUser: \"{text}\"")
        print(f"  → Emotion: {response.tone.primary_emotion} "
              f"(sentiment {response.sentiment.score:.2f}, {response.sentiment.method})")
        if response.crisis.is_crisis:
            print(f"  → ⚠️  CRISIS: {response.crisis.severity.value} {list(response.crisis.indicators)}")
        print(f"  → Technique: {response.technique.value}")
        if response.suggested_activity:
            print(f"  → Suggested activity: {response.suggested_activity}")
        print(f"Coach: \"{response.message}\"")

    print_section("Session Note")
    print(coach.store.compute_session_note(session_id).render())

    finished = await coach.finish(user_id, session_id, xp)
    print(f"\nSaved: {finished.end.saved}, messages: {finished.end.message_count}, "
          f"session XP awarded: {finished.xp_awarded}")
    if finished.outcome:
        xp = finished.outcome.result.new_xp

    print_section("A Week of Activities")
    for offset, action_type, base_xp, activity in DEMO_ACTIVITIES:
        calendar.today = date.today() + timedelta(days=offset)
        outcome = await progression.complete_activity(
            user_id, xp, action_type, base_xp,
            description=activity or action_type.value,
            activity=activity,
        )
        xp = outcome.result.new_xp
        line = (f"Day {offset + 1}: {action_type.value:<10} "
                f"streak {outcome.streak.current_streak} ×{outcome.multiplier:.1f} "
                f"→ +{outcome.final_xp} XP (total {xp}, level {outcome.result.new_level})")
        print(line)
        for achievement in outcome.result.unlocked_achievements:
            print(f"    {achievement.icon} Achievement unlocked: {achievement.title}")

    print_section("Rewards")
    store = RewardStore(ledger)
    purchase = await store.purchase_reward(user_id, "theme-ocean", xp)
    print(f"Buy Ocean Theme: {purchase.message} (XP left: {purchase.remaining_xp})")
    xp = purchase.remaining_xp

    print_section("Progress")
    print(json.dumps(get_level_progress(xp).to_dict(), indent=2))
    for milestone in progression.milestones(user_id, xp):
        print(f"  {milestone.icon} {milestone.title}")

    print(f"\nDocuments saved: {len(persistence.documents)}")
    print_section("Demo Complete")


async def run_interactive():
    """Chat with the coach until 'quit'."""
    print_header("Bloom Engine - Interactive Mode")
    print("\nType a message to talk to the coach.")
    print("Commands: note, end, quit")

    persistence = InMemoryPersistence()
    progression = ProgressionService(StreakTracker(persistence=persistence),
                                     GamificationLedger(persistence=persistence))
    coach = build_coach(persistence, progression)
    user_id = "interactive_user"
    session_id = None
    xp = 0

    while True:
        try:
            user_input = input("\n> ").strip()
        except (EOFError, KeyboardInterrupt):
            break

        if not user_input:
            continue

        cmd = user_input.lower()
        if cmd in ("quit", "exit"):
            break

        if cmd == "note":
            if session_id is None:
                print("No session yet.")
            else:
                print(coach.store.compute_session_note(session_id).render())
            continue

        if cmd == "end":
            if session_id is None:
                print("No session yet.")
                continue
            finished = await coach.finish(user_id, session_id, xp)
            if finished.outcome:
                xp = finished.outcome.result.new_xp
            print(f"Session ended. Saved: {finished.end.saved}. "
                  f"XP awarded: {finished.xp_awarded} (total {xp})")
            session_id = None
            continue

        response = await coach.respond(user_id, user_input, session_id)
        session_id = response.session_id
        print(f"[{response.tone.primary_emotion} | {response.technique.value}"
              f"{' | CRISIS ' + response.crisis.severity.value if response.crisis.is_crisis else ''}]")
        print(f"Coach: {response.message}")
        if response.suggested_activity:
            print(f"(Try: {response.suggested_activity})")

    if session_id is not None:
        await coach.finish(user_id, session_id, xp)
    print("\nGoodbye!")


def print_levels(max_level: int):
    """Print XP thresholds per level."""
    print_header("Level Table")
    for level in range(1, max_level + 1):
        start = xp_for_level(level) if level > 1 else 0
        print(f"  Level {level:>3}: {start:>7} XP")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Bloom Engine - Therapy Conversation Analysis & Wellness Gamification"
    )
    subparsers = parser.add_subparsers(dest="mode")
    subparsers.add_parser("demo", help="Scripted conversation and a week of activities")
    subparsers.add_parser("interactive", help="Chat with the coach")
    levels = subparsers.add_parser("levels", help="Print the level table")
    levels.add_argument("--max-level", type=int, default=20, help="Highest level to show")
    parser.add_argument(
        "--log-level",
        default=config.LOG_LEVEL,
        help="Logging level (or set LOG_LEVEL env var)"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if args.mode == "interactive":
        asyncio.run(run_interactive())
    elif args.mode == "levels":
        print_levels(args.max_level)
    else:
        asyncio.run(run_demo())


if __name__ == "__main__":
    main()
