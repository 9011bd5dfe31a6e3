"""
Tests for Technique & Topic Tagging
"""

import pytest
import sys
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from bloom_engine.techniques import Technique, extract_topic, identify_technique


class TestIdentifyTechnique:
    """Test cases for technique tagging of generated replies."""

    @pytest.mark.parametrize("reply,expected", [
        ("What thoughts come up when that happens?", Technique.CBT),
        ("Is there another way of thinking about it?", Technique.CBT),
        ("Can you accept that feeling for now?", Technique.ACT),
        ("Emotion regulation skills can help here.", Technique.DBT),
        ("Let's breathe together slowly.", Technique.MINDFULNESS),
        ("That makes sense given everything.", Technique.VALIDATION),
        ("Could you consider a different approach?", Technique.REFRAMING),
        ("Tell me more about your week.", Technique.EXPLORATION),
    ])
    def test_rules(self, reply, expected):
        assert identify_technique(reply) == expected

    def test_earlier_rule_wins(self):
        """A reply with both CBT and validation cues is CBT."""
        assert identify_technique("I understand those thoughts.") == Technique.CBT

    def test_mindfulness_word_is_dbt(self):
        """The word "mindfulness" is a DBT cue, checked before breathing cues."""
        assert identify_technique("Mindfulness can help you breathe.") == Technique.DBT

    def test_case_insensitive(self):
        assert identify_technique("VALIDATE what you feel") == Technique.VALIDATION

    def test_empty_reply(self):
        assert identify_technique("") == Technique.EXPLORATION


class TestExtractTopic:
    """Test cases for topic extraction from user messages."""

    def test_inflected_token(self):
        assert extract_topic("I'm stressed about everything") == "stress"

    def test_list_order_decides(self):
        """"stress" comes before "work" in the topic list."""
        assert extract_topic("work stress again") == "stress"

    def test_substring_in_token(self):
        assert extract_topic("My workload is huge") == "work"

    def test_no_topic(self):
        assert extract_topic("hello there") is None

    def test_empty(self):
        assert extract_topic("") is None
        assert extract_topic("   ") is None
