"""
Tests for the keyword responder and the health knowledge table.
"""

from services.knowledge_base import (
    FALLBACK_RESPONSE,
    KNOWLEDGE_BASE,
    KeywordResponder,
    KnowledgeEntry,
    ResponseSource,
)


class TestKnowledgeTable:
    """The fixed table itself."""

    def test_topic_order(self):
        assert [entry.topic_key for entry in KNOWLEDGE_BASE] == [
            "covid",
            "blood_pressure",
            "heart_health",
            "water",
            "diabetes",
            "nutrition",
            "exercise",
            "sleep",
            "mental_health",
            "symptoms",
            "emergency",
        ]

    def test_topic_keys_unique(self):
        keys = [entry.topic_key for entry in KNOWLEDGE_BASE]
        assert len(keys) == len(set(keys))

    def test_keywords_are_lowercase(self):
        for entry in KNOWLEDGE_BASE:
            assert all(keyword == keyword.lower() for keyword in entry.keywords)

    def test_only_emergency_entry_is_flagged(self):
        assert [e.topic_key for e in KNOWLEDGE_BASE if e.is_emergency] == ["emergency"]


class TestEmergencyPriority:
    """Emergency keywords win regardless of other matches."""

    def test_emergency_beats_higher_scoring_topic(self):
        responder = KeywordResponder()
        # covid scores 4 here, emergency only 1
        match = responder.respond("covid coronavirus pandemic and it feels urgent")
        assert match.source == ResponseSource.EMERGENCY
        assert match.topic_key == "emergency"
        assert match.match_score == 1

    def test_emergency_phrases(self):
        match = KeywordResponder().respond("Chest pain and difficulty breathing")
        assert match.source == ResponseSource.EMERGENCY
        assert match.text.startswith("\U0001f6a8 MEDICAL EMERGENCY")
        assert match.match_score == 2

    def test_custom_emergency_entry_checked_first(self):
        entries = [
            KnowledgeEntry("general", ("head",), "general text"),
            KnowledgeEntry("red_flag", ("head injury",), "call now", is_emergency=True),
        ]
        match = KeywordResponder(entries).respond("head injury after a fall, my head hurts")
        assert match.source == ResponseSource.EMERGENCY
        assert match.text == "call now"


class TestScoring:
    """Best-match selection over non-emergency topics."""

    def test_hydration_question(self):
        match = KeywordResponder().respond("How much water should I drink?")
        assert match.source == ResponseSource.KNOWLEDGE_BASE
        assert match.topic_key == "water"
        assert match.match_score == 2

    def test_case_insensitive(self):
        match = KeywordResponder().respond("What are the symptoms of COVID-19?")
        assert match.topic_key == "covid"

    def test_highest_score_wins(self):
        # blood_pressure: "blood pressure", "high blood pressure" (2) vs water: "drink" (1)
        match = KeywordResponder().respond("does a drink raise high blood pressure")
        assert match.topic_key == "blood_pressure"
        assert match.match_score == 2

    def test_tie_goes_to_first_entry(self):
        # exercise and sleep both score 1; exercise is listed first
        match = KeywordResponder().respond("sleep and exercise")
        assert match.topic_key == "exercise"

    def test_tie_break_custom_table(self):
        entries = [
            KnowledgeEntry("alpha", ("apple",), "alpha text"),
            KnowledgeEntry("beta", ("banana",), "beta text"),
        ]
        responder = KeywordResponder(entries)
        assert responder.respond("banana apple").topic_key == "alpha"
        assert responder.respond("banana").topic_key == "beta"

    def test_substring_matching(self):
        match = KeywordResponder().respond("I've been so stressed lately")
        assert match.topic_key == "mental_health"


class TestFallback:
    def test_no_match(self):
        match = KeywordResponder().respond("hello there")
        assert match.source == ResponseSource.FALLBACK
        assert match.text == FALLBACK_RESPONSE
        assert match.topic_key is None
        assert match.match_score == 0

    def test_empty_and_none(self):
        responder = KeywordResponder()
        assert responder.respond("").source == ResponseSource.FALLBACK
        assert responder.respond(None).source == ResponseSource.FALLBACK
