"""
Tests for symptom triage: answer coercion, rule verdicts, remote
assessment validation and the rule fallback.
"""

import asyncio
import json

import pytest

from errors import ExternalServiceError
from services.triage import (
    TRIAGE_SYSTEM_PROMPT,
    URGENCY_TABLE,
    TriageAnswers,
    TriageOrchestrator,
    UrgencyLevel,
    classify_urgency,
    intake_questions,
    rule_based_verdict,
)


def _remote_json(urgency="HIGH", recommendation="Go to the emergency room now", actions=None):
    if actions is None:
        actions = ["Call 911", "Do not drive yourself", "Bring your medication list"]
    return json.dumps({"urgency": urgency, "recommendation": recommendation, "actions": actions})


class TestTriageAnswers:
    """Malformed input degrades instead of failing."""

    @pytest.mark.parametrize(
        "raw, expected",
        [(7, 7), ("7", 7), (7.9, 7), ("abc", 5), (None, 5), ("", 5), (15, 10), (-3, 1), (0, 1)],
    )
    def test_severity_coercion(self, raw, expected):
        assert TriageAnswers(severity=raw).severity == expected

    def test_severity_default(self):
        assert TriageAnswers().severity == 5

    def test_unknown_duration_dropped(self):
        assert TriageAnswers(duration="forever").duration is None
        assert TriageAnswers(duration="1-3 days").duration == "1-3 days"

    def test_additional_symptoms_alias_and_coercion(self):
        answers = TriageAnswers.model_validate({"additional": ["Nausea", "", None, "Body aches"]})
        assert answers.additional_symptoms == ["Nausea", "Body aches"]
        assert TriageAnswers(additional_symptoms=None).additional_symptoms == []
        assert TriageAnswers(additional_symptoms="Vomiting").additional_symptoms == ["Vomiting"]

    def test_main_symptom_none(self):
        assert TriageAnswers(main_symptom=None).main_symptom == ""

    def test_describe(self):
        answers = TriageAnswers(main_symptom="Fever", duration="1-3 days", severity=6)
        text = answers.describe()
        assert "Main symptom: Fever" in text
        assert "Duration: 1-3 days" in text
        assert "Severity (1-10): 6" in text
        assert "Additional symptoms: None" in text


class TestRuleVerdict:
    """Deterministic urgency rules."""

    @pytest.mark.parametrize("severity, level", [(10, "HIGH"), (8, "HIGH"), (7, "MEDIUM"), (5, "MEDIUM"), (4, "LOW")])
    def test_severity_thresholds(self, severity, level):
        assert classify_urgency(TriageAnswers(severity=severity)) == UrgencyLevel(level)

    def test_emergency_main_symptom(self):
        assert classify_urgency(TriageAnswers(main_symptom="Chest Pain", severity=2)) == UrgencyLevel.HIGH

    def test_intensifier_in_additional_symptom(self):
        answers = TriageAnswers(main_symptom="Headache", severity=3, additional_symptoms=["Extreme nausea"])
        assert classify_urgency(answers) == UrgencyLevel.HIGH

    def test_verdict_uses_fixed_table(self):
        verdict = rule_based_verdict(TriageAnswers(severity=6))
        profile = URGENCY_TABLE[UrgencyLevel.MEDIUM]
        assert verdict.recommendation == profile.recommendation
        assert verdict.color == "#dd6b20"
        assert verdict.icon == "fas fa-user-md"
        assert verdict.actions == profile.actions
        assert verdict.source == "rules"

    def test_every_level_has_three_actions(self):
        for profile in URGENCY_TABLE.values():
            assert len(profile.actions) == 3


class TestAssessFallback:
    """Rule verdict whenever the remote call is unavailable."""

    def test_severity_nine_without_provider(self, queue):
        verdict = asyncio.run(TriageOrchestrator(queue, None).assess(TriageAnswers(severity=9)))
        assert verdict.urgency == UrgencyLevel.HIGH
        assert len(verdict.actions) == 3
        assert verdict.source == "rules"

    def test_moderate_headache_with_failing_provider(self, queue, make_provider):
        provider = make_provider([ExternalServiceError("Down", service="gemini", status_code=503)])
        answers = TriageAnswers(main_symptom="Headache", severity=6)

        verdict = asyncio.run(TriageOrchestrator(queue, provider).assess(answers))

        assert verdict.urgency == UrgencyLevel.MEDIUM
        assert verdict.source == "rules"

    def test_mild_with_exhausted_retries(self, queue, make_provider, fake_clock):
        throttled = [ExternalServiceError("Slow down", service="gemini", status_code=429) for _ in range(4)]
        provider = make_provider(throttled)

        verdict = asyncio.run(TriageOrchestrator(queue, provider).assess(TriageAnswers(severity=2)))

        assert verdict.urgency == UrgencyLevel.LOW
        assert verdict.source == "rules"
        assert len(provider.calls) == 4

    @pytest.mark.parametrize(
        "reply",
        [
            _remote_json(urgency="CRITICAL"),
            _remote_json(actions=["Rest", "Hydrate"]),
            _remote_json(actions=["Rest", "   ", "Hydrate"]),
            _remote_json(recommendation="   "),
            '{"urgency": "LOW"}',
            "You seem fine, just rest.",
            "",
        ],
    )
    def test_invalid_remote_reply_falls_back(self, queue, make_provider, reply):
        provider = make_provider([reply])
        answers = TriageAnswers(main_symptom="Fever", severity=6)

        verdict = asyncio.run(TriageOrchestrator(queue, provider).assess(answers))

        assert verdict.source == "rules"
        assert verdict.urgency == UrgencyLevel.MEDIUM

    def test_dict_answers(self, queue):
        verdict = asyncio.run(TriageOrchestrator(queue, None).assess({"severity": "9", "additional": []}))
        assert verdict.urgency == UrgencyLevel.HIGH


class TestRemoteAssessment:
    """Valid remote replies are used with table colors and icons."""

    def test_remote_verdict(self, queue, make_provider):
        provider = make_provider([_remote_json()])
        answers = TriageAnswers(main_symptom="Chest Pain", duration="Less than 1 day", severity=9)

        verdict = asyncio.run(TriageOrchestrator(queue, provider).assess(answers))

        assert verdict.source == "ai"
        assert verdict.urgency == UrgencyLevel.HIGH
        assert verdict.recommendation == "Go to the emergency room now"
        assert verdict.color == "#e53e3e"
        assert verdict.icon == "fas fa-exclamation-triangle"

    def test_remote_can_disagree_with_rules(self, queue, make_provider):
        provider = make_provider([_remote_json(urgency="low", recommendation="Rest at home")])

        verdict = asyncio.run(TriageOrchestrator(queue, provider).assess(TriageAnswers(severity=6)))

        assert verdict.source == "ai"
        assert verdict.urgency == UrgencyLevel.LOW
        assert verdict.color == "#38a169"

    def test_fenced_reply_and_extra_actions(self, queue, make_provider):
        reply = "Here is my assessment:\n```json\n" + _remote_json(
            urgency="Medium", actions=["One", "Two", "Three", "Four"]
        ) + "\n```"
        provider = make_provider([reply])

        verdict = asyncio.run(TriageOrchestrator(queue, provider).assess(TriageAnswers(severity=5)))

        assert verdict.source == "ai"
        assert verdict.urgency == UrgencyLevel.MEDIUM
        assert verdict.actions == ("One", "Two", "Three")

    def test_remote_request_shape(self, queue, make_provider):
        provider = make_provider([_remote_json()])
        answers = TriageAnswers(main_symptom="Cough", duration="4-7 days", severity=4, additional_symptoms=["Sore throat"])

        asyncio.run(TriageOrchestrator(queue, provider).assess(answers))

        call = provider.calls[0]
        assert call["max_tokens"] == 400
        assert call["temperature"] == 0.3
        assert call["messages"][0] == {"role": "system", "content": TRIAGE_SYSTEM_PROMPT}
        user_content = call["messages"][1]["content"]
        assert user_content.startswith("Analyze these symptoms and provide triage recommendation:")
        assert "Additional symptoms: Sore throat" in user_content

    def test_verdict_serializes(self, queue, make_provider):
        provider = make_provider([_remote_json()])
        verdict = asyncio.run(TriageOrchestrator(queue, provider).assess(TriageAnswers()))
        data = verdict.model_dump(mode="json")
        assert data["urgency"] == "HIGH"
        assert isinstance(data["actions"], list)
        assert len(data["actions"]) == 3


class TestIntakeQuestions:
    def test_four_questions(self):
        questions = intake_questions()
        assert [q["id"] for q in questions] == ["main_symptom", "duration", "severity", "additional"]

    def test_options(self):
        questions = {q["id"]: q for q in intake_questions()}
        assert questions["duration"]["options"] == [
            "Less than 1 day",
            "1-3 days",
            "4-7 days",
            "1-2 weeks",
            "More than 2 weeks",
        ]
        assert "Chest Pain" in questions["main_symptom"]["options"]
        assert questions["severity"]["min"] == 1
        assert questions["severity"]["max"] == 10
        assert len(questions["additional"]["options"]) == 6
