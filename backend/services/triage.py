"""
Symptom Triage - urgency verdicts for the symptom intake wizard.

The rule-based verdict is always computed first. A remote structured
assessment is then requested through the shared request queue; if the
call fails or its JSON does not validate, the rule verdict is returned.

Rules:
- HIGH: severity >= 8, an emergency main symptom, or an additional
  symptom containing an intensifier word
- MEDIUM: severity >= 5
- LOW: otherwise
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from errors import ParseError, handle_async_errors, log_error
from logging_config import log_triage
from services.json_repair import parse_json_object
from services.providers.base import LLMProvider
from services.request_queue import OutboundRequestQueue

logger = logging.getLogger(__name__)

DEFAULT_SEVERITY = 5
MIN_SEVERITY = 1
MAX_SEVERITY = 10

MAIN_SYMPTOM_OPTIONS = ("Fever", "Headache", "Cough", "Chest Pain", "Stomach Pain", "Fatigue", "Dizziness")
DURATION_OPTIONS = ("Less than 1 day", "1-3 days", "4-7 days", "1-2 weeks", "More than 2 weeks")
ADDITIONAL_SYMPTOM_OPTIONS = ("Nausea", "Vomiting", "Runny nose", "Sore throat", "Body aches", "Loss of appetite")

EMERGENCY_SYMPTOMS = ("chest pain", "difficulty breathing", "severe bleeding", "loss of consciousness")
INTENSIFIER_WORDS = ("severe", "extreme", "unbearable", "emergency")

TRIAGE_SYSTEM_PROMPT = (
    "You are a medical triage AI assistant. Based on symptoms provided, categorize urgency as HIGH, "
    "MEDIUM, or LOW, provide a recommendation, and suggest 3 specific actions. Format your response as "
    "JSON with fields: urgency, recommendation, actions (array of 3 strings). HIGH urgency for "
    "severe/emergency symptoms (severity 8+), MEDIUM for moderate concern (severity 5-7), LOW for mild "
    "symptoms. Always emphasize consulting healthcare professionals for proper diagnosis."
)


class UrgencyLevel(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


@dataclass(frozen=True)
class UrgencyProfile:
    """Fixed presentation for one urgency level."""

    recommendation: str
    color: str
    icon: str
    actions: Tuple[str, str, str]


URGENCY_TABLE: Dict[UrgencyLevel, UrgencyProfile] = {
    UrgencyLevel.HIGH: UrgencyProfile(
        recommendation="Seek immediate medical attention due to severe symptoms",
        color="#e53e3e",
        icon="fas fa-exclamation-triangle",
        actions=(
            "Call emergency services (911) or go to emergency room immediately",
            "Do not drive yourself - have someone drive you or call ambulance",
            "Bring list of current medications and medical history",
        ),
    ),
    UrgencyLevel.MEDIUM: UrgencyProfile(
        recommendation="Schedule a doctor consultation within 24-48 hours for proper evaluation",
        color="#dd6b20",
        icon="fas fa-user-md",
        actions=(
            "Book telemedicine appointment or visit urgent care",
            "Monitor symptoms and track any changes",
            "Rest, stay hydrated, and avoid strenuous activities",
        ),
    ),
    UrgencyLevel.LOW: UrgencyProfile(
        recommendation="Monitor symptoms and try home remedies, contact doctor if symptoms worsen",
        color="#38a169",
        icon="fas fa-home",
        actions=(
            "Rest and stay well hydrated",
            "Consider appropriate over-the-counter medications",
            "Contact doctor if symptoms persist beyond 3-5 days or worsen",
        ),
    ),
}


class TriageAnswers(BaseModel):
    """Answers from the symptom intake wizard.

    Malformed values degrade instead of failing: an unknown duration
    becomes None, an unparseable severity becomes 5, and out-of-range
    severities are clamped to 1..10.
    """

    main_symptom: str = ""
    duration: Optional[str] = None
    severity: int = DEFAULT_SEVERITY
    additional_symptoms: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("additional_symptoms", "additional"),
    )

    @field_validator("main_symptom", mode="before")
    @classmethod
    def _coerce_main_symptom(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("duration", mode="before")
    @classmethod
    def _known_duration(cls, v: Any) -> Optional[str]:
        return v if v in DURATION_OPTIONS else None

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, v: Any) -> int:
        try:
            value = int(float(v))
        except (TypeError, ValueError, OverflowError):
            return DEFAULT_SEVERITY
        return max(MIN_SEVERITY, min(MAX_SEVERITY, value))

    @field_validator("additional_symptoms", mode="before")
    @classmethod
    def _coerce_additional(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, (list, tuple)):
            return []
        return [str(item) for item in v if item]

    def describe(self) -> str:
        """Plain-text summary used in the remote prompt."""
        return "\n".join(
            [
                f"Main symptom: {self.main_symptom}",
                f"Duration: {self.duration or 'Not specified'}",
                f"Severity (1-10): {self.severity}",
                f"Additional symptoms: {', '.join(self.additional_symptoms) or 'None'}",
            ]
        )


class TriageVerdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    urgency: UrgencyLevel
    recommendation: str
    actions: Tuple[str, str, str]
    color: str
    icon: str
    source: Literal["ai", "rules"]


class RemoteAssessment(BaseModel):
    """Shape the remote model must return."""

    urgency: UrgencyLevel
    recommendation: str
    actions: List[str]

    @field_validator("urgency", mode="before")
    @classmethod
    def _normalize_urgency(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("recommendation")
    @classmethod
    def _non_empty_recommendation(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("recommendation is empty")
        return v

    @field_validator("actions")
    @classmethod
    def _three_actions(cls, v: List[str]) -> List[str]:
        cleaned = [action.strip() for action in v if action.strip()]
        if len(cleaned) < 3:
            raise ValueError(f"expected 3 actions, got {len(cleaned)}")
        return cleaned[:3]


def classify_urgency(answers: TriageAnswers) -> UrgencyLevel:
    main = answers.main_symptom.lower()
    if answers.severity >= 8:
        return UrgencyLevel.HIGH
    if any(symptom in main for symptom in EMERGENCY_SYMPTOMS):
        return UrgencyLevel.HIGH
    for extra in answers.additional_symptoms:
        if any(word in extra.lower() for word in INTENSIFIER_WORDS):
            return UrgencyLevel.HIGH
    if answers.severity >= 5:
        return UrgencyLevel.MEDIUM
    return UrgencyLevel.LOW


def rule_based_verdict(answers: TriageAnswers) -> TriageVerdict:
    """Deterministic verdict from the fixed urgency table."""
    level = classify_urgency(answers)
    profile = URGENCY_TABLE[level]
    return TriageVerdict(
        urgency=level,
        recommendation=profile.recommendation,
        actions=profile.actions,
        color=profile.color,
        icon=profile.icon,
        source="rules",
    )


def _coerce_answers(answers: Union[TriageAnswers, Dict[str, Any], None]) -> TriageAnswers:
    if isinstance(answers, TriageAnswers):
        return answers
    return TriageAnswers.model_validate(answers or {})


def _rules_fallback(orchestrator: "TriageOrchestrator", answers: Any = None, *, error: Exception) -> TriageVerdict:
    try:
        coerced = _coerce_answers(answers)
    except ValidationError:
        coerced = TriageAnswers()
    verdict = rule_based_verdict(coerced)
    log_triage(logger, verdict.urgency.value, verdict.source)
    return verdict


def intake_questions() -> List[Dict[str, Any]]:
    """The four questions of the symptom intake wizard."""
    return [
        {
            "id": "main_symptom",
            "question": "What is your main symptom?",
            "type": "select",
            "options": list(MAIN_SYMPTOM_OPTIONS),
        },
        {
            "id": "duration",
            "question": "How long have you experienced this symptom?",
            "type": "select",
            "options": list(DURATION_OPTIONS),
        },
        {
            "id": "severity",
            "question": "How would you rate the severity? (1-10)",
            "type": "range",
            "min": MIN_SEVERITY,
            "max": MAX_SEVERITY,
        },
        {
            "id": "additional",
            "question": "Any additional symptoms?",
            "type": "checkbox",
            "options": list(ADDITIONAL_SYMPTOM_OPTIONS),
        },
    ]


class TriageOrchestrator:
    """Remote assessment with a rule-based safety net."""

    def __init__(
        self,
        queue: OutboundRequestQueue,
        provider: Optional[LLMProvider],
        max_tokens: int = 400,
        temperature: float = 0.3,
    ):
        self.queue = queue
        self.provider = provider
        self.max_tokens = max_tokens
        self.temperature = temperature

    def build_messages(self, answers: TriageAnswers) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": TRIAGE_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": f"Analyze these symptoms and provide triage recommendation: {answers.describe()}",
            },
        ]

    @handle_async_errors("triage", fallback=_rules_fallback, logger=logger)
    async def assess(self, answers: Union[TriageAnswers, Dict[str, Any]]) -> TriageVerdict:
        """Return a verdict for the answers. Never raises."""
        answers = _coerce_answers(answers)
        rules = rule_based_verdict(answers)

        try:
            verdict = await self._remote_verdict(answers)
        except Exception as e:
            log_error(logger, e, context="Triage fallback", include_traceback=False)
            verdict = rules

        log_triage(logger, verdict.urgency.value, verdict.source)
        return verdict

    async def _remote_verdict(self, answers: TriageAnswers) -> TriageVerdict:
        provider = self.provider
        if provider is None:
            raise RuntimeError("No triage provider configured")

        messages = self.build_messages(answers)
        reply = await self.queue.submit(lambda: provider.generate(messages, self.max_tokens, self.temperature))

        data = parse_json_object(reply)
        try:
            assessment = RemoteAssessment.model_validate(data)
        except ValidationError as e:
            raise ParseError("Triage reply failed validation", details=str(e), stage="schema") from e

        profile = URGENCY_TABLE[assessment.urgency]
        return TriageVerdict(
            urgency=assessment.urgency,
            recommendation=assessment.recommendation,
            actions=tuple(assessment.actions),
            color=profile.color,
            icon=profile.icon,
            source="ai",
        )
