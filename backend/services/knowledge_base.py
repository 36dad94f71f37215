"""
Health Knowledge Base - keyword responder for the health assistant.

A fixed, ordered table of health topics. Each topic carries lowercase
keywords that are matched as substrings of the user's message.

Matching rules:
- Emergency topics are checked first and short-circuit.
- Otherwise the topic with the most keyword hits wins; ties go to the
  topic listed first.
- No hits returns a generic fallback answer.

Usage:
    from services.knowledge_base import KeywordResponder
    match = KeywordResponder().respond("How much water should I drink?")
    match.topic_key  # "water"
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple


class ResponseSource(str, Enum):
    """Where a keyword responder answer came from."""

    EMERGENCY = "emergency"
    KNOWLEDGE_BASE = "knowledge_base"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class KnowledgeEntry:
    """One health topic in the knowledge table."""

    topic_key: str
    keywords: Tuple[str, ...]
    response_text: str
    is_emergency: bool = False


@dataclass(frozen=True)
class KeywordMatch:
    """Result of a keyword lookup."""

    text: str
    source: ResponseSource
    topic_key: Optional[str] = None
    match_score: int = 0


FALLBACK_RESPONSE = (
    "I understand you have a health question. While I can provide general health information, "
    "I recommend consulting with a healthcare professional for personalized medical advice. "
    "You can book a telemedicine consultation through our platform, or visit our symptom checker "
    "for preliminary guidance. Is there a specific health topic you'd like to know more about?"
)


# Order matters: ties are broken by position.
KNOWLEDGE_BASE: Tuple[KnowledgeEntry, ...] = (
    KnowledgeEntry(
        topic_key="covid",
        keywords=("covid", "coronavirus", "covid-19", "covid19", "corona", "pandemic"),
        response_text=(
            "COVID-19 symptoms typically include: fever, cough, fatigue, body aches, sore throat, headache, "
            "loss of taste/smell, and shortness of breath. Severe symptoms like difficulty breathing require "
            "immediate medical attention. Get tested if you have symptoms and follow local health guidelines. "
            "This information is for general guidance only - consult healthcare professionals for medical advice."
        ),
    ),
    KnowledgeEntry(
        topic_key="blood_pressure",
        keywords=("blood pressure", "hypertension", "bp", "high blood pressure", "lower blood pressure"),
        response_text=(
            "To help manage blood pressure naturally: 1) Exercise regularly (30 min/day), 2) Reduce sodium "
            "intake (<2300mg/day), 3) Maintain healthy weight, 4) Limit alcohol, 5) Manage stress through "
            "meditation/yoga, 6) Get adequate sleep (7-9 hours), 7) Eat potassium-rich foods. Always consult "
            "your doctor before making changes to medications or treatment plans."
        ),
    ),
    KnowledgeEntry(
        topic_key="heart_health",
        keywords=("heart health", "cardiovascular", "heart disease", "cholesterol", "heart attack"),
        response_text=(
            "Heart-healthy lifestyle includes: eating omega-3 rich fish (salmon, sardines), leafy greens, "
            "berries, nuts, olive oil, and whole grains. Limit processed foods, trans fats, and excessive "
            "saturated fats. Regular exercise, not smoking, managing stress, and maintaining healthy weight "
            "are crucial. Get regular checkups including cholesterol and blood pressure monitoring."
        ),
    ),
    KnowledgeEntry(
        topic_key="water",
        keywords=("water", "hydration", "drink", "fluid", "dehydration"),
        response_text=(
            "Most adults need about 8 glasses (64 oz) of water daily, but this varies based on activity "
            "level, climate, and health conditions. Signs of good hydration include pale yellow urine and "
            "feeling energetic. Increase intake during exercise, hot weather, or illness. Listen to your "
            "body's thirst signals and consult your doctor if you have kidney or heart conditions."
        ),
    ),
    KnowledgeEntry(
        topic_key="diabetes",
        keywords=("diabetes", "blood sugar", "glucose", "insulin", "diabetic"),
        response_text=(
            "Diabetes warning signs include: frequent urination, excessive thirst, unexplained weight loss, "
            "fatigue, blurred vision, slow-healing cuts, and tingling in hands/feet. Risk factors include "
            "family history, obesity, sedentary lifestyle, and age over 45. Early detection and management "
            "are crucial. Please get tested if you experience these symptoms."
        ),
    ),
    KnowledgeEntry(
        topic_key="nutrition",
        keywords=("nutrition", "diet", "healthy eating", "vitamins", "minerals", "food"),
        response_text=(
            "A balanced diet includes: plenty of fruits and vegetables (5-9 servings daily), whole grains, "
            "lean proteins, and healthy fats. Limit processed foods, added sugars, and excessive sodium. "
            "Stay hydrated and consider portion control. Individual needs vary based on age, activity level, "
            "and health conditions. Consult a nutritionist for personalized advice."
        ),
    ),
    KnowledgeEntry(
        topic_key="exercise",
        keywords=("exercise", "fitness", "workout", "physical activity", "gym"),
        response_text=(
            "Adults should aim for 150 minutes of moderate aerobic activity or 75 minutes of vigorous "
            "activity weekly, plus 2+ days of strength training. Start slowly if you're new to exercise. "
            "Activities can include walking, swimming, cycling, or dancing. Always consult your doctor "
            "before starting a new exercise program, especially if you have health conditions."
        ),
    ),
    KnowledgeEntry(
        topic_key="sleep",
        keywords=("sleep", "insomnia", "tired", "fatigue", "rest"),
        response_text=(
            "Adults need 7-9 hours of quality sleep nightly. Good sleep hygiene includes: consistent "
            "bedtime/wake times, cool dark room, limiting screens before bed, avoiding caffeine late in day, "
            "and creating a relaxing bedtime routine. Poor sleep affects immune function, weight, and mental "
            "health. Consult a doctor for persistent sleep problems."
        ),
    ),
    KnowledgeEntry(
        topic_key="mental_health",
        keywords=("mental health", "depression", "anxiety", "stress", "mood"),
        response_text=(
            "Mental health is as important as physical health. Common strategies include: regular exercise, "
            "adequate sleep, social connections, stress management techniques, and seeking professional help "
            "when needed. Warning signs requiring attention include persistent sadness, anxiety, mood changes, "
            "or thoughts of self-harm. Don't hesitate to reach out to mental health professionals."
        ),
    ),
    KnowledgeEntry(
        topic_key="symptoms",
        keywords=("fever", "headache", "pain", "nausea", "dizziness", "cough"),
        response_text=(
            "For common symptoms: fever - rest, fluids, monitor temperature; headache - rest, hydration, "
            "consider over-the-counter pain relief; persistent cough - stay hydrated, honey may help. Seek "
            "immediate care for severe symptoms, high fever (>103°F), difficulty breathing, chest pain, or "
            "symptoms that worsen rapidly. This is general guidance only - consult healthcare professionals "
            "for proper diagnosis."
        ),
    ),
    KnowledgeEntry(
        topic_key="emergency",
        keywords=("emergency", "urgent", "severe", "chest pain", "difficulty breathing", "stroke"),
        response_text=(
            "\U0001f6a8 MEDICAL EMERGENCY signs include: chest pain, difficulty breathing, severe bleeding, "
            "loss of consciousness, signs of stroke (face drooping, arm weakness, speech difficulty), severe "
            "allergic reactions. CALL EMERGENCY SERVICES IMMEDIATELY (911) for these symptoms. Don't wait or "
            "try to drive yourself - get professional emergency medical care right away."
        ),
        is_emergency=True,
    ),
)


def _count_hits(entry: KnowledgeEntry, message: str) -> int:
    return sum(1 for keyword in entry.keywords if keyword in message)


class KeywordResponder:
    """Deterministic keyword matcher over an ordered knowledge table."""

    def __init__(self, entries: Sequence[KnowledgeEntry] = KNOWLEDGE_BASE, fallback_text: str = FALLBACK_RESPONSE):
        self.entries = tuple(entries)
        self.fallback_text = fallback_text

    def respond(self, user_text: Optional[str]) -> KeywordMatch:
        """Return the best canned answer for a message.

        Never raises; None and empty input fall through to the fallback.
        """
        message = (user_text or "").lower()

        # Emergency check first
        for entry in self.entries:
            if not entry.is_emergency:
                continue
            hits = _count_hits(entry, message)
            if hits:
                return KeywordMatch(
                    text=entry.response_text,
                    source=ResponseSource.EMERGENCY,
                    topic_key=entry.topic_key,
                    match_score=hits,
                )

        best: Optional[KnowledgeEntry] = None
        best_score = 0
        for entry in self.entries:
            hits = _count_hits(entry, message)
            if hits > best_score:
                best, best_score = entry, hits

        if best is not None:
            return KeywordMatch(
                text=best.response_text,
                source=ResponseSource.KNOWLEDGE_BASE,
                topic_key=best.topic_key,
                match_score=best_score,
            )

        return KeywordMatch(text=self.fallback_text, source=ResponseSource.FALLBACK)
