"""
HealthGuard Triage Router

GET  /api/triage/questions - the symptom intake wizard
POST /api/triage           - urgency verdict for submitted answers
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Request

from services.triage import TriageAnswers, intake_questions

router = APIRouter(prefix="/api/triage", tags=["triage"])


@router.get("/questions")
async def questions() -> List[Dict[str, Any]]:
    return intake_questions()


@router.post("")
async def assess(answers: TriageAnswers, request: Request) -> Dict[str, Any]:
    """Rule verdict on any remote failure, so this never errors on content."""
    verdict = await request.app.state.services.triage.assess(answers)
    return verdict.model_dump(mode="json")
