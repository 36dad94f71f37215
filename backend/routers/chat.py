"""
HealthGuard Chat Router

POST /api/chat answers one health question. The reply is always 200:
remote failures degrade to the knowledge base inside the orchestrator.
"""

from typing import Any, Dict

from fastapi import APIRouter, Request

from .models import ChatRequest

router = APIRouter(prefix="/api", tags=["chat"])


@router.post("/chat")
async def chat(body: ChatRequest, request: Request) -> Dict[str, Any]:
    """Answer a health question in knowledge-base or AI mode."""
    orchestrator = request.app.state.services.chat
    reply = await orchestrator.get_response(body.message, body.mode)
    return reply.to_dict()
