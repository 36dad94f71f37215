"""
Chat Orchestrator - picks the source of a health assistant reply.

Flow:
1. Keyword lookup. Emergency matches are returned as-is.
2. Knowledge-base mode returns the lookup text with a provenance note.
3. AI mode with a confident local match still returns the local text.
4. Otherwise one remote call through the shared request queue; on failure
   the local text is returned with a degraded note.

get_response() never raises; unexpected errors become an ERROR reply.
"""

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from errors import handle_async_errors
from logging_config import log_message_in, log_message_out
from services.knowledge_base import KeywordResponder, ResponseSource
from services.providers.base import LLMProvider
from services.request_queue import OutboundRequestQueue, is_rate_limited_error

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful AI health assistant for HealthGuard AI. Provide accurate, helpful health "
    "information while always emphasizing that your advice is for informational purposes only and "
    "users should consult healthcare professionals for medical diagnosis and treatment. Keep responses "
    "concise, practical, and focused on general health guidance. Always be empathetic and supportive."
)

KNOWLEDGE_BASE_NOTE = (
    "\n\n\U0001f4da Response from our comprehensive health knowledge base. "
    "For personalized medical advice, please consult a healthcare professional."
)
LOCAL_MATCH_NOTE = (
    "\n\n\U0001f4a1 This response is from our health knowledge base. "
    "For personalized advice, please consult a healthcare professional."
)
AI_NOTE = "\n\n\U0001f916 AI-powered response ({provider}). For medical emergencies, call emergency services immediately."
RATE_LIMITED_NOTE = (
    "\n\n\U0001f4da Switched to knowledge base due to AI rate limits. Response is still accurate and helpful!"
)
UNAVAILABLE_NOTE = (
    "\n\n\U0001f4da The AI assistant is unavailable right now, so this answer comes from our health knowledge base."
)

HIGH_DEMAND_MESSAGE = (
    "I'm currently experiencing high demand. Please wait a moment before sending another message."
)
TECHNICAL_DIFFICULTIES_MESSAGE = (
    "I'm experiencing technical difficulties. Please try again later or contact our support team for assistance."
)

RATE_LIMIT_HINT_SECONDS = 10
BOUNDARY_RATE_LIMIT_HINT_SECONDS = 15


class ResponseMode(str, Enum):
    """Caller's preferred reply source."""

    KNOWLEDGE_BASE = "knowledge_base"
    AI = "ai"


class Provenance(str, Enum):
    """Where a chat reply's text came from."""

    EMERGENCY = "emergency"
    KNOWLEDGE_BASE = "knowledge_base"
    AI = "ai"
    FALLBACK = "fallback"
    ERROR = "error"


@dataclass(frozen=True)
class ChatReply:
    text: str
    provenance: Provenance
    topic_key: Optional[str] = None
    rate_limited: bool = False
    rate_limited_seconds: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["provenance"] = self.provenance.value
        return data


def _boundary_reply(orchestrator: "ChatOrchestrator", *args: Any, error: Exception, **kwargs: Any) -> ChatReply:
    """Reply used when get_response fails outside the remote-call path."""
    if orchestrator.is_rate_limited(error):
        reply = ChatReply(
            text=HIGH_DEMAND_MESSAGE,
            provenance=Provenance.ERROR,
            rate_limited=True,
            rate_limited_seconds=BOUNDARY_RATE_LIMIT_HINT_SECONDS,
        )
    else:
        reply = ChatReply(text=TECHNICAL_DIFFICULTIES_MESSAGE, provenance=Provenance.ERROR)

    log_message_out(logger, reply.provenance.value, rate_limited=reply.rate_limited)
    return reply


class ChatOrchestrator:
    """Chooses between the keyword responder and a queued remote model call."""

    def __init__(
        self,
        responder: KeywordResponder,
        queue: OutboundRequestQueue,
        provider: Optional[LLMProvider],
        max_tokens: int = 300,
        temperature: float = 0.7,
        is_rate_limited: Callable[[BaseException], bool] = is_rate_limited_error,
    ):
        self.responder = responder
        self.queue = queue
        self.provider = provider
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.is_rate_limited = is_rate_limited

    def build_messages(self, user_text: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user_text},
        ]

    @handle_async_errors("chat", fallback=_boundary_reply, logger=logger)
    async def get_response(self, user_text: Optional[str], mode: ResponseMode = ResponseMode.KNOWLEDGE_BASE) -> ChatReply:
        """Produce a reply for one user message."""
        user_text = user_text or ""
        log_message_in(logger, user_text, mode=ResponseMode(mode).value)

        match = self.responder.respond(user_text)

        if match.source == ResponseSource.EMERGENCY:
            reply = ChatReply(text=match.text, provenance=Provenance.EMERGENCY, topic_key=match.topic_key)

        elif mode == ResponseMode.KNOWLEDGE_BASE:
            provenance = Provenance.FALLBACK if match.source == ResponseSource.FALLBACK else Provenance.KNOWLEDGE_BASE
            reply = ChatReply(text=match.text + KNOWLEDGE_BASE_NOTE, provenance=provenance, topic_key=match.topic_key)

        elif match.match_score >= 1:
            reply = ChatReply(
                text=match.text + LOCAL_MATCH_NOTE,
                provenance=Provenance.KNOWLEDGE_BASE,
                topic_key=match.topic_key,
            )

        else:
            reply = await self._remote_reply(user_text, match.text, match.topic_key)

        log_message_out(logger, reply.provenance.value, topic=reply.topic_key, rate_limited=reply.rate_limited)
        return reply

    async def _remote_reply(self, user_text: str, local_text: str, topic_key: Optional[str]) -> ChatReply:
        provider = self.provider
        try:
            if provider is None:
                raise RuntimeError("No chat provider configured")
            messages = self.build_messages(user_text)
            text = await self.queue.submit(lambda: provider.generate(messages, self.max_tokens, self.temperature))
        except Exception as e:
            throttled = self.is_rate_limited(e)
            logger.warning(f"Remote chat failed, falling back to knowledge base: {e}")
            return ChatReply(
                text=local_text + (RATE_LIMITED_NOTE if throttled else UNAVAILABLE_NOTE),
                provenance=Provenance.FALLBACK,
                topic_key=topic_key,
                rate_limited=throttled,
                rate_limited_seconds=RATE_LIMIT_HINT_SECONDS if throttled else 0,
            )

        return ChatReply(text=text + AI_NOTE.format(provider=provider.provider_name), provenance=Provenance.AI)
