"""
Service Container - the long-lived objects shared by all requests.

Built once in the app lifespan and stored on ``app.state.services``.
Both orchestrators share a single OutboundRequestQueue so pacing and
retries apply to every remote call the process makes.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from config import RuntimeConfig
from services.chat_orchestrator import ChatOrchestrator
from services.database import DatabaseManager
from services.knowledge_base import KeywordResponder
from services.providers import LLMProvider, get_provider
from services.request_queue import OutboundRequestQueue
from services.triage import TriageOrchestrator
from services.user_auth import UserAuthManager, build_user_store

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    queue: OutboundRequestQueue
    chat: ChatOrchestrator
    triage: TriageOrchestrator
    auth: UserAuthManager
    database: Optional[DatabaseManager] = None

    async def aclose(self) -> None:
        """Release queue, provider clients and the database pool."""
        await self.queue.close()

        providers: List[LLMProvider] = []
        for provider in (self.chat.provider, self.triage.provider):
            if provider is not None and all(provider is not seen for seen in providers):
                providers.append(provider)
        for provider in providers:
            await provider.aclose()

        if self.database is not None:
            await self.database.disconnect()


async def build_services(config: RuntimeConfig) -> ServiceContainer:
    """Wire the application services from configuration."""
    queue = OutboundRequestQueue(
        min_interval=config.queue_min_interval,
        max_retries=config.queue_max_retries,
        base_delay=config.queue_base_delay,
        max_delay=config.queue_max_delay,
    )

    chat_provider = get_provider(config.chat_provider, config.provider_settings(config.chat_provider))
    if config.triage_provider == config.chat_provider:
        triage_provider = chat_provider
    else:
        triage_provider = get_provider(config.triage_provider, config.provider_settings(config.triage_provider))
    logger.info(
        f"LLM providers: chat={chat_provider.provider_name} ({chat_provider.model}), "
        f"triage={triage_provider.provider_name} ({triage_provider.model})"
    )

    chat = ChatOrchestrator(
        responder=KeywordResponder(),
        queue=queue,
        provider=chat_provider,
        max_tokens=config.chat_max_tokens,
        temperature=config.chat_temperature,
    )
    triage = TriageOrchestrator(
        queue=queue,
        provider=triage_provider,
        max_tokens=config.triage_max_tokens,
        temperature=config.triage_temperature,
    )

    database = DatabaseManager(url=config.database_url)
    await database.connect()
    auth = UserAuthManager(
        store=build_user_store(database),
        jwt_secret=config.jwt_secret,
        expiry_days=config.jwt_expiry_days,
    )

    return ServiceContainer(queue=queue, chat=chat, triage=triage, auth=auth, database=database)
