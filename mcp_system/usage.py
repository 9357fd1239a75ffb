"""Token usage accounting sinks."""

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict

from mcp_system.models import TokenUsage
from mcp_system.storage import Storage

logger = logging.getLogger(__name__)


class UsageRecorder(ABC):
    @abstractmethod
    async def record(self, usage: TokenUsage) -> None:
        ...


class LoggingUsageRecorder(UsageRecorder):
    """Log usage only; nothing is persisted."""

    async def record(self, usage: TokenUsage) -> None:
        logger.info(
            "Token usage - project %s, %s: %s/%s %d prompt + %d completion = %d",
            usage.project_id,
            f"conversation {usage.conversation_id}" if usage.conversation_id else f"debate {usage.debate_id}",
            usage.provider,
            usage.model,
            usage.prompt_tokens,
            usage.completion_tokens,
            usage.total_tokens,
        )


class StorageUsageRecorder(LoggingUsageRecorder):
    """Log usage and append it to the token_usage ledger table."""

    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    async def record(self, usage: TokenUsage) -> None:
        await super().record(usage)
        await self._storage.insert("token_usage", {**asdict(usage), "total_tokens": usage.total_tokens})
