"""Builder/Judge conversation workflow.

Each operation is a straight sequence: authorize, load, build prompt, call the
provider, persist, touch the conversation, notify. A failed provider call
leaves no message behind.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, TypeVar

from config.config_loader import AppConfig
from mcp_system.access import api_key_for, require_member
from mcp_system.agents import BuilderAgent, JudgeAgent, extract_score
from mcp_system.errors import NotFoundError, ValidationError
from mcp_system.models import (
    MESSAGE_ROLES,
    Conversation,
    ConversationDetail,
    EVALUATION_CRITERIA,
    HistoryMessage,
    LLMResponse,
    Message,
    Project,
    TokenUsage,
)
from mcp_system.notifier import Events, Notifier, conversation_room
from mcp_system.providers.factory import ProviderFactory, provider_factory_for
from mcp_system.storage import Storage, utcnow
from mcp_system.tokens import TokenEstimator
from mcp_system.usage import LoggingUsageRecorder, UsageRecorder

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DEFAULT_BUILDER = "claude"
_DEFAULT_JUDGE = "chatgpt"


class ConversationOrchestrator:
    """Runs Builder and Judge turns against one storage backend."""

    def __init__(
        self,
        storage: Storage,
        config: AppConfig,
        provider_factory: ProviderFactory | None = None,
        usage: UsageRecorder | None = None,
        notifier: Notifier | None = None,
        estimator: TokenEstimator | None = None,
    ) -> None:
        self._storage = storage
        self._config = config
        self._provider_factory = provider_factory or provider_factory_for(config.models)
        self._usage = usage or LoggingUsageRecorder()
        self._notifier = notifier
        self._estimator = estimator or TokenEstimator(config.tokens)

    async def _emit(self, conversation_id: str, event: str, payload: dict[str, Any]) -> None:
        if self._notifier is not None:
            await self._notifier.emit(conversation_room(conversation_id), event, payload)

    async def _load(self, user_id: str, conversation_id: str) -> tuple[Conversation, Project]:
        conversation = Conversation.from_row(await self._storage.get("conversations", conversation_id))
        project = await require_member(self._storage, conversation.project_id, user_id)
        return conversation, project

    async def _messages(self, conversation_id: str) -> list[Message]:
        rows = await self._storage.select(
            "messages", where={"conversation_id": conversation_id}, order_by="created_at"
        )
        return [Message.from_row(r) for r in rows]

    async def _touch(self, conversation_id: str) -> None:
        await self._storage.update("conversations", conversation_id, {"updated_at": utcnow()})

    async def _insert_message(self, row: dict[str, Any]) -> Message:
        message = Message.from_row(await self._storage.insert("messages", row))
        await self._touch(message.conversation_id)
        return message

    async def create_conversation(
        self,
        user_id: str,
        project_id: str,
        title: str | None = None,
        builder_llm: str | None = None,
        judge_llm: str | None = None,
    ) -> Conversation:
        project = await require_member(self._storage, project_id, user_id)
        project_config = project.config or {}
        row = {
            "project_id": project_id,
            "title": title or f"Conversación {datetime.now():%Y-%m-%d %H:%M:%S}",
            "builder_llm": builder_llm or project_config.get("builder_llm") or _DEFAULT_BUILDER,
            "judge_llm": judge_llm or project_config.get("judge_llm") or _DEFAULT_JUDGE,
            "status": "active",
        }
        for llm in (row["builder_llm"], row["judge_llm"]):
            if llm not in self._config.models:
                raise ValidationError(f"Unknown provider: {llm}")
        conversation = Conversation.from_row(await self._storage.insert("conversations", row))
        logger.info("Conversation %s created in project %s", conversation.id, project_id)
        return conversation

    async def list_conversations(self, user_id: str, project_id: str) -> list[Conversation]:
        await require_member(self._storage, project_id, user_id)
        rows = await self._storage.select(
            "conversations", where={"project_id": project_id}, order_by="updated_at", descending=True
        )
        return [Conversation.from_row(r) for r in rows]

    async def get_conversation(self, user_id: str, conversation_id: str) -> ConversationDetail:
        conversation, _ = await self._load(user_id, conversation_id)
        return ConversationDetail(conversation=conversation, messages=await self._messages(conversation_id))

    async def add_message(
        self,
        user_id: str,
        conversation_id: str,
        role: str,
        content: str,
        llm_provider: str | None = None,
    ) -> Message:
        """Persist a message typed or relayed by the caller and broadcast it."""
        if role not in MESSAGE_ROLES:
            raise ValidationError(f"Invalid role: {role}")
        if not content or not content.strip():
            raise ValidationError("Message content is required")
        if role == "user":
            llm_provider = None
        elif not llm_provider:
            raise ValidationError(f"llm_provider is required for {role} messages")

        await self._load(user_id, conversation_id)
        message = await self._insert_message({
            "conversation_id": conversation_id,
            "role": role,
            "llm_provider": llm_provider,
            "content": content,
            "token_count": self._estimator.estimate(content),
            "metadata": {},
        })
        await self._emit(conversation_id, Events.NEW_MESSAGE, message.to_row())
        return message

    def _llm_row(
        self,
        conversation_id: str,
        role: str,
        response: LLMResponse,
        **extra: Any,
    ) -> dict[str, Any]:
        return {
            "conversation_id": conversation_id,
            "role": role,
            "llm_provider": response.provider,
            "content": response.content,
            "token_count": response.total_tokens,
            "metadata": {
                "model": response.model,
                "prompt_tokens": response.prompt_tokens,
                "completion_tokens": response.completion_tokens,
                "response_time": response.response_time_ms,
                **extra,
            },
        }

    async def _record_usage(self, project: Project, conversation_id: str, response: LLMResponse) -> None:
        """Record token usage; the message is already stored, so a ledger failure is only logged."""
        try:
            await self._usage.record(
                TokenUsage(
                    project_id=project.id,
                    conversation_id=conversation_id,
                    provider=response.provider,
                    model=response.model,
                    prompt_tokens=response.prompt_tokens,
                    completion_tokens=response.completion_tokens,
                )
            )
        except Exception as exc:
            logger.warning("Failed to record usage for conversation %s: %s", conversation_id, exc)

    async def _guarded(
        self,
        conversation_id: str,
        error_event: str,
        step: Callable[[], Awaitable[T]],
    ) -> T:
        """Run step, broadcasting error_event before re-raising any failure."""
        try:
            return await step()
        except Exception as exc:
            logger.error("%s in conversation %s: %s", error_event, conversation_id, exc)
            await self._emit(conversation_id, error_event, {"conversation_id": conversation_id, "error": str(exc)})
            raise

    async def generate_builder_response(
        self,
        user_id: str,
        conversation_id: str,
        requirements: str | None = None,
    ) -> Message:
        conversation, project = await self._load(user_id, conversation_id)
        provider_name = conversation.builder_llm
        api_key = await api_key_for(self._storage, user_id, provider_name)
        history = await self._messages(conversation_id)

        await self._emit(
            conversation_id,
            Events.BUILDER_THINKING,
            {"conversation_id": conversation_id, "timestamp": utcnow().isoformat()},
        )

        async def step() -> Message:
            agent = BuilderAgent(
                self._provider_factory(provider_name, api_key),
                self._config.prompts,
                self._config.agents,
                self._estimator,
            )
            response = await agent.generate(
                project,
                requirements or project.description,
                [HistoryMessage(m.role, m.content) for m in history],
            )
            message = await self._insert_message(self._llm_row(conversation_id, "builder", response))
            await self._record_usage(project, conversation_id, response)
            return message

        message = await self._guarded(conversation_id, Events.BUILDER_ERROR, step)
        logger.info("Builder (%s) replied in conversation %s: %d tokens", provider_name, conversation_id, message.token_count)
        await self._emit(conversation_id, Events.NEW_MESSAGE, message.to_row())
        await self._emit(
            conversation_id,
            Events.BUILDER_COMPLETED,
            {"conversation_id": conversation_id, "message_id": message.id},
        )
        return message

    def _builder_message(
        self,
        history: list[Message],
        builder_message_id: str | None,
    ) -> Message:
        if builder_message_id is None:
            for message in reversed(history):
                if message.role == "builder":
                    return message
            raise ValidationError("No builder message to evaluate in this conversation")

        message = next((m for m in history if m.id == builder_message_id), None)
        if message is None:
            raise NotFoundError("messages", builder_message_id)
        if message.role != "builder":
            raise ValidationError(f"Message {builder_message_id} is not a builder message")
        return message

    async def generate_judge_evaluation(
        self,
        user_id: str,
        conversation_id: str,
        builder_message_id: str | None = None,
        requirements: str | None = None,
    ) -> Message:
        conversation, project = await self._load(user_id, conversation_id)
        provider_name = conversation.judge_llm
        api_key = await api_key_for(self._storage, user_id, provider_name)
        history = await self._messages(conversation_id)
        builder_message = self._builder_message(history, builder_message_id)

        await self._emit(
            conversation_id,
            Events.JUDGE_THINKING,
            {"conversation_id": conversation_id, "timestamp": utcnow().isoformat()},
        )

        async def step() -> Message:
            agent = JudgeAgent(
                self._provider_factory(provider_name, api_key),
                self._config.prompts,
                self._config.agents,
                self._estimator,
            )
            response = await agent.evaluate(
                project,
                requirements or project.description,
                builder_message.content,
                [HistoryMessage(m.role, m.content) for m in history],
            )
            score = extract_score(response.content)
            message = await self._insert_message(
                self._llm_row(
                    conversation_id,
                    "judge",
                    response,
                    evaluated_message_id=builder_message.id,
                    score=score,
                )
            )
            if score is not None:
                await self._storage.insert("evaluations", {
                    "conversation_id": conversation_id,
                    "message_id": message.id,
                    "score": score,
                    "feedback": response.content,
                    "criteria": {name: None for name in EVALUATION_CRITERIA},
                })
            else:
                logger.warning("No score found in judge message %s", message.id)
            await self._record_usage(project, conversation_id, response)
            return message

        message = await self._guarded(conversation_id, Events.JUDGE_ERROR, step)
        score = message.metadata.get("score")
        logger.info("Judge (%s) scored builder message %s: %s", provider_name, builder_message.id, score)
        await self._emit(conversation_id, Events.NEW_MESSAGE, message.to_row())
        await self._emit(
            conversation_id,
            Events.JUDGE_COMPLETED,
            {"conversation_id": conversation_id, "message_id": message.id, "score": score},
        )
        return message

    async def switch_roles(self, user_id: str, conversation_id: str) -> Conversation:
        """Swap builder_llm and judge_llm and leave a system message recording it."""
        conversation, _ = await self._load(user_id, conversation_id)
        previous = {"builder_llm": conversation.builder_llm, "judge_llm": conversation.judge_llm}
        current = {"builder_llm": conversation.judge_llm, "judge_llm": conversation.builder_llm}

        updated = Conversation.from_row(
            await self._storage.update("conversations", conversation_id, current)
        )
        message = Message.from_row(await self._storage.insert("messages", {
            "conversation_id": conversation_id,
            "role": "system",
            "llm_provider": "system",
            "content": (
                f"Roles intercambiados: Builder ahora es {updated.builder_llm}, "
                f"Judge ahora es {updated.judge_llm}."
            ),
            "token_count": 0,
            "metadata": {"previous": previous, "current": current},
        }))
        logger.info(
            "Roles switched in conversation %s: builder %s -> %s",
            conversation_id,
            previous["builder_llm"],
            updated.builder_llm,
        )

        await self._emit(conversation_id, Events.NEW_MESSAGE, message.to_row())
        await self._emit(
            conversation_id,
            Events.ROLES_SWITCHED,
            {"conversation_id": conversation_id, **current},
        )
        return updated
