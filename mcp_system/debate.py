"""Two-agent debate: fixed turn count, alternating speakers, one entry per call."""

import logging
from datetime import datetime
from typing import Any

from config.config_loader import AppConfig
from mcp_system.access import api_key_for, require_member
from mcp_system.errors import ConflictError, ValidationError
from mcp_system.models import (
    DEBATE_ACTIVE,
    DEBATE_COMPLETED,
    Debate,
    DebateDetail,
    DebateEntry,
    DebateTurnResult,
    GenerationOptions,
    Project,
    TokenUsage,
)
from mcp_system.notifier import Events, Notifier, debate_room
from mcp_system.prompts import build_debate_prompt
from mcp_system.providers.factory import ProviderFactory, provider_factory_for
from mcp_system.storage import Storage, utcnow
from mcp_system.usage import LoggingUsageRecorder, UsageRecorder

logger = logging.getLogger(__name__)

_DEFAULT_TOPIC = "Sin tema especificado"


class DebateFinishedError(ValidationError):
    """Raised when a turn is requested after the last one was generated."""

    def __init__(self, debate_id: str) -> None:
        self.debate_id = debate_id
        super().__init__(f"Debate already finished: {debate_id}")


class DebateOrchestrator:
    """Creates debates and advances them one turn at a time.

    Turn parity decides the speaker: odd turns go to agent_a, even turns to
    agent_b. The turn counter is advanced with a conditional write on
    current_turn, so two overlapping calls for the same turn cannot both
    land; the loser gets ConflictError and its entry is removed.
    """

    def __init__(
        self,
        storage: Storage,
        config: AppConfig,
        provider_factory: ProviderFactory | None = None,
        usage: UsageRecorder | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._storage = storage
        self._config = config
        self._provider_factory = provider_factory or provider_factory_for(config.models)
        self._usage = usage or LoggingUsageRecorder()
        self._notifier = notifier

    async def _emit(self, debate_id: str, event: str, payload: dict[str, Any]) -> None:
        if self._notifier is not None:
            await self._notifier.emit(debate_room(debate_id), event, payload)

    async def _load(self, user_id: str, debate_id: str) -> tuple[Debate, Project]:
        debate = Debate.from_row(await self._storage.get("debates", debate_id))
        project = await require_member(self._storage, debate.project_id, user_id)
        return debate, project

    async def _entries(self, debate_id: str) -> list[DebateEntry]:
        rows = await self._storage.select(
            "debate_entries", where={"debate_id": debate_id}, order_by="turn_number"
        )
        return [DebateEntry.from_row(r) for r in rows]

    async def create_debate(
        self,
        user_id: str,
        project_id: str,
        title: str | None = None,
        topic: str | None = None,
        agent_a: str | None = None,
        agent_b: str | None = None,
        max_turns: int | None = None,
    ) -> Debate:
        await require_member(self._storage, project_id, user_id)
        defaults = self._config.debate

        turns = max_turns if max_turns is not None else defaults.max_turns
        if turns not in defaults.allowed_max_turns:
            raise ValidationError(
                f"max_turns must be one of {defaults.allowed_max_turns}, got {turns}"
            )

        agent_a = agent_a or defaults.agent_a
        agent_b = agent_b or defaults.agent_b
        for agent in (agent_a, agent_b):
            if agent not in self._config.models:
                raise ValidationError(f"Unknown provider: {agent}")

        row = {
            "project_id": project_id,
            "title": title or f"Debate {datetime.now():%Y-%m-%d %H:%M:%S}",
            "topic": topic or _DEFAULT_TOPIC,
            "status": DEBATE_ACTIVE,
            "current_turn": 1,
            "max_turns": turns,
            "agent_a": agent_a,
            "agent_b": agent_b,
        }
        debate = Debate.from_row(await self._storage.insert("debates", row))
        logger.info(
            "Debate %s created: %s vs %s, %d turns on %r",
            debate.id,
            agent_a,
            agent_b,
            turns,
            debate.topic,
        )
        return debate

    async def list_debates(self, user_id: str, project_id: str) -> list[Debate]:
        await require_member(self._storage, project_id, user_id)
        rows = await self._storage.select(
            "debates", where={"project_id": project_id}, order_by="created_at", descending=True
        )
        return [Debate.from_row(r) for r in rows]

    async def get_debate(self, user_id: str, debate_id: str) -> DebateDetail:
        debate, _ = await self._load(user_id, debate_id)
        return DebateDetail(debate=debate, entries=await self._entries(debate_id))

    async def generate_next_turn(self, user_id: str, debate_id: str) -> DebateTurnResult:
        """Generate, persist and broadcast the entry for the debate's current turn.

        Raises:
            DebateFinishedError: current_turn already exceeds max_turns.
            ConfigurationError: caller has no API key for the speaking agent.
            ProviderError: the vendor call failed; nothing is persisted.
            ConflictError: another call advanced this debate first.
        """
        debate, project = await self._load(user_id, debate_id)
        if debate.is_finished:
            raise DebateFinishedError(debate_id)

        turn = debate.current_turn
        agent = debate.agent_for_turn(turn)
        api_key = await api_key_for(self._storage, user_id, agent)
        entries = await self._entries(debate_id)
        settings = self._config.debate
        prompt = build_debate_prompt(self._config.prompts, debate, entries, settings.excerpt_chars)

        await self._emit(
            debate_id,
            Events.DEBATE_TURN_THINKING,
            {"debate_id": debate_id, "turn_number": turn, "agent": agent, "timestamp": utcnow().isoformat()},
        )

        try:
            provider = self._provider_factory(agent, api_key)
            response = await provider.generate(
                prompt,
                GenerationOptions(
                    max_tokens=settings.max_tokens,
                    temperature=settings.temperature,
                    system_prompt=self._config.prompts.debate_system,
                ),
            )
            entry = DebateEntry.from_row(await self._storage.insert("debate_entries", {
                "debate_id": debate_id,
                "agent": agent,
                "turn_number": turn,
                "content": response.content,
                "token_count": response.total_tokens,
                "metadata": {
                    "model": response.model,
                    "prompt_tokens": response.prompt_tokens,
                    "completion_tokens": response.completion_tokens,
                    "response_time": response.response_time_ms,
                },
            }))

            next_turn = turn + 1
            is_completed = next_turn > debate.max_turns
            changes: dict[str, Any] = {"current_turn": next_turn}
            if is_completed:
                changes["status"] = DEBATE_COMPLETED
            try:
                await self._storage.update("debates", debate_id, changes, expected={"current_turn": turn})
            except ConflictError:
                await self._storage.delete("debate_entries", entry.id)
                logger.warning("Debate %s turn %d was taken by a concurrent call", debate_id, turn)
                raise
        except Exception as exc:
            logger.error("Debate %s turn %d (%s) failed: %s", debate_id, turn, agent, exc)
            await self._emit(debate_id, Events.DEBATE_TURN_ERROR, {"debate_id": debate_id, "error": str(exc)})
            raise

        # Turn is committed; usage failures are only logged.
        try:
            await self._usage.record(
                TokenUsage(
                    project_id=project.id,
                    debate_id=debate_id,
                    provider=response.provider,
                    model=response.model,
                    prompt_tokens=response.prompt_tokens,
                    completion_tokens=response.completion_tokens,
                )
            )
        except Exception as exc:
            logger.warning("Failed to record usage for debate %s turn %d: %s", debate_id, turn, exc)

        logger.info(
            "Debate %s turn %d/%d by %s: %d tokens%s",
            debate_id,
            turn,
            debate.max_turns,
            agent,
            entry.token_count,
            " (completed)" if is_completed else "",
        )
        await self._emit(
            debate_id,
            Events.DEBATE_TURN_COMPLETED,
            {"debate_id": debate_id, "entry": entry.to_row(), "is_completed": is_completed},
        )
        return DebateTurnResult(entry=entry, is_completed=is_completed)
