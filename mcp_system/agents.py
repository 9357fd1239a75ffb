"""Builder and Judge roles: persona, sampling settings, history compression, scoring."""

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence

from config.config_loader import AgentConfig, PromptsConfig, RoleConfig
from mcp_system.models import GenerationOptions, HistoryMessage, LLMResponse, Project
from mcp_system.prompts import build_builder_prompt, build_judge_prompt, build_summary_prompt
from mcp_system.providers.base import AIProvider
from mcp_system.tokens import TokenEstimator

logger = logging.getLogger(__name__)

# Histories this short are never summarized.
_MIN_SUMMARIZE_LENGTH = 4

_SCORE_PATTERNS = [
    re.compile(r"puntuaci[oó]n\s*:?\s*(\d+(?:\.\d+)?)\s*(?:/|\s*de\s*)?\s*10", re.IGNORECASE),
    re.compile(r"evaluaci[oó]n\s*:?\s*(\d+(?:\.\d+)?)\s*(?:/|\s*de\s*)?\s*10", re.IGNORECASE),
    re.compile(r"calificaci[oó]n\s*:?\s*(\d+(?:\.\d+)?)\s*(?:/|\s*de\s*)?\s*10", re.IGNORECASE),
    re.compile(r"(?:doy|otorgo)\s+una?\s*(\d+(?:\.\d+)?)\s*(?:/|\s*de\s*)?\s*10", re.IGNORECASE),
    re.compile(r"asigno\s+una?\s*(\d+(?:\.\d+)?)\s*(?:/|\s*de\s*)?\s*10", re.IGNORECASE),
]
_GENERIC_SCORE = re.compile(r"\b(\d+(?:\.\d+)?)\s*/\s*10\b")


def _in_range(raw: str) -> float | None:
    score = float(raw)
    return score if 0 <= score <= 10 else None


def extract_score(text: str) -> float | None:
    """Pull a 0-10 score out of a Spanish evaluation text.

    Phrased patterns ("Puntuación: 7/10", "le doy un 8 de 10", ...) are tried
    in order, then a bare "N/10". The first in-range match wins; None when
    nothing matches or every match is out of range.
    """
    if not text:
        return None
    for pattern in _SCORE_PATTERNS:
        match = pattern.search(text)
        if match:
            score = _in_range(match.group(1))
            if score is not None:
                return score

    match = _GENERIC_SCORE.search(text)
    if match:
        return _in_range(match.group(1))
    return None


class _RoleAgent(ABC):
    """Shared turn logic: build prompt, compress history if too large, call provider."""

    role = ""

    def __init__(
        self,
        provider: AIProvider,
        prompts: PromptsConfig,
        agents: AgentConfig,
        estimator: TokenEstimator,
    ) -> None:
        self.provider = provider
        self._prompts = prompts
        self._agents = agents
        self._estimator = estimator

    @property
    @abstractmethod
    def settings(self) -> RoleConfig:
        """Token and temperature settings for this role."""

    @property
    @abstractmethod
    def system_prompt(self) -> str:
        ...

    @property
    @abstractmethod
    def summary_focus(self) -> str:
        ...

    async def summarize_history(self, history: Sequence[HistoryMessage]) -> list[HistoryMessage]:
        """Replace all but the most recent messages with one LLM-written summary."""
        keep = self._agents.keep_recent
        if len(history) <= _MIN_SUMMARIZE_LENGTH:
            return list(history)

        recent = list(history[-keep:])
        older = history[:-keep]
        summary_prompt = build_summary_prompt(self._prompts, older, self.summary_focus)
        response = await self.provider.generate(
            summary_prompt,
            GenerationOptions(
                max_tokens=self._agents.summary_max_tokens,
                temperature=self._agents.summary_temperature,
            ),
        )
        logger.info("%s summarized %d older messages", self.role, len(older))
        summary = HistoryMessage(role="system", content=f"{self._prompts.summary_prefix}{response.content}")
        return [summary, *recent]

    async def _run(
        self,
        build: Callable[[Sequence[HistoryMessage]], str],
        history: Sequence[HistoryMessage],
    ) -> LLMResponse:
        settings = self.settings
        prompt = build(history)
        estimated = self._estimator.estimate(prompt, self.provider.model_string())
        if estimated > settings.max_tokens * self._agents.summary_threshold:
            logger.debug(
                "%s prompt ~%d tokens exceeds %.0f%% of %d, summarizing history",
                self.role,
                estimated,
                self._agents.summary_threshold * 100,
                settings.max_tokens,
            )
            prompt = build(await self.summarize_history(history))

        return await self.provider.generate(
            prompt,
            GenerationOptions(
                max_tokens=settings.max_tokens,
                temperature=settings.temperature,
                system_prompt=self.system_prompt,
            ),
        )


class BuilderAgent(_RoleAgent):
    role = "builder"

    @property
    def settings(self) -> RoleConfig:
        return self._agents.builder

    @property
    def system_prompt(self) -> str:
        return self._prompts.builder_system

    @property
    def summary_focus(self) -> str:
        return self._prompts.builder_summary_focus

    async def generate(
        self,
        project: Project,
        requirements: str,
        history: Sequence[HistoryMessage] = (),
    ) -> LLMResponse:
        return await self._run(
            lambda h: build_builder_prompt(self._prompts, project, requirements, h),
            history,
        )


class JudgeAgent(_RoleAgent):
    role = "judge"

    @property
    def settings(self) -> RoleConfig:
        return self._agents.judge

    @property
    def system_prompt(self) -> str:
        return self._prompts.judge_system

    @property
    def summary_focus(self) -> str:
        return self._prompts.judge_summary_focus

    async def evaluate(
        self,
        project: Project,
        requirements: str,
        builder_response: str,
        history: Sequence[HistoryMessage] = (),
    ) -> LLMResponse:
        return await self._run(
            lambda h: build_judge_prompt(self._prompts, project, requirements, builder_response, h),
            history,
        )

    @staticmethod
    def extract_score(text: str) -> float | None:
        return extract_score(text)
