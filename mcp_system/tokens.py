"""Character-count token estimation, truncation and history compaction.

The estimate is the usual ~4 characters per token rule scaled by a per-model
factor. It is a heuristic, never a tokenizer: provider-reported usage is what
gets persisted on messages and debate entries.
"""

import logging
import math
from collections.abc import Sequence

from config.config_loader import TokenConfig
from mcp_system.models import HistoryMessage

logger = logging.getLogger(__name__)

_CHARS_PER_TOKEN = 4
_KEEP_RECENT = 2
_SUMMARY_SHARE = 0.2
_EXCERPT_CHARS = 100


class TokenEstimator:
    """Estimate, cap and compact text against per-model token budgets."""

    def __init__(self, config: TokenConfig) -> None:
        self._config = config

    @property
    def default_model(self) -> str:
        return self._config.default_model

    def factor(self, model: str | None = None) -> float:
        return self._config.factors.get(model or self.default_model, 1.0)

    def estimate(self, text: str | None, model: str | None = None) -> int:
        if not text:
            return 0
        raw = math.ceil(len(text) / _CHARS_PER_TOKEN)
        return math.ceil(raw * self.factor(model))

    def limit_for(self, model: str | None) -> int:
        return self._config.limits.get(model or "", self._config.default_limit)

    def exceeds(self, text: str, limit: int, model: str | None = None) -> bool:
        return self.estimate(text, model) > limit

    def truncate(self, text: str, limit: int, model: str | None = None) -> str:
        """Cut text so its estimate fits within limit, marking the cut.

        Room for the truncation marker is reserved inside the limit. When the
        limit cannot even hold the marker the text is cut without one.
        """
        if not self.exceeds(text, limit, model):
            return text

        factor = self.factor(model)
        marker = self._config.truncation_marker
        budget = limit - self.estimate(marker, model)
        if budget <= 0:
            return text[: max(0, math.floor(limit / factor * _CHARS_PER_TOKEN))]

        char_limit = math.floor(budget / factor * _CHARS_PER_TOKEN)
        return text[:char_limit] + marker

    def total(self, messages: Sequence[HistoryMessage], model: str | None = None) -> int:
        return sum(self.estimate(m.content, model) for m in messages)

    def optimize_history(
        self,
        messages: Sequence[HistoryMessage],
        limit: int,
        model: str | None = None,
    ) -> list[HistoryMessage]:
        """Compact a history into a digest of older turns plus the last two verbatim.

        No LLM call is made: every older message contributes its role and the
        first 100 characters of its content to the digest.
        """
        if not messages:
            return []

        if self.total(messages, model) <= limit:
            return list(messages)

        recent = list(messages[-_KEEP_RECENT:])
        older = messages[:-_KEEP_RECENT]
        available = limit - self.total(recent, model)
        summary_tokens = max(0, math.floor(available * _SUMMARY_SHARE))

        lines = [self._config.digest_header]
        for msg in older:
            lines.append(f"- {msg.role.upper()}: {msg.content[:_EXCERPT_CHARS]}...")
        summary = self.truncate("\n".join(lines) + "\n", summary_tokens, model)

        logger.debug(
            "History compacted: %d older messages into %d-token digest (limit %d)",
            len(older),
            self.estimate(summary, model),
            limit,
        )
        return [HistoryMessage(role="system", content=summary), *recent]
