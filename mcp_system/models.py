"""Dataclasses for projects, conversations, debates and LLM responses. No logic beyond row mapping."""

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from typing import Any

PROJECT_STATUSES = ("active", "archived", "completed")
MESSAGE_ROLES = ("user", "builder", "judge", "system")
DEBATE_ACTIVE = "active"
DEBATE_COMPLETED = "completed"
EVALUATION_CRITERIA = ("functionality", "codeQuality", "usability", "performance", "security")


class _Row:
    """Mixin mapping storage rows (plain dicts) to dataclasses and back."""

    @classmethod
    def from_row(cls, row: dict[str, Any]):
        known = {f.name for f in fields(cls)}  # type: ignore[arg-type]
        return cls(**{k: v for k, v in row.items() if k in known})

    def to_row(self) -> dict[str, Any]:
        return asdict(self)  # type: ignore[call-overload]


@dataclass
class LLMResponse:
    """Normalized result of one vendor chat-completion call."""

    content: str
    model: str
    provider: str          # "claude" or "chatgpt"
    prompt_tokens: int
    completion_tokens: int
    response_time_ms: int

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass
class GenerationOptions:
    """Per-call overrides; None means use the provider default."""

    model: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None
    system_prompt: str | None = None


@dataclass
class HistoryMessage:
    """A role/content pair as fed into prompt construction."""

    role: str
    content: str


@dataclass
class Project(_Row):
    id: str
    name: str
    owner_id: str
    description: str = ""
    collaborators: list[str] = field(default_factory=list)
    status: str = "active"
    config: dict[str, Any] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def is_member(self, user_id: str) -> bool:
        return self.owner_id == user_id or user_id in (self.collaborators or [])


@dataclass
class Conversation(_Row):
    id: str
    project_id: str
    title: str
    builder_llm: str
    judge_llm: str
    status: str = "active"
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Message(_Row):
    id: str
    conversation_id: str
    role: str              # one of MESSAGE_ROLES
    content: str
    llm_provider: str | None = None
    token_count: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


@dataclass
class Debate(_Row):
    id: str
    project_id: str
    title: str
    topic: str
    agent_a: str
    agent_b: str
    max_turns: int
    current_turn: int = 1
    status: str = DEBATE_ACTIVE
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_finished(self) -> bool:
        return self.current_turn > self.max_turns

    def agent_for_turn(self, turn: int) -> str:
        return self.agent_a if turn % 2 == 1 else self.agent_b


@dataclass
class DebateEntry(_Row):
    id: str
    debate_id: str
    agent: str
    turn_number: int
    content: str
    token_count: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


@dataclass
class Evaluation(_Row):
    id: str
    conversation_id: str
    message_id: str
    feedback: str
    score: float | None = None
    criteria: dict[str, float | None] = field(
        default_factory=lambda: {name: None for name in EVALUATION_CRITERIA}
    )
    created_at: datetime | None = None


@dataclass
class User(_Row):
    id: str
    email: str
    full_name: str = ""
    role: str = "user"
    api_keys: dict[str, str] = field(default_factory=dict)
    preferences: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class TokenUsage:
    project_id: str
    provider: str
    model: str
    prompt_tokens: int
    completion_tokens: int
    conversation_id: str | None = None
    debate_id: str | None = None

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass
class DebateTurnResult:
    entry: DebateEntry
    is_completed: bool


@dataclass
class DebateDetail:
    debate: Debate
    entries: list[DebateEntry] = field(default_factory=list)


@dataclass
class ConversationDetail:
    conversation: Conversation
    messages: list[Message] = field(default_factory=list)
