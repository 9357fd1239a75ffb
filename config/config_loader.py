"""Load settings.yaml into typed dataclasses."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    max_tokens: int
    temperature: float
    timeout_sec: float | None = None
    default_system: str = ""


@dataclass
class RoleConfig:
    temperature: float
    max_tokens: int


@dataclass
class AgentConfig:
    builder: RoleConfig
    judge: RoleConfig
    summary_threshold: float = 0.8
    summary_temperature: float = 0.3
    summary_max_tokens: int = 500
    keep_recent: int = 2


@dataclass
class DebateDefaults:
    agent_a: str
    agent_b: str
    max_turns: int
    allowed_max_turns: list[int] = field(default_factory=lambda: [2, 4, 6, 8])
    excerpt_chars: int = 300
    temperature: float = 0.7
    max_tokens: int = 2000


@dataclass
class TokenConfig:
    default_model: str
    default_limit: int
    truncation_marker: str
    factors: dict[str, float] = field(default_factory=dict)
    limits: dict[str, int] = field(default_factory=dict)
    digest_header: str = "Resumen de la conversación anterior:"


@dataclass
class PromptsConfig:
    builder_system: str
    judge_system: str
    builder: str
    judge: str
    builder_history_header: str
    judge_history_header: str
    summary: str
    builder_summary_focus: str
    judge_summary_focus: str
    summary_prefix: str
    debate_system: str
    debate_opening: str
    debate_middle: str
    debate_closing: str


@dataclass
class DefaultsConfig:
    output_dir: Path


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    agents: AgentConfig
    debate: DebateDefaults
    tokens: TokenConfig
    prompts: PromptsConfig


def _role(raw: dict) -> RoleConfig:
    return RoleConfig(temperature=float(raw["temperature"]), max_tokens=int(raw["max_tokens"]))


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing, KeyError when a
    required section or key is absent.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw.get("defaults", {})
    defaults = DefaultsConfig(
        output_dir=Path(defaults_raw.get("output_dir", "./output")),
    )

    models: dict[str, ModelConfig] = {}
    for provider_name, model_raw in raw["models"].items():
        timeout = model_raw.get("timeout_sec")
        models[provider_name] = ModelConfig(
            name=provider_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            max_tokens=int(model_raw["max_tokens"]),
            temperature=float(model_raw["temperature"]),
            timeout_sec=float(timeout) if timeout is not None else None,
            default_system=str(model_raw.get("default_system", "")),
        )
        logger.debug("Model configured: %s -> %s", provider_name, model_raw["model"])

    agents_raw = raw["agents"]
    agents = AgentConfig(
        builder=_role(agents_raw["builder"]),
        judge=_role(agents_raw["judge"]),
        summary_threshold=float(agents_raw.get("summary_threshold", 0.8)),
        summary_temperature=float(agents_raw.get("summary_temperature", 0.3)),
        summary_max_tokens=int(agents_raw.get("summary_max_tokens", 500)),
        keep_recent=int(agents_raw.get("keep_recent", 2)),
    )

    debate_raw = raw["debate"]
    debate = DebateDefaults(
        agent_a=str(debate_raw["agent_a"]),
        agent_b=str(debate_raw["agent_b"]),
        max_turns=int(debate_raw["max_turns"]),
        allowed_max_turns=[int(n) for n in debate_raw.get("allowed_max_turns", [2, 4, 6, 8])],
        excerpt_chars=int(debate_raw.get("excerpt_chars", 300)),
        temperature=float(debate_raw.get("temperature", 0.7)),
        max_tokens=int(debate_raw.get("max_tokens", 2000)),
    )

    tokens_raw = raw["tokens"]
    tokens = TokenConfig(
        default_model=str(tokens_raw["default_model"]),
        default_limit=int(tokens_raw["default_limit"]),
        truncation_marker=str(tokens_raw["truncation_marker"]),
        factors={k: float(v) for k, v in tokens_raw.get("factors", {}).items()},
        limits={k: int(v) for k, v in tokens_raw.get("limits", {}).items()},
        digest_header=str(tokens_raw.get("digest_header", "Resumen de la conversación anterior:")),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        **{name: str(prompts_raw[name]) for name in PromptsConfig.__dataclass_fields__}
    )

    return AppConfig(
        defaults=defaults,
        models=models,
        agents=agents,
        debate=debate,
        tokens=tokens,
        prompts=prompts,
    )
