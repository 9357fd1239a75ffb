"""Tests for mcp_system/agents.py."""

import pytest

from mcp_system.agents import BuilderAgent, JudgeAgent, _RoleAgent, extract_score
from mcp_system.models import HistoryMessage, Project
from mcp_system.tokens import TokenEstimator
from tests.conftest import MockProvider, make_response


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Puntuación: 7/10", 7.0),
        ("Mi evaluación: 6.5 de 10 en general", 6.5),
        ("Calificación 9/10", 9.0),
        ("Por todo esto le doy un 10 de 10.", 10.0),
        ("Le otorgo una 8/10", 8.0),
        ("Asigno un 5 de 10 a esta propuesta", 5.0),
        ("En resumen: 4/10", 4.0),
        ("PUNTUACIÓN: 3/10", 3.0),
    ],
)
def test_extract_score_patterns(text, expected):
    assert extract_score(text) == expected


def test_extract_score_no_pattern():
    assert extract_score("Buen trabajo, pero faltan pruebas.") is None
    assert extract_score("") is None


def test_extract_score_out_of_range():
    assert extract_score("Puntuación: 15/10") is None
    assert extract_score("15/10") is None


def test_judge_exposes_extract_score():
    assert JudgeAgent.extract_score("Puntuación: 2/10") == 2.0


@pytest.fixture
def project() -> Project:
    return Project(id="p1", name="Landing", owner_id="u1", description="Página de aterrizaje")


def _agent(cls, provider, app_config):
    return cls(provider, app_config.prompts, app_config.agents, TokenEstimator(app_config.tokens))


def test_role_agent_requires_role_members(app_config):
    class Incomplete(_RoleAgent):
        role = "reviewer"

    with pytest.raises(TypeError):
        _agent(_RoleAgent, MockProvider("claude"), app_config)
    with pytest.raises(TypeError, match="summary_focus"):
        _agent(Incomplete, MockProvider("claude"), app_config)


async def test_builder_uses_role_settings(app_config, project):
    provider = MockProvider("claude", "<html></html>")
    response = await _agent(BuilderAgent, provider, app_config).generate(project, "Formulario de contacto")

    assert response.content == "<html></html>"
    prompt, options = provider.generate.call_args.args
    assert "Formulario de contacto" in prompt
    assert options.temperature == 0.7
    assert options.max_tokens == 2000
    assert options.system_prompt == app_config.prompts.builder_system


async def test_judge_uses_role_settings(app_config, project):
    provider = MockProvider("chatgpt", "Puntuación: 6/10")
    await _agent(JudgeAgent, provider, app_config).evaluate(project, "Formulario", "<form></form>")

    prompt, options = provider.generate.call_args.args
    assert "<form></form>" in prompt
    assert options.temperature == 0.5
    assert options.system_prompt == app_config.prompts.judge_system


async def test_short_history_is_never_summarized(app_config):
    provider = MockProvider("claude")
    history = [HistoryMessage("user", "x" * 50000) for _ in range(4)]
    result = await _agent(BuilderAgent, provider, app_config).summarize_history(history)
    assert result == history
    provider.generate.assert_not_awaited()


async def test_summarize_keeps_recent_and_prefixes_summary(app_config):
    provider = MockProvider("claude", "Resumen breve")
    history = [HistoryMessage("user" if n % 2 else "builder", f"mensaje {n}") for n in range(6)]
    result = await _agent(BuilderAgent, provider, app_config).summarize_history(history)

    assert len(result) == 3
    assert result[0].role == "system"
    assert result[0].content == f"{app_config.prompts.summary_prefix}Resumen breve"
    assert result[1:] == history[-2:]
    _, options = provider.generate.call_args.args
    assert options.temperature == 0.3
    assert options.max_tokens == 500
    assert options.system_prompt is None


async def test_large_prompt_triggers_summary_before_generation(app_config, project):
    provider = MockProvider("claude")
    provider.generate.side_effect = [
        make_response("claude", "Resumen"),
        make_response("claude", "<main></main>"),
    ]
    history = [HistoryMessage("user", "z" * 2000) for _ in range(6)]

    response = await _agent(BuilderAgent, provider, app_config).generate(project, "Inicio", history)

    assert response.content == "<main></main>"
    assert provider.generate.await_count == 2
    final_prompt = provider.generate.call_args.args[0]
    assert "RESUMEN DE CONVERSACIÓN PREVIA: Resumen" in final_prompt
    assert final_prompt.count("z" * 2000) == 2


async def test_small_prompt_skips_summary(app_config, project):
    provider = MockProvider("claude")
    history = [HistoryMessage("user", "corto") for _ in range(6)]
    await _agent(BuilderAgent, provider, app_config).generate(project, "Inicio", history)
    assert provider.generate.await_count == 1
