"""Prompt construction for the Builder, the Judge and debate turns.

Pure functions over PromptsConfig templates: no I/O, no provider calls.
"""

from collections.abc import Sequence

from config.config_loader import PromptsConfig
from mcp_system.models import Debate, DebateEntry, HistoryMessage, Project


def format_history(messages: Sequence[HistoryMessage]) -> str:
    """Render messages as 'ROLE: content' blocks separated by blank lines."""
    return "\n\n".join(f"{m.role.upper()}: {m.content}" for m in messages)


def build_builder_prompt(
    prompts: PromptsConfig,
    project: Project,
    requirements: str,
    history: Sequence[HistoryMessage],
) -> str:
    history_section = ""
    if history:
        history_section = f"{prompts.builder_history_header}\n{format_history(history)}"
    return prompts.builder.format(
        project_name=project.name,
        project_description=project.description,
        requirements=requirements,
        history_section=history_section,
    ).strip()


def build_judge_prompt(
    prompts: PromptsConfig,
    project: Project,
    requirements: str,
    builder_response: str,
    history: Sequence[HistoryMessage],
) -> str:
    """Judge prompt; the last history entry is the proposal itself and is left out."""
    history_section = ""
    if len(history) > 1:
        history_section = f"{prompts.judge_history_header}\n{format_history(history[:-1])}"
    return prompts.judge.format(
        project_name=project.name,
        project_description=project.description,
        requirements=requirements,
        history_section=history_section,
        builder_response=builder_response,
    ).strip()


def build_summary_prompt(prompts: PromptsConfig, messages: Sequence[HistoryMessage], focus: str) -> str:
    return prompts.summary.format(focus=focus, history=format_history(messages)).strip()


def format_debate_history(entries: Sequence[DebateEntry], excerpt_chars: int = 300) -> str:
    return "\n\n".join(
        f"[Turno {e.turn_number}] {e.agent.upper()}: {e.content[:excerpt_chars]}..."
        for e in entries
    )


def build_debate_prompt(
    prompts: PromptsConfig,
    debate: Debate,
    entries: Sequence[DebateEntry],
    excerpt_chars: int = 300,
) -> str:
    """Pick the opening, closing or middle template for debate.current_turn.

    Turn 1 always gets the opening template, even when max_turns is 1.
    """
    turn = debate.current_turn
    if turn == 1:
        return prompts.debate_opening.format(topic=debate.topic).strip()

    template = prompts.debate_closing if turn == debate.max_turns else prompts.debate_middle
    return template.format(
        turn=turn,
        max_turns=debate.max_turns,
        topic=debate.topic,
        history=format_debate_history(entries, excerpt_chars),
    ).strip()
