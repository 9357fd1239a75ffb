"""Rich console output and markdown transcripts for debates and conversations."""

import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from mcp_system.models import ConversationDetail, DebateDetail, DebateEntry, Message

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_ROLE_STYLES = {"builder": "cyan", "judge": "magenta", "system": "dim", "user": "white"}


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _preview(content: str, words: int = 50) -> str:
    """Return the first N words of content."""
    all_words = content.split()
    preview = " ".join(all_words[:words])
    if len(all_words) > words:
        preview += "..."
    return preview


def print_debate_entry(entry: DebateEntry, max_turns: int) -> None:
    model = entry.metadata.get("model", entry.agent)
    console.print(
        Panel(
            Markdown(entry.content),
            title=f"[bold]Turn {entry.turn_number}/{max_turns}: {entry.agent}[/bold] ({model})",
            subtitle=f"{entry.token_count} tokens",
            border_style="cyan" if entry.turn_number % 2 else "magenta",
        )
    )


def print_message(message: Message) -> None:
    subtitle = f"{message.token_count} tokens"
    score = message.metadata.get("score")
    if message.role == "judge":
        subtitle += f" | score: {score if score is not None else 'n/a'}"
    console.print(
        Panel(
            Text(_preview(message.content, words=120) if message.role != "system" else message.content),
            title=f"[bold]{message.role.upper()}[/bold] ({message.llm_provider or 'user'})",
            subtitle=subtitle,
            border_style=_ROLE_STYLES.get(message.role, "white"),
        )
    )


def print_debate_summary(detail: DebateDetail) -> None:
    debate = detail.debate
    console.print(Rule(f"[bold green]Debate {debate.status}[/bold green]"))
    total = sum(e.token_count for e in detail.entries)
    console.print(
        Text(
            f"Topic: {debate.topic} | {debate.agent_a} vs {debate.agent_b} | "
            f"Turns: {len(detail.entries)}/{debate.max_turns} | Tokens: {total}",
            style="dim",
        )
    )


def _write(lines: list[str], output_dir: Path, title: str) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filepath = output_dir / f"{timestamp}_{_slug(title) or 'transcript'}.md"
    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Transcript saved to: %s", filepath)
    return filepath


def save_debate_transcript(detail: DebateDetail, output_dir: Path) -> Path:
    """Save the debate and all of its entries as a markdown file.

    Returns:
        Path to the saved file.
    """
    debate = detail.debate
    lines: list[str] = [
        f"# Debate: {debate.title}",
        "",
        f"**Topic:** {debate.topic}",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Agent A:** {debate.agent_a}",
        f"**Agent B:** {debate.agent_b}",
        f"**Turns:** {len(detail.entries)}/{debate.max_turns}",
        f"**Status:** {debate.status}",
        "",
        "---",
        "",
    ]
    for entry in detail.entries:
        model = entry.metadata.get("model", entry.agent)
        lines.append(f"## Turn {entry.turn_number}: {entry.agent.title()} ({model})")
        lines.append("")
        lines.append(entry.content)
        lines.append("")
        lines.append(f"*Tokens: {entry.token_count}*")
        lines.append("")
    return _write(lines, output_dir, debate.title)


def save_conversation_transcript(detail: ConversationDetail, output_dir: Path) -> Path:
    conversation = detail.conversation
    lines: list[str] = [
        f"# Conversation: {conversation.title}",
        "",
        f"**Builder:** {conversation.builder_llm}",
        f"**Judge:** {conversation.judge_llm}",
        f"**Messages:** {len(detail.messages)}",
        "",
        "---",
        "",
    ]
    for message in detail.messages:
        lines.append(f"## {message.role.title()} ({message.llm_provider or 'user'})")
        lines.append("")
        lines.append(message.content)
        lines.append("")
        if message.role == "judge" and message.metadata.get("score") is not None:
            lines.append(f"*Score: {message.metadata['score']}/10*")
            lines.append("")
    return _write(lines, output_dir, conversation.title)
