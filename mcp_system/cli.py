"""Click CLI: runs debates and Builder/Judge cycles locally against the real vendors."""

import asyncio
import logging
import os
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from config.config_loader import AppConfig, load_config
from mcp_system.api import handle
from mcp_system.conversation import ConversationOrchestrator
from mcp_system.debate import DebateOrchestrator
from mcp_system.errors import MCPError, NotFoundError
from mcp_system.models import Project
from mcp_system.output import (
    print_debate_entry,
    print_debate_summary,
    print_message,
    save_conversation_transcript,
    save_debate_transcript,
)
from mcp_system.projects import ProjectService
from mcp_system.storage import InMemoryStorage
from mcp_system.usage import StorageUsageRecorder
from mcp_system.users import UserService

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

LOCAL_USER_ID = "local"
LOCAL_USER_EMAIL = "local@localhost"


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _keys_from_env(config: AppConfig) -> dict[str, str]:
    """Read each provider's API key from its configured environment variable."""
    keys: dict[str, str] = {}
    for name, model_cfg in config.models.items():
        key = os.environ.get(model_cfg.api_key_env, "").strip()
        if key:
            keys[name] = key
            logger.info("Provider available: %s", name)
        else:
            logger.info("Provider skipped (no API key): %s, set %s in .env", name, model_cfg.api_key_env)
    return keys


async def _bootstrap(storage: InMemoryStorage, config: AppConfig, project_name: str, description: str) -> Project:
    """Ensure the local user exists with env API keys and create a project for this run."""
    users = UserService(storage, set(config.models))
    try:
        await users.get_profile(LOCAL_USER_ID)
    except NotFoundError:
        await users.create_user(LOCAL_USER_EMAIL, "Local user", user_id=LOCAL_USER_ID)
    await users.update_api_keys(LOCAL_USER_ID, _keys_from_env(config))
    return await ProjectService(storage).create_project(LOCAL_USER_ID, project_name, description)


async def _run_debate(
    storage: InMemoryStorage,
    config: AppConfig,
    topic: str,
    title: str | None,
    agent_a: str | None,
    agent_b: str | None,
    turns: int | None,
    output_dir: Path,
) -> bool:
    project = await _bootstrap(storage, config, "CLI debates", topic)
    orchestrator = DebateOrchestrator(storage, config, usage=StorageUsageRecorder(storage))

    created = await handle(
        lambda: orchestrator.create_debate(LOCAL_USER_ID, project.id, title, topic, agent_a, agent_b, turns),
        key="debate",
    )
    if not created.ok:
        console.print(f"[bold red]Error:[/bold red] {escape(created.body['error'])}")
        return False
    debate_id = created.body["debate"]["id"]
    max_turns = created.body["debate"]["max_turns"]

    console.print(
        f"\n[bold cyan]MCP Debate[/bold cyan] | {created.body['debate']['agent_a']} vs "
        f"{created.body['debate']['agent_b']}, {max_turns} turns"
    )
    console.print(f"Topic: [italic]{escape(topic[:80])}{'...' if len(topic) > 80 else ''}[/italic]\n")

    ok = True
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Generating turns...", total=None)
        for turn in range(1, max_turns + 1):
            progress.update(task, description=f"Turn {turn}/{max_turns}...")
            try:
                result = await orchestrator.generate_next_turn(LOCAL_USER_ID, debate_id)
            except MCPError as exc:
                progress.print(f"[bold red]Turn {turn} failed:[/bold red] {escape(str(exc))}")
                ok = False
                break
            progress.print(f"[green]OK[/green] Turn {turn} ({result.entry.agent})")
            print_debate_entry(result.entry, max_turns)

    detail = await orchestrator.get_debate(LOCAL_USER_ID, debate_id)
    print_debate_summary(detail)
    saved = save_debate_transcript(detail, output_dir)
    console.print(f"\n[dim]Saved to: {saved}[/dim]")
    return ok


async def _run_build(
    storage: InMemoryStorage,
    config: AppConfig,
    requirements: str,
    name: str,
    builder: str | None,
    judge: str | None,
    rounds: int,
    switch_roles: bool,
    output_dir: Path,
) -> bool:
    orchestrator = ConversationOrchestrator(storage, config, usage=StorageUsageRecorder(storage))
    try:
        project = await _bootstrap(storage, config, name, requirements)
        conversation = await orchestrator.create_conversation(
            LOCAL_USER_ID, project.id, builder_llm=builder, judge_llm=judge
        )
        await orchestrator.add_message(LOCAL_USER_ID, conversation.id, "user", requirements)
    except MCPError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        return False

    console.print(
        f"\n[bold cyan]MCP Build[/bold cyan] | builder {conversation.builder_llm}, "
        f"judge {conversation.judge_llm}, {rounds} round(s)\n"
    )

    ok = True
    try:
        for round_num in range(1, rounds + 1):
            with console.status(f"Round {round_num}: builder working..."):
                print_message(await orchestrator.generate_builder_response(LOCAL_USER_ID, conversation.id))
            with console.status(f"Round {round_num}: judge evaluating..."):
                print_message(await orchestrator.generate_judge_evaluation(LOCAL_USER_ID, conversation.id))
            if switch_roles and round_num < rounds:
                await orchestrator.switch_roles(LOCAL_USER_ID, conversation.id)
    except MCPError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        ok = False

    detail = await orchestrator.get_conversation(LOCAL_USER_ID, conversation.id)
    saved = save_conversation_transcript(detail, output_dir)
    console.print(f"\n[dim]Saved to: {saved}[/dim]")
    return ok


@click.group()
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--state", "state_path", default=None, type=click.Path(dir_okay=False),
              help="JSON file to load storage from and save it back to")
@click.option("--output", "output_path", default=None, help="Transcript directory (default: from config)")
@click.pass_context
def main(ctx: click.Context, verbose: bool, state_path: str | None, output_path: str | None) -> None:
    """MCP System -- Builder/Judge collaboration and two-agent debates.

    \b
    Examples:
      mcp-system debate "AI regulation" --turns 2
      mcp-system debate "Monolith or microservices?" --agent-a chatgpt --agent-b claude
      mcp-system build "Landing page with a signup form" --rounds 2 --switch-roles
    """
    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except FileNotFoundError as exc:
        console.print(f"[bold red]Config error:[/bold red] {escape(str(exc))}")
        sys.exit(1)

    state = Path(state_path) if state_path else None
    ctx.obj = {
        "config": config,
        "state": state,
        "storage": InMemoryStorage.load(state) if state else InMemoryStorage(),
        "output_dir": Path(output_path) if output_path else config.defaults.output_dir,
    }


def _finish(ctx: click.Context, ok: bool) -> None:
    if ctx.obj["state"] is not None:
        ctx.obj["storage"].dump(ctx.obj["state"])
    if not ok:
        sys.exit(1)


@main.command()
@click.argument("topic")
@click.option("--turns", default=None, type=int, help="Number of turns: 2, 4, 6 or 8 (default: from config)")
@click.option("--agent-a", default=None, help="Provider for odd turns (default: from config)")
@click.option("--agent-b", default=None, help="Provider for even turns (default: from config)")
@click.option("--title", default=None, help="Debate title (default: timestamp)")
@click.pass_context
def debate(
    ctx: click.Context,
    topic: str,
    turns: int | None,
    agent_a: str | None,
    agent_b: str | None,
    title: str | None,
) -> None:
    """Run a full debate on TOPIC."""
    ok = asyncio.run(
        _run_debate(
            storage=ctx.obj["storage"],
            config=ctx.obj["config"],
            topic=topic,
            title=title,
            agent_a=agent_a,
            agent_b=agent_b,
            turns=turns,
            output_dir=ctx.obj["output_dir"],
        )
    )
    _finish(ctx, ok)


@main.command()
@click.argument("requirements")
@click.option("--name", default="CLI project", help="Project name")
@click.option("--rounds", default=1, type=click.IntRange(min=1), help="Builder/Judge cycles")
@click.option("--builder", default=None, help="Builder provider (default: claude)")
@click.option("--judge", default=None, help="Judge provider (default: chatgpt)")
@click.option("--switch-roles", is_flag=True, help="Swap builder and judge between rounds")
@click.pass_context
def build(
    ctx: click.Context,
    requirements: str,
    name: str,
    rounds: int,
    builder: str | None,
    judge: str | None,
    switch_roles: bool,
) -> None:
    """Run Builder/Judge cycles for REQUIREMENTS."""
    ok = asyncio.run(
        _run_build(
            storage=ctx.obj["storage"],
            config=ctx.obj["config"],
            requirements=requirements,
            name=name,
            builder=builder,
            judge=judge,
            rounds=rounds,
            switch_roles=switch_roles,
            output_dir=ctx.obj["output_dir"],
        )
    )
    _finish(ctx, ok)


if __name__ == "__main__":
    main()
