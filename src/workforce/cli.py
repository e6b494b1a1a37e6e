"""Command line interface for the workforce runtime."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .config import WorkforceConfig
from .errors import WorkforceError
from .events import ProgressEvent, ProgressStage
from .orchestrator import Workforce
from .tasks.base import AgentKind, Task
from .tasks.planner import ExecutionPlan, TaskPlanner
from .tasks.synthesizer import SynthesizedOutcome

app = typer.Typer(help="Multi-agent workforce CLI")
console = Console()

ConfigOption = typer.Option(
    None, "--config", "-c", envvar="WORKFORCE_CONFIG", help="Path to YAML configuration"
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_config(path: Optional[Path]) -> WorkforceConfig:
    if path is None:
        return WorkforceConfig()
    return WorkforceConfig.from_file(path)


def _build_task(
    content: str, task_type: Optional[str], agents: Optional[List[str]], sequential: bool
) -> Task:
    try:
        return Task.create(content, type=task_type, agents=agents or None, parallel=not sequential)
    except ValueError as exc:
        valid = ", ".join(kind.value for kind in AgentKind)
        raise typer.BadParameter(f"{exc} (expected one of: {valid})") from exc


def _render_plan(plan: ExecutionPlan) -> None:
    table = Table(title="Execution Plan", show_lines=True)
    table.add_column("Order")
    table.add_column("Agent")
    table.add_column("Mode")
    for index, kind in enumerate(plan.agent_kinds, start=1):
        table.add_row(str(index), kind.value, plan.mode.value)
    console.print(table)
    for dep in plan.dependencies:
        console.print(f"[dim]dependency:[/] {dep.source.value} -> {dep.target.value}")


def _render_outcome(outcome: SynthesizedOutcome, show_artifacts: bool) -> None:
    table = Table(title="Agent results", show_lines=True)
    table.add_column("Agent")
    table.add_column("Status")
    table.add_column("Summary / Error")
    for kind, result in outcome.agent_results.items():
        colour = "green" if result.ok else "red"
        table.add_row(
            kind.value,
            f"[{colour}]{result.status.value}[/]",
            (result.summary or result.output or "") if result.ok else (result.error or ""),
        )
    console.print(table)
    console.rule("Summary")
    console.print(outcome.summary)
    if show_artifacts:
        for artifact in outcome.artifacts:
            console.rule(f"Artifact: {artifact.type}")
            console.print(artifact.fields.get("content") or artifact.to_dict())


@app.command()
def run(
    content: str = typer.Argument(..., help="Task description"),
    config_path: Optional[Path] = ConfigOption,
    task_type: Optional[str] = typer.Option(None, "--type", help="Route directly to one agent"),
    agent: Optional[List[str]] = typer.Option(None, "--agent", "-a", help="Agents to use"),
    sequential: bool = typer.Option(False, help="Run agents one at a time"),
    as_json: bool = typer.Option(False, "--json", help="Print the outcome as JSON"),
    show_artifacts: bool = typer.Option(False, help="Print artifact contents"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Plan and execute a task with the agent workforce."""

    _configure_logging(verbose)
    task = _build_task(content, task_type, agent, sequential)
    try:
        config = _load_config(config_path)
        outcome = asyncio.run(_run_with_progress(config, task, quiet=as_json))
    except WorkforceError as exc:
        console.print(f"[bold red]Task failed:[/] {exc}")
        raise typer.Exit(code=1) from exc

    if as_json:
        console.print_json(json.dumps(outcome.to_dict(), default=str))
    else:
        _render_outcome(outcome, show_artifacts)


async def _run_with_progress(config: WorkforceConfig, task: Task, quiet: bool) -> SynthesizedOutcome:
    async with Workforce(config) as workforce:
        plan = workforce.plan(task)
        if quiet:
            return await workforce.run(task)
        _render_plan(plan)
        progress = Progress(
            SpinnerColumn(style="cyan"),
            TextColumn("[progress.description]{task.description}"),
            TextColumn("{task.fields[status]}"),
            console=console,
            transient=False,
        )
        rows: Dict[str, int] = {}

        def observe(event: ProgressEvent) -> None:
            if event.agent is None:
                return
            if event.stage is ProgressStage.AGENT_STARTING:
                progress.start_task(rows[event.agent])
                progress.update(rows[event.agent], status="[cyan]working...")
            elif event.stage is ProgressStage.AGENT_COMPLETE:
                progress.update(rows[event.agent], status="[green]completed")
            elif event.stage is ProgressStage.AGENT_FAILED:
                progress.update(rows[event.agent], status=f"[red]failed: {event.message}")

        with progress:
            for kind in plan.agent_kinds:
                rows[kind.value] = progress.add_task(kind.value, status="[yellow]pending", start=False)
            return await workforce.run(task, observer=observe)


@app.command()
def plan(
    content: str = typer.Argument(..., help="Task description"),
    task_type: Optional[str] = typer.Option(None, "--type", help="Route directly to one agent"),
    agent: Optional[List[str]] = typer.Option(None, "--agent", "-a", help="Agents to use"),
    sequential: bool = typer.Option(False, help="Run agents one at a time"),
) -> None:
    """Show which agents a task would use, without calling any provider."""

    task = _build_task(content, task_type, agent, sequential)
    _render_plan(TaskPlanner().plan(task))


@app.command()
def agents(config_path: Optional[Path] = ConfigOption) -> None:
    """List the configured agents."""

    try:
        config = _load_config(config_path)
        rows = asyncio.run(_list_agents(config))
    except WorkforceError as exc:
        console.print(f"[bold red]Invalid configuration:[/] {exc}")
        raise typer.Exit(code=1) from exc
    table = Table(title="Agents", show_lines=True)
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Description")
    table.add_column("Enabled")
    for row in rows:
        table.add_row(str(row["id"]), str(row["name"]), str(row["description"]), "yes" if row["enabled"] else "no")
    console.print(table)


async def _list_agents(config: WorkforceConfig) -> List[Dict[str, object]]:
    async with Workforce(config) as workforce:
        return workforce.list_agents()


@app.command()
def providers(
    config_path: Optional[Path] = ConfigOption,
    check: bool = typer.Option(False, help="Send a short request to each configured provider"),
) -> None:
    """Show which providers have credentials, optionally testing each one."""

    try:
        config = _load_config(config_path)
        rows = asyncio.run(_provider_rows(config, check))
    except WorkforceError as exc:
        console.print(f"[bold red]Invalid configuration:[/] {exc}")
        raise typer.Exit(code=1) from exc
    table = Table(title="Providers", show_lines=True)
    table.add_column("Provider")
    table.add_column("Role")
    table.add_column("Credential")
    if check:
        table.add_column("Check")
    for row in rows:
        table.add_row(*row)
    console.print(table)


async def _provider_rows(config: WorkforceConfig, check: bool) -> List[List[str]]:
    settings = config.providers
    rows: List[List[str]] = []
    async with Workforce(config) as workforce:
        available = set(workforce.available_providers())
        for name in workforce.client.providers:
            if name == settings.default:
                role = "default"
            elif name in settings.fallback:
                role = f"fallback #{settings.fallback.index(name) + 1}"
            else:
                role = ""
            row = [name, role, "[green]configured" if name in available else "[dim]missing"]
            if check:
                if name in available:
                    result = await workforce.test_connection(name)
                    row.append(
                        f"[green]ok ({result['model']})" if result["success"] else f"[red]{result['error']}"
                    )
                else:
                    row.append("[dim]skipped")
            rows.append(row)
    return rows


@app.command()
def serve(
    config_path: Optional[Path] = ConfigOption,
    host: str = typer.Option("127.0.0.1", help="Interface to bind"),
    port: int = typer.Option(8000, help="Port to listen on"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Start the HTTP/websocket API."""

    import uvicorn

    from .web.server import create_app

    _configure_logging(verbose)
    try:
        workforce = Workforce(_load_config(config_path))
    except WorkforceError as exc:
        console.print(f"[bold red]Invalid configuration:[/] {exc}")
        raise typer.Exit(code=1) from exc
    uvicorn.run(create_app(workforce), host=host, port=port, log_config=None)


if __name__ == "__main__":  # pragma: no cover
    app()
