"""duet CLI — Typer + Rich terminal interface.

Commands: tasks, route, run, visual, metrics, feedback, config.
Router state (config and performance metrics) is read from and written
to the state location given by --state, $DUET_STATE, or ~/.duet/state.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, Optional, TypeVar

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from duet import __version__
from duet.execution.coordinator import DualProviderError
from duet.keys import default_state_path, load_keys_env, missing_keys
from duet.persistence.database import open_store
from duet.providers.registry import build_adapters
from duet.router import Router
from duet.schemas.consensus import MultiProviderInsight
from duet.schemas.execution import CreativeBrief, ExecutionOutcome, RoutingOptions
from duet.schemas.tasks import ProviderId
from duet.tasks.registry import load_tasks

# Load API keys from ~/.duet/keys.env and .env on startup
load_keys_env()

console = Console()

T = TypeVar("T")

# ── App and sub-apps ─────────────────────────────────────────────

app = typer.Typer(
    name="duet",
    help="Route analysis tasks across two AI providers and merge their answers.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(
    name="config",
    help="Show or change the router configuration.",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"duet {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    state: Optional[Path] = typer.Option(
        None, "--state", "-s",
        help="State directory, or a .db file for SQLite (default: $DUET_STATE or ~/.duet/state)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log routing details"),
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """duet — task routing and consensus across two AI providers."""
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = {"state": state or default_state_path()}


# ── Helpers ──────────────────────────────────────────────────────


def _with_router(
    ctx: typer.Context,
    action: Callable[[Router], Awaitable[T]],
    *,
    check_keys: bool = False,
) -> T:
    """Open the state store, build a router, run ``action``, close the store.

    With ``check_keys``, warn about provider API keys that are not set.
    """
    adapters = build_adapters()
    if check_keys:
        for name in missing_keys(a.config.api_key_env for a in adapters.values()):
            console.print(f"[yellow]Warning:[/yellow] {name} is not set")

    async def _run() -> T:
        store = await open_store(ctx.obj["state"])
        try:
            router = await Router.open(store, adapters)
            return await action(router)
        finally:
            await store.close()

    return asyncio.run(_run())


def _parse_provider(value: str | None) -> ProviderId | None:
    if value is None:
        return None
    try:
        return ProviderId(value.lower())
    except ValueError:
        choices = ", ".join(p.value for p in ProviderId)
        console.print(f"[red]Unknown provider:[/red] '{value}' (choose from {choices})")
        raise typer.Exit(1) from None


def _load_payload(payload: str | None, payload_file: Path | None) -> dict[str, Any]:
    if payload_file is not None:
        try:
            payload = payload_file.read_text(encoding="utf-8")
        except OSError as e:
            console.print(f"[red]Cannot read payload file:[/red] {escape(str(e))}")
            raise typer.Exit(1) from None
    if not payload:
        return {}
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        console.print(f"[red]Payload is not valid JSON:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None
    if not isinstance(data, dict):
        console.print("[red]Payload must be a JSON object[/red]")
        raise typer.Exit(1)
    return data


def _display_outcome(outcome: ExecutionOutcome) -> None:
    title = f"{outcome.provider_id.value} · {outcome.task_id}"
    if not outcome.succeeded:
        console.print(Panel(
            f"[red]{escape(outcome.error_detail or '')}[/red]",
            title=f"[red]✗ {title}[/red]",
            border_style="red",
        ))
        return

    body = escape(outcome.analysis_text.strip()) or "[dim](empty analysis)[/dim]"
    if outcome.recommendations:
        body += "\n\n[bold]Recommendations[/bold]\n" + "\n".join(
            f"  • {escape(r)}" for r in outcome.recommendations
        )
    body += (
        f"\n\n[dim]confidence {outcome.confidence:.2f} · "
        f"${outcome.cost_incurred:.4f} · {outcome.tokens_used} tokens · "
        f"{outcome.response_time_ms:.0f}ms[/dim]"
    )
    console.print(Panel(body, title=f"[green]✓ {title}[/green]", border_style="green"))


def _display_insight(insight: MultiProviderInsight) -> None:
    for outcome in (insight.quality, insight.fast):
        if outcome is not None:
            _display_outcome(outcome)
    for provider, detail in insight.failures.items():
        console.print(f"[red]✗ {provider.value} failed:[/red] {escape(detail)}")

    costs = insight.cost_comparison
    if insight.consensus is None:
        console.print("[yellow]No consensus: both providers must succeed.[/yellow]")
        return

    consensus = insight.consensus
    lines = [
        f"Agreement:  {consensus.agreement:.2f}",
        f"Confidence: {consensus.confidence:.2f}",
        f"Cost:       quality ${costs.cost_a:.4f} · fast ${costs.cost_b:.4f} "
        f"(Δ ${costs.delta:.4f})",
    ]
    if consensus.merged_recommendations:
        lines.append("")
        lines.extend(f"  • {escape(r.label)}" for r in consensus.merged_recommendations)
    console.print(Panel("\n".join(lines), title="Consensus", border_style="cyan"))


# ── duet tasks ───────────────────────────────────────────────────


@app.command()
def tasks() -> None:
    """Show the task catalogue."""
    registry = load_tasks()

    table = Table(title="Task Catalogue", show_lines=True)
    table.add_column("Task", style="bold cyan")
    table.add_column("Name")
    table.add_column("Complexity")
    table.add_column("Primary")
    table.add_column("Fallback", style="dim")
    table.add_column("Factor", justify="right")
    table.add_column("Focus", style="dim")

    for task in registry:
        table.add_row(
            task.id,
            task.name,
            task.complexity.value,
            task.primary_provider.value,
            task.fallback_provider.value if task.fallback_provider else "—",
            f"{task.cost_efficiency_factor:.1f}",
            task.focus_area.value,
        )

    console.print(table)
    console.print(f"\n[dim]{len(registry)} tasks registered[/dim]")


# ── duet route ───────────────────────────────────────────────────


@app.command()
def route(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task id from the catalogue"),
    force: str = typer.Option(None, "--force", "-f", help="Force a provider"),
    cost_priority: Optional[bool] = typer.Option(
        None, "--cost-priority/--no-cost-priority",
        help="Weight cost more heavily (default: config cost_optimization)",
    ),
    quality_priority: Optional[bool] = typer.Option(
        None, "--quality-priority/--no-quality-priority",
        help="Add a confidence bonus (default: config quality_first)",
    ),
) -> None:
    """Show which provider would handle a task, and why."""
    options = RoutingOptions(
        force_provider=_parse_provider(force),
        cost_priority=cost_priority,
        quality_priority=quality_priority,
    )

    async def _route(router: Router):
        return router.route(task_id, options)

    decision = _with_router(ctx, _route)
    console.print(f"[bold]{task_id}[/bold] → [bold cyan]{decision.provider.value}[/bold cyan]")
    console.print(f"[dim]{decision.reason.value}: {decision.rationale}[/dim]")


# ── duet run ─────────────────────────────────────────────────────


@app.command()
def run(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task id from the catalogue"),
    payload: str = typer.Option(None, "--payload", "-p", help="Task data as a JSON object"),
    payload_file: Path = typer.Option(None, "--payload-file", help="Read task data from a JSON file"),
    both: bool = typer.Option(False, "--both", "-b", help="Run on both providers and merge"),
    no_consensus: bool = typer.Option(False, "--no-consensus", help="Skip merging with --both"),
    force: str = typer.Option(None, "--force", "-f", help="Force a provider (single run)"),
) -> None:
    """Run a task and show the analysis."""
    data = _load_payload(payload, payload_file)

    if both:
        async def _run_both(router: Router) -> MultiProviderInsight:
            return await router.get_multi_provider_insight(
                task_id, data, include_consensus=not no_consensus,
            )

        try:
            insight = _with_router(ctx, _run_both, check_keys=True)
        except DualProviderError as e:
            console.print(f"[red]Both providers failed:[/red] {escape(str(e))}")
            raise typer.Exit(1) from None
        _display_insight(insight)
        return

    options = RoutingOptions(force_provider=_parse_provider(force))

    async def _run_single(router: Router) -> ExecutionOutcome:
        return await router.get_single_insight(task_id, data, options)

    outcome = _with_router(ctx, _run_single, check_keys=True)
    _display_outcome(outcome)
    if not outcome.succeeded:
        raise typer.Exit(1)


# ── duet visual ──────────────────────────────────────────────────


@app.command()
def visual(
    ctx: typer.Context,
    description: str = typer.Option(..., "--description", "-d", help="What to show"),
    audience: str = typer.Option(..., "--audience", "-a", help="Target audience"),
    platform: str = typer.Option(..., "--platform", help="Ad platform"),
    style: str = typer.Option("", "--style", help="Optional visual style"),
) -> None:
    """Generate a visual asset with the fast provider."""
    brief = CreativeBrief(
        description=description, target_audience=audience,
        platform=platform, style=style,
    )

    async def _visual(router: Router):
        return await router.generate_visual(brief)

    try:
        asset = _with_router(ctx, _visual, check_keys=True)
    except (NotImplementedError, RuntimeError, TimeoutError) as e:
        console.print(f"[red]Visual generation failed:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None
    console.print(f"[green]✓[/green] {asset.asset_ref}")
    console.print(f"[dim]{asset.description} · ${asset.cost:.3f}[/dim]")


# ── duet metrics / feedback ──────────────────────────────────────


@app.command()
def metrics(ctx: typer.Context) -> None:
    """Show recorded performance per task and provider."""

    async def _records(router: Router):
        return router.get_performance_records()

    records = _with_router(ctx, _records)
    if not records:
        console.print("[dim]No performance history recorded yet.[/dim]")
        return

    table = Table(title="Provider Performance", show_lines=True)
    table.add_column("Task", style="bold cyan")
    table.add_column("Provider")
    table.add_column("Samples", justify="right")
    table.add_column("Success", justify="right")
    table.add_column("Confidence", justify="right")
    table.add_column("Satisfaction", justify="right")
    table.add_column("Avg ms", justify="right")
    table.add_column("Avg $", justify="right")

    for r in sorted(records, key=lambda r: (r.task_id, r.provider_id.value)):
        table.add_row(
            r.task_id,
            r.provider_id.value,
            str(r.samples),
            f"{r.success_rate:.0%}",
            f"{r.avg_confidence:.2f}",
            f"{r.user_satisfaction:.2f}",
            f"{r.avg_response_time_ms:.0f}",
            f"${r.avg_cost:.4f}",
        )
    console.print(table)


@app.command()
def feedback(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task id"),
    provider: str = typer.Argument(..., help="quality or fast"),
    score: float = typer.Argument(..., min=0.0, max=1.0, help="Satisfaction 0-1"),
) -> None:
    """Record user satisfaction with a provider's answer for a task."""
    provider_id = _parse_provider(provider)
    if provider_id is None or not provider_id.is_concrete:
        console.print("[red]Feedback needs a concrete provider (quality or fast)[/red]")
        raise typer.Exit(1)

    async def _feedback(router: Router):
        return await router.submit_feedback(task_id, provider_id, score)

    record = _with_router(ctx, _feedback)
    if record is None:
        console.print(f"[yellow]No history for {task_id}/{provider_id.value}; feedback ignored.[/yellow]")
        raise typer.Exit(1)
    console.print(
        f"[green]✓[/green] {task_id}/{provider_id.value} satisfaction "
        f"now {record.user_satisfaction:.2f}"
    )


# ── duet config ──────────────────────────────────────────────────


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the current router configuration."""

    async def _config(router: Router):
        return router.get_config()

    config = _with_router(ctx, _config)

    table = Table(title="Router Configuration", show_header=False, show_lines=True)
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    table.add_row("Default Provider", config.default_provider.value)
    table.add_row("Cost Optimization", str(config.cost_optimization))
    table.add_row("Quality First", str(config.quality_first))
    table.add_row("Daily Budget", f"${config.budget_limits.daily:.2f}")
    table.add_row("Monthly Budget", f"${config.budget_limits.monthly:.2f}")
    table.add_row("State", str(ctx.obj["state"]))
    console.print(table)

    if config.per_task_override:
        overrides = Table(title="Per-Task Overrides")
        overrides.add_column("Task", style="cyan")
        overrides.add_column("Provider")
        for task_id, provider in sorted(config.per_task_override.items()):
            overrides.add_row(task_id, provider.value)
        console.print()
        console.print(overrides)


@config_app.command("set")
def config_set(
    ctx: typer.Context,
    default_provider: str = typer.Option(None, "--default-provider", help="quality, fast, or auto"),
    cost_optimization: Optional[bool] = typer.Option(
        None, "--cost-optimization/--no-cost-optimization",
    ),
    quality_first: Optional[bool] = typer.Option(None, "--quality-first/--no-quality-first"),
    daily: float = typer.Option(None, "--daily", help="Daily budget in USD"),
    monthly: float = typer.Option(None, "--monthly", help="Monthly budget in USD"),
    override: list[str] = typer.Option(
        None, "--override", help="TASK=PROVIDER override for an auto-routed task (repeatable)",
    ),
    clear_override: list[str] = typer.Option(
        None, "--clear-override", help="Remove the override for TASK (repeatable)",
    ),
) -> None:
    """Change router settings; unspecified settings are kept."""
    changes: dict[str, Any] = {}
    if default_provider is not None:
        changes["default_provider"] = _parse_provider(default_provider)
    if cost_optimization is not None:
        changes["cost_optimization"] = cost_optimization
    if quality_first is not None:
        changes["quality_first"] = quality_first
    budget = {k: v for k, v in (("daily", daily), ("monthly", monthly)) if v is not None}
    if budget:
        changes["budget_limits"] = budget

    async def _configure(router: Router):
        if override or clear_override:
            overrides = dict(router.get_config().per_task_override)
            for item in override or []:
                task_id, sep, provider = item.partition("=")
                if not sep:
                    raise ValueError(f"Override must look like TASK=PROVIDER, got '{item}'")
                overrides[task_id.strip()] = ProviderId(provider.strip().lower())
            for task_id in clear_override or []:
                overrides.pop(task_id, None)
            changes["per_task_override"] = overrides
        if not changes:
            return None
        return await router.configure(**changes)

    try:
        config = _with_router(ctx, _configure)
    except (ValueError, ValidationError) as e:
        console.print(f"[red]Invalid configuration:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None

    if config is None:
        console.print("[dim]Nothing to change.[/dim]")
        return
    console.print("[green]✓[/green] Configuration saved")
    console.print_json(config.model_dump_json())
