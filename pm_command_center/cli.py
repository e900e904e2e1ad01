from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from pm_command_center.common.config import AppConfig
from pm_command_center.common.logging_config import configure_logging
from pm_command_center.domain.estimation import EstimationResult
from pm_command_center.estimation.engine import EstimationEngine
from pm_command_center.estimation.similarity import HistoricalIssue
from pm_command_center.estimation.trained import estimate_with_model
from pm_command_center.gaps.analyzer import analyze_backlog
from pm_command_center.integration.dashboard import DashboardService, DashboardSnapshot
from pm_command_center.integration.event_bus import InMemoryEventBus
from pm_command_center.integration.events import DashboardRefreshed, PlatformFetchFailed
from pm_command_center.integration.platform_manager import PlatformManager, build_connectors


app = typer.Typer(add_completion=False)
console = Console()


def _load(config: str) -> AppConfig:
    path = Path(config).expanduser()
    if not path.exists():
        raise typer.BadParameter(
            f"Config file not found: {path} (run: pm-command-center init-config)"
        )
    cfg = AppConfig.load(path)
    configure_logging(cfg.logging.level, cfg.logging.log_dir)
    return cfg


def _manager(cfg: AppConfig, bus: InMemoryEventBus | None = None) -> PlatformManager:
    manager = PlatformManager(build_connectors(cfg), bus=bus)
    if not manager.connectors:
        raise typer.BadParameter(
            "No platforms are enabled with credentials; check the config and token env vars"
        )
    return manager


def _split(labels: str) -> list[str]:
    return [s.strip() for s in labels.split(",") if s.strip()]


def _print_estimate(result: EstimationResult) -> None:
    table = Table(title=f"Estimate: {result.points} points ({result.label})", show_header=False)
    table.add_row("Estimated days", str(result.estimated_days))
    table.add_row("Confidence", f"{result.confidence}%")
    table.add_row("Based on", result.based_on)
    if result.breakdown is not None:
        table.add_row("Type", result.breakdown.type)
        table.add_row("Learned from", result.breakdown.learned_from)
    for factor in result.factors:
        table.add_row("Factor", factor)
    for s in result.similar_issues:
        table.add_row("Similar", f"{s.title} ({s.points:g} pts, {s.similarity:.0%})")
    for warning in result.warnings:
        table.add_row("[yellow]Warning[/yellow]", warning)
    console.print(table)


@app.command()
def estimate(
    title: str = typer.Argument(..., help="Story title"),
    description: str = typer.Option("", help="Story description"),
    labels: str = typer.Option("", help="Comma-separated labels"),
    history: Optional[str] = typer.Option(
        None, help="JSON file with completed stories: [{title, body, labels, story_points}]"
    ),
    config: Optional[str] = typer.Option(
        None, help="Learn from closed issues of the platforms in this config instead"
    ),
) -> None:
    """Estimate story points for a single story."""
    label_list = _split(labels)
    if config is not None:
        manager = _manager(_load(config))
        model, errors = asyncio.run(manager.build_cross_org_model())
        for err in errors:
            console.print(f"[yellow]{err.platform}: {err.message}[/yellow]")
        _print_estimate(estimate_with_model(title, description, label_list, model))
        return

    configure_logging("WARNING")
    engine = EstimationEngine()
    if history is not None:
        rows = json.loads(Path(history).expanduser().read_text(encoding="utf-8"))
        engine.load_historical_data(
            HistoricalIssue(
                title=str(r.get("title") or ""),
                body=str(r.get("body") or ""),
                labels=tuple(str(label) for label in r.get("labels") or ()),
                story_points=r.get("story_points"),
            )
            for r in rows
        )
    _print_estimate(engine.estimate(title, description, label_list))


@app.command()
def model(
    config: str = typer.Option("pm_command_center.toml", help="Path to the config TOML"),
) -> None:
    """Build the cross-platform estimation model and print what it learned."""
    manager = _manager(_load(config))
    built, errors = asyncio.run(manager.build_cross_org_model())

    table = Table(title="Estimation model")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Enough data", "yes" if built.has_enough_data else "no")
    table.add_row("Closed issues", str(built.sample_size))
    table.add_row("Learned from", built.learned_from or "-")
    for issue_type, days in built.avg_cycle_time_by_type.items():
        table.add_row(f"Avg days ({issue_type.value})", f"{days:.1f}")
    for name, factor in built.complexity_multipliers.items():
        table.add_row(f"Multiplier ({name})", f"{factor:.2f}")
    table.add_row("Days per point", f"{built.points_to_days_ratio:.2f}")
    console.print(table)
    for err in errors:
        console.print(f"[yellow]{err.platform}: {err.message}[/yellow]")


@app.command()
def gaps(
    config: str = typer.Option("pm_command_center.toml", help="Path to the config TOML"),
    top: int = typer.Option(10, help="How many stories to list"),
) -> None:
    """Find missing acceptance criteria, edge cases and tests in open stories."""
    manager = _manager(_load(config))
    fetched = asyncio.run(manager.fetch_all_issues("open"))
    reports, summary = analyze_backlog(fetched.items)

    table = Table(title=f"Story gaps (average score {summary.avg_score})")
    table.add_column("Issue")
    table.add_column("Title")
    table.add_column("Score", justify="right")
    table.add_column("Gaps")
    for r in reports[:top]:
        table.add_row(r.issue_id, r.title, str(r.score), ", ".join(g.category for g in r.gaps))
    console.print(table)
    console.print(
        f"{summary.total_stories} stories, {summary.total_gaps} gaps, "
        f"{summary.stories_with_high_gaps} with high-severity gaps"
    )
    for err in fetched.errors:
        console.print(f"[yellow]{err.platform}: {err.message}[/yellow]")


def _print_snapshot(snapshot: DashboardSnapshot | None) -> None:
    if snapshot is None:
        return
    table = Table(title=f"Dashboard @ {snapshot.refreshed_at:%Y-%m-%d %H:%M:%S}")
    table.add_column("Milestone")
    table.add_column("Due in", justify="right")
    table.add_column("Done", justify="right")
    table.add_column("Blockers", justify="right")
    for r in snapshot.readiness:
        due = "-" if r.days_until_due is None else f"{r.days_until_due}d"
        table.add_row(r.milestone.title, due, f"{r.completion_percent}%", str(len(r.blockers)))
    console.print(table)
    console.print(
        f"{len(snapshot.issues)} issues ({len(snapshot.open_issues)} open), "
        f"{len(snapshot.pull_requests)} pull requests, "
        f"{len(snapshot.estimates)} unestimated stories estimated"
    )


@app.command()
def refresh(
    config: str = typer.Option("pm_command_center.toml", help="Path to the config TOML"),
    watch: bool = typer.Option(False, help="Keep refreshing on the configured interval"),
    iterations: Optional[int] = typer.Option(None, help="Stop after this many refreshes"),
) -> None:
    """Fetch every platform, rebuild the model and print a dashboard summary."""
    cfg = _load(config)
    bus = InMemoryEventBus()
    bus.subscribe(
        PlatformFetchFailed,
        lambda e: console.print(f"[yellow]{e.platform}: {e.message}[/yellow]"),
    )
    service = DashboardService(_manager(cfg, bus), bus=bus, issue_state=cfg.refresh.issue_state)
    bus.subscribe(DashboardRefreshed, lambda e: _print_snapshot(service.last_snapshot))

    if watch:
        asyncio.run(service.run(cfg.refresh.interval_seconds, iterations=iterations))
    else:
        asyncio.run(service.refresh())


@app.command()
def init_config(
    path: str = typer.Argument(
        "pm_command_center.toml",
        help="Where to write the configuration TOML",
    ),
) -> None:
    """Write an example pm_command_center.toml."""
    project_root = Path(__file__).resolve().parents[1]
    template = project_root / "pm_command_center.example.toml"
    if not template.exists():
        raise RuntimeError(f"Missing template file: {template}")

    out = Path(path).expanduser()
    if out.exists():
        raise typer.BadParameter(f"Refusing to overwrite existing file: {out}")

    out.write_text(template.read_text())
    typer.echo(f"Wrote {out} (edit it, then run: pm-command-center refresh --config {out})")


@app.command()
def serve(
    config: Optional[str] = typer.Option(None, help="Path to the config TOML"),
    host: Optional[str] = typer.Option(None, help="Bind address (overrides config)"),
    port: Optional[int] = typer.Option(None, help="Port (overrides config)"),
) -> None:
    """Serve the estimation and gap analysis HTTP API."""
    import uvicorn

    from pm_command_center.api.app import create_app

    cfg = _load(config) if config is not None else AppConfig()
    if config is None:
        configure_logging(cfg.logging.level)
    manager = PlatformManager(build_connectors(cfg))
    uvicorn.run(
        create_app(manager=manager),
        host=host or cfg.api.host,
        port=port or cfg.api.port,
    )


if __name__ == "__main__":
    app()
