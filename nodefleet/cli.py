"""CLI entry point for nodefleet.

Commands:
- nodefleet start: Size, launch and supervise worker nodes (default)
- nodefleet plan: Show host resources and the node recommendation
- nodefleet init: Write a default .nodefleet/config.yaml
- nodefleet version: Show version information
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
import pydantic
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel

from nodefleet.cli_ui.console import SupervisorConsole
from nodefleet.cli_ui.dashboard import FleetDashboard
from nodefleet.cli_ui.prompts import ask_worker_count, collect_identities, confirm_over_recommendation
from nodefleet.config import CONFIG_DIR, DEFAULT_CONFIG_YAML, FleetConfig, config_path, load_fleet_config
from nodefleet.core.dependencies import ensure_session_manager, ensure_worker_binary
from nodefleet.core.errors import (
    DependencyMissingError,
    InvalidIdentityError,
    OperatorCancelled,
    PolicyViolationError,
)
from nodefleet.core.launcher import SessionLauncher
from nodefleet.core.models import LaunchOutcome, PolicyMode
from nodefleet.core.planner import CapacityPlanner
from nodefleet.core.probe import ResourceProbe
from nodefleet.core.registry import SessionRegistry
from nodefleet.sessions.screen import ScreenSessionManager

console = Console()


def get_repo_path() -> Path:
    """Get the working directory the fleet is managed from."""
    return Path.cwd()


def _configure_logging(level: str) -> None:
    fleet_logger = logging.getLogger("nodefleet")
    fleet_logger.handlers.clear()
    fleet_logger.addHandler(
        RichHandler(console=Console(stderr=True), show_path=False, markup=False)
    )
    fleet_logger.setLevel(level.upper())


def _load_config_or_exit(repo_path: Path) -> FleetConfig:
    try:
        return load_fleet_config(repo_path)
    except yaml.YAMLError as e:
        console.print(f"[red]Error parsing {config_path(repo_path)}:[/red]")
        console.print(f"  {escape(str(e))}")
    except pydantic.ValidationError as e:
        console.print("[red]Invalid configuration:[/red]")
        for err in e.errors():
            loc = ".".join(str(x) for x in err["loc"])
            console.print(f"  - {escape(loc)}: {escape(err['msg'])}")
    except ValueError as e:
        console.print(f"[red]Invalid configuration:[/red] {escape(str(e))}")
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.version_option(version="0.1.0")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """nodefleet - run and supervise a fleet of worker nodes.

    Without a command, runs the interactive `start` flow.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if ctx.invoked_subcommand is None:
        ctx.invoke(start)


@main.command()
def init() -> None:
    """Write a default configuration file."""
    path = config_path(get_repo_path())
    if path.exists():
        console.print("[yellow]Configuration already exists[/yellow]")
        return

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG_YAML)
    console.print(
        Panel(
            f"[green]Configuration written![/green]\n\nCreated: {path}\n"
            "Edit it to change per-node memory, policy mode or session naming.",
            title="nodefleet Initialized",
        )
    )


@main.command()
@click.pass_context
def plan(ctx: click.Context) -> None:
    """Show host resources and how many nodes fit."""
    config = _load_config_or_exit(get_repo_path())
    _configure_logging("DEBUG" if ctx.obj.get("verbose") else config.log_level)

    policy = config.policy()
    snapshot = ResourceProbe().probe()
    capacity = CapacityPlanner().plan(snapshot, policy)
    FleetDashboard(console).show_resources(snapshot, policy, capacity)


@main.command()
@click.pass_context
def start(ctx: click.Context) -> None:
    """Size the fleet, launch nodes in screen sessions and open the console."""
    repo_path = get_repo_path()
    config = _load_config_or_exit(repo_path)
    _configure_logging("DEBUG" if (ctx.obj or {}).get("verbose") else config.log_level)

    manager = ScreenSessionManager()
    try:
        if ensure_session_manager(manager, config.session_manager_install_command):
            console.print(f"[green]{manager.name} installed[/green]")
    except DependencyMissingError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}. Install it manually and retry.")
        sys.exit(1)

    policy = config.policy()
    probe = ResourceProbe()
    planner = CapacityPlanner()
    dashboard = FleetDashboard(console)

    snapshot = probe.probe()
    capacity = planner.plan(snapshot, policy)
    dashboard.show_resources(snapshot, policy, capacity)

    try:
        planner.ensure_launchable(capacity)
        decision = ask_worker_count(console, planner, capacity)
        confirm_over_recommendation(console, decision, capacity)
        specs = collect_identities(console, decision.count, config.identity_mode)
    except (PolicyViolationError, InvalidIdentityError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        return
    except OperatorCancelled:
        console.print("[yellow]Cancelled; choose a different node count and retry.[/yellow]")
        return

    try:
        if ensure_worker_binary(config.resolved_cli_path, config.worker_install_command):
            console.print("[green]Worker binary installed[/green]")
    except DependencyMissingError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    work_dir = config.resolved_work_dir(repo_path)
    launcher = SessionLauncher(
        manager,
        worker_cli_path=config.resolved_cli_path,
        work_dir=work_dir,
        policy=policy,
        session_prefix=config.session_prefix,
        launch_delay=config.launch_delay_seconds,
        resource_limits=config.resource_limits,
    )

    console.print(f"\n[bold]Starting {len(specs)} node(s)...[/bold]")
    report = launcher.launch(specs, on_outcome=_print_outcome)
    dashboard.show_launch_report(report)

    if not report.handles:
        console.print("[red]No nodes started successfully[/red]")
        dashboard.show_troubleshooting()
        return

    registry = SessionRegistry(manager, report.handles, stop_script_path=report.stop_script)
    dashboard.show_management_commands(manager, registry.session_names, report.stop_script)
    dashboard.show_allocation(probe.probe(), policy, len(registry))
    dashboard.show_optimization_tips()

    supervisor = SupervisorConsole(
        registry,
        probe=probe,
        console=console,
        show_memory_status=config.policy_mode == PolicyMode.ADVISORY,
        elevated_percent=config.memory_elevated_percent,
        critical_percent=config.memory_critical_percent,
    )
    supervisor.run()


def _print_outcome(outcome: LaunchOutcome) -> None:
    node = outcome.worker
    if outcome.ok:
        console.print(
            f"[green]✓[/green] Node {node.index} started "
            f"(Node ID: {escape(node.identity)}, Session: {escape(outcome.session_name)})"
        )
    else:
        console.print(
            f"[red]✗[/red] Node {node.index} failed to start: {escape(outcome.error or '')}"
        )


@main.command()
def version() -> None:
    """Show version information."""
    from nodefleet import __version__

    console.print(f"nodefleet v{__version__}")
    console.print("Resource-aware worker node supervisor")


if __name__ == "__main__":
    main()
