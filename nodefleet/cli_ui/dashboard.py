"""Rich-based resource and fleet reports."""

from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from nodefleet.core.models import (
    CapacityPlan,
    CapacityPolicy,
    LaunchReport,
    LimitingFactor,
    MemoryPressure,
    ResourceSnapshot,
)
from nodefleet.core.planner import assess_memory_pressure
from nodefleet.sessions.screen import SessionManager

OPTIMIZATION_TIPS = [
    "Stop unnecessary system services",
    "Drop page caches: sudo sync && sudo sysctl vm.drop_caches=3",
    "Add swap space to absorb memory spikes",
    "Watch per-node memory and adjust the node count",
    "Consider a host with more memory",
]

TROUBLESHOOTING_TIPS = [
    "Check your network connection",
    "Verify the Node IDs are correct",
    "Make sure there is enough free memory",
    "Check that the worker binary is installed correctly",
]

_PRESSURE_STYLE = {
    MemoryPressure.NORMAL: ("green", "Memory usage is normal"),
    MemoryPressure.ELEVATED: ("yellow", "Memory usage is high, keep an eye on it"),
    MemoryPressure.CRITICAL: ("red", "Memory usage is critical, consider running fewer nodes"),
}


class FleetDashboard:
    """Terminal reports for the launcher and the supervisor console.

    USAGE:
        dashboard = FleetDashboard(console)
        dashboard.show_resources(snapshot, policy, plan)
    """

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def show_resources(
        self,
        snapshot: ResourceSnapshot,
        policy: CapacityPolicy,
        plan: CapacityPlan,
    ) -> None:
        """Show probe results and the capacity recommendation."""
        table = Table(title="System Resources", show_header=False, box=None)
        table.add_column("Metric", style="dim")
        table.add_column("Value", style="bold")

        table.add_row("Total memory", f"{snapshot.total_memory_gb} GB")
        table.add_row("Available memory", f"{snapshot.available_memory_gb} GB")
        table.add_row("CPU cores", str(snapshot.cpu_core_count))
        table.add_row("Reserved for system", f"{policy.system_reserved_memory_gb} GB")
        table.add_row("Usable for nodes", f"{plan.usable_memory_gb} GB")
        table.add_row("Memory per node", f"{policy.memory_per_worker_gb} GB")
        if plan.by_cpu is not None:
            table.add_row("CPU cores per node", str(policy.cpu_per_worker_cores))
            table.add_row("Bound by memory / CPU", f"{plan.by_memory} / {plan.by_cpu}")
            table.add_row("Limiting factor", plan.limiting_factor.value)

        label = "Maximum nodes" if plan.is_hard_cap else "Recommended nodes"
        table.add_row(label, str(plan.recommended))

        self.console.print(Panel(table, title=f"Capacity ({plan.mode.value})"))
        if snapshot.fallback:
            self.console.print("[yellow]Could not read memory facts, using default values[/yellow]")

        if plan.recommended <= 0:
            if plan.is_hard_cap:
                self.console.print(
                    f"[red]Not enough {plan.limiting_factor.value} to run a single node.[/red]"
                )
            else:
                needed = policy.memory_per_worker_gb + policy.system_reserved_memory_gb
                self.console.print(
                    f"[yellow]Low memory: at least {needed} GB available is recommended. "
                    "You can still try 1-2 nodes, but performance may suffer.[/yellow]"
                )
        elif plan.recommended < 2 and plan.limiting_factor == LimitingFactor.MEMORY:
            self.console.print(
                "[yellow]Adding memory would allow more nodes to run.[/yellow]"
            )

    def show_memory_status(
        self,
        snapshot: ResourceSnapshot,
        elevated_percent: float = 80.0,
        critical_percent: float = 90.0,
    ) -> MemoryPressure:
        """Show current memory usage with the advisory tier."""
        if snapshot.fallback:
            self.console.print("[red]Unable to read memory information[/red]")
            return MemoryPressure.NORMAL

        table = Table(title="Memory Status", show_header=False, box=None)
        table.add_column("Metric", style="dim")
        table.add_column("Value", style="bold")
        table.add_row("Total", f"{snapshot.total_memory_gb} GB")
        table.add_row("Used", f"{snapshot.used_memory_gb} GB")
        table.add_row(
            "Free", f"{round(snapshot.total_memory_gb - snapshot.used_memory_gb, 2)} GB"
        )
        table.add_row("Usage", f"{snapshot.usage_percent}%")
        self.console.print(table)

        pressure = assess_memory_pressure(
            snapshot.usage_percent, elevated_percent, critical_percent
        )
        style, message = _PRESSURE_STYLE[pressure]
        self.console.print(f"[{style}]{message}[/{style}]")
        return pressure

    def show_allocation(
        self,
        snapshot: ResourceSnapshot,
        policy: CapacityPolicy,
        node_count: int,
    ) -> None:
        """Show memory usage against the budgeted allocation after launch."""
        self.console.print("\n[bold]Memory allocation[/bold]")
        if not snapshot.fallback:
            self.console.print(
                f"  Current usage: {snapshot.used_memory_gb}GB/{snapshot.total_memory_gb}GB "
                f"({snapshot.usage_percent}%)"
            )
        self.console.print(
            f"  Node budget: {node_count} x {policy.memory_per_worker_gb}GB = "
            f"{round(node_count * policy.memory_per_worker_gb, 2)}GB"
        )
        self.console.print(f"  Reserved for system: {policy.system_reserved_memory_gb}GB")

    def show_launch_report(self, report: LaunchReport) -> None:
        self.console.print(
            f"\n[bold]Launch complete:[/bold] {len(report.handles)} of "
            f"{len(report.outcomes)} node(s) running"
        )
        if report.failures:
            table = Table(title="Failed Launches")
            table.add_column("Node", justify="right")
            table.add_column("Node ID", style="cyan")
            table.add_column("Error", style="red")
            for failure in report.failures:
                table.add_row(
                    str(failure.worker.index),
                    escape(failure.worker.identity),
                    escape(failure.error or "unknown"),
                )
            self.console.print(table)

    def show_management_commands(
        self,
        manager: SessionManager,
        session_names: list[str],
        stop_script: Path | None,
    ) -> None:
        table = Table(title="Node Management", show_header=False, box=None)
        table.add_column("Action", style="dim")
        table.add_column("Command", style="cyan")
        for description, command in manager.management_hints():
            table.add_row(description, escape(command))
        if stop_script is not None:
            table.add_row("Stop all nodes", escape(f"./{stop_script.name}"))
        table.add_row("Memory usage", "free -h")
        self.console.print(table)

        if session_names:
            self.console.print("\n[bold]Active sessions:[/bold]")
            for index, name in enumerate(session_names):
                self.console.print(f"  {index}: {escape(name)}")

    def show_optimization_tips(self) -> None:
        self._show_tips("Memory Optimization Tips", OPTIMIZATION_TIPS)

    def show_troubleshooting(self) -> None:
        self._show_tips("Troubleshooting", TROUBLESHOOTING_TIPS)

    def _show_tips(self, title: str, tips: list[str]) -> None:
        body = "\n".join(f"{i}. {escape(tip)}" for i, tip in enumerate(tips, 1))
        self.console.print(Panel(body, title=title))
