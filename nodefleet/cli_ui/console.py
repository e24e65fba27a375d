"""Interactive supervisor console.

A blocking menu loop over the sessions launched in this run: status,
log snapshots, attach, memory status, bulk stop and exit. Bad input is
reported and the loop carries on.
"""

import logging
import os
import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table
from rich.text import Text

from nodefleet.cli_ui.dashboard import FleetDashboard
from nodefleet.core.errors import SessionManagerError, SessionNotFoundError
from nodefleet.core.models import SessionHandle, SessionStatus
from nodefleet.core.probe import ResourceProbe
from nodefleet.core.registry import SessionRegistry

logger = logging.getLogger(__name__)


@dataclass
class MenuItem:
    label: str
    action: Callable[[], None]
    exits: bool = False


class SupervisorConsole:
    """Menu-driven control loop over a SessionRegistry.

    USAGE:
        console = SupervisorConsole(registry, probe=ResourceProbe())
        console.run()  # returns when the operator stops all nodes or exits
    """

    def __init__(
        self,
        registry: SessionRegistry,
        probe: ResourceProbe | None = None,
        console: Console | None = None,
        show_memory_status: bool = True,
        elevated_percent: float = 80.0,
        critical_percent: float = 90.0,
        snapshot_dir: Path | None = None,
    ):
        self.registry = registry
        self.manager = registry.manager
        self.probe = probe or ResourceProbe()
        self.console = console or Console()
        self.dashboard = FleetDashboard(self.console)
        self.elevated_percent = elevated_percent
        self.critical_percent = critical_percent
        self.snapshot_dir = snapshot_dir
        self.items = self._build_menu(show_memory_status)

    def _build_menu(self, show_memory_status: bool) -> list[MenuItem]:
        items = [
            MenuItem("Show node status", self.show_status),
            MenuItem("View node log", self.view_log),
            MenuItem("Attach to node (enter session)", self.attach),
        ]
        if show_memory_status:
            items.append(MenuItem("Show memory usage", self.show_memory))
        items += [
            MenuItem("Memory optimization tips", self.dashboard.show_optimization_tips),
            MenuItem("Stop all nodes", self.stop_all, exits=True),
            MenuItem("Exit menu (nodes keep running)", self.exit_menu, exits=True),
        ]
        return items

    def render_menu(self) -> None:
        self.console.print()
        self.console.rule("[bold]Node Management[/bold]")
        for number, item in enumerate(self.items, 1):
            self.console.print(f"{number}. {item.label}")
        self.console.rule()

    def run(self) -> str:
        """Loop until an exiting action runs. Returns that action's label."""
        while True:
            self.render_menu()
            choice = Prompt.ask(
                f"Choose an action (1-{len(self.items)})", console=self.console
            ).strip()
            item = self.dispatch(choice)
            if item is not None and item.exits:
                return item.label

    def dispatch(self, choice: str) -> MenuItem | None:
        """Run the menu item for `choice`; None if the choice is invalid."""
        if not choice.isdigit() or not 1 <= int(choice) <= len(self.items):
            self.console.print("[red]Invalid choice, please try again[/red]")
            return None
        item = self.items[int(choice) - 1]
        item.action()
        return item

    # --- Actions ---

    def show_status(self) -> None:
        table = Table(title="Node Status")
        table.add_column("#", justify="right")
        table.add_column("Session", style="cyan")
        table.add_column("Node ID")
        table.add_column("Status")

        for number, (handle, status) in enumerate(self.registry.statuses(), 1):
            style = "green" if status == SessionStatus.ALIVE else "red"
            label = "running" if status == SessionStatus.ALIVE else "stopped"
            table.add_row(
                str(number),
                escape(handle.session_name),
                escape(handle.identity),
                f"[{style}]{label}[/{style}]",
            )
        self.console.print(table)

    def _select_session(self, heading: str) -> SessionHandle | None:
        self.console.print(f"\n[bold]{heading}[/bold]")
        for number, handle in enumerate(self.registry, 1):
            self.console.print(
                f"{number}. {escape(handle.session_name)} (Node ID: {escape(handle.identity)})"
            )
        raw = Prompt.ask(f"Choose a node (1-{len(self.registry)})", console=self.console)
        try:
            return self.registry.find_by_ordinal(raw)
        except SessionNotFoundError as e:
            self.console.print(f"[red]Invalid selection:[/red] {escape(str(e))}")
            return None

    def view_log(self) -> None:
        handle = self._select_session("Select a node to view its log:")
        if handle is None:
            return

        self.console.print(
            f"\n[bold]Log for {escape(handle.session_name)}[/bold] "
            f"(Node ID: {escape(handle.identity)})"
        )
        fd, name = tempfile.mkstemp(
            prefix=f"{handle.session_name}_", suffix="_log.txt", dir=self.snapshot_dir
        )
        os.close(fd)
        snapshot_path = Path(name)
        try:
            self.manager.snapshot(handle.session_name, snapshot_path)
            content = snapshot_path.read_text(errors="replace")
        except (SessionManagerError, OSError) as e:
            logger.warning(f"Log snapshot failed for {handle.session_name}: {e}")
            self.console.print(f"[red]Unable to read node log:[/red] {escape(str(e))}")
            return
        finally:
            snapshot_path.unlink(missing_ok=True)

        self.console.print(Panel(Text(content.rstrip()), title=handle.session_name))

    def attach(self) -> None:
        handle = self._select_session("Select a node to attach to:")
        if handle is None:
            return

        self.console.print(f"\n[bold]Attaching to {escape(handle.session_name)}...[/bold]")
        self.console.print("[dim]Detach with Ctrl+A, D to return to this menu[/dim]")
        Prompt.ask("Press Enter to continue", default="", show_default=False, console=self.console)
        try:
            self.manager.attach(handle.session_name)
        except SessionManagerError as e:
            self.console.print(f"[red]Unable to attach:[/red] {escape(str(e))}")

    def show_memory(self) -> None:
        self.dashboard.show_memory_status(
            self.probe.probe(), self.elevated_percent, self.critical_percent
        )

    def stop_all(self) -> None:
        self.console.print("\n[yellow]Stop all nodes?[/yellow]")
        answer = Prompt.ask('Type "yes" to confirm', console=self.console)
        if answer.strip().lower() != "yes":
            self.console.print("[yellow]Cancelled[/yellow]")
            return

        script = self.registry.regenerate_stop_script()
        try:
            if script is not None:
                self.manager.run_script(script)
            else:
                for handle in self.registry:
                    self.manager.terminate(handle.session_name)
        except SessionManagerError as e:
            logger.error(f"Stop-all failed: {e}")
            self.console.print(f"[red]Error while stopping nodes:[/red] {escape(str(e))}")
            return
        self.console.print("[green]All nodes stopped[/green]")

    def exit_menu(self) -> None:
        self.console.print("\n[bold]Leaving the menu; nodes keep running in the background.[/bold]")
        self.dashboard.show_management_commands(
            self.manager, [], self.registry.stop_script_path
        )
