"""Terminal UI for nodefleet: resource reports, launch prompts and the supervisor console."""

from nodefleet.cli_ui.console import SupervisorConsole
from nodefleet.cli_ui.dashboard import FleetDashboard

__all__ = ["FleetDashboard", "SupervisorConsole"]
