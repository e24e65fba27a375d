"""Launch-time operator prompts: worker count, confirmation, identities."""

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt

from nodefleet.core.errors import DuplicateIdentityError, OperatorCancelled
from nodefleet.core.identities import IdentityCollector, derive_offset_specs
from nodefleet.core.models import CapacityPlan, IdentityMode, WorkerSpec
from nodefleet.core.planner import CapacityPlanner, CountDecision


def ask_worker_count(console: Console, planner: CapacityPlanner, plan: CapacityPlan) -> CountDecision:
    """Prompt for a worker count and validate it against the plan.

    Raises:
        PolicyViolationError: invalid count for the active policy.
    """
    if plan.is_hard_cap:
        question = f"How many nodes to run (1-{plan.recommended})"
    else:
        if plan.recommended > 0:
            console.print(
                f"\n[green]Based on your system, {plan.recommended} node(s) is recommended.[/green]"
            )
        else:
            console.print("\n[yellow]Memory is tight; start with 1-2 nodes.[/yellow]")
        console.print("[dim]The recommendation is advisory. Too many nodes can exhaust memory.[/dim]")
        hint = plan.recommended if plan.recommended > 0 else "1-2"
        question = f"How many nodes to run (recommended: {hint})"

    raw = Prompt.ask(question, console=console)
    return planner.check_requested_count(raw, plan)


def confirm_over_recommendation(console: Console, decision: CountDecision, plan: CapacityPlan) -> None:
    """Warn about exceeding an advisory recommendation and require "yes".

    Raises:
        OperatorCancelled: anything other than "yes".
    """
    if not decision.exceeds_recommended:
        return

    console.print(
        f"\n[yellow]Warning: {decision.count} node(s) exceeds the recommended "
        f"{plan.recommended}.[/yellow]"
    )
    console.print("This may cause:")
    for risk in ("memory exhaustion", "unstable nodes", "a sluggish system"):
        console.print(f"  - {risk}")

    answer = Prompt.ask('Type "yes" to continue, anything else cancels', console=console)
    if answer.strip().lower() != "yes":
        raise OperatorCancelled("Node count not confirmed")
    console.print("[yellow]Running above the recommendation; monitor system performance.[/yellow]")


def collect_identities(console: Console, count: int, mode: IdentityMode) -> list[WorkerSpec]:
    """Prompt for Node IDs according to the deployment's identity mode.

    Duplicates are re-prompted for the same slot.

    Raises:
        InvalidIdentityError: an entry is empty or not numeric.
    """
    if mode == IdentityMode.OFFSET:
        base = Prompt.ask("Enter the base Node ID", console=console)
        specs = derive_offset_specs(base, count)
    else:
        console.print("\n[bold]Enter a different Node ID for each node:[/bold]")
        collector = IdentityCollector(count)
        while not collector.complete:
            number = count - collector.remaining + 1
            raw = Prompt.ask(f"Node ID for node {number}", console=console)
            try:
                collector.offer(raw)
            except DuplicateIdentityError as e:
                console.print(f"[red]{escape(str(e))}; Node IDs must be unique[/red]")
        specs = collector.specs

    console.print("\n[green]Node IDs:[/green]")
    for spec in specs:
        console.print(f"  Node {spec.index + 1}: {escape(spec.identity)}")
    return specs
