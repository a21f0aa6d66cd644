"""CLI commands for EMS Trainer."""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ems_trainer.config import get_settings
from ems_trainer.errors import EngineError, TemplateNotFound
from ems_trainer.models.feedback import FeedbackResult, PerformanceTrace, TimingStatus

app = typer.Typer(
    name="ems-trainer",
    help="EMS clinical scenario simulation and performance evaluation",
    add_completion=False,
)
console = Console()


class SimulatedClock:
    """Manually advanced clock so a walkthrough can place actions at chosen times."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def get_template_store():
    """Get the configured template store."""
    from ems_trainer.templates import create_store_from_settings

    return create_store_from_settings()


def get_telemetry():
    from ems_trainer.observability import get_telemetry_logger

    return get_telemetry_logger()


@app.command()
def scenarios():
    """List available scenarios."""
    store = get_template_store()

    table = Table(title="Scenarios")
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Type")
    table.add_column("Red Flags", justify="right")
    for scenario in store.list_scenarios():
        table.add_row(scenario.id, scenario.title, scenario.scenario_type, str(len(scenario.red_flags)))
    console.print(table)


@app.command()
def show(scenario_id: str = typer.Argument(..., help="Scenario ID")):
    """Show a scenario's initial presentation and assessment catalog."""
    store = get_template_store()
    try:
        scenario = store.get_scenario(scenario_id)
    except TemplateNotFound as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    v = scenario.vital_signs
    ctx = scenario.context
    console.print(
        Panel(
            f"[bold]{scenario.title}[/bold]\n{scenario.description}\n\n"
            f"[bold]Location:[/bold] {ctx.location} ({ctx.time_of_day})\n"
            f"[bold]Vitals:[/bold] HR {v.heart_rate}, BP {v.blood_pressure}, "
            f"RR {v.respiratory_rate}, SpO2 {v.oxygen_saturation}%, Temp {v.temperature}\n"
            f"[bold]Resources:[/bold] {', '.join(ctx.resources_available) or 'none'}",
            title=scenario.id,
        )
    )

    if scenario.red_flags:
        table = Table(title="Red Flags")
        table.add_column("ID")
        table.add_column("Description")
        table.add_column("Severity")
        for rf in scenario.red_flags:
            table.add_row(rf.id, rf.description, rf.severity.value)
        console.print(table)

    if scenario.criteria:
        table = Table(title="Assessment Criteria")
        table.add_column("Phase")
        table.add_column("ID")
        table.add_column("Description")
        table.add_column("Required")
        table.add_column("Depends On")
        for c in sorted(scenario.criteria, key=lambda c: (c.category.rank, c.order, c.id)):
            table.add_row(
                c.category.value,
                c.id,
                c.description,
                "yes" if c.required else "no",
                ", ".join(c.dependencies),
            )
        console.print(table)


@app.command()
def walkthrough(
    scenario_id: str = typer.Argument(..., help="Scenario ID"),
    questions: Optional[list[str]] = typer.Option(
        None, "--ask", "-q", help="Question for the patient (repeatable)"
    ),
    flags: Optional[list[str]] = typer.Option(
        None, "--flag", "-f", help="Red flag ID to identify (repeatable)"
    ),
    interventions: Optional[list[str]] = typer.Option(
        None, "--intervention", "-i", help="Intervention name, in order (repeatable)"
    ),
    step: float = typer.Option(60.0, "--step", "-s", help="Simulated seconds per action"),
    learner: str = typer.Option("cli", "--learner", "-l", help="Learner ID"),
    telemetry: bool = typer.Option(True, "--telemetry/--no-telemetry", help="Record tracking events"),
    output_json: bool = typer.Option(False, "--json", help="Output feedback as JSON"),
):
    """Run a scripted scenario walkthrough and score it."""
    from ems_trainer.oracle import ScriptedOracle
    from ems_trainer.session import LearnerSession

    store = get_template_store()
    clock = SimulatedClock()
    session = LearnerSession(
        learner_id=learner,
        templates=store,
        oracle=ScriptedOracle(store),
        telemetry=get_telemetry() if telemetry else None,
        clock=clock,
    )

    async def run():
        try:
            await session.start_scenario(scenario_id)
            for question in questions or []:
                clock.advance(step)
                reply = await session.scenario.ask(question)
                console.print(f"[cyan]Q:[/cyan] {question}\n[green]A:[/green] {reply.content}")
            for flag_id in flags or []:
                clock.advance(step)
                session.scenario.identify_red_flag(flag_id)
            for name in interventions or []:
                clock.advance(step)
                performed = await session.scenario.intervene("treatment", name)
                console.print(f"[bold]{performed.name}[/bold] @ {performed.timestamp:.0f}s: {performed.outcome}")
            return await session.complete_scenario()
        finally:
            await session.cleanup()

    try:
        outcome = asyncio.run(run())
    except EngineError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if output_json:
        console.print(outcome.feedback.model_dump_json(indent=2))
    else:
        _display_feedback(outcome.feedback)


@app.command()
def evaluate(
    trace_file: Path = typer.Argument(..., help="JSON file with a recorded performance trace"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Score a recorded performance trace."""
    from ems_trainer.feedback import evaluate as evaluate_trace

    if not trace_file.exists():
        console.print(f"[red]Trace file not found: {trace_file}[/red]")
        raise typer.Exit(1)

    try:
        trace = PerformanceTrace.model_validate(json.loads(trace_file.read_text()))
    except (json.JSONDecodeError, ValidationError) as e:
        console.print(f"[red]Invalid trace file: {e}[/red]")
        raise typer.Exit(1)

    store = get_template_store()
    try:
        template = store.get_feedback_template(trace.scenario_type)
    except TemplateNotFound as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    result = evaluate_trace(trace, template)
    if output_json:
        console.print(result.model_dump_json(indent=2))
    else:
        _display_feedback(result)


def _display_feedback(result: FeedbackResult):
    """Display a FeedbackResult in rich format."""
    color = "green" if result.overall_score >= 80 else "yellow" if result.overall_score >= 70 else "red"
    scores = result.category_scores
    console.print(
        Panel(
            f"[bold]Overall Score:[/bold] {result.overall_score}%\n"
            f"[bold]Level:[/bold] {result.performance_level}\n"
            f"[bold]Critical Actions:[/bold] {scores.critical_actions:.0f}  "
            f"[bold]Red Flags:[/bold] {scores.red_flags:.0f}  "
            f"[bold]Interventions:[/bold] {scores.interventions:.0f}",
            title="Performance",
            border_style=color,
        )
    )

    if result.critical_actions.timing or result.critical_actions.missed:
        table = Table(title="Critical Actions")
        table.add_column("Action")
        table.add_column("Actual", justify="right")
        table.add_column("Target", justify="right")
        table.add_column("Status")
        status_colors = {
            TimingStatus.EXCELLENT: "green",
            TimingStatus.ACCEPTABLE: "yellow",
            TimingStatus.DELAYED: "red",
        }
        for t in result.critical_actions.timing:
            c = status_colors[t.status]
            table.add_row(t.action, f"{t.actual:.0f}s", f"{t.target:.0f}s", f"[{c}]{t.status.value}[/{c}]")
        for action in result.critical_actions.missed:
            table.add_row(action, "-", "-", "[red]missed[/red]")
        console.print(table)

    if result.red_flags.timing or result.red_flags.missed:
        table = Table(title="Red Flags")
        table.add_column("Finding")
        table.add_column("Identified At", justify="right")
        table.add_column("Assessment")
        for t in result.red_flags.timing:
            table.add_row(t.flag, f"{t.time_to_identification:.0f}s", t.assessment)
        for flag in result.red_flags.missed:
            table.add_row(flag, "-", "[red]missed[/red]")
        console.print(table)

    if result.excellent_performance:
        console.print("\n[bold green]Excellent Performance:[/bold green]")
        for item in result.excellent_performance:
            console.print(f"  - {item}")

    if result.improvement_areas:
        console.print("\n[bold yellow]Areas for Improvement:[/bold yellow]")
        for item in result.improvement_areas:
            console.print(f"  - {item}")

    if result.recommended_review:
        console.print("\n[bold]Recommended Review:[/bold]")
        for item in result.recommended_review:
            console.print(f"  - {item}")

    if result.learning_points:
        console.print(f"\n[dim]{' | '.join(result.learning_points)}[/dim]")


@app.command()
def stats():
    """Show learner activity statistics."""
    settings = get_settings()
    if not settings.telemetry_enabled:
        console.print("[yellow]Telemetry is disabled.[/yellow]")
        return

    summary = get_telemetry().get_stats()
    if not summary["total"]:
        console.print("[yellow]No activity recorded. Run a walkthrough first.[/yellow]")
        return

    console.print(Panel.fit("[bold]Activity Statistics[/bold]"))
    console.print(f"Events: {summary['total']}")
    console.print(f"Started: {summary['started']}")
    console.print(f"Completed: {summary['completed']}")
    if summary["avg_score"] is not None:
        console.print(f"Average Score: {summary['avg_score']:.1f}")


@app.command()
def version():
    """Show version information."""
    from ems_trainer import __version__

    console.print(f"EMS Trainer v{__version__}")
