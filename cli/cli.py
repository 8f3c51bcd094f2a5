import argparse
import importlib
import json
import sys

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from engine.mission.exceptions import MissionError
from engine.mission.progress import Progress
from engine.mission.registry import get_mission, list_missions

console = Console()


# --- Helper Functions ---

def print_error(message, details=None):
    console.print(f"[bold red]❌ Error:[/bold red] {message}")
    if details:
        console.print(Panel(str(details), title="Details", border_style="red"))

def print_success(message):
    console.print(f"[bold green]✅ Success:[/bold green] {message}")

def load_modules(module_names):
    """
    Import the modules that register missions.
    """
    for name in module_names or []:
        importlib.import_module(name)


# --- Commands ---

def handle_list_missions(args):
    missions = list_missions()
    if not missions:
        console.print("[yellow]No missions registered. Use -m to import your mission modules.[/yellow]")
        return 0

    table = Table(title="Registered Missions", show_header=True, header_style="bold magenta")
    table.add_column("Mission", style="bold white")
    table.add_column("Queue", style="cyan")
    table.add_column("Steps", style="dim")
    for definition in missions:
        table.add_row(
            definition.name,
            definition.queue,
            " → ".join(s.label for s in definition.steps),
        )
    console.print(table)
    return 0

def handle_enqueue(args):
    from engine.dispatch.celery_dispatch import enqueue_mission

    try:
        mission_args = json.loads(args.args) if args.args else {}
    except ValueError as e:
        print_error("--args must be a JSON object", e)
        return 2
    if not isinstance(mission_args, dict):
        print_error("--args must be a JSON object")
        return 2

    try:
        definition = get_mission(args.mission)
        job_id = enqueue_mission(definition, mission_args)
    except MissionError as e:
        print_error(str(e))
        return 1

    print_success(f"Queued {definition.name} on '{definition.queue}'")
    console.print(f"Job ID: [bold]{job_id}[/bold]")
    return 0

def handle_get_status(args):
    from engine.dispatch.status import get_status_store

    status = get_status_store().read(args.job_id)
    if not status:
        print_error(f"No status found for job {args.job_id}")
        return 1

    progress = Progress.from_status(status.get("progress"))

    table = Table(title=f"Job {args.job_id}", show_header=True, header_style="bold magenta")
    table.add_column("Field", style="dim")
    table.add_column("Value", style="bold white")
    table.add_row("Mission", str(status.get("mission", "-")))
    table.add_row("Status", str(status.get("status", "-")))
    if "num" in status and "total" in status:
        table.add_row("At", f"{status['num']}/{status['total']}")
    table.add_row("Message", str(status.get("message", "")))
    table.add_row("Working step", progress.working or "-")
    table.add_row("Completed steps", ", ".join(progress.completed) or "-")
    table.add_row("Finished", "yes" if progress.finished else "no")
    table.add_row("Failures", str(progress.failures))
    console.print(table)

    extra = {k: v for k, v in status.items()
             if k not in ("mission", "status", "num", "total", "message", "progress")}
    if extra:
        console.print(Panel(Text(json.dumps(extra, indent=2, default=str)), title="Step status", border_style="blue"))
    return 0


def build_parser():
    parser = argparse.ArgumentParser(description="Mission engine CLI")
    parser.add_argument(
        "-m", "--module", action="append", default=[],
        help="Import a module that registers missions (repeatable)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("missions", help="List registered missions")
    list_parser.set_defaults(func=handle_list_missions)

    enqueue_parser = subparsers.add_parser("enqueue", help="Queue a mission job")
    enqueue_parser.add_argument("mission", help="Registered mission name")
    enqueue_parser.add_argument("--args", help="JSON object passed to the mission")
    enqueue_parser.set_defaults(func=handle_enqueue)

    status_parser = subparsers.add_parser("status", help="Show a job's status and progress")
    status_parser.add_argument("job_id")
    status_parser.set_defaults(func=handle_get_status)
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        load_modules(args.module)
    except ImportError as e:
        print_error("Failed to import mission module", e)
        return 1
    return args.func(args)

if __name__ == "__main__":
    sys.exit(main())
