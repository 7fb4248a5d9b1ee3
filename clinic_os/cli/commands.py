"""CLI commands for ClinicOS."""

import asyncio
import json
import uuid
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from clinic_os.config import get_settings
from clinic_os.core.errors import ClinicOSError

app = typer.Typer(
    name="clinic-os",
    help="Multi-tenant clinic administration backend",
    add_completion=False,
)
console = Console()


def _parse_uuid(value: str, label: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        console.print(f"[red]Invalid {label}: {value}[/red]")
        raise typer.Exit(1)


async def _load_progress(patient_id: uuid.UUID, service_id: uuid.UUID):
    from clinic_os.core.database import session_scope
    from clinic_os.scheduling.appointment_sessions import AppointmentSessionService

    async with session_scope() as db:
        return await AppointmentSessionService(db).get_session_progress(patient_id, service_id)


async def _load_capacity(clinic_id: uuid.UUID):
    from clinic_os.clinics.capacity import ClinicCapacityService
    from clinic_os.core.database import session_scope

    async with session_scope() as db:
        return await ClinicCapacityService(db).get_capacity_status(clinic_id)


def _fail(exc: ClinicOSError) -> None:
    console.print(f"[red]{exc.code}: {exc.message.en}[/red]")
    if exc.details:
        console.print(f"[dim]{json.dumps(exc.details, default=str)}[/dim]")
    raise typer.Exit(1)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Host to bind"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to bind"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
):
    """Start the REST API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    console.print(f"Starting ClinicOS API server on {host}:{port}")
    uvicorn.run(
        "clinic_os.api.app:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


@app.command()
def init_db():
    """Create database tables and seed the first admin user."""
    from clinic_os.core.database import init_db as _init_db

    asyncio.run(_init_db())
    console.print("[green]Database initialized[/green]")


@app.command()
def progress(
    patient_id: str = typer.Argument(..., help="Patient id"),
    service_id: str = typer.Argument(..., help="Service id"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show a patient's progress through a multi-session service."""
    pid = _parse_uuid(patient_id, "patient id")
    sid = _parse_uuid(service_id, "service id")
    try:
        result = asyncio.run(_load_progress(pid, sid))
    except ClinicOSError as exc:
        _fail(exc)

    if output_json:
        console.print(result.model_dump_json(indent=2, by_alias=True))
        return

    console.print(
        Panel(
            f"[bold]{result.service_name}[/bold]\n"
            f"Completed {result.completed_sessions}/{result.total_sessions} "
            f"({result.completion_percentage}%)",
            title="Session Progress",
        )
    )
    table = Table()
    table.add_column("#")
    table.add_column("Session")
    table.add_column("Status")
    table.add_column("Date")
    table.add_column("Time")
    for item in result.sessions:
        status = f"[green]{item.status}[/green]" if item.is_completed else item.status
        table.add_row(
            str(item.session_order),
            item.session_name,
            status,
            item.appointment_date.isoformat() if item.appointment_date else "-",
            item.appointment_time or "-",
        )
    console.print(table)


@app.command()
def capacity(
    clinic_id: str = typer.Argument(..., help="Clinic id"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show a clinic's capacity against its configured limits."""
    cid = _parse_uuid(clinic_id, "clinic id")
    try:
        result = asyncio.run(_load_capacity(cid))
    except ClinicOSError as exc:
        _fail(exc)

    if output_json:
        console.print(result.model_dump_json(indent=2, by_alias=True))
        return

    table = Table(title=f"Capacity: {result.clinic_name}")
    table.add_column("Resource")
    table.add_column("Current")
    table.add_column("Max")
    table.add_column("Available")
    table.add_column("Usage")
    for label, metric in (
        ("Doctors", result.doctors),
        ("Staff", result.staff),
        ("Patients", result.patients),
    ):
        usage = f"{metric.percentage}%"
        if metric.is_exceeded:
            usage = f"[red]{usage}[/red]"
        table.add_row(label, str(metric.current), str(metric.max), str(metric.available), usage)
    console.print(table)

    for recommendation in result.recommendations:
        console.print(f"[yellow]{recommendation}[/yellow]")


@app.command()
def version():
    """Show version information."""
    from clinic_os import __version__

    console.print(f"ClinicOS v{__version__}")
