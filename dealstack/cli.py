"""DealStack CLI.

Commands:
- init: Initialize database schema
- create-user: Add a login for an organisation
- stats: Show dashboard statistics for an organisation
- web serve: Run the REST API
"""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy import select

from dealstack.config import get_config
from dealstack.db.connection import close_db, get_session, init_db
from dealstack.db.models import UserModel
from dealstack.models import UserRole
from dealstack.reporting.dashboard_metrics import (
    compute_dashboard_stats,
    format_change,
    format_count,
    format_money,
)
from dealstack.web.auth import hash_password

app = typer.Typer(
    name="dealstack",
    help="DealStack - customers, invoices, orders and support tickets",
    no_args_is_help=True,
)

web_cli = typer.Typer(help="REST API")
app.add_typer(web_cli, name="web")

console = Console()


@app.command()
def init(
    drop: bool = typer.Option(False, "--drop", help="Drop existing tables"),
):
    """Initialize database schema."""
    config = get_config()
    console.print(f"[bold]Initializing database:[/bold] {config.db.url}")

    async def _init():
        if drop:
            console.print("[yellow]Dropping existing tables...[/yellow]")
        await init_db(drop=drop)
        await close_db()

    asyncio.run(_init())
    console.print("[bold green]✓[/bold green] Database initialized")


@app.command(name="create-user")
def create_user(
    email: str = typer.Argument(..., help="Login email"),
    name: str = typer.Option(..., "--name", help="Display name"),
    role: UserRole = typer.Option(UserRole.AGENT, "--role", help="User role"),
    org_id: str | None = typer.Option(None, "--org", help="Organization ID"),
    password: str = typer.Option(
        ..., prompt=True, confirmation_prompt=True, hide_input=True, help="Password"
    ),
):
    """Create a user that can sign in to the API."""
    org_id = org_id or get_config().org_id

    async def _create() -> bool:
        try:
            async with get_session() as session:
                existing = await session.execute(select(UserModel).where(UserModel.email == email))
                if existing.scalars().first() is not None:
                    return False
                session.add(
                    UserModel(
                        org_id=org_id,
                        email=email,
                        name=name,
                        role=role.value,
                        password_hash=hash_password(password),
                    )
                )
            return True
        finally:
            await close_db()

    if not asyncio.run(_create()):
        console.print(f"[red]✗[/red] A user with email {email} already exists")
        raise typer.Exit(code=1)
    console.print(f"[bold green]✓[/bold green] Created {role.value} {email} in org={org_id}")


@app.command()
def stats(
    org_id: str | None = typer.Option(None, "--org", help="Organization ID"),
):
    """Show dashboard statistics."""
    config = get_config()
    org_id = org_id or config.org_id
    symbol = config.stats.currency_symbol

    console.print(f"[bold]Dashboard Statistics:[/bold] org={org_id}")

    async def _stats():
        try:
            async with get_session() as session:
                return await compute_dashboard_stats(
                    session, org_id, comparison_days=config.stats.comparison_days
                )
        finally:
            await close_db()

    result = asyncio.run(_stats())

    table = Table(title=f"Statistics (change vs previous {result.comparison_days} days)")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="green")
    table.add_column("Change", justify="right")

    table.add_row("Total Customers", format_count(result.total_customers), format_change(result.total_customers_change))
    table.add_row("Active Worksheets", format_count(result.active_worksheets), format_change(result.active_worksheets_change))
    table.add_row("Pending Invoices", format_count(result.pending_invoices), format_change(result.pending_invoices_change))
    table.add_row("Active Orders", format_count(result.active_orders), format_change(result.active_orders_change))
    table.add_row("Total Revenue", format_money(result.total_revenue, symbol), "")
    table.add_row("Paid", format_money(result.paid_invoices, symbol), "")
    table.add_row("Pending", format_money(result.pending_revenue, symbol), "")

    console.print(table)


@web_cli.command("serve")
def web_serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind"),
    port: int = typer.Option(8000, help="Port to bind"),
    reload: bool = typer.Option(False, help="Enable autoreload (dev only)"),
):
    """Run the FastAPI REST API."""
    import uvicorn

    typer.echo(f"Starting DealStack API on http://{host}:{port}{get_config().api.base_path}")
    uvicorn.run(
        "dealstack.web.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=1,
    )


if __name__ == "__main__":
    app()
