"""
HaulOps CLI

Command-line interface for the HaulOps back office.
"""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from ..config import settings
from ..db import get_repository
from ..importers import TicketImporter
from ..integrations import get_provider, ping_providers
from ..log import configure_logging
from ..models.enums import GroupBy
from ..reports import profit_report_csv
from ..services import BillingService

app = typer.Typer(
    name="haulops",
    help="HaulOps: back office for aggregate hauling",
    add_completion=False,
)
console = Console()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    configure_logging(level="DEBUG" if verbose else None)


def _parse_date(value: Optional[str], option: str):
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        console.print(f"[red]{option} must be YYYY-MM-DD, got {value!r}[/red]")
        raise typer.Exit(2)


# =============================================================================
# Setup Commands
# =============================================================================

@app.command()
def init():
    """
    Initialize the database.

    Run this once to set up the system before first use.
    """
    console.print("[cyan]Initializing HaulOps...[/cyan]")

    get_repository()
    console.print("[green]Database initialized.[/green]")

    if not settings.validate_admin_token():
        console.print("[yellow]ADMIN_TOKEN is not set; admin API calls will be rejected.[/yellow]")

    console.print(Panel.fit(
        "[bold green]HaulOps is ready![/bold green]\n\n"
        "Next steps:\n"
        "1. Run [cyan]haulops import-tickets tickets.csv[/cyan] to load haul tickets\n"
        "2. Run [cyan]haulops profit-report --group-by partner[/cyan]\n"
        "3. Run [cyan]haulops serve[/cyan] to start the API",
        title="Setup Complete",
    ))


@app.command()
def version():
    """Show version information."""
    console.print(Panel(
        f"[bold]{settings.APP_NAME}[/bold] v{settings.APP_VERSION}\n"
        "Back office for aggregate hauling",
        title="Version",
    ))


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload on code changes"),
):
    """
    Start the HaulOps API server.

    Swagger UI available at: http://localhost:8000/docs
    """
    import uvicorn

    console.print(Panel.fit(
        "[bold green]HaulOps API Server[/bold green]\n\n"
        f"Starting server on http://{host}:{port}\n\n"
        "[cyan]Endpoints:[/cyan]\n"
        "  • Swagger UI: /docs\n"
        "  • Admin: /v1/admin/*\n"
        "  • DVIR: /v1/dvir\n"
        "  • Customer portal: /v1/customer/*\n\n"
        "[dim]Press Ctrl+C to stop[/dim]",
        title="Server Mode",
    ))

    try:
        uvicorn.run(
            "haulops.server:app",
            host=host,
            port=port,
            reload=reload,
            log_level=settings.LOG_LEVEL.lower(),
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Server stopped by user[/yellow]")


# =============================================================================
# Reporting Commands
# =============================================================================

@app.command()
def stats():
    """Show record counts across the back office."""
    db_stats = get_repository().get_stats()

    console.print(Panel.fit("[bold]HaulOps Statistics[/bold]", title="Dashboard"))

    table = Table(title="Records")
    table.add_column("Area", style="cyan")
    table.add_column("Total", style="green")
    table.add_column("Detail")

    table.add_row("Compliance items", str(db_stats["compliance_items"]), "")
    table.add_row("DVIRs", str(db_stats["dvirs"]["total"]), f"{db_stats['dvirs']['with_defects']} with defects")
    table.add_row("Maintenance requests", str(db_stats["maintenance"]["total"]), f"{db_stats['maintenance']['pending']} pending")
    table.add_row("Vehicles", str(db_stats["vehicles"]), "")
    table.add_row("Drivers", str(db_stats["drivers"]["total"]), f"{db_stats['drivers']['active']} active")
    table.add_row("Quotes", str(db_stats["quotes"]), "")
    table.add_row("Invoices", str(db_stats["invoices"]["total"]), f"{db_stats['invoices']['paid']} paid")
    table.add_row("Tickets", str(db_stats["tickets"]), "")
    table.add_row("Load requests", str(db_stats["load_requests"]), "")

    console.print(table)


@app.command()
def compliance(
    days: int = typer.Option(settings.COMPLIANCE_ALERT_DAYS, "--days", "-d", help="Alert window in days"),
):
    """
    Show compliance items expiring within the alert window.

    Already-expired items are included, soonest first.
    """
    items = get_repository().list_compliance_items(upcoming_days=days)

    if not items:
        console.print(f"[green]Nothing expires in the next {days} days.[/green]")
        return

    badge_styles = {"Expired": "red", "Expiring": "yellow", "OK": "green"}

    table = Table(title=f"Compliance alerts ({len(items)} within {days} days)")
    table.add_column("Type", style="cyan")
    table.add_column("Entity")
    table.add_column("Identifier")
    table.add_column("Expires")
    table.add_column("Days", justify="right")
    table.add_column("Badge")

    for item in items:
        style = badge_styles.get(item.badge or "", "white")
        table.add_row(
            item.item_type,
            item.entity or "",
            item.identifier or "",
            item.expiration_date.isoformat() if item.expiration_date else "",
            str(item.days_left),
            f"[{style}]{item.badge}[/{style}]",
        )

    console.print(table)


@app.command("profit-report")
def profit_report(
    date_from: Optional[str] = typer.Option(None, "--from", help="Start date YYYY-MM-DD"),
    date_to: Optional[str] = typer.Option(None, "--to", help="End date YYYY-MM-DD"),
    partner_id: Optional[str] = typer.Option(None, "--partner", help="Partner ID"),
    material: Optional[str] = typer.Option(None, "--material", "-m", help="Material name"),
    include_voided: bool = typer.Option(False, "--include-voided", help="Include voided tickets"),
    group_by: GroupBy = typer.Option(GroupBy.NONE, "--group-by", "-g", help="none, partner, material or day"),
    csv_path: Optional[Path] = typer.Option(None, "--csv", help="Write the report to this CSV file"),
):
    """
    Profit per ticket with totals, optionally grouped.

    Examples:
        haulops profit-report --from 2024-01-01 --to 2024-01-31
        haulops profit-report --group-by partner --csv partners.csv
    """
    report = BillingService(get_repository()).profit_report(
        group_by=group_by,
        date_from=_parse_date(date_from, "--from"),
        date_to=_parse_date(date_to, "--to"),
        partner_id=partner_id,
        material=material,
        include_voided=include_voided,
    )

    if csv_path:
        csv_path.write_text(profit_report_csv(report) + "\n", encoding="utf-8")
        console.print(f"[green]Wrote {csv_path}[/green]")
        return

    if report.groups is not None:
        table = Table(title=f"Profit by {report.group_by}")
        table.add_column("Group", style="cyan")
        table.add_column("Tickets", justify="right")
        table.add_column("Bill", justify="right")
        table.add_column("Pay", justify="right")
        table.add_column("Profit", justify="right", style="green")
        table.add_column("Margin %", justify="right")
        for g in report.groups:
            table.add_row(g.key, str(g.count), f"{g.bill:,.2f}", f"{g.pay:,.2f}", f"{g.profit:,.2f}", f"{g.margin_pct:.2f}")
    else:
        table = Table(title=f"Profit report ({len(report.items)} tickets)")
        table.add_column("Date", style="cyan")
        table.add_column("Partner")
        table.add_column("Material")
        table.add_column("Qty", justify="right")
        table.add_column("Bill", justify="right")
        table.add_column("Pay", justify="right")
        table.add_column("Profit", justify="right", style="green")
        table.add_column("Margin %", justify="right")
        for it in report.items:
            table.add_row(
                it.date,
                it.partner_name or "",
                it.material or "",
                f"{it.quantity:g}",
                f"{it.total_bill:,.2f}",
                f"{it.total_pay:,.2f}",
                f"{it.total_profit:,.2f}",
                f"{it.margin_pct:.2f}",
            )

    console.print(table)

    totals = report.totals
    console.print(Panel.fit(
        f"Bill: [bold]{totals.bill:,.2f}[/bold]   Pay: [bold]{totals.pay:,.2f}[/bold]   "
        f"Profit: [bold green]{totals.profit:,.2f}[/bold green]   Margin: {totals.margin_pct:.2f}%",
        title="Totals",
    ))


# =============================================================================
# Import Commands
# =============================================================================

@app.command("import-tickets")
def import_tickets(
    path: Path = typer.Argument(..., help="CSV file of haul tickets"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Parse only, do not save"),
    preview: bool = typer.Option(False, "--preview", help="Show detected columns and exit"),
):
    """Import haul tickets from a CSV export."""
    if not path.exists():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(1)

    importer = TicketImporter(repository=None if dry_run else get_repository())

    if preview:
        info = importer.preview_csv(path)
        table = Table(title="Detected columns")
        table.add_column("Field", style="cyan")
        table.add_column("CSV column", style="green")
        for field_name, column in info["mapping"].items():
            table.add_row(field_name, str(column))
        console.print(table)
        if info["unmapped"]:
            console.print(f"[dim]Unmapped: {', '.join(info['unmapped'])}[/dim]")
        return

    result = importer.import_csv(path, save_to_db=not dry_run)

    table = Table(title="Import Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Rows read", str(result.total_rows))
    table.add_row("Imported", str(result.imported))
    table.add_row("Skipped", str(result.skipped))
    table.add_row("Errors", str(len(result.errors)))
    console.print(table)

    for error in result.errors[:10]:
        console.print(f"[red]{error}[/red]")
    if dry_run:
        console.print("[yellow]Dry run: nothing saved.[/yellow]")


# =============================================================================
# ELD Commands
# =============================================================================

@app.command("eld-ping")
def eld_ping():
    """Show which ELD providers have credentials configured."""
    table = Table(title="ELD Providers")
    table.add_column("Provider", style="cyan")
    table.add_column("Configured")

    for key, info in ping_providers().items():
        status = "[green]yes[/green]" if info["configured"] else "[yellow]no[/yellow]"
        table.add_row(f"{info['name']} ({key})", status)

    console.print(table)


@app.command("eld-fetch")
def eld_fetch(
    provider: str = typer.Argument(..., help="samsara, motive, keeptruckin or geotab"),
    endpoint: str = typer.Argument("truck-status", help="driver-locations, truck-status or hos"),
):
    """Fetch and show normalized rows from an ELD provider."""
    eld = get_provider(provider)
    rows = asyncio.run(eld.fetch(endpoint))

    if not rows:
        console.print(f"[yellow]No data from {eld.name}.[/yellow]")
        return

    table = Table(title=f"{eld.name} {endpoint} ({len(rows)})")
    columns = list(rows[0].model_dump().keys())
    for column in columns:
        table.add_column(column)
    for row in rows:
        data = row.model_dump()
        table.add_row(*["" if data[c] is None else str(data[c]) for c in columns])

    console.print(table)


# =============================================================================
# Entry Point
# =============================================================================

def main():
    """Main entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
