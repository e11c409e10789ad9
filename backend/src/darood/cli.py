"""Command-line interface for the Darood Counter backend."""

from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from darood.auth.local import LocalAuthService
from darood.auth.users import UserService
from darood.errors import DaroodError
from darood.logging_config import configure_logging, get_logger
from darood.referral.service import ReferralService
from darood.settings import settings
from darood.storage.db import Database

# Configure logging
configure_logging()
logger = get_logger(__name__)

# Create Typer app
app = typer.Typer(
    name="darood",
    help="Darood Counter - referral and points administration",
    no_args_is_help=True,
)

# Rich console for pretty output
console = Console()

DatabaseOption = Annotated[
    Optional[str],
    typer.Option("--database-url", help="Database URL (defaults to settings)"),
]


def _services(database_url: str | None) -> tuple[Database, UserService, ReferralService]:
    database = Database(database_url or settings.database_url)
    return database, UserService(database), ReferralService(database, settings)


def _fail(error: DaroodError) -> None:
    console.print(f"[bold red]✗[/bold red] {error.status}: {error.message}")
    raise typer.Exit(code=1)


@app.command("init")
def init_database(database_url: DatabaseOption = None) -> None:
    """Initialize the database and create tables."""
    console.print("[bold blue]Initializing database...[/bold blue]")
    database, _, _ = _services(database_url)
    database.create_tables()
    console.print("[bold green]✓[/bold green] Database initialized successfully")


@app.command("user-create")
def create_user(
    user_id: Annotated[str, typer.Argument(help="Opaque user id from the identity provider")],
    name: Annotated[Optional[str], typer.Option("--name", "-n", help="Display name")] = None,
    email: Annotated[Optional[str], typer.Option("--email", "-e", help="Email address")] = None,
    database_url: DatabaseOption = None,
) -> None:
    """Provision a user account with zero balances."""
    _, users, _ = _services(database_url)
    try:
        users.create_user(user_id, name=name, email=email)
    except DaroodError as e:
        _fail(e)
    console.print(f"[bold green]✓[/bold green] User created: [bold]{user_id}[/bold]")


@app.command("code")
def show_code(
    user_id: Annotated[str, typer.Argument(help="User id")],
    database_url: DatabaseOption = None,
) -> None:
    """Show a user's referral code, creating one if needed."""
    _, _, referrals = _services(database_url)
    try:
        code = referrals.get_or_create_code(user_id)
    except DaroodError as e:
        _fail(e)
    console.print(f"Referral code for {user_id}: [bold]{code}[/bold]")


@app.command("apply")
def apply_referral(
    user_id: Annotated[str, typer.Argument(help="User applying the code")],
    code: Annotated[str, typer.Argument(help="Referral code, any casing")],
    points: Annotated[Optional[int], typer.Option("--points", "-p", help="Points for each side")] = None,
    database_url: DatabaseOption = None,
) -> None:
    """Apply a referral code on behalf of a user."""
    _, _, referrals = _services(database_url)
    try:
        outcome = referrals.apply_referral(user_id, code, points)
    except DaroodError as e:
        _fail(e)

    if outcome.applied:
        console.print("[bold green]✓[/bold green] Referral applied")
    else:
        console.print(f"[yellow]Referral not applied:[/yellow] {outcome.reason.value}")


@app.command("stats")
def show_stats(
    user_id: Annotated[str, typer.Argument(help="User id")],
    database_url: DatabaseOption = None,
) -> None:
    """Show referral statistics for a user."""
    _, _, referrals = _services(database_url)
    try:
        stats = referrals.get_referral_stats(user_id)
    except DaroodError as e:
        _fail(e)

    console.print(f"Code: [bold]{stats['code']}[/bold]")
    console.print(f"  Referrals: {stats['referral_count']}")
    console.print(f"  Total points: {stats['total_count']}")
    console.print(f"  Month points: {stats['month_count']}")
    console.print(f"  Referred by: {stats['referred_by'] or '-'}")

    if not stats["recent_referrals"]:
        return

    table = Table(title="Recent referrals")
    table.add_column("Referred user", style="cyan")
    table.add_column("Points", justify="right")
    table.add_column("At")

    for event in stats["recent_referrals"]:
        table.add_row(event["referred_id"], str(event["points_awarded"]), event["created_at"] or "")

    console.print(table)


@app.command("token")
def issue_token(
    user_id: Annotated[str, typer.Argument(help="User id to put in the token")],
) -> None:
    """Issue a bearer token for a user (development and support)."""
    typer.echo(LocalAuthService().create_access_token(user_id))


if __name__ == "__main__":
    app()
