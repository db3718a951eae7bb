"""Command-line interface for librarydesk.

Built with Typer for commands and Rich for output.
"""

from datetime import datetime
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .authors import AuthorCreate, AuthorManager
from .catalog import CatalogManager, CopyCreate, CopyResponse
from .circulation import CirculationManager
from .config import get_config
from .db import get_db
from .errors import LibraryDeskError
from .events import EventCreate, EventKind, EventManager, EventResponse, EventState
from .lending import LoanResponse, LoanStatus
from .logging_setup import configure_logging
from .members import MemberCreate, MemberResponse
from .notifications import NotificationManager, NotificationResponse

# Create the main app
app = typer.Typer(
    name="librarydesk",
    help="Run a library circulation desk: loans, fines and reservations.",
    no_args_is_help=True,
)

# Create sub-apps for command groups
copy_app = typer.Typer(help="Manage catalogued copies.")
app.add_typer(copy_app, name="copy")

member_app = typer.Typer(help="Manage member accounts.")
app.add_typer(member_app, name="member")

author_app = typer.Typer(help="Manage the author registry.")
app.add_typer(author_app, name="author")

event_app = typer.Typer(help="Schedule library events and enrol members.")
app.add_typer(event_app, name="event")

# Rich console for pretty output
console = Console()


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[dim]{message}[/dim]")


def get_circulation() -> CirculationManager:
    db = get_db(str(get_config().db_path))
    return CirculationManager(db)


def format_status(loan: LoanResponse) -> str:
    if loan.status == LoanStatus.OVERDUE:
        return f"[bold red]OVERDUE ({loan.days_overdue}d, fine {loan.fine})[/bold red]"
    if loan.status == LoanStatus.DUE_SOON:
        return f"[yellow]due soon ({loan.days_remaining}d)[/yellow]"
    return f"[green]current ({loan.days_remaining}d)[/green]"


def format_loan_table(loans: list[LoanResponse], title: str = "Loans") -> Table:
    """Create a rich table for displaying loans."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ISBN", style="dim")
    table.add_column("Title", style="cyan", max_width=40)
    table.add_column("Member")
    table.add_column("Due")
    table.add_column("Renewals", justify="right")
    table.add_column("Status")

    for loan in loans:
        table.add_row(
            loan.isbn,
            loan.title or "-",
            loan.member_id,
            loan.due_at.strftime("%Y-%m-%d %H:%M"),
            str(loan.renewals),
            format_status(loan),
        )

    return table


def format_copy_table(copies: list[CopyResponse], title: str = "Copies") -> Table:
    """Create a rich table for displaying copies with their holder and queue."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ISBN", style="dim")
    table.add_column("Title", style="cyan", max_width=40)
    table.add_column("Author", style="green", max_width=25)
    table.add_column("Holder")
    table.add_column("Queue", justify="right")

    for copy in copies:
        table.add_row(
            copy.isbn,
            copy.title,
            copy.author,
            copy.holder or "[green]on shelf[/green]",
            str(copy.queue_length) if copy.queue_length else "-",
        )

    return table


def format_event_state(event: EventResponse) -> str:
    if event.state == EventState.FINISHED:
        return "[dim]finished[/dim]"
    if event.state == EventState.TODAY:
        return "[bold yellow]today[/bold yellow]"
    if event.state == EventState.UPCOMING:
        return f"[yellow]in {event.days_until}d[/yellow]"
    return f"[green]in {event.days_until}d[/green]"


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show log output"),
) -> None:
    """Library circulation desk."""
    configure_logging("DEBUG" if verbose else None)


# ============================================================================
# Catalog Commands
# ============================================================================


@copy_app.command("add")
def copy_add(
    isbn: str = typer.Argument(..., help="ISBN (catalog key)"),
    title: str = typer.Option(..., "--title", "-t", help="Title"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="Author name"),
    author_id: Optional[str] = typer.Option(None, "--author-id", help="Registered author id"),
) -> None:
    """Add a copy to the catalog."""
    catalog = CatalogManager(get_db(str(get_config().db_path)))
    try:
        copy = catalog.add_copy(
            CopyCreate(isbn=isbn, title=title, author=author, author_id=author_id)
        )
    except (LibraryDeskError, ValueError) as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f"Added {copy.title} ({copy.isbn})")


@copy_app.command("list")
def copy_list(
    available: bool = typer.Option(False, "--available", "-a", help="Only copies on the shelf"),
) -> None:
    """List catalogued copies."""
    copies = get_circulation().catalog_view(available_only=available)
    if not copies:
        print_info("No copies found")
        return
    console.print(format_copy_table(copies))


@copy_app.command("show")
def copy_show(
    isbn: str = typer.Argument(..., help="ISBN of the copy"),
) -> None:
    """Show who holds a copy and how many are waiting for it."""
    try:
        copy = get_circulation().copy_status(isbn)
    except LibraryDeskError as e:
        print_error(str(e))
        raise typer.Exit(1)
    console.print(format_copy_table([copy], title=copy.title))


@copy_app.command("search")
def copy_search(
    query: str = typer.Argument(..., help="Text to find in title or author"),
) -> None:
    """Search copies by title or author."""
    catalog = CatalogManager(get_db(str(get_config().db_path)))
    copies = catalog.search_copies(query)
    if not copies:
        print_info(f"No copies matching '{query}'")
        return
    for copy in copies:
        console.print(f"[dim]{copy.isbn}[/dim]  [cyan]{copy.title}[/cyan] - {copy.author}")


# ============================================================================
# Member Commands
# ============================================================================


@member_app.command("add")
def member_add(
    name: str = typer.Argument(..., help="Member name"),
    member_id: Optional[str] = typer.Option(None, "--id", help="Member id (generated if omitted)"),
    email: Optional[str] = typer.Option(None, "--email", "-e", help="Email"),
    phone: Optional[str] = typer.Option(None, "--phone", "-p", help="Phone"),
) -> None:
    """Register a member."""
    catalog = CatalogManager(get_db(str(get_config().db_path)))
    try:
        member = catalog.register_member(
            MemberCreate(id=member_id, name=name, email=email, phone=phone)
        )
    except (LibraryDeskError, ValueError) as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f"Registered {member.name} with id {member.id}")


@member_app.command("list")
def member_list() -> None:
    """List members."""
    catalog = CatalogManager(get_db(str(get_config().db_path)))
    members = [MemberResponse.model_validate(m) for m in catalog.list_members()]
    if not members:
        print_info("No members registered")
        return

    table = Table(title="Members", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Email")
    table.add_column("Registered")
    table.add_column("Fine balance", justify="right")
    for member in members:
        table.add_row(
            member.id,
            member.name,
            member.email or "-",
            member.registered_at.strftime("%Y-%m-%d"),
            str(member.fine_balance),
        )
    console.print(table)


@member_app.command("show")
def member_show(
    member_id: str = typer.Argument(..., help="Member id"),
) -> None:
    """Show a member's loans, fines and reservations."""
    circulation = get_circulation()
    try:
        account = circulation.member_account(member_id)
    except LibraryDeskError as e:
        print_error(str(e))
        raise typer.Exit(1)

    eligibility = "[green]yes[/green]" if account.can_borrow else "[red]no[/red]"
    console.print(Panel(
        f"[bold]{account.name}[/bold] ({account.member_id})\n"
        f"Fine balance: {account.fine_balance}\n"
        f"Outstanding (incl. overdue loans): {account.outstanding_fines}\n"
        f"Overdue loans: {account.overdue_count}\n"
        f"May borrow: {eligibility}\n"
        f"Books read: {account.books_read}\n"
        f"Reservations: {', '.join(account.reservations) or '-'}",
        title="Member",
    ))
    if account.active_loans:
        console.print(format_loan_table(account.active_loans, title="Active loans"))


# ============================================================================
# Author Commands
# ============================================================================


def get_authors() -> AuthorManager:
    return AuthorManager(get_db(str(get_config().db_path)))


@author_app.command("add")
def author_add(
    name: str = typer.Argument(..., help="Author name"),
    bio: Optional[str] = typer.Option(None, "--bio", "-b", help="Short biography"),
    born: Optional[int] = typer.Option(None, "--born", help="Birth year"),
) -> None:
    """Register an author."""
    try:
        author = get_authors().add_author(AuthorCreate(name=name, biography=bio, birth_year=born))
    except (LibraryDeskError, ValueError) as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f"Registered {author.name} with id {author.id}")


@author_app.command("list")
def author_list(
    century: Optional[int] = typer.Option(None, "--century", "-c", help="Only authors born in this century"),
) -> None:
    """List registered authors."""
    manager = get_authors()
    try:
        authors = manager.list_authors() if century is None else manager.authors_born_in_century(century)
    except LibraryDeskError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if not authors:
        print_info("No authors found")
        return

    table = Table(title="Authors", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Born", justify="right")
    for author in authors:
        table.add_row(author.id, author.name, str(author.birth_year or "-"))
    console.print(table)


@author_app.command("show")
def author_show(
    name: str = typer.Argument(..., help="Author name, or part of it"),
) -> None:
    """Show an author's biography and catalogued copies."""
    manager = get_authors()
    author = manager.find_author(name)
    if author is None:
        print_error(f"No author matching '{name}'")
        raise typer.Exit(1)

    details = manager.describe(author.id)
    console.print(Panel(
        f"[bold]{details.name}[/bold] ({details.birth_year or 'year unknown'})\n"
        f"{details.biography or 'No biography'}\n"
        f"Copies: {details.copies}, readers: {details.readers}",
        title="Author",
    ))
    for copy in manager.copies_by(author.id):
        console.print(f"  [dim]{copy.isbn}[/dim]  [cyan]{copy.title}[/cyan]")


# ============================================================================
# Event Commands
# ============================================================================


def get_events() -> EventManager:
    return EventManager(get_db(str(get_config().db_path)))


@event_app.command("add")
def event_add(
    title: str = typer.Argument(..., help="Event title"),
    date: datetime = typer.Option(
        ..., "--date", "-d", formats=["%Y-%m-%d", "%Y-%m-%d %H:%M"], help="Start (UTC)"
    ),
    kind: EventKind = typer.Option(EventKind.OTHER, "--kind", "-k", help="Kind of event"),
    location: Optional[str] = typer.Option(None, "--location", "-l", help="Where it takes place"),
    capacity: Optional[int] = typer.Option(None, "--capacity", "-c", help="Seats (unlimited if omitted)"),
    description: str = typer.Option("", "--description", help="Description"),
    event_id: Optional[str] = typer.Option(None, "--id", help="Event id (generated if omitted)"),
) -> None:
    """Schedule an event."""
    try:
        event = get_events().create_event(
            EventCreate(
                id=event_id,
                title=title,
                description=description,
                kind=kind,
                starts_at=date,
                location=location,
                capacity=capacity,
            )
        )
    except (LibraryDeskError, ValueError) as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f"Scheduled {event.title} with id {event.id}")


@event_app.command("list")
def event_list(
    include_all: bool = typer.Option(False, "--all", help="Include finished events"),
) -> None:
    """List scheduled events."""
    events = get_events().list_events(include_finished=include_all)
    if not events:
        print_info("No events scheduled")
        return

    table = Table(title="Events", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan", max_width=40)
    table.add_column("Kind")
    table.add_column("Starts")
    table.add_column("Seats", justify="right")
    table.add_column("State")
    for event in events:
        seats = "-" if event.seats_left is None else f"{event.seats_left}/{event.capacity}"
        table.add_row(
            event.id,
            event.title,
            event.kind.value,
            event.starts_at.strftime("%Y-%m-%d %H:%M"),
            seats,
            format_event_state(event),
        )
    console.print(table)


@event_app.command("enroll")
def event_enroll(
    member_id: str = typer.Argument(..., help="Member id"),
    event_id: str = typer.Argument(..., help="Event id"),
) -> None:
    """Enrol a member in an event."""
    try:
        event = get_events().enroll(member_id, event_id)
    except LibraryDeskError as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f'{member_id} enrolled in "{event.title}"')


@event_app.command("withdraw")
def event_withdraw(
    member_id: str = typer.Argument(..., help="Member id"),
    event_id: str = typer.Argument(..., help="Event id"),
) -> None:
    """Take a member off an event."""
    try:
        removed = get_events().withdraw(member_id, event_id)
    except LibraryDeskError as e:
        print_error(str(e))
        raise typer.Exit(1)
    if removed:
        print_success(f"{member_id} withdrew from {event_id}")
    else:
        print_info(f"{member_id} was not enrolled in {event_id}")


@event_app.command("cancel")
def event_cancel(
    event_id: str = typer.Argument(..., help="Event id"),
) -> None:
    """Cancel an event and notify its participants."""
    try:
        notified = get_events().cancel_event(event_id)
    except LibraryDeskError as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f"Cancelled {event_id}, notified {notified} participant(s)")


@event_app.command("reminders")
def event_reminders(
    days: Optional[int] = typer.Option(None, "--days", "-d", help="Look-ahead window in days"),
) -> None:
    """Remind participants of events starting soon."""
    sent = get_events().send_event_reminders(days)
    print_success(f"Sent {sent} reminder(s)")


# ============================================================================
# Circulation Commands
# ============================================================================


@app.command()
def borrow(
    member_id: str = typer.Argument(..., help="Member id"),
    isbn: str = typer.Argument(..., help="ISBN of the copy"),
    days: Optional[int] = typer.Option(None, "--days", "-d", help="Loan length in days"),
) -> None:
    """Lend a copy to a member."""
    try:
        loan = get_circulation().borrow(member_id, isbn, days)
    except LibraryDeskError as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f'{member_id} borrowed "{loan.title}"')
    print_info(f"Due: {loan.due_at:%Y-%m-%d %H:%M} UTC")


@app.command("return")
def return_copy(
    member_id: str = typer.Argument(..., help="Member id"),
    isbn: str = typer.Argument(..., help="ISBN of the copy"),
) -> None:
    """Take back a copy from a member."""
    try:
        receipt = get_circulation().return_copy(member_id, isbn)
    except LibraryDeskError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f'"{receipt.title}" returned by {member_id}')
    if receipt.fine_charged:
        print_warning(
            f"{receipt.days_overdue} day(s) overdue: fine {receipt.fine_charged}, "
            f"balance {receipt.fine_balance}"
        )
    if receipt.handed_off_to:
        console.print(
            f"[cyan]Notified {receipt.handed_off_to}[/cyan], hold until "
            f"{receipt.hold_expires_at:%Y-%m-%d %H:%M} UTC"
        )


@app.command()
def reserve(
    member_id: str = typer.Argument(..., help="Member id"),
    isbn: str = typer.Argument(..., help="ISBN of the copy"),
) -> None:
    """Reserve a copy that is on loan."""
    try:
        position = get_circulation().reserve(member_id, isbn)
    except LibraryDeskError as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f"Reserved {isbn} for {member_id}, position {position}")


@app.command()
def cancel(
    member_id: str = typer.Argument(..., help="Member id"),
    isbn: str = typer.Argument(..., help="ISBN of the copy"),
) -> None:
    """Cancel a reservation."""
    try:
        removed = get_circulation().cancel_reservation(member_id, isbn)
    except LibraryDeskError as e:
        print_error(str(e))
        raise typer.Exit(1)
    if removed:
        print_success(f"Cancelled reservation of {member_id} on {isbn}")
    else:
        print_info(f"{member_id} had no reservation on {isbn}")


@app.command()
def renew(
    member_id: str = typer.Argument(..., help="Member id"),
    isbn: str = typer.Argument(..., help="ISBN of the copy"),
    days: Optional[int] = typer.Option(None, "--days", "-d", help="Days to add"),
) -> None:
    """Renew a loan."""
    try:
        loan = get_circulation().renew(member_id, isbn, days)
    except LibraryDeskError as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f'Renewed "{loan.title}" until {loan.due_at:%Y-%m-%d %H:%M} UTC')


@app.command()
def pay(
    member_id: str = typer.Argument(..., help="Member id"),
    amount: int = typer.Argument(..., help="Amount paid"),
) -> None:
    """Record a fine payment."""
    try:
        remaining = get_circulation().pay_fine(member_id, amount)
    except LibraryDeskError as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f"Payment recorded, remaining balance {remaining}")


@app.command()
def queue(
    isbn: str = typer.Argument(..., help="ISBN of the copy"),
) -> None:
    """Show the reservation queue of a copy."""
    circulation = get_circulation()
    try:
        holder = circulation.holder_of(isbn)
        waiting = circulation.queue_for(isbn)
    except LibraryDeskError as e:
        print_error(str(e))
        raise typer.Exit(1)

    console.print(f"Holder: {holder or '[green]on shelf[/green]'}")
    if not waiting:
        print_info("No reservations")
        return
    for position, member_id in enumerate(waiting, start=1):
        console.print(f"  {position}. {member_id}")


@app.command()
def loans(
    overdue: bool = typer.Option(False, "--overdue", "-o", help="Only overdue loans"),
    due_soon: bool = typer.Option(False, "--due-soon", "-s", help="Only loans due soon"),
) -> None:
    """List active loans."""
    circulation = get_circulation()
    if overdue:
        results = circulation.overdue_loans()
    elif due_soon:
        results = circulation.loans_due_soon()
    else:
        results = circulation.all_loans()

    if not results:
        print_info("No loans found")
        return
    console.print(format_loan_table(results))


@app.command()
def reminders() -> None:
    """Notify members about overdue and due-soon loans."""
    sent = get_circulation().send_due_reminders()
    print_success(f"Sent {sent} reminder(s)")


@app.command()
def notifications(
    member_id: str = typer.Argument(..., help="Member id"),
    unread: bool = typer.Option(False, "--unread", "-u", help="Only unread"),
    mark_read: bool = typer.Option(False, "--mark-read", "-m", help="Mark all as read"),
) -> None:
    """Show a member's notifications."""
    config = get_config()
    store = NotificationManager(get_db(str(config.db_path)), capacity=config.notification_capacity)
    items = [
        NotificationResponse.model_validate(n)
        for n in store.list_for_member(member_id, unread_only=unread)
    ]

    if not items:
        print_info("No notifications")
    else:
        table = Table(title=f"Notifications for {member_id}", header_style="bold magenta")
        table.add_column("When", style="dim")
        table.add_column("Category")
        table.add_column("Priority")
        table.add_column("Message")
        for item in items:
            style = "bold" if not item.read else "dim"
            table.add_row(
                item.created_at.strftime("%Y-%m-%d %H:%M"),
                item.category.value,
                item.priority.value,
                f"[{style}]{item.message}[/{style}]",
            )
        console.print(table)

    if mark_read:
        changed = store.mark_all_read(member_id)
        print_info(f"Marked {changed} notification(s) as read")


@app.command()
def stats() -> None:
    """Show circulation statistics."""
    s = get_circulation().get_stats()
    console.print(Panel(
        f"Copies: {s.total_copies} ({s.copies_on_loan} on loan, {s.copies_available} on shelf)\n"
        f"Members: {s.total_members} ({s.members_with_fines} owing fines)\n"
        f"Active loans: {s.active_loans} ({s.overdue_loans} overdue)\n"
        f"Pending reservations: {s.pending_reservations}\n"
        f"Locked-in fines: {s.fines_outstanding}",
        title="Circulation",
    ))


if __name__ == "__main__":
    app()
