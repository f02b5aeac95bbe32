"""Command-line interface for readledger.

Built with Typer for commands and Rich for output.
"""

import logging
from contextlib import contextmanager
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from .config import get_config
from .db import get_db
from .db.schemas import BookCreate, BookPatch, BookRecord, EventType, ReadingState
from .errors import (
    BookNotFound,
    InvalidTransition,
    LedgerWriteFailure,
    OutOfRangeProgress,
    RatingNotAllowed,
)
from .reading import ReadingService, allowed_next_states, progress_percent

# Create the main app
app = typer.Typer(
    name="readledger",
    help="Track your reading progress and see where your pages go.",
    no_args_is_help=True,
)

# Create sub-apps for command groups
goal_app = typer.Typer(help="Manage reading goals.")
app.add_typer(goal_app, name="goal")

# Rich console for pretty output
console = Console()


@app.callback()
def main() -> None:
    """Track your reading progress and see where your pages go."""
    config = get_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    errors = config.validate()
    if errors:
        for error in errors:
            print_error(error)
        raise typer.Exit(1)


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[dim]{message}[/dim]")


def open_db():
    """Database at the configured path."""
    return get_db(str(get_config().db_path))


def get_service() -> ReadingService:
    """Reading service bound to the configured database and user."""
    return ReadingService(db=open_db())


@contextmanager
def ledger_errors():
    """Turn ledger errors into CLI messages and exit code 1."""
    try:
        yield
    except InvalidTransition as e:
        print_error(str(e))
        allowed = sorted(s.value for s in allowed_next_states(ReadingState(e.current)))
        if allowed:
            print_info(f"From {e.current} you can move to: {', '.join(allowed)}")
        else:
            print_info(f"{e.current} is final. Use 'readledger edit --state' to correct it.")
        raise typer.Exit(1)
    except OutOfRangeProgress as e:
        print_error(str(e))
        print_info("Check the page number, or fix the page count with 'readledger edit --pages'.")
        raise typer.Exit(1)
    except (RatingNotAllowed, BookNotFound) as e:
        print_error(str(e))
        raise typer.Exit(1)
    except ValidationError as e:
        for err in e.errors():
            field = ".".join(str(part) for part in err["loc"]) or "value"
            print_error(f"{field}: {err['msg']}")
        raise typer.Exit(1)
    except LedgerWriteFailure as e:
        print_error(f"Could not save the change: {e}")
        print_info("Nothing was written. Please try again.")
        raise typer.Exit(1)


def resolve_book(service: ReadingService, query: str) -> BookRecord:
    """Find one book by ID or title, prompting when several match."""
    books = service.find_books(query, limit=5)
    if not books:
        print_error(f"No book found matching: {query}")
        raise typer.Exit(1)

    if len(books) == 1:
        return books[0]

    console.print("\n[bold]Multiple books found:[/bold]")
    for i, b in enumerate(books, 1):
        console.print(f"  {i}. {b.title} by {b.author}")

    choice = typer.prompt("Select book number", type=int, default=1)
    if choice < 1 or choice > len(books):
        print_error("Invalid selection")
        raise typer.Exit(1)
    return books[choice - 1]


def format_book_table(books: list[BookRecord], title: str = "Books") -> Table:
    """Create a rich table for displaying books."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Title", style="cyan", no_wrap=False, max_width=40)
    table.add_column("Author", style="green", max_width=25)
    table.add_column("Genre")
    table.add_column("State", style="yellow")
    table.add_column("Progress", justify="center")
    table.add_column("Rating", justify="center")
    table.add_column("ID", style="dim")

    for book in books:
        rating = "★" * book.rating + "☆" * (5 - book.rating) if book.rating else "-"
        if book.has_page_count:
            progress = f"{book.current_page}/{book.total_pages} ({progress_percent(book)}%)"
        else:
            progress = f"p. {book.current_page}" if book.current_page else "-"
        table.add_row(
            book.title,
            book.author,
            book.resolved_genre,
            book.state.value,
            progress,
            rating,
            book.id[:8],
        )

    return table


def describe_event(event) -> str:
    """One-line description of a ledger event."""
    payload = event.payload
    if event.type == EventType.STATE_CHANGE:
        return f"{payload.previous_state.value} → {payload.new_state.value}"
    if event.type == EventType.PROGRESS_UPDATE:
        return f"page {payload.previous_page} → {payload.new_page}"
    if event.type == EventType.RATING_ADDED:
        return f"rated {payload.rating}/5"
    return payload.text


# ============================================================================
# Book Management Commands
# ============================================================================


@app.command()
def add(
    title: str = typer.Option(..., "--title", "-t", prompt="Book title"),
    author: str = typer.Option(..., "--author", "-a", prompt="Author"),
    genre: Optional[str] = typer.Option(None, "--genre", "-g", help="Genre"),
    pages: int = typer.Option(0, "--pages", "-p", min=0, help="Total pages (0 = unknown)"),
    state: ReadingState = typer.Option(
        ReadingState.NOT_STARTED, "--state", "-s", help="Initial reading state"
    ),
    owned: bool = typer.Option(False, "--owned/--wishlist", help="Owned or wishlist"),
    isbn: Optional[str] = typer.Option(None, "--isbn", "-i", help="ISBN"),
) -> None:
    """Add a book to your library."""
    service = get_service()

    with ledger_errors():
        book = service.add_book(
            BookCreate(
                title=title,
                author=author,
                genre=genre,
                total_pages=pages,
                state=state,
                is_owned=owned,
                isbn=isbn,
            )
        )

    print_success(f"Added: {book.title} by {book.author}")
    print_info(f"ID: {book.id}")


@app.command("list")
def list_books(
    state: Optional[ReadingState] = typer.Option(None, "--state", "-s", help="Filter by state"),
    limit: int = typer.Option(20, "--limit", "-l", help="Max books to show"),
) -> None:
    """List books, optionally filtered by reading state."""
    service = get_service()
    books = service.list_books(state=state)

    if not books:
        console.print("[dim]No books found.[/dim]")
        return

    title = f"Books - {state.value}" if state else "All Books"
    console.print(format_book_table(books[:limit], title=title))

    if len(books) > limit:
        console.print(f"[dim]Showing {limit} of {len(books)} books[/dim]")


@app.command()
def start(query: str = typer.Argument(..., help="Book title or ID")) -> None:
    """Start reading a book."""
    service = get_service()
    book = resolve_book(service, query)

    with ledger_errors():
        service.start_reading(book.id)

    print_success(f"Started reading: {book.title}")


@app.command()
def finish(query: str = typer.Argument(..., help="Book title or ID")) -> None:
    """Mark a book as finished."""
    service = get_service()
    book = resolve_book(service, query)

    with ledger_errors():
        service.finish_reading(book.id)

    print_success(f"Finished: {book.title}")


@app.command()
def progress(
    query: str = typer.Argument(..., help="Book title or ID"),
    page: int = typer.Argument(..., help="Page you are on"),
    no_auto: bool = typer.Option(
        False, "--no-auto", help="Don't start/finish the book automatically"
    ),
) -> None:
    """Record the page you are on."""
    service = get_service()
    book = resolve_book(service, query)

    with ledger_errors():
        updated = service.update_progress(book.id, page, auto_transition=not no_auto)

    message = f"{updated.title}: page {updated.current_page}"
    if updated.has_page_count:
        message += f" of {updated.total_pages} ({progress_percent(updated)}%)"
    print_success(message)
    if updated.state != book.state:
        print_info(f"State changed: {book.state.value} → {updated.state.value}")


@app.command()
def rate(
    query: str = typer.Argument(..., help="Book title or ID"),
    rating: int = typer.Argument(..., min=1, max=5, help="Rating 1-5"),
) -> None:
    """Rate a finished book."""
    service = get_service()
    book = resolve_book(service, query)

    with ledger_errors():
        service.rate_book(book.id, rating)

    print_success(f"Rated {book.title}: {'★' * rating}")


@app.command()
def note(
    query: str = typer.Argument(..., help="Book title or ID"),
    text: str = typer.Argument(..., help="Note text"),
) -> None:
    """Add a note to a book's history."""
    service = get_service()
    book = resolve_book(service, query)

    if not text.strip():
        print_error("Note cannot be empty")
        raise typer.Exit(1)

    with ledger_errors():
        service.add_note(book.id, text)

    print_success(f"Note added to {book.title}")


@app.command()
def edit(
    query: str = typer.Argument(..., help="Book title or ID"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="New title"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="New author"),
    genre: Optional[str] = typer.Option(None, "--genre", "-g", help="New genre"),
    state: Optional[ReadingState] = typer.Option(
        None, "--state", "-s", help="Set state directly (no transition rules)"
    ),
    page: Optional[int] = typer.Option(None, "--page", help="Current page"),
    pages: Optional[int] = typer.Option(None, "--pages", "-p", help="Total pages"),
    owned: Optional[bool] = typer.Option(None, "--owned/--wishlist", help="Ownership"),
    rating: Optional[int] = typer.Option(None, "--rating", "-r", min=1, max=5, help="Rating 1-5"),
) -> None:
    """Correct a book's data manually, bypassing reading-state rules."""
    service = get_service()
    book = resolve_book(service, query)

    fields = {
        "title": title,
        "author": author,
        "genre": genre,
        "state": state,
        "current_page": page,
        "total_pages": pages,
        "is_owned": owned,
        "rating": rating,
    }
    changes = {k: v for k, v in fields.items() if v is not None}
    if not changes:
        print_error("Nothing to change. Pass at least one option.")
        raise typer.Exit(1)

    with ledger_errors():
        service.manual_update(book.id, BookPatch(**changes))

    print_success(f"Updated: {book.title} ({', '.join(sorted(changes))})")


@app.command()
def delete(
    query: str = typer.Argument(..., help="Book title or ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a book. Its reading history stays in the ledger."""
    service = get_service()
    book = resolve_book(service, query)

    if not yes and not typer.confirm(f"Delete '{book.title}'?", default=False):
        raise typer.Exit(0)

    service.delete_book(book.id)
    print_success(f"Deleted: {book.title}")


@app.command()
def history(
    query: Optional[str] = typer.Argument(None, help="Book title or ID (default: all books)"),
    limit: int = typer.Option(20, "--limit", "-l", help="Max events to show"),
) -> None:
    """Show reading history, newest first."""
    service = get_service()
    titles = {b.id: b.title for b in service.list_books()}

    if query:
        book = resolve_book(service, query)
        events = service.ledger.events_for_book(book.id)[:limit]
        title = f"History - {book.title}"
    else:
        events = service.ledger.all_events_for_user(limit=limit)
        title = "Reading History"

    if not events:
        console.print("[dim]No reading history yet.[/dim]")
        return

    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("When", style="dim")
    table.add_column("Book", style="cyan", max_width=35)
    table.add_column("Event", style="yellow")
    table.add_column("Details")

    for event in events:
        table.add_row(
            event.timestamp.strftime("%Y-%m-%d %H:%M"),
            titles.get(event.book_id, "[dim](deleted)[/dim]"),
            event.type.value,
            describe_event(event),
        )

    console.print(table)


# ============================================================================
# Analytics Commands
# ============================================================================


@app.command()
def activity() -> None:
    """Show pages read per genre over the last 12 months."""
    from .stats import ReadingAnalytics

    analytics = ReadingAnalytics(open_db())
    rows = analytics.monthly_activity()

    if not rows:
        console.print("[dim]No reading activity yet.[/dim]")
        return

    colors = analytics.activity_colors(rows)

    table = Table(title="Pages Read by Genre", show_header=True, header_style="bold magenta")
    table.add_column("Month", style="cyan")
    for genre, color in colors.items():
        table.add_column(f"[{color}]■[/] {genre}", justify="right")
    table.add_column("Total", style="bold", justify="right")

    for row in rows:
        table.add_row(
            row["month"],
            *(str(row[genre]) for genre in colors),
            str(row["total"]),
        )

    console.print(table)


@app.command()
def genres(
    limit: int = typer.Option(8, "--limit", "-l", help="Max genres to show"),
) -> None:
    """Show how your library splits across genres."""
    from .stats import ReadingAnalytics

    analytics = ReadingAnalytics(open_db())
    rows = analytics.genre_distribution(limit=limit)

    if not rows:
        console.print("[dim]No books in library.[/dim]")
        return

    table = Table(title="Genre Distribution", show_header=True, header_style="bold magenta")
    table.add_column("Genre")
    table.add_column("Books", justify="right")
    table.add_column("Share", justify="right")

    for row in rows:
        fill = row["fill"]
        table.add_row(f"[{fill}]■[/] {row['name']}", str(row["value"]), f"{row['percentage']}%")

    console.print(table)


@app.command()
def stats() -> None:
    """Show headline reading statistics."""
    from .stats import ReadingAnalytics

    analytics = ReadingAnalytics(open_db())
    summary = analytics.summary()

    if not summary.books_in_library:
        console.print("[dim]No books in library.[/dim]")
        return

    totals = analytics.totals()
    streak = analytics.streak()

    table = Table(title="Reading Stats", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Books in library", str(summary.books_in_library))
    table.add_row("Owned / wishlist", f"{summary.owned} / {summary.wishlist}")
    table.add_row("Currently reading", str(summary.currently_reading))
    table.add_row("Books finished", str(totals.books_finished))
    table.add_row("  this year", str(summary.books_finished_this_year))
    table.add_row("  this month", str(summary.books_finished_this_month))
    table.add_row("Pages read", f"{totals.pages_read:,}")
    if totals.rated_books:
        table.add_row("Average rating", f"{totals.average_rating:.1f} / 5")
    table.add_row("Reading velocity", f"{analytics.velocity()} pages/day")
    table.add_row("Current streak", f"{streak.current_days} days")
    table.add_row("Longest streak", f"{streak.longest_days} days")
    if summary.favorite_genres:
        table.add_row("Favorite genres", ", ".join(summary.favorite_genres))

    console.print(table)


# ============================================================================
# Goal Commands
# ============================================================================


@goal_app.command("set")
def goal_set(
    goal_type: str = typer.Argument(..., help="Goal type: books or pages"),
    target: int = typer.Argument(..., min=1, help="Target number"),
    year: Optional[int] = typer.Option(None, "--year", "-y", help="Year (default: current)"),
    month: Optional[int] = typer.Option(
        None, "--month", "-m", min=1, max=12, help="Month 1-12 (default: yearly)"
    ),
) -> None:
    """Set a reading goal."""
    from .stats import GoalTracker, GoalType

    try:
        gt = GoalType(goal_type.lower())
    except ValueError:
        print_error(f"Invalid goal type: {goal_type}. Use: books or pages")
        raise typer.Exit(1)

    tracker = GoalTracker(open_db())
    goal = tracker.set_goal(goal_type=gt, target=target, year=year, month=month)

    print_success(f"Goal set: {target} {gt.value} for {goal.period_label}")


@goal_app.command("show")
def goal_show(
    all_goals: bool = typer.Option(False, "--all", "-a", help="Show all goals"),
) -> None:
    """Show reading goals and progress."""
    from .stats import GoalTracker

    tracker = GoalTracker(open_db())

    if all_goals:
        goals = tracker.get_all_goals()
        title = "All Reading Goals"
    else:
        goals = tracker.get_current_goals()
        title = "Current Reading Goals"

    if not goals:
        console.print("[dim]No reading goals set.[/dim]")
        console.print("[dim]Use 'readledger goal set <type> <target>' to set a goal.[/dim]")
        return

    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Period", style="cyan")
    table.add_column("Type")
    table.add_column("Progress", justify="center")
    table.add_column("Target", justify="right")
    table.add_column("Remaining", justify="right")

    for goal in goals:
        bar_width = 15
        filled = int((goal.progress_percent / 100) * bar_width)
        bar = "█" * filled + "░" * (bar_width - filled)
        table.add_row(
            goal.period_label,
            goal.goal_type.value,
            f"{bar} {goal.progress_percent:.0f}%",
            str(goal.target),
            "[bold green]Complete![/bold green]" if goal.is_complete else str(goal.remaining),
        )

    console.print(table)


@goal_app.command("progress")
def goal_progress() -> None:
    """Show whether current goals are on track."""
    from .stats import GoalTracker

    tracker = GoalTracker(open_db())
    summary = tracker.get_progress_summary()

    if not summary["goals"]:
        console.print("[dim]No current goals to track.[/dim]")
        return

    for item in summary["goals"]:
        goal = item["goal"]
        status = item["status"]

        if status == "complete":
            icon, status_text = "[bold green]✓[/bold green]", "[green]Complete![/green]"
        elif status == "on_track":
            icon, status_text = "[green]●[/green]", "[green]On Track[/green]"
        else:
            icon, status_text = "[yellow]○[/yellow]", "[yellow]Behind[/yellow]"

        console.print(f"\n{icon} [bold]{goal.period_label}[/bold] - {goal.goal_type.value.title()}")
        console.print(f"   Progress: {goal.current}/{goal.target} ({item['actual_percent']}%)")
        console.print(f"   Expected: {item['expected_percent']}% | Status: {status_text}")

    console.print(
        f"\n[green]Complete: {summary['complete_count']}[/green] | "
        f"[green]On Track: {summary['on_track_count']}[/green] | "
        f"[yellow]Behind: {summary['behind_count']}[/yellow]"
    )


@goal_app.command("delete")
def goal_delete(
    goal_type: str = typer.Argument(..., help="Goal type: books or pages"),
    year: int = typer.Argument(..., help="Year of goal to delete"),
    month: Optional[int] = typer.Option(None, "--month", "-m", help="Month (default: yearly)"),
) -> None:
    """Delete a reading goal."""
    from .stats import GoalTracker, GoalType

    try:
        gt = GoalType(goal_type.lower())
    except ValueError:
        print_error(f"Invalid goal type: {goal_type}. Use: books or pages")
        raise typer.Exit(1)

    tracker = GoalTracker(open_db())

    if tracker.delete_goal(gt, year, month):
        period = f"{year}" if not month else f"{month}/{year}"
        print_success(f"Goal deleted: {gt.value} for {period}")
    else:
        print_error("Goal not found")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"readledger version {__version__}")


# ============================================================================
# Main Entry Point
# ============================================================================


if __name__ == "__main__":
    app()
