"""CLI commands for the hujra ledger.

Commands:
- init: create the local database
- student-add / student-list / student-show / student-delete
- visit-add / visit-list / visit-delete
- export / import: full-dataset backup and restore
- report: dashboard numbers
- analyze: AI progress summary for one student
"""

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, TypeVar

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from hujra.config.app_config import load_app_config
from hujra.core.ledger import Ledger, StudentNotFoundError
from hujra.core.models import (
    CurriculumUpdateItem,
    FinanceItem,
    Student,
    VisitEvent,
    generate_id,
)
from hujra.core.reports import build_summary
from hujra.db.backup import (
    InvalidBackupFormatError,
    read_backup_file,
    write_backup_file,
)
from hujra.db.database import RecordStore, StorageUnavailableError
from hujra.llm.analysis import summarize
from hujra.utils.text_utils import normalize_digits, today_iso
from hujra.utils.validators import MalformedValueError, parse_iso_date

T = TypeVar("T")

app = typer.Typer(
    name="hujra",
    help="Local record keeping for hujra students, visits and curriculum progress.",
    no_args_is_help=True,
)

console = Console()


# =============================================================================
# HELPERS
# =============================================================================


def _run(action: Callable[[Ledger], Awaitable[T]]) -> T:
    """Open a ledger on the configured database, run action, close it.

    Storage and input errors are printed and turned into exit code 1.
    """
    config = load_app_config()

    async def main() -> T:
        ledger = Ledger(RecordStore(config.db_path), config=config.ledger)
        try:
            await ledger.start()
            return await action(ledger)
        finally:
            await ledger.close()

    try:
        return asyncio.run(main())
    except (
        StorageUnavailableError,
        StudentNotFoundError,
        MalformedValueError,
        InvalidBackupFormatError,
    ) as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1)


def parse_book_option(value: str) -> tuple[str, str, str | None]:
    """Parse 'NAME=PAGE' or 'NAME=PAGE@TEACHER'.

    Returns:
        (book name, page, teacher or None)

    Raises:
        typer.BadParameter: If there is no '=' or the name is empty
    """
    if "=" not in value:
        raise typer.BadParameter(f"Expected NAME=PAGE, got {value!r}")
    name, _, rest = value.rpartition("=")
    page, _, teacher = rest.partition("@")
    name = name.strip()
    if not name:
        raise typer.BadParameter(f"Book name is empty in {value!r}")
    return name, normalize_digits(page), teacher.strip() or None


# Update kind -> (is_new_book, is_book_completed)
UPDATE_KINDS = {
    "progress": (False, False),
    "complete": (False, True),
    "start": (True, False),
    "start-completed": (True, True),
}


def parse_update_option(value: str) -> CurriculumUpdateItem:
    """Parse 'KIND:NAME=PAGE[@TEACHER]' into an update item.

    KIND is one of progress, complete, start, start-completed.

    Raises:
        typer.BadParameter: Unknown kind or malformed book part
    """
    kind, sep, book = value.partition(":")
    kind = kind.strip().lower()
    if not sep or kind not in UPDATE_KINDS:
        raise typer.BadParameter(
            f"Expected KIND:NAME=PAGE with KIND in {', '.join(UPDATE_KINDS)}, got {value!r}"
        )
    is_new, is_completed = UPDATE_KINDS[kind]
    name, page, teacher = parse_book_option(book)
    return CurriculumUpdateItem(
        book_name=name,
        current_page=page,
        teacher_name=teacher,
        is_new_book=is_new,
        is_book_completed=is_completed,
    )


def _truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 1] + "…"


def _print_books(title: str, books) -> None:
    if not books:
        console.print(f"[dim]{title}: none[/dim]")
        return
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Book", style="cyan")
    table.add_column("Page", justify="right")
    table.add_column("Teacher")
    for b in books:
        table.add_row(b.name, b.page_count or "-", b.teacher_name or "-")
    console.print(table)


# =============================================================================
# SETUP
# =============================================================================


@app.command()
def init() -> None:
    """Create the local database (safe to run again)."""

    async def action(ledger: Ledger) -> Path:
        return ledger.store.db_path

    db_path = _run(action)
    console.print(f"[green]✓ Database ready:[/green] {db_path}")


# =============================================================================
# STUDENTS
# =============================================================================


@app.command(name="student-add")
def student_add(
    full_name: str = typer.Argument(..., help="Student's full name"),
    phone: str = typer.Option("", "--phone", "-p", help="Student's phone"),
    address: str = typer.Option("", "--address", help="Home address"),
    guardian_name: str = typer.Option("", "--guardian", help="Guardian's name"),
    guardian_phone: str = typer.Option("", "--guardian-phone", help="Guardian's phone"),
    education_level: str = typer.Option("", "--level", "-l", help="Education level"),
    family_financial_status: str = typer.Option(
        "", "--financial-status", help="Family financial status"
    ),
    health_status: str = typer.Option("", "--health", help="Health status"),
    current_mosque: str = typer.Option("", "--mosque", help="Current mosque / hujra"),
    current_teacher: str = typer.Option("", "--teacher", help="Current teacher"),
) -> None:
    """Register a new student."""
    if not full_name.strip():
        console.print("[red]✗ Full name is required[/red]")
        raise typer.Exit(code=1)

    async def action(ledger: Ledger) -> Student:
        return await ledger.create_student(
            full_name.strip(),
            phone=normalize_digits(phone),
            address=address,
            guardian_name=guardian_name,
            guardian_phone=normalize_digits(guardian_phone),
            education_level=education_level,
            family_financial_status=family_financial_status,
            health_status=health_status,
            current_mosque=current_mosque,
            current_teacher=current_teacher,
        )

    student = _run(action)
    console.print(f"[green]✓ Student registered: {student.full_name}[/green]")
    console.print(f"  [dim]id:[/dim] {student.id}")


@app.command(name="student-list")
def student_list(
    search: str = typer.Option("", "--search", "-s", help="Filter by name"),
) -> None:
    """List students."""

    async def action(ledger: Ledger) -> list[Student]:
        return ledger.cache.search_students(search)

    students = _run(action)
    if not students:
        console.print("[yellow]No students found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Level")
    table.add_column("Current books", justify="right")
    table.add_column("Completed", justify="right")
    for s in students:
        table.add_row(
            s.id,
            s.full_name,
            s.education_level or "-",
            str(len(s.current_books)),
            str(len(s.previous_books)),
        )
    console.print(table)


@app.command(name="student-show")
def student_show(
    student_id: str = typer.Argument(..., help="Student ID"),
    history: int = typer.Option(10, "--history", "-n", help="History entries to show"),
) -> None:
    """Show a student's profile, books and recent history."""

    async def action(ledger: Ledger) -> tuple[Student, list[VisitEvent]]:
        student = await ledger.get_student(student_id)
        return student, ledger.cache.visits_for(student_id)

    student, visits = _run(action)

    header = (
        f"[bold]{student.full_name}[/bold]\n"
        f"Phone: {student.phone or '-'} | Level: {student.education_level or '-'}\n"
        f"Mosque: {student.current_mosque or '-'} | Teacher: {student.current_teacher or '-'}\n"
        f"Financial: {student.family_financial_status or '-'} | "
        f"Health: {student.health_status or '-'}"
    )
    console.print(Panel(header, title=f"[bold]{student.id}[/bold]", expand=False))

    _print_books("Current books", student.current_books)
    _print_books("Completed books", student.previous_books)

    if student.study_history:
        console.print(f"\n[bold]Study history (latest {history}):[/bold]")
        for entry in student.study_history[:history]:
            console.print(
                f"  {entry.date}  {entry.book_name} → p. {entry.current_page}"
                f"  [dim]{entry.teacher_name} ({entry.note})[/dim]"
            )

    if student.financial_history:
        console.print("\n[bold]Contributions:[/bold]")
        for entry in student.financial_history[:history]:
            console.print(f"  {entry.date}  {entry.amount}  [dim]{entry.source}[/dim]")

    console.print(f"\n[dim]Visits:[/dim] {len(visits)}")


@app.command(name="student-delete")
def student_delete(
    student_id: str = typer.Argument(..., help="Student ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
) -> None:
    """Delete a student and all of their visits (irreversible)."""
    if not yes:
        console.print("\n[bold red]⚠️  DELETE STUDENT[/bold red]")
        console.print("[red]The student and all of their visits will be removed.[/red]")
        console.print(f"\nTo confirm, type exactly: [bold]DELETE {student_id}[/bold]")
        confirm = typer.prompt("Confirmation", default="").strip()
        if confirm != f"DELETE {student_id}":
            console.print("[yellow]Deletion cancelled[/yellow]")
            raise typer.Exit(code=0)

    async def action(ledger: Ledger) -> int:
        await ledger.get_student(student_id)
        return await ledger.delete_student(student_id)

    removed = _run(action)
    console.print(f"[green]✓ Student {student_id} deleted ({removed} visits removed)[/green]")


# =============================================================================
# VISITS
# =============================================================================


@app.command(name="visit-add")
def visit_add(
    student_id: str = typer.Argument(..., help="Student ID"),
    teacher: str = typer.Option(..., "--teacher", "-t", help="Visiting teacher"),
    visit_date: str = typer.Option(
        "", "--date", "-d", help="Visit date YYYY-MM-DD (default: today)"
    ),
    location: str = typer.Option("", "--location", help="Hujra / mosque visited"),
    notes: str = typer.Option("", "--notes", help="Notes about the student"),
    hujra_notes: str = typer.Option("", "--hujra-notes", help="Notes about the hujra"),
    suggestions: str = typer.Option("", "--suggestions", help="Suggestions"),
    update: list[str] = typer.Option(
        [],
        "--update",
        "-u",
        help="Book update KIND:NAME=PAGE[@TEACHER], repeatable, applied in order. "
        "KIND: progress, complete, start, start-completed",
    ),
    amount: str = typer.Option("", "--amount", help="Contribution handed over"),
    source: str = typer.Option("", "--source", help="Contribution source"),
) -> None:
    """Record a visit and fold its curriculum progress into the student."""
    try:
        date_value = parse_iso_date(visit_date) if visit_date else today_iso()
    except ValueError:
        console.print(f"[red]✗ Invalid date: {visit_date} (expected YYYY-MM-DD)[/red]")
        raise typer.Exit(code=1)

    updates = [parse_update_option(value) for value in update]
    finance = FinanceItem(amount=amount, source=source or None) if amount else None

    visit = VisitEvent(
        id=generate_id(),
        student_id=student_id,
        teacher_name=teacher,
        visit_date=date_value,
        location=location,
        student_notes=notes,
        hujra_notes=hujra_notes,
        suggestions=suggestions,
    )

    async def action(ledger: Ledger) -> tuple[VisitEvent, Student]:
        return await ledger.record_visit(visit, updates, finance)

    saved, student = _run(action)
    console.print(f"[green]✓ Visit recorded for {student.full_name}[/green]")
    console.print(f"  [dim]visit id:[/dim] {saved.id}")
    console.print(
        f"  [dim]books:[/dim] {len(student.current_books)} current, "
        f"{len(student.previous_books)} completed"
    )


@app.command(name="visit-list")
def visit_list(
    student_id: str = typer.Option("", "--student", "-s", help="Only this student's visits"),
) -> None:
    """List visits, newest first."""

    async def action(ledger: Ledger) -> tuple[list[VisitEvent], dict[str, str]]:
        visits = (
            ledger.cache.visits_for(student_id) if student_id else ledger.cache.visits
        )
        names = {s.id: s.full_name for s in ledger.cache.students}
        return visits, names

    visits, names = _run(action)
    if not visits:
        console.print("[yellow]No visits recorded[/yellow]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Date")
    table.add_column("ID", style="cyan")
    table.add_column("Student")
    table.add_column("Teacher")
    table.add_column("Notes")
    for v in visits:
        table.add_row(
            v.visit_date,
            v.id,
            names.get(v.student_id, v.student_id),
            v.teacher_name,
            _truncate(v.student_notes, 40),
        )
    console.print(table)


@app.command(name="visit-delete")
def visit_delete(
    visit_id: str = typer.Argument(..., help="Visit ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
) -> None:
    """Delete one visit. The student's study history is kept."""
    if not yes and not typer.confirm(f"Delete visit {visit_id}?"):
        console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(code=0)

    async def action(ledger: Ledger) -> bool:
        return await ledger.delete_visit(visit_id)

    if _run(action):
        console.print(f"[green]✓ Visit {visit_id} deleted[/green]")
    else:
        console.print(f"[yellow]Visit {visit_id} not found[/yellow]")


# =============================================================================
# BACKUP
# =============================================================================


@app.command(name="export")
def export_data(
    out: Path | None = typer.Option(
        None, "--out", "-o", help="Directory for the backup file (default: config backup_dir)"
    ),
) -> None:
    """Write a full backup to hujra_backup_<date>.json."""
    directory = out or load_app_config().backup_dir

    async def action(ledger: Ledger) -> dict[str, Any]:
        return await ledger.export_backup()

    doc = _run(action)
    path = write_backup_file(doc, directory)
    console.print(
        f"[green]✓ Backup written:[/green] {path} "
        f"({len(doc['students'])} students, {len(doc['visits'])} visits)"
    )


@app.command(name="import")
def import_data(
    file: Path = typer.Argument(..., help="Backup file to restore"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
) -> None:
    """Replace ALL students and visits with the contents of a backup."""
    try:
        doc = read_backup_file(file)
    except InvalidBackupFormatError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    if not yes:
        console.print("\n[bold red]⚠️  RESTORE BACKUP[/bold red]")
        console.print("[red]Every current student and visit will be replaced.[/red]")
        if not typer.confirm("Continue?"):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(code=0)

    async def action(ledger: Ledger) -> tuple[int, int]:
        return await ledger.import_backup(doc)

    students, visits = _run(action)
    console.print(f"[green]✓ Restored {students} students and {visits} visits[/green]")


# =============================================================================
# REPORTS / ANALYSIS
# =============================================================================


@app.command()
def report() -> None:
    """Show the hujra-wide report."""

    async def action(ledger: Ledger):
        return build_summary(ledger.cache.students, ledger.cache.visits)

    summary = _run(action)

    header = (
        f"Students: [bold]{summary.total_students}[/bold] | "
        f"Visits: [bold]{summary.total_visits}[/bold]\n"
        f"Books: {summary.current_books} in progress, {summary.completed_books} completed\n"
        f"Health follow-up: {len(summary.sick_students)} | "
        f"Financial need: {len(summary.financial_alerts)}\n"
        f"Total aid: [bold]{summary.total_aid:,}[/bold]"
    )
    console.print(Panel(header, title="[bold]Report[/bold]", expand=False))

    if summary.financial_log:
        table = Table(title="Contributions", show_header=True, header_style="bold")
        table.add_column("Date")
        table.add_column("Student")
        table.add_column("Amount", justify="right")
        table.add_column("Source")
        for item in summary.financial_log:
            table.add_row(
                item.entry.date, item.student_name, item.entry.amount, item.entry.source
            )
        console.print(table)


@app.command()
def analyze(
    student_id: str = typer.Argument(..., help="Student ID"),
) -> None:
    """Ask the configured LLM for a short progress assessment."""

    async def action(ledger: Ledger) -> Student:
        return await ledger.get_student(student_id)

    student = _run(action)
    with console.status("Analyzing..."):
        result = summarize(student)

    style = "green" if result.available else "yellow"
    console.print(
        Panel(result.text, title=f"[{style}]{student.full_name}[/{style}]", expand=False)
    )


# =============================================================================
# WEB
# =============================================================================


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to listen on"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the Web API on the local database."""
    import uvicorn

    console.print(f"[green]✓ Serving on http://{host}:{port}[/green] (docs at /docs)")
    uvicorn.run("hujra.web.api:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
