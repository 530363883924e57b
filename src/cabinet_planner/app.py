"""Interactive CLI application."""
import logging
from datetime import date
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from cabinet_planner.config import configure_logging, load_config
from cabinet_planner.dashboard import get_completion_color, get_overview_stats, get_student_rows
from cabinet_planner.db import get_setting, init_db, set_setting
from cabinet_planner.errors import CabinetError
from cabinet_planner.importer import import_plan_file
from cabinet_planner.models import (
    DAY_LABELS, DAYS, PLAN_TYPES, TIME_SLOTS, TIME_WINDOWS, ProgressStatus, progress_status,
    student_label,
)
from cabinet_planner.plans import (
    add_activity, clear_plan, delete_activity, get_all_plans, list_activities, replace_activities,
)
from cabinet_planner.progress import get_progress, monthly_summary, set_completed, set_date, set_time
from cabinet_planner.reports import monthly_report, progress_report, schedule_report, write_report
from cabinet_planner.schedule import (
    assign, cell_label, clear_all, get_cell, get_schedule, remove_student, student_cells,
)
from cabinet_planner.snapshot import load_snapshot, save_snapshot
from cabinet_planner.students import (
    add_student, delete_student, get_student, list_students, update_student,
)

logger = logging.getLogger(__name__)

console = Console()

PLAN_CHOICES = [str(p) for p in PLAN_TYPES]


def show_welcome():
    console.print(Panel(
        "[bold]Student Treatment Manager[/bold]\n[dim]Schedule, plans and progress[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("students", "List students"),
        ("add", "Add a student"),
        ("edit", "Edit a student"),
        ("delete", "Delete a student"),
        ("schedule", "Weekly schedule"),
        ("assign", "Set the students in a time slot"),
        ("unassign", "Remove a student from a time slot"),
        ("clear", "Clear the whole schedule"),
        ("plans", "Plan templates"),
        ("activity", "Add or delete a plan activity"),
        ("plan-edit", "Rewrite a whole plan"),
        ("plan-import", "Load a plan from a file"),
        ("progress", "Student progress"),
        ("monthly", "Monthly progress"),
        ("report", "Write a text report"),
        ("export", "Export all data to JSON"),
        ("import", "Import data from JSON"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def pick_student(db_path: str, prompt: str = "Student"):
    students = list_students(db_path)
    if not students:
        console.print("[yellow]No students yet. Use 'add' first.[/yellow]")
        return None
    for s in students:
        console.print(f"  [cyan]{s.id}[/cyan]) {student_label(s)}")
    student_id = IntPrompt.ask(prompt, choices=[str(s.id) for s in students])
    return get_student(db_path, student_id)


def pick_cell() -> tuple[str, int]:
    day = Prompt.ask("Day", choices=list(DAYS))
    for i, slot in enumerate(TIME_SLOTS):
        console.print(f"  [cyan]{i}[/cyan]) {slot.label} {slot.early} / {slot.late}")
    slot = IntPrompt.ask("Time slot", choices=[str(i) for i in range(len(TIME_SLOTS))])
    return day, slot


def show_students(db_path: str):
    rows = get_student_rows(db_path)
    if not rows:
        console.print("[yellow]No students yet.[/yellow]")
        return
    table = Table(title="Students")
    table.add_column("ID", justify="right")
    table.add_column("Student", style="cyan")
    table.add_column("Plan", justify="right")
    table.add_column("Progress", justify="right")
    table.add_column("Status")
    for r in rows:
        color = get_completion_color(r["percentage"])
        table.add_row(
            str(r["student"].id),
            student_label(r["student"]),
            str(r["student"].plan_type),
            f"{r['completed_activities']}/{r['total_activities']} ({r['percentage']}%)",
            f"[{color}]{r['label']}[/{color}]",
        )
    console.print(table)
    stats = get_overview_stats(db_path)
    console.print(f"\n  Students: [bold]{stats['total_students']}[/bold]  |  "
                  f"Sessions: [bold]{stats['total_sessions']}[/bold]  |  "
                  f"Avg completion: [bold]{stats['avg_completion']}%[/bold]")


def cmd_add(db_path: str):
    name = Prompt.ask("Name")
    grade = Prompt.ask("Grade")
    plan_type = IntPrompt.ask("Plan", choices=PLAN_CHOICES, default=1)
    notes = Prompt.ask("Notes", default="")
    student = add_student(db_path, name, grade, plan_type, notes)
    console.print(f"[green]Added {student_label(student)}[/green]")


def cmd_edit(db_path: str):
    student = pick_student(db_path)
    if not student:
        return
    placements = [cell_label(day, slot) for day, slot in student_cells(db_path, student.id)]
    console.print(f"Scheduled: {', '.join(placements) if placements else 'not scheduled'}")
    name = Prompt.ask("Name", default=student.name)
    grade = Prompt.ask("Grade", default=student.grade)
    plan_type = IntPrompt.ask("Plan", choices=PLAN_CHOICES, default=student.plan_type)
    notes = Prompt.ask("Notes", default=student.notes)
    updated = update_student(db_path, student.id, name, grade, plan_type, notes)
    console.print(f"[green]Saved {student_label(updated)}[/green]")


def cmd_delete(db_path: str):
    student = pick_student(db_path)
    if not student:
        return
    if Confirm.ask(f"Delete {student_label(student)} with all progress?", default=False):
        delete_student(db_path, student.id)
        console.print("[green]Deleted.[/green]")


def show_schedule(db_path: str):
    students = {s.id: s for s in list_students(db_path)}
    schedule = get_schedule(db_path)
    table = Table(title="Weekly Schedule", show_lines=True)
    table.add_column("Slot")
    for day in DAYS:
        table.add_column(DAY_LABELS[day])
    for i, slot in enumerate(TIME_SLOTS):
        cells = []
        for day in DAYS:
            names = [student_label(students[sid]) for sid in schedule[day][i] if sid in students]
            cells.append("\n".join(names))
        table.add_row(f"[bold]{slot.label}[/bold]\n{slot.early}\n{slot.late}", *cells)
    console.print(table)


def cmd_assign(db_path: str):
    students = list_students(db_path)
    if not students:
        console.print("[yellow]No students yet. Use 'add' first.[/yellow]")
        return
    day, slot = pick_cell()
    current = get_cell(db_path, day, slot)
    for s in students:
        mark = "[green]x[/green]" if s.id in current else " "
        console.print(f"  [{mark}] [cyan]{s.id}[/cyan]) {student_label(s)}")
    default = " ".join(str(sid) for sid in current)
    answer = Prompt.ask("Student ids (space separated, empty to clear)", default=default)
    ids = [int(tok) for tok in answer.replace(",", " ").split() if tok.isdigit()]
    members = assign(db_path, day, slot, ids)
    console.print(f"[green]{len(members)} students in {DAY_LABELS[day]} {TIME_SLOTS[slot].label}[/green]")


def cmd_unassign(db_path: str):
    day, slot = pick_cell()
    student = pick_student(db_path)
    if not student:
        return
    remove_student(db_path, day, slot, student.id)
    console.print("[green]Removed.[/green]")


def cmd_clear(db_path: str):
    if Confirm.ask("Clear the entire schedule?", default=False):
        clear_all(db_path)
        console.print("[green]Schedule cleared.[/green]")


def show_plans(db_path: str):
    for plan_type, activities in get_all_plans(db_path).items():
        body = "\n".join(f"{i}. {text}" for i, text in enumerate(activities, 1))
        console.print(Panel(
            body or "[dim italic]No activities in this plan[/dim italic]",
            title=f"Plan {plan_type} ({len(activities)} activities)",
        ))


def cmd_activity(db_path: str):
    plan_type = IntPrompt.ask("Plan", choices=PLAN_CHOICES)
    action = Prompt.ask("Action", choices=["add", "delete"], default="add")
    if action == "add":
        text = Prompt.ask("Activity")
        index = add_activity(db_path, plan_type, text)
        console.print(f"[green]Added as activity {index + 1}[/green]")
        return
    activities = list_activities(db_path, plan_type)
    if not activities:
        console.print("[yellow]This plan is empty.[/yellow]")
        return
    for i, text in enumerate(activities, 1):
        console.print(f"  [cyan]{i}[/cyan]) {text}")
    number = IntPrompt.ask("Delete activity", choices=[str(i) for i in range(1, len(activities) + 1)])
    delete_activity(db_path, plan_type, number - 1)
    console.print("[green]Deleted.[/green]")


def cmd_plan_edit(db_path: str):
    plan_type = IntPrompt.ask("Plan", choices=PLAN_CHOICES)
    console.print("[dim]One activity per line. Blank line to finish; '-' alone clears the plan.[/dim]")
    lines = []
    while True:
        line = Prompt.ask("", default="")
        if not line.strip():
            break
        lines.append(line)
    if lines == ["-"]:
        clear_plan(db_path, plan_type)
        console.print(f"[green]Plan {plan_type} cleared.[/green]")
        return
    if not lines:
        console.print("[yellow]Nothing entered; plan unchanged.[/yellow]")
        return
    activities = replace_activities(db_path, plan_type, lines)
    console.print(f"[green]Plan {plan_type} now has {len(activities)} activities[/green]")


def cmd_plan_import(db_path: str, column: int = 1):
    plan_type = IntPrompt.ask("Plan", choices=PLAN_CHOICES)
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    result = import_plan_file(db_path, plan_type, file_path, column=column)
    console.print(f"[green]Loaded {result['count']} activities from {result['filename']} "
                  f"into Plan {result['plan_type']}[/green]")


def show_progress(db_path: str, student) -> list[str]:
    activities = list_activities(db_path, student.plan_type)
    if not activities:
        console.print("[yellow]No activities for this student's plan.[/yellow]")
        return activities
    progress = get_progress(db_path, student.id)
    table = Table(title=f"{student_label(student)} - Plan {student.plan_type}")
    table.add_column("#", justify="right")
    table.add_column("Activity")
    table.add_column("Status")
    for i, text in enumerate(activities):
        record = progress.get(i)
        status = progress_status(record)
        if status is ProgressStatus.COMPLETED:
            cell = f"[green]Done {record.date} {record.time}[/green]"
        elif status is ProgressStatus.SCHEDULED:
            cell = f"[yellow]Pending {record.date} {record.time}[/yellow]"
        else:
            cell = "[dim]Not done[/dim]"
        table.add_row(str(i + 1), text, cell)
    console.print(table)
    return activities


def cmd_progress(db_path: str):
    student = pick_student(db_path)
    if not student:
        return
    activities = show_progress(db_path, student)
    if not activities:
        return
    number = IntPrompt.ask("Activity (0 to go back)", choices=[str(i) for i in range(len(activities) + 1)])
    if number == 0:
        return
    index = number - 1
    action = Prompt.ask("Action", choices=["done", "undo", "date", "time"], default="done")
    if action == "done":
        set_completed(db_path, student.id, index, True)
    elif action == "undo":
        set_completed(db_path, student.id, index, False)
    elif action == "date":
        set_date(db_path, student.id, index, Prompt.ask("Date (YYYY-MM-DD)", default=date.today().isoformat()))
    else:
        for i, window in enumerate(TIME_WINDOWS, 1):
            console.print(f"  [cyan]{i}[/cyan]) {window}")
        choice = IntPrompt.ask("Time", choices=[str(i) for i in range(1, len(TIME_WINDOWS) + 1)])
        set_time(db_path, student.id, index, TIME_WINDOWS[choice - 1])
    show_progress(db_path, student)


def show_monthly(db_path: str, year: int, month: int):
    summary = monthly_summary(db_path, year, month)
    if not summary:
        console.print("[yellow]No students yet.[/yellow]")
        return
    for entry in summary:
        pct = entry["percentage"]
        color = get_completion_color(pct)
        bar_filled = int(pct / 5)
        bar = f"[{color}]{'█' * bar_filled}{'░' * (20 - bar_filled)}[/{color}]"
        lines = [f"{len(entry['completed_in_month'])}/{entry['total_activities']} activities {bar} {pct}%"]
        for item in entry["completed_in_month"]:
            lines.append(f"  {item['index'] + 1}. {item['text']} [dim]{item['date']} {item['time']}[/dim]")
        if not entry["completed_in_month"]:
            lines.append("[dim italic]No activities completed this month[/dim italic]")
        console.print(Panel("\n".join(lines), title=student_label(entry["student"])))


def ask_month(db_path: str) -> tuple[int, int]:
    """Prompt for a year and month, defaulting to the last month viewed."""
    today = date.today()
    default_year, default_month = today.year, today.month
    last = get_setting(db_path, "last_month")
    if last:
        y, _, m = last.partition("-")
        if y.isdigit() and m.isdigit() and 1 <= int(m) <= 12:
            default_year, default_month = int(y), int(m)
    year = IntPrompt.ask("Year", default=default_year)
    month = IntPrompt.ask("Month", choices=[str(m) for m in range(1, 13)], default=default_month)
    set_setting(db_path, "last_month", f"{year}-{month:02d}")
    return year, month


def cmd_monthly(db_path: str):
    year, month = ask_month(db_path)
    show_monthly(db_path, year, month)


def cmd_report(db_path: str, report_dir: str):
    kind = Prompt.ask("Report", choices=["schedule", "progress", "monthly"], default="schedule")
    if kind == "schedule":
        content, filename = schedule_report(db_path), "schedule_report.txt"
    elif kind == "progress":
        content, filename = progress_report(db_path), "progress_report.txt"
    else:
        year, month = ask_month(db_path)
        content, filename = monthly_report(db_path, year, month), f"monthly_report_{year}_{month:02d}.txt"
    file_path = Prompt.ask("Save to", default=str(Path(report_dir) / filename))
    path = write_report(content, file_path)
    console.print(f"[green]Report written to {path}[/green]")


def cmd_export(db_path: str):
    file_path = Prompt.ask("Export to", default="student_treatment_data.json")
    path = save_snapshot(db_path, file_path)
    console.print(f"[green]Exported to {path}[/green]")


def cmd_import(db_path: str):
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    replaced = load_snapshot(db_path, file_path)
    console.print(f"[green]Imported: {', '.join(replaced) or 'nothing'}[/green]")


def main():
    config = load_config()
    configure_logging(config["log_level"])
    db_path = config["db_path"]
    init_db(db_path)

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="schedule").strip().lower()
        try:
            if choice == "students":
                show_students(db_path)
            elif choice == "add":
                cmd_add(db_path)
            elif choice == "edit":
                cmd_edit(db_path)
            elif choice == "delete":
                cmd_delete(db_path)
            elif choice == "schedule":
                show_schedule(db_path)
            elif choice == "assign":
                cmd_assign(db_path)
            elif choice == "unassign":
                cmd_unassign(db_path)
            elif choice == "clear":
                cmd_clear(db_path)
            elif choice == "plans":
                show_plans(db_path)
            elif choice == "activity":
                cmd_activity(db_path)
            elif choice == "plan-edit":
                cmd_plan_edit(db_path)
            elif choice == "plan-import":
                cmd_plan_import(db_path, column=int(config["import_column"]))
            elif choice == "progress":
                cmd_progress(db_path)
            elif choice == "monthly":
                cmd_monthly(db_path)
            elif choice == "report":
                cmd_report(db_path, config["report_dir"])
            elif choice == "export":
                cmd_export(db_path)
            elif choice == "import":
                cmd_import(db_path)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Goodbye![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except CabinetError as e:
            console.print(f"[red]{e}[/red]")
        except Exception as e:
            logger.exception("Command %s failed", choice)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
