"""Interactive console for the guidance office."""
import argparse
import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from guidance_console import exam_management, exam_results, maintenance, question_analysis
from guidance_console.api import ApiClient, ApiError
from guidance_console.classify import (
    SPEED_LABELS, DIFFICULTY_LABELS, difficulty_tier, get_difficulty_color,
    get_speed_color, speed_status,
)
from guidance_console.config import DEFAULT_API_URL, REQUEST_TIMEOUT, SHOW_ALL
from guidance_console.db import DEFAULT_DB_PATH, init_db
from guidance_console.pager import items_per_page_options
from guidance_console.prefs import clear_prefs
from guidance_console.report import (
    ReportSurfaceError, open_report, render_question_report, render_result_detail,
    render_results_report,
)

console = Console()
logger = logging.getLogger(__name__)

EXIT_WORDS = ("q", "menu")
PREF_PREFIXES = (
    question_analysis.PREF_PREFIX,
    exam_results.PREF_PREFIX,
    exam_results.VIEW_PREF_PREFIX,
    exam_management.PREF_PREFIX,
)


class SessionExitRequested(Exception):
    """Raised when the user types 'q' or 'menu' inside a view."""


def session_prompt(text: str, **kwargs) -> str:
    answer = Prompt.ask(text, **kwargs)
    if answer is not None and answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(text: str, **kwargs) -> int:
    while True:
        answer = session_prompt(text, **kwargs)
        try:
            return int(answer)
        except (TypeError, ValueError):
            console.print("[red]Please enter a whole number.[/red]")


def confirm(text: str) -> bool:
    return session_prompt(text, choices=["y", "n"], default="n") == "y"


def show_welcome(api_url: str):
    console.print(Panel(
        f"[bold]Guidance Office Console[/bold]\n[dim]{api_url}[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("analysis", "Question difficulty analysis"),
        ("results", "Browse exam results"),
        ("exams", "Exam list, switch exams on/off"),
        ("create", "Create a new exam"),
        ("cleanup", "Stale exams and registrations"),
        ("report", "Print a report of a view"),
        ("settings", "Connection and stored view settings"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


# -- tables ------------------------------------------------------------------

def question_table(questions: list, threshold: int) -> Table:
    table = Table(title="Question Analysis")
    table.add_column("ID", justify="right")
    table.add_column("Question", max_width=50)
    table.add_column("Category", style="cyan")
    table.add_column("Attempts", justify="right")
    table.add_column("Wrong %", justify="right")
    table.add_column("Avg Time", justify="right")
    table.add_column("Speed")
    table.add_column("Difficulty")
    for q in questions:
        speed = speed_status(q.avg_time_seconds, threshold)
        tier = difficulty_tier(q.wrong_percentage)
        sc, dc = get_speed_color(speed), get_difficulty_color(tier)
        table.add_row(
            str(q.question_id),
            escape(q.question),
            q.category,
            str(q.total_attempts),
            f"{q.wrong_percentage:.1f}%",
            f"{q.avg_time_seconds:.1f}s",
            f"[{sc}]{SPEED_LABELS[speed]}[/{sc}]",
            f"[{dc}]{tier.replace('_', ' ').title()}[/{dc}]",
        )
    return table


def results_table(results: list, compact: bool = False) -> Table:
    table = Table(title="Exam Results")
    table.add_column("ID", justify="right")
    table.add_column("Examinee")
    table.add_column("Exam", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Result")
    table.add_column("Finished")
    if not compact:
        table.add_column("School Year")
        table.add_column("Semester")
        table.add_column("Personality")
    for r in results:
        result = "[green]Passed[/green]" if r.passed else "[red]Failed[/red]"
        row = [str(r.result_id), escape(r.examinee_name), r.exam_ref_no, f"{r.score:g}", result, r.finished_key or "-"]
        if not compact:
            row += [r.school_year, r.semester, r.personality_type]
        table.add_row(*row)
    return table


def exams_table(exams: list) -> Table:
    table = Table(title="Exams")
    table.add_column("ID", justify="right")
    table.add_column("Reference", style="cyan")
    table.add_column("Status")
    table.add_column("Time Limit", justify="right")
    table.add_column("Questions", justify="right")
    table.add_column("Personality", justify="right")
    table.add_column("Created")
    for e in exams:
        color = "green" if e.status == "active" else "dim"
        table.add_row(
            str(e.exam_id), e.exam_ref_no, f"[{color}]{e.status}[/{color}]",
            f"{e.time_limit} min", str(e.question_count), str(e.personality_question_count),
            e.created_at or "-",
        )
    return table


def in_progress_table(exams: list, title: str) -> Table:
    table = Table(title=title)
    table.add_column("Result ID", justify="right")
    table.add_column("Examinee")
    table.add_column("Exam ID", justify="right")
    table.add_column("Started")
    table.add_column("Finished")
    table.add_column("Correct", justify="right")
    table.add_column("Will Be")
    for e in exams:
        color = "green" if e.will_be == "Passed" else "red"
        table.add_row(
            str(e.result_id), e.examinee_name, str(e.exam_id), e.started_at or "-",
            e.finished_at or "-", f"{e.correct}/{e.total_items}",
            f"[{color}]{e.will_be}[/{color}]" if e.will_be else "",
        )
    return table


def registrations_table(registrations: list) -> Table:
    table = Table(title="Incomplete Registrations")
    table.add_column("ID", justify="right")
    table.add_column("Email")
    table.add_column("Name")
    table.add_column("Created")
    table.add_column("Verified")
    table.add_column("Issue", style="yellow")
    for r in registrations:
        table.add_row(
            str(r.id), r.email, r.name, r.created_at or "-",
            "Yes" if r.email_verified else "No", r.issue_type,
        )
    return table


# -- shared view loop -------------------------------------------------------

def ask_ids(text: str) -> list[int]:
    raw = session_prompt(text)
    try:
        return [int(part) for part in raw.replace(",", " ").split()]
    except ValueError:
        raise ValueError("Enter ids as numbers separated by spaces or commas")


def edit_filter(browser, validate) -> None:
    names = list(browser.filters)
    name = session_prompt("Filter", choices=names)
    current = browser.filters[name]
    if isinstance(current, bool):
        value = confirm(f"{name.replace('_', ' ').capitalize()}?")
    else:
        value = validate(name, session_prompt(name.replace("_", " ").capitalize(), default=str(current)))
    if browser.set_filter(name, value):
        console.print("[dim]Reloaded from server.[/dim]")


def change_page_size(browser) -> None:
    options = [str(o) for o in items_per_page_options(len(browser.filtered()))]
    size = session_prompt(f"Items per page ({SHOW_ALL} shows all)", choices=options,
                          default=str(browser.window.page_size))
    browser.set_page_size(int(size))


def show_page(browser, render) -> None:
    page = browser.page()
    if browser.error:
        console.print(f"[yellow]Could not refresh: {browser.error}. Showing the last loaded data.[/yellow]")
    active = {k: v for k, v in browser.active_filters().items() if v is not False}
    if active:
        console.print("[dim]Filters: " + ", ".join(f"{k}={v}" for k, v in active.items()) + "[/dim]")
    console.print(render(page.items))
    console.print(f"[dim]{page.describe()}[/dim]")


def browse(browser, render, validate, actions: dict | None = None) -> None:
    """Prompt loop over one view until the user types 'q' or 'menu'.

    ``actions`` maps extra single-letter commands to ``(label, handler)``.
    """
    actions = actions or {}
    hint = "n next, p prev, # page, f filter, s size, c clear, r refresh"
    if actions:
        hint += ", " + ", ".join(f"{key} {label}" for key, (label, _) in actions.items())
    while True:
        show_page(browser, render)
        choice = session_prompt(f"{hint}, q back", default="n").strip().lower()
        try:
            if choice.isdigit():
                browser.go_to(int(choice))
            elif choice == "n":
                browser.next_page()
            elif choice == "p":
                browser.previous_page()
            elif choice == "f":
                edit_filter(browser, validate)
            elif choice == "s":
                change_page_size(browser)
            elif choice == "c":
                browser.reset_filters()
            elif choice == "r":
                browser.refresh()
            elif choice in actions:
                actions[choice][1]()
            else:
                console.print("[red]Unknown command.[/red]")
        except ApiError as e:
            console.print(f"[red]Server error: {e.message}[/red]")
        except ValueError as e:
            console.print(f"[red]{e}[/red]")


def export(html: str, name: str) -> None:
    try:
        path = open_report(html, name=name)
    except ReportSurfaceError as e:
        console.print(f"[yellow]{e}[/yellow]")
        return
    console.print(f"[green]Report opened ({path}).[/green]")


# -- commands ----------------------------------------------------------------

def question_report(browser) -> str:
    return render_question_report(
        browser.ordered(),
        question_analysis.overall_stats(browser.fetcher.working_set),
        browser.active_filters(),
        question_analysis.threshold_of(browser.state),
    )


def show_question_summary(browser) -> None:
    records = browser.filtered()
    threshold = question_analysis.threshold_of(browser.state)
    stats = question_analysis.overall_stats(browser.fetcher.working_set)
    console.print(Panel(
        f"Questions: [bold]{stats['total_questions']}[/bold]  |  "
        f"Examinees: [bold]{stats['total_examinees']}[/bold]  |  "
        f"Avg time: [bold]{stats['overall_avg_time']}s[/bold]  |  "
        f"Slow answers: [bold]{stats['overall_slow_percentage']}%[/bold]",
        title="Overall",
    ))
    table = Table(title="Difficulty")
    table.add_column("Tier")
    table.add_column("Questions", justify="right")
    for tier, count in question_analysis.difficulty_distribution(records).items():
        table.add_row(DIFFICULTY_LABELS[tier], str(count))
    console.print(table)
    speeds = question_analysis.speed_distribution(records, threshold)
    console.print("  " + "  |  ".join(f"{SPEED_LABELS[s]}: {n}" for s, n in speeds.items()))
    slow = question_analysis.top_slow_questions(records)
    if slow:
        console.print(question_table(slow, threshold))


def cmd_analysis(client: ApiClient, db_path: str):
    browser = question_analysis.open_browser(client, db_path)
    browser.load()
    exams = browser.fetcher.working_set.facets.get("exams") or []
    if exams:
        console.print("[dim]Exams: " + ", ".join(f"{e.exam_id}={e.exam_ref_no}" for e in exams) + "[/dim]")
    browse(
        browser,
        lambda items: question_table(items, question_analysis.threshold_of(browser.state)),
        question_analysis.validate_filter,
        {
            "o": ("overview", lambda: show_question_summary(browser)),
            "x": ("report", lambda: export(question_report(browser), "question-analysis")),
        },
    )


def show_result_detail(client: ApiClient, browser) -> None:
    result_id = session_int_prompt("Result ID")
    result = next((r for r in browser.fetcher.records if r.result_id == result_id), None)
    if result is None:
        raise ValueError(f"No result with id {result_id} is loaded")
    details = exam_results.fetch_result_details(client, result_id) or {}
    lines = [
        f"Exam: {result.exam_ref_no}",
        f"Score: {result.score:g}  ({result.correct}/{result.total_items})",
        f"Result: {'[green]Passed[/green]' if result.passed else '[red]Failed[/red]'}",
    ]
    if details.get("personality_type"):
        lines.append(f"Personality: {details['personality_type']}")
    console.print(Panel("\n".join(lines), title=result.examinee_name or str(result_id)))
    if confirm("Open printable report?"):
        export(render_result_detail(result, details), f"result-{result_id}")


def results_summary(browser) -> str:
    s = exam_results.summarize(browser.filtered())
    return (f"Total: [bold]{s['total']}[/bold]  |  Passed: [green]{s['passed']}[/green]  |  "
            f"Failed: [red]{s['failed']}[/red]  |  Avg score: {s['average_score']}  |  "
            f"Pass rate: {s['pass_rate']}%")


def cmd_results(client: ApiClient, db_path: str):
    browser = exam_results.open_browser(client, db_path)
    view = exam_results.view_prefs(db_path)
    browser.load()

    def render(items):
        console.print(results_summary(browser))
        return results_table(items, compact=view.get("compact_view"))

    def toggle_compact():
        view.save("compact_view", not view.get("compact_view"))

    def quick_range():
        kind = session_prompt("Range", choices=["today", "last7", "this_month"])
        exam_results.apply_quick_range(browser, kind)

    def archive():
        result_id = session_int_prompt("Result ID to archive")
        if confirm(f"Archive result {result_id}?"):
            exam_results.archive_result(client, browser, result_id)

    def unarchive():
        exam_results.unarchive_result(client, browser, session_int_prompt("Result ID to restore"))

    def archive_year():
        year = session_prompt("Year to archive")
        if confirm(f"Archive every result from {year}?"):
            response = exam_results.archive_year(client, browser, year)
            console.print(f"[green]{response.get('message') or 'Archived.'}[/green]")

    def archive_all():
        if confirm("Archive ALL results?"):
            response = exam_results.archive_all(client, browser)
            console.print(f"[green]{response.get('message') or 'Archived.'}[/green]")

    def unarchive_year():
        response = exam_results.unarchive_year(client, browser, session_prompt("Year to restore"))
        console.print(f"[green]{response.get('message') or 'Restored.'}[/green]")

    browse(browser, render, exam_results.validate_filter, {
        "d": ("detail", lambda: show_result_detail(client, browser)),
        "t": ("date range", quick_range),
        "v": ("compact view", toggle_compact),
        "a": ("archive", archive),
        "u": ("unarchive", unarchive),
        "y": ("archive year", archive_year),
        "w": ("archive all", archive_all),
        "e": ("restore year", unarchive_year),
        "x": ("report", lambda: export(
            render_results_report(browser.ordered(), browser.active_filters(), view.get("compact_view")),
            "exam-results",
        )),
    })


def validate_exam_filter(name: str, value):
    value = (value or "").strip()
    if name == "status" and value and value not in exam_management.STATUSES:
        raise ValueError(f"Status must be one of: {', '.join(exam_management.STATUSES)}")
    return value


def cmd_exams(client: ApiClient, db_path: str, query: str = ""):
    browser = exam_management.open_browser(client, db_path, query)
    browser.load()

    def toggle():
        exam = exam_management.toggle_exam_status(client, browser, session_int_prompt("Exam ID"))
        console.print(f"[green]{exam.exam_ref_no or exam.exam_id} is now {exam.status}.[/green]")

    def show_link():
        console.print(f"Reopen this view with: [bold]--exams-query '{escape(browser.to_query())}'[/bold]")

    def open_link():
        browser.apply_query(session_prompt("Query (e.g. status=active&per_page=10&page=2)"))

    def render(items):
        console.print(f"[dim]{exam_management.active_count(browser.fetcher.records)} active exams[/dim]")
        return exams_table(items)

    browse(browser, render, validate_exam_filter, {
        "t": ("toggle status", toggle),
        "l": ("link", show_link),
        "g": ("go to link", open_link),
    })


def ask_category_counts(available: dict) -> dict:
    counts = {}
    for name, count in sorted(available.items()):
        n = session_int_prompt(f"{name} (available {count})", default="0")
        if n:
            counts[name] = n
    return counts


def cmd_create(client: ApiClient, db_path: str):
    browser = exam_management.open_browser(client, db_path)
    browser.load()
    facets = browser.fetcher.working_set.facets
    exam_type = session_prompt("Exam type", choices=exam_management.EXAM_TYPES, default="random")
    time_limit = session_int_prompt("Time limit (minutes)", default="60")
    kwargs = {"available": facets.get("categories") or None}
    if exam_type == "manual":
        kwargs["question_ids"] = ask_ids("Question IDs")
    else:
        kwargs["category_counts"] = ask_category_counts(facets.get("categories") or {})
    if confirm("Include personality test?"):
        kwargs["include_personality_test"] = True
        p_type = session_prompt("Personality exam type", choices=exam_management.EXAM_TYPES, default="random")
        kwargs["personality_exam_type"] = p_type
        kwargs["personality_available"] = facets.get("dichotomies") or None
        if p_type == "manual":
            kwargs["personality_question_ids"] = ask_ids("Personality question IDs")
        else:
            kwargs["personality_category_counts"] = ask_category_counts(facets.get("dichotomies") or {})
    payload = exam_management.build_exam_payload(time_limit, exam_type, **kwargs)
    exam_management.create_exam(client, browser, payload)
    console.print("[green]Exam created.[/green]")


def cleanup_in_progress(client: ApiClient, finished_only: bool) -> None:
    if finished_only:
        exams = maintenance.check_finished_in_progress(client)
        title = "Finished but still marked In Progress"
    else:
        exams = maintenance.list_in_progress(client)
        title = "All In Progress"
        text = session_prompt("Search (blank for all)", default="")
        exams = maintenance.search_in_progress(exams, text)
    if not exams:
        console.print("[green]Nothing to clean up.[/green]")
        return
    console.print(in_progress_table(exams, title))
    ids = ask_ids("Result IDs (blank to skip)") if confirm("Act on some of these?") else []
    if not ids:
        return
    if finished_only:
        maintenance.fix_remarks(client, ids)
        console.print(f"[green]Fixed remarks on {len(ids)} results.[/green]")
    else:
        deleted = maintenance.delete_selected(client, ids)
        console.print(f"[green]Deleted {deleted} results.[/green]")


def cleanup_registrations(client: ApiClient) -> None:
    hours = session_int_prompt("Older than how many hours?", default="24")
    found = maintenance.registration_dry_run(client, hours)
    if not found:
        console.print("[green]No incomplete registrations.[/green]")
        return
    console.print(registrations_table(found))
    action = session_prompt("Action", choices=["fix", "delete", "skip"], default="skip")
    if action == "skip":
        return
    ids = ask_ids("User IDs")
    if action == "fix":
        response = maintenance.fix_registrations(client, ids)
    else:
        response = maintenance.cleanup_registrations(client, ids, hours)
    console.print(f"[green]{response.get('message') or 'Done.'}[/green]")
    for err in response.get("errors") or []:
        console.print(f"[red]{err.get('email', err.get('user_id'))}: {err.get('error')}[/red]")


def cmd_cleanup(client: ApiClient, db_path: str):
    action = session_prompt(
        "Cleanup", choices=["abandoned", "finished", "all", "progress", "registrations"],
    )
    if action == "abandoned":
        if confirm("Delete attempts with no answers?"):
            console.print(f"[green]Deleted {maintenance.clear_abandoned(client)} abandoned attempts.[/green]")
    elif action == "finished":
        cleanup_in_progress(client, finished_only=True)
    elif action == "all":
        cleanup_in_progress(client, finished_only=False)
    elif action == "progress":
        if confirm("Clear all saved exam progress?"):
            response = maintenance.clear_exam_progress(client)
            console.print(f"[green]{response.get('message') or 'Exam progress cleared.'}[/green]")
    elif action == "registrations":
        cleanup_registrations(client)


def cmd_report(client: ApiClient, db_path: str):
    view = session_prompt("Report", choices=["analysis", "results"], default="results")
    if view == "analysis":
        browser = question_analysis.open_browser(client, db_path)
        browser.load()
        export(question_report(browser), "question-analysis")
    else:
        browser = exam_results.open_browser(client, db_path)
        browser.load()
        compact = exam_results.view_prefs(db_path).get("compact_view")
        export(render_results_report(browser.ordered(), browser.active_filters(), compact), "exam-results")


def cmd_settings(client: ApiClient, db_path: str):
    table = Table(title="Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("API URL", client.base_url)
    table.add_row("Request timeout", f"{client.timeout:g}s")
    table.add_row("Preferences file", db_path)
    console.print(table)
    if confirm("Forget remembered filters for every view?"):
        removed = sum(clear_prefs(db_path, prefix) for prefix in PREF_PREFIXES)
        console.print(f"[green]Cleared {removed} stored settings.[/green]")


COMMANDS = {
    "analysis": cmd_analysis,
    "results": cmd_results,
    "exams": cmd_exams,
    "create": cmd_create,
    "cleanup": cmd_cleanup,
    "report": cmd_report,
    "settings": cmd_settings,
}


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="guidance-console", description=__doc__)
    parser.add_argument("--api-url", default=DEFAULT_API_URL, help="exam administration API base URL")
    parser.add_argument("--db", default=DEFAULT_DB_PATH, help="preferences database file")
    parser.add_argument("--timeout", type=float, default=REQUEST_TIMEOUT, help="request timeout in seconds")
    parser.add_argument("--exams-query", default="",
                        help="open the exams view at this filter and page, e.g. per_page=10&page=2")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    configure_logging(args.verbose)
    db_path = args.db
    init_db(db_path)
    client = ApiClient(args.api_url, timeout=args.timeout)
    exams_query = args.exams_query

    show_welcome(client.base_url)

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="results").strip().lower()
        try:
            if choice in ("quit", "exit", "q"):
                console.print("[dim]Goodbye.[/dim]")
                break
            elif choice == "exams" and exams_query:
                query, exams_query = exams_query, ""
                cmd_exams(client, db_path, query)
            elif choice in COMMANDS:
                COMMANDS[choice](client, db_path)
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except SessionExitRequested:
            pass
        except ApiError as e:
            console.print(f"[red]Server error: {e.message}[/red]")
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
        except ReportSurfaceError as e:
            console.print(f"[yellow]{e}[/yellow]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            logger.exception("Unexpected error in %s", choice)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
