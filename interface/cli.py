"""
NovelWeaver - CLI Interface
Rich terminal interface for searching, reading, and downloading novels
"""

import threading
from pathlib import Path
from typing import Callable, Dict, Optional

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn
from rich.prompt import Prompt
from rich.table import Table

import config
from acquisition.batch import BatchResult, plan_fetch
from acquisition.export import save_artifact
from acquisition.ranges import RangeStatus, parse_range
from acquisition.session import NovelSession, get_session
from core.errors import NovelWeaverError, categorize
from core.logger import log_warning
from core.models import ChapterRecord, ChapterStatus

STATUS_ICONS = {
    ChapterStatus.PENDING: "[dim]○[/dim]",
    ChapterStatus.LOADING: "[blue]…[/blue]",
    ChapterStatus.COMPLETED: "[green]✓[/green]",
    ChapterStatus.ERROR: "[red]![/red]",
}

RANGE_STYLES = {
    RangeStatus.COMPLETED: "[green]Ready[/green]",
    RangeStatus.DOWNLOADING: "[blue]Downloading[/blue]",
    RangeStatus.ERROR: "[red]Retry[/red]",
    RangeStatus.PARTIAL: "[dim]Download[/dim]",
    RangeStatus.EMPTY: "[dim]Download[/dim]",
}

LIST_PAGE_SIZE = 25


class NovelCLI:
    """
    Rich CLI host for a reading session.

    Provides:
    - Search (plain input or /search)
    - Chapter list and reader
    - Range downloads with live progress and Ctrl+C cancellation
    """

    def __init__(
        self,
        session: Optional[NovelSession] = None,
        export_dir: Optional[Path] = None,
        console: Optional[Console] = None
    ):
        self.console = console or Console()
        self.session = session or get_session()
        self.export_dir = Path(export_dir or config.EXPORT_DIR)
        self._running = False
        self._commands: Dict[str, Callable[[str], None]] = {}
        self._setup_commands()

    def _setup_commands(self) -> None:
        """Register slash commands."""
        self._commands = {
            "/help": self._cmd_help,
            "/quit": self._cmd_quit,
            "/exit": self._cmd_quit,
            "/search": self._cmd_search,
            "/list": self._cmd_list,
            "/read": self._cmd_read,
            "/next": self._cmd_next,
            "/prev": self._cmd_prev,
            "/retry": self._cmd_retry,
            "/save": self._cmd_save,
            "/ranges": self._cmd_ranges,
            "/download": self._cmd_download,
            "/export": self._cmd_export,
        }

    def start(self) -> None:
        """Start the interactive loop."""
        self._running = True
        self.console.print()
        self.console.print(
            "[bold cyan]📚 Enter a webnovel name to begin. Type '/help' for commands.[/bold cyan]"
        )
        self.console.print()

        while self._running:
            try:
                user_input = Prompt.ask("[bold green]Novel[/bold green]", console=self.console)
            except (KeyboardInterrupt, EOFError):
                self.console.print()
                break

            if not user_input.strip():
                continue

            if user_input.startswith("/"):
                self.handle_command(user_input)
            else:
                self.handle_command(f"/search {user_input}")

    def handle_command(self, user_input: str) -> None:
        """Dispatch one slash command."""
        command, _, args = user_input.strip().partition(" ")
        handler = self._commands.get(command.lower())
        if handler is None:
            self.console.print(f"[yellow]Unknown command: {command}. Type /help for the list.[/yellow]")
            return

        try:
            handler(args.strip())
        except NovelWeaverError as e:
            self._show_error(e)

    def _show_error(self, error: Exception) -> None:
        label = categorize(error).value
        self.console.print(f"[bold red]⚠ {escape(str(error))}[/bold red] [dim]({label})[/dim]")

    # =========================================================================
    # COMMANDS
    # =========================================================================

    def _cmd_help(self, args: str) -> None:
        table = Table(title="Commands", show_header=False, box=None)
        table.add_row("[cyan]<novel name>[/cyan]", "Search for a novel (same as /search)")
        table.add_row("[cyan]/search NAME[/cyan]", "Find a novel and build its chapter list")
        table.add_row("[cyan]/list [PAGE][/cyan]", f"Show chapters, {LIST_PAGE_SIZE} per page")
        table.add_row("[cyan]/read N[/cyan]", "Open chapter N (fetches it if needed)")
        table.add_row("[cyan]/next, /prev[/cyan]", "Move to the adjacent chapter")
        table.add_row("[cyan]/retry[/cyan]", "Fetch the current chapter again")
        table.add_row("[cyan]/save[/cyan]", "Save the current chapter as Markdown")
        table.add_row("[cyan]/ranges[/cyan]", "Show download blocks and their status")
        table.add_row("[cyan]/download START-END[/cyan]", "Fetch a range and save it as one file")
        table.add_row("[cyan]/export START-END[/cyan]", "Save what is already downloaded in a range")
        table.add_row("[cyan]/quit[/cyan]", "Exit")
        self.console.print(table)

    def _cmd_quit(self, args: str) -> None:
        self._running = False

    def _cmd_search(self, args: str) -> None:
        with self.console.status(f"[cyan]Searching for '{escape(args.strip())}'...[/cyan]"):
            manifest = self.session.search(args)

        author = f" by {manifest.author}" if manifest.author else ""
        self.console.print(
            f"[bold green]Found {escape(manifest.title + author)}[/bold green] "
            f"[dim]({len(manifest)} chapters)[/dim]"
        )
        self._cmd_list("1")

    def _cmd_list(self, args: str) -> None:
        manifest = self.session.require_manifest()
        page = int(args) if args.isdigit() else 1
        start = (page - 1) * LIST_PAGE_SIZE
        chapters = manifest.chapters[start:start + LIST_PAGE_SIZE]
        if not chapters:
            self.console.print("[dim]No chapters on this page.[/dim]")
            return

        table = Table(title=f"{escape(manifest.title)} (page {page})")
        table.add_column("", width=2)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Title")
        current_id = self.session.current_chapter_id
        for chapter in chapters:
            title = escape(chapter.title)
            if chapter.id == current_id:
                title = f"[bold]{title}[/bold]"
            table.add_row(STATUS_ICONS[chapter.status], str(chapter.number), title)
        self.console.print(table)

    def _cmd_read(self, args: str) -> None:
        if not args.isdigit():
            self.console.print("[yellow]Usage: /read N[/yellow]")
            return
        with self.console.status(f"[cyan]Loading chapter {args}...[/cyan]"):
            record = self.session.select_number(int(args))
        if record is None:
            self.console.print(f"[yellow]No chapter {args} in this novel.[/yellow]")
            return
        self._render_chapter(record)

    def _cmd_next(self, args: str) -> None:
        self._navigate("next")

    def _cmd_prev(self, args: str) -> None:
        self._navigate("prev")

    def _navigate(self, direction: str) -> None:
        self.session.require_manifest()
        with self.console.status("[cyan]Loading chapter...[/cyan]"):
            record = self.session.navigate(direction)
        if record is None:
            self.console.print("[dim]No more chapters in that direction.[/dim]")
            return
        self._render_chapter(record)

    def _cmd_retry(self, args: str) -> None:
        chapter = self._require_current()
        with self.console.status(f"[cyan]Retrying chapter {chapter.number}...[/cyan]"):
            self.session.retry(chapter.id)
        self._render_chapter(self.session.current_chapter)

    def _cmd_save(self, args: str) -> None:
        chapter = self._require_current()
        artifact = self.session.export_chapter(chapter.id)
        path = save_artifact(artifact, self.export_dir)
        self.console.print(f"[green]Saved to {path}[/green]")

    def _cmd_ranges(self, args: str) -> None:
        table = Table(title="Batch Download")
        table.add_column("Range", justify="right")
        table.add_column("Status")
        for start, end, status in self.session.range_overview(config.BATCH_RANGE_SIZE):
            table.add_row(f"{start}-{end}", RANGE_STYLES[status])
        self.console.print(table)

        counts = self.session.require_manifest().count_by_status()
        self.console.print(
            f"[dim]{counts[ChapterStatus.COMPLETED]} downloaded, "
            f"{counts[ChapterStatus.ERROR]} failed, "
            f"{counts[ChapterStatus.PENDING]} not fetched[/dim]"
        )

    def _cmd_download(self, args: str) -> None:
        start, end = parse_range(args)
        result = self.run_download(start, end)
        self.report_batch(result, start, end)

    def _cmd_export(self, args: str) -> None:
        start, end = parse_range(args)
        artifact = self.session.export_range(start, end)
        path = save_artifact(artifact, self.export_dir)
        self.console.print(f"[green]Saved {artifact.section_count} chapters to {path}[/green]")

    # =========================================================================
    # DOWNLOADS
    # =========================================================================

    def run_download(self, start: int, end: int) -> Optional[BatchResult]:
        """
        Run a batch job on a worker thread while showing progress.

        Ctrl+C cancels the job; the chapter being fetched still finishes.
        """
        manifest = self.session.require_manifest()
        pending = plan_fetch(manifest, start, end)
        if pending:
            self.console.print(
                f"[dim]Fetching {len(pending)} chapters. Press Ctrl+C to stop after the current one.[/dim]"
            )

        outcome: Dict[str, object] = {}

        def save(artifact) -> None:
            outcome["path"] = save_artifact(artifact, self.export_dir)

        def worker() -> None:
            # Errors are re-raised on the main thread after join
            try:
                outcome["result"] = self.session.download_range(start, end, on_export=save)
            except Exception as e:
                outcome["error"] = e

        thread = threading.Thread(target=worker, name="batch-download", daemon=True)

        progress_bar = Progress(
            TextColumn("[bold blue]Downloading chapters"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            TextColumn("[dim]{task.fields[attempted]} attempted[/dim]"),
            console=self.console,
        )
        with progress_bar:
            task = progress_bar.add_task("batch", total=None, attempted=0)
            thread.start()
            while thread.is_alive():
                try:
                    thread.join(0.25)
                except KeyboardInterrupt:
                    if self.session.cancel_download():
                        log_warning("Stopping after the current chapter...")
                    continue
                snapshot = self.session.progress
                if snapshot:
                    progress_bar.update(
                        task,
                        completed=snapshot.current,
                        total=snapshot.total,
                        attempted=snapshot.attempted,
                    )

        if "error" in outcome:
            raise outcome["error"]

        result = outcome.get("result")
        if result is not None and "path" in outcome:
            self.console.print(f"[green]Saved to {outcome['path']}[/green]")
        return result

    def report_batch(self, result: Optional[BatchResult], start: int, end: int) -> None:
        if result is None:
            self.console.print(f"[yellow]No chapters in range {start}-{end}.[/yellow]")
        elif result.cancelled:
            self.console.print(
                f"[yellow]Download cancelled ({result.fetched} fetched, {result.failed} failed).[/yellow]"
            )
        elif result.export_error:
            self.console.print(f"[bold red]⚠ {escape(result.export_error)}[/bold red]")
        else:
            self.console.print(
                f"[bold green]Downloaded {result.artifact.section_count}/{result.selected} chapters "
                f"({result.failed} failed).[/bold green]"
            )

    # =========================================================================
    # RENDERING
    # =========================================================================

    def _require_current(self) -> ChapterRecord:
        chapter = self.session.current_chapter
        if chapter is None:
            raise NovelWeaverError("No chapter selected. Use /read N first.")
        return chapter

    def _render_chapter(self, chapter: Optional[ChapterRecord]) -> None:
        if chapter is None:
            return

        subtitle = escape(chapter.source_url or "")
        if chapter.status == ChapterStatus.COMPLETED and chapter.content:
            body = Markdown(chapter.content)
        elif chapter.status == ChapterStatus.ERROR:
            message = escape(chapter.error_message or "Failed to load chapter.")
            body = f"[red]{message}[/red]\n[dim]Use /retry to try again.[/dim]"
        else:
            body = "[dim]Not loaded yet.[/dim]"

        self.console.print(Panel(
            body,
            title=f"[bold]Chapter {chapter.number}[/bold] · {escape(chapter.title)}",
            subtitle=subtitle,
            border_style="blue",
        ))
        nav = []
        if self.session.has_prev:
            nav.append("/prev")
        if self.session.has_next:
            nav.append("/next")
        if nav:
            self.console.print(f"[dim]{'  '.join(nav)}[/dim]")


# Global CLI instance
_cli: Optional[NovelCLI] = None


def get_cli() -> NovelCLI:
    """Get the global CLI instance."""
    global _cli
    if _cli is None:
        _cli = NovelCLI()
    return _cli


def init_cli(**kwargs) -> NovelCLI:
    """Initialize the global CLI instance."""
    global _cli
    _cli = NovelCLI(**kwargs)
    return _cli
