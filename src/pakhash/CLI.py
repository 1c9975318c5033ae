"""pakhash CLI entrypoint.

This module provides the `hash_list` click command which reads a list of container URLs, streams every container, and appends the SHA-1 fingerprint of each sub-archive found inside to an output file while displaying progress.

Usage example (from shell):
    pakhash --input ./lists/files-maps.txt --output fileinfo.txt --log

The implementation delegates fetching and hashing to `pakhash.Runner.Runner`, so this module focuses on the console output: progress bars, per-container messages and the final summary.
"""

import logging
import threading
from datetime import datetime
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, BarColumn, TextColumn, DownloadColumn, TransferSpeedColumn
from rich.table import Table

from .HashPipeline import DEFAULT_SUFFIX, HashPipeline
from .Protocols import RunEventsProtocol
from .Runner import Runner, parse_list

LOG_DIR = Path("logs")
TAB1 = " " * 4
TAB2 = " " * 8

# Create a single console instance for the CLI UI (rich console handles colors/formatting)
console = Console()
logger = logging.getLogger(__name__)


class ConsoleEvents(RunEventsProtocol):
    """Prints the run events on the console.

    Every container gets its own download bar while it is being fetched.
    Messages are printed through the progress console so they stay above
    the bars.
    """

    def __init__(self, bar: Progress, suffix: str):
        self.bar = bar
        self.suffix = suffix
        # keyed by id(), equal list lines are still distinct containers
        self._tasks = {}
        self._lock = threading.Lock()

    def container_started(self, entry):
        logger.info("fetching %s (%s)", entry.name, entry.url)
        self.bar.console.print(f"{TAB1}fetching [green]{escape(entry.name)}[/green] ...")
        with self._lock:
            self._tasks[id(entry)] = self.bar.add_task(f"downloading {escape(entry.name)}", total=None)

    def progress(self, entry, received, total):
        task = self._tasks.get(id(entry))
        if task is not None:
            self.bar.update(task, completed=received, total=total or None)

    def result(self, entry, result):
        logger.info("[+] %s %s", result.name, result.digest)
        self.bar.console.print(f"{TAB2}[green][+] [bold green]{escape(result.name)}[/bold green][/green]")

    def entry_failed(self, entry, failure):
        self.bar.console.print(f"{TAB2}[yellow][!] {escape(failure.name)}: {escape(str(failure.error))}[/yellow]")

    def container_finished(self, entry, report):
        with self._lock:
            task = self._tasks.pop(id(entry), None)
        if task is not None:
            self.bar.remove_task(task)
        if not report.ok:
            self.bar.console.print(f"{TAB2}[red][!] [bold red]{escape(str(report.error))}[/bold red][/red]")
        elif not report.results:
            logger.info("No %s files found in %s", self.suffix, entry.name)
            self.bar.console.print(f"{TAB2}[yellow][-] [bold yellow]No {escape(self.suffix)} files found[/bold yellow][/yellow]")


def setup_logging(show_errors: bool, log_path: Path | None = None):
    """Route pakhash log records to the console and optionally to a file.

    Console records are only shown with `--errors`. The log file, when
    requested, receives everything as plain text.
    """
    package_logger = logging.getLogger("pakhash")
    package_logger.setLevel(logging.DEBUG)
    package_logger.propagate = False
    package_logger.handlers.clear()

    console_handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
    console_handler.setLevel(logging.WARNING if show_errors else logging.CRITICAL)
    package_logger.addHandler(console_handler)

    if log_path:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        file_handler.setLevel(logging.DEBUG)
        package_logger.addHandler(file_handler)


@click.command(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option("--input", "-i", "input_path",
              type=click.Path(exists=True, dir_okay=False, readable=True, path_type=Path),
              required=True,
              help="Input file path containing the list of download links")
@click.option("--output", "-o",
              type=click.Path(dir_okay=False, writable=True, path_type=Path),
              default=Path("output.txt"),
              help="Output file path, where the result is going to be appended")
@click.option("--suffix", "-s", type=str, default=DEFAULT_SUFFIX, show_default=True,
              help="Name suffix of the inner archives to fingerprint")
@click.option("--errors", "-e", "show_errors", is_flag=True, default=False,
              help="Print all errors, that are usually skipped")
@click.option("--log", "-l", "log_process", is_flag=True, default=False,
              help="Log everything in a file under ./logs")
@click.option("--jobs", "-j", type=click.IntRange(min=1), default=1, show_default=True,
              help="Number of containers fetched at the same time")
def hash_list(input_path: Path, output: Path, suffix: str, show_errors: bool, log_process: bool, jobs: int):
    """Fingerprint the sub-archives of every container in a list.

    Each line of the input list holds a name and a URL. Every container is
    streamed, and each inner entry ending in the suffix is inflated and
    hashed. Lines `<name> <sha1>` are appended to the output file.
    """
    log_path = LOG_DIR / f"log-{datetime.now().strftime('%Y%m%dT%H%M%S')}.txt" if log_process else None
    setup_logging(show_errors, log_path)

    console.print("\n".join([
        f"Input:   [bold blue]{escape(str(input_path))}[/bold blue]",
        f"Output:  [bold blue]{escape(str(output))}[/bold blue]",
        f"Errors:  [bold blue]{'Yes' if show_errors else 'No'}[/bold blue]",
        f"Logging: [bold blue]{'Yes' if log_process else 'No'}[/bold blue] {escape(f'({log_path})') if log_path else ''}",
    ]))

    try:
        entries = parse_list(input_path.read_text(encoding="utf-8", errors="replace"))
    except OSError as e:
        console.print(f"[red]Error:[/red] Failed to open input file: {escape(str(e))}")
        raise SystemExit(1)

    pipeline = HashPipeline(suffix=suffix)
    console.print("\n<The task has started>")
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        console=console,
        transient=True,
    ) as progress:
        runner = Runner(pipeline, output, events=ConsoleEvents(progress, suffix), jobs=jobs)
        try:
            summary = runner.run(entries)
        except OSError as e:
            console.print(f"[red]Error:[/red] Failed to write output file: {escape(str(e))}")
            raise SystemExit(1)
    console.print("<The task has finished>")

    console.print(f"Task time: {summary.elapsed:.2f}s\n")
    console.print(f"Found {escape(suffix)}: [bold green]{summary.found}[/bold green]")
    console.print(f"Failed: [bold red]{len(summary.failed)}[/bold red] / [bold green]{summary.total}[/bold green]")
    logger.info("Found %d, failed %d / %d", summary.found, len(summary.failed), summary.total)

    if summary.failed:
        table = Table(title="Failed Containers")
        table.add_column("Name", justify="left")
        table.add_column("URL", justify="left")
        table.add_column("Reason", justify="left")
        for failed in summary.failed:
            table.add_row(escape(failed.entry.name), escape(failed.entry.url), escape(str(failed.reason)))
            logger.info("failed: %s %s: %s", failed.entry.name, failed.entry.url, failed.reason)
        console.print(table)
