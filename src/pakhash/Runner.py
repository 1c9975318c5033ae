"""Process a list of containers and append their fingerprints to a file.

The input list holds one container per line, a display name followed by
the container URL::

    map-pack-1 https://example.com/files/map-pack-1.zip
    map-pack-2 https://example.com/files/map-pack-2.zip
"""

import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Callable, Iterator, List, NamedTuple, Tuple

from .ArchiveEngine import ContainerReport, hash_url
from .FileIO import RemoteStream
from .HashPipeline import HashPipeline
from .Protocols import NullEvents, RunEventsProtocol

logger = logging.getLogger(__name__)

# the name ends at the whitespace right before the URL
URL_SPLIT = re.compile(r"\s+(?=https?://)")


class ListEntry(NamedTuple):
    name: str
    url: str


class FailedEntry(NamedTuple):
    entry: ListEntry
    reason: Exception


@dataclass
class RunSummary:
    total: int = 0
    found: int = 0
    failed: List[FailedEntry] = field(default_factory=list)
    elapsed: float = 0.0


def parse_list(text: str) -> List[ListEntry]:
    """Parse the `<name> <url>` lines of an input list.

    Blank lines are ignored. A line holding only a URL is named after the
    last segment of its path. Lines without a URL are skipped with a warning.
    """
    entries = []
    for number, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        if line.startswith(("http://", "https://")):
            url = line.split()[0]
            entries.append(ListEntry(url.rstrip("/").rsplit("/", 1)[-1], url))
            continue
        parts = URL_SPLIT.split(line, maxsplit=1)
        if len(parts) != 2:
            logger.warning("Line %d has no URL, skipped: %s", number, line)
            continue
        name, url = parts
        entries.append(ListEntry(name.strip(), url.strip()))
    return entries


class Runner:
    """Fingerprints every container of a list.

    Containers are independent of each other: each one gets its own stream
    and scanner, and a failing container is recorded and skipped. With more
    than one job containers are fetched concurrently, but their lines are
    still written to the output in list order.

    Attributes:
        pipeline (HashPipeline): Filter and hasher shared by all containers.
        output (Path): File the result lines are appended to.
        events (RunEventsProtocol): Receives the progress of the run.
        jobs (int): Number of containers processed at the same time.
        stream_factory (callable): Builds the RemoteStream for a URL.
    """

    def __init__(self, pipeline: HashPipeline, output: Path,
                 events: RunEventsProtocol | None = None, jobs: int = 1,
                 stream_factory: Callable[[str], RemoteStream] = RemoteStream):
        self.pipeline = pipeline
        self.output = Path(output)
        self.events = events or NullEvents()
        self.jobs = max(jobs, 1)
        self.stream_factory = stream_factory

    def process(self, entry: ListEntry) -> ContainerReport:
        """Fetch and fingerprint a single container."""
        self.events.container_started(entry)
        report = hash_url(
            entry.url,
            self.pipeline,
            on_result=partial(self.events.result, entry),
            on_failure=partial(self.events.entry_failed, entry),
            progress_callback=partial(self.events.progress, entry),
            stream=self.stream_factory(entry.url),
        )
        if report.ok:
            logger.info("%s: %d hashes, %d records", entry.name, len(report.results), report.records_seen)
        else:
            logger.error("%s failed: %s", entry.name, report.error)
        self.events.container_finished(entry, report)
        return report

    def run(self, entries: List[ListEntry]) -> RunSummary:
        """Process every entry and append the result lines to `output`.

        Returns:
            RunSummary: Counts of found fingerprints and failed containers.
        """
        start = time.perf_counter()
        summary = RunSummary(total=len(entries))
        self.output.parent.mkdir(parents=True, exist_ok=True)
        with open(self.output, "a", encoding="utf-8", newline="") as sink:
            for entry, report in self._reports(entries):
                # partial results of a failed container are kept too
                sink.writelines(result.line for result in report.results)
                sink.flush()
                summary.found += len(report.results)
                if not report.ok:
                    summary.failed.append(FailedEntry(entry, report.error))
        summary.elapsed = time.perf_counter() - start
        return summary

    def _reports(self, entries: List[ListEntry]) -> Iterator[Tuple[ListEntry, ContainerReport]]:
        if self.jobs == 1:
            for entry in entries:
                yield entry, self.process(entry)
            return

        with ThreadPoolExecutor(max_workers=self.jobs) as pool:
            futures = [pool.submit(self.process, entry) for entry in entries]
            for entry, future in zip(entries, futures):
                yield entry, future.result()
