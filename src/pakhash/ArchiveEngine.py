"""Bridge between a container byte stream and the hash pipeline.

`scan_container` drives a fresh `ContainerScanner` over the chunks of one
container and hands every batch of records to a `HashPipeline`. `hash_url`
does the same for a container downloaded with `RemoteStream`.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List

import httpx

from .Errors import ContainerError
from .FileIO import ProgressCallback, RemoteStream
from .HashPipeline import EntryFailure, HashPipeline, HashResult
from .ZipScanner import ContainerScanner

logger = logging.getLogger(__name__)


@dataclass
class ContainerReport:
    """Outcome of scanning one container.

    Results gathered before a container-level error are kept.
    """
    results: List[HashResult] = field(default_factory=list)
    failures: List[EntryFailure] = field(default_factory=list)
    records_seen: int = 0
    bytes_received: int = 0
    finished_cleanly: bool = False
    truncated: bool = False
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def scan_container(chunks: Iterable[bytes], pipeline: HashPipeline,
                   on_result: Callable[[HashResult], None] | None = None,
                   on_failure: Callable[[EntryFailure], None] | None = None) -> ContainerReport:
    """Fingerprint the qualifying entries of one container.

    Args:
        chunks (Iterable[bytes]): The container body, in order.
        pipeline (HashPipeline): Filter and hasher for the entries. Its
            `wants` predicate also lets the scanner skip unwanted payloads.
        on_result (callable|None): Called with each HashResult as it is produced.
        on_failure (callable|None): Called with each dropped entry.

    Returns:
        ContainerReport: Results, dropped entries and the container error, if any.
    """
    scanner = ContainerScanner(select=pipeline.wants)
    report = ContainerReport()
    try:
        for records in scanner.scan_batches(chunks):
            outcome = pipeline.process(records)
            for result in outcome.results:
                report.results.append(result)
                if on_result:
                    on_result(result)
            for failure in outcome.failures:
                report.failures.append(failure)
                if on_failure:
                    on_failure(failure)
    except (ContainerError, httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as e:
        logger.debug("Container scan stopped: %s", e)
        report.error = e
    finally:
        # stop the upstream download when scanning ended early
        close = getattr(chunks, "close", None)
        if close:
            close()

    report.records_seen = scanner.records_seen
    report.bytes_received = scanner.bytes_received
    report.finished_cleanly = scanner.finished_cleanly
    report.truncated = scanner.truncated
    return report


def hash_url(url: str, pipeline: HashPipeline,
             on_result: Callable[[HashResult], None] | None = None,
             on_failure: Callable[[EntryFailure], None] | None = None,
             progress_callback: ProgressCallback | None = None,
             stream: RemoteStream | None = None) -> ContainerReport:
    """Download a container and fingerprint its qualifying entries.

    Args:
        url (str): Location of the container.
        pipeline (HashPipeline): Filter and hasher for the entries.
        on_result (callable|None): See `scan_container`.
        on_failure (callable|None): See `scan_container`.
        progress_callback (callable|None): Called with `(received, total)` bytes.
        stream (RemoteStream|None): Stream to read from; one is created for
            `url` when omitted.

    Returns:
        ContainerReport: See `scan_container`.
    """
    stream = stream or RemoteStream(url)
    with stream:
        return scan_container(stream.iter_chunks(progress_callback), pipeline,
                              on_result=on_result, on_failure=on_failure)
