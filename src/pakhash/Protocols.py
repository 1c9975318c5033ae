"""Run event protocol definitions.

This module declares `RunEventsProtocol`, the interface through which the
runner reports what happens while a list of containers is processed. The
library never prints anything itself: presentation (console output, progress
bars, colors) belongs to whoever implements this protocol, like the CLI.
"""

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .ArchiveEngine import ContainerReport
    from .HashPipeline import EntryFailure, HashResult
    from .Runner import ListEntry


class RunEventsProtocol(Protocol):
    """Protocol describing the events emitted while processing a list.

    Events of a single container arrive in order. With several jobs the
    events of different containers may interleave and come from worker
    threads.
    """

    def container_started(self, entry: "ListEntry") -> None:
        """Called before the container of `entry` is requested."""
        ...

    def progress(self, entry: "ListEntry", received: int, total: int) -> None:
        """Called as the container body arrives.

        Args:
            entry (ListEntry): The container being downloaded.
            received (int): Bytes received so far.
            total (int): Announced size in bytes, 0 if unknown.
        """
        ...

    def result(self, entry: "ListEntry", result: "HashResult") -> None:
        """Called for every fingerprint, in stream order."""
        ...

    def entry_failed(self, entry: "ListEntry", failure: "EntryFailure") -> None:
        """Called when an inner entry had to be dropped."""
        ...

    def container_finished(self, entry: "ListEntry", report: "ContainerReport") -> None:
        """Called once the container is done, successfully or not."""
        ...


class NullEvents(RunEventsProtocol):
    """Events sink that ignores everything."""
