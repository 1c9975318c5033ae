"""pakhash package initializer.

This module provides the package-level public surface for the small
`pakhash` library. It exports a few convenience symbols:

- __version__: Package version string.
- ContainerScanner: Incremental reader of ZIP local file headers.
- HashPipeline / HashResult: Filter and SHA-1 fingerprinting of inner entries.
- scan_container / hash_url: Wire a byte stream or a URL to the two above.
- RemoteStream: Streaming HTTP download split into chunks.
- Runner / parse_list: Process a list of container URLs.
- cli: The CLI entrypoint function (click command) exposed for programmatic use.

Example:
    from pakhash import HashPipeline, hash_url
    report = hash_url("http://example.com/maps.zip", HashPipeline())
    for result in report.results:
        print(result.line, end="")

"""

# Public version string
__version__ = "0.1.0"

from .ZipHeaders import RecordHeader, Signature, decode_header, decode_record
from .ZipScanner import ContainerScanner, ScannerState
from .HashPipeline import HashPipeline, HashResult
from .ArchiveEngine import ContainerReport, hash_url, scan_container
from .FileIO import RemoteStream
from .Runner import Runner, parse_list

# Expose the CLI command object so callers can reuse or register it in other tools.
from .CLI import hash_list as cli  # click CLI command

# Define the public API
__all__ = [
    "__version__",
    "RecordHeader",
    "Signature",
    "decode_header",
    "decode_record",
    "ContainerScanner",
    "ScannerState",
    "HashPipeline",
    "HashResult",
    "ContainerReport",
    "hash_url",
    "scan_container",
    "RemoteStream",
    "Runner",
    "parse_list",
    "cli",
]
