"""Exception hierarchy for pakhash.

Errors fall into two families:

- `ContainerError`: the whole container (one URL) cannot be scanned any
  further. Raised for a desynchronized or foreign byte stream and for
  transport failures.
- `EntryError`: a single inner entry could not be hashed. These are
  collected per entry and never stop the scan of the container.
"""


class PakHashError(Exception):
    """Base class for every error raised by pakhash."""


class ContainerError(PakHashError):
    """Scanning of one container stopped."""


class MalformedSignatureError(ContainerError):
    """The bytes at a record boundary match none of the known signatures.

    Attributes:
        signature (bytes): The 4 bytes found where a signature was expected.
    """

    def __init__(self, signature: bytes):
        self.signature = signature
        super().__init__(f"unsupported entry signature: {signature.hex()}")


class FetchError(ContainerError):
    """The container could not be downloaded."""

    def __init__(self, message: str, url: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class UnacceptableContentType(FetchError):
    """The server answered with a content type that is not an archive."""


class EntryError(PakHashError):
    """One inner entry was dropped.

    Attributes:
        name (str): Name of the entry inside the container.
    """

    def __init__(self, name: str, message: str):
        self.name = name
        super().__init__(f"{name}: {message}")


class DecompressionError(EntryError):
    """The entry payload is not a valid raw deflate stream."""


class UnsupportedCompressionError(EntryError):
    """The entry uses a compression method other than deflate."""

    def __init__(self, name: str, method: int):
        self.method = method
        super().__init__(name, f"unsupported compression method {method}")
