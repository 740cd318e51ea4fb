"""Error taxonomy for qrmaker.

Components raise these; only the CLI catches them, prints the message to
stderr and turns them into a non-zero exit status.
"""


class QRMakerError(Exception):
    """Base error for all qrmaker operations."""

    exit_code = 1


class UsageError(QRMakerError):
    """Invocation is missing required input (e.g. no --image)."""

    exit_code = 0


class DecodeError(QRMakerError):
    """Source image is unreadable, corrupt or in an unrecognized format."""


class EncodingError(QRMakerError):
    """QR symbol construction failed (payload too long, canvas too small)."""


class CapacityError(QRMakerError):
    """Artistic embedding failed for the chosen version/payload combination."""

    def __init__(self, message: str, hint: str | None = None):
        super().__init__(message)
        self.hint = hint


class FileIOError(QRMakerError):
    """Filesystem read or write failure."""
