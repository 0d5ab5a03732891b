"""
Custom exception hierarchy for photo-dater.

Scan errors that concern a single file are handled inside the scanner;
everything that concerns the requested operation's own target reaches the
caller.
"""


class PhotoDaterError(Exception):
    """Base exception for all photo-dater errors."""
    pass


class DirectoryAccessError(PhotoDaterError):
    """Raised when the scan directory is missing, not a directory, or unreadable."""
    pass


class PerFileStatError(PhotoDaterError):
    """Raised when a single file cannot be stat'ed during a scan."""
    pass


class MetadataParseFailure(PhotoDaterError):
    """Raised when embedded metadata cannot be parsed from a file."""
    pass


class InProgressError(PhotoDaterError):
    """Raised when an update is requested for a path that already has one in flight."""

    def __init__(self, path: str):
        super().__init__(f"An update is already in progress for {path}")
        self.path = path


class InvalidDateSpecError(PhotoDaterError, ValueError):
    """Raised when a date/time specification cannot be normalized for the writer."""
    pass


class UpdateError(PhotoDaterError):
    """Base class for failures reported by an update outcome."""
    pass


class ExternalProcessLaunchError(UpdateError):
    """Raised when the metadata writer could not be started."""
    pass


class ExternalProcessFailure(UpdateError):
    """Raised when the metadata writer ran but did not succeed."""

    def __init__(self, message: str, returncode: int = -1):
        super().__init__(message)
        self.returncode = returncode
