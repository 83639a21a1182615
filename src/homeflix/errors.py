"""Exceptions shared across Homeflix components.

Component-specific failures live beside their components
(MediaProbeError in homeflix.introspector, EncodeError in homeflix.jobs,
RangeNotSatisfiableError in homeflix.streaming). The not-found family is
shared because the scanner, job manager and stream controller all raise it.
"""


class HomeflixError(Exception):
    """Base class for Homeflix errors."""


class MediaNotFoundError(HomeflixError):
    """Raised when a catalog entity or its backing file does not exist.

    Attributes:
        kind: What was missing ("media item", "library", "file", ...).
        identifier: The id or path that was looked up.
    """

    kind = "media item"

    def __init__(self, identifier: object, kind: str | None = None) -> None:
        """Initialize the exception.

        Args:
            identifier: The id or path that was looked up.
            kind: Overrides the class-level kind label.
        """
        if kind is not None:
            self.kind = kind
        self.identifier = identifier
        super().__init__(f"{self.kind.capitalize()} not found: {identifier}")


class LibraryNotFoundError(MediaNotFoundError):
    """Raised when a library id does not exist."""

    kind = "library"
