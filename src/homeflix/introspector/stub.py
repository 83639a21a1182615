"""In-memory MetadataProbe used by tests and dry runs."""

from pathlib import Path

from homeflix.domain import MediaMetadata
from homeflix.introspector.interface import MediaProbeError


class StubProbe:
    """MetadataProbe that answers from a prepared mapping.

    Paths mapped to a MediaProbeError raise it; unmapped paths raise a
    generic MediaProbeError. Every call is recorded in ``calls``.
    """

    def __init__(
        self, results: dict[Path, MediaMetadata | MediaProbeError] | None = None
    ) -> None:
        self.results: dict[Path, MediaMetadata | MediaProbeError] = dict(results or {})
        self.calls: list[Path] = []

    def add(self, path: Path, result: MediaMetadata | MediaProbeError) -> None:
        self.results[Path(path)] = result

    def probe(self, path: Path) -> MediaMetadata:
        self.calls.append(path)
        result = self.results.get(Path(path))
        if result is None:
            raise MediaProbeError(f"No stub result for {path}", path)
        if isinstance(result, MediaProbeError):
            raise result
        return result
