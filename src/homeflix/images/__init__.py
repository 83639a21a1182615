"""Poster image generation."""

from homeflix.images.manager import (
    ImageManager,
    PosterGenerationError,
    compute_poster_timestamp,
)

__all__ = [
    "ImageManager",
    "PosterGenerationError",
    "compute_poster_timestamp",
]
