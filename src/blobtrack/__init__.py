"""blobtrack - content-addressed file tracking with a flat staging index."""

from .constants import BLOBTRACK_VERSION as __version__

__all__ = ["__version__"]
